"""Request/result shapes exchanged with the LDAP protocol layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from confdir.directory.errors import ResultCode, UnsupportedQuery


MAX_FILTER_DEPTH = 64


@dataclass(frozen=True, slots=True)
class ConnectionInfo:
    remote_ip: str = ""
    remote_port: int = 0

    @classmethod
    def from_address(cls, address: Any) -> ConnectionInfo:
        if isinstance(address, ConnectionInfo):
            return address
        if isinstance(address, tuple) and len(address) >= 2:
            try:
                port = int(address[1])
            except (TypeError, ValueError):
                port = 0
            return cls(remote_ip=str(address[0]), remote_port=port)
        return cls()


@dataclass(frozen=True, slots=True)
class EntryAttribute:
    name: str
    values: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Entry:
    dn: str
    attributes: tuple[EntryAttribute, ...]

    def get(self, name: str) -> tuple[str, ...]:
        """Values of the first attribute called ``name`` (case-insensitive)."""
        lowered = name.lower()
        for attribute in self.attributes:
            if attribute.name.lower() == lowered:
                return attribute.values
        return ()

    def attribute_names(self) -> list[str]:
        return [attribute.name for attribute in self.attributes]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dn": self.dn,
            "attributes": {attribute.name: list(attribute.values) for attribute in self.attributes},
        }


@dataclass(frozen=True, slots=True)
class SearchRequest:
    base_dn: str
    filter: str = ""
    object_class: str = ""

    @classmethod
    def from_filter(cls, base_dn: str, filter_text: str) -> SearchRequest:
        return cls(base_dn=base_dn, filter=filter_text, object_class=filter_object_class(filter_text))


@dataclass(slots=True)
class SearchResult:
    entries: list[Entry] = field(default_factory=list)
    referrals: list[str] = field(default_factory=list)
    controls: list[Any] = field(default_factory=list)
    result_code: ResultCode = ResultCode.SUCCESS
    diagnostic_message: str = ""


def filter_object_class(filter_text: str) -> str:
    """Classify a search filter by the objectClass it asserts.

    Equality assertions on ``objectClass`` are honoured at the top level and
    inside ``&``, ``|`` and ``!`` filters; the last one wins.
    """
    text = filter_text.strip()
    if not text:
        raise UnsupportedQuery("empty search filter")
    node, position = _parse_filter(text, 0)
    if position != len(text):
        raise UnsupportedQuery(f"unexpected trailing data in search filter: {filter_text}")
    return _object_class_of(node).lower()


def _object_class_of(node: tuple[Any, ...]) -> str:
    kind = node[0]
    if kind == "eq":
        _, attribute, value = node
        return value if attribute.lower() == "objectclass" else ""
    if kind in {"and", "or", "not"}:
        children = node[1] if kind != "not" else [node[1]]
        object_class = ""
        for child in children:
            child_class = _object_class_of(child)
            if child_class:
                object_class = child_class
        return object_class
    return ""


def _parse_filter(text: str, position: int, depth: int = 0) -> tuple[tuple[Any, ...], int]:
    if depth > MAX_FILTER_DEPTH:
        raise UnsupportedQuery(f"search filter nests deeper than {MAX_FILTER_DEPTH} levels")
    if position >= len(text) or text[position] != "(":
        raise UnsupportedQuery(f"search filter must start with '(' at offset {position}")
    position += 1
    if position >= len(text):
        raise UnsupportedQuery("unbalanced parentheses in search filter")
    marker = text[position]
    if marker in "&|":
        children: list[tuple[Any, ...]] = []
        position += 1
        while position < len(text) and text[position] == "(":
            child, position = _parse_filter(text, position, depth + 1)
            children.append(child)
        if not children:
            raise UnsupportedQuery("filter set must contain at least one filter")
        return ("and" if marker == "&" else "or", children), _expect_close(text, position)
    if marker == "!":
        child, position = _parse_filter(text, position + 1, depth + 1)
        return ("not", child), _expect_close(text, position)

    end = text.find(")", position)
    if end < 0:
        raise UnsupportedQuery("unbalanced parentheses in search filter")
    item = text[position:end]
    if "(" in item:
        raise UnsupportedQuery(f"unexpected '(' in filter item: {item}")
    return _parse_item(item), end + 1


def _expect_close(text: str, position: int) -> int:
    if position >= len(text) or text[position] != ")":
        raise UnsupportedQuery("unbalanced parentheses in search filter")
    return position + 1


def _parse_item(item: str) -> tuple[Any, ...]:
    for operator in ("~=", ">=", "<="):
        attribute, found, value = item.partition(operator)
        if found:
            if not attribute:
                raise UnsupportedQuery(f"filter item is missing an attribute: {item}")
            return ("cmp", attribute, value)
    attribute, found, value = item.partition("=")
    if not found or not attribute:
        raise UnsupportedQuery(f"malformed filter item: {item}")
    if value == "*":
        return ("present", attribute)
    if "*" in value:
        return ("substring", attribute, value)
    return ("eq", attribute, value)
