"""Bind DN parsing relative to the configured base DN."""

from __future__ import annotations

from dataclasses import dataclass

from confdir.directory.errors import IdentityFormatError


@dataclass(frozen=True, slots=True)
class BindIdentity:
    username: str
    group_name: str = ""


def dn_in_base(dn: str, base_dn: str) -> bool:
    """True when ``dn`` sits strictly below ``base_dn`` (case-insensitive)."""
    return dn.lower().endswith("," + base_dn.lower())


def parse_bind_dn(bind_dn: str, base_dn: str) -> BindIdentity:
    """Split ``cn=<user>[,ou=<group>],<base>`` into its user and group names.

    Both names come from the lowercased DN. Prefixes are stripped without
    validation, so a malformed component yields a name that simply will not
    match any record.
    """
    normalized = bind_dn.lower()
    suffix = "," + base_dn.lower()
    if not normalized.endswith(suffix):
        raise IdentityFormatError(f"bind DN {bind_dn} is not within base DN {base_dn}")
    parts = normalized[: -len(suffix)].split(",")
    if len(parts) == 1:
        return BindIdentity(username=parts[0].removeprefix("cn="))
    if len(parts) == 2:
        return BindIdentity(
            username=parts[0].removeprefix("cn="),
            group_name=parts[1].removeprefix("ou="),
        )
    raise IdentityFormatError(f"bind DN {bind_dn} should have only one or two parts (has {len(parts)})")


def user_dn(name: str, group_name: str, base_dn: str) -> str:
    return f"cn={name},ou={group_name},{base_dn}"


def group_dn(name: str, base_dn: str) -> str:
    return f"cn={name},ou=groups,{base_dn}"
