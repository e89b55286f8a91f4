"""Dataclasses for top-level application config."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
import re
from typing import Any


DEFAULT_API_PORT = 5555
_SHA256_HEX_RE = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True, slots=True)
class UserRecord:
    name: str
    unix_id: int
    primary_group: int
    other_groups: tuple[int, ...] = ()
    pass_sha256: str = ""
    otp_secret: str = ""
    given_name: str = ""
    sn: str = ""
    mail: str = ""
    login_shell: str | None = None
    home_directory: str | None = None
    ssh_keys: tuple[str, ...] = ()
    disabled: bool = False

    @property
    def group_ids(self) -> tuple[int, ...]:
        return (*self.other_groups, self.primary_group)


@dataclass(frozen=True, slots=True)
class GroupRecord:
    name: str
    unix_id: int
    include_groups: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class DirectoryConfig:
    base_dn: str
    users: tuple[UserRecord, ...] = ()
    groups: tuple[GroupRecord, ...] = ()


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    fmt: str = "ecs_json"
    sink: str = "stdout"
    file_path: str | None = None
    service_name: str = "confdir"


@dataclass(slots=True)
class APIConfig:
    enabled: bool = False
    listen_host: str = "127.0.0.1"
    port: int = DEFAULT_API_PORT
    docs_enabled: bool = False
    auth_enabled: bool = False
    auth_tokens: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AppConfig:
    environment: str
    directory: DirectoryConfig
    logging: LoggingConfig
    api: APIConfig


VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
VALID_LOG_FORMATS = {"ecs_json"}
VALID_LOG_SINKS = {"stdout", "file"}


def _parse_bool_value(raw: Any, *, field_name: str, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"'{field_name}' must be a boolean")


def _parse_unix_id(raw: Any, *, field_name: str) -> int:
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"'{field_name}' must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be an integer") from exc
    if value < 0:
        raise ValueError(f"'{field_name}' must be greater than or equal to zero")
    return value


def _parse_id_list(raw: Any, *, field_name: str) -> tuple[int, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError(f"'{field_name}' must be a list")
    values: list[int] = []
    for index, item in enumerate(raw):
        value = _parse_unix_id(item, field_name=f"{field_name}[{index}]")
        if value in values:
            continue
        values.append(value)
    return tuple(values)


def _parse_string_list(raw: Any, *, field_name: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError(f"'{field_name}' must be a list")
    return tuple(str(item).strip() for item in raw if str(item).strip())


def _parse_token_list(raw: Any, *, field_name: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"'{field_name}' must be a list")
    values: list[str] = []
    seen: set[str] = set()
    for item in raw:
        token = str(item).strip()
        if not token:
            continue
        if " " in token:
            raise ValueError(f"'{field_name}' entries must not include spaces")
        if token in seen:
            continue
        seen.add(token)
        values.append(token)
    return values


def _optional_text(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _validate_otp_secret(secret: str, *, field_name: str) -> None:
    padded = secret.upper()
    if len(padded) % 8:
        padded += "=" * (8 - len(padded) % 8)
    try:
        base64.b32decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be a base32 secret") from exc


def _parse_users(items: list[Any]) -> tuple[UserRecord, ...]:
    users: list[UserRecord] = []
    seen_names: set[str] = set()
    seen_ids: set[int] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"user #{index} must be an object")
        name = str(item.get("name", "")).strip()
        if not name:
            raise ValueError(f"user #{index} requires non-empty 'name'")
        if name in seen_names:
            raise ValueError(f"duplicate user name '{name}'")
        prefix = f"users.{name}"
        unix_id = _parse_unix_id(item.get("uid_number"), field_name=f"{prefix}.uid_number")
        if unix_id in seen_ids:
            raise ValueError(f"duplicate user uid_number {unix_id} for '{name}'")
        primary_group = _parse_unix_id(item.get("primary_group"), field_name=f"{prefix}.primary_group")
        pass_sha256 = str(item.get("pass_sha256", "") or "").strip()
        if pass_sha256 and not _SHA256_HEX_RE.match(pass_sha256):
            raise ValueError(f"'{prefix}.pass_sha256' must be a 64 character hex digest")
        otp_secret = str(item.get("otp_secret", "") or "").strip()
        if otp_secret:
            _validate_otp_secret(otp_secret, field_name=f"{prefix}.otp_secret")
        seen_names.add(name)
        seen_ids.add(unix_id)
        users.append(
            UserRecord(
                name=name,
                unix_id=unix_id,
                primary_group=primary_group,
                other_groups=_parse_id_list(item.get("other_groups"), field_name=f"{prefix}.other_groups"),
                pass_sha256=pass_sha256.lower(),
                otp_secret=otp_secret,
                given_name=str(item.get("given_name", "") or "").strip(),
                sn=str(item.get("sn", "") or "").strip(),
                mail=str(item.get("mail", "") or "").strip(),
                login_shell=_optional_text(item.get("login_shell")),
                home_directory=_optional_text(item.get("home_directory")),
                ssh_keys=_parse_string_list(item.get("ssh_keys"), field_name=f"{prefix}.ssh_keys"),
                disabled=_parse_bool_value(item.get("disabled"), field_name=f"{prefix}.disabled", default=False),
            )
        )
    return tuple(users)


def _parse_groups(items: list[Any]) -> tuple[GroupRecord, ...]:
    groups: list[GroupRecord] = []
    seen_names: set[str] = set()
    seen_ids: set[int] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"group #{index} must be an object")
        name = str(item.get("name", "")).strip()
        if not name:
            raise ValueError(f"group #{index} requires non-empty 'name'")
        if name in seen_names:
            raise ValueError(f"duplicate group name '{name}'")
        prefix = f"groups.{name}"
        unix_id = _parse_unix_id(item.get("gid_number"), field_name=f"{prefix}.gid_number")
        if unix_id in seen_ids:
            raise ValueError(f"duplicate group gid_number {unix_id} for '{name}'")
        seen_names.add(name)
        seen_ids.add(unix_id)
        groups.append(
            GroupRecord(
                name=name,
                unix_id=unix_id,
                include_groups=_parse_id_list(item.get("include_groups"), field_name=f"{prefix}.include_groups"),
            )
        )
    return tuple(groups)


def parse_directory(data: dict[str, Any]) -> DirectoryConfig:
    backend_raw = data.get("backend", {})
    if not isinstance(backend_raw, dict):
        raise ValueError("'backend' must be an object")
    base_dn = str(backend_raw.get("base_dn", "")).strip()
    if not base_dn:
        raise ValueError("'backend.base_dn' must be a non-empty string")

    users_raw = data.get("users", [])
    if users_raw is None:
        users_raw = []
    if not isinstance(users_raw, list):
        raise ValueError("'users' must be a list")
    groups_raw = data.get("groups", [])
    if groups_raw is None:
        groups_raw = []
    if not isinstance(groups_raw, list):
        raise ValueError("'groups' must be a list")

    return DirectoryConfig(
        base_dn=base_dn,
        users=_parse_users(users_raw),
        groups=_parse_groups(groups_raw),
    )


def parse_config(data: dict[str, Any]) -> AppConfig:
    environment = str(data.get("environment", "development"))
    directory = parse_directory(data)

    logging_raw = data.get("logging", {})
    if not isinstance(logging_raw, dict):
        raise ValueError("'logging' must be an object")
    level = str(logging_raw.get("level", "INFO")).upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"invalid log level '{level}'")
    log_format = str(logging_raw.get("format", "ecs_json"))
    if log_format not in VALID_LOG_FORMATS:
        raise ValueError(f"invalid log format '{log_format}'")
    sink = str(logging_raw.get("sink", "stdout"))
    if sink not in VALID_LOG_SINKS:
        raise ValueError(f"invalid log sink '{sink}'")
    logging_config = LoggingConfig(
        level=level,
        fmt=log_format,
        sink=sink,
        file_path=logging_raw.get("file_path"),
        service_name=str(logging_raw.get("service_name", "confdir")).strip() or "confdir",
    )

    api_raw = data.get("api", {})
    if not isinstance(api_raw, dict):
        raise ValueError("'api' must be an object")
    api_port = int(api_raw.get("port", DEFAULT_API_PORT))
    if api_port < 1 or api_port > 65535:
        raise ValueError("api port must be between 1 and 65535")
    auth_tokens = _parse_token_list(api_raw.get("auth_tokens"), field_name="api.auth_tokens")
    for token in auth_tokens:
        if len(token) < 16:
            raise ValueError("api auth tokens must be at least 16 characters")
    api_auth_enabled = _parse_bool_value(api_raw.get("auth_enabled"), field_name="api.auth_enabled", default=False)
    if api_auth_enabled and not auth_tokens:
        raise ValueError("api.auth_enabled requires at least one entry in api.auth_tokens")
    api_config = APIConfig(
        enabled=_parse_bool_value(api_raw.get("enabled"), field_name="api.enabled", default=False),
        listen_host=str(api_raw.get("listen_host", "127.0.0.1")).strip() or "127.0.0.1",
        port=api_port,
        docs_enabled=_parse_bool_value(api_raw.get("docs_enabled"), field_name="api.docs_enabled", default=False),
        auth_enabled=api_auth_enabled,
        auth_tokens=auth_tokens,
    )

    return AppConfig(
        environment=environment,
        directory=directory,
        logging=logging_config,
        api=api_config,
    )
