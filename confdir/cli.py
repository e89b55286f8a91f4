"""CLI entry point for confdir."""

from __future__ import annotations

import argparse
import ipaddress
import json
from pathlib import Path
from typing import Any, Sequence

from confdir.config.loader import initialize_config, load_config
from confdir.core.logging import configure_logging
from confdir.directory.backend import ConfigBackend
from confdir.directory.credentials import password_digest
from confdir.directory.errors import ResultCode, UnsupportedQuery
from confdir.directory.protocol import SearchRequest


DEFAULT_CONFIG = Path(__file__).parent / "config" / "defaults.yml"


def _host_is_loopback(host: str) -> bool:
    normalized = host.strip().lower()
    if normalized == "localhost":
        return True
    try:
        parsed = ipaddress.ip_address(normalized)
    except ValueError:
        return False
    return parsed.is_loopback


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="confdir")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create starter config")
    init_parser.add_argument("--config", type=Path, default=Path("./config/confdir.yml"))
    init_parser.add_argument("--force", action="store_true")

    validate_parser = subparsers.add_parser("validate", help="Load config and print a directory summary")
    validate_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    bind_parser = subparsers.add_parser("bind", help="Check a bind DN and password against the config")
    bind_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    bind_parser.add_argument("--dn", type=str, required=True)
    bind_parser.add_argument("--password", type=str, required=True)

    search_parser = subparsers.add_parser("search", help="Print the entries a search would return")
    search_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    search_parser.add_argument("--bind-dn", type=str, required=True)
    search_parser.add_argument("--base-dn", type=str, default=None, help="Defaults to the configured base DN")
    search_parser.add_argument("--filter", dest="filter_text", type=str, default="(objectClass=posixAccount)")

    hash_parser = subparsers.add_parser("hash-password", help="Print the pass_sha256 value for a password")
    hash_parser.add_argument("--password", type=str, required=True)

    logs_parser = subparsers.add_parser("logs", help="Show log sink configuration")
    logs_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    api_parser = subparsers.add_parser("api", help="Run the HTTP status API")
    api_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    api_parser.add_argument("--host", type=str, default=None)
    api_parser.add_argument("--port", type=int, default=None)

    return parser


def _backend(config_path: Path) -> tuple[Any, ConfigBackend]:
    config = load_config(config_path)
    configure_logging(config.logging)
    return config, ConfigBackend(config.directory)


def cmd_init(config_path: Path, force: bool) -> int:
    initialize_config(config_path, force=force)
    print(f"wrote config: {config_path}")
    return 0


def cmd_validate(config_path: Path) -> int:
    config = load_config(config_path)
    directory = config.directory
    payload = {
        "environment": config.environment,
        "base_dn": directory.base_dn,
        "users": len(directory.users),
        "groups": len(directory.groups),
        "otp_users": sum(1 for user in directory.users if user.otp_secret),
        "disabled_users": sum(1 for user in directory.users if user.disabled),
    }
    print(json.dumps(payload, indent=2))
    return 0


def cmd_bind(config_path: Path, *, dn: str, password: str) -> int:
    _, backend = _backend(config_path)
    result = backend.bind(dn, password)
    print(json.dumps({"dn": dn, "result": result.name.lower(), "code": int(result)}, indent=2))
    return 0 if result is ResultCode.SUCCESS else 1


def cmd_search(config_path: Path, *, bind_dn: str, base_dn: str | None, filter_text: str) -> int:
    _, backend = _backend(config_path)
    search_base = base_dn if base_dn is not None else backend.snapshot.base_dn
    try:
        request = SearchRequest.from_filter(search_base, filter_text)
    except UnsupportedQuery as exc:
        print(json.dumps({"result": ResultCode.OPERATIONS_ERROR.name.lower(), "error": str(exc)}, indent=2))
        return 1
    result = backend.search(bind_dn, request)
    payload: dict[str, Any] = {
        "result": result.result_code.name.lower(),
        "entries": [entry.to_dict() for entry in result.entries],
    }
    if result.diagnostic_message:
        payload["error"] = result.diagnostic_message
    print(json.dumps(payload, indent=2))
    return 0 if result.result_code is ResultCode.SUCCESS else 1


def cmd_hash_password(password: str) -> int:
    print(password_digest(password))
    return 0


def cmd_logs(config_path: Path) -> int:
    config = load_config(config_path)
    payload = {
        "format": config.logging.fmt,
        "level": config.logging.level,
        "sink": config.logging.sink,
        "file_path": config.logging.file_path,
        "service_name": config.logging.service_name,
    }
    print(json.dumps(payload, indent=2))
    return 0


def cmd_api(config_path: Path, *, host: str | None, port: int | None) -> int:
    config, backend = _backend(config_path)
    if not config.api.enabled:
        raise RuntimeError("api is disabled; set api.enabled=true in the config")
    listen_host = host or config.api.listen_host
    listen_port = int(port or config.api.port)
    if not _host_is_loopback(listen_host) and not config.api.auth_enabled:
        raise RuntimeError(
            "refusing to bind API to a non-loopback host without auth; set api.auth_enabled=true and configure tokens"
        )
    try:
        from confdir.dashboard.api import create_app
        import uvicorn
    except Exception as exc:
        raise RuntimeError("api dependencies are missing; install with 'confdir[api]'") from exc

    app = create_app(backend, config.api, config_path=config_path)
    uvicorn.run(app, host=listen_host, port=listen_port, log_level=config.logging.level.lower())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args.config, args.force)
    if args.command == "validate":
        return cmd_validate(args.config)
    if args.command == "bind":
        return cmd_bind(args.config, dn=args.dn, password=args.password)
    if args.command == "search":
        return cmd_search(
            args.config,
            bind_dn=args.bind_dn,
            base_dn=args.base_dn,
            filter_text=args.filter_text,
        )
    if args.command == "hash-password":
        return cmd_hash_password(args.password)
    if args.command == "logs":
        return cmd_logs(args.config)
    if args.command == "api":
        return cmd_api(args.config, host=args.host, port=args.port)

    parser.error(f"unknown command: {args.command}")
    return 2
