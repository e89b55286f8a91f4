"""Structured ECS logging for directory events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import json
import logging
from pathlib import Path
from typing import Any

from confdir.config.schema import LoggingConfig


ROOT_LOGGER = "confdir"
DEFAULT_LOG_FILE = "logs/confdir.log"
_CONFIGURED_MARKER = "_confdir_configured"

# (ECS object, ECS field, LogRecord attribute set by EventLogger.emit)
_EVENT_FIELDS = (
    ("event", "category", "event_category"),
    ("event", "action", "event_action"),
    ("event", "type", "event_type"),
    ("event", "outcome", "event_outcome"),
    ("event", "reason", "event_reason"),
    ("user", "name", "user_name"),
    ("source", "ip", "source_ip"),
    ("source", "port", "source_port"),
    ("confdir", "payload", "payload"),
)


def _prune(value: object) -> object | None:
    """Drop ``None``/empty leaves so records only carry fields that were set."""
    if isinstance(value, dict):
        kept = {key: _prune(item) for key, item in value.items()}
        return {key: item for key, item in kept.items() if item is not None} or None
    if isinstance(value, list):
        kept_items = [_prune(item) for item in value]
        return [item for item in kept_items if item is not None] or None
    if value in ("", None):
        return None
    return value


class ECSJsonFormatter(logging.Formatter):
    def __init__(self, service_name: str = ROOT_LOGGER) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="microseconds"),
            "message": record.getMessage(),
            "log": {"level": record.levelname.lower(), "logger": record.name},
            "service": {"name": getattr(record, "service_name", self.service_name)},
            "event": {"kind": "event"},
            "observer": {"vendor": "confdir", "product": "confdir", "type": "ldap"},
        }
        for section, field_name, attribute in _EVENT_FIELDS:
            value = getattr(record, attribute, None)
            if value is None:
                continue
            document.setdefault(section, {})[field_name] = value
        if record.exc_info:
            document["error"] = {"stack_trace": self.formatException(record.exc_info)}
        return json.dumps(_prune(document) or {}, separators=(",", ":"))


def _sink_handler(config: LoggingConfig, formatter: logging.Formatter) -> logging.Handler:
    handler: logging.Handler
    if config.sink == "file":
        log_file = Path(config.file_path or DEFAULT_LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    # propagated child records bypass the root level, not handler levels
    handler.setLevel(config.level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: LoggingConfig, force: bool = False) -> None:
    root = logging.getLogger(ROOT_LOGGER)
    if getattr(root, _CONFIGURED_MARKER, False) and not force:
        return

    for existing in list(root.handlers):
        existing.close()
        root.removeHandler(existing)
    root.setLevel(config.level)
    root.addHandler(_sink_handler(config, ECSJsonFormatter(service_name=config.service_name)))
    root.propagate = False
    setattr(root, _CONFIGURED_MARKER, True)


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Logger for ``name``; falls back to its own stderr handler until logging is configured."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    in_tree = name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + ".")
    if in_tree and logging.getLogger(ROOT_LOGGER).handlers:
        logger.propagate = True
        return logger

    fallback = logging.StreamHandler()
    fallback.setFormatter(ECSJsonFormatter())
    logger.addHandler(fallback)
    logger.propagate = False
    return logger


@dataclass(slots=True)
class EventLogger:
    logger: logging.Logger
    service_name: str = ROOT_LOGGER

    def emit(
        self,
        *,
        message: str,
        action: str,
        category: str,
        outcome: str | None = None,
        reason: str | None = None,
        user_name: str | None = None,
        source_ip: str | None = None,
        source_port: int | None = None,
        event_type: str | None = None,
        payload: dict[str, object] | None = None,
        level: str = "INFO",
    ) -> None:
        self.logger.log(
            getattr(logging, level.upper(), logging.INFO),
            message,
            extra={
                "service_name": self.service_name,
                "event_category": category,
                "event_action": action,
                "event_type": event_type,
                "event_outcome": outcome,
                "event_reason": reason,
                "user_name": user_name,
                "source_ip": source_ip,
                "source_port": source_port,
                "payload": payload or None,
            },
        )

