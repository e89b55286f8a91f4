"""Config loading and initialization."""

from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import Any

import yaml

from confdir.config.schema import AppConfig, DirectoryConfig, parse_config, parse_directory


DEFAULT_CONFIG_PATH = Path(__file__).with_name("defaults.yml")
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>.*?))?\}")


def load_config(path: Path) -> AppConfig:
    return parse_config(_read_document(path))


def load_directory(path: Path) -> DirectoryConfig:
    """Only the directory sections of ``path``; used to build a reload snapshot."""
    return parse_directory(_read_document(path))


def initialize_config(path: Path, force: bool = False) -> Path:
    if path.exists() and not force:
        raise FileExistsError(f"config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(DEFAULT_CONFIG_PATH, path)
    return path


def _read_document(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"config file does not exist: {path}")
    document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(document, dict):
        raise ValueError(f"config file must contain a mapping: {path}")
    return _expand_env(document)


def _expand_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, str) and "${" in value:
        return _ENV_REFERENCE.sub(_resolve_reference, value)
    return value


def _resolve_reference(match: re.Match[str]) -> str:
    name = match.group("name")
    resolved = os.environ.get(name, match.group("default"))
    if resolved is None:
        raise ValueError(f"missing required environment variable '{name}' referenced by '{match.group(0)}'")
    return resolved
