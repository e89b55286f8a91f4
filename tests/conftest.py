from __future__ import annotations

import hashlib
from typing import Any

import pytest

from confdir.config.schema import DirectoryConfig, parse_directory
from confdir.directory.backend import ConfigBackend


BASE_DN = "dc=example,dc=com"
OTP_SECRET = "JBSWY3DPEHPK3PXP"


def sha256_hex(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def directory_payload() -> dict[str, Any]:
    return {
        "backend": {"base_dn": BASE_DN},
        "users": [
            {
                "name": "alice",
                "uid_number": 1000,
                "primary_group": 500,
                "pass_sha256": sha256_hex("secret"),
            },
            {
                "name": "bob",
                "uid_number": 1001,
                "primary_group": 600,
                "other_groups": [700],
                "pass_sha256": sha256_hex("hunter2"),
                "given_name": "Bob",
                "sn": "Builder",
                "mail": "bob@example.com",
                "login_shell": "/bin/zsh",
                "home_directory": "/srv/bob",
                "ssh_keys": ["ssh-ed25519 AAAAbob bob@laptop", "ssh-rsa AAAAbob bob@desktop"],
                "disabled": True,
            },
            {
                "name": "carol",
                "uid_number": 1002,
                "primary_group": 500,
                "other_groups": [800],
                "pass_sha256": sha256_hex("s3cret"),
                "otp_secret": OTP_SECRET,
            },
            {
                "name": "dave",
                "uid_number": 1003,
                "primary_group": 801,
                "pass_sha256": sha256_hex("x"),
            },
        ],
        "groups": [
            {"name": "staff", "gid_number": 500},
            {"name": "admins", "gid_number": 600, "include_groups": [500]},
            {"name": "vpn", "gid_number": 700, "include_groups": [600, 700]},
            {"name": "loop_a", "gid_number": 800, "include_groups": [801]},
            {"name": "loop_b", "gid_number": 801, "include_groups": [800]},
            {"name": "empty", "gid_number": 900},
        ],
    }


@pytest.fixture
def directory_config() -> DirectoryConfig:
    return parse_directory(directory_payload())


@pytest.fixture
def backend(directory_config: DirectoryConfig) -> ConfigBackend:
    return ConfigBackend(directory_config)
