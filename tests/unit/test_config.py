from pathlib import Path

import pytest

from conftest import directory_payload, sha256_hex
from confdir.config.loader import DEFAULT_CONFIG_PATH, initialize_config, load_config, load_directory
from confdir.config.schema import parse_config, parse_directory


def test_defaults_file_loads() -> None:
    config = load_config(DEFAULT_CONFIG_PATH)
    assert config.directory.base_dn == "dc=example,dc=com"
    assert config.directory.users
    assert config.directory.groups
    assert config.logging.fmt == "ecs_json"
    assert config.api.enabled is False
    assert config.api.port == 5555


def test_parse_directory_records(directory_config) -> None:
    bob = directory_config.users[1]
    assert bob.name == "bob"
    assert bob.unix_id == 1001
    assert bob.primary_group == 600
    assert bob.other_groups == (700,)
    assert bob.group_ids == (700, 600)
    assert bob.pass_sha256 == sha256_hex("hunter2")
    assert bob.disabled is True
    assert bob.ssh_keys == ("ssh-ed25519 AAAAbob bob@laptop", "ssh-rsa AAAAbob bob@desktop")

    alice = directory_config.users[0]
    assert alice.login_shell is None
    assert alice.home_directory is None
    assert alice.otp_secret == ""

    vpn = directory_config.groups[2]
    assert vpn.include_groups == (600, 700)


def test_pass_sha256_is_normalized_to_lowercase() -> None:
    payload = directory_payload()
    payload["users"][0]["pass_sha256"] = sha256_hex("secret").upper()
    config = parse_directory(payload)
    assert config.users[0].pass_sha256 == sha256_hex("secret")


def test_duplicate_ids_in_lists_are_collapsed() -> None:
    payload = directory_payload()
    payload["users"][0]["other_groups"] = [700, 700, 600]
    config = parse_directory(payload)
    assert config.users[0].other_groups == (700, 600)


@pytest.mark.parametrize(
    ("mutate", "message"),
    [
        (lambda data: data["backend"].update(base_dn=""), "base_dn"),
        (lambda data: data.update(backend=[]), "'backend' must be an object"),
        (lambda data: data.update(users={}), "'users' must be a list"),
        (lambda data: data.update(groups="staff"), "'groups' must be a list"),
        (lambda data: data["users"].append(dict(data["users"][0])), "duplicate user name"),
        (lambda data: data["users"].append({"name": "zed", "uid_number": 1000, "primary_group": 1}), "duplicate user uid_number"),
        (lambda data: data["groups"].append({"name": "staff", "gid_number": 999}), "duplicate group name"),
        (lambda data: data["groups"].append({"name": "other", "gid_number": 500}), "duplicate group gid_number"),
        (lambda data: data["users"][0].update(uid_number="abc"), "uid_number' must be an integer"),
        (lambda data: data["users"][0].update(uid_number=-1), "greater than or equal to zero"),
        (lambda data: data["users"][0].update(primary_group=True), "primary_group' must be an integer"),
        (lambda data: data["users"][0].update(pass_sha256="abc"), "64 character hex digest"),
        (lambda data: data["users"][0].update(otp_secret="not base32!"), "base32 secret"),
        (lambda data: data["users"][0].update(other_groups=5), "other_groups' must be a list"),
        (lambda data: data["users"][0].update(disabled="maybe"), "disabled' must be a boolean"),
        (lambda data: data["users"][0].update(name=" "), "requires non-empty 'name'"),
        (lambda data: data["groups"].append("admins"), "must be an object"),
    ],
)
def test_parse_directory_rejects_invalid_input(mutate, message: str) -> None:
    payload = directory_payload()
    mutate(payload)
    with pytest.raises(ValueError) as excinfo:
        parse_directory(payload)
    assert message in str(excinfo.value)


def test_parse_config_defaults() -> None:
    config = parse_config({"backend": {"base_dn": "dc=example,dc=com"}})
    assert config.environment == "development"
    assert config.directory.users == ()
    assert config.logging.level == "INFO"
    assert config.logging.sink == "stdout"
    assert config.logging.service_name == "confdir"
    assert config.api.listen_host == "127.0.0.1"
    assert config.api.auth_enabled is False
    assert config.api.auth_tokens == []


def test_parse_config_api_section() -> None:
    config = parse_config(
        {
            "backend": {"base_dn": "dc=example,dc=com"},
            "api": {
                "enabled": "yes",
                "listen_host": "0.0.0.0",
                "port": 8080,
                "auth_enabled": True,
                "auth_tokens": ["token-0123456789abcdef", "token-0123456789abcdef", ""],
            },
        }
    )
    assert config.api.enabled is True
    assert config.api.port == 8080
    assert config.api.auth_tokens == ["token-0123456789abcdef"]


@pytest.mark.parametrize(
    ("section", "message"),
    [
        ({"logging": {"level": "verbose"}}, "invalid log level"),
        ({"logging": {"format": "xml"}}, "invalid log format"),
        ({"logging": {"format": "json"}}, "invalid log format"),
        ({"logging": {"sink": "syslog"}}, "invalid log sink"),
        ({"logging": []}, "'logging' must be an object"),
        ({"api": {"port": 0}}, "between 1 and 65535"),
        ({"api": {"auth_enabled": True}}, "requires at least one entry"),
        ({"api": {"auth_tokens": ["short"]}}, "at least 16 characters"),
        ({"api": {"auth_tokens": ["has a space in it ok"]}}, "must not include spaces"),
    ],
)
def test_parse_config_rejects_invalid_sections(section: dict, message: str) -> None:
    data = {"backend": {"base_dn": "dc=example,dc=com"}, **section}
    with pytest.raises(ValueError) as excinfo:
        parse_config(data)
    assert message in str(excinfo.value)


def test_load_config_interpolates_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONFDIR_BASE_DN", "dc=corp,dc=test")
    config_path = tmp_path / "confdir.yml"
    config_path.write_text(
        "\n".join(
            [
                "backend:",
                "  base_dn: ${CONFDIR_BASE_DN}",
                "logging:",
                "  level: ${CONFDIR_LOG_LEVEL:-debug}",
            ]
        ),
        encoding="utf-8",
    )
    config = load_config(config_path)
    assert config.directory.base_dn == "dc=corp,dc=test"
    assert config.logging.level == "DEBUG"


def test_load_config_requires_referenced_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONFDIR_MISSING_VAR", raising=False)
    config_path = tmp_path / "confdir.yml"
    config_path.write_text("backend:\n  base_dn: ${CONFDIR_MISSING_VAR}\n", encoding="utf-8")
    with pytest.raises(ValueError, match="CONFDIR_MISSING_VAR"):
        load_config(config_path)


def test_load_config_rejects_missing_and_non_mapping_files(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yml")
    config_path = tmp_path / "list.yml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_config(config_path)


def test_initialize_config_refuses_to_overwrite(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "confdir.yml"
    assert initialize_config(config_path) == config_path
    assert config_path.read_text(encoding="utf-8") == DEFAULT_CONFIG_PATH.read_text(encoding="utf-8")
    with pytest.raises(FileExistsError):
        initialize_config(config_path)
    config_path.write_text("changed", encoding="utf-8")
    initialize_config(config_path, force=True)
    assert config_path.read_text(encoding="utf-8") != "changed"


def test_load_directory_ignores_other_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "confdir.yml"
    config_path.write_text(
        "backend:\n  base_dn: dc=corp,dc=test\nlogging:\n  level: nonsense\ngroups:\n  - name: ops\n    gid_number: 7\n",
        encoding="utf-8",
    )
    directory = load_directory(config_path)
    assert directory.base_dn == "dc=corp,dc=test"
    assert [group.name for group in directory.groups] == ["ops"]
    with pytest.raises(ValueError, match="invalid log level"):
        load_config(config_path)
