import pytest

from confdir.directory.errors import IdentityFormatError, ResultCode
from confdir.directory.identity import BindIdentity, dn_in_base, group_dn, parse_bind_dn, user_dn


BASE_DN = "dc=example,dc=com"


def test_parse_user_and_group() -> None:
    identity = parse_bind_dn("cn=alice,ou=staff,dc=example,dc=com", BASE_DN)
    assert identity == BindIdentity(username="alice", group_name="staff")


def test_parse_user_without_group() -> None:
    identity = parse_bind_dn("cn=alice,dc=example,dc=com", BASE_DN)
    assert identity.username == "alice"
    assert identity.group_name == ""


def test_parse_is_case_insensitive_and_lowercases_names() -> None:
    identity = parse_bind_dn("CN=Alice,OU=Staff,DC=Example,DC=COM", "dc=EXAMPLE,dc=com")
    assert identity == BindIdentity(username="alice", group_name="staff")


@pytest.mark.parametrize(
    "dn",
    [
        "cn=alice,ou=staff,dc=other,dc=com",
        "dc=example,dc=com",
        "cn=alice,ou=staff,dc=example,dc=comx",
        "",
    ],
)
def test_parse_rejects_dn_outside_base(dn: str) -> None:
    with pytest.raises(IdentityFormatError):
        parse_bind_dn(dn, BASE_DN)


def test_parse_rejects_too_many_components() -> None:
    with pytest.raises(IdentityFormatError) as excinfo:
        parse_bind_dn("cn=alice,ou=staff,ou=people,dc=example,dc=com", BASE_DN)
    assert "has 3" in str(excinfo.value)
    assert excinfo.value.result_code is ResultCode.INVALID_CREDENTIALS


def test_malformed_prefixes_degrade_to_literal_names() -> None:
    identity = parse_bind_dn("uid=alice,o=staff,dc=example,dc=com", BASE_DN)
    assert identity == BindIdentity(username="uid=alice", group_name="o=staff")


def test_dn_in_base_requires_a_component_below_base() -> None:
    assert dn_in_base("cn=alice,ou=staff,DC=example,dc=com", BASE_DN)
    assert not dn_in_base("dc=example,dc=com", BASE_DN)
    assert not dn_in_base("cn=alice,dc=elsewhere,dc=com", BASE_DN)


def test_dn_builders() -> None:
    assert user_dn("alice", "staff", BASE_DN) == "cn=alice,ou=staff,dc=example,dc=com"
    assert user_dn("ghost", "", BASE_DN) == "cn=ghost,ou=,dc=example,dc=com"
    assert group_dn("staff", BASE_DN) == "cn=staff,ou=groups,dc=example,dc=com"
