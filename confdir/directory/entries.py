"""Projection of config records into posixAccount / posixGroup entries."""

from __future__ import annotations

from confdir.config.schema import GroupRecord, UserRecord
from confdir.directory.groups import GroupResolver
from confdir.directory.identity import group_dn
from confdir.directory.protocol import Entry, EntryAttribute


DEFAULT_LOGIN_SHELL = "/bin/bash"
HOME_DIRECTORY_ROOT = "/home"


def _attr(name: str, *values: str) -> EntryAttribute:
    return EntryAttribute(name=name, values=tuple(values))


def _description(name: str) -> str:
    return f"{name} via LDAP"


def build_group_entry(group: GroupRecord, resolver: GroupResolver, base_dn: str) -> Entry:
    attributes = [
        _attr("cn", group.name),
        _attr("description", _description(group.name)),
        _attr("gidNumber", str(group.unix_id)),
        _attr("objectClass", "posixGroup"),
        _attr("uniqueMember", *resolver.member_dns(group.unix_id)),
        _attr("memberUid", *resolver.member_names(group.unix_id)),
    ]
    return Entry(dn=group_dn(group.name, base_dn), attributes=tuple(attributes))


def build_user_entry(user: UserRecord, resolver: GroupResolver) -> Entry:
    attributes = [_attr("cn", user.name), _attr("uid", user.name)]
    if user.given_name:
        attributes.append(_attr("givenName", user.given_name))
    if user.sn:
        attributes.append(_attr("sn", user.sn))
    attributes.append(_attr("ou", resolver.group_name(user.primary_group)))
    attributes.append(_attr("uidNumber", str(user.unix_id)))
    attributes.append(_attr("accountStatus", "inactive" if user.disabled else "active"))
    if user.mail:
        attributes.append(_attr("mail", user.mail))
    attributes.append(_attr("objectClass", "posixAccount"))
    attributes.append(_attr("loginShell", user.login_shell or DEFAULT_LOGIN_SHELL))
    attributes.append(_attr("homeDirectory", user.home_directory or f"{HOME_DIRECTORY_ROOT}/{user.name}"))
    attributes.append(_attr("description", _description(user.name)))
    attributes.append(_attr("gecos", _description(user.name)))
    attributes.append(_attr("gidNumber", str(user.primary_group)))
    attributes.append(_attr("memberOf", *resolver.group_dns(user.group_ids)))
    if user.ssh_keys:
        attributes.append(_attr("sshPublicKey", *user.ssh_keys))
    return Entry(dn=resolver.user_dn(user), attributes=tuple(attributes))
