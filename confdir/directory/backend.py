"""Config-file backed directory: bind, search and close handlers."""

from __future__ import annotations

import threading
from typing import Any

from confdir.config.schema import DirectoryConfig, GroupRecord, UserRecord
from confdir.core.logging import EventLogger, get_logger
from confdir.directory.credentials import validate_credentials
from confdir.directory.entries import build_group_entry, build_user_entry
from confdir.directory.errors import (
    AuthorizationError,
    DirectoryError,
    LookupNotFound,
    ResultCode,
    UnsupportedQuery,
)
from confdir.directory.groups import GroupResolver
from confdir.directory.identity import dn_in_base, parse_bind_dn
from confdir.directory.protocol import ConnectionInfo, Entry, SearchRequest, SearchResult


GROUP_OBJECT_CLASS = "posixgroup"
ACCOUNT_OBJECT_CLASSES = {"posixaccount", ""}


class DirectorySnapshot:
    """Immutable config plus the lookup indices built from it."""

    def __init__(self, config: DirectoryConfig) -> None:
        self.config = config
        self.resolver = GroupResolver(config)
        self._users_by_name: dict[str, UserRecord] = {}
        for user in config.users:
            self._users_by_name.setdefault(user.name, user)
        self._groups_by_name: dict[str, GroupRecord] = {}
        for group in config.groups:
            self._groups_by_name.setdefault(group.name, group)

    @property
    def base_dn(self) -> str:
        return self.config.base_dn

    def find_user(self, name: str) -> UserRecord:
        user = self._users_by_name.get(name)
        if user is None:
            raise LookupNotFound(f"user {name} not found")
        return user

    def find_group(self, name: str) -> GroupRecord:
        group = self._groups_by_name.get(name)
        if group is None:
            raise LookupNotFound(f"group {name} not found")
        return group

    def group_entries(self) -> list[Entry]:
        return [build_group_entry(group, self.resolver, self.base_dn) for group in self.config.groups]

    def user_entries(self) -> list[Entry]:
        return [build_user_entry(user, self.resolver) for user in self.config.users]


class ConfigBackend:
    """Backend handed to the LDAP protocol layer.

    Every request reads the current snapshot reference once, so ``reload``
    never disturbs a request already in flight.
    """

    def __init__(self, config: DirectoryConfig, *, event_logger: EventLogger | None = None) -> None:
        self._snapshot = DirectorySnapshot(config)
        self._swap_lock = threading.Lock()
        self.event_logger = event_logger or EventLogger(logger=get_logger("confdir.directory.backend"))

    @property
    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    def reload(self, config: DirectoryConfig) -> DirectorySnapshot:
        snapshot = DirectorySnapshot(config)
        with self._swap_lock:
            previous = self._snapshot
            self._snapshot = snapshot
        self.event_logger.emit(
            message="directory config reloaded",
            action="reload",
            category="configuration",
            event_type="change",
            outcome="success",
            payload={
                "base_dn": config.base_dn,
                "users": len(config.users),
                "groups": len(config.groups),
                "previous_users": len(previous.config.users),
                "previous_groups": len(previous.config.groups),
            },
        )
        return snapshot

    def bind(self, bind_dn: str, password: str, conn: Any = None) -> ResultCode:
        snapshot = self._snapshot
        source = ConnectionInfo.from_address(conn)
        user_name: str | None = None
        try:
            identity = parse_bind_dn(bind_dn, snapshot.base_dn)
            user_name = identity.username
            user = snapshot.find_user(identity.username)
            group = snapshot.find_group(identity.group_name)
            validate_credentials(user, group, password)
        except DirectoryError as exc:
            self._emit_bind(source, bind_dn, user_name=user_name, outcome="failure", reason=exc.reason, detail=str(exc))
            return ResultCode.INVALID_CREDENTIALS
        self._emit_bind(source, bind_dn, user_name=user_name, outcome="success")
        return ResultCode.SUCCESS

    def search(self, bind_dn: str, request: SearchRequest, conn: Any = None) -> SearchResult:
        snapshot = self._snapshot
        source = ConnectionInfo.from_address(conn)
        try:
            self._authorize_search(snapshot, bind_dn, request)
            object_class = request.object_class.lower()
            if object_class == GROUP_OBJECT_CLASS:
                entries = snapshot.group_entries()
            elif object_class in ACCOUNT_OBJECT_CLASSES:
                entries = snapshot.user_entries()
            else:
                raise UnsupportedQuery(f"unhandled filter type: {request.object_class} [{request.filter}]")
        except DirectoryError as exc:
            self.event_logger.emit(
                message=f"search failed: {exc}",
                action="search",
                category="iam",
                event_type="access",
                outcome="failure",
                reason=exc.reason,
                user_name=bind_dn or None,
                source_ip=source.remote_ip or None,
                source_port=source.remote_port or None,
                payload={"base_dn": request.base_dn, "filter": request.filter},
                level="WARNING",
            )
            return SearchResult(result_code=exc.result_code, diagnostic_message=str(exc))

        self.event_logger.emit(
            message="search ok",
            action="search",
            category="iam",
            event_type="access",
            outcome="success",
            user_name=bind_dn,
            source_ip=source.remote_ip or None,
            source_port=source.remote_port or None,
            payload={
                "base_dn": request.base_dn,
                "filter": request.filter,
                "object_class": request.object_class,
                "entries": len(entries),
            },
        )
        return SearchResult(entries=entries)

    def close(self, bind_dn: str, conn: Any = None) -> None:
        source = ConnectionInfo.from_address(conn)
        self.event_logger.emit(
            message=f"connection closed for {bind_dn or 'anonymous'}",
            action="close",
            category="session",
            event_type="end",
            outcome="success",
            user_name=bind_dn or None,
            source_ip=source.remote_ip or None,
            source_port=source.remote_port or None,
            level="DEBUG",
        )

    def status(self) -> dict[str, Any]:
        snapshot = self._snapshot
        return {
            "base_dn": snapshot.base_dn,
            "users": len(snapshot.config.users),
            "groups": len(snapshot.config.groups),
        }

    @staticmethod
    def _authorize_search(snapshot: DirectorySnapshot, bind_dn: str, request: SearchRequest) -> None:
        if not bind_dn:
            raise AuthorizationError("anonymous bind DN not allowed")
        if not dn_in_base(bind_dn, snapshot.base_dn):
            raise AuthorizationError(f"bind DN {bind_dn} not in base DN {snapshot.base_dn}")
        if not request.base_dn.lower().endswith(snapshot.base_dn.lower()):
            raise AuthorizationError(f"search base DN {request.base_dn} is not in base DN {snapshot.base_dn}")

    def _emit_bind(
        self,
        source: ConnectionInfo,
        bind_dn: str,
        *,
        user_name: str | None,
        outcome: str,
        reason: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.event_logger.emit(
            message=f"bind {outcome} as {bind_dn}",
            action="bind",
            category="authentication",
            event_type="start" if outcome == "success" else "denied",
            outcome=outcome,
            reason=reason,
            user_name=user_name,
            source_ip=source.remote_ip or None,
            source_port=source.remote_port or None,
            payload={"bind_dn": bind_dn, "detail": detail} if detail else {"bind_dn": bind_dn},
            level="INFO" if outcome == "success" else "WARNING",
        )
