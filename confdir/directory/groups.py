"""Group membership resolution over nested (included) groups."""

from __future__ import annotations

from collections.abc import Iterable

from confdir.config.schema import DirectoryConfig, GroupRecord, UserRecord
from confdir.directory.identity import group_dn, user_dn


class GroupResolver:
    """Membership queries over one immutable config snapshot.

    Indices are built once; every query walks them with a visited set so
    inclusion cycles terminate. On duplicate ids the first record wins for
    name lookups.
    """

    def __init__(self, config: DirectoryConfig) -> None:
        self._base_dn = config.base_dn
        self._groups_by_id: dict[int, GroupRecord] = {}
        self._included_ids: dict[int, list[int]] = {}
        self._including_ids: dict[int, list[int]] = {}
        self._direct_members: dict[int, list[UserRecord]] = {}

        for group in config.groups:
            self._groups_by_id.setdefault(group.unix_id, group)
            for included_id in group.include_groups:
                if included_id == group.unix_id:
                    continue
                self._included_ids.setdefault(group.unix_id, []).append(included_id)
                self._including_ids.setdefault(included_id, []).append(group.unix_id)

        for user in config.users:
            for gid in dict.fromkeys(user.group_ids):
                self._direct_members.setdefault(gid, []).append(user)

    def group_name(self, gid: int) -> str:
        group = self._groups_by_id.get(gid)
        return group.name if group is not None else ""

    def user_dn(self, user: UserRecord) -> str:
        return user_dn(user.name, self.group_name(user.primary_group), self._base_dn)

    def member_names(self, gid: int) -> list[str]:
        return sorted({user.name for user in self._members(gid)})

    def member_dns(self, gid: int) -> list[str]:
        return sorted({self.user_dn(user) for user in self._members(gid)})

    def group_dns(self, gids: Iterable[int]) -> list[str]:
        """DNs of ``gids`` plus every group that includes one of them, transitively."""
        visited = self._walk(gids, self._including_ids)
        return sorted(
            {group_dn(self._groups_by_id[gid].name, self._base_dn) for gid in visited if gid in self._groups_by_id}
        )

    def _members(self, gid: int) -> list[UserRecord]:
        members: list[UserRecord] = []
        for member_gid in self._walk((gid,), self._included_ids):
            members.extend(self._direct_members.get(member_gid, ()))
        return members

    @staticmethod
    def _walk(start: Iterable[int], edges: dict[int, list[int]]) -> set[int]:
        """Every id reachable from ``start`` along ``edges``, ``start`` included."""
        visited: set[int] = set()
        pending = list(start)
        while pending:
            gid = pending.pop()
            if gid in visited:
                continue
            visited.add(gid)
            pending.extend(edges.get(gid, ()))
        return visited
