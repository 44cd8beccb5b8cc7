"""Guild snapshots and the aggregation pass that refreshes tribe members' records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Any, Iterable

import discord

from .errors import platform_error_from_http
from .roles import RoleConfig, TribeConfig
from .storage import PlayerStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MemberSnapshot:
    id: str
    display_name: str
    role_ids: frozenset[str] = frozenset()


@dataclass(slots=True)
class GuildSnapshot:
    """Point-in-time view of a guild's roles and members."""

    id: str
    name: str
    icon_url: str | None = None
    roles: dict[str, str] = field(default_factory=dict)
    members: list[MemberSnapshot] = field(default_factory=list)

    def members_with_role(self, role_id: str) -> list[MemberSnapshot]:
        return [member for member in self.members if role_id in member.role_ids]


def snapshot_from_guild(
    guild: discord.Guild,
    roles: Iterable[discord.Role],
    members: Iterable[discord.Member],
) -> GuildSnapshot:
    return GuildSnapshot(
        id=str(guild.id),
        name=guild.name,
        icon_url=guild.icon.url if guild.icon else None,
        roles={str(role.id): role.name for role in roles},
        members=[
            MemberSnapshot(
                id=str(member.id),
                display_name=member.display_name,
                role_ids=frozenset(str(role.id) for role in member.roles),
            )
            for member in members
        ],
    )


async def fetch_guild_snapshot(guild: discord.Guild) -> GuildSnapshot:
    """Fetch fresh roles and members from Discord, bypassing the gateway cache."""

    try:
        roles = await guild.fetch_roles()
        members = [member async for member in guild.fetch_members(limit=None)]
    except discord.HTTPException as exc:
        raise platform_error_from_http(exc, "fetch the server's roles and members") from exc
    log.debug(
        "Fetched %d roles and %d members for guild %s", len(roles), len(members), guild.id
    )
    return snapshot_from_guild(guild, roles, members)


def _utc_string(moment: datetime) -> str:
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def timezone_fields(
    member: MemberSnapshot,
    roles: RoleConfig,
    role_names: dict[str, str],
    now: datetime,
) -> dict[str, Any] | None:
    role_id = roles.first_timezone_role(member.role_ids)
    if role_id is None:
        return None
    offset = roles.timezone_offsets[role_id]
    utc_now = now.replace(microsecond=0)
    return {
        "timezoneRoleId": role_id,
        "timezone": role_names.get(role_id),
        "offset": offset,
        "utcTime": _utc_string(utc_now),
        "memberTime": _utc_string(utc_now + timedelta(hours=offset)),
    }


async def aggregate_roster(
    snapshot: GuildSnapshot,
    tribes: TribeConfig,
    roles: RoleConfig,
    store: PlayerStore,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Refresh the records of every member holding an active tribe role.

    Records of members outside every tribe are left alone; nothing is pruned.
    The whole pass is one load/save cycle of ``store``.
    """

    moment = now or datetime.now(timezone.utc)
    tribe_role_ids = tribes.active_role_ids()
    refreshed = 0
    async with store.edit() as document:
        document["config"]["tribes"] = tribes.to_document()
        players = document["players"]
        for member in snapshot.members:
            if not tribe_role_ids & member.role_ids:
                continue
            try:
                record = dict(players.get(member.id, {}))
                record["member"] = member.display_name
                tz_fields = timezone_fields(member, roles, snapshot.roles, moment)
                if tz_fields is not None:
                    record.update(tz_fields)
            except (KeyError, TypeError, ValueError):
                log.exception("Skipping member %s (%s) during aggregation", member.display_name, member.id)
                continue
            players[member.id] = record
            refreshed += 1
    log.info("Refreshed %d tribe member records for guild %s", refreshed, snapshot.id)
    return document


__all__ = [
    "GuildSnapshot",
    "MemberSnapshot",
    "aggregate_roster",
    "fetch_guild_snapshot",
    "snapshot_from_guild",
    "timezone_fields",
]
