"""Castlist rendering: tribe sections, member rows and embed pagination."""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Sequence

import discord

from .constants import (
    BLANK,
    CASTLIST_COLOR,
    CASTLIST_TITLE,
    EMBED_CHARACTER_LIMIT,
    EMBED_FIELD_LIMIT,
    NO_AGE_TEXT,
    NO_PRONOUNS_TEXT,
    NO_TIMEZONE_TEXT,
    UNKNOWN_GUILD_NAME,
)
from .roles import RoleConfig, TribeConfig, ordered_role_names
from .roster import GuildSnapshot, MemberSnapshot, aggregate_roster, fetch_guild_snapshot
from .storage import DataStore
from .utils import capitalize, emoji_token

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CastlistField:
    name: str
    value: str
    inline: bool = False

    @property
    def is_spacer(self) -> bool:
        return self.name == BLANK and self.value == BLANK

    @property
    def is_header(self) -> bool:
        return not self.inline and not self.is_spacer

    def __len__(self) -> int:
        return len(self.name) + len(self.value)


SPACER = CastlistField(BLANK, BLANK, inline=False)


@dataclass(slots=True)
class CastlistDocument:
    """Renderer output before it is turned into Discord embeds."""

    title: str
    author_name: str
    author_icon_url: str | None = None
    fields: list[CastlistField] = field(default_factory=list)

    def pages(
        self,
        *,
        max_fields: int = EMBED_FIELD_LIMIT,
        max_chars: int = EMBED_CHARACTER_LIMIT,
    ) -> list[list[CastlistField]]:
        """Split the fields into pages that respect Discord's embed limits."""

        budget = max_chars - len(self.title) - len(self.author_name) - len("Page 99/99")
        pages: list[list[CastlistField]] = []
        current: list[CastlistField] = []
        used = 0
        for entry in self.fields:
            if current and (len(current) >= max_fields or used + len(entry) > budget):
                # A tribe header is carried over to sit above its first member.
                carried: list[CastlistField] = []
                if len(current) > 1 and current[-1].is_header:
                    carried.append(current.pop())
                    while current[-1].is_spacer:
                        current.pop()
                pages.append(current)
                current = carried
                used = sum(len(item) for item in carried)
            if not current and entry.is_spacer:
                continue
            current.append(entry)
            used += len(entry)
        if current or not pages:
            pages.append(current)
        return pages

    def to_embeds(self) -> list[discord.Embed]:
        pages = self.pages()
        embeds: list[discord.Embed] = []
        for index, page in enumerate(pages, start=1):
            embed = discord.Embed(title=self.title, color=CASTLIST_COLOR)
            embed.set_author(name=self.author_name, icon_url=self.author_icon_url)
            for entry in page:
                embed.add_field(name=entry.name, value=entry.value, inline=entry.inline)
            if len(pages) > 1:
                embed.set_footer(text=f"Page {index}/{len(pages)}")
            embeds.append(embed)
        return embeds


def format_local_time(now: datetime, offset_hours: int) -> str:
    moment = now.astimezone(timezone.utc) + timedelta(hours=offset_hours)
    hours = moment.hour % 12 or 12
    meridiem = "PM" if moment.hour >= 12 else "AM"
    return f"`🕐 {hours}:{moment.minute:02d} {meridiem} 🕐`"


def tribe_header(name: str, emoji: str | None) -> CastlistField:
    label = f"{emoji} {name} {emoji}" if emoji else name
    return CastlistField(label, BLANK, inline=False)


def member_field(
    member: MemberSnapshot,
    roles: RoleConfig,
    role_names: Mapping[str, str],
    record: Mapping[str, Any] | None,
    now: datetime,
) -> CastlistField:
    pronouns = ", ".join(
        ordered_role_names(roles.pronoun_role_ids, member.role_ids, role_names)
    ) or NO_PRONOUNS_TEXT
    timezones = ", ".join(
        ordered_role_names(roles.timezone_role_ids, member.role_ids, role_names)
    ) or NO_TIMEZONE_TEXT
    local_time = format_local_time(now, roles.offset_for(member.role_ids))

    record = record or {}
    age = record.get("age")
    age_label = str(age) if age not in (None, "") else NO_AGE_TEXT
    name = capitalize(member.display_name)
    token = emoji_token(record)
    if token:
        name = f"{token} {name}"

    value = f"> * {age_label}\n> * {pronouns}\n> * {timezones}\n> * {local_time}"
    return CastlistField(name, value, inline=True)


def _collation_key(name: str) -> str:
    """Case- and accent-insensitive key, so "Émile" sorts with "eve"."""

    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(char for char in decomposed if not unicodedata.combining(char)).casefold()


def sort_members(members: Sequence[MemberSnapshot]) -> list[MemberSnapshot]:
    return sorted(members, key=lambda member: (_collation_key(member.display_name), member.display_name))


def render_castlist(
    snapshot: GuildSnapshot,
    tribes: TribeConfig,
    roles: RoleConfig,
    players: Mapping[str, Mapping[str, Any]],
    *,
    now: datetime | None = None,
) -> CastlistDocument:
    """Build the castlist for ``snapshot`` grouped by tribe slot order."""

    moment = now or datetime.now(timezone.utc)
    document = CastlistDocument(
        title=CASTLIST_TITLE,
        author_name=snapshot.name or UNKNOWN_GUILD_NAME,
        author_icon_url=snapshot.icon_url,
    )
    sections = 0
    for slot in tribes.active_slots():
        assert slot.role_id is not None
        role_name = snapshot.roles.get(slot.role_id)
        if role_name is None:
            log.warning(
                "Tribe %d role %s no longer exists in guild %s; skipping",
                slot.slot,
                slot.role_id,
                snapshot.id,
            )
            continue
        if sections:
            document.fields.append(SPACER)
        document.fields.append(tribe_header(role_name, slot.emoji))
        sections += 1

        for member in sort_members(snapshot.members_with_role(slot.role_id)):
            try:
                row = member_field(member, roles, snapshot.roles, players.get(member.id), moment)
            except (KeyError, TypeError, ValueError, AttributeError):
                log.exception(
                    "Could not render castlist row for %s (%s)", member.display_name, member.id
                )
                continue
            document.fields.append(row)
    return document


async def aggregate_and_render(
    guild: discord.Guild,
    store: DataStore,
    base_roles: RoleConfig,
    *,
    now: datetime | None = None,
) -> CastlistDocument:
    """Fetch the guild, refresh the player store and render the castlist."""

    moment = now or datetime.now(timezone.utc)
    tribes = await store.tribes.load_tribes()
    roles = base_roles.with_pronouns(await store.pronouns.load())
    snapshot = await fetch_guild_snapshot(guild)
    saved = await aggregate_roster(snapshot, tribes, roles, store.players, now=moment)
    return render_castlist(snapshot, tribes, roles, saved["players"], now=moment)


__all__ = [
    "CastlistDocument",
    "CastlistField",
    "aggregate_and_render",
    "format_local_time",
    "member_field",
    "render_castlist",
    "sort_members",
    "tribe_header",
]
