"""Discord UI components: castlist paging and the challenge flow."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Sequence

import discord

from .games import shuffled_moves

MoveCallback = Callable[[discord.Interaction, str], Awaitable[None]]
SimpleCallback = Callable[[discord.Interaction], Awaitable[None]]


class CastlistPageView(discord.ui.View):
    """Previous/next buttons over a list of castlist embeds."""

    def __init__(self, pages: Sequence[discord.Embed], *, timeout: float = 300.0) -> None:
        super().__init__(timeout=timeout)
        self.pages = list(pages)
        self.index = 0
        self.message: Optional[discord.Message] = None
        self._refresh_buttons()

    @property
    def current(self) -> discord.Embed:
        return self.pages[self.index]

    def _refresh_buttons(self) -> None:
        self.previous_button.disabled = self.index == 0
        self.next_button.disabled = self.index >= len(self.pages) - 1

    async def _show(self, interaction: discord.Interaction, index: int) -> None:
        self.index = max(0, min(index, len(self.pages) - 1))
        self._refresh_buttons()
        await interaction.response.edit_message(embed=self.current, view=self)

    async def on_timeout(self) -> None:
        for child in self.children:
            child.disabled = True
        if self.message:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass
        self.stop()

    @discord.ui.button(label="Previous", style=discord.ButtonStyle.secondary, emoji="◀️")
    async def previous_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:  # type: ignore[override]
        await self._show(interaction, self.index - 1)

    @discord.ui.button(label="Next", style=discord.ButtonStyle.secondary, emoji="▶️")
    async def next_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:  # type: ignore[override]
        await self._show(interaction, self.index + 1)


class CallbackButton(discord.ui.Button):
    """Button that forwards interactions to a coroutine callback."""

    def __init__(
        self,
        *,
        label: str | None,
        callback: SimpleCallback,
        style: discord.ButtonStyle = discord.ButtonStyle.primary,
        emoji: str | None = None,
    ) -> None:
        super().__init__(label=label, style=style, emoji=emoji)
        self._callback = callback

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        await self._callback(interaction)


class MoveSelect(discord.ui.Select):
    def __init__(self, callback: MoveCallback) -> None:
        options = [
            discord.SelectOption(label=move.name.title(), value=move.name, description=move.description)
            for move in shuffled_moves()
        ]
        super().__init__(placeholder="Choose your object", options=options)
        self._callback = callback

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        if not self.values:
            await interaction.response.send_message("Select an object first.", ephemeral=True)
            return
        await self._callback(interaction, self.values[0])


class ChallengeAcceptView(discord.ui.View):
    """Public message with an Accept button; anyone but the challenger may answer."""

    def __init__(self, challenger_id: int, *, on_accept: SimpleCallback, timeout: float) -> None:
        super().__init__(timeout=timeout)
        self.challenger_id = challenger_id
        self.add_item(CallbackButton(label="Accept", callback=on_accept))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:  # type: ignore[override]
        if interaction.user.id != self.challenger_id:
            return True
        await interaction.response.send_message(
            "You cannot accept your own challenge.", ephemeral=True
        )
        return False


class MoveSelectView(discord.ui.View):
    def __init__(self, *, on_select: MoveCallback, timeout: float) -> None:
        super().__init__(timeout=timeout)
        self.add_item(MoveSelect(on_select))


__all__ = [
    "CallbackButton",
    "CastlistPageView",
    "ChallengeAcceptView",
    "MoveSelect",
    "MoveSelectView",
]
