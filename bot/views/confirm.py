from __future__ import annotations

import discord

from utils.dialogs import Decision
from utils.embeds import staff_embed


class ConfirmView(discord.ui.View):
    def __init__(self, owner_id: int, timeout: float) -> None:
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.decision = Decision.TIMED_OUT

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    async def _finish(self, interaction: discord.Interaction, decision: Decision) -> None:
        self.decision = decision
        for child in self.children:
            if isinstance(child, discord.ui.Button):
                child.disabled = True
        await interaction.response.edit_message(view=self)
        self.stop()

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.danger, custom_id="confirm:yes")
    async def confirm_button(self, interaction: discord.Interaction, _: discord.ui.Button) -> None:
        await self._finish(interaction, Decision.CONFIRMED)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary, custom_id="confirm:no")
    async def cancel_button(self, interaction: discord.Interaction, _: discord.ui.Button) -> None:
        await self._finish(interaction, Decision.CANCELLED)


class InteractionConfirmer:
    """Asks the interaction's user through an ephemeral Confirm/Cancel prompt."""

    def __init__(self, interaction: discord.Interaction, timeout: float = 60) -> None:
        self.interaction = interaction
        self.timeout = timeout

    async def confirm(self, prompt: str) -> Decision:
        view = ConfirmView(self.interaction.user.id, timeout=self.timeout)
        embed = staff_embed("Please confirm", prompt)
        if self.interaction.response.is_done():
            await self.interaction.followup.send(embed=embed, view=view, ephemeral=True)
        else:
            await self.interaction.response.send_message(embed=embed, view=view, ephemeral=True)
        await view.wait()
        return view.decision
