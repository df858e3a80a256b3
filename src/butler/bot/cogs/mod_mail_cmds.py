"""
Mod-mail cog: gateway listeners and slash commands for the DM relay.

Listeners translate py-cord events into relay engine calls for both the
staff threads and the users' DM channels. Messages the relay posted itself
(authored by the bot user or by a webhook) are flagged as relayed so they are
never mirrored back.

Commands
- /modmail open user:<user>  Start a conversation with a user in a new thread.
- /modmail close             Close the conversation of the current thread.
- /modmail list              List open conversations.
"""

import discord
from discord import Option
from discord.ext import commands

from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from butler.mod_mail.errors import AlreadyOpenError, ModMailError, NotFoundError, TransportError
from butler.mod_mail.lifecycle import LifecycleManager
from butler.mod_mail.relay_engine import RelayEngine
from butler.ui.relay_embed import build_relay_content
from butler.util.logger import get_logger

logger = get_logger("mod_mail_cog")


class ModMailCog(commands.Cog):
    """Relay listeners plus the /modmail command group."""

    modmail = discord.SlashCommandGroup("modmail", "Talk to users through the bot's DMs.")

    def __init__(self, discord_bot_instance, engine: RelayEngine, lifecycle: LifecycleManager):
        self.bot = discord_bot_instance
        self.engine = engine
        self.lifecycle = lifecycle
        logger.info("Mod-mail cog loaded")

    def is_relayed(self, message: discord.Message) -> bool:
        """Return True if ``message`` was posted by the relay itself."""
        if message.webhook_id is not None:
            return True
        bot_user = self.bot.user
        return bot_user is not None and message.author.id == bot_user.id

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        if self.is_relayed(message) or message.is_system():
            return
        await self.engine.handle_message_create(
            ChannelID.from_channel(message.channel),
            MessageID.from_message(message),
            build_relay_content(message),
        )

    @commands.Cog.listener(name="on_message_edit")
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        if self.is_relayed(after):
            return
        # Link previews arrive as edits that change nothing the user wrote
        if before.content == after.content and before.attachments == after.attachments:
            return
        await self.engine.handle_message_update(
            MessageID.from_message(after),
            build_relay_content(after),
        )

    @commands.Cog.listener(name="on_raw_message_delete")
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent):
        await self.engine.handle_message_delete(MessageID(payload.message_id))

    @commands.Cog.listener(name="on_raw_bulk_message_delete")
    async def on_raw_bulk_message_delete(self, payload: discord.RawBulkMessageDeleteEvent):
        for message_id in payload.message_ids:
            await self.engine.handle_message_delete(MessageID(message_id))

    @commands.Cog.listener(name="on_typing")
    async def on_typing(self, channel, user, when):
        bot_user = self.bot.user
        if bot_user is not None and user.id == bot_user.id:
            return
        await self.engine.handle_typing(ChannelID.from_channel(channel))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @modmail.command(name="open", description="Open a mod-mail conversation with a user.")
    async def open_conversation(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to contact.", required=True),  # type: ignore
    ):
        await ctx.defer(ephemeral=True)
        if getattr(user, "bot", False):
            await ctx.respond("Bots cannot receive mod-mail.", ephemeral=True)
            return
        try:
            link = await self.lifecycle.open(UserID.from_user(user))
        except AlreadyOpenError:
            await ctx.respond(f"A conversation with {user.mention} is already open.", ephemeral=True)
            return
        except TransportError as exc:
            logger.error("Failed to open conversation with %s: %s", user.id, exc)
            await ctx.respond(f"Could not open a conversation with {user.mention}: {exc.detail}", ephemeral=True)
            return
        await ctx.respond(f"Opened <#{link.staff_channel_id}> for {user.mention}.", ephemeral=True)

    @modmail.command(name="close", description="Close the mod-mail conversation in this thread.")
    async def close_conversation(self, ctx: discord.ApplicationContext):
        await ctx.defer(ephemeral=True)
        try:
            link = await self.lifecycle.close_channel(ChannelID(ctx.channel_id))
        except NotFoundError:
            await ctx.respond("This channel is not a mod-mail conversation.", ephemeral=True)
            return
        except ModMailError as exc:
            logger.error("Failed to close conversation in %s: %s", ctx.channel_id, exc)
            await ctx.respond("A :bug: showed up while closing this conversation.", ephemeral=True)
            return
        logger.info("Conversation with user %s closed by %s", link.user_id, ctx.user)
        await ctx.respond("Conversation closed.", ephemeral=True)

    @modmail.command(name="list", description="List open mod-mail conversations.")
    async def list_conversations(self, ctx: discord.ApplicationContext):
        links = await self.lifecycle.store.snapshot()
        if not links:
            await ctx.respond("No conversations are open.", ephemeral=True)
            return
        lines = [
            f"• <#{link.staff_channel_id}> ↔ " + (f"<@{link.user_id}>" if link.user_id is not None else "unknown user")
            for link in links
        ]
        await ctx.respond("Open conversations:\n" + "\n".join(lines), ephemeral=True)


def setup(discord_bot_instance, engine: RelayEngine, lifecycle: LifecycleManager):
    """Register the ModMailCog with the bot."""
    discord_bot_instance.add_cog(ModMailCog(discord_bot_instance, engine, lifecycle))
