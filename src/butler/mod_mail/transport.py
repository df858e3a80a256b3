"""
Outbound platform operations used by the mod-mail relay.

:class:`Transport` is the contract the relay engine and lifecycle manager
depend on. :class:`DiscordTransport` implements it on top of a py-cord bot,
translating every Discord failure into :class:`TransportError` so callers
only ever handle one error type.
"""

from __future__ import annotations

import abc
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

import discord

from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from butler.datatypes.mod_mail_datatypes import MessageContent
from butler.mod_mail.errors import TransportError
from butler.util.logger import get_logger

logger = get_logger("mod_mail_transport")

# Longest auto-archive window Discord accepts for threads (minutes)
THREAD_AUTO_ARCHIVE_MINUTES = 10080


class Transport(abc.ABC):
    """Platform operations the relay needs. Each raises :class:`TransportError` on failure."""

    @abc.abstractmethod
    async def create_message(self, channel_id: ChannelID, content: MessageContent) -> MessageID:
        ...

    @abc.abstractmethod
    async def update_message(self, channel_id: ChannelID, message_id: MessageID, content: MessageContent) -> None:
        ...

    @abc.abstractmethod
    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> None:
        ...

    @abc.abstractmethod
    async def send_typing(self, channel_id: ChannelID) -> None:
        ...

    @abc.abstractmethod
    async def open_private_channel(self, user_id: UserID) -> ChannelID:
        """Return the DM channel with ``user_id``, creating it if needed."""

    @abc.abstractmethod
    async def create_staff_channel(self, name: str) -> ChannelID:
        """Create the staff-side thread for a new conversation."""

    @abc.abstractmethod
    async def archive_staff_channel(self, channel_id: ChannelID) -> None:
        """Archive and lock a staff-side thread after its conversation closed."""


@asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise Discord and network failures as :class:`TransportError`."""
    try:
        yield
    except TransportError:
        raise
    except (discord.DiscordException, OSError, asyncio.TimeoutError) as exc:
        raise TransportError(operation, exc) from exc


class DiscordTransport(Transport):
    """:class:`Transport` backed by a py-cord bot's REST client.

    Parameters
    ----------
    bot:
        Connected bot used for all REST calls.
    staff_parent_channel_id:
        Text channel under which conversation threads are created.
    """

    def __init__(self, bot: discord.Bot, staff_parent_channel_id: ChannelID | None) -> None:
        self.bot = bot
        self.staff_parent_channel_id = staff_parent_channel_id

    async def _resolve_channel(self, channel_id: ChannelID):
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id.to_int())
        return channel

    @staticmethod
    async def _build_files(content: MessageContent) -> List[discord.File]:
        return [await attachment.to_file() for attachment in content.attachments]

    async def create_message(self, channel_id: ChannelID, content: MessageContent) -> MessageID:
        async with translate_errors(f"create message in {channel_id}"):
            channel = await self._resolve_channel(channel_id)
            files = await self._build_files(content)
            message = await channel.send(
                content=content.text or None,
                embeds=content.embeds or None,
                files=files or None,
            )
            return MessageID.from_message(message)

    async def update_message(self, channel_id: ChannelID, message_id: MessageID, content: MessageContent) -> None:
        async with translate_errors(f"update message {message_id} in {channel_id}"):
            channel = await self._resolve_channel(channel_id)
            # attachments=[] drops the previous uploads; files carries the current set
            fields = {"content": content.text or None, "embeds": content.embeds, "attachments": []}
            files = await self._build_files(content)
            if files:
                fields["files"] = files
            await channel.get_partial_message(message_id.to_int()).edit(**fields)

    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> None:
        async with translate_errors(f"delete message {message_id} in {channel_id}"):
            channel = await self._resolve_channel(channel_id)
            await channel.get_partial_message(message_id.to_int()).delete()

    async def send_typing(self, channel_id: ChannelID) -> None:
        async with translate_errors(f"send typing in {channel_id}"):
            channel = await self._resolve_channel(channel_id)
            await channel.trigger_typing()

    async def open_private_channel(self, user_id: UserID) -> ChannelID:
        async with translate_errors(f"open DM with {user_id}"):
            user = self.bot.get_user(user_id.to_int())
            if user is None:
                user = await self.bot.fetch_user(user_id.to_int())
            dm_channel = user.dm_channel or await user.create_dm()
            return ChannelID.from_channel(dm_channel)

    async def create_staff_channel(self, name: str) -> ChannelID:
        if self.staff_parent_channel_id is None:
            raise TransportError("create staff thread", "mod_mail.channel_id is not configured")
        async with translate_errors(f"create staff thread {name!r}"):
            parent = await self._resolve_channel(self.staff_parent_channel_id)
            thread = await parent.create_thread(
                name=name,
                type=discord.ChannelType.public_thread,
                auto_archive_duration=THREAD_AUTO_ARCHIVE_MINUTES,
            )
            return ChannelID.from_channel(thread)

    async def archive_staff_channel(self, channel_id: ChannelID) -> None:
        async with translate_errors(f"archive staff thread {channel_id}"):
            thread = await self._resolve_channel(channel_id)
            await thread.edit(archived=True, locked=True)
