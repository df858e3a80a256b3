import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from butler.datatypes.mod_mail_datatypes import MessageContent
from butler.mod_mail.errors import TransportError
from butler.mod_mail.transport import THREAD_AUTO_ARCHIVE_MINUTES, DiscordTransport, translate_errors


def make_bot(channels=None, users=None):
    channels = channels or {}
    users = users or {}
    return SimpleNamespace(
        get_channel=lambda channel_id: channels.get(channel_id),
        fetch_channel=AsyncMock(side_effect=discord.ClientException("unknown channel")),
        get_user=lambda user_id: users.get(user_id),
        fetch_user=AsyncMock(side_effect=discord.ClientException("unknown user")),
    )


@pytest.mark.asyncio
async def test_translate_errors_wraps_discord_and_network_failures():
    for error in (discord.ClientException("boom"), OSError("reset"), asyncio.TimeoutError()):
        with pytest.raises(TransportError) as exc_info:
            async with translate_errors("send"):
                raise error
        assert exc_info.value.operation == "send"
        assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_translate_errors_leaves_other_exceptions_alone():
    with pytest.raises(KeyError):
        async with translate_errors("send"):
            raise KeyError("bug")


@pytest.mark.asyncio
async def test_create_message_sends_text_and_embeds():
    channel = SimpleNamespace(send=AsyncMock(return_value=SimpleNamespace(id=555)))
    transport = DiscordTransport(make_bot({200: channel}), ChannelID(10))

    message_id = await transport.create_message(ChannelID(200), MessageContent(text="hi"))

    assert message_id == MessageID(555)
    channel.send.assert_awaited_once_with(content="hi", embeds=None, files=None)


@pytest.mark.asyncio
async def test_create_message_reuploads_attachments():
    channel = SimpleNamespace(send=AsyncMock(return_value=SimpleNamespace(id=1)))
    attachment = SimpleNamespace(to_file=AsyncMock(return_value="file"))
    transport = DiscordTransport(make_bot({200: channel}), ChannelID(10))

    await transport.create_message(ChannelID(200), MessageContent(attachments=[attachment]))

    channel.send.assert_awaited_once_with(content=None, embeds=None, files=["file"])


@pytest.mark.asyncio
async def test_missing_channel_raises_transport_error():
    transport = DiscordTransport(make_bot(), ChannelID(10))

    with pytest.raises(TransportError):
        await transport.create_message(ChannelID(404), MessageContent(text="hi"))


@pytest.mark.asyncio
async def test_update_and_delete_use_partial_messages():
    partial = SimpleNamespace(edit=AsyncMock(), delete=AsyncMock())
    channel = SimpleNamespace(get_partial_message=MagicMock(return_value=partial))
    transport = DiscordTransport(make_bot({200: channel}), ChannelID(10))

    await transport.update_message(ChannelID(200), MessageID(7), MessageContent(text="edited"))
    await transport.delete_message(ChannelID(200), MessageID(7))

    channel.get_partial_message.assert_called_with(7)
    partial.edit.assert_awaited_once_with(content="edited", embeds=[], attachments=[])
    partial.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_message_replaces_attachments():
    partial = SimpleNamespace(edit=AsyncMock())
    channel = SimpleNamespace(get_partial_message=MagicMock(return_value=partial))
    attachment = SimpleNamespace(to_file=AsyncMock(return_value="file"))
    transport = DiscordTransport(make_bot({200: channel}), ChannelID(10))

    await transport.update_message(ChannelID(200), MessageID(7), MessageContent(text="edited", attachments=[attachment]))

    partial.edit.assert_awaited_once_with(content="edited", embeds=[], attachments=[], files=["file"])


@pytest.mark.asyncio
async def test_open_private_channel_creates_dm_when_missing():
    user = SimpleNamespace(dm_channel=None, create_dm=AsyncMock(return_value=SimpleNamespace(id=200)))
    transport = DiscordTransport(make_bot(users={42: user}), ChannelID(10))

    assert await transport.open_private_channel(UserID(42)) == ChannelID(200)
    user.create_dm.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_staff_channel_requires_configured_parent():
    transport = DiscordTransport(make_bot(), None)

    with pytest.raises(TransportError):
        await transport.create_staff_channel("modmail-42")


@pytest.mark.asyncio
async def test_create_and_archive_staff_thread():
    thread = SimpleNamespace(id=100, edit=AsyncMock())
    parent = SimpleNamespace(create_thread=AsyncMock(return_value=thread))
    transport = DiscordTransport(make_bot({10: parent, 100: thread}), ChannelID(10))

    assert await transport.create_staff_channel("modmail-42") == ChannelID(100)
    await transport.archive_staff_channel(ChannelID(100))

    parent.create_thread.assert_awaited_once_with(
        name="modmail-42",
        type=discord.ChannelType.public_thread,
        auto_archive_duration=THREAD_AUTO_ARCHIVE_MINUTES,
    )
    thread.edit.assert_awaited_once_with(archived=True, locked=True)
