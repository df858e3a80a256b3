from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from butler.bot.cogs import mod_mail_cmds
from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from butler.datatypes.mod_mail_datatypes import Link, MessageContent
from butler.mod_mail.errors import AlreadyOpenError, NotFoundError, TransportError
from butler.mod_mail.lifecycle import LifecycleManager
from butler.mod_mail.relay_engine import RelayEngine


BOT_USER_ID = 999


def make_message(*, message_id=1, channel_id=200, author_id=42, content="hi", webhook_id=None,
                 attachments=None, system=False):
    return SimpleNamespace(
        id=message_id,
        channel=SimpleNamespace(id=channel_id),
        author=SimpleNamespace(id=author_id),
        content=content,
        webhook_id=webhook_id,
        attachments=attachments or [],
        is_system=lambda: system,
    )


class Ctx:
    def __init__(self, channel_id=100):
        self.channel_id = channel_id
        self.user = SimpleNamespace(id=7)
        self.defer = AsyncMock()
        self.respond = AsyncMock()


@pytest.fixture(autouse=True)
def plain_relay_content(monkeypatch):
    monkeypatch.setattr(mod_mail_cmds, "build_relay_content", lambda message: MessageContent(text=message.content))


@pytest.fixture
def engine():
    return AsyncMock(spec=RelayEngine)


@pytest.fixture
def lifecycle(store):
    manager = AsyncMock(spec=LifecycleManager)
    manager.store = store
    return manager


@pytest.fixture
def cog(engine, lifecycle):
    bot = SimpleNamespace(user=SimpleNamespace(id=BOT_USER_ID))
    return mod_mail_cmds.ModMailCog(bot, engine, lifecycle)


def test_setup_adds_cog(engine, lifecycle):
    captured = {}
    fake_bot = SimpleNamespace(user=None, add_cog=lambda cog: captured.setdefault("cog", cog))

    mod_mail_cmds.setup(fake_bot, engine, lifecycle)

    assert isinstance(captured["cog"], mod_mail_cmds.ModMailCog)
    assert captured["cog"].engine is engine


def test_is_relayed_for_webhook_and_bot_authors(cog):
    assert cog.is_relayed(make_message(webhook_id=5)) is True
    assert cog.is_relayed(make_message(author_id=BOT_USER_ID)) is True
    assert cog.is_relayed(make_message(author_id=42)) is False


def test_is_relayed_before_ready(engine, lifecycle):
    cog = mod_mail_cmds.ModMailCog(SimpleNamespace(user=None), engine, lifecycle)

    assert cog.is_relayed(make_message(author_id=BOT_USER_ID)) is False


@pytest.mark.asyncio
async def test_on_message_forwards_to_engine(cog, engine):
    await cog.on_message(make_message(message_id=5, channel_id=200, content="hello"))

    engine.handle_message_create.assert_awaited_once_with(ChannelID(200), MessageID(5), MessageContent(text="hello"))


@pytest.mark.asyncio
async def test_on_message_skips_relayed_and_system_messages(cog, engine):
    await cog.on_message(make_message(author_id=BOT_USER_ID))
    await cog.on_message(make_message(webhook_id=3))
    await cog.on_message(make_message(system=True))

    engine.handle_message_create.assert_not_awaited()


@pytest.mark.asyncio
async def test_on_message_edit_forwards_changed_content(cog, engine):
    before = make_message(message_id=5, content="old")
    after = make_message(message_id=5, content="new")

    await cog.on_message_edit(before, after)

    engine.handle_message_update.assert_awaited_once_with(MessageID(5), MessageContent(text="new"))


@pytest.mark.asyncio
async def test_on_message_edit_skips_unchanged_and_relayed(cog, engine):
    await cog.on_message_edit(make_message(content="same"), make_message(content="same"))
    await cog.on_message_edit(make_message(content="a"), make_message(content="b", author_id=BOT_USER_ID))

    engine.handle_message_update.assert_not_awaited()


@pytest.mark.asyncio
async def test_on_raw_message_delete_uses_payload_id(cog, engine):
    await cog.on_raw_message_delete(SimpleNamespace(message_id=77, channel_id=200))

    engine.handle_message_delete.assert_awaited_once_with(MessageID(77))


@pytest.mark.asyncio
async def test_on_raw_bulk_message_delete_mirrors_each_id(cog, engine):
    await cog.on_raw_bulk_message_delete(SimpleNamespace(message_ids={11, 12}, channel_id=100))

    deleted = {call.args[0] for call in engine.handle_message_delete.await_args_list}
    assert deleted == {MessageID(11), MessageID(12)}


@pytest.mark.asyncio
async def test_bulk_delete_removes_mirrors_and_message_links(store, transport, lifecycle):
    engine = RelayEngine(store, transport)
    cog = mod_mail_cmds.ModMailCog(SimpleNamespace(user=SimpleNamespace(id=BOT_USER_ID)), engine, lifecycle)
    link = Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200), user_id=UserID(42))
    await store.put(link)
    first = await engine.handle_message_create(ChannelID(100), MessageID(1), MessageContent(text="a"))
    second = await engine.handle_message_create(ChannelID(100), MessageID(2), MessageContent(text="b"))

    await cog.on_raw_bulk_message_delete(SimpleNamespace(message_ids={1, 2}, channel_id=100))

    assert sorted(transport.deleted, key=lambda entry: entry[1].to_int()) == [
        (ChannelID(200), first),
        (ChannelID(200), second),
    ]
    assert store.message_link_count() == 0


@pytest.mark.asyncio
async def test_on_typing_skips_bot_user(cog, engine):
    await cog.on_typing(SimpleNamespace(id=200), SimpleNamespace(id=BOT_USER_ID), None)
    engine.handle_typing.assert_not_awaited()

    await cog.on_typing(SimpleNamespace(id=200), SimpleNamespace(id=42), None)
    engine.handle_typing.assert_awaited_once_with(ChannelID(200))


@pytest.mark.asyncio
async def test_open_command_reports_new_thread(cog, lifecycle):
    lifecycle.open.return_value = Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200), user_id=UserID(42))
    ctx = Ctx()
    user = SimpleNamespace(id=42, bot=False, mention="<@42>")

    await mod_mail_cmds.ModMailCog.open_conversation.callback(cog, ctx, user)

    lifecycle.open.assert_awaited_once_with(UserID(42))
    ctx.respond.assert_awaited_once_with("Opened <#100> for <@42>.", ephemeral=True)


@pytest.mark.asyncio
async def test_open_command_rejects_bots(cog, lifecycle):
    ctx = Ctx()

    await mod_mail_cmds.ModMailCog.open_conversation.callback(cog, ctx, SimpleNamespace(id=1, bot=True, mention="<@1>"))

    lifecycle.open.assert_not_awaited()
    ctx.respond.assert_awaited_once_with("Bots cannot receive mod-mail.", ephemeral=True)


@pytest.mark.asyncio
async def test_open_command_reports_existing_conversation(cog, lifecycle):
    lifecycle.open.side_effect = AlreadyOpenError("open")
    ctx = Ctx()

    await mod_mail_cmds.ModMailCog.open_conversation.callback(cog, ctx, SimpleNamespace(id=42, bot=False, mention="<@42>"))

    ctx.respond.assert_awaited_once_with("A conversation with <@42> is already open.", ephemeral=True)


@pytest.mark.asyncio
async def test_open_command_reports_transport_failure(cog, lifecycle):
    lifecycle.open.side_effect = TransportError("open_private_channel", "Cannot send messages to this user")
    ctx = Ctx()

    await mod_mail_cmds.ModMailCog.open_conversation.callback(cog, ctx, SimpleNamespace(id=42, bot=False, mention="<@42>"))

    ctx.respond.assert_awaited_once_with(
        "Could not open a conversation with <@42>: Cannot send messages to this user", ephemeral=True
    )


@pytest.mark.asyncio
async def test_close_command_closes_current_channel(cog, lifecycle):
    lifecycle.close_channel.return_value = Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200))
    ctx = Ctx(channel_id=100)

    await mod_mail_cmds.ModMailCog.close_conversation.callback(cog, ctx)

    lifecycle.close_channel.assert_awaited_once_with(ChannelID(100))
    ctx.respond.assert_awaited_once_with("Conversation closed.", ephemeral=True)


@pytest.mark.asyncio
async def test_close_command_outside_conversation(cog, lifecycle):
    lifecycle.close_channel.side_effect = NotFoundError("nope")
    ctx = Ctx(channel_id=5)

    await mod_mail_cmds.ModMailCog.close_conversation.callback(cog, ctx)

    ctx.respond.assert_awaited_once_with("This channel is not a mod-mail conversation.", ephemeral=True)


@pytest.mark.asyncio
async def test_list_command(cog, store):
    ctx = Ctx()
    await mod_mail_cmds.ModMailCog.list_conversations.callback(cog, ctx)
    ctx.respond.assert_awaited_once_with("No conversations are open.", ephemeral=True)

    await store.put(Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200), user_id=UserID(42)))
    ctx = Ctx()
    await mod_mail_cmds.ModMailCog.list_conversations.callback(cog, ctx)

    message = ctx.respond.await_args.args[0]
    assert message.startswith("Open conversations:")
    assert "<#100>" in message and "<@42>" in message
