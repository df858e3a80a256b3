"""Tests for the interactive console commands."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from butler.datatypes.discord_datatypes import ChannelID, UserID
from butler.datatypes.mod_mail_datatypes import Link
from butler.ui import console


@pytest.fixture
def printed(monkeypatch):
    lines: list[str] = []
    monkeypatch.setattr(console, "console_print", lambda message, style="": lines.append(message))
    return lines


@pytest.mark.asyncio
async def test_close_bot_instance_with_none():
    await console.close_bot_instance(None)


@pytest.mark.asyncio
async def test_close_bot_instance_skips_closed_bot():
    bot = MagicMock()
    bot.is_closed.return_value = True
    bot.close = AsyncMock()

    await console.close_bot_instance(bot)

    bot.close.assert_not_called()


@pytest.mark.asyncio
async def test_links_command_lists_open_conversations(store, printed):
    await store.put(Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200), user_id=UserID(42)))
    control = console.ConsoleControl(store)

    await console.handle_console_command("links", control)

    assert any("thread 100 <-> DM 200 (user 42)" in line for line in printed)


@pytest.mark.asyncio
async def test_links_command_without_store(printed):
    await console.handle_console_command("l", console.ConsoleControl())

    assert printed == ["Mod-mail is not running."]


@pytest.mark.asyncio
async def test_status_reports_link_counts(store, printed):
    await store.put(Link(staff_channel_id=ChannelID(100), user_channel_id=ChannelID(200)))

    await console.handle_console_command("status", console.ConsoleControl(store))

    assert any("1 open, 0 mirrored messages tracked" in line for line in printed)


@pytest.mark.asyncio
async def test_shutdown_command_sets_events(printed):
    control = console.ConsoleControl()

    await console.handle_console_command("exit", control)

    assert control.is_shutdown_requested()
    assert not control.is_restart_requested()


@pytest.mark.asyncio
async def test_restart_command_sets_both_events(printed):
    control = console.ConsoleControl()
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    control.set_bot(bot)

    await console.handle_console_command("restart", control)

    assert control.is_restart_requested()
    assert control.is_shutdown_requested()
    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_command_is_reported(printed):
    await console.handle_console_command("frobnicate", console.ConsoleControl())

    assert printed == ["Unknown command 'frobnicate'. Type 'help' for available commands."]
