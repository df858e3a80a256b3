"""
Pytest configuration and fixtures for Butler tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID  # noqa: E402
from butler.mod_mail.errors import TransportError  # noqa: E402
from butler.mod_mail.lifecycle import LinkConfigStore  # noqa: E402
from butler.mod_mail.link_store import LinkStore  # noqa: E402
from butler.mod_mail.transport import Transport  # noqa: E402


class FakeTransport(Transport):
    """In-memory transport that records every call.

    Add an operation name (e.g. ``"create_message"``) to ``fail`` to make it
    raise :class:`TransportError`. Every call yields to the event loop once so
    concurrent handlers interleave the way they would over the network.
    """

    def __init__(self) -> None:
        self.fail: set[str] = set()
        self.created: list[tuple[ChannelID, object]] = []
        self.updated: list[tuple[ChannelID, MessageID, object]] = []
        self.deleted: list[tuple[ChannelID, MessageID]] = []
        self.typing: list[ChannelID] = []
        self.archived: list[ChannelID] = []
        self.private_channels: dict[UserID, ChannelID] = {}
        self.staff_channel_names: list[str] = []
        self.next_message_id = 1000
        self.next_staff_channel_id = 100

    async def _call(self, operation: str) -> None:
        await asyncio.sleep(0)
        if operation in self.fail:
            raise TransportError(operation, "simulated failure")

    async def create_message(self, channel_id, content):
        await self._call("create_message")
        message_id = MessageID(self.next_message_id)
        self.next_message_id += 1
        self.created.append((channel_id, content))
        return message_id

    async def update_message(self, channel_id, message_id, content):
        await self._call("update_message")
        self.updated.append((channel_id, message_id, content))

    async def delete_message(self, channel_id, message_id):
        await self._call("delete_message")
        self.deleted.append((channel_id, message_id))

    async def send_typing(self, channel_id):
        await self._call("send_typing")
        self.typing.append(channel_id)

    async def open_private_channel(self, user_id):
        await self._call("open_private_channel")
        return self.private_channels.setdefault(user_id, ChannelID(200 + len(self.private_channels)))

    async def create_staff_channel(self, name):
        await self._call("create_staff_channel")
        channel_id = ChannelID(self.next_staff_channel_id)
        self.next_staff_channel_id += 1
        self.staff_channel_names.append(name)
        return channel_id

    async def archive_staff_channel(self, channel_id):
        await self._call("archive_staff_channel")
        self.archived.append(channel_id)


class FakeConfigStore(LinkConfigStore):
    """Config store that keeps the open set and closed history in memory."""

    def __init__(self, initial=None) -> None:
        self.open_links = list(initial or [])
        self.closed = []
        self.persist_calls = 0

    async def load(self):
        return list(self.open_links)

    async def record_opened(self, link):
        if link not in self.open_links:
            self.open_links.append(link)

    async def persist(self, links):
        self.persist_calls += 1
        self.open_links = list(links)

    async def record_closed(self, link):
        self.closed.append(link)
        self.open_links = [existing for existing in self.open_links if existing != link]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config_store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture
def store() -> LinkStore:
    return LinkStore()
