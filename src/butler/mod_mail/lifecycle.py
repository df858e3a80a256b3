"""
Opening, closing and persisting mod-mail conversations.

The :class:`LifecycleManager` is the only component that creates or removes
links. Durable state is limited to the staff/user channel pairs, which are
handed to a :class:`LinkConfigStore` when a link opens or closes and in bulk
at shutdown. Per-message mirror state is transient and is not recovered after a
restart.
"""

from __future__ import annotations

import abc
from typing import List, Set

from butler.datatypes.discord_datatypes import ChannelID, UserID
from butler.datatypes.mod_mail_datatypes import Link
from butler.mod_mail.errors import AlreadyOpenError, ConflictError, NotFoundError, TransportError
from butler.mod_mail.link_store import LinkStore
from butler.mod_mail.transport import Transport
from butler.util.logger import get_logger

logger = get_logger("mod_mail_lifecycle")

DEFAULT_THREAD_NAME_TEMPLATE = "modmail-{user_id}"


class LinkConfigStore(abc.ABC):
    """Durable storage for link endpoint pairs."""

    @abc.abstractmethod
    async def load(self) -> List[Link]:
        """Return the links that were open when the process last stopped."""

    @abc.abstractmethod
    async def record_opened(self, link: Link) -> None:
        """Record a newly opened link so it survives a crash before shutdown."""

    @abc.abstractmethod
    async def persist(self, links: List[Link]) -> None:
        """Make ``links`` the complete set of open links."""

    @abc.abstractmethod
    async def record_closed(self, link: Link) -> None:
        """Mark a single link as closed."""


class LifecycleManager:
    """Creates, closes, restores and snapshots mod-mail links."""

    def __init__(
        self,
        store: LinkStore,
        transport: Transport,
        config_store: LinkConfigStore,
        *,
        thread_name_template: str = DEFAULT_THREAD_NAME_TEMPLATE,
    ) -> None:
        self.store = store
        self.transport = transport
        self.config_store = config_store
        self.thread_name_template = thread_name_template
        # user channels with an open() in flight
        self._opening: Set[ChannelID] = set()

    async def open(self, user_id: UserID) -> Link:
        """Open a conversation with ``user_id``.

        Raises
        ------
        AlreadyOpenError
            If a conversation with the user is already open or being opened.
        TransportError
            If the DM channel or staff thread could not be created.
        """
        user_channel_id = await self.transport.open_private_channel(user_id)

        if user_channel_id in self._opening:
            raise AlreadyOpenError(f"a conversation with user {user_id} is already being opened")
        self._opening.add(user_channel_id)
        try:
            if await self.store.get_by_user_channel(user_channel_id) is not None:
                raise AlreadyOpenError(f"a conversation with user {user_id} is already open")

            staff_channel_id = await self.transport.create_staff_channel(
                self.thread_name_template.format(user_id=user_id)
            )
            link = Link(staff_channel_id=staff_channel_id, user_channel_id=user_channel_id, user_id=user_id)
            try:
                await self.store.put(link)
            except ConflictError:
                await self._archive_quietly(staff_channel_id)
                raise
        finally:
            self._opening.discard(user_channel_id)

        try:
            await self.config_store.record_opened(link)
        except Exception as exc:
            logger.exception("[MOD MAIL] Failed to record opening of thread %s: %s", staff_channel_id, exc)

        logger.info("[MOD MAIL] Opened conversation with user %s in thread %s", user_id, staff_channel_id)
        return link

    async def close(self, link: Link) -> None:
        """Close ``link``, dropping its message links and recording the closure.

        Raises:
            NotFoundError: If ``link`` is not active.
        """
        if not await self.store.remove(link):
            raise NotFoundError(f"no open conversation in thread {link.staff_channel_id}")

        try:
            await self.config_store.record_closed(link)
        except Exception as exc:
            logger.exception("[MOD MAIL] Failed to record closure of thread %s: %s", link.staff_channel_id, exc)

        await self._archive_quietly(link.staff_channel_id)
        logger.info("[MOD MAIL] Closed conversation in thread %s", link.staff_channel_id)

    async def close_channel(self, channel_id: ChannelID) -> Link:
        """Close the conversation that ``channel_id`` belongs to (either side)."""
        located = await self.store.locate(channel_id)
        if located is None:
            raise NotFoundError(f"channel {channel_id} is not part of a conversation")
        link, _ = located
        await self.close(link)
        return link

    async def restore(self) -> int:
        """Seed the store from the config store. Returns the number of links restored."""
        restored = 0
        for link in await self.config_store.load():
            try:
                await self.store.put(link)
            except ConflictError as exc:
                logger.warning("[MOD MAIL] Skipping persisted link %s: %s", link, exc)
                continue
            restored += 1
        logger.info("[MOD MAIL] Restored %d conversation(s)", restored)
        return restored

    async def shutdown(self) -> List[Link]:
        """Persist a snapshot of every open link and return it."""
        links = await self.store.snapshot()
        await self.config_store.persist(links)
        logger.info("[MOD MAIL] Persisted %d open conversation(s)", len(links))
        return links

    async def _archive_quietly(self, channel_id: ChannelID) -> None:
        try:
            await self.transport.archive_staff_channel(channel_id)
        except TransportError as exc:
            logger.warning("[MOD MAIL] Could not archive thread %s: %s", channel_id, exc)
