"""
Concurrency-safe mapping between staff threads, user DMs and mirrored messages.

The store is the only owner of the mod-mail maps. Every public coroutine
takes the store lock for exactly one operation and never awaits anything
else while holding it, so callers must perform network I/O outside the
store and come back afterwards to record the result.

Message links are kept in a single symmetric index: the origin id and the
mirror id both point at the same :class:`MessageLink`, which makes
edits and deletes from either side an O(1) lookup.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Set, Tuple

from butler.datatypes.discord_datatypes import ChannelID, MessageID
from butler.datatypes.mod_mail_datatypes import Direction, Link, MessageLink, MirrorResolution, Side
from butler.mod_mail.errors import ConflictError
from butler.util.logger import get_logger

logger = get_logger("link_store")


class LinkStore:
    """Owned, lock-guarded registry of active links and their message links."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._by_staff: Dict[ChannelID, Link] = {}
        self._by_user: Dict[ChannelID, Link] = {}
        self._messages: Dict[MessageID, MessageLink] = {}
        # staff channel -> origin ids of message links owned by that link
        self._link_messages: Dict[ChannelID, Set[MessageID]] = {}

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def put(self, link: Link) -> None:
        """Insert a link.

        Raises:
            ConflictError: If either endpoint is already mapped.
        """
        async with self._lock:
            if link.staff_channel_id in self._by_staff:
                raise ConflictError(f"staff channel {link.staff_channel_id} is already linked")
            if link.user_channel_id in self._by_user:
                raise ConflictError(f"user channel {link.user_channel_id} is already linked")
            self._by_staff[link.staff_channel_id] = link
            self._by_user[link.user_channel_id] = link
            self._link_messages[link.staff_channel_id] = set()
        logger.debug("[LINK STORE] Linked staff %s <-> user %s", link.staff_channel_id, link.user_channel_id)

    async def get_by_staff_channel(self, channel_id: ChannelID) -> Link | None:
        async with self._lock:
            return self._by_staff.get(channel_id)

    async def get_by_user_channel(self, channel_id: ChannelID) -> Link | None:
        async with self._lock:
            return self._by_user.get(channel_id)

    async def locate(self, channel_id: ChannelID) -> Tuple[Link, Side] | None:
        """Find the link owning ``channel_id`` on either side."""
        async with self._lock:
            link = self._by_staff.get(channel_id)
            if link is not None:
                return link, Side.STAFF
            link = self._by_user.get(channel_id)
            if link is not None:
                return link, Side.USER
            return None

    async def remove(self, link: Link) -> bool:
        """Delete a link and every message link it owns.

        Returns:
            True if the link was active, False otherwise.
        """
        async with self._lock:
            if self._by_staff.get(link.staff_channel_id) != link:
                return False
            del self._by_staff[link.staff_channel_id]
            self._by_user.pop(link.user_channel_id, None)
            evicted = 0
            for origin_id in self._link_messages.pop(link.staff_channel_id, set()):
                message_link = self._messages.pop(origin_id, None)
                if message_link is not None:
                    self._messages.pop(message_link.mirror_message_id, None)
                    evicted += 1
        logger.debug(
            "[LINK STORE] Unlinked staff %s <-> user %s (evicted %d message links)",
            link.staff_channel_id, link.user_channel_id, evicted,
        )
        return True

    async def snapshot(self) -> List[Link]:
        """Return every active link. Message links are not included."""
        async with self._lock:
            return list(self._by_staff.values())

    # ------------------------------------------------------------------
    # Message links
    # ------------------------------------------------------------------

    async def record_mirror(
        self,
        link: Link,
        origin_id: MessageID,
        mirror_id: MessageID,
        direction: Direction,
    ) -> bool:
        """Record that ``origin_id`` was mirrored as ``mirror_id``.

        Recording the same origin twice keeps the latest mirror; the
        previous mirror id stops resolving.

        Returns:
            False if ``link`` was closed while the mirror was in flight, in
            which case nothing is recorded.
        """
        async with self._lock:
            if self._by_staff.get(link.staff_channel_id) != link:
                return False
            previous = self._messages.get(origin_id)
            if previous is not None and previous.origin_message_id == origin_id:
                self._messages.pop(previous.mirror_message_id, None)
            message_link = MessageLink(
                link=link,
                origin_message_id=origin_id,
                mirror_message_id=mirror_id,
                direction=direction,
            )
            self._messages[origin_id] = message_link
            self._messages[mirror_id] = message_link
            self._link_messages[link.staff_channel_id].add(origin_id)
            return True

    async def resolve_mirror(self, message_id: MessageID) -> MirrorResolution | None:
        """Return the counterpart of ``message_id`` and the side it lives on."""
        async with self._lock:
            message_link = self._messages.get(message_id)
        if message_link is None:
            return None
        return self._resolution(message_link, message_id)

    async def claim_mirror(self, message_id: MessageID) -> MirrorResolution | None:
        """Remove both directions of the message link keyed by ``message_id``.

        Once claimed, neither id resolves any more, so a delete event for the
        counterpart arriving while the caller is still deleting it is dropped.
        Use :meth:`reinstate_mirror` to put the pair back if that fails.

        Returns:
            The counterpart of ``message_id``, or None if nothing was linked.
        """
        async with self._lock:
            message_link = self._messages.pop(message_id, None)
            if message_link is None:
                return None
            self._messages.pop(message_link.origin_message_id, None)
            self._messages.pop(message_link.mirror_message_id, None)
            owned = self._link_messages.get(message_link.link.staff_channel_id)
            if owned is not None:
                owned.discard(message_link.origin_message_id)
        return self._resolution(message_link, message_id)

    async def reinstate_mirror(self, message_link: MessageLink) -> bool:
        """Put back a claimed message link.

        Returns:
            False if its link closed or either id was recorded again in the
            meantime, in which case nothing changes.
        """
        async with self._lock:
            link = message_link.link
            if self._by_staff.get(link.staff_channel_id) != link:
                return False
            if message_link.origin_message_id in self._messages or message_link.mirror_message_id in self._messages:
                return False
            self._messages[message_link.origin_message_id] = message_link
            self._messages[message_link.mirror_message_id] = message_link
            self._link_messages[link.staff_channel_id].add(message_link.origin_message_id)
            return True

    @staticmethod
    def _resolution(message_link: MessageLink, message_id: MessageID) -> MirrorResolution:
        if message_link.origin_message_id == message_id:
            counterpart = message_link.mirror_message_id
            side = message_link.direction.destination
        else:
            counterpart = message_link.origin_message_id
            side = message_link.direction.origin
        return MirrorResolution(
            message_id=counterpart,
            channel_id=message_link.link.channel_for(side),
            side=side,
            message_link=message_link,
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._by_staff)

    def message_link_count(self) -> int:
        return sum(len(origins) for origins in self._link_messages.values())
