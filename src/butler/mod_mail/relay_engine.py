"""
Mirrors message and typing events across the two sides of a mod-mail link.

Each handler is independent: it looks the event up in the :class:`LinkStore`,
performs the mirrored call through the :class:`Transport` without holding the
store lock, and records the outcome afterwards. Events that do not belong to
a link, or that reference a message the relay never mirrored, are dropped
quietly. Transport failures are logged and leave the store unchanged; there
is no retry because the gateway already redelivers events.
"""

from __future__ import annotations

from butler.datatypes.discord_datatypes import ChannelID, MessageID
from butler.datatypes.mod_mail_datatypes import Direction, MessageContent
from butler.mod_mail.errors import TransportError
from butler.mod_mail.link_store import LinkStore
from butler.mod_mail.transport import Transport
from butler.util.logger import get_logger

logger = get_logger("relay_engine")


class RelayEngine:
    """Event handlers for message create/update/delete and typing on either side."""

    def __init__(self, store: LinkStore, transport: Transport) -> None:
        self.store = store
        self.transport = transport

    async def handle_message_create(
        self,
        channel_id: ChannelID,
        message_id: MessageID,
        content: MessageContent,
        *,
        relayed: bool = False,
    ) -> MessageID | None:
        """Mirror a new message to the other side of its link.

        Parameters
        ----------
        channel_id:
            Channel the message was posted in.
        message_id:
            The posted message.
        content:
            Payload to reproduce on the other side.
        relayed:
            True when the message was posted by the relay itself; such
            messages are never mirrored again.

        Returns
        -------
        MessageID | None
            The mirrored message, or None if nothing was mirrored.
        """
        if relayed:
            return None
        located = await self.store.locate(channel_id)
        if located is None:
            return None
        link, side = located
        if content.is_empty():
            logger.debug("[RELAY] Skipping empty message %s in %s", message_id, channel_id)
            return None

        target_channel = link.channel_for(side.opposite)
        try:
            mirror_id = await self.transport.create_message(target_channel, content)
        except TransportError as exc:
            logger.error("[RELAY] Failed to mirror message %s from %s to %s: %s", message_id, channel_id, target_channel, exc)
            return None

        if not await self.store.record_mirror(link, message_id, mirror_id, Direction.from_side(side)):
            logger.warning(
                "[RELAY] Link for %s closed while mirroring message %s; mirror %s not recorded",
                channel_id, message_id, mirror_id,
            )
            return None
        logger.debug("[RELAY] Mirrored %s side message %s as %s", side, message_id, mirror_id)
        return mirror_id

    async def handle_message_update(
        self,
        message_id: MessageID,
        content: MessageContent,
        *,
        relayed: bool = False,
    ) -> bool:
        """Apply an edit to the counterpart of ``message_id``. Returns True on success."""
        if relayed:
            return False
        resolution = await self.store.resolve_mirror(message_id)
        if resolution is None:
            return False
        try:
            await self.transport.update_message(resolution.channel_id, resolution.message_id, content)
        except TransportError as exc:
            logger.error("[RELAY] Failed to update mirror %s of message %s: %s", resolution.message_id, message_id, exc)
            return False
        return True

    async def handle_message_delete(self, message_id: MessageID) -> bool:
        """Delete the counterpart of ``message_id`` and forget the pair. Returns True on success.

        The pair is claimed before the counterpart is deleted, so the delete
        event Discord sends back for the counterpart finds nothing to mirror.
        """
        resolution = await self.store.claim_mirror(message_id)
        if resolution is None:
            return False
        try:
            await self.transport.delete_message(resolution.channel_id, resolution.message_id)
        except TransportError as exc:
            logger.error("[RELAY] Failed to delete mirror %s of message %s: %s", resolution.message_id, message_id, exc)
            await self.store.reinstate_mirror(resolution.message_link)
            return False
        return True

    async def handle_typing(self, channel_id: ChannelID) -> bool:
        """Show a typing indicator on the other side of the link. Returns True on success."""
        located = await self.store.locate(channel_id)
        if located is None:
            return False
        link, side = located
        try:
            await self.transport.send_typing(link.channel_for(side.opposite))
        except TransportError as exc:
            logger.warning("[RELAY] Failed to relay typing from %s: %s", channel_id, exc)
            return False
        return True
