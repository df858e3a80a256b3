"""
Data structures shared by the mod-mail relay.

A :class:`Link` pairs a staff-side thread with a user's DM channel. A
:class:`MessageLink` pairs one origin message with the copy the relay posted
on the other side of that link.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from butler.datatypes.discord_datatypes import ChannelID, MessageID, UserID


class Side(Enum):
    """Which end of a link a channel or message lives on."""

    STAFF = "staff"
    USER = "user"

    def __str__(self) -> str:
        return self.value

    @property
    def opposite(self) -> "Side":
        return Side.USER if self is Side.STAFF else Side.STAFF


class Direction(Enum):
    """Direction a message travelled when it was mirrored."""

    STAFF_TO_USER = "staff_to_user"
    USER_TO_STAFF = "user_to_staff"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_side(cls, origin: Side) -> "Direction":
        """Return the direction of a message that originated on ``origin``."""
        return cls.STAFF_TO_USER if origin is Side.STAFF else cls.USER_TO_STAFF

    @property
    def origin(self) -> Side:
        return Side.STAFF if self is Direction.STAFF_TO_USER else Side.USER

    @property
    def destination(self) -> Side:
        return self.origin.opposite


@dataclass(frozen=True, slots=True)
class Link:
    """One active mod-mail conversation.

    Attributes:
        staff_channel_id: Staff-side thread the conversation lives in.
        user_channel_id: The user's DM channel with the bot.
        user_id: The user on the other end, if known.
    """
    staff_channel_id: ChannelID
    user_channel_id: ChannelID
    user_id: UserID | None = None

    def channel_for(self, side: Side) -> ChannelID:
        return self.staff_channel_id if side is Side.STAFF else self.user_channel_id


@dataclass(frozen=True, slots=True)
class MessageLink:
    """An origin message and the mirrored copy posted on the other side."""
    link: Link
    origin_message_id: MessageID
    mirror_message_id: MessageID
    direction: Direction


@dataclass(frozen=True, slots=True)
class MirrorResolution:
    """Counterpart of a message looked up through :meth:`LinkStore.resolve_mirror`.

    Attributes:
        message_id: The counterpart message.
        channel_id: Channel the counterpart was posted in.
        side: Side of the link the counterpart lives on.
        message_link: The underlying record.
    """
    message_id: MessageID
    channel_id: ChannelID
    side: Side
    message_link: MessageLink


@dataclass(slots=True)
class MessageContent:
    """Platform-neutral payload of a mirrored message.

    ``embeds`` and ``attachments`` are opaque to the relay engine and are
    handed to the transport unchanged; the Discord transport re-uploads
    attachments as files.
    """
    text: str = ""
    embeds: List[Any] = field(default_factory=list)
    attachments: List[Any] = field(default_factory=list)
    author_name: str | None = None

    def is_empty(self) -> bool:
        return not (self.text or self.embeds or self.attachments)
