"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers that are often stored or transmitted
as strings. The wrappers below give channel, message and user ids distinct
types so a message id can never be used where a channel id is expected.
A wrapper only compares equal to a wrapper of the same type, so raw ``int``
or ``str`` ids must be wrapped before they are used as dictionary keys.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Common base for the typed snowflake wrappers.

    Attributes:
        _value (str): The snowflake stored as a normalized decimal string.

    Example:
        >>> cid = ChannelID(123456789012345678)
        >>> cid.to_int()
        123456789012345678
        >>> str(cid)
        '123456789012345678'
        >>> ChannelID(" 42 ") == ChannelID(42)
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper of the same type.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, Snowflake):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))


class UserID(Snowflake):
    """Type-safe wrapper for Discord user snowflake IDs."""

    __slots__ = ()

    @classmethod
    def from_user(cls, user: Union[discord.Member, discord.User]) -> "UserID":
        return cls(user.id)


class ChannelID(Snowflake):
    """Type-safe wrapper for Discord channel (including thread and DM) IDs."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ChannelID":
        return cls(channel.id)


class MessageID(Snowflake):
    """Type-safe wrapper for Discord message snowflake IDs."""

    __slots__ = ()

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)
