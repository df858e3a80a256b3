"""
Persistent storage for mod-mail conversation links.

Only the staff/user channel pair (and the user id) is stored. A row with a
NULL ``closed_at`` is an open conversation and is restored at startup.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from butler.database.db_connection import ConnectionManager, db_connection
from butler.datatypes.discord_datatypes import ChannelID, UserID
from butler.datatypes.mod_mail_datatypes import Link
from butler.mod_mail.lifecycle import LinkConfigStore
from butler.util.logger import get_logger

logger = get_logger("mod_mail_link_repo")

_UPSERT_OPEN = """
    INSERT INTO mod_mail_links (staff_channel_id, user_channel_id, user_id, closed_at)
    VALUES (?, ?, ?, NULL)
    ON CONFLICT(staff_channel_id) DO UPDATE SET
        user_channel_id = excluded.user_channel_id,
        user_id         = excluded.user_id,
        closed_at       = NULL
"""


def _link_params(link: Link) -> tuple:
    return (
        link.staff_channel_id.to_int(),
        link.user_channel_id.to_int(),
        link.user_id.to_int() if link.user_id is not None else None,
    )


class ModMailLinkRepo(LinkConfigStore):
    """CRUD for the ``mod_mail_links`` table."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self.connection = connection

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record_opened(self, link: Link) -> None:
        """Insert or reopen a single link."""
        async with self.connection.transaction() as conn:
            await conn.execute(_UPSERT_OPEN, _link_params(link))

    async def record_closed(self, link: Link) -> None:
        async with self.connection.transaction() as conn:
            await conn.execute(_UPSERT_OPEN, _link_params(link))
            await conn.execute(
                "UPDATE mod_mail_links SET closed_at = CURRENT_TIMESTAMP WHERE staff_channel_id = ?",
                (link.staff_channel_id.to_int(),),
            )

    async def persist(self, links: List[Link]) -> None:
        """Replace the open set with ``links`` in one transaction."""
        async with self.connection.transaction() as conn:
            await conn.execute(
                "UPDATE mod_mail_links SET closed_at = CURRENT_TIMESTAMP WHERE closed_at IS NULL"
            )
            await conn.executemany(_UPSERT_OPEN, [_link_params(link) for link in links])
        logger.debug("[MOD MAIL REPO] Persisted %d open link(s)", len(links))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self) -> List[Link]:
        async with self.connection.read() as conn:
            cursor = await conn.execute(
                "SELECT staff_channel_id, user_channel_id, user_id "
                "FROM mod_mail_links WHERE closed_at IS NULL ORDER BY opened_at"
            )
            rows = await cursor.fetchall()
        return [self._row_to_link(row) for row in rows]

    async def count_closed(self) -> int:
        async with self.connection.read() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM mod_mail_links WHERE closed_at IS NOT NULL")
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _row_to_link(row: aiosqlite.Row) -> Link:
        return Link(
            staff_channel_id=ChannelID(row[0]),
            user_channel_id=ChannelID(row[1]),
            user_id=UserID(row[2]) if row[2] is not None else None,
        )
