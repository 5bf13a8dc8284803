"""Share link repository for database operations."""

import json
import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from vault.database import get_db_connection
from vault.types import ShareLink
from vault.utils import from_iso, to_iso

logger = get_logger(__name__)


def _row_to_link(row: sqlite3.Row) -> ShareLink:
    return ShareLink(
        token=row["token"],
        file_id=row["file_id"],
        created_by=row["created_by"],
        permission=row["permission"],
        expires_at=from_iso(row["expires_at"]),
        password_hash=row["password_hash"],
        emails=json.loads(row["emails"]) if row["emails"] else [],
        created_at=from_iso(row["created_at"]),
    )


class ShareLinkRepository:
    @staticmethod
    def add_share_link(link: ShareLink) -> ShareLink:
        """
        Persist a new share link. Tokens are the primary key, so a reused
        token fails with sqlite3.IntegrityError instead of overwriting.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO share_links
                (token, file_id, created_by, permission, expires_at, password_hash, emails, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    link.token, link.file_id, link.created_by, link.permission,
                    to_iso(link.expires_at), link.password_hash, json.dumps(link.emails),
                    to_iso(link.created_at),
                )
            )
            conn.commit()
            logger.debug(f"Share link stored [file_id={link.file_id}]")
            return link

    @staticmethod
    def get_by_token(token: str) -> Optional[ShareLink]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM share_links WHERE token = ?", (token,))
            row = cursor.fetchone()
            return _row_to_link(row) if row else None

    @staticmethod
    def list_for_file(file_id: str, conn=None) -> List[ShareLink]:
        if conn is None:
            with get_db_connection() as conn:
                return ShareLinkRepository._select_for_file(conn, file_id)
        return ShareLinkRepository._select_for_file(conn, file_id)

    @staticmethod
    def _select_for_file(conn: sqlite3.Connection, file_id: str) -> List[ShareLink]:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM share_links WHERE file_id = ? ORDER BY created_at, token",
            (file_id,)
        )
        return [_row_to_link(row) for row in cursor.fetchall()]
