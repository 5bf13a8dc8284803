"""File repository for database operations."""

import math
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from common.logging_config import get_logger
from vault.database import get_db_connection
from vault.repositories.share_link_repository import ShareLinkRepository
from vault.types import ROOT_FOLDER, FileRecord, FileVersion, ListFilter
from vault.utils import from_iso, to_iso

logger = get_logger(__name__)

SORT_COLUMNS: Dict[str, str] = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "name": "name COLLATE NOCASE",
    "size": "size",
    "mime_type": "mime_type",
    "downloads": "downloads",
    "last_accessed_at": "last_accessed_at",
}

SORT_ORDERS = ("asc", "desc")

FILE_COLUMNS = """
    file_id, owner_id, name, original_name, mime_type, size, blob_key,
    encryption_iv, checksum, folder_id, downloads, last_accessed_at,
    created_at, updated_at, deleted_at, deleted_by
"""


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _row_to_version(row: sqlite3.Row) -> FileVersion:
    return FileVersion(
        version=row["version"],
        blob_key=row["blob_key"],
        size=row["size"],
        encryption_iv=row["encryption_iv"],
        checksum=row["checksum"],
        created_at=from_iso(row["created_at"]),
        created_by=row["created_by"],
    )


class FileRepository:
    @staticmethod
    def _load_record(row: sqlite3.Row, conn: sqlite3.Connection) -> FileRecord:
        cursor = conn.cursor()
        file_id = row["file_id"]

        cursor.execute("SELECT tag FROM file_tags WHERE file_id = ? ORDER BY tag", (file_id,))
        tags = [tag_row["tag"] for tag_row in cursor.fetchall()]

        cursor.execute(
            """
            SELECT version, blob_key, size, encryption_iv, checksum, created_at, created_by
            FROM file_versions WHERE file_id = ? ORDER BY version
            """,
            (file_id,)
        )
        versions = [_row_to_version(version_row) for version_row in cursor.fetchall()]

        cursor.execute(
            "SELECT user_id FROM file_shared_with WHERE file_id = ? ORDER BY granted_at, user_id",
            (file_id,)
        )
        shared_with = [share_row["user_id"] for share_row in cursor.fetchall()]

        return FileRecord(
            file_id=file_id,
            owner_id=row["owner_id"],
            name=row["name"],
            original_name=row["original_name"],
            mime_type=row["mime_type"],
            size=row["size"],
            blob_key=row["blob_key"],
            encryption_iv=row["encryption_iv"],
            checksum=row["checksum"],
            folder_id=row["folder_id"],
            downloads=row["downloads"],
            last_accessed_at=from_iso(row["last_accessed_at"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            deleted_at=from_iso(row["deleted_at"]),
            deleted_by=row["deleted_by"],
            tags=tags,
            versions=versions,
            shared_with=shared_with,
            share_links=ShareLinkRepository.list_for_file(file_id, conn=conn),
        )

    @staticmethod
    def create_file(record: FileRecord, conn=None) -> FileRecord:
        """
        Insert a file row together with its tags and version history.
        """
        if conn is None:
            with get_db_connection() as conn:
                FileRepository._insert_file(conn, record)
                conn.commit()
        else:
            FileRepository._insert_file(conn, record)

        logger.debug(f"Created file record [file_id={record.file_id}] [owner_id={record.owner_id}]")
        return record

    @staticmethod
    def _insert_file(conn: sqlite3.Connection, record: FileRecord) -> None:
        cursor = conn.cursor()
        cursor.execute(
            f"""
            INSERT INTO files ({FILE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.file_id, record.owner_id, record.name, record.original_name,
                record.mime_type, record.size, record.blob_key, record.encryption_iv,
                record.checksum, record.folder_id, record.downloads,
                to_iso(record.last_accessed_at), to_iso(record.created_at),
                to_iso(record.updated_at), to_iso(record.deleted_at), record.deleted_by,
            )
        )

        for tag in record.tags:
            cursor.execute(
                "INSERT OR IGNORE INTO file_tags (file_id, tag) VALUES (?, ?)",
                (record.file_id, tag)
            )

        for version in record.versions:
            FileRepository._insert_version(cursor, record.file_id, version)

    @staticmethod
    def _insert_version(cursor: sqlite3.Cursor, file_id: str, version: FileVersion) -> None:
        cursor.execute(
            """
            INSERT INTO file_versions
            (file_id, version, blob_key, size, encryption_iv, checksum, created_at, created_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                file_id, version.version, version.blob_key, version.size,
                version.encryption_iv, version.checksum, to_iso(version.created_at),
                version.created_by,
            )
        )

    @staticmethod
    def get_by_id(file_id: str) -> Optional[FileRecord]:
        """
        Fetch a file record, trashed or not.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ?", (file_id,))
            row = cursor.fetchone()

            if row is None:
                return None

            return FileRepository._load_record(row, conn)

    @staticmethod
    def find_many(owner_id: str, list_filter: ListFilter, deleted: bool = False) -> Tuple[List[FileRecord], int]:
        """
        Query a user's files with filtering, sorting and pagination.

        Args:
            owner_id: Owner whose files are listed
            list_filter: Filter options; sort_by and order must already be validated
            deleted: List trashed files instead of active ones

        Returns:
            Tuple of (page of records, total matching count)
        """
        clauses = ["owner_id = ?", "deleted_at IS NOT NULL" if deleted else "deleted_at IS NULL"]
        params: List[object] = [owner_id]

        if list_filter.folder_id == ROOT_FOLDER:
            clauses.append("folder_id IS NULL")
        elif list_filter.folder_id is not None:
            clauses.append("folder_id = ?")
            params.append(list_filter.folder_id)

        if list_filter.search:
            clauses.append("LOWER(name) LIKE ? ESCAPE '\\'")
            params.append(_like_pattern(list_filter.search))

        if list_filter.mime_type:
            clauses.append("LOWER(mime_type) LIKE ? ESCAPE '\\'")
            params.append(_like_pattern(list_filter.mime_type))

        where = " AND ".join(clauses)
        sort_column = SORT_COLUMNS[list_filter.sort_by]
        direction = "DESC" if list_filter.order == "desc" else "ASC"
        offset = (list_filter.page - 1) * list_filter.limit

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS count FROM files WHERE {where}", params)
            total = cursor.fetchone()["count"]

            cursor.execute(
                f"""
                SELECT {FILE_COLUMNS} FROM files
                WHERE {where}
                ORDER BY {sort_column} {direction}, file_id {direction}
                LIMIT ? OFFSET ?
                """,
                params + [list_filter.limit, offset]
            )
            rows = cursor.fetchall()

            return [FileRepository._load_record(row, conn) for row in rows], total

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    @staticmethod
    def sum_active_size(owner_id: str) -> int:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COALESCE(SUM(size), 0) AS total FROM files WHERE owner_id = ? AND deleted_at IS NULL",
                (owner_id,)
            )
            return cursor.fetchone()["total"]

    @staticmethod
    def aggregate_usage(owner_id: str) -> Tuple[int, int, List[Dict[str, object]]]:
        """
        Aggregate a user's active storage.

        Returns:
            Tuple of (total size, file count, per-MIME-type breakdown)
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT COALESCE(SUM(size), 0) AS total_size, COUNT(*) AS total_files
                FROM files WHERE owner_id = ? AND deleted_at IS NULL
                """,
                (owner_id,)
            )
            totals = cursor.fetchone()

            cursor.execute(
                """
                SELECT mime_type, SUM(size) AS size, COUNT(*) AS count
                FROM files WHERE owner_id = ? AND deleted_at IS NULL
                GROUP BY mime_type
                ORDER BY size DESC, mime_type
                """,
                (owner_id,)
            )
            by_type = [
                {"mime_type": row["mime_type"], "size": row["size"], "count": row["count"]}
                for row in cursor.fetchall()
            ]

            return totals["total_size"], totals["total_files"], by_type

    @staticmethod
    def mark_deleted(file_id: str, deleted_at: datetime, deleted_by: str) -> None:
        """
        Soft delete a file by stamping deleted_at/deleted_by.
        """
        logger.debug(f"Moving file to trash [file_id={file_id}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE files SET deleted_at = ?, deleted_by = ?, updated_at = ?
                WHERE file_id = ? AND deleted_at IS NULL
                """,
                (to_iso(deleted_at), deleted_by, to_iso(deleted_at), file_id)
            )
            conn.commit()

    @staticmethod
    def clear_deleted(file_id: str, restored_at: datetime) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE files SET deleted_at = NULL, deleted_by = NULL, updated_at = ?
                WHERE file_id = ? AND deleted_at IS NOT NULL
                """,
                (to_iso(restored_at), file_id)
            )
            conn.commit()

    @staticmethod
    def record_download(file_id: str, accessed_at: datetime) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE files SET downloads = downloads + 1, last_accessed_at = ? WHERE file_id = ?",
                (to_iso(accessed_at), file_id)
            )
            conn.commit()

    @staticmethod
    def append_version(file_id: str, version: FileVersion, updated_at: datetime) -> None:
        """
        Append a version and move the file's current content pointer to it.
        """
        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                FileRepository._insert_version(cursor, file_id, version)
                cursor.execute(
                    """
                    UPDATE files
                    SET blob_key = ?, size = ?, encryption_iv = ?, checksum = ?, updated_at = ?
                    WHERE file_id = ?
                    """,
                    (
                        version.blob_key, version.size, version.encryption_iv,
                        version.checksum, to_iso(updated_at), file_id,
                    )
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    @staticmethod
    def add_shared_user(file_id: str, user_id: str, granted_at: datetime) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO file_shared_with (file_id, user_id, granted_at) VALUES (?, ?, ?)",
                (file_id, user_id, to_iso(granted_at))
            )
            conn.commit()

    @staticmethod
    def remove_shared_user(file_id: str, user_id: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM file_shared_with WHERE file_id = ? AND user_id = ?",
                (file_id, user_id)
            )
            conn.commit()
            return cursor.rowcount > 0
