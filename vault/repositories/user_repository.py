"""User repository for database operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from common.logging_config import get_logger
from vault.database import get_db_connection
from vault.types import AuthenticatedUser
from vault.utils import from_iso, to_iso

logger = get_logger(__name__)

USER_COLUMNS = """
    user_id, email, first_name, last_name, password_hash, api_key,
    storage_quota, created_at, key_updated_at
"""


@dataclass
class User:
    user_id: str
    email: str
    first_name: str
    last_name: str
    password_hash: str
    api_key: Optional[str]
    storage_quota: Optional[int]
    created_at: datetime
    key_updated_at: Optional[datetime]

    def to_identity(self) -> AuthenticatedUser:
        return AuthenticatedUser(
            user_id=self.user_id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            storage_quota=self.storage_quota,
        )


def _row_to_user(row) -> User:
    return User(
        user_id=row["user_id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        password_hash=row["password_hash"],
        api_key=row["api_key"],
        storage_quota=row["storage_quota"],
        created_at=from_iso(row["created_at"]),
        key_updated_at=from_iso(row["key_updated_at"]),
    )


class UserRepository:
    @staticmethod
    def create_user(
        user_id: str,
        email: str,
        first_name: str,
        last_name: str,
        password_hash: str,
        api_key: str,
        created_at: datetime,
        storage_quota: Optional[int] = None,
    ) -> User:
        logger.debug(f"Creating user: {email} [user_id={user_id}]")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"""
                    INSERT INTO users ({USER_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, email, first_name, last_name, password_hash, api_key,
                     storage_quota, to_iso(created_at), to_iso(created_at))
                )
                conn.commit()
                logger.info(f"User created successfully: {email} [user_id={user_id}]")
            except Exception as e:
                logger.error(f"Failed to create user {email}: {e}", exc_info=True)
                raise

        return User(
            user_id=user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            api_key=api_key,
            storage_quota=storage_quota,
            created_at=created_at,
            key_updated_at=created_at,
        )

    @staticmethod
    def get_by_email(email: str) -> Optional[User]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE email = ? COLLATE NOCASE",
                (email,)
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    @staticmethod
    def get_by_api_key(api_key: str) -> Optional[User]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE api_key = ?", (api_key,))
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    @staticmethod
    def get_by_user_id(user_id: str) -> Optional[User]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    @staticmethod
    def update_api_key(user_id: str, api_key: str, updated_at: datetime) -> None:
        logger.debug(f"Rotating API key [user_id={user_id}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET api_key = ?, key_updated_at = ? WHERE user_id = ?",
                (api_key, to_iso(updated_at), user_id)
            )
            conn.commit()
