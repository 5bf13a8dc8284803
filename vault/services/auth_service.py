"""Authentication service for business logic."""

import sqlite3
from typing import Optional

from common.logging_config import get_logger
from vault.auth import generate_api_key, hash_password, verify_password
from vault.exceptions import InvalidCredentialsError, UserAlreadyExistsError
from vault.repositories.user_repository import UserRepository
from vault.types import AuthenticatedUser
from vault.utils import generate_uuid, utc_now

logger = get_logger(__name__)


class AuthService:
    def __init__(self):
        self.user_repo = UserRepository()

    def register_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        storage_quota: Optional[int] = None,
    ) -> tuple[str, str]:
        email = email.strip().lower()
        logger.info(f"Attempting to register user: {email}")
        if self.user_repo.get_by_email(email) is not None:
            logger.warning(f"Registration failed: email '{email}' already exists")
            raise UserAlreadyExistsError(f"Email '{email}' is already registered")

        user_id = generate_uuid()
        api_key = generate_api_key()

        try:
            self.user_repo.create_user(
                user_id=user_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=hash_password(password),
                api_key=api_key,
                created_at=utc_now(),
                storage_quota=storage_quota,
            )
        except sqlite3.IntegrityError:
            logger.warning(f"Registration failed due to integrity error: email '{email}'")
            raise UserAlreadyExistsError(f"Email '{email}' is already registered")

        logger.info(f"Successfully registered user: {email} [user_id={user_id}]")
        return api_key, user_id

    def login_user(self, email: str, password: str) -> str:
        email = email.strip().lower()
        logger.info(f"Login attempt for user: {email}")
        user = self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Login failed for '{email}'")
            raise InvalidCredentialsError("Invalid email or password")

        new_api_key = generate_api_key()
        self.user_repo.update_api_key(user.user_id, new_api_key, utc_now())
        logger.info(f"Successfully logged in user: {email} [user_id={user.user_id}]")
        return new_api_key

    def validate_api_key(self, api_key: str) -> Optional[AuthenticatedUser]:
        logger.debug("Validating API key")
        user = self.user_repo.get_by_api_key(api_key)
        if user is None:
            logger.warning("API key validation failed: invalid key")
            return None
        return user.to_identity()
