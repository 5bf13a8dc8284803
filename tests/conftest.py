"""Shared pytest fixtures for all tests."""

import asyncio
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest

from vault.crypto import CryptoEnvelope, generate_encryption_key, load_encryption_key
from vault.database import init_database
from vault.mailer import EmailMessage, EmailSender
from vault.notifications import NotificationPublisher
from vault.object_store import LocalObjectStore, ObjectStore
from vault.repositories.user_repository import UserRepository
from vault.services.file_service import FileService
from vault.services.share_service import ShareService
from vault.types import AuthenticatedUser
from vault.utils import generate_uuid, utc_now


class RecordingPublisher(NotificationPublisher):
    """Publisher that keeps every event for assertions."""

    def __init__(self):
        self.events: List[tuple] = []

    def publish(self, channel: str, event: str, payload: Dict) -> None:
        self.events.append((channel, event, payload))


class FailingPublisher(NotificationPublisher):
    def publish(self, channel: str, event: str, payload: Dict) -> None:
        raise ConnectionError("pub/sub broker is down")


class RecordingEmailSender(EmailSender):
    """Email sender that keeps every message for assertions."""

    def __init__(self):
        self.messages: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.messages.append(message)


class FailingEmailSender(EmailSender):
    def __init__(self):
        self.attempts = 0

    def send(self, message: EmailMessage) -> None:
        self.attempts += 1
        raise ConnectionError("SMTP relay refused connection")


class GatedObjectStore(ObjectStore):
    """
    Wraps a store so that puts block until `parties` puts are in flight.
    Used to force concurrent uploads to interleave deterministically.
    """

    def __init__(self, inner: ObjectStore, parties: int = 2):
        self.inner = inner
        self.parties = parties
        self.started = 0
        self.gate: Optional[asyncio.Event] = None

    async def put(self, key, data, content_type, metadata):
        if self.gate is None:
            self.gate = asyncio.Event()
        self.started += 1
        if self.started >= self.parties:
            self.gate.set()
        await self.gate.wait()
        await self.inner.put(key, data, content_type, metadata)

    async def get(self, key):
        return await self.inner.get(key)


@pytest.fixture
def test_db(monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("vault.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("vault.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture
def encryption_key() -> bytes:
    return load_encryption_key(generate_encryption_key())


@pytest.fixture
def crypto(encryption_key) -> CryptoEnvelope:
    return CryptoEnvelope(encryption_key)


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "blobs")


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def file_service(test_db, crypto, object_store, publisher) -> FileService:
    return FileService(crypto=crypto, object_store=object_store, publisher=publisher)


@pytest.fixture
def share_service(file_service, email_sender) -> ShareService:
    return ShareService(
        file_service=file_service,
        email_sender=email_sender,
        app_url="https://vault.example.com",
    )


@pytest.fixture
def make_user(test_db) -> Callable[..., AuthenticatedUser]:
    """
    Factory creating users directly in the database. Password hashing is
    skipped since these users never log in.
    """
    def _make_user(
        email: Optional[str] = None,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        storage_quota: Optional[int] = None,
    ) -> AuthenticatedUser:
        user_id = generate_uuid()
        UserRepository.create_user(
            user_id=user_id,
            email=email or f"{user_id[:8]}@example.com",
            first_name=first_name,
            last_name=last_name,
            password_hash="not-a-real-hash",
            api_key=f"vlt_{user_id}",
            created_at=utc_now(),
            storage_quota=storage_quota,
        )
        return UserRepository.get_by_user_id(user_id).to_identity()

    return _make_user


@pytest.fixture
def owner(make_user) -> AuthenticatedUser:
    return make_user(email="owner@example.com", first_name="Olivia", last_name="Owner")


@pytest.fixture
def stranger(make_user) -> AuthenticatedUser:
    return make_user(email="stranger@example.com", first_name="Sam", last_name="Stranger")


@pytest.fixture
def failing_publisher() -> FailingPublisher:
    return FailingPublisher()


@pytest.fixture
def failing_email_sender() -> FailingEmailSender:
    return FailingEmailSender()


@pytest.fixture
def gated_store(object_store) -> GatedObjectStore:
    return GatedObjectStore(object_store, parties=2)
