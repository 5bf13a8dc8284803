"""Tests for share link creation, validation and shared downloads."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from vault.exceptions import (
    AccessDeniedError,
    ExpiredError,
    InvalidQueryError,
    NotFoundError,
    WrongPasswordError,
)
from vault.mailer import SHARE_TEMPLATE
from vault.repositories.file_repository import FileRepository
from vault.repositories.share_link_repository import ShareLinkRepository
from vault.services.share_service import ShareService, build_share_url


@pytest.fixture
def stored_file(file_service, owner):
    return asyncio.run(
        file_service.upload(owner, b"shared contents", "plan.pdf", "application/pdf")
    )


class TestCreateShareLink:
    def test_token_and_url(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner)

        assert len(created.token) == 64
        int(created.token, 16)
        assert created.share_url == f"https://vault.example.com/share/{created.token}"

    def test_tokens_are_unique(self, share_service, stored_file, owner):
        tokens = {share_service.create_share_link(stored_file.file_id, owner).token for _ in range(5)}
        assert len(tokens) == 5

    def test_links_accumulate_on_the_file(self, share_service, stored_file, owner):
        first = share_service.create_share_link(stored_file.file_id, owner)
        second = share_service.create_share_link(stored_file.file_id, owner, permission="edit")

        links = FileRepository.get_by_id(stored_file.file_id).share_links
        assert {link.token for link in links} == {first.token, second.token}

    def test_password_is_stored_hashed(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, password="hunter2")

        link = ShareLinkRepository.get_by_token(created.token)
        assert link.has_password
        assert link.password_hash != "hunter2"
        assert link.password_hash.startswith("$2")

    def test_recipients_are_emailed(self, share_service, email_sender, stored_file, owner):
        created = share_service.create_share_link(
            stored_file.file_id, owner, emails=["a@example.com", "A@example.com", "b@example.com"]
        )

        assert [m.to for m in email_sender.messages] == ["a@example.com", "b@example.com"]
        message = email_sender.messages[0]
        assert message.subject == "Olivia shared a file with you"
        assert message.template == SHARE_TEMPLATE
        assert message.data == {
            "file_name": "plan.pdf",
            "share_url": created.share_url,
            "sender": "Olivia Owner",
        }

    def test_email_failure_keeps_the_link(self, file_service, failing_email_sender, stored_file, owner):
        service = ShareService(file_service=file_service, email_sender=failing_email_sender)

        created = service.create_share_link(stored_file.file_id, owner, emails=["a@example.com", "b@example.com"])

        assert failing_email_sender.attempts == 2
        access = service.validate_share_link(created.token)
        assert access.file.file_id == stored_file.file_id

    def test_non_owner_cannot_share(self, share_service, stored_file, stranger):
        with pytest.raises(AccessDeniedError):
            share_service.create_share_link(stored_file.file_id, stranger)

    def test_unknown_permission_is_rejected(self, share_service, stored_file, owner):
        with pytest.raises(InvalidQueryError):
            share_service.create_share_link(stored_file.file_id, owner, permission="admin")

    def test_password_longer_than_bcrypt_limit_is_rejected(self, share_service, stored_file, owner):
        with pytest.raises(InvalidQueryError):
            share_service.create_share_link(stored_file.file_id, owner, password="p" * 73)

        assert FileRepository.get_by_id(stored_file.file_id).share_links == []

    def test_password_at_bcrypt_limit_is_accepted(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, password="p" * 72)

        assert share_service.validate_share_link(created.token, password="p" * 72).link.has_password
        with pytest.raises(WrongPasswordError):
            share_service.validate_share_link(created.token, password="p" * 73)

    def test_trashed_file_cannot_be_shared(self, share_service, file_service, stored_file, owner):
        file_service.soft_delete(stored_file.file_id, owner.user_id)

        with pytest.raises(NotFoundError):
            share_service.create_share_link(stored_file.file_id, owner)


class TestValidateShareLink:
    def test_unknown_token(self, share_service, test_db):
        with pytest.raises(NotFoundError):
            share_service.validate_share_link("f" * 64)

    def test_open_link_grants_access(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, permission="edit")

        access = share_service.validate_share_link(created.token)

        assert access.file.file_id == stored_file.file_id
        assert access.permission == "edit"

    def test_expired_link(self, share_service, stored_file, owner):
        created = share_service.create_share_link(
            stored_file.file_id, owner, expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
        )

        with pytest.raises(ExpiredError):
            share_service.validate_share_link(created.token)

    def test_future_expiry_is_valid(self, share_service, stored_file, owner):
        created = share_service.create_share_link(
            stored_file.file_id, owner, expires_at=datetime.now(timezone.utc) + timedelta(days=1)
        )

        assert share_service.validate_share_link(created.token).link.expires_at is not None

    def test_naive_expiry_is_treated_as_utc(self, share_service, stored_file, owner):
        created = share_service.create_share_link(
            stored_file.file_id, owner, expires_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
        )

        with pytest.raises(ExpiredError):
            share_service.validate_share_link(created.token)

    def test_password_required(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, password="hunter2")

        with pytest.raises(WrongPasswordError):
            share_service.validate_share_link(created.token)
        with pytest.raises(WrongPasswordError):
            share_service.validate_share_link(created.token, password="hunter3")

        assert share_service.validate_share_link(created.token, password="hunter2").link.has_password

    def test_trashed_file_link_is_not_found(self, share_service, file_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner)
        file_service.soft_delete(stored_file.file_id, owner.user_id)

        with pytest.raises(NotFoundError):
            share_service.validate_share_link(created.token)

        file_service.restore(stored_file.file_id, owner.user_id)
        assert share_service.validate_share_link(created.token).file.file_id == stored_file.file_id


class TestRecipientRestriction:
    def test_open_link_permits_anyone(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner)
        access = share_service.validate_share_link(created.token)

        assert access.permits(None)
        assert access.permits("anyone@example.com")

    def test_restricted_link_checks_email_case_insensitively(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, emails=["Guest@Example.com"])
        access = share_service.validate_share_link(created.token)

        assert access.permits("guest@example.com")
        assert not access.permits("other@example.com")
        assert not access.permits(None)

    def test_authorize_denies_unlisted_email(self, share_service, stored_file, owner):
        created = share_service.create_share_link(stored_file.file_id, owner, emails=["guest@example.com"])

        with pytest.raises(AccessDeniedError):
            share_service.authorize(created.token, email="intruder@example.com")

        assert share_service.authorize(created.token, email="GUEST@example.com").permission == "view"


class TestSharedDownload:
    @pytest.mark.asyncio
    async def test_download_via_link(self, share_service, file_service, owner):
        record = await file_service.upload(owner, b"shared contents", "plan.pdf", "application/pdf")
        created = share_service.create_share_link(record.file_id, owner, password="pw")

        downloaded, data = await share_service.download_shared(created.token, password="pw")

        assert data == b"shared contents"
        assert downloaded.downloads == 1
        assert FileRepository.get_by_id(record.file_id).downloads == 1

    @pytest.mark.asyncio
    async def test_download_requires_valid_link(self, share_service, file_service, owner):
        record = await file_service.upload(owner, b"x", "x.txt", "text/plain")
        created = share_service.create_share_link(record.file_id, owner, emails=["guest@example.com"])

        with pytest.raises(AccessDeniedError):
            await share_service.download_shared(created.token)

        assert FileRepository.get_by_id(record.file_id).downloads == 0


def test_build_share_url_strips_trailing_slash():
    assert build_share_url("abc", "https://files.example.com/") == "https://files.example.com/share/abc"
