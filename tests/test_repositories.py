"""Integration tests for database repositories."""

import sqlite3
from datetime import timedelta

import pytest

from vault.database import get_db_connection
from vault.repositories.file_repository import FileRepository
from vault.repositories.share_link_repository import ShareLinkRepository
from vault.repositories.user_repository import UserRepository
from vault.types import FileRecord, FileVersion, ListFilter, ShareLink
from vault.utils import generate_uuid, utc_now


def make_record(owner_id: str, name: str = "report.pdf", size: int = 10, **overrides) -> FileRecord:
    now = overrides.pop("created_at", utc_now())
    file_id = generate_uuid()
    blob_key = f"{owner_id}/1_{file_id[:16]}.pdf"
    fields = dict(
        file_id=file_id,
        owner_id=owner_id,
        name=name,
        original_name=name,
        mime_type="application/pdf",
        size=size,
        blob_key=blob_key,
        encryption_iv="00" * 12,
        checksum="ab" * 32,
        created_at=now,
        updated_at=now,
        versions=[FileVersion(1, blob_key, size, "00" * 12, "ab" * 32, now, owner_id)],
    )
    fields.update(overrides)
    return FileRecord(**fields)


class TestDatabaseSchema:
    def test_tables_exist(self, test_db):
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row["name"] for row in cursor.fetchall()}

        assert {"users", "files", "file_tags", "file_versions", "file_shared_with", "share_links"} <= tables


class TestUserRepository:
    def test_create_and_lookup(self, test_db):
        created = UserRepository.create_user(
            user_id="u-1", email="ada@example.com", first_name="Ada", last_name="Lovelace",
            password_hash="hash", api_key="vlt_key", created_at=utc_now(), storage_quota=500,
        )

        assert UserRepository.get_by_user_id("u-1").email == created.email
        assert UserRepository.get_by_email("ADA@example.com").user_id == "u-1"
        assert UserRepository.get_by_api_key("vlt_key").storage_quota == 500
        assert UserRepository.get_by_api_key("vlt_other") is None

    def test_duplicate_email_is_rejected(self, test_db):
        UserRepository.create_user("u-1", "ada@example.com", "Ada", "L", "hash", "vlt_1", utc_now())

        with pytest.raises(sqlite3.IntegrityError):
            UserRepository.create_user("u-2", "ada@example.com", "Ada", "L", "hash", "vlt_2", utc_now())

    def test_update_api_key(self, test_db):
        UserRepository.create_user("u-1", "ada@example.com", "Ada", "L", "hash", "vlt_old", utc_now())

        UserRepository.update_api_key("u-1", "vlt_new", utc_now())

        assert UserRepository.get_by_api_key("vlt_old") is None
        assert UserRepository.get_by_api_key("vlt_new").user_id == "u-1"


class TestFileRepository:
    def test_create_and_get_round_trip(self, test_db):
        record = make_record("u-1", tags=["q3", "finance"], folder_id="f-1")

        FileRepository.create_file(record)
        loaded = FileRepository.get_by_id(record.file_id)

        assert loaded.name == "report.pdf"
        assert loaded.tags == ["finance", "q3"]
        assert loaded.folder_id == "f-1"
        assert loaded.versions == record.versions
        assert loaded.created_at == record.created_at
        assert loaded.share_links == []

    def test_get_missing_returns_none(self, test_db):
        assert FileRepository.get_by_id("missing") is None

    def test_create_file_commits_on_its_own_connection(self, test_db):
        record = make_record("u-1", tags=["q3"])

        FileRepository.create_file(record)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM files WHERE file_id = ?", (record.file_id,))
            assert cursor.fetchone()[0] == 1
            cursor.execute("SELECT tag FROM file_tags WHERE file_id = ?", (record.file_id,))
            assert [row["tag"] for row in cursor.fetchall()] == ["q3"]
            cursor.execute("SELECT version FROM file_versions WHERE file_id = ?", (record.file_id,))
            assert [row["version"] for row in cursor.fetchall()] == [1]

    def test_create_file_on_caller_connection_waits_for_commit(self, test_db):
        record = make_record("u-1")

        with get_db_connection() as conn:
            FileRepository.create_file(record, conn=conn)
            conn.rollback()

        assert FileRepository.get_by_id(record.file_id) is None

    def test_sum_active_size_ignores_trash(self, test_db):
        active = make_record("u-1", size=30)
        trashed = make_record("u-1", size=70)
        other_user = make_record("u-2", size=1000)
        for record in (active, trashed, other_user):
            FileRepository.create_file(record)

        FileRepository.mark_deleted(trashed.file_id, utc_now(), "u-1")

        assert FileRepository.sum_active_size("u-1") == 30
        assert FileRepository.sum_active_size("nobody") == 0

    def test_mark_deleted_keeps_first_timestamp(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        first = utc_now()

        FileRepository.mark_deleted(record.file_id, first, "u-1")
        FileRepository.mark_deleted(record.file_id, first + timedelta(hours=1), "u-1")

        assert FileRepository.get_by_id(record.file_id).deleted_at == first

    def test_clear_deleted(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        FileRepository.mark_deleted(record.file_id, utc_now(), "u-1")

        FileRepository.clear_deleted(record.file_id, utc_now())

        loaded = FileRepository.get_by_id(record.file_id)
        assert loaded.deleted_at is None
        assert loaded.deleted_by is None

    def test_find_many_sorts_by_size(self, test_db):
        for size in (5, 50, 20):
            FileRepository.create_file(make_record("u-1", size=size))

        records, total = FileRepository.find_many("u-1", ListFilter(sort_by="size", order="asc"))

        assert total == 3
        assert [r.size for r in records] == [5, 20, 50]

    def test_find_many_deleted_lists_trash(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        FileRepository.create_file(make_record("u-1"))
        FileRepository.mark_deleted(record.file_id, utc_now(), "u-1")

        records, total = FileRepository.find_many("u-1", ListFilter(), deleted=True)

        assert total == 1
        assert records[0].file_id == record.file_id

    def test_total_pages(self):
        assert FileRepository.total_pages(0, 50) == 0
        assert FileRepository.total_pages(50, 50) == 1
        assert FileRepository.total_pages(51, 50) == 2

    def test_record_download_increments(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)

        FileRepository.record_download(record.file_id, utc_now())
        FileRepository.record_download(record.file_id, utc_now())

        assert FileRepository.get_by_id(record.file_id).downloads == 2

    def test_append_version_moves_pointer(self, test_db):
        record = make_record("u-1", size=10)
        FileRepository.create_file(record)
        now = utc_now()
        version = FileVersion(2, "u-1/2_new.pdf", 99, "11" * 12, "cd" * 32, now, "u-1")

        FileRepository.append_version(record.file_id, version, now)

        loaded = FileRepository.get_by_id(record.file_id)
        assert loaded.size == 99
        assert loaded.blob_key == "u-1/2_new.pdf"
        assert loaded.current_version == version
        assert len(loaded.versions) == 2

    def test_duplicate_version_number_is_rejected(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)

        with pytest.raises(sqlite3.IntegrityError):
            FileRepository.append_version(record.file_id, record.versions[0], utc_now())

        assert FileRepository.get_by_id(record.file_id).size == record.size

    def test_shared_users(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)

        FileRepository.add_shared_user(record.file_id, "u-2", utc_now())
        FileRepository.add_shared_user(record.file_id, "u-2", utc_now())

        assert FileRepository.get_by_id(record.file_id).shared_with == ["u-2"]
        assert FileRepository.remove_shared_user(record.file_id, "u-2") is True
        assert FileRepository.remove_shared_user(record.file_id, "u-2") is False


class TestShareLinkRepository:
    def _link(self, file_id: str, token: str, **overrides) -> ShareLink:
        fields = dict(
            token=token,
            file_id=file_id,
            created_by="u-1",
            permission="view",
            expires_at=None,
            password_hash=None,
            emails=[],
            created_at=utc_now(),
        )
        fields.update(overrides)
        return ShareLink(**fields)

    def test_add_and_get(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        expires = utc_now() + timedelta(days=2)

        ShareLinkRepository.add_share_link(
            self._link(record.file_id, "t1", expires_at=expires, emails=["a@example.com"])
        )

        link = ShareLinkRepository.get_by_token("t1")
        assert link.expires_at == expires
        assert link.emails == ["a@example.com"]
        assert ShareLinkRepository.get_by_token("t2") is None

    def test_token_cannot_be_reused(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        ShareLinkRepository.add_share_link(self._link(record.file_id, "t1"))

        with pytest.raises(sqlite3.IntegrityError):
            ShareLinkRepository.add_share_link(self._link(record.file_id, "t1", permission="edit"))

        assert ShareLinkRepository.get_by_token("t1").permission == "view"

    def test_links_load_with_file(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        ShareLinkRepository.add_share_link(self._link(record.file_id, "t1"))
        ShareLinkRepository.add_share_link(self._link(record.file_id, "t2"))

        assert [link.token for link in FileRepository.get_by_id(record.file_id).share_links] == ["t1", "t2"]

    def test_list_for_file_opens_its_own_connection(self, test_db):
        record = make_record("u-1")
        FileRepository.create_file(record)
        ShareLinkRepository.add_share_link(self._link(record.file_id, "t1"))

        assert [link.token for link in ShareLinkRepository.list_for_file(record.file_id)] == ["t1"]
        assert ShareLinkRepository.list_for_file("missing") == []
