"""Tests for log masking and request id stamping."""

import logging

from common.logging_config import (
    NO_REQUEST_ID,
    RequestContextFilter,
    SensitiveDataFilter,
    current_request_id,
    mask_sensitive,
    reset_request_id,
    set_request_id,
    setup_logging,
)


def _record(msg, args=None):
    return logging.LogRecord("vault.test", logging.INFO, __file__, 1, msg, args, None)


class TestMasking:
    def test_password_and_api_key(self):
        masked = mask_sensitive("login password=hunter2 api_key=abc123")
        assert "hunter2" not in masked
        assert "abc123" not in masked

    def test_bearer_and_vault_keys(self):
        masked = mask_sensitive("Authorization header Bearer vlt_0f1e2d3c-aaaa-bbbb")
        assert "0f1e2d3c" not in masked

        masked = mask_sensitive("rotated key vlt_0f1e2d3c-4b5a-6978-8a9b-0c1d2e3f4a5b")
        assert masked == "rotated key vlt_***MASKED***"

    def test_share_url_token(self):
        token = "ab" * 32
        masked = mask_sensitive(f"GET /share/{token}/download")
        assert token not in masked
        assert masked == "GET /share/***MASKED***/download"

    def test_plain_text_is_untouched(self):
        assert mask_sensitive("Stored blob u1/1_ab.txt (6 bytes)") == "Stored blob u1/1_ab.txt (6 bytes)"

    def test_filter_masks_args(self):
        record = _record("user %s used %s", ("ada", "password=hunter2"))
        SensitiveDataFilter().filter(record)
        assert "hunter2" not in record.getMessage()


class TestRequestId:
    def test_default_when_unbound(self):
        assert current_request_id() == NO_REQUEST_ID

    def test_bound_id_is_stamped_and_reset(self):
        token = set_request_id("req-1")
        try:
            record = _record("hello")
            RequestContextFilter().filter(record)
            assert record.request_id == "req-1"
        finally:
            reset_request_id(token)

        assert current_request_id() == NO_REQUEST_ID

    def test_component_lines_carry_request_id(self, capsys):
        logger = setup_logging("vault-logging-test", log_level="INFO")
        token = set_request_id("req-42")
        try:
            logging.getLogger("vault-logging-test.files").info("uploaded")
        finally:
            reset_request_id(token)

        out = capsys.readouterr().out
        assert "[req-42] - uploaded" in out
        assert logger.propagate is False
