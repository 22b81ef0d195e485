"""Tests for notionsync.errors and notionsync.config.

Covers:
  - ErrorCode values and the lower-case reason used in run results
  - context / cause / __cause__ chaining and repr
  - every error subclass maps to its code
  - NotionSyncConfig defaults, validation and token masking
  - names exported from the package root
"""

from __future__ import annotations

import pytest

import notionsync
from notionsync.config import CONFLICT_STRATEGIES, NotionSyncConfig
from notionsync.errors import (
    ApiError,
    BadRequestError,
    ConversionError,
    DuplicateTitlesError,
    ErrorCode,
    ForbiddenError,
    FrontmatterError,
    LocalIOError,
    NetworkError,
    NotFoundError,
    NotionSyncError,
    ProvisionError,
    RateLimitError,
    RemoteConflictError,
    RetryExhaustedError,
    SourceDirectoryError,
    UnauthorizedError,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

ERROR_CODES = [
    (BadRequestError, ErrorCode.BAD_REQUEST),
    (UnauthorizedError, ErrorCode.UNAUTHORIZED),
    (ForbiddenError, ErrorCode.FORBIDDEN),
    (NotFoundError, ErrorCode.NOT_FOUND),
    (RateLimitError, ErrorCode.RATE_LIMITED),
    (RemoteConflictError, ErrorCode.CONFLICT),
    (ApiError, ErrorCode.API_ERROR),
    (NetworkError, ErrorCode.NETWORK_ERROR),
    (RetryExhaustedError, ErrorCode.RETRY_EXHAUSTED),
    (FrontmatterError, ErrorCode.FRONTMATTER_PARSE_ERROR),
    (DuplicateTitlesError, ErrorCode.DUPLICATE_TITLES),
    (SourceDirectoryError, ErrorCode.NOT_A_DIRECTORY),
    (LocalIOError, ErrorCode.LOCAL_IO_ERROR),
    (ProvisionError, ErrorCode.PROVISION_FAILED),
    (ConversionError, ErrorCode.CONVERSION_ERROR),
]


class TestErrors:
    @pytest.mark.parametrize("cls,code", ERROR_CODES)
    def test_subclass_codes(self, cls, code):
        err = cls("something broke")
        assert isinstance(err, NotionSyncError)
        assert err.code is code
        assert err.reason == code.value.lower()
        assert err.context == {}
        assert str(err) == "something broke"

    def test_error_code_is_a_string(self):
        assert ErrorCode.PROVISION_FAILED == "PROVISION_FAILED"

    def test_reason_for_plain_string_code(self):
        assert NotionSyncError("CUSTOM_CODE", "x").reason == "custom_code"

    def test_cause_is_chained(self):
        original = OSError("disk full")
        err = LocalIOError("cannot write a.md", context={"path": "a.md"}, cause=original)
        assert err.cause is original
        assert err.__cause__ is original
        assert err.context == {"path": "a.md"}

    def test_repr_includes_context_only_when_present(self):
        assert repr(ApiError("bad")) == "ApiError(code=<ErrorCode.API_ERROR: 'API_ERROR'>, message='bad')"
        assert "context={'status_code': 500}" in repr(ApiError("bad", context={"status_code": 500}))

    def test_catchable_as_base(self):
        with pytest.raises(NotionSyncError) as exc_info:
            raise ProvisionError("no page", context={"directory": "guide"})
        assert exc_info.value.reason == "provision_failed"


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestConfigDefaults:
    def test_defaults(self):
        config = NotionSyncConfig()
        assert config.conflict_strategy == "manual"
        assert config.resolve_links is True
        assert config.preserve_metadata is True
        assert config.skip_child_links is False
        assert config.base_url == "https://api.notion.com/v1"
        assert config.metrics is None

    @pytest.mark.parametrize("strategy", CONFLICT_STRATEGIES)
    def test_every_strategy_accepted(self, strategy):
        assert NotionSyncConfig(conflict_strategy=strategy).conflict_strategy == strategy

    @pytest.mark.parametrize("url", [
        "http://localhost:8080/v1",
        "http://127.0.0.1/v1",
        "https://proxy.example.com/v1",
    ])
    def test_allowed_base_urls(self, url):
        assert NotionSyncConfig(base_url=url).base_url == url


class TestConfigValidation:
    def test_insecure_remote_http(self):
        with pytest.raises(ValueError, match="insecure HTTP"):
            NotionSyncConfig(base_url="http://api.notion.com/v1")

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="conflict_strategy"):
            NotionSyncConfig(conflict_strategy="merge")

    @pytest.mark.parametrize("field,value", [
        ("retry_max_attempts", 0),
        ("retry_base_delay", -1.0),
        ("retry_max_delay", -0.5),
        ("min_request_interval", -0.1),
        ("timeout_seconds", 0),
        ("max_nesting_depth", 0),
    ])
    def test_out_of_range_values(self, field, value):
        with pytest.raises(ValueError, match=field):
            NotionSyncConfig(**{field: value})

    def test_zero_interval_disables_pacing(self):
        assert NotionSyncConfig(min_request_interval=0).min_request_interval == 0


class TestTokenMasking:
    def test_repr_shows_last_four_characters(self):
        text = repr(NotionSyncConfig(token="secret_abcdefgh1234"))
        assert "secret_abcdefgh1234" not in text
        assert "token='...1234'" in text

    def test_short_token_fully_masked(self):
        assert "token='****'" in repr(NotionSyncConfig(token="abc"))

    def test_other_fields_still_shown(self):
        assert "conflict_strategy='manual'" in repr(NotionSyncConfig(token="secret_abcdefgh1234"))


# ---------------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------------

class TestPublicExports:
    def test_all_names_are_importable(self):
        for name in notionsync.__all__:
            assert hasattr(notionsync, name), f"{name!r} is in __all__ but not importable"

    def test_entry_points_are_exported(self):
        expected = [
            "SyncOrchestrator",
            "PullOrchestrator",
            "Auditor",
            "NotionConnector",
            "NotionSyncConfig",
            "AuditStatus",
            "AuditReport",
        ]
        for name in expected:
            assert name in notionsync.__all__, f"{name!r} missing from __all__"

    @pytest.mark.parametrize("cls,code", ERROR_CODES)
    def test_every_error_class_is_exported(self, cls, code):
        assert cls.__name__ in notionsync.__all__
