"""Error hierarchy for notionsync.

Every error raised by the package inherits from :class:`NotionSyncError`.
Each carries a machine-readable ``code`` (from :class:`ErrorCode`), a
human-readable ``message``, an optional structured ``context`` dict, and an
optional ``cause`` (chained exception).

Orchestrators record failures in their results as ``(path, reason,
message)`` triples; :attr:`NotionSyncError.reason` is the lower-case form of
the code used there.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the package can raise."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    CONFLICT = "CONFLICT"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    FRONTMATTER_PARSE_ERROR = "FRONTMATTER_PARSE_ERROR"
    DUPLICATE_TITLES = "DUPLICATE_TITLES"
    NOT_A_DIRECTORY = "NOT_A_DIRECTORY"
    LOCAL_IO_ERROR = "LOCAL_IO_ERROR"
    PROVISION_FAILED = "PROVISION_FAILED"
    CONVERSION_ERROR = "CONVERSION_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionSyncError(Exception):
    """Base exception for all notionsync errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def reason(self) -> str:
        """Lower-case reason code, e.g. ``"rate_limited"``."""
        code = self.code.value if isinstance(self.code, ErrorCode) else str(self.code)
        return code.lower()

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Remote / transport errors
# ---------------------------------------------------------------------------

class BadRequestError(NotionSyncError):
    """Notion API returned 400 -- the request payload was invalid.

    Context keys: ``status_code``, ``notion_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.BAD_REQUEST,
            message=message,
            context=context,
            cause=cause,
        )


class UnauthorizedError(NotionSyncError):
    """Notion API returned 401 -- the integration token is invalid."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message=message,
            context=context,
            cause=cause,
        )


class ForbiddenError(NotionSyncError):
    """Notion API returned 403 -- the integration lacks access to a page.

    Context keys: ``status_code``, ``operation``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=message,
            context=context,
            cause=cause,
        )


class NotFoundError(NotionSyncError):
    """Notion API returned 404 -- the page or block does not exist.

    Context keys: ``status_code``, ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


class RateLimitError(NotionSyncError):
    """Notion API kept answering 429 until the retry budget ran out.

    Context keys: ``retry_after_seconds``, ``attempts``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RATE_LIMITED,
            message=message,
            context=context,
            cause=cause,
        )


class RemoteConflictError(NotionSyncError):
    """Notion API returned 409 -- a concurrent edit collided with ours."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message=message,
            context=context,
            cause=cause,
        )


class ApiError(NotionSyncError):
    """Any other non-retryable error status from the Notion API.

    Context keys: ``status_code``, ``notion_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.API_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NetworkError(NotionSyncError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class RetryExhaustedError(NotionSyncError):
    """All retry attempts have been used for a retryable server error.

    Context keys: ``attempts``, ``last_status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RETRY_EXHAUSTED,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Local errors
# ---------------------------------------------------------------------------

class FrontmatterError(NotionSyncError):
    """A document's header metadata could not be parsed.

    Context keys: ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.FRONTMATTER_PARSE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class DuplicateTitlesError(NotionSyncError):
    """Two documents in the same directory share an effective title.

    Context keys: ``duplicates`` mapping ``"<directory>/<title>"`` (just
    ``"<title>"`` at the root) to the clashing paths.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_TITLES,
            message=message,
            context=context,
            cause=cause,
        )


class SourceDirectoryError(NotionSyncError):
    """The sync source is missing or is not a directory."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NOT_A_DIRECTORY,
            message=message,
            context=context,
            cause=cause,
        )


class LocalIOError(NotionSyncError):
    """Reading or writing a local document failed.

    Context keys: ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.LOCAL_IO_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ProvisionError(NotionSyncError):
    """A directory page could not be created on the remote side.

    Every document below the failed directory is reported with this error.

    Context keys: ``directory``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PROVISION_FAILED,
            message=message,
            context=context,
            cause=cause,
        )


class ConversionError(NotionSyncError):
    """A document could not be converted between markdown and blocks.

    Context keys: ``path``, ``block_kind``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CONVERSION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )
