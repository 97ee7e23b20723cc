"""Error types raised across the indexer's public surface.

Only a few failures are allowed to reach callers: the store could not be
opened, a maintenance call named a category the indexer does not know, or
a rebuild was requested without an authoritative record source. Everything
else (transaction failures, unparsable URLs) is logged and degraded inside
the component that hit it.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    STORE_TRANSACTION_FAILED = "STORE_TRANSACTION_FAILED"
    UNKNOWN_CATEGORY = "UNKNOWN_CATEGORY"
    RECORD_SOURCE_MISSING = "RECORD_SOURCE_MISSING"


class UrlIndexerError(Exception):
    """Base error carrying a machine-readable code."""

    def __init__(self, code: ErrorCode, message: str, *, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, object]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class StoreOpenError(UrlIndexerError):
    def __init__(self, message: str = "unable to open index store") -> None:
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message)


class IndexStoreError(UrlIndexerError):
    """A write transaction failed and was rolled back."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.STORE_TRANSACTION_FAILED, message, recoverable=True)


class UnknownCategoryError(UrlIndexerError):
    def __init__(self, category: str) -> None:
        super().__init__(ErrorCode.UNKNOWN_CATEGORY, f"unknown type: {category!r}")
        self.category = category


class RecordSourceMissingError(UrlIndexerError):
    def __init__(self) -> None:
        super().__init__(
            ErrorCode.RECORD_SOURCE_MISSING,
            "reindex requires a record source to read authoritative records from",
        )
