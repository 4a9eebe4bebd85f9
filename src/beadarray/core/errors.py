"""
Decode error taxonomy.

Errors are carried inside Err values rather than raised. They subclass
Exception so that Err.unwrap() can raise them for callers who prefer
try/except.
"""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for every failure reported by a beadarray decoder."""


class FormatError(DecodeError):
    """Bad magic, unsupported layout, non-empty reserved field, bad id."""


class TruncatedReadError(DecodeError):
    """Fewer bytes were available than the field or array requires."""

    def __init__(self, expected: int, got: int, what: str = "field") -> None:
        super().__init__(f"Truncated read of {what}: expected {expected} bytes, got {got}")
        self.expected = expected
        self.got = got
        self.what = what


class EncodingError(DecodeError):
    """A text or decimal field could not be interpreted."""


class VersionUnsupportedError(DecodeError):
    """The file or record version does not support the requested field."""

    def __init__(self, message: str, version: int | None = None) -> None:
        super().__init__(message)
        self.version = version


class StorageError(DecodeError):
    """Open, seek or read failure of the underlying file."""


class StoreClosedError(StorageError):
    """An accessor was used after the store was closed."""
