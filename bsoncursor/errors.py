"""Exceptions raised while walking BSON buffers."""

from __future__ import annotations


class BSONCursorError(ValueError):
    """Base class for recoverable errors caused by bad input data."""


class MalformedHeaderError(BSONCursorError):
    """The length prefix or terminator of a document is inconsistent."""


class CorruptElementError(BSONCursorError):
    """An element is truncated or its framing is inconsistent."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset

    def __str__(self) -> str:
        message = super().__str__()
        if self.offset is None:
            return message
        return f"{message} (at offset {self.offset})"


class UnknownTypeError(CorruptElementError):
    """An element carries a type tag outside the recognized set."""

    def __init__(self, tag: int, offset: int | None = None) -> None:
        super().__init__(f"Unknown BSON type tag 0x{tag:02x}", offset)
        self.tag = tag


class ValueEncodingError(BSONCursorError):
    """A value cannot be represented by the requested wire type."""


class ContractViolation(AssertionError):
    """
    API misuse by the caller.

    Raised for reading an unpositioned cursor, overwriting with a value of a
    different wire type or width, and inverted subsequence ranges. Correct
    callers never see it, so nothing in this package catches it.
    """
