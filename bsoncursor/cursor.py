"""
Byte Cursor - Bounds-checked navigation over a BSON buffer.

Speed features:
  - Header check without scanning elements (instant document identification)
  - Skips elements using length prefixes only, nothing is decoded
  - Works on absolute offsets into a shared buffer, no slicing or copying

Safety:
  - Every length prefix is checked against the document bounds before use
  - Truncated or inconsistent elements invalidate the cursor (fail closed)
"""

from __future__ import annotations

import enum
import logging
import struct
from typing import NoReturn

from bsoncursor.config import DEFAULT_OPTIONS, CursorOptions, UnknownTypePolicy
from bsoncursor.errors import ContractViolation, CorruptElementError, UnknownTypeError
from bsoncursor.spec import (
    BSONType,
    MIN_CODE_WITH_SCOPE_SIZE,
    MIN_DOCUMENT_SIZE,
    PAYLOAD_WIDTHS,
)

logger = logging.getLogger(__name__)

_UNPACK_INT32 = struct.Struct("<i").unpack_from

_STRING_TYPES = frozenset((BSONType.STRING, BSONType.JAVASCRIPT, BSONType.SYMBOL))
_DOCUMENT_TYPES = frozenset((BSONType.DOCUMENT, BSONType.ARRAY))


class CursorStatus(enum.Enum):
    BEFORE_FIRST = "before_first"
    POSITIONED = "positioned"
    EXHAUSTED = "exhausted"
    INVALID = "invalid"


def _header_ok(buffer, start: int, end: int) -> bool:
    size = end - start
    if size < MIN_DOCUMENT_SIZE:
        return False
    return _UNPACK_INT32(buffer, start)[0] == size and buffer[end - 1] == 0


def is_bson(data: bytes | bytearray) -> bool:
    """Fast check that bytes carry a consistent BSON header. Elements are not scanned."""
    return _header_ok(data, 0, len(data))


class ByteCursor:
    """
    Forward-only cursor over the elements of one document.

    The document occupies ``buffer[start:end]``; every offset this cursor
    reports is absolute within ``buffer``.

    Usage:
        cursor = ByteCursor(data)
        while cursor.advance():
            tag = cursor.current_type_tag
            start, end = cursor.current_value_range
    """

    __slots__ = (
        "_buffer", "_start", "_end", "_limit", "_options",
        "_status", "_offset", "_next", "_tag", "_key_end", "_value_start", "_value_end",
    )

    def __init__(
        self,
        buffer: bytes | bytearray,
        start: int = 0,
        end: int | None = None,
        options: CursorOptions | None = None,
    ) -> None:
        if end is None:
            end = len(buffer)
        self._buffer = buffer
        self._start = start
        self._end = end
        self._options = options or DEFAULT_OPTIONS
        self._tag = 0
        self._key_end = self._value_start = self._value_end = 0

        if start < 0 or end > len(buffer) or not _header_ok(buffer, start, end):
            logger.debug("Rejected BSON header for range [%d, %d)", start, end)
            self._status = CursorStatus.INVALID
            self._offset = self._next = self._limit = start
            return

        self._status = CursorStatus.BEFORE_FIRST
        # Elements live between the length prefix and the terminator
        self._offset = self._next = start + 4
        self._limit = end - 1

    @property
    def status(self) -> CursorStatus:
        return self._status

    @property
    def offset(self) -> int:
        """Offset of the current element, or of the next read when not positioned."""
        return self._offset

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    def advance(self) -> bool:
        """Move to the next element. Returns False at the end of the document."""
        if self._status in (CursorStatus.EXHAUSTED, CursorStatus.INVALID):
            return False

        pos = self._next
        self._offset = pos
        if pos >= self._limit:
            self._status = CursorStatus.EXHAUSTED
            return False

        tag = self._buffer[pos]
        if tag == 0:
            self._fail("Premature document terminator", pos)
        key_end = self._buffer.find(b"\x00", pos + 1, self._limit)
        if key_end < 0:
            self._fail("Unterminated element key", pos)

        value_start = key_end + 1
        value_end = self._value_end_for(tag, value_start)
        if value_end is None:
            if self._options.unknown_type_policy is UnknownTypePolicy.STRICT:
                self._status = CursorStatus.INVALID
                logger.debug("Unknown type tag 0x%02x at offset %d", tag, pos)
                raise UnknownTypeError(tag, pos)
            # Payload length is unknowable, so the element swallows the rest.
            logger.warning(
                "Unknown BSON type tag 0x%02x at offset %d; remaining elements are unreadable",
                tag, pos,
            )
            value_end = self._limit

        self._tag = tag
        self._key_end = key_end
        self._value_start = value_start
        self._value_end = value_end
        self._next = value_end
        self._status = CursorStatus.POSITIONED
        return True

    # -------------------------------------------------------------------------
    # Current element (positioned only)
    # -------------------------------------------------------------------------

    @property
    def current_type_tag(self) -> int:
        self._require_positioned("current_type_tag")
        return self._tag

    @property
    def current_key_bytes(self) -> bytes:
        self._require_positioned("current_key_bytes")
        return bytes(self._buffer[self._offset + 1:self._key_end])

    @property
    def current_value_range(self) -> tuple[int, int]:
        """(start, end) of the current payload, absolute within the buffer."""
        self._require_positioned("current_value_range")
        return self._value_start, self._value_end

    @property
    def current_element_range(self) -> tuple[int, int]:
        """(start, end) of the whole current element: tag, key and payload."""
        self._require_positioned("current_element_range")
        return self._offset, self._value_end

    def key_matches(self, key: bytes) -> bool:
        """Compare the current key to ``key`` without copying the buffer."""
        self._require_positioned("key_matches")
        start = self._offset + 1
        if self._key_end - start != len(key):
            return False
        return self._buffer.startswith(key, start)

    def _require_positioned(self, name: str) -> None:
        if self._status is not CursorStatus.POSITIONED:
            raise ContractViolation(
                f"{name} read while cursor is {self._status.value}"
            )

    def _fail(self, message: str, offset: int) -> NoReturn:
        self._status = CursorStatus.INVALID
        logger.debug("%s at offset %d", message, offset)
        raise CorruptElementError(message, offset)

    def _value_end_for(self, tag: int, pos: int) -> int | None:
        try:
            return payload_end(self._buffer, tag, pos, self._limit)
        except CorruptElementError as exc:
            self._fail(exc.args[0], exc.offset)


# =============================================================================
# Payload sizing
# =============================================================================

def _corrupt(message: str, offset: int) -> NoReturn:
    raise CorruptElementError(message, offset)


def _int32_at(buffer, pos: int, limit: int) -> int:
    if pos + 4 > limit:
        _corrupt("Truncated length prefix", pos)
    return _UNPACK_INT32(buffer, pos)[0]


def _string_end(buffer, pos: int, limit: int) -> int:
    length = _int32_at(buffer, pos, limit)
    end = pos + 4 + length
    if length < 1 or end > limit:
        _corrupt("String length out of bounds", pos)
    if buffer[end - 1] != 0:
        _corrupt("String is not NUL terminated", pos)
    return end


def _document_end(buffer, pos: int, limit: int) -> int:
    length = _int32_at(buffer, pos, limit)
    end = pos + length
    if length < MIN_DOCUMENT_SIZE or end > limit:
        _corrupt("Embedded document length out of bounds", pos)
    if buffer[end - 1] != 0:
        _corrupt("Embedded document is not NUL terminated", pos)
    return end


def _cstring_end(buffer, pos: int, limit: int) -> int:
    nul = buffer.find(b"\x00", pos, limit)
    if nul < 0:
        _corrupt("Unterminated C string", pos)
    return nul + 1


def payload_end(buffer, tag: int, pos: int, limit: int) -> int | None:
    """
    End offset of the payload of type ``tag`` starting at ``pos``, never
    beyond ``limit``. Returns None for unknown tags. Raises
    CorruptElementError when the payload does not fit.
    """
    width = PAYLOAD_WIDTHS.get(tag)
    if width is not None:
        if pos + width > limit:
            _corrupt(f"Truncated {BSONType(tag).name} value", pos)
        return pos + width

    if tag in _STRING_TYPES:
        return _string_end(buffer, pos, limit)

    if tag in _DOCUMENT_TYPES:
        return _document_end(buffer, pos, limit)

    if tag == BSONType.BINARY:
        length = _int32_at(buffer, pos, limit)
        end = pos + 5 + length
        if length < 0 or end > limit:
            _corrupt("Binary length out of bounds", pos)
        return end

    if tag == BSONType.REGEX:
        return _cstring_end(buffer, _cstring_end(buffer, pos, limit), limit)

    if tag == BSONType.DB_POINTER:
        end = _string_end(buffer, pos, limit) + 12
        if end > limit:
            _corrupt("Truncated DBPointer id", pos)
        return end

    if tag == BSONType.JAVASCRIPT_WITH_SCOPE:
        total = _int32_at(buffer, pos, limit)
        end = pos + total
        if total < MIN_CODE_WITH_SCOPE_SIZE or end > limit:
            _corrupt("Code with scope length out of bounds", pos)
        scope_start = _string_end(buffer, pos + 4, end)
        if _document_end(buffer, scope_start, end) != end:
            _corrupt("Code with scope length disagrees with its parts", pos)
        return end

    return None
