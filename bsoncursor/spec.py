"""
BSON Wire Format v1.1
=====================

Layout:
    <int32 total length>         <- Little-endian, counts itself and the terminator
    <element>                    <- Zero or more elements, in byte order
    <element>
    ...
    0x00                         <- Document terminator

Element:
    <type tag>                   <- One byte, selects the payload encoding
    <key> 0x00                   <- UTF-8 key, NUL terminated (not unique)
    <payload>                    <- Type-specific, see PAYLOAD_WIDTHS

Design Decisions:
    - Embedded documents and arrays reuse the same framing (arrays are
      documents keyed "0", "1", ...)
    - Strings are <int32 length incl. NUL> <UTF-8 bytes> 0x00
    - All integers are little-endian
    - Fixed-width payloads can be overwritten without moving other elements
"""

from __future__ import annotations

import enum


class BSONType(enum.IntEnum):
    """Wire type tags."""

    DOUBLE = 0x01
    STRING = 0x02
    DOCUMENT = 0x03
    ARRAY = 0x04
    BINARY = 0x05
    UNDEFINED = 0x06
    OBJECT_ID = 0x07
    BOOLEAN = 0x08
    DATETIME = 0x09
    NULL = 0x0A
    REGEX = 0x0B
    DB_POINTER = 0x0C
    JAVASCRIPT = 0x0D
    SYMBOL = 0x0E
    JAVASCRIPT_WITH_SCOPE = 0x0F
    INT32 = 0x10
    TIMESTAMP = 0x11
    INT64 = 0x12
    DECIMAL128 = 0x13
    MIN_KEY = 0xFF
    MAX_KEY = 0x7F


# Payload widths for types whose encoded size never depends on the value
PAYLOAD_WIDTHS = {
    BSONType.DOUBLE: 8,
    BSONType.UNDEFINED: 0,
    BSONType.OBJECT_ID: 12,
    BSONType.BOOLEAN: 1,
    BSONType.DATETIME: 8,
    BSONType.NULL: 0,
    BSONType.INT32: 4,
    BSONType.TIMESTAMP: 8,
    BSONType.INT64: 8,
    BSONType.DECIMAL128: 16,
    BSONType.MIN_KEY: 0,
    BSONType.MAX_KEY: 0,
}

# Length prefix + terminator
MIN_DOCUMENT_SIZE = 5

# Code-with-scope: total length + empty string + empty document
MIN_CODE_WITH_SCOPE_SIZE = 14

# Smallest valid document, used for empty results
EMPTY_DOCUMENT = b"\x05\x00\x00\x00\x00"

# Documents are bounded by their signed int32 length prefix
MAX_DOCUMENT_SIZE = 2 ** 31 - 1

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# Binary subtype whose payload carries a second, redundant length prefix
BINARY_SUBTYPE_OLD = 0x02
