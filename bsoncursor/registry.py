"""
Type Registry - Wire type tag to decoder/encoder dispatch.

The table is built once at import time and never changes. Each entry pairs
a payload decoder with a payload encoder and, for fixed-width types, the
payload width that makes the type eligible for in-place overwrite.
"""

from __future__ import annotations

import calendar
import datetime
import decimal
import re
import struct
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

from bson.binary import Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.decimal128 import Decimal128
from bson.errors import InvalidId
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

from bsoncursor.config import DEFAULT_OPTIONS, CursorOptions
from bsoncursor.cursor import payload_end
from bsoncursor.errors import CorruptElementError, ValueEncodingError
from bsoncursor.spec import (
    BINARY_SUBTYPE_OLD,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    PAYLOAD_WIDTHS,
    BSONType,
)
from bsoncursor.values import DBPointer, Symbol, Undefined, UnknownValue

if TYPE_CHECKING:
    from bsoncursor.document import Document


_UNPACK_FLOAT = struct.Struct("<d").unpack_from
_UNPACK_INT32 = struct.Struct("<i").unpack_from
_UNPACK_INT64 = struct.Struct("<q").unpack_from
_UNPACK_TIMESTAMP = struct.Struct("<II").unpack_from
_UNPACK_LENGTH_SUBTYPE = struct.Struct("<iB").unpack_from

_PACK_FLOAT = struct.Struct("<d").pack
_PACK_INT32 = struct.Struct("<i").pack
_PACK_INT64 = struct.Struct("<q").pack
_PACK_TIMESTAMP = struct.Struct("<II").pack
_PACK_LENGTH_SUBTYPE = struct.Struct("<iB").pack

_EPOCH_AWARE = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_EPOCH_NAIVE = datetime.datetime(1970, 1, 1)

# Regex flag characters, in the order BSON requires them
_REGEX_FLAGS = (
    ("i", re.IGNORECASE),
    ("l", re.LOCALE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("u", re.UNICODE),
    ("x", re.VERBOSE),
)

# (buffer, start, end, parent, options) -> value
Decoder = Callable[[Any, int, int, "Document | None", CursorOptions], Any]
# value -> payload bytes
Encoder = Callable[[Any], bytes]


class TypeEntry(NamedTuple):
    tag: BSONType
    decode: Decoder
    encode: Encoder
    width: int | None  # None for variable-length payloads


# =============================================================================
# Shared helpers
# =============================================================================

def _text(data, start: int, end: int) -> str:
    try:
        return bytes(data[start:end]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptElementError(f"Invalid UTF-8 in string value: {exc.reason}", start) from exc


def _string_at(data, start: int) -> tuple[str, int]:
    """Decode a length-prefixed string at ``start``. Returns (text, end offset)."""
    length = _UNPACK_INT32(data, start)[0]
    end = start + 4 + length
    return _text(data, start + 4, end - 1), end


def _subdocument(data, start: int, end: int, parent, options: CursorOptions) -> Document:
    if parent is not None:
        return parent.view(start, end)
    from bsoncursor.document import Document
    return Document(bytearray(data[start:end]), options=options)


def _encode_string(value: str) -> bytes:
    encoded = str(value).encode("utf-8")
    return _PACK_INT32(len(encoded) + 1) + encoded + b"\x00"


def _encode_cstring(value: str) -> bytes:
    encoded = value.encode("utf-8")
    if b"\x00" in encoded:
        raise ValueEncodingError(f"C string may not contain NUL bytes: {value!r}")
    return encoded + b"\x00"


def _encode_int(value: Any, low: int, high: int, pack: Callable[[int], bytes], name: str) -> bytes:
    if not low <= int(value) <= high:
        raise ValueEncodingError(f"{value} does not fit in a BSON {name}")
    return pack(int(value))


# =============================================================================
# Decoders
# =============================================================================

def _get_double(data, start, end, parent, options):
    return _UNPACK_FLOAT(data, start)[0]


def _get_string(data, start, end, parent, options):
    return _string_at(data, start)[0]


def _get_document(data, start, end, parent, options):
    return _subdocument(data, start, end, parent, options)


def _get_array(data, start, end, parent, options):
    return _subdocument(data, start, end, parent, options).values()


def _get_binary(data, start, end, parent, options):
    length, subtype = _UNPACK_LENGTH_SUBTYPE(data, start)
    payload_start = start + 5
    if subtype == BINARY_SUBTYPE_OLD:
        if length < 4 or _UNPACK_INT32(data, payload_start)[0] != length - 4:
            raise CorruptElementError("Binary subtype 2 length disagrees with its prefix", start)
        payload_start += 4
    payload = bytes(data[payload_start:end])
    if subtype == 0:
        return payload
    return Binary(payload, subtype)


def _get_undefined(data, start, end, parent, options):
    return Undefined()


def _get_object_id(data, start, end, parent, options):
    return ObjectId(bytes(data[start:start + 12]))


def _get_boolean(data, start, end, parent, options):
    flag = data[start]
    if flag == 0:
        return False
    if flag == 1:
        return True
    raise CorruptElementError(f"Invalid boolean byte 0x{flag:02x}", start)


def _get_datetime(data, start, end, parent, options):
    millis = _UNPACK_INT64(data, start)[0]
    epoch = _EPOCH_AWARE if options.tz_aware else _EPOCH_NAIVE
    try:
        return epoch + datetime.timedelta(milliseconds=millis)
    except OverflowError:
        return DatetimeMS(millis)


def _get_null(data, start, end, parent, options):
    return None


def _get_regex(data, start, end, parent, options):
    pattern_end = data.find(b"\x00", start, end)
    pattern = _text(data, start, pattern_end)
    flags = _text(data, pattern_end + 1, end - 1)
    return Regex(pattern, flags)


def _get_db_pointer(data, start, end, parent, options):
    namespace, oid_start = _string_at(data, start)
    return DBPointer(namespace, ObjectId(bytes(data[oid_start:oid_start + 12])))


def _get_code(data, start, end, parent, options):
    return Code(_string_at(data, start)[0])


def _get_symbol(data, start, end, parent, options):
    return Symbol(_string_at(data, start)[0])


def _get_code_with_scope(data, start, end, parent, options):
    code, scope_start = _string_at(data, start + 4)
    return Code(code, _subdocument(data, scope_start, end, parent, options))


def _get_int32(data, start, end, parent, options):
    return _UNPACK_INT32(data, start)[0]


def _get_timestamp(data, start, end, parent, options):
    inc, time = _UNPACK_TIMESTAMP(data, start)
    return Timestamp(time, inc)


def _get_int64(data, start, end, parent, options):
    return Int64(_UNPACK_INT64(data, start)[0])


def _get_decimal128(data, start, end, parent, options):
    return Decimal128.from_bid(bytes(data[start:start + 16]))


def _get_min_key(data, start, end, parent, options):
    return MinKey()


def _get_max_key(data, start, end, parent, options):
    return MaxKey()


# =============================================================================
# Encoders
# =============================================================================

def _put_double(value) -> bytes:
    return _PACK_FLOAT(float(value))


def _put_document(value) -> bytes:
    from bsoncursor.document import Document, DocumentBuilder

    if isinstance(value, Document):
        return value.raw
    builder = DocumentBuilder()
    for key, item in value.items():
        builder.append(key, item)
    return builder.build().raw


def _put_array(value) -> bytes:
    from bsoncursor.document import DocumentBuilder

    builder = DocumentBuilder()
    for index, item in enumerate(value):
        builder.append(str(index), item)
    return builder.build().raw


def _put_binary(value) -> bytes:
    subtype = value.subtype if isinstance(value, Binary) else 0
    payload = bytes(value)
    if subtype == BINARY_SUBTYPE_OLD:
        payload = _PACK_INT32(len(payload)) + payload
    return _PACK_LENGTH_SUBTYPE(len(payload), subtype) + payload


def _put_empty(value) -> bytes:
    return b""


def _put_object_id(value) -> bytes:
    try:
        return ObjectId(value).binary
    except (InvalidId, TypeError) as exc:
        raise ValueEncodingError(f"Invalid ObjectId: {value!r}") from exc


def _put_boolean(value) -> bytes:
    return b"\x01" if value else b"\x00"


def _put_datetime(value) -> bytes:
    if isinstance(value, DatetimeMS):
        millis = int(value)
    else:
        offset = value.utcoffset()
        if offset is not None:
            value = value - offset
        millis = calendar.timegm(value.timetuple()) * 1000 + value.microsecond // 1000
    return _encode_int(millis, INT64_MIN, INT64_MAX, _PACK_INT64, "datetime")


def _put_regex(value) -> bytes:
    pattern = value.pattern
    if isinstance(pattern, bytes):
        pattern = pattern.decode("utf-8")
    flags = "".join(char for char, flag in _REGEX_FLAGS if value.flags & flag)
    return _encode_cstring(pattern) + _encode_cstring(flags)


def _put_db_pointer(value) -> bytes:
    return _encode_string(value.namespace) + _put_object_id(value.id)


def _put_string(value) -> bytes:
    return _encode_string(value)


def _put_code_with_scope(value) -> bytes:
    code = _encode_string(value)
    scope = _put_document(value.scope or {})
    return _PACK_INT32(4 + len(code) + len(scope)) + code + scope


def _put_int32(value) -> bytes:
    return _encode_int(value, INT32_MIN, INT32_MAX, _PACK_INT32, "int32")


def _put_timestamp(value) -> bytes:
    return _PACK_TIMESTAMP(value.inc, value.time)


def _put_int64(value) -> bytes:
    return _encode_int(value, INT64_MIN, INT64_MAX, _PACK_INT64, "int64")


def _put_decimal128(value) -> bytes:
    if isinstance(value, Decimal128):
        return value.bid
    try:
        return Decimal128(value).bid
    except (decimal.InvalidOperation, TypeError, ValueError) as exc:
        raise ValueEncodingError(f"Invalid Decimal128: {value!r}") from exc


# =============================================================================
# Registry
# =============================================================================

class TypeRegistry:
    """
    Immutable tag -> TypeEntry table.

    Usage:
        value = REGISTRY.decode(BSONType.INT32, b"\\x05\\x00\\x00\\x00")
        payload = REGISTRY.encode(BSONType.INT32, -5)
        REGISTRY.is_fixed_width(BSONType.STRING)  # False
    """

    def __init__(self, entries: list[TypeEntry]) -> None:
        self._entries = MappingProxyType({entry.tag: entry for entry in entries})

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    @property
    def tags(self) -> list[BSONType]:
        return list(self._entries.keys())

    def get(self, tag: int) -> TypeEntry | None:
        return self._entries.get(tag)

    def decode(
        self,
        tag: int,
        data: bytes | bytearray,
        start: int = 0,
        end: int | None = None,
        parent: Document | None = None,
    ) -> Any:
        """
        Decode the payload ``data[start:end]`` of wire type ``tag``.

        Embedded documents are returned as views sharing ``parent``'s storage
        when a parent is given. Unrecognized tags yield an UnknownValue.
        Raises CorruptElementError when the payload framing does not span
        exactly ``data[start:end]``.
        """
        if end is None:
            end = len(data)
        if not 0 <= start <= end <= len(data):
            raise CorruptElementError(
                f"Payload range [{start}, {end}) lies outside a {len(data)}-byte buffer", start
            )
        options = parent.options if parent is not None else DEFAULT_OPTIONS
        entry = self._entries.get(tag)
        if entry is None:
            return UnknownValue(tag, data[start:end])
        if payload_end(data, tag, start, end) != end:
            raise CorruptElementError(f"{entry.tag.name} payload does not fill its range", start)
        return entry.decode(data, start, end, parent, options)

    def encode(self, tag: int, value: Any) -> bytes:
        """Encode ``value`` as a payload of wire type ``tag``."""
        entry = self._entries.get(tag)
        if entry is None:
            if isinstance(value, UnknownValue) and value.tag == tag:
                return value.raw
            raise ValueEncodingError(f"Cannot encode values of unknown type 0x{tag:02x}")
        return entry.encode(value)

    def fixed_width(self, tag: int) -> int | None:
        entry = self._entries.get(tag)
        return entry.width if entry is not None else None

    def is_fixed_width(self, tag: int) -> bool:
        return self.fixed_width(tag) is not None


def _entry(tag: BSONType, decode: Decoder, encode: Encoder) -> TypeEntry:
    return TypeEntry(tag, decode, encode, PAYLOAD_WIDTHS.get(tag))


REGISTRY = TypeRegistry([
    _entry(BSONType.DOUBLE, _get_double, _put_double),
    _entry(BSONType.STRING, _get_string, _put_string),
    _entry(BSONType.DOCUMENT, _get_document, _put_document),
    _entry(BSONType.ARRAY, _get_array, _put_array),
    _entry(BSONType.BINARY, _get_binary, _put_binary),
    _entry(BSONType.UNDEFINED, _get_undefined, _put_empty),
    _entry(BSONType.OBJECT_ID, _get_object_id, _put_object_id),
    _entry(BSONType.BOOLEAN, _get_boolean, _put_boolean),
    _entry(BSONType.DATETIME, _get_datetime, _put_datetime),
    _entry(BSONType.NULL, _get_null, _put_empty),
    _entry(BSONType.REGEX, _get_regex, _put_regex),
    _entry(BSONType.DB_POINTER, _get_db_pointer, _put_db_pointer),
    _entry(BSONType.JAVASCRIPT, _get_code, _put_string),
    _entry(BSONType.SYMBOL, _get_symbol, _put_string),
    _entry(BSONType.JAVASCRIPT_WITH_SCOPE, _get_code_with_scope, _put_code_with_scope),
    _entry(BSONType.INT32, _get_int32, _put_int32),
    _entry(BSONType.TIMESTAMP, _get_timestamp, _put_timestamp),
    _entry(BSONType.INT64, _get_int64, _put_int64),
    _entry(BSONType.DECIMAL128, _get_decimal128, _put_decimal128),
    _entry(BSONType.MIN_KEY, _get_min_key, _put_empty),
    _entry(BSONType.MAX_KEY, _get_max_key, _put_empty),
])
