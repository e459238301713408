"""
Value types for wire types the bson package has no class for, and the
mapping from Python values back to the wire type they encode as.
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Mapping

from bson.binary import Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

from bsoncursor.spec import BSONType, INT32_MAX, INT32_MIN, INT64_MAX, INT64_MIN


class Symbol(str):
    """A deprecated BSON symbol. Behaves as ``str`` but keeps its wire type."""

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


class Undefined:
    """The deprecated BSON undefined value. All instances are equal."""

    __slots__ = ()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Undefined)

    def __hash__(self) -> int:
        return hash(Undefined)

    def __repr__(self) -> str:
        return "Undefined()"


class DBPointer:
    """A deprecated BSON DBPointer: a namespace plus an ObjectId."""

    __slots__ = ("namespace", "id")

    def __init__(self, namespace: str, id: ObjectId) -> None:
        self.namespace = namespace
        self.id = id

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DBPointer):
            return (self.namespace, self.id) == (other.namespace, other.id)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.namespace, self.id))

    def __repr__(self) -> str:
        return f"DBPointer({self.namespace!r}, {self.id!r})"


class UnknownValue:
    """
    Sentinel for an element whose type tag is not recognized.

    Holds the tag and the undecoded payload bytes.
    """

    __slots__ = ("tag", "raw")

    def __init__(self, tag: int, raw: bytes) -> None:
        self.tag = tag
        self.raw = bytes(raw)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UnknownValue):
            return (self.tag, self.raw) == (other.tag, other.raw)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.tag, self.raw))

    def __repr__(self) -> str:
        return f"UnknownValue(0x{self.tag:02x}, {self.raw!r})"


def bson_type_of(value: object) -> int:
    """
    Return the wire type ``value`` encodes as.

    Plain ``int`` is INT32 when it fits and INT64 otherwise; wrap in
    ``Int64`` to force INT64. Returns the raw tag for ``UnknownValue``.
    Raises TypeError for values with no BSON representation.
    """
    # bool and Int64 subclass int; Symbol and Code subclass str.
    if isinstance(value, bool):
        return BSONType.BOOLEAN
    if isinstance(value, Int64):
        return BSONType.INT64
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return BSONType.INT32
        if INT64_MIN <= value <= INT64_MAX:
            return BSONType.INT64
        raise TypeError(f"Integer {value} does not fit in 64 bits")
    if isinstance(value, float):
        return BSONType.DOUBLE
    if isinstance(value, Symbol):
        return BSONType.SYMBOL
    if isinstance(value, Code):
        if value.scope is not None:
            return BSONType.JAVASCRIPT_WITH_SCOPE
        return BSONType.JAVASCRIPT
    if isinstance(value, str):
        return BSONType.STRING
    if value is None:
        return BSONType.NULL
    if isinstance(value, Undefined):
        return BSONType.UNDEFINED
    if isinstance(value, (datetime.datetime, DatetimeMS)):
        return BSONType.DATETIME
    if isinstance(value, Timestamp):
        return BSONType.TIMESTAMP
    if isinstance(value, ObjectId):
        return BSONType.OBJECT_ID
    if isinstance(value, Decimal128):
        return BSONType.DECIMAL128
    if isinstance(value, MinKey):
        return BSONType.MIN_KEY
    if isinstance(value, MaxKey):
        return BSONType.MAX_KEY
    if isinstance(value, (Binary, bytes)):
        return BSONType.BINARY
    if isinstance(value, (Regex, re.Pattern)):
        return BSONType.REGEX
    if isinstance(value, DBPointer):
        return BSONType.DB_POINTER
    if isinstance(value, UnknownValue):
        return value.tag
    if isinstance(value, Mapping):
        return BSONType.DOCUMENT
    if isinstance(value, (list, tuple)):
        return BSONType.ARRAY
    raise TypeError(f"Cannot map {type(value).__name__} to a BSON type")
