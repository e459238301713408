"""
bsoncursor - Lazy, bounds-checked iteration over BSON documents.

    from bsoncursor import Document, DocumentIterator

    doc = Document(raw_bytes)
    for key, value in doc.iterator():
        ...
"""

from bsoncursor.config import DEFAULT_OPTIONS, CursorOptions, UnknownTypePolicy
from bsoncursor.cursor import ByteCursor, CursorStatus, is_bson
from bsoncursor.document import Document, DocumentBuilder, DocumentStorage
from bsoncursor.errors import (
    BSONCursorError,
    ContractViolation,
    CorruptElementError,
    MalformedHeaderError,
    UnknownTypeError,
    ValueEncodingError,
)
from bsoncursor.extract import subsequence
from bsoncursor.iterator import DocumentIterator, Element
from bsoncursor.overwrite import overwrite_current_value
from bsoncursor.registry import REGISTRY, TypeEntry, TypeRegistry
from bsoncursor.spec import BSONType
from bsoncursor.values import DBPointer, Symbol, Undefined, UnknownValue, bson_type_of

__version__ = "0.1.0"

__all__ = [
    "BSONCursorError",
    "BSONType",
    "ByteCursor",
    "ContractViolation",
    "CorruptElementError",
    "CursorOptions",
    "CursorStatus",
    "DBPointer",
    "DEFAULT_OPTIONS",
    "Document",
    "DocumentBuilder",
    "DocumentIterator",
    "DocumentStorage",
    "Element",
    "MalformedHeaderError",
    "REGISTRY",
    "Symbol",
    "TypeEntry",
    "TypeRegistry",
    "Undefined",
    "UnknownTypeError",
    "UnknownTypePolicy",
    "UnknownValue",
    "ValueEncodingError",
    "bson_type_of",
    "is_bson",
    "overwrite_current_value",
    "subsequence",
]
