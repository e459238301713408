"""
BSON Document - Shared storage, document views and a minimal builder.

A Document never copies its bytes when it is iterated or when embedded
documents are decoded from it: every embedded document is a view over the
same storage. Documents compare by byte layout only.
"""

from __future__ import annotations

import struct
import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from bsoncursor.config import DEFAULT_OPTIONS, CursorOptions
from bsoncursor.cursor import is_bson
from bsoncursor.errors import ValueEncodingError
from bsoncursor.spec import EMPTY_DOCUMENT, MAX_DOCUMENT_SIZE
from bsoncursor.values import bson_type_of

if TYPE_CHECKING:
    from bsoncursor.iterator import DocumentIterator

_PACK_INT32 = struct.Struct("<i").pack


class DocumentStorage:
    """
    Byte buffer shared by every Document view and iterator built on it.

    ``bytearray`` input is shared by reference; anything else is copied once.
    The lock serializes in-place overwrites; reads do not take it.
    """

    __slots__ = ("buffer", "lock")

    def __init__(self, data: bytes | bytearray | memoryview | None = None) -> None:
        if data is None:
            data = EMPTY_DOCUMENT
        self.buffer = data if isinstance(data, bytearray) else bytearray(data)
        self.lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.buffer)


class Document(Mapping):
    """
    A BSON document backed by shared storage.

    Usage:
        doc = Document(raw_bytes)
        for key, value in doc.iterator():
            ...

        doc["x"]                  # first element with key "x"
        doc.items()               # every pair, duplicates included
        doc.subsequence(1, 3)     # new document with elements 1 and 2
    """

    def __init__(
        self,
        data: bytes | bytearray | memoryview | DocumentStorage | None = None,
        options: CursorOptions | None = None,
    ) -> None:
        storage = data if isinstance(data, DocumentStorage) else DocumentStorage(data)
        self._storage = storage
        self._start = 0
        self._end = len(storage.buffer)
        self.options = options or DEFAULT_OPTIONS

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[str, Any]], options: CursorOptions | None = None
    ) -> Document:
        """Build a new document from (key, value) pairs, keeping duplicates and order."""
        builder = DocumentBuilder(options)
        for key, value in pairs:
            builder.append(key, value)
        return builder.build()

    @staticmethod
    def is_bson(data: bytes | bytearray) -> bool:
        return is_bson(data)

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @property
    def storage(self) -> DocumentStorage:
        return self._storage

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def nbytes(self) -> int:
        return self._end - self._start

    @property
    def raw(self) -> bytes:
        """A copy of this document's bytes."""
        return bytes(self._storage.buffer[self._start:self._end])

    def view(self, start: int, end: int) -> Document:
        """A document over ``storage.buffer[start:end]`` sharing this document's storage."""
        if not self._start <= start <= end <= self._end:
            raise ValueError(f"View [{start}, {end}) lies outside [{self._start}, {self._end})")
        doc = Document.__new__(Document)
        doc._storage = self._storage
        doc._start = start
        doc._end = end
        doc.options = self.options
        return doc

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def iterator(self) -> DocumentIterator:
        from bsoncursor.iterator import DocumentIterator
        return DocumentIterator(self)

    def keys(self) -> list[str]:
        return self.iterator().keys()

    def values(self) -> list[Any]:
        return self.iterator().values()

    def items(self) -> list[tuple[str, Any]]:
        return self.iterator().items()

    def subsequence(self, start_index: int = 0, end_index: int | None = None) -> Document:
        from bsoncursor.extract import subsequence
        return subsequence(self, start_index, end_index)

    def __getitem__(self, key: str) -> Any:
        from bsoncursor.iterator import DocumentIterator

        iterator = DocumentIterator.advanced_to(self, key)
        if iterator is None:
            raise KeyError(key)
        return iterator.current_value

    def __contains__(self, key: object) -> bool:
        from bsoncursor.iterator import DocumentIterator

        if not isinstance(key, str):
            return False
        return DocumentIterator.advanced_to(self, key) is not None

    def __iter__(self) -> Iterator[str]:
        iterator = self.iterator()
        while iterator.advance():
            yield iterator.current_key

    def __len__(self) -> int:
        iterator = self.iterator()
        count = 0
        while iterator.advance():
            count += 1
        return count

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self.raw == other.raw
        if isinstance(other, Mapping):
            return self.items() == list(other.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if not is_bson(self.raw):
            return f"Document(<malformed, {self.nbytes} bytes>)"
        return f"Document({self.items()!r})"


class DocumentBuilder:
    """
    Appends encoded elements and produces a new, independently owned Document.

    Usage:
        builder = DocumentBuilder()
        builder.append("x", 1).append("y", "hi")
        doc = builder.build()
    """

    def __init__(self, options: CursorOptions | None = None) -> None:
        self._elements = bytearray()
        self._count = 0
        self.options = options or DEFAULT_OPTIONS

    def append(self, key: str, value: Any, bson_type: int | None = None) -> DocumentBuilder:
        """
        Append one element. ``bson_type`` overrides the wire type inferred
        from the value (e.g. to keep an int64 that would fit in 32 bits).
        """
        from bsoncursor.registry import REGISTRY

        if bson_type is None:
            try:
                bson_type = bson_type_of(value)
            except TypeError as exc:
                raise ValueEncodingError(str(exc)) from exc
        key_bytes = key.encode("utf-8")
        if b"\x00" in key_bytes:
            raise ValueEncodingError(f"Key may not contain NUL bytes: {key!r}")
        payload = REGISTRY.encode(bson_type, value)
        self._elements.append(bson_type)
        self._elements += key_bytes
        self._elements.append(0)
        self._elements += payload
        self._count += 1
        return self

    def __len__(self) -> int:
        return self._count

    def build(self) -> Document:
        size = 4 + len(self._elements) + 1
        if size > MAX_DOCUMENT_SIZE:
            raise ValueEncodingError(f"Document of {size} bytes exceeds the BSON size limit")
        data = bytearray(_PACK_INT32(size))
        data += self._elements
        data.append(0)
        return Document(data, options=self.options)
