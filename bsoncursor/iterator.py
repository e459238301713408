"""
Document Iterator - Lazy, forward-only traversal of a BSON document.

Speed features:
  - Lazy: values are decoded only when read
  - Skipping (advance, move_to) never decodes values
  - Embedded documents decode to views over the same storage

The traversal is single-pass: once exhausted, build a new iterator to start
over. Keys are surfaced in byte order, duplicates included.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple

from bsoncursor.config import CursorOptions
from bsoncursor.cursor import ByteCursor, CursorStatus
from bsoncursor.errors import BSONCursorError, CorruptElementError, MalformedHeaderError
from bsoncursor.overwrite import overwrite_current_value
from bsoncursor.registry import REGISTRY
from bsoncursor.spec import BSONType

if TYPE_CHECKING:
    from bsoncursor.document import Document

logger = logging.getLogger(__name__)


class Element(NamedTuple):
    key: str
    bson_type: int
    value: Any


class DocumentIterator:
    """
    Iterator over the (key, value) pairs of a Document.

    Usage:
        # Pull pairs lazily
        for key, value in DocumentIterator(doc):
            ...

        # Seek forward to a key
        it = DocumentIterator(doc)
        if it.move_to("status"):
            it.overwrite_current_value(2)

        # Start positioned on a key (None if absent)
        it = DocumentIterator.advanced_to(doc, "status")
    """

    def __init__(self, document: Document, options: CursorOptions | None = None) -> None:
        self._document = document
        self._cursor = ByteCursor(
            document.storage.buffer,
            document.start,
            document.end,
            options or document.options,
        )
        if self._cursor.status is CursorStatus.INVALID:
            raise MalformedHeaderError(
                f"Invalid BSON header for {document.nbytes}-byte document"
            )

    @classmethod
    def advanced_to(
        cls, document: Document, key: str, options: CursorOptions | None = None
    ) -> DocumentIterator | None:
        """
        An iterator positioned on the first element named ``key``.
        Returns None if the key is absent or the document cannot be read.
        """
        try:
            iterator = cls(document, options)
            found = iterator.move_to(key)
        except BSONCursorError as exc:
            logger.debug("Lookup of %r failed: %s", key, exc)
            return None
        return iterator if found else None

    @property
    def document(self) -> Document:
        return self._document

    @property
    def status(self) -> CursorStatus:
        return self._cursor.status

    @property
    def is_positioned(self) -> bool:
        return self._cursor.status is CursorStatus.POSITIONED

    @property
    def is_exhausted(self) -> bool:
        return self._cursor.status in (CursorStatus.EXHAUSTED, CursorStatus.INVALID)

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def advance(self) -> bool:
        """Move forward one element. Returns False at the end of the document."""
        return self._cursor.advance()

    def move_to(self, key: str) -> bool:
        """
        Scan forward, starting after the current element, for ``key``.

        Never rewinds: keys already passed cannot be found again. With
        duplicate keys, repeated calls land on each later occurrence in
        turn. On a miss the iterator is left exhausted.
        """
        target = key.encode("utf-8")
        while self._cursor.advance():
            if self._cursor.key_matches(target):
                return True
        return False

    # -------------------------------------------------------------------------
    # Current element
    # -------------------------------------------------------------------------

    @property
    def current_key(self) -> str:
        raw = self._cursor.current_key_bytes
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptElementError("Invalid UTF-8 in key", self._cursor.offset) from exc

    @property
    def current_type(self) -> int:
        """The current wire type: a BSONType, or the raw tag if unrecognized."""
        tag = self._cursor.current_type_tag
        return BSONType(tag) if tag in REGISTRY else tag

    @property
    def current_value(self) -> Any:
        tag = self._cursor.current_type_tag
        start, end = self._cursor.current_value_range
        return REGISTRY.decode(tag, self._document.storage.buffer, start, end, self._document)

    @property
    def current_value_range(self) -> tuple[int, int]:
        """(start, end) of the current payload within the storage buffer."""
        return self._cursor.current_value_range

    @property
    def current_element(self) -> Element:
        return Element(self.current_key, self.current_type, self.current_value)

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    def next_pair(self) -> tuple[str, Any] | None:
        """Advance and return the new (key, value), or None once exhausted."""
        if self.advance():
            return self.current_key, self.current_value
        return None

    def __iter__(self) -> DocumentIterator:
        return self

    def __next__(self) -> tuple[str, Any]:
        pair = self.next_pair()
        if pair is None:
            raise StopIteration
        return pair

    def keys(self) -> list[str]:
        """Keys from the current position to the end. Exhausts the iterator."""
        keys = []
        while self.advance():
            keys.append(self.current_key)
        return keys

    def values(self) -> list[Any]:
        """Values from the current position to the end. Exhausts the iterator."""
        values = []
        while self.advance():
            values.append(self.current_value)
        return values

    def items(self) -> list[tuple[str, Any]]:
        """Pairs from the current position to the end. Exhausts the iterator."""
        return list(self)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def overwrite_current_value(self, value: Any) -> None:
        """Replace the current fixed-width value in place. See bsoncursor.overwrite."""
        overwrite_current_value(self, value)

    def __repr__(self) -> str:
        return f"DocumentIterator(status={self.status.value}, offset={self._cursor.offset})"
