"""Subsequence extraction: copy an ordinal range of elements into a new document."""

from __future__ import annotations

import logging
import sys

from bsoncursor.document import Document, DocumentBuilder
from bsoncursor.errors import ContractViolation, MalformedHeaderError
from bsoncursor.iterator import DocumentIterator

logger = logging.getLogger(__name__)


def subsequence(document: Document, start_index: int = 0, end_index: int | None = None) -> Document:
    """
    New document holding the elements at positions [start_index, end_index).

    Stops early when the source runs out of elements. A source that cannot
    be iterated yields an empty document. Elements before ``start_index``
    are skipped without being decoded.
    """
    if end_index is None:
        end_index = sys.maxsize
    if start_index < 0:
        raise ContractViolation("start_index must be >= 0")
    if end_index < start_index:
        raise ContractViolation("end_index must be >= start_index")

    try:
        iterator = DocumentIterator(document)
    except MalformedHeaderError as exc:
        logger.debug("Subsequence of unreadable document is empty: %s", exc)
        return Document(options=document.options)

    for _ in range(start_index):
        if not iterator.advance():
            break

    builder = DocumentBuilder(document.options)
    for _ in range(end_index - start_index):
        pair = iterator.next_pair()
        if pair is None:
            break
        key, value = pair
        builder.append(key, value, iterator.current_type)

    return builder.build()
