"""
In-place Overwrite - Replace a fixed-width value without moving any bytes.

Only payloads whose width never depends on the value (booleans, numbers,
dates, timestamps, ObjectId, Decimal128, min/max keys) can be replaced
here. Changing a variable-length value means rebuilding the document with
DocumentBuilder.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bsoncursor.errors import ContractViolation
from bsoncursor.registry import REGISTRY
from bsoncursor.values import bson_type_of

if TYPE_CHECKING:
    from bsoncursor.iterator import DocumentIterator

logger = logging.getLogger(__name__)


def overwrite_current_value(iterator: DocumentIterator, value: Any) -> None:
    """
    Overwrite the value under ``iterator`` with ``value``.

    Raises ContractViolation if the iterator is not positioned, if ``value``
    has a different wire type than the current value, or if that type is
    not fixed-width. Raises ValueEncodingError if ``value`` cannot be
    encoded as that type.
    """
    if not iterator.is_positioned:
        raise ContractViolation(f"Cannot overwrite while iterator is {iterator.status.value}")

    current_type = iterator.current_type
    try:
        new_type = bson_type_of(value)
    except TypeError as exc:
        raise ContractViolation(str(exc)) from exc
    if new_type != current_type:
        raise ContractViolation(
            f"Expected {value!r} to have BSON type {current_type!r}, but has type {new_type!r}"
        )
    if not REGISTRY.is_fixed_width(current_type):
        raise ContractViolation(
            f"{current_type!r} values are variable-length and cannot be overwritten in place"
        )

    start, end = iterator.current_value_range
    payload = REGISTRY.encode(current_type, value)
    if len(payload) != end - start:
        raise ContractViolation(
            f"Encoded value is {len(payload)} bytes, current value is {end - start} bytes"
        )

    storage = iterator.document.storage
    with storage.lock:
        storage.buffer[start:end] = payload
    logger.debug("Overwrote %d-byte %r value at offset %d", end - start, current_type, start)
