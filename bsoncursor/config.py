"""Options controlling how documents are walked and decoded."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass


class UnknownTypePolicy(enum.Enum):
    """What to do with an element whose type tag is not recognized."""

    # Surface the element as an UnknownValue; iteration stops after it,
    # since its payload length cannot be known.
    SENTINEL = "sentinel"
    # Raise UnknownTypeError and invalidate the cursor.
    STRICT = "strict"


@dataclass(frozen=True, slots=True)
class CursorOptions:
    """Decode options shared by a cursor, its iterator and nested documents."""

    unknown_type_policy: UnknownTypePolicy = UnknownTypePolicy.SENTINEL
    # Decode UTC datetimes as timezone-aware datetime objects.
    tz_aware: bool = True

    def with_options(self, **changes) -> CursorOptions:
        return dataclasses.replace(self, **changes)


DEFAULT_OPTIONS = CursorOptions()
