import bson
import pytest

from tests.bson_bytes import element, frame, int32


@pytest.fixture
def duplicate_keys() -> bytes:
    """{"a": 1, "b": 2, "a": 3} - not expressible as a dict."""
    return frame(
        element(0x10, "a", int32(1)),
        element(0x10, "b", int32(2)),
        element(0x10, "a", int32(3)),
    )


@pytest.fixture
def simple() -> bytes:
    return bson.encode({"x": 1, "y": "hi"})
