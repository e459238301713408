"""
Overwrite Tests - Fixed-width, length-preserving in-place replacement.
"""

import datetime

import bson
import pytest
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.timestamp import Timestamp

from bsoncursor.document import Document
from bsoncursor.errors import ContractViolation
from bsoncursor.iterator import DocumentIterator
from bsoncursor.values import UnknownValue
from tests.bson_bytes import element, frame

UTC = datetime.timezone.utc


def _positioned(doc, key):
    iterator = DocumentIterator.advanced_to(doc, key)
    assert iterator is not None
    return iterator


class TestOverwrite:

    def test_int32_preserves_layout(self):
        doc = Document(bson.encode({"before": "x", "n": 5, "after": [1, 2]}))
        original = doc.raw
        iterator = _positioned(doc, "n")
        start, end = iterator.current_value_range

        iterator.overwrite_current_value(-5)

        assert len(doc.raw) == len(original)
        assert doc.raw[:start] == original[:start]
        assert doc.raw[end:] == original[end:]
        assert iterator.current_value == -5
        assert doc.items() == [("before", "x"), ("n", -5), ("after", [1, 2])]

    @pytest.mark.parametrize("old, new", [
        (1.5, -2.25),
        (True, False),
        (Int64(1), Int64(-(2 ** 60))),
        (Timestamp(1, 2), Timestamp(3, 4)),
        (ObjectId("5f0c1a2b3c4d5e6f70819203"), ObjectId("000000000000000000000001")),
        (Decimal128("1.1"), Decimal128("-99.5")),
        (datetime.datetime(2000, 1, 1, tzinfo=UTC), datetime.datetime(2030, 6, 7, 8, 9, 10, tzinfo=UTC)),
        (MinKey(), MinKey()),
        (MaxKey(), MaxKey()),
    ])
    def test_fixed_width_types(self, old, new):
        doc = Document(bson.encode({"v": old, "tail": 1}))
        size = doc.nbytes
        iterator = _positioned(doc, "v")
        iterator.overwrite_current_value(new)
        assert doc.nbytes == size
        assert doc["v"] == new
        assert doc["tail"] == 1

    def test_visible_to_other_iterators(self):
        doc = Document(bson.encode({"n": 1}))
        reader = DocumentIterator(doc)
        _positioned(doc, "n").overwrite_current_value(2)
        assert reader.next_pair() == ("n", 2)

    def test_nested_view_writes_through(self):
        doc = Document(bson.encode({"outer": {"n": 1}, "m": 2}))
        inner = doc["outer"]
        _positioned(inner, "n").overwrite_current_value(7)
        assert doc["outer"]["n"] == 7
        assert doc.raw == bson.encode({"outer": {"n": 7}, "m": 2})

    def test_shared_bytearray(self):
        buffer = bytearray(bson.encode({"n": 1}))
        doc = Document(buffer)
        _positioned(doc, "n").overwrite_current_value(3)
        assert bytes(buffer) == bson.encode({"n": 3})

    def test_bytes_input_is_copied(self):
        raw = bson.encode({"n": 1})
        doc = Document(raw)
        _positioned(doc, "n").overwrite_current_value(3)
        assert raw == bson.encode({"n": 1})

    def test_lock_is_released(self):
        doc = Document(bson.encode({"n": 1}))
        _positioned(doc, "n").overwrite_current_value(3)
        assert not doc.storage.lock.locked()


class TestOverwriteContract:

    def test_type_mismatch(self):
        iterator = _positioned(Document(bson.encode({"n": 5})), "n")
        with pytest.raises(ContractViolation, match="Expected"):
            iterator.overwrite_current_value("five")

    def test_int64_into_int32(self):
        iterator = _positioned(Document(bson.encode({"n": 5})), "n")
        with pytest.raises(ContractViolation):
            iterator.overwrite_current_value(Int64(5))

    def test_int_too_large_for_int32(self):
        iterator = _positioned(Document(bson.encode({"n": 5})), "n")
        with pytest.raises(ContractViolation):
            iterator.overwrite_current_value(2 ** 40)

    def test_plain_int_into_int64(self):
        iterator = _positioned(Document(bson.encode({"n": Int64(5)})), "n")
        with pytest.raises(ContractViolation):
            iterator.overwrite_current_value(6)

    def test_variable_length_same_size(self):
        doc = Document(bson.encode({"s": "ab"}))
        iterator = _positioned(doc, "s")
        with pytest.raises(ContractViolation, match="variable-length"):
            iterator.overwrite_current_value("cd")
        assert doc["s"] == "ab"

    def test_unknown_type(self):
        doc = Document(frame(element(0x42, "z", b"\x01")))
        iterator = _positioned(doc, "z")
        with pytest.raises(ContractViolation, match="variable-length"):
            iterator.overwrite_current_value(UnknownValue(0x42, b"\x02"))

    def test_before_first(self):
        iterator = DocumentIterator(Document(bson.encode({"n": 5})))
        with pytest.raises(ContractViolation, match="before_first"):
            iterator.overwrite_current_value(1)

    def test_after_exhaustion(self):
        iterator = DocumentIterator(Document(bson.encode({"n": 5})))
        list(iterator)
        with pytest.raises(ContractViolation, match="exhausted"):
            iterator.overwrite_current_value(1)

    def test_unmappable_value(self):
        iterator = _positioned(Document(bson.encode({"n": 5})), "n")
        with pytest.raises(ContractViolation):
            iterator.overwrite_current_value(object())
