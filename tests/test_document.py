"""
Document Tests - Storage sharing, mapping behaviour and the builder.
"""

import bson
import pytest
from bson.int64 import Int64

from bsoncursor.document import Document, DocumentBuilder, DocumentStorage
from bsoncursor.errors import MalformedHeaderError, ValueEncodingError
from bsoncursor.spec import EMPTY_DOCUMENT, BSONType
from bsoncursor.values import Symbol, Undefined


# =============================================================================
# DocumentStorage
# =============================================================================

class TestDocumentStorage:

    def test_defaults_to_empty_document(self):
        storage = DocumentStorage()
        assert bytes(storage.buffer) == EMPTY_DOCUMENT
        assert len(storage) == 5

    def test_shares_bytearray(self):
        buffer = bytearray(EMPTY_DOCUMENT)
        assert DocumentStorage(buffer).buffer is buffer

    def test_copies_bytes(self):
        storage = DocumentStorage(EMPTY_DOCUMENT)
        assert isinstance(storage.buffer, bytearray)

    def test_documents_can_share_storage(self):
        storage = DocumentStorage(bson.encode({"a": 1}))
        assert Document(storage).storage is Document(storage).storage


# =============================================================================
# Document
# =============================================================================

class TestDocument:

    def test_empty(self):
        doc = Document()
        assert len(doc) == 0
        assert doc.raw == EMPTY_DOCUMENT
        assert list(doc) == []
        assert not doc

    def test_getitem_returns_first_duplicate(self, duplicate_keys):
        assert Document(duplicate_keys)["a"] == 1

    def test_getitem_missing(self, simple):
        with pytest.raises(KeyError):
            Document(simple)["missing"]

    def test_get(self, simple):
        doc = Document(simple)
        assert doc.get("y") == "hi"
        assert doc.get("missing", 0) == 0

    def test_contains(self, simple):
        doc = Document(simple)
        assert "x" in doc
        assert "missing" not in doc
        assert 1 not in doc

    def test_len_counts_duplicates(self, duplicate_keys):
        assert len(Document(duplicate_keys)) == 3

    def test_iter_yields_keys_in_order(self, duplicate_keys):
        assert list(Document(duplicate_keys)) == ["a", "b", "a"]

    def test_items_keep_duplicates(self, duplicate_keys):
        assert Document(duplicate_keys).items() == [("a", 1), ("b", 2), ("a", 3)]

    def test_equality_is_byte_layout(self):
        assert Document(bson.encode({"a": 1})) == Document(bson.encode({"a": 1}))
        assert Document(bson.encode({"a": 1, "b": 2})) != Document(bson.encode({"b": 2, "a": 1}))

    def test_equality_with_mapping_is_ordered(self):
        doc = Document(bson.encode({"a": 1, "b": 2}))
        assert doc == {"a": 1, "b": 2}
        assert doc != {"b": 2, "a": 1}
        assert doc != [("a", 1), ("b", 2)]

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(Document())

    def test_view_bounds(self, simple):
        doc = Document(simple)
        with pytest.raises(ValueError, match="outside"):
            doc.view(0, doc.end + 1)

    def test_malformed_document(self):
        doc = Document(b"\x06\x00\x00\x00\x00")
        assert "malformed" in repr(doc)
        assert "x" not in doc
        with pytest.raises(MalformedHeaderError):
            doc.items()

    def test_repr(self, simple):
        assert repr(Document(simple)) == "Document([('x', 1), ('y', 'hi')])"

    def test_is_bson(self, simple):
        assert Document.is_bson(simple)
        assert not Document.is_bson(simple[:-1])


# =============================================================================
# DocumentBuilder
# =============================================================================

class TestDocumentBuilder:

    def test_matches_pymongo(self):
        doc = (
            DocumentBuilder()
            .append("x", 1)
            .append("y", "hi")
            .append("z", {"n": [True, None]})
            .build()
        )
        assert doc.raw == bson.encode({"x": 1, "y": "hi", "z": {"n": [True, None]}})

    def test_duplicates(self):
        doc = Document.from_pairs([("a", 1), ("a", 2)])
        assert doc.items() == [("a", 1), ("a", 2)]

    def test_explicit_wire_type(self):
        doc = DocumentBuilder().append("n", 5, BSONType.INT64).build()
        assert isinstance(doc["n"], Int64)

    def test_types_without_pymongo_classes(self):
        doc = Document.from_pairs([("s", Symbol("sym")), ("u", Undefined())])
        assert isinstance(doc["s"], Symbol)
        assert doc["u"] == Undefined()

    def test_len(self):
        builder = DocumentBuilder()
        assert len(builder) == 0
        builder.append("a", 1)
        assert len(builder) == 1

    def test_empty_build(self):
        assert DocumentBuilder().build().raw == EMPTY_DOCUMENT

    def test_rejects_nul_in_key(self):
        with pytest.raises(ValueEncodingError, match="NUL"):
            DocumentBuilder().append("a\x00b", 1)

    def test_rejects_unmappable_value(self):
        with pytest.raises(ValueEncodingError):
            DocumentBuilder().append("a", object())

    def test_builds_independent_documents(self):
        builder = DocumentBuilder().append("a", 1)
        assert builder.build().storage is not builder.build().storage
