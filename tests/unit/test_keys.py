"""Unit tests for key sets and key selection."""

from __future__ import annotations

import pytest

from fedgraph.core.defs import KeySet
from fedgraph.core.errors import EntityResolutionError, SchemaConfigError
from fedgraph.federation.keys import satisfies, select_key_set


# ---------------------------------------------------------------------------
# KeySet.parse
# ---------------------------------------------------------------------------


class TestKeySetParse:
    def test_single_field(self):
        assert KeySet.parse("id").fields == ("id",)

    def test_compound_fields(self):
        assert KeySet.parse("sku region").fields == ("sku", "region")

    def test_nested_selection_keeps_top_level_names(self):
        assert KeySet.parse("id owner { id name }").fields == ("id", "owner")

    def test_str_joins_fields(self):
        assert str(KeySet.parse("sku  region")) == "sku region"

    def test_empty_is_rejected(self):
        with pytest.raises(SchemaConfigError):
            KeySet.parse("   ")

    def test_unbalanced_braces_are_rejected(self):
        with pytest.raises(SchemaConfigError):
            KeySet.parse("id owner { id")
        with pytest.raises(SchemaConfigError):
            KeySet.parse("id }")


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class TestSelectKeySet:
    KEYS = [KeySet.parse("id"), KeySet.parse("sku region")]

    def test_first_satisfied_key_wins(self):
        representation = {"__typename": "Product", "id": 1, "sku": "a", "region": "eu"}
        assert select_key_set(representation, self.KEYS) == self.KEYS[0]

    def test_falls_back_to_later_key(self):
        representation = {"__typename": "Product", "sku": "a", "region": "eu"}
        assert select_key_set(representation, self.KEYS) == self.KEYS[1]

    def test_null_value_does_not_satisfy(self):
        representation = {"__typename": "Product", "id": None, "sku": "a"}
        assert not satisfies(representation, self.KEYS)

    def test_unsatisfied_raises(self):
        with pytest.raises(EntityResolutionError) as exc_info:
            select_key_set({"__typename": "Product", "sku": "a"}, self.KEYS)
        assert exc_info.value.message == EntityResolutionError.UNSATISFIED_KEYS_MESSAGE
        assert exc_info.value.typename == "Product"

    def test_falsy_values_satisfy(self):
        assert satisfies({"id": 0}, [KeySet.parse("id")])
        assert satisfies({"id": ""}, [KeySet.parse("id")])
