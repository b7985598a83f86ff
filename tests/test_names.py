"""Unit tests for type display names."""

from __future__ import annotations

import pytest
from builders import CLOSURE, CUSTOMER, DATE_TIME, INT, LIST, NULLABLE, ORDER, STORE, STRING, T

from net_amermaid.names import InconsistentTypeError, NameFormatter
from net_amermaid.schema import TypeKind
from net_amermaid.typesystem import DYNAMIC, OBJECT, TypeRef


@pytest.fixture
def names():
    return NameFormatter()


class TestGetName:
    def test_plain_type(self, names):
        assert names.get_name(CUSTOMER) == "Customer"

    def test_builtin_aliases(self, names):
        assert names.get_name(INT) == "int"
        assert names.get_name(STRING) == "string"
        assert names.get_name(OBJECT) == "object"

    def test_known_type_without_alias_keeps_name(self, names):
        assert names.get_name(DATE_TIME) == "DateTime"

    def test_array_and_by_reference(self, names):
        assert names.get_name(TypeRef.array_of(ORDER)) == "Order[]"
        assert names.get_name(TypeRef.array_of(TypeRef.array_of(INT))) == "int[][]"
        assert names.get_name(TypeRef.by_reference_to(INT)) == "&int"
        assert names.get_name(TypeRef.pointer_to(INT)) == "int*"

    def test_nullable_is_unwrapped(self, names):
        assert names.get_name(NULLABLE.construct(INT)) == "int?"

    def test_generics_use_safe_brackets(self, names):
        assert names.get_name(LIST.construct(ORDER)) == "List❰Order❱"
        assert names.get_name(STORE) == "Store❰T❱"
        dictionary = TypeRef("Dictionary", "System.Collections.Generic", type_parameters=("TKey", "TValue"))
        assert names.get_name(dictionary.construct(STRING, LIST.construct(INT))) == "Dictionary❰string, List❰int❱❱"

    def test_nested_type(self, names):
        assert names.get_name(CLOSURE) == "Customer+<>c"

    def test_type_parameter_and_dynamic_keep_raw_name(self, names):
        assert names.get_name(T) == "T"
        assert names.get_name(DYNAMIC) == "dynamic"

    def test_unknown_kind_is_flagged(self, names):
        with pytest.raises(InconsistentTypeError, match="Unexpected"):
            names.get_name(TypeRef("Mystery", kind=TypeKind.UNKNOWN))

    def test_labels_are_memoized(self, names):
        closed = LIST.construct(ORDER)
        assert names.get_name(closed) is names.get_name(closed)
