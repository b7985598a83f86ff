"""Unit tests for the metadata snapshot: type references, base walks and member lookup."""

from __future__ import annotations

import pytest
from builders import (
    CLOSURE,
    CUSTOMER,
    ENTITY,
    IENUMERABLE,
    IENUMERABLE_OF_T,
    INT,
    INT_STORE,
    LIST,
    NULLABLE,
    ORDER,
    ORDER_COLLECTION,
    STORE,
    STRING,
    T,
    sample_types,
)

from net_amermaid.schema import KnownType, TypeKind
from net_amermaid.typesystem import OBJECT, TypeRef, substitute


class TestTypeRef:
    def test_known_types_are_recognized(self):
        assert OBJECT.is_object
        assert INT.known_type is KnownType.INT32
        assert LIST.construct(INT).known_type is None
        assert NULLABLE.construct(INT).known_type is KnownType.NULLABLE

    def test_identity_includes_kind(self):
        assert TypeRef("Order", "MyApp.Models", TypeKind.STRUCT) != ORDER
        assert TypeRef("Order", "MyApp.Models") == ORDER
        assert TypeRef.parameter("T", 3) == T

    def test_reflection_names(self):
        assert STORE.reflection_name == "MyApp.Models.Store`1"
        assert CLOSURE.reflection_name == "MyApp.Models.Customer+<>c"
        assert LIST.construct(INT).reflection_name == "System.Collections.Generic.List`1[[System.Int32]]"
        assert TypeRef.array_of(ORDER).reflection_name == "MyApp.Models.Order[]"

    def test_full_name_has_no_arity(self):
        assert STORE.full_name == "MyApp.Models.Store"
        assert CLOSURE.full_name == "MyApp.Models.Customer.<>c"

    def test_closed_generic_normalizes_to_definition(self):
        closed = STORE.construct(INT)
        assert closed != STORE
        assert closed.generic_definition == STORE
        assert STORE.generic_definition is STORE

    def test_construct_checks_arity(self):
        with pytest.raises(ValueError, match="takes 1 type arguments"):
            STORE.construct(INT, STRING)

    def test_open_definition_arguments_are_its_parameters(self):
        assert STORE.arguments == (T,)
        assert STORE.construct(INT).arguments == (INT,)

    def test_nullable_argument(self):
        assert NULLABLE.construct(ORDER).nullable_argument == ORDER
        assert LIST.construct(ORDER).nullable_argument is None

    def test_documentation_names(self):
        assert STORE.documentation_name == "MyApp.Models.Store`1"
        assert LIST.construct(INT).documentation_name == "System.Collections.Generic.List{System.Int32}"
        assert TypeRef.by_reference_to(INT).documentation_name == "System.Int32@"
        assert TypeRef.parameter("TKey", 0, method=True).documentation_name == "``0"

    def test_substitute_replaces_class_parameters_only(self):
        method_parameter = TypeRef.parameter("T", 0, method=True)
        substitutions = {"T": INT}
        assert substitute(IENUMERABLE_OF_T.construct(T), substitutions) == IENUMERABLE_OF_T.construct(INT)
        assert substitute(TypeRef.array_of(T), substitutions) == TypeRef.array_of(INT)
        assert substitute(method_parameter, substitutions) is method_parameter


class TestAssemblySnapshot:
    def test_type_definitions_keep_metadata_order(self, snapshot):
        assert [d.ref for d in snapshot.type_definitions()] == [d.ref for d in sample_types()]

    def test_resolve_closed_generic(self, snapshot):
        assert snapshot.resolve(STORE.construct(INT)).ref == STORE
        assert snapshot.resolve(TypeRef.array_of(ORDER)) is None

    def test_compiler_generated_detection(self, snapshot):
        assert snapshot.is_compiler_generated_or_nested_in_one(snapshot.resolve(CLOSURE))
        assert not snapshot.is_compiler_generated_or_nested_in_one(snapshot.resolve(CUSTOMER))

    def test_non_interface_base_types_root_first(self, snapshot):
        assert snapshot.non_interface_base_types(CUSTOMER) == [OBJECT, ENTITY, CUSTOMER]

    def test_all_base_types_include_interfaces(self, snapshot):
        bases = snapshot.all_base_types(LIST.construct(ORDER))
        assert IENUMERABLE_OF_T.construct(ORDER) in bases
        assert IENUMERABLE in bases
        assert bases[-1] == LIST.construct(ORDER)

    def test_inherited_members_are_substituted(self, snapshot):
        properties = snapshot.get_properties(snapshot.resolve(INT_STORE))
        (items,) = properties
        assert items.declaring_type == STORE.construct(INT)
        assert items.return_type == IENUMERABLE_OF_T.construct(INT)

    def test_inherited_members_keep_open_documentation_id(self, snapshot):
        add = next(m for m in snapshot.get_methods(snapshot.resolve(INT_STORE)) if m.name == "Add")
        assert add.parameters[0].type == INT
        assert add.documentation_id == "M:MyApp.Models.Store`1.Add(`0)"

    def test_override_hides_base_member(self, snapshot):
        to_strings = [m for m in snapshot.get_methods(snapshot.resolve(CUSTOMER)) if m.name == "ToString"]
        assert [m.declaring_type for m in to_strings] == [ENTITY]

    def test_element_type_of_generic_enumerable(self, snapshot):
        assert snapshot.element_type_from_enumerable(LIST.construct(ORDER)) == (ORDER, True)
        assert snapshot.element_type_from_enumerable(TypeRef.array_of(ORDER)) == (ORDER, True)

    def test_element_type_of_non_generic_enumerable(self, snapshot):
        assert snapshot.element_type_from_enumerable(ORDER_COLLECTION) == (OBJECT, False)

    def test_element_type_of_non_enumerable(self, snapshot):
        assert snapshot.element_type_from_enumerable(CUSTOMER) == (None, None)
        assert snapshot.element_type_from_enumerable(STRING) == (None, None)

    def test_indexers_are_declared_only(self, snapshot):
        assert [p.return_type for p in snapshot.indexers(ORDER_COLLECTION)] == [ORDER]
        assert snapshot.indexers(CUSTOMER) == []
        assert [p.return_type for p in snapshot.indexers(LIST.construct(ORDER))] == [ORDER]

    def test_kinds_without_definition(self):
        assert not T.has_definition
        assert T.kind is TypeKind.TYPE_PARAMETER
