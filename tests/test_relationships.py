"""Unit tests for edges and outside references."""

from __future__ import annotations

import pytest
from builders import (
    ADDRESS,
    CUSTOMER,
    ENTITY,
    IAUDITABLE,
    IENUMERABLE,
    INT,
    INT_STORE,
    NULLABLE,
    ORDER,
    ORDER_COLLECTION,
    STORE,
    define,
    prop,
    snapshot,
)

from net_amermaid.ids import IdAllocator
from net_amermaid.members import HasManyRelation
from net_amermaid.model import Edge
from net_amermaid.names import InconsistentTypeError, NameFormatter
from net_amermaid.relationships import RelationshipBuilder
from net_amermaid.schema import TypeKind
from net_amermaid.typesystem import OBJECT, TypeRef


def _builder(selected):
    ids = IdAllocator()
    ids.assign(sorted(selected, key=lambda r: r.full_name))
    return RelationshipBuilder(ids, NameFormatter(), selected)


@pytest.fixture
def builder(snapshot):
    return _builder([d.ref for d in snapshot.type_definitions()])


class TestEdges:
    def test_edge_to_selected_type(self, builder):
        assert builder.build_edge(ADDRESS) == Edge("Address")
        assert builder.outside_references == {}

    def test_closed_generic_edge_is_labelled(self, builder):
        assert builder.build_edge(STORE.construct(INT)) == Edge("Store", "Store❰int❱")

    def test_explicit_label_wins(self, builder):
        assert builder.build_edge(STORE.construct(INT), "Items") == Edge("Store", "Items")

    def test_outside_reference_registered_once(self, builder):
        first = builder.build_edge(IENUMERABLE)
        second = builder.build_edge(IENUMERABLE, "again")
        assert first.to == second.to == "System_Collections_IEnumerable"
        assert builder.outside_references == {"System_Collections_IEnumerable": "System.Collections.IEnumerable"}

    def test_outside_reference_without_namespace(self):
        builder = _builder([])
        builder.build_edge(TypeRef("Global"))
        assert builder.outside_references == {"Global": "Global"}

    def test_generic_outside_reference_uses_open_definition(self):
        builder = _builder([])
        builder.build_edge(STORE.construct(INT))
        assert builder.outside_references == {"MyApp_Models_Store_T": "MyApp.Models.Store❰T❱"}


class TestInheritanceEdges:
    def test_base_type_skips_interfaces(self, snapshot, builder):
        assert builder.base_type(snapshot.resolve(CUSTOMER)) == Edge("Entity")
        assert builder.interfaces(snapshot.resolve(CUSTOMER)) == (Edge("IAuditable"),)

    def test_object_is_no_base_type(self, snapshot, builder):
        assert builder.base_type(snapshot.resolve(ENTITY)) is None
        assert builder.interfaces(snapshot.resolve(ENTITY)) is None

    def test_closed_generic_base_type(self, snapshot, builder):
        assert builder.base_type(snapshot.resolve(INT_STORE)) == Edge("Store", "Store❰int❱")

    def test_interface_outside_reference(self, snapshot, builder):
        assert builder.interfaces(snapshot.resolve(ORDER_COLLECTION)) == (Edge("System_Collections_IEnumerable"),)
        assert "System_Collections_IEnumerable" in builder.outside_references

    def test_multiple_base_classes_are_inconsistent(self):
        first, second = TypeRef("First", "X"), TypeRef("Second", "X")
        odd = TypeRef("Odd", "X")
        type_system = snapshot(define(odd, first, second))
        builder = _builder([odd])
        with pytest.raises(InconsistentTypeError, match="2 non-interface base types"):
            builder.base_type(type_system.resolve(odd))

    def test_interface_base_of_interface(self):
        child, parent = TypeRef("IChild", "X", TypeKind.INTERFACE), TypeRef("IParent", "X", TypeKind.INTERFACE)
        type_system = snapshot(define(parent), define(child, parent))
        builder = _builder([child, parent])
        assert builder.base_type(type_system.resolve(child)) is None
        assert builder.interfaces(type_system.resolve(child)) == (Edge("IParent"),)


class TestPropertyRelations:
    def test_has_one(self, builder):
        relations = builder.map_has_one([prop(CUSTOMER, "PrimaryAddress", ADDRESS), prop(CUSTOMER, "Home", ADDRESS)])
        assert relations == {"PrimaryAddress": "Address", "Home": "Address"}

    def test_nullable_has_one_is_unwrapped(self):
        order = TypeRef("Order", "Shop", TypeKind.STRUCT)
        builder = _builder([order])
        relations = builder.map_has_one([prop(TypeRef("Invoice", "Shop"), "Order", NULLABLE.construct(order))])
        assert relations == {"Order ?": "Order"}
        assert builder.outside_references == {}

    def test_has_many_labelled_by_property(self, builder):
        relations = builder.map_has_many([HasManyRelation(prop(CUSTOMER, "Orders", ORDER), ORDER)])
        assert relations == {"Orders": "Order"}

    def test_empty_relations_are_absent(self, builder):
        assert builder.map_has_one([]) is None
        assert builder.map_has_many([]) is None

    def test_reference_registers_unselected_type(self):
        builder = _builder([CUSTOMER])
        assert builder.reference(OBJECT) == "System_Object"
        assert builder.reference(IAUDITABLE) == "MyApp_Models_IAuditable"
        assert set(builder.outside_references) == {"System_Object", "MyApp_Models_IAuditable"}
