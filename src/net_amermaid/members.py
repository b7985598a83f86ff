"""Member classification and mermaid member syntax.

A type's properties are partitioned into flat members, has-one relations and
has-many relations; fields and methods are filtered down to the ones worth
showing.  Everything is then grouped by declaring type so each member is
rendered exactly once: in the body of the type declaring it, or as an
inherited member of the type it is inherited by.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from net_amermaid.names import GENERIC_CLOSE, GENERIC_OPEN
from net_amermaid.schema import Accessibility

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator

    from net_amermaid.names import NameFormatter
    from net_amermaid.typesystem import (
        FieldDefinition,
        MemberDefinition,
        MethodDefinition,
        PropertyDefinition,
        TypeDefinition,
        TypeRef,
        TypeSystem,
    )

# ---------------------------------------------------------------------------
# Classification results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HasManyRelation:
    """A collection property together with the element type it relates to."""

    property: PropertyDefinition
    element_type: TypeRef


@dataclass(frozen=True)
class DeclaredMembers:
    """The displayed members one type declares, by category."""

    flat_properties: tuple[PropertyDefinition, ...] = ()
    has_one: tuple[PropertyDefinition, ...] = ()
    has_many: tuple[HasManyRelation, ...] = ()
    fields: tuple[FieldDefinition, ...] = ()
    methods: tuple[MethodDefinition, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.flat_properties or self.has_one or self.has_many or self.fields or self.methods)


EMPTY_MEMBERS = DeclaredMembers()


@dataclass(frozen=True)
class ClassifiedMembers:
    """All displayed members of a type, including inherited ones."""

    properties: tuple[PropertyDefinition, ...]
    flat_properties: tuple[PropertyDefinition, ...]
    has_one: tuple[PropertyDefinition, ...]
    has_many: tuple[HasManyRelation, ...]
    fields: tuple[FieldDefinition, ...]
    methods: tuple[MethodDefinition, ...]
    by_declaring_type: dict[TypeRef, DeclaredMembers] = field(default_factory=dict)

    def declared_by(self, ref: TypeRef) -> DeclaredMembers:
        return self.by_declaring_type.get(ref, EMPTY_MEMBERS)


def group_by_declaring_type(
    flat_properties: tuple[PropertyDefinition, ...],
    has_one: tuple[PropertyDefinition, ...],
    has_many: tuple[HasManyRelation, ...],
    fields: tuple[FieldDefinition, ...],
    methods: tuple[MethodDefinition, ...],
) -> dict[TypeRef, DeclaredMembers]:
    """Split each category up by the type declaring its members."""
    buckets: dict[TypeRef, dict[str, list[object]]] = {}

    def add(category: str, owner: TypeRef, item: object) -> None:
        buckets.setdefault(owner, {}).setdefault(category, []).append(item)

    for prop in flat_properties:
        add("flat_properties", prop.declaring_type, prop)
    for prop in has_one:
        add("has_one", prop.declaring_type, prop)
    for relation in has_many:
        add("has_many", relation.property.declaring_type, relation)
    for fld in fields:
        add("fields", fld.declaring_type, fld)
    for method in methods:
        add("methods", method.declaring_type, method)

    return {
        owner: DeclaredMembers(**{category: tuple(items) for category, items in categories.items()})  # type: ignore[arg-type]
        for owner, categories in buckets.items()
    }


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class MemberClassifier:
    """Classifies members against the set of selected types."""

    def __init__(self, type_system: TypeSystem, selected: Collection[TypeRef]) -> None:
        self._types = type_system
        self._selected = frozenset(selected)

    def is_selected(self, ref: TypeRef) -> bool:
        return ref in self._selected

    def classify(self, definition: TypeDefinition) -> ClassifiedMembers:
        properties = tuple(self._types.get_properties(definition))
        has_one = tuple(p for p in properties if self._is_has_one(p))
        has_many = tuple(self._has_many_relations(p for p in properties if p not in has_one))
        many_properties = {relation.property for relation in has_many}
        flat_properties = tuple(p for p in properties if p not in has_one and p not in many_properties)
        fields = tuple(self.displayed_fields(definition, properties))
        methods = tuple(self.displayed_methods(definition))

        return ClassifiedMembers(
            properties=properties,
            flat_properties=flat_properties,
            has_one=has_one,
            has_many=has_many,
            fields=fields,
            methods=methods,
            by_declaring_type=group_by_declaring_type(flat_properties, has_one, has_many, fields, methods),
        )

    def _is_has_one(self, prop: PropertyDefinition) -> bool:
        target = prop.return_type
        target = target.nullable_argument or target
        return self.is_selected(target)

    def _has_many_relations(self, properties: Iterable[PropertyDefinition]) -> Iterator[HasManyRelation]:
        for prop in properties:
            element_type = self.collection_element_type(prop.return_type)
            if element_type is not None and self.is_selected(element_type):
                yield HasManyRelation(prop, element_type)

    def collection_element_type(self, ref: TypeRef) -> TypeRef | None:
        """Element type of a collection-shaped *ref*, or ``None`` if it is not one.

        Generic enumerables yield their type argument.  Non-generic enumerables
        fall back to the return type of their first declared indexer that does
        not return ``object``.
        """
        element_type, is_generic = self._types.element_type_from_enumerable(ref)
        if is_generic:
            return element_type
        if is_generic is False:
            indexers = [p for p in self._types.indexers(ref) if not p.return_type.is_object]
            if indexers:
                return indexers[0].return_type
        return None

    def displayed_methods(self, definition: TypeDefinition) -> Iterator[MethodDefinition]:
        """Methods minus operators, compiler-generated ones and inherited ``object`` members."""
        for method in self._types.get_methods(definition):
            if method.is_operator or method.is_compiler_generated:
                continue
            if method.declaring_type == definition.ref:
                yield method
                continue
            if method.declaring_type.is_object:
                continue
            base = method.base_declaring_type
            if method.is_override and base is not None and base.is_object:
                continue
            yield method

    def displayed_fields(
        self, definition: TypeDefinition, properties: Collection[PropertyDefinition]
    ) -> Iterator[FieldDefinition]:
        """Fields minus compiler-generated and manual property backing fields."""
        for fld in self._types.get_fields(definition):
            if fld.is_compiler_generated:
                continue
            if any(fld.return_type == p.return_type and is_backing_field_name(fld.name, p.name) for p in properties):
                continue
            yield fld


def is_backing_field_name(field_name: str, property_name: str) -> bool:
    """``_name``, ``Name`` and ``_NAME`` all back a property called ``Name``."""
    return re.fullmatch("_?" + re.escape(property_name), field_name, re.IGNORECASE) is not None


def enum_constants(definition: TypeDefinition) -> list[FieldDefinition]:
    return [
        f for f in definition.fields if f.is_const and f.is_static and f.accessibility is Accessibility.PUBLIC
    ]


# ---------------------------------------------------------------------------
# Mermaid member syntax
# ---------------------------------------------------------------------------

# see https://mermaid.js.org/syntax/classDiagram.html#visibility
_VISIBILITY: dict[Accessibility, str] = {
    Accessibility.PRIVATE: "-",
    Accessibility.PRIVATE_PROTECTED: "~",
    Accessibility.INTERNAL: "~",
    Accessibility.PROTECTED: "#",
    Accessibility.PROTECTED_INTERNAL: "#",
    Accessibility.PUBLIC: "+",
}


def visibility(access: Accessibility) -> str:
    return _VISIBILITY.get(access, "")


def modifier(member: MemberDefinition) -> str:
    """``*`` for abstract, ``$`` for static members."""
    if member.is_abstract:
        return "*"
    return "$" if member.is_static else ""


class MemberFormatter:
    """Renders members as lines of a mermaid class body."""

    def __init__(self, names: NameFormatter) -> None:
        self._names = names

    def format_method(self, method: MethodDefinition) -> str:
        parameters = ", ".join(f"{self._names.get_name(p.type)} {p.name}" for p in method.parameters)
        name = method.name
        if method.explicit_interface is not None:
            member_name = method.interface_member_name or name.rsplit(".", 1)[-1]
            name = f"{self._names.get_name(method.explicit_interface)}.{member_name}"

        type_arguments = ""
        if method.type_parameters:
            names = ", ".join(self._names.get_name(t) for t in method.type_arguments)
            type_arguments = f"{GENERIC_OPEN}{names}{GENERIC_CLOSE}"

        return (
            f"{visibility(method.accessibility)}{name}{type_arguments}({parameters}){modifier(method)} "
            f"{self._names.get_name(method.return_type)}"
        )

    def format_property(self, prop: PropertyDefinition) -> str:
        return f"{visibility(prop.accessibility)}{self._names.get_name(prop.return_type)} {prop.name}{modifier(prop)}"

    def format_field(self, fld: FieldDefinition) -> str:
        return f"{visibility(fld.accessibility)}{self._names.get_name(fld.return_type)} {fld.name}{modifier(fld)}"

    def format_flat_members(self, members: DeclaredMembers) -> list[str]:
        """Flat properties, then methods, then fields."""
        return [
            *(self.format_property(p) for p in members.flat_properties),
            *(self.format_method(m) for m in members.methods),
            *(self.format_field(f) for f in members.fields),
        ]
