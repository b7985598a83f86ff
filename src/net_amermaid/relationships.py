"""Edges from a type to its base type, interfaces and related types.

Every edge target goes through the id table.  Targets outside the selected
set are recorded as outside references so the viewer can still label them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from net_amermaid.model import Edge
from net_amermaid.names import InconsistentTypeError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from net_amermaid.ids import IdAllocator
    from net_amermaid.members import HasManyRelation
    from net_amermaid.names import NameFormatter
    from net_amermaid.typesystem import PropertyDefinition, TypeDefinition, TypeRef

NULLABLE_LABEL_SUFFIX = " ?"


class RelationshipBuilder:
    """Builds edges and accumulates outside references for one model build."""

    def __init__(self, ids: IdAllocator, names: NameFormatter, selected: Collection[TypeRef]) -> None:
        self._ids = ids
        self._names = names
        self._selected = frozenset(selected)
        self.outside_references: dict[str, str] = {}

    def build_edge(self, target: TypeRef, label: str | None = None) -> Edge:
        """Edge to *target*, labelled with *label* or, for constructed generics, the closed type name."""
        type_id, open_generic = self._ids.get_id_and_open_generic(target)
        self._add_outside_reference(type_id, open_generic or target)
        if label is None and open_generic is not None:
            label = self._names.get_name(target)
        return Edge(type_id, label)

    def reference(self, target: TypeRef) -> str:
        """Id of *target*, registering it as an outside reference if it is not selected."""
        return self.build_edge(target).to

    def _add_outside_reference(self, type_id: str, ref: TypeRef) -> None:
        if ref in self._selected or type_id in self.outside_references:
            return
        name = self._names.get_name(ref)
        self.outside_references[type_id] = f"{ref.namespace}.{name}" if ref.namespace else name
        logger.debug("Outside reference {} -> {}", type_id, self.outside_references[type_id])

    # -- inheritance ----------------------------------------------------------

    def base_type(self, definition: TypeDefinition) -> Edge | None:
        """Edge to the one direct base that is neither an interface nor ``object``."""
        candidates = [t for t in definition.direct_base_types if not t.is_interface and not t.is_object]
        if len(candidates) > 1:
            msg = f"{definition.reflection_name} has {len(candidates)} non-interface base types"
            logger.error(msg)
            raise InconsistentTypeError(msg)
        return self.build_edge(candidates[0]) if candidates else None

    def interfaces(self, definition: TypeDefinition) -> tuple[Edge, ...] | None:
        interfaces = [t for t in definition.direct_base_types if t.is_interface]
        return tuple(self.build_edge(i) for i in interfaces) or None

    # -- property relations ---------------------------------------------------

    def map_has_one(self, properties: Iterable[PropertyDefinition]) -> dict[str, str] | None:
        """``{label: related id}`` for has-one properties; nullable wrappers point at the wrapped type."""
        relations: dict[str, str] = {}
        for prop in properties:
            target, label = prop.return_type, prop.name
            wrapped = target.nullable_argument
            if wrapped is not None:
                target, label = wrapped, label + NULLABLE_LABEL_SUFFIX
            edge = self.build_edge(target, label)
            relations[label] = edge.to
        return relations or None

    def map_has_many(self, relations: Iterable[HasManyRelation]) -> dict[str, str] | None:
        """``{property name: element type id}`` for has-many properties."""
        mapped: dict[str, str] = {}
        for relation in relations:
            edge = self.build_edge(relation.element_type, relation.property.name)
            mapped[relation.property.name] = edge.to
        return mapped or None
