"""Inherited members, grouped by the ancestor declaring them.

The viewer decides per ancestor whether to render its members inside a
derived type (when the ancestor itself is not shown) or not at all (when the
ancestor is shown and already lists them).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from net_amermaid.model import NEW_LINE, InheritedMembers

if TYPE_CHECKING:
    from net_amermaid.ids import IdAllocator
    from net_amermaid.members import ClassifiedMembers, MemberFormatter
    from net_amermaid.relationships import RelationshipBuilder
    from net_amermaid.typesystem import TypeDefinition, TypeRef, TypeSystem


class InheritanceResolver:
    def __init__(
        self,
        type_system: TypeSystem,
        ids: IdAllocator,
        formatter: MemberFormatter,
        relationships: RelationshipBuilder,
    ) -> None:
        self._types = type_system
        self._ids = ids
        self._formatter = formatter
        self._relationships = relationships

    def ancestors(self, definition: TypeDefinition) -> list[TypeRef]:
        """Non-interface ancestors, root first, without the type itself and ``object``."""
        return [
            t for t in self._types.non_interface_base_types(definition.ref) if t != definition.ref and not t.is_object
        ]

    def resolve(
        self, definition: TypeDefinition, type_id: str, classified: ClassifiedMembers
    ) -> dict[str, InheritedMembers] | None:
        """``{ancestor id: members declared by it}`` for every ancestor contributing anything."""
        # flat members are attributed to the derived type so mermaid renders them inside its box
        prefix = f"{type_id} : "
        inherited: dict[str, InheritedMembers] = {}

        for ancestor in self.ancestors(definition):
            declared = classified.declared_by(ancestor)
            if declared.is_empty:
                continue
            lines = [prefix + line for line in self._formatter.format_flat_members(declared)]
            members = InheritedMembers(
                flat_members=NEW_LINE.join(lines) if lines else None,
                has_one=self._relationships.map_has_one(declared.has_one),
                has_many=self._relationships.map_has_many(declared.has_many),
            )
            if not members.is_empty:
                inherited[self._ids.get_id(ancestor)] = members

        return inherited or None
