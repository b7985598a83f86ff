"""Serializable class diagram model.

Produced once per run by ``ClassDiagrammerFactory`` and handed to the HTML
generator as JSON.  ``None`` values and empty collections are left out of the
JSON to keep the payload small for the browser.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

NEW_LINE = "\n"


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None and value != {} and value != []}


@dataclass(frozen=True)
class Edge:
    """A reference to another type by id, with an optional label."""

    to: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({"to": self.to, "label": self.label})


@dataclass(frozen=True)
class InheritedMembers:
    """Members a type inherits from one ancestor, declared by that ancestor."""

    flat_members: str | None = None
    has_one: dict[str, str] | None = None
    has_many: dict[str, str] | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.flat_members or self.has_one or self.has_many)

    def to_dict(self) -> dict[str, Any]:
        return _compact({"flatMembers": self.flat_members, "hasOne": self.has_one, "hasMany": self.has_many})


@dataclass(frozen=True)
class ModelType:
    """Diagram definition, relations and docs of one selected type.

    ``body`` is a complete ``class Id {...}`` mermaid statement holding only the
    type's own members.  ``has_one``/``has_many`` map member labels to related
    type ids; labels are unique per type, related ids may repeat.
    """

    id: str
    body: str
    name: str | None = None
    has_one: dict[str, str] | None = None
    has_many: dict[str, str] | None = None
    base_type: Edge | None = None
    interfaces: tuple[Edge, ...] | None = None
    inherited: dict[str, InheritedMembers] | None = None
    xml_docs: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "body": self.body,
                "hasOne": self.has_one,
                "hasMany": self.has_many,
                "baseType": self.base_type.to_dict() if self.base_type else None,
                "interfaces": [edge.to_dict() for edge in self.interfaces] if self.interfaces else None,
                "inherited": (
                    {ancestor: members.to_dict() for ancestor, members in self.inherited.items()}
                    if self.inherited
                    else None
                ),
                "xmlDocs": self.xml_docs,
            }
        )


@dataclass(frozen=True)
class ClassDiagram:
    """The whole model: selected types by namespace plus what was left out."""

    types_by_namespace: dict[str, tuple[ModelType, ...]]
    outside_references: dict[str, str] = field(default_factory=dict)
    excluded: tuple[str, ...] = ()

    @property
    def types(self) -> list[ModelType]:
        return [t for types in self.types_by_namespace.values() for t in types]

    def find(self, type_id: str) -> ModelType | None:
        return next((t for t in self.types if t.id == type_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outsideReferences": self.outside_references,
            "namespaces": {
                namespace: {t.id: t.to_dict() for t in types} for namespace, types in self.types_by_namespace.items()
            },
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
