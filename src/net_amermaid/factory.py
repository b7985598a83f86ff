"""Model assembler: drives id allocation, classification and relationship
building over the filtered types of one module.

Per-run state (id table, name cache, outside references) lives in a
``_BuildRun`` so a factory can build several models, one after another, from
the same type system without leaking ids between them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from net_amermaid.ids import IdAllocator
from net_amermaid.inheritance import InheritanceResolver
from net_amermaid.members import MemberClassifier, MemberFormatter, enum_constants
from net_amermaid.model import NEW_LINE, ClassDiagram, ModelType
from net_amermaid.names import NameFormatter
from net_amermaid.relationships import RelationshipBuilder
from net_amermaid.schema import Annotation

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from net_amermaid.docs import XmlDocumentationFormatter
    from net_amermaid.members import ClassifiedMembers
    from net_amermaid.typesystem import TypeDefinition, TypeRef, TypeSystem

# separates lines of a class body; mermaid wants members indented inside the braces
MEMBER_SEPARATOR = NEW_LINE + "    "


class InvalidFilterError(ValueError):
    """An include or exclude pattern is not a valid regular expression."""

    def __init__(self, option: str, pattern: str, reason: str) -> None:
        self.option = option
        self.pattern = pattern
        super().__init__(f"Invalid {option} pattern {pattern!r}: {reason}")


def compile_filter(option: str, pattern: str | None) -> re.Pattern[str] | None:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidFilterError(option, pattern, str(exc)) from exc


def join_padded(lines: Iterable[str]) -> str:
    """Join *lines* with the member separator, also before the first and after the last."""
    return MEMBER_SEPARATOR + MEMBER_SEPARATOR.join(lines) + MEMBER_SEPARATOR


def annotation_for(definition: TypeDefinition) -> Annotation | None:
    # see https://mermaid.js.org/syntax/classDiagram.html#annotations-on-classes
    if definition.is_interface:
        return Annotation.INTERFACE
    if definition.is_abstract:
        return Annotation.SERVICE if definition.is_sealed else Annotation.ABSTRACT
    return None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class ClassDiagrammerFactory:
    """Produces a ``ClassDiagram`` for a filtered list of types from a type system.

    Args:
        type_system: Metadata of the module to diagram.
        docs: Optional formatter supplying XML documentation per type and member.
    """

    def __init__(self, type_system: TypeSystem, docs: XmlDocumentationFormatter | None = None) -> None:
        self.type_system = type_system
        self.docs = docs

    def build_model(self, include: str | None = None, exclude: str | None = None) -> ClassDiagram:
        """Build the model for types whose reflection name matches *include* and not *exclude*.

        Both patterns are compiled before any type is looked at, so an invalid
        one raises ``InvalidFilterError`` without doing any work.
        """
        include_re = compile_filter("include", include)
        exclude_re = compile_filter("exclude", exclude)

        all_types = self.type_system.type_definitions()
        selected = self.filter_types(all_types, include_re, exclude_re)
        logger.info("Selected {} of {} types", len(selected), len(all_types))

        run = _BuildRun(self.type_system, self.docs, selected)

        by_namespace: dict[str, list[TypeDefinition]] = {}
        for definition in selected:
            by_namespace.setdefault(definition.namespace, []).append(definition)

        types_by_namespace = {
            namespace: tuple(run.build(d) for d in sorted(by_namespace[namespace], key=lambda d: d.full_name))
            for namespace in sorted(by_namespace)
        }

        selected_refs = {d.ref for d in selected}
        excluded = tuple(d.reflection_name for d in all_types if d.ref not in selected_refs)
        logger.debug("Excluded {} types, {} outside references", len(excluded), len(run.relationships.outside_references))

        return ClassDiagram(
            types_by_namespace=types_by_namespace,
            outside_references=run.relationships.outside_references,
            excluded=excluded,
        )

    def filter_types(
        self,
        definitions: Iterable[TypeDefinition],
        include: re.Pattern[str] | None,
        exclude: re.Pattern[str] | None,
    ) -> list[TypeDefinition]:
        """Drop compiler-generated types (and types nested in them), then apply the filters."""
        selected = []
        for definition in definitions:
            if self.type_system.is_compiler_generated_or_nested_in_one(definition):
                continue
            if include is not None and not include.search(definition.reflection_name):
                continue
            if exclude is not None and exclude.search(definition.reflection_name):
                continue
            selected.append(definition)
        return selected


# ---------------------------------------------------------------------------
# One model build
# ---------------------------------------------------------------------------


@dataclass
class _BuildRun:
    type_system: TypeSystem
    docs: XmlDocumentationFormatter | None
    selected: Sequence[TypeDefinition]

    def __post_init__(self) -> None:
        refs = [d.ref for d in self.selected]
        self.module_types = {d.ref for d in self.type_system.type_definitions()}
        self.ids = IdAllocator()
        self.ids.assign(sorted(refs, key=lambda r: r.full_name))
        self.names = NameFormatter()
        self.classifier = MemberClassifier(self.type_system, refs)
        self.formatter = MemberFormatter(self.names)
        self.relationships = RelationshipBuilder(self.ids, self.names, refs)
        self.inheritance = InheritanceResolver(self.type_system, self.ids, self.formatter, self.relationships)

    def build(self, definition: TypeDefinition) -> ModelType:
        return self.build_enum(definition) if definition.is_enum else self.build_type(definition)

    def _display_name(self, definition: TypeDefinition, type_id: str) -> str | None:
        name = self.names.get_name(definition.ref)
        return None if name == type_id else name

    def build_enum(self, definition: TypeDefinition) -> ModelType:
        constants = enum_constants(definition)
        type_id = self.ids.get_id(definition.ref)
        body = join_padded([f"<<{Annotation.ENUMERATION}>>", *(f.name for f in constants)]).rstrip(" ")
        return ModelType(
            id=type_id,
            name=self._display_name(definition, type_id),
            body=f"class {type_id} {{{body}}}",
            xml_docs=self.docs.get_xml_docs(definition, constants) if self.docs else None,
        )

    def build_type(self, definition: TypeDefinition) -> ModelType:
        type_id = self.ids.get_id(definition.ref)
        classified = self.classifier.classify(definition)
        own = classified.declared_by(definition.ref)

        members = join_padded(self.formatter.format_flat_members(own))
        annotation = annotation_for(definition)
        body = members.rstrip(" ") if annotation is None else f"{members}<<{annotation}>>{NEW_LINE}"

        inherited = self.inheritance.resolve(definition, type_id, classified)
        has_one = self.relationships.map_has_one(own.has_one)
        has_many = self.relationships.map_has_many(own.has_many)
        self._reference_flat_property_types(classified)

        return ModelType(
            id=type_id,
            name=self._display_name(definition, type_id),
            body=f"class {type_id} {{{body}}}",
            has_one=has_one,
            has_many=has_many,
            base_type=self.relationships.base_type(definition),
            interfaces=self.relationships.interfaces(definition),
            inherited=inherited,
            xml_docs=self._xml_docs(definition, classified),
        )

    def _reference_flat_property_types(self, classified: ClassifiedMembers) -> None:
        # module types left out by the filters still get a readable label in the viewer
        for prop in classified.flat_properties:
            target = prop.return_type.nullable_argument or prop.return_type
            target = target.generic_definition
            if target in self.module_types and not self.classifier.is_selected(target):
                self.relationships.reference(target)

    def _xml_docs(self, definition: TypeDefinition, classified: ClassifiedMembers) -> dict[str, str] | None:
        if self.docs is None:
            return None
        return self.docs.get_xml_docs(definition, classified.fields, classified.properties, classified.methods)
