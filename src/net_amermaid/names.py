"""Human-readable display labels for type references.

Labels follow C# conventions (``int``, ``Order?``, ``Order[]``) except that
generic arguments are wrapped in ``❰`` and ``❱`` because mermaid gives ``<``
and ``>`` a meaning of its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from net_amermaid.schema import CSHARP_ALIASES, UNDEFINED_KINDS, TypeKind

if TYPE_CHECKING:
    from net_amermaid.typesystem import TypeRef

GENERIC_OPEN = "❰"
GENERIC_CLOSE = "❱"


class InconsistentTypeError(RuntimeError):
    """A type reached name or id resolution in a shape no well-formed assembly produces."""


class NameFormatter:
    """Memoizing display-name generator, one instance per model build."""

    def __init__(self) -> None:
        self._labels: dict[TypeRef, str] = {}
        self._resolving: set[TypeRef] = set()

    def get_name(self, ref: TypeRef) -> str:
        label = self._labels.get(ref)
        if label is not None:
            return label
        if ref in self._resolving:
            msg = f"Type {ref.reflection_name} refers to itself while resolving its name"
            logger.error(msg)
            raise InconsistentTypeError(msg)
        self._resolving.add(ref)
        try:
            label = self._generate_name(ref)
        finally:
            self._resolving.discard(ref)
        self._labels[ref] = label
        return label

    def _generate_name(self, ref: TypeRef) -> str:
        # non-generic types
        if not ref.type_parameters:
            if ref.element_type is not None:
                element = self.get_name(ref.element_type)
                if ref.kind is TypeKind.ARRAY:
                    return element + "[]"
                if ref.kind is TypeKind.BY_REFERENCE:
                    return "&" + element
                return element + "*"

            if not ref.has_definition:
                if ref.kind not in UNDEFINED_KINDS:
                    msg = f"Unexpected {ref.kind} type without definition: {ref.reflection_name}"
                    logger.error(msg)
                    raise InconsistentTypeError(msg)
                return ref.name

            if ref.known_type is None:
                if ref.declaring_type is None:
                    return ref.name  # includes <Module>
                return f"{ref.declaring_type.name}+{ref.name}"

            return CSHARP_ALIASES.get(ref.known_type, ref.name)

        nullable = ref.nullable_argument
        if nullable is not None:
            return self.get_name(nullable) + "?"

        arguments = ", ".join(self.get_name(arg) for arg in ref.arguments)
        return f"{ref.name}{GENERIC_OPEN}{arguments}{GENERIC_CLOSE}"
