"""Immutable metadata snapshot of a .NET module.

The diagram builders never talk to a metadata reader directly.  The loader
materializes everything they need into the frozen dataclasses below once, and
the builders run over that snapshot through the ``TypeSystem`` protocol.

``TypeRef`` references any type (definitions, constructed generics, arrays,
type parameters).  ``TypeDefinition`` carries a type's *declared* members;
``AssemblySnapshot`` derives inherited members, base type chains and
enumerable element types from those declarations.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

from loguru import logger

from net_amermaid.schema import (
    DEFINITION_KINDS,
    ELEMENT_KIND_SUFFIXES,
    ENUMERABLE_OF_T,
    NON_GENERIC_ENUMERABLE,
    Accessibility,
    KnownType,
    TypeKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

# ---------------------------------------------------------------------------
# Type references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeRef:
    """A reference to a type.

    ``type_parameters`` names the definition's own generic parameters and is
    shared by the open definition and all its constructions.  ``type_arguments``
    is non-empty only for a constructed (closed) generic like ``List<int>``.
    """

    name: str
    namespace: str = ""
    kind: TypeKind = TypeKind.CLASS
    declaring_type: TypeRef | None = None
    type_parameters: tuple[str, ...] = ()
    type_arguments: tuple[TypeRef, ...] = ()
    element_type: TypeRef | None = None
    parameter_index: int = field(default=0, compare=False)
    is_method_parameter: bool = field(default=False, compare=False)
    known_type: KnownType | None = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        known = None if self.kind not in DEFINITION_KINDS else KnownType.lookup(self._definition_reflection_name())
        object.__setattr__(self, "known_type", known)

    # -- constructors -------------------------------------------------------

    @classmethod
    def parameter(cls, name: str, index: int = 0, *, method: bool = False) -> TypeRef:
        return cls(name, kind=TypeKind.TYPE_PARAMETER, parameter_index=index, is_method_parameter=method)

    @classmethod
    def array_of(cls, element: TypeRef) -> TypeRef:
        return cls._wrapping(element, TypeKind.ARRAY)

    @classmethod
    def by_reference_to(cls, element: TypeRef) -> TypeRef:
        return cls._wrapping(element, TypeKind.BY_REFERENCE)

    @classmethod
    def pointer_to(cls, element: TypeRef) -> TypeRef:
        return cls._wrapping(element, TypeKind.POINTER)

    @classmethod
    def _wrapping(cls, element: TypeRef, kind: TypeKind) -> TypeRef:
        return cls(element.name + ELEMENT_KIND_SUFFIXES[kind], element.namespace, kind, element_type=element)

    def construct(self, *arguments: TypeRef) -> TypeRef:
        """Close this generic definition over *arguments*."""
        if len(arguments) != len(self.type_parameters):
            msg = f"{self.full_name} takes {len(self.type_parameters)} type arguments, got {len(arguments)}"
            raise ValueError(msg)
        return replace(self, type_arguments=tuple(arguments))

    def nested(self, name: str, kind: TypeKind = TypeKind.CLASS, type_parameters: tuple[str, ...] = ()) -> TypeRef:
        """Reference a type nested in this one."""
        return TypeRef(name, self.namespace, kind, declaring_type=self.generic_definition, type_parameters=type_parameters)

    # -- derived facts ------------------------------------------------------

    @property
    def has_definition(self) -> bool:
        return self.kind in DEFINITION_KINDS

    @property
    def is_interface(self) -> bool:
        return self.kind is TypeKind.INTERFACE

    @property
    def is_object(self) -> bool:
        return self.known_type is KnownType.OBJECT

    @property
    def generic_definition(self) -> TypeRef:
        """The open generic definition for a constructed type, otherwise self."""
        return replace(self, type_arguments=()) if self.type_arguments else self

    @property
    def arguments(self) -> tuple[TypeRef, ...]:
        """Type arguments, or the type parameters themselves for an open definition."""
        if self.type_arguments:
            return self.type_arguments
        return tuple(TypeRef.parameter(name, index) for index, name in enumerate(self.type_parameters))

    @property
    def substitutions(self) -> dict[str, TypeRef]:
        return dict(zip(self.type_parameters, self.type_arguments, strict=False))

    @property
    def nullable_argument(self) -> TypeRef | None:
        """The wrapped type if this is ``Nullable<T>``."""
        if self.known_type is KnownType.NULLABLE and len(self.arguments) == 1:
            return self.arguments[0]
        return None

    @property
    def full_name(self) -> str:
        """``Namespace.Outer.Inner`` without generic arity."""
        if self.element_type is not None:
            return self.element_type.full_name + ELEMENT_KIND_SUFFIXES[self.kind]
        if self.declaring_type is not None:
            return f"{self.declaring_type.full_name}.{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def reflection_name(self) -> str:
        """``Namespace.Outer+Inner`1``, with ``[[args]]`` for constructed generics."""
        if self.element_type is not None:
            return self.element_type.reflection_name + ELEMENT_KIND_SUFFIXES[self.kind]
        name = self._definition_reflection_name()
        if self.type_arguments:
            name += "[" + ",".join(f"[{arg.reflection_name}]" for arg in self.type_arguments) + "]"
        return name

    @property
    def documentation_name(self) -> str:
        """The form used for this type inside XML documentation member ids."""
        if self.kind is TypeKind.TYPE_PARAMETER:
            return ("``" if self.is_method_parameter else "`") + str(self.parameter_index)
        if self.element_type is not None:
            suffix = "@" if self.kind is TypeKind.BY_REFERENCE else ELEMENT_KIND_SUFFIXES[self.kind]
            return self.element_type.documentation_name + suffix
        if self.type_arguments:
            stem = self._qualified_stem(".")
            return stem + "{" + ",".join(arg.documentation_name for arg in self.type_arguments) + "}"
        return self._definition_reflection_name().replace("+", ".")

    def _definition_reflection_name(self) -> str:
        arity = f"`{len(self.type_parameters)}" if self.type_parameters else ""
        return self._qualified_stem("+") + arity

    def _qualified_stem(self, nesting: str) -> str:
        if self.declaring_type is not None:
            return f"{self.declaring_type._definition_reflection_name().replace('+', nesting)}{nesting}{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


OBJECT = TypeRef("Object", "System")
DYNAMIC = TypeRef("dynamic", kind=TypeKind.DYNAMIC)


def substitute(ref: TypeRef, substitutions: Mapping[str, TypeRef]) -> TypeRef:
    """Replace class type parameters in *ref* with the given type arguments."""
    if not substitutions:
        return ref
    if ref.kind is TypeKind.TYPE_PARAMETER:
        return ref if ref.is_method_parameter else substitutions.get(ref.name, ref)
    if ref.element_type is not None:
        element = substitute(ref.element_type, substitutions)
        return ref if element is ref.element_type else TypeRef._wrapping(element, ref.kind)
    if ref.type_arguments:
        return replace(ref, type_arguments=tuple(substitute(arg, substitutions) for arg in ref.type_arguments))
    return ref


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class ParameterDefinition:
    name: str
    type: TypeRef


@dataclass(frozen=True, kw_only=True)
class MemberDefinition:
    """Facts shared by properties, fields and methods."""

    doc_prefix: ClassVar[str] = ""

    name: str
    declaring_type: TypeRef
    accessibility: Accessibility = Accessibility.PUBLIC
    is_static: bool = False
    is_abstract: bool = False
    is_compiler_generated: bool = False
    # The declared member this one was substituted from, if any
    declared: MemberDefinition | None = field(default=None, compare=False, repr=False)

    @property
    def documentation_id(self) -> str:
        """The XML doc id of the declared member, parameters in their open form (``Add(`0)``)."""
        if self.declared is not None:
            return self.declared.documentation_id
        owner = self.declaring_type.generic_definition.documentation_name
        return f"{self.doc_prefix}:{owner}.{self.name.replace('.', '#')}{self._documentation_suffix()}"

    def _documentation_suffix(self) -> str:
        return ""

    def substituted(self, owner: TypeRef) -> MemberDefinition:
        """This member as seen through *owner*, a (possibly constructed) declaring type."""
        return replace(self, declaring_type=owner, declared=self.declared or self)


def _parameter_list(parameters: Sequence[ParameterDefinition]) -> str:
    if not parameters:
        return ""
    return "(" + ",".join(p.type.documentation_name for p in parameters) + ")"


@dataclass(frozen=True, kw_only=True)
class PropertyDefinition(MemberDefinition):
    doc_prefix: ClassVar[str] = "P"

    return_type: TypeRef
    parameters: tuple[ParameterDefinition, ...] = ()
    is_indexer: bool = False
    is_override: bool = False

    def _documentation_suffix(self) -> str:
        return _parameter_list(self.parameters)

    def substituted(self, owner: TypeRef) -> PropertyDefinition:
        subs = owner.substitutions
        return replace(
            self,
            declaring_type=owner,
            declared=self.declared or self,
            return_type=substitute(self.return_type, subs),
            parameters=tuple(replace(p, type=substitute(p.type, subs)) for p in self.parameters),
        )


@dataclass(frozen=True, kw_only=True)
class FieldDefinition(MemberDefinition):
    doc_prefix: ClassVar[str] = "F"

    return_type: TypeRef
    is_const: bool = False

    def substituted(self, owner: TypeRef) -> FieldDefinition:
        return replace(
            self,
            declaring_type=owner,
            declared=self.declared or self,
            return_type=substitute(self.return_type, owner.substitutions),
        )


@dataclass(frozen=True, kw_only=True)
class MethodDefinition(MemberDefinition):
    doc_prefix: ClassVar[str] = "M"

    return_type: TypeRef
    parameters: tuple[ParameterDefinition, ...] = ()
    type_parameters: tuple[str, ...] = ()
    is_operator: bool = False
    is_override: bool = False
    # Declaring type of the member this one overrides, if it is an override
    base_declaring_type: TypeRef | None = None
    # Set for explicit interface implementations like IDisposable.Dispose
    explicit_interface: TypeRef | None = None
    interface_member_name: str | None = None

    @property
    def type_arguments(self) -> tuple[TypeRef, ...]:
        return tuple(TypeRef.parameter(name, index, method=True) for index, name in enumerate(self.type_parameters))

    def _documentation_suffix(self) -> str:
        arity = f"``{len(self.type_parameters)}" if self.type_parameters else ""
        return arity + _parameter_list(self.parameters)

    def substituted(self, owner: TypeRef) -> MethodDefinition:
        subs = owner.substitutions
        return replace(
            self,
            declaring_type=owner,
            declared=self.declared or self,
            return_type=substitute(self.return_type, subs),
            parameters=tuple(replace(p, type=substitute(p.type, subs)) for p in self.parameters),
        )

    @property
    def signature_key(self) -> tuple[str, tuple[TypeRef, ...]]:
        return self.name, tuple(p.type for p in self.parameters)


# ---------------------------------------------------------------------------
# Type definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class TypeDefinition:
    """A type together with the members it declares itself."""

    ref: TypeRef
    direct_base_types: tuple[TypeRef, ...] = ()
    properties: tuple[PropertyDefinition, ...] = ()
    fields: tuple[FieldDefinition, ...] = ()
    methods: tuple[MethodDefinition, ...] = ()
    is_abstract: bool = False
    is_sealed: bool = False
    is_compiler_generated: bool = False

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def namespace(self) -> str:
        return self.ref.namespace

    @property
    def kind(self) -> TypeKind:
        return self.ref.kind

    @property
    def full_name(self) -> str:
        return self.ref.full_name

    @property
    def reflection_name(self) -> str:
        return self.ref.reflection_name

    @property
    def is_interface(self) -> bool:
        return self.ref.is_interface

    @property
    def is_enum(self) -> bool:
        return self.ref.kind is TypeKind.ENUM

    @property
    def documentation_id(self) -> str:
        return f"T:{self.ref.documentation_name}"


# ---------------------------------------------------------------------------
# Type system protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class TypeSystem(Protocol):
    """What the diagram builders need to know about a module's types."""

    def type_definitions(self) -> Sequence[TypeDefinition]: ...

    def resolve(self, ref: TypeRef) -> TypeDefinition | None: ...

    def all_base_types(self, ref: TypeRef) -> list[TypeRef]: ...

    def non_interface_base_types(self, ref: TypeRef) -> list[TypeRef]: ...

    def get_properties(self, definition: TypeDefinition) -> list[PropertyDefinition]: ...

    def get_fields(self, definition: TypeDefinition) -> list[FieldDefinition]: ...

    def get_methods(self, definition: TypeDefinition) -> list[MethodDefinition]: ...

    def element_type_from_enumerable(self, ref: TypeRef) -> tuple[TypeRef | None, bool | None]: ...

    def indexers(self, ref: TypeRef) -> list[PropertyDefinition]: ...

    def is_compiler_generated_or_nested_in_one(self, definition: TypeDefinition) -> bool: ...


# ---------------------------------------------------------------------------
# In-memory snapshot
# ---------------------------------------------------------------------------


class AssemblySnapshot:
    """``TypeSystem`` over a frozen set of type definitions.

    *types* are the module's own definitions in metadata order.  *references*
    are definitions of external types (base classes, collection interfaces)
    the loader materialized so inherited members and enumerable shapes can be
    resolved.
    """

    def __init__(
        self,
        types: Iterable[TypeDefinition],
        *,
        references: Iterable[TypeDefinition] = (),
        name: str = "",
        version: str = "0.0.0.0",
    ) -> None:
        self.name = name
        self.version = version
        self._module_types = tuple(types)
        self._definitions: dict[TypeRef, TypeDefinition] = {}
        for definition in (*references, *self._module_types):
            self._definitions[definition.ref] = definition
        logger.debug(
            "Snapshot {!r}: {} module types, {} definitions",
            name,
            len(self._module_types),
            len(self._definitions),
        )

    def type_definitions(self) -> Sequence[TypeDefinition]:
        return self._module_types

    def resolve(self, ref: TypeRef) -> TypeDefinition | None:
        if ref.element_type is not None:
            return None
        return self._definitions.get(ref.generic_definition)

    def is_compiler_generated_or_nested_in_one(self, definition: TypeDefinition) -> bool:
        current: TypeDefinition | None = definition
        while current is not None:
            if current.is_compiler_generated:
                return True
            declaring = current.ref.declaring_type
            current = None if declaring is None else self.resolve(declaring)
        return False

    # -- base types ---------------------------------------------------------

    def direct_base_types(self, ref: TypeRef) -> list[TypeRef]:
        """Direct bases of *ref* with its type arguments substituted in."""
        definition = self.resolve(ref)
        if definition is None:
            return []
        subs = ref.substitutions
        return [substitute(base, subs) for base in definition.direct_base_types]

    def all_base_types(self, ref: TypeRef) -> list[TypeRef]:
        """*ref* and all its base types, bases ordered before derived types."""
        collected: list[TypeRef] = []
        self._collect_base_types(ref, collected, set(), skip_interfaces=False)
        return collected

    def non_interface_base_types(self, ref: TypeRef) -> list[TypeRef]:
        """Like ``all_base_types`` but skipping interfaces implemented by classes.

        For an interface this includes its base interfaces.
        """
        collected: list[TypeRef] = []
        self._collect_base_types(ref, collected, set(), skip_interfaces=True)
        return collected

    def _collect_base_types(
        self, ref: TypeRef, collected: list[TypeRef], seen: set[TypeRef], *, skip_interfaces: bool
    ) -> None:
        if ref in seen:
            return
        seen.add(ref)
        for base in self.direct_base_types(ref):
            if skip_interfaces and base.is_interface and not ref.is_interface:
                continue
            self._collect_base_types(base, collected, seen, skip_interfaces=skip_interfaces)
        collected.append(ref)

    # -- members ------------------------------------------------------------

    def get_properties(self, definition: TypeDefinition) -> list[PropertyDefinition]:
        """Declared and inherited properties; overridden base properties are hidden."""
        return self._members(definition, "properties")  # type: ignore[return-value]

    def get_fields(self, definition: TypeDefinition) -> list[FieldDefinition]:
        return self._members(definition, "fields")  # type: ignore[return-value]

    def get_methods(self, definition: TypeDefinition) -> list[MethodDefinition]:
        """Declared and inherited methods; overridden base methods are hidden."""
        return self._members(definition, "methods")  # type: ignore[return-value]

    def _members(self, definition: TypeDefinition, attribute: str) -> list[MemberDefinition]:
        members: list[MemberDefinition] = []
        for owner in self.non_interface_base_types(definition.ref):
            owner_definition = self.resolve(owner)
            if owner_definition is None:
                continue
            for member in getattr(owner_definition, attribute):
                member = member.substituted(owner) if owner.type_arguments else member
                if getattr(member, "is_override", False):
                    key = _override_key(member)
                    members = [m for m in members if _override_key(m) != key]
                members.append(member)
        return members

    # -- collections --------------------------------------------------------

    def element_type_from_enumerable(self, ref: TypeRef) -> tuple[TypeRef | None, bool | None]:
        """Element type of an enumerable-shaped *ref*.

        Returns ``(element, True)`` for ``IEnumerable<T>`` shapes (arrays
        included), ``(object, False)`` when only the non-generic
        ``IEnumerable`` is implemented and ``(None, None)`` otherwise.
        """
        if ref.kind is TypeKind.ARRAY and ref.element_type is not None:
            return ref.element_type, True
        found_non_generic = False
        for base in self.all_base_types(ref):
            if base.known_type in ENUMERABLE_OF_T and base.type_arguments:
                return base.type_arguments[0], True
            if base.known_type in NON_GENERIC_ENUMERABLE:
                found_non_generic = True
        if found_non_generic:
            return OBJECT, False
        return None, None

    def indexers(self, ref: TypeRef) -> list[PropertyDefinition]:
        """Indexers declared by *ref* itself (inherited ones are ignored)."""
        definition = self.resolve(ref)
        if definition is None:
            return []
        declared = [p for p in definition.properties if p.is_indexer]
        return [p.substituted(ref) for p in declared] if ref.type_arguments else declared


def _override_key(member: MemberDefinition) -> tuple[object, ...]:
    if isinstance(member, MethodDefinition):
        return ("method", *member.signature_key)
    if isinstance(member, PropertyDefinition):
        return ("property", member.name, tuple(p.type for p in member.parameters))
    return ("field", member.name)
