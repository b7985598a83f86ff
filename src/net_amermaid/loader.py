"""Assembly reader: materializes an ``AssemblySnapshot`` through pythonnet reflection.

Requires the ``clr`` extra (``pip install net-amermaid[clr]``) and a .NET
runtime.  pythonnet picks the runtime from ``PYTHONNET_RUNTIME`` (``coreclr``,
``mono`` or ``netfx``).

Module types are read with all their declared members.  External types that
module types derive from or expose as property types are read too, so
inherited members and collection shapes can be resolved, but only with their
public and protected members.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from loguru import logger

from net_amermaid.schema import Accessibility, TypeKind
from net_amermaid.typesystem import (
    AssemblySnapshot,
    FieldDefinition,
    MethodDefinition,
    ParameterDefinition,
    PropertyDefinition,
    TypeDefinition,
    TypeRef,
)

COMPILER_GENERATED_ATTRIBUTE = "System.Runtime.CompilerServices.CompilerGeneratedAttribute"
_ARITY = re.compile(r"`\d+$")

_INSTALL_HINT = "Install the reflection backend with: pip install 'net-amermaid[clr]'"


class AssemblyLoadError(RuntimeError):
    """The assembly could not be read."""


def load_assembly(path: Path) -> AssemblySnapshot:
    """Read the type metadata of the assembly at *path*."""
    if not path.is_file():
        raise AssemblyLoadError(f"Assembly not found: {path}")

    reflection = _init_pythonnet()
    try:
        assembly = reflection.Assembly.LoadFrom(str(path.resolve()))
    except Exception as exc:
        raise AssemblyLoadError(f"Cannot load assembly {path}: {exc}") from exc

    reader = _ReflectionReader(reflection)
    types = reader.read_module(assembly)
    name = str(assembly.GetName().Name)
    version = str(assembly.GetName().Version)
    logger.info("Read {} types from {} {}", len(types), name, version)
    return AssemblySnapshot(types, references=reader.references(), name=name, version=version)


class _Reflection:
    """The handful of .NET reflection types the reader needs."""

    def __init__(self, assembly: Any, binding_flags: Any, type_load_error: type[BaseException]) -> None:
        self.Assembly = assembly
        self.BindingFlags = binding_flags
        self.ReflectionTypeLoadException = type_load_error


def _init_pythonnet() -> _Reflection:
    try:
        import clr  # noqa: F401
        from System.Reflection import Assembly, BindingFlags, ReflectionTypeLoadException
    except ImportError as exc:
        raise AssemblyLoadError(f"pythonnet is not available: {exc}. {_INSTALL_HINT}") from exc
    except RuntimeError as exc:
        raise AssemblyLoadError(f"Cannot start the .NET runtime: {exc}. Set PYTHONNET_RUNTIME to choose one.") from exc
    logger.debug("pythonnet initialized")
    return _Reflection(Assembly, BindingFlags, ReflectionTypeLoadException)


# ---------------------------------------------------------------------------
# Reflection reader
# ---------------------------------------------------------------------------


def _clean_name(name: str) -> str:
    return _ARITY.sub("", name)


def _is_compiler_generated(member: Any) -> bool:
    if str(member.Name).startswith("<"):
        return True
    return any(str(a.AttributeType.FullName) == COMPILER_GENERATED_ATTRIBUTE for a in member.GetCustomAttributesData())


def _accessibility(method: Any) -> Accessibility:
    if method is None:
        return Accessibility.NONE
    if method.IsPublic:
        return Accessibility.PUBLIC
    if method.IsFamilyOrAssembly:
        return Accessibility.PROTECTED_INTERNAL
    if method.IsFamily:
        return Accessibility.PROTECTED
    if method.IsAssembly:
        return Accessibility.INTERNAL
    if method.IsFamilyAndAssembly:
        return Accessibility.PRIVATE_PROTECTED
    return Accessibility.PRIVATE


_ACCESS_RANK = list(Accessibility)


class _ReflectionReader:
    def __init__(self, reflection: _Reflection) -> None:
        self._reflection = reflection
        flags = reflection.BindingFlags
        self._declared = flags.DeclaredOnly | flags.Instance | flags.Static | flags.Public | flags.NonPublic
        self._refs: dict[Any, TypeRef] = {}
        self._module_refs: set[TypeRef] = set()
        self._references: dict[TypeRef, TypeDefinition] = {}
        self._pending: list[Any] = []

    def read_module(self, assembly: Any) -> list[TypeDefinition]:
        clr_types = self._module_types(assembly)
        self._module_refs = {self.to_ref(t) for t in clr_types}
        definitions = [self._definition(t, module=True) for t in clr_types]
        self._drain_pending()
        return definitions

    def references(self) -> list[TypeDefinition]:
        return list(self._references.values())

    def _module_types(self, assembly: Any) -> list[Any]:
        try:
            return list(assembly.GetTypes())
        except self._reflection.ReflectionTypeLoadException as exc:
            loaded = [t for t in exc.Types if t is not None]
            logger.warning("Could not load {} types of {}", len(exc.Types) - len(loaded), assembly.GetName().Name)
            for loader_exception in list(exc.LoaderExceptions)[:5]:
                logger.debug("Loader exception: {}", loader_exception)
            return loaded

    # -- type references ------------------------------------------------------

    def to_ref(self, clr_type: Any) -> TypeRef:
        ref = self._refs.get(clr_type)
        if ref is None:
            ref = self._build_ref(clr_type)
            self._refs[clr_type] = ref
        return ref

    def _build_ref(self, t: Any) -> TypeRef:
        if t.IsByRef:
            return TypeRef.by_reference_to(self.to_ref(t.GetElementType()))
        if t.IsArray:
            return TypeRef.array_of(self.to_ref(t.GetElementType()))
        if t.IsPointer:
            return TypeRef.pointer_to(self.to_ref(t.GetElementType()))
        if t.IsGenericParameter:
            return TypeRef.parameter(str(t.Name), int(t.GenericParameterPosition), method=t.DeclaringMethod is not None)
        if t.IsGenericType and not t.IsGenericTypeDefinition:
            definition = self.to_ref(t.GetGenericTypeDefinition())
            arguments = list(t.GetGenericArguments())[-len(definition.type_parameters) :] if definition.type_parameters else []
            return definition.construct(*(self.to_ref(a) for a in arguments))

        declaring = self.to_ref(t.DeclaringType) if t.IsNested else None
        own_parameters: tuple[str, ...] = ()
        if t.IsGenericTypeDefinition:
            inherited_count = len(declaring.type_parameters) if declaring else 0
            own_parameters = tuple(str(a.Name) for a in list(t.GetGenericArguments())[inherited_count:])
        return TypeRef(
            _clean_name(str(t.Name)),
            str(t.Namespace or ""),
            self._kind(t),
            declaring_type=declaring,
            type_parameters=own_parameters,
        )

    @staticmethod
    def _kind(t: Any) -> TypeKind:
        if t.IsInterface:
            return TypeKind.INTERFACE
        if t.IsEnum:
            return TypeKind.ENUM
        if t.IsValueType:
            return TypeKind.STRUCT
        base = t.BaseType
        if base is not None and str(base.FullName) == "System.MulticastDelegate":
            return TypeKind.DELEGATE
        return TypeKind.CLASS

    # -- definitions ----------------------------------------------------------

    def _queue(self, clr_type: Any) -> None:
        while clr_type.HasElementType:
            clr_type = clr_type.GetElementType()
        if clr_type.IsGenericParameter:
            return
        if clr_type.IsGenericType and not clr_type.IsGenericTypeDefinition:
            for argument in clr_type.GetGenericArguments():
                self._queue(argument)
            clr_type = clr_type.GetGenericTypeDefinition()
        ref = self.to_ref(clr_type)
        if ref not in self._module_refs and ref not in self._references:
            self._pending.append(clr_type)

    def _drain_pending(self) -> None:
        while self._pending:
            clr_type = self._pending.pop()
            ref = self.to_ref(clr_type)
            if ref in self._references:
                continue
            self._references[ref] = self._definition(clr_type, module=False)
        logger.debug("Read {} referenced types", len(self._references))

    def _direct_base_types(self, t: Any) -> list[Any]:
        # reflection lists every implemented interface, not just the declared ones
        interfaces = list(t.GetInterfaces())
        inherited = set(t.BaseType.GetInterfaces()) if t.BaseType is not None else set()
        for interface in interfaces:
            inherited.update(interface.GetInterfaces())
        bases = [t.BaseType] if t.BaseType is not None else []
        return bases + [i for i in interfaces if i not in inherited]

    def _definition(self, t: Any, *, module: bool) -> TypeDefinition:
        ref = self.to_ref(t)
        bases = self._direct_base_types(t)
        for base in bases:
            self._queue(base)

        properties = [p for p in (self._property(ref, p) for p in t.GetProperties(self._declared)) if p]
        fields = [f for f in (self._field(ref, f) for f in t.GetFields(self._declared)) if f]
        methods = [m for m in (self._method(ref, t, m) for m in t.GetMethods(self._declared)) if m]
        if not module:
            properties = [p for p in properties if p.accessibility is not Accessibility.PRIVATE]
            fields = [f for f in fields if f.accessibility is not Accessibility.PRIVATE]
            methods = [m for m in methods if m.accessibility is not Accessibility.PRIVATE]
        else:
            for prop in t.GetProperties(self._declared):
                self._queue(prop.PropertyType)

        return TypeDefinition(
            ref=ref,
            direct_base_types=tuple(self.to_ref(b) for b in bases),
            properties=tuple(properties),
            fields=tuple(fields),
            methods=tuple(methods),
            is_abstract=bool(t.IsAbstract),
            is_sealed=bool(t.IsSealed),
            is_compiler_generated=_is_compiler_generated(t),
        )

    # -- members --------------------------------------------------------------

    def _property(self, owner: TypeRef, p: Any) -> PropertyDefinition | None:
        getter, setter = p.GetGetMethod(True), p.GetSetMethod(True)
        accessor = getter or setter
        if accessor is None:
            return None
        access = max(_accessibility(getter), _accessibility(setter), key=_ACCESS_RANK.index)
        base = accessor.GetBaseDefinition()
        return PropertyDefinition(
            name=str(p.Name),
            declaring_type=owner,
            accessibility=access,
            is_static=bool(accessor.IsStatic),
            is_abstract=bool(accessor.IsAbstract),
            is_compiler_generated=_is_compiler_generated(p),
            return_type=self.to_ref(p.PropertyType),
            parameters=tuple(self._parameters(p.GetIndexParameters())),
            is_indexer=len(p.GetIndexParameters()) > 0,
            is_override=bool(accessor.IsVirtual) and not base.DeclaringType.Equals(accessor.DeclaringType),
        )

    def _field(self, owner: TypeRef, f: Any) -> FieldDefinition:
        return FieldDefinition(
            name=str(f.Name),
            declaring_type=owner,
            accessibility=_accessibility(f),
            is_static=bool(f.IsStatic),
            is_compiler_generated=_is_compiler_generated(f),
            return_type=self.to_ref(f.FieldType),
            is_const=bool(f.IsLiteral),
        )

    def _method(self, owner: TypeRef, t: Any, m: Any) -> MethodDefinition | None:
        name = str(m.Name)
        is_operator = bool(m.IsSpecialName) and name.startswith("op_")
        if m.IsSpecialName and not is_operator:
            return None  # property and event accessors

        base = m.GetBaseDefinition()
        is_override = bool(m.IsVirtual) and not base.DeclaringType.Equals(m.DeclaringType)
        explicit_interface, interface_member = self._explicit_implementation(t, m) if "." in name else (None, None)
        return MethodDefinition(
            name=name,
            declaring_type=owner,
            accessibility=_accessibility(m),
            is_static=bool(m.IsStatic),
            is_abstract=bool(m.IsAbstract),
            is_compiler_generated=_is_compiler_generated(m),
            return_type=self.to_ref(m.ReturnType),
            parameters=tuple(self._parameters(m.GetParameters())),
            type_parameters=tuple(str(a.Name) for a in m.GetGenericArguments()) if m.IsGenericMethodDefinition else (),
            is_operator=is_operator,
            is_override=is_override,
            base_declaring_type=self.to_ref(base.DeclaringType).generic_definition if is_override else None,
            explicit_interface=explicit_interface,
            interface_member_name=interface_member,
        )

    def _parameters(self, parameters: Any) -> list[ParameterDefinition]:
        return [ParameterDefinition(name=str(p.Name or ""), type=self.to_ref(p.ParameterType)) for p in parameters]

    def _explicit_implementation(self, t: Any, m: Any) -> tuple[TypeRef | None, str | None]:
        if t.IsInterface:
            return None, None
        for interface in t.GetInterfaces():
            try:
                mapping = t.GetInterfaceMap(interface)
            except Exception as exc:  # noqa: BLE001 - not every interface can be mapped on open generics
                logger.debug("No interface map for {} on {}: {}", interface.Name, t.Name, exc)
                continue
            for target, declared in zip(mapping.TargetMethods, mapping.InterfaceMethods, strict=False):
                if target.Equals(m):
                    return self.to_ref(interface), str(declared.Name)
        return None, None
