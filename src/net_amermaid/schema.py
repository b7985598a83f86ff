"""Type-system vocabulary for net-amermaid.

Defines the kind discriminators, well-known .NET type codes and accessibility
levels shared by the metadata snapshot, the assembly loader and the diagram
builders.  Pure data, no dependencies.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Type kinds
# ---------------------------------------------------------------------------


class TypeKind(StrEnum):
    # Kinds that have a type definition
    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    DELEGATE = "delegate"
    MODULE = "module"
    # Kinds without a definition of their own
    TYPE_PARAMETER = "type_parameter"
    DYNAMIC = "dynamic"
    ARRAY = "array"
    BY_REFERENCE = "by_reference"
    POINTER = "pointer"
    UNKNOWN = "unknown"


DEFINITION_KINDS: frozenset[TypeKind] = frozenset(
    {
        TypeKind.CLASS,
        TypeKind.STRUCT,
        TypeKind.INTERFACE,
        TypeKind.ENUM,
        TypeKind.DELEGATE,
        TypeKind.MODULE,
    }
)

# Kinds that legitimately have no definition and keep their raw name
UNDEFINED_KINDS: frozenset[TypeKind] = frozenset({TypeKind.TYPE_PARAMETER, TypeKind.DYNAMIC})

# Kinds that wrap an element type, with the suffix used in reflection names
ELEMENT_KIND_SUFFIXES: dict[TypeKind, str] = {
    TypeKind.ARRAY: "[]",
    TypeKind.BY_REFERENCE: "&",
    TypeKind.POINTER: "*",
}


# ---------------------------------------------------------------------------
# Well-known types
# ---------------------------------------------------------------------------


class KnownType(StrEnum):
    """Framework types the builders treat specially, keyed by reflection name."""

    OBJECT = "System.Object"
    VOID = "System.Void"
    BOOLEAN = "System.Boolean"
    CHAR = "System.Char"
    SBYTE = "System.SByte"
    BYTE = "System.Byte"
    INT16 = "System.Int16"
    UINT16 = "System.UInt16"
    INT32 = "System.Int32"
    UINT32 = "System.UInt32"
    INT64 = "System.Int64"
    UINT64 = "System.UInt64"
    SINGLE = "System.Single"
    DOUBLE = "System.Double"
    DECIMAL = "System.Decimal"
    STRING = "System.String"
    DATE_TIME = "System.DateTime"
    INT_PTR = "System.IntPtr"
    UINT_PTR = "System.UIntPtr"
    TYPE = "System.Type"
    ARRAY = "System.Array"
    VALUE_TYPE = "System.ValueType"
    ENUM = "System.Enum"
    DELEGATE = "System.Delegate"
    MULTICAST_DELEGATE = "System.MulticastDelegate"
    EXCEPTION = "System.Exception"
    ATTRIBUTE = "System.Attribute"
    IDISPOSABLE = "System.IDisposable"
    NULLABLE = "System.Nullable`1"
    IENUMERABLE = "System.Collections.IEnumerable"
    IENUMERATOR = "System.Collections.IEnumerator"
    IENUMERABLE_OF_T = "System.Collections.Generic.IEnumerable`1"
    IENUMERATOR_OF_T = "System.Collections.Generic.IEnumerator`1"

    @classmethod
    def lookup(cls, reflection_name: str) -> KnownType | None:
        return _KNOWN_BY_NAME.get(reflection_name)


_KNOWN_BY_NAME: dict[str, KnownType] = {member.value: member for member in KnownType}

# C# keyword aliases for built-in types
CSHARP_ALIASES: dict[KnownType, str] = {
    KnownType.OBJECT: "object",
    KnownType.VOID: "void",
    KnownType.BOOLEAN: "bool",
    KnownType.CHAR: "char",
    KnownType.SBYTE: "sbyte",
    KnownType.BYTE: "byte",
    KnownType.INT16: "short",
    KnownType.UINT16: "ushort",
    KnownType.INT32: "int",
    KnownType.UINT32: "uint",
    KnownType.INT64: "long",
    KnownType.UINT64: "ulong",
    KnownType.SINGLE: "float",
    KnownType.DOUBLE: "double",
    KnownType.DECIMAL: "decimal",
    KnownType.STRING: "string",
}

ENUMERABLE_OF_T: frozenset[KnownType] = frozenset({KnownType.IENUMERABLE_OF_T, KnownType.IENUMERATOR_OF_T})
NON_GENERIC_ENUMERABLE: frozenset[KnownType] = frozenset({KnownType.IENUMERABLE, KnownType.IENUMERATOR})


# ---------------------------------------------------------------------------
# Accessibility
# ---------------------------------------------------------------------------


class Accessibility(StrEnum):
    NONE = "none"
    PRIVATE = "private"
    PRIVATE_PROTECTED = "private protected"  # protected AND internal
    INTERNAL = "internal"
    PROTECTED = "protected"
    PROTECTED_INTERNAL = "protected internal"  # protected OR internal
    PUBLIC = "public"


# ---------------------------------------------------------------------------
# Class annotations
# ---------------------------------------------------------------------------


class Annotation(StrEnum):
    """Mermaid class annotations, rendered as ``<<Value>>``."""

    INTERFACE = "Interface"
    ABSTRACT = "Abstract"
    SERVICE = "Service"
    ENUMERATION = "Enumeration"
