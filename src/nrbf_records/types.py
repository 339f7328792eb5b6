"""Enumerations and type descriptors for the record stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union


class RecordType(IntEnum):
    """Leading tag byte of each record in the stream."""

    SERIALIZED_STREAM_HEADER = 0
    CLASS_WITH_ID = 1
    SYSTEM_CLASS_WITH_MEMBERS = 2
    CLASS_WITH_MEMBERS = 3
    SYSTEM_CLASS_WITH_MEMBERS_AND_TYPES = 4
    CLASS_WITH_MEMBERS_AND_TYPES = 5
    BINARY_OBJECT_STRING = 6
    BINARY_ARRAY = 7
    MEMBER_PRIMITIVE_TYPED = 8
    MEMBER_REFERENCE = 9
    OBJECT_NULL = 10
    MESSAGE_END = 11
    BINARY_LIBRARY = 12
    OBJECT_NULL_MULTIPLE_256 = 13
    OBJECT_NULL_MULTIPLE = 14
    ARRAY_SINGLE_PRIMITIVE = 15
    ARRAY_SINGLE_OBJECT = 16
    ARRAY_SINGLE_STRING = 17
    METHOD_CALL = 21
    METHOD_RETURN = 22


class BinaryType(IntEnum):
    """Category of value held by a class member or array element."""

    PRIMITIVE = 0
    STRING = 1
    OBJECT = 2
    SYSTEM_CLASS = 3
    CLASS = 4
    OBJECT_ARRAY = 5
    STRING_ARRAY = 6
    PRIMITIVE_ARRAY = 7

    @property
    def display_name(self) -> str:
        return _BINARY_TYPE_NAMES[self]


_BINARY_TYPE_NAMES = {
    BinaryType.PRIMITIVE: "Primitive",
    BinaryType.STRING: "String",
    BinaryType.OBJECT: "Object",
    BinaryType.SYSTEM_CLASS: "SystemClass",
    BinaryType.CLASS: "Class",
    BinaryType.OBJECT_ARRAY: "ObjectArray",
    BinaryType.STRING_ARRAY: "StringArray",
    BinaryType.PRIMITIVE_ARRAY: "PrimitiveArray",
}


class PrimitiveType(IntEnum):
    """Specific scalar kind of a primitive value.

    Value 4 is reserved by the format and never valid.
    """

    BOOLEAN = 1
    BYTE = 2
    CHAR = 3
    DECIMAL = 5
    DOUBLE = 6
    INT16 = 7
    INT32 = 8
    INT64 = 9
    SBYTE = 10
    SINGLE = 11
    TIMESPAN = 12
    DATETIME = 13
    UINT16 = 14
    UINT32 = 15
    UINT64 = 16
    NULL = 17
    STRING = 18

    @property
    def size_bytes(self) -> int | None:
        """Return the encoded width in bytes, or None for length-prefixed kinds."""
        return _PRIMITIVE_SIZES[self]

    @property
    def is_64bit_integer(self) -> bool:
        """Return whether values of this kind are 64-bit integers.

        TimeSpan and DateTime are carried as their raw tick counts, so they
        count as 64-bit integers too.
        """
        return self in (
            PrimitiveType.INT64,
            PrimitiveType.UINT64,
            PrimitiveType.TIMESPAN,
            PrimitiveType.DATETIME,
        )

    @property
    def display_name(self) -> str:
        return _PRIMITIVE_NAMES[self]


_PRIMITIVE_SIZES: dict[PrimitiveType, int | None] = {
    PrimitiveType.BOOLEAN: 1,
    PrimitiveType.BYTE: 1,
    PrimitiveType.CHAR: 1,
    PrimitiveType.DECIMAL: None,
    PrimitiveType.DOUBLE: 8,
    PrimitiveType.INT16: 2,
    PrimitiveType.INT32: 4,
    PrimitiveType.INT64: 8,
    PrimitiveType.SBYTE: 1,
    PrimitiveType.SINGLE: 4,
    PrimitiveType.TIMESPAN: 8,
    PrimitiveType.DATETIME: 8,
    PrimitiveType.UINT16: 2,
    PrimitiveType.UINT32: 4,
    PrimitiveType.UINT64: 8,
    PrimitiveType.NULL: 0,
    PrimitiveType.STRING: None,
}

_PRIMITIVE_NAMES = {
    PrimitiveType.BOOLEAN: "Boolean",
    PrimitiveType.BYTE: "Byte",
    PrimitiveType.CHAR: "Char",
    PrimitiveType.DECIMAL: "Decimal",
    PrimitiveType.DOUBLE: "Double",
    PrimitiveType.INT16: "Int16",
    PrimitiveType.INT32: "Int32",
    PrimitiveType.INT64: "Int64",
    PrimitiveType.SBYTE: "SByte",
    PrimitiveType.SINGLE: "Single",
    PrimitiveType.TIMESPAN: "TimeSpan",
    PrimitiveType.DATETIME: "DateTime",
    PrimitiveType.UINT16: "UInt16",
    PrimitiveType.UINT32: "UInt32",
    PrimitiveType.UINT64: "UInt64",
    PrimitiveType.NULL: "Null",
    PrimitiveType.STRING: "String",
}

# Primitive kinds allowed as ArraySinglePrimitive elements
ARRAY_ELEMENT_PRIMITIVES: frozenset[PrimitiveType] = frozenset(
    pt for pt in PrimitiveType if pt <= PrimitiveType.UINT64
)


class BinaryArrayType(IntEnum):
    """Shape of a BinaryArray record."""

    SINGLE = 0
    JAGGED = 1
    RECTANGULAR = 2
    SINGLE_OFFSET = 3
    JAGGED_OFFSET = 4
    RECTANGULAR_OFFSET = 5

    @property
    def has_lower_bounds(self) -> bool:
        """Offset variants carry one lower bound per rank."""
        return self in (
            BinaryArrayType.SINGLE_OFFSET,
            BinaryArrayType.JAGGED_OFFSET,
            BinaryArrayType.RECTANGULAR_OFFSET,
        )

    @property
    def display_name(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


@dataclass(frozen=True)
class ClassTypeInfo:
    """AdditionalInfo of a Class-typed member: type name plus owning library."""

    type_name: str
    library_id: int


# None for String/Object/ObjectArray/StringArray
AdditionalInfo = Union[PrimitiveType, ClassTypeInfo, None]


@dataclass
class ClassInfo:
    """Name and member names of a class, as defined once in the stream."""

    object_id: int
    name: str
    member_count: int
    member_names: list[str] = field(default_factory=list)


@dataclass
class MemberTypeInfo:
    """Per-member type descriptors, bound to a ClassInfo by position."""

    binary_types: list[BinaryType] = field(default_factory=list)
    additional_infos: list[AdditionalInfo] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.binary_types)


@dataclass
class ArrayInfo:
    """Identity and element count of a single-dimensional array."""

    object_id: int
    length: int


@dataclass(frozen=True)
class IdRef:
    """A reference to the record whose ObjectId equals ``id_ref``.

    ``record_type`` is the tag byte of an inline reference descriptor, or None
    when the reference is a standalone MemberReference record.
    """

    id_ref: int
    record_type: int | None = None


@dataclass
class InlineArray:
    """Array read in place for a PrimitiveArray member.

    ``reference`` is the inline reference read in the member's own slot; the
    array body follows after all other members. ``primitive_type`` and
    ``values`` stay None unless element payloads are being read.
    """

    record_type: int
    info: ArrayInfo
    primitive_type: PrimitiveType | None = None
    values: list[Any] | None = None
    reference: IdRef | None = None
