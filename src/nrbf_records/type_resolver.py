"""Decoding of inline type descriptors (BinaryType plus AdditionalInfo)."""

from __future__ import annotations

from typing import Callable

from nrbf_records.errors import InvalidEnumValue, UnsupportedRecordType
from nrbf_records.reader import BinaryReader
from nrbf_records.types import (
    AdditionalInfo,
    BinaryType,
    ClassTypeInfo,
    MemberTypeInfo,
    PrimitiveType,
)


def read_binary_type(reader: BinaryReader) -> BinaryType:
    """Read a one-byte BinaryType."""
    offset = reader.position
    value = reader.read_uint8()
    try:
        return BinaryType(value)
    except ValueError:
        raise InvalidEnumValue(f"Invalid binary type: {value}", offset=offset) from None


def read_primitive_type(reader: BinaryReader) -> PrimitiveType:
    """Read a one-byte PrimitiveType; 4 and anything outside 1..18 are rejected."""
    offset = reader.position
    value = reader.read_uint8()
    try:
        return PrimitiveType(value)
    except ValueError:
        raise InvalidEnumValue(f"Invalid primitive type: {value}", offset=offset) from None


def _read_nothing(reader: BinaryReader) -> None:
    return None


def _read_class_type_info(reader: BinaryReader) -> ClassTypeInfo:
    type_name = reader.read_string()
    library_id = reader.read_int32()
    return ClassTypeInfo(type_name=type_name, library_id=library_id)


def _reject_system_class(reader: BinaryReader) -> None:
    raise UnsupportedRecordType(
        "SystemClass member types are not supported", offset=reader.position
    )


_ADDITIONAL_INFO_READERS: dict[BinaryType, Callable[[BinaryReader], AdditionalInfo]] = {
    BinaryType.PRIMITIVE: read_primitive_type,
    BinaryType.STRING: _read_nothing,
    BinaryType.OBJECT: _read_nothing,
    BinaryType.SYSTEM_CLASS: _reject_system_class,
    BinaryType.CLASS: _read_class_type_info,
    BinaryType.OBJECT_ARRAY: _read_nothing,
    BinaryType.STRING_ARRAY: _read_nothing,
    BinaryType.PRIMITIVE_ARRAY: read_primitive_type,
}


def read_additional_info(reader: BinaryReader, binary_type: BinaryType) -> AdditionalInfo:
    """Read the AdditionalInfo that accompanies ``binary_type``."""
    return _ADDITIONAL_INFO_READERS[binary_type](reader)


def read_member_type_info(reader: BinaryReader, member_count: int) -> MemberTypeInfo:
    """Read MemberTypeInfo for ``member_count`` members.

    All BinaryType bytes come first, then the AdditionalInfo of each member in
    the same order, so the two passes cannot be interleaved.
    """
    binary_types = [read_binary_type(reader) for _ in range(member_count)]
    additional_infos = [read_additional_info(reader, bt) for bt in binary_types]
    return MemberTypeInfo(binary_types=binary_types, additional_infos=additional_infos)
