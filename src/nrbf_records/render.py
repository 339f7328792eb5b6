"""Conversion of decoded records to JSON-compatible data.

JSON readers commonly parse numbers as IEEE doubles, which cannot hold every
64-bit integer. Every Int64, UInt64, TimeSpan and DateTime value is therefore
emitted as a decimal string token rather than a number literal. Single and
Double values that are NaN or infinite have no JSON literal and are emitted as
the strings "NaN", "Infinity" and "-Infinity".
"""

from __future__ import annotations

import json
import math
from typing import Any

from nrbf_records.records import (
    ArraySinglePrimitive,
    BinaryArray,
    BinaryLibrary,
    ClassWithId,
    ClassWithMembersAndTypes,
    DecodeResult,
    LibraryTable,
    MemberReference,
    Record,
    StreamEnd,
    StreamHeader,
)
from nrbf_records.types import (
    AdditionalInfo,
    BinaryType,
    ClassTypeInfo,
    IdRef,
    InlineArray,
    MemberTypeInfo,
    PrimitiveType,
)


def render_int64(value: int) -> str:
    """Render a 64-bit integer as a decimal string token."""
    return str(value)


def render_float(value: float) -> float | str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return value


def render_primitive(value: Any, primitive: PrimitiveType | None) -> Any:
    """Render a primitive scalar, stringifying 64-bit integers and non-finite floats."""
    if primitive is not None and primitive.is_64bit_integer and isinstance(value, int):
        return render_int64(value)
    if isinstance(value, float):
        return render_float(value)
    return value


def render_elements(values: list[Any] | None, primitive: PrimitiveType | None) -> list[Any] | None:
    if values is None:
        return None
    return [render_primitive(v, primitive) for v in values]


def render_additional_info(info: AdditionalInfo, libraries: LibraryTable) -> Any:
    """Render a type descriptor's AdditionalInfo."""
    if isinstance(info, PrimitiveType):
        return info.display_name
    elif isinstance(info, ClassTypeInfo):
        return {
            "TypeName": info.type_name,
            "LibraryId": info.library_id,
            "LibraryName": libraries.get(info.library_id),
        }
    return None


class RecordRenderer:
    """Renders the records of one DecodeResult."""

    def __init__(self, result: DecodeResult) -> None:
        self.result = result
        self._targets: dict[tuple[int, int | None], int | None] = {
            (edge.source_index, edge.member_index): edge.target_index
            for edge in result.references
        }

    def render(self) -> dict[str, Any]:
        """Render the whole result."""
        return {
            "records": [self.render_record(i, r) for i, r in enumerate(self.result.records)],
            "references": [
                {
                    "Source": edge.source_index,
                    "Member": edge.member_index,
                    "IdRef": edge.id_ref,
                    "Target": edge.target_index,
                }
                for edge in self.result.references
            ],
            "libraries": {str(lib_id): name for lib_id, name in self.result.libraries.items()},
        }

    def render_record(self, index: int, record: Record) -> dict[str, Any]:
        """Render one record as a flat dictionary keyed by wire field names."""
        data: dict[str, Any] = {"RecordType": record.kind}
        libraries = self.result.libraries

        if isinstance(record, StreamHeader):
            data.update(
                RootId=record.root_id,
                HeaderId=record.header_id,
                MajorVersion=record.major_version,
                MinorVersion=record.minor_version,
            )
        elif isinstance(record, BinaryLibrary):
            data.update(LibraryId=record.library_id, Name=record.name)
        elif isinstance(record, ClassWithMembersAndTypes):
            data.update(
                ObjectId=record.object_id,
                Name=record.name,
                MemberCount=record.class_info.member_count,
                MemberNames=list(record.member_names),
                MemberTypes=[
                    {
                        "BinaryType": bt.display_name,
                        "AdditionalInfo": render_additional_info(info, libraries),
                    }
                    for bt, info in zip(
                        record.member_type_info.binary_types,
                        record.member_type_info.additional_infos,
                    )
                ],
                LibraryId=record.library_id,
                LibraryName=libraries.get(record.library_id),
                Members=self._render_members(index, record, record.member_values),
            )
        elif isinstance(record, ClassWithId):
            schema = self.result.class_schema(record)
            data.update(
                ObjectId=record.object_id,
                MetadataId=record.metadata_id,
                ClassIndex=record.class_index,
                Name=schema.name,
                Members=self._render_members(index, schema, record.member_values),
            )
        elif isinstance(record, MemberReference):
            data.update(IdRef=record.id_ref, Target=self._targets.get((index, None)))
        elif isinstance(record, BinaryArray):
            element_primitive = (
                record.additional_info if record.element_type == BinaryType.PRIMITIVE else None
            )
            data.update(
                ObjectId=record.object_id,
                ArrayType=record.array_type.display_name,
                Rank=record.rank,
                Lengths=list(record.lengths),
                LowerBounds=list(record.lower_bounds),
                ElementType=record.element_type.display_name,
                AdditionalInfo=render_additional_info(record.additional_info, libraries),
            )
            if record.values is not None:
                assert isinstance(element_primitive, PrimitiveType)
                data["Values"] = render_elements(record.values, element_primitive)
        elif isinstance(record, ArraySinglePrimitive):
            data.update(
                ObjectId=record.object_id,
                Length=record.info.length,
                PrimitiveType=record.primitive_type.display_name,
            )
            if record.values is not None:
                data["Values"] = render_elements(record.values, record.primitive_type)
        elif isinstance(record, StreamEnd):
            pass

        return data

    def _render_members(
        self, index: int, schema: ClassWithMembersAndTypes, values: list[Any]
    ) -> dict[str, Any]:
        member_types: MemberTypeInfo = schema.member_type_info
        members: dict[str, Any] = {}
        for member_index, (name, value) in enumerate(zip(schema.member_names, values)):
            info = member_types.additional_infos[member_index]
            members[name] = self._render_value(index, member_index, value, info)
        return members

    def _render_value(self, index: int, member_index: int, value: Any, info: AdditionalInfo) -> Any:
        if isinstance(value, IdRef):
            return {
                "IdRef": value.id_ref,
                "Target": self._targets.get((index, member_index)),
            }
        elif isinstance(value, InlineArray):
            rendered: dict[str, Any] = {
                "IdRef": value.reference.id_ref if value.reference is not None else None,
                "RecordType": value.record_type,
                "ObjectId": value.info.object_id,
                "Length": value.info.length,
            }
            if value.primitive_type is not None:
                rendered["PrimitiveType"] = value.primitive_type.display_name
                rendered["Values"] = render_elements(value.values, value.primitive_type)
            return rendered
        elif isinstance(info, PrimitiveType):
            return render_primitive(value, info)
        return value


def to_data(result: DecodeResult) -> dict[str, Any]:
    """Convert a DecodeResult to JSON-compatible data."""
    return RecordRenderer(result).render()


def dumps(result: DecodeResult, indent: int | str | None = "\t") -> str:
    """Serialize a DecodeResult to JSON text."""
    return json.dumps(to_data(result), indent=indent, allow_nan=False)
