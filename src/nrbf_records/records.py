"""Decoded record kinds and the containers that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Iterator

from nrbf_records.types import (
    AdditionalInfo,
    ArrayInfo,
    BinaryArrayType,
    BinaryType,
    ClassInfo,
    InlineArray,
    MemberTypeInfo,
    PrimitiveType,
    RecordType,
)


@dataclass
class Record:
    """Base class for all decoded records."""

    record_type: ClassVar[RecordType]

    @property
    def kind(self) -> str:
        """Return the record kind name, e.g. ``"StreamHeader"``."""
        return type(self).__name__

    @property
    def object_id(self) -> int | None:
        """Return the ObjectId this record introduces, if any."""
        return None

    def introduced_object_ids(self) -> Iterator[int]:
        """Yield every ObjectId made available by this record."""
        if self.object_id is not None:
            yield self.object_id


@dataclass
class StreamHeader(Record):
    record_type: ClassVar[RecordType] = RecordType.SERIALIZED_STREAM_HEADER

    root_id: int
    header_id: int
    major_version: int
    minor_version: int


@dataclass
class BinaryLibrary(Record):
    record_type: ClassVar[RecordType] = RecordType.BINARY_LIBRARY

    library_id: int
    name: str


@dataclass
class ClassWithMembersAndTypes(Record):
    """A class instance carrying its full schema and its member values."""

    record_type: ClassVar[RecordType] = RecordType.CLASS_WITH_MEMBERS_AND_TYPES

    class_info: ClassInfo
    member_type_info: MemberTypeInfo
    library_id: int
    member_values: list[Any] = field(default_factory=list)

    @property
    def object_id(self) -> int:
        return self.class_info.object_id

    @property
    def name(self) -> str:
        return self.class_info.name

    @property
    def member_names(self) -> list[str]:
        return self.class_info.member_names

    def introduced_object_ids(self) -> Iterator[int]:
        yield self.object_id
        for value in self.member_values:
            if isinstance(value, InlineArray):
                yield value.info.object_id


@dataclass
class ClassWithId(Record):
    """A class instance reusing the schema of an earlier record.

    ``class_index`` is the log position of the defining
    ClassWithMembersAndTypes record; the schema is never copied.
    """

    record_type: ClassVar[RecordType] = RecordType.CLASS_WITH_ID

    instance_id: int
    metadata_id: int
    class_index: int
    member_values: list[Any] = field(default_factory=list)

    @property
    def object_id(self) -> int:
        return self.instance_id

    def introduced_object_ids(self) -> Iterator[int]:
        yield self.object_id
        for value in self.member_values:
            if isinstance(value, InlineArray):
                yield value.info.object_id


@dataclass
class MemberReference(Record):
    record_type: ClassVar[RecordType] = RecordType.MEMBER_REFERENCE

    id_ref: int


@dataclass
class BinaryArray(Record):
    """General array header; ``values`` is filled only when payloads are read."""

    record_type: ClassVar[RecordType] = RecordType.BINARY_ARRAY

    array_id: int
    array_type: BinaryArrayType
    rank: int
    lengths: list[int]
    lower_bounds: list[int]
    element_type: BinaryType
    additional_info: AdditionalInfo
    values: list[Any] | None = None

    @property
    def object_id(self) -> int:
        return self.array_id


@dataclass
class ArraySinglePrimitive(Record):
    record_type: ClassVar[RecordType] = RecordType.ARRAY_SINGLE_PRIMITIVE

    info: ArrayInfo
    primitive_type: PrimitiveType
    values: list[Any] | None = None

    @property
    def object_id(self) -> int:
        return self.info.object_id


@dataclass
class StreamEnd(Record):
    record_type: ClassVar[RecordType] = RecordType.MESSAGE_END


@dataclass(frozen=True)
class ReferenceEdge:
    """A pointer from a record (and optionally one of its members) to an ObjectId.

    ``member_index`` is None for a standalone MemberReference record.
    ``target_index`` is filled in by the resolution pass.
    """

    source_index: int
    member_index: int | None
    id_ref: int
    target_index: int | None = None

    @property
    def is_resolved(self) -> bool:
        return self.target_index is not None

    def resolved(self, target_index: int) -> ReferenceEdge:
        """Return a copy of this edge pointing at ``target_index``."""
        return replace(self, target_index=target_index)


class LibraryTable:
    """Mapping of LibraryId to library name, filled by BinaryLibrary records."""

    def __init__(self) -> None:
        self._libraries: dict[int, str] = {}

    def register(self, library_id: int, name: str) -> None:
        """Register a library name under its id; a repeated id replaces the name."""
        self._libraries[library_id] = name

    def get(self, library_id: int) -> str | None:
        """Get a library name by id."""
        return self._libraries.get(library_id)

    def items(self) -> list[tuple[int, str]]:
        return list(self._libraries.items())

    def __contains__(self, library_id: object) -> bool:
        return library_id in self._libraries

    def __len__(self) -> int:
        return len(self._libraries)


@dataclass
class DecodeResult:
    """Ordered record log plus the resolved reference graph."""

    records: list[Record]
    references: list[ReferenceEdge]
    libraries: LibraryTable
    object_index: dict[int, int] = field(default_factory=dict)

    @property
    def header(self) -> StreamHeader | None:
        """Return the stream header, if the stream started with one."""
        if self.records and isinstance(self.records[0], StreamHeader):
            return self.records[0]
        return None

    def find(self, object_id: int) -> Record | None:
        """Return the record that introduces ``object_id``."""
        index = self.object_index.get(object_id)
        if index is None:
            return None
        return self.records[index]

    def class_schema(self, record: Record) -> ClassWithMembersAndTypes:
        """Return the record holding the schema for a class record."""
        if isinstance(record, ClassWithMembersAndTypes):
            return record
        if isinstance(record, ClassWithId):
            schema = self.records[record.class_index]
            assert isinstance(schema, ClassWithMembersAndTypes)
            return schema
        raise TypeError(f"{record.kind} records have no class schema")

    def references_from(self, source_index: int) -> list[ReferenceEdge]:
        """Return the edges whose source is the record at ``source_index``."""
        return [edge for edge in self.references if edge.source_index == source_index]
