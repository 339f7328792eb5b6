"""Decoding of individual records, one routine per supported record kind."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from nrbf_records.errors import (
    InvalidEnumValue,
    MalformedHeader,
    TruncatedInput,
    UnresolvedReference,
    UnsupportedRecordType,
)
from nrbf_records.reader import BinaryReader
from nrbf_records.records import (
    ArraySinglePrimitive,
    BinaryArray,
    BinaryLibrary,
    ClassWithId,
    ClassWithMembersAndTypes,
    LibraryTable,
    MemberReference,
    Record,
    ReferenceEdge,
    StreamEnd,
    StreamHeader,
)
from nrbf_records.type_resolver import (
    read_additional_info,
    read_binary_type,
    read_member_type_info,
    read_primitive_type,
)
from nrbf_records.types import (
    ARRAY_ELEMENT_PRIMITIVES,
    ArrayInfo,
    BinaryArrayType,
    BinaryType,
    ClassInfo,
    IdRef,
    InlineArray,
    MemberTypeInfo,
    PrimitiveType,
    RecordType,
)

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSION = 1
SUPPORTED_MINOR_VERSION = 0


class RecordDecoder:
    """Decodes one record at a time from a shared reader.

    The decoder reads from ``records`` (the log owned by the stream decoder) to
    find class schemas for ClassWithId, and collects every reference it meets
    into ``pending_references`` for the resolution pass.
    """

    def __init__(
        self,
        reader: BinaryReader,
        records: list[Record],
        read_array_elements: bool = False,
    ) -> None:
        self.reader = reader
        self.records = records
        self.read_array_elements = read_array_elements
        self.libraries = LibraryTable()
        self.pending_references: list[ReferenceEdge] = []
        # ObjectId of a class-defining record -> its position in the log
        self._class_index: dict[int, int] = {}

    def read_record(self, index: int) -> Record:
        """Read a tag byte and decode the record it announces.

        ``index`` is the log position the record will occupy; it is used as
        the source of any references the record holds.
        """
        offset = self.reader.position
        tag = self.reader.read_int8()
        try:
            record_type = RecordType(tag)
        except ValueError:
            raise UnsupportedRecordType(f"Unknown record type: {tag}", offset=offset) from None

        handler = self.handlers.get(record_type)
        if handler is None:
            raise UnsupportedRecordType(
                f"Record type {record_type.name} ({tag}) is not supported", offset=offset
            )

        record = handler(self, index)
        logger.debug("[%d] %s at offset %d", index, record.kind, offset)
        return record

    # --- Shared structures ---

    def _read_positive_int32(self, what: str) -> int:
        offset = self.reader.position
        value = self.reader.read_int32()
        if value <= 0:
            raise InvalidEnumValue(f"{what} must be positive, got {value}", offset=offset)
        return value

    def _read_count(self, what: str) -> int:
        offset = self.reader.position
        value = self.reader.read_int32()
        if value < 0:
            raise InvalidEnumValue(f"{what} must not be negative, got {value}", offset=offset)
        return value

    def _read_class_info(self) -> ClassInfo:
        object_id = self._read_positive_int32("ObjectId")
        name = self.reader.read_string()
        member_count = self._read_count("MemberCount")
        member_names: list[str] = []
        seen: set[str] = set()
        for _ in range(member_count):
            offset = self.reader.position
            member_name = self.reader.read_string()
            if member_name in seen:
                raise InvalidEnumValue(
                    f"Class {name} declares member {member_name!r} twice", offset=offset
                )
            seen.add(member_name)
            member_names.append(member_name)
        logger.debug("    class %s (ObjectId %d) members %s", name, object_id, member_names)
        return ClassInfo(
            object_id=object_id,
            name=name,
            member_count=member_count,
            member_names=member_names,
        )

    def _read_array_info(self) -> ArrayInfo:
        object_id = self._read_positive_int32("ObjectId")
        length = self._read_count("Length")
        return ArrayInfo(object_id=object_id, length=length)

    def _read_elements(self, primitive: PrimitiveType, count: int) -> list[Any]:
        width = primitive.size_bytes or 1
        if count * width > self.reader.remaining:
            raise TruncatedInput(
                f"{count} {primitive.display_name} elements need at least {count * width} bytes"
                f" but only {self.reader.remaining} remain",
                offset=self.reader.position,
            )
        return [self.reader.read_primitive(primitive) for _ in range(count)]

    def _read_member_values(self, index: int, member_types: MemberTypeInfo) -> list[Any]:
        """Read the values of every member described by ``member_types``.

        A PrimitiveArray member holds an inline reference in its slot; the
        array itself follows in a second pass, after all other members.
        """
        values: list[Any] = []
        deferred: list[tuple[int, IdRef]] = []

        for member_index, (binary_type, info) in enumerate(
            zip(member_types.binary_types, member_types.additional_infos)
        ):
            if binary_type == BinaryType.PRIMITIVE:
                assert isinstance(info, PrimitiveType)
                values.append(self.reader.read_primitive(info))
            elif binary_type == BinaryType.STRING:
                values.append(self.reader.read_string())
            elif binary_type == BinaryType.CLASS:
                tag = self.reader.read_uint8()
                id_ref = self.reader.read_int32()
                values.append(IdRef(id_ref=id_ref, record_type=tag))
                self.pending_references.append(
                    ReferenceEdge(source_index=index, member_index=member_index, id_ref=id_ref)
                )
            elif binary_type == BinaryType.PRIMITIVE_ARRAY:
                tag = self.reader.read_uint8()
                id_ref = self.reader.read_int32()
                values.append(None)
                deferred.append((member_index, IdRef(id_ref=id_ref, record_type=tag)))
            else:
                raise UnsupportedRecordType(
                    f"{binary_type.display_name} member values are not supported",
                    offset=self.reader.position,
                )

        for member_index, reference in deferred:
            values[member_index] = self._read_inline_array(reference)

        return values

    def _read_inline_array(self, reference: IdRef) -> InlineArray:
        tag = self.reader.read_uint8()
        # Zero bytes before the array are padding
        while tag == 0:
            tag = self.reader.read_uint8()
        array = InlineArray(record_type=tag, info=self._read_array_info(), reference=reference)
        if self.read_array_elements:
            array.primitive_type = self._read_element_primitive()
            array.values = self._read_elements(array.primitive_type, array.info.length)
        return array

    def _read_element_primitive(self) -> PrimitiveType:
        offset = self.reader.position
        primitive = read_primitive_type(self.reader)
        self._check_element_primitive(primitive, offset)
        return primitive

    def _check_element_primitive(self, primitive: PrimitiveType, offset: int) -> None:
        # Null and String elements have no fixed width
        if primitive not in ARRAY_ELEMENT_PRIMITIVES:
            raise InvalidEnumValue(
                f"{primitive.display_name} is not a valid array element type", offset=offset
            )

    # --- Record kinds ---

    def _read_stream_header(self, index: int) -> StreamHeader:
        offset = self.reader.position
        header = StreamHeader(
            root_id=self.reader.read_int32(),
            header_id=self.reader.read_int32(),
            major_version=self.reader.read_int32(),
            minor_version=self.reader.read_int32(),
        )
        if (header.major_version, header.minor_version) != (
            SUPPORTED_MAJOR_VERSION,
            SUPPORTED_MINOR_VERSION,
        ):
            raise MalformedHeader(
                f"Unsupported stream version {header.major_version}.{header.minor_version}",
                offset=offset,
            )
        return header

    def _read_binary_library(self, index: int) -> BinaryLibrary:
        library_id = self._read_positive_int32("LibraryId")
        name = self.reader.read_string()
        if library_id in self.libraries:
            logger.warning("LibraryId %d registered twice; keeping %r", library_id, name)
        self.libraries.register(library_id, name)
        return BinaryLibrary(library_id=library_id, name=name)

    def _read_class_with_members_and_types(self, index: int) -> ClassWithMembersAndTypes:
        class_info = self._read_class_info()
        member_types = read_member_type_info(self.reader, class_info.member_count)
        library_id = self.reader.read_int32()
        record = ClassWithMembersAndTypes(
            class_info=class_info,
            member_type_info=member_types,
            library_id=library_id,
        )
        # First definition wins, as in the object index
        self._class_index.setdefault(class_info.object_id, index)
        record.member_values = self._read_member_values(index, member_types)
        return record

    def _read_class_with_id(self, index: int) -> ClassWithId:
        instance_id = self._read_positive_int32("ObjectId")
        offset = self.reader.position
        metadata_id = self.reader.read_int32()
        class_index = self._class_index.get(metadata_id)
        if class_index is None:
            raise UnresolvedReference(
                f"ClassWithId {instance_id} names unknown class metadata {metadata_id}",
                offset=offset,
            )
        schema = self.records[class_index]
        assert isinstance(schema, ClassWithMembersAndTypes)
        return ClassWithId(
            instance_id=instance_id,
            metadata_id=metadata_id,
            class_index=class_index,
            member_values=self._read_member_values(index, schema.member_type_info),
        )

    def _read_member_reference(self, index: int) -> MemberReference:
        offset = self.reader.position
        id_ref = self.reader.read_int32()
        if id_ref <= 0:
            raise UnresolvedReference(f"Reference to invalid ObjectId {id_ref}", offset=offset)
        self.pending_references.append(
            ReferenceEdge(source_index=index, member_index=None, id_ref=id_ref)
        )
        return MemberReference(id_ref=id_ref)

    def _read_binary_array(self, index: int) -> BinaryArray:
        array_id = self._read_positive_int32("ObjectId")
        offset = self.reader.position
        kind = self.reader.read_uint8()
        try:
            array_type = BinaryArrayType(kind)
        except ValueError:
            raise InvalidEnumValue(f"Invalid binary array type: {kind}", offset=offset) from None
        rank = self._read_positive_int32("Rank")
        lengths = [self._read_count("Length") for _ in range(rank)]
        lower_bounds: list[int] = []
        if array_type.has_lower_bounds:
            lower_bounds = [self.reader.read_int32() for _ in range(rank)]
        element_type = read_binary_type(self.reader)
        info_offset = self.reader.position
        additional_info = read_additional_info(self.reader, element_type)

        record = BinaryArray(
            array_id=array_id,
            array_type=array_type,
            rank=rank,
            lengths=lengths,
            lower_bounds=lower_bounds,
            element_type=element_type,
            additional_info=additional_info,
        )
        # Non-primitive elements follow as records of their own
        if self.read_array_elements and element_type == BinaryType.PRIMITIVE:
            assert isinstance(additional_info, PrimitiveType)
            self._check_element_primitive(additional_info, info_offset)
            record.values = self._read_elements(additional_info, math.prod(lengths))
        return record

    def _read_array_single_primitive(self, index: int) -> ArraySinglePrimitive:
        info = self._read_array_info()
        primitive = self._read_element_primitive()
        record = ArraySinglePrimitive(info=info, primitive_type=primitive)
        if self.read_array_elements:
            record.values = self._read_elements(primitive, info.length)
        return record

    def _read_stream_end(self, index: int) -> StreamEnd:
        return StreamEnd()

    handlers: dict[RecordType, Callable[[RecordDecoder, int], Record]] = {
        RecordType.SERIALIZED_STREAM_HEADER: _read_stream_header,
        RecordType.BINARY_LIBRARY: _read_binary_library,
        RecordType.CLASS_WITH_MEMBERS_AND_TYPES: _read_class_with_members_and_types,
        RecordType.CLASS_WITH_ID: _read_class_with_id,
        RecordType.MEMBER_REFERENCE: _read_member_reference,
        RecordType.BINARY_ARRAY: _read_binary_array,
        RecordType.ARRAY_SINGLE_PRIMITIVE: _read_array_single_primitive,
        RecordType.MESSAGE_END: _read_stream_end,
    }
