"""NRBF Records - A decoder for binary-serialized .NET object record streams."""

from nrbf_records.errors import (
    DecodeError,
    InvalidEnumValue,
    MalformedHeader,
    TruncatedInput,
    UnresolvedReference,
    UnsupportedRecordType,
)
from nrbf_records.query import QueryResult, run_query
from nrbf_records.records import (
    ArraySinglePrimitive,
    BinaryArray,
    BinaryLibrary,
    ClassWithId,
    ClassWithMembersAndTypes,
    DecodeResult,
    MemberReference,
    Record,
    ReferenceEdge,
    StreamEnd,
    StreamHeader,
)
from nrbf_records.render import dumps, to_data
from nrbf_records.stream import DecoderOptions, StreamDecoder, decode, decode_batch
from nrbf_records.types import BinaryArrayType, BinaryType, PrimitiveType, RecordType

__all__ = [
    # Main API
    "decode",
    "decode_batch",
    "DecoderOptions",
    "StreamDecoder",
    "DecodeResult",
    "ReferenceEdge",
    # Output
    "to_data",
    "dumps",
    "run_query",
    "QueryResult",
    # Records
    "Record",
    "StreamHeader",
    "BinaryLibrary",
    "ClassWithMembersAndTypes",
    "ClassWithId",
    "MemberReference",
    "BinaryArray",
    "ArraySinglePrimitive",
    "StreamEnd",
    # Enumerations
    "RecordType",
    "BinaryType",
    "PrimitiveType",
    "BinaryArrayType",
    # Errors
    "DecodeError",
    "MalformedHeader",
    "UnsupportedRecordType",
    "InvalidEnumValue",
    "UnresolvedReference",
    "TruncatedInput",
]

__version__ = "0.1.0"
