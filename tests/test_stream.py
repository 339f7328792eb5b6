"""Tests for whole-stream decoding and reference resolution."""

import pytest

from nrbf_records import decode, decode_batch
from nrbf_records.errors import (
    DecodeError,
    InvalidEnumValue,
    MalformedHeader,
    TruncatedInput,
    UnresolvedReference,
)
from nrbf_records.records import (
    ArraySinglePrimitive,
    ClassWithId,
    ClassWithMembersAndTypes,
    MemberReference,
    StreamEnd,
)
from nrbf_records.stream import DecoderOptions, DecoderState, StreamDecoder
from nrbf_records.types import BinaryType, PrimitiveType

from stream_builder import (
    StreamBuilder,
    array_ref,
    class_ref,
    inline_array,
    int32,
    primitive,
    simple_stream,
)


class TestSimpleStream:
    """Tests for a minimal well-formed stream."""

    def test_decode(self):
        """Test header, library and class values of a minimal stream."""
        result = decode(simple_stream(42))

        assert result.header is not None
        assert result.header.major_version == 1
        assert result.header.minor_version == 0
        assert result.libraries.get(1) == "Lib"
        record = result.records[2]
        assert isinstance(record, ClassWithMembersAndTypes)
        assert record.name == "C"
        assert record.member_names == ["X"]
        assert record.member_values == [42]
        assert isinstance(result.records[-1], StreamEnd)

    def test_kinds_in_order(self):
        """Test that records are logged in stream order."""
        result = decode(simple_stream())
        assert [r.kind for r in result.records] == [
            "StreamHeader",
            "BinaryLibrary",
            "ClassWithMembersAndTypes",
            "StreamEnd",
        ]

    def test_find(self):
        """Test looking up a record by ObjectId."""
        result = decode(simple_stream())
        assert result.find(1) is result.records[2]
        assert result.find(99) is None

    def test_state_done(self):
        """Test that a successful decode ends in the DONE state."""
        decoder = StreamDecoder()
        decoder.decode(simple_stream())
        assert decoder.state is DecoderState.DONE

    def test_trailing_bytes_ignored(self):
        """Test that bytes after the end record are not decoded."""
        result = decode(simple_stream() + b"\xff\xff")
        assert len(result.records) == 4

    def test_accepts_bytearray(self):
        """Test decoding from a mutable buffer."""
        result = decode(bytearray(simple_stream(7)))
        assert result.records[2].member_values == [7]


class TestAdjacentPrimitives:
    """Tests that each fixed-width member consumes exactly its width."""

    @pytest.mark.parametrize(
        "kind,first,second",
        [
            (PrimitiveType.BYTE, 0xFE, 0x01),
            (PrimitiveType.SBYTE, -2, 3),
            (PrimitiveType.INT16, -300, 301),
            (PrimitiveType.UINT16, 65535, 1),
            (PrimitiveType.INT32, -70000, 70001),
            (PrimitiveType.UINT32, 2**32 - 1, 2),
            (PrimitiveType.INT64, -(2**60), 2**60),
            (PrimitiveType.UINT64, 2**64 - 1, 5),
            (PrimitiveType.SINGLE, 0.5, -0.25),
            (PrimitiveType.DOUBLE, 1e300, -1e-300),
            (PrimitiveType.TIMESPAN, 10_000_000, -1),
            (PrimitiveType.DATETIME, 637_500_000_000_000_000, 0),
            (PrimitiveType.BOOLEAN, True, False),
            (PrimitiveType.CHAR, "a", "Z"),
        ],
    )
    def test_two_members(self, kind, first, second):
        """Test decoding two adjacent members of the same kind."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(
                1,
                "Pair",
                [("a", BinaryType.PRIMITIVE, kind), ("b", BinaryType.PRIMITIVE, kind)],
                library_id=1,
                values=primitive(kind, first) + primitive(kind, second),
            )
            .end()
            .build()
        )
        result = decode(data)
        assert result.records[2].member_values == [first, second]


class TestHeaderRules:
    """Tests for stream header placement and version."""

    @pytest.mark.parametrize("major,minor", [(2, 0), (1, 1)])
    def test_bad_version(self, major, minor):
        """Test that an unsupported version fails regardless of what follows."""
        data = StreamBuilder().header(major=major, minor=minor).raw(b"\xde\xad\xbe\xef").build()
        with pytest.raises(MalformedHeader):
            decode(data)

    def test_missing_header(self):
        """Test that a stream must start with a header by default."""
        data = StreamBuilder().library(1, "Lib").end().build()
        with pytest.raises(MalformedHeader):
            decode(data)

    def test_missing_header_allowed(self):
        """Test that headerless streams decode when the header is optional."""
        data = StreamBuilder().library(1, "Lib").end().build()
        result = decode(data, DecoderOptions(require_header=False))
        assert result.header is None
        assert len(result.records) == 2

    def test_second_header(self):
        """Test that a header after the first record is rejected."""
        data = StreamBuilder().header().header().end().build()
        with pytest.raises(MalformedHeader):
            decode(data)

    def test_state_failed(self):
        """Test that a failed decode ends in the FAILED state."""
        decoder = StreamDecoder()
        with pytest.raises(MalformedHeader):
            decoder.decode(StreamBuilder().header(major=3).build())
        assert decoder.state is DecoderState.FAILED


class TestReferences:
    """Tests for the reference resolution pass."""

    def test_forward_member_reference(self):
        """Test that a MemberReference resolves to a record that appears later."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .member_reference(5)
            .class_with_members_and_types(
                5, "Target", [("v", BinaryType.PRIMITIVE, PrimitiveType.INT32)], 1, int32(1)
            )
            .end()
            .build()
        )
        result = decode(data)

        assert isinstance(result.records[2], MemberReference)
        assert len(result.references) == 1
        edge = result.references[0]
        assert edge.source_index == 2
        assert edge.member_index is None
        assert edge.target_index == 3
        assert edge.is_resolved

    def test_forward_class_member_reference(self):
        """Test that an inline Class member resolves to a later record."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(
                1, "Parent", [("child", BinaryType.CLASS, ("Child", 1))], 1, class_ref(2)
            )
            .class_with_members_and_types(
                2, "Child", [("v", BinaryType.PRIMITIVE, PrimitiveType.BYTE)], 1, b"\x07"
            )
            .end()
            .build()
        )
        result = decode(data)

        assert result.references_from(2)[0].target_index == 3
        assert result.references_from(2)[0].member_index == 0

    def test_backward_reference(self):
        """Test that a reference to an earlier record resolves."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .array_single_primitive(4, 0, PrimitiveType.INT32)
            .member_reference(4)
            .end()
            .build()
        )
        result = decode(data)
        assert isinstance(result.records[2], ArraySinglePrimitive)
        assert result.references[0].target_index == 2

    def test_reference_to_inline_array(self):
        """Test that an inline array's ObjectId maps to its owning record."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(
                1, "Holder", [("bytes", BinaryType.PRIMITIVE_ARRAY, PrimitiveType.BYTE)], 1,
                array_ref(7) + inline_array(7, 0),
            )
            .member_reference(7)
            .end()
            .build()
        )
        result = decode(data)
        assert result.object_index[7] == 2
        assert result.references[0].target_index == 2

    def test_unresolved(self):
        """Test that a reference to an ObjectId that never appears fails."""
        data = StreamBuilder().header().library(1, "Lib").member_reference(42).end().build()
        with pytest.raises(UnresolvedReference, match="42"):
            decode(data)

    def test_class_with_id_unknown_metadata(self):
        """Test that ClassWithId with an unknown MetadataId fails."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(
                1, "C", [("v", BinaryType.PRIMITIVE, PrimitiveType.INT32)], 1, int32(0)
            )
            .class_with_id(2, 3, int32(0))
            .end()
            .build()
        )
        with pytest.raises(UnresolvedReference):
            decode(data)

    def test_class_with_id_schema(self):
        """Test that the schema of a ClassWithId comes from its defining record."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(
                1, "C", [("v", BinaryType.PRIMITIVE, PrimitiveType.INT32)], 1, int32(10)
            )
            .class_with_id(2, 1, int32(20))
            .end()
            .build()
        )
        result = decode(data)
        record = result.records[3]
        assert isinstance(record, ClassWithId)
        assert result.class_schema(record) is result.records[2]
        assert result.find(2) is record

    def test_class_schema_wrong_kind(self):
        """Test that asking for the schema of a non-class record fails."""
        result = decode(simple_stream())
        with pytest.raises(TypeError):
            result.class_schema(result.records[0])


class TestFailures:
    """Tests for malformed and truncated input."""

    def test_truncated_mid_record(self):
        """Test that every cut inside the stream fails with TruncatedInput."""
        data = simple_stream()
        for cut in range(1, len(data)):
            with pytest.raises(TruncatedInput):
                decode(data[:cut])

    def test_missing_end(self):
        """Test that a stream without an end record fails."""
        data = StreamBuilder().header().library(1, "Lib").build()
        with pytest.raises(TruncatedInput):
            decode(data)

    def test_empty_buffer(self):
        """Test that an empty buffer fails."""
        with pytest.raises(TruncatedInput):
            decode(b"")

    @pytest.mark.parametrize("value", [4, 0, 19])
    def test_invalid_primitive_type(self, value):
        """Test that an invalid PrimitiveType byte in a member type fails."""
        data = (
            StreamBuilder()
            .header()
            .library(1, "Lib")
            .class_with_members_and_types(1, "C", [("v", BinaryType.PRIMITIVE, value)], 1, int32(0))
            .end()
            .build()
        )
        with pytest.raises(InvalidEnumValue):
            decode(data)

    def test_errors_are_value_errors(self):
        """Test that decode errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            decode(b"\x00")


class TestBatch:
    """Tests for decoding several independent buffers."""

    def test_failure_isolated(self):
        """Test that a failing buffer does not affect the others."""
        good = simple_stream(1)
        results = decode_batch({"a.dat": good, "bad.dat": good[:10], "b.dat": simple_stream(2)})

        assert isinstance(results["bad.dat"], TruncatedInput)
        assert results["a.dat"].records[2].member_values == [1]
        assert results["b.dat"].records[2].member_values == [2]

    def test_all_failures_reported(self):
        """Test that each failure is stored under its own key."""
        results = decode_batch({"x": b"", "y": StreamBuilder().header(major=9).build()})
        assert isinstance(results["x"], DecodeError)
        assert isinstance(results["y"], MalformedHeader)

    def test_options_applied(self):
        """Test that batch decoding passes options to every buffer."""
        data = StreamBuilder().library(1, "Lib").end().build()
        results = decode_batch({"x": data}, DecoderOptions(require_header=False))
        assert results["x"].header is None
