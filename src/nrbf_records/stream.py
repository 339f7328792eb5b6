"""Stream decoder: the record read loop and the reference resolution pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from nrbf_records.errors import (
    DecodeError,
    MalformedHeader,
    TruncatedInput,
    UnresolvedReference,
)
from nrbf_records.reader import BinaryReader
from nrbf_records.record_decoder import RecordDecoder
from nrbf_records.records import (
    DecodeResult,
    LibraryTable,
    Record,
    ReferenceEdge,
    StreamEnd,
    StreamHeader,
)

logger = logging.getLogger(__name__)


@dataclass
class DecoderOptions:
    """Settings for a decode call.

    Attributes:
        read_array_elements: Consume primitive array payloads instead of only
            their header and shape fields.
        string_encoding: Codec mapping string and char bytes to text. The
            default maps each byte to the code point of the same value.
        require_header: Reject streams whose first record is not a header.
    """

    read_array_elements: bool = False
    string_encoding: str = "latin-1"
    require_header: bool = True


class DecoderState(Enum):
    """Progress of a single decode call."""

    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class StreamDecoder:
    """Decodes a whole buffer into a DecodeResult.

    Decoding runs in two phases. The first walks the buffer record by record,
    appending each one to an ordered log and collecting reference edges
    without resolving them. The second maps every ObjectId to its log position
    and resolves all edges, so references may point forward in the stream.

    One instance handles one call at a time; separate instances share nothing.
    """

    def __init__(self, options: DecoderOptions | None = None) -> None:
        self.options = options or DecoderOptions()
        self.state = DecoderState.STREAMING

    def decode(self, buffer: bytes | bytearray | memoryview) -> DecodeResult:
        """Decode ``buffer`` or raise a DecodeError subclass."""
        self.state = DecoderState.STREAMING
        try:
            result = self._decode(buffer)
        except DecodeError:
            self.state = DecoderState.FAILED
            raise
        return result

    def _decode(self, buffer: bytes | bytearray | memoryview) -> DecodeResult:
        reader = BinaryReader(buffer, encoding=self.options.string_encoding)
        records: list[Record] = []
        record_decoder = RecordDecoder(
            reader,
            records,
            read_array_elements=self.options.read_array_elements,
        )

        while self.state is DecoderState.STREAMING:
            if reader.at_end():
                raise TruncatedInput(
                    "Buffer ended before the end-of-stream record", offset=reader.position
                )
            offset = reader.position
            record = record_decoder.read_record(len(records))
            self._check_header_position(record, records, offset)
            records.append(record)
            if isinstance(record, StreamEnd):
                self.state = DecoderState.DONE

        if reader.remaining:
            logger.debug("%d trailing bytes after end of stream", reader.remaining)

        return self._resolve(records, record_decoder.pending_references, record_decoder.libraries)

    def _check_header_position(self, record: Record, records: list[Record], offset: int) -> None:
        if isinstance(record, StreamHeader):
            if records:
                raise MalformedHeader("Stream header must be the first record", offset=offset)
        elif not records and self.options.require_header:
            raise MalformedHeader(
                f"Stream starts with {record.kind} instead of a header", offset=offset
            )

    def _resolve(
        self,
        records: list[Record],
        pending: list[ReferenceEdge],
        libraries: LibraryTable,
    ) -> DecodeResult:
        """Resolve every pending edge against the completed log."""
        object_index: dict[int, int] = {}
        for index, record in enumerate(records):
            for object_id in record.introduced_object_ids():
                object_index.setdefault(object_id, index)

        resolved: list[ReferenceEdge] = []
        for edge in pending:
            target = object_index.get(edge.id_ref)
            if target is None:
                where = f"record {edge.source_index}"
                if edge.member_index is not None:
                    where += f" member {edge.member_index}"
                raise UnresolvedReference(f"ObjectId {edge.id_ref} referenced from {where} never appears")
            resolved.append(edge.resolved(target))

        logger.debug("Decoded %d records, resolved %d references", len(records), len(resolved))
        return DecodeResult(
            records=records,
            references=resolved,
            libraries=libraries,
            object_index=object_index,
        )


def decode(
    buffer: bytes | bytearray | memoryview, options: DecoderOptions | None = None
) -> DecodeResult:
    """Decode a complete in-memory stream.

    Args:
        buffer: The captured stream bytes.
        options: Decoder settings; defaults are used when omitted.

    Returns:
        The ordered record log with all references resolved.

    Raises:
        DecodeError: One of its subclasses, on any malformed input.
    """
    return StreamDecoder(options).decode(buffer)


def decode_batch(
    buffers: Mapping[str, bytes], options: DecoderOptions | None = None
) -> dict[str, DecodeResult | DecodeError]:
    """Decode several independent buffers.

    A failure is stored as the DecodeError for its key and does not affect
    the other buffers.
    """
    results: dict[str, DecodeResult | DecodeError] = {}
    for name, buffer in buffers.items():
        try:
            results[name] = decode(buffer, options)
        except DecodeError as e:
            logger.debug("Failed to decode %s: %s", name, e)
            results[name] = e
    return results
