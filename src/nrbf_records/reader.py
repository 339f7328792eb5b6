"""Little-endian primitive reads over an in-memory buffer."""

from __future__ import annotations

import struct
from typing import Any

from nrbf_records.errors import TruncatedInput
from nrbf_records.types import PrimitiveType


class BinaryReader:
    """Reads fixed-width values and short strings, advancing a cursor.

    The reader knows nothing about records; it only turns bytes at the cursor
    into Python values. Every read either consumes exactly its width or raises
    TruncatedInput without moving the cursor.
    """

    # struct formats for the fixed-width primitive kinds
    FORMATS = {
        PrimitiveType.BYTE: "<B",
        PrimitiveType.SBYTE: "<b",
        PrimitiveType.INT16: "<h",
        PrimitiveType.UINT16: "<H",
        PrimitiveType.INT32: "<i",
        PrimitiveType.UINT32: "<I",
        PrimitiveType.INT64: "<q",
        PrimitiveType.UINT64: "<Q",
        PrimitiveType.SINGLE: "<f",
        PrimitiveType.DOUBLE: "<d",
        PrimitiveType.TIMESPAN: "<q",
        PrimitiveType.DATETIME: "<q",
    }

    def __init__(self, buffer: bytes | bytearray | memoryview, encoding: str = "latin-1") -> None:
        self._data = bytes(buffer)
        self._position = 0
        self.encoding = encoding

    @property
    def position(self) -> int:
        """Return the cursor offset from the start of the buffer."""
        return self._position

    @property
    def remaining(self) -> int:
        """Return the number of unread bytes."""
        return len(self._data) - self._position

    def at_end(self) -> bool:
        return self._position >= len(self._data)

    def read_bytes(self, count: int) -> bytes:
        """Consume and return exactly ``count`` raw bytes."""
        end = self._position + count
        if count < 0 or end > len(self._data):
            raise TruncatedInput(
                f"Needed {count} bytes but only {self.remaining} remain",
                offset=self._position,
            )
        chunk = self._data[self._position:end]
        self._position = end
        return chunk

    def _unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.read_bytes(struct.calcsize(fmt)))[0]

    def read_int8(self) -> int:
        return self._unpack("<b")

    def read_uint8(self) -> int:
        return self._unpack("<B")

    def read_int16(self) -> int:
        return self._unpack("<h")

    def read_uint16(self) -> int:
        return self._unpack("<H")

    def read_int32(self) -> int:
        return self._unpack("<i")

    def read_uint32(self) -> int:
        return self._unpack("<I")

    def read_int64(self) -> int:
        return self._unpack("<q")

    def read_uint64(self) -> int:
        return self._unpack("<Q")

    def read_float32(self) -> float:
        return self._unpack("<f")

    def read_float64(self) -> float:
        return self._unpack("<d")

    def read_boolean(self) -> bool:
        """Read one byte; any non-zero value is true."""
        return self.read_uint8() != 0

    def read_char(self) -> str:
        """Read a single one-byte character."""
        return self.read_bytes(1).decode(self.encoding, errors="replace")

    def read_string(self) -> str:
        """Read a string prefixed by a one-byte length.

        Only lengths up to 255 are representable; longer strings written with
        a multi-byte length prefix are not supported.
        """
        length = self.read_uint8()
        return self.read_bytes(length).decode(self.encoding, errors="replace")

    def read_primitive(self, primitive: PrimitiveType) -> Any:
        """Read one value of the given primitive kind."""
        if primitive == PrimitiveType.BOOLEAN:
            return self.read_boolean()
        elif primitive == PrimitiveType.CHAR:
            return self.read_char()
        elif primitive in (PrimitiveType.DECIMAL, PrimitiveType.STRING):
            # Decimal travels as text and is not reinterpreted
            return self.read_string()
        elif primitive == PrimitiveType.NULL:
            return None
        return self._unpack(self.FORMATS[primitive])
