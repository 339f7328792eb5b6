"""Exceptions raised while decoding a record stream.

Every error is fatal for the current decode: once a field is misread the cursor
no longer lines up with record boundaries, so nothing after it can be trusted.
"""

from __future__ import annotations


class DecodeError(ValueError):
    """Base class for all stream decoding failures."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class MalformedHeader(DecodeError):
    """The stream header is missing or names an unsupported version."""


class UnsupportedRecordType(DecodeError):
    """A record tag or inline type that this decoder does not implement."""


class InvalidEnumValue(DecodeError):
    """An enumerated or bounded field holds a value outside its legal range."""


class UnresolvedReference(DecodeError):
    """A reference names an object or class that never appears."""


class TruncatedInput(DecodeError):
    """A read ran past the end of the buffer."""
