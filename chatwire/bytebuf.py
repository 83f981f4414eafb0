"""Growable byte buffer with separate read and write positions."""

from __future__ import annotations


class BufferUnderflow(IndexError):
    """Raised when reading past the written data."""


class ByteBuf:
    """Bytes are appended at the end and consumed from a read position."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self._read_position = 0

    def has_next(self) -> bool:
        """Whether unread bytes remain."""
        return self._read_position < len(self._data)

    def write(self, value: int) -> None:
        """Append one byte; only the low eight bits of ``value`` are kept."""
        self._data.append(value & 0xFF)

    def write_bytes(self, data: bytes) -> None:
        """Append a run of bytes."""
        self._data.extend(data)

    def write_buffer(self, other: ByteBuf) -> None:
        """Append and consume all unread bytes of ``other``."""
        while other.has_next():
            self.write(other.read())

    def read(self) -> int:
        """Consume and return the next byte."""
        if self._read_position >= len(self._data):
            raise BufferUnderflow("Read beyond buffer")
        value = self._data[self._read_position]
        self._read_position += 1
        return value

    def peek(self) -> int:
        """Return the next byte without consuming it."""
        if self._read_position >= len(self._data):
            raise BufferUnderflow("Peek beyond buffer")
        return self._data[self._read_position]

    def peek_at(self, location: int) -> int:
        """Return the byte at an absolute position, read or not."""
        if location < 0 or location >= len(self._data):
            raise BufferUnderflow("Peek at beyond buffer")
        return self._data[location]

    def remaining(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self._read_position

    def to_bytes(self) -> bytes:
        """All bytes written so far, including those already read."""
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, index: int) -> int:
        return self.peek_at(index)

    def __repr__(self) -> str:
        return f"ByteBuf({bytes(self._data)!r}, read={self._read_position})"