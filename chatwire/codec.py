"""Encoders and decoders for the wire primitives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from chatwire.bytebuf import BufferUnderflow, ByteBuf

T = TypeVar("T")


class Codec(ABC, Generic[T]):
    """Reads a value from a buffer and writes it back."""

    @abstractmethod
    def decode(self, buffer: ByteBuf) -> T:
        """Consume a value from ``buffer``."""

    @abstractmethod
    def encode(self, buffer: ByteBuf, value: T) -> None:
        """Append ``value`` to ``buffer``."""


class UInt32Codec(Codec[int]):
    """Unsigned 32-bit integer, big-endian."""

    def decode(self, buffer: ByteBuf) -> int:
        if buffer.remaining() < 4:
            raise BufferUnderflow("Buffer size not enough")
        result = 0
        for _ in range(4):
            result = (result << 8) | buffer.read()
        return result

    def encode(self, buffer: ByteBuf, value: int) -> None:
        value &= 0xFFFFFFFF
        buffer.write_bytes(value.to_bytes(4, "big"))


class UInt8Codec(Codec[int]):
    """Unsigned 8-bit integer."""

    def decode(self, buffer: ByteBuf) -> int:
        if buffer.remaining() < 1:
            raise BufferUnderflow("Buffer size not enough")
        return buffer.read()

    def encode(self, buffer: ByteBuf, value: int) -> None:
        buffer.write(value)


class StringCodec(Codec[str]):
    """UTF-8 text prefixed with its byte length as a 32-bit integer."""

    def decode(self, buffer: ByteBuf) -> str:
        if buffer.remaining() < 4:
            raise BufferUnderflow("Buffer size not enough (to read length)")
        length = UINT32_CODEC.decode(buffer)
        if buffer.remaining() < length:
            raise BufferUnderflow("Buffer size not enough (no space in buffer)")
        raw = bytes(buffer.read() for _ in range(length))
        return raw.decode("utf-8", errors="replace")

    def encode(self, buffer: ByteBuf, value: str) -> None:
        raw = value.encode("utf-8")
        UINT32_CODEC.encode(buffer, len(raw))
        buffer.write_bytes(raw)


UINT32_CODEC = UInt32Codec()
UINT8_CODEC = UInt8Codec()
STRING_CODEC = StringCodec()