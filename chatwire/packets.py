"""Packets exchanged between chat client and server, and their framing."""

from __future__ import annotations

import enum
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from chatwire.bytebuf import ByteBuf
from chatwire.codec import STRING_CODEC, UINT8_CODEC, UINT32_CODEC


class State(enum.IntEnum):
    """Connection phase: choosing a name, then chatting."""

    CONFIG = 0
    CHAT = 1


class Packet(ABC):
    """A message with a numeric id, serialised id first."""

    packet_id: ClassVar[int]

    @abstractmethod
    def write(self, buffer: ByteBuf) -> None:
        """Append the packet id and fields to ``buffer``."""


@dataclass
class SetName(Packet):
    """Client asks to use ``username``."""

    packet_id: ClassVar[int] = 0
    username: str

    def write(self, buffer: ByteBuf) -> None:
        UINT32_CODEC.encode(buffer, self.packet_id)
        STRING_CODEC.encode(buffer, self.username)

    @classmethod
    def from_buffer(cls, buffer: ByteBuf) -> SetName:
        """Read the fields; the packet id must already be consumed."""
        return cls(STRING_CODEC.decode(buffer))


@dataclass
class ServerboundSendMessage(Packet):
    """Client sends a chat line."""

    packet_id: ClassVar[int] = 1
    message: str

    def write(self, buffer: ByteBuf) -> None:
        UINT32_CODEC.encode(buffer, self.packet_id)
        STRING_CODEC.encode(buffer, self.message)

    @classmethod
    def from_buffer(cls, buffer: ByteBuf) -> ServerboundSendMessage:
        """Read the fields; the packet id must already be consumed."""
        return cls(STRING_CODEC.decode(buffer))


@dataclass
class ClientboundSendMessage(Packet):
    """Server relays a chat line from ``username``."""

    packet_id: ClassVar[int] = 1
    username: str
    message: str

    def write(self, buffer: ByteBuf) -> None:
        UINT32_CODEC.encode(buffer, self.packet_id)
        STRING_CODEC.encode(buffer, self.username)
        STRING_CODEC.encode(buffer, self.message)

    @classmethod
    def from_buffer(cls, buffer: ByteBuf) -> ClientboundSendMessage:
        """Read the fields; the packet id must already be consumed."""
        username = STRING_CODEC.decode(buffer)
        message = STRING_CODEC.decode(buffer)
        return cls(username, message)


@dataclass
class AcknowledgeName(Packet):
    """Server's verdict on a requested name; carries its own id on the wire."""

    packet_id: int
    correct: int

    def write(self, buffer: ByteBuf) -> None:
        UINT32_CODEC.encode(buffer, self.packet_id)
        UINT8_CODEC.encode(buffer, self.correct)

    @classmethod
    def from_buffer(cls, buffer: ByteBuf) -> AcknowledgeName:
        """Read the packet id and the verdict byte."""
        packet_id = UINT32_CODEC.decode(buffer)
        correct = UINT8_CODEC.decode(buffer)
        return cls(packet_id, correct)


def frame(packet: Packet) -> bytes:
    """Serialise ``packet`` behind a 32-bit length prefix."""
    body = ByteBuf()
    packet.write(body)
    out = ByteBuf()
    UINT32_CODEC.encode(out, len(body))
    out.write_buffer(body)
    return out.to_bytes()


def _recv_exact(sock: socket.socket, count: int) -> bytes | None:
    data = bytearray()
    while len(data) < count:
        try:
            chunk = sock.recv(count - len(data))
        except OSError:
            return None
        if not chunk:
            return None
        data.extend(chunk)
    return bytes(data)


def read_frame(sock: socket.socket) -> tuple[int, ByteBuf] | None:
    """Read one framed packet.

    Returns the packet id and a buffer positioned after it, or ``None``
    when the connection is closed.
    """
    header = _recv_exact(sock, 4)
    if header is None:
        return None
    length = UINT32_CODEC.decode(ByteBuf(header))
    data = _recv_exact(sock, length)
    if data is None:
        return None
    body = ByteBuf(data)
    return UINT32_CODEC.decode(body), body