import socket

import pytest

from chatwire.bytebuf import BufferUnderflow, ByteBuf
from chatwire.codec import UINT32_CODEC
from chatwire.packets import (
    AcknowledgeName,
    ClientboundSendMessage,
    Packet,
    ServerboundSendMessage,
    SetName,
    State,
    frame,
    read_frame,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def _body(packet):
    buf = ByteBuf()
    packet.write(buf)
    return buf


def test_state_order():
    assert State(0) is State.CONFIG
    assert State(1) is State.CHAT
    with pytest.raises(ValueError):
        State(2)


@pytest.mark.parametrize(
    "packet, expected_id",
    [
        (SetName("x"), 0),
        (ServerboundSendMessage("x"), 1),
        (ClientboundSendMessage("u", "x"), 1),
    ],
)
def test_packet_ids(packet, expected_id):
    assert UINT32_CODEC.decode(_body(packet)) == expected_id


def test_set_name_frame_bytes():
    assert frame(SetName("test")) == (
        b"\x00\x00\x00\x0c" b"\x00\x00\x00\x00" b"\x00\x00\x00\x04test"
    )


@pytest.mark.parametrize(
    "packet",
    [
        SetName("alice"),
        ServerboundSendMessage("hello there"),
        ClientboundSendMessage("bob", "hi"),
    ],
)
def test_write_then_from_buffer(packet):
    buf = _body(packet)
    assert UINT32_CODEC.decode(buf) == packet.packet_id
    assert type(packet).from_buffer(buf) == packet
    assert buf.remaining() == 0


def test_acknowledge_name_round_trip():
    packet = AcknowledgeName(packet_id=2, correct=1)
    buf = _body(packet)
    assert len(buf) == 5
    assert AcknowledgeName.from_buffer(buf) == packet


def test_from_buffer_truncated():
    data = _body(ClientboundSendMessage("carol", "message")).to_bytes()
    buf = ByteBuf(data[:-2])
    UINT32_CODEC.decode(buf)
    with pytest.raises(BufferUnderflow):
        ClientboundSendMessage.from_buffer(buf)


def test_frame_prefix_matches_body_length():
    packet = ServerboundSendMessage("zażółć")
    framed = frame(packet)
    prefix = UINT32_CODEC.decode(ByteBuf(framed[:4]))
    assert prefix == len(framed) - 4
    assert framed[4:] == _body(packet).to_bytes()


def test_read_frame_over_socket(pair):
    a, b = pair
    a.sendall(frame(SetName("alice")) + frame(ServerboundSendMessage("hey")))
    packet_id, body = read_frame(b)
    assert packet_id == 0
    assert SetName.from_buffer(body) == SetName("alice")
    packet_id, body = read_frame(b)
    assert packet_id == 1
    assert ServerboundSendMessage.from_buffer(body).message == "hey"


def test_read_frame_closed_returns_none(pair):
    a, b = pair
    a.close()
    assert read_frame(b) is None


def test_read_frame_partial_then_close(pair):
    a, b = pair
    a.sendall(frame(SetName("dave"))[:6])
    a.close()
    assert read_frame(b) is None


def test_packet_is_abstract():
    with pytest.raises(TypeError):
        Packet()