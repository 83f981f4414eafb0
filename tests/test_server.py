import io
import socket
import threading
import time

import pytest

from chatwire.logger import Logger
from chatwire.packets import (
    ClientboundSendMessage,
    ServerboundSendMessage,
    SetName,
    frame,
    read_frame,
)
from chatwire.server import Connection, Server, format_address


class EchoServer(Server[Connection]):
    def create_client(self, sock, address):
        return Connection(sock, address)

    def handle_client(self, client):
        received = read_frame(client.sock)
        if received is None:
            return False
        _, body = received
        message = ServerboundSendMessage.from_buffer(body)
        client.send_packet(ClientboundSendMessage("echo", message.message))
        return True


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def running_server():
    stream = io.StringIO()
    server = EchoServer("127.0.0.1", 0, logger=Logger(stream))
    server.create_socket()
    server.bind_address()
    server.start_listen()
    thread = threading.Thread(target=server.start_listen_thread, daemon=True)
    thread.start()
    assert _wait_for(lambda: server.running)
    yield server, stream, thread
    server.stop()
    thread.join(timeout=5)


def test_format_address():
    assert format_address(("127.0.0.1", 8080)) == "127.0.0.1:8080"


def test_connection_send_packet_is_framed():
    left, right = socket.socketpair()
    with left, right:
        right.settimeout(5)
        conn = Connection(left, ("127.0.0.1", 1234))
        sent = conn.send_packet(SetName("alice"))
        expected = frame(SetName("alice"))
        assert sent == len(expected)
        assert right.recv(len(expected)) == expected


def test_connection_send_returns_length_and_delivers():
    left, right = socket.socketpair()
    with left, right:
        right.settimeout(5)
        conn = Connection(left, ("10.0.0.1", 99))
        assert conn.address_readable == "10.0.0.1:99"
        assert conn.send(b"abc") == 3
        assert right.recv(3) == b"abc"


def test_server_is_abstract():
    with pytest.raises(TypeError):
        Server("127.0.0.1", 0)


def test_bind_without_socket_raises():
    server = EchoServer("127.0.0.1", 0, logger=Logger(io.StringIO()))
    with pytest.raises(RuntimeError):
        server.bind_address()


def test_bind_occupied_port_raises():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        server = EchoServer("127.0.0.1", port, logger=Logger(io.StringIO()))
        server.create_socket()
        try:
            with pytest.raises(OSError):
                server.bind_address()
        finally:
            server.stop()


def test_echo_round_trip_and_cleanup(running_server):
    server, stream, _ = running_server
    with socket.create_connection(server.sock.getsockname(), timeout=5) as peer:
        peer.sendall(frame(ServerboundSendMessage("hi")))
        received = read_frame(peer)
        assert received is not None
        packet_id, body = received
        assert packet_id == ClientboundSendMessage.packet_id
        assert ClientboundSendMessage.from_buffer(body) == ClientboundSendMessage("echo", "hi")
        assert len(server.clients.get()) == 1
    assert _wait_for(lambda: len(server.clients.get()) == 0)
    assert _wait_for(lambda: "closed." in stream.getvalue())


def test_stop_ends_listening_thread(running_server):
    server, stream, thread = running_server
    server.stop()
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert server.running is False
    log = stream.getvalue()
    assert "Socket created." in log
    assert "Listening thread stopped." in log