"""Chat server: clients pick a name, then every message is relayed to all."""

from __future__ import annotations

import argparse
import ipaddress
import signal
import socket
import sys
import threading
from collections.abc import Sequence

from chatwire.bytebuf import ByteBuf
from chatwire.logger import Level
from chatwire.packets import (
    ClientboundSendMessage,
    ServerboundSendMessage,
    SetName,
    State,
    frame,
    read_frame,
)
from chatwire.server import DEFAULT_ADDRESS, DEFAULT_PORT, Connection, Server


class ChatClient(Connection):
    """A connected peer that starts in CONFIG and chats once named."""

    def __init__(self, sock: socket.socket, address: tuple) -> None:
        super().__init__(sock, address)
        self.state = State.CONFIG
        self._username = ""

    @property
    def username(self) -> str:
        """The chosen name; unavailable until the client leaves CONFIG."""
        if self.state is State.CONFIG:
            raise RuntimeError("username cannot be accessed in CONFIG state")
        return self._username

    @username.setter
    def username(self, value: str) -> None:
        self._username = value


class ChatServer(Server[ChatClient]):
    """Handles name registration and broadcasts chat messages."""

    def handle_client(self, client: ChatClient) -> bool:
        received = read_frame(client.sock)
        if received is None:
            return False
        packet_id, body = received
        if packet_id == SetName.packet_id:
            self._set_name(client, body)
        elif packet_id == ServerboundSendMessage.packet_id:
            self._relay(client, body)
        return True

    def create_client(self, sock: socket.socket, address: tuple) -> ChatClient:
        self.logger.log(Level.INFO, f"Created client with connfd {sock.fileno()}")
        return ChatClient(sock, address)

    def _set_name(self, client: ChatClient, body: ByteBuf) -> None:
        if client.state is State.CHAT:
            return
        packet = SetName.from_buffer(body)
        client.state = State.CHAT
        client.username = packet.username
        self.logger.log(
            Level.INFO,
            f"Client {client.connfd} ({client.address_readable}) "
            f"uses username: {packet.username}",
        )

    def _relay(self, client: ChatClient, body: ByteBuf) -> None:
        if client.state is not State.CHAT:
            return
        packet = ServerboundSendMessage.from_buffer(body)
        self.logger.log(
            Level.INFO,
            f"{client.username} ({client.address_readable}): {packet.message}",
        )
        data = frame(ClientboundSendMessage(client.username, packet.message))
        targets = self.clients.run(lambda clients: list(clients.values()))
        for target in targets:
            try:
                target.send(data)
            except OSError as error:
                self.logger.log(
                    Level.WARNING,
                    f"Could not deliver to connfd {target.connfd}: {error}",
                )


def _ipv4(text: str) -> str:
    try:
        return str(ipaddress.IPv4Address(text))
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"invalid IPv4 address: {text!r}") from error


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from error
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def parse_args(argv: Sequence[str]) -> tuple[str, int]:
    """Return the address and port to listen on."""
    parser = argparse.ArgumentParser(prog="chatwire-server", description="Run the chat server.")
    parser.add_argument("address", nargs="?", type=_ipv4, default=DEFAULT_ADDRESS)
    parser.add_argument("port", nargs="?", type=_port, default=DEFAULT_PORT)
    args = parser.parse_args(list(argv))
    return args.address, args.port


def main(argv: Sequence[str] | None = None) -> int:
    """Start the chat server and serve until stopped."""
    address, port = parse_args(sys.argv[1:] if argv is None else argv)
    server = ChatServer(address, port)

    try:
        server.create_socket()
    except OSError:
        return 1

    try:
        server.bind_address()
    except OSError:
        server.logger.log(Level.ERROR, "Failed to bind address")
        server.stop()
        return 1

    try:
        server.start_listen()
    except OSError:
        server.logger.log(Level.ERROR, "Failed to start listening thread")
        server.stop()
        return 1

    def shutdown(signum: int, _frame: object) -> None:
        server.logger.log(Level.INFO, f"Server shutting down... (sig: {signum})")
        server.stop()
        sys.exit(0)

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, shutdown)
        signal.signal(signal.SIGTERM, shutdown)

    server.start_listen_thread()
    server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())