"""Chat client: queues outgoing packets and prints relayed messages."""

from __future__ import annotations

import argparse
import queue
import socket
import sys
import threading
from collections.abc import Sequence
from typing import TextIO

from chatwire.bytebuf import BufferUnderflow
from chatwire.logger import Level, Logger
from chatwire.packets import (
    ClientboundSendMessage,
    Packet,
    ServerboundSendMessage,
    SetName,
    frame,
    read_frame,
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 45678
EXIT_COMMAND = "exit"
USERNAME_PROMPT = "[?] Enter username: "

_QUEUE_POLL_SECONDS = 0.1
_CHAT_JOIN_SECONDS = 0.5


class Client:
    """A connection to the chat server with a send queue and a receiver thread."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        logger: Logger | None = None,
        output: TextIO | None = None,
    ) -> None:
        self.logger = logger if logger is not None else Logger()
        self._output = output
        self._output_lock = threading.Lock()
        self._queue: queue.Queue[Packet] = queue.Queue()
        self._running = threading.Event()

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as error:
            self.logger.log(Level.ERROR, "Socket creation failed")
            raise ConnectionError("socket creation failed") from error
        self.logger.log(Level.INFO, "Socket successfully created")

        try:
            sock.connect((host, port))
        except OSError as error:
            sock.close()
            self.logger.log(Level.ERROR, "Connection with the server failed")
            raise ConnectionError(f"could not connect to {host}:{port}") from error

        self.sock = sock
        self.logger.log(Level.INFO, "Connected to the server!")
        self._running.set()

    @property
    def running(self) -> bool:
        """Whether the client is still exchanging packets."""
        return self._running.is_set()

    def send_packet(self, packet: Packet) -> None:
        """Queue ``packet`` for the send loop."""
        self._queue.put(packet)

    def receive_loop(self) -> threading.Thread:
        """Start printing incoming chat messages on a background thread."""
        thread = threading.Thread(target=self._receive, name="receiver", daemon=True)
        thread.start()
        return thread

    def send_loop(self) -> None:
        """Send queued packets on a thread and block until the client stops.

        Packets queued before the stop are still delivered.
        """
        thread = threading.Thread(target=self._send, name="sender", daemon=True)
        thread.start()
        thread.join()

    def stop(self) -> None:
        """Ask the loops to finish."""
        self._running.clear()

    def close(self) -> None:
        """Stop and release the socket."""
        self.stop()
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _print(self, line: str) -> None:
        stream = self._output if self._output is not None else sys.stdout
        with self._output_lock:
            print(line, file=stream, flush=True)

    def _receive(self) -> None:
        while self.running:
            try:
                received = read_frame(self.sock)
            except BufferUnderflow as error:
                self.logger.log(Level.ERROR, f"Malformed packet: {error}")
                self.stop()
                return
            if received is None:
                self.stop()
                return
            packet_id, body = received
            if packet_id != ClientboundSendMessage.packet_id:
                continue
            try:
                message = ClientboundSendMessage.from_buffer(body)
            except BufferUnderflow as error:
                self.logger.log(Level.ERROR, f"Malformed packet: {error}")
                self.stop()
                return
            self._print(f"{message.username}: {message.message}")

    def _transmit(self, packet: Packet) -> bool:
        try:
            self.sock.sendall(frame(packet))
        except OSError as error:
            self.logger.log(Level.ERROR, f"Sending failed: {error}")
            self.stop()
            return False
        return True

    def _send(self) -> None:
        while self.running:
            try:
                packet = self._queue.get(timeout=_QUEUE_POLL_SECONDS)
            except queue.Empty:
                continue
            if not self._transmit(packet):
                return
        while True:
            try:
                packet = self._queue.get_nowait()
            except queue.Empty:
                return
            if not self._transmit(packet):
                return


def _read_username(stream: TextIO) -> str | None:
    """First whitespace-separated word of the first non-blank line."""
    for line in stream:
        words = line.split()
        if words:
            return words[0]
    return None


def _chat(client: Client, stream: TextIO) -> None:
    while client.running:
        line = stream.readline()
        if not line:
            client.stop()
            break
        text = line.rstrip("\r\n")
        if text == EXIT_COMMAND:
            client.stop()
            break
        client.send_packet(ServerboundSendMessage(text))


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="chatwire-client", description="Join the chat.")
    parser.add_argument("host", nargs="?", default=DEFAULT_HOST)
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT)
    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> int:
    """Connect, register a username and chat until ``exit`` or disconnection."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        client = Client(args.host, args.port)
    except ConnectionError:
        return 1

    with client:
        print(USERNAME_PROMPT, end="", flush=True)
        username = _read_username(sys.stdin)
        if username is None:
            return 1
        client.send_packet(SetName(username))

        chat = threading.Thread(target=_chat, args=(client, sys.stdin), name="chat", daemon=True)
        chat.start()

        client.receive_loop()
        client.send_loop()
        chat.join(_CHAT_JOIN_SECONDS)
    return 0


if __name__ == "__main__":
    sys.exit(main())