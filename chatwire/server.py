"""Generic threaded TCP server with one handler thread per connection."""

from __future__ import annotations

import socket
import threading
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from chatwire.bytebuf import BufferUnderflow
from chatwire.logger import Level, Logger
from chatwire.packets import Packet, frame
from chatwire.sync import Synced

DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 45678
LISTEN_BACKLOG = 5

_ACCEPT_POLL_SECONDS = 0.2


def format_address(address: tuple) -> str:
    """Render a socket address as ``host:port``."""
    host, port = address[0], address[1]
    return f"{host}:{port}"


class Connection:
    """One accepted peer: its socket and where it came from."""

    def __init__(self, sock: socket.socket, address: tuple) -> None:
        self.sock = sock
        self.address = address
        self.connfd = sock.fileno()
        self.address_readable = format_address(address)

    def send(self, data: bytes) -> int:
        """Send all of ``data``; return the number of bytes sent."""
        self.sock.sendall(data)
        return len(data)

    def send_packet(self, packet: Packet) -> int:
        """Send ``packet`` behind its length prefix."""
        return self.send(frame(packet))


C = TypeVar("C", bound=Connection)


class Server(ABC, Generic[C]):
    """Accepts connections and runs ``handle_client`` for each until it fails."""

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        port: int = DEFAULT_PORT,
        logger: Logger | None = None,
    ) -> None:
        self.address = address
        self.port = port
        self.logger = logger if logger is not None else Logger()
        self.clients: Synced[dict[int, C]] = Synced({})
        self.sock: socket.socket | None = None
        self._running = threading.Event()

    @property
    def running(self) -> bool:
        """Whether the server is accepting and serving connections."""
        return self._running.is_set()

    @abstractmethod
    def handle_client(self, client: C) -> bool:
        """Process one unit of input from ``client``; False ends the connection."""

    @abstractmethod
    def create_client(self, sock: socket.socket, address: tuple) -> C:
        """Wrap a freshly accepted socket."""

    def create_socket(self) -> None:
        """Create the listening TCP socket."""
        self.logger.log(Level.INFO, "Creating socket...")
        try:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError:
            self.logger.log(Level.ERROR, "Socket creation failed!")
            raise
        self.logger.log(Level.INFO, "Socket created.")

    def bind_address(self) -> None:
        """Bind the socket to the configured address and port."""
        self.logger.log(Level.INFO, "Binding address...")
        self._require_socket().bind((self.address, self.port))

    def start_listen(self) -> None:
        """Put the socket into listening mode."""
        self.logger.log(Level.INFO, "Starting to listen...")
        self._require_socket().listen(LISTEN_BACKLOG)

    def start_listen_thread(self) -> None:
        """Accept connections on a thread and block until it stops."""
        self.logger.log(Level.INFO, "Starting listening thread...")
        sock = self._require_socket()
        sock.settimeout(_ACCEPT_POLL_SECONDS)
        self._running.set()
        thread = threading.Thread(
            target=self._accept_loop, args=(sock,), name="listener", daemon=True
        )
        thread.start()
        thread.join()

    def handle_connection(self, sock: socket.socket, address: tuple) -> None:
        """Register a new peer and serve it on its own thread."""
        self.logger.log(Level.INFO, "Establishing new connection...")
        sock.settimeout(None)
        client = self.create_client(sock, address)
        with self.clients.locked() as clients:
            clients[client.connfd] = client
        self.logger.log(
            Level.INFO,
            f"Established connection with connfd {client.connfd} "
            f"({client.address_readable})",
        )
        threading.Thread(
            target=self._serve, args=(client,), name=f"conn-{client.connfd}", daemon=True
        ).start()

    def stop(self) -> None:
        """Stop accepting and close the listening socket."""
        self._running.clear()
        if self.sock is not None:
            self.sock.close()

    def _require_socket(self) -> socket.socket:
        if self.sock is None:
            raise RuntimeError("socket has not been created")
        return self.sock

    def _accept_loop(self, sock: socket.socket) -> None:
        while self._running.is_set():
            try:
                conn, address = sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if sock.fileno() == -1:
                    break
                continue
            self.logger.log(Level.INFO, f"Incoming connection on connfd {conn.fileno()}")
            self.handle_connection(conn, address)
        self.logger.log(Level.INFO, "Listening thread stopped.")

    def _serve(self, client: C) -> None:
        try:
            while self._running.is_set():
                if not self.handle_client(client):
                    break
        except BufferUnderflow as error:
            self.logger.log(
                Level.ERROR,
                f"Malformed packet on connfd {client.connfd}: {error}",
            )
        finally:
            self.logger.log(
                Level.INFO,
                f"Connection with connfd {client.connfd} "
                f"({client.address_readable}) closed.",
            )
            with self.clients.locked() as clients:
                clients.pop(client.connfd, None)
            client.sock.close()