# chatwire

A minimal multi-user chat over TCP. Clients connect to a server, pick a
username, and every message a named client sends is relayed to all connected
clients, the sender included.

## Installation

```
pip install .
```

The package has no dependencies outside the standard library.

## Running

Start a server. It listens on `0.0.0.0`, port 45678, by default; an IPv4
address and a port may be given as positional arguments:

```
chatwire-server
chatwire-server 127.0.0.1 45678
```

SIGINT and SIGTERM stop it. It exits with status 1 if the socket cannot be
created, bound or put into listening mode.

Start a client in another terminal. It connects to `127.0.0.1:45678` by
default (a host and a port may be given the same way), prompts
`[?] Enter username: ` and takes the first word typed as the username. Each
following line is sent as a chat message, and relayed messages are printed as
`username: message`. Typing `exit`, or closing standard input, ends the
session.

```
chatwire-client
chatwire-client 127.0.0.1 45678
```

## Protocol

Every packet travels in a frame: a big-endian unsigned 32-bit length followed
by that many bytes. The body starts with a big-endian 32-bit packet id.
Strings are a 32-bit byte length followed by UTF-8 bytes.

| id | direction       | packet                   | fields             |
|----|-----------------|--------------------------|--------------------|
| 0  | client → server | `SetName`                | username           |
| 1  | client → server | `ServerboundSendMessage` | message            |
| 1  | server → client | `ClientboundSendMessage` | username, message  |

A connection begins in `State.CONFIG`. The first `SetName` moves it to
`State.CHAT`; later `SetName` packets are ignored, as are messages sent before
a name is set. Packets with unknown ids are skipped. A malformed packet closes
the connection.

`packets.py` also defines `AcknowledgeName` (a 32-bit id followed by one
verdict byte), but neither the server nor the client sends or expects it.

## Library use

The protocol pieces can be used on their own:

```python
from chatwire.bytebuf import ByteBuf
from chatwire.codec import STRING_CODEC
from chatwire.packets import SetName, frame

data = frame(SetName("alice"))

buf = ByteBuf()
STRING_CODEC.encode(buf, "hello")
assert STRING_CODEC.decode(buf) == "hello"
```

- `chatwire.bytebuf.ByteBuf` is a byte buffer with a read position; reading
  past the written data raises `BufferUnderflow` (an `IndexError`).
- `chatwire.codec` has `UInt32Codec`, `UInt8Codec` and `StringCodec`, with
  ready instances `UINT32_CODEC`, `UINT8_CODEC` and `STRING_CODEC`.
- `chatwire.packets.frame(packet)` returns the framed bytes of a packet;
  `read_frame(sock)` reads one frame from a socket and returns
  `(packet_id, buffer)` with the buffer positioned after the id, or `None`
  once the connection is closed. Each packet class has a `from_buffer`
  class method that reads its fields from such a buffer.
- `chatwire.server.Server` is an abstract threaded TCP server: subclass it
  and implement `create_client` and `handle_client`. `chatwire.chat_server`
  provides `ChatServer` and `ChatClient` built on it.
- `chatwire.client.Client` connects on construction (raising
  `ConnectionError` on failure), queues packets with `send_packet`, and runs
  `receive_loop` and `send_loop`; it can be used as a context manager.
- `chatwire.logger.Logger` writes timestamped, thread-tagged lines at a
  `Level` of `INFO`, `WARNING` or `ERROR`.

## What it does not do

The server does not confirm or reject usernames, does not check that they
are unique, keeps no message history and has no authentication or
encryption.

## Tests

```
pip install .[test]
pytest
```