"""Length-prefixed TCP chat: byte buffer, codecs, packets, server and client."""

__version__ = "0.1.0"