"""
Chat client module.

This module handles the client side of the newline-delimited text protocol.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from common.constants import ENCODING, Commands


class ChatClient:
    """Client-side chat connection."""

    def __init__(self, reader: Optional[asyncio.StreamReader] = None,
                 writer: Optional[asyncio.StreamWriter] = None):
        self.reader = reader
        self.writer = writer
        self.message_handler: Optional[Callable[[str], Awaitable[None]]] = None

    @classmethod
    async def connect(cls, host: str, port: int) -> 'ChatClient':
        """Open a connection to the server."""
        reader, writer = await asyncio.open_connection(host, port)
        return cls(reader, writer)

    def set_message_handler(self, handler: Callable[[str], Awaitable[None]]):
        """Set the coroutine called with each line received from the server."""
        self.message_handler = handler

    async def send_line(self, line: str) -> bool:
        """Send one line to the server."""
        if not self.writer:
            print("[ERROR] Not connected to server")
            return False

        try:
            self.writer.write((line + '\n').encode(ENCODING))
            await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            print(f"[ERROR] Failed to send message: {e}")
            return False

    async def login(self, username: str, password: str) -> bool:
        return await self.send_line(f"{Commands.LOGIN} {username} {password}")

    async def register(self, username: str, password: str) -> bool:
        return await self.send_line(f"{Commands.REGISTER} {username} {password}")

    async def send_direct(self, username: str, text: str) -> bool:
        """Send a direct message to one user."""
        return await self.send_line(f"{Commands.DM} {username} {text}")

    async def quit(self) -> bool:
        return await self.send_line(Commands.QUIT)

    async def read_line(self, timeout: Optional[float] = None) -> Optional[str]:
        """Read one line from the server; None when the server closed the connection."""
        if timeout is None:
            data = await self.reader.readline()
        else:
            data = await asyncio.wait_for(self.reader.readline(), timeout)
        if not data:
            return None
        return data.decode(ENCODING, errors='replace').rstrip('\r\n')

    async def read_until(self, expected: str, timeout: float = 5.0) -> list:
        """Read lines until one equals `expected`; returns every line read, including it."""
        lines = []
        while True:
            line = await self.read_line(timeout)
            if line is None:
                raise ConnectionError(f"Connection closed before {expected!r} arrived")
            lines.append(line)
            if line == expected:
                return lines

    async def listen(self):
        """Pass every received line to the message handler until the server disconnects."""
        while True:
            line = await self.read_line()
            if line is None:
                break
            if self.message_handler:
                await self.message_handler(line)

    async def close(self):
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            self.writer = None
