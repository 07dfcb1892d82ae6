"""
Connection session module.

One ConnectionSession drives one client connection through the
login/register handshake and then the chat command loop.

Outgoing lines never go straight to the socket: they are queued and a
per-session writer task drains them, so a client that stops reading only
ever stalls its own writer.
"""

import asyncio
import itertools
from enum import Enum
from typing import List, Optional

from common.constants import Commands, ENCODING, MAX_PENDING_BYTES, FLUSH_TIMEOUT
from common.protocol_definitions import (
    create_welcome_lines, create_auth_usage_message, create_login_required_message,
    create_user_not_exist_message, create_wrong_password_message,
    create_login_success_message, create_user_exists_message,
    create_register_success_message, create_register_failed_message,
    create_goodbye_message, create_dm_usage_message, create_nick_usage_message,
    create_nick_taken_message, create_nick_success_message,
    create_public_message, create_user_joined_message, create_user_left_message,
    create_user_renamed_message, parse_credentials_command, parse_direct_command,
    command_word
)
from server.utils.logger import logger


class SessionState(Enum):
    CONNECTING = 'connecting'
    AUTHENTICATING = 'authenticating'
    ACTIVE = 'active'
    CLOSED = 'closed'


class ConnectionSession:
    """Per-connection state machine: Connecting -> Authenticating -> Active -> Closed."""

    _ids = itertools.count(1)

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 hub, credentials, max_pending_bytes: int = MAX_PENDING_BYTES,
                 flush_timeout: float = FLUSH_TIMEOUT):
        self.session_id = next(self._ids)
        self.reader = reader
        self.writer = writer
        self.hub = hub
        self.credentials = credentials
        self.addr = writer.get_extra_info('peername')

        self.username: Optional[str] = None
        self.account: Optional[str] = None  # name logged in with; username may change via /nick
        self.authenticated = False
        self.state = SessionState.CONNECTING

        # Outbound buffering
        self.outbox: asyncio.Queue = asyncio.Queue()
        self.pending_bytes = 0
        self.max_pending_bytes = max_pending_bytes
        self.flush_timeout = flush_timeout
        self.lagging = False
        self.writer_task: Optional[asyncio.Task] = None

    def __repr__(self):
        return f"<ConnectionSession {self.session_id} {self.username or '-'} {self.state.value}>"

    def send_line(self, text: str) -> bool:
        """
        Queue one line for the client without waiting for the socket.

        Returns False if the line was not queued. A client with more than
        max_pending_bytes already waiting is considered stuck and its
        connection is aborted; the read loop then closes the session.
        """
        if self.state is SessionState.CLOSED or self.lagging:
            return False

        data = (text + '\n').encode(ENCODING)
        # A single large block (e.g. the history replay) is always accepted
        # when nothing else is waiting
        if self.pending_bytes and self.pending_bytes + len(data) > self.max_pending_bytes:
            self.lagging = True
            logger.warning(f"Dropping session={self.session_id}: client is not reading "
                           f"({self.pending_bytes} bytes pending)")
            self.writer.transport.abort()
            return False

        self.pending_bytes += len(data)
        self.outbox.put_nowait(data)
        return True

    def send_lines(self, lines: List[str]) -> bool:
        """Queue several lines as one block."""
        return self.send_line('\n'.join(lines))

    async def _write_loop(self):
        """Drain the outbox to the socket until a None sentinel arrives."""
        try:
            while True:
                data = await self.outbox.get()
                if data is None:
                    break
                self.writer.write(data)
                await self.writer.drain()
                self.pending_bytes -= len(data)
        except (ConnectionError, OSError) as e:
            logger.warning(f"Failed to send to session={self.session_id}: {e}")

    def start_writer(self):
        if self.writer_task is None:
            self.writer_task = asyncio.create_task(self._write_loop())

    async def _read_line(self) -> Optional[str]:
        """Read one line; None on end of stream or an over-long line."""
        try:
            data = await self.reader.readline()
        except ValueError as e:
            # StreamReader.readline raises ValueError when a line exceeds the limit
            logger.warning(f"Dropping session={self.session_id}: {e}")
            return None
        if not data:
            return None
        return data.decode(ENCODING, errors='replace').rstrip('\r\n')

    async def run(self):
        """Drive the connection until it closes."""
        self.start_writer()
        try:
            self.state = SessionState.AUTHENTICATING
            self.send_lines(create_welcome_lines())

            while self.state is not SessionState.CLOSED:
                line = await self._read_line()
                if line is None:
                    break

                if self.state is SessionState.AUTHENTICATING:
                    await self._handle_auth_line(line)
                elif self.state is SessionState.ACTIVE:
                    await self._handle_active_line(line)

        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for session={self.session_id}")
            raise
        except (ConnectionError, OSError) as e:
            logger.warning(f"Socket error for session={self.session_id}: {e}")
        finally:
            await self.close()

    async def _handle_auth_line(self, line: str):
        word = command_word(line)
        if word not in (Commands.LOGIN, Commands.REGISTER):
            self.send_line(create_login_required_message())
            return

        parsed = parse_credentials_command(line)
        if parsed is None:
            self.send_line(create_auth_usage_message())
            return

        _, username, password = parsed
        if word == Commands.LOGIN:
            await self._login(username, password)
        else:
            await self._register(username, password)

    async def _login(self, username: str, password: str):
        stored_name = self.credentials.stored_name(username)
        if stored_name is None:
            logger.log_failed_login(username, self.session_id, "unknown user")
            self.send_line(create_user_not_exist_message())
            return

        if not self.credentials.verify(username, password):
            logger.log_failed_login(username, self.session_id, "wrong password")
            self.send_line(create_wrong_password_message())
            return

        # Chat under the registered spelling, whatever case was typed
        username = stored_name
        self.username = username
        self.account = username
        self.authenticated = True
        logger.log_login(username, self.session_id)

        self.send_line(create_login_success_message(username))
        # Registers the name, replays history and switches us to ACTIVE
        await self.hub.activate_session(self)
        if self.state is SessionState.ACTIVE:
            await self.hub.broadcast(create_user_joined_message(username))

    async def _register(self, username: str, password: str):
        if self.credentials.exists(username):
            self.send_line(create_user_exists_message())
            return

        if self.credentials.register(username, password):
            logger.log_register(username, self.session_id)
            self.send_line(create_register_success_message())
        else:
            self.send_line(create_register_failed_message())

    async def _handle_active_line(self, line: str):
        if line.startswith(Commands.QUIT):
            self.send_line(create_goodbye_message())
            await self.close()
            return

        word = command_word(line)
        if word == Commands.DM:
            parsed = parse_direct_command(line)
            if parsed is None:
                self.send_line(create_dm_usage_message())
                return
            target, text = parsed
            await self.hub.send_direct(self.username, target, text, sender=self)
        elif word == Commands.NICK:
            await self._rename(line)
        else:
            logger.log_chat(self.username, line)
            await self.hub.broadcast(create_public_message(self.username, line))

    async def _rename(self, line: str):
        parts = line.split()
        if len(parts) != 2:
            self.send_line(create_nick_usage_message())
            return

        old_name, new_name = self.username, parts[1]
        if new_name == old_name:
            self.send_line(create_nick_success_message(new_name))
            return

        # A name owned by somebody else's account stays reserved for them
        owns_name = new_name.lower() == self.account.lower()
        if not owns_name and self.credentials.exists(new_name):
            self.send_line(create_nick_taken_message(new_name))
            return

        if not await self.hub.rename_username(old_name, new_name, self):
            self.send_line(create_nick_taken_message(new_name))
            return

        logger.log_rename(old_name, new_name)
        await self.hub.broadcast(create_user_renamed_message(old_name, new_name))
        self.send_line(create_nick_success_message(new_name))

    async def _flush(self):
        """Let queued lines reach the client, giving up after flush_timeout."""
        if self.writer_task is None:
            return
        self.outbox.put_nowait(None)
        try:
            await asyncio.wait_for(self.writer_task, self.flush_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Gave up flushing session={self.session_id} "
                           f"({self.pending_bytes} bytes pending)")
            self.writer.transport.abort()

    async def close(self):
        """Enter CLOSED. Safe to call more than once."""
        if self.state is SessionState.CLOSED:
            return
        was_active = self.state is SessionState.ACTIVE
        self.state = SessionState.CLOSED

        if self.authenticated and self.username:
            await self.hub.unregister_username(self.username, self)
        await self.hub.remove_session(self)

        await self._flush()
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error closing session={self.session_id}: {e}")

        logger.log_disconnect(self.username, self.session_id)

        if was_active and not self.hub.closing:
            await self.hub.broadcast(create_user_left_message(self.username))
