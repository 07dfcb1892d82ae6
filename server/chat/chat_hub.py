"""
Chat hub module.

The hub owns the listening socket and the registries of live sessions, and
routes every broadcast and direct message between them.

Delivery only queues lines on each session (see ConnectionSession.send_line),
so nothing done under the hub lock waits on a client's socket.
"""

import asyncio
from typing import Dict, List, Optional, Set

from common.constants import DEFAULT_SERVER_HOST, DEFAULT_PORT, MAX_LINE_LENGTH, MAX_PENDING_BYTES
from common.protocol_definitions import (
    create_direct_message, create_user_not_found_message, create_history_lines
)
from server.auth.credential_store import CredentialStore
from server.chat.session import ConnectionSession, SessionState
from server.history.history_log import HistoryLog
from server.utils.logger import logger


class ChatHub:
    """Process-wide registry and router for chat sessions."""

    def __init__(self, credentials: CredentialStore, history: HistoryLog,
                 host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 max_line_length: int = MAX_LINE_LENGTH,
                 max_pending_bytes: int = MAX_PENDING_BYTES):
        self.credentials = credentials
        self.history = history
        self.host = host
        self.port = port
        self.max_line_length = max_line_length
        self.max_pending_bytes = max_pending_bytes

        self.sessions: Set[ConnectionSession] = set()
        # Keyed by lower-cased name, like the credential store's lookups
        self.users: Dict[str, ConnectionSession] = {}
        self.lock = asyncio.Lock()  # Protect shared state

        self.server: Optional[asyncio.AbstractServer] = None
        self.closing = False

    async def start(self):
        """Bind the listening socket. Raises OSError if the port cannot be bound."""
        self.server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=self.max_line_length
        )
        # Port 0 asks the OS for a free port; report the real one
        self.port = self.server.sockets[0].getsockname()[1]
        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.info(f"Chat hub listening on {addr}")

    async def serve_forever(self):
        """Accept connections until shutdown() is called."""
        if self.server is None:
            await self.start()
        try:
            await self.server.serve_forever()
        except asyncio.CancelledError:
            if not self.closing:
                raise
            logger.info("Accept loop stopped")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Run one session; called by asyncio in its own task per connection."""
        session = ConnectionSession(reader, writer, self, self.credentials,
                                    max_pending_bytes=self.max_pending_bytes)
        logger.log_connection(session.addr, session.session_id)

        if not await self.add_session(session):
            writer.close()
            return

        await session.run()

    async def add_session(self, session: ConnectionSession) -> bool:
        """Track a new session. False once shutdown has started."""
        async with self.lock:
            if self.closing:
                return False
            self.sessions.add(session)
            return True

    async def remove_session(self, session: ConnectionSession):
        async with self.lock:
            self.sessions.discard(session)

    async def register_username(self, username: str, session: ConnectionSession):
        """Map a username to a session; a later login with the same name wins."""
        async with self.lock:
            self._register_username(username, session)

    def _register_username(self, username: str, session: ConnectionSession):
        key = username.lower()
        previous = self.users.get(key)
        if previous is not None and previous is not session:
            logger.warning(f"User '{username}' logged in again; session={previous.session_id} "
                           f"is no longer reachable by name")
        self.users[key] = session

    async def unregister_username(self, username: str, session: Optional[ConnectionSession] = None):
        """
        Drop a username mapping.

        With a session given, the entry is only removed while it still points
        at that session, so a stale session never evicts a newer login.
        """
        key = username.lower()
        async with self.lock:
            current = self.users.get(key)
            if current is None:
                return
            if session is None or current is session:
                del self.users[key]

    async def rename_username(self, old_name: str, new_name: str, session: ConnectionSession) -> bool:
        """Move a session's mapping to a new name. False if the name is held by another session."""
        async with self.lock:
            holder = self.users.get(new_name.lower())
            if holder is not None and holder is not session:
                return False
            if self.users.get(old_name.lower()) is session:
                del self.users[old_name.lower()]
            self.users[new_name.lower()] = session
            session.username = new_name
            return True

    async def activate_session(self, session: ConnectionSession):
        """
        Publish a freshly logged-in session and replay the history to it.

        Runs under the hub lock so no broadcast falls between the replay and
        the session becoming ACTIVE.
        """
        async with self.lock:
            self._register_username(session.username, session)
            session.send_lines(create_history_lines(self.history.read_all()))
            # The peer may have dropped before we got here
            if session.state is not SessionState.CLOSED:
                session.state = SessionState.ACTIVE

    async def broadcast(self, text: str):
        """Append to history, then queue for every active session."""
        async with self.lock:
            self.history.append(text)
            for session in [s for s in self.sessions if s.state is SessionState.ACTIVE]:
                self._deliver(session, text)

    async def send_direct(self, from_user: str, to_user: str, text: str,
                          sender: Optional[ConnectionSession] = None):
        """
        Route a direct message.

        The recipient and the sender both get the canonical DM line. When the
        recipient is not logged in, only the sender hears about it, via a
        "not found" notice.
        """
        message = create_direct_message(from_user, to_user, text)

        async with self.lock:
            self.history.append(message)

            if sender is None:
                sender = self.users.get(from_user.lower())
            recipient = self.users.get(to_user.lower())

            if recipient is not None:
                self._deliver(recipient, message)
                if sender is not None and sender is not recipient:
                    self._deliver(sender, message)
            elif sender is not None:
                self._deliver(sender, create_user_not_found_message(to_user))

        logger.log_direct(from_user, to_user, recipient is not None)

    def _deliver(self, session: ConnectionSession, text: str):
        try:
            session.send_line(text)
        except Exception as e:
            logger.error(f"Failed to deliver to session={session.session_id}: {e}")

    def get_session(self, username: str) -> Optional[ConnectionSession]:
        return self.users.get(username.lower())

    def get_online_users(self) -> List[str]:
        return sorted(session.username for session in self.users.values())

    def get_session_count(self) -> int:
        """Get the number of live sessions."""
        return len(self.sessions)

    async def shutdown(self):
        """Stop accepting and close every live session. Safe to call twice."""
        if self.closing:
            return
        self.closing = True
        logger.info("Chat hub shutting down...")

        if self.server is not None:
            self.server.close()

        # add_session checks closing under the same lock, so no session
        # can be added after this snapshot
        async with self.lock:
            sessions = list(self.sessions)
        await asyncio.gather(*(session.close() for session in sessions))

        if self.server is not None:
            await self.server.wait_closed()

        logger.info("Chat hub stopped")
