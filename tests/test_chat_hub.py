#!/usr/bin/env python3
"""
Unit tests for ChatHub routing and registries.

Sessions are replaced by in-memory stand-ins so routing can be checked
without sockets.
"""

import asyncio
import itertools
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from common.constants import HISTORY_HEADER, HISTORY_FOOTER
from server.auth.credential_store import CredentialStore
from server.chat.chat_hub import ChatHub
from server.chat.session import ConnectionSession, SessionState
from server.history.history_log import HistoryLog


class FakeSession:
    """Records every line sent to it."""

    _ids = itertools.count(1000)

    def __init__(self, username=None, state=SessionState.ACTIVE, fail=False):
        self.session_id = next(self._ids)
        self.username = username
        self.state = state
        self.fail = fail
        self.lines = []

    def send_line(self, text):
        if self.fail:
            raise ConnectionResetError("peer gone")
        self.lines.append(text)
        return True

    def send_lines(self, lines):
        for line in lines:
            self.send_line(line)
        return True

    async def close(self):
        self.state = SessionState.CLOSED


class TestChatHub(unittest.IsolatedAsyncioTestCase):
    """Test cases for ChatHub."""

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.history = HistoryLog(os.path.join(self.tmp.name, 'chat_history.txt'))
        self.credentials = CredentialStore(os.path.join(self.tmp.name, 'users.txt'))
        self.hub = ChatHub(self.credentials, self.history, host='127.0.0.1', port=0)

    async def asyncTearDown(self):
        self.tmp.cleanup()

    async def add(self, username, **kwargs):
        session = FakeSession(username, **kwargs)
        await self.hub.add_session(session)
        if username and session.state is SessionState.ACTIVE:
            await self.hub.register_username(username, session)
        return session

    async def test_broadcast_reaches_active_sessions_and_history(self):
        a = await self.add('A')
        b = await self.add('B')
        await self.hub.broadcast('A: hi')

        self.assertEqual(a.lines, ['A: hi'])
        self.assertEqual(b.lines, ['A: hi'])
        self.assertEqual(self.history.read_all(), ['A: hi'])

    async def test_broadcast_skips_unauthenticated_sessions(self):
        a = await self.add('A')
        pending = await self.add(None, state=SessionState.AUTHENTICATING)
        await self.hub.broadcast('A: hi')

        self.assertEqual(a.lines, ['A: hi'])
        self.assertEqual(pending.lines, [])

    async def test_broadcast_survives_failing_recipient(self):
        """One broken connection does not stop delivery to the rest."""
        await self.add('broken', fail=True)
        a = await self.add('A')
        b = await self.add('B')
        await self.hub.broadcast('A: still here')

        self.assertEqual(a.lines, ['A: still here'])
        self.assertEqual(b.lines, ['A: still here'])

    async def test_direct_message_delivered_and_echoed(self):
        a = await self.add('A')
        b = await self.add('B')
        c = await self.add('C')
        await self.hub.send_direct('A', 'B', 'hello')

        self.assertEqual(b.lines, ['[DM] A -> B: hello'])
        self.assertEqual(a.lines, ['[DM] A -> B: hello'])
        self.assertEqual(c.lines, [])
        self.assertEqual(self.history.read_all(), ['[DM] A -> B: hello'])

    async def test_direct_message_to_absent_user(self):
        a = await self.add('A')
        c = await self.add('C')
        await self.hub.send_direct('A', 'B', 'hello')

        self.assertEqual(a.lines, ["User 'B' not found or not logged in."])
        self.assertEqual(c.lines, [])

    async def test_direct_message_to_self_delivered_once(self):
        a = await self.add('A')
        await self.hub.send_direct('A', 'A', 'note to self')
        self.assertEqual(a.lines, ['[DM] A -> A: note to self'])

    async def test_direct_message_without_sender_session(self):
        """The sender echo is skipped when the sender has no session."""
        b = await self.add('B')
        await self.hub.send_direct('ghost', 'B', 'boo')
        self.assertEqual(b.lines, ['[DM] ghost -> B: boo'])

    async def test_last_login_wins(self):
        first = await self.add('A')
        second = await self.add('A')
        self.assertIs(self.hub.get_session('A'), second)

        # The stale session's teardown leaves the newer mapping alone
        await self.hub.unregister_username('A', first)
        self.assertIs(self.hub.get_session('A'), second)

        await self.hub.unregister_username('A', second)
        self.assertIsNone(self.hub.get_session('A'))

    async def test_unregister_does_not_close_session(self):
        a = await self.add('A')
        await self.hub.unregister_username('A')
        self.assertIsNone(self.hub.get_session('A'))
        self.assertIs(a.state, SessionState.ACTIVE)
        self.assertEqual(self.hub.get_session_count(), 1)

    async def test_rename(self):
        a = await self.add('A')
        await self.add('B')

        self.assertFalse(await self.hub.rename_username('A', 'B', a))
        self.assertEqual(a.username, 'A')

        self.assertTrue(await self.hub.rename_username('A', 'Z', a))
        self.assertEqual(a.username, 'Z')
        self.assertIs(self.hub.get_session('Z'), a)
        self.assertIsNone(self.hub.get_session('A'))
        self.assertEqual(self.hub.get_online_users(), ['B', 'Z'])

    async def test_activate_session_replays_history(self):
        self.history.append('old: message')
        session = FakeSession('N', state=SessionState.AUTHENTICATING)
        await self.hub.add_session(session)

        await self.hub.activate_session(session)

        self.assertEqual(session.lines, [HISTORY_HEADER, 'old: message', HISTORY_FOOTER])
        self.assertIs(session.state, SessionState.ACTIVE)
        self.assertIs(self.hub.get_session('N'), session)

    async def test_shutdown_closes_sessions_and_is_idempotent(self):
        a = await self.add('A')
        b = await self.add('B')
        await self.hub.shutdown()
        await self.hub.shutdown()

        self.assertTrue(self.hub.closing)
        self.assertIs(a.state, SessionState.CLOSED)
        self.assertIs(b.state, SessionState.CLOSED)

    async def test_add_session_refused_after_shutdown(self):
        await self.hub.shutdown()
        late = FakeSession('late')
        self.assertFalse(await self.hub.add_session(late))
        self.assertEqual(self.hub.get_session_count(), 0)

    async def test_usernames_match_case_insensitively(self):
        """Names are looked up the way the credential store looks them up."""
        alice = await self.add('alice')
        b = await self.add('B')

        self.assertIs(self.hub.get_session('ALICE'), alice)
        await self.hub.send_direct('b', 'Alice', 'hi')
        self.assertEqual(alice.lines, ['[DM] b -> Alice: hi'])
        self.assertEqual(b.lines, ['[DM] b -> Alice: hi'])

        # Changing only the case of your own name is allowed
        self.assertTrue(await self.hub.rename_username('alice', 'Alice', alice))
        self.assertIs(self.hub.get_session('alice'), alice)
        self.assertEqual(self.hub.get_online_users(), ['Alice', 'B'])

        self.assertFalse(await self.hub.rename_username('B', 'ALICE', b))

    async def test_broadcasts_racing_shutdown_keep_history_whole(self):
        """Broadcasts that overlap a shutdown neither raise nor tear history lines."""
        await self.add('A')
        await self.add('B')
        expected = {f"A: {'x' * 4000} #{i}" for i in range(20)}

        results = await asyncio.gather(
            *(self.hub.broadcast(text) for text in expected),
            self.hub.shutdown(),
            return_exceptions=True
        )

        self.assertEqual([r for r in results if isinstance(r, BaseException)], [])
        stored = self.history.read_all()
        self.assertEqual(len(stored), len(expected))
        self.assertEqual(set(stored), expected)


def make_writer(drain=None):
    writer = MagicMock()
    writer.get_extra_info.return_value = ('127.0.0.1', 50000)
    writer.drain = drain or AsyncMock()
    writer.wait_closed = AsyncMock()
    return writer


class TestSessionOutbox(unittest.IsolatedAsyncioTestCase):
    """Outbound queueing on ConnectionSession, without sockets."""

    def make_session(self, writer, **kwargs):
        hub = MagicMock()
        hub.closing = False
        hub.remove_session = AsyncMock()
        hub.unregister_username = AsyncMock()
        return ConnectionSession(MagicMock(), writer, hub, MagicMock(), **kwargs)

    async def test_lines_are_written_by_the_writer_task(self):
        writer = make_writer()
        session = self.make_session(writer)
        session.start_writer()

        self.assertTrue(session.send_line('hello'))
        self.assertTrue(session.send_lines(['a', 'b']))
        await session.close()

        written = b''.join(call.args[0] for call in writer.write.call_args_list)
        self.assertEqual(written, b'hello\na\nb\n')
        self.assertEqual(session.pending_bytes, 0)

    async def test_client_that_stops_reading_is_dropped(self):
        """Queueing past the bound aborts the connection instead of blocking."""
        writer = make_writer()
        session = self.make_session(writer, max_pending_bytes=250)

        self.assertTrue(session.send_line('x' * 99))
        self.assertTrue(session.send_line('x' * 99))
        self.assertFalse(session.send_line('x' * 99))
        self.assertTrue(session.lagging)
        writer.transport.abort.assert_called_once()

        # Later lines are discarded quietly
        self.assertFalse(session.send_line('more'))
        writer.transport.abort.assert_called_once()
        self.assertEqual(session.outbox.qsize(), 2)

    async def test_large_block_accepted_when_nothing_is_pending(self):
        writer = make_writer()
        session = self.make_session(writer, max_pending_bytes=10)
        self.assertTrue(session.send_lines(['replayed line'] * 10))
        self.assertFalse(session.lagging)

    async def test_close_gives_up_on_a_stuck_client(self):
        async def stuck():
            await asyncio.Event().wait()

        writer = make_writer(drain=stuck)
        session = self.make_session(writer, flush_timeout=0.1)
        session.start_writer()
        session.send_line('never read')

        await asyncio.wait_for(session.close(), 5.0)

        writer.transport.abort.assert_called_once()
        self.assertIs(session.state, SessionState.CLOSED)
        self.assertFalse(session.send_line('after close'))


if __name__ == '__main__':
    unittest.main()
