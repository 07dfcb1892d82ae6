#!/usr/bin/env python3
"""
Unit tests for protocol line builders and command parsing.
"""

import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from common.constants import HISTORY_HEADER, HISTORY_FOOTER
from common.protocol_definitions import (
    parse_credentials_command, parse_direct_command, command_word,
    create_direct_message, create_public_message, create_history_lines,
    create_user_not_found_message, create_login_success_message
)


class TestCommandParsing(unittest.TestCase):

    def test_credentials_command(self):
        self.assertEqual(parse_credentials_command('/login alice secret'),
                         ('/login', 'alice', 'secret'))
        self.assertEqual(parse_credentials_command('/register  bob   pw '),
                         ('/register', 'bob', 'pw'))

    def test_credentials_command_wrong_arity(self):
        self.assertIsNone(parse_credentials_command('/login'))
        self.assertIsNone(parse_credentials_command('/login alice'))
        self.assertIsNone(parse_credentials_command('/login alice my secret'))

    def test_direct_command_keeps_message_spaces(self):
        self.assertEqual(parse_direct_command('/dm bob hello there  friend'),
                         ('bob', 'hello there  friend'))

    def test_direct_command_missing_parts(self):
        self.assertIsNone(parse_direct_command('/dm'))
        self.assertIsNone(parse_direct_command('/dm bob'))

    def test_command_word(self):
        self.assertEqual(command_word('/dm bob hi'), '/dm')
        self.assertEqual(command_word('/dmx bob'), '/dmx')
        self.assertEqual(command_word('hello'), 'hello')


class TestMessageFormats(unittest.TestCase):

    def test_rendered_events(self):
        self.assertEqual(create_public_message('alice', 'hello room'), 'alice: hello room')
        self.assertEqual(create_direct_message('A', 'B', 'hello'), '[DM] A -> B: hello')
        self.assertEqual(create_user_not_found_message('B'), "User 'B' not found or not logged in.")
        self.assertEqual(create_login_success_message('alice'), 'Login successful. Welcome, alice!')

    def test_history_framing(self):
        self.assertEqual(create_history_lines([]), ['=== Chat History ===', '===================='])
        self.assertEqual(create_history_lines(['x']), [HISTORY_HEADER, 'x', HISTORY_FOOTER])


if __name__ == '__main__':
    unittest.main()
