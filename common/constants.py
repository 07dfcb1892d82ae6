"""
Shared constants for the line chat system.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 9696

# Line protocol
ENCODING = 'utf-8'
MAX_LINE_LENGTH = 64 * 1024  # bytes per line before the session is dropped

# Persisted state
USERS_FILE = 'users.txt'
HISTORY_FILE = 'chat_history.txt'
CREDENTIAL_SEPARATOR = ':'

# Logging
LOG_DIR = 'logs'
SERVER_LOG_FILE = 'server.log'
DEFAULT_LOG_LEVEL = 'INFO'

# History replay framing
HISTORY_HEADER = '=== Chat History ==='
HISTORY_FOOTER = '===================='


# Client commands (case-sensitive prefixes)
class Commands:
    # Authenticating phase
    LOGIN = '/login'
    REGISTER = '/register'

    # Active phase
    QUIT = '/quit'
    DM = '/dm'
    NICK = '/nick'


# Client connection
CONNECT_ATTEMPTS = 3
CONNECT_DELAY_BASE = 1.0  # seconds, doubled after every failed attempt

# Outbound buffering per session
MAX_PENDING_BYTES = 1024 * 1024  # queued for one client before it is dropped
FLUSH_TIMEOUT = 5.0  # seconds to flush queued lines when a session closes
