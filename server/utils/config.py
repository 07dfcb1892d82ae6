"""
Server configuration module.

This module handles server-side configuration settings.
"""

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, USERS_FILE, HISTORY_FILE,
    DEFAULT_LOG_LEVEL, MAX_LINE_LENGTH, MAX_PENDING_BYTES
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 users_file: str = USERS_FILE, history_file: str = HISTORY_FILE,
                 logs_dir: str = None, log_level: str = DEFAULT_LOG_LEVEL):
        self.host = host
        self.port = port

        # Flat-file storage, relative to the working directory by default
        self.users_file = users_file
        self.history_file = history_file

        # Logging configuration; no log file unless a directory is given
        self.logs_dir = logs_dir
        self.log_level = log_level

        # Connection settings
        self.max_line_length = MAX_LINE_LENGTH
        self.max_pending_bytes = MAX_PENDING_BYTES  # per client, before it is dropped

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_limits(self):
        """Get per-connection limits."""
        return {
            'max_line_length': self.max_line_length,
            'max_pending_bytes': self.max_pending_bytes
        }

    def get_storage_settings(self):
        """Get persistence settings."""
        return {
            'users_file': self.users_file,
            'history_file': self.history_file
        }

    def get_log_settings(self):
        """Get logging settings."""
        return {
            'log_level': self.log_level,
            'logs_dir': self.logs_dir
        }
