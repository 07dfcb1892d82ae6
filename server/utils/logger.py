"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from common.constants import SERVER_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, log_level: int = logging.INFO):
        # Set up main logger
        self.logger = logging.getLogger('chat_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create formatter
        self.formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Create console handler
        self.console_handler = logging.StreamHandler()
        self.console_handler.setLevel(log_level)
        self.console_handler.setFormatter(self.formatter)
        self.logger.addHandler(self.console_handler)

        self.file_handler: Optional[logging.FileHandler] = None
        self.log_file_path: Optional[Path] = None

    def configure(self, log_level: Union[int, str] = logging.INFO, logs_dir: Optional[str] = None):
        """
        Apply runtime logging settings.

        When logs_dir is given, server events are also written to
        server.log inside it; the directory is created if needed.
        """
        if isinstance(log_level, str):
            log_level = logging.getLevelName(log_level.upper())
            if not isinstance(log_level, int):
                raise ValueError(f"Unknown log level: {log_level}")

        self.logger.setLevel(log_level)
        self.console_handler.setLevel(log_level)

        if self.file_handler is not None:
            self.logger.removeHandler(self.file_handler)
            self.file_handler.close()
            self.file_handler = None
            self.log_file_path = None

        if logs_dir:
            logs_path = Path(logs_dir)
            logs_path.mkdir(parents=True, exist_ok=True)
            self.log_file_path = logs_path / SERVER_LOG_FILE
            self.file_handler = logging.FileHandler(self.log_file_path, encoding='utf-8')
            self.file_handler.setLevel(log_level)
            self.file_handler.setFormatter(self.formatter)
            self.logger.addHandler(self.file_handler)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr: tuple, session_id: int):
        """Log client connection."""
        self.info(f"New connection from {addr}, session={session_id}")

    def log_login(self, username: str, session_id: int):
        """Log user login."""
        self.info(f"User '{username}' logged in (session={session_id})")

    def log_failed_login(self, username: str, session_id: int, reason: str):
        self.warning(f"Login failed for '{username}' (session={session_id}): {reason}")

    def log_register(self, username: str, session_id: int):
        """Log account registration."""
        self.info(f"User '{username}' registered (session={session_id})")

    def log_disconnect(self, username: Optional[str], session_id: int):
        """Log client disconnect."""
        self.info(f"User {username or '<anonymous>'} (session={session_id}) disconnected")

    def log_chat(self, username: str, message: str):
        self.debug(f"Chat from {username}: {message}")

    def log_direct(self, from_username: str, to_username: str, delivered: bool):
        """Log direct message routing."""
        status = "delivered" if delivered else "recipient not online"
        self.info(f"DM {from_username} -> {to_username}: {status}")

    def log_rename(self, old_name: str, new_name: str):
        self.info(f"User '{old_name}' renamed to '{new_name}'")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
