"""
History log module.

Append-only record of every rendered chat event, one event per line.
"""

from pathlib import Path
from typing import List

from common.constants import HISTORY_FILE, ENCODING
from server.utils.logger import logger


class HistoryLog:
    """File-backed, append-only chat history."""

    def __init__(self, history_file: str = HISTORY_FILE):
        self.history_file = Path(history_file)

        if not self.history_file.exists():
            try:
                self.history_file.parent.mkdir(parents=True, exist_ok=True)
                self.history_file.touch()
            except OSError as e:
                logger.error(f"Could not create history file {self.history_file}: {e}")

    def append(self, entry: str):
        """Append one entry. Failures are logged, never raised."""
        try:
            with open(self.history_file, 'a', encoding=ENCODING) as f:
                f.write(entry + '\n')
        except OSError as e:
            logger.error(f"Error saving message to {self.history_file}: {e}")

    def read_all(self) -> List[str]:
        """Return every stored entry in order; empty on a missing or unreadable file."""
        if not self.history_file.exists():
            return []
        try:
            # A stray undecodable byte must not hide the rest of the history
            with open(self.history_file, 'r', encoding=ENCODING, errors='replace') as f:
                return [line.rstrip('\r\n') for line in f]
        except OSError as e:
            logger.error(f"Error reading chat history {self.history_file}: {e}")
            return []
