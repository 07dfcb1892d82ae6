"""
Credential store module.

Usernames and passwords live in a flat text file, one `username:password`
record per line. Passwords are stored as given.
"""

import threading
from pathlib import Path
from typing import Iterator, Optional, Tuple

from common.constants import USERS_FILE, CREDENTIAL_SEPARATOR, ENCODING
from server.utils.logger import logger


class CredentialStore:
    """File-backed username -> password mapping."""

    def __init__(self, users_file: str = USERS_FILE):
        self.users_file = Path(users_file)
        # Serializes the exists-then-append step of registration
        self.lock = threading.Lock()

        if not self.users_file.exists():
            try:
                self.users_file.parent.mkdir(parents=True, exist_ok=True)
                self.users_file.touch()
            except OSError as e:
                logger.error(f"Could not create user file {self.users_file}: {e}")

    def _records(self) -> Iterator[Tuple[str, str]]:
        """Yield (username, password) for every well-formed record."""
        # Undecodable bytes only spoil their own record
        with open(self.users_file, 'r', encoding=ENCODING, errors='replace') as f:
            for line in f:
                line = line.rstrip('\r\n')
                parts = line.split(CREDENTIAL_SEPARATOR, 1)
                if len(parts) == 2:
                    yield parts[0], parts[1]

    def _find(self, username: str) -> Optional[Tuple[str, str]]:
        """Return the first record whose name matches, ignoring case."""
        wanted = username.lower()
        try:
            for stored_name, stored_password in self._records():
                if stored_name.lower() == wanted:
                    return stored_name, stored_password
        except OSError as e:
            logger.error(f"Error reading user file {self.users_file}: {e}")
        return None

    def exists(self, username: str) -> bool:
        """Check whether a user is registered (case-insensitive)."""
        return self._find(username) is not None

    def stored_name(self, username: str) -> Optional[str]:
        """Return the username as it was registered, or None."""
        record = self._find(username)
        return record[0] if record else None

    def register(self, username: str, password: str) -> bool:
        """
        Register a new user.

        Returns False without touching the file if the username is taken or
        cannot be stored as a single record.
        """
        if (not username or CREDENTIAL_SEPARATOR in username
                or '\n' in username or '\r' in username
                or '\n' in password or '\r' in password):
            logger.warning(f"Rejected unstorable credentials for {username!r}")
            return False

        with self.lock:
            if self.exists(username):
                return False
            try:
                with open(self.users_file, 'a', encoding=ENCODING) as f:
                    f.write(f"{username}{CREDENTIAL_SEPARATOR}{password}\n")
                return True
            except OSError as e:
                logger.error(f"Error writing to user file {self.users_file}: {e}")
                return False

    def verify(self, username: str, password: str) -> bool:
        """Check a password (exact match) for a user (case-insensitive)."""
        record = self._find(username)
        return record is not None and record[1] == password
