"""
Protocol definitions for the line chat system.

Every line the server writes to a client is built here, so the wording of the
protocol lives in one place. Lines are returned without the trailing newline;
the transport adds it.
"""

from typing import List, Optional, Tuple

from common.constants import Commands, HISTORY_HEADER, HISTORY_FOOTER


def create_welcome_lines() -> List[str]:
    """Create the banner sent when a client connects."""
    return [
        "Welcome to the chat server!",
        create_auth_usage_message(),
    ]


def create_auth_usage_message() -> str:
    """Create the usage hint for the authentication phase."""
    return (f"Please {Commands.LOGIN} <username> <password> "
            f"or {Commands.REGISTER} <username> <password>")


def create_login_required_message() -> str:
    """Create the notice for commands sent before logging in."""
    return f"Please {Commands.LOGIN} or {Commands.REGISTER} first."


def create_user_not_exist_message() -> str:
    return f"User does not exist. Try {Commands.REGISTER} <username> <password>."


def create_wrong_password_message() -> str:
    return "Wrong password, try again."


def create_login_success_message(username: str) -> str:
    """Create a login success message."""
    return f"Login successful. Welcome, {username}!"


def create_user_exists_message() -> str:
    return f"User already exists. Try {Commands.LOGIN} <username> <password>."


def create_register_success_message() -> str:
    """Create a registration success message."""
    return f"Registration successful. You can now {Commands.LOGIN} <username> <password>."


def create_register_failed_message() -> str:
    return "Registration failed. Please try again."


def create_goodbye_message() -> str:
    return "Goodbye!"


def create_dm_usage_message() -> str:
    return f"Usage: {Commands.DM} <username> <message>"


def create_nick_usage_message() -> str:
    return f"Usage: {Commands.NICK} <newname>"


def create_nick_taken_message(nickname: str) -> str:
    return f"Nickname '{nickname}' is already taken."


def create_nick_success_message(nickname: str) -> str:
    return f"Successfully changed nickname to {nickname}"


def create_user_not_found_message(username: str) -> str:
    """Create the notice for a direct message to an absent user."""
    return f"User '{username}' not found or not logged in."


def create_history_lines(entries: List[str]) -> List[str]:
    """Frame the stored history between the two marker lines."""
    return [HISTORY_HEADER, *entries, HISTORY_FOOTER]


# Rendered chat events; these are what ends up in the history file.

def create_public_message(username: str, text: str) -> str:
    return f"{username}: {text}"


def create_direct_message(from_user: str, to_user: str, text: str) -> str:
    """Create the canonical direct message line."""
    return f"[DM] {from_user} -> {to_user}: {text}"


def create_user_joined_message(username: str) -> str:
    return f"{username} joined the chat!"


def create_user_left_message(username: str) -> str:
    return f"{username} left the chat!"


def create_user_renamed_message(old_name: str, new_name: str) -> str:
    return f"{old_name} renamed themselves to {new_name}"


def parse_credentials_command(line: str) -> Optional[Tuple[str, str, str]]:
    """
    Parse a `/login` or `/register` line.

    Returns (command, username, password), or None when the line does not
    have exactly three whitespace-separated parts.
    """
    parts = line.split()
    if len(parts) != 3:
        return None
    return parts[0], parts[1], parts[2]


def parse_direct_command(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse a `/dm <user> <message...>` line into (target, message).

    The message keeps its inner spaces. Returns None when the target or the
    message is missing.
    """
    parts = line.split(' ', 2)
    if len(parts) < 3:
        return None
    return parts[1], parts[2]


def command_word(line: str) -> str:
    """Return the first space-separated word of a line."""
    return line.split(' ', 1)[0]
