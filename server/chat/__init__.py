"""
Chat module for server-side messaging functionality.

Handles:
- Per-connection login/register handshake
- Public broadcasts and direct messages
- Live session and username registries
- Recording every chat event in the history log
"""
