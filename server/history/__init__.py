"""
History module for server-side chat persistence.

Handles:
- Appending chat events to the history file
- Reading the history back for replay on login
"""
