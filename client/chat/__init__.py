"""
Chat module for client-side messaging functionality.

Handles:
- Sending command and chat lines
- Receiving server lines
"""
