"""
Authentication module for server-side account handling.

Handles:
- Account registration
- Password verification
- Flat-file credential persistence
"""
