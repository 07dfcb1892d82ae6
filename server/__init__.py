"""
Server package for the line chat system.

This package contains all server-side functionality including:
- Client connection and session management
- Chat message routing
- Credential and history persistence
- Configuration and utilities
"""
