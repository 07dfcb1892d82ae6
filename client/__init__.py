"""
Client package for the line chat system.

This package contains a console client including:
- Line-based chat connection
- Interactive terminal loop
- Configuration and utilities
"""
