#!/usr/bin/env python3
"""
Line Chat Server - Main Entry Point

Usage:
    python main_server.py

Optional arguments:
    --host HOST           Bind address (default: 0.0.0.0)
    --port PORT           TCP port (default: 9696)
    --users-file PATH     Credential file (default: users.txt)
    --history-file PATH   Chat history file (default: chat_history.txt)
    --logs-dir DIR        Also write server.log into DIR
    --log-level LEVEL     DEBUG, INFO, WARNING or ERROR (default: INFO)
"""

if __name__ == "__main__":
    import sys

    from server.main_server import main

    sys.exit(main())
