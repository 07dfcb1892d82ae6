#!/usr/bin/env python3
"""
Line Chat Client - Main Entry Point

Usage:
    python main_client.py [--host HOST] [--port PORT]
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


if __name__ == "__main__":
    from client.main_client import main

    main()
