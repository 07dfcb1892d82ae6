#!/usr/bin/env python3
"""
Line Chat Server - Main Entry Point

This is the main entry point for the server application.
It wires the credential store, the history log and the chat hub together.
"""

import argparse
import asyncio
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from server.auth.credential_store import CredentialStore
from server.chat.chat_hub import ChatHub
from server.history.history_log import HistoryLog
from server.utils.config import ServerConfig
from server.utils.logger import logger
from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, USERS_FILE, HISTORY_FILE, DEFAULT_LOG_LEVEL
)


class ChatServer:
    """Main server class that integrates all functionality."""

    def __init__(self, config: ServerConfig = None):
        self.config = config or ServerConfig()

        # Initialize modules
        storage = self.config.get_storage_settings()
        self.credentials = CredentialStore(storage['users_file'])
        self.history = HistoryLog(storage['history_file'])
        self.hub = ChatHub(
            self.credentials,
            self.history,
            **self.config.get_connection_info(),
            **self.config.get_limits()
        )

    @property
    def port(self) -> int:
        return self.hub.port

    async def start(self):
        """Bind the listening socket."""
        await self.hub.start()

    async def serve_forever(self):
        """Start the server and accept clients until stopped."""
        await self.hub.serve_forever()

    async def stop(self):
        await self.hub.shutdown()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Line Chat Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'TCP port (default: {DEFAULT_PORT})')
    parser.add_argument('--users-file', type=str, default=USERS_FILE,
                        help=f'Credential file (default: {USERS_FILE})')
    parser.add_argument('--history-file', type=str, default=HISTORY_FILE,
                        help=f'Chat history file (default: {HISTORY_FILE})')
    parser.add_argument('--logs-dir', type=str, default=None,
                        help='Also write server.log into this directory')
    parser.add_argument('--log-level', type=str, default=DEFAULT_LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help=f'Logging level (default: {DEFAULT_LOG_LEVEL})')
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        users_file=args.users_file,
        history_file=args.history_file,
        logs_dir=args.logs_dir,
        log_level=args.log_level
    )


async def run_server(server: ChatServer):
    try:
        await server.serve_forever()
    finally:
        await server.stop()


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    config = config_from_args(args)
    logger.configure(**config.get_log_settings())

    server = ChatServer(config)
    try:
        asyncio.run(run_server(server))
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except OSError as e:
        logger.log_error("server startup", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
