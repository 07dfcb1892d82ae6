#!/usr/bin/env python3
"""
Line Chat Console Client

Reads lines from stdin and sends them to the server as-is, printing every
line the server sends back.
"""

import asyncio
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client.chat.chat_client import ChatClient
from client.utils.config import ClientConfig
from client.utils.logger import logger
from common.constants import Commands


class ConsoleClient:
    """Interactive terminal front end for ChatClient."""

    def __init__(self, host: str = None, port: int = None):
        self.config = ClientConfig()
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.chat_client: ChatClient = None
        self.running = False

    async def connect(self) -> bool:
        """Establish connection to the server with retry logic and exponential backoff."""
        attempt = 0
        retry_count = self.config.connect_attempts

        while attempt < retry_count:
            try:
                self.chat_client = await ChatClient.connect(**self.config.get_connection_info())
                logger.log_connection(self.config.host, self.config.port, True)
                self.running = True
                return True
            except OSError as e:
                attempt += 1
                logger.log_connection(self.config.host, self.config.port, False)
                logger.log_error("connection", e)

                if attempt < retry_count:
                    delay = self.config.connect_delay_base * (2 ** (attempt - 1))
                    logger.info(f"Retrying connection in {delay}s (attempt {attempt}/{retry_count})...")
                    await asyncio.sleep(delay)
        logger.error(f"Failed to connect after {retry_count} attempts")
        return False

    async def print_line(self, line: str):
        print(line, flush=True)

    async def listen_for_messages(self):
        self.chat_client.set_message_handler(self.print_line)
        try:
            await self.chat_client.listen()
        except (ConnectionError, OSError) as e:
            logger.error(f"Connection lost: {e}")
        logger.info("Server closed connection")
        self.running = False

    async def interactive_mode(self):
        """Run client with interactive chat input."""
        if not await self.connect():
            return

        listener_task = asyncio.create_task(self.listen_for_messages())
        logger.show_interactive_mode_info()

        loop = asyncio.get_running_loop()
        try:
            while self.running:
                user_input = await loop.run_in_executor(None, sys.stdin.readline)
                if not user_input:
                    # stdin closed
                    await self.chat_client.quit()
                    break
                line = user_input.rstrip('\r\n')
                if not line:
                    continue
                await self.chat_client.send_line(line)
                if line.startswith(Commands.QUIT):
                    break
        finally:
            # Let the server's goodbye arrive before tearing down
            try:
                await asyncio.wait_for(listener_task, timeout=1.0)
            except asyncio.TimeoutError:
                pass
            await self.chat_client.close()
            logger.info("Disconnected from server")


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Line Chat Client')
    parser.add_argument('--host', type=str, default=None,
                        help='Server address (default: localhost)')
    parser.add_argument('--port', type=int, default=None,
                        help='Server port (default: 9696)')
    args = parser.parse_args(argv)

    client = ConsoleClient(args.host, args.port)
    try:
        asyncio.run(client.interactive_mode())
    except KeyboardInterrupt:
        print("\n[INFO] Client terminated")


if __name__ == "__main__":
    main()
