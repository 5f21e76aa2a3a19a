#!/usr/bin/env python3
"""HubsBot Entry Point

Enters a room, greets it, and keeps the avatar there until interrupted.

Usage:
    python main.py https://hubs.mozilla.com/abc123/room
    python main.py https://hubs.mozilla.com/abc123/room --name Greeter --spawn-point stage
    python main.py https://hubs.mozilla.com/abc123/room --visible

Exit code is non-zero on any unhandled error or a detected dog-pile, so a
process supervisor can restart the bot.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a bot in a Hubs room")
    parser.add_argument("room_url", help="Absolute URL of the room")
    parser.add_argument("--name", default=None, help="Display name (prefixed with 'bot - ')")
    parser.add_argument("--spawn-point", default=None, help="Waypoint to spawn at")
    parser.add_argument("--message", default="Hello!", help="Chat message to post on arrival")
    parser.add_argument("--visible", action="store_true", help="Show the browser window")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    from bot.hubs_bot import HubsBot

    bot = HubsBot(headless=False if args.visible else None)

    async def run(bot):
        await bot.enter_room(args.room_url, name=args.name, spawn_point=args.spawn_point)
        if args.message:
            await bot.say(args.message)
        # Stay in the room; the sanity monitor ends the run on a dog-pile.
        while True:
            await asyncio.sleep(3600)

    try:
        bot.exec(run)
    except KeyboardInterrupt:
        print("\nBot stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
