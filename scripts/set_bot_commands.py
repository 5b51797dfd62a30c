#!/usr/bin/env python3
"""
Script to register the chat request commands with Telegram.
Run this script after deploying a bot with new commands.
"""

import asyncio

from aiogram import Bot
from aiogram.types import BotCommand

COMMANDS = [
    BotCommand(command="filter", description="who can send you chat requests"),
    BotCommand(command="filter_reset", description="accept chat requests from everyone"),
    BotCommand(command="request", description="send a chat request: /request <user_id>"),
    BotCommand(command="requests", description="chat requests waiting for you"),
    BotCommand(command="end", description="end the current chat"),
]


async def set_bot_commands() -> None:
    """Set bot commands via Telegram Bot API."""
    from core.config import settings

    bot = Bot(token=settings.telegram_bot_token)

    try:
        if await bot.set_my_commands(COMMANDS):
            print("✅ Bot commands successfully registered!")
            for cmd in COMMANDS:
                print(f"  /{cmd.command} - {cmd.description}")
        else:
            print("❌ Failed to register bot commands")
    except Exception as e:
        print(f"❌ Error registering commands: {e}")
    finally:
        await bot.session.close()


if __name__ == "__main__":
    # Load environment variables from .env file
    from dotenv import load_dotenv

    load_dotenv()

    asyncio.run(set_bot_commands())
