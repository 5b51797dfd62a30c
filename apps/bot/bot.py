"""Main bot module with webhook setup."""

import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from apps.bot.api_client import api_client
from apps.bot.handlers import chat_filter, chat_request, end
from apps.bot.middlewares.database import DatabaseMiddleware
from core.config import settings

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/telegram/webhook"

# Initialize bot and dispatcher
bot = Bot(token=settings.telegram_bot_token)
# Filter wizard drafts survive bot restarts
storage = RedisStorage.from_url(settings.redis_url)
dp = Dispatcher(storage=storage)

# Register middlewares
dp.message.middleware(DatabaseMiddleware())
dp.callback_query.middleware(DatabaseMiddleware())

# Register handlers
dp.include_router(chat_filter.router)
dp.include_router(chat_request.router)
dp.include_router(end.router)


async def on_startup(app: web.Application) -> None:
    """Set webhook on startup."""
    webhook_url = f"{settings.public_base_url}{WEBHOOK_PATH}"
    await bot.set_webhook(webhook_url)
    logger.info(f"Webhook set to: {webhook_url}")


async def on_shutdown(app: web.Application) -> None:
    """Clean up on shutdown."""
    await bot.delete_webhook()
    await bot.session.close()
    await storage.close()
    await api_client.close()


def create_app() -> web.Application:
    """Create aiohttp application with bot."""
    app = web.Application()

    SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path=WEBHOOK_PATH)
    setup_application(app, dp, bot=bot)

    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    web.run_app(app, host="0.0.0.0", port=settings.bot_port)
