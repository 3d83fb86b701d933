import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.types import BotCommand, BotCommandScopeDefault
from aiohttp import web

from quizbot.config import Settings, load_settings
from quizbot.db import (
    AdminRepository,
    ChannelRepository,
    DocumentStore,
    ResultRepository,
    TestRepository,
    UserRepository,
)
from quizbot.handlers import setup_routers
from quizbot.services.access import AdminRegistry
from quizbot.services.quiz_engine import QuizEngine
from quizbot.services.wizards import ConversationFSM
from quizbot.sessions import SessionStore
from quizbot.transport import AiogramTransport


async def on_startup(bot: Bot) -> None:
    await bot.set_my_commands(
        [
            BotCommand(command="start", description="Start"),
            BotCommand(command="admin", description="Admin panel"),
            BotCommand(command="cancel", description="Cancel the current action"),
        ],
        scope=BotCommandScopeDefault(),
    )
    logging.info("Bot commands menu updated")


async def start_health_server(port: int) -> web.AppRunner:
    """Plain-text liveness endpoint for the hosting platform."""

    async def health(request: web.Request) -> web.Response:
        return web.Response(text="Bot is running")

    app = web.Application()
    app.router.add_get("/", health)
    runner = web.AppRunner(app)
    await runner.setup()
    await web.TCPSite(runner, port=port).start()
    logging.info(f"HTTP server running on port {port}")
    return runner


def build_dispatcher(settings: Settings, bot: Bot, store: DocumentStore, admins: AdminRegistry) -> Dispatcher:
    sessions = SessionStore()
    transport = AiogramTransport(bot)
    users = UserRepository(store)
    tests = TestRepository(store)
    results = ResultRepository(store)
    channels = ChannelRepository(store)

    dp = Dispatcher(
        settings=settings,
        sessions=sessions,
        admins=admins,
        transport=transport,
        users=users,
        tests=tests,
        results=results,
        channels=channels,
        engine=QuizEngine(sessions, tests, results, users, transport),
        wizards=ConversationFSM(
            sessions,
            admins,
            tests,
            channels,
            users,
            transport,
            broadcast_delay=settings.broadcast_delay,
        ),
    )
    dp.include_router(setup_routers())
    dp.startup.register(on_startup)
    return dp


async def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    store = DocumentStore.from_settings(settings.data_dir, settings.storage_url)
    await store.ensure_collections()
    logging.info("Data collections ready")

    admins = AdminRegistry(
        settings.effective_super_admin_ids, settings.admin_ids, AdminRepository(store)
    )
    await admins.load()

    bot = Bot(token=settings.bot_token)
    dp = build_dispatcher(settings, bot, store, admins)
    runner = await start_health_server(settings.port)
    try:
        logging.info("Quiz bot started")
        await dp.start_polling(bot)
    finally:
        await runner.cleanup()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
