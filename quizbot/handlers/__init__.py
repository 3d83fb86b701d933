from aiogram import Router

from quizbot.handlers.start import router as start_router
from quizbot.handlers.wizard import router as wizard_router
from quizbot.handlers.admin import router as admin_router
from quizbot.handlers.quiz import router as quiz_router


def setup_routers() -> Router:
    """Setup and return the main router with all sub-routers.

    Order matters: commands first, then the running wizard (which swallows
    every other message), then menus. The quiz router ends with the catch-all
    for stale callbacks.
    """
    router = Router()
    router.include_router(start_router)
    router.include_router(wizard_router)
    router.include_router(admin_router)
    router.include_router(quiz_router)
    return router


__all__ = ["setup_routers"]
