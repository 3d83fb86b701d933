from typing import Union

from aiogram.filters import Filter
from aiogram.types import CallbackQuery, Message

from quizbot.services.access import AdminRegistry
from quizbot.sessions import SessionStore


class IsAdmin(Filter):
    async def __call__(self, event: Union[Message, CallbackQuery], admins: AdminRegistry) -> bool:
        return event.from_user is not None and admins.is_admin(event.from_user.id)


class IsSuperAdmin(Filter):
    async def __call__(self, event: Union[Message, CallbackQuery], admins: AdminRegistry) -> bool:
        return event.from_user is not None and admins.is_super_admin(event.from_user.id)


class WizardActive(Filter):
    """Messages that belong to the sender's running wizard.

    Commands never match, so /cancel and friends work at any step.
    """

    async def __call__(self, message: Message, sessions: SessionStore) -> bool:
        if message.from_user is None:
            return False
        if message.text and message.text.strip().startswith("/"):
            return False
        return sessions.get(message.from_user.id).wizard is not None
