import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from aiogram import Bot
from aiogram.enums import ChatMemberStatus, ChatType
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup

from quizbot.errors import ExternalCallFailure
from quizbot.services.formatting import split_long_text

Markup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup]

JOINED_STATUSES = {
    ChatMemberStatus.CREATOR,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.MEMBER,
}


@dataclass(frozen=True)
class ChannelInfo:
    id: int
    title: str
    username: str  # without "@", may be empty
    type: str

    @property
    def is_channel(self) -> bool:
        return self.type == ChatType.CHANNEL


class Transport(Protocol):
    """What the quiz engine and the wizards need from Telegram."""

    async def send_message(
        self, chat_id: int, text: str, reply_markup: Optional[Markup] = None
    ) -> bool: ...

    async def send_long_text(self, chat_id: int, text: str) -> None: ...

    async def copy_message(self, chat_id: int, from_chat_id: int, message_id: int) -> bool: ...

    async def check_membership(self, channel_id: int, user_id: int) -> bool: ...

    async def resolve_channel(self, handle: str) -> ChannelInfo: ...


class AiogramTransport:
    """Transport over a live aiogram Bot."""

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def send_message(
        self, chat_id: int, text: str, reply_markup: Optional[Markup] = None
    ) -> bool:
        try:
            await self.bot.send_message(chat_id, text, reply_markup=reply_markup)
            return True
        except TelegramAPIError as e:
            logging.warning(f"Failed to send message to {chat_id}: {e}")
            return False

    async def send_long_text(self, chat_id: int, text: str) -> None:
        for part in split_long_text(text):
            await self.send_message(chat_id, part)

    async def copy_message(self, chat_id: int, from_chat_id: int, message_id: int) -> bool:
        try:
            await self.bot.copy_message(chat_id, from_chat_id, message_id)
            return True
        except TelegramAPIError as e:
            logging.warning(f"Failed to copy message to {chat_id}: {e}")
            return False

    async def check_membership(self, channel_id: int, user_id: int) -> bool:
        try:
            member = await self.bot.get_chat_member(channel_id, user_id)
        except TelegramAPIError as e:
            logging.error(f"Channel check failed for {channel_id}: {e}")
            return False
        return member.status in JOINED_STATUSES

    async def resolve_channel(self, handle: str) -> ChannelInfo:
        chat_id: Union[int, str] = int(handle) if handle.lstrip("-").isdigit() else handle
        try:
            chat = await self.bot.get_chat(chat_id)
        except TelegramAPIError as e:
            logging.warning(f"Channel lookup failed for {handle}: {e}")
            raise ExternalCallFailure(handle) from e
        return ChannelInfo(
            id=chat.id,
            title=chat.title or "",
            username=chat.username or "",
            type=chat.type,
        )
