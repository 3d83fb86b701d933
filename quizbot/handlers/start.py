from aiogram import F, Router
from aiogram.filters import Command, CommandStart, ExceptionTypeFilter
from aiogram.types import CallbackQuery, ErrorEvent, Message

from quizbot.db.repository import ChannelRepository, UserRepository
from quizbot.errors import PersistenceFailure
from quizbot.keyboards import build_admin_menu, build_join_keyboard, build_main_menu
from quizbot.services.access import AdminRegistry
from quizbot.services.formatting import full_name
from quizbot.services.membership import RESTRICTED_TEXT, check_all_channels, send_join_prompt
from quizbot.services.wizards import FAILURE_TEXT
from quizbot.sessions import SessionStore
from quizbot.transport import Transport

router = Router()


@router.message(CommandStart())
async def cmd_start(
    msg: Message,
    users: UserRepository,
    channels: ChannelRepository,
    admins: AdminRegistry,
    transport: Transport,
) -> None:
    """Handle /start: register the user, gate on channels, show a menu."""
    user = msg.from_user
    await users.ensure(user.id, user.username or "", full_name(user.first_name, user.last_name or ""))

    if await channels.active() and not await check_all_channels(transport, channels, user.id):
        await send_join_prompt(transport, channels, user.id)
        return

    if admins.is_admin(user.id):
        await msg.answer("🛠️ Admin panel", reply_markup=build_admin_menu(admins.is_super_admin(user.id)))
    else:
        await msg.answer("🏠 Main menu", reply_markup=build_main_menu())


@router.message(Command("admin"))
async def cmd_admin(msg: Message, admins: AdminRegistry) -> None:
    if not admins.is_admin(msg.from_user.id):
        await msg.answer("⛔ Access denied.")
        return
    await msg.answer("🛠️ Admin panel", reply_markup=build_admin_menu(admins.is_super_admin(msg.from_user.id)))


@router.message(Command("cancel"))
async def cmd_cancel(msg: Message, sessions: SessionStore) -> None:
    """Drop any running wizard or quiz."""
    sessions.clear(msg.from_user.id)
    await msg.answer("✅ Cancelled.")


@router.callback_query(F.data == "check_channels")
async def check_channels(
    cb: CallbackQuery, channels: ChannelRepository, transport: Transport
) -> None:
    await cb.answer()
    if await check_all_channels(transport, channels, cb.from_user.id):
        await cb.message.answer("🏠 Main menu", reply_markup=build_main_menu())
        return
    await cb.message.answer(RESTRICTED_TEXT, reply_markup=build_join_keyboard(await channels.active()))


@router.errors(ExceptionTypeFilter(PersistenceFailure))
async def persistence_failure(event: ErrorEvent) -> None:
    """A store read or write failed; the session is left as it was."""
    update = event.update
    if update.message:
        await update.message.answer(FAILURE_TEXT)
    elif update.callback_query and update.callback_query.message:
        await update.callback_query.message.answer(FAILURE_TEXT)
