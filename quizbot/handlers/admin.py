import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from quizbot.db.repository import ChannelRepository, ResultRepository, TestRepository, UserRepository
from quizbot.errors import NotFoundError, PersistenceFailure
from quizbot.filters import IsAdmin, IsSuperAdmin
from quizbot.keyboards import (
    build_admins_keyboard,
    build_channels_keyboard,
    build_delete_confirm_keyboard,
    build_remove_channel_keyboard,
    build_test_admin_keyboard,
)
from quizbot.keyboards.builders import (
    BTN_ADMINS,
    BTN_BROADCAST,
    BTN_CHANNELS,
    BTN_CREATE_TEST,
    BTN_RESULTS,
    BTN_TEST_LIST,
    BTN_USERS,
)
from quizbot.services.access import AdminRegistry
from quizbot.services.formatting import format_test_status
from quizbot.services.reports import (
    format_admin_list,
    format_channels_list,
    format_results_summary,
    format_test_answers,
    format_test_card,
    format_users_list,
)
from quizbot.services.wizards import FAILURE_TEXT, ConversationFSM
from quizbot.states import (
    AddAdminWizard,
    AddChannelWizard,
    BroadcastWizard,
    CreateTestWizard,
    EditTitleWizard,
    RemoveAdminWizard,
)
from quizbot.transport import Transport

router = Router()
router.message.filter(IsAdmin())
router.callback_query.filter(IsAdmin())

NOT_FOUND_TEXT = "⚠️ Test not found."


def callback_id(cb: CallbackQuery) -> int:
    return int(cb.data.split(":", 1)[1])


@router.message(F.text == BTN_BROADCAST)
async def start_broadcast(msg: Message, wizards: ConversationFSM) -> None:
    await wizards.begin(msg.from_user.id, BroadcastWizard())


@router.message(F.text == BTN_CREATE_TEST)
async def start_test_creation(msg: Message, wizards: ConversationFSM) -> None:
    await wizards.begin(msg.from_user.id, CreateTestWizard())


@router.message(F.text == BTN_TEST_LIST)
async def list_tests(msg: Message, tests: TestRepository, admins: AdminRegistry) -> None:
    """One card per test with its management buttons."""
    all_tests = await tests.all()
    if not all_tests:
        await msg.answer("ℹ️ No tests yet.")
        return
    await msg.answer(f"📚 Tests\n\nTotal: {len(all_tests)}")
    is_super = admins.is_super_admin(msg.from_user.id)
    for test in all_tests:
        await msg.answer(format_test_card(test), reply_markup=build_test_admin_keyboard(test, is_super))


@router.message(F.text == BTN_RESULTS)
async def show_results(
    msg: Message,
    results: ResultRepository,
    users: UserRepository,
    tests: TestRepository,
    transport: Transport,
) -> None:
    summary = format_results_summary(await results.all(), await users.all(), await tests.all())
    for text in summary:
        await transport.send_long_text(msg.from_user.id, text)


@router.message(F.text == BTN_USERS)
async def show_users(msg: Message, users: UserRepository) -> None:
    for text in format_users_list(await users.all()):
        await msg.answer(text)


@router.message(F.text == BTN_CHANNELS)
async def show_channels(msg: Message, channels: ChannelRepository, transport: Transport) -> None:
    await transport.send_long_text(msg.from_user.id, format_channels_list(await channels.all()))
    await msg.answer("📡 Channels\n\nChoose an action:", reply_markup=build_channels_keyboard())


@router.message(F.text == BTN_ADMINS, IsSuperAdmin())
async def show_admin_actions(msg: Message) -> None:
    await msg.answer("👑 Admins\n\nChoose an action:", reply_markup=build_admins_keyboard())


@router.callback_query(F.data == "admins_add", IsSuperAdmin())
async def admins_add(cb: CallbackQuery, wizards: ConversationFSM) -> None:
    await cb.answer()
    await wizards.begin(cb.from_user.id, AddAdminWizard())


@router.callback_query(F.data == "admins_remove", IsSuperAdmin())
async def admins_remove(cb: CallbackQuery, wizards: ConversationFSM) -> None:
    await cb.answer()
    await wizards.begin(cb.from_user.id, RemoveAdminWizard())


@router.callback_query(F.data == "admins_list", IsSuperAdmin())
async def admins_list(
    cb: CallbackQuery, admins: AdminRegistry, users: UserRepository, transport: Transport
) -> None:
    await cb.answer()
    text = format_admin_list(admins.tiers(), await users.all())
    await transport.send_long_text(cb.from_user.id, text)


@router.callback_query(F.data == "channels_add")
async def channels_add(cb: CallbackQuery, wizards: ConversationFSM) -> None:
    await cb.answer()
    await wizards.begin(cb.from_user.id, AddChannelWizard())


@router.callback_query(F.data == "channels_remove")
async def channels_remove(cb: CallbackQuery, channels: ChannelRepository) -> None:
    await cb.answer()
    active = await channels.active()
    if not active:
        await cb.message.answer("ℹ️ No active channels.")
        return
    await cb.message.answer(
        "📡 Remove channel\n\nChoose the channel to remove:",
        reply_markup=build_remove_channel_keyboard(active),
    )


@router.callback_query(F.data.startswith("remove_channel:"))
async def remove_channel(cb: CallbackQuery, channels: ChannelRepository) -> None:
    """Deactivate a channel; the record itself stays."""
    await cb.answer()
    try:
        channel = await channels.deactivate(callback_id(cb))
    except NotFoundError:
        await cb.message.answer("⚠️ Channel not found.")
        return
    except PersistenceFailure:
        await cb.message.answer(FAILURE_TEXT)
        return
    logging.info(f"Channel {channel['id']} deactivated by {cb.from_user.id}")
    await cb.message.answer(f"✅ Channel removed: {channel['name']}")


@router.callback_query(F.data.startswith("test_toggle:"))
async def toggle_test(cb: CallbackQuery, tests: TestRepository) -> None:
    await cb.answer()
    try:
        test = await tests.toggle_status(callback_id(cb))
    except NotFoundError:
        await cb.message.answer(NOT_FOUND_TEXT)
        return
    except PersistenceFailure:
        await cb.message.answer(FAILURE_TEXT)
        return
    await cb.message.answer(f"✅ Test status updated: {format_test_status(test['status'])}")


@router.callback_query(F.data.startswith("test_edit:"))
async def edit_test(cb: CallbackQuery, wizards: ConversationFSM) -> None:
    await cb.answer()
    await wizards.begin(cb.from_user.id, EditTitleWizard(test_id=callback_id(cb)))


@router.callback_query(F.data.startswith("test_answers:"), IsSuperAdmin())
async def show_answers(cb: CallbackQuery, tests: TestRepository, transport: Transport) -> None:
    await cb.answer()
    test = await tests.get(callback_id(cb))
    if not test:
        await cb.message.answer(NOT_FOUND_TEXT)
        return
    await transport.send_long_text(cb.from_user.id, format_test_answers(test))


@router.callback_query(F.data.startswith("test_delete:"))
async def ask_delete_test(cb: CallbackQuery) -> None:
    await cb.answer()
    test_id = callback_id(cb)
    await cb.message.answer(
        f"⚠️ Delete test #{test_id}?", reply_markup=build_delete_confirm_keyboard(test_id)
    )


@router.callback_query(F.data.startswith("test_delete_confirm:"))
async def delete_test(cb: CallbackQuery, tests: TestRepository) -> None:
    await cb.answer()
    try:
        await tests.delete(callback_id(cb))
    except NotFoundError:
        await cb.message.answer(NOT_FOUND_TEXT)
        return
    except PersistenceFailure:
        await cb.message.answer(FAILURE_TEXT)
        return
    await cb.message.answer("✅ Test deleted.")


@router.callback_query(F.data == "test_delete_cancel")
async def cancel_delete_test(cb: CallbackQuery) -> None:
    await cb.answer()
    await cb.message.answer("✅ Cancelled.")
