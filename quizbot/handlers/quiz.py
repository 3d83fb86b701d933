import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message, User as TelegramUser

from quizbot.db.repository import ChannelRepository, ResultRepository, TestRepository, UserRepository
from quizbot.errors import PersistenceFailure
from quizbot.keyboards import build_main_menu, build_test_choice_keyboard
from quizbot.keyboards.builders import BTN_ABOUT, BTN_BACK, BTN_MY_ATTEMPTS, BTN_TESTS
from quizbot.services.formatting import full_name
from quizbot.services.membership import ensure_joined
from quizbot.services.quiz_engine import Participant, QuizEngine
from quizbot.services.reports import format_my_attempts
from quizbot.services.wizards import FAILURE_TEXT
from quizbot.transport import Transport

router = Router()

ABOUT_TEXT = (
    "💡 This bot helps strengthen knowledge in STEAM subjects, builds friendly "
    "intellectual competition and keeps participants learning.\n\n"
    "🚀 Test yourself, climb the rating and become one of the prize winners!"
)


def participant(user: TelegramUser) -> Participant:
    return Participant(
        id=user.id,
        username=user.username or "",
        full_name=full_name(user.first_name, user.last_name or ""),
    )


@router.message(F.text == BTN_TESTS)
async def list_tests(
    msg: Message,
    users: UserRepository,
    tests: TestRepository,
    results: ResultRepository,
    channels: ChannelRepository,
    engine: QuizEngine,
    transport: Transport,
) -> None:
    """Start the only available test or offer a choice."""
    user = participant(msg.from_user)
    if not await ensure_joined(transport, channels, user.id):
        return
    await users.ensure(user.id, user.username, user.full_name)

    open_tests = await tests.open_tests()
    if not open_tests:
        await msg.answer("⏳ Tests are closed right now.")
        return
    attempted = await results.attempted_test_ids(user.id)
    available = [t for t in open_tests if t["id"] not in attempted]
    if not available:
        await msg.answer("✅ You have completed all open tests.")
        return
    if len(available) == 1:
        await engine.start(user, available[0])
        return
    await msg.answer(
        f"🧩 Choose a test\n\nAvailable tests: {len(available)}",
        reply_markup=build_test_choice_keyboard(available),
    )


@router.callback_query(F.data.startswith("start_test:"))
async def start_test(
    cb: CallbackQuery,
    tests: TestRepository,
    channels: ChannelRepository,
    engine: QuizEngine,
    transport: Transport,
) -> None:
    await cb.answer()
    user = participant(cb.from_user)
    if not await ensure_joined(transport, channels, user.id):
        return
    try:
        test_id = int(cb.data.split(":", 1)[1])
    except ValueError:
        return
    test = await tests.get(test_id)
    if not test or test["status"] != "open":
        await cb.message.answer("⏳ Tests are closed right now.")
        return
    await engine.start(user, test)


@router.callback_query(F.data.startswith("ans:"))
async def handle_answer(cb: CallbackQuery, engine: QuizEngine) -> None:
    """Handle user's answer."""
    await cb.answer()
    try:
        _, test_id, qidx, opt = cb.data.split(":")
        test_id, qidx, opt = int(test_id), int(qidx), int(opt)
    except ValueError as e:
        logging.error(f"Invalid callback format: {cb.data} - {e}")
        return
    try:
        await engine.answer(participant(cb.from_user), test_id, qidx, opt)
    except PersistenceFailure:
        await cb.message.answer(FAILURE_TEXT)


@router.message(F.text == BTN_MY_ATTEMPTS)
async def my_attempts(
    msg: Message,
    tests: TestRepository,
    results: ResultRepository,
    channels: ChannelRepository,
    transport: Transport,
) -> None:
    if not await ensure_joined(transport, channels, msg.from_user.id):
        return
    own = await results.for_user(msg.from_user.id)
    await msg.answer(format_my_attempts(own, await tests.all()))


@router.message(F.text == BTN_BACK)
async def back_to_main(msg: Message) -> None:
    await msg.answer("🏠 Main menu", reply_markup=build_main_menu())


@router.message(F.text == BTN_ABOUT)
async def about(msg: Message) -> None:
    await msg.answer(ABOUT_TEXT)


@router.callback_query()
async def unknown_callback(cb: CallbackQuery) -> None:
    """Handle unknown callbacks."""
    await cb.answer("⚠️ This action is outdated or the session has ended. Press /start", show_alert=True)
