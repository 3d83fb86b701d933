from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from quizbot.db.models import Channel, Test
from quizbot.services.formatting import option_label

# Reply keyboard captions
BTN_TESTS = "📝 Tests"
BTN_MY_ATTEMPTS = "📊 My attempts"
BTN_ABOUT = "ℹ️ About"
BTN_BROADCAST = "📣 Broadcast"
BTN_CREATE_TEST = "🧩 Create test"
BTN_TEST_LIST = "📚 Test list"
BTN_RESULTS = "📊 Results"
BTN_CHANNELS = "📡 Channels"
BTN_USERS = "👥 Users"
BTN_ADMINS = "👑 Admins"
BTN_BACK = "⬅️ Back"


def _reply_keyboard(rows: list[list[str]]) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=text) for text in row] for row in rows],
        resize_keyboard=True,
    )


def _chunk(buttons: list, size: int) -> list[list]:
    return [buttons[i : i + size] for i in range(0, len(buttons), size)]


def build_main_menu() -> ReplyKeyboardMarkup:
    return _reply_keyboard([[BTN_TESTS], [BTN_MY_ATTEMPTS, BTN_ABOUT]])


def build_admin_menu(is_super_admin: bool) -> ReplyKeyboardMarkup:
    """Admin panel; super-admins also get the admin management entry."""
    rows = [
        [BTN_BROADCAST],
        [BTN_CREATE_TEST, BTN_TEST_LIST],
        [BTN_RESULTS, BTN_CHANNELS],
        [BTN_USERS],
    ]
    if is_super_admin:
        rows.append([BTN_ADMINS])
    rows.append([BTN_BACK])
    return _reply_keyboard(rows)


def build_answers_keyboard(test_id: int, question_idx: int, option_count: int) -> InlineKeyboardMarkup:
    """Lettered answer buttons, three per row."""
    buttons = [
        InlineKeyboardButton(
            text=option_label(i), callback_data=f"ans:{test_id}:{question_idx}:{i}"
        )
        for i in range(option_count)
    ]
    return InlineKeyboardMarkup(inline_keyboard=_chunk(buttons, 3))


def build_test_choice_keyboard(tests: list[Test]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=t["title"], callback_data=f"start_test:{t['id']}")]
            for t in tests
        ]
    )


def build_join_keyboard(channels: list[Channel]) -> InlineKeyboardMarkup:
    """URL buttons for public channels plus a re-check button."""
    rows = []
    for channel in channels:
        username = channel.get("username", "").lstrip("@")
        if username:
            rows.append(
                [InlineKeyboardButton(text=channel["name"], url=f"https://t.me/{username}")]
            )
    rows.append([InlineKeyboardButton(text="✅ Check", callback_data="check_channels")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def build_test_admin_keyboard(test: Test, is_super_admin: bool) -> InlineKeyboardMarkup:
    toggle = "🔒 Close" if test["status"] == "open" else "🔓 Open"
    rows = [
        [InlineKeyboardButton(text=toggle, callback_data=f"test_toggle:{test['id']}")],
        [
            InlineKeyboardButton(text="✏️ Edit", callback_data=f"test_edit:{test['id']}"),
            InlineKeyboardButton(text="🗑️ Delete", callback_data=f"test_delete:{test['id']}"),
        ],
    ]
    if is_super_admin:
        rows.append(
            [InlineKeyboardButton(text="✅ Answers", callback_data=f"test_answers:{test['id']}")]
        )
    return InlineKeyboardMarkup(inline_keyboard=rows)


def build_delete_confirm_keyboard(test_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✅ Yes, delete", callback_data=f"test_delete_confirm:{test_id}")],
            [InlineKeyboardButton(text="❌ Cancel", callback_data="test_delete_cancel")],
        ]
    )


def build_status_keyboard() -> InlineKeyboardMarkup:
    """Final step of test creation."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="Open ✅", callback_data="test_status:open")],
            [InlineKeyboardButton(text="Closed ❌", callback_data="test_status:closed")],
        ]
    )


def build_admins_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="➕ Add admin", callback_data="admins_add")],
            [InlineKeyboardButton(text="➖ Remove admin", callback_data="admins_remove")],
            [InlineKeyboardButton(text="📋 Admin list", callback_data="admins_list")],
        ]
    )


def build_channels_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="➕ Add channel", callback_data="channels_add")],
            [InlineKeyboardButton(text="➖ Remove channel", callback_data="channels_remove")],
        ]
    )


def build_remove_channel_keyboard(channels: list[Channel]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=c["name"], callback_data=f"remove_channel:{c['id']}")]
            for c in channels
        ]
    )
