from quizbot.keyboards.builders import (
    build_admin_menu,
    build_admins_keyboard,
    build_answers_keyboard,
    build_channels_keyboard,
    build_delete_confirm_keyboard,
    build_join_keyboard,
    build_main_menu,
    build_remove_channel_keyboard,
    build_status_keyboard,
    build_test_admin_keyboard,
    build_test_choice_keyboard,
)

__all__ = [
    "build_admin_menu",
    "build_admins_keyboard",
    "build_answers_keyboard",
    "build_channels_keyboard",
    "build_delete_confirm_keyboard",
    "build_join_keyboard",
    "build_main_menu",
    "build_remove_channel_keyboard",
    "build_status_keyboard",
    "build_test_admin_keyboard",
    "build_test_choice_keyboard",
]
