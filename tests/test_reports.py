import pytest

from quizbot.services.access import AdminTiers
from quizbot.services.formatting import option_label, percentage, split_long_text
from quizbot.services.reports import (
    format_admin_list,
    format_channels_list,
    format_my_attempts,
    format_results_summary,
    format_test_answers,
    format_users_list,
)

from conftest import question


def result(user_id, test_id, pct, day, username="", full_name=""):
    return {
        "user_id": user_id,
        "username": username,
        "full_name": full_name,
        "test_id": test_id,
        "correct": 0,
        "wrong": 0,
        "percentage": pct,
        "date": day,
    }


class TestFormatting:
    @pytest.mark.parametrize(
        "index, label", [(0, "A"), (1, "B"), (25, "Z"), (26, "27"), (30, "31")]
    )
    def test_option_label(self, index, label):
        assert option_label(index) == label

    @pytest.mark.parametrize(
        "correct, total, expected",
        [(1, 1, 100), (0, 1, 0), (2, 3, 67), (1, 3, 33), (1, 8, 13), (0, 0, 0)],
    )
    def test_percentage(self, correct, total, expected):
        assert percentage(correct, total) == expected

    def test_short_text_untouched(self):
        assert split_long_text("hello") == ["hello"]

    def test_long_text_split_on_lines(self):
        lines = [f"line {i:03d} " + "x" * 40 for i in range(200)]

        parts = split_long_text("\n".join(lines), limit=500)

        assert all(len(part) <= 500 for part in parts)
        assert "\n".join(parts) == "\n".join(lines)


class TestResultsSummary:
    def test_empty(self):
        assert format_results_summary([], [], []) == ["ℹ️ No results yet."]

    def test_groups_by_test_newest_first_with_fallback_title(self):
        results = [
            result(1, 1, 50, "2024-01-01", username="a"),
            result(2, 1, 90, "2024-01-02", full_name="Bob"),
            result(1, 7, 10, "2024-03-01"),
        ]
        tests = [{"id": 1, "title": "Math", "status": "open", "questions": []}]

        messages = format_results_summary(results, [], tests)

        assert messages[0].endswith("Tests: 2")
        assert messages[1].startswith("📝 Test: Test #7 #7")
        assert messages[2].startswith("📝 Test: Math #1")
        # higher percentage first
        assert messages[2].index("Bob") < messages[2].index("@a")

    def test_name_falls_back_to_user_record(self):
        users = [{"id": 1, "username": "", "full_name": "Alice", "joined_date": "", "tests_worked": 1}]

        messages = format_results_summary([result(1, 1, 50, "2024-01-01")], users, [])

        assert "Alice" in messages[1]


class TestMyAttempts:
    def test_no_attempts(self):
        assert format_my_attempts([], []) == "ℹ️ No attempts yet."

    def test_last_five_newest_first(self):
        results = [result(1, i, i * 10, f"2024-01-0{i}") for i in range(1, 8)]

        text = format_my_attempts(results, [])

        assert "Total: 7" in text
        assert "1. Test #7 - 70%" in text
        assert "5. Test #3 - 30%" in text
        assert "Test #2 -" not in text


class TestLists:
    def test_users_chunked(self):
        users = [
            {"id": i, "username": "", "full_name": f"U{i}", "joined_date": "2024-01-01", "tests_worked": 0}
            for i in range(16)
        ]

        messages = format_users_list(users)

        assert messages[0].endswith("Total: 16")
        assert len(messages) == 3

    def test_channels_counts(self):
        channels = [
            {"id": 1, "name": "A", "username": "@a", "status": "active"},
            {"id": 2, "name": "B", "username": "", "status": "inactive"},
        ]

        text = format_channels_list(channels)

        assert "Active: 1" in text
        assert "Disabled: 1" in text

    def test_admin_list_sections(self):
        text = format_admin_list(AdminTiers([1], [], [3]), [])

        assert "Total: 2" in text
        assert "👑 Super admins:" in text
        assert "🛡️ Admins (added in the bot):" in text
        assert "configuration" not in text

    def test_answers_show_correct_option(self):
        test = {
            "id": 4,
            "title": "Math",
            "status": "open",
            "questions": [question("2+2?", ["3", "4"], 1)],
        }

        assert "✅ B. 4" in format_test_answers(test)
