from quizbot.db.models import Channel, Result, Test, User
from quizbot.services.access import AdminTiers
from quizbot.services.formatting import format_channel_status, format_test_status, option_label

USERS_PER_MESSAGE = 15
RECENT_ATTEMPTS = 5


def test_title(tests_by_id: dict[int, Test], test_id: int) -> str:
    """Title of a test, or a placeholder once the test is deleted."""
    test = tests_by_id.get(test_id)
    return test["title"] if test else f"Test #{test_id}"


def format_my_attempts(results: list[Result], tests: list[Test]) -> str:
    if not results:
        return "ℹ️ No attempts yet."
    tests_by_id = {t["id"]: t for t in tests}
    recent = list(reversed(results[-RECENT_ATTEMPTS:]))
    lines = [
        f"{i}. {test_title(tests_by_id, r['test_id'])} - {r['percentage']}% ({r['date']})"
        for i, r in enumerate(recent, start=1)
    ]
    return f"📊 My attempts\n\nTotal: {len(results)}\n" + "\n".join(lines)


def format_results_summary(results: list[Result], users: list[User], tests: list[Test]) -> list[str]:
    """Header plus one message per test, most recently taken test first.

    Rows inside a test are ordered by percentage, then by date, both descending.
    """
    if not results:
        return ["ℹ️ No results yet."]

    users_by_id = {u["id"]: u for u in users}
    tests_by_id = {t["id"]: t for t in tests}

    grouped: dict[int, list[Result]] = {}
    for r in results:
        grouped.setdefault(r["test_id"], []).append(r)

    def last_date(rows: list[Result]) -> str:
        return max((r.get("date") or "" for r in rows), default="")

    groups = sorted(grouped.items(), key=lambda item: last_date(item[1]), reverse=True)

    messages = [f"📊 Results by test\n\nTests: {len(groups)}"]
    for test_id, rows in groups:
        rows = sorted(
            rows,
            key=lambda r: (int(r.get("percentage") or 0), r.get("date") or ""),
            reverse=True,
        )
        lines = [
            f"📝 Test: {test_title(tests_by_id, test_id)} #{test_id}",
            f"📌 Results: {len(rows)}",
            "",
        ]
        for i, r in enumerate(rows, start=1):
            user = users_by_id.get(r["user_id"])
            username = f"@{r['username']}" if r.get("username") else "—"
            name = r.get("full_name") or (user["full_name"] if user else "") or "—"
            lines.append(f"{i}. 👤 {username} | 📛 {name}")
            lines.append(
                f"   ✅ Correct: {r['correct']}  ❌ Wrong: {r['wrong']}  "
                f"📊 Score: {r['percentage']}%  📅 Date: {r.get('date') or '—'}"
            )
        messages.append("\n".join(lines))
    return messages


def format_users_list(users: list[User]) -> list[str]:
    if not users:
        return ["ℹ️ No users yet."]
    users = sorted(users, key=lambda u: u.get("joined_date") or "")
    entries = []
    for i, u in enumerate(users, start=1):
        username = f"@{u['username']}" if u.get("username") else "—"
        entries.append(
            "\n".join(
                [
                    f"{i}. {u.get('full_name') or '—'}",
                    f"   👤 Username: {username}",
                    f"   🆔 ID: {u['id']}",
                    f"   📅 Joined: {u.get('joined_date') or '—'}",
                    f"   📝 Attempts: {int(u.get('tests_worked') or 0)}",
                ]
            )
        )
    messages = [f"👥 Users\n\nTotal: {len(users)}"]
    for start in range(0, len(entries), USERS_PER_MESSAGE):
        messages.append("\n\n".join(entries[start : start + USERS_PER_MESSAGE]))
    return messages


def format_channels_list(channels: list[Channel]) -> str:
    if not channels:
        return "ℹ️ No channels added yet."
    active = sum(1 for c in channels if c.get("status") == "active")
    lines = [
        "📡 Channels",
        f"Total: {len(channels)}",
        f"Active: {active}",
        f"Disabled: {len(channels) - active}",
        "",
    ]
    for i, c in enumerate(channels, start=1):
        lines.append(f"{i}. {c.get('name') or '—'}")
        lines.append(f"   👤 Username: {c.get('username') or '—'}")
        lines.append(f"   🆔 ID: {c['id']}")
        lines.append(f"   🔔 Status: {format_channel_status(c.get('status', ''))}")
        lines.append("")
    return "\n".join(lines)


def format_join_prompt(channels: list[Channel]) -> str:
    listing = "\n".join(
        f"{i}. {c['name']}" + (f" ({c['username']})" if c.get("username") else "")
        for i, c in enumerate(channels, start=1)
    )
    return (
        "Subscribe to the channels below to take part in the quiz\n\n"
        f"{listing}\n\n"
        "✅ Once subscribed, press \"✅ Check\"."
    )


def format_admin_list(tiers: AdminTiers, users: list[User]) -> str:
    users_by_id = {u["id"]: u for u in users}

    def entry(admin_id: int, index: int) -> str:
        user = users_by_id.get(admin_id)
        username = f"@{user['username']}" if user and user.get("username") else "—"
        return "\n".join(
            [
                f"{index}. 🆔 {admin_id}",
                f"   👤 Username: {username}",
                f"   📛 Name: {(user or {}).get('full_name') or '—'}",
                f"   📅 Joined: {(user or {}).get('joined_date') or '—'}",
                f"   📝 Attempts: {int((user or {}).get('tests_worked') or 0)}",
            ]
        )

    lines = [
        "👑 Admins",
        f"Total: {tiers.total}",
        f"Super admins: {len(tiers.super_ids)}",
        f"Admins: {len(tiers.static_ids) + len(tiers.dynamic_ids)}",
        "",
    ]
    sections = [
        ("👑 Super admins:", tiers.super_ids),
        ("🔒 Admins (configuration):", tiers.static_ids),
        ("🛡️ Admins (added in the bot):", tiers.dynamic_ids),
    ]
    for caption, ids in sections:
        if ids:
            lines.append(caption)
            lines.extend(entry(admin_id, i) for i, admin_id in enumerate(ids, start=1))
            lines.append("")
    if not tiers.static_ids and not tiers.dynamic_ids:
        lines.append("No regular admins.")
    return "\n".join(lines)


def format_test_card(test: Test) -> str:
    return "\n".join(
        [
            f"#{test['id']} {test['title']}",
            f"Status: {format_test_status(test['status'])}",
            f"Questions: {len(test['questions'])}",
        ]
    )


def format_test_answers(test: Test) -> str:
    lines = [
        f"✅ Answers: {test['title']} #{test['id']}",
        f"Questions: {len(test['questions'])}",
        "",
    ]
    for i, q in enumerate(test["questions"], start=1):
        correct = q.get("correct_answer")
        valid = isinstance(correct, int) and 0 <= correct < len(q["options"])
        label = option_label(correct) if valid else "?"
        answer = q["options"][correct] if valid else "—"
        lines.append(f"{i}. {q['question']}")
        lines.append(f"   ✅ {label}. {answer}")
        lines.append("")
    return "\n".join(lines)
