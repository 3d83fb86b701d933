MAX_MESSAGE_LENGTH = 3500


def option_label(index: int) -> str:
    """A, B, C, ... for the first 26 options, then 1-based numbers."""
    if 0 <= index < 26:
        return chr(ord("A") + index)
    return str(index + 1)


def split_long_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text on line boundaries into chunks no longer than ``limit``.

    A single line longer than the limit is kept whole.
    """
    if len(text) <= limit:
        return [text]
    parts = []
    current = ""
    for line in text.split("\n"):
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            if current:
                parts.append(current)
            current = line
        else:
            current = candidate
    if current:
        parts.append(current)
    return parts


def format_test_status(status: str) -> str:
    return "✅ Open" if status == "open" else "❌ Closed"


def format_channel_status(status: str) -> str:
    return "✅ Active" if status == "active" else "⛔ Disabled"


def full_name(first_name: str, last_name: str = "") -> str:
    return " ".join(part for part in (first_name, last_name) if part).strip()


def percentage(correct: int, total: int) -> int:
    """Rounded share of correct answers, 0 for an empty test."""
    if not total:
        return 0
    # halves round up: 1 of 8 is 13, not 12
    return (correct * 200 + total) // (2 * total)
