# =============================================================================
# Shared fixtures: temp-dir document store, repositories, a mocked transport
# =============================================================================

from unittest.mock import AsyncMock, MagicMock

import pytest

from quizbot.db import (
    AdminRepository,
    ChannelRepository,
    DocumentStore,
    JsonFileBackend,
    ResultRepository,
    TestRepository,
    UserRepository,
)
from quizbot.services.access import AdminRegistry
from quizbot.services.quiz_engine import QuizEngine
from quizbot.services.wizards import ConversationFSM
from quizbot.sessions import SessionStore

SUPER_ADMIN = 100
STATIC_ADMIN = 200
PLAYER = 500


@pytest.fixture
def store(tmp_path):
    return DocumentStore(JsonFileBackend(tmp_path))


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def transport():
    """Transport double: every send succeeds unless a test says otherwise."""
    mock = MagicMock()
    mock.send_message = AsyncMock(return_value=True)
    mock.send_long_text = AsyncMock()
    mock.copy_message = AsyncMock(return_value=True)
    mock.check_membership = AsyncMock(return_value=True)
    mock.resolve_channel = AsyncMock()
    return mock


@pytest.fixture
def users(store):
    return UserRepository(store)


@pytest.fixture
def tests_repo(store):
    return TestRepository(store)


@pytest.fixture
def results(store):
    return ResultRepository(store)


@pytest.fixture
def channels(store):
    return ChannelRepository(store)


@pytest.fixture
def admins(store):
    return AdminRegistry({SUPER_ADMIN}, {STATIC_ADMIN}, AdminRepository(store))


@pytest.fixture
def engine(sessions, tests_repo, results, users, transport):
    return QuizEngine(sessions, tests_repo, results, users, transport)


@pytest.fixture
def fsm(sessions, admins, tests_repo, channels, users, transport):
    return ConversationFSM(
        sessions, admins, tests_repo, channels, users, transport, broadcast_delay=0
    )


def sent_texts(transport) -> list[str]:
    """Every text passed to transport.send_message, in order."""
    return [c.args[1] for c in transport.send_message.call_args_list]


def question(text: str, options: list[str], correct: int) -> dict:
    return {"question": text, "options": options, "correct_answer": correct}
