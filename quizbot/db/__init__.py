from quizbot.db.store import DocumentStore, JsonFileBackend, SqlBackend
from quizbot.db.repository import (
    AdminRepository,
    ChannelRepository,
    ResultRepository,
    TestRepository,
    UserRepository,
)

__all__ = [
    "DocumentStore",
    "JsonFileBackend",
    "SqlBackend",
    "AdminRepository",
    "ChannelRepository",
    "ResultRepository",
    "TestRepository",
    "UserRepository",
]
