import copy
from typing import Literal, TypedDict

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(TypedDict):
    """Bot user, created on first contact."""

    id: int
    username: str
    full_name: str
    joined_date: str
    tests_worked: int


class Channel(TypedDict):
    """Gating channel. Never removed, only deactivated."""

    id: int
    name: str
    username: str  # "@handle" or ""
    status: Literal["active", "inactive"]


class Question(TypedDict):
    question: str
    options: list[str]
    correct_answer: int  # zero-based index into options


class Test(TypedDict):
    id: int
    title: str
    status: Literal["open", "closed"]
    created_at: str
    questions: list[Question]


class Result(TypedDict):
    """One completed attempt. Append-only."""

    user_id: int
    username: str
    full_name: str
    test_id: int
    correct: int
    wrong: int
    percentage: int
    date: str


# Each collection is a mapping with a single key holding its records.
COLLECTIONS: dict[str, dict] = {
    "users": {"users": []},
    "channels": {"channels": []},
    "tests": {"tests": []},
    "results": {"results": []},
    "admins": {"admins": []},
}


def default_document(collection: str) -> dict:
    """Fresh empty document for a collection."""
    if collection not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {collection}")
    return copy.deepcopy(COLLECTIONS[collection])


class CollectionRow(Base):
    """A whole collection stored as one JSON payload, for SQL-backed stores."""

    __tablename__ = "collections"

    name = Column(String(32), primary_key=True)
    payload = Column(Text, nullable=False)
