from datetime import date
from typing import Iterable, Optional

from quizbot.db.models import Channel, Question, Result, Test, User
from quizbot.db.store import DocumentStore
from quizbot.errors import NotFoundError


def today() -> str:
    return date.today().isoformat()


class UserRepository:
    """Repository for user data operations."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def all(self) -> list[User]:
        data = await self.store.read("users")
        return data["users"]

    async def get(self, user_id: int) -> Optional[User]:
        """Get user by Telegram ID."""
        for user in await self.all():
            if user["id"] == user_id:
                return user
        return None

    async def ensure(self, user_id: int, username: str, full_name: str) -> User:
        """Create the user on first contact, refresh display fields otherwise."""

        def mutate(data: dict) -> User:
            for user in data["users"]:
                if user["id"] == user_id:
                    if username:
                        user["username"] = username
                    if full_name:
                        user["full_name"] = full_name
                    return user
            user = User(
                id=user_id,
                username=username or "",
                full_name=full_name or "",
                joined_date=today(),
                tests_worked=0,
            )
            data["users"].append(user)
            return user

        return await self.store.update("users", mutate)

    async def increment_tests_worked(self, user_id: int) -> Optional[User]:
        def mutate(data: dict) -> Optional[User]:
            for user in data["users"]:
                if user["id"] == user_id:
                    user["tests_worked"] = int(user.get("tests_worked") or 0) + 1
                    return user
            return None

        return await self.store.update("users", mutate)


class ChannelRepository:
    """Gating channels. Removal only flips the status."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def all(self) -> list[Channel]:
        data = await self.store.read("channels")
        return data["channels"]

    async def active(self) -> list[Channel]:
        return [c for c in await self.all() if c.get("status") == "active"]

    async def upsert_active(self, channel_id: int, title: str, username: str) -> Channel:
        """Reactivate a known channel (matched by id or handle) or add a new one."""

        def mutate(data: dict) -> Channel:
            for channel in data["channels"]:
                if channel["id"] == channel_id or (username and channel.get("username") == username):
                    channel["name"] = title or channel.get("name", "")
                    channel["username"] = username or channel.get("username", "")
                    channel["status"] = "active"
                    return channel
            channel = Channel(
                id=channel_id, name=title or "Channel", username=username, status="active"
            )
            data["channels"].append(channel)
            return channel

        return await self.store.update("channels", mutate)

    async def deactivate(self, channel_id: int) -> Channel:
        def mutate(data: dict) -> Channel:
            for channel in data["channels"]:
                if channel["id"] == channel_id:
                    channel["status"] = "inactive"
                    return channel
            raise NotFoundError(f"channel {channel_id}")

        return await self.store.update("channels", mutate)


class TestRepository:
    """Tests with their embedded questions."""

    __test__ = False  # keep pytest from collecting this class

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def all(self) -> list[Test]:
        data = await self.store.read("tests")
        return data["tests"]

    async def get(self, test_id: int) -> Optional[Test]:
        for test in await self.all():
            if test["id"] == test_id:
                return test
        return None

    async def open_tests(self) -> list[Test]:
        return [t for t in await self.all() if t.get("status") == "open"]

    async def create(self, title: str, status: str, questions: list[Question]) -> Test:
        """Persist a new test under the next unused id."""

        def mutate(data: dict) -> Test:
            # last_id remembers deleted tests so their ids are never handed out again
            highest = max((t["id"] for t in data["tests"]), default=0)
            next_id = max(highest, int(data.get("last_id") or 0)) + 1
            test = Test(
                id=next_id,
                title=title,
                status=status,
                created_at=today(),
                questions=questions,
            )
            data["tests"].append(test)
            data["last_id"] = next_id
            return test

        return await self.store.update("tests", mutate)

    async def rename(self, test_id: int, title: str) -> Test:
        def mutate(data: dict) -> Test:
            test = _find_test(data, test_id)
            test["title"] = title
            return test

        return await self.store.update("tests", mutate)

    async def toggle_status(self, test_id: int) -> Test:
        def mutate(data: dict) -> Test:
            test = _find_test(data, test_id)
            test["status"] = "closed" if test["status"] == "open" else "open"
            return test

        return await self.store.update("tests", mutate)

    async def delete(self, test_id: int) -> None:
        """Hard delete. Results pointing at the test are left alone."""

        def mutate(data: dict) -> None:
            test = _find_test(data, test_id)
            data["last_id"] = max(int(data.get("last_id") or 0), test_id)
            data["tests"].remove(test)

        await self.store.update("tests", mutate)


def _find_test(data: dict, test_id: int) -> Test:
    for test in data["tests"]:
        if test["id"] == test_id:
            return test
    raise NotFoundError(f"test {test_id}")


class ResultRepository:
    """Append-only attempt log."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def all(self) -> list[Result]:
        data = await self.store.read("results")
        return data["results"]

    async def for_user(self, user_id: int) -> list[Result]:
        return [r for r in await self.all() if r["user_id"] == user_id]

    async def attempted_test_ids(self, user_id: int) -> set[int]:
        return {r["test_id"] for r in await self.for_user(user_id)}

    async def has_attempted(self, user_id: int, test_id: int) -> bool:
        return test_id in await self.attempted_test_ids(user_id)

    async def append(self, result: Result) -> Result:
        def mutate(data: dict) -> Result:
            data["results"].append(result)
            return result

        return await self.store.update("results", mutate)


class AdminRepository:
    """Persisted set of admins granted through the bot."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def load(self) -> set[int]:
        data = await self.store.read("admins")
        ids = set()
        for raw in data["admins"]:
            try:
                ids.add(int(raw))
            except (TypeError, ValueError):
                continue
        return ids

    async def save(self, ids: Iterable[int]) -> None:
        await self.store.write("admins", {"admins": sorted(ids)})
