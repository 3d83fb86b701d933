import asyncio
import logging
from typing import Iterable, NamedTuple

from quizbot.db.repository import AdminRepository
from quizbot.errors import PersistenceFailure, ValidationError


class AdminTiers(NamedTuple):
    super_ids: list[int]
    static_ids: list[int]
    dynamic_ids: list[int]

    @property
    def total(self) -> int:
        return len(self.super_ids) + len(self.static_ids) + len(self.dynamic_ids)


def parse_admin_id(text: str) -> int:
    try:
        admin_id = int(text.strip())
    except ValueError:
        raise ValidationError("⚠️ Send the admin ID (digits only).")
    if admin_id <= 0:
        raise ValidationError("⚠️ Send the admin ID (digits only).")
    return admin_id


class AdminRegistry:
    """Three admin tiers: super-admins, static admins from config, dynamic admins.

    Only the dynamic tier changes at runtime and only it is persisted.
    """

    def __init__(
        self,
        super_admin_ids: Iterable[int],
        admin_ids: Iterable[int],
        repository: AdminRepository,
    ) -> None:
        self.super_ids = frozenset(super_admin_ids)
        self.static_ids = frozenset(admin_ids)
        self.repository = repository
        self._dynamic: set[int] = set()
        # add and remove run one at a time
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        self._dynamic = await self.repository.load()
        logging.info(f"Loaded {len(self._dynamic)} dynamic admins")

    def is_super_admin(self, user_id: int) -> bool:
        return user_id in self.super_ids

    def is_admin(self, user_id: int) -> bool:
        return (
            self.is_super_admin(user_id)
            or user_id in self.static_ids
            or user_id in self._dynamic
        )

    @property
    def dynamic_ids(self) -> frozenset[int]:
        return frozenset(self._dynamic)

    async def add(self, user_id: int) -> None:
        async with self._lock:
            if self.is_super_admin(user_id):
                raise ValidationError("ℹ️ This user is a super admin.")
            if self.is_admin(user_id):
                raise ValidationError("ℹ️ This user is already an admin.")
            self._dynamic.add(user_id)
            try:
                await self.repository.save(self._dynamic)
            except PersistenceFailure:
                self._dynamic.discard(user_id)
                raise
        logging.info(f"Admin added: {user_id}")

    async def remove(self, user_id: int) -> bool:
        """Drop a dynamic admin. Returns False if the ID was not one."""
        async with self._lock:
            if self.is_super_admin(user_id):
                raise ValidationError("⚠️ A super admin cannot be removed.")
            if user_id in self.static_ids:
                raise ValidationError("⚠️ This admin is set in the configuration and cannot be removed.")
            if user_id not in self._dynamic:
                return False
            self._dynamic.discard(user_id)
            try:
                await self.repository.save(self._dynamic)
            except PersistenceFailure:
                self._dynamic.add(user_id)
                raise
        logging.info(f"Admin removed: {user_id}")
        return True

    def tiers(self) -> AdminTiers:
        """Admins grouped by tier, each ID listed once under its highest tier."""
        return AdminTiers(
            super_ids=sorted(self.super_ids),
            static_ids=sorted(self.static_ids - self.super_ids),
            dynamic_ids=sorted(self._dynamic - self.super_ids - self.static_ids),
        )
