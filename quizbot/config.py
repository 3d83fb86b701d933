import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv  # pip install python-dotenv

PROJECT_ROOT = Path(__file__).parent.parent


def parse_ids(raw: Optional[str]) -> frozenset[int]:
    """Parse a comma-separated list of Telegram IDs, dropping junk entries."""
    ids = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            continue
    return frozenset(ids)


@dataclass(frozen=True)
class Settings:
    """Process-level configuration, built once at startup."""

    bot_token: str
    super_admin_ids: frozenset[int] = field(default_factory=frozenset)
    admin_ids: frozenset[int] = field(default_factory=frozenset)
    data_dir: Path = PROJECT_ROOT / "data"
    storage_url: Optional[str] = None
    port: int = 9001
    log_level: str = "INFO"
    broadcast_delay: float = 0.025

    @property
    def effective_super_admin_ids(self) -> frozenset[int]:
        # with no super-admins configured, plain admins act as super-admins
        return self.super_admin_ids or self.admin_ids


def load_settings(env_file: Optional[str] = None) -> Settings:
    # file name comes from ENV_FILE, .env otherwise
    env_file = env_file or os.getenv("ENV_FILE", ".env")
    load_dotenv(PROJECT_ROOT / env_file)

    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise RuntimeError("BOT_TOKEN is missing. Set it in .env")

    return Settings(
        bot_token=bot_token,
        super_admin_ids=parse_ids(os.getenv("SUPER_ADMIN_IDS")),
        admin_ids=parse_ids(os.getenv("ADMIN_IDS")),
        data_dir=Path(os.getenv("DATA_DIR") or PROJECT_ROOT / "data"),
        storage_url=os.getenv("STORAGE_URL") or None,
        port=int(os.getenv("PORT", "9001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        broadcast_delay=float(os.getenv("BROADCAST_DELAY", "0.025")),
    )
