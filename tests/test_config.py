from pathlib import Path

import pytest

from quizbot.config import Settings, load_settings, parse_ids

ENV_KEYS = ["BOT_TOKEN", "SUPER_ADMIN_IDS", "ADMIN_IDS", "DATA_DIR", "STORAGE_URL", "PORT", "LOG_LEVEL"]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestParseIds:
    def test_drops_blanks_and_junk(self):
        assert parse_ids(" 1, 2,,abc, 3 ") == frozenset({1, 2, 3})

    def test_empty(self):
        assert parse_ids(None) == frozenset()


class TestLoadSettings:
    def test_missing_token_raises(self, clean_env):
        with pytest.raises(RuntimeError):
            load_settings("missing.env")

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("BOT_TOKEN", "123:abc")
        clean_env.setenv("SUPER_ADMIN_IDS", "1")
        clean_env.setenv("ADMIN_IDS", "2,3")
        clean_env.setenv("DATA_DIR", str(tmp_path))
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = load_settings("missing.env")

        assert settings.bot_token == "123:abc"
        assert settings.super_admin_ids == frozenset({1})
        assert settings.admin_ids == frozenset({2, 3})
        assert settings.data_dir == Path(tmp_path)
        assert settings.storage_url is None
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"


class TestEffectiveSuperAdmins:
    def test_configured_super_admins_win(self):
        settings = Settings(bot_token="t", super_admin_ids=frozenset({1}), admin_ids=frozenset({2}))

        assert settings.effective_super_admin_ids == frozenset({1})

    def test_admins_promoted_when_no_super_admins(self):
        settings = Settings(bot_token="t", admin_ids=frozenset({2, 3}))

        assert settings.effective_super_admin_ids == frozenset({2, 3})
