"""Tests for settings loading."""

import os
from unittest.mock import patch

import pytest

from quire.config import (
    CONFIG_PATH_ENV,
    PlatformConfig,
    get_config_path,
    get_settings,
    interpolate_env_vars,
    load_app_config,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestInterpolation:
    def test_replaces_env_vars(self):
        with patch.dict(os.environ, {"DB_HOST": "db.internal"}):
            result = interpolate_env_vars({"url": "postgresql+asyncpg://$DB_HOST/quire", "hooks": ["$DB_HOST"]})

        assert result == {"url": "postgresql+asyncpg://db.internal/quire", "hooks": ["db.internal"]}

    def test_missing_env_var_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="QUIRE_MISSING"):
                interpolate_env_vars("$QUIRE_MISSING")

    def test_non_strings_pass_through(self):
        assert interpolate_env_vars({"max_age": 60, "enabled": True}) == {"max_age": 60, "enabled": True}


class TestConfigFile:
    def test_config_path_override(self, tmp_path):
        target = tmp_path / "custom.yaml"
        with patch.dict(os.environ, {CONFIG_PATH_ENV: str(target)}):
            assert get_config_path() == target

    def test_missing_file_raises(self, tmp_path):
        with patch.dict(os.environ, {CONFIG_PATH_ENV: str(tmp_path / "absent.yaml")}):
            with pytest.raises(FileNotFoundError):
                load_app_config()

    def test_yaml_sections_override_defaults(self, temp_app_yaml):
        path = temp_app_yaml({
            "db": {"url": "sqlite+aiosqlite:///./test.db", "create_all": True},
            "platform": {"domain": "pages.example.com", "app_hosts": ["admin.example.com"]},
            "cache": {"max_age": 30, "purge_webhooks": ["https://edge.test/purge"]},
            "debug": True,
        })

        with patch.dict(os.environ, {CONFIG_PATH_ENV: str(path)}):
            settings = get_settings()

        assert settings.db.url == "sqlite+aiosqlite:///./test.db"
        assert settings.db.create_all is True
        assert settings.platform.domain == "pages.example.com"
        assert settings.platform.app_hosts == ["admin.example.com"]
        assert settings.cache.max_age == 30
        assert settings.cache.stale_while_revalidate == 300
        assert settings.debug is True

    def test_defaults_without_file(self, tmp_path):
        with patch.dict(os.environ, {CONFIG_PATH_ENV: str(tmp_path / "absent.yaml")}):
            settings = get_settings()

        assert settings.platform.domain == "quire.site"
        assert settings.logfire.enabled is False


def test_subdomain_suffix():
    assert PlatformConfig(domain="Quire.Site.").subdomain_suffix == ".quire.site"
