"""Tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cinehub_bot.config import Settings, get_settings, parse_force_links, parse_int_list


class TestSettings:
    """Tests for Settings class."""

    def test_settings_from_env(self) -> None:
        """Should load settings from environment."""
        env_vars = {
            "BOT_TOKEN": "test-token",
            "ADMIN_IDS": "111,222",
            "FORCE_CHANNELS": "-1001,-1002",
            "FORCE_CHANNEL_URLS": "-1001|https://t.me/+abc",
            "CONTENT_CHANNEL_IDS": "[-1003]",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
            # SecretStr requires .get_secret_value() to access the actual value
            assert settings.bot_token.get_secret_value() == "test-token"
            assert settings.admin_ids == [111, 222]
            assert settings.forced_channels == [-1001, -1002]
            assert settings.forced_channel_urls == {-1001: "https://t.me/+abc"}
            assert settings.content_channel_ids == [-1003]
            assert settings.log_level == "DEBUG"

    def test_settings_required_fields(self) -> None:
        """Should fail without the bot token."""
        with (
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(ValidationError),
        ):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_settings_defaults(self) -> None:
        """Should use default values."""
        with patch.dict(os.environ, {"BOT_TOKEN": "test-token"}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
            assert settings.log_level == "INFO"
            assert settings.app_name == "CineHub Bot"
            assert settings.admin_ids == []
            assert settings.forced_channels == []
            assert settings.forced_channel_urls == {}
            assert settings.poll_timeout == 25
            assert settings.poll_limit == 100
            assert settings.poll_retry_delay == 0.5
            assert settings.rate_limit_interval == 0.5
            assert settings.subscription_ok_ttl == 20.0
            assert settings.subscription_fail_ttl == 2.0
            assert settings.subscription_cache_max_entries == 10_000
            assert settings.page_size == 10

    def test_env_is_case_insensitive(self) -> None:
        """Lower-case variable names should be accepted."""
        with patch.dict(os.environ, {"bot_token": "t", "page_size": "5"}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
            assert settings.page_size == 5

    def test_repr_hides_token(self) -> None:
        """Token must never appear in repr."""
        with patch.dict(os.environ, {"BOT_TOKEN": "super-secret"}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
            assert "super-secret" not in repr(settings)
            assert "super-secret" not in str(settings.bot_token)

    def test_get_settings(self) -> None:
        """get_settings should build Settings from the environment."""
        with (
            patch.dict(os.environ, {"BOT_TOKEN": "test-token"}, clear=True),
            patch.object(Settings, "model_config", {**Settings.model_config, "env_file": None}),
        ):
            settings = get_settings()
            assert isinstance(settings, Settings)


class TestParsers:
    """Tests for list and link parsers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, []),
            ("", []),
            (5, [5]),
            ([1, "2"], [1, 2]),
            ("1, 2 ,x, -3", [1, 2, -3]),
            ("[10, 20]", [10, 20]),
            ("1, --2, ³, 4", [1, 4]),
        ],
    )
    def test_parse_int_list(self, value: object, expected: list[int]) -> None:
        assert parse_int_list(value) == expected

    def test_parse_force_links(self) -> None:
        value = (
            "-1001|https://t.me/a, bad, x|https://t.me/b, -1002|, "
            "-1003|https://t.me/c, --4|https://t.me/d"
        )

        assert parse_force_links(value) == {
            -1001: "https://t.me/a",
            -1003: "https://t.me/c",
        }

    def test_parse_force_links_from_mapping(self) -> None:
        assert parse_force_links({"-1001": "https://t.me/a"}) == {-1001: "https://t.me/a"}
        assert parse_force_links(None) == {}
