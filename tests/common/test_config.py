from __future__ import annotations

import logging

import pytest

from inboxkit.config import (
    ConfigurationError,
    MissingConfigurationError,
    NotificationConfig,
    configure_logging,
    get_int_env,
    get_notification_config,
    require_env_vars,
)
from inboxkit.domain.model import InboxQuery
from inboxkit.domain.validation import MAX_QUERY_LIMIT


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_names_every_missing_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_get_int_env_defaults_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SOME_INT", raising=False)

    assert get_int_env("SOME_INT", 7, minimum=1) == 7

    monkeypatch.setenv("SOME_INT", " ")
    assert get_int_env("SOME_INT", 7, minimum=1) == 7


def test_get_int_env_parses_and_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_INT", "12")
    assert get_int_env("SOME_INT", 1, minimum=1, maximum=12) == 12

    monkeypatch.setenv("SOME_INT", "13")
    with pytest.raises(ConfigurationError, match="at most 12"):
        get_int_env("SOME_INT", 1, minimum=1, maximum=12)

    monkeypatch.setenv("SOME_INT", "many")
    with pytest.raises(ConfigurationError, match="integer"):
        get_int_env("SOME_INT", 1, minimum=1)


def test_notification_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("INBOXKIT_FANOUT_CONCURRENCY", raising=False)
    monkeypatch.delenv("INBOXKIT_DEFAULT_QUERY_LIMIT", raising=False)

    assert get_notification_config() == NotificationConfig(
        fanout_concurrency=1, default_query_limit=50
    )
    assert NotificationConfig().default_query_limit == InboxQuery(tenant_id="t").limit


def test_notification_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INBOXKIT_FANOUT_CONCURRENCY", "8")
    monkeypatch.setenv("INBOXKIT_DEFAULT_QUERY_LIMIT", "25")

    config = get_notification_config()

    assert config.fanout_concurrency == 8
    assert config.default_query_limit == 25


def test_notification_config_rejects_out_of_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INBOXKIT_DEFAULT_QUERY_LIMIT", str(MAX_QUERY_LIMIT))
    assert get_notification_config().default_query_limit == MAX_QUERY_LIMIT

    monkeypatch.setenv("INBOXKIT_DEFAULT_QUERY_LIMIT", str(MAX_QUERY_LIMIT + 1))
    with pytest.raises(ConfigurationError, match="INBOXKIT_DEFAULT_QUERY_LIMIT"):
        get_notification_config()


def test_configure_logging_passes_level_and_force(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(logging, "basicConfig", fake_basic_config)

    configure_logging(level=logging.DEBUG, force=True)

    assert captured["level"] == logging.DEBUG
    assert captured["force"] is True
    assert "%(name)s" in str(captured["format"])
