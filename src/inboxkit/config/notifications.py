"""Notification workflow settings."""

from __future__ import annotations

from dataclasses import dataclass

from inboxkit.domain.model import DEFAULT_QUERY_LIMIT
from inboxkit.domain.validation import MAX_QUERY_LIMIT

from .env import get_int_env

DEFAULT_FANOUT_CONCURRENCY = 1


@dataclass(frozen=True, slots=True)
class NotificationConfig:
    fanout_concurrency: int = DEFAULT_FANOUT_CONCURRENCY
    default_query_limit: int = DEFAULT_QUERY_LIMIT


def get_notification_config() -> NotificationConfig:
    return NotificationConfig(
        fanout_concurrency=get_int_env(
            "INBOXKIT_FANOUT_CONCURRENCY", DEFAULT_FANOUT_CONCURRENCY, minimum=1
        ),
        default_query_limit=get_int_env(
            "INBOXKIT_DEFAULT_QUERY_LIMIT",
            DEFAULT_QUERY_LIMIT,
            minimum=1,
            maximum=MAX_QUERY_LIMIT,
        ),
    )
