"""
Order timeline configuration.

Usage in settings.py:
    ORDER_TIMELINE = {
        "STAGES": ["Order Confirmed", ..., {"name": "Shipped", "aliases": ["Delivered"]}],
        "SHIPPED_STAGE": "Shipped",
        "COMPLETED_RETENTION_HOURS": 24,
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Any

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

from modules.orders.constants import DEFAULT_RETENTION_HOURS, DEFAULT_STAGES, SHIPPED
from modules.orders.exceptions import InvalidStageSequence
from modules.orders.timeline import StageSequence


@dataclass
class TimelineSettings:
    """Order timeline configuration settings."""

    # Ordered pipeline: names, or {"name", "aliases"} mappings
    STAGES: list = field(default_factory=lambda: list(DEFAULT_STAGES))

    # Stage from which an order no longer counts as delayed
    SHIPPED_STAGE: str = SHIPPED

    # Hours a completed order stays on the live board
    COMPLETED_RETENTION_HOURS: int = DEFAULT_RETENTION_HOURS


def get_timeline_settings() -> TimelineSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "ORDER_TIMELINE", {})
    return TimelineSettings(**{
        k: v for k, v in user_settings.items()
        if k in TimelineSettings.__dataclass_fields__
    })


@lru_cache(maxsize=1)
def get_stage_sequence() -> StageSequence:
    """The process-wide pipeline, built once."""
    conf = get_timeline_settings()
    sequence = StageSequence.from_config(conf.STAGES)
    if sequence.resolve(conf.SHIPPED_STAGE) is None:
        raise InvalidStageSequence(
            f"SHIPPED_STAGE {conf.SHIPPED_STAGE!r} is not a configured stage."
        )
    return sequence


def get_shipped_ordinal(sequence: StageSequence | None = None) -> int:
    """Ordinal of ``SHIPPED_STAGE`` in *sequence*, the configured pipeline by default.

    A sequence without that stage falls back to its terminal stage.
    """
    sequence = sequence or get_stage_sequence()
    ordinal = sequence.resolve(get_timeline_settings().SHIPPED_STAGE)
    return sequence.terminal.ordinal if ordinal is None else ordinal


def get_retention_window() -> timedelta:
    return timedelta(hours=get_timeline_settings().COMPLETED_RETENTION_HOURS)


@receiver(setting_changed)
def _reset_stage_sequence(*, setting: str, **kwargs: Any) -> None:
    if setting == "ORDER_TIMELINE":
        get_stage_sequence.cache_clear()
