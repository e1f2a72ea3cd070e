"""Ordered fallback chains: try each candidate producer until one succeeds."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from monitorswitch.core.errors import FallbackError, MonitorSwitchError

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackResult(Generic[T]):
    label: str
    value: T
    failures: tuple[str, ...]


def first_success(
    candidates: Sequence[tuple[str, Callable[[], T]]],
    *,
    accept: Callable[[T], bool] | None = None,
    description: str = "all sources failed",
) -> FallbackResult[T]:
    """Run producers in order and return the first accepted result.

    A producer fails by raising `MonitorSwitchError` or `OSError`, or by
    returning a value `accept` rejects. Remaining producers are not called
    once one succeeds.
    """
    failures: list[str] = []
    for label, producer in candidates:
        try:
            value = producer()
        except (MonitorSwitchError, OSError) as exc:
            LOGGER.debug("%s failed: %s", label, exc)
            failures.append(f"{label}: {exc}")
            continue
        if accept is not None and not accept(value):
            LOGGER.debug("%s produced no usable result", label)
            failures.append(f"{label}: no usable result")
            continue
        return FallbackResult(label=label, value=value, failures=tuple(failures))

    raise FallbackError(description, failures)
