from __future__ import annotations

import pytest

from monitorswitch.core.errors import FallbackError, ParseError
from monitorswitch.core.fallback import first_success


def test_first_successful_candidate_wins_and_later_ones_are_skipped() -> None:
    calls: list[str] = []

    def failing() -> str:
        calls.append("a")
        raise ParseError("garbled")

    def working() -> str:
        calls.append("b")
        return "ok"

    def never() -> str:
        calls.append("c")
        return "late"

    result = first_success([("a", failing), ("b", working), ("c", never)])
    assert result.label == "b"
    assert result.value == "ok"
    assert result.failures == ("a: garbled",)
    assert calls == ["a", "b"]


def test_rejected_result_counts_as_failure() -> None:
    result = first_success([("empty", list), ("full", lambda: [1])], accept=bool)
    assert result.value == [1]
    assert result.failures == ("empty: no usable result",)


def test_os_errors_are_collected() -> None:
    def missing() -> str:
        raise FileNotFoundError("/etc/os-release")

    with pytest.raises(FallbackError) as exc_info:
        first_success([("os-release", missing)], description="nothing found")
    assert exc_info.value.failures == ("os-release: /etc/os-release",)
    assert str(exc_info.value).startswith("nothing found: ")


def test_unexpected_exceptions_propagate() -> None:
    def broken() -> str:
        raise KeyError("bug")

    with pytest.raises(KeyError):
        first_success([("broken", broken)])
