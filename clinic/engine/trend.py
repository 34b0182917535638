"""
Trend Analyzer

Compares a new result with the patient's most recent prior result for the
same lab test. Older priors are carried along for display only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence

from .reference_range import parse_number
from .status import TrendSignal

DEFAULT_EPSILON = 0.001
DEFAULT_HISTORY_SIZE = 3


@dataclass(frozen=True)
class PriorResult:
    result_id: int
    assigned_test_id: int
    value: Optional[str]
    result_date: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "result_id": self.result_id,
            "assigned_test_id": self.assigned_test_id,
            "value": self.value,
            "result_date": self.result_date.isoformat() if self.result_date else None,
        }


@dataclass
class TrendReport:
    signal: Optional[TrendSignal]
    delta: Optional[float] = None
    history: List[PriorResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "signal": self.signal.value if self.signal else None,
            "delta": self.delta,
            "history": [p.to_dict() for p in self.history],
        }


def trend_signal(current: Any, previous: Any, epsilon: float = DEFAULT_EPSILON) -> tuple:
    """Return (signal, delta); both None when either value does not parse."""
    cur = parse_number(current)
    prev = parse_number(previous)
    if cur is None or prev is None:
        return None, None

    delta = cur - prev
    if abs(delta) < epsilon:
        return TrendSignal.STABLE, delta
    if delta > 0:
        return TrendSignal.INCREASING, delta
    return TrendSignal.DECREASING, delta


def analyze(
    current: Any,
    priors: Sequence[PriorResult],
    epsilon: float = DEFAULT_EPSILON,
    history_size: int = DEFAULT_HISTORY_SIZE,
) -> TrendReport:
    """
    Build a TrendReport from `priors`, which must already be ordered most
    recent first. Only priors[0] feeds the signal.
    """
    history = list(priors[:history_size])
    if not history:
        return TrendReport(signal=None)

    signal, delta = trend_signal(current, history[0].value, epsilon)
    return TrendReport(signal=signal, delta=delta, history=history)
