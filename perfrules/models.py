from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .constants import (
    INTERVAL_FIELD,
    INTERVAL_TYPE_FIELD,
    INTERVAL_TYPE_SECONDS,
    MS_PER_SECOND,
    UNIT_MS,
    UNIT_SECONDS,
)
from .errors import MalformedPayload


class Status(str, Enum):
    """Severity classification of a finding.

    There is no ordering between members; every rule decides on its own
    which status a finding gets. NEUTRAL is used for partial or
    inconclusive data.
    """

    GOOD = "good"
    NOT_GOOD = "not_good"
    NEUTRAL = "neutral"

    @property
    def label(self) -> str:
        return {
            Status.GOOD: "Good",
            Status.NOT_GOOD: "NotGood",
            Status.NEUTRAL: "Neutral",
        }[self]


@dataclass(frozen=True)
class Finding:
    """A single diagnostic statement produced by evaluating a rule.

    Attributes:
        message: Human-readable text, e.g. "Intervals match in time and units. ..."
        status: Severity classification
        rule: Name of the producing rule. Filled in by the engine; rules
              normally leave it empty.
    """
    message: str
    status: Status
    rule: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "status": self.status.value,
            "rule": self.rule,
        }


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass(frozen=True)
class Interval:
    """A sampling interval as the user expressed it (value plus unit tag)."""
    value: float
    unit: str

    def __str__(self) -> str:
        return f"{_format_value(self.value)}{self.unit}"

    def in_ms(self) -> float:
        if self.unit == UNIT_MS:
            return float(self.value)
        if self.unit == UNIT_SECONDS:
            return float(self.value) * MS_PER_SECOND
        raise ValueError(f"Unsupported interval unit: {self.unit}")


def _coerce_number(raw: Any, what: str) -> float:
    # bool is an int subclass but never a valid measurement
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise MalformedPayload(f"{what} must be a number, got {raw!r}")
    return float(raw)


def parse_interval(raw: Mapping[str, Any]) -> Optional[Interval]:
    """
    Extract the collection interval from a run's metadata mapping.

    Recorder metadata stores the interval in milliseconds plus the unit the
    user originally asked for:

        interval_in_ms: 5000
        interval_type: SECONDS      -> Interval(5, "s")

        interval_in_ms: 100
        interval_type: MILLISECONDS -> Interval(100, "ms")

    An explicit ``interval: {value: 10, unit: ms}`` mapping is accepted too.

    Returns:
        The interval, or None when the metadata has no interval (older runs)

    Raises:
        MalformedPayload: If an interval field exists but is not numeric, or
            an explicit unit is not ms or s
    """
    if INTERVAL_FIELD in raw:
        value_ms = _coerce_number(raw[INTERVAL_FIELD], INTERVAL_FIELD)
        if str(raw.get(INTERVAL_TYPE_FIELD, "")).upper() == INTERVAL_TYPE_SECONDS:
            return Interval(value=value_ms / MS_PER_SECOND, unit=UNIT_SECONDS)
        return Interval(value=value_ms, unit=UNIT_MS)

    explicit = raw.get("interval")
    if isinstance(explicit, Mapping):
        if "value" not in explicit or "unit" not in explicit:
            raise MalformedPayload("interval must contain 'value' and 'unit'")
        unit = str(explicit["unit"])
        if unit not in (UNIT_MS, UNIT_SECONDS):
            raise MalformedPayload(f"interval.unit must be '{UNIT_MS}' or '{UNIT_SECONDS}', got {unit!r}")
        return Interval(
            value=_coerce_number(explicit["value"], "interval.value"),
            unit=unit,
        )
    return None


@dataclass(frozen=True)
class RunMetadata:
    """Parameters the recorder used for one run (from meta_data.yaml).

    Numeric recorder fields stay in ``raw`` and are parsed on access, so a
    malformed interval only fails the rules that read it.
    """
    run_name: str
    collector_version: str = ""
    commit_sha_short: str = ""
    time_str: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def interval(self) -> Optional[Interval]:
        """Collection interval, or None for older runs.

        Raises:
            MalformedPayload: If the interval fields are present but invalid
        """
        return parse_interval(self.raw)

    @property
    def period_in_ms(self) -> Optional[float]:
        period = self.raw.get("period_in_ms")
        if period is None:
            return None
        return _coerce_number(period, "period_in_ms")

    @staticmethod
    def from_dict(raw: Mapping[str, Any], run_name: Optional[str] = None) -> "RunMetadata":
        if not isinstance(raw, Mapping):
            raise MalformedPayload(f"Run metadata must be a mapping, got {type(raw).__name__}")

        name = run_name or str(raw.get("run_name") or "")
        if not name:
            raise MalformedPayload("Run metadata has no run_name")

        return RunMetadata(
            run_name=name,
            collector_version=str(raw.get("collector_version") or ""),
            commit_sha_short=str(raw.get("commit_sha_short") or ""),
            time_str=str(raw.get("time_str") or ""),
            raw=dict(raw),
        )
