"""perfrules

Rule evaluation for recorded performance runs.

- RunStore: per-run metadata and raw payloads
- Rule / RuleSet / RuleRegistry: data-driven checks per data type
- RuleEngine: runs a rule set against a base run and comparison runs
- aggregate: groups findings by status for reporting
- DashboardSession: loads runs once and evaluates on demand
"""

from .aggregator import aggregate, summary_counts
from .aperf_run_stats import APERF_RUN_STATS_RULES
from .engine import RuleEngine
from .errors import MalformedPayload, RunNotFound, SessionStateError, UnknownDataType
from .models import Finding, Interval, RunMetadata, Status
from .rules import (
    EvaluationContext,
    Rule,
    RuleKind,
    RuleRegistry,
    RuleSet,
    all_run_rule,
    single_run_rule,
)
from .run_store import RunStore, StatsSeries, TimeSeries, load_run_dir, parse_stats_payload
from .session import DashboardSession, SessionState

__version__ = "1.0.0"


def default_registry() -> RuleRegistry:
    """A fresh registry holding every bundled rule set."""
    return RuleRegistry([APERF_RUN_STATS_RULES])


__all__ = [
    "APERF_RUN_STATS_RULES",
    "DashboardSession",
    "EvaluationContext",
    "Finding",
    "Interval",
    "MalformedPayload",
    "Rule",
    "RuleEngine",
    "RuleKind",
    "RuleRegistry",
    "RuleSet",
    "RunMetadata",
    "RunNotFound",
    "RunStore",
    "SessionState",
    "SessionStateError",
    "StatsSeries",
    "Status",
    "TimeSeries",
    "UnknownDataType",
    "aggregate",
    "all_run_rule",
    "default_registry",
    "load_run_dir",
    "parse_stats_payload",
    "single_run_rule",
    "summary_counts",
]
