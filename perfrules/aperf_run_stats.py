#!/usr/bin/env python3
"""Rules for aperf_run_stats: how each run was recorded and what it cost.

Interval
    Do all runs use the same collection interval?
Collection overhead
    Does collecting one sample fit inside the run's interval?
Collect time / Print time
    Did collecting or printing get slower than in the base run?
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
from scipy import stats

from .constants import (
    APERF_RUN_STATS,
    APERF_RUN_STATS_PRETTY_NAME,
    MANN_WHITNEY_ALPHA,
    MIN_SAMPLES_FOR_COMPARISON,
    PCT_FLOOR,
    SERIES_COLLECT,
    SERIES_PRINT,
    US_FLOOR,
    US_PER_MS,
)
from .errors import MalformedPayload, RunNotFound
from .models import Finding, Interval, Status
from .rules import EvaluationContext, Rule, RuleKind, RuleSet, all_run_rule, single_run_rule

logger = logging.getLogger(__name__)


# ==============================================================================
# INTERVAL
# ==============================================================================

@dataclass(frozen=True)
class IntervalComparison:
    """Outcome of comparing every run's interval with the base run's.

    Attributes:
        base_run: Name of the base run
        base: Interval of the base run
        others: (run, interval) for each comparison run in list order;
                interval is None when that run recorded none
        interval_and_type_mismatch: Some run differs in both value and unit
        interval_only_mismatch: Some run differs in value
    """
    base_run: str
    base: Interval
    others: Tuple[Tuple[str, Optional[Interval]], ...]
    interval_and_type_mismatch: bool
    interval_only_mismatch: bool

    @property
    def status(self) -> Status:
        if self.interval_and_type_mismatch or self.interval_only_mismatch:
            return Status.NOT_GOOD
        return Status.GOOD


def compare_intervals(ctx: EvaluationContext) -> Optional[IntervalComparison]:
    """
    Compare the interval of every other run against the base run.

    Returns:
        None when the base run has no interval (older data), otherwise the
        comparison. Runs missing from the store are left out.
    """
    base = ctx.store.get_metadata(ctx.base_run).interval
    if base is None:
        return None

    others = []
    and_type = False
    only = False
    for run in ctx.other_runs:
        try:
            interval = ctx.store.get_metadata(run).interval
        except RunNotFound:
            logger.debug("Interval: skipping unknown run %s", run)
            continue
        others.append((run, interval))
        if interval is None:
            continue
        if base.value != interval.value:
            if base.unit != interval.unit:
                and_type = True
            only = True

    return IntervalComparison(
        base_run=ctx.base_run,
        base=base,
        others=tuple(others),
        interval_and_type_mismatch=and_type,
        interval_only_mismatch=only,
    )


def _interval_fragment(run: str, interval: Optional[Interval]) -> str:
    if interval is None:
        return f"{run} has no interval. "
    return f"{run} has an interval: {interval}. "


def render_interval_finding(comparison: IntervalComparison) -> Finding:
    narrative = _interval_fragment(comparison.base_run, comparison.base)
    for run, interval in comparison.others:
        narrative += _interval_fragment(run, interval)

    if comparison.interval_and_type_mismatch:
        prefix = "Intervals don't match in time and units. "
    elif comparison.interval_only_mismatch:
        prefix = "Intervals don't match in time. "
    else:
        prefix = "Intervals match in time and units. "
    return Finding(message=prefix + narrative, status=comparison.status)


@all_run_rule("Interval", description="Runs were collected with the same interval.")
def interval_rule(ctx: EvaluationContext) -> Iterator[Finding]:
    comparison = compare_intervals(ctx)
    if comparison is None:
        return
    yield render_interval_finding(comparison)


# ==============================================================================
# COLLECTION OVERHEAD
# ==============================================================================

@single_run_rule("Collection overhead", description="Collecting a sample fits inside the interval.")
def collection_overhead_rule(ctx: EvaluationContext) -> Iterator[Finding]:
    run = ctx.this_run
    interval = ctx.store.get_metadata(run).interval
    if interval is None:
        return

    collect = ctx.store.get_series(run, ctx.data_type).collect
    if len(collect) == 0:
        yield Finding(f"{run} has no collect samples. ", Status.NEUTRAL)
        return

    interval_us = interval.in_ms() * US_PER_MS
    max_taken = float(np.max(collect.time_taken))
    if max_taken > interval_us:
        yield Finding(
            f"{run} collection took up to {max_taken:.0f}us, longer than its {interval} interval. ",
            Status.NOT_GOOD,
        )
    else:
        yield Finding(
            f"{run} collection fits in its {interval} interval (max {max_taken:.0f}us). ",
            Status.GOOD,
        )


# ==============================================================================
# COLLECT / PRINT TIME
# ==============================================================================

@dataclass
class TimeComparison:
    """Result of comparing time_taken samples of one run against the base run.

    Attributes:
        base_median: Median time_taken of the base run (us)
        other_median: Median time_taken of the comparison run (us)
        median_delta: other_median - base_median (us)
        threshold: Delta the comparison run may grow by before it is flagged (us)
        p_value: One-sided Mann-Whitney U p-value (other > base), if computed
        inconclusive: True if either run has too few samples
        regressed: True if the delta exceeds the threshold AND the test is significant
    """
    base_median: float
    other_median: float
    median_delta: float
    threshold: float
    p_value: Optional[float] = None
    inconclusive: bool = False
    regressed: bool = False


def compare_time_taken(
    base: np.ndarray,
    other: np.ndarray,
    us_floor: float = US_FLOOR,
    pct_floor: float = PCT_FLOOR,
    alpha: float = MANN_WHITNEY_ALPHA,
    min_samples: int = MIN_SAMPLES_FOR_COMPARISON,
) -> TimeComparison:
    """
    Check whether other's time_taken samples are slower than base's.

    Threshold is max(us_floor, pct_floor * base_median), so very fast
    collectors are not flagged for noise.

    Args:
        base: time_taken samples of the base run (us)
        other: time_taken samples of the comparison run (us)
        us_floor: Absolute threshold in microseconds
        pct_floor: Relative threshold as fraction of the base median
        alpha: Significance level for the Mann-Whitney U test
        min_samples: Minimum samples per run

    Returns:
        TimeComparison
    """
    if us_floor < 0:
        raise ValueError(f"us_floor must be non-negative, got {us_floor}")
    if not (0 <= pct_floor <= 1):
        raise ValueError(f"pct_floor must be between 0 and 1, got {pct_floor}")
    if not (0 < alpha < 1):
        raise ValueError(f"alpha must be between 0 and 1 (exclusive), got {alpha}")

    a = np.asarray(base, dtype=float)
    b = np.asarray(other, dtype=float)

    if len(a) < min_samples or len(b) < min_samples:
        return TimeComparison(
            base_median=float(np.median(a)) if len(a) else math.nan,
            other_median=float(np.median(b)) if len(b) else math.nan,
            median_delta=math.nan,
            threshold=math.nan,
            inconclusive=True,
        )

    base_median = float(np.median(a))
    other_median = float(np.median(b))
    median_delta = other_median - base_median
    threshold = max(us_floor, pct_floor * base_median)

    result = TimeComparison(
        base_median=base_median,
        other_median=other_median,
        median_delta=median_delta,
        threshold=threshold,
    )

    # Only a delta above the threshold is worth a significance test
    if median_delta > threshold:
        res = stats.mannwhitneyu(b, a, alternative='greater', method='auto')
        p_value = float(res.pvalue)
        result.p_value = p_value
        result.regressed = not math.isnan(p_value) and p_value < alpha

    return result


def render_time_finding(
    series_name: str,
    base_run: str,
    run: str,
    result: TimeComparison,
) -> Finding:
    label = series_name.capitalize()
    if result.inconclusive:
        return Finding(
            f"Not enough {series_name} samples to compare {run} with {base_run}. ",
            Status.NEUTRAL,
        )
    medians = f"median {result.other_median:.1f}us vs {result.base_median:.1f}us"
    if result.regressed:
        return Finding(
            f"{label} time regressed in {run} compared to {base_run}: {medians} "
            f"(threshold {result.threshold:.1f}us, p={result.p_value:.4f}). ",
            Status.NOT_GOOD,
        )
    return Finding(
        f"{label} time of {run} is in line with {base_run}: {medians}. ",
        Status.GOOD,
    )


def _time_taken_rule(series_name: str):
    def _rule(ctx: EvaluationContext) -> Iterator[Finding]:
        base = ctx.store.get_series(ctx.base_run, ctx.data_type).series(series_name)
        for run in ctx.other_runs:
            try:
                other = ctx.store.get_series(run, ctx.data_type).series(series_name)
            except RunNotFound:
                logger.debug("%s time: skipping run %s without data", series_name, run)
                continue
            except MalformedPayload as e:
                logger.warning("%s time: run %s has malformed data: %s", series_name, run, e)
                yield Finding(
                    f"{series_name.capitalize()} time of {run} could not be compared "
                    f"with {ctx.base_run}: {e}. ",
                    Status.NOT_GOOD,
                )
                continue
            result = compare_time_taken(base.time_taken, other.time_taken)
            yield render_time_finding(series_name, ctx.base_run, run, result)

    return _rule


collect_time_rule = Rule(
    name="Collect time",
    kind=RuleKind.ALL_RUN,
    func=_time_taken_rule(SERIES_COLLECT),
    description="Collecting did not get slower than in the base run.",
)

print_time_rule = Rule(
    name="Print time",
    kind=RuleKind.ALL_RUN,
    func=_time_taken_rule(SERIES_PRINT),
    description="Printing did not get slower than in the base run.",
)


APERF_RUN_STATS_RULES = RuleSet(
    data_type=APERF_RUN_STATS,
    pretty_name=APERF_RUN_STATS_PRETTY_NAME,
    rules=(
        interval_rule,
        collection_overhead_rule,
        collect_time_rule,
        print_time_rule,
    ),
)
