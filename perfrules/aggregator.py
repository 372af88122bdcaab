"""Group findings by status for reporting."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .models import Finding, Status


def aggregate(findings: Iterable[Finding]) -> Dict[Status, List[Finding]]:
    """
    Bucket findings by status.

    Every Status is present as a key (in enum order) so consumers can lay
    out a fixed set of panels. Order within a bucket is the input order.
    """
    buckets: Dict[Status, List[Finding]] = {status: [] for status in Status}
    for finding in findings:
        buckets[finding.status].append(finding)
    return buckets


def summary_counts(findings: Iterable[Finding]) -> Dict[str, int]:
    """Calculate per-status counts for a list of findings."""
    stats = {'total': 0}
    for status in Status:
        stats[status.value] = 0

    for finding in findings:
        stats['total'] += 1
        stats[finding.status.value] += 1

    return stats
