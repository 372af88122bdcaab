#!/usr/bin/env python3
"""Command line entry point: evaluate recorded runs and print the findings."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import default_registry
from .aggregator import aggregate, summary_counts
from .constants import EXIT_FAILURE, EXIT_PARSE_ERROR, EXIT_SUCCESS
from .errors import MalformedPayload, SessionStateError, UnknownDataType
from .models import Finding, Status
from .session import DashboardSession

STATUS_ICONS = {
    Status.GOOD: "✅",
    Status.NOT_GOOD: "❌",
    Status.NEUTRAL: "⚠️ ",
}


def _print_findings(pretty_name: str, findings: List[Finding]) -> None:
    stats = summary_counts(findings)
    print(f"📊 {pretty_name}: {stats['total']} finding(s)")
    for status, bucket in aggregate(findings).items():
        if not bucket:
            continue
        print(f"  {status.label} ({len(bucket)}):")
        for finding in bucket:
            print(f"    {STATUS_ICONS[status]} [{finding.rule}] {finding.message.strip()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Compare recorded performance runs and report rule findings'
    )
    parser.add_argument('run_dirs', nargs='+', help='Run directories (each with meta_data.yaml)')
    parser.add_argument('--data-type', action='append', dest='data_types',
                        help='Data type to evaluate (repeatable, default: all registered)')
    parser.add_argument('--base', default=None, help='Base run name (default: first run)')
    parser.add_argument('--json', action='store_true', help='Print a JSON report instead of text')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    registry = default_registry()
    session = DashboardSession(registry)
    try:
        session.load_dirs(args.run_dirs)
    except (FileNotFoundError, MalformedPayload, ValueError) as e:
        print(f"❌ Could not load runs: {e}", file=sys.stderr)
        return EXIT_PARSE_ERROR

    if args.base is not None and args.base not in session.run_names():
        print(f"❌ Unknown base run: {args.base}", file=sys.stderr)
        return EXIT_PARSE_ERROR

    data_types = args.data_types or registry.data_types()
    not_good = 0
    try:
        if args.json:
            reports = [session.report(dt, base_run=args.base) for dt in data_types]
            print(json.dumps(reports, indent=2))
            not_good = sum(r["summary"][Status.NOT_GOOD.value] for r in reports)
        else:
            print(f"📊 Comparing runs: {', '.join(session.run_names())}")
            print()
            for data_type in data_types:
                rule_set = registry.get(data_type)
                findings = session.evaluate(data_type, base_run=args.base)
                _print_findings(rule_set.pretty_name, findings)
                not_good += summary_counts(findings)[Status.NOT_GOOD.value]
                print()
    except (UnknownDataType, SessionStateError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_PARSE_ERROR

    return EXIT_FAILURE if not_good else EXIT_SUCCESS


if __name__ == '__main__':
    sys.exit(main())
