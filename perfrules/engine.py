from __future__ import annotations

import dataclasses
import logging
from typing import Iterator, List, Sequence

from .errors import RunNotFound
from .models import Finding, Status
from .rules import EvaluationContext, Rule, RuleKind, RuleRegistry, RuleSet
from .run_store import RunStore

logger = logging.getLogger(__name__)


class RuleEngine:
    """Runs every rule registered for a data type and collects the findings.

    Findings come out in rule registration order, each rule's findings in the
    order the rule produced them. Nothing is deduplicated, reordered or
    filtered.

    Failure containment:
        - UnknownDataType (no rule set) propagates to the caller.
        - RunNotFound escaping a rule means the rule cannot apply; it
          contributes no findings.
        - Any other exception from a rule (e.g. MalformedPayload) becomes a
          single NotGood finding and evaluation moves on to the next rule.
    """

    def __init__(self, registry: RuleRegistry, store: RunStore):
        self.registry = registry
        self.store = store

    def evaluate(self, data_type: str, base_run: str, run_list: Sequence[str]) -> List[Finding]:
        """
        Evaluate the rule set for data_type.

        Args:
            data_type: Data type whose rule set should run (e.g. "aperf_run_stats")
            base_run: Run the others are compared against; must be in run_list
            run_list: Runs to compare, base run conventionally first

        Returns:
            All findings in deterministic order (possibly empty)

        Raises:
            UnknownDataType: If no rule set is registered for data_type
            ValueError: If run_list is empty or does not contain base_run
        """
        findings = list(self.iter_findings(data_type, base_run, run_list))
        logger.debug(
            "Evaluated %s for base run %s against %d run(s): %d finding(s)",
            data_type, base_run, len(run_list), len(findings),
        )
        return findings

    def iter_findings(self, data_type: str, base_run: str, run_list: Sequence[str]) -> Iterator[Finding]:
        """Lazy variant of :meth:`evaluate`.

        Arguments are validated immediately; rules only run as findings are
        pulled. Stop iterating to stop evaluation.
        """
        rule_set = self.registry.get(data_type)
        ctx = EvaluationContext.build(
            data_type=data_type,
            base_run=base_run,
            runs=run_list,
            store=self.store,
        )
        return self._iter_rule_set(rule_set, ctx)

    def _iter_rule_set(self, rule_set: RuleSet, ctx: EvaluationContext) -> Iterator[Finding]:
        for rule in rule_set.rules:
            if rule.kind is RuleKind.SINGLE_RUN:
                for run in ctx.runs:
                    yield from self._iter_rule(rule, ctx.for_run(run))
            else:
                yield from self._iter_rule(rule, ctx)

    def _iter_rule(self, rule: Rule, ctx: EvaluationContext) -> Iterator[Finding]:
        try:
            for finding in rule(ctx):
                if not isinstance(finding, Finding):
                    raise TypeError(f"expected Finding, got {type(finding).__name__}")
                if finding.rule is None:
                    finding = dataclasses.replace(finding, rule=rule.name)
                yield finding
        except RunNotFound as e:
            logger.debug("Rule %s does not apply: %s", rule.name, e)
        except Exception as e:
            where = f" for run {ctx.this_run}" if ctx.this_run else ""
            logger.warning("Rule %s failed%s: %s", rule.name, where, e, exc_info=True)
            yield Finding(
                message=f"Rule '{rule.name}' could not be evaluated{where}: {e}",
                status=Status.NOT_GOOD,
                rule=rule.name,
            )
