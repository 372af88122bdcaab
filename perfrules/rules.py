"""perfrules.rules

Rule definitions and the rule set registry.

A *rule* is a named, pure evaluation unit for one data type. Its function
receives an :class:`EvaluationContext` and returns an iterator of
:class:`~perfrules.models.Finding` (normally a generator), so the engine can
pull findings one at a time and stop early.

Rules come in two shapes, selected by :class:`RuleKind`:

- ``single_run``: examines one run in isolation; the engine calls it once per
  run with ``ctx.this_run`` set.
- ``all_run``: examines the base run against every other run; the engine
  calls it once.

To add checks for a new data type, write the rule functions, wrap them in a
:class:`RuleSet` and register it on a :class:`RuleRegistry`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import UnknownDataType
from .models import Finding
from .run_store import RunStore


class RuleKind(str, Enum):
    SINGLE_RUN = "single_run"
    ALL_RUN = "all_run"


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs for one rule invocation.

    Attributes
    ----------
    data_type:
        Data type whose rule set is being evaluated.
    base_run:
        Run every other run is compared against.
    runs:
        All runs being compared, in caller order (base run conventionally first).
    store:
        Read-only access to run metadata and payloads.
    this_run:
        The run under examination. Set only for ``single_run`` rules.
    """

    data_type: str
    base_run: str
    runs: Tuple[str, ...]
    store: RunStore
    this_run: Optional[str] = None

    @staticmethod
    def build(
        *,
        data_type: str,
        base_run: str,
        runs: Sequence[str],
        store: RunStore,
    ) -> "EvaluationContext":
        runs = tuple(str(r) for r in runs)
        if not runs:
            raise ValueError("run_list must contain at least one run")
        if base_run not in runs:
            raise ValueError(f"base_run '{base_run}' is not in run_list {list(runs)}")
        return EvaluationContext(
            data_type=str(data_type),
            base_run=str(base_run),
            runs=runs,
            store=store,
        )

    @property
    def other_runs(self) -> Tuple[str, ...]:
        return tuple(r for r in self.runs if r != self.base_run)

    def for_run(self, run: str) -> "EvaluationContext":
        return EvaluationContext(
            data_type=self.data_type,
            base_run=self.base_run,
            runs=self.runs,
            store=self.store,
            this_run=run,
        )


RuleFunc = Callable[[EvaluationContext], Iterator[Finding]]


@dataclass(frozen=True)
class Rule:
    name: str
    kind: RuleKind
    func: RuleFunc
    description: str = ""

    def __call__(self, ctx: EvaluationContext) -> Iterator[Finding]:
        return iter(self.func(ctx))


@dataclass(frozen=True)
class RuleSet:
    """The ordered rules registered for one data type."""

    data_type: str
    pretty_name: str
    rules: Tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        # Normalise lists to tuples so the set stays immutable.
        object.__setattr__(self, "rules", tuple(self.rules))
        seen = set()
        for rule in self.rules:
            if rule.name in seen:
                raise ValueError(f"Duplicate rule name '{rule.name}' in rule set {self.data_type}")
            seen.add(rule.name)

    def rule_names(self) -> List[str]:
        return [r.name for r in self.rules]


class RuleRegistry:
    """Rule sets keyed by data type. Written once at start-up, read many times."""

    def __init__(self, rule_sets: Sequence[RuleSet] = ()) -> None:
        self._rule_sets: Dict[str, RuleSet] = {}
        for rule_set in rule_sets:
            self.register(rule_set)

    def register(self, rule_set: RuleSet) -> RuleSet:
        if rule_set.data_type in self._rule_sets:
            raise ValueError(f"Rule set already registered for data type: {rule_set.data_type}")
        self._rule_sets[rule_set.data_type] = rule_set
        return rule_set

    def get(self, data_type: str) -> RuleSet:
        if data_type not in self._rule_sets:
            raise UnknownDataType(data_type)
        return self._rule_sets[data_type]

    def data_types(self) -> List[str]:
        return list(self._rule_sets)

    def __contains__(self, data_type: object) -> bool:
        return data_type in self._rule_sets


def single_run_rule(name: str, description: str = "") -> Callable[[RuleFunc], Rule]:
    """Decorator turning a generator function into a ``single_run`` :class:`Rule`."""

    def _decorator(fn: RuleFunc) -> Rule:
        return Rule(name=name, kind=RuleKind.SINGLE_RUN, func=fn, description=description)

    return _decorator


def all_run_rule(name: str, description: str = "") -> Callable[[RuleFunc], Rule]:
    """Decorator turning a generator function into an ``all_run`` :class:`Rule`."""

    def _decorator(fn: RuleFunc) -> Rule:
        return Rule(name=name, kind=RuleKind.ALL_RUN, func=fn, description=description)

    return _decorator
