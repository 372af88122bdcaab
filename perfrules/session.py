"""Dashboard session: owns the loaded runs and evaluates rule sets against them."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .aggregator import aggregate, summary_counts
from .engine import RuleEngine
from .errors import SessionStateError
from .models import Finding
from .rules import RuleRegistry
from .run_store import RunStore, load_run_dir

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"


class DashboardSession:
    """
    One dashboard session.

    Lifecycle: UNINITIALIZED -> LOADED. Runs are loaded exactly once; after
    that the store is read-only and any number of evaluations may run.
    """

    def __init__(self, registry: RuleRegistry):
        self.registry = registry
        self.state = SessionState.UNINITIALIZED
        self._store: Optional[RunStore] = None
        self._engine: Optional[RuleEngine] = None

    @property
    def store(self) -> RunStore:
        self._require_loaded()
        return self._store

    def _require_loaded(self) -> None:
        if self.state is not SessionState.LOADED:
            raise SessionStateError("Session has no runs loaded yet")

    def load(self, store: RunStore) -> None:
        """Take ownership of a filled run store."""
        if self.state is SessionState.LOADED:
            raise SessionStateError("Session is already loaded")
        if len(store) == 0:
            raise ValueError("Cannot load a session without runs")
        self._store = store
        self._engine = RuleEngine(self.registry, store)
        self.state = SessionState.LOADED
        logger.info("Session loaded with runs: %s", ", ".join(store.run_names()))

    def load_dirs(self, run_dirs: Sequence[Union[str, Path]]) -> List[str]:
        """Load recorded run directories, in order. Returns the run names."""
        if self.state is SessionState.LOADED:
            raise SessionStateError("Session is already loaded")
        store = RunStore()
        names = [load_run_dir(store, d, self.registry.data_types()) for d in run_dirs]
        self.load(store)
        return names

    def run_names(self) -> List[str]:
        return self.store.run_names()

    def _resolve_runs(
        self,
        base_run: Optional[str],
        runs: Optional[Sequence[str]],
    ) -> Tuple[str, List[str]]:
        run_list = list(runs) if runs is not None else self.run_names()
        if not run_list:
            raise ValueError("run_list must contain at least one run")
        if base_run is None:
            return run_list[0], run_list
        if base_run not in run_list:
            # Base run is conventionally first
            run_list = [base_run] + run_list
        return base_run, run_list

    def evaluate(
        self,
        data_type: str,
        base_run: Optional[str] = None,
        runs: Optional[Sequence[str]] = None,
    ) -> List[Finding]:
        """
        Evaluate a data type's rules.

        Args:
            data_type: Registered data type
            base_run: Defaults to the first run in runs
            runs: Defaults to every loaded run in load order
        """
        self._require_loaded()
        base_run, run_list = self._resolve_runs(base_run, runs)
        return self._engine.evaluate(data_type, base_run, run_list)

    def report(
        self,
        data_type: str,
        base_run: Optional[str] = None,
        runs: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """JSON-ready result of one evaluation, grouped by status."""
        self._require_loaded()
        rule_set = self.registry.get(data_type)
        base_run, run_list = self._resolve_runs(base_run, runs)
        findings = self._engine.evaluate(data_type, base_run, run_list)
        return {
            "data_type": rule_set.data_type,
            "pretty_name": rule_set.pretty_name,
            "base_run": base_run,
            "runs": run_list,
            "findings": [f.as_dict() for f in findings],
            "by_status": {
                status.value: [f.as_dict() for f in bucket]
                for status, bucket in aggregate(findings).items()
            },
            "summary": summary_counts(findings),
        }
