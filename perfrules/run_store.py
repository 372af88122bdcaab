"""Per-run metadata and raw measurement payloads.

The store is filled once while a session loads its runs and is read-only
afterwards. Raw payloads are kept exactly as loaded; :meth:`RunStore.get_series`
is the boundary where a payload is validated against the documented
``collect``/``print`` shape and turned into numpy arrays.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import yaml

from .constants import (
    APERF_RUN_STATS,
    META_DATA_FILE,
    PAYLOAD_FILE_SUFFIX,
    SERIES_COLLECT,
    SERIES_PRINT,
)
from .errors import MalformedPayload, RunNotFound
from .models import RunMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """One named series: elapsed time since start (x) and time taken in us (y)."""
    time_diff: np.ndarray
    time_taken: np.ndarray

    def __len__(self) -> int:
        return len(self.time_taken)

    def as_dict(self) -> Dict[str, List[float]]:
        return {
            "x": self.time_diff.tolist(),
            "y": self.time_taken.tolist(),
        }


@dataclass(frozen=True, eq=False)
class StatsSeries:
    """Validated aperf_run_stats payload for one run."""
    collect: TimeSeries
    print: TimeSeries

    def series(self, name: str) -> TimeSeries:
        if name == SERIES_COLLECT:
            return self.collect
        if name == SERIES_PRINT:
            return self.print
        raise KeyError(f"Unknown series: {name}")


def _parse_entries(entries: Any, series_name: str) -> TimeSeries:
    if not isinstance(entries, list):
        raise MalformedPayload(f"'{series_name}' must be a list, got {type(entries).__name__}")

    xs: List[float] = []
    ys: List[float] = []
    for i, entry in enumerate(entries):
        where = f"{series_name}[{i}]"
        if not isinstance(entry, Mapping):
            raise MalformedPayload(f"{where} must be an object")
        time = entry.get("time")
        if not isinstance(time, Mapping) or "TimeDiff" not in time:
            raise MalformedPayload(f"{where} is missing time.TimeDiff")
        if "time_taken" not in entry:
            raise MalformedPayload(f"{where} is missing time_taken")

        x, y = time["TimeDiff"], entry["time_taken"]
        for label, value in (("time.TimeDiff", x), ("time_taken", y)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise MalformedPayload(f"{where}.{label} must be a number, got {value!r}")
        xs.append(float(x))
        ys.append(float(y))

    return TimeSeries(
        time_diff=np.array(xs, dtype=float),
        time_taken=np.array(ys, dtype=float),
    )


def parse_stats_payload(payload: Union[str, bytes, Mapping[str, Any]]) -> StatsSeries:
    """
    Validate a raw aperf_run_stats payload.

    Expected format (either as a mapping or as its JSON text):
    {
      "collect": [{"time": {"TimeDiff": 1}, "time_taken": 120}, ...],
      "print":   [{"time": {"TimeDiff": 1}, "time_taken": 80}, ...]
    }

    Raises:
        MalformedPayload: If the payload is not valid JSON or not of that shape
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedPayload(f"Payload is not valid JSON: {e}") from e

    if not isinstance(payload, Mapping):
        raise MalformedPayload(f"Payload must be an object, got {type(payload).__name__}")

    missing = [k for k in (SERIES_COLLECT, SERIES_PRINT) if k not in payload]
    if missing:
        raise MalformedPayload(f"Payload is missing field(s): {', '.join(missing)}")

    return StatsSeries(
        collect=_parse_entries(payload[SERIES_COLLECT], SERIES_COLLECT),
        print=_parse_entries(payload[SERIES_PRINT], SERIES_PRINT),
    )


@dataclass
class RunRecord:
    name: str
    metadata: RunMetadata
    payloads: Dict[str, Any] = field(default_factory=dict)


class RunStore:
    """Run data keyed by run identifier, in load order."""

    def __init__(self) -> None:
        self._runs: Dict[str, RunRecord] = {}
        self._series: Dict[Tuple[str, str], StatsSeries] = {}

    def __contains__(self, run: object) -> bool:
        return run in self._runs

    def __len__(self) -> int:
        return len(self._runs)

    def add_run(
        self,
        name: str,
        metadata: Union[RunMetadata, Mapping[str, Any], None] = None,
        payloads: Optional[Mapping[str, Any]] = None,
    ) -> RunRecord:
        """Register one run. Only used while loading."""
        if not name:
            raise ValueError("Run name must be non-empty")
        if name in self._runs:
            raise ValueError(f"Duplicate run name: {name}")

        if metadata is None:
            meta = RunMetadata(run_name=name)
        elif isinstance(metadata, RunMetadata):
            meta = metadata
        else:
            meta = RunMetadata.from_dict(metadata, run_name=name)

        record = RunRecord(name=name, metadata=meta, payloads=dict(payloads or {}))
        self._runs[name] = record
        return record

    def run_names(self) -> List[str]:
        return list(self._runs)

    def _record(self, run: str) -> RunRecord:
        try:
            return self._runs[run]
        except KeyError:
            raise RunNotFound(run) from None

    def get_metadata(self, run: str) -> RunMetadata:
        return self._record(run).metadata

    def get_raw_data(self, run: str, data_type: str) -> Any:
        record = self._record(run)
        if data_type not in record.payloads:
            raise RunNotFound(run, data_type)
        return record.payloads[data_type]

    def get_series(self, run: str, data_type: str = APERF_RUN_STATS) -> StatsSeries:
        """Validated series for one run; parsed once and cached."""
        key = (run, data_type)
        if key not in self._series:
            self._series[key] = parse_stats_payload(self.get_raw_data(run, data_type))
        return self._series[key]


def _find_payload_file(run_dir: Path, data_type: str) -> Optional[Path]:
    for path in sorted(run_dir.iterdir()):
        if path.is_file() and data_type in path.name and path.name.endswith(PAYLOAD_FILE_SUFFIX):
            return path
    return None


def read_meta_data(run_dir: Path) -> Dict[str, Any]:
    """
    Read the recorder's meta_data.yaml from a run directory.

    The file may hold several YAML documents; the last one wins.

    Raises:
        FileNotFoundError: If the directory has no meta_data.yaml
        MalformedPayload: If the YAML is invalid or not a mapping
    """
    path = Path(run_dir) / META_DATA_FILE
    if not path.exists():
        raise FileNotFoundError(f"Metadata file not found: {path}")

    doc: Any = None
    with open(path, "r") as f:
        try:
            for document in yaml.safe_load_all(f):
                if document is not None:
                    doc = document
        except yaml.YAMLError as e:
            raise MalformedPayload(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(doc, dict):
        raise MalformedPayload(f"{path} must contain a mapping")
    return doc


def load_run_dir(
    store: RunStore,
    run_dir: Union[str, Path],
    data_types: Sequence[str] = (APERF_RUN_STATS,),
) -> str:
    """
    Load one recorded run directory into the store.

    Layout:
        <run_dir>/meta_data.yaml
        <run_dir>/*<data_type>*.json   (one per data type, optional)

    Payload files are stored unparsed; a broken file only affects the rules
    that read it.

    Returns:
        The run name (metadata run_name, or the directory name if unset)

    Raises:
        FileNotFoundError: If run_dir or its metadata file does not exist
    """
    path = Path(run_dir)
    if not path.is_dir():
        raise FileNotFoundError(f"Run directory not found: {run_dir}")

    raw_meta = read_meta_data(path)
    name = str(raw_meta.get("run_name") or path.name)

    payloads: Dict[str, Any] = {}
    for data_type in data_types:
        payload_file = _find_payload_file(path, data_type)
        if payload_file is None:
            logger.debug("Run %s has no %s data in %s", name, data_type, path)
            continue
        payloads[data_type] = payload_file.read_text()

    store.add_run(name, RunMetadata.from_dict(raw_meta, run_name=name), payloads)
    logger.info("Loaded run %s (%d data type(s)) from %s", name, len(payloads), path)
    return name
