"""Shared fixtures for the perfrules test suite."""
import json

import pytest
import yaml

from perfrules import RunStore


def _entries(times):
    return [{"time": {"TimeDiff": i + 1}, "time_taken": t} for i, t in enumerate(times)]


@pytest.fixture
def make_payload():
    """Build an aperf_run_stats payload from collect/print time_taken lists (us)."""
    def _make(collect, print_times=None):
        return {
            "collect": _entries(collect),
            "print": _entries(print_times if print_times is not None else collect),
        }
    return _make


@pytest.fixture
def make_store():
    """Build a RunStore from {run: metadata} and optional {run: payload}."""
    def _make(metadata, payloads=None):
        store = RunStore()
        payloads = payloads or {}
        for run, meta in metadata.items():
            data = {"aperf_run_stats": payloads[run]} if run in payloads else {}
            store.add_run(run, meta, data)
        return store
    return _make


@pytest.fixture
def write_run_dir(tmp_path):
    """Write a recorded run directory (meta_data.yaml + payload file)."""
    def _write(name, meta, payload=None, payload_text=None):
        run_dir = tmp_path / name
        run_dir.mkdir()
        (run_dir / "meta_data.yaml").write_text(yaml.safe_dump(dict(meta, run_name=name)))
        if payload is not None:
            payload_text = json.dumps(payload)
        if payload_text is not None:
            (run_dir / "aperf_run_stats.json").write_text(payload_text)
        return run_dir
    return _write
