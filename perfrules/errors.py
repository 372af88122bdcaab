"""Exceptions raised by the run store, the rule engine and the session."""

from __future__ import annotations


class UnknownDataType(KeyError):
    """No rule set is registered for the requested data type."""

    def __init__(self, data_type: str):
        super().__init__(data_type)
        self.data_type = data_type

    def __str__(self) -> str:
        return f"No rule set registered for data type: {self.data_type}"


class RunNotFound(KeyError):
    """A run identifier (or one of its payloads) is not in the run store."""

    def __init__(self, run: str, data_type: str | None = None):
        super().__init__(run)
        self.run = run
        self.data_type = data_type

    def __str__(self) -> str:
        if self.data_type:
            return f"Run '{self.run}' has no {self.data_type} data"
        return f"Unknown run: {self.run}"


class MalformedPayload(ValueError):
    """A raw payload does not have the documented structure."""


class SessionStateError(RuntimeError):
    """A session operation was attempted in the wrong lifecycle state."""
