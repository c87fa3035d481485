"""Persisted scan status — a small state machine in ``jdowser.status``."""

from __future__ import annotations

import json
import os
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

log = structlog.get_logger("jdowser.scan")

# end_time sentinels
NOT_SET = -1
INDETERMINATE = -2


class ScanState(str, Enum):
    UNKNOWN = "Unknown"
    RUNNING = "Running"
    FINISHED = "Finished"
    TERMINATED = "Terminated"
    ERROR = "Error"


@dataclass
class ScanStatus:
    host: str
    state: ScanState = ScanState.UNKNOWN
    start_time: int = NOT_SET
    end_time: int = NOT_SET
    args: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "host": self.host,
            "state": self.state.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "args": list(self.args),
        }
        if self.errors:
            data["error"] = list(self.errors)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanStatus:
        return cls(
            host=data.get("host", ""),
            state=ScanState(data.get("state", ScanState.UNKNOWN.value)),
            start_time=int(data.get("start_time", NOT_SET)),
            end_time=int(data.get("end_time", NOT_SET)),
            args=list(data.get("args") or []),
            errors=list(data.get("error") or []),
        )


class StatusStore:
    """Reads and writes the status file, merging in captured error lines."""

    def __init__(self, status_path: str, error_path: str, host: str) -> None:
        self.status_path = status_path
        self.error_path = error_path
        self.host = host

    def new(self, args: list[str] | None = None) -> ScanStatus:
        return ScanStatus(host=self.host, args=list(args or []))

    def read(self) -> ScanStatus | None:
        """Last persisted status, or None if there is none or it is unreadable."""
        try:
            with open(self.status_path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            status = ScanStatus.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, TypeError, KeyError) as e:
            log.warning("status.unreadable", path=self.status_path, error=str(e))
            return None

        self._merge_errors(status)
        return status

    def current(self) -> ScanStatus:
        """Like read(), but never None: a fresh status still carries recorded errors."""
        status = self.read()
        if status is None:
            status = self.new()
            self._merge_errors(status)
        return status

    def _merge_errors(self, status: ScanStatus) -> None:
        try:
            with open(self.error_path) as f:
                status.errors.extend(line.strip() for line in f if line.strip())
        except FileNotFoundError:
            pass

    def set_state(self, status: ScanStatus, state: ScanState) -> None:
        """Transition ``status`` and persist it before returning."""
        now = int(time.time())
        if state is ScanState.RUNNING:
            status.start_time = now
        elif state in (ScanState.FINISHED, ScanState.TERMINATED):
            status.end_time = now
        elif state is ScanState.UNKNOWN:
            status.end_time = INDETERMINATE
        status.state = state
        self._write(status)
        log.debug("status.transition", state=state.value)

    def _write(self, status: ScanStatus) -> None:
        # Errors live in the error file; keep them out of the status file so
        # read() does not merge them twice.
        data = status.to_dict()
        data.pop("error", None)
        directory = os.path.dirname(self.status_path) or "."
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".status-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
                f.write("\n")
            os.replace(tmp, self.status_path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
