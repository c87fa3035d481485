"""Renderers for status, installation reports and the tool version.

Each renderer returns the complete text to print; callers decide where it
goes.
"""

from __future__ import annotations

import csv
import io
import json
import time
from abc import ABC, abstractmethod

from jdowser.core.config import OutputFormat
from jdowser.probe.models import JVMInstallation
from jdowser.scan.status import ScanStatus

INSTALLATION_COLUMNS = [
    "host",
    "libjvm",
    "libjvm_hash",
    "java_home",
    "is_jdk",
    "java_version",
    "java_runtime_name",
    "java_runtime_version",
    "java_runtime_vendor",
    "java_vm_name",
    "java_vm_version",
    "java_vm_vendor",
    "running_instances",
]

STATUS_COLUMNS = ["host", "state", "start_time", "end_time", "args"]

NO_RESULTS = "No results found"
NO_REPORT_HINT = "Run 'jdowser start' to generate a report."


def format_timestamp(value: int) -> str:
    """Local time for real timestamps; sentinels (-1, -2) are shown as-is."""
    if value < 0:
        return str(value)
    return time.strftime("%Y-%m-%d %H:%M:%S %z", time.localtime(value))


def installation_row(inst: JVMInstallation) -> dict[str, str]:
    """Flat column -> value mapping in report column order."""
    data = inst.to_dict(include_running=True)
    flat = {key: data[key] for key in ("host", "libjvm", "libjvm_hash", "java_home")}
    flat["is_jdk"] = "true" if inst.is_jdk else "false"
    flat.update(data["version_info"])
    flat["running_instances"] = str(inst.running_instances)
    return {column: flat[column] for column in INSTALLATION_COLUMNS}


class Renderer(ABC):
    """Formats command output."""

    format_name: str

    @abstractmethod
    def render_status(self, status: ScanStatus) -> str: ...

    @abstractmethod
    def render_installations(
        self, installations: list[JVMInstallation], missing: bool = False
    ) -> str:
        """Render a report; ``missing`` means no scan has produced output yet."""

    @abstractmethod
    def render_version(self, version: str) -> str: ...


class TextRenderer(Renderer):
    format_name = OutputFormat.TEXT

    def render_status(self, status: ScanStatus) -> str:
        lines = [
            f"host: {status.host}",
            f"state: {status.state.value}",
            f"start_time: {format_timestamp(status.start_time)}",
            f"end_time: {format_timestamp(status.end_time)}",
            f"args: {' '.join(status.args)}",
        ]
        lines.extend(f"error: {error}" for error in status.errors)
        return "\n".join(lines)

    def render_installations(
        self, installations: list[JVMInstallation], missing: bool = False
    ) -> str:
        if not installations:
            return f"{NO_RESULTS}\n{NO_REPORT_HINT}" if missing else NO_RESULTS
        blocks = []
        for inst in installations:
            row = installation_row(inst)
            blocks.append("\n".join(f"{key}: {value}" for key, value in row.items()) + "\n")
        return "\n".join(blocks)

    def render_version(self, version: str) -> str:
        return f"jdowser version: {version}"


class CsvRenderer(Renderer):
    format_name = OutputFormat.CSV

    def render_status(self, status: ScanStatus) -> str:
        return self._table(
            STATUS_COLUMNS,
            [
                [
                    status.host,
                    status.state.value,
                    format_timestamp(status.start_time),
                    format_timestamp(status.end_time),
                    " ".join(status.args),
                ]
            ],
        )

    def render_installations(
        self, installations: list[JVMInstallation], missing: bool = False
    ) -> str:
        rows = [list(installation_row(inst).values()) for inst in installations]
        return self._table(INSTALLATION_COLUMNS, rows)

    def render_version(self, version: str) -> str:
        buf = io.StringIO()
        csv.writer(buf, lineterminator="\n").writerow(["version", version])
        return buf.getvalue().rstrip("\n")

    @staticmethod
    def _table(header: list[str], rows: list[list[str]]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
        return buf.getvalue().rstrip("\n")


class JsonRenderer(Renderer):
    format_name = OutputFormat.JSON

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def render_status(self, status: ScanStatus) -> str:
        return json.dumps(status.to_dict(), indent=self.indent)

    def render_installations(
        self, installations: list[JVMInstallation], missing: bool = False
    ) -> str:
        if not installations:
            return "[]"
        return json.dumps(
            [inst.to_dict(include_running=True) for inst in installations], indent=self.indent
        )

    def render_version(self, version: str) -> str:
        return json.dumps({"version": version})


_RENDERERS: dict[str, type[Renderer]] = {
    cls.format_name: cls for cls in (TextRenderer, CsvRenderer, JsonRenderer)
}


def get_renderer(output_format: str) -> Renderer:
    try:
        return _RENDERERS[output_format]()
    except KeyError:
        raise ValueError(f"unknown output format: {output_format}") from None
