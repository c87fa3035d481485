"""Enumerate candidate JVM libraries with find(1)."""

from __future__ import annotations

import os
import subprocess
import threading
from collections.abc import Iterator

import structlog

from jdowser.exceptions import EnumerationError

log = structlog.get_logger("jdowser.scan")


def build_find_command(root: str, skip_fs: list[str], file_name: str) -> list[str]:
    """``find ROOT ( -fstype a -o -fstype b ) -prune -o -xdev -type f -name NAME -print``"""
    command = ["find", root]
    if skip_fs:
        command.append("(")
        for i, fs in enumerate(skip_fs):
            if i:
                command.append("-o")
            command.extend(["-fstype", fs])
        command.extend([")", "-prune", "-o"])
    command.extend(["-xdev", "-type", "f", "-name", file_name, "-print"])
    return command


def find_libraries(
    root: str,
    skip_fs: list[str],
    file_name: str,
    env: dict[str, str] | None = None,
) -> Iterator[str]:
    """Yield paths of files named ``file_name`` under ``root`` on its device.

    stderr is drained on a separate thread so a chatty find cannot block on
    a full pipe. find's own errors (unreadable directories and the like) are
    ignored.

    Raises:
        EnumerationError: root is not a directory or find cannot be started.
    """
    if not os.path.isdir(root):
        raise EnumerationError(f"scan root {root} is not a directory")

    command = build_find_command(root, skip_fs, file_name)
    try:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
            text=True,
            errors="surrogateescape",
        )
    except OSError as e:
        raise EnumerationError(f"cannot run find: {e}") from e

    assert proc.stdout is not None and proc.stderr is not None
    stderr_lines: list[str] = []
    drain = threading.Thread(
        target=lambda: stderr_lines.extend(proc.stderr), name="find-stderr", daemon=True
    )
    drain.start()

    try:
        for line in proc.stdout:
            path = line.rstrip("\n")
            if path:
                yield path
        proc.wait()
    finally:
        if proc.poll() is None:
            proc.kill()
        returncode = proc.wait()
        drain.join()
        proc.stdout.close()
        proc.stderr.close()
        log.debug(
            "enumerate.done", root=root, returncode=returncode, errors=len(stderr_lines)
        )
