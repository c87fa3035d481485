"""Count live processes that have a JVM library mapped."""

from __future__ import annotations

import os
from collections import Counter

import psutil
import structlog

log = structlog.get_logger("jdowser.scan")


def find_running_libraries(lib_file_name: str) -> dict[str, int]:
    """Map each mapped JVM library path to the number of processes using it.

    Processes that vanish or cannot be inspected are skipped.
    """
    counts: Counter[str] = Counter()
    for proc in psutil.process_iter(["pid"]):
        try:
            maps = proc.memory_maps(grouped=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        except OSError as e:
            log.debug("running.maps_unreadable", pid=proc.pid, error=str(e))
            continue
        for mapping in maps:
            path = mapping.path
            if lib_file_name in path and path.startswith("/") and os.path.exists(path):
                counts[path] += 1
                break
    return dict(counts)


def count_running(libjvm: str, running: dict[str, int]) -> int:
    """Running instances of ``libjvm``, comparing file identity rather than path."""
    total = 0
    for path, count in running.items():
        try:
            if os.path.samefile(path, libjvm):
                total += count
        except OSError:
            continue
    return total
