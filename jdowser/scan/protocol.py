"""Messages exchanged between jdowser processes.

The launcher and the detached scan process talk through the environment
and signals:

- start token: ``JDOWSER_COOKIE=<cookie>`` marks the detached scan process
  (and everything it spawns), which lets ``stop`` find it later.
- ready notification: ``SIGUSR1`` to the pid in ``JDOWSER_PID`` once the scan
  holds the lock and the status says Running (or another scan was found).
- terminate request: ``SIGTERM`` to each process carrying the start token.
"""

from __future__ import annotations

import os
import signal
from collections.abc import Mapping
from dataclasses import dataclass

import psutil
import structlog

from jdowser.core.config import user_cache_dir

log = structlog.get_logger("jdowser.scan")

COOKIE_ENV = "JDOWSER_COOKIE"
PARENT_PID_ENV = "JDOWSER_PID"
CACHE_DIR_ENV = "JDOWSER_CACHE_DIR"

READY_SIGNAL = signal.SIGUSR1
TERMINATE_SIGNAL = signal.SIGTERM

# Inherited by the detached process when set
_PASSTHROUGH_ENV = ("HOME", "USER", "PATH", "PYTHONPATH")


@dataclass(frozen=True)
class StartToken:
    cookie: str

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> StartToken | None:
        cookie = env.get(COOKIE_ENV, "")
        return cls(cookie) if cookie else None

    def matches(self, env: Mapping[str, str]) -> bool:
        return env.get(COOKIE_ENV) == self.cookie


def detached_env(token: StartToken, parent_pid: int, env: Mapping[str, str]) -> dict[str, str]:
    """Minimal environment for the detached scan process."""
    child = {"LC_ALL": "C", COOKIE_ENV: token.cookie, PARENT_PID_ENV: str(parent_pid)}
    for name in _PASSTHROUGH_ENV:
        if name in env:
            child[name] = env[name]
    for name, value in env.items():
        if name.startswith("JDOWSER_") and name not in child:
            child[name] = value
    # The scan must land in the launcher's log directory
    child[CACHE_DIR_ENV] = user_cache_dir(env)
    return child


def scan_env(token: StartToken, env: Mapping[str, str]) -> dict[str, str]:
    """Environment for helper processes started by a scan."""
    child = dict(env)
    child["LC_ALL"] = "C"
    child[COOKIE_ENV] = token.cookie
    child.pop(PARENT_PID_ENV, None)
    return child


def parent_pid(env: Mapping[str, str]) -> int | None:
    """Pid of the launcher waiting for the ready notification, if any."""
    try:
        return int(env.get(PARENT_PID_ENV, ""))
    except ValueError:
        return None


def notify_ready(pid: int) -> bool:
    try:
        os.kill(pid, READY_SIGNAL)
    except ProcessLookupError:
        log.warning("protocol.launcher_gone", pid=pid)
        return False
    return True


def request_terminate(token: StartToken) -> list[int]:
    """Send the terminate signal to every other process carrying ``token``."""
    me = os.getpid()
    signalled = []
    for proc in psutil.process_iter(["pid"]):
        if proc.pid == me:
            continue
        try:
            if not token.matches(proc.environ()):
                continue
            proc.send_signal(TERMINATE_SIGNAL)
            signalled.append(proc.pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    log.info("protocol.terminate_sent", pids=signalled)
    return signalled
