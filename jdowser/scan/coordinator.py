"""Command orchestration: start, stop, status and report.

``start`` without ``--wait`` re-executes jdowser as a detached scan process
and waits for it to report that it holds the lock. The scan process writes
one JSON line per installation to ``jdowser.out`` and keeps the status file
current. Later invocations only read what it leaves behind.
"""

from __future__ import annotations

import json
import os
import signal
import subprocess
import sys
import threading
import traceback
from collections.abc import Callable, Mapping
from contextlib import closing

import click
import structlog

from jdowser.core.config import Config
from jdowser.exceptions import JdowserError, LockContendedError, ScanTerminated
from jdowser.probe.installation import InstallationInspector
from jdowser.probe.models import JVMInstallation
from jdowser.probe.pipeline import VersionProbe
from jdowser.reporting import Renderer
from jdowser.scan.enumerator import find_libraries
from jdowser.scan.lock import ScanLock
from jdowser.scan.protocol import (
    READY_SIGNAL,
    StartToken,
    detached_env,
    notify_ready,
    parent_pid,
    request_terminate,
    scan_env,
)
from jdowser.scan.running import count_running, find_running_libraries
from jdowser.scan.status import NOT_SET, ScanState, ScanStatus, StatusStore

log = structlog.get_logger("jdowser.scan")

# How often the launcher checks whether the detached process died early
_LAUNCH_POLL_INTERVAL = 0.1

_TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ScanCoordinator:
    """Runs the jdowser commands against one user's log directory."""

    def __init__(
        self,
        config: Config,
        renderer: Renderer,
        env: Mapping[str, str] | None = None,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.env = dict(os.environ if env is None else env)
        self.echo = echo
        self.token = StartToken(config.cookie)
        self.store = StatusStore(config.status_file_path, config.error_file_path, config.host)

    # ── start ────────────────────────────────────────────────────────────

    def start(self) -> int:
        """Launch a detached scan, or run it here when already detached or waiting."""
        if StartToken.from_env(self.env) is None and not self.config.wait:
            return self.launch()
        return self.run_scan()

    def launch(self) -> int:
        ready = threading.Event()
        previous = signal.signal(READY_SIGNAL, lambda signum, frame: ready.set())
        try:
            command = [
                sys.executable,
                "-m",
                "jdowser",
                *self.config.global_args(),
                "start",
                *self.config.start_args(),
            ]
            try:
                proc = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    env=detached_env(self.token, os.getpid(), self.env),
                    start_new_session=True,
                    close_fds=True,
                )
            except OSError as e:
                log.error("start.spawn_failed", error=str(e))
                self.echo(f"Error: cannot start scan process: {e}")
                return 1
            log.debug("start.spawned", pid=proc.pid, command=command)

            while not ready.wait(_LAUNCH_POLL_INTERVAL):
                if proc.poll() is not None:
                    log.warning("start.exited_early", pid=proc.pid, returncode=proc.returncode)
                    break
        finally:
            signal.signal(READY_SIGNAL, previous)

        self._render_status()
        return 0

    def run_scan(self) -> int:
        """Scan under the lock, or report the scan that already holds it."""
        launcher = parent_pid(self.env)
        lock = ScanLock(self.config.lock_file_path)
        try:
            lock.try_acquire()
        except LockContendedError:
            log.info("scan.already_running", lock=lock.path)
            self._report_progress(launcher)
            if self.config.wait:
                lock.acquire()
                lock.release()
                self._report_progress(launcher)
            return 0
        except OSError as e:
            log.error("scan.lock_failed", lock=lock.path, error=str(e))
            message = f"cannot open scan lock {lock.path}: {e}"
            if launcher is None:
                self.echo(f"Error: {message}")
            else:
                # The launcher renders the status, which carries the error file
                try:
                    self._append_error(message)
                except OSError as write_error:
                    log.error("scan.error_file_failed", error=str(write_error))
                notify_ready(launcher)
            return 1

        status = self.store.new(self.config.start_args())
        previous = {
            signum: signal.signal(signum, _raise_terminated)
            for signum in _TERMINATION_SIGNALS
        }
        try:
            rc = self._scan(status, launcher)
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
            lock.release()

        if self.config.wait:
            self._render_status()
        return rc

    def _scan(self, status: ScanStatus, launcher: int | None) -> int:
        try:
            for path in (self.config.output_file_path, self.config.error_file_path):
                open(path, "w").close()
            self.store.set_state(status, ScanState.RUNNING)
            if launcher is not None:
                notify_ready(launcher)
            count = self._enumerate()
            _ignore_termination()
        except ScanTerminated as e:
            _ignore_termination()
            log.warning("scan.terminated", signal=e.signum)
            self.store.set_state(status, ScanState.TERMINATED)
            return 1
        except Exception as e:
            _ignore_termination()
            log.exception("scan.failed")
            self._record_error(e)
            self.store.set_state(status, ScanState.ERROR)
            return 1

        self.store.set_state(status, ScanState.FINISHED)
        log.info("scan.finished", installations=count)
        return 0

    def _enumerate(self) -> int:
        env = scan_env(self.token, self.env)
        probe = VersionProbe(allow_running_java=not self.config.no_jvm_run, env=env)
        inspector = InstallationInspector(probe, self.config.host)
        libraries = find_libraries(
            self.config.root, self.config.skip_fs, self.config.lib_file_name, env=env
        )
        count = 0
        with open(self.config.output_file_path, "a") as out, closing(libraries):
            for libjvm in libraries:
                inst = inspector.inspect(libjvm)
                out.write(json.dumps(inst.to_dict()) + "\n")
                out.flush()
                count += 1
        return count

    def _record_error(self, error: Exception) -> None:
        if isinstance(error, JdowserError):
            message = str(error)
        else:
            message = "".join(traceback.format_exception_only(type(error), error)).strip()
        self._append_error(message)

    def _append_error(self, message: str) -> None:
        with open(self.config.error_file_path, "a") as f:
            f.write(message + "\n")

    def _report_progress(self, launcher: int | None) -> None:
        if launcher is not None:
            notify_ready(launcher)
        else:
            self._render_status()

    # ── stop ─────────────────────────────────────────────────────────────

    def stop(self) -> int:
        request_terminate(self.token)
        self._render_status()
        return 0

    # ── status ───────────────────────────────────────────────────────────

    def status(self) -> int:
        lock = ScanLock(self.config.lock_file_path)
        try:
            if self.config.wait:
                lock.acquire()
            else:
                lock.try_acquire()
        except LockContendedError:
            pass
        except OSError as e:
            log.error("status.lock_failed", lock=lock.path, error=str(e))
            self.echo(f"Error: cannot open scan lock {lock.path}: {e}")
            return 1
        else:
            try:
                status = self.store.read()
                # Lock is free but the scan never recorded an end
                if (
                    status is not None
                    and status.state is ScanState.RUNNING
                    and status.end_time == NOT_SET
                ):
                    log.warning("status.scanner_lost", start_time=status.start_time)
                    self.store.set_state(status, ScanState.UNKNOWN)
            finally:
                lock.release()

        self._render_status()
        return 0

    # ── report ───────────────────────────────────────────────────────────

    def report(self) -> int:
        lock = ScanLock(self.config.lock_file_path)
        if self.config.wait:
            try:
                lock.acquire()
            except OSError as e:
                self.echo(f"Error: cannot open scan lock {lock.path}: {e}")
                return 1
        try:
            installations, missing = self.load_installations()
        finally:
            lock.release()

        if installations:
            running = find_running_libraries(self.config.lib_file_name)
            for inst in installations:
                inst.running_instances = count_running(inst.libjvm, running)
        self.echo(self.renderer.render_installations(installations, missing=missing))
        return 0

    def load_installations(self) -> tuple[list[JVMInstallation], bool]:
        """Parse ``jdowser.out``; returns the records and whether the file is missing."""
        installations = []
        try:
            with open(self.config.output_file_path) as f:
                for lineno, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        installations.append(JVMInstallation.from_dict(json.loads(line)))
                    except (ValueError, KeyError, TypeError, AttributeError) as e:
                        log.debug("report.bad_line", lineno=lineno, error=str(e))
        except FileNotFoundError:
            return [], True
        return installations, False

    def _render_status(self) -> None:
        self.echo(self.renderer.render_status(self.store.current()))


def _raise_terminated(signum, frame):
    # Only the first signal interrupts the scan
    _ignore_termination()
    raise ScanTerminated(signum)


def _ignore_termination() -> None:
    for signum in _TERMINATION_SIGNALS:
        signal.signal(signum, signal.SIG_IGN)
