"""Tests for the running-instance matcher."""

from __future__ import annotations

import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil

from jdowser.scan.running import count_running, find_running_libraries


def _proc(pid, paths=None, error=None):
    proc = MagicMock()
    proc.pid = pid
    if error is not None:
        proc.memory_maps.side_effect = error
    else:
        proc.memory_maps.return_value = [SimpleNamespace(path=p) for p in paths]
    return proc


class TestFindRunningLibraries:
    def test_counts_each_process_once(self, tmp_path):
        lib = tmp_path / "libjvm.so"
        lib.write_bytes(b"")
        procs = [
            _proc(1, [str(lib), str(lib), "/usr/lib/libc.so.6"]),
            _proc(2, ["/usr/lib/libc.so.6", str(lib)]),
            _proc(3, ["/usr/lib/libc.so.6"]),
        ]
        with patch("jdowser.scan.running.psutil.process_iter", return_value=procs):
            assert find_running_libraries("libjvm.so") == {str(lib): 2}

    def test_skips_inaccessible_processes(self, tmp_path):
        lib = tmp_path / "libjvm.so"
        lib.write_bytes(b"")
        procs = [
            _proc(1, error=psutil.AccessDenied(1)),
            _proc(2, error=psutil.NoSuchProcess(2)),
            _proc(3, [str(lib)]),
        ]
        with patch("jdowser.scan.running.psutil.process_iter", return_value=procs):
            assert find_running_libraries("libjvm.so") == {str(lib): 1}

    def test_ignores_deleted_libraries(self, tmp_path):
        procs = [_proc(1, [str(tmp_path / "gone" / "libjvm.so")])]
        with patch("jdowser.scan.running.psutil.process_iter", return_value=procs):
            assert find_running_libraries("libjvm.so") == {}


class TestCountRunning:
    def test_same_file_through_symlink(self, tmp_path):
        lib = tmp_path / "real" / "libjvm.so"
        lib.parent.mkdir()
        lib.write_bytes(b"")
        link = tmp_path / "current"
        os.symlink(lib.parent, link)
        running = {str(link / "libjvm.so"): 2, str(lib): 1}
        assert count_running(str(lib), running) == 3

    def test_other_files_not_counted(self, tmp_path):
        a = tmp_path / "a.so"
        b = tmp_path / "b.so"
        a.write_bytes(b"")
        b.write_bytes(b"")
        assert count_running(str(a), {str(b): 4}) == 0

    def test_missing_library(self, tmp_path):
        assert count_running(str(tmp_path / "missing.so"), {str(tmp_path): 1}) == 0
