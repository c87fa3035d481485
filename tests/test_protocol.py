"""Tests for the inter-process protocol helpers."""

from __future__ import annotations

import signal
from unittest.mock import MagicMock, patch

import psutil

from jdowser.core.config import user_cache_dir
from jdowser.scan.protocol import (
    CACHE_DIR_ENV,
    COOKIE_ENV,
    PARENT_PID_ENV,
    StartToken,
    detached_env,
    notify_ready,
    parent_pid,
    request_terminate,
    scan_env,
)


class TestStartToken:
    def test_from_env(self):
        assert StartToken.from_env({COOKIE_ENV: "alice"}) == StartToken("alice")
        assert StartToken.from_env({COOKIE_ENV: ""}) is None
        assert StartToken.from_env({}) is None

    def test_matches(self):
        token = StartToken("alice")
        assert token.matches({COOKIE_ENV: "alice", "PATH": "/bin"})
        assert not token.matches({COOKIE_ENV: "bob"})


class TestEnvironments:
    def test_detached_env_is_minimal(self):
        env = {
            "HOME": "/home/alice",
            "USER": "alice",
            "PATH": "/bin",
            "SECRET_TOKEN": "x",
            "JDOWSER_CACHE_DIR": "/cache",
        }
        child = detached_env(StartToken("alice"), 77, env)
        assert child == {
            "LC_ALL": "C",
            COOKIE_ENV: "alice",
            PARENT_PID_ENV: "77",
            "HOME": "/home/alice",
            "USER": "alice",
            "PATH": "/bin",
            "JDOWSER_CACHE_DIR": "/cache",
        }

    def test_detached_env_keeps_launcher_cache_dir(self, monkeypatch):
        monkeypatch.setattr("jdowser.core.config.sys.platform", "linux")
        env = {"HOME": "/home/alice", "PATH": "/bin", "XDG_CACHE_HOME": "/xdg/cache"}
        child = detached_env(StartToken("alice"), 77, env)
        assert child[CACHE_DIR_ENV] == "/xdg/cache"
        assert user_cache_dir(child) == user_cache_dir(env)

    def test_detached_env_default_cache_dir(self, monkeypatch):
        monkeypatch.setattr("jdowser.core.config.sys.platform", "linux")
        env = {"HOME": "/home/alice"}
        child = detached_env(StartToken("alice"), 77, env)
        assert user_cache_dir(child) == "/home/alice/.cache"

    def test_scan_env_drops_parent_pid(self):
        env = scan_env(StartToken("alice"), {"PATH": "/bin", PARENT_PID_ENV: "77", "LC_ALL": "de_DE"})
        assert env == {"PATH": "/bin", "LC_ALL": "C", COOKIE_ENV: "alice"}

    def test_parent_pid(self):
        assert parent_pid({PARENT_PID_ENV: "123"}) == 123
        assert parent_pid({PARENT_PID_ENV: "abc"}) is None
        assert parent_pid({}) is None


class TestSignals:
    def test_notify_ready(self):
        with patch("jdowser.scan.protocol.os.kill") as kill:
            assert notify_ready(55)
        kill.assert_called_once_with(55, signal.SIGUSR1)

    def test_notify_ready_launcher_gone(self):
        with patch("jdowser.scan.protocol.os.kill", side_effect=ProcessLookupError):
            assert not notify_ready(55)

    def test_request_terminate(self):
        def proc(pid, env=None, error=None):
            p = MagicMock(pid=pid)
            if error is not None:
                p.environ.side_effect = error
            else:
                p.environ.return_value = env
            return p

        procs = [
            proc(10, {COOKIE_ENV: "alice"}),
            proc(11, {COOKIE_ENV: "bob"}),
            proc(12, error=psutil.AccessDenied(12)),
            proc(13, {}),
        ]
        with patch("jdowser.scan.protocol.os.getpid", return_value=1), patch(
            "jdowser.scan.protocol.psutil.process_iter", return_value=procs
        ):
            assert request_terminate(StartToken("alice")) == [10]
        procs[0].send_signal.assert_called_once_with(signal.SIGTERM)
        procs[1].send_signal.assert_not_called()

    def test_request_terminate_skips_self(self):
        with patch("jdowser.scan.protocol.os.getpid", return_value=10):
            me = MagicMock(pid=10)
            me.environ.return_value = {COOKIE_ENV: "alice"}
            with patch("jdowser.scan.protocol.psutil.process_iter", return_value=[me]):
                assert request_terminate(StartToken("alice")) == []
        me.send_signal.assert_not_called()
