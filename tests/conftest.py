"""Shared pytest fixtures for jdowser tests."""

from __future__ import annotations

import pytest

from jdowser.core.config import Config


@pytest.fixture
def log_dir(tmp_path):
    path = tmp_path / "cache" / "jdowser" / "testhost" / "tester"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def config(log_dir, tmp_path):
    return Config(
        log_dir=str(log_dir),
        host="testhost",
        user="tester",
        lib_file_name="libjvm.so",
        root=str(tmp_path / "root"),
        skip_fs=[],
    )


@pytest.fixture
def cache_env(tmp_path, monkeypatch):
    """Point the cache root at tmp_path for code that calls load_config()."""
    cache = tmp_path / "cache"
    monkeypatch.setenv("JDOWSER_CACHE_DIR", str(cache))
    return cache


@pytest.fixture(autouse=True)
def _no_inherited_token(monkeypatch):
    """Tests never run as a detached scan process."""
    for name in ("JDOWSER_COOKIE", "JDOWSER_PID", "JDOWSER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
