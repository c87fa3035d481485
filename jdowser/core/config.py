"""Runtime configuration — command-line options plus environment overrides."""

from __future__ import annotations

import getpass
import os
import re
import socket
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from jdowser.exceptions import ConfigurationError

DEFAULT_ROOT = "/"
DEFAULT_SKIP_FS = "nfs,tmpfs,proc"

OUTPUT_FILE_NAME = "jdowser.out"
ERROR_FILE_NAME = "jdowser.err"
STATUS_FILE_NAME = "jdowser.status"
LOG_FILE_NAME = "jdowser.log"
LOCK_FILE_NAME = ".lck"

_SKIP_FS_RE = re.compile(r"^[a-z,]*$")


class OutputFormat:
    TEXT = "text"
    CSV = "csv"
    JSON = "json"


@dataclass
class Config:
    """Settings shared by every command."""

    log_dir: str
    host: str
    user: str
    lib_file_name: str = "libjvm.so"
    root: str = DEFAULT_ROOT
    skip_fs: list[str] = field(default_factory=list)
    no_jvm_run: bool = False
    wait: bool = False
    output_format: str = OutputFormat.TEXT
    verbose: bool = False

    @property
    def cookie(self) -> str:
        """Value of the coordination token; one scan per user and host."""
        return self.user

    @property
    def output_file_path(self) -> str:
        return os.path.join(self.log_dir, OUTPUT_FILE_NAME)

    @property
    def error_file_path(self) -> str:
        return os.path.join(self.log_dir, ERROR_FILE_NAME)

    @property
    def status_file_path(self) -> str:
        return os.path.join(self.log_dir, STATUS_FILE_NAME)

    @property
    def lock_file_path(self) -> str:
        return os.path.join(self.log_dir, LOCK_FILE_NAME)

    @property
    def log_file_path(self) -> str:
        return os.path.join(self.log_dir, LOG_FILE_NAME)

    def global_args(self) -> list[str]:
        """Group-level flags, in the order the CLI accepts them."""
        args: list[str] = []
        if self.output_format == OutputFormat.JSON:
            args.append("--json")
        elif self.output_format == OutputFormat.CSV:
            args.append("--csv")
        if self.wait:
            args.append("--wait")
        if self.verbose:
            args.append("--verbose")
        return args

    def start_args(self) -> list[str]:
        """Flags of the ``start`` command that reproduce this scan."""
        args = ["--root", self.root, "--skipfs", ",".join(self.skip_fs)]
        if self.no_jvm_run:
            args.append("--nojvmrun")
        return args


def lib_file_name(platform: str | None = None) -> str:
    """File name of the JVM shared library on this platform."""
    platform = platform or sys.platform
    if platform == "darwin":
        return "libjvm.dylib"
    return "libjvm.so"


def user_cache_dir(env: Mapping[str, str] | None = None) -> str:
    """Per-user cache root (``JDOWSER_CACHE_DIR`` wins when set)."""
    env = os.environ if env is None else env
    override = env.get("JDOWSER_CACHE_DIR")
    if override:
        return override
    home = Path(env["HOME"]) if env.get("HOME") else Path.home()
    if sys.platform == "darwin":
        return str(home / "Library" / "Caches")
    xdg = env.get("XDG_CACHE_HOME")
    if xdg and os.path.isabs(xdg):
        return xdg
    return str(home / ".cache")


def parse_skip_fs(value: str) -> list[str]:
    """Split a comma-separated filesystem type list."""
    if not _SKIP_FS_RE.match(value):
        raise ConfigurationError(f"bad --skipfs parameter: {value}")
    return [fs for fs in value.split(",") if fs]


def load_config(
    *,
    root: str = DEFAULT_ROOT,
    skip_fs: str = DEFAULT_SKIP_FS,
    no_jvm_run: bool = False,
    wait: bool = False,
    output_format: str = OutputFormat.TEXT,
    verbose: bool = False,
) -> Config:
    """Build a Config and make sure the private log directory exists.

    Raises:
        ConfigurationError: bad option values, or the user, host or log
            directory cannot be resolved.
    """
    skip = parse_skip_fs(skip_fs)

    try:
        user = getpass.getuser()
    except (KeyError, OSError) as e:
        raise ConfigurationError(f"cannot resolve current user: {e}") from e

    host = socket.gethostname()
    if not host:
        raise ConfigurationError("cannot resolve host name")

    log_dir = os.path.join(user_cache_dir(), "jdowser", host, user)
    try:
        os.makedirs(log_dir, mode=0o700, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"cannot create {log_dir}: {e}") from e

    return Config(
        log_dir=log_dir,
        host=host,
        user=user,
        lib_file_name=lib_file_name(),
        root=root,
        skip_fs=skip,
        no_jvm_run=no_jvm_run,
        wait=wait,
        output_format=output_format,
        verbose=verbose,
    )
