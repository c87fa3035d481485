"""Version probe strategies, from most to least invasive source of truth.

Each strategy fills a shared ``VersionRecord`` in place and reports whether
it succeeded. Failures are expected and only logged; the pipeline moves on
to the next strategy.
"""

from __future__ import annotations

import os
import re
import subprocess
import zipfile
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

import structlog

from jdowser.probe.elf import find_section
from jdowser.probe.extractor import extract_version_fields
from jdowser.probe.models import ProbeTarget, VersionRecord

log = structlog.get_logger("jdowser.probe")

RT_JAR_VERSION_CLASS = "sun/misc/Version.class"
JMOD_VERSION_CLASS = "classes/java/lang/VersionProps.class"

# Strings shorter than this are never version banners
MIN_STRING_LENGTH = 10

AZUL_VENDOR = "Azul Systems, Inc."
AZUL_RUNTIME_NAME = "Zing Runtime Environment for Java Applications"
AZUL_VM_NAME = "Zing 64-Bit Tiered VM"
ADOPT_VENDOR = "AdoptOpenJDK"
ORACLE_VENDOR = "Oracle Corporation"

# `java -XshowSettings:all` property -> record attribute
_SETTINGS_KEYS: dict[str, str] = {
    "java.version": "version",
    "java.runtime.name": "runtime_name",
    "java.vendor": "runtime_vendor",
    "java.runtime.version": "runtime_version",
    "java.vm.name": "vm_name",
    "java.vm.vendor": "vm_vendor",
    "java.vm.version": "vm_version",
}

# OpenJDK 64-Bit Server VM (25.212-b04) for linux-amd64 JRE (Zulu 8.38) (1.8.0_212-b04), built ...
_BANNER_FULL_RE = re.compile(
    r"^(?P<name>OpenJDK.* VM) \((?P<ver>.*)\) for .* JRE \((?P<re_name>.*)\) \((?P<re_ver>.*)\), built"
)
# OpenJDK 64-Bit Server VM (11.0.2+9) for linux-amd64 JRE (11.0.2+9), built ...
_BANNER_REDUCED_RE = re.compile(
    r"^(?P<name>OpenJDK.* VM) \((?P<ver>.*)\) for .* JRE \((?P<re_ver>.*)\), built"
)
# Java HotSpot(TM) 64-Bit Server VM (25.201-b09) for linux-amd64 JRE (1.8.0_201-b09), built ...
_BANNER_HOTSPOT_RE = re.compile(
    r"^(?P<name>Java HotSpot\(TM\).* VM) \((?P<ver>.*)\) for .* JRE \((?P<re_ver>.*)\), built"
)

_PRINTABLE_RE = re.compile(rb"[\x20-\x7e]+")
_VERSION_SEPARATORS = "-+_"


@runtime_checkable
class ProbeStrategy(Protocol):
    """Interface that every version probe strategy must satisfy."""

    name: str
    executes_runtime: bool

    def applies(self, target: ProbeTarget) -> bool: ...

    def attempt(self, target: ProbeTarget, record: VersionRecord) -> bool: ...


# ── 1. run the launcher ──────────────────────────────────────────────────


class LiveExecutionStrategy:
    """Ask the runtime itself: ``bin/java -XshowSettings:all -version``."""

    name = "live-execution"
    executes_runtime = True

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self._env = env

    def applies(self, target: ProbeTarget) -> bool:
        return bool(target.java_home)

    def attempt(self, target: ProbeTarget, record: VersionRecord) -> bool:
        java = os.path.join(target.java_home, "bin", "java")
        try:
            proc = subprocess.run(
                [java, "-XshowSettings:all", "-version"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=self._env,
                check=False,
            )
        except OSError as e:
            log.debug("probe.exec_failed", java=java, error=str(e))
            return False

        if proc.returncode != 0:
            log.debug("probe.exec_nonzero", java=java, returncode=proc.returncode)
            return False

        found = parse_settings(proc.stdout.decode("utf-8", errors="replace"))
        if not found:
            return False
        for attr, value in found.items():
            setattr(record, attr, value)
        return True


def parse_settings(output: str) -> dict[str, str]:
    """Pick the known ``key = value`` properties out of settings output."""
    found: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        key, sep, value = line.partition(" = ")
        if not sep:
            continue
        attr = _SETTINGS_KEYS.get(key)
        if attr:
            found[attr] = value.strip()
    return found


# ── 2. scan the library for banner strings ───────────────────────────────


class BinaryStringStrategy:
    """Match vendor markers and VM banners among the library's C strings.

    For ELF libraries only ``.rodata`` is scanned.
    """

    name = "binary-strings"
    executes_runtime = False

    def applies(self, target: ProbeTarget) -> bool:
        return bool(target.libjvm)

    def attempt(self, target: ProbeTarget, record: VersionRecord) -> bool:
        try:
            section = find_section(target.libjvm, ".rodata")
            if section is not None:
                strings = iter_strings(target.libjvm, section.offset, section.size)
            else:
                strings = iter_strings(target.libjvm)
            scan_banner_strings(strings, record)
        except OSError as e:
            log.debug("probe.read_failed", libjvm=target.libjvm, error=str(e))
            return False

        if not record.runtime_version:
            return False
        record.version = short_version(record.runtime_version)
        return True


def iter_strings(
    path: str,
    offset: int = 0,
    length: int | None = None,
    min_length: int = MIN_STRING_LENGTH,
    chunk_size: int = 1 << 16,
) -> Iterator[str]:
    """Yield printable ASCII, NUL-terminated strings from a byte range of ``path``.

    A trailing string without a terminator is dropped.
    """
    with open(path, "rb") as f:
        f.seek(offset)
        remaining = length
        pending = b""
        while remaining is None or remaining > 0:
            size = chunk_size if remaining is None else min(chunk_size, remaining)
            chunk = f.read(size)
            if not chunk:
                return
            if remaining is not None:
                remaining -= len(chunk)
            pieces = (pending + chunk).split(b"\0")
            pending = pieces.pop()
            for piece in pieces:
                if len(piece) >= min_length and _PRINTABLE_RE.fullmatch(piece):
                    yield piece.decode("ascii")


def scan_banner_strings(strings: Iterator[str], record: VersionRecord) -> None:
    """Apply vendor markers and banner patterns until VM version and vendor are known."""
    zing = False
    for s in strings:
        if "Azul Systems" in s:
            record.vm_vendor = AZUL_VENDOR
            record.runtime_vendor = AZUL_VENDOR
            record.runtime_name = AZUL_RUNTIME_NAME
            record.vm_name = AZUL_VM_NAME
            zing = True
        elif ADOPT_VENDOR in s:
            record.vm_vendor = ADOPT_VENDOR
            record.runtime_vendor = ADOPT_VENDOR
        elif not _match_banner(s, record) and zing and "-zing_" in s:
            record.vm_version = s
            record.runtime_version = s

        if record.vm_version and record.vm_vendor:
            return


def _match_banner(s: str, record: VersionRecord) -> bool:
    """Fill VM and runtime fields from a ``... VM (x) for ... JRE (y), built`` line."""
    m = _BANNER_FULL_RE.match(s)
    if m:
        record.vm_name = m.group("name")
        record.vm_version = m.group("ver")
        record.runtime_name = m.group("re_name")
        record.runtime_version = m.group("re_ver")
        return True

    m = _BANNER_REDUCED_RE.match(s) or _BANNER_HOTSPOT_RE.match(s)
    if m is None:
        return False
    record.vm_name = m.group("name")
    record.vm_version = m.group("ver")
    record.runtime_name = m.group("name")
    record.runtime_version = m.group("re_ver")
    if m.re is _BANNER_HOTSPOT_RE:
        record.vm_vendor = ORACLE_VENDOR
        record.runtime_vendor = ORACLE_VENDOR
    return True


def short_version(runtime_version: str) -> str:
    """``11.0.2+9`` -> ``11.0.2``; ``1.8.0_212-b04`` -> ``1.8.0``."""
    positions = [runtime_version.find(c) for c in _VERSION_SEPARATORS]
    hits = [p for p in positions if p >= 0]
    cut = min(hits) if hits else -1
    if cut > 0:
        return runtime_version[:cut]
    return runtime_version


# ── 3. rt.jar (JDK 8 and older) ──────────────────────────────────────────


class RtJarStrategy:
    """Read ``sun/misc/Version.class`` out of ``rt.jar``."""

    name = "rt-jar"
    executes_runtime = False

    def applies(self, target: ProbeTarget) -> bool:
        return bool(target.rt_jar)

    def attempt(self, target: ProbeTarget, record: VersionRecord) -> bool:
        try:
            with zipfile.ZipFile(target.rt_jar) as archive:
                data = archive.read(RT_JAR_VERSION_CLASS)
        except (OSError, zipfile.BadZipFile, KeyError) as e:
            log.debug("probe.archive_failed", archive=target.rt_jar, error=str(e))
            return False
        if not data:
            return False
        extract_version_fields(data, record)
        return True


# ── 4. java.base.jmod (JDK 9+) ───────────────────────────────────────────


class JmodStrategy:
    """Extract ``VersionProps.class`` from ``java.base.jmod`` with ``unzip``."""

    name = "jmod"
    executes_runtime = False

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self._env = env

    def applies(self, target: ProbeTarget) -> bool:
        return bool(target.base_jmod)

    def attempt(self, target: ProbeTarget, record: VersionRecord) -> bool:
        try:
            # jmod files carry a 4-byte header before the zip data; unzip warns
            # and exits non-zero but still extracts, so only the output counts.
            proc = subprocess.run(
                ["unzip", "-p", target.base_jmod, JMOD_VERSION_CLASS],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=self._env,
                check=False,
            )
        except OSError as e:
            log.debug("probe.unzip_failed", archive=target.base_jmod, error=str(e))
            return False
        if not proc.stdout:
            return False
        extract_version_fields(proc.stdout, record)
        return True


def default_strategies(env: dict[str, str] | None = None) -> list[ProbeStrategy]:
    """All strategies in priority order."""
    return [
        LiveExecutionStrategy(env=env),
        BinaryStringStrategy(),
        RtJarStrategy(),
        JmodStrategy(env=env),
    ]
