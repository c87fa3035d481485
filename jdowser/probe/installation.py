"""Assemble a JVMInstallation from a discovered library path."""

from __future__ import annotations

import hashlib
import os

import structlog

from jdowser.probe.home import find_java_home
from jdowser.probe.models import JVMInstallation, ProbeTarget
from jdowser.probe.pipeline import VersionProbe

log = structlog.get_logger("jdowser.probe")

RT_JAR = "rt.jar"
BASE_JMOD = "java.base.jmod"


def md5sum(path: str) -> str:
    """Hex MD5 of a file's content; empty if the file cannot be read."""
    digest = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(1 << 20), b""):
                digest.update(chunk)
    except OSError as e:
        log.warning("installation.hash_failed", path=path, error=str(e))
        return ""
    return digest.hexdigest()


def locate_version_archive(java_home: str) -> tuple[str, str]:
    """Find the first ``rt.jar`` or ``java.base.jmod`` below ``java_home``.

    Returns ``(rt_jar, base_jmod)``; at most one of them is non-empty.
    """
    for dirpath, dirnames, filenames in os.walk(java_home):
        dirnames.sort()
        for name in sorted(filenames):
            if name == RT_JAR:
                return os.path.join(dirpath, name), ""
            if name == BASE_JMOD:
                return "", os.path.join(dirpath, name)
    return "", ""


class InstallationInspector:
    """Turn library paths into JVMInstallation records."""

    def __init__(self, probe: VersionProbe, host: str) -> None:
        self._probe = probe
        self._host = host

    def inspect(self, libjvm: str) -> JVMInstallation:
        java_home = find_java_home(libjvm)
        target = ProbeTarget(libjvm=libjvm, java_home=java_home)
        is_jdk = False
        if java_home:
            is_jdk = os.path.exists(os.path.join(java_home, "bin", "javac"))
            target.rt_jar, target.base_jmod = locate_version_archive(java_home)

        return JVMInstallation(
            host=self._host,
            libjvm=libjvm,
            libjvm_hash=md5sum(libjvm),
            java_home=java_home,
            is_jdk=is_jdk,
            version_info=self._probe.probe(target),
        )
