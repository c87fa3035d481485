"""Locate the installation root of a JVM library."""

from __future__ import annotations

import os


def _has_launcher(directory: str) -> bool:
    return os.path.exists(os.path.join(directory, "bin", "java"))


def find_java_home(path: str) -> str:
    """Walk up from ``path`` to the directory that holds ``bin/java``.

    A JDK 8 layout nests a JRE (``jdk/jre/bin/java``) inside a directory that
    also has ``bin/java``; in that case the outer directory is the home.
    Returns an empty string once the filesystem root is reached.
    """
    current = os.path.normpath(path)
    while True:
        parent = os.path.dirname(current)
        if parent == current:
            return ""
        if _has_launcher(current):
            if _has_launcher(parent):
                return parent
            return current
        current = parent
