"""Java runtime identification: home resolution and version probing."""

from jdowser.probe.home import find_java_home
from jdowser.probe.installation import InstallationInspector
from jdowser.probe.models import JVMInstallation, ProbeTarget, VersionRecord
from jdowser.probe.pipeline import VersionProbe

__all__ = [
    "InstallationInspector",
    "JVMInstallation",
    "ProbeTarget",
    "VersionProbe",
    "VersionRecord",
    "find_java_home",
]
