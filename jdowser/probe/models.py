"""Data models for discovered Java installations."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

# attribute -> persisted JSON key
_VERSION_KEYS: dict[str, str] = {
    "version": "java_version",
    "runtime_name": "java_runtime_name",
    "runtime_vendor": "java_runtime_vendor",
    "runtime_version": "java_runtime_version",
    "vm_name": "java_vm_name",
    "vm_vendor": "java_vm_vendor",
    "vm_version": "java_vm_version",
}


@dataclass
class VersionRecord:
    """Runtime identity; an empty string means unknown."""

    version: str = ""
    runtime_name: str = ""
    runtime_vendor: str = ""
    runtime_version: str = ""
    vm_name: str = ""
    vm_vendor: str = ""
    vm_version: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> dict[str, str]:
        return {key: getattr(self, attr) for attr, key in _VERSION_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VersionRecord:
        return cls(**{attr: str(data.get(key) or "") for attr, key in _VERSION_KEYS.items()})


@dataclass
class ProbeTarget:
    """Everything the version probe strategies may look at for one library."""

    libjvm: str
    java_home: str = ""
    rt_jar: str = ""
    base_jmod: str = ""


@dataclass
class JVMInstallation:
    """One discovered JVM library and what is known about its runtime."""

    host: str
    libjvm: str
    libjvm_hash: str = ""
    java_home: str = ""
    is_jdk: bool = False
    version_info: VersionRecord = field(default_factory=VersionRecord)
    running_instances: int = 0

    def to_dict(self, include_running: bool = False) -> dict[str, Any]:
        """Serialize; running instances only belong in rendered reports."""
        data: dict[str, Any] = {
            "host": self.host,
            "libjvm": self.libjvm,
            "libjvm_hash": self.libjvm_hash,
            "java_home": self.java_home,
            "is_jdk": self.is_jdk,
            "version_info": self.version_info.to_dict(),
        }
        if include_running:
            data["running_instances"] = self.running_instances
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JVMInstallation:
        return cls(
            host=data.get("host", ""),
            libjvm=data["libjvm"],
            libjvm_hash=data.get("libjvm_hash", ""),
            java_home=data.get("java_home", ""),
            is_jdk=bool(data.get("is_jdk", False)),
            version_info=VersionRecord.from_dict(data.get("version_info") or {}),
        )
