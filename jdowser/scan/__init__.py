"""Scan lifecycle: lock, persisted status, enumeration and coordination."""

from jdowser.scan.lock import ScanLock
from jdowser.scan.protocol import StartToken
from jdowser.scan.status import ScanState, ScanStatus, StatusStore

__all__ = ["ScanLock", "ScanState", "ScanStatus", "StartToken", "StatusStore"]
