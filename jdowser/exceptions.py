"""Custom exceptions for jdowser."""


class JdowserError(Exception):
    """Base exception for all jdowser errors."""


class ConfigurationError(JdowserError):
    """Raised when the runtime environment or command-line settings are unusable."""


class ClassFormatError(JdowserError):
    """Raised when class file bytes do not follow the class file format.

    Only class files extracted from a runtime's own archives reach the parser,
    so this is treated as fatal for the scan rather than per-candidate.
    """


class EnumerationError(JdowserError):
    """Raised when candidate libraries cannot be enumerated."""


class LockContendedError(JdowserError):
    """Raised when the scan lock is held by another process."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Scan lock {path} is held by another process")


class ScanTerminated(JdowserError):
    """Raised inside a running scan when it receives SIGINT or SIGTERM."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"scan terminated by signal {signum}")
