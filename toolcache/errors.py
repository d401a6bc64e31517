#!/usr/bin/env python3
"""
Exception hierarchy for tool acquisition.

Every failure raised by the registry and the installation pipeline derives
from ToolError. The ``retryable`` flag tells the caller whether re-running
``ensure`` may succeed without anybody touching the configuration or the
cache directory.
"""


class ToolError(Exception):
    """Base exception for tool acquisition failures."""
    retryable = False


class ConfigurationError(ToolError):
    """Registry entry, platform or configuration file is invalid."""
    pass


class UnknownToolError(ConfigurationError):
    """Requested tool is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool {name!r} is not registered")
        self.name = name


class DuplicateToolError(ConfigurationError):
    """Tool with the same name was registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Tool {name!r} is already registered")
        self.name = name


class IncompatiblePlatformError(ConfigurationError):
    """Tool has no source for the requested platform."""

    def __init__(self, name: str, platform):
        super().__init__(f"Tool {name!r} is not defined for platform {platform}")
        self.name = name
        self.platform = platform


class IntegrityError(ToolError):
    """Downloaded or produced content cannot be trusted."""
    pass


class ChecksumMismatchError(IntegrityError):
    """Content checksum differs from the declared one."""

    def __init__(self, subject: str, expected: str, actual: str):
        super().__init__(
            f"Checksum mismatch for {subject}: expected {expected}, got {actual}"
        )
        self.subject = subject
        self.expected = expected
        self.actual = actual


class AcquisitionError(ToolError):
    """Transient failure while obtaining a tool."""
    retryable = True


class DownloadError(AcquisitionError):
    """Archive download failed."""
    pass


class BuildError(AcquisitionError):
    """External build of a package tool failed."""
    pass


class CancelledError(ToolError):
    """Acquisition was cancelled by the caller."""
    retryable = True


class FilesystemError(ToolError):
    """Filesystem operation on the cache failed."""
    pass


class InvariantViolationError(ToolError):
    """
    Cache is in a state the pipeline cannot repair on its own.

    Raised when an existing canonical or content-addressed entry cannot be
    removed. Callers must treat it as fatal for the whole process.
    """
    pass
