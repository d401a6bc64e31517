"""
toolcache: pinned, hash-verified build tools for every platform a build targets.

Typical use:

    registry = ToolRegistry()
    registry.add(BinaryTool(name="go", version="1.24.2", sources={...}))
    ctx = InstallContext(registry=registry, layout=CacheLayout("~/.cache/toolcache"))
    ensure(ctx, "go")
    go = bin_path(ctx, "bin/go")
"""

from .errors import (
    AcquisitionError,
    BuildError,
    CancelledError,
    ChecksumMismatchError,
    ConfigurationError,
    DownloadError,
    DuplicateToolError,
    FilesystemError,
    IncompatiblePlatformError,
    IntegrityError,
    InvariantViolationError,
    ToolError,
    UnknownToolError,
)
from .installer import (
    InstallContext,
    bin_path,
    ensure,
    ensure_tool,
    install_all,
    is_compatible,
    verify_all,
    verify_tool,
)
from .layout import CacheLayout
from .platforms import (
    PLATFORM_DARWIN_AMD64,
    PLATFORM_DARWIN_ARM64,
    PLATFORM_DOCKER_AMD64,
    PLATFORM_LINUX_AMD64,
    PLATFORM_LOCAL,
    Platform,
)
from .registry import ToolRegistry
from .tools import BinaryTool, PackageTool, Source, Tool

__version__ = "1.0.0"
