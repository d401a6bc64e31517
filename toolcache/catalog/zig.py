#!/usr/bin/env python3
"""
Zig compiler.
"""

from pathlib import Path
from typing import List

# Local imports
from ..installer import InstallContext, ensure
from ..platforms import (
    PLATFORM_DARWIN_AMD64,
    PLATFORM_DARWIN_ARM64,
    PLATFORM_LINUX_AMD64,
    PLATFORM_LOCAL,
)
from ..registry import ToolRegistry
from ..tools import BinaryTool, Source

ZIG = "zig"

TOOLS = [
    # https://ziglang.org/download/
    BinaryTool(
        name=ZIG,
        version="0.15.2",
        sources={
            PLATFORM_LINUX_AMD64: Source(
                url="https://ziglang.org/download/0.15.2/zig-x86_64-linux-0.15.2.tar.xz",
                hash="sha256:02aa270f183da276e5b5920b1dac44a63f1a49e55050ebde3aecc9eb82f93239",
                links={"bin/zig": "zig-x86_64-linux-0.15.2/zig"},
            ),
            PLATFORM_DARWIN_AMD64: Source(
                url="https://ziglang.org/download/0.15.2/zig-x86_64-macos-0.15.2.tar.xz",
                hash="sha256:375b6909fc1495d16fc2c7db9538f707456bfc3373b14ee83fdd3e22b3d43f7f",
                links={"bin/zig": "zig-x86_64-macos-0.15.2/zig"},
            ),
            PLATFORM_DARWIN_ARM64: Source(
                url="https://ziglang.org/download/0.15.2/zig-aarch64-macos-0.15.2.tar.xz",
                hash="sha256:3cc2bab367e185cdfb27501c4b30b1b0653c28d9f73df8dc91488e66ece5fa6b",
                links={"bin/zig": "zig-aarch64-macos-0.15.2/zig"},
            ),
        },
    ),
]


def register(registry: ToolRegistry) -> None:
    """Add the zig compiler to the registry."""
    registry.add(*TOOLS)


def ensure_zig(ctx: InstallContext) -> List[Path]:
    """Ensure that zig is available."""
    return ensure(ctx, ZIG, PLATFORM_LOCAL)
