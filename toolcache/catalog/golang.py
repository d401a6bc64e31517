#!/usr/bin/env python3
"""
Go toolchain, Go linter and libraries distributed alongside Go projects.
"""

from pathlib import Path
from typing import List

# Local imports
from ..installer import InstallContext, ensure
from ..platforms import (
    PLATFORM_DARWIN_AMD64,
    PLATFORM_DARWIN_ARM64,
    PLATFORM_DOCKER_AMD64,
    PLATFORM_LINUX_AMD64,
    PLATFORM_LOCAL,
)
from ..registry import ToolRegistry
from ..tools import BinaryTool, Source

GO = "go"
GOLANGCI = "golangci"
LIBEVMONE = "libevmone"

GO_LINKS = {
    "bin/go": "go/bin/go",
    "bin/gofmt": "go/bin/gofmt",
}

TOOLS = [
    # https://go.dev/dl/
    BinaryTool(
        name=GO,
        version="1.24.2",
        sources={
            PLATFORM_LINUX_AMD64: Source(
                url="https://go.dev/dl/go1.24.2.linux-amd64.tar.gz",
                hash="sha256:68097bd680839cbc9d464a0edce4f7c333975e27a90246890e9f1078c7e702ad",
                links=GO_LINKS,
            ),
            PLATFORM_DARWIN_AMD64: Source(
                url="https://go.dev/dl/go1.24.2.darwin-amd64.tar.gz",
                hash="sha256:238d9c065d09ff6af229d2e3b8b5e85e688318d69f4006fb85a96e41c216ea83",
                links=GO_LINKS,
            ),
            PLATFORM_DARWIN_ARM64: Source(
                url="https://go.dev/dl/go1.24.2.darwin-arm64.tar.gz",
                hash="sha256:b70f8b3c5b4ccb0ad4ffa5ee91cd38075df20fdbd953a1daedd47f50fbcff47a",
                links=GO_LINKS,
            ),
        },
    ),

    # https://github.com/golangci/golangci-lint/releases/
    BinaryTool(
        name=GOLANGCI,
        version="2.0.2",
        sources={
            PLATFORM_LINUX_AMD64: Source(
                url="https://github.com/golangci/golangci-lint/releases/download/v2.0.2/golangci-lint-2.0.2-linux-amd64.tar.gz",
                hash="sha256:89cc8a7810dc63b9a37900da03e37c3601caf46d42265d774e0f1a5d883d53e2",
                links={"bin/golangci-lint": "golangci-lint-2.0.2-linux-amd64/golangci-lint"},
            ),
            PLATFORM_DARWIN_AMD64: Source(
                url="https://github.com/golangci/golangci-lint/releases/download/v2.0.2/golangci-lint-2.0.2-darwin-amd64.tar.gz",
                hash="sha256:a88cbdc86b483fe44e90bf2dcc3fec2af8c754116e6edf0aa6592cac5baa7a0e",
                links={"bin/golangci-lint": "golangci-lint-2.0.2-darwin-amd64/golangci-lint"},
            ),
            PLATFORM_DARWIN_ARM64: Source(
                url="https://github.com/golangci/golangci-lint/releases/download/v2.0.2/golangci-lint-2.0.2-darwin-arm64.tar.gz",
                hash="sha256:664550e7954f5f4451aae99b4f7382c1a47039c66f39ca605f5d9af1a0d32b49",
                links={"bin/golangci-lint": "golangci-lint-2.0.2-darwin-arm64/golangci-lint"},
            ),
        },
    ),

    # https://github.com/ethereum/evmone/releases
    BinaryTool(
        name=LIBEVMONE,
        version="0.12.0",
        sources={
            PLATFORM_DOCKER_AMD64: Source(
                url="https://github.com/ethereum/evmone/releases/download/v0.12.0/evmone-0.12.0-linux-x86_64.tar.gz",
                hash="sha256:1c7b5eba0c8c3b3b2a7a05101e2d01a13a2f84b323989a29be66285dba4136ce",
                links={"lib/libevmone.so": "lib/libevmone.so"},
            ),
        },
    ),
]


def register(registry: ToolRegistry) -> None:
    """Add the Go tools to the registry."""
    registry.add(*TOOLS)


def ensure_go(ctx: InstallContext) -> List[Path]:
    """Ensure that go is available."""
    return ensure(ctx, GO, PLATFORM_LOCAL)


def ensure_golangci(ctx: InstallContext) -> List[Path]:
    """Ensure that the go linter is available."""
    return ensure(ctx, GOLANGCI, PLATFORM_LOCAL)


def ensure_libevmone(ctx: InstallContext) -> List[Path]:
    """Ensure that libevmone is available inside docker images."""
    return ensure(ctx, LIBEVMONE, PLATFORM_DOCKER_AMD64)
