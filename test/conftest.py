"""
Pytest configuration and fixtures for toolcache tests.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from helpers import GO_BINARY, GOFMT_BINARY, FakeSession, make_context, make_tar_gz, sha256

from toolcache.platforms import PLATFORM_LINUX_AMD64
from toolcache.registry import ToolRegistry
from toolcache.tools import BinaryTool, Source

GO_URL = "https://go.dev/dl/go1.25.5.linux-amd64.tar.gz"


@pytest.fixture
def cache_root(tmp_path) -> Path:
    """Temporary cache root."""
    return tmp_path / "cache"


@pytest.fixture
def go_archive() -> bytes:
    return make_tar_gz({
        "go/bin/go": GO_BINARY,
        "go/bin/gofmt": GOFMT_BINARY,
        "go/VERSION": b"go1.25.5\n",
    })


@pytest.fixture
def go_tool(go_archive) -> BinaryTool:
    return BinaryTool(
        name="go",
        version="1.25.5",
        sources={
            PLATFORM_LINUX_AMD64: Source(
                url=GO_URL,
                hash=sha256(go_archive),
                links={
                    "bin/go": "go/bin/go",
                    "bin/gofmt": "go/bin/gofmt",
                },
            ),
        },
    )


@pytest.fixture
def session(go_archive) -> FakeSession:
    return FakeSession({GO_URL: go_archive})


@pytest.fixture
def registry(go_tool) -> ToolRegistry:
    registry = ToolRegistry()
    registry.add(go_tool)
    return registry


@pytest.fixture
def ctx(cache_root, registry, session):
    """Install context with the go tool registered."""
    return make_context(cache_root, registry, session)
