"""
Test utilities for toolcache.

Archives are built in memory and served by a fake requests session so tests
never touch the network.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import requests

from toolcache.build import BuildRunner
from toolcache.fetch import Fetcher
from toolcache.installer import InstallContext
from toolcache.layout import CacheLayout
from toolcache.registry import ToolRegistry

GO_BINARY = b"#!/bin/sh\necho go version go1.25.5\n"
GOFMT_BINARY = b"#!/bin/sh\necho gofmt\n"

# Behaves like "go install <package>@<version>": writes a script named after
# the package into $GOBIN and records every build in $GOPATH/builds.
FAKE_GO_SCRIPT = b"""#!/bin/sh
set -e
[ "$1" = "install" ] || exit 2
pkg="${2%@*}"
ver="${2##*@}"
name="${pkg##*/}"
case "$pkg" in
  *broken*) echo "build failed for $pkg" >&2; exit 1 ;;
  *missing*) exit 0 ;;
esac
echo "$pkg@$ver" >> "$GOPATH/builds"
printf '#!/bin/sh\\necho %s %s\\n' "$name" "$ver" > "$GOBIN/$name"
"""


def sha256(data: bytes) -> str:
    """Algorithm-prefixed sha256 of bytes."""
    return "sha256:" + hashlib.sha256(data).hexdigest()


def make_tar_gz(files: Dict[str, bytes], mode: int = 0o755) -> bytes:
    """Build a .tar.gz archive holding the files."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar_file:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            tar_file.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def make_zip(files: Dict[str, bytes]) -> bytes:
    """Build a .zip archive holding the files."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zip_file:
        for name, content in files.items():
            zip_file.writestr(name, content)
    return buffer.getvalue()


class FakeResponse:
    """Minimal streamed requests response."""

    def __init__(self, url: str, content: bytes, status_code: int = 200):
        self.url = url
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error for url: {self.url}", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeSession:
    """requests session serving archives from a dictionary."""

    def __init__(self, archives: Optional[Dict[str, bytes]] = None,
                 failures: Optional[Dict[str, Exception]] = None):
        self.archives = dict(archives or {})
        self.failures = dict(failures or {})
        self.headers: Dict[str, str] = {}
        self.requests: List[str] = []

    def get(self, url: str, stream: bool = False, timeout: float = None) -> FakeResponse:
        self.requests.append(url)
        if url in self.failures:
            raise self.failures[url]
        if url not in self.archives:
            return FakeResponse(url, b"", status_code=404)
        return FakeResponse(url, self.archives[url])


def make_context(root: Path, registry: ToolRegistry, session: FakeSession,
                 builder: Optional[BuildRunner] = None) -> InstallContext:
    """Install context over a fake session, with small chunks to exercise streaming."""
    return InstallContext(
        registry=registry,
        layout=CacheLayout(root),
        fetcher=Fetcher(session=session, timeout=5, chunk_size=16),
        builder=builder or BuildRunner(timeout=30, poll_interval=0.05),
    )
