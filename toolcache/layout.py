#!/usr/bin/env python3
"""
On-disk layout of the tool cache.

    <root>/downloads/<platform>/<tool>-<version>/<scratch>/   acquisition output
    <root>/links/<platform>/<tool>-<version>/bin/go          canonical links
    <root>/bin/<platform>/bin/go                             destination links

The cache root is shared by every tool and every concurrent ensure.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

from .platforms import Platform, resolve_platform
from .tools import Tool

DIR_MODE = 0o700


class CacheLayout:
    """Computes and creates cache directories."""

    def __init__(self, root: Union[str, Path]):
        """
        Initialize the layout.

        Args:
            root: Cache root directory, "~" is expanded
        """
        self.root = Path(os.path.expanduser(str(root)))

    def _ensure(self, path: Path) -> Path:
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        return path

    @staticmethod
    def _tool_key(tool: Tool) -> str:
        return f"{tool.name}-{tool.version}"

    def download_dir(self, tool: Tool, platform: Platform) -> Path:
        """Directory holding every acquisition of the tool for the platform."""
        platform = resolve_platform(platform)
        return self._ensure(self.root / "downloads" / str(platform) / self._tool_key(tool))

    def scratch_dir(self, tool: Tool, platform: Platform) -> Path:
        """Fresh directory private to one acquisition."""
        return Path(tempfile.mkdtemp(prefix="acquire-", dir=self.download_dir(tool, platform)))

    def links_dir(self, tool: Tool, platform: Platform) -> Path:
        """Directory holding the canonical and content-addressed links."""
        platform = resolve_platform(platform)
        return self._ensure(self.root / "links" / str(platform) / self._tool_key(tool))

    def bin_dir(self, platform: Platform) -> Path:
        """Root of the version-independent destination links."""
        platform = resolve_platform(platform)
        return self._ensure(self.root / "bin" / str(platform))

    def bin_path(self, relative: str, platform: Platform) -> Path:
        """
        Stable path of an ensured tool file, e.g. bin_path("bin/go", platform).

        Only computes the path, nothing is created.
        """
        return self.root / "bin" / str(resolve_platform(platform)) / relative
