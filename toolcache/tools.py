#!/usr/bin/env python3
"""
Tool descriptors.

A tool is either a BinaryTool, distributed as pre-built hash-pinned archives
per platform, or a PackageTool, built on demand from a package coordinate by
another registered tool acting as its toolchain. Both are plain immutable
records; the installation pipeline switches on the concrete type.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .platforms import Platform, resolve_platform


@dataclass(frozen=True)
class Source:
    """Where to download a tool for one platform and what to expose from it."""
    url: str
    hash: str
    # destination path -> path inside the extracted archive
    links: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BinaryTool:
    """Tool distributed as a pre-built archive."""
    name: str
    version: str
    sources: Dict[Platform, Source] = field(default_factory=dict)

    def source_for(self, platform: Platform) -> Optional[Source]:
        """Return the source for the platform, or None if the tool lacks one."""
        return self.sources.get(resolve_platform(platform))


@dataclass(frozen=True)
class PackageTool:
    """Tool built from a package coordinate by a toolchain tool."""
    name: str
    version: str
    package: str
    toolchain: str = "go"

    @property
    def binary_name(self) -> str:
        """Name of the produced binary, the last element of the package path."""
        return posixpath.basename(self.package.rstrip("/"))

    @property
    def destination(self) -> str:
        return posixpath.join("bin", self.binary_name)


Tool = Union[BinaryTool, PackageTool]


def destinations(tool: Tool, platform: Platform) -> List[str]:
    """
    List the stable destination paths the tool exposes on a platform.

    Args:
        tool: Tool descriptor
        platform: Target platform

    Returns:
        Sorted destination-relative paths, empty if the tool has no source
    """
    if isinstance(tool, BinaryTool):
        source = tool.source_for(platform)
        return sorted(source.links) if source else []
    if isinstance(tool, PackageTool):
        return [tool.destination]
    raise TypeError(f"Unsupported tool type: {type(tool).__name__}")
