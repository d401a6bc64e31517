#!/usr/bin/env python3
"""
Tool installation pipeline.

Ensuring a tool for a platform means:

1. check the tool supports the platform,
2. decide if the cached installation is still valid,
3. if not, acquire the files (download an archive or build a package),
4. link every acquired file through a content-addressed path,
5. (re)create the stable destination links.

Every installed file is reachable through two symlink hops:

    links/<platform>/go-1.24.2/bin/go              canonical path
      -> go:sha256:<digest>                        content-addressed sibling
        -> ../../../../downloads/.../go/bin/go     acquired file

and the destination link bin/<platform>/bin/go points at the canonical path.
The digest embedded in the content-addressed name is what the reinstall
decision checks the resolved file against, so repeated and concurrent ensures
need no lock file.
"""

import logging
import os
import shutil
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

# Local imports
from .build import BuildRunner, get_toolchain, toolchain_env
from .checksum import compute_checksum, split_hash
from .errors import (
    AcquisitionError,
    CancelledError,
    ConfigurationError,
    FilesystemError,
    IncompatiblePlatformError,
    IntegrityError,
    InvariantViolationError,
    ToolError,
)
from .fetch import Fetcher
from .layout import CacheLayout
from .platforms import PLATFORM_LOCAL, Platform
from .registry import ToolRegistry
from .tools import BinaryTool, PackageTool, Tool

logger = logging.getLogger(__name__)

FILE_MODE = 0o700


@dataclass
class InstallContext:
    """Everything the pipeline needs, passed explicitly to every operation."""
    registry: ToolRegistry
    layout: CacheLayout
    fetcher: Fetcher = field(default_factory=Fetcher)
    builder: BuildRunner = field(default_factory=BuildRunner)
    cancel: threading.Event = field(default_factory=threading.Event)

    def __post_init__(self):
        self.registry.freeze()

    def check_cancelled(self) -> None:
        if self.cancel.is_set():
            raise CancelledError("Tool installation cancelled")


def is_compatible(registry: ToolRegistry, tool: Tool, platform: Platform) -> bool:
    """
    Tell if the tool can be installed for the platform.

    A package tool supports exactly the platforms its toolchain supports.

    Raises:
        UnknownToolError: If a package tool's toolchain is not registered
    """
    if isinstance(tool, BinaryTool):
        return tool.source_for(platform) is not None
    if isinstance(tool, PackageTool):
        return is_compatible(registry, registry.get(tool.toolchain), platform)
    raise TypeError(f"Unsupported tool type: {type(tool).__name__}")


def _remove(path: Union[str, Path]) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise InvariantViolationError(f"Failed to remove {path}: {e}") from e


def _symlink(target: str, path: Path) -> None:
    """Point path at target, replacing whatever is there atomically."""
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        os.symlink(target, temp_path)
        os.replace(temp_path, path)
    except OSError as e:
        _remove(temp_path)
        raise FilesystemError(f"Failed to link {path} to {target}: {e}") from e


def _resolve(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise FilesystemError(f"Link {path} is broken: {e}") from e


def should_reinstall(ctx: InstallContext, tool: Tool, platform: Platform, dst: str) -> bool:
    """
    Decide if the file installed at destination dst must be acquired again.

    The canonical path must be a link to its content-addressed sibling, the
    sibling must resolve to a regular executable file, and that file's
    checksum must equal the one embedded in the sibling's name. Stale entries
    are removed before returning True.

    Raises:
        InvariantViolationError: If a stale entry cannot be removed
    """
    canonical = ctx.layout.links_dir(tool, platform) / dst
    try:
        link = os.readlink(canonical)
    except FileNotFoundError:
        logger.debug(f"{canonical} does not exist")
        return True
    except OSError:
        logger.debug(f"{canonical} is not a link")
        _remove(canonical)
        return True

    prefix = canonical.name + ":"
    if os.path.dirname(link) or not link.startswith(prefix):
        logger.debug(f"{canonical} points to unexpected target {link}")
        _remove(canonical)
        return True

    checksum_path = canonical.parent / link
    expected = link[len(prefix):]
    try:
        algorithm, _ = split_hash(expected)
        real_path = _resolve(checksum_path)
        actual = compute_checksum(real_path, algorithm) if real_path.is_file() else None
    except (ConfigurationError, FilesystemError) as e:
        logger.debug(f"Installed file {canonical} is unusable: {e}")
        actual = None

    if actual != expected:
        logger.info(f"Installed file {canonical} is broken or corrupted, reinstalling")
        _remove(canonical)
        _remove(checksum_path)
        return True

    if not os.access(real_path, os.X_OK):
        logger.debug(f"{real_path} is not executable")
        return True

    return False


def install_file(ctx: InstallContext, tool: Tool, platform: Platform, dst: str,
                 src_path: Path, checksum: str) -> Path:
    """
    Link an acquired file under its canonical path.

    The content-addressed link is created first and the canonical link last,
    so a concurrent reader sees either the previous target or the new one.
    Concurrent installs of the same content race on the canonical link and
    whichever write lands last wins.

    Args:
        ctx: Install context
        tool: Tool the file belongs to
        platform: Target platform
        dst: Destination-relative path, e.g. "bin/go"
        src_path: Acquired file in the scratch directory
        checksum: Algorithm-prefixed checksum of src_path

    Returns:
        Canonical path of the installed file

    Raises:
        InvariantViolationError: If existing entries cannot be removed
        FilesystemError: If linking fails
    """
    canonical = ctx.layout.links_dir(tool, platform) / dst
    checksum_path = Path(f"{canonical}:{checksum}")

    # links are replaced atomically below, anything else must go first
    for path in (canonical, checksum_path):
        if os.path.lexists(path) and not os.path.islink(path):
            _remove(path)

    try:
        canonical.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        os.chmod(src_path, FILE_MODE)
    except OSError as e:
        raise FilesystemError(f"Failed to prepare {canonical}: {e}") from e

    _symlink(os.path.relpath(src_path, checksum_path.parent), checksum_path)
    _symlink(checksum_path.name, canonical)
    _resolve(canonical)

    logger.info(f"Binary installed to path {canonical}")
    return canonical


def link_files(ctx: InstallContext, tool: Tool, platform: Platform, dsts: List[str]) -> List[Path]:
    """
    Create the stable destination links of a tool.

    Runs on every ensure, so a destination link deleted by someone else is
    restored without touching the cache.

    Returns:
        Destination link paths
    """
    bin_dir = ctx.layout.bin_dir(platform)
    links_dir = ctx.layout.links_dir(tool, platform)
    paths = []
    for dst in dsts:
        dst_path = bin_dir / dst
        try:
            dst_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create {dst_path.parent}: {e}") from e

        target = os.path.relpath(links_dir / dst, dst_path.parent)
        if not dst_path.is_symlink() or os.readlink(dst_path) != target:
            _symlink(target, dst_path)
            logger.debug(f"Linked {dst_path} to {target}")
        _resolve(dst_path)
        paths.append(dst_path)
    return paths


def _source_file(root: Path, relative: str, tool: Tool) -> Path:
    path = root / relative
    real_root = os.path.realpath(root)
    if not os.path.realpath(path).startswith(real_root + os.sep) or not path.is_file():
        raise ConfigurationError(f"File {relative} not found in archive of {tool.name} {tool.version}")
    return path


def _discard(scratch_dir: Path) -> None:
    """Delete a failed acquisition, nothing links into it yet."""
    logger.debug(f"Discarding {scratch_dir}")
    shutil.rmtree(scratch_dir, ignore_errors=True)


def _ensure_binary(ctx: InstallContext, tool: BinaryTool, platform: Platform) -> List[Path]:
    source = tool.source_for(platform)
    dsts = sorted(source.links)

    if any(should_reinstall(ctx, tool, platform, dst) for dst in dsts):
        scratch_dir = ctx.layout.scratch_dir(tool, platform)
        try:
            extracted = ctx.fetcher.download_and_extract(source.url, source.hash, scratch_dir, ctx.cancel)
            ctx.check_cancelled()

            # every file must be present before any canonical link moves
            acquired = []
            for dst in dsts:
                src_path = _source_file(extracted, source.links[dst], tool)
                acquired.append((dst, src_path, compute_checksum(src_path)))
        except BaseException:
            _discard(scratch_dir)
            raise

        for dst, src_path, checksum in acquired:
            install_file(ctx, tool, platform, dst, src_path, checksum)

    return link_files(ctx, tool, platform, dsts)


def _ensure_package(ctx: InstallContext, tool: PackageTool, platform: Platform) -> List[Path]:
    toolchain = get_toolchain(tool.toolchain)
    dst = tool.destination

    if should_reinstall(ctx, tool, platform, dst):
        ensure(ctx, tool.toolchain, platform)

        scratch_dir = ctx.layout.scratch_dir(tool, platform)
        try:
            src_path = ctx.builder.run(
                toolchain,
                ctx.layout.bin_path(toolchain.binary, platform),
                tool.package,
                tool.version,
                scratch_dir,
                toolchain_env(ctx.layout, toolchain, platform),
                ctx.cancel,
            )
            ctx.check_cancelled()
            checksum = compute_checksum(src_path)
        except BaseException:
            _discard(scratch_dir)
            raise

        install_file(ctx, tool, platform, dst, src_path, checksum)

    return link_files(ctx, tool, platform, [dst])


def ensure_tool(ctx: InstallContext, tool: Tool, platform: Platform = PLATFORM_LOCAL) -> List[Path]:
    """
    Make sure the tool is installed and linked for the platform.

    Args:
        ctx: Install context
        tool: Tool descriptor
        platform: Target platform

    Returns:
        Destination link paths of the tool

    Raises:
        IncompatiblePlatformError: If the tool is not defined for the platform
        ToolError: On any acquisition, integrity or filesystem failure
    """
    if not is_compatible(ctx.registry, tool, platform):
        raise IncompatiblePlatformError(tool.name, platform)

    ctx.check_cancelled()
    if isinstance(tool, BinaryTool):
        return _ensure_binary(ctx, tool, platform)
    if isinstance(tool, PackageTool):
        return _ensure_package(ctx, tool, platform)
    raise TypeError(f"Unsupported tool type: {type(tool).__name__}")


def ensure(ctx: InstallContext, name: str, platform: Platform = PLATFORM_LOCAL) -> List[Path]:
    """Ensure the registered tool with the name, see ensure_tool."""
    return ensure_tool(ctx, ctx.registry.get(name), platform)


def install_all(ctx: InstallContext, platform: Platform = PLATFORM_LOCAL) -> List[str]:
    """
    Ensure every registered tool compatible with the platform.

    Returns:
        Names of the ensured tools
    """
    installed = []
    for tool in ctx.registry:
        if not is_compatible(ctx.registry, tool, platform):
            logger.debug(f"Skipping {tool.name}, not defined for {platform}")
            continue
        ensure_tool(ctx, tool, platform)
        installed.append(tool.name)
    return installed


def verify_tool(ctx: InstallContext, tool: Tool) -> List[ToolError]:
    """
    Check the declared hashes of a tool against its published archives.

    Package tools are built from pinned coordinates and have nothing to check.

    Returns:
        Problems found, empty if every source matches
    """
    if isinstance(tool, PackageTool):
        return []
    if not isinstance(tool, BinaryTool):
        raise TypeError(f"Unsupported tool type: {type(tool).__name__}")

    problems: List[ToolError] = []
    for platform, source in sorted(tool.sources.items(), key=lambda item: str(item[0])):
        try:
            ctx.fetcher.verify_remote(source.url, source.hash, ctx.cancel)
            logger.info(f"Verified {tool.name} {tool.version} for {platform}")
        except (ConfigurationError, IntegrityError, AcquisitionError, FilesystemError) as e:
            logger.error(f"Verification of {tool.name} {tool.version} for {platform} failed: {e}")
            problems.append(e)
    return problems


def verify_all(ctx: InstallContext) -> List[ToolError]:
    """Verify every registered tool."""
    problems: List[ToolError] = []
    for tool in ctx.registry:
        problems.extend(verify_tool(ctx, tool))
    return problems


def bin_path(ctx: InstallContext, relative: str, platform: Platform = PLATFORM_LOCAL) -> Path:
    """Stable path of an ensured tool file, e.g. bin_path(ctx, "bin/go")."""
    return ctx.layout.bin_path(relative, platform)
