#!/usr/bin/env python3
"""
Building package tools with another ecosystem's toolchain.

A PackageTool names the registered tool acting as its toolchain (e.g. "go").
The toolchain's install command is run with the package coordinate and the
exact version, directing the produced binary into a scratch directory.
"""

import logging
import os
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

# Local imports
from .errors import BuildError, CancelledError, ConfigurationError
from .layout import CacheLayout
from .platforms import Platform, resolve_platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toolchain:
    """How one ecosystem installs a package into a directory."""
    name: str
    # destination path of the toolchain's own binary
    binary: str
    command: List[str]
    # variable pointing the toolchain at the output directory
    output_env: Optional[str] = None
    # where the binary lands, relative to the output directory
    output_subdir: str = ""
    # variable -> directory under the toolchain's state dir
    state_dirs: Dict[str, str] = field(default_factory=dict)

    def build_command(self, toolchain_bin: Path, package: str, version: str,
                      output_dir: Path) -> List[str]:
        values = {
            "bin": str(toolchain_bin),
            "package": package,
            "version": version,
            "output": str(output_dir),
        }
        return [part.format(**values) for part in self.command]

    def output_path(self, output_dir: Path, binary_name: str) -> Path:
        return output_dir / self.output_subdir / binary_name


TOOLCHAINS = {
    "go": Toolchain(
        name="go",
        binary="bin/go",
        command=["{bin}", "install", "{package}@{version}"],
        output_env="GOBIN",
        state_dirs={
            "GOPATH": "gopath",
            "GOCACHE": "gocache",
            "GOMODCACHE": "gopath/pkg/mod",
        },
    ),
    "cargo": Toolchain(
        name="cargo",
        binary="bin/cargo",
        command=["{bin}", "install", "--locked", "--root", "{output}",
                 "--version", "{version}", "{package}"],
        output_subdir="bin",
        state_dirs={"CARGO_HOME": "cargo-home"},
    ),
}


def get_toolchain(name: str) -> Toolchain:
    """Return the toolchain definition or raise ConfigurationError."""
    try:
        return TOOLCHAINS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported toolchain {name!r}. Available toolchains: {sorted(TOOLCHAINS)}"
        ) from None


def toolchain_env(layout: CacheLayout, toolchain: Toolchain, platform: Platform,
                  base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Environment for running a toolchain.

    State directories live under the cache root so builds never touch the
    user's own toolchain caches. The ensured toolchain's bin directory is
    put first on PATH.

    Args:
        layout: Cache layout
        toolchain: Toolchain definition
        platform: Platform the toolchain was ensured for
        base: Environment to extend, defaults to os.environ

    Returns:
        New environment mapping
    """
    env = dict(os.environ if base is None else base)
    state_root = layout.root / "toolchains" / toolchain.name / str(resolve_platform(platform))
    for variable, subdir in toolchain.state_dirs.items():
        path = state_root / subdir
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
        env[variable] = str(path)

    bin_dir = layout.bin_path(toolchain.binary, platform).parent
    env["PATH"] = os.pathsep.join(p for p in (str(bin_dir), env.get("PATH", "")) if p)
    return env


class BuildRunner:
    """Runs toolchain install commands as subprocesses."""

    def __init__(self, timeout: float = 600, poll_interval: float = 0.2):
        """
        Initialize the runner.

        Args:
            timeout: Maximum build duration in seconds
            poll_interval: How often cancellation is checked, in seconds
        """
        self.timeout = timeout
        self.poll_interval = poll_interval

    def run(self, toolchain: Toolchain, toolchain_bin: Path, package: str, version: str,
            output_dir: Path, env: Dict[str, str],
            cancel: Optional[threading.Event] = None) -> Path:
        """
        Build a package into output_dir.

        Args:
            toolchain: Toolchain definition
            toolchain_bin: Path to the toolchain binary
            package: Package coordinate
            version: Exact package version
            output_dir: Scratch directory receiving the binary
            env: Environment for the build
            cancel: Event which kills the build when set

        Returns:
            Path to the produced binary

        Raises:
            BuildError: On non-zero exit, timeout or missing output
            CancelledError: If cancel was set
        """
        command = toolchain.build_command(toolchain_bin, package, version, output_dir)
        env = dict(env)
        if toolchain.output_env:
            env[toolchain.output_env] = str(output_dir)

        logger.info(f"Running command: {' '.join(command)}")
        with tempfile.TemporaryFile() as output:
            try:
                process = subprocess.Popen(
                    command,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                    env=env,
                    cwd=output_dir,
                )
            except OSError as e:
                raise BuildError(f"Failed to start {command[0]}: {e}") from e

            returncode = self._wait(process, command, cancel)
            output.seek(0)
            log = output.read().decode("utf-8", errors="replace").strip()

        if returncode != 0:
            raise BuildError(
                f"Command {' '.join(command)} failed with return code {returncode}: {log}"
            )
        if log:
            logger.debug(f"Build output: {log}")

        binary_path = toolchain.output_path(output_dir, os.path.basename(package.rstrip("/")))
        if not binary_path.is_file():
            raise BuildError(f"Binary {binary_path} not found after build of {package}@{version}")
        return binary_path

    def _wait(self, process: subprocess.Popen, command: List[str],
              cancel: Optional[threading.Event]) -> int:
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                return process.wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                pass

            if cancel is not None and cancel.is_set():
                self._kill(process)
                raise CancelledError(f"Build {' '.join(command)} cancelled")
            if time.monotonic() > deadline:
                self._kill(process)
                raise BuildError(f"Command {' '.join(command)} timed out after {self.timeout} seconds")

    @staticmethod
    def _kill(process: subprocess.Popen) -> None:
        try:
            process.kill()
            process.wait()
        except OSError as e:
            raise BuildError(f"Failed to stop build process {process.pid}: {e}") from e
