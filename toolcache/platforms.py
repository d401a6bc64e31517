#!/usr/bin/env python3
"""
Platform catalog.

A platform is an (OS, architecture) pair tools are resolved for. Besides the
native hosts there is a virtualized platform for tools that only ship binaries
for one OS and are executed inside a container, and the "local" platform
which stands for whatever host the process runs on.
"""

import platform as host
from dataclasses import dataclass
from typing import Tuple

from .errors import ConfigurationError

OS_LINUX = "linux"
OS_DARWIN = "darwin"
OS_DOCKER = "docker"
OS_LOCAL = "local"

ARCH_AMD64 = "amd64"
ARCH_ARM64 = "arm64"
ARCH_LOCAL = "local"


@dataclass(frozen=True)
class Platform:
    """Operating system and architecture a tool is installed for."""
    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}.{self.arch}"


PLATFORM_LOCAL = Platform(OS_LOCAL, ARCH_LOCAL)
PLATFORM_LINUX_AMD64 = Platform(OS_LINUX, ARCH_AMD64)
PLATFORM_DARWIN_AMD64 = Platform(OS_DARWIN, ARCH_AMD64)
PLATFORM_DARWIN_ARM64 = Platform(OS_DARWIN, ARCH_ARM64)
PLATFORM_DOCKER_AMD64 = Platform(OS_DOCKER, ARCH_AMD64)

PLATFORMS = (
    PLATFORM_LINUX_AMD64,
    PLATFORM_DARWIN_AMD64,
    PLATFORM_DARWIN_ARM64,
    PLATFORM_DOCKER_AMD64,
)


class PlatformDetector:
    """Handles platform detection of the current host."""

    @staticmethod
    def detect() -> Tuple[str, str]:
        """
        Detects the current operating system and architecture.

        Returns:
            Tuple of (os, arch) where:
            - os: "linux" or "darwin"
            - arch: "amd64" or "arm64"

        Raises:
            ConfigurationError: If the host is not supported
        """
        system = host.system().lower()
        if system == "linux":
            os_name = OS_LINUX
        elif system == "darwin":
            os_name = OS_DARWIN
        else:
            raise ConfigurationError(f"Unsupported operating system: {system}")

        machine = host.machine().lower()
        if machine in ("x86_64", "amd64"):
            arch = ARCH_AMD64
        elif machine in ("aarch64", "arm64"):
            arch = ARCH_ARM64
        else:
            raise ConfigurationError(f"Unsupported architecture: {machine}")

        return os_name, arch


def local_platform() -> Platform:
    """Return the concrete platform of the host."""
    os_name, arch = PlatformDetector.detect()
    return Platform(os_name, arch)


def resolve_platform(platform: Platform) -> Platform:
    """Replace the local platform with the host one, leave others untouched."""
    if platform == PLATFORM_LOCAL:
        return local_platform()
    return platform


def parse_platform(value: str) -> Platform:
    """
    Parse a platform given as "<os>.<arch>" or "local".

    Args:
        value: Platform string

    Returns:
        Platform from the catalog

    Raises:
        ConfigurationError: If the platform is not in the catalog
    """
    value = value.strip().lower()
    if value == OS_LOCAL:
        return PLATFORM_LOCAL

    for platform in PLATFORMS:
        if str(platform) == value:
            return platform

    available = [OS_LOCAL] + [str(p) for p in PLATFORMS]
    raise ConfigurationError(f"Unsupported platform: {value}. Available platforms: {available}")
