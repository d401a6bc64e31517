#!/usr/bin/env python3
"""
Algorithm-prefixed file checksums ("sha256:<hex>").
"""

import hashlib
from pathlib import Path
from typing import Tuple, Union

from .errors import ConfigurationError, FilesystemError

DEFAULT_ALGORITHM = "sha256"
CHUNK_SIZE = 8192

# fixed-length digests available on every interpreter
ALGORITHMS = frozenset(
    name for name in hashlib.algorithms_guaranteed if not name.startswith("shake_")
)


def split_hash(value: str) -> Tuple[str, str]:
    """
    Split an algorithm-prefixed digest into its parts.

    Args:
        value: Digest like "sha256:68097bd6..."

    Returns:
        Tuple of (algorithm, lowercase hex digest)

    Raises:
        ConfigurationError: If the prefix or digest is malformed
    """
    algorithm, sep, digest = value.partition(":")
    if not sep or not digest:
        raise ConfigurationError(f"Hash {value!r} is not in <algorithm>:<digest> form")

    algorithm = algorithm.lower()
    if algorithm not in ALGORITHMS:
        raise ConfigurationError(f"Unsupported hash algorithm {algorithm!r} in {value!r}")

    digest = digest.lower()
    try:
        int(digest, 16)
    except ValueError:
        raise ConfigurationError(f"Digest in {value!r} is not hexadecimal") from None
    return algorithm, digest


def compute_checksum(path: Union[str, Path], algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Calculate the checksum of a file.

    Args:
        path: Path to the file, symlinks are followed
        algorithm: hashlib algorithm name

    Returns:
        Algorithm-prefixed hex digest

    Raises:
        FilesystemError: If the file cannot be read
        ConfigurationError: If the algorithm is not supported
    """
    if algorithm not in ALGORITHMS:
        raise ConfigurationError(f"Unsupported hash algorithm {algorithm!r}")
    hash_obj = hashlib.new(algorithm)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hash_obj.update(chunk)
    except OSError as e:
        raise FilesystemError(f"Failed to read {path} for checksum: {e}") from e
    return f"{algorithm}:{hash_obj.hexdigest()}"


def checksum_matches(path: Union[str, Path], expected: str) -> bool:
    """Tell if the file checksum equals the expected algorithm-prefixed digest."""
    algorithm, digest = split_hash(expected)
    return compute_checksum(path, algorithm) == f"{algorithm}:{digest}"
