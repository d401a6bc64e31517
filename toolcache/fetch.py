#!/usr/bin/env python3
"""
Archive download and extraction.

Archives are streamed to disk, their checksum is compared with the declared
one, and only then are they extracted. A mismatching archive is removed and
never extracted. Downloads are not retried; callers re-run ensure instead.
"""

import logging
import os
import tarfile
import tempfile
import threading
import zipfile
from pathlib import Path
from typing import Optional

import requests

# Local imports
from .checksum import compute_checksum, split_hash
from .errors import (
    CancelledError,
    ChecksumMismatchError,
    ConfigurationError,
    DownloadError,
    FilesystemError,
    IntegrityError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "toolcache/1.0"

TAR_SUFFIXES = {
    ".tar.gz": "r:gz",
    ".tgz": "r:gz",
    ".tar.xz": "r:xz",
    ".tar.bz2": "r:bz2",
    ".tar": "r:",
}


def archive_name(url: str) -> str:
    """File name of the archive behind the URL, query string dropped."""
    return url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1] or "archive"


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise CancelledError("Download cancelled")


def _within(root: Path, member: str) -> bool:
    target = os.path.realpath(os.path.join(root, member))
    return target == str(root) or target.startswith(str(root) + os.sep)


class Fetcher:
    """Downloads archives over HTTP and extracts them."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 300,
                 chunk_size: int = 8192):
        """
        Initialize the fetcher.

        Args:
            session: requests session, a new one is created if omitted
            timeout: Connect and read timeout in seconds
            chunk_size: Streaming chunk size in bytes
        """
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = timeout
        self.chunk_size = chunk_size

    def download(self, url: str, dest_file: Path,
                 cancel: Optional[threading.Event] = None) -> Path:
        """
        Stream a URL into a file.

        Args:
            url: URL to download from
            dest_file: Local path to save the file
            cancel: Event which aborts the download when set

        Returns:
            Path to the downloaded file

        Raises:
            DownloadError: On HTTP or connection failure
            CancelledError: If cancel was set
        """
        _check_cancelled(cancel)
        logger.info(f"Downloading {url}")

        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(dest_file, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        _check_cancelled(cancel)
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise DownloadError(f"Failed to download {url}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to write {dest_file}: {e}") from e

        logger.debug(f"Downloaded {url} to {dest_file}")
        return dest_file

    def download_and_extract(self, url: str, expected_hash: str, dest_dir: Path,
                             cancel: Optional[threading.Event] = None) -> Path:
        """
        Download an archive, verify it and extract it.

        Args:
            url: Archive URL
            expected_hash: Algorithm-prefixed digest of the archive
            dest_dir: Directory the archive is downloaded to and extracted in
            cancel: Event which aborts the download when set

        Returns:
            Directory with the extracted content

        Raises:
            ChecksumMismatchError: If the archive does not match expected_hash
            DownloadError: On network failure
        """
        algorithm, digest = split_hash(expected_hash)
        dest_dir = Path(dest_dir)
        archive_path = dest_dir / archive_name(url)
        self.download(url, archive_path, cancel)

        actual = compute_checksum(archive_path, algorithm)
        if actual != f"{algorithm}:{digest}":
            archive_path.unlink()
            raise ChecksumMismatchError(url, expected_hash, actual)
        logger.debug(f"Checksum verification passed for {url}")

        extract_dir = dest_dir / "extracted"
        extract_dir.mkdir(exist_ok=True)
        self.extract(archive_path, extract_dir)
        archive_path.unlink()
        return extract_dir

    def verify_remote(self, url: str, expected_hash: str,
                      cancel: Optional[threading.Event] = None) -> str:
        """
        Download an archive to a temporary directory and return its checksum.

        Raises:
            ChecksumMismatchError: If the archive does not match expected_hash
        """
        algorithm, digest = split_hash(expected_hash)
        with tempfile.TemporaryDirectory(prefix="toolcache-verify-") as temp_dir:
            archive_path = self.download(url, Path(temp_dir) / archive_name(url), cancel)
            actual = compute_checksum(archive_path, algorithm)

        if actual != f"{algorithm}:{digest}":
            raise ChecksumMismatchError(url, expected_hash, actual)
        return actual

    def extract(self, archive_path: Path, extract_dir: Path) -> None:
        """
        Extract a tar or zip archive.

        Raises:
            IntegrityError: If a member would land outside extract_dir
            ConfigurationError: If the archive type is unknown
        """
        name = archive_path.name.lower()
        root = Path(os.path.realpath(extract_dir))
        logger.debug(f"Extracting {archive_path} to {extract_dir}")

        try:
            if name.endswith(".zip"):
                with zipfile.ZipFile(archive_path) as zip_file:
                    for member in zip_file.namelist():
                        if not _within(root, member):
                            raise IntegrityError(f"Archive member {member!r} escapes {extract_dir}")
                    zip_file.extractall(root)
                return

            for suffix, mode in TAR_SUFFIXES.items():
                if name.endswith(suffix):
                    with tarfile.open(archive_path, mode) as tar_file:
                        self._check_tar_members(tar_file, root)
                        if hasattr(tarfile, "data_filter"):
                            tar_file.extractall(root, filter="data")
                        else:
                            tar_file.extractall(root)
                    return
        except (tarfile.TarError, zipfile.BadZipFile) as e:
            raise IntegrityError(f"Corrupted archive {archive_path}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to extract {archive_path}: {e}") from e

        raise ConfigurationError(f"Unsupported archive type: {archive_path.name}")

    @staticmethod
    def _check_tar_members(tar_file: tarfile.TarFile, root: Path) -> None:
        for member in tar_file.getmembers():
            if not _within(root, member.name):
                raise IntegrityError(f"Archive member {member.name!r} escapes {root}")
            if member.issym():
                target = os.path.join(os.path.dirname(member.name), member.linkname)
                if os.path.isabs(member.linkname) or not _within(root, target):
                    raise IntegrityError(f"Archive link {member.name!r} points outside {root}")
            elif member.islnk() and not _within(root, member.linkname):
                raise IntegrityError(f"Archive link {member.name!r} points outside {root}")
