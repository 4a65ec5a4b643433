"""
Filesystem side of the file server: content types, path checks,
directory listing and whole-file reads.
"""

import os
import stat
import errno
import logging
from typing import List

import anyio

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"

# Checked in order, first suffix match wins
MIME_TYPES = [
    ("html", "text/html"),
    ("htm", "text/html"),
    ("txt", "text/plain"),
    ("wasm", "application/wasm"),
    ("js", "text/javascript"),
]


class StorageError(OSError):
    """Base class for file access failures."""


class FileOpenError(StorageError):
    """The path could not be opened as a file."""


class FileReadError(StorageError):
    """The file was opened but its contents could not be read."""


def mime_type(path: str) -> str:
    path = path.lower()
    for suffix, content_type in MIME_TYPES:
        if path.endswith(suffix):
            return content_type
    return DEFAULT_MIME


def is_safe_path(candidate: str) -> bool:
    """
    Coarse traversal check on a request path with its leading "/" removed.
    Any ".." substring is rejected, even inside a file name such as "a..b.txt".
    Absolute candidates are rejected too since they would ignore the root.
    """
    if ".." in candidate:
        return False
    if candidate.startswith("/") or os.path.isabs(candidate):
        return False
    return True


async def list_files(directory: str) -> List[str]:
    """
    Names of the regular files directly inside `directory`, sorted.
    Subdirectories and other entry types are left out. Entries whose
    metadata cannot be read are skipped with a warning. Raises OSError
    when the directory itself cannot be read.
    """
    names = []
    async for entry in anyio.Path(directory).iterdir():
        try:
            info = await entry.lstat()
        except OSError:
            logger.warning(f"Couldn't get file type for {entry}")
            continue
        if not stat.S_ISREG(info.st_mode):
            continue
        try:
            entry.name.encode("utf-8")
        except UnicodeEncodeError:
            # undecodable names cannot be put in a link
            continue
        names.append(entry.name)
    return sorted(names)


async def read_file(root: str, candidate: str) -> bytes:
    """
    Read the whole file at `candidate` relative to `root`.
    Raises FileOpenError when it cannot be opened (missing, directory,
    permission denied, NUL byte in the name) and FileReadError when
    reading fails afterwards.
    """
    path = os.path.join(root, candidate)
    try:
        f = await anyio.open_file(path, "rb")
    except OSError as e:
        raise FileOpenError(e.errno, e.strerror, path) from e
    except ValueError as e:
        # embedded null byte
        raise FileOpenError(errno.EINVAL, str(e), path) from e
    async with f:
        try:
            return await f.read()
        except OSError as e:
            raise FileReadError(e.errno, e.strerror, path) from e
