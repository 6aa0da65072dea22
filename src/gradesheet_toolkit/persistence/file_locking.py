"""
Module: persistence.file_locking

Purpose:
    Cross-platform locked access to the JSON store document, so two
    sessions (or a session and the CLI) never interleave writes.
    Uses portalocker for Mac, Windows, and Linux compatibility.

Key Functions:
    - locked_file: Context manager for locked file access
    - locked_read_json: Read the document under a shared lock
    - locked_read_modify_write_json: Read-modify-write under an exclusive lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - persistence.json_store.JsonFileGateway
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, TypeVar

import portalocker

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def locked_file(
    path: Path,
    mode: str = 'r',
    lock_type: int = portalocker.LOCK_EX,
) -> Generator:
    """
    Context manager for cross-platform locked file access.

    Args:
        path: Path to file.
        mode: File open mode ('r', 'r+', 'w', etc.).
        lock_type: Lock type (LOCK_EX for exclusive, LOCK_SH for shared).

    Yields:
        Open file handle with lock held.

    Example:
        >>> with locked_file(store_path, 'r', portalocker.LOCK_SH) as f:
        ...     data = json.load(f)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Ensure file exists for read modes
    if 'r' in mode and not path.exists():
        path.touch()

    with open(path, mode, encoding='utf-8') as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


def _decode(content: str, default: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    if not content.strip():
        return default()
    return json.loads(content)


def locked_read_json(
    path: Path,
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read a JSON document under a shared lock.

    A missing or empty file reads as default().

    Raises:
        json.JSONDecodeError: If the file holds invalid JSON
        OSError: If the file cannot be opened
    """
    if not path.exists():
        return default()
    with locked_file(path, 'r', portalocker.LOCK_SH) as f:
        return _decode(f.read(), default)


def locked_read_modify_write_json(
    path: Path,
    modifier: Callable[[Dict[str, Any]], T],
    default: Callable[[], Dict[str, Any]] = dict,
) -> T:
    """
    Read JSON, apply modifier, write back - all with exclusive lock.

    The modifier mutates the document in place and returns whatever the
    caller needs (a created row, a flag). If it raises, the file is left
    untouched, and a file that did not exist before the call is not
    left behind.

    Args:
        path: Path to JSON file.
        modifier: Function that takes the document and returns a result.
        default: Factory for the document if the file doesn't exist.

    Returns:
        The modifier's return value.

    Example:
        >>> def add_row(doc):
        ...     doc['workbooks'].append(row)
        ...     return row
        >>> locked_read_modify_write_json(store_path, add_row, empty_store)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # An empty file decodes as default()
    created = not path.exists()
    if created:
        path.touch()

    try:
        with open(path, 'r+', encoding='utf-8') as f:
            portalocker.lock(f, portalocker.LOCK_EX)
            try:
                f.seek(0)
                document = _decode(f.read(), default)

                result = modifier(document)

                f.seek(0)
                f.truncate()
                json.dump(document, f, indent=2, ensure_ascii=False)
                logger.debug(f"Wrote {path.name}")
                return result
            finally:
                portalocker.unlock(f)
    except Exception:
        if created and path.exists() and path.stat().st_size == 0:
            path.unlink(missing_ok=True)
        raise
