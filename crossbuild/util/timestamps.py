# SPDX-License-Identifier: MIT
"""Modification time normalization for reproducible builds."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from crossbuild.core.errors import TimestampError

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> int:
    """Parse a Unix timestamp given in seconds.

    Raises:
        TimestampError: If the value is not an integer.
    """
    try:
        return int(value.strip())
    except ValueError as e:
        raise TimestampError(f"invalid mod_timestamp '{value}': {e}") from e


def set_mod_time(path: Path | str, timestamp: int) -> None:
    """Set access and modification time of a file.

    Args:
        path: File to touch; it must exist.
        timestamp: Unix timestamp in seconds.

    Raises:
        TimestampError: If the file cannot be stat'ed or updated.
    """
    path = Path(path)
    try:
        path.stat()
        os.utime(path, (timestamp, timestamp))
    except OSError as e:
        raise TimestampError(
            f"failed to change times for {path}: {e.strerror or e}"
        ) from e
    logger.debug("Set mtime of %s to %d", path, timestamp)
