"""Crash-tolerant JSON file I/O.

Report files are written with an atomic temp-file-then-rename so a crash
never leaves a half-written report behind. Event logs use JSON Lines, where
a crash mid-write can only damage the final line.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def safe_json_load(
    path: Path,
    default: T | None = None,
) -> dict[str, Any] | list[Any] | T | None:
    """Load JSON file with graceful error handling.

    Returns default value if file doesn't exist or is corrupted.
    Never raises exceptions - logs warnings instead.

    Args:
        path: Path to JSON file
        default: Value to return on error (default: None)

    Returns:
        Parsed JSON data, or default on any error
    """
    if not path.exists():
        return default

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Corrupted JSON in %s: %s (using default)", path, e)
        return default
    except OSError as e:
        logger.warning("Failed to read %s: %s (using default)", path, e)
        return default


def safe_json_dump(
    obj: dict[str, Any] | list[Any],
    path: Path,
    *,
    indent: int = 2,
) -> bool:
    """Write JSON file atomically.

    Writes to a temp file in the destination directory, then renames it over
    the target. The temp file is removed if anything fails before the rename.
    Creates parent directories if needed.

    Args:
        obj: Object to serialize
        path: Destination path
        indent: JSON indentation (default: 2)

    Returns:
        True if successful, False on error
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(obj, indent=indent, ensure_ascii=False)

        fd, tmp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=path.stem + "_",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Temp file %s already gone", tmp_path)
            raise

        return True
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        return False
    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize JSON for %s: %s", path, e)
        return False


def safe_jsonl_append(
    record: dict[str, Any],
    path: Path,
) -> bool:
    """Append a single record to a JSONL file.

    Returns:
        True if successful, False on error
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        return True
    except OSError as e:
        logger.error("Failed to append to %s: %s", path, e)
        return False
    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize record for %s: %s", path, e)
        return False


def safe_jsonl_load(path: Path) -> list[dict[str, Any]]:
    """Load all records from a JSONL file.

    Skips corrupted lines; partial data is better than none.

    Returns:
        List of parsed records (empty list if file missing)
    """
    if not path.exists():
        return []

    records: list[dict[str, Any]] = []
    try:
        with open(path, encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning("Skipping corrupted line %d in %s: %s", line_num, path, e)
                    continue
                if isinstance(record, dict):
                    records.append(record)
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)

    return records
