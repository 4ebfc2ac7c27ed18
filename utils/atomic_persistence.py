"""
Atomic Persistence Utilities

JSON read/write helpers for device-local storage. Writes use the
temp-file -> rename pattern; reads never raise and degrade to a default.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from utils.logger import get_logger

log = get_logger(__name__)

TEMP_SUFFIX = ".tmp"


def write_text_atomic(text: str, file_path: Path | str) -> None:
    """
    Write text atomically using temp-file -> rename.

    Raises:
        OSError: if the directory is not writable. Callers that need
        best-effort semantics catch it themselves.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = file_path.with_name(file_path.name + TEMP_SUFFIX)
    with open(temp_path, "w", encoding="utf-8") as f:
        f.write(text)

    # Atomic rename (POSIX guarantees atomicity)
    temp_path.replace(file_path)


def load_json_safe(file_path: Path | str, default: Any = None) -> Any:
    """
    Load a JSON value, returning ``default`` if the file is missing,
    unreadable or not valid JSON.

    Example:
        orders = load_json_safe(Path("storage/orders.json"), default=[])
    """
    file_path = Path(file_path)
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        log.warning("persist.decode_failed", path=str(file_path), error=str(e))
        return default
    except OSError as e:
        log.error("persist.load_failed", path=str(file_path), error=str(e))
        return default


def delete_file_safe(file_path: Path | str) -> bool:
    """
    Safely delete a file (no error if doesn't exist).

    Returns:
        True if deleted or didn't exist, False on error
    """
    try:
        Path(file_path).unlink(missing_ok=True)
        return True
    except OSError as e:
        log.error("persist.delete_failed", path=str(file_path), error=str(e))
        return False


def dumps_compact(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
