"""auditscore utility helpers."""

import json
import math
import sys
import time
from pathlib import Path
from typing import Any

from auditscore.errors import MalformedFindings

STDIN_MARKER: str = "-"


def validate_path(path: str) -> Path:
    """Resolve and validate that *path* points to an existing file.

    Args:
        path: Raw path string from the CLI.

    Returns:
        Resolved ``Path`` object.

    Raises:
        FileNotFoundError: If the path does not exist.
        IsADirectoryError: If the path is a directory.
    """
    resolved = Path(path).resolve()

    if not resolved.exists():
        raise FileNotFoundError(f"Path does not exist: {resolved}")

    if resolved.is_dir():
        raise IsADirectoryError(f"Path is a directory: {resolved}")

    return resolved


def read_json_document(source: str) -> Any:
    """Read and decode a JSON document from a file path or stdin.

    Args:
        source: File path, or ``-`` to read standard input.

    Returns:
        The decoded document.

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        IsADirectoryError: If *source* is a directory.
        MalformedFindings: If the content is not valid JSON.
    """
    if source == STDIN_MARKER:
        text = sys.stdin.read()
        origin = "<stdin>"
    else:
        resolved = validate_path(source)
        text = resolved.read_text(encoding="utf-8", errors="replace")
        origin = str(resolved)

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedFindings(
            f"{origin} is not valid JSON: {exc.msg} (line {exc.lineno})",
            context={"source": origin},
        ) from exc


def round_half_up(value: float) -> int:
    """Round a non-negative *value* to the nearest integer, ties going up.

    Python's ``round`` uses banker's rounding (``round(84.5) == 84``), so
    scores are rounded here instead.
    """
    return int(math.floor(value + 0.5))


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
