"""Reading and writing the JSON state files.

Each state file holds a JSON list of records. Writes go to a temporary file in
the same directory which then replaces the original, so a reader sees either
the old list or the new one. A file that exists but cannot be read back is an
error: the records in it are the only copy of decided requests, and starting
over from an empty list would lose them.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel


class CorruptStateError(RuntimeError):
    """A state file exists but does not contain a JSON list of objects."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"State file {path} is unreadable: {reason}")
        self.path = path
        self.reason = reason


def load_json_list(path: Path) -> list[dict[str, object]]:
    """Return the raw records in `path`, or an empty list if it does not exist.

    Raises:
        CorruptStateError: the file is not valid JSON or is not a list of objects.
    """

    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CorruptStateError(path, f"invalid JSON ({e})") from e
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise CorruptStateError(path, "expected a JSON list of objects")
    return raw


def save_json_list(path: Path, items: Sequence[BaseModel]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [m.model_dump(mode="json") for m in items]
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".tmp_{path.stem}_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    finally:
        Path(tmp_name).unlink(missing_ok=True)
