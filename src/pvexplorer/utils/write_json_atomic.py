from __future__ import annotations

import json
import os
from contextlib import suppress
from pathlib import Path

from pvexplorer.errors import PersistenceError


def write_json_atomic(path: Path, payload: object) -> Path:
    """Write ``payload`` as JSON to ``path`` via a sibling temp file and rename.

    Readers never observe a partially written file. Any failure, including one
    where the parent path is not a directory, surfaces as ``PersistenceError``.
    """

    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)
    except (OSError, TypeError, ValueError) as exc:
        with suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc
    return path
