"""Atomic JSON writes shared by the issuer catalog and the record store."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from greb.errors import PersistenceFailure


def atomic_save(path: Path, data: Any, what: str = "data") -> None:
    """Write ``data`` as JSON to ``path`` via a sibling temp file and replace.

    Output is UTF-8, two-space indented, newline terminated. Raises
    PersistenceFailure naming ``what`` and ``path``; the old file is left
    intact and no temp file remains.
    """
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    tmp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent, suffix=".tmp", prefix=f".{path.stem}_"
        )
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise PersistenceFailure(f"cannot write {what} to {path}: {e}") from e
