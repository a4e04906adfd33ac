from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional


def dump_json(payload: Any, *, indent: Optional[int] = 2) -> str:
    """Serialize ``payload`` the way every emitted document is serialized."""
    return json.dumps(payload, indent=indent, ensure_ascii=False) + "\n"


def write_bytes_atomic(path: Path, data: bytes, *, only_if_changed: bool = True) -> bool:
    """Atomically write ``data`` to ``path``.

    Returns:
        True when the file was written, False when ``only_if_changed`` is set
        and the file already holds exactly ``data``.
    """
    path = Path(path)
    if only_if_changed and path.is_file() and path.read_bytes() == data:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
        ) as handle:
            tmp_path = Path(handle.name)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return True


def write_text_atomic(
    path: Path,
    text: str,
    *,
    encoding: str = "utf-8",
    only_if_changed: bool = True,
) -> bool:
    return write_bytes_atomic(path, text.encode(encoding), only_if_changed=only_if_changed)


def write_json_atomic(
    path: Path,
    payload: Any,
    *,
    indent: Optional[int] = 2,
    only_if_changed: bool = True,
) -> bool:
    return write_text_atomic(path, dump_json(payload, indent=indent), only_if_changed=only_if_changed)
