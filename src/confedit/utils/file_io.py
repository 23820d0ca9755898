"""File IO helpers for reading and atomically writing configuration files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = [
    "read_bytes",
    "write_bytes",
]


def read_bytes(path: Path | str) -> bytes:
    """Return the raw contents of ``path``."""

    return Path(path).expanduser().read_bytes()


def write_bytes(path: Path | str, content: bytes, *, atomic: bool = True) -> Path:
    """Write ``content`` to disk, replacing the target in a single rename when atomic."""

    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    if not atomic:
        with target.open("wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        return target

    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target

