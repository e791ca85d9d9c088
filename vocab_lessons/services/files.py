"""Filesystem primitives shared by the lesson stores."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path


class StorageError(OSError):
    """Raised when a store cannot read or write its backing files."""


def atomic_write_bytes(target: Path, data: bytes) -> None:
    """Replace *target* with *data* through a sibling temporary file.

    Readers observe either the previous content or the new content, never a
    partially written file.
    """

    target.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "wb",
        delete=False,
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise


def atomic_write_text(target: Path, text: str) -> None:
    atomic_write_bytes(target, text.encode("utf-8"))


__all__ = ["StorageError", "atomic_write_bytes", "atomic_write_text"]
