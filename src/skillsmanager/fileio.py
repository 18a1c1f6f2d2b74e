"""Atomic file replacement shared by the manifest writer and the catalog registry."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str) -> None:
    """Write content to path atomically using tempfile + os.replace.

    The temp file lives beside ``path`` so the rename never crosses a
    filesystem. On any failure the temp file is removed and ``path`` keeps
    its previous content.
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.write(fd, content.encode("utf-8"))
        os.close(fd)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.close(fd)
        except OSError:
            pass
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
