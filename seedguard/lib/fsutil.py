from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from ..errors import FilesystemError

logger = logging.getLogger(__name__)


def ensure_dir(path: str | Path, *, what: str = "directory") -> Path:
    d = Path(path)
    try:
        d.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"cannot make {what} {d}: {e}") from e
    return d


def copy_file(src: str | Path, dst: str | Path, *, dry_run: bool = False) -> Path:
    """Copy a single file verbatim (content and mode)."""

    s = Path(src)
    d = Path(dst)
    if dry_run:
        logger.info("Would copy %s -> %s", str(s), str(d))
        return d

    try:
        shutil.copy2(s, d)
    except OSError as e:
        raise FilesystemError(f"cannot copy {s} to {d}: {e}") from e
    logger.info("Copied %s -> %s", str(s), str(d))
    return d


def write_file_atomic(path: str | Path, contents: str, *, mode: int = 0o644) -> Path:
    """Write ``contents`` so that readers see either nothing or the whole file.

    The data goes to a temporary file next to ``path`` which is fsynced and
    then renamed over the destination.
    """

    p = Path(path)
    try:
        fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", dir=str(p.parent))
    except OSError as e:
        raise FilesystemError(f"cannot write {p}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(contents)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, p)
    except OSError as e:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise FilesystemError(f"cannot write {p}: {e}") from e
    return p
