"""
Atomic file writes: write to a temp file in the target directory, fsync,
then os.replace() over the target. Readers never observe a partial file.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union


def atomic_write_bytes(path: Path, data: bytes, mode_from: Optional[Path] = None) -> None:
    """
    Atomically replace path with data.

    Args:
        path: Target file
        data: New contents
        mode_from: File whose permission bits the new file should copy
                   (defaults to the existing target, if any)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if mode_from is None and path.exists():
        mode_from = path

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode_from is not None and Path(mode_from).exists():
            shutil.copymode(str(mode_from), tmp_name)
        os.replace(tmp_name, str(path))
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def atomic_write_text(path: Union[str, Path], text: str, mode_from: Optional[Path] = None) -> None:
    atomic_write_bytes(Path(path), text.encode("utf-8", "surrogateescape"), mode_from=mode_from)
