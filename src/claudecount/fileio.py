"""Replace-style file writes for local state."""
import json
import os
import stat
import sys
import tempfile
import time
from pathlib import Path
from typing import Optional


def _safe_replace(src: str, dst: str, *, retries: int = 3, delay: float = 0.1):
    """os.replace() with retry for Windows PermissionError."""
    for attempt in range(retries):
        try:
            os.replace(src, dst)
            return
        except PermissionError:
            if sys.platform != "win32" or attempt == retries - 1:
                raise
            time.sleep(delay * (2 ** attempt))


def write_bytes_atomic(path: Path, content: bytes, mode: Optional[int] = None) -> None:
    """Write content to a temp file beside path, then swap it into place.

    Readers see either the previous file or the complete new one, never a
    half-written file. Bytes are written as given, with no newline
    translation. Without an explicit mode, an existing file keeps its
    permissions and a new one gets 0644.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode is None:
        mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else 0o644
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}_tmp_")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(tmp, mode)
        _safe_replace(tmp, str(path))
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def write_json_atomic(path: Path, data: dict, mode: Optional[int] = None) -> None:
    content = json.dumps(data, indent=2) + "\n"
    write_bytes_atomic(path, content.encode("utf-8"), mode=mode)
