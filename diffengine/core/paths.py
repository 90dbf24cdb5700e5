"""Path and file-writing helpers shared by the target file providers."""

import os
import tempfile
from pathlib import Path


def detect_line_ending(content: str) -> str:
    """Detect the predominant line ending style in content.

    Returns:
        "\\r\\n" (CRLF - Windows), "\\n" (LF - Unix), "\\r" (CR - legacy)
    """
    if '\r\n' in content:
        return '\r\n'
    if '\r' in content:
        return '\r'
    return '\n'


def restore_line_endings(content: str, line_ending: str) -> str:
    """Convert LF line endings back to ``line_ending``."""
    if line_ending == "\n":
        return content
    return content.replace("\n", line_ending)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write bytes to a file atomically using temp file + rename.

    The temp file lives in the target's directory so the final rename never
    crosses a filesystem boundary.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write text to a file atomically."""
    atomic_write_bytes(path, content.encode(encoding))
