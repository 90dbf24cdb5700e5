"""UTF-8 encoding constants and helpers for diffengine."""

import sys

# Encoding constants
ENCODING = "utf-8"
ENCODING_ERRORS = "replace"  # Preserve data, mark corruption


def configure_stdio() -> None:
    """Reconfigure stdout/stderr to use UTF-8 with replace error handling.

    Called at CLI startup so diff text with stray bytes never aborts output.
    """
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding=ENCODING, errors=ENCODING_ERRORS)
