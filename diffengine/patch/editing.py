"""Structural edits of a diff: removing hunks or files and splitting hunks."""

import logging

from diffengine.core.errors import MalformedHunkError
from diffengine.patch.buffer import DiffBuffer
from diffengine.patch.parser import classify_line, split_lines
from diffengine.patch.types import HunkStyle, LineKind

logger = logging.getLogger(__name__)


def kill_hunk(buf: DiffBuffer, pos: int) -> str:
    """Remove the hunk at ``pos`` (or the next one) and return the removed text.

    When it is the only hunk of its file, the file header goes with it.

    Raises:
        MalformedHunkError: If there is no hunk at or after ``pos``.
    """
    found = buf.document().hunk_at(pos)
    if found is None:
        raise MalformedHunkError("No hunk found", pos)
    section, hunk = found
    if len(section.hunks) == 1:
        start, end = section.start, section.end
    else:
        start, end = hunk.start, hunk.end
    killed = buf.text[start:end]
    buf.delete(start, end)
    logger.debug("Killed %d characters at %d", len(killed), start)
    return killed


def kill_file(buf: DiffBuffer, pos: int) -> str:
    """Remove the file section containing ``pos`` and return the removed text.

    Raises:
        MalformedHunkError: If ``pos`` is not inside a file section.
    """
    document = buf.document()
    for section in document.sections:
        if section.start <= pos < section.end:
            killed = buf.text[section.start:section.end]
            buf.delete(section.start, section.end)
            return killed
    raise MalformedHunkError("Can't find the beginning of the file", pos)


def split_hunk(buf: DiffBuffer, pos: int) -> int:
    """Split the unified hunk at ``pos`` in two, starting the second at that line.

    Both headers are fixed up afterwards.

    Returns:
        Offset of the new hunk header.

    Raises:
        MalformedHunkError: If ``pos`` is not on a body line of a unified hunk.
    """
    line_start = buf.text.rfind("\n", 0, pos) + 1
    found = buf.document().hunk_at(line_start)
    if found is None or not found[1].start < line_start < found[1].end:
        raise MalformedHunkError("Not inside a hunk body", pos)
    hunk = found[1]
    if hunk.style is not HunkStyle.UNIFIED:
        raise MalformedHunkError("Only unified hunks can be split", pos)

    old_line = hunk.header.old.start
    new_line = hunk.header.new.start
    body = split_lines(buf.text[hunk.start:line_start])[1:]
    for line in body:
        kind = classify_line(line, HunkStyle.UNIFIED, buf.valid_empty_line)
        if kind in (LineKind.CONTEXT, LineKind.REMOVED):
            old_line += 1
        if kind in (LineKind.CONTEXT, LineKind.ADDED):
            new_line += 1

    buf.insert(line_start, f"@@ -{old_line} +{new_line} @@\n")
    buf.fixup_range(hunk.start, line_start)
    logger.debug("Split hunk at %d into -%d +%d", hunk.start, old_line, new_line)
    return line_start
