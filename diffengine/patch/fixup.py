"""Recompute hunk header line counts after the hunk bodies were edited."""

import logging
import re

from diffengine.patch.parser import (
    CONTEXT_MID_RE,
    CONTEXT_OLD_RE,
    UNIFIED_HEADER_RE,
    LineIndex,
    hunk_end_line,
    strip_eol,
    style_at_line,
)

logger = logging.getLogger(__name__)

# Any context old or mid header, and the ---/+++ file header start
_RANGE_HEADER_RE = re.compile(r"^[-*]{3} [0-9,]+ [-*]{4}$")


def _is_header_line(lines: LineIndex, index: int) -> bool:
    bare = lines.bare(index)
    if UNIFIED_HEADER_RE.match(bare) or _RANGE_HEADER_RE.match(bare):
        return True
    return (
        bare.startswith("--- ")
        and index + 1 < len(lines)
        and lines.lines[index + 1].startswith("+++ ")
    )


def _unified_count(start: str, written: str | None, count: int) -> str:
    # An omitted count means 1; keep it omitted while it still holds
    if written is None and count == 1:
        return start
    return f"{start},{count}"


def _context_range(start: str, written: str | None, count: int) -> str | None:
    """Rewritten ``start[,end]`` field, or None to leave the header alone."""
    if count <= 0:
        return None
    if written is None and count == 1:
        return None
    return f"{start},{int(start) + count - 1}"


def _scan_end(lines: LineIndex, end: int, valid_empty_line: bool) -> int:
    """Line index where the backward scan starts: past the hunk containing ``end``."""
    if end >= len(lines.text):
        return len(lines)
    index = lines.index_at(end)
    header = index
    while header >= 0 and style_at_line(lines, header) is None:
        header -= 1
    if header < 0:
        return index + 1
    hunk_end = hunk_end_line(
        lines, header, None, dont_trust_header=True, valid_empty_line=valid_empty_line
    )
    return max(index + 1, hunk_end)


def fixup_hunk_headers(
    text: str,
    start: int = 0,
    end: int | None = None,
    valid_empty_line: bool = True,
) -> str:
    """Rewrite hunk header counts so they match the hunk bodies.

    Scans backward from the end of the hunk containing ``end`` down to
    ``start``, counting context, added, removed and changed lines since the
    last header seen. A unified header gets ``context+removed`` and
    ``context+added``; a context mid-hunk header (or old header) gets its end
    line set to ``start + context + changed + added (or removed) - 1``.

    A ``-- `` line (the git format-patch signature delimiter) is not counted
    as a removed line. Running the fixup twice changes nothing the second
    time.

    Args:
        text: Diff text
        start: Offset where the scan stops
        end: Offset of the last change; None for the end of the text
        valid_empty_line: Count empty lines inside unified hunks as context

    Returns:
        The diff text with corrected headers.
    """
    lines = LineIndex(text)
    if not len(lines):
        return text
    out = list(lines.lines)
    stop = _scan_end(lines, len(text) if end is None else end, valid_empty_line)

    space = plus = minus = bang = 0
    # Empty lines count only between body lines, never at the end of a hunk
    seen_body = False
    for i in range(stop - 1, -1, -1):
        if lines.offset(i) < start:
            break
        line = out[i]
        bare = strip_eol(line)
        if not _is_header_line(lines, i):
            marker = line[:1]
            if marker == " ":
                space += 1
            elif marker == "+":
                plus += 1
            elif marker == "-":
                if bare not in ("-- ", "--"):
                    minus += 1
            elif marker == "!":
                bang += 1
            elif marker in ("\\", "#"):
                continue
            elif bare == "" and valid_empty_line:
                if seen_body:
                    space += 1
                continue
            else:
                space = plus = minus = bang = 0
                seen_body = False
                continue
            seen_body = True
            continue

        eol = line[len(bare):]
        rewritten = None
        unified = UNIFIED_HEADER_RE.match(bare)
        mid = CONTEXT_MID_RE.match(bare)
        old = CONTEXT_OLD_RE.match(bare)
        if unified:
            old_field = _unified_count(unified.group(1), unified.group(2), space + minus)
            new_field = _unified_count(unified.group(3), unified.group(4), space + plus)
            rewritten = f"@@ -{old_field} +{new_field} @@{unified.group(5)}"
        elif mid:
            new_range = _context_range(mid.group(1), mid.group(2), space + bang + plus)
            if new_range is not None:
                rewritten = f"--- {new_range} ----"
        elif old:
            old_range = _context_range(old.group(1), old.group(2), space + bang + minus)
            if old_range is not None:
                rewritten = f"*** {old_range} ****"
        if rewritten is not None and rewritten != bare:
            logger.debug("Fixed hunk header %r -> %r", bare, rewritten)
            out[i] = rewritten + eol
        space = plus = minus = bang = 0
        seen_body = False

    return "".join(out)
