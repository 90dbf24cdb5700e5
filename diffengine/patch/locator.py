"""Locate the text of a hunk in a target file.

The lookup starts at the line the hunk header declares and searches both
forward and backward for the hunk's text, keeping whichever match is
closer. Matches must start at the beginning of a line. When neither side
of the hunk is found literally, a whitespace-insensitive search is tried.
"""

import logging
import re
from collections.abc import Callable

from diffengine.core.constants import DEFAULT_FUZZY_MAX_CHARS
from diffengine.patch.parser import extract_hunk_text
from diffengine.patch.types import Hunk, SourceLocation

logger = logging.getLogger(__name__)

Span = tuple[int, int]


def line_position(text: str, line: int) -> int:
    """Offset of the start of 1-indexed ``line`` (clamped to the text)."""
    pos = 0
    for _ in range(line - 1):
        nl = text.find("\n", pos)
        if nl == -1:
            return len(text)
        pos = nl + 1
    return pos


def _at_line_start(text: str, pos: int) -> bool:
    return pos == 0 or text[pos - 1] == "\n"


def _closest(forw: Span | None, back: Span | None, orig: int) -> Span | None:
    if forw is not None and back is not None:
        return back if forw[0] - orig > orig - back[0] else forw
    return forw or back


def find_text(text: str, needle: str, orig: int) -> Span | None:
    """Find ``needle`` at a line start, closest to ``orig`` in either direction.

    Returns:
        (begin, end) span of the closer match, or None.
    """
    forw = None
    pos = text.find(needle, orig)
    while pos != -1:
        if _at_line_start(text, pos):
            forw = (pos, pos + len(needle))
            break
        pos = text.find(needle, pos + 1)

    back = None
    pos = text.rfind(needle, 0, orig + len(needle))
    while pos != -1:
        if _at_line_start(text, pos):
            back = (pos, pos + len(needle))
            break
        if pos == 0:
            break
        pos = text.rfind(needle, 0, pos - 1 + len(needle))
    return _closest(forw, back, orig)


def fuzzy_pattern(needle: str) -> re.Pattern[str] | None:
    """Build a pattern matching ``needle`` with any whitespace between words.

    Returns None when the needle has no words.
    """
    words = needle.split()
    if not words:
        return None
    body = r"[ \t\n]+".join(re.escape(word) for word in words)
    return re.compile(r"^[ \t]*" + body + r"[ \t]*(?:\n|\Z)", re.MULTILINE)


def find_approx_text(
    text: str,
    needle: str,
    orig: int,
    max_chars: int = DEFAULT_FUZZY_MAX_CHARS,
) -> Span | None:
    """Find ``needle`` ignoring whitespace differences, closest to ``orig``.

    Args:
        text: Target text
        needle: Hunk text to look for
        orig: Offset of the declared position
        max_chars: Longest needle a pattern is built for; 0 disables the
            search

    Returns:
        (begin, end) span of the closer match, or None.
    """
    if max_chars <= 0 or len(needle) > max_chars:
        logger.debug("Fuzzy search skipped for %d characters of text", len(needle))
        return None
    pattern = fuzzy_pattern(needle)
    if pattern is None:
        return None

    forw = None
    match = pattern.search(text, orig)
    if match:
        forw = match.span()

    back = None
    start = orig if _at_line_start(text, orig) else text.rfind("\n", 0, orig) + 1
    while True:
        match = pattern.match(text, start)
        if match:
            back = match.span()
            break
        if start == 0:
            break
        start = text.rfind("\n", 0, start - 1) + 1
    return _closest(forw, back, orig)


def _signed_line_count(text: str, orig: int, pos: int) -> int:
    if pos >= orig:
        return text.count("\n", orig, pos)
    return -text.count("\n", pos, orig)


def declared_line(hunk: Hunk, prefer_old_side: bool = False) -> int:
    """Line of the target where the hunk's text is expected to start.

    An empty side declares the line before the change, so the text starts
    on the next one.
    """
    side = hunk.header.old if prefer_old_side else hunk.header.new
    return side.start + 1 if side.count == 0 else side.start


def locate(
    hunk: Hunk,
    target_text: str,
    *,
    target: str | None = None,
    prefer_old_side: bool = False,
    reverse: bool = False,
    char_offset: int = 0,
    fuzzy: bool = True,
    fuzzy_max_chars: int = DEFAULT_FUZZY_MAX_CHARS,
) -> SourceLocation:
    """Find where a hunk's text lives in ``target_text``.

    The source side is the hunk's old text (the new text when
    ``reverse``); the destination is the other side. Resolution order:
    when both sides are found and ``reverse`` is off, the destination wins
    (the hunk looks already applied); otherwise the source if found, then
    the destination, then the same two with a whitespace-insensitive
    search.

    Args:
        hunk: Parsed hunk
        target_text: Text of the target file
        target: Identity of the target, copied into the result
        prefer_old_side: Use the old side's declared start line
        reverse: Look for the new text first (to undo the hunk)
        char_offset: Offset inside the raw hunk to map into the target
        fuzzy: Allow the whitespace-insensitive fallback
        fuzzy_max_chars: Longest text a fuzzy pattern is built for

    Returns:
        SourceLocation; ``found`` is False when nothing matched.
    """
    source = extract_hunk_text(hunk.text, new_side=reverse, char_offset=char_offset)
    dest = extract_hunk_text(hunk.text, new_side=not reverse, char_offset=char_offset)
    orig = line_position(target_text, declared_line(hunk, prefer_old_side))

    def resolve(find: Callable[[str, str, int], Span | None]) -> tuple[Span, bool] | None:
        source_span = find(target_text, source.text, orig)
        dest_span = find(target_text, dest.text, orig)
        # An empty destination matches anywhere; only real text counts as applied
        if source_span is not None and dest_span is not None and dest.text and not reverse:
            return dest_span, True
        if source_span is not None:
            return source_span, False
        if dest_span is not None:
            return dest_span, True
        return None

    is_fuzzy = False
    found = resolve(find_text)
    if found is None and fuzzy:
        found = resolve(
            lambda text, needle, pos: find_approx_text(text, needle, pos, fuzzy_max_chars)
        )
        is_fuzzy = found is not None

    if found is None:
        logger.debug("Hunk at %d: text not found in %s", hunk.start, target or "target")
        return SourceLocation(
            target=target,
            line_offset=None,
            span=(orig, orig + len(source.text)),
            source=source,
            replacement=dest,
        )

    span, switched = found
    line_offset = _signed_line_count(target_text, orig, span[0])
    logger.debug(
        "Hunk at %d: found %s text%s at offset %d in %s",
        hunk.start,
        "destination" if switched else "source",
        " (fuzzy)" if is_fuzzy else "",
        line_offset,
        target or "target",
    )
    return SourceLocation(
        target=target,
        line_offset=line_offset,
        span=span,
        source=dest if switched else source,
        replacement=source if switched else dest,
        switched=switched,
        fuzzy=is_fuzzy,
    )


def hunk_status_message(line_offset: int | None, reversed_: bool, dry_run: bool) -> str:
    """One-line status for a hunk lookup or application.

    Args:
        line_offset: Offset of the match, None if the text was not found
        reversed_: The hunk was found in the opposite state (already applied
            when applying, or undone when reverting)
        dry_run: The hunk was only tested, not applied
    """
    if dry_run:
        state = "already applied" if reversed_ else "not yet applied"
    else:
        state = "undone" if reversed_ else "applied"
    if line_offset is None:
        return "Hunk text not found"
    if line_offset == 0:
        return f"Hunk {state}"
    unit = "line" if abs(line_offset) == 1 else "lines"
    return f"Hunk {state} at offset {line_offset} {unit}"
