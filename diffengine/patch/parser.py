"""Parser for unified, context and normal diff text.

This module recognizes hunk headers and hunk boundaries for the three diff
dialects, extracts declared line ranges, and reconstructs the literal
old-side and new-side file text of a hunk.

Functions that take ``(text, pos)`` work on character offsets into the full
diff text, so callers can point at any position inside a document (for
example a cursor position) and get the enclosing hunk.
"""

import bisect
import re

from diffengine.core.constants import NULL_DEVICE
from diffengine.core.errors import AmbiguousFormatError, MalformedHunkError
from diffengine.patch.types import (
    DiffDocument,
    FileSection,
    Hunk,
    HunkHeader,
    HunkLine,
    HunkStyle,
    HunkText,
    LineKind,
    LineRange,
    Side,
)

# Pattern for unified hunk header: @@ -old_start[,old_count] +new_start[,new_count] @@ [heading]
UNIFIED_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")

# Context hunks open with a 15-asterisk banner, optionally followed by a heading
CONTEXT_BANNER_RE = re.compile(r"^\*{15}(.*)$")
CONTEXT_OLD_RE = re.compile(r"^\*\*\* (\d+)(?:,(-?\d+))? \*\*\*\*$")
CONTEXT_MID_RE = re.compile(r"^--- (\d+)(?:,(-?\d+))? ----$")

# Normal diff command: 5a6,7 / 3,4d2 / 8c8,9
NORMAL_HEADER_RE = re.compile(r"^(\d+)(?:,(\d+))?([acd])(\d+)(?:,(\d+))?$")

# File name lines; the name stops at a TAB (timestamps follow it)
FILE_NAME_RE = re.compile(r"^(?:---|\+\+\+|\*\*\*) ([^\t\n]+)")

# diff [options] OLD NEW (git: diff --git a/OLD b/NEW)
DIFF_COMMAND_RE = re.compile(r"^diff (?:-\S+ +)*(\S+)(?: +(\S+))?")

INDEX_RE = re.compile(r"^Index: (.+)$")
MODE_RE = re.compile(r"^(new file mode|deleted file mode|old mode|new mode) (\d+)$")

_UNIFIED_BODY_MARKERS = frozenset(" +-\\")
_CONTEXT_BODY_MARKERS = frozenset(" +-!\\")
_NORMAL_BODY_MARKERS = frozenset("<>\\")
_ANY_BODY_MARKERS = frozenset(" +-!<>\\")


def split_lines(text: str) -> list[str]:
    """Split text into lines on LF only, keeping terminators.

    Unlike ``str.splitlines`` this never splits on form feeds or other
    Unicode separators, so the lines always concatenate back to ``text``.
    """
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def strip_eol(line: str) -> str:
    """Return a line without its LF or CRLF terminator."""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def _is_empty_line(line: str) -> bool:
    return strip_eol(line) == ""


class LineIndex:
    """Lines of a text together with their start offsets."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.lines = split_lines(text)
        self.offsets: list[int] = []
        pos = 0
        for line in self.lines:
            self.offsets.append(pos)
            pos += len(line)

    def __len__(self) -> int:
        return len(self.lines)

    def offset(self, index: int) -> int:
        """Start offset of line ``index``; ``len(self)`` maps to the end of text."""
        if index >= len(self.lines):
            return len(self.text)
        return self.offsets[index]

    def index_at(self, pos: int) -> int:
        """Index of the line containing ``pos`` (clamped to the last line)."""
        if not self.lines:
            return 0
        index = bisect.bisect_right(self.offsets, pos) - 1
        return max(0, min(index, len(self.lines) - 1))

    def bare(self, index: int) -> str:
        return strip_eol(self.lines[index])


# === Line classification ===


def classify_line(
    line: str, style: HunkStyle, valid_empty_line: bool = True
) -> LineKind | None:
    """Classify a hunk body line by its leading marker.

    Args:
        line: Body line as written in the diff (terminator optional)
        style: Dialect of the enclosing hunk
        valid_empty_line: Treat an empty line in a unified hunk as an empty
            context line (many tools strip the trailing space)

    Returns:
        The line's kind, or None if the line cannot be a body line of a
        hunk in that style.
    """
    if _is_empty_line(line):
        if style is HunkStyle.UNIFIED and valid_empty_line:
            return LineKind.CONTEXT
        return None
    marker = line[0]
    if marker == "\\":
        return LineKind.NO_NEWLINE
    if style is HunkStyle.UNIFIED:
        return {" ": LineKind.CONTEXT, "+": LineKind.ADDED, "-": LineKind.REMOVED}.get(marker)
    if style is HunkStyle.CONTEXT:
        return {
            " ": LineKind.CONTEXT,
            "+": LineKind.ADDED,
            "-": LineKind.REMOVED,
            "!": LineKind.CHANGED,
        }.get(marker)
    return {"<": LineKind.REMOVED, ">": LineKind.ADDED}.get(marker)


def style_at_line(lines: LineIndex, index: int) -> HunkStyle | None:
    """Dialect of the hunk header starting at line ``index``, if any."""
    if index >= len(lines):
        return None
    line = lines.bare(index)
    if UNIFIED_HEADER_RE.match(line):
        return HunkStyle.UNIFIED
    if (
        CONTEXT_BANNER_RE.match(line)
        and index + 1 < len(lines)
        and CONTEXT_OLD_RE.match(lines.bare(index + 1))
    ):
        return HunkStyle.CONTEXT
    if NORMAL_HEADER_RE.match(line):
        return HunkStyle.NORMAL
    return None


def hunk_style_at(text: str, pos: int) -> HunkStyle | None:
    """Dialect of the hunk header on the line containing ``pos``, if any."""
    lines = LineIndex(text)
    if not len(lines):
        return None
    return style_at_line(lines, lines.index_at(pos))


def is_file_header_pair(lines: LineIndex, index: int) -> bool:
    """True if lines ``index`` and ``index + 1`` are a ---/+++ or ***/--- name pair."""
    if index + 1 >= len(lines):
        return False
    first = lines.bare(index)
    second = lines.bare(index + 1)
    if first.startswith("--- ") and second.startswith("+++ "):
        return True
    return (
        first.startswith("*** ")
        and second.startswith("--- ")
        and not CONTEXT_OLD_RE.match(first)
        and not CONTEXT_MID_RE.match(second)
    )


def _is_file_command(line: str) -> bool:
    return line.startswith(("diff ", "Index: ", "==== "))


def _continues_hunk(
    lines: LineIndex, index: int, style: HunkStyle | None, valid_empty_line: bool
) -> bool:
    """True if line ``index`` can still belong to a hunk body of ``style``."""
    line = lines.lines[index]
    if _is_empty_line(line):
        return style is HunkStyle.UNIFIED and valid_empty_line
    marker = line[0]
    if style is HunkStyle.UNIFIED:
        if marker not in _UNIFIED_BODY_MARKERS:
            return False
        # A unified file header is ambiguous with removed/added lines
        return not (marker == "-" and is_file_header_pair(lines, index))
    if style is HunkStyle.CONTEXT:
        return marker in _CONTEXT_BODY_MARKERS
    if style is HunkStyle.NORMAL:
        return marker in _NORMAL_BODY_MARKERS or lines.bare(index) == "---"
    return marker in _ANY_BODY_MARKERS


def _header_line_count(style: HunkStyle) -> int:
    return 2 if style is HunkStyle.CONTEXT else 1


# === Hunk boundaries ===


def _count_forward(
    lines: LineIndex,
    index: int,
    markers: str,
    count: int,
    valid_empty_line: bool,
) -> int | None:
    """Index just past the ``count``-th line starting with one of ``markers``.

    A "No newline at end of file" marker right after that line is included.
    Returns None when the body runs out before ``count`` lines were seen.
    """
    end = index
    seen = 0
    while seen < count:
        if end >= len(lines) or not _continues_hunk(
            lines, end, HunkStyle.UNIFIED, valid_empty_line
        ):
            return None
        line = lines.lines[end]
        if line[:1] in markers or (valid_empty_line and _is_empty_line(line)):
            seen += 1
        end += 1
    if end < len(lines) and lines.lines[end].startswith("\\"):
        end += 1
    return end


def hunk_end_line(
    lines: LineIndex,
    index: int,
    style: HunkStyle | None,
    dont_trust_header: bool,
    valid_empty_line: bool,
) -> int:
    """Line index just past the hunk whose header is at ``index``."""
    if style is None:
        style = style_at_line(lines, index)
    if style is HunkStyle.UNIFIED and not dont_trust_header:
        match = UNIFIED_HEADER_RE.match(lines.bare(index))
        if match:
            nold = int(match.group(2) or "1")
            nnew = int(match.group(4) or "1")
            end_old = _count_forward(lines, index + 1, "- ", nold, valid_empty_line)
            end_new = _count_forward(lines, index + 1, "+ ", nnew, valid_empty_line)
            if end_old is not None and end_new is not None:
                return max(end_old, end_new)

    body = index + (_header_line_count(style) if style else 1)
    end = body
    while end < len(lines) and _continues_hunk(lines, end, style, valid_empty_line):
        end += 1
    if valid_empty_line:
        # Empty lines at the end are more likely unrelated to the hunk
        while end > body and _is_empty_line(lines.lines[end - 1]):
            end -= 1
    return end


def end_of_hunk(
    text: str,
    hunk_start: int,
    style: HunkStyle | None = None,
    dont_trust_header: bool = False,
    valid_empty_line: bool = True,
) -> int:
    """Compute where the hunk starting at ``hunk_start`` ends.

    Args:
        text: Full diff text
        hunk_start: Offset of the hunk header (any offset on its first line)
        style: Dialect to scan for; detected from the header when None
        dont_trust_header: Ignore the declared unified counts and scan the
            body content instead. Use after the body was edited and before
            the header was fixed up.
        valid_empty_line: Treat empty lines in unified hunks as context

    Returns:
        Offset just past the last body line of the hunk.
    """
    lines = LineIndex(text)
    if not len(lines):
        return 0
    index = lines.index_at(hunk_start)
    return lines.offset(hunk_end_line(lines, index, style, dont_trust_header, valid_empty_line))


def _find_header_backward(lines: LineIndex, index: int) -> tuple[int, HunkStyle] | None:
    while index >= 0:
        style = style_at_line(lines, index)
        if style is not None:
            return index, style
        index -= 1
    return None


def _find_header_forward(lines: LineIndex, index: int) -> tuple[int, HunkStyle] | None:
    while index < len(lines):
        style = style_at_line(lines, index)
        if style is not None:
            return index, style
        index += 1
    return None


def find_hunk_bounds(
    text: str,
    pos: int,
    try_harder: bool = True,
    dont_trust_header: bool = False,
    valid_empty_line: bool = True,
) -> tuple[int, int]:
    """Return the (start, end) span of the hunk enclosing ``pos``.

    When ``pos`` is not inside a hunk (it is in a file header or in junk
    between hunks), the next hunk is returned if ``try_harder`` is set.

    Raises:
        MalformedHunkError: If no suitable hunk exists.
    """
    lines = LineIndex(text)
    if not len(lines):
        raise MalformedHunkError("No hunk found", pos)
    index = lines.index_at(pos)
    found = _find_header_backward(lines, index)
    if found is not None:
        start, style = found
        end = hunk_end_line(lines, start, style, dont_trust_header, valid_empty_line)
        if index < end:
            return lines.offset(start), lines.offset(end)
    if not try_harder:
        raise MalformedHunkError("Can't find the beginning of the hunk", pos)
    found = _find_header_forward(lines, index + 1)
    if found is None:
        raise MalformedHunkError("No next hunk", pos)
    start, style = found
    end = hunk_end_line(lines, start, style, dont_trust_header, valid_empty_line)
    return lines.offset(start), lines.offset(end)


# === Header parsing ===


def _context_range(match: re.Match[str]) -> tuple[LineRange, bool]:
    start = int(match.group(1))
    if match.group(2) is None:
        return LineRange(start, 1), False
    end = int(match.group(2))
    return LineRange(start, max(0, end - start + 1)), True


def find_context_mid(lines: LineIndex, index: int, stop: int) -> int | None:
    """Index of the context mid-hunk header between ``index`` and ``stop``."""
    for i in range(index, min(stop, len(lines))):
        if CONTEXT_MID_RE.match(lines.bare(i)):
            return i
        if lines.lines[i][:1] not in _CONTEXT_BODY_MARKERS:
            break
    return None


def _parse_header_at(lines: LineIndex, index: int) -> HunkHeader:
    style = style_at_line(lines, index)
    position = lines.offset(index)
    line = lines.bare(index) if index < len(lines) else ""

    if style is HunkStyle.UNIFIED:
        match = UNIFIED_HEADER_RE.match(line)
        assert match is not None
        # Count defaults to 1 if omitted (e.g., @@ -1 +1,2 @@)
        return HunkHeader(
            style=style,
            old=LineRange(int(match.group(1)), int(match.group(2) or "1")),
            new=LineRange(int(match.group(3)), int(match.group(4) or "1")),
            old_count_explicit=match.group(2) is not None,
            new_count_explicit=match.group(4) is not None,
            section_heading=match.group(5),
        )

    if style is HunkStyle.CONTEXT:
        banner = CONTEXT_BANNER_RE.match(line)
        old_match = CONTEXT_OLD_RE.match(lines.bare(index + 1))
        assert banner is not None and old_match is not None
        mid = find_context_mid(lines, index + 2, len(lines))
        if mid is None:
            raise MalformedHunkError("Can't find the hunk separator", position)
        mid_match = CONTEXT_MID_RE.match(lines.bare(mid))
        assert mid_match is not None
        old, old_explicit = _context_range(old_match)
        new, new_explicit = _context_range(mid_match)
        return HunkHeader(
            style=style,
            old=old,
            new=new,
            old_count_explicit=old_explicit,
            new_count_explicit=new_explicit,
            section_heading=banner.group(1),
        )

    if style is HunkStyle.NORMAL:
        match = NORMAL_HEADER_RE.match(line)
        assert match is not None
        old_start = int(match.group(1))
        old_end = int(match.group(2) or match.group(1))
        op = match.group(3)
        new_start = int(match.group(4))
        new_end = int(match.group(5) or match.group(4))
        old_count = 0 if op == "a" else old_end - old_start + 1
        new_count = 0 if op == "d" else new_end - new_start + 1
        return HunkHeader(
            style=style,
            old=LineRange(old_start, old_count),
            new=LineRange(new_start, new_count),
            old_count_explicit=match.group(2) is not None,
            new_count_explicit=match.group(5) is not None,
            normal_op=op,
        )

    raise MalformedHunkError("Unrecognized hunk header", position)


def parse_header(text: str, hunk_start: int = 0) -> HunkHeader:
    """Parse the hunk header on the line containing ``hunk_start``.

    Raises:
        MalformedHunkError: If the line matches none of the three header
            grammars, or a context hunk lacks its mid-hunk header.
    """
    lines = LineIndex(text)
    if not len(lines):
        raise MalformedHunkError("Unrecognized hunk header", hunk_start)
    return _parse_header_at(lines, lines.index_at(hunk_start))


# === Hunk construction ===


def _body_side(kind: LineKind, style: HunkStyle, in_new_block: bool) -> Side:
    if style is HunkStyle.UNIFIED:
        if kind is LineKind.REMOVED:
            return Side.OLD
        if kind is LineKind.ADDED:
            return Side.NEW
        return Side.BOTH
    if style is HunkStyle.NORMAL:
        return Side.NEW if kind is LineKind.ADDED else Side.OLD
    return Side.NEW if in_new_block else Side.OLD


def _build_hunk(
    lines: LineIndex,
    index: int,
    end: int,
    valid_empty_line: bool,
) -> Hunk:
    header = _parse_header_at(lines, index)
    style = header.style
    body_start = index + _header_line_count(style)
    position = lines.offset(index)

    mid = None
    if style is HunkStyle.CONTEXT:
        mid = find_context_mid(lines, body_start, end)
        if mid is None:
            raise MalformedHunkError("Can't find the hunk separator", position)

    body: list[HunkLine] = []
    in_new_block = style is HunkStyle.NORMAL and header.normal_op == "a"
    for i in range(body_start, end):
        raw = lines.lines[i]
        if i == mid or (style is HunkStyle.NORMAL and lines.bare(i) == "---"):
            in_new_block = True
            continue
        kind = classify_line(raw, style, valid_empty_line)
        if kind is None:
            raise AmbiguousFormatError(
                f"Unexpected line in {style.value} hunk: {strip_eol(raw)!r}",
                lines.offset(i),
            )
        if kind is LineKind.NO_NEWLINE:
            side = body[-1].side if body else Side.BOTH
            content = strip_eol(raw)
        else:
            side = _body_side(kind, style, in_new_block)
            content = "" if _is_empty_line(raw) else strip_eol(raw)[style.prefix_width:]
        body.append(HunkLine(kind=kind, content=content, side=side, raw=raw))

    if style is HunkStyle.CONTEXT:
        old_block = any(line.side is Side.OLD for line in body)
        new_block = any(line.side is Side.NEW for line in body)
        # With one half empty, the other half's context lines hold both sides
        for line in body:
            if line.kind in (LineKind.CONTEXT, LineKind.NO_NEWLINE) and (
                (line.side is Side.NEW and not old_block)
                or (line.side is Side.OLD and not new_block)
            ):
                line.side = Side.BOTH

    hunk = Hunk(
        header=header,
        lines=body,
        start=position,
        end=lines.offset(end),
        text=lines.text[position:lines.offset(end)],
    )
    if style is HunkStyle.CONTEXT:
        _settle_implicit_counts(hunk)
    return hunk


def _settle_implicit_counts(hunk: Hunk) -> None:
    """Resolve single-number context ranges, which mean zero or one line."""
    actual_old, actual_new = hunk.compute_counts()
    header = hunk.header
    if not header.old_count_explicit and actual_old == 0:
        header.old = LineRange(header.old.start, 0)
    if not header.new_count_explicit and actual_new == 0:
        header.new = LineRange(header.new.start, 0)


def parse_hunk(
    text: str,
    start: int = 0,
    dont_trust_header: bool = False,
    valid_empty_line: bool = True,
) -> Hunk:
    """Parse the hunk whose header is on the line containing ``start``.

    Offsets of the returned hunk are relative to ``text``. Works both on a
    stand-alone hunk and on a position inside a full diff.

    Raises:
        MalformedHunkError: If no hunk header is found at ``start``.
    """
    lines = LineIndex(text)
    if not len(lines):
        raise MalformedHunkError("Unrecognized hunk header", start)
    index = lines.index_at(start)
    style = style_at_line(lines, index)
    if style is None:
        raise MalformedHunkError("Unrecognized hunk header", lines.offset(index))
    end = hunk_end_line(lines, index, style, dont_trust_header, valid_empty_line)
    return _build_hunk(lines, index, end, valid_empty_line)


# === Literal text extraction ===


def extract_hunk_text(
    hunk_text: str, new_side: bool, char_offset: int | None = None
) -> HunkText:
    """Reconstruct the literal file text of one side of a hunk.

    Line markers are stripped, lines of the other side dropped, and
    "No newline at end of file" markers remove the line terminator of the
    line they follow (on the side that line belongs to).

    Args:
        hunk_text: Raw text of a single hunk, header included
        new_side: Extract the new (destination) side instead of the old one
        char_offset: Offset inside ``hunk_text`` to translate

    Returns:
        HunkText whose offset is the position in the extracted text that
        corresponds to ``char_offset`` (0 when no offset was given).

    Raises:
        MalformedHunkError: If the hunk type cannot be determined.
    """
    lines = LineIndex(hunk_text)
    if not len(lines):
        raise MalformedHunkError("Unknown diff hunk type", 0)
    first = lines.bare(0)
    src: int | None = None
    dst: int | None = None
    divider: int | None = None

    if first.startswith("@@"):
        width = 1
        src = dst = 1
    elif first.startswith("**"):
        width = 2
        src = 2
        divider = find_context_mid(lines, 2, len(lines))
        if divider is None:
            raise MalformedHunkError("Can't find the hunk separator", 0)
        dst = divider + 1
    else:
        match = NORMAL_HEADER_RE.match(first)
        if not match:
            raise MalformedHunkError("Unknown diff hunk type", 0)
        width = 2
        op = match.group(3)
        if op == "a":
            dst = 1
        elif op == "d":
            src = 1
        else:
            src = 1
            divider = next(
                (i for i in range(1, len(lines)) if lines.bare(i) == "---"), None
            )
            if divider is None:
                raise MalformedHunkError("Can't find the hunk separator", 0)
            dst = divider + 1

    if (dst if new_side else src) is None:
        return HunkText("", 0)

    # Either half of a context hunk may be empty; the other half then holds
    # the context lines for both sides
    if src is not None and src == divider:
        src = dst
    elif dst is not None and dst == len(lines):
        dst = src
    keep = dst if new_side else src
    assert keep is not None
    stop = divider if divider is not None and divider > keep else len(lines)

    other_marker = "-" if new_side else "+"
    pieces: list[str] = []
    out_len = 0
    prev_kept = False
    mapped: int | None = None
    if char_offset is not None and char_offset < lines.offset(keep):
        mapped = 0

    for i in range(keep, stop):
        line = lines.lines[i]
        line_start = lines.offset(i)
        marker = line[:1]
        dropped = marker == "\\" or marker == other_marker
        if dropped:
            if marker == "\\" and prev_kept and pieces and pieces[-1].endswith("\n"):
                pieces[-1] = pieces[-1][:-1]
                out_len -= 1
            if mapped is None and char_offset is not None and char_offset < line_start + len(line):
                mapped = out_len
            prev_kept = False
            continue
        content = line if _is_empty_line(line) else line[width:]
        if mapped is None and char_offset is not None and char_offset < line_start + len(line):
            skip = 0 if _is_empty_line(line) else width
            mapped = out_len + min(max(char_offset - line_start - skip, 0), len(content))
        pieces.append(content)
        out_len += len(content)
        prev_kept = True

    text = "".join(pieces)
    if char_offset is None:
        return HunkText(text, 0)
    if mapped is None:
        mapped = len(text)
    return HunkText(text, min(mapped, len(text)))


# === Whole documents ===


def _parse_section_metadata(section: FileSection) -> None:
    header_lines = [strip_eol(line) for line in split_lines(section.header)]
    i = 0
    while i < len(header_lines):
        line = header_lines[i]
        if line.startswith("diff "):
            match = DIFF_COMMAND_RE.match(line)
            if match and match.group(2):
                section.diff_names = (match.group(1), match.group(2))
        elif (index_match := INDEX_RE.match(line)) is not None:
            section.index_name = index_match.group(1).strip()
        elif (mode_match := MODE_RE.match(line)) is not None:
            kind, mode = mode_match.groups()
            if kind == "new file mode":
                section.is_new_file = True
                section.new_mode = mode
            elif kind == "deleted file mode":
                section.is_deleted = True
                section.old_mode = mode
            elif kind == "old mode":
                section.old_mode = mode
            else:
                section.new_mode = mode
        elif i + 1 < len(header_lines) and (
            (line.startswith("--- ") and header_lines[i + 1].startswith("+++ "))
            or (line.startswith("*** ") and header_lines[i + 1].startswith("--- "))
        ):
            old_match = FILE_NAME_RE.match(line)
            new_match = FILE_NAME_RE.match(header_lines[i + 1])
            if old_match:
                section.old_name = old_match.group(1).rstrip()
            if new_match:
                section.new_name = new_match.group(1).rstrip()
            i += 2
            continue
        i += 1

    if section.old_name == NULL_DEVICE:
        section.is_new_file = True
    if section.new_name == NULL_DEVICE:
        section.is_deleted = True


def parse_diff(
    text: str,
    trust_header: bool = True,
    valid_empty_line: bool = True,
) -> DiffDocument:
    """Parse diff text into a DiffDocument.

    Handles:
    - Unified, context and normal hunks, mixed freely
    - Git extended headers (diff --git, index, mode lines)
    - ``Index:`` and ``diff`` command lines
    - Junk before, between and after file sections

    Args:
        text: Diff text to parse
        trust_header: Use the declared unified counts to find hunk ends
        valid_empty_line: Treat empty lines in unified hunks as context

    Returns:
        DiffDocument whose ``render()`` reproduces ``text`` exactly.

    Raises:
        MalformedHunkError: If a hunk header is found but its body cannot
            be parsed.

    Example:
        >>> doc = parse_diff("--- a/f\\n+++ b/f\\n@@ -1 +1 @@\\n-x\\n+y\\n")
        >>> doc.sections[0].path
        'f'
        >>> doc.sections[0].hunks[0].new_text()
        'y\\n'
    """
    lines = LineIndex(text)
    document = DiffDocument(text=text)
    section: FileSection | None = None
    seen_command = False
    seen_pair = False
    pending = 0  # line index where unattached text starts

    def flush(upto: int) -> None:
        chunk = text[lines.offset(pending):lines.offset(upto)]
        if section is None:
            document.preamble += chunk
        elif section.hunks:
            section.hunks[-1].trailing += chunk
        else:
            section.header += chunk

    def open_section(at: int) -> FileSection:
        new_section = FileSection(start=lines.offset(at))
        document.sections.append(new_section)
        return new_section

    i = 0
    while i < len(lines):
        style = style_at_line(lines, i)
        if style is not None:
            flush(i)
            if section is None:
                section = open_section(i)
            end = hunk_end_line(lines, i, style, not trust_header, valid_empty_line)
            section.hunks.append(_build_hunk(lines, i, end, valid_empty_line))
            i = pending = end
            continue

        line = lines.bare(i)
        is_command = _is_file_command(line)
        is_pair = is_file_header_pair(lines, i)
        if is_command or is_pair:
            starts_new = (
                section is None
                or bool(section.hunks)
                or (is_command and (seen_command or seen_pair))
                or (is_pair and seen_pair)
            )
            if starts_new:
                flush(i)
                section = open_section(i)
                pending = i
                seen_command = seen_pair = False
            if is_pair:
                seen_pair = True
                i += 2
                continue
            seen_command = True
        i += 1

    flush(len(lines))
    for parsed in document.sections:
        _parse_section_metadata(parsed)
    return document


def hunk_file_section(document: DiffDocument, hunk: Hunk) -> FileSection | None:
    """Return the section a hunk of ``document`` belongs to."""
    for section in document.sections:
        if any(h is hunk for h in section.hunks):
            return section
    return None
