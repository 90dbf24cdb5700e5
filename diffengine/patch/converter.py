"""Conversion between unified and context diffs, and diff reversal.

All conversions work on a region of a diff text in one left-to-right pass
over its lines. Hunks and file headers inside the region are rewritten;
everything else (junk, git metadata, hunks outside the region) is copied
through unchanged. The result carries span mappings from every rewritten
piece of the input to its replacement in the output.

A conversion is *reversible* when applying the inverse conversion to its
output gives back the input byte for byte. This is checked per hunk.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from diffengine.core.errors import MalformedHunkError
from diffengine.patch.parser import (
    CONTEXT_BANNER_RE,
    CONTEXT_MID_RE,
    CONTEXT_OLD_RE,
    UNIFIED_HEADER_RE,
    LineIndex,
    find_context_mid,
    hunk_end_line,
    is_file_header_pair,
    strip_eol,
    style_at_line,
)
from diffengine.patch.types import HunkStyle

logger = logging.getLogger(__name__)

# Same shapes as the header grammars, capturing each range as written
UNIFIED_RANGES_RE = re.compile(r"^@@ -(\S+) \+(\S+) @@(.*)$")
CONTEXT_OLD_RANGE_RE = re.compile(r"^\*\*\* (\S+) \*\*\*\*$")
CONTEXT_MID_RANGE_RE = re.compile(r"^--- (\S+) ----$")
NORMAL_RANGES_RE = re.compile(r"^(\d+(?:,\d+)?)([acd])(\d+(?:,\d+)?)$")

HunkConverter = Callable[[list[str]], list[str]]


@dataclass(frozen=True)
class SpanMapping:
    """A rewritten span: ``[old_start, old_end)`` in the input became
    ``[new_start, new_end)`` in the output."""

    old_start: int
    old_end: int
    new_start: int
    new_end: int


@dataclass
class ConversionResult:
    """Result of converting a region of a diff.

    Attributes:
        text: The whole converted diff text
        reversible: True if the inverse conversion restores the input
        hunks: Number of hunks rewritten
        mappings: Span mappings for every rewritten hunk and file header
    """

    text: str
    reversible: bool = True
    hunks: int = 0
    mappings: list[SpanMapping] = field(default_factory=list)


def _eol(line: str) -> str:
    return line[len(strip_eol(line)):] or "\n"


def _terminate(lines: list[str]) -> list[str]:
    """Make sure every line but the last ends with a newline."""
    return [
        line if line.endswith("\n") or i == len(lines) - 1 else line + "\n"
        for i, line in enumerate(lines)
    ]


def _change_group_end(body: list[str], i: int) -> int:
    """Index past the run of -/+ lines (and their markers) starting at ``i``."""
    j = i
    while j < len(body) and body[j][:1] in ("-", "+", "\\"):
        j += 1
    return j


# === Unified -> context ===


def _context_range(start: int, count: int) -> str:
    if count <= 1:
        return str(start)
    return f"{start},{start + count - 1}"


def _unified_hunk_to_context(hunk_lines: list[str]) -> list[str]:
    match = UNIFIED_HEADER_RE.match(strip_eol(hunk_lines[0]))
    if not match:
        raise MalformedHunkError("Unrecognized unified diff hunk header format", 0)
    old_start = int(match.group(1))
    old_count = int(match.group(2) or "1")
    new_start = int(match.group(3))
    new_count = int(match.group(4) or "1")
    heading = match.group(5)

    body = hunk_lines[1:]
    old_block: list[str] = []
    new_block: list[str] = []
    old_changed = False
    new_changed = False
    i = 0
    while i < len(body):
        line = body[i]
        marker = line[:1]
        if marker in ("-", "+"):
            j = _change_group_end(body, i)
            group = body[i:j]
            substitution = any(g.startswith("-") for g in group) and any(
                g.startswith("+") for g in group
            )
            last = ""
            for g in group:
                if g.startswith("\\"):
                    (old_block if last == "-" else new_block).append(g)
                elif g.startswith("-"):
                    old_block.append(("! " if substitution else "- ") + g[1:])
                    old_changed = True
                    last = "-"
                else:
                    new_block.append(("! " if substitution else "+ ") + g[1:])
                    new_changed = True
                    last = "+"
            i = j
            continue
        if marker == "\\":
            old_block.append(line)
            new_block.append(line)
        else:
            # An empty line stands for an empty context line
            content = line[1:] if marker == " " else line
            old_block.append("  " + content)
            new_block.append("  " + content)
        i += 1

    # A half without changes is left out; its context lives in the other half
    if not old_changed and not new_changed:
        new_block = []
    else:
        if not old_changed:
            old_block = []
        if not new_changed:
            new_block = []

    eol = _eol(hunk_lines[0])
    return _terminate([
        f"***************{heading}{eol}",
        f"*** {_context_range(old_start, old_count)} ****{eol}",
        *old_block,
        f"--- {_context_range(new_start, new_count)} ----{eol}",
        *new_block,
    ])


# === Context -> unified ===


def _is_context_line(line: str) -> bool:
    return line[:1] == " "


def _to_unified(line: str, change_marker: str) -> str:
    if line.startswith("\\"):
        return line
    if _is_context_line(line):
        return " " + line[2:]
    return change_marker + line[2:]


def _merge_context_blocks(
    old_block: list[str], new_block: list[str]
) -> list[str]:
    """Interleave the two halves of a context hunk into unified body lines."""
    if not old_block:
        return [_to_unified(line, "+") for line in new_block]
    if not new_block:
        return [_to_unified(line, "-") for line in old_block]

    merged: list[str] = []
    io = 0
    inew = 0
    while True:
        while io < len(old_block) and not _is_context_line(old_block[io]):
            merged.append(_to_unified(old_block[io], "-"))
            io += 1
        while inew < len(new_block) and not _is_context_line(new_block[inew]):
            merged.append(_to_unified(new_block[inew], "+"))
            inew += 1
        if io >= len(old_block) and inew >= len(new_block):
            break
        if io < len(old_block):
            merged.append(_to_unified(old_block[io], "-"))
            io += 1
            if inew < len(new_block):
                inew += 1
            if io < len(old_block) and old_block[io].startswith("\\"):
                merged.append(old_block[io])
                io += 1
                if inew < len(new_block) and new_block[inew].startswith("\\"):
                    inew += 1
        else:
            merged.append(_to_unified(new_block[inew], "+"))
            inew += 1
    return merged


def _unified_range(start: int, count: int) -> str:
    if count == 1:
        return str(start)
    return f"{start},{count}"


def _context_hunk_to_unified(hunk_lines: list[str]) -> list[str]:
    banner = CONTEXT_BANNER_RE.match(strip_eol(hunk_lines[0]))
    old_match = CONTEXT_OLD_RE.match(strip_eol(hunk_lines[1])) if len(hunk_lines) > 1 else None
    if not banner or not old_match:
        raise MalformedHunkError("Unrecognized context diff first hunk header format", 0)
    lines = LineIndex("".join(hunk_lines))
    mid = find_context_mid(lines, 2, len(hunk_lines))
    if mid is None:
        raise MalformedHunkError("Can't find the hunk separator", 0)
    mid_match = CONTEXT_MID_RE.match(strip_eol(hunk_lines[mid]))
    assert mid_match is not None

    merged = _merge_context_blocks(hunk_lines[2:mid], hunk_lines[mid + 1:])
    old_count = sum(1 for line in merged if line[:1] in (" ", "-"))
    new_count = sum(1 for line in merged if line[:1] in (" ", "+"))
    old_range = _unified_range(int(old_match.group(1)), old_count)
    new_range = _unified_range(int(mid_match.group(1)), new_count)
    eol = _eol(hunk_lines[0])
    return _terminate([f"@@ -{old_range} +{new_range} @@{banner.group(1)}{eol}", *merged])


# === Reverse direction ===


def _reverse_unified_hunk(hunk_lines: list[str]) -> list[str]:
    match = UNIFIED_RANGES_RE.match(strip_eol(hunk_lines[0]))
    if not match:
        raise MalformedHunkError("Unrecognized unified diff hunk header format", 0)
    old_range, new_range, heading = match.groups()
    out = [f"@@ -{new_range} +{old_range} @@{heading}{_eol(hunk_lines[0])}"]

    body = hunk_lines[1:]
    i = 0
    while i < len(body):
        if body[i][:1] not in ("-", "+"):
            out.append(body[i])
            i += 1
            continue
        j = _change_group_end(body, i)
        removed: list[str] = []
        added: list[str] = []
        last = ""
        for line in body[i:j]:
            if line.startswith("\\"):
                (removed if last == "-" else added).append(line)
            elif line.startswith("-"):
                removed.append("+" + line[1:])
                last = "-"
            else:
                added.append("-" + line[1:])
                last = "+"
        # Removals come first in every change group
        out.extend(added)
        out.extend(removed)
        i = j
    return _terminate(out)


def _flip_marker(line: str, old: str, new: str) -> str:
    if line.startswith(old):
        return new + line[1:]
    return line


def _reverse_context_hunk(hunk_lines: list[str]) -> list[str]:
    old_match = (
        CONTEXT_OLD_RANGE_RE.match(strip_eol(hunk_lines[1])) if len(hunk_lines) > 1 else None
    )
    if not old_match:
        raise MalformedHunkError("Unrecognized context diff first hunk header format", 0)
    lines = LineIndex("".join(hunk_lines))
    mid = find_context_mid(lines, 2, len(hunk_lines))
    if mid is None:
        raise MalformedHunkError("Can't find the hunk separator", 0)
    mid_match = CONTEXT_MID_RANGE_RE.match(strip_eol(hunk_lines[mid]))
    assert mid_match is not None
    eol = _eol(hunk_lines[1])
    return _terminate([
        hunk_lines[0],
        f"*** {mid_match.group(1)} ****{eol}",
        *(_flip_marker(line, "+", "-") for line in hunk_lines[mid + 1:]),
        f"--- {old_match.group(1)} ----{eol}",
        *(_flip_marker(line, "-", "+") for line in hunk_lines[2:mid]),
    ])


_NORMAL_REVERSED_OP = {"a": "d", "d": "a", "c": "c"}


def _reverse_normal_hunk(hunk_lines: list[str]) -> list[str]:
    match = NORMAL_RANGES_RE.match(strip_eol(hunk_lines[0]))
    if not match:
        raise MalformedHunkError("Unrecognized hunk header format", 0)
    old_range, op, new_range = match.groups()
    old_part: list[str] = []
    new_part: list[str] = []
    current = old_part
    for line in hunk_lines[1:]:
        if line.startswith("<"):
            current = old_part
            old_part.append(">" + line[1:])
        elif line.startswith(">"):
            current = new_part
            new_part.append("<" + line[1:])
        elif line.startswith("\\"):
            current.append(line)
    separator = [f"---{_eol(hunk_lines[0])}"] if op == "c" else []
    header = f"{new_range}{_NORMAL_REVERSED_OP[op]}{old_range}{_eol(hunk_lines[0])}"
    return _terminate([header, *new_part, *separator, *old_part])


def _reverse_hunk(hunk_lines: list[str]) -> list[str]:
    first = hunk_lines[0]
    if first.startswith("@@"):
        return _reverse_unified_hunk(hunk_lines)
    if first.startswith("*"):
        return _reverse_context_hunk(hunk_lines)
    return _reverse_normal_hunk(hunk_lines)


# === File headers ===


def _split_name_line(line: str) -> tuple[str, str]:
    """Split a file name line into its 4-character prefix and the rest."""
    return line[:4], line[4:]


def _pair_to_context(first: str, second: str) -> tuple[str, str] | None:
    if first.startswith("--- ") and second.startswith("+++ "):
        return "*** " + first[4:], "--- " + second[4:]
    return None


def _pair_to_unified(first: str, second: str) -> tuple[str, str] | None:
    if first.startswith("*** ") and second.startswith("--- "):
        return "--- " + first[4:], "+++ " + second[4:]
    return None


def _reverse_pair(first: str, second: str) -> tuple[str, str]:
    first_prefix, first_rest = _split_name_line(first)
    second_prefix, second_rest = _split_name_line(second)
    # Names move, prefixes stay; keep each line's own terminator
    return (
        first_prefix + strip_eol(second_rest) + _eol(first),
        second_prefix + strip_eol(first_rest) + second[len(strip_eol(second)):],
    )


_GIT_MODE_SWAP = {"new file mode ": "deleted file mode ", "deleted file mode ": "new file mode "}
GIT_OLD_MODE_RE = re.compile(r"^old mode (\d+)$")
GIT_NEW_MODE_RE = re.compile(r"^new mode (\d+)$")


def _reverse_metadata(lines: list[str]) -> list[str] | None:
    """Reverse git file metadata: creations become deletions, modes swap."""
    first = lines[0]
    for prefix, swapped in _GIT_MODE_SWAP.items():
        if first.startswith(prefix):
            return [swapped + first[len(prefix):]]
    if len(lines) > 1:
        old_mode = GIT_OLD_MODE_RE.match(strip_eol(lines[0]))
        new_mode = GIT_NEW_MODE_RE.match(strip_eol(lines[1]))
        if old_mode and new_mode:
            return [
                f"old mode {new_mode.group(1)}{_eol(lines[0])}",
                f"new mode {old_mode.group(1)}" + lines[1][len(strip_eol(lines[1])):],
            ]
    return None


# === Driver ===


def _convert(
    text: str,
    start: int,
    end: int | None,
    styles: frozenset[HunkStyle],
    convert_hunk: HunkConverter,
    inverse_hunk: HunkConverter,
    convert_pair: Callable[[str, str], tuple[str, str] | None],
    convert_metadata: Callable[[list[str]], list[str] | None] | None = None,
) -> ConversionResult:
    lines = LineIndex(text)
    region_end = len(text) if end is None else end
    first = lines.index_at(start) if len(lines) else 0

    parts = [text[:lines.offset(first)]]
    out_pos = len(parts[0])
    result = ConversionResult(text="")

    def emit(old_from: int, old_to: int, new_lines: list[str]) -> None:
        nonlocal out_pos
        new_text = "".join(new_lines)
        parts.append(new_text)
        result.mappings.append(
            SpanMapping(lines.offset(old_from), lines.offset(old_to), out_pos, out_pos + len(new_text))
        )
        out_pos += len(new_text)

    i = first
    while i < len(lines) and lines.offset(i) < region_end:
        style = style_at_line(lines, i)
        if style in styles:
            assert style is not None
            j = hunk_end_line(lines, i, style, dont_trust_header=False, valid_empty_line=True)
            original = lines.lines[i:j]
            converted = convert_hunk(original)
            if inverse_hunk(converted) != original:
                result.reversible = False
            emit(i, j, converted)
            result.hunks += 1
            i = j
            continue
        if is_file_header_pair(lines, i):
            pair = convert_pair(lines.lines[i], lines.lines[i + 1])
            if pair is not None:
                emit(i, i + 2, list(pair))
                i += 2
                continue
        if convert_metadata is not None:
            rewritten = convert_metadata(lines.lines[i:i + 2])
            if rewritten is not None:
                emit(i, i + len(rewritten), rewritten)
                i += len(rewritten)
                continue
        parts.append(lines.lines[i])
        out_pos += len(lines.lines[i])
        i += 1

    parts.append(text[lines.offset(i):])
    result.text = "".join(parts)
    logger.debug(
        "Converted %d hunks (%s)",
        result.hunks,
        "reversible" if result.reversible else "irreversible",
    )
    return result


def unified_to_context(text: str, start: int = 0, end: int | None = None) -> ConversionResult:
    """Convert unified hunks (and ---/+++ file headers) in a region to context style.

    Args:
        text: Diff text
        start: Offset of the region start (the enclosing line is included)
        end: Offset of the region end; None for the end of the text

    Returns:
        ConversionResult with the whole rewritten text.

    Raises:
        MalformedHunkError: If a hunk in the region has an unusable header.
    """
    return _convert(
        text,
        start,
        end,
        frozenset({HunkStyle.UNIFIED}),
        _unified_hunk_to_context,
        _context_hunk_to_unified,
        _pair_to_context,
    )


def context_to_unified(
    text: str, start: int = 0, end: int | None = None, to_context: bool = False
) -> ConversionResult:
    """Convert context hunks (and ***/--- file headers) in a region to unified style.

    Unified header counts are recomputed from the merged body. With
    ``to_context`` set, converts the other way instead.
    """
    if to_context:
        return unified_to_context(text, start, end)
    return _convert(
        text,
        start,
        end,
        frozenset({HunkStyle.CONTEXT}),
        _context_hunk_to_unified,
        _unified_hunk_to_context,
        _pair_to_unified,
    )


def reverse_direction(text: str, start: int = 0, end: int | None = None) -> ConversionResult:
    """Swap the old and new sides of every hunk and file header in a region.

    Unified ranges swap and ``+``/``-`` markers flip (each change group is
    re-ordered as removals then additions); context halves swap; normal
    ``a``/``d`` commands swap along with ``<``/``>`` markers. Git
    ``new file mode``/``deleted file mode`` and mode change lines are
    reversed too.
    """
    return _convert(
        text,
        start,
        end,
        frozenset({HunkStyle.UNIFIED, HunkStyle.CONTEXT, HunkStyle.NORMAL}),
        _reverse_hunk,
        _reverse_hunk,
        _reverse_pair,
        _reverse_metadata,
    )
