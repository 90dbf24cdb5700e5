"""Word-level refinement of changed lines for display.

Pairs each block of removed lines with the block of added lines that
replaces it, diffs the two at word granularity and reports the differing
words as character regions of the diff text. The diff text is never
modified.
"""

import difflib
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from itertools import groupby
from typing import Protocol

from diffengine.patch.parser import CONTEXT_MID_RE, LineIndex, strip_eol
from diffengine.patch.types import DiffDocument, Hunk, HunkLine, HunkStyle, LineKind, Side

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\w+|[^\w\s]|\s+")

# (tag, a_start, a_end, b_start, b_end) as produced by difflib
Opcode = tuple[str, int, int, int, int]


class RefineKind(Enum):
    """Highlight category of a refined region."""

    REMOVED = "removed"
    ADDED = "added"
    CHANGED = "changed"  # Either half of a context '!' pair


@dataclass(frozen=True)
class RefinedRegion:
    """A highlighted span of the diff text.

    Attributes:
        start: Offset of the first highlighted character
        end: Offset just past the region
        kind: Highlight category
        nonmodified: True for a whole line added or removed without a
            counterpart on the other side
    """

    start: int
    end: int
    kind: RefineKind
    nonmodified: bool = False


class WordDiffer(Protocol):
    """Protocol for the fine-grained diff primitive.

    Example:
        class MyDiffer:
            def opcodes(self, a: Sequence[str], b: Sequence[str]) -> list[Opcode]:
                ...
    """

    def opcodes(self, a: Sequence[str], b: Sequence[str]) -> list[Opcode]:
        """Describe how to turn token sequence ``a`` into ``b``."""
        ...


class SequenceMatcherDiffer:
    """WordDiffer backed by difflib.SequenceMatcher."""

    def opcodes(self, a: Sequence[str], b: Sequence[str]) -> list[Opcode]:
        return difflib.SequenceMatcher(None, a, b, autojunk=False).get_opcodes()


def tokenize(text: str) -> list[tuple[int, int]]:
    """Split text into word, punctuation and whitespace-run tokens.

    Returns:
        (start, end) spans of the tokens in order.
    """
    return [match.span() for match in TOKEN_RE.finditer(text)]


@dataclass
class _BodyLine:
    line: HunkLine
    offset: int  # Offset of the line's content in the diff text


@dataclass
class _Token:
    text: str
    start: int
    end: int
    row: int  # Index of the line the token is on


def _body_lines(text: str, hunk: Hunk) -> list[_BodyLine]:
    """Pair each body line of ``hunk`` with the offset of its content."""
    lines = LineIndex(text[hunk.start:hunk.end])
    index = 2 if hunk.style is HunkStyle.CONTEXT else 1
    result = []
    body = iter(hunk.lines)
    for i in range(index, len(lines)):
        bare = lines.bare(i)
        if hunk.style is HunkStyle.CONTEXT and CONTEXT_MID_RE.match(bare):
            continue
        if hunk.style is HunkStyle.NORMAL and bare == "---":
            continue
        line = next(body, None)
        if line is None:
            break
        width = 0 if line.kind is LineKind.NO_NEWLINE or not line.content else hunk.style.prefix_width
        result.append(_BodyLine(line, hunk.start + lines.offset(i) + width))
    return result


def _runs(lines: list[_BodyLine], kinds: set[LineKind]) -> list[list[_BodyLine]]:
    """Maximal runs of lines whose kind is in ``kinds``; no-newline markers do not break runs."""
    runs: list[list[_BodyLine]] = []
    current: list[_BodyLine] = []
    for body_line in lines:
        kind = body_line.line.kind
        if kind is LineKind.NO_NEWLINE:
            continue
        if kind in kinds:
            current.append(body_line)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def _tokens(block: list[_BodyLine], ignore_whitespace: bool) -> list[_Token]:
    tokens = []
    for row, body_line in enumerate(block):
        content = body_line.line.content
        for start, end in tokenize(content):
            word = content[start:end]
            if ignore_whitespace and word.isspace():
                continue
            tokens.append(_Token(word, body_line.offset + start, body_line.offset + end, row))
        if not ignore_whitespace:
            # Line break as its own token so changes never span lines
            tokens.append(_Token("\n", -1, -1, row))
    return tokens


def _regions(tokens: list[_Token], kind: RefineKind) -> list[RefinedRegion]:
    """Merge consecutive tokens on the same line into regions."""
    regions: list[RefinedRegion] = []
    start = end = row = None
    for token in tokens:
        if token.start < 0:
            continue
        if start is not None and token.row == row:
            end = token.end
            continue
        if start is not None:
            regions.append(RefinedRegion(start, end, kind))
        start, end, row = token.start, token.end, token.row
    if start is not None:
        regions.append(RefinedRegion(start, end, kind))
    return regions


def _refine_pair(
    old: list[_BodyLine],
    new: list[_BodyLine],
    old_kind: RefineKind,
    new_kind: RefineKind,
    differ: WordDiffer,
    ignore_whitespace: bool,
) -> list[RefinedRegion]:
    old_tokens = _tokens(old, ignore_whitespace)
    new_tokens = _tokens(new, ignore_whitespace)
    regions = []
    for tag, i1, i2, j1, j2 in differ.opcodes(
        [t.text for t in old_tokens], [t.text for t in new_tokens]
    ):
        if tag == "equal":
            continue
        regions.extend(_regions(old_tokens[i1:i2], old_kind))
        regions.extend(_regions(new_tokens[j1:j2], new_kind))
    return regions


def _whole_lines(block: list[_BodyLine], kind: RefineKind) -> list[RefinedRegion]:
    return [
        RefinedRegion(b.offset, b.offset + len(b.line.content), kind, nonmodified=True)
        for b in block
        if b.line.content
    ]


def _unified_pairs(
    lines: list[_BodyLine],
) -> tuple[list[tuple[list[_BodyLine], list[_BodyLine]]], list[list[_BodyLine]], list[list[_BodyLine]]]:
    """Split a unified body into (removed, added) pairs and unpaired blocks."""
    pairs = []
    removed_only = []
    added_only = []
    for run in _runs(lines, {LineKind.REMOVED, LineKind.ADDED}):
        blocks = [(kind, list(group)) for kind, group in groupby(run, key=lambda b: b.line.kind)]
        i = 0
        while i < len(blocks):
            kind, block = blocks[i]
            if kind is LineKind.REMOVED and i + 1 < len(blocks):
                pairs.append((block, blocks[i + 1][1]))
                i += 2
                continue
            (removed_only if kind is LineKind.REMOVED else added_only).append(block)
            i += 1
    return pairs, removed_only, added_only


def refine_hunk(
    text: str,
    hunk: Hunk,
    differ: WordDiffer | None = None,
    ignore_whitespace: bool = True,
    nonmodified: bool = False,
) -> list[RefinedRegion]:
    """Compute word-level highlight regions for one hunk.

    Pairing depends on the hunk style:

    - unified: each run of ``-`` lines with the run of ``+`` lines right
      after it
    - context: the n-th run of ``!`` lines in the old half with the n-th
      run in the new half
    - normal: the ``<`` half with the ``>`` half of a change (``c``) hunk

    Args:
        text: Diff text the hunk's offsets refer to
        hunk: Parsed hunk
        differ: Fine-grained diff primitive (difflib by default)
        ignore_whitespace: Leave whitespace out of the comparison
        nonmodified: Also report unpaired added or removed lines in full

    Returns:
        Regions sorted by start offset.
    """
    differ = differ or SequenceMatcherDiffer()
    lines = _body_lines(text, hunk)
    regions: list[RefinedRegion] = []
    removed_only: list[list[_BodyLine]] = []
    added_only: list[list[_BodyLine]] = []

    if hunk.style is HunkStyle.UNIFIED:
        pairs, removed_only, added_only = _unified_pairs(lines)
        for old, new in pairs:
            regions.extend(
                _refine_pair(old, new, RefineKind.REMOVED, RefineKind.ADDED, differ, ignore_whitespace)
            )
    elif hunk.style is HunkStyle.CONTEXT:
        old_runs = _runs([b for b in lines if b.line.side is Side.OLD], {LineKind.CHANGED})
        new_runs = _runs([b for b in lines if b.line.side is Side.NEW], {LineKind.CHANGED})
        for old, new in zip(old_runs, new_runs):
            regions.extend(
                _refine_pair(old, new, RefineKind.CHANGED, RefineKind.CHANGED, differ, ignore_whitespace)
            )
        removed_only = _runs(lines, {LineKind.REMOVED})
        added_only = _runs(lines, {LineKind.ADDED})
    else:
        old = [b for b in lines if b.line.kind is LineKind.REMOVED]
        new = [b for b in lines if b.line.kind is LineKind.ADDED]
        if old and new:
            regions.extend(
                _refine_pair(old, new, RefineKind.REMOVED, RefineKind.ADDED, differ, ignore_whitespace)
            )
        elif old:
            removed_only = [old]
        elif new:
            added_only = [new]

    if nonmodified:
        for block in removed_only:
            regions.extend(_whole_lines(block, RefineKind.REMOVED))
        for block in added_only:
            regions.extend(_whole_lines(block, RefineKind.ADDED))

    regions.sort(key=lambda region: (region.start, region.end))
    logger.debug("Hunk at %d: %d refined regions", hunk.start, len(regions))
    return regions


def refine_document(
    document: DiffDocument,
    differ: WordDiffer | None = None,
    ignore_whitespace: bool = True,
    nonmodified: bool = False,
) -> dict[int, list[RefinedRegion]]:
    """Refine every hunk of a document, keyed by hunk index."""
    differ = differ or SequenceMatcherDiffer()
    return {
        index: refine_hunk(document.text, hunk, differ, ignore_whitespace, nonmodified)
        for index, (_, hunk) in enumerate(document.iter_hunks())
    }


def region_text(text: str, region: RefinedRegion) -> str:
    """Text covered by a region, without a trailing line terminator."""
    return strip_eol(text[region.start:region.end])
