"""Types for diff document representation.

This module provides dataclasses for representing unified, context and
normal diffs in a structured form suitable for parsing, locating hunks in
source files, applying them and rewriting the diff text.

Every structure keeps the character spans of the text it was parsed from,
so a parsed document can be rendered back byte for byte.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from diffengine.core.constants import NULL_DEVICE


class HunkStyle(Enum):
    """Diff dialect of a hunk."""

    UNIFIED = "unified"  # @@ -a,b +c,d @@
    CONTEXT = "context"  # *************** / *** a,b **** / --- c,d ----
    NORMAL = "normal"  # NaN, NdN, NcN

    @property
    def prefix_width(self) -> int:
        """Number of marker characters in front of each body line."""
        return 1 if self is HunkStyle.UNIFIED else 2


class LineKind(Enum):
    """Classification of a hunk body line."""

    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"
    CHANGED = "!"
    NO_NEWLINE = "\\"


class Side(Enum):
    """Which file(s) a body line belongs to."""

    OLD = "old"
    NEW = "new"
    BOTH = "both"

    def includes(self, new_side: bool) -> bool:
        """True if a line on this side is part of the old (or new) text."""
        if self is Side.BOTH:
            return True
        return (self is Side.NEW) == new_side


@dataclass(frozen=True)
class LineRange:
    """A (start, count) pair as declared in a hunk header, 1-indexed."""

    start: int
    count: int = 1

    @property
    def end(self) -> int:
        """Last line covered by the range."""
        return self.start + self.count - 1


@dataclass
class HunkHeader:
    """Fields extracted from a hunk header.

    Attributes:
        style: Diff dialect of the hunk
        old: Line range on the old side
        new: Line range on the new side
        old_count_explicit: False when the old count was omitted (unified
            ``@@ -3 +3 @@``) or written as a single line number (context)
        new_count_explicit: Same for the new side
        section_heading: Text after the closing ``@@`` (or after the context
            banner), typically the enclosing function name
        normal_op: 'a', 'd' or 'c' for normal-style hunks
    """

    style: HunkStyle
    old: LineRange
    new: LineRange
    old_count_explicit: bool = True
    new_count_explicit: bool = True
    section_heading: str = ""
    normal_op: str = ""


@dataclass
class HunkLine:
    """A single body line of a hunk.

    Attributes:
        kind: Classification from the line's marker
        content: Line text without marker and without line terminator
        side: Which file the line belongs to
        raw: The line exactly as written in the diff, terminator included
    """

    kind: LineKind
    content: str
    side: Side
    raw: str

    @property
    def has_newline(self) -> bool:
        return self.raw.endswith("\n")


class HunkText(NamedTuple):
    """Literal file text reconstructed from one side of a hunk.

    ``offset`` maps a character offset inside the raw hunk to the
    corresponding offset inside ``text``.
    """

    text: str
    offset: int = 0


@dataclass
class Hunk:
    """A single hunk of a diff.

    Attributes:
        header: Parsed header fields
        lines: Body lines in order (the context mid-hunk header and the
            normal ``---`` separator are not body lines)
        start: Offset of the first header character in the document
        end: Offset just past the last body line
        text: Raw hunk text (``document.text[start:end]``)
        trailing: Junk between this hunk and the next hunk or section
    """

    header: HunkHeader
    lines: list[HunkLine] = field(default_factory=list)
    start: int = 0
    end: int = 0
    text: str = ""
    trailing: str = ""

    @property
    def style(self) -> HunkStyle:
        return self.header.style

    def _count(self, kind: LineKind) -> int:
        return sum(1 for line in self.lines if line.kind is kind)

    def count_context(self) -> int:
        """Count context lines (on both halves for context style)."""
        return self._count(LineKind.CONTEXT)

    def count_added(self) -> int:
        """Count lines being added (+ or > prefix)."""
        return self._count(LineKind.ADDED)

    def count_removed(self) -> int:
        """Count lines being removed (- or < prefix)."""
        return self._count(LineKind.REMOVED)

    def count_changed(self) -> int:
        """Count changed lines (! prefix, context style only)."""
        return self._count(LineKind.CHANGED)

    def compute_counts(self) -> tuple[int, int]:
        """Compute actual old and new line counts from the body.

        Returns:
            Tuple of (old_count, new_count) based on the lines present on
            each side.
        """
        old = 0
        new = 0
        for line in self.lines:
            if line.kind is LineKind.NO_NEWLINE:
                continue
            if line.side.includes(new_side=False):
                old += 1
            if line.side.includes(new_side=True):
                new += 1
        return old, new

    def counts_match(self) -> bool:
        """True if the header's declared counts equal the body's actual counts."""
        return self.compute_counts() == (self.header.old.count, self.header.new.count)

    def old_text(self) -> str:
        """Literal old-side text of the hunk."""
        from diffengine.patch.parser import extract_hunk_text

        return extract_hunk_text(self.text, new_side=False).text

    def new_text(self) -> str:
        """Literal new-side text of the hunk."""
        from diffengine.patch.parser import extract_hunk_text

        return extract_hunk_text(self.text, new_side=True).text


@dataclass
class DiffStats:
    """Added/removed line totals for a file section."""

    added: int = 0
    removed: int = 0

    def __str__(self) -> str:
        return f"+{self.added} -{self.removed}"


def strip_path_prefix(path: str) -> str:
    """Strip a/ or b/ prefix from path if present."""
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


@dataclass
class FileSection:
    """One file's part of a diff.

    Attributes:
        header: Raw text from the start of the section up to its first hunk
            (``diff --git`` line, metadata, ``---``/``+++`` names)
        start: Offset of the section in the document
        hunks: Hunks in document order
        old_name: Name from the ``---`` (or context ``***``) line, without
            timestamp
        new_name: Name from the ``+++`` (or context ``---``) line
        index_name: Name from an ``Index:`` line
        diff_names: Names from a ``diff [options] OLD NEW`` command line
        old_mode: Mode from ``old mode``/``deleted file mode`` lines
        new_mode: Mode from ``new mode``/``new file mode`` lines
        is_new_file: True if the section creates the file
        is_deleted: True if the section deletes the file
    """

    header: str = ""
    start: int = 0
    hunks: list[Hunk] = field(default_factory=list)
    old_name: str | None = None
    new_name: str | None = None
    index_name: str | None = None
    diff_names: tuple[str, ...] = ()
    old_mode: str | None = None
    new_mode: str | None = None
    is_new_file: bool = False
    is_deleted: bool = False

    @property
    def path(self) -> str:
        """Get the effective file path (old name for deletes, new name otherwise)."""
        old = self.old_name if self.old_name not in (None, NULL_DEVICE) else None
        new = self.new_name if self.new_name not in (None, NULL_DEVICE) else None
        if len(self.diff_names) == 2:
            old = old or self.diff_names[0]
            new = new or self.diff_names[1]
        name = old if self.is_deleted else (new or old)
        return strip_path_prefix(name or self.index_name or "")

    @property
    def end(self) -> int:
        """Offset just past the section (its last hunk's trailing junk included)."""
        if self.hunks:
            last = self.hunks[-1]
            return last.end + len(last.trailing)
        return self.start + len(self.header)

    def candidate_names(self, old: bool = False) -> list[str]:
        """File names textually mentioned for this section, preferred side first.

        Args:
            old: Prefer the old file's name over the new one.
        """
        names: list[str] = []
        if not old and self.index_name:
            names.append(self.index_name)
        header_names = [self.old_name, self.new_name]
        if not old:
            header_names.reverse()
        names.extend(n for n in header_names if n)
        if len(self.diff_names) == 2:
            first, second = self.diff_names
            names.extend([first, second] if old else [second, first])
        seen: set[str] = set()
        unique = []
        for name in names:
            if name not in seen:
                seen.add(name)
                unique.append(name)
        return unique

    def deletes_file(self, reverse: bool = False) -> bool:
        """True if applying in the given direction leaves no destination file."""
        if reverse:
            return self.old_name == NULL_DEVICE or self.is_new_file
        return self.new_name == NULL_DEVICE or self.is_deleted

    def stats(self) -> DiffStats:
        """Count added and removed lines (changed lines count on both sides)."""
        stats = DiffStats()
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.kind is LineKind.ADDED:
                    stats.added += 1
                elif line.kind is LineKind.REMOVED:
                    stats.removed += 1
                elif line.kind is LineKind.CHANGED:
                    if line.side is Side.NEW:
                        stats.added += 1
                    else:
                        stats.removed += 1
        return stats


@dataclass
class DiffDocument:
    """The full text of a diff and the sections found in it.

    Attributes:
        text: The diff text the document was parsed from
        preamble: Junk before the first section (mail headers, commit message)
        sections: File sections in document order
    """

    text: str
    preamble: str = ""
    sections: list[FileSection] = field(default_factory=list)

    def iter_hunks(self) -> Iterator[tuple[FileSection, Hunk]]:
        """Yield (section, hunk) pairs in document order."""
        for section in self.sections:
            for hunk in section.hunks:
                yield section, hunk

    def hunk_count(self) -> int:
        return sum(len(section.hunks) for section in self.sections)

    def hunk_at(self, pos: int) -> tuple[FileSection, Hunk] | None:
        """Return the hunk enclosing ``pos``, or the next hunk after it."""
        for section, hunk in self.iter_hunks():
            if pos < hunk.end:
                return section, hunk
        return None

    def render(self) -> str:
        """Re-emit the document text from its parts."""
        parts = [self.preamble]
        for section in self.sections:
            parts.append(section.header)
            for hunk in section.hunks:
                parts.append(hunk.text)
                parts.append(hunk.trailing)
        return "".join(parts)


@dataclass(frozen=True)
class SourceLocation:
    """Result of locating a hunk in a target text.

    Attributes:
        target: Identity of the target (usually its path), if known
        line_offset: Signed distance in lines between the declared position
            and the match, or None when neither side's text was found
        span: (begin, end) character span of the match in the target; for a
            failed lookup, the span the source text would occupy at the
            declared position
        source: Text found in the target (the new side when ``switched``)
        replacement: Text that would replace ``source``
        switched: True when the new-side text was found, i.e. the hunk looks
            already applied
        fuzzy: True when the match needed whitespace-insensitive search
    """

    target: str | None
    line_offset: int | None
    span: tuple[int, int]
    source: HunkText
    replacement: HunkText
    switched: bool = False
    fuzzy: bool = False

    @property
    def found(self) -> bool:
        return self.line_offset is not None

    @property
    def point(self) -> int:
        """Target position corresponding to the char offset given at lookup."""
        return self.span[0] + self.source.offset
