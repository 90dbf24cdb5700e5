"""Editable diff text that keeps its hunk headers consistent.

A DiffBuffer records the range of text touched by edits. After each edit
(or on demand) the headers of the hunk that was edited are recomputed, so
hand-editing a hunk body never leaves stale line counts behind.
"""

import logging
from pathlib import Path

from diffengine.core.encoding import ENCODING, ENCODING_ERRORS
from diffengine.core.errors import MalformedHunkError
from diffengine.core.paths import atomic_write_text
from diffengine.patch.fixup import fixup_hunk_headers
from diffengine.patch.parser import (
    CONTEXT_MID_RE,
    end_of_hunk,
    find_hunk_bounds,
    hunk_style_at,
    parse_diff,
    split_lines,
    strip_eol,
)
from diffengine.patch.types import DiffDocument, HunkStyle

logger = logging.getLogger(__name__)


class DiffBuffer:
    """Diff text under edit.

    Attributes:
        text: Current diff text
        path: File the text was read from (used by ``save``), if any
        on_edit: Fix up headers right after every edit; when False, headers
            are fixed once in ``save``
        valid_empty_line: Empty lines inside unified hunks are context
        modified: True if the text changed since it was loaded or saved
    """

    def __init__(
        self,
        text: str = "",
        path: Path | None = None,
        on_edit: bool = True,
        valid_empty_line: bool = True,
    ) -> None:
        self.text = text
        self.path = path
        self.on_edit = on_edit
        self.valid_empty_line = valid_empty_line
        self.modified = False
        self._unhandled: tuple[int, int] | None = None

    @classmethod
    def from_file(cls, path: Path, **kwargs: bool) -> "DiffBuffer":
        """Read a diff file (line endings are kept as they are)."""
        with path.open(encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
            text = f.read()
        return cls(text, path=path, **kwargs)

    @property
    def unhandled_changes(self) -> tuple[int, int] | None:
        """(start, end) range of edits not yet followed by a header fixup."""
        return self._unhandled

    def edit(self, start: int, end: int, replacement: str) -> None:
        """Replace ``text[start:end]`` with ``replacement``."""
        if not 0 <= start <= end <= len(self.text):
            raise ValueError(f"Invalid edit range {start}-{end} for text of length {len(self.text)}")
        self.text = self.text[:start] + replacement + self.text[end:]
        self.modified = True

        new_end = start + len(replacement)
        if self._unhandled is None:
            self._unhandled = (start, new_end)
        else:
            old_start, old_end = self._unhandled
            if old_end >= end:
                old_end += len(replacement) - (end - start)
            self._unhandled = (min(old_start, start), max(old_end, new_end))

        if self.on_edit:
            self.flush_fixups()

    def insert(self, pos: int, text: str) -> None:
        self.edit(pos, pos, text)

    def delete(self, start: int, end: int) -> None:
        self.edit(start, end, "")

    def flush_fixups(self) -> None:
        """Fix the headers of the hunk touched by the pending edits.

        Edits touching the hunk header itself, the context mid-hunk header,
        or running past the end of the hunk are left alone. A hunk that
        cannot be parsed is skipped.
        """
        if self._unhandled is None:
            return
        change_start, change_end = self._unhandled
        self._unhandled = None

        pos = change_start
        # The change may have cut the end of the hunk before it
        if pos > 0 and self.text[pos - 1] == "\n":
            pos -= 1
        try:
            hunk_start, _ = find_hunk_bounds(
                self.text,
                pos,
                dont_trust_header=True,
                valid_empty_line=self.valid_empty_line,
            )
            if self._touches_header(hunk_start, change_start, change_end):
                logger.debug("Edit at %d touches a hunk header; no fixup", change_start)
                return
            hunk_end = end_of_hunk(
                self.text,
                hunk_start,
                dont_trust_header=True,
                valid_empty_line=self.valid_empty_line,
            )
            if change_end > hunk_end:
                logger.debug("Edit at %d runs past the hunk end; no fixup", change_start)
                return
            self.fixup_range(hunk_start, change_end)
        except MalformedHunkError as e:
            logger.debug("No header fixup after edit at %d: %s", change_start, e.message)

    def _touches_header(self, hunk_start: int, change_start: int, change_end: int) -> bool:
        style = hunk_style_at(self.text, hunk_start)
        lines = split_lines(self.text[hunk_start:])
        header_lines = 2 if style is HunkStyle.CONTEXT else 1
        body_start = hunk_start + sum(len(line) for line in lines[:header_lines])
        if change_start < body_start:
            return True
        if style is not HunkStyle.CONTEXT:
            return False
        pos = body_start
        for line in lines[header_lines:]:
            if CONTEXT_MID_RE.match(strip_eol(line)):
                mid_end = pos + len(strip_eol(line))
                return not (change_end <= pos or change_start > mid_end)
            pos += len(line)
        return False

    def fixup_range(self, start: int, end: int) -> None:
        """Fix the headers of the hunks between ``start`` and ``end``."""
        fixed = fixup_hunk_headers(self.text, start, end, self.valid_empty_line)
        if fixed != self.text:
            self.text = fixed
            self.modified = True

    def fixup(self) -> None:
        """Fix every hunk header in the buffer."""
        fixed = fixup_hunk_headers(self.text, valid_empty_line=self.valid_empty_line)
        if fixed != self.text:
            self.text = fixed
            self.modified = True
        self._unhandled = None

    def document(self, trust_header: bool = True) -> DiffDocument:
        """Parse the current text."""
        return parse_diff(self.text, trust_header, self.valid_empty_line)

    def save(self, path: Path | None = None) -> Path:
        """Write the text out, fixing all headers first when on-edit fixup is off.

        Raises:
            ValueError: If neither ``path`` nor ``self.path`` is set.
        """
        target = path or self.path
        if target is None:
            raise ValueError("DiffBuffer has no path to save to")
        if not self.on_edit:
            self.fixup()
        else:
            self.flush_fixups()
        atomic_write_text(target, self.text)
        self.path = target
        self.modified = False
        logger.info("Saved diff %s", target)
        return target
