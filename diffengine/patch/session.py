"""Per-session context for looking up and applying hunks.

A DiffSession bundles the lookup options and the target file collaborator,
and remembers how the file names of a diff were resolved, so that every
hunk of the same file goes to the same target.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from diffengine.core.constants import DEFAULT_FUZZY_MAX_CHARS
from diffengine.core.errors import MalformedHunkError, TargetFileError
from diffengine.patch.locator import locate
from diffengine.patch.parser import parse_hunk
from diffengine.patch.sources import SourceProvider, TextBuffer, merge_names
from diffengine.patch.types import FileSection, Hunk, SourceLocation
from diffengine.patch.validator import AutoFixPolicy, sanity_check_hunk

if TYPE_CHECKING:
    from diffengine.config.schema import Config

logger = logging.getLogger(__name__)


@dataclass
class DiffSession:
    """Options and state shared by the hunk operations of one diff.

    Attributes:
        sources: Target file collaborator
        prefer_old_side: Use the old file name and the old start line
        fuzzy: Allow whitespace-insensitive lookup
        fuzzy_max_chars: Longest hunk text a fuzzy pattern is built for
        valid_empty_line: Empty lines in unified hunks are context lines
        delete_files: Allow deleting a target emptied by a deletion hunk
        auto_fix: Policy asked before repairing damaged hunks
        diff_path: Path of the diff file (a ``foo.rej`` diff targets ``foo``)
        revision: Look hunks up in this revision of the targets (read-only)
        remembered: Resolved targets by candidate names
    """

    sources: SourceProvider
    prefer_old_side: bool = False
    fuzzy: bool = True
    fuzzy_max_chars: int = DEFAULT_FUZZY_MAX_CHARS
    valid_empty_line: bool = True
    delete_files: bool = True
    auto_fix: AutoFixPolicy | None = None
    diff_path: Path | None = None
    revision: str | None = None
    remembered: dict[tuple[str, ...], Path] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: "Config", sources: SourceProvider, **overrides: Any) -> "DiffSession":
        """Create a session from the ``locate``, ``apply`` and ``fixup`` config sections."""
        options: dict[str, Any] = {
            "prefer_old_side": config.locate.prefer_old_side,
            "fuzzy": config.locate.fuzzy,
            "fuzzy_max_chars": config.locate.fuzzy_max_chars,
            "valid_empty_line": config.fixup.valid_unified_empty_line,
            "delete_files": config.apply.delete_files,
        }
        options.update(overrides)
        return cls(sources=sources, **options)

    def prepare_hunk(self, hunk: Hunk) -> Hunk:
        """Sanity check a hunk, returning the repaired hunk if a fix was accepted.

        Raises:
            MalformedHunkError: If the hunk body disagrees with its header.
        """
        result = sanity_check_hunk(hunk.text, self.auto_fix, self.valid_empty_line)
        if not result.valid:
            raise MalformedHunkError(result.errors[0], hunk.start)
        if result.fixed_text is None:
            return hunk
        fixed = parse_hunk(result.fixed_text, valid_empty_line=self.valid_empty_line)
        return dataclasses.replace(
            fixed,
            start=hunk.start,
            end=hunk.start + len(fixed.text),
            trailing=hunk.trailing,
        )

    def find_target(self, section: FileSection) -> Path | None:
        """Resolve the target file of a section, or None if no candidate exists."""
        names = section.candidate_names(old=self.prefer_old_side)
        key = tuple(names)
        if key in self.remembered:
            return self.remembered[key]

        path = None
        for remembered_names, remembered_path in self.remembered.items():
            if not remembered_names or not names:
                continue
            merged = merge_names(remembered_names[0], names[0], str(remembered_path))
            if merged is not None:
                path = self.sources.find([merged])
                if path is not None:
                    break
        if path is None:
            path = self.sources.find(names)
        if path is None and self.diff_path is not None and self.diff_path.suffix == ".rej":
            path = self.sources.find([str(self.diff_path.with_suffix(""))])
        if path is not None:
            logger.debug("Resolved %s to %s", names[0] if names else "diff", path)
            self.remembered[key] = path
        return path

    def open_target(self, section: FileSection, reverse: bool = False) -> TextBuffer:
        """Open the buffer a section's hunks apply to.

        A section that creates its file (in the direction being applied)
        gets an empty buffer when the file does not exist.

        Raises:
            TargetFileError: If no target can be found or read.
        """
        path = self.find_target(section)
        if path is None:
            names = section.candidate_names(old=self.prefer_old_side)
            if section.deletes_file(not reverse) and self.revision is None and section.path:
                logger.debug("Creating %s", section.path)
                buffer = self.sources.create(Path(section.path))
                self.remembered[tuple(names)] = buffer.path
                return buffer
            raise TargetFileError(names[0] if names else "<unnamed>", "file not found")
        if self.revision is not None:
            return self.sources.read_revision(path, self.revision)
        return self.sources.open(path)

    def locate(
        self,
        section: FileSection,
        hunk: Hunk,
        reverse: bool = False,
        char_offset: int = 0,
    ) -> tuple[TextBuffer, SourceLocation]:
        """Sanity check a hunk, open its target and find the hunk's text there.

        Raises:
            MalformedHunkError: If the hunk is damaged beyond repair.
            TargetFileError: If the target cannot be found or read.
        """
        checked = self.prepare_hunk(hunk)
        buffer = self.open_target(section, reverse)
        location = locate(
            checked,
            buffer.text,
            target=str(buffer.path),
            prefer_old_side=self.prefer_old_side,
            reverse=reverse,
            char_offset=char_offset,
            fuzzy=self.fuzzy,
            fuzzy_max_chars=self.fuzzy_max_chars,
        )
        return buffer, location
