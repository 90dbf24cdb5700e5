"""Target file access for hunk lookup and application.

A SourceProvider resolves the file names mentioned in a diff to target
files, hands out editable text buffers for them, and persists or deletes
them. Buffers stay open (and keep unsaved edits) for the lifetime of the
provider.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from diffengine.core.constants import NULL_DEVICE
from diffengine.core.errors import TargetFileError
from diffengine.core.paths import atomic_write_bytes, detect_line_ending, restore_line_endings

logger = logging.getLogger(__name__)

# Target files are decoded losslessly so saving never alters undecodable bytes
TARGET_ENCODING = "utf-8"
TARGET_ERRORS = "surrogateescape"

# Reads the text of a file at a given revision
RevisionReader = Callable[[Path, str], str]


@dataclass
class TextBuffer:
    """In-memory text of a target file.

    Attributes:
        path: Path of the file
        text: Current text, with LF line endings
        read_only: True for revision snapshots, which cannot be edited
        line_ending: Line ending the file uses on disk
        modified: True if the text differs from what was last read or saved
        revision: Revision the text was read from, for snapshots
    """

    path: Path
    text: str
    read_only: bool = False
    line_ending: str = "\n"
    modified: bool = False
    revision: str | None = None

    def replace(self, begin: int, end: int, text: str) -> None:
        """Replace ``self.text[begin:end]`` with ``text``.

        Raises:
            TargetFileError: If the buffer is read-only.
        """
        if self.read_only:
            raise TargetFileError(self.path, "buffer is read-only")
        self.text = self.text[:begin] + text + self.text[end:]
        self.modified = True


class SourceProvider(Protocol):
    """Protocol for target file collaborators.

    Example:
        class MySources:
            def find(self, names: Sequence[str]) -> Path | None:
                ...

            def open(self, path: Path) -> TextBuffer:
                ...
    """

    def find(self, names: Sequence[str]) -> Path | None:
        """Resolve the first existing file among candidate names."""
        ...

    def open(self, path: Path) -> TextBuffer:
        """Return the (cached) editable buffer of a file."""
        ...

    def create(self, path: Path) -> TextBuffer:
        """Return an empty editable buffer for a file that does not exist yet."""
        ...

    def read_revision(self, path: Path, revision: str) -> TextBuffer:
        """Return a read-only buffer with the file's text at ``revision``."""
        ...

    def save(self, buffer: TextBuffer) -> None:
        """Persist a buffer."""
        ...

    def delete(self, path: Path) -> None:
        """Remove a file."""
        ...


def _drop_dir(name: str) -> str | None:
    """Strip the first directory component, or None if there is none."""
    slash = name.find("/")
    if slash == -1:
        return None
    return name[slash + 1:]


def resolve_names(names: Sequence[str], exists: Callable[[str], bool]) -> str | None:
    """Find the first candidate name that exists.

    When no candidate exists, the first directory component is dropped from
    every candidate and the search repeated, until no directories are left
    (so ``a/src/main.c`` also finds ``src/main.c`` and ``main.c``).
    """
    candidates = [name for name in names if name and name != NULL_DEVICE]
    while candidates:
        for name in candidates:
            if exists(name):
                return name
        candidates = [d for d in (_drop_dir(name) for name in candidates) if d]
    return None


def merge_names(ancestor: str, name: str, resolved: str) -> str | None:
    """Carry over an earlier name resolution to a similar name.

    If ``ancestor`` was resolved to ``resolved`` and ``name`` differs from
    ``ancestor`` only in a middle part, the same part is replaced in
    ``resolved``. Returns None if that part does not occur in ``resolved``.

    Example:
        >>> merge_names("a/src/foo.c", "a/src/bar.c", "/work/src/foo.c")
        '/work/src/bar.c'
    """
    prefix = 0
    limit = min(len(ancestor), len(name))
    while prefix < limit and ancestor[prefix] == name[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < limit - prefix
        and ancestor[len(ancestor) - 1 - suffix] == name[len(name) - 1 - suffix]
    ):
        suffix += 1
    old_part = ancestor[prefix:len(ancestor) - suffix]
    new_part = name[prefix:len(name) - suffix]
    if not old_part:
        return None
    at = resolved.rfind(old_part)
    if at == -1:
        return None
    return resolved[:at] + new_part + resolved[at + len(old_part):]


class FileSystemSources:
    """Target files on disk, relative to a root directory.

    CRLF files are edited with LF line endings and written back with CRLF.
    Writes are atomic (temp file + rename).
    """

    def __init__(self, root: Path | None = None, revision_reader: RevisionReader | None = None) -> None:
        self.root = (root or Path.cwd()).resolve()
        self.revision_reader = revision_reader
        self._buffers: dict[Path, TextBuffer] = {}

    def _path(self, name: str | Path) -> Path:
        return self.root / name

    def find(self, names: Sequence[str]) -> Path | None:
        name = resolve_names(names, lambda n: self._path(n).is_file())
        if name is None:
            return None
        return self._path(name)

    def open(self, path: Path) -> TextBuffer:
        path = self._path(path)
        buffer = self._buffers.get(path)
        if buffer is not None:
            return buffer
        try:
            data = path.read_bytes()
        except OSError as e:
            raise TargetFileError(path, e.strerror or str(e)) from e
        text = data.decode(TARGET_ENCODING, TARGET_ERRORS)
        line_ending = detect_line_ending(text)
        if line_ending == "\r\n":
            text = text.replace("\r\n", "\n")
        else:
            line_ending = "\n"
        buffer = TextBuffer(path=path, text=text, line_ending=line_ending)
        self._buffers[path] = buffer
        logger.debug("Opened %s", path)
        return buffer

    def create(self, path: Path) -> TextBuffer:
        path = self._path(path)
        buffer = TextBuffer(path=path, text="", modified=True)
        self._buffers[path] = buffer
        return buffer

    def read_revision(self, path: Path, revision: str) -> TextBuffer:
        if self.revision_reader is None:
            raise TargetFileError(path, f"cannot read revision {revision}")
        try:
            text = self.revision_reader(self._path(path), revision)
        except OSError as e:
            raise TargetFileError(path, e.strerror or str(e)) from e
        return TextBuffer(path=self._path(path), text=text, read_only=True, revision=revision)

    def save(self, buffer: TextBuffer) -> None:
        if buffer.read_only:
            raise TargetFileError(buffer.path, "buffer is read-only")
        text = restore_line_endings(buffer.text, buffer.line_ending)
        try:
            buffer.path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(buffer.path, text.encode(TARGET_ENCODING, TARGET_ERRORS))
        except OSError as e:
            raise TargetFileError(buffer.path, e.strerror or str(e)) from e
        buffer.modified = False
        logger.info("Saved %s", buffer.path)

    def delete(self, path: Path) -> None:
        path = self._path(path)
        try:
            path.unlink()
        except OSError as e:
            raise TargetFileError(path, e.strerror or str(e)) from e
        self._buffers.pop(path, None)
        logger.info("Deleted %s", path)


class MemorySources:
    """Target files held in a dict of name -> text.

    Attributes:
        files: Saved file contents, updated by ``save`` and ``delete``
        revisions: Texts by (name, revision)
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        revisions: dict[tuple[str, str], str] | None = None,
    ) -> None:
        self.files = files if files is not None else {}
        self.revisions = revisions or {}
        self._buffers: dict[str, TextBuffer] = {}

    def find(self, names: Sequence[str]) -> Path | None:
        name = resolve_names(names, lambda n: n in self.files)
        return Path(name) if name is not None else None

    def open(self, path: Path) -> TextBuffer:
        key = str(path)
        buffer = self._buffers.get(key)
        if buffer is not None:
            return buffer
        if key not in self.files:
            raise TargetFileError(path, "No such file or directory")
        buffer = TextBuffer(path=Path(key), text=self.files[key])
        self._buffers[key] = buffer
        return buffer

    def create(self, path: Path) -> TextBuffer:
        buffer = TextBuffer(path=path, text="", modified=True)
        self._buffers[str(path)] = buffer
        return buffer

    def read_revision(self, path: Path, revision: str) -> TextBuffer:
        text = self.revisions.get((str(path), revision))
        if text is None:
            raise TargetFileError(path, f"cannot read revision {revision}")
        return TextBuffer(path=path, text=text, read_only=True, revision=revision)

    def save(self, buffer: TextBuffer) -> None:
        if buffer.read_only:
            raise TargetFileError(buffer.path, "buffer is read-only")
        self.files[str(buffer.path)] = buffer.text
        buffer.modified = False

    def delete(self, path: Path) -> None:
        key = str(path)
        if key not in self.files:
            raise TargetFileError(path, "No such file or directory")
        del self.files[key]
        self._buffers.pop(key, None)
