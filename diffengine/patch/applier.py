"""Apply, revert and test hunks against their target files.

Single-hunk operations locate the hunk and edit the target buffer in
place. Batch application is all-or-nothing: every hunk is located first,
and target buffers are only changed (and saved) when no hunk failed.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from diffengine.core.errors import MalformedHunkError, TargetFileError
from diffengine.core.utils import plural
from diffengine.patch.locator import hunk_status_message
from diffengine.patch.session import DiffSession
from diffengine.patch.sources import TextBuffer
from diffengine.patch.types import DiffDocument, FileSection, Hunk, SourceLocation

logger = logging.getLogger(__name__)


class OutcomeStatus(Enum):
    """What happened to a hunk."""

    APPLIED = "applied"
    UNDONE = "undone"
    NOT_YET_APPLIED = "not yet applied"
    ALREADY_APPLIED = "already applied"
    SKIPPED = "skipped"  # Found in the opposite state; nothing done
    DELETED = "deleted"  # Target file removed
    NOT_FOUND = "not found"
    MALFORMED = "malformed"
    IO_ERROR = "io error"


_FAILED = frozenset({OutcomeStatus.NOT_FOUND, OutcomeStatus.MALFORMED, OutcomeStatus.IO_ERROR})


class BatchMode(Enum):
    """How far a batch application goes."""

    APPLY = "apply"  # Change buffers and save them
    NO_SAVE = "no-save"  # Change buffers only
    TEST = "test"  # Locate only


@dataclass
class HunkOutcome:
    """Result of one hunk operation.

    Attributes:
        status: What happened
        message: One-line status message
        hunk: The hunk the outcome is about
        target: Target file, when one was resolved
        location: Lookup result, when the lookup ran
    """

    status: OutcomeStatus
    message: str
    hunk: Hunk | None = None
    target: Path | None = None
    location: SourceLocation | None = None

    @property
    def failed(self) -> bool:
        return self.status in _FAILED

    @property
    def line_offset(self) -> int | None:
        return self.location.line_offset if self.location else None


@dataclass
class BatchResult:
    """Result of applying (or testing) a range of hunks.

    Attributes:
        failures: Hunks that could not be located cleanly, including hunks
            that look already applied
        touched: Targets with planned edits, in first-seen order
        outcomes: One outcome per hunk, in document order
        saved: Targets written (or, without saving, changed)
        deleted: Targets removed
        io_errors: Targets that could not be written, as (path, reason)
        message: Summary line
    """

    failures: int = 0
    touched: list[Path] = field(default_factory=list)
    outcomes: list[HunkOutcome] = field(default_factory=list)
    saved: int = 0
    deleted: list[Path] = field(default_factory=list)
    io_errors: list[tuple[Path, str]] = field(default_factory=list)
    message: str = ""

    @property
    def success(self) -> bool:
        return self.failures == 0 and not self.io_errors


def _error_outcome(hunk: Hunk, error: MalformedHunkError | TargetFileError) -> HunkOutcome:
    if isinstance(error, MalformedHunkError):
        return HunkOutcome(OutcomeStatus.MALFORMED, error.message, hunk)
    return HunkOutcome(OutcomeStatus.IO_ERROR, error.message, hunk, target=Path(error.path))


def test_hunk(
    session: DiffSession, section: FileSection, hunk: Hunk, reverse: bool = False
) -> HunkOutcome:
    """Locate a hunk and report whether it is applied, without changing anything."""
    try:
        buffer, location = session.locate(section, hunk, reverse)
    except (MalformedHunkError, TargetFileError) as e:
        return _error_outcome(hunk, e)
    if not location.found:
        return HunkOutcome(
            OutcomeStatus.NOT_FOUND,
            hunk_status_message(None, False, True),
            hunk,
            buffer.path,
            location,
        )
    reversed_ = location.switched != reverse
    return HunkOutcome(
        OutcomeStatus.ALREADY_APPLIED if reversed_ else OutcomeStatus.NOT_YET_APPLIED,
        hunk_status_message(location.line_offset, reversed_, True),
        hunk,
        buffer.path,
        location,
    )


def _deletes_target(
    session: DiffSession, section: FileSection, reverse: bool, new_text: str
) -> bool:
    return session.delete_files and section.deletes_file(reverse) and new_text == ""


def apply_hunk(
    session: DiffSession,
    section: FileSection,
    hunk: Hunk,
    reverse: bool = False,
    force: bool = False,
) -> HunkOutcome:
    """Apply (or with ``reverse``, revert) one hunk to its target buffer.

    A hunk found in the opposite state is left alone unless ``force`` is
    set, in which case the found text is replaced by the other side (the
    hunk is undone). A deletion hunk that empties its target removes the
    target file. The buffer is not saved.
    """
    try:
        buffer, location = session.locate(section, hunk, reverse)
    except (MalformedHunkError, TargetFileError) as e:
        return _error_outcome(hunk, e)

    if not location.found:
        logger.warning("Hunk at %d: text not found in %s", hunk.start, buffer.path)
        return HunkOutcome(
            OutcomeStatus.NOT_FOUND, "Hunk text not found", hunk, buffer.path, location
        )

    reversed_ = location.switched != reverse
    if location.switched and not force:
        return HunkOutcome(
            OutcomeStatus.SKIPPED,
            f"{hunk_status_message(location.line_offset, reversed_, True)} (Nothing done)",
            hunk,
            buffer.path,
            location,
        )

    begin, end = location.span
    new_text = buffer.text[:begin] + location.replacement.text + buffer.text[end:]
    try:
        if not location.switched and _deletes_target(session, section, reverse, new_text):
            session.sources.delete(buffer.path)
            logger.info("Deleted %s", buffer.path)
            return HunkOutcome(
                OutcomeStatus.DELETED, f"Deleted {buffer.path}", hunk, buffer.path, location
            )
        buffer.replace(begin, end, location.replacement.text)
    except TargetFileError as e:
        return _error_outcome(hunk, e)

    logger.info("Hunk at %d applied to %s", hunk.start, buffer.path)
    return HunkOutcome(
        OutcomeStatus.UNDONE if reversed_ else OutcomeStatus.APPLIED,
        hunk_status_message(location.line_offset, reversed_, False),
        hunk,
        buffer.path,
        location,
    )


@dataclass
class _PlannedEdit:
    span: tuple[int, int]
    text: str
    outcome: HunkOutcome


@dataclass
class _TargetPlan:
    buffer: TextBuffer
    section: FileSection
    edits: list[_PlannedEdit] = field(default_factory=list)


def _hunks_in_range(
    document: DiffDocument, start: int, end: int | None
) -> list[tuple[FileSection, Hunk]]:
    return [
        (section, hunk)
        for section, hunk in document.iter_hunks()
        if hunk.end > start and (end is None or hunk.start < end)
    ]


def _plan(
    session: DiffSession,
    document: DiffDocument,
    start: int,
    end: int | None,
    reverse: bool,
    result: BatchResult,
) -> dict[Path, _TargetPlan]:
    """Locate every hunk in range; collect edits per target without changing anything."""
    plans: dict[Path, _TargetPlan] = {}
    for section, hunk in _hunks_in_range(document, start, end):
        outcome = test_hunk(session, section, hunk, reverse)
        result.outcomes.append(outcome)
        location = outcome.location
        if outcome.failed or location is None or location.switched:
            result.failures += 1
            logger.warning("Hunk at %d: %s", hunk.start, outcome.message)
            continue
        buffer = session.open_target(section, reverse)
        if buffer.read_only:
            result.failures += 1
            outcome.status = OutcomeStatus.IO_ERROR
            outcome.message = f"{buffer.path}: buffer is read-only"
            logger.warning("Hunk at %d: %s", hunk.start, outcome.message)
            continue
        plan = plans.get(buffer.path)
        if plan is None:
            plan = plans[buffer.path] = _TargetPlan(buffer, section)
            result.touched.append(buffer.path)
        plan.edits.append(_PlannedEdit(location.span, location.replacement.text, outcome))

    for plan in plans.values():
        plan.edits.sort(key=lambda edit: edit.span)
        for previous, following in zip(plan.edits, plan.edits[1:]):
            if previous.span[1] > following.span[0]:
                result.failures += 1
                following.outcome.status = OutcomeStatus.NOT_FOUND
                following.outcome.message = "Hunk overlaps another hunk"
                logger.warning("Overlapping hunks in %s", plan.buffer.path)
    return plans


def _commit(
    session: DiffSession,
    plans: dict[Path, _TargetPlan],
    reverse: bool,
    mode: BatchMode,
    result: BatchResult,
) -> None:
    for path, plan in plans.items():
        text = plan.buffer.text
        # From the end backward so earlier spans stay valid
        for edit in sorted(plan.edits, key=lambda e: e.span[0], reverse=True):
            begin, end = edit.span
            text = text[:begin] + edit.text + text[end:]

        deleting = _deletes_target(session, plan.section, reverse, text)
        try:
            if mode is BatchMode.NO_SAVE:
                plan.buffer.text = text
                plan.buffer.modified = True
            elif deleting:
                session.sources.delete(path)
                result.deleted.append(path)
            else:
                session.sources.save(dataclasses.replace(plan.buffer, text=text))
                plan.buffer.text = text
                plan.buffer.modified = False
        except TargetFileError as e:
            result.io_errors.append((path, e.reason))
            logger.warning("Could not write %s: %s", path, e.reason)
            for edit in plan.edits:
                edit.outcome.status = OutcomeStatus.IO_ERROR
                edit.outcome.message = e.message
            continue

        if not deleting or mode is BatchMode.NO_SAVE:
            result.saved += 1
        applied = OutcomeStatus.UNDONE if reverse else OutcomeStatus.APPLIED
        for edit in plan.edits:
            edit.outcome.status = OutcomeStatus.DELETED if deleting and mode is BatchMode.APPLY else applied
            edit.outcome.message = hunk_status_message(edit.outcome.line_offset, reverse, False)
        logger.info("%s %s", "Deleted" if deleting and mode is BatchMode.APPLY else "Patched", path)


def apply_all(
    session: DiffSession,
    document: DiffDocument,
    start: int = 0,
    end: int | None = None,
    reverse: bool = False,
    mode: BatchMode = BatchMode.APPLY,
) -> BatchResult:
    """Apply every hunk between ``start`` and ``end``, or none of them.

    All hunks are located first. Hunks not found, malformed, looking
    already applied, or overlapping another hunk are failures; with any
    failure no buffer is changed. Otherwise each target's edits are applied
    from the end backward and the target is saved (or deleted, when a
    deletion hunk empties it). A target that cannot be written is reported
    in ``io_errors`` and does not stop the other targets.

    Args:
        session: Lookup options and target collaborator
        document: Parsed diff
        start: Offset; hunks ending after it are included
        end: Offset; hunks starting before it are included (None for all)
        reverse: Revert the hunks instead
        mode: APPLY saves, NO_SAVE only changes buffers, TEST only locates

    Returns:
        BatchResult with per-hunk outcomes and a summary message.
    """
    result = BatchResult()
    plans = _plan(session, document, start, end, reverse, result)

    if result.failures:
        result.message = f"{plural(result.failures, 'hunk')} failed; no buffers changed"
        return result
    if mode is BatchMode.TEST:
        result.message = "All hunks apply cleanly"
        return result

    _commit(session, plans, reverse, mode, result)
    result.message = f"Saved {plural(result.saved, 'buffer')}"
    if mode is BatchMode.NO_SAVE:
        result.message = f"Changed {plural(result.saved, 'buffer')}"
    if result.deleted:
        result.message += f", deleted {plural(len(result.deleted), 'file')}"
    if result.io_errors:
        result.message += f"; {plural(len(result.io_errors), 'buffer')} could not be written"
    return result
