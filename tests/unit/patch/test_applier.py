"""Unit tests for diffengine.patch.applier module."""

from pathlib import Path

from diffengine.core.errors import TargetFileError
from diffengine.patch import applier
from diffengine.patch.applier import BatchMode, OutcomeStatus, apply_all, apply_hunk
from diffengine.patch.parser import parse_diff
from diffengine.patch.session import DiffSession
from diffengine.patch.sources import FileSystemSources, MemorySources, TextBuffer
from diffengine.patch.types import FileSection, Hunk

SIMPLE = "--- a/f.txt\n+++ b/f.txt\n@@ -1,2 +1,2 @@\n-foo\n+bar\n baz\n"

TARGET = "".join(f"l{i}\n" for i in range(1, 13))

THREE_HUNKS = """\
--- a/t.txt
+++ b/t.txt
@@ -1,2 +1,2 @@
-l1
+L1
 l2
@@ -5,2 +5,2 @@
-missing
+M
 l6
@@ -10,2 +10,2 @@
 l10
-l11
+L11
"""


def _first(text: str) -> tuple[FileSection, Hunk]:
    document = parse_diff(text)
    return next(document.iter_hunks())


class _UnwritableSources(MemorySources):
    def save(self, buffer: TextBuffer) -> None:
        raise TargetFileError(buffer.path, "disk full")


class TestTestHunk:
    """Tests for testing a single hunk."""

    def test_not_yet_applied(self) -> None:
        session = DiffSession(MemorySources({"f.txt": "foo\nbaz\n"}))
        section, hunk = _first(SIMPLE)

        outcome = applier.test_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.NOT_YET_APPLIED
        assert outcome.message == "Hunk not yet applied"
        assert outcome.target == Path("f.txt")
        assert outcome.failed is False

    def test_already_applied(self) -> None:
        session = DiffSession(MemorySources({"f.txt": "bar\nbaz\n"}))
        section, hunk = _first(SIMPLE)

        outcome = applier.test_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.ALREADY_APPLIED
        assert outcome.message == "Hunk already applied"

    def test_reverse_reports_patch_state(self) -> None:
        """Testing the revert of an applied hunk reports it as applied."""
        session = DiffSession(MemorySources({"f.txt": "bar\nbaz\n"}))
        section, hunk = _first(SIMPLE)

        outcome = applier.test_hunk(session, section, hunk, reverse=True)

        assert outcome.status is OutcomeStatus.ALREADY_APPLIED
        assert outcome.location is not None
        assert outcome.location.switched is False

    def test_missing_target(self) -> None:
        session = DiffSession(MemorySources({}))
        section, hunk = _first(SIMPLE)

        outcome = applier.test_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.IO_ERROR
        assert outcome.failed is True

    def test_malformed_hunk(self) -> None:
        text = "--- a/f.txt\n+++ b/f.txt\n@@ -1,5 +1,5 @@\n-foo\n+bar\n baz\n"
        session = DiffSession(MemorySources({"f.txt": "foo\nbaz\n"}))
        section, hunk = next(parse_diff(text, trust_header=False).iter_hunks())

        outcome = applier.test_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.MALFORMED
        assert outcome.message == "Hunk seriously messed up"

    def test_read_only_revision(self) -> None:
        """Hunks can be tested against a revision snapshot."""
        sources = MemorySources(
            {"f.txt": "unrelated\n"}, revisions={("f.txt", "HEAD"): "foo\nbaz\n"}
        )
        session = DiffSession(sources, revision="HEAD")
        section, hunk = _first(SIMPLE)

        assert applier.test_hunk(session, section, hunk).status is OutcomeStatus.NOT_YET_APPLIED
        assert apply_hunk(session, section, hunk).status is OutcomeStatus.IO_ERROR


class TestApplyHunk:
    """Tests for applying a single hunk."""

    def test_scenario_apply(self) -> None:
        sources = MemorySources({"f.txt": "foo\nbaz\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.APPLIED
        assert outcome.message == "Hunk applied"
        assert outcome.line_offset == 0
        assert sources.open(Path("f.txt")).text == "bar\nbaz\n"
        # Single-hunk application does not save
        assert sources.files["f.txt"] == "foo\nbaz\n"

    def test_already_applied_is_left_alone(self) -> None:
        sources = MemorySources({"f.txt": "bar\nbaz\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.SKIPPED
        assert outcome.message == "Hunk already applied (Nothing done)"
        assert sources.open(Path("f.txt")).text == "bar\nbaz\n"

    def test_force_undoes_applied_hunk(self) -> None:
        sources = MemorySources({"f.txt": "bar\nbaz\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk, force=True)

        assert outcome.status is OutcomeStatus.UNDONE
        assert sources.open(Path("f.txt")).text == "foo\nbaz\n"

    def test_fuzzy_application(self) -> None:
        sources = MemorySources({"f.txt": "foo   \nbaz\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.APPLIED
        assert outcome.location is not None
        assert outcome.location.fuzzy is True
        assert sources.open(Path("f.txt")).text == "bar\nbaz\n"

    def test_offset_is_reported(self) -> None:
        sources = MemorySources({"f.txt": "x\ny\nfoo\nbaz\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.message == "Hunk applied at offset 2 lines"
        assert sources.open(Path("f.txt")).text == "x\ny\nbar\nbaz\n"

    def test_apply_then_revert_restores_original(self) -> None:
        sources = MemorySources({"f.txt": "head\nfoo\nbaz\ntail\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        assert apply_hunk(session, section, hunk).status is OutcomeStatus.APPLIED
        outcome = apply_hunk(session, section, hunk, reverse=True)

        assert outcome.status is OutcomeStatus.UNDONE
        assert outcome.message == "Hunk undone at offset 1 line"
        assert sources.open(Path("f.txt")).text == "head\nfoo\nbaz\ntail\n"

    def test_not_found(self) -> None:
        sources = MemorySources({"f.txt": "nothing\n"})
        session = DiffSession(sources)
        section, hunk = _first(SIMPLE)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.NOT_FOUND
        assert outcome.message == "Hunk text not found"

    def test_deletion_removes_target(self) -> None:
        text = "--- a/gone.txt\n+++ /dev/null\n@@ -1,2 +0,0 @@\n-a\n-b\n"
        sources = MemorySources({"gone.txt": "a\nb\n"})
        session = DiffSession(sources)
        section, hunk = _first(text)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.DELETED
        assert "gone.txt" not in sources.files

    def test_deletion_keeps_file_when_disabled(self) -> None:
        text = "--- a/gone.txt\n+++ /dev/null\n@@ -1,2 +0,0 @@\n-a\n-b\n"
        sources = MemorySources({"gone.txt": "a\nb\n"})
        session = DiffSession(sources, delete_files=False)
        section, hunk = _first(text)

        outcome = apply_hunk(session, section, hunk)

        assert outcome.status is OutcomeStatus.APPLIED
        assert sources.open(Path("gone.txt")).text == ""


class TestApplyAll:
    """Tests for all-or-nothing batch application."""

    def test_one_failure_changes_nothing(self) -> None:
        sources = MemorySources({"t.txt": TARGET})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(THREE_HUNKS))

        assert result.failures == 1
        assert result.success is False
        assert result.message == "1 hunk failed; no buffers changed"
        assert sources.files["t.txt"] == TARGET
        assert sources.open(Path("t.txt")).text == TARGET
        assert [o.status for o in result.outcomes] == [
            OutcomeStatus.NOT_YET_APPLIED,
            OutcomeStatus.NOT_FOUND,
            OutcomeStatus.NOT_YET_APPLIED,
        ]

    def test_all_hunks_applied_and_saved(self) -> None:
        sources = MemorySources({"t.txt": TARGET})
        session = DiffSession(sources)
        text = THREE_HUNKS.replace("-missing\n+M\n", "-l5\n+L5\n")

        result = apply_all(session, parse_diff(text))

        assert result.success is True
        assert result.message == "Saved 1 buffer"
        assert result.touched == [Path("t.txt")]
        expected = TARGET.replace("l1\n", "L1\n", 1).replace("l5\n", "L5\n").replace(
            "l11\n", "L11\n"
        )
        assert sources.files["t.txt"] == expected
        assert all(o.status is OutcomeStatus.APPLIED for o in result.outcomes)

    def test_revert_restores_original(self) -> None:
        sources = MemorySources({"t.txt": TARGET})
        session = DiffSession(sources)
        document = parse_diff(THREE_HUNKS.replace("-missing\n+M\n", "-l5\n+L5\n"))

        assert apply_all(session, document).success is True
        result = apply_all(session, document, reverse=True)

        assert result.success is True
        assert all(o.status is OutcomeStatus.UNDONE for o in result.outcomes)
        assert sources.files["t.txt"] == TARGET

    def test_already_applied_counts_as_failure(self) -> None:
        sources = MemorySources({"f.txt": "bar\nbaz\n"})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(SIMPLE))

        assert result.failures == 1
        assert sources.files["f.txt"] == "bar\nbaz\n"

    def test_overlapping_hunks_fail(self) -> None:
        text = SIMPLE + "@@ -1,2 +1,2 @@\n-foo\n+bar\n baz\n"
        sources = MemorySources({"f.txt": "foo\nbaz\n"})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(text))

        assert result.failures == 1
        assert result.outcomes[1].message == "Hunk overlaps another hunk"
        assert sources.files["f.txt"] == "foo\nbaz\n"

    def test_test_mode_changes_nothing(self) -> None:
        sources = MemorySources({"f.txt": "foo\nbaz\n"})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(SIMPLE), mode=BatchMode.TEST)

        assert result.success is True
        assert result.message == "All hunks apply cleanly"
        assert sources.open(Path("f.txt")).text == "foo\nbaz\n"

    def test_no_save_mode_changes_buffers_only(self) -> None:
        sources = MemorySources({"f.txt": "foo\nbaz\n"})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(SIMPLE), mode=BatchMode.NO_SAVE)

        assert result.message == "Changed 1 buffer"
        buffer = sources.open(Path("f.txt"))
        assert buffer.text == "bar\nbaz\n"
        assert buffer.modified is True
        assert sources.files["f.txt"] == "foo\nbaz\n"

    def test_range_limits_hunks(self) -> None:
        sources = MemorySources({"t.txt": TARGET})
        session = DiffSession(sources)
        document = parse_diff(THREE_HUNKS)
        third = list(document.iter_hunks())[2][1]

        result = apply_all(session, document, start=third.start)

        assert result.success is True
        assert len(result.outcomes) == 1
        assert "L11\n" in sources.files["t.txt"]

    def test_file_creation_and_removal(self) -> None:
        text = "--- /dev/null\n+++ b/new.txt\n@@ -0,0 +1,2 @@\n+hello\n+world\n"
        sources = MemorySources({})
        session = DiffSession(sources)
        document = parse_diff(text)

        created = apply_all(session, document)

        assert created.success is True
        assert sources.files["new.txt"] == "hello\nworld\n"

        removed = apply_all(DiffSession(sources), document, reverse=True)

        assert removed.success is True
        assert removed.deleted == [Path("new.txt")]
        assert removed.message == "Saved 0 buffers, deleted 1 file"
        assert "new.txt" not in sources.files

    def test_write_error_is_reported(self) -> None:
        """A target that cannot be written is reported without raising."""
        sources = _UnwritableSources({"f.txt": "foo\nbaz\n"})
        session = DiffSession(sources)

        result = apply_all(session, parse_diff(SIMPLE))

        assert result.success is False
        assert result.io_errors == [(Path("f.txt"), "disk full")]
        assert result.message == "Saved 0 buffers; 1 buffer could not be written"
        assert result.outcomes[0].status is OutcomeStatus.IO_ERROR
        assert sources.open(Path("f.txt")).text == "foo\nbaz\n"


class TestFileSystemApply:
    """Tests for applying to files on disk."""

    def test_crlf_target_keeps_line_endings(self, tmp_path: Path) -> None:
        target = tmp_path / "f.txt"
        target.write_bytes(b"foo\r\nbaz\r\n")
        session = DiffSession(FileSystemSources(tmp_path))

        result = apply_all(session, parse_diff(SIMPLE))

        assert result.success is True
        assert target.read_bytes() == b"bar\r\nbaz\r\n"

    def test_target_in_subdirectory(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        target = tmp_path / "src" / "f.txt"
        target.write_text("foo\nbaz\n")
        text = SIMPLE.replace("a/f.txt", "a/src/f.txt").replace("b/f.txt", "b/src/f.txt")
        session = DiffSession(FileSystemSources(tmp_path))

        result = apply_all(session, parse_diff(text))

        assert result.success is True
        assert target.read_text() == "bar\nbaz\n"
