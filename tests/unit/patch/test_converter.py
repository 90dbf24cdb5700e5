"""Unit tests for diffengine.patch.converter module."""

import pytest

from diffengine.core.errors import MalformedHunkError
from diffengine.patch.converter import context_to_unified, reverse_direction, unified_to_context

UNIFIED = """\
--- a/f.txt
+++ b/f.txt
@@ -1,3 +1,3 @@
 one
-two
+TWO
 three
"""

CONTEXT = """\
*** a/f.txt
--- b/f.txt
***************
*** 1,3 ****
  one
! two
  three
--- 1,3 ----
  one
! TWO
  three
"""


class TestUnifiedToContext:
    """Tests for unified -> context conversion."""

    def test_substitution_becomes_changed_lines(self) -> None:
        result = unified_to_context(UNIFIED)

        assert result.text == CONTEXT
        assert result.reversible is True
        assert result.hunks == 1

    def test_pure_insertion_omits_old_half(self) -> None:
        """A half without changes is left out."""
        result = unified_to_context("@@ -1,2 +1,3 @@\n a\n+new\n b\n")

        assert result.text == (
            "***************\n*** 1,2 ****\n--- 1,3 ----\n  a\n+ new\n  b\n"
        )
        assert result.reversible is True

    def test_pure_deletion_omits_new_half(self) -> None:
        result = unified_to_context("@@ -1,3 +1,2 @@\n a\n-old\n b\n")

        assert result.text == (
            "***************\n*** 1,3 ****\n  a\n- old\n  b\n--- 1,2 ----\n"
        )

    def test_single_line_range(self) -> None:
        """A context range of one line is written as a single number."""
        result = unified_to_context("@@ -4 +4 @@\n-a\n+b\n")

        assert result.text == "***************\n*** 4 ****\n! a\n--- 4 ----\n! b\n"

    def test_addition_before_removal_is_irreversible(self) -> None:
        """Converting back re-orders the change group, so the result is flagged."""
        result = unified_to_context("@@ -1,2 +1,2 @@\n+B\n-b\n a\n")

        assert result.reversible is False
        assert "! b\n" in result.text
        assert "! B\n" in result.text

    def test_explicit_count_of_one_is_irreversible(self) -> None:
        result = unified_to_context("@@ -1,1 +1,1 @@\n-a\n+b\n")

        assert result.reversible is False

    def test_region_limits_conversion(self) -> None:
        """Only hunks from the region start on are converted."""
        text = "@@ -1 +1 @@\n-a\n+b\n@@ -9 +9 @@\n-c\n+d\n"
        second = text.index("@@ -9")

        result = unified_to_context(text, start=second)

        assert result.text.startswith("@@ -1 +1 @@\n-a\n+b\n***************\n")
        assert result.hunks == 1

    def test_mappings_cover_rewritten_spans(self) -> None:
        result = unified_to_context(UNIFIED)

        assert len(result.mappings) == 2
        pair, hunk = result.mappings
        assert (pair.old_start, pair.new_start) == (0, 0)
        assert hunk.old_start == UNIFIED.index("@@")
        assert hunk.new_end == len(CONTEXT)


class TestContextToUnified:
    """Tests for context -> unified conversion."""

    def test_changed_lines_become_removals_and_additions(self) -> None:
        result = context_to_unified(CONTEXT)

        assert result.text == UNIFIED
        assert result.reversible is True

    def test_counts_are_recomputed(self) -> None:
        """Counts come from the merged body, not from the context ranges."""
        result = context_to_unified(
            "***************\n*** 1,2 ****\n--- 1,3 ----\n  a\n+ new\n  b\n"
        )

        assert result.text == "@@ -1,2 +1,3 @@\n a\n+new\n b\n"

    def test_count_of_one_is_omitted(self) -> None:
        result = context_to_unified("***************\n*** 4 ****\n! a\n--- 4 ----\n! b\n")

        assert result.text == "@@ -4 +4 @@\n-a\n+b\n"

    def test_to_context_flag(self) -> None:
        assert context_to_unified(UNIFIED, to_context=True).text == CONTEXT

    def test_round_trip(self) -> None:
        text = (
            UNIFIED
            + "--- a/g.txt\n+++ b/g.txt\n@@ -1,2 +1,3 @@\n a\n+new\n b\n"
            + "--- a/h.txt\n+++ b/h.txt\n@@ -1,3 +1,2 @@\n a\n-old\n b\n"
        )

        result = unified_to_context(text)

        assert result.reversible is True
        assert context_to_unified(result.text).text == text

    def test_missing_separator_raises(self) -> None:
        with pytest.raises(MalformedHunkError):
            context_to_unified("***************\n*** 1,2 ****\n  a\n  b\n")


class TestReverseDirection:
    """Tests for reversing a diff."""

    def test_unified(self) -> None:
        text = "--- a/f.txt\n+++ b/f.txt\n@@ -1,3 +1,4 @@\n one\n-two\n+TWO\n+extra\n three\n"

        result = reverse_direction(text)

        assert result.text == (
            "--- b/f.txt\n+++ a/f.txt\n@@ -1,4 +1,3 @@\n one\n-TWO\n-extra\n+two\n three\n"
        )
        assert result.reversible is True

    def test_reversing_twice_restores_text(self) -> None:
        assert reverse_direction(reverse_direction(UNIFIED).text).text == UNIFIED

    def test_context(self) -> None:
        text = "***************\n*** 1,2 ****\n  one\n! two\n--- 1,2 ----\n  one\n! TWO\n"

        result = reverse_direction(text)

        assert result.text == (
            "***************\n*** 1,2 ****\n  one\n! TWO\n--- 1,2 ----\n  one\n! two\n"
        )

    def test_normal_add_becomes_delete(self) -> None:
        assert reverse_direction("3a4,5\n> x\n> y\n").text == "4,5d3\n< x\n< y\n"

    def test_normal_change(self) -> None:
        assert reverse_direction("2c2\n< a\n---\n> b\n").text == "2c2\n< b\n---\n> a\n"

    def test_git_file_creation_becomes_deletion(self) -> None:
        text = (
            "diff --git a/f b/f\nnew file mode 100644\n"
            "--- /dev/null\n+++ b/f\n@@ -0,0 +1 @@\n+x\n"
        )

        result = reverse_direction(text)

        assert result.text == (
            "diff --git a/f b/f\ndeleted file mode 100644\n"
            "--- b/f\n+++ /dev/null\n@@ -1 +0,0 @@\n-x\n"
        )

    def test_git_mode_change(self) -> None:
        text = "diff --git a/f b/f\nold mode 100644\nnew mode 100755\n"

        result = reverse_direction(text)

        assert result.text == "diff --git a/f b/f\nold mode 100755\nnew mode 100644\n"
