"""Unit tests for diffengine.patch.validator module."""

from diffengine.patch.parser import parse_diff
from diffengine.patch.validator import sanity_check_hunk, validate_document


class TestUnifiedSanityCheck:
    """Tests for unified hunk checks."""

    def test_valid_hunk(self) -> None:
        result = sanity_check_hunk("@@ -1,2 +1,2 @@\n a\n-b\n+c\n")

        assert result.valid is True
        assert result.errors == []
        assert result.fixed_text is None

    def test_counts_too_large(self) -> None:
        """A body shorter than the header declares is messed up."""
        result = sanity_check_hunk("@@ -1,5 +1,5 @@\n a\n-b\n+c\n")

        assert result.valid is False
        assert result.errors == ["Hunk seriously messed up"]

    def test_ambiguous_end(self) -> None:
        """One side running out while the other overflows is ambiguous."""
        result = sanity_check_hunk("@@ -1,2 +1,1 @@\n a\n-b\n+c\n")

        assert result.valid is False
        assert result.errors == ["End of hunk ambiguously marked"]

    def test_signature_separator_ends_hunk(self) -> None:
        """A format-patch '-- ' line after a complete body is accepted."""
        result = sanity_check_hunk("@@ -1 +1 @@\n-a\n+b\n-- \n2.39.0\n")

        assert result.valid is True

    def test_whitespace_loss_without_policy_fails(self) -> None:
        hunk = "@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n"

        result = sanity_check_hunk(hunk, valid_empty_line=False)

        assert result.valid is False
        assert result.errors == ["Hunk has whitespace loss at body line 2"]

    def test_whitespace_loss_auto_fixed(self) -> None:
        """An accepted fix restores the missing context space."""
        questions: list[str] = []

        def policy(question: str) -> bool:
            questions.append(question)
            return True

        result = sanity_check_hunk(
            "@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n", policy, valid_empty_line=False
        )

        assert result.valid is True
        assert result.fixed_text == "@@ -1,3 +1,3 @@\n a\n \n-b\n+c\n"
        assert result.warnings == ["Auto-fixed whitespace loss at body line 2"]
        assert questions == ["Try to auto-fix whitespace loss?"]

    def test_empty_line_is_context_by_default(self) -> None:
        result = sanity_check_hunk("@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n")

        assert result.valid is True
        assert result.fixed_text is None

    def test_word_wrap_auto_fixed(self) -> None:
        """A wrapped context line is joined back onto the previous line."""
        result = sanity_check_hunk(
            "@@ -1,2 +1,2 @@\n a long\nline\n b\n", lambda question: True
        )

        assert result.valid is True
        assert result.fixed_text == "@@ -1,2 +1,2 @@\n a long line\n b\n"

    def test_word_wrap_declined(self) -> None:
        result = sanity_check_hunk(
            "@@ -1,2 +1,2 @@\n a long\nline\n b\n", lambda question: False
        )

        assert result.valid is False
        assert result.errors == ["Hunk has word-wrap damage at body line 2"]


class TestContextSanityCheck:
    """Tests for context hunk checks."""

    def test_valid_hunk(self) -> None:
        result = sanity_check_hunk(
            "***************\n*** 1,2 ****\n  one\n! two\n--- 1,2 ----\n  one\n! TWO\n"
        )

        assert result.valid is True

    def test_missing_second_header(self) -> None:
        result = sanity_check_hunk("***************\n*** 1,2 ****\n  one\n  two\n")

        assert result.valid is False
        assert result.errors == ["Unrecognized context diff second hunk header format"]


class TestNormalSanityCheck:
    """Tests for normal hunk checks."""

    def test_valid_change(self) -> None:
        assert sanity_check_hunk("2c2\n< a\n---\n> b\n").valid is True

    def test_valid_add(self) -> None:
        assert sanity_check_hunk("3a4,5\n> x\n> y\n").valid is True

    def test_count_mismatch(self) -> None:
        result = sanity_check_hunk("2c2\n< a\n---\n> b\n> c\n")

        assert result.valid is False
        assert result.errors == ["Hunk seriously messed up"]


class TestValidateDocument:
    """Tests for whole-document validation."""

    def test_results_by_hunk_index(self) -> None:
        document = parse_diff(
            "--- a/f\n+++ b/f\n"
            "@@ -1 +1 @@\n-a\n+b\n"
            "@@ -5,3 +5,3 @@\n-c\n+d\n",
            trust_header=False,
        )

        results = validate_document(document)

        assert sorted(results) == [0, 1]
        assert results[0].valid is True
        assert results[1].valid is False
