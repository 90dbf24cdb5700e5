"""Sanity checks for hunks before they are located or applied.

This module walks a hunk body against the line counts its header declares
and detects the damage diffs typically suffer in transit (mail clients
stripping the leading space of empty context lines, or wrapping long lines).
Such damage can be repaired when an auto-fix policy agrees to it.
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
    NORMAL_HEADER_RE,
    UNIFIED_HEADER_RE,
    split_lines,
    strip_eol,
)
from diffengine.patch.types import DiffDocument

logger = logging.getLogger(__name__)

# Answers a yes/no repair question such as "Try to auto-fix whitespace loss?"
AutoFixPolicy = Callable[[str], bool]

# A "-- " signature delimiter or a run of dashes ending a hunk
SEPARATOR_RE = re.compile(r"^--+ ?$")


@dataclass
class ValidationResult:
    """Result of a hunk sanity check.

    Attributes:
        valid: True if the body agrees with the header (possibly after fixes)
        errors: Critical problems that prevent using the hunk
        warnings: Repairs that were applied
        fixed_text: Repaired hunk text, if any repair was accepted
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    fixed_text: str | None = None


def _ask(auto_fix: AutoFixPolicy | None, question: str) -> bool:
    return auto_fix is not None and auto_fix(question)


def _is_empty(line: str) -> bool:
    return strip_eol(line) == ""


def _join_wrapped(lines: list[str], index: int, filler: str) -> None:
    """Join line ``index`` onto the previous line, undoing a word wrap."""
    previous = lines[index - 1]
    if previous.endswith("\n"):
        previous = previous[:-1]
    lines[index - 1] = previous + filler + lines[index]
    del lines[index]


def _check_unified(
    lines: list[str],
    auto_fix: AutoFixPolicy | None,
    valid_empty_line: bool,
    fixes: list[str],
) -> None:
    match = UNIFIED_HEADER_RE.match(strip_eol(lines[0]))
    if not match:
        raise MalformedHunkError("Unrecognized unified diff hunk header format", 0)
    before = int(match.group(2) or "1")
    after = int(match.group(4) or "1")

    i = 1
    while True:
        at_end = i >= len(lines)
        line = "" if at_end else lines[i]
        marker = line[:1]
        if marker == " ":
            before -= 1
            after -= 1
        elif marker == "-":
            is_file_header = i + 1 < len(lines) and line.startswith("--- ") and lines[
                i + 1
            ].startswith("+++ ")
            if before == 0 and after == 0 and (
                SEPARATOR_RE.match(strip_eol(line)) or is_file_header
            ):
                break
            before -= 1
        elif marker == "+":
            after -= 1
        elif marker == "\\":
            pass
        elif valid_empty_line and not at_end and _is_empty(line) and before > 0 and after > 0:
            before -= 1
            after -= 1
        elif before == 0 and after == 0:
            break
        elif before < 0 or after < 0:
            if before == 0 or after == 0:
                raise MalformedHunkError("End of hunk ambiguously marked", i)
            raise MalformedHunkError("Hunk seriously messed up", i)
        elif at_end:
            raise MalformedHunkError("Hunk seriously messed up", i)
        else:
            damage = "whitespace loss" if _is_empty(line) else "word-wrap damage"
            if i < 2 and damage != "whitespace loss":
                raise MalformedHunkError("Hunk seriously messed up", i)
            if not _ask(auto_fix, f"Try to auto-fix {damage}?"):
                raise MalformedHunkError(f"Hunk has {damage} at body line {i}", i)
            fixes.append(f"Auto-fixed {damage} at body line {i}")
            if damage == "whitespace loss":
                lines[i] = " " + line
            else:
                _join_wrapped(lines, i, " ")
            # Re-examine the repaired line
            continue
        i += 1


def _context_count(match: re.Match[str]) -> int:
    if match.group(2) is None:
        return 1
    return int(match.group(2)) - int(match.group(1)) + 1


def _check_context_half(
    lines: list[str],
    i: int,
    declared: int,
    auto_fix: AutoFixPolicy | None,
    fixes: list[str],
) -> int:
    count = declared
    while True:
        at_end = i >= len(lines)
        line = "" if at_end else lines[i]
        if line[:1] in (" ", "!", "+", "-") and line[1:2] in (" ", "\t"):
            count -= 1
        elif line[:1] == "\\":
            pass
        elif count == 0 or count == declared:
            break
        elif line[:1] in ("!", "+", "-"):
            if not (strip_eol(line[1:]) == "" and _ask(
                auto_fix, "Try to auto-fix whitespace loss damage?"
            )):
                raise MalformedHunkError("End of hunk ambiguously marked", i)
            fixes.append(f"Auto-fixed whitespace loss at body line {i}")
            lines[i] = line[0] + " " + line[1:]
            continue
        elif declared < 0:
            raise MalformedHunkError("End of hunk ambiguously marked", i)
        elif at_end:
            raise MalformedHunkError("Hunk seriously messed up", i)
        else:
            if not _ask(auto_fix, "Try to auto-fix whitespace loss and word-wrap damage?"):
                raise MalformedHunkError(f"Hunk has whitespace damage at body line {i}", i)
            fixes.append(f"Auto-fixed whitespace damage at body line {i}")
            if _is_empty(line):
                lines[i] = "  " + line
            else:
                _join_wrapped(lines, i, " ")
            continue
        i += 1
    return i


def _check_context(
    lines: list[str], auto_fix: AutoFixPolicy | None, fixes: list[str]
) -> None:
    old_match = (
        CONTEXT_OLD_RE.match(strip_eol(lines[1]))
        if len(lines) > 1 and CONTEXT_BANNER_RE.match(strip_eol(lines[0]))
        else None
    )
    if not old_match:
        raise MalformedHunkError("Unrecognized context diff first hunk header format", 0)
    i = _check_context_half(lines, 2, _context_count(old_match), auto_fix, fixes)
    mid_match = CONTEXT_MID_RE.match(strip_eol(lines[i])) if i < len(lines) else None
    if not mid_match:
        raise MalformedHunkError("Unrecognized context diff second hunk header format", i)
    _check_context_half(lines, i + 1, _context_count(mid_match), auto_fix, fixes)


def _check_normal(lines: list[str]) -> None:
    match = NORMAL_HEADER_RE.match(strip_eol(lines[0]))
    if not match:
        raise MalformedHunkError("Unrecognized hunk header format", 0)
    old_start, old_end, op, new_start, new_end = match.groups()
    old_count = 0 if op == "a" else int(old_end or old_start) - int(old_start) + 1
    new_count = 0 if op == "d" else int(new_end or new_start) - int(new_start) + 1

    body = [strip_eol(line) for line in lines[1:] if not line.startswith("\\")]
    removed = 0
    while removed < len(body) and body[removed].startswith("< "):
        removed += 1
    rest = body[removed:]
    if op == "c":
        if not rest or rest[0] != "---":
            raise MalformedHunkError("Hunk seriously messed up", removed + 1)
        rest = rest[1:]
    added = 0
    while added < len(rest) and rest[added].startswith("> "):
        added += 1
    if removed != old_count or added != new_count:
        raise MalformedHunkError("Hunk seriously messed up", 0)


def sanity_check_hunk(
    hunk_text: str,
    auto_fix: AutoFixPolicy | None = None,
    valid_empty_line: bool = True,
) -> ValidationResult:
    """Check that a hunk's body agrees with its header.

    Args:
        hunk_text: Raw text of one hunk, header included
        auto_fix: Policy asked before repairing transit damage; when None
            no repair is attempted
        valid_empty_line: Accept empty lines as context in unified hunks

    Returns:
        ValidationResult; ``fixed_text`` holds the repaired hunk when the
        policy accepted a repair.
    """
    lines = split_lines(hunk_text)
    if not lines:
        return ValidationResult(valid=False, errors=["Empty hunk"])

    fixes: list[str] = []
    first = lines[0]
    try:
        if first.startswith("*"):
            _check_context(lines, auto_fix, fixes)
        elif first.startswith("@") or first.startswith("+"):
            _check_unified(lines, auto_fix, valid_empty_line, fixes)
        else:
            _check_normal(lines)
    except MalformedHunkError as e:
        logger.debug("Sanity check failed: %s", e.message)
        return ValidationResult(valid=False, errors=[e.message], warnings=fixes)

    fixed_text = "".join(lines) if fixes else None
    for fix in fixes:
        logger.debug(fix)
    return ValidationResult(valid=True, warnings=fixes, fixed_text=fixed_text)


def validate_document(
    document: DiffDocument,
    auto_fix: AutoFixPolicy | None = None,
    valid_empty_line: bool = True,
) -> dict[int, ValidationResult]:
    """Sanity check every hunk of a document.

    Returns:
        Mapping from hunk index (document order, 0-based) to its result.
    """
    results: dict[int, ValidationResult] = {}
    for index, (_section, hunk) in enumerate(document.iter_hunks()):
        results[index] = sanity_check_hunk(hunk.text, auto_fix, valid_empty_line)
    return results
