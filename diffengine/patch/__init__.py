"""Patch module for parsing, converting, locating and applying diffs.

Unified, context and normal diffs are supported.

Main components:
- Types: Hunk, FileSection, DiffDocument - structured representation of diffs
- Parser: parse_diff() - convert diff text to objects
- Validator: sanity_check_hunk() - check hunk bodies against their headers
- Converter: unified_to_context(), context_to_unified(), reverse_direction()
- Locator: locate() - find a hunk's text in a target file
- Applier: test_hunk(), apply_hunk(), apply_all()
- Fixup: fixup_hunk_headers() and DiffBuffer - keep headers consistent with bodies
- Refine: refine_hunk() - word-level highlight regions

Example usage:
    >>> from diffengine.patch import DiffSession, MemorySources, apply_all, parse_diff
    >>> diff_text = '''--- a/file.py
    ... +++ b/file.py
    ... @@ -1,3 +1,3 @@
    ...  line1
    ... -line2
    ... +new_line
    ...  line3
    ... '''
    >>> sources = MemorySources({"file.py": "line1\\nline2\\nline3\\n"})
    >>> result = apply_all(DiffSession(sources), parse_diff(diff_text))
    >>> sources.files["file.py"]
    'line1\\nnew_line\\nline3\\n'
"""

from diffengine.patch.applier import (
    BatchMode,
    BatchResult,
    HunkOutcome,
    OutcomeStatus,
    apply_all,
    apply_hunk,
    test_hunk,
)
from diffengine.patch.buffer import DiffBuffer
from diffengine.patch.converter import (
    ConversionResult,
    SpanMapping,
    context_to_unified,
    reverse_direction,
    unified_to_context,
)
from diffengine.patch.editing import kill_file, kill_hunk, split_hunk
from diffengine.patch.fixup import fixup_hunk_headers
from diffengine.patch.locator import find_approx_text, find_text, hunk_status_message, locate
from diffengine.patch.parser import (
    classify_line,
    end_of_hunk,
    extract_hunk_text,
    find_hunk_bounds,
    hunk_style_at,
    parse_diff,
    parse_header,
    parse_hunk,
)
from diffengine.patch.refine import (
    RefinedRegion,
    RefineKind,
    SequenceMatcherDiffer,
    WordDiffer,
    refine_document,
    refine_hunk,
)
from diffengine.patch.session import DiffSession
from diffengine.patch.sources import (
    FileSystemSources,
    MemorySources,
    SourceProvider,
    TextBuffer,
)
from diffengine.patch.types import (
    DiffDocument,
    DiffStats,
    FileSection,
    Hunk,
    HunkHeader,
    HunkLine,
    HunkStyle,
    HunkText,
    LineKind,
    LineRange,
    Side,
    SourceLocation,
)
from diffengine.patch.validator import ValidationResult, sanity_check_hunk, validate_document

__all__ = [
    # Types
    "DiffDocument",
    "DiffStats",
    "FileSection",
    "Hunk",
    "HunkHeader",
    "HunkLine",
    "HunkStyle",
    "HunkText",
    "LineKind",
    "LineRange",
    "Side",
    "SourceLocation",
    # Parser
    "classify_line",
    "end_of_hunk",
    "extract_hunk_text",
    "find_hunk_bounds",
    "hunk_style_at",
    "parse_diff",
    "parse_header",
    "parse_hunk",
    # Validator
    "ValidationResult",
    "sanity_check_hunk",
    "validate_document",
    # Converter
    "ConversionResult",
    "SpanMapping",
    "context_to_unified",
    "reverse_direction",
    "unified_to_context",
    # Locator
    "find_approx_text",
    "find_text",
    "hunk_status_message",
    "locate",
    # Sources and session
    "DiffSession",
    "FileSystemSources",
    "MemorySources",
    "SourceProvider",
    "TextBuffer",
    # Applier
    "BatchMode",
    "BatchResult",
    "HunkOutcome",
    "OutcomeStatus",
    "apply_all",
    "apply_hunk",
    "test_hunk",
    # Fixup and editing
    "DiffBuffer",
    "fixup_hunk_headers",
    "kill_file",
    "kill_hunk",
    "split_hunk",
    # Refine
    "RefineKind",
    "RefinedRegion",
    "SequenceMatcherDiffer",
    "WordDiffer",
    "refine_document",
    "refine_hunk",
]
