"""Sub-command implementations for the diffengine CLI.

Each ``cmd_*`` function takes the parsed arguments and the loaded config
and returns the process exit code.
"""

import argparse
import logging
import sys
from pathlib import Path

from diffengine.cli.arg_parser import parse_args
from diffengine.config import Config, load_config
from diffengine.core.encoding import configure_stdio
from diffengine.core.errors import ConfigError, DiffEngineError, MalformedHunkError
from diffengine.core.paths import atomic_write_text
from diffengine.display import DEFAULT_THEME, InlinePrinter, Status, get_console
from diffengine.patch.applier import BatchMode, OutcomeStatus, apply_all, apply_hunk, test_hunk
from diffengine.patch.buffer import DiffBuffer
from diffengine.patch.converter import context_to_unified, reverse_direction, unified_to_context
from diffengine.patch.parser import parse_diff
from diffengine.patch.refine import refine_document
from diffengine.patch.session import DiffSession
from diffengine.patch.sources import FileSystemSources
from diffengine.patch.types import DiffDocument, FileSection, Hunk
from diffengine.patch.validator import validate_document

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(level: int) -> None:
    """Send diffengine log records at ``level`` and above to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    diffengine_logger = logging.getLogger("diffengine")
    diffengine_logger.setLevel(level)
    # Remove any existing handlers to avoid duplicates on reconfigure
    diffengine_logger.handlers.clear()
    diffengine_logger.addHandler(handler)
    diffengine_logger.propagate = False


def _printer() -> InlinePrinter:
    return InlinePrinter(get_console(), DEFAULT_THEME)


def _load_buffer(args: argparse.Namespace, config: Config) -> DiffBuffer:
    return DiffBuffer.from_file(
        args.diff,
        on_edit=config.fixup.on_edit,
        valid_empty_line=config.fixup.valid_unified_empty_line,
    )


def _load_document(args: argparse.Namespace, config: Config) -> DiffDocument:
    """Parse the diff file named on the command line.

    Raises:
        MalformedHunkError: If a hunk cannot be parsed.
    """
    buffer = _load_buffer(args, config)
    return parse_diff(buffer.text, valid_empty_line=config.fixup.valid_unified_empty_line)


def _session(args: argparse.Namespace, config: Config) -> DiffSession:
    return DiffSession.from_config(
        config,
        FileSystemSources(args.root),
        diff_path=args.diff,
    )


def _select_hunk(document: DiffDocument, number: int) -> tuple[FileSection, Hunk]:
    pairs = list(document.iter_hunks())
    if not 1 <= number <= len(pairs):
        raise DiffEngineError(f"No hunk {number}; the diff has {len(pairs)}")
    return pairs[number - 1]


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    atomic_write_text(output, text)
    logger.info("Wrote %s", output)


def cmd_convert(args: argparse.Namespace, config: Config) -> int:
    """Convert the diff to context or unified format, or reverse it."""
    text = _load_buffer(args, config).text
    if args.to == "context":
        result = unified_to_context(text)
    elif args.to == "unified":
        result = context_to_unified(text)
    else:
        result = reverse_direction(text)
    if not result.reversible:
        logger.warning("Conversion of %s is not reversible", args.diff)
    _write_output(result.text, args.output)
    return 0


def cmd_fixup(args: argparse.Namespace, config: Config) -> int:
    """Recompute every hunk header from its body."""
    buffer = _load_buffer(args, config)
    buffer.fixup()
    if args.in_place:
        buffer.save()
        _printer().print_written(buffer.path)
    else:
        _write_output(buffer.text, None)
    return 0


def cmd_check(args: argparse.Namespace, config: Config) -> int:
    """Sanity check every hunk."""
    printer = _printer()
    document = _load_document(args, config)
    results = validate_document(
        document, valid_empty_line=config.fixup.valid_unified_empty_line
    )
    failures = 0
    for index, result in results.items():
        if result.valid:
            printer.print_gumball(Status.OK, f"#{index + 1} ok", indent=2)
        else:
            failures += 1
            for error in result.errors:
                printer.print_gumball(Status.ERROR, f"#{index + 1} {error}", indent=2)
        for warning in result.warnings:
            printer.print_gumball(Status.SKIPPED, f"#{index + 1} {warning}", indent=2)
    if failures:
        printer.print_error(f"{failures} of {len(results)} hunks are malformed")
        return 1
    printer.print_gumball(Status.OK, f"{len(results)} hunks ok")
    return 0


def cmd_test(args: argparse.Namespace, config: Config) -> int:
    """Report whether each hunk is applied."""
    printer = _printer()
    document = _load_document(args, config)
    session = _session(args, config)
    failed = False
    for index, (section, hunk) in enumerate(document.iter_hunks(), start=1):
        outcome = test_hunk(session, section, hunk, reverse=args.reverse)
        printer.print_outcome(index, outcome)
        failed = failed or outcome.failed
    return 1 if failed else 0


def cmd_apply(args: argparse.Namespace, config: Config) -> int:
    """Apply (or revert) one hunk or all of them."""
    printer = _printer()
    document = _load_document(args, config)
    session = _session(args, config)
    save = config.apply.save and not args.no_save

    if args.hunk is not None:
        section, hunk = _select_hunk(document, args.hunk)
        outcome = apply_hunk(session, section, hunk, reverse=args.reverse, force=args.force)
        if save and outcome.status in (OutcomeStatus.APPLIED, OutcomeStatus.UNDONE):
            session.sources.save(session.sources.open(outcome.target))
        printer.print_outcome(args.hunk, outcome)
        return 1 if outcome.failed else 0

    mode = BatchMode.APPLY if save else BatchMode.NO_SAVE
    result = apply_all(session, document, reverse=args.reverse, mode=mode)
    printer.print_batch(result)
    return 0 if result.success else 1


def cmd_refine(args: argparse.Namespace, config: Config) -> int:
    """Print the hunks with their changed words highlighted."""
    printer = _printer()
    document = _load_document(args, config)
    regions = refine_document(
        document,
        ignore_whitespace=config.refine.ignore_whitespace,
        nonmodified=config.refine.nonmodified,
    )
    numbers = [args.hunk] if args.hunk is not None else range(1, document.hunk_count() + 1)
    for number in numbers:
        _, hunk = _select_hunk(document, number)
        if args.table:
            printer.print_regions(document.text, regions[number - 1])
        else:
            printer.print_refined(document.text, hunk, regions[number - 1])
    return 0


def cmd_stat(args: argparse.Namespace, config: Config) -> int:
    """Print a diffstat."""
    _printer().print_diffstat(_load_document(args, config))
    return 0


_COMMANDS = {
    "convert": cmd_convert,
    "fixup": cmd_fixup,
    "check": cmd_check,
    "test": cmd_test,
    "apply": cmd_apply,
    "refine": cmd_refine,
    "stat": cmd_stat,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the diffengine CLI."""
    configure_stdio()
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        configure_logging(logging.WARNING)
        _printer().print_error(e.message)
        return 1
    configure_logging(logging.DEBUG if args.verbose else config.log_level_number)

    try:
        return _COMMANDS[args.command](args, config)
    except MalformedHunkError as e:
        where = f" at offset {e.position}" if e.position is not None else ""
        _printer().print_error(f"{args.diff}: {e.message}{where}")
        return 1
    except DiffEngineError as e:
        _printer().print_error(e.message)
        return 1
    except OSError as e:
        _printer().print_error(f"{e.filename or args.diff}: {e.strerror or e}")
        return 1
