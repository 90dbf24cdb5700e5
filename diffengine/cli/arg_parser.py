"""Argument parsing for the diffengine CLI."""

import argparse
from pathlib import Path

from diffengine import __version__


def add_diff_arg(parser: argparse.ArgumentParser) -> None:
    """Add the positional DIFF argument to a parser."""
    parser.add_argument("diff", type=Path, metavar="DIFF", help="Diff file to read")


def add_target_args(parser: argparse.ArgumentParser) -> None:
    """Add --reverse and --root arguments to a parser."""
    parser.add_argument(
        "--reverse", "-R",
        action="store_true",
        help="Revert the hunks instead of applying them",
    )
    parser.add_argument(
        "--root",
        type=Path,
        metavar="DIR",
        help="Directory target file names are relative to (default: current directory)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the diffengine argument parser."""
    parser = argparse.ArgumentParser(
        prog="diffengine",
        description="Parse, convert, check, apply and refine diff hunks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        metavar="FILE",
        help="Config file to use instead of the layered config",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # convert - rewrite the diff in another format or direction
    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert between unified and context format, or reverse a diff",
    )
    convert_parser.add_argument(
        "to",
        choices=["context", "unified", "reverse"],
        help="Target format, or 'reverse' to swap old and new",
    )
    add_diff_arg(convert_parser)
    convert_parser.add_argument(
        "--output", "-o",
        type=Path,
        metavar="OUT",
        help="Write the result here instead of stdout",
    )

    # fixup - recompute hunk header counts
    fixup_parser = subparsers.add_parser(
        "fixup",
        help="Recompute hunk headers from the hunk bodies",
    )
    add_diff_arg(fixup_parser)
    fixup_parser.add_argument(
        "--in-place", "-i",
        action="store_true",
        help="Rewrite DIFF instead of printing the result",
    )

    # check - sanity check every hunk
    check_parser = subparsers.add_parser(
        "check",
        help="Check that every hunk body agrees with its header",
    )
    add_diff_arg(check_parser)

    # test - report whether hunks are applied
    test_parser = subparsers.add_parser(
        "test",
        help="Report whether each hunk is applied to its target",
    )
    add_diff_arg(test_parser)
    add_target_args(test_parser)

    # apply - apply or revert hunks
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply (or revert) hunks; all of them or none",
    )
    add_diff_arg(apply_parser)
    add_target_args(apply_parser)
    apply_parser.add_argument(
        "--hunk", "-n",
        type=int,
        metavar="N",
        help="Apply only hunk N (1-based)",
    )
    apply_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="With --hunk: undo a hunk that is found already applied",
    )
    apply_parser.add_argument(
        "--no-save",
        action="store_true",
        help="Check and apply in memory without writing files",
    )

    # refine - word-level highlighting
    refine_parser = subparsers.add_parser(
        "refine",
        help="Highlight the changed words of each hunk",
    )
    add_diff_arg(refine_parser)
    refine_parser.add_argument(
        "--hunk", "-n",
        type=int,
        metavar="N",
        help="Refine only hunk N (1-based)",
    )
    refine_parser.add_argument(
        "--table",
        action="store_true",
        help="List the regions instead of printing highlighted hunks",
    )

    # stat - diffstat
    stat_parser = subparsers.add_parser(
        "stat",
        help="Count added and removed lines per file",
    )
    add_diff_arg(stat_parser)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)
