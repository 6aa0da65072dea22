"""Command-line access to a JSON grade store.

Usage:
    gradesheet summary grades.json --owner student-1
    gradesheet create grades.json --owner student-1 --title "Focus Gold" --count 40
    gradesheet create grades.json --owner teacher --title "Unit 3" --chapter "Vectors:12" --chapter "Matrices:8" --template
    gradesheet distribute grades.json --from teacher --template <id> --owner s1 --owner s2 [--overwrite]
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_CONFIG
from .core.models.marks import MarkTally
from .core.models.workbook import Workbook
from .engine.distribution import distribute_template
from .engine.errors import GradesheetError, NotFoundError, ValidationError
from .engine.labels import format_range
from .engine.segments import build_segments
from .persistence.json_store import JsonFileGateway
from .session import ChapterPlan, GradeSession
from .utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

_COUNT = re.compile(r"[0-9]+")


def _parse_plan(entries: List[str]) -> List[ChapterPlan]:
    plan = []
    for entry in entries:
        title, sep, count = entry.rpartition(":")
        count = count.strip()
        if not sep or not _COUNT.fullmatch(count) or int(count) <= 0:
            raise ValidationError(f"Chapter must look like TITLE:COUNT, got {entry!r}", field="chapter")
        plan.append(ChapterPlan(title.strip(), int(count)))
    return plan


def describe_workbook(workbook: Workbook, chapters) -> List[str]:
    """Summary lines for one workbook: header, tally, then one line per segment."""
    kind = " [template]" if workbook.is_template else ""
    lines = [
        f"{workbook.title}{kind}  ({workbook.id}, {workbook.problem_count} problems)",
        f"  {MarkTally.count(workbook.marks).describe()}",
    ]
    for segment in build_segments(workbook.problem_count, chapters):
        rng = format_range(workbook, segment.range, DEFAULT_CONFIG.range_separator)
        tally = MarkTally.count(workbook.marks[segment.start_index:segment.end_index + 1])
        if segment.is_chapter:
            title = segment.chapter.parsed_note.display_title(DEFAULT_CONFIG.untitled_chapter_title)
            lines.append(f"  {rng:<12} {title}  {tally.describe()}")
        else:
            lines.append(f"  {rng:<12} -  {tally.describe()}")
    return lines


def cmd_summary(args: argparse.Namespace) -> int:
    gateway = JsonFileGateway(args.store)
    workbooks = sorted(gateway.load_workbooks(args.owner), key=lambda w: (w.title, w.id))
    if not workbooks:
        print(f"No workbooks for {args.owner}")
        return 0
    chapters = gateway.load_chapters([w.id for w in workbooks])
    for workbook in workbooks:
        own = [c for c in chapters if c.workbook_id == workbook.id]
        print("\n".join(describe_workbook(workbook, own)))
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    session = GradeSession(JsonFileGateway(args.store))
    workbook = session.create_workbook(
        args.owner,
        args.title,
        args.count,
        chapter_plan=_parse_plan(args.chapter),
        template=args.template,
    )
    print(workbook.id)
    return 0


def cmd_distribute(args: argparse.Namespace) -> int:
    gateway = JsonFileGateway(args.store)
    template = next((w for w in gateway.load_workbooks(args.source) if w.id == args.template), None)
    if template is None:
        raise NotFoundError(f"Workbook {args.template!r} not found for {args.source!r}")
    result = distribute_template(
        gateway,
        template,
        gateway.load_chapters([template.id]),
        args.owner,
        overwrite=args.overwrite,
    )
    print(
        f"created: {len(result.created)}  overwritten: {len(result.overwritten)}  "
        f"skipped: {len(result.skipped)}"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gradesheet", description="Inspect and edit a JSON grade store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Print every workbook of an owner with tallies and segments")
    summary.add_argument("store", type=Path)
    summary.add_argument("--owner", required=True)
    summary.set_defaults(func=cmd_summary)

    create = sub.add_parser("create", help="Create a workbook and print its id")
    create.add_argument("store", type=Path)
    create.add_argument("--owner", required=True)
    create.add_argument("--title", required=True)
    create.add_argument("--count", type=int, help="Problem count (defaults to the chapter plan total)")
    create.add_argument("--chapter", action="append", default=[], metavar="TITLE:COUNT",
                        help="Consecutive chapter to create (repeatable)")
    create.add_argument("--template", action="store_true", help="Create a read-only template")
    create.set_defaults(func=cmd_create)

    dist = sub.add_parser("distribute", help="Copy a template workbook to owners")
    dist.add_argument("store", type=Path)
    dist.add_argument("--from", dest="source", required=True, help="Owner of the template")
    dist.add_argument("--template", required=True, help="Template workbook id")
    dist.add_argument("--owner", action="append", required=True, help="Receiving owner (repeatable)")
    dist.add_argument("--overwrite", action="store_true", help="Replace existing copies")
    dist.set_defaults(func=cmd_distribute)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except GradesheetError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
