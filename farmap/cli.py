"""
Farmap Reporter CLI
===================

Spam label statistics from a local label dump or snapshot, without the API.

COMMANDS:
- spam-distribution:  distribution at a date (default: today)
- change-matrix:      score transitions between two dates
- fid:                spam label history of one fid
- all-fids:           every fid left after filtering

FILTERS (applied before the command, in this order):
  --after-date, --before-date        first label on/after, on/before a date
  --spam-score-at-date DATE SCORE    score in effect on DATE (repeatable)
  --current-spam-score SCORE         latest score

USAGE:
    python -m farmap.cli --path ./labels spam-distribution --date 2025-01-01
"""
import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from .contracts.base import FarmapError, Fid, SpamScore
from .contracts.results import ShiftSource, ShiftTarget
from .core.store import UserCollection
from .ingestion import import_path
from .observability import configure_logging
from .query.spam_set import SetWithSpamEntries
from .storage import FileCollectionStorage


logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".local", "share", "farmap")


def parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {raw!r}, expected YYYY-MM-DD")


def parse_score(raw: str) -> SpamScore:
    try:
        return SpamScore.from_int(int(raw))
    except (ValueError, FarmapError):
        raise argparse.ArgumentTypeError(f"invalid spam score {raw!r}, expected 0, 1 or 2")


def load_collection(path: Path) -> UserCollection:
    """A .json path is a snapshot; anything else is JSON Lines data."""
    if path.is_file() and path.suffix == ".json":
        collection = FileCollectionStorage(path).load()
        return collection if collection is not None else UserCollection()
    report = import_path(path)
    for error in report.errors:
        logger.warning("non-fatal error on import: %s %s", error.message, dict(error.context))
    return report.collection


def apply_filters(spam_set: SetWithSpamEntries, args) -> Optional[SetWithSpamEntries]:
    """Narrow the set by the global options; None once nothing is left."""
    predicates = []
    if args.after_date:
        predicates.append(lambda m, d=args.after_date: m.earliest_spam_update().date >= d)
    if args.before_date:
        predicates.append(lambda m, d=args.before_date: m.earliest_spam_update().date <= d)
    for raw_date, raw_score in args.spam_score_at_date or []:
        at, score = parse_date(raw_date), parse_score(raw_score)
        predicates.append(lambda m, at=at, score=score: m.spam_score_at_date(at) is score)
    if args.current_spam_score is not None:
        predicates.append(lambda m, s=args.current_spam_score: m.latest_spam_update().score is s)

    for predicate in predicates:
        spam_set = spam_set.filtered(predicate)
        if spam_set is None:
            return None
    return spam_set


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_spam_distribution(spam_set: SetWithSpamEntries, args) -> int:
    at = args.date or date.today()
    spam_set = spam_set.filtered(lambda m: m.earliest_spam_update().date <= at)
    distribution = spam_set.spam_score_distribution_at_date(at) if spam_set else None
    if distribution is None:
        print(f"[!] No spam labels on or before {at}.")
        return 1
    print(
        f"Spam score distribution at date {at}: \n"
        f" 0: {distribution.spam * 100:.2f}% \n"
        f" 1: {distribution.maybe * 100:.2f}% \n"
        f" 2: {distribution.nonspam * 100:.2f}% \n"
        f" User count in set is {spam_set.user_count()}"
    )
    return 0


def cmd_change_matrix(spam_set: SetWithSpamEntries, args) -> int:
    days = (args.to_date - args.from_date).days
    if days <= 0:
        print("The days between to_date and from_date must be greater than zero.")
        return 1
    shifts = spam_set.spam_changes_with_fid_score_shift(args.from_date, days)
    counts = {(s.source, s.target): s.count for s in shifts}
    targets = (ShiftTarget.ZERO, ShiftTarget.ONE, ShiftTarget.TWO)
    print("from\\to " + " ".join(f"{t.name.title():>6}" for t in targets))
    for source in ShiftSource:
        row = " ".join(f"{counts.get((source, t), 0):>6}" for t in targets)
        print(f"{source.name.title():<7} {row}")
    return 0


def cmd_fid(spam_set: SetWithSpamEntries, args) -> int:
    member = spam_set.fid(Fid(args.fid))
    if member is None:
        print(f"[!] fid {args.fid} not in set.")
        return 1
    print(f"Spam record history for {args.fid}")
    print("------")
    for entry in member.dated_spam_updates():
        suffix = f" (commit {entry.source})" if entry.source is not None else ""
        print(f"{entry.date}: {entry.score.value}{suffix}")
    return 0


def cmd_all_fids(spam_set: SetWithSpamEntries, args) -> int:
    for fid in spam_set.fids():
        print(fid)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="farmap", description="Farcaster spam label statistics")
    parser.add_argument("-p", "--path", type=Path, default=Path(DEFAULT_DATA_DIR),
                        help="JSON Lines file/directory or .json snapshot")
    parser.add_argument("-a", "--after-date", type=parse_date)
    parser.add_argument("-b", "--before-date", type=parse_date)
    parser.add_argument("-c", "--current-spam-score", type=parse_score)
    parser.add_argument("-s", "--spam-score-at-date", nargs=2, action="append",
                        metavar=("DATE", "SCORE"))
    parser.add_argument("--log-level", default="WARNING")

    subparsers = parser.add_subparsers(dest="command")

    p_matrix = subparsers.add_parser("change-matrix", help="Score transitions between two dates")
    p_matrix.add_argument("-f", "--from-date", type=parse_date, required=True)
    p_matrix.add_argument("-t", "--to-date", type=parse_date, required=True)
    p_matrix.set_defaults(func=cmd_change_matrix)

    p_dist = subparsers.add_parser("spam-distribution", help="Distribution at a date")
    p_dist.add_argument("-d", "--date", type=parse_date, default=None)
    p_dist.set_defaults(func=cmd_spam_distribution)

    p_fid = subparsers.add_parser("fid", help="Spam label history of one fid")
    p_fid.add_argument("-f", "--fid", type=int, required=True)
    p_fid.set_defaults(func=cmd_fid)

    p_all = subparsers.add_parser("all-fids", help="Print every fid in the filtered set")
    p_all.set_defaults(func=cmd_all_fids)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        collection = load_collection(args.path)
        spam_set = SetWithSpamEntries.try_from_collection(collection)
        if spam_set is None:
            print(f"[!] No spam labels found at {args.path}.")
            return 1
        spam_set = apply_filters(spam_set, args)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    except FarmapError as exc:
        print(f"[!] {exc}")
        return 1

    if spam_set is None:
        print("[!] No users left after filtering.")
        return 1

    if args.command is None:
        args.date = None
        return cmd_spam_distribution(spam_set, args)
    return args.func(spam_set, args)


if __name__ == "__main__":
    sys.exit(main())
