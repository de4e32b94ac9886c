#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from enrollsync.app import (
    delete_entity,
    enroll_member,
    load_snapshot,
    preview_deletion,
    reconcile_persons,
    sweep_relation,
    unenroll_member,
)
from enrollsync.config import ConfigurationError, configure_logging
from enrollsync.domain.deletion import DeletionOptions
from enrollsync.domain.errors import EnrollSyncError, PartialWriteError
from enrollsync.domain.model import EntityKind, RelationKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from enrollsync.domain.deletion import DeletionPlan

log = logging.getLogger(__name__)

_DELETABLE_KINDS = [
    str(kind)
    for kind in (
        EntityKind.STUDENT,
        EntityKind.ORCHESTRA,
        EntityKind.ENSEMBLE,
        EntityKind.THEORY_LESSON,
    )
]


def _expected_count(value: str) -> tuple[str, int]:
    name, sep, count = value.partition("=")
    if not sep or not name or not count.isdigit():
        raise argparse.ArgumentTypeError(f"expected COLLECTION=COUNT, got {value!r}")
    return name, int(count)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Keep conservatory enrollments consistent and delete entities safely"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)
    relations = [str(relation) for relation in RelationKind]

    reconcile = subparsers.add_parser(
        "reconcile", help="Rewrite persons' enrollment arrays from the authority rosters"
    )
    reconcile.add_argument("person_ids", nargs="+", metavar="PERSON_ID")
    reconcile.add_argument("--relation", choices=relations, default=str(RelationKind.ORCHESTRA))

    sweep = subparsers.add_parser("sweep", help="Reconcile every student for one relation")
    sweep.add_argument("--relation", choices=relations, default=str(RelationKind.ORCHESTRA))
    sweep.add_argument(
        "--dry-run",
        action="store_true",
        help="Report drift without writing corrections",
    )

    enroll = subparsers.add_parser("enroll", help="Add a person to a roster on both sides")
    enroll.add_argument("roster_id")
    enroll.add_argument("person_id")
    enroll.add_argument("--relation", choices=relations, default=str(RelationKind.ORCHESTRA))
    enroll.add_argument(
        "--override-conflict",
        action="store_true",
        help="Enroll even if the roster's schedule overlaps the person's lessons",
    )

    unenroll = subparsers.add_parser("unenroll", help="Remove a person from a roster on both sides")
    unenroll.add_argument("roster_id")
    unenroll.add_argument("person_id")
    unenroll.add_argument("--relation", choices=relations, default=str(RelationKind.ORCHESTRA))

    preview = subparsers.add_parser("delete-preview", help="Show what deleting an entity touches")
    preview.add_argument("kind", choices=_DELETABLE_KINDS)
    preview.add_argument("root_id")

    delete = subparsers.add_parser("delete", help="Cascade-delete an entity")
    delete.add_argument("kind", choices=_DELETABLE_KINDS)
    delete.add_argument("root_id")
    delete.add_argument("--no-snapshot", action="store_true", help="Skip the pre-delete snapshot")
    delete.add_argument(
        "--skip-validation",
        action="store_true",
        help="Do not re-check the plan before deleting (also skips the snapshot)",
    )
    delete.add_argument(
        "--keep-documents", action="store_true", help="Do not delete document records"
    )
    delete.add_argument("--notify", action="store_true", help="Notify related persons afterwards")
    delete.add_argument("--reason", type=str, default="Manual deletion")
    delete.add_argument("--yes", action="store_true", help="Confirm the deletion")
    delete.add_argument(
        "--expect",
        action="append",
        type=_expected_count,
        default=[],
        metavar="COLLECTION=COUNT",
        help="Affected count approved from the preview; repeat per collection",
    )

    snapshot = subparsers.add_parser("snapshot", help="Print a stored pre-delete snapshot")
    snapshot.add_argument("snapshot_id")

    return parser.parse_args(list(argv))


def _options_from(args: argparse.Namespace) -> DeletionOptions:
    return DeletionOptions(
        create_snapshot=not args.no_snapshot,
        skip_validation=args.skip_validation,
        delete_documents=not args.keep_documents,
        notify_users=args.notify,
        reason=args.reason,
    )


def _print_plan(plan: DeletionPlan) -> None:
    print(f"{plan.root_kind} {plan.root_label} ({plan.root_id}): risk {plan.risk_tier}")
    for collection in plan.affected_collections:
        print(f"  {collection.name:<16} {collection.estimated_count:>6}  {collection.action}")
    for warning in plan.warnings:
        print(f"  warning: {warning}")
    for blocker in plan.blockers:
        print(f"  BLOCKED: {blocker}")


def _confirm_flags(plan: DeletionPlan) -> str:
    counts = sorted(plan.counts().items())
    return " ".join(["--yes", *(f"--expect {name}={count}" for name, count in counts if count)])


def _run(args: argparse.Namespace) -> int:
    command = args.command
    if command == "reconcile":
        results = reconcile_persons(args.person_ids, RelationKind(args.relation))
        for result in results:
            status = "corrected" if result.changed else "consistent"
            print(f"{result.person_id}: {status} -> {sorted(result.corrected_ids)}")
    elif command == "sweep":
        report = sweep_relation(RelationKind(args.relation), dry_run=args.dry_run)
        for result in report.drifted:
            print(
                f"{result.person_id}: +{sorted(result.added_ids)} -{sorted(result.removed_ids)}"
            )
        for failure in report.failures:
            print(f"{failure.person_id}: FAILED {failure.error}")
        for roster_id, member_ids in sorted(report.orphaned_member_ids.items()):
            print(f"{roster_id}: orphaned members {sorted(member_ids)}")
        return 1 if report.failures else 0
    elif command == "enroll":
        enroll_member(
            args.roster_id,
            args.person_id,
            RelationKind(args.relation),
            override_conflict=args.override_conflict,
        )
    elif command == "unenroll":
        unenroll_member(args.roster_id, args.person_id, RelationKind(args.relation))
    elif command == "delete-preview":
        _print_plan(preview_deletion(EntityKind(args.kind), args.root_id))
    elif command == "delete":
        kind = EntityKind(args.kind)
        if not args.yes:
            plan = preview_deletion(kind, args.root_id)
            _print_plan(plan)
            print(f"Re-run with {_confirm_flags(plan)} to delete.")
            return 0
        outcome = delete_entity(
            kind,
            args.root_id,
            options=_options_from(args),
            approved_counts=dict(args.expect),
        )
        print(f"Deleted {args.root_id}: {outcome.deleted_counts}")
        if outcome.snapshot_id:
            print(f"Snapshot: {outcome.snapshot_id}")
        if outcome.notification_error:
            print(f"Notification failed: {outcome.notification_error}")
    elif command == "snapshot":
        snapshot = load_snapshot(args.snapshot_id)
        document = {
            "id": snapshot.id,
            "rootKind": str(snapshot.root_kind),
            "rootId": snapshot.root_id,
            "reason": snapshot.reason,
            "createdAt": snapshot.created_at.isoformat(),
            "root": dict(snapshot.root_record),
            "collections": {name: list(records) for name, records in snapshot.collections.items()},
        }
        print(json.dumps(document, indent=2, default=str, ensure_ascii=False))
    else:
        raise ValueError(f"Unsupported command: {command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        code = _run(parsed_args)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except PartialWriteError as exc:
        log.error("%s; run `enrollsync reconcile %s`", exc, exc.drift.person_id)  # noqa: TRY400
        sys.exit(1)
    except EnrollSyncError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
