"""Command-line interface for the break planner."""

import argparse
import logging
import sys
from datetime import date
from typing import Optional

from breakplanner.config import BreakPlannerConfig
from breakplanner.domain.models import ShiftType, SlotDefinition, StaffMember
from breakplanner.domain.policies import DefaultBreakAllowancePolicy
from breakplanner.errors import StoreError
from breakplanner.output.pdf_generator import BreakSheetPDFGenerator
from breakplanner.output.text_generator import BreakSheetTextGenerator
from breakplanner.scheduling.auto_assigner import AutoAssignConfig, AutoAssigner
from breakplanner.scheduling.manager import BreakManager
from breakplanner.scheduling.time_normalizer import end_time
from breakplanner.storage.interfaces import BreakStore, NotificationKind, Notifier, StagingStore
from breakplanner.storage.json_staging import JsonFileStagingStore
from breakplanner.storage.memory import InMemoryBreakStore, InMemoryStagingStore
from breakplanner.storage.sql import SqlBreakStore
from breakplanner.validation.validator import LedgerValidator

logger = logging.getLogger(__name__)

SAMPLE_NAMES = [
    "Alice Brown", "Bob Clark", "Carol Davies", "David Evans", "Eve Foster",
    "Frank Green", "Grace Hall", "Henry Irwin", "Ivy James", "Jack King",
    "Kate Lewis", "Leo Moore", "Mia Nash", "Noah Owen", "Olivia Price",
    "Paul Quinn", "Rose Reid", "Sam Scott", "Tina Turner", "Uma Vance",
]
SAMPLE_LOCATIONS = ["Rugby", "Daventry"]

UNSAVED_DRAFT_MESSAGE = (
    "There are unsaved break assignments for this scope. "
    "Run 'save' or 'discard' before changing slots."
)


class ConsoleNotifier(Notifier):
    """Prints notifications; remembers whether an error was shown."""

    PREFIXES = {
        NotificationKind.SUCCESS: "OK",
        NotificationKind.INFO: "--",
        NotificationKind.WARNING: "!!",
        NotificationKind.ERROR: "ERROR",
    }

    def __init__(self):
        self.had_error = False

    def notify(self, kind: NotificationKind, message: str) -> None:
        if kind == NotificationKind.ERROR:
            self.had_error = True
        stream = sys.stderr if kind == NotificationKind.ERROR else sys.stdout
        print(f"{self.PREFIXES[kind]} {message}", file=stream)


def sample_roster(count: int, shift_type: ShiftType) -> list[StaffMember]:
    """Sample staff spread over the sample locations."""
    roster = []
    for i in range(count):
        name = SAMPLE_NAMES[i % len(SAMPLE_NAMES)]
        if i >= len(SAMPLE_NAMES):
            name = f"{name} {i // len(SAMPLE_NAMES) + 1}"
        roster.append(
            StaffMember(
                user_id=f"S{i + 1:03d}",
                name=name,
                location=SAMPLE_LOCATIONS[i % len(SAMPLE_LOCATIONS)],
                shift_preference=shift_type,
            )
        )
    return roster


def build_manager(
    config: BreakPlannerConfig,
    notifier: Notifier,
    store: Optional[BreakStore] = None,
    staging: Optional[StagingStore] = None,
) -> BreakManager:
    """Wire a BreakManager from configuration."""
    if store is None:
        sql_store = SqlBreakStore(config.database_url, **config.engine_options)
        sql_store.create_all()
        store = sql_store
    if staging is None:
        staging = JsonFileStagingStore(config.staging_dir)
    policy = DefaultBreakAllowancePolicy(max_minutes=config.max_break_minutes)
    assigner = AutoAssigner(
        policy, AutoAssignConfig(time_limit_seconds=config.solver_time_limit)
    )
    return BreakManager(store, staging, notifier, policy=policy, auto_assigner=assigner)


def print_plan(manager: BreakManager) -> None:
    """Print slots with ids, assignments and staff totals of the scope."""
    ledger = manager.ledger
    print(f"\n{'=' * 72}")
    print(f"Breaks for {ledger.scope}")
    if ledger.restored_from_snapshot or ledger.has_unsaved_slot_changes:
        print("  (unsaved changes)")
    print(f"{'=' * 72}")

    for slot in ledger.catalog:
        on_slot = ledger.assignments_for_slot(slot.id)
        names = ", ".join(f"{a.user_name} [{a.id}]" for a in on_slot) or "-"
        print(
            f"  {slot.id:<22} {slot.start_time}-{end_time(slot.start_time, slot.duration_minutes)} "
            f"{len(on_slot)}/{slot.capacity:<2} {slot.break_label:<26} {names}"
        )

    print("\nStaff:")
    statuses = manager.available_staff()
    if not statuses:
        print("  No rostered staff")
    for status in statuses:
        print(
            f"  {status.user_id:<8} {status.name:<24} "
            f"{status.eligibility.total_assigned_minutes:>3} min"
        )

    result = LedgerValidator(manager.policy).validate(
        ledger.scope, ledger.catalog, ledger.assignments
    )
    if result.errors or result.warnings:
        print("\nProblems:")
        for error in result.errors:
            print(f"  - {error}")
        for warning in result.warnings:
            print(f"  - {warning}")


def confirm_delete(slot: SlotDefinition) -> bool:
    answer = input(
        f"Delete custom slot {slot.start_time} ({slot.break_label})? "
        "This cannot be undone. [y/N] "
    )
    return answer.strip().lower() in ("y", "yes")


def run_seed(store: SqlBreakStore, schedule_date: date, shift_type: ShiftType, count: int) -> None:
    """Create sample profiles available on the given date."""
    for staff in sample_roster(count, shift_type):
        first, _, last = staff.name.partition(" ")
        store.add_staff_profile(
            staff.user_id, first, last, staff.location, shift_type.value
        )
        store.set_availability(staff.user_id, schedule_date, "Available")
    print(f"Seeded {count} staff for {schedule_date} {shift_type.label}.")


def run_demo(
    schedule_date: date,
    shift_type: ShiftType,
    location: str,
    count: int,
    output_path: Optional[str] = None,
) -> int:
    """Run an in-memory plan: auto-fill, save and print the sheet."""
    print(f"Planning breaks for {count} staff, {schedule_date} {shift_type.label} @ {location}...")

    store = InMemoryBreakStore()
    for staff in sample_roster(count, shift_type):
        store.add_staff(schedule_date, shift_type, staff)

    notifier = ConsoleNotifier()
    manager = build_manager(BreakPlannerConfig(), notifier, store, InMemoryStagingStore())
    manager.select_scope(schedule_date, shift_type, location)
    manager.auto_fill()
    manager.save()

    ledger = manager.ledger
    print()
    print(BreakSheetTextGenerator().generate_to_string(
        ledger.scope, ledger.catalog, ledger.assignments,
        [s.staff for s in manager.available_staff()],
    ))

    if output_path:
        print(f"Generating PDF: {output_path}")
        BreakSheetPDFGenerator().generate(
            ledger.scope, ledger.catalog, ledger.assignments, output_path,
            [s.staff for s in manager.available_staff()],
        )
        print("  PDF created successfully!")
    return 1 if notifier.had_error else 0


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def parse_shift(value: str) -> ShiftType:
    try:
        return ShiftType.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    scope_parser = argparse.ArgumentParser(add_help=False)
    scope_parser.add_argument(
        "--date", "-d",
        type=parse_date,
        default=None,
        help="Shift date, YYYY-MM-DD (default: today)",
    )
    scope_parser.add_argument(
        "--shift", "-s",
        type=parse_shift,
        default=ShiftType.DAY,
        help="Shift type: day, afternoon or night (default: day)",
    )
    scope_parser.add_argument(
        "--location", "-l",
        type=str,
        default=None,
        help="Location name; required for any change",
    )

    parser = argparse.ArgumentParser(
        description="Break Planner - break slot scheduling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db                                  Create the database tables
  %(prog)s seed -d 2024-06-01 -s night              Add sample staff for a night
  %(prog)s show -d 2024-06-01 -s night -l Rugby     Show slots and assignments
  %(prog)s assign S001 std-night-0 -d 2024-06-01 -s night -l Rugby
  %(prog)s add-slot 03:00 30 -d 2024-06-01 -s night -l Rugby
  %(prog)s auto-fill -d 2024-06-01 -s night -l Rugby
  %(prog)s save -d 2024-06-01 -s night -l Rugby     Store the draft
  %(prog)s demo --count 12 --output breaks.pdf      In-memory demo
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log at INFO level regardless of configuration",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create database tables")

    seed_parser = subparsers.add_parser(
        "seed", parents=[scope_parser], help="Add sample staff available on a date"
    )
    seed_parser.add_argument(
        "--count", "-c",
        type=int,
        default=10,
        help="Number of staff to create (default: 10)",
    )

    subparsers.add_parser("show", parents=[scope_parser], help="Show the break plan")

    assign_parser = subparsers.add_parser(
        "assign", parents=[scope_parser], help="Assign a staff member to a slot"
    )
    assign_parser.add_argument("user_id", help="Staff member id")
    assign_parser.add_argument("slot_id", help="Slot id (see 'show')")

    unassign_parser = subparsers.add_parser(
        "unassign", parents=[scope_parser], help="Remove an assignment"
    )
    unassign_parser.add_argument("assignment_id", help="Assignment id (see 'show')")

    add_slot_parser = subparsers.add_parser(
        "add-slot", parents=[scope_parser], help="Add a custom slot and save it"
    )
    add_slot_parser.add_argument("start", help="Start time HH:MM")
    add_slot_parser.add_argument("duration", type=int, help="Duration in minutes")
    add_slot_parser.add_argument("--capacity", type=int, default=2, help="Capacity (default: 2)")
    add_slot_parser.add_argument("--label", type=str, default=None, help="Break label")

    edit_slot_parser = subparsers.add_parser(
        "edit-slot", parents=[scope_parser], help="Edit a slot and save it"
    )
    edit_slot_parser.add_argument("slot_id", help="Slot id (see 'show')")
    edit_slot_parser.add_argument("--start", type=str, default=None, help="New start HH:MM")
    edit_slot_parser.add_argument("--duration", type=int, default=None, help="New duration")
    edit_slot_parser.add_argument("--capacity", type=int, default=None, help="New capacity")
    edit_slot_parser.add_argument("--label", type=str, default=None, help="New label")

    delete_slot_parser = subparsers.add_parser(
        "delete-slot", parents=[scope_parser], help="Delete a custom slot"
    )
    delete_slot_parser.add_argument("slot_id", help="Slot id (see 'show')")
    delete_slot_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )

    subparsers.add_parser(
        "auto-fill", parents=[scope_parser], help="Fill open slots with the solver"
    )
    subparsers.add_parser("save", parents=[scope_parser], help="Store the draft")
    subparsers.add_parser("discard", parents=[scope_parser], help="Drop unsaved changes")

    pdf_parser = subparsers.add_parser(
        "pdf", parents=[scope_parser], help="Write a PDF break sheet"
    )
    pdf_parser.add_argument("output", help="Output PDF file path")

    demo_parser = subparsers.add_parser(
        "demo", parents=[scope_parser], help="Run an in-memory planning demo"
    )
    demo_parser.add_argument(
        "--count", "-c",
        type=int,
        default=10,
        help="Number of staff to generate (default: 10)",
    )
    demo_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    config = BreakPlannerConfig.from_env()
    logging.basicConfig(
        level=logging.INFO if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "demo":
        return run_demo(
            args.date or date.today(),
            args.shift,
            args.location or SAMPLE_LOCATIONS[0],
            args.count,
            args.output,
        )

    if args.command == "init-db":
        SqlBreakStore(config.database_url, **config.engine_options).create_all()
        print(f"Database ready: {config.database_url}")
        return 0

    if args.command == "seed":
        store = SqlBreakStore(config.database_url, **config.engine_options)
        store.create_all()
        run_seed(store, args.date or date.today(), args.shift, args.count)
        return 0

    notifier = ConsoleNotifier()
    try:
        manager = build_manager(config, notifier)
        manager.select_scope(args.date, args.shift, args.location)
    except StoreError as exc:
        logger.error("Could not open the break store: %s", exc)
        return 1

    if args.command in ("add-slot", "edit-slot") and manager.ledger.restored_from_snapshot:
        # These commands save at once and would commit the draft with them
        notifier.notify(NotificationKind.ERROR, UNSAVED_DRAFT_MESSAGE)
        return 1

    if args.command == "show":
        print_plan(manager)
    elif args.command == "assign":
        manager.assign(args.user_id, args.slot_id)
    elif args.command == "unassign":
        manager.unassign(args.assignment_id)
    elif args.command == "add-slot":
        slot = manager.add_custom_slot(args.start, args.duration, args.capacity, args.label)
        if slot is not None:
            # Draft slots live in memory only; store the slot straight away
            manager.save()
    elif args.command == "edit-slot":
        slot = manager.update_slot(
            args.slot_id, args.start, args.duration, args.capacity, args.label
        )
        if slot is not None:
            manager.save()
    elif args.command == "delete-slot":
        manager.delete_custom_slot(args.slot_id, None if args.yes else confirm_delete)
    elif args.command == "auto-fill":
        added = manager.auto_fill()
        for assignment in added:
            print(f"  {assignment.user_name} -> {assignment.start_time}")
    elif args.command == "save":
        manager.save()
    elif args.command == "discard":
        manager.discard()
    elif args.command == "pdf":
        ledger = manager.ledger
        BreakSheetPDFGenerator().generate(
            ledger.scope, ledger.catalog, ledger.assignments, args.output,
            [s.staff for s in manager.available_staff()],
        )
        print(f"PDF created: {args.output}")

    return 1 if notifier.had_error else 0


if __name__ == "__main__":
    sys.exit(main())
