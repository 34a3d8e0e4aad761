"""
Command-line interface for the vaccination tracker.

This CLI tool provides commands for registering children, inspecting and completing their
vaccination schedules, defining custom vaccines, and managing downloaded country calendars
from the command line.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from vaccination_tracker.config import settings
from vaccination_tracker.container import build_tracker
from vaccination_tracker.exceptions import VaccinationTrackerError
from vaccination_tracker.managers.logging_manager import configure_logging, get_logger
from vaccination_tracker.models.tracker_models import CompletionDetails, Language
from vaccination_tracker.models.vaccine_models import Country
from vaccination_tracker.services.tracker_service import VaccinationTracker
from vaccination_tracker.utils.date_helpers import format_age, format_scheduled_date, to_date

logger = get_logger(prefix="[TrackerCLI]")


class TrackerCLI:
    """CLI tool for vaccination tracking operations."""

    def __init__(self, tracker: VaccinationTracker):
        """
        Initialize tracker CLI.

        Args:
            tracker: Wired tracker facade
        """
        self.tracker = tracker

    async def add_child(self, name: str, date_of_birth: str, country: str) -> bool:
        """
        Register a child and create their vaccination records.

        Returns:
            True if successful, False otherwise
        """
        try:
            child, records = await self.tracker.add_child(name, to_date(date_of_birth), country)
        except (VaccinationTrackerError, ValueError) as e:
            logger.error(f"Failed to add child: {e}")
            return False

        logger.info(f"Added {child.name} ({child.id}), {child.country.display_name}")
        logger.info(f"  Vaccination records created: {len(records)}")
        return True

    async def list_children(self) -> bool:
        children = await self.tracker.list_children()
        if not children:
            logger.info("No children registered")
            return True

        today = self.tracker.clock.today()
        logger.info(f"Children ({len(children)}):")
        for child in children:
            progress = await self.tracker.progress(child.id)
            logger.info(
                f"  - {child.id}: {child.name}, {format_age(child.date_of_birth, today)}, "
                f"{child.country.display_name}, {progress.completed}/{progress.total} done, "
                f"{progress.overdue} overdue"
            )
        return True

    async def schedule(self, child_id: str) -> bool:
        """Print a child's full schedule."""
        try:
            entries = await self.tracker.get_schedule_view(child_id)
        except VaccinationTrackerError as e:
            logger.error(f"Failed to load schedule: {e}")
            return False

        today = self.tracker.clock.today()
        for entry in entries:
            record = entry.record
            name = entry.vaccine.name if entry.vaccine else record.vaccine_id
            logger.info(
                f"  {record.id}: {name} dose {record.dose_number}/{record.total_doses} "
                f"{format_scheduled_date(record.scheduled_date, today)} [{entry.status.value}]"
            )
        return True

    async def complete(
        self,
        record_id: str,
        completed_date: Optional[str] = None,
        doctor_name: Optional[str] = None,
        location: Optional[str] = None,
        batch_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """
        Mark a dose as given.

        Returns:
            True if successful, False otherwise
        """
        try:
            details = CompletionDetails(
                completed_date=to_date(completed_date) if completed_date else self.tracker.clock.today(),
                doctor_name=doctor_name,
                location=location,
                batch_number=batch_number,
                notes=notes,
            )
            record = await self.tracker.mark_completed(record_id, details)
        except (VaccinationTrackerError, ValueError) as e:
            logger.error(f"Failed to complete {record_id}: {e}")
            return False

        logger.info(f"Marked {record.id} completed on {record.completed_date.isoformat()}")
        return True

    async def upcoming(self, child_id: str, days: int) -> bool:
        try:
            records = await self.tracker.upcoming(child_id, days)
        except VaccinationTrackerError as e:
            logger.error(f"Failed to list upcoming doses: {e}")
            return False

        logger.info(f"Due in the next {days} days ({len(records)}):")
        for record in records:
            logger.info(f"  - {record.id}: {record.scheduled_date.isoformat()}")
        return True

    async def overdue(self, child_id: str) -> bool:
        try:
            records = await self.tracker.overdue(child_id)
        except VaccinationTrackerError as e:
            logger.error(f"Failed to list overdue doses: {e}")
            return False

        logger.info(f"Overdue ({len(records)}):")
        for record in records:
            logger.info(f"  - {record.id}: due {record.scheduled_date.isoformat()}")
        return True

    async def add_vaccine(
        self,
        name: str,
        age_in_months: int,
        disease: Optional[str] = None,
        doses: int = 1,
        interval: int = 0,
        description: Optional[str] = None,
    ) -> bool:
        """
        Define a custom vaccine and schedule it for every child.

        Returns:
            True if successful, False otherwise
        """
        try:
            vaccine, records = await self.tracker.add_custom_vaccine(
                name,
                age_in_months,
                disease=disease,
                doses=doses,
                dose_interval_months=interval,
                description=description,
            )
        except (VaccinationTrackerError, ValueError) as e:
            logger.error(f"Failed to add custom vaccine: {e}")
            return False

        logger.info(f"Added custom vaccine {vaccine.name} ({vaccine.id})")
        logger.info(f"  Vaccination records created: {len(records)}")
        return True

    async def vaccines(self) -> bool:
        custom = await self.tracker.list_custom_vaccines()
        if not custom:
            logger.info("No custom vaccines")
            return True

        logger.info(f"Custom vaccines ({len(custom)}):")
        for vaccine in custom:
            logger.info(
                f"  - {vaccine.id}: {vaccine.name}, from {vaccine.age_in_months} months, {vaccine.doses} dose(s)"
            )
        return True

    async def delete_vaccine(self, vaccine_id: str) -> bool:
        try:
            removed = await self.tracker.delete_custom_vaccine(vaccine_id)
        except VaccinationTrackerError as e:
            logger.error(f"Failed to delete custom vaccine: {e}")
            return False

        logger.info(f"Deleted custom vaccine {vaccine_id} and {len(removed)} record(s)")
        return True

    async def download(self, country: str) -> bool:
        try:
            result = await self.tracker.download_country_calendar(country)
        except VaccinationTrackerError as e:
            logger.error(f"Download failed: {e}")
            return False

        if not result.success:
            logger.error(result.error.message)
            return False

        data = result.data
        logger.info(
            f"{result.country.display_name}: {len(data.mandatory)} mandatory, "
            f"{len(data.recommended)} recommended ({result.source})"
        )
        return True

    async def cache(self) -> bool:
        logger.info("Country calendars:")
        for row in await self.tracker.cache_overview():
            country: Country = row["country"]
            if row["built_in"]:
                state = "built-in"
            elif row["available"]:
                state = f"cached {row['cached_at']:%Y-%m-%d}, {row['size_bytes']} bytes"
            elif row["downloaded"]:
                state = "expired"
            else:
                state = "not downloaded"
            logger.info(f"  - {country.display_name}: {state}")
        return True

    async def clear_cache(self, country: Optional[str]) -> bool:
        try:
            if country:
                await self.tracker.clear_country_cache(country)
                logger.info(f"Cleared cached calendar for {Country.parse(country).value}")
            else:
                for downloaded in await self.tracker.get_downloaded_countries():
                    await self.tracker.clear_country_cache(downloaded)
                await self.tracker.cache.clear_all_cache()
                logger.info("Cleared all cached calendars")
        except VaccinationTrackerError as e:
            logger.error(f"Failed to clear cache: {e}")
            return False
        return True

    async def settings(
        self,
        language: Optional[str] = None,
        show_recommended: Optional[bool] = None,
        notifications: Optional[bool] = None,
        reminder_days: Optional[int] = None,
    ) -> bool:
        """Show settings, applying any given changes first."""
        updates = {}
        if language is not None:
            updates["language"] = language
        if show_recommended is not None:
            updates["show_recommended_vaccines"] = show_recommended
        if notifications is not None:
            updates["notifications_enabled"] = notifications
        if reminder_days is not None:
            updates["reminder_days_before"] = reminder_days

        try:
            current = await self.tracker.update_settings(**updates) if updates else await self.tracker.get_settings()
        except (VaccinationTrackerError, ValueError) as e:
            logger.error(f"Failed to update settings: {e}")
            return False

        logger.info("Settings:")
        for key, value in current.model_dump(mode="json").items():
            logger.info(f"  {key}: {value}")
        return True


def _on_off(value: str) -> bool:
    if value.lower() in ("on", "true", "yes", "1"):
        return True
    if value.lower() in ("off", "false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaccination-tracker",
        description="Child vaccination schedule tracker",
    )
    parser.add_argument(
        "--storage",
        choices=["memory", "json", "redis"],
        default=None,
        help=f"Storage backend (default: {settings.STORAGE_BACKEND})",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Never download calendars",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    add_parser = subparsers.add_parser("add-child", help="Register a child")
    add_parser.add_argument("name", help="Child's name")
    add_parser.add_argument("date_of_birth", help="Date of birth (YYYY-MM-DD)")
    add_parser.add_argument("country", help="Country, e.g. USA, China, Russia")

    subparsers.add_parser("children", help="List registered children")

    schedule_parser = subparsers.add_parser("schedule", help="Show a child's vaccination schedule")
    schedule_parser.add_argument("child_id", help="Child id")

    complete_parser = subparsers.add_parser("complete", help="Mark a dose as given")
    complete_parser.add_argument("record_id", help="Vaccination record id")
    complete_parser.add_argument("--date", dest="completed_date", help="Date given (default: today)")
    complete_parser.add_argument("--doctor", dest="doctor_name", help="Doctor's name")
    complete_parser.add_argument("--location", help="Clinic or location")
    complete_parser.add_argument("--batch", dest="batch_number", help="Vaccine batch number")
    complete_parser.add_argument("--notes", help="Free-form notes")

    upcoming_parser = subparsers.add_parser("upcoming", help="List doses due soon")
    upcoming_parser.add_argument("child_id", help="Child id")
    upcoming_parser.add_argument(
        "--days",
        type=int,
        default=settings.UPCOMING_WINDOW_DAYS,
        help=f"Window in days (default: {settings.UPCOMING_WINDOW_DAYS})",
    )

    overdue_parser = subparsers.add_parser("overdue", help="List overdue doses")
    overdue_parser.add_argument("child_id", help="Child id")

    vaccine_parser = subparsers.add_parser("add-vaccine", help="Define a custom vaccine for every child")
    vaccine_parser.add_argument("name", help="Vaccine name")
    vaccine_parser.add_argument("age_in_months", type=int, help="Age in months of the first dose")
    vaccine_parser.add_argument("--disease", help="Disease the vaccine protects against")
    vaccine_parser.add_argument("--doses", type=int, default=1, help="Number of doses (default: 1)")
    vaccine_parser.add_argument("--interval", type=int, default=0, help="Months between doses (default: 0)")
    vaccine_parser.add_argument("--description", help="Free-form description")

    subparsers.add_parser("vaccines", help="List custom vaccines")

    delete_vaccine_parser = subparsers.add_parser("delete-vaccine", help="Delete a custom vaccine and its records")
    delete_vaccine_parser.add_argument("vaccine_id", help="Custom vaccine id")

    download_parser = subparsers.add_parser("download", help="Download a country calendar")
    download_parser.add_argument("country", help="Country to download")

    subparsers.add_parser("cache", help="Show calendar availability and cache state")

    clear_parser = subparsers.add_parser("clear-cache", help="Remove downloaded calendars")
    clear_parser.add_argument("country", nargs="?", help="Country to clear (default: all)")

    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_parser.add_argument("--language", choices=[lang.value for lang in Language])
    settings_parser.add_argument("--show-recommended", type=_on_off, metavar="on|off")
    settings_parser.add_argument("--notifications", type=_on_off, metavar="on|off")
    settings_parser.add_argument("--reminder-days", type=int, metavar="DAYS")

    return parser


async def run_command(cli: TrackerCLI, args: argparse.Namespace) -> bool:
    """Dispatch parsed arguments to the matching CLI method."""
    if args.command == "add-child":
        return await cli.add_child(args.name, args.date_of_birth, args.country)
    if args.command == "children":
        return await cli.list_children()
    if args.command == "schedule":
        return await cli.schedule(args.child_id)
    if args.command == "complete":
        return await cli.complete(
            args.record_id,
            completed_date=args.completed_date,
            doctor_name=args.doctor_name,
            location=args.location,
            batch_number=args.batch_number,
            notes=args.notes,
        )
    if args.command == "upcoming":
        return await cli.upcoming(args.child_id, args.days)
    if args.command == "overdue":
        return await cli.overdue(args.child_id)
    if args.command == "add-vaccine":
        return await cli.add_vaccine(
            args.name,
            args.age_in_months,
            disease=args.disease,
            doses=args.doses,
            interval=args.interval,
            description=args.description,
        )
    if args.command == "vaccines":
        return await cli.vaccines()
    if args.command == "delete-vaccine":
        return await cli.delete_vaccine(args.vaccine_id)
    if args.command == "download":
        return await cli.download(args.country)
    if args.command == "cache":
        return await cli.cache()
    if args.command == "clear-cache":
        return await cli.clear_cache(args.country)
    if args.command == "settings":
        return await cli.settings(
            language=args.language,
            show_recommended=args.show_recommended,
            notifications=args.notifications,
            reminder_days=args.reminder_days,
        )
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging()

    config = settings
    overrides = {}
    if args.storage:
        overrides["STORAGE_BACKEND"] = args.storage
    if args.offline:
        overrides["OFFLINE_MODE"] = True
    if overrides:
        config = settings.model_copy(update=overrides)

    cli = TrackerCLI(build_tracker(config))
    success = asyncio.run(run_command(cli, args))

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
