from django.core.management.base import BaseCommand, CommandError

from fiscal.exceptions import FiscalNumberingError
from fiscal.models import RangeKind
from fiscal.services.range_config_service import configure_range, range_status


class Command(BaseCommand):
    help = (
        "Creates or updates the authorized bounds of a fiscal number range "
        "(NCF or CF). Never touches the numbers already issued."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "kind",
            type=str.upper,
            choices=RangeKind.values,
            help="Range to configure.",
        )
        parser.add_argument(
            "--start",
            type=str,
            default=None,
            help="First number of the authorized block (e.g. B01000000001).",
        )
        parser.add_argument(
            "--end",
            type=str,
            default=None,
            help="Last number of the authorized block (same prefix and width as --start).",
        )
        parser.add_argument(
            "--rotate",
            action="store_true",
            help=(
                "Apply a new block that does not contain the last issued number. "
                "Resets the cursor so the next number is --start."
            ),
        )
        parser.add_argument(
            "--show",
            action="store_true",
            help="Only print the current status of the range.",
        )

    def handle(self, *args, **options):
        kind = options["kind"]
        start = options["start"]
        end = options["end"]

        if not options["show"]:
            if not start or not end:
                raise CommandError("--start and --end are required unless --show is given.")

            try:
                configure_range(kind, start, end, rotate=options["rotate"])
            except FiscalNumberingError as exc:
                raise CommandError(f"[{exc.code}] {exc.message}") from exc

            self.stdout.write(self.style.SUCCESS(f"[configure_fiscal_range] {kind}: {start}..{end} saved."))

        try:
            status = range_status(kind)
        except FiscalNumberingError as exc:
            raise CommandError(f"[{exc.code}] {exc.message}") from exc

        self.stdout.write(
            f"{status.kind} state={status.state} start={status.range_start} end={status.range_end} "
            f"last={status.last_assigned or '-'} next={status.next_number or '-'} "
            f"remaining={status.remaining} released={status.released_count}"
        )
