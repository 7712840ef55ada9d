"""
Django management command to flip open accounts payable past their due date to overdue
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from backend.parties.services import refresh_overdue_status


class Command(BaseCommand):
    help = 'Mark pending and partially paid accounts payable past their due date as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Evaluate as of this date (YYYY-MM-DD), defaults to today',
        )

    def handle(self, *args, **options):
        as_of = timezone.localdate()
        if options.get('date'):
            try:
                as_of = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")

        updated = refresh_overdue_status(as_of)
        self.stdout.write(self.style.SUCCESS(f"Marked {updated} accounts payable as overdue as of {as_of}"))
