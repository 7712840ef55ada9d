"""
Django management command to flag active batches past their expiry date
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from backend.inventory.services import mark_expired_batches


class Command(BaseCommand):
    help = 'Mark active inventory batches whose expiry date has passed as expired'

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

        count = mark_expired_batches(today=as_of)
        self.stdout.write(self.style.SUCCESS(f"Marked {count} batch(es) as expired as of {as_of}"))
