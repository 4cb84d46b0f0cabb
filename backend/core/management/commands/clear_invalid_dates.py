"""
Management command to clear implausible DTR error dates left by old imports
Usage: python manage.py clear_invalid_dates [--dry-run]
"""
from datetime import date, timedelta

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from backend.rma.models import DTR

EARLIEST_VALID_DATE = date(1990, 1, 1)
FUTURE_TOLERANCE_DAYS = 365


class Command(BaseCommand):
    help = 'Clear DTR error dates before 1990 or more than a year in the future'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List affected DTRs without changing them',
        )

    def handle(self, *args, **options):
        latest_valid = timezone.localdate() + timedelta(days=FUTURE_TOLERANCE_DAYS)
        invalid = DTR.objects.filter(
            Q(error_date__lt=EARLIEST_VALID_DATE) | Q(error_date__gt=latest_valid)
        ).order_by('case_id')

        count = invalid.count()
        self.stdout.write(f'🔍 Found {count} DTRs with invalid error dates')
        for dtr in invalid[:20]:
            self.stdout.write(f'   {dtr.case_id}: {dtr.error_date.isoformat()}')
        if count > 20:
            self.stdout.write(f'   ... and {count - 20} more')

        if count == 0 or options['dry_run']:
            if options['dry_run']:
                self.stdout.write(self.style.WARNING('Dry run, nothing changed.'))
            return

        updated = invalid.update(error_date=None)
        self.stdout.write(self.style.SUCCESS(f'✅ Cleared error date on {updated} DTRs'))
