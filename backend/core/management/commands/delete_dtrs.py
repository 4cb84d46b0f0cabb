"""
Management command to delete DTRs
Usage: python manage.py delete_dtrs [--status "Closed"] [--confirm]
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_dashboard_cache
from backend.rma.models import DTR


class Command(BaseCommand):
    help = 'Delete DTRs, optionally only those with a given status'

    def add_arguments(self, parser):
        parser.add_argument(
            '--status',
            choices=[choice[0] for choice in DTR.STATUS_CHOICES],
            help='Only delete DTRs with this status',
        )
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip confirmation prompt',
        )

    def handle(self, *args, **options):
        queryset = DTR.objects.all()
        if options['status']:
            queryset = queryset.filter(status=options['status'])

        count = queryset.count()
        scope = f"with status '{options['status']}'" if options['status'] else '(all statuses)'
        self.stdout.write(f'Found {count} DTRs {scope}')
        if count == 0:
            self.stdout.write(self.style.SUCCESS('Nothing to delete.'))
            return

        if not options['confirm']:
            self.stdout.write(self.style.WARNING(f'⚠️  WARNING: This will permanently delete {count} DTRs'))
            confirm = input('Type "YES" to confirm: ')
            if confirm != 'YES':
                self.stdout.write(self.style.ERROR('Operation cancelled.'))
                return

        try:
            with suspend_cache_signals(), transaction.atomic():
                linked = queryset.filter(rma__isnull=False).count()
                deleted, _ = queryset.delete()
        except Exception as e:
            raise CommandError(f'Error deleting DTRs: {str(e)}')

        invalidate_dashboard_cache()
        self.stdout.write(self.style.SUCCESS(f'✅ Deleted {deleted} DTRs'))
        if linked:
            self.stdout.write(f'   {linked} of them had been converted; their RMAs were kept')
