"""
Management command to clear all RMAs while keeping DTRs
Usage: python manage.py clear_rmas [--confirm]
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_dashboard_cache
from backend.rma.models import DTR, RMA


class Command(BaseCommand):
    help = 'Delete every RMA; converted DTRs are unlinked and kept'

    def add_arguments(self, parser):
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip confirmation prompt',
        )

    def handle(self, *args, **options):
        rma_count = RMA.objects.count()
        linked_dtrs = DTR.objects.filter(rma__isnull=False)
        linked_count = linked_dtrs.count()

        self.stdout.write(f'\nFound:')
        self.stdout.write(f'  - RMAs: {rma_count}')
        self.stdout.write(f'  - DTRs linked to an RMA: {linked_count}')
        self.stdout.write('')

        if rma_count == 0:
            self.stdout.write(self.style.SUCCESS('Nothing to delete.'))
            return

        if not options['confirm']:
            self.stdout.write(self.style.WARNING('⚠️  WARNING: This will delete ALL RMAs'))
            confirm = input('Type "YES" to confirm: ')
            if confirm != 'YES':
                self.stdout.write(self.style.ERROR('Operation cancelled.'))
                return

        try:
            with suspend_cache_signals(), transaction.atomic():
                self.stdout.write('Unlinking DTRs...')
                linked_dtrs.update(rma=None)
                self.stdout.write(self.style.SUCCESS('  ✓ DTRs unlinked'))

                self.stdout.write('Deleting RMAs...')
                RMA.objects.all().delete()
                self.stdout.write(self.style.SUCCESS('  ✓ RMAs deleted'))
        except Exception as e:
            raise CommandError(f'Error clearing RMAs: {str(e)}')

        invalidate_dashboard_cache()
        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(f'✅ Deleted {rma_count} RMAs, unlinked {linked_count} DTRs'))
