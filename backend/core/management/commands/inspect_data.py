"""
Management command to print a quick overview of the database contents
Usage: python manage.py inspect_data
"""
from django.core.management.base import BaseCommand
from django.db.models import Count

from backend.core.models import User, AuditLog
from backend.projectors.models import Projector
from backend.rma.models import DTR, RMA
from backend.services.models import ServiceVisit, ServicePhoto, ServiceReport
from backend.sites.models import Site, Auditorium


class Command(BaseCommand):
    help = 'Show record counts per model, projector status breakdown and sample projectors'

    def handle(self, *args, **options):
        self.stdout.write('=' * 60)
        self.stdout.write(self.style.SUCCESS('Database overview'))
        self.stdout.write('=' * 60)

        for label, model in (
            ('Users', User), ('Sites', Site), ('Auditoriums', Auditorium), ('Projectors', Projector),
            ('Service Visits', ServiceVisit), ('Service Photos', ServicePhoto),
            ('Service Reports', ServiceReport), ('DTRs', DTR), ('RMAs', RMA), ('Audit Logs', AuditLog),
        ):
            self.stdout.write(f'  {label:<18}{model.objects.count():>8}')

        self.stdout.write('\nProjectors by status:')
        self.stdout.write('-' * 60)
        rows = Projector.objects.values('status').annotate(count=Count('id')).order_by('-count')
        for row in rows:
            self.stdout.write(f"  {row['status']:<18}{row['count']:>8}")
        if not rows:
            self.stdout.write('  (none)')

        self.stdout.write('\nFirst 5 projectors:')
        self.stdout.write('-' * 60)
        for projector in Projector.objects.select_related('site').order_by('id')[:5]:
            self.stdout.write(
                f'  {projector.serial_number} | {projector.brand} {projector.model} | '
                f'{projector.site.name} | {projector.status} | {projector.warranty_status}'
            )
