"""
Test utilities and factories for creating test data
"""
import io
import random
import string
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from PIL import Image
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.sites.models import Site, Auditorium
from backend.projectors.models import Projector
from backend.services.models import ServiceVisit, ServiceReport
from backend.rma.models import DTR, RMA

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='fse',
                    is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(**kwargs):
        kwargs.setdefault('role', 'admin')
        return TestDataFactory.create_user(**kwargs)

    @staticmethod
    def create_site(name=None, site_code=None, region='North', state='Delhi'):
        """Create a test site"""
        if not name:
            name = f'Site_{TestDataFactory.random_string(6)}'
        if not site_code:
            site_code = f'S{TestDataFactory.random_string(6).upper()}'
        return Site.objects.create(
            name=name,
            site_code=site_code,
            region=region,
            state=state,
            city='New Delhi',
            contact_name='Site Manager',
            contact_phone='9876543210'
        )

    @staticmethod
    def create_auditorium(site=None, audi_number=None, name=None):
        """Create a test auditorium"""
        if not site:
            site = TestDataFactory.create_site()
        if not audi_number:
            audi_number = f'A{random.randint(1, 99999)}'
        return Auditorium.objects.create(
            site=site,
            audi_number=audi_number,
            name=name or f'Audi {audi_number}',
            capacity=200
        )

    @staticmethod
    def create_projector(site=None, auditorium=None, serial_number=None, brand='Christie',
                         model='CP2220', warranty_days=365, status='Active'):
        """Create a test projector; negative warranty_days gives an expired warranty"""
        if not site:
            site = auditorium.site if auditorium else TestDataFactory.create_site()
        if not serial_number:
            serial_number = f'SN{TestDataFactory.random_string(8).upper()}'
        today = timezone.localdate()
        return Projector.objects.create(
            projector_number=f'P-{TestDataFactory.random_string(4).upper()}',
            serial_number=serial_number,
            model=model,
            brand=brand,
            part_number='PN-1000',
            site=site,
            auditorium=auditorium,
            install_date=today - timedelta(days=400),
            warranty_end=today + timedelta(days=warranty_days),
            status=status
        )

    @staticmethod
    def create_visit(projector=None, fse=None, status='Scheduled', scheduled_date=None):
        """Create a test service visit"""
        if not projector:
            projector = TestDataFactory.create_projector()
        return ServiceVisit.objects.create(
            fse=fse,
            site=projector.site,
            projector=projector,
            scheduled_date=scheduled_date or timezone.localdate(),
            status=status
        )

    @staticmethod
    def create_report(projector=None, report_number=None, visit=None, **fields):
        """Create a test service report"""
        if not projector:
            projector = TestDataFactory.create_projector()
        if not report_number:
            report_number = f'REPORT-{TestDataFactory.random_string(6).upper()}'
        data = {
            'report_number': report_number,
            'date': timezone.localdate(),
            'visit': visit,
            'site_name': projector.site.name,
            'engineer_name': 'Test Engineer',
            'projector_serial': projector.serial_number,
            'projector_model': projector.model,
            'brand': projector.brand,
        }
        data.update(fields)
        return ServiceReport.objects.create(**data)

    @staticmethod
    def create_dtr(projector=None, status='Open', priority='Medium', assigned_to=None, **fields):
        """Create a test DTR"""
        if not projector:
            projector = TestDataFactory.create_projector()
        return DTR.objects.create(
            projector=projector,
            serial_number=projector.serial_number,
            site_name=projector.site.name,
            site_code=projector.site.site_code,
            complaint_description=fields.pop('complaint_description', 'No picture on screen'),
            opened_by=fields.pop('opened_by', 'helpdesk'),
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            **fields
        )

    @staticmethod
    def create_rma(serial_number=None, site_name='Test Site', case_status='Under Review', **fields):
        """Create a test RMA"""
        if not serial_number:
            serial_number = f'SN{TestDataFactory.random_string(8).upper()}'
        return RMA.objects.create(
            serial_number=serial_number,
            site_name=site_name,
            product_name=fields.pop('product_name', 'Christie CP2220'),
            case_status=case_status,
            **fields
        )

    @staticmethod
    def create_image_file(name='photo.png', size=(10, 10), image_format='PNG', content_type='image/png'):
        """In-memory image upload"""
        buffer = io.BytesIO()
        Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format=image_format)
        return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
