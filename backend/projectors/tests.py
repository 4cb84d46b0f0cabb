"""
Test suite for the projectors app
Tests: projector CRUD, warranty status, serial lookup, status summary
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Projector


class ProjectorModelTests(TestCase):

    def test_warranty_status(self):
        self.assertEqual(TestDataFactory.create_projector(warranty_days=10).warranty_status, 'In Warranty')
        self.assertEqual(TestDataFactory.create_projector(warranty_days=0).warranty_status, 'In Warranty')
        self.assertEqual(TestDataFactory.create_projector(warranty_days=-1).warranty_status, 'Expired')

    def test_record_service(self):
        projector = TestDataFactory.create_projector()
        service_date = timezone.localdate() - timedelta(days=3)
        projector.record_service(service_date)
        projector.record_service()
        projector.refresh_from_db()
        self.assertEqual(projector.total_services, 2)
        self.assertEqual(projector.last_service, timezone.localdate())

    def test_backdated_service_keeps_latest_date(self):
        projector = TestDataFactory.create_projector()
        projector.record_service(timezone.localdate())
        projector.record_service(timezone.localdate() - timedelta(days=30))
        projector.refresh_from_db()
        self.assertEqual(projector.total_services, 2)
        self.assertEqual(projector.last_service, timezone.localdate())


class ProjectorAPITests(TestCase):
    """Projector endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.site = TestDataFactory.create_site()

    def projector_payload(self, **overrides):
        data = {
            'projector_number': 'P-001',
            'serial_number': 'CP2220-0001',
            'model': 'CP2220',
            'brand': 'Christie',
            'site': self.site.id,
            'install_date': '2022-01-15',
            'warranty_end': '2025-01-15',
        }
        data.update(overrides)
        return data

    def test_register_projector(self):
        response = self.client.post('/api/v1/projectors/', self.projector_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['site_name'], self.site.name)
        self.assertEqual(response.data['total_services'], 0)

    def test_register_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='technician'))
        response = self.client.post('/api/v1/projectors/', self.projector_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_duplicate_serial_rejected(self):
        TestDataFactory.create_projector(serial_number='CP2220-0001')
        response = self.client.post('/api/v1/projectors/', self.projector_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_warranty_before_install_rejected(self):
        payload = self.projector_payload(warranty_end='2021-01-01')
        response = self.client.post('/api/v1/projectors/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('warranty_end', response.data)

    def test_auditorium_must_belong_to_site(self):
        auditorium = TestDataFactory.create_auditorium()
        payload = self.projector_payload(auditorium=auditorium.id)
        response = self.client.post('/api/v1/projectors/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('auditorium', response.data)

    def test_list_with_filters(self):
        TestDataFactory.create_projector(site=self.site, brand='Christie')
        TestDataFactory.create_projector(brand='Barco', warranty_days=-30)
        response = self.client.get('/api/v1/projectors/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/projectors/?brand=barco')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/projectors/?warranty=expired')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['warranty_status'], 'Expired')

        response = self.client.get(f'/api/v1/projectors/?site={self.site.id}')
        self.assertEqual(response.data['count'], 1)

    def test_lookup_by_serial(self):
        projector = TestDataFactory.create_projector(serial_number='LOOKUP-1')
        TestDataFactory.create_dtr(projector=projector)
        TestDataFactory.create_report(projector=projector)
        response = self.client.get('/api/v1/projectors/serial/LOOKUP-1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['projector']['serial_number'], 'LOOKUP-1')
        self.assertEqual(len(response.data['dtrs']), 1)
        self.assertEqual(len(response.data['service_reports']), 1)
        self.assertEqual(response.data['rmas'], [])

        response = self.client.get('/api/v1/projectors/serial/MISSING/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_summary(self):
        TestDataFactory.create_projector(status='Active')
        TestDataFactory.create_projector(status='Needs Repair', brand='Barco')
        response = self.client.get('/api/v1/projectors/status-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(len(response.data['by_brand']), 2)

    def test_delete_projector_with_history_rejected(self):
        projector = TestDataFactory.create_projector()
        TestDataFactory.create_dtr(projector=projector)
        response = self.client.delete(f'/api/v1/projectors/{projector.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Projector.objects.filter(id=projector.id).exists())

        clean = TestDataFactory.create_projector()
        response = self.client.delete(f'/api/v1/projectors/{clean.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
