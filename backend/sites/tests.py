"""
Test suite for the sites app
Tests: site CRUD, auditoriums, site statistics
"""
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Site, Auditorium


class SiteTests(TestCase):
    """Site endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_site_normalises_code(self):
        response = self.client.post('/api/v1/sites/', {
            'name': 'PVR Saket',
            'site_code': ' pvr-saket ',
            'region': 'North',
            'state': 'Delhi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Site.objects.get(name='PVR Saket').site_code, 'PVR-SAKET')
        self.assertTrue(AuditLog.objects.filter(model_name='Site', action='create').exists())

    def test_create_site_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='rma_manager'))
        response = self.client.post('/api/v1/sites/', {
            'name': 'INOX Nehru Place', 'site_code': 'INOX-NP', 'region': 'North', 'state': 'Delhi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_duplicate_site_name(self):
        TestDataFactory.create_site(name='PVR Saket')
        response = self.client.post('/api/v1/sites/', {
            'name': 'PVR Saket', 'site_code': 'OTHER', 'region': 'North', 'state': 'Delhi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_sites_with_filters(self):
        TestDataFactory.create_site(name='Delhi One', region='North')
        TestDataFactory.create_site(name='Chennai One', region='South', state='Tamil Nadu')
        response = self.client.get('/api/v1/sites/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/sites/?region=South')
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/sites/?search=chennai')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Chennai One')

    def test_delete_site_with_projectors_rejected(self):
        projector = TestDataFactory.create_projector()
        response = self.client.delete(f'/api/v1/sites/{projector.site.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        empty_site = TestDataFactory.create_site()
        response = self.client.delete(f'/api/v1/sites/{empty_site.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_site_detail_includes_auditoriums(self):
        auditorium = TestDataFactory.create_auditorium()
        response = self.client.get(f'/api/v1/sites/{auditorium.site.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['auditoriums']), 1)

    def test_site_stats(self):
        site = TestDataFactory.create_site()
        projector = TestDataFactory.create_projector(site=site)
        TestDataFactory.create_projector(site=site, status='Needs Repair')
        TestDataFactory.create_dtr(projector=projector)
        TestDataFactory.create_rma(serial_number=projector.serial_number)
        TestDataFactory.create_rma(serial_number=projector.serial_number, case_status='Completed')

        response = self.client.get(f'/api/v1/sites/{site.id}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['projectors']['total'], 2)
        self.assertEqual(response.data['projectors']['by_status'], {'Active': 1, 'Needs Repair': 1})
        self.assertEqual(response.data['dtrs'], {'total': 1, 'open': 1})
        self.assertEqual(response.data['rmas'], {'total': 2, 'active': 1})


class AuditoriumTests(TestCase):
    """Auditorium endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.site = TestDataFactory.create_site()

    def test_add_auditorium(self):
        response = self.client.post(f'/api/v1/sites/{self.site.id}/auditoriums/', {
            'audi_number': 'AUDI-1', 'name': 'Audi 1', 'capacity': 250,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Auditorium.objects.get(site=self.site).audi_number, 'AUDI-1')

    def test_duplicate_audi_number_rejected(self):
        TestDataFactory.create_auditorium(site=self.site, audi_number='AUDI-1')
        response = self.client.post(f'/api/v1/sites/{self.site.id}/auditoriums/', {
            'audi_number': 'AUDI-1', 'name': 'Again',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_audi_number_on_other_site(self):
        TestDataFactory.create_auditorium(site=self.site, audi_number='AUDI-1')
        other = TestDataFactory.create_site()
        response = self.client.post(f'/api/v1/sites/{other.id}/auditoriums/', {
            'audi_number': 'AUDI-1', 'name': 'Audi 1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_auditorium_scoped_to_site(self):
        auditorium = TestDataFactory.create_auditorium(site=self.site)
        other = TestDataFactory.create_site()
        response = self.client.get(f'/api/v1/sites/{other.id}/auditoriums/{auditorium.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
