"""
Test suite for the services app
Tests: photo category mapping, service visits, photo uploads, service reports
"""
import shutil
import tempfile
from datetime import date

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import ServiceVisit, ServicePhoto, ServiceReport
from .utils import CATEGORY_FOLDER_MAP, get_category_folder, build_photo_folder, generate_visit_id


class CategoryFolderTests(SimpleTestCase):
    """Photo category to storage folder mapping"""

    def test_known_categories(self):
        expected = {
            'Before Service': 'before-service',
            'During Service': 'during-service',
            'After Service': 'after-service',
            'Spare Parts': 'spare-parts',
            'RMA': 'rma',
            'Issue Found': 'issues',
            'Parts Used': 'parts-used',
            'Service Photos': 'service-photos',
            'BEFORE': 'before-service',
            'DURING': 'during-service',
            'AFTER': 'after-service',
            'ISSUE': 'issues',
            'PARTS': 'parts-used',
            'Other': 'other',
        }
        self.assertEqual(len(CATEGORY_FOLDER_MAP), 14)
        for category, folder in expected.items():
            self.assertEqual(get_category_folder(category), folder, category)

    def test_labels_and_codes_share_folders(self):
        self.assertEqual(get_category_folder('Issue Found'), get_category_folder('ISSUE'))
        self.assertEqual(get_category_folder('Parts Used'), get_category_folder('PARTS'))

    def test_unknown_categories_map_to_other(self):
        for category in (None, '', 'before service', 'Random', 42, ['BEFORE'], {'a': 1}):
            self.assertEqual(get_category_folder(category), 'other')

    def test_build_photo_folder(self):
        self.assertEqual(
            build_photo_folder('SN123', 'VISIT-20240305-ABCD1234', 'AFTER'),
            'projectorcare/SN123/VISIT-20240305-ABCD1234/after-service'
        )
        self.assertEqual(build_photo_folder('SN123', 'V1', 'Mystery'), 'projectorcare/SN123/V1/other')

    def test_generate_visit_id(self):
        visit_id = generate_visit_id()
        self.assertRegex(visit_id, r'^VISIT-\d{8}-[0-9A-F]{8}$')
        self.assertNotEqual(visit_id, generate_visit_id())


class ServiceVisitTests(TestCase):
    """Service visit endpoints and status transitions"""

    def setUp(self):
        self.fse = TestDataFactory.create_user(role='fse')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.fse)
        self.projector = TestDataFactory.create_projector()

    def test_schedule_visit_defaults_fse_to_requester(self):
        data = {
            'site': self.projector.site.id,
            'projector': self.projector.id,
            'scheduled_date': '2024-06-01',
            'visit_type': 'AMC Service 1',
        }
        response = self.client.post('/api/v1/service-visits/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['fse'], self.fse.id)
        self.assertEqual(response.data['status'], 'Scheduled')
        self.assertTrue(response.data['visit_id'].startswith('VISIT-'))
        self.assertTrue(AuditLog.objects.filter(model_name='ServiceVisit', action='create').exists())

    def test_schedule_visit_projector_must_belong_to_site(self):
        other_site = TestDataFactory.create_site()
        data = {
            'site': other_site.id,
            'projector': self.projector.id,
            'scheduled_date': '2024-06-01',
        }
        response = self.client.post('/api/v1/service-visits/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('projector', response.data)

    def test_list_visits_with_filters(self):
        TestDataFactory.create_visit(projector=self.projector, fse=self.fse)
        TestDataFactory.create_visit(projector=self.projector, status='Completed')
        response = self.client.get('/api/v1/service-visits/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/service-visits/?mine=true')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/service-visits/?status=Completed')
        self.assertEqual(response.data['count'], 1)

    def test_visit_date_range_filter(self):
        TestDataFactory.create_visit(projector=self.projector, scheduled_date=date(2024, 3, 1))
        TestDataFactory.create_visit(projector=self.projector, scheduled_date=date(2024, 4, 1))
        response = self.client.get('/api/v1/service-visits/?date_from=2024-03-15')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_malformed_visit_filter_is_bad_request(self):
        response = self.client.get('/api/v1/service-visits/?date_from=notadate')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date_from', response.data['details'])

        response = self.client.get('/api/v1/service-visits/?site=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_start_and_complete_visit(self):
        visit = TestDataFactory.create_visit(projector=self.projector, fse=self.fse)

        response = self.client.post(f'/api/v1/service-visits/{visit.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'In Progress')
        self.assertIsNotNone(response.data['start_time'])
        self.assertIsNotNone(response.data['actual_date'])

        response = self.client.post(f'/api/v1/service-visits/{visit.id}/complete/',
                                    {'work_performed': 'Cleaned filters'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        visit.refresh_from_db()
        self.assertEqual(visit.status, 'Completed')
        self.assertEqual(visit.work_performed, 'Cleaned filters')
        self.assertIsNotNone(visit.end_time)
        self.assertEqual(AuditLog.objects.filter(action='status_change', object_id=str(visit.id)).count(), 2)

    def test_patch_cannot_change_status(self):
        visit = TestDataFactory.create_visit(projector=self.projector, fse=self.fse)
        response = self.client.patch(f'/api/v1/service-visits/{visit.id}/',
                                     {'status': 'Completed', 'description': 'Annual check'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Scheduled')
        visit.refresh_from_db()
        self.assertEqual(visit.status, 'Scheduled')
        self.assertEqual(visit.description, 'Annual check')
        self.assertIsNone(visit.end_time)

    def test_complete_requires_in_progress(self):
        visit = TestDataFactory.create_visit(projector=self.projector)
        response = self.client.post(f'/api/v1/service-visits/{visit.id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        visit.refresh_from_db()
        self.assertEqual(visit.status, 'Scheduled')

    def test_start_completed_visit_rejected(self):
        visit = TestDataFactory.create_visit(projector=self.projector, status='Completed')
        response = self.client.post(f'/api/v1/service-visits/{visit.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unable_to_complete(self):
        visit = TestDataFactory.create_visit(projector=self.projector, status='In Progress')
        response = self.client.post(f'/api/v1/service-visits/{visit.id}/unable-to-complete/',
                                    {'reason': 'Lamp not delivered', 'category': 'Missing Parts'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        visit.refresh_from_db()
        self.assertEqual(visit.status, 'Unable to Complete')
        self.assertEqual(visit.unable_to_complete_category, 'Missing Parts')

    def test_unable_to_complete_validation(self):
        visit = TestDataFactory.create_visit(projector=self.projector)
        url = f'/api/v1/service-visits/{visit.id}/unable-to-complete/'
        response = self.client.post(url, {'reason': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'reason': 'Closed', 'category': 'Weather'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_admin_can_delete_visit(self):
        visit = TestDataFactory.create_visit(projector=self.projector, fse=self.fse)
        response = self.client.delete(f'/api/v1/service-visits/{visit.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/service-visits/{visit.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ServiceVisit.objects.filter(id=visit.id).exists())


class ServicePhotoTests(TestCase):
    """Photo upload into category folders"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root)
        settings_override.enable()
        self.addCleanup(settings_override.disable)

        self.fse = TestDataFactory.create_user(role='fse')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.fse)
        self.visit = TestDataFactory.create_visit(fse=self.fse, status='In Progress')

    def upload(self, category, image=None, **extra):
        data = {'image': image or TestDataFactory.create_image_file(), 'category': category}
        data.update(extra)
        return self.client.post(f'/api/v1/service-visits/{self.visit.id}/photos/', data, format='multipart')

    def test_upload_stores_in_category_folder(self):
        response = self.upload('BEFORE', description='Lens before cleaning')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['folder'], 'before-service')
        self.assertEqual(response.data['original_name'], 'photo.png')

        photo = ServicePhoto.objects.get(id=response.data['id'])
        expected_folder = f'projectorcare/{self.visit.projector.serial_number}/{self.visit.visit_id}/before-service/'
        self.assertTrue(photo.image.name.startswith(expected_folder))
        self.assertEqual(photo.uploaded_by, self.fse)
        self.assertGreater(photo.file_size, 0)
        self.assertTrue(AuditLog.objects.filter(action='photo_upload', object_reference=self.visit.visit_id).exists())

    def test_unknown_category_goes_to_other(self):
        response = self.upload('Selfie')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['folder'], 'other')
        self.assertIn('/other/', ServicePhoto.objects.get(id=response.data['id']).image.name)

    def test_non_image_rejected(self):
        response = self.upload('AFTER', image=SimpleUploadedFile('notes.txt', b'not an image', content_type='text/plain'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)
        self.assertEqual(ServicePhoto.objects.count(), 0)

    @override_settings(PHOTO_UPLOAD_MAX_BYTES=10)
    def test_oversized_image_rejected(self):
        response = self.upload('AFTER')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)

    def test_list_photos_by_category(self):
        self.upload('BEFORE')
        self.upload('AFTER')
        response = self.client.get(f'/api/v1/service-visits/{self.visit.id}/photos/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get(f'/api/v1/service-visits/{self.visit.id}/photos/?category=AFTER')
        self.assertEqual(len(response.data), 1)

        response = self.client.get(f'/api/v1/service-visits/{self.visit.id}/')
        self.assertEqual(response.data['photo_count'], 2)
        self.assertEqual(len(response.data['photos']), 2)

    def test_delete_photo_permissions(self):
        photo_id = self.upload('BEFORE').data['id']
        other = TestDataFactory.create_user(role='fse')
        self.client.authenticate_user(other)
        response = self.client.delete(f'/api/v1/service-photos/{photo_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.fse)
        response = self.client.delete(f'/api/v1/service-photos/{photo_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ServicePhoto.objects.filter(id=photo_id).exists())


class ServiceReportTests(TestCase):
    """Service report endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='engineer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.projector = TestDataFactory.create_projector()

    def report_payload(self, **overrides):
        data = {
            'report_number': 'RPT-2024-001',
            'report_type': 'First',
            'date': '2024-03-05',
            'site_name': self.projector.site.name,
            'engineer_name': 'Ravi Kumar',
            'projector_serial': self.projector.serial_number,
            'projector_model': self.projector.model,
            'brand': self.projector.brand,
            'issues_found': [{'description': 'Dust on lens', 'severity': 'Low', 'resolved': True}],
            'voltage_parameters': {'pVsN': 230, 'pVsE': 231, 'nVsE': 1},
        }
        data.update(overrides)
        return data

    def test_create_report_records_projector_service(self):
        response = self.client.post('/api/v1/service-reports/', self.report_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created_by'], self.user.id)

        self.projector.refresh_from_db()
        self.assertEqual(self.projector.total_services, 1)
        self.assertEqual(self.projector.last_service.isoformat(), '2024-03-05')

    def test_create_report_for_unknown_projector(self):
        payload = self.report_payload(projector_serial='UNKNOWN-SERIAL')
        response = self.client.post('/api/v1/service-reports/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.projector.refresh_from_db()
        self.assertEqual(self.projector.total_services, 0)

    def test_duplicate_report_number(self):
        TestDataFactory.create_report(projector=self.projector, report_number='RPT-2024-001')
        response = self.client.post('/api/v1/service-reports/', self.report_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_time_before_start_time(self):
        payload = self.report_payload(
            service_start_time='2024-03-05T12:00:00Z',
            service_end_time='2024-03-05T10:00:00Z',
        )
        response = self.client.post('/api/v1/service-reports/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('service_end_time', response.data)

    def test_list_and_search_reports(self):
        TestDataFactory.create_report(projector=self.projector, report_number='RPT-A', engineer_name='Asha')
        TestDataFactory.create_report(report_number='RPT-B', report_type='Emergency')
        response = self.client.get('/api/v1/service-reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/service-reports/?search=asha')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['report_number'], 'RPT-A')

        response = self.client.get(f'/api/v1/service-reports/?serial={self.projector.serial_number}')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/service-reports/?report_type=Emergency')
        self.assertEqual(response.data['count'], 1)

    def test_report_date_filters(self):
        TestDataFactory.create_report(projector=self.projector, date=date(2024, 3, 5))
        TestDataFactory.create_report(projector=self.projector, date=date(2024, 5, 5))
        response = self.client.get('/api/v1/service-reports/?date_from=2024-03-01&date_to=2024-03-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/service-reports/?date_from=notadate')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid filter parameters')

    def test_export_dict_shape(self):
        visit = TestDataFactory.create_visit(projector=self.projector)
        report = TestDataFactory.create_report(
            projector=self.projector, visit=visit,
            site_incharge_name='Manager', engineer_phone='9999999999'
        )
        data = report.to_export_dict()
        self.assertEqual(data['reportNumber'], report.report_number)
        self.assertEqual(data['siteIncharge']['name'], 'Manager')
        self.assertEqual(data['engineer']['phone'], '9999999999')
        self.assertEqual(data['photoCount'], 0)

    def test_only_admin_can_delete_report(self):
        report = TestDataFactory.create_report(projector=self.projector)
        response = self.client.delete(f'/api/v1/service-reports/{report.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/service-reports/{report.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ServiceReport.objects.filter(id=report.id).exists())
