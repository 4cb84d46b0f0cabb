"""
Test suite for the RMA app
Tests: DTR lifecycle, DTR to RMA conversion, RMA CRUD, statistics
"""
import re
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import DTR, RMA


class DTRModelTests(TestCase):
    """Case id generation and workflow history"""

    def test_case_id_sequence(self):
        first = TestDataFactory.create_dtr()
        second = TestDataFactory.create_dtr()
        prefix = f"DTR-{timezone.localdate().strftime('%Y%m%d')}-"
        self.assertEqual(first.case_id, f"{prefix}001")
        self.assertEqual(second.case_id, f"{prefix}002")

    def test_case_id_not_reused_after_delete(self):
        first = TestDataFactory.create_dtr()
        second = TestDataFactory.create_dtr()
        first.delete()
        third = TestDataFactory.create_dtr()
        prefix = f"DTR-{timezone.localdate().strftime('%Y%m%d')}-"
        self.assertEqual(second.case_id, f"{prefix}002")
        self.assertEqual(third.case_id, f"{prefix}003")

    def test_case_id_continues_after_highest_suffix(self):
        prefix = f"DTR-{timezone.localdate().strftime('%Y%m%d')}-"
        TestDataFactory.create_dtr(case_id=f"{prefix}999")
        self.assertEqual(TestDataFactory.create_dtr().case_id, f"{prefix}1000")
        self.assertEqual(TestDataFactory.create_dtr().case_id, f"{prefix}1001")

    def test_add_history(self):
        user = TestDataFactory.create_user(role='rma_manager')
        dtr = TestDataFactory.create_dtr()
        dtr.add_history('assigned', user, 'Assigned to tech', new_value='tech')
        dtr.save()
        dtr.refresh_from_db()
        self.assertEqual(len(dtr.workflow_history), 1)
        entry = dtr.workflow_history[0]
        self.assertEqual(entry['action'], 'assigned')
        self.assertEqual(entry['performed_by'], {'name': user.username, 'role': 'rma_manager'})
        self.assertEqual(entry['new_value'], 'tech')


class DTRAPITests(TestCase):
    """DTR endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(role='rma_manager')
        self.technician = TestDataFactory.create_user(role='technician')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.projector = TestDataFactory.create_projector()

    def test_create_dtr_copies_site_details(self):
        data = {
            'serial_number': self.projector.serial_number,
            'complaint_description': 'Image flickering after 2 hours',
            'priority': 'High',
        }
        response = self.client.post('/api/v1/dtrs/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['site_name'], self.projector.site.name)
        self.assertEqual(response.data['site_code'], self.projector.site.site_code)
        self.assertEqual(response.data['unit_model'], self.projector.model)
        self.assertEqual(response.data['opened_by'], self.manager.username)
        self.assertEqual(response.data['status'], 'Open')
        self.assertTrue(response.data['case_id'].startswith('DTR-'))
        self.assertTrue(AuditLog.objects.filter(model_name='DTR', action='create').exists())

    def test_create_dtr_unknown_projector(self):
        data = {'serial_number': 'NOPE-123', 'complaint_description': 'Dead'}
        response = self.client.post('/api/v1/dtrs/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Projector with this serial number not found')

    def test_create_dtr_requires_manager(self):
        self.client.authenticate_user(self.technician)
        data = {'serial_number': self.projector.serial_number, 'complaint_description': 'Dead'}
        response = self.client.post('/api/v1/dtrs/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(DTR.objects.count(), 0)

    def test_list_dtrs_with_filters(self):
        TestDataFactory.create_dtr(projector=self.projector, priority='High')
        TestDataFactory.create_dtr(status='Closed')
        response = self.client.get('/api/v1/dtrs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/dtrs/?status=Closed')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(f'/api/v1/dtrs/?search={self.projector.serial_number}')
        self.assertEqual(response.data['count'], 1)

    def test_assign_technician(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector)
        response = self.client.post(f'/api/v1/dtrs/{dtr.id}/assign-technician/',
                                    {'technician_id': self.technician.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dtr.refresh_from_db()
        self.assertEqual(dtr.assigned_to, self.technician)
        self.assertEqual(dtr.status, 'In Progress')
        self.assertIsNotNone(dtr.assigned_date)
        self.assertEqual(dtr.workflow_history[-1]['action'], 'assigned')

    def test_assign_rejects_non_field_user(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector)
        other_manager = TestDataFactory.create_user(role='rma_manager')
        response = self.client.post(f'/api/v1/dtrs/{dtr.id}/assign-technician/',
                                    {'technician_id': other_manager.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/v1/dtrs/{dtr.id}/assign-technician/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_troubleshooting_by_assigned_technician(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector, assigned_to=self.technician)
        self.client.authenticate_user(self.technician)
        response = self.client.post(f'/api/v1/dtrs/{dtr.id}/troubleshooting/',
                                    {'description': 'Reseated lamp', 'outcome': 'No change'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dtr.refresh_from_db()
        self.assertEqual(dtr.status, 'In Progress')
        self.assertEqual(dtr.troubleshooting_steps[0]['step'], 1)
        self.assertEqual(dtr.troubleshooting_steps[0]['performed_by'], self.technician.username)

    def test_troubleshooting_by_other_technician_forbidden(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector, assigned_to=self.technician)
        other = TestDataFactory.create_user(role='engineer')
        self.client.authenticate_user(other)
        response = self.client.post(f'/api/v1/dtrs/{dtr.id}/troubleshooting/',
                                    {'description': 'x', 'outcome': 'y'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_status_cannot_be_set_to_shifted_directly(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector)
        response = self.client.patch(f'/api/v1/dtrs/{dtr.id}/', {'status': 'Shifted to RMA'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_close_dtr_records_history(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector)
        response = self.client.patch(f'/api/v1/dtrs/{dtr.id}/', {'status': 'Closed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dtr.refresh_from_db()
        self.assertEqual(dtr.closed_reason, 'Resolved')
        self.assertEqual(dtr.workflow_history[-1]['action'], 'status_changed')

    def test_delete_dtr_permissions(self):
        dtr = TestDataFactory.create_dtr(projector=self.projector)
        self.client.authenticate_user(self.technician)
        response = self.client.delete(f'/api/v1/dtrs/{dtr.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/dtrs/{dtr.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_dtr_stats(self):
        TestDataFactory.create_dtr(projector=self.projector, priority='High')
        TestDataFactory.create_dtr(status='Closed', priority='Low')
        TestDataFactory.create_dtr(status='In Progress', priority='High')
        response = self.client.get('/api/v1/dtrs/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['open'], 1)
        self.assertEqual(response.data['closed'], 1)
        self.assertEqual(response.data['in_progress'], 1)
        self.assertEqual(response.data['shifted_to_rma'], 0)
        high = next(row for row in response.data['priority_breakdown'] if row['priority'] == 'High')
        self.assertEqual(high['count'], 2)
        self.assertEqual(sum(row['count'] for row in response.data['monthly_trend']), 3)


class DTRConversionTests(TestCase):
    """DTR to RMA conversion"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(role='rma_manager')
        self.technician = TestDataFactory.create_user(role='technician')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.projector = TestDataFactory.create_projector()
        self.dtr = TestDataFactory.create_dtr(
            projector=self.projector, priority='Critical', assigned_to=self.technician,
            complaint_description='No light output', problem_name='Lamp failure',
        )

    def convert(self, **data):
        return self.client.post(f'/api/v1/dtrs/{self.dtr.id}/convert-to-rma/', data, format='json')

    def test_convert_creates_linked_rma(self):
        self.dtr.troubleshooting_steps = [{
            'step': 1, 'description': 'Replaced lamp', 'outcome': 'Still dark',
            'performed_by': 'tech', 'performed_at': '2024-03-05T10:00:00+00:00',
        }]
        self.dtr.save()

        response = self.convert(additional_notes='Urgent replacement')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'DTR successfully converted to RMA')

        rma = RMA.objects.get(id=response.data['rma']['id'])
        self.dtr.refresh_from_db()
        self.assertEqual(self.dtr.status, 'Shifted to RMA')
        self.assertEqual(self.dtr.rma, rma)
        self.assertEqual(rma.originated_from_dtr, self.dtr)
        self.assertEqual(rma.call_log_number, f'DTR-{self.dtr.case_id}')
        self.assertEqual(rma.priority, 'High')
        self.assertEqual(rma.warranty_status, 'In Warranty')
        self.assertEqual(rma.defective_part_name, 'Lamp failure')
        self.assertTrue(rma.symptoms.startswith('No light output'))
        self.assertIn('Troubleshooting History:', rma.symptoms)
        self.assertIn('Step 1: Replaced lamp', rma.symptoms)
        self.assertIn('Urgent replacement', rma.notes)
        self.assertEqual(response.data['dtr']['rma_number'], rma.rma_number)
        self.assertTrue(AuditLog.objects.filter(action='dtr_convert').exists())

    def test_convert_twice_rejected(self):
        self.assertEqual(self.convert().status_code, status.HTTP_201_CREATED)
        response = self.convert()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'DTR already converted to RMA')
        self.assertEqual(RMA.objects.count(), 1)

    def test_out_of_warranty_projector(self):
        self.projector.warranty_end = timezone.localdate() - timedelta(days=1)
        self.projector.save()
        response = self.convert()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['rma']['warranty_status'], 'Out of Warranty')

    def test_assigned_technician_can_convert(self):
        self.client.authenticate_user(self.technician)
        self.assertEqual(self.convert().status_code, status.HTTP_201_CREATED)

    def test_unassigned_technician_cannot_convert(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='technician'))
        self.assertEqual(self.convert().status_code, status.HTTP_403_FORBIDDEN)

    def test_fse_cannot_convert(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='fse'))
        self.assertEqual(self.convert().status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(RMA.objects.count(), 0)


class RMAAPITests(TestCase):
    """RMA endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(role='rma_manager')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_rma_number_format(self):
        first = TestDataFactory.create_rma()
        second = TestDataFactory.create_rma()
        year = timezone.localdate().year
        self.assertEqual(first.rma_number, f'RMA-{year}-001')
        self.assertEqual(second.rma_number, f'RMA-{year}-002')
        self.assertTrue(re.match(r'^RMA-\d{4}-\d{3}$', first.rma_number))

    def test_rma_number_not_reused_after_delete(self):
        first = TestDataFactory.create_rma()
        TestDataFactory.create_rma()
        first.delete()
        third = TestDataFactory.create_rma()
        self.assertEqual(third.rma_number, f'RMA-{timezone.localdate().year}-003')

    def test_create_after_delete_via_api(self):
        TestDataFactory.create_rma()
        second = TestDataFactory.create_rma()
        RMA.objects.order_by('id').first().delete()
        data = {'site_name': 'PVR Saket', 'product_name': 'Christie CP2220', 'serial_number': 'SN-RMA-2'}
        response = self.client.post('/api/v1/rmas/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotEqual(response.data['rma_number'], second.rma_number)

    def test_create_rma(self):
        data = {
            'site_name': 'PVR Saket',
            'product_name': 'Christie CP2220',
            'serial_number': 'SN-RMA-1',
            'defective_part_name': 'Light engine',
            'customer_error_date': '2024-03-01',
            'ascomp_raised_date': '2024-03-05',
        }
        response = self.client.post('/api/v1/rmas/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created_by_username'], self.manager.username)
        self.assertEqual(response.data['case_status'], 'Under Review')

    def test_create_rma_error_date_after_raised(self):
        data = {
            'site_name': 'PVR Saket',
            'product_name': 'Christie CP2220',
            'serial_number': 'SN-RMA-2',
            'customer_error_date': '2024-03-10',
            'ascomp_raised_date': '2024-03-05',
        }
        response = self.client.post('/api/v1/rmas/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_error_date', response.data)

    def test_create_rma_requires_role(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='fse'))
        response = self.client.post('/api/v1/rmas/', {'site_name': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_completing_sets_completed_date(self):
        rma = TestDataFactory.create_rma()
        response = self.client.patch(f'/api/v1/rmas/{rma.id}/', {'case_status': 'Completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rma.refresh_from_db()
        self.assertEqual(rma.completed_date, timezone.localdate())
        self.assertFalse(rma.is_open)
        self.assertTrue(AuditLog.objects.filter(model_name='RMA', action='status_change').exists())

    def test_rma_by_status(self):
        TestDataFactory.create_rma(case_status='Sent to CDS')
        TestDataFactory.create_rma()
        response = self.client.get('/api/v1/rmas/status/Sent%20to%20CDS/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/rmas/status/Lost/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_rma_unlinks_dtr(self):
        dtr = TestDataFactory.create_dtr()
        rma = TestDataFactory.create_rma(originated_from_dtr=dtr)
        dtr.rma = rma
        dtr.status = 'Shifted to RMA'
        dtr.save()

        response = self.client.delete(f'/api/v1/rmas/{rma.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/rmas/{rma.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        dtr.refresh_from_db()
        self.assertIsNone(dtr.rma)

    def test_rma_stats(self):
        today = timezone.localdate()
        TestDataFactory.create_rma(case_status='Completed', ascomp_raised_date=today - timedelta(days=10),
                                   completed_date=today)
        TestDataFactory.create_rma(case_status='Completed', ascomp_raised_date=today - timedelta(days=4),
                                   completed_date=today, priority='High')
        TestDataFactory.create_rma(case_status='Rejected')
        TestDataFactory.create_rma(case_status='Sent to CDS')
        response = self.client.get('/api/v1/rmas/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 4)
        self.assertEqual(response.data['active'], 1)
        self.assertEqual(response.data['completed'], 2)
        self.assertEqual(response.data['rejected'], 1)
        self.assertEqual(response.data['by_priority'], {'Medium': 3, 'High': 1})
        self.assertEqual(response.data['avg_turnaround_days'], 7.0)
