"""
Test suite for the core app
Tests: authentication, users and roles, settings, audit logs, health check, global search, maintenance commands
"""
from datetime import date, timedelta
from io import StringIO
from unittest.mock import patch, MagicMock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.rma.models import DTR, RMA

from .models import User, AuditLog, Setting
from .test_utils import TestDataFactory, AuthenticatedAPIClient
from .utils import create_audit_log, is_admin_user, user_has_role


class AuthTests(TestCase):
    """Login, registration and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        user = TestDataFactory.create_user(username='engineer1', role='engineer')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'engineer1',
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['id'], user.id)
        self.assertEqual(response.data['user']['role'], 'engineer')

    def test_login_wrong_password(self):
        TestDataFactory.create_user(username='engineer2')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'engineer2',
            'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_always_creates_fse(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newfse',
            'email': 'newfse@test.com',
            'password': 'Pr0jector!Care',
            'password_confirm': 'Pr0jector!Care',
            'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'fse')
        self.assertIn('access', response.data)
        self.assertEqual(User.objects.get(username='newfse').role, 'fse')

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newfse',
            'password': 'Pr0jector!Care',
            'password_confirm': 'different',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_flags_for_rma_manager(self):
        user = TestDataFactory.create_user(role='rma_manager')
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_manage_dtr'])
        self.assertTrue(response.data['can_convert_dtr'])
        self.assertTrue(response.data['can_access_reports'])

    def test_me_flags_for_technician(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='technician'))
        response = self.client.get('/api/v1/auth/me/')
        self.assertFalse(response.data['can_manage_dtr'])
        self.assertTrue(response.data['can_convert_dtr'])
        self.assertFalse(response.data['can_access_reports'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserManagementTests(TestCase):
    """Admin-only user endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_admin_role_can_list_users(self):
        TestDataFactory.create_user(role='technician')
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/users/?role=technician')
        self.assertEqual(len(response.data), 1)

    def test_admin_creates_user_with_role(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'tech1',
            'password': 'Pr0jector!Care',
            'password_confirm': 'Pr0jector!Care',
            'role': 'technician',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'technician')
        self.assertTrue(response.data['is_field_user'])
        self.assertEqual(response.data['display_name'], 'tech1')
        self.assertTrue(User.objects.get(username='tech1').check_password('Pr0jector!Care'))

    def test_admin_create_requires_role(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'norole',
            'password': 'Pr0jector!Care',
            'password_confirm': 'Pr0jector!Care',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', response.data)

    def test_non_admin_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='rma_manager'))
        self.assertEqual(self.client.get('/api/v1/users/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/v1/settings/').status_code, status.HTTP_403_FORBIDDEN)

    def test_update_and_delete_user(self):
        user = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/users/{user.id}/', {'role': 'engineer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'engineer')

        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(id=user.id).exists())

    def test_users_by_role(self):
        TestDataFactory.create_user(role='technician')
        TestDataFactory.create_user(role='engineer')
        self.client.authenticate_user(TestDataFactory.create_user(role='rma_manager'))
        response = self.client.get('/api/v1/users/role/technician/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/users/role/janitor/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_settings_crud(self):
        response = self.client.post('/api/v1/settings/', {'key': 'service_interval_days', 'value': '90'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        setting_id = response.data['id']

        response = self.client.patch(f'/api/v1/settings/{setting_id}/', {'value': '120'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Setting.objects.get(id=setting_id).value, '120')


class RoleHelperTests(TestCase):
    """is_admin_user / user_has_role"""

    def test_is_admin_user(self):
        self.assertTrue(is_admin_user(TestDataFactory.create_admin()))
        self.assertTrue(is_admin_user(TestDataFactory.create_user(is_staff=True)))
        self.assertTrue(is_admin_user(TestDataFactory.create_user(is_superuser=True)))
        self.assertFalse(is_admin_user(TestDataFactory.create_user(role='rma_manager')))
        self.assertFalse(is_admin_user(None))

    def test_user_has_role(self):
        manager = TestDataFactory.create_user(role='rma_manager')
        self.assertTrue(user_has_role(manager, 'admin', 'rma_manager'))
        self.assertFalse(user_has_role(manager, 'technician'))
        self.assertTrue(user_has_role(TestDataFactory.create_user(is_superuser=True), 'technician'))


class AuditLogTests(TestCase):
    """Audit log helper and endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_audit_log_requires_fields(self):
        self.assertIsNone(create_audit_log(user=self.user, action='create', model_name='DTR'))
        entry = create_audit_log(user=self.user, action='create', model_name='DTR', object_id=5,
                                 object_reference='DTR-20240305-001')
        self.assertEqual(entry.object_id, '5')
        self.assertEqual(entry.user, self.user)

    def test_non_admin_sees_own_entries_only(self):
        other = TestDataFactory.create_user()
        create_audit_log(user=self.user, action='create', model_name='RMA', object_id=1)
        create_audit_log(user=other, action='create', model_name='RMA', object_id=2)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['username'], self.user.username)
        self.assertFalse(response.data[0]['by_admin'])

        foreign = AuditLog.objects.get(user=other)
        response = self.client.get(f'/api/v1/audit-logs/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_filters_by_reference(self):
        create_audit_log(user=self.user, action='dtr_convert', model_name='DTR', object_id=1,
                         object_reference='DTR-20240305-001')
        create_audit_log(user=self.user, action='create', model_name='RMA', object_id=2)
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/audit-logs/?reference=DTR-20240305-001')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/audit-logs/?model=RMA')
        self.assertEqual(len(response.data), 1)


class MiscEndpointTests(TestCase):
    """Health check and global search"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_health_check_is_public(self):
        response = self.client.get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')
        self.assertEqual(response.data['database'], 'ok')

    def test_global_search(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        projector = TestDataFactory.create_projector(serial_number='FINDME-001')
        TestDataFactory.create_dtr(projector=projector)
        TestDataFactory.create_rma(serial_number='FINDME-001')
        response = self.client.get('/api/v1/search/?q=findme')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['projectors']), 1)
        self.assertEqual(len(response.data['dtrs']), 1)
        self.assertEqual(len(response.data['rmas']), 1)

        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.data['sites'], [])


class MaintenanceCommandTests(TestCase):
    """Management commands"""

    def call(self, *args):
        out = StringIO()
        call_command(*args, stdout=out)
        return out.getvalue()

    def test_delete_dtrs_by_status(self):
        TestDataFactory.create_dtr(status='Closed')
        TestDataFactory.create_dtr(status='Open')
        output = self.call('delete_dtrs', '--status', 'Closed', '--confirm')
        self.assertIn('Deleted 1 DTRs', output)
        self.assertEqual(list(DTR.objects.values_list('status', flat=True)), ['Open'])

    def test_delete_dtrs_cancelled_without_yes(self):
        TestDataFactory.create_dtr()
        with patch('builtins.input', return_value='no'):
            output = self.call('delete_dtrs')
        self.assertIn('Operation cancelled', output)
        self.assertEqual(DTR.objects.count(), 1)

    def test_clear_rmas_unlinks_dtrs(self):
        dtr = TestDataFactory.create_dtr(status='Shifted to RMA')
        dtr.rma = TestDataFactory.create_rma(originated_from_dtr=dtr)
        dtr.save()
        TestDataFactory.create_rma()
        output = self.call('clear_rmas', '--confirm')
        self.assertIn('Deleted 2 RMAs, unlinked 1 DTRs', output)
        self.assertEqual(RMA.objects.count(), 0)
        dtr.refresh_from_db()
        self.assertIsNone(dtr.rma)

    def test_clear_invalid_dates(self):
        ancient = TestDataFactory.create_dtr(error_date=date(1900, 1, 1))
        future = TestDataFactory.create_dtr(error_date=timezone.localdate() + timedelta(days=5000))
        valid = TestDataFactory.create_dtr(error_date=timezone.localdate())

        output = self.call('clear_invalid_dates', '--dry-run')
        self.assertIn('Found 2 DTRs', output)
        ancient.refresh_from_db()
        self.assertIsNotNone(ancient.error_date)

        self.call('clear_invalid_dates')
        for dtr in (ancient, future, valid):
            dtr.refresh_from_db()
        self.assertIsNone(ancient.error_date)
        self.assertIsNone(future.error_date)
        self.assertEqual(valid.error_date, timezone.localdate())

    def test_inspect_data(self):
        TestDataFactory.create_projector(serial_number='INSPECT-1')
        output = self.call('inspect_data')
        self.assertIn('Projectors', output)
        self.assertIn('INSPECT-1', output)

    @patch('backend.core.management.commands.check_server.requests.Session')
    def test_check_server_health_only(self, session_class):
        session_class.return_value.get.return_value = MagicMock(status_code=200)
        output = self.call('check_server', '--base-url', 'http://api.local/api/v1/')
        self.assertIn('Server is up', output)
        session_class.return_value.get.assert_called_once_with('http://api.local/api/v1/health/', timeout=10)

    @patch('backend.core.management.commands.check_server.requests.Session')
    def test_check_server_health_failure(self, session_class):
        session_class.return_value.get.return_value = MagicMock(status_code=503)
        with self.assertRaises(CommandError):
            self.call('check_server')
