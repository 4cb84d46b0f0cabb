"""
Test suite for the reports app
Tests: value normalisation, CSV export, text/PDF service report export, dashboard KPIs
"""
from datetime import date, datetime
from unittest.mock import patch

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status

from backend.core.cache_utils import DASHBOARD_KPI_CACHE_KEY, cache_dashboard_kpis
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .csv_export import convert_to_csv
from .formatting import format_date, format_datetime, safe_value, safe_access, first_present
from .pdf_export import export_report, export_filename, _issue_rows, _part_rows
from .text_export import build_report_text


@override_settings(TIME_ZONE='Asia/Kolkata')
class FormattingTests(SimpleTestCase):
    """Date and value normalisation"""

    def test_format_date_from_epoch_milliseconds(self):
        self.assertEqual(format_date(1709596800000), '05/03/2024')

    def test_format_date_from_iso_strings(self):
        self.assertEqual(format_date('2024-03-05'), '05/03/2024')
        # 20:00 UTC is already the next day in IST
        self.assertEqual(format_date('2024-03-05T20:00:00Z'), '06/03/2024')

    def test_format_date_from_date_objects(self):
        self.assertEqual(format_date(date(2024, 1, 9)), '09/01/2024')
        self.assertEqual(format_date(datetime(2024, 1, 9, 23, 59)), '09/01/2024')

    def test_format_date_empty_uses_fallback(self):
        self.assertEqual(format_date(None), '-')
        self.assertEqual(format_date(''), '-')
        self.assertEqual(format_date(None, 'N/A'), 'N/A')

    def test_format_date_echoes_unparseable_input(self):
        self.assertEqual(format_date('2024-13-45'), '2024-13-45')
        self.assertEqual(format_date('next tuesday'), 'next tuesday')

    def test_format_datetime(self):
        self.assertEqual(format_datetime('2024-03-05T10:00:00Z'), '05/03/2024 15:30')
        self.assertEqual(format_datetime(None), 'Not recorded')
        self.assertEqual(format_datetime('2024-03-05'), '05/03/2024')

    def test_safe_value_keeps_falsy_values(self):
        self.assertEqual(safe_value(0), '0')
        self.assertEqual(safe_value(False), 'False')
        self.assertEqual(safe_value(None), '-')
        self.assertEqual(safe_value('', 'none'), 'none')

    def test_safe_access_nested_paths(self):
        data = {'engineer': {'name': 'Ravi'}, 'parts': [{'name': 'Lamp'}], 'empty': None}
        self.assertEqual(safe_access(data, 'engineer.name'), 'Ravi')
        self.assertEqual(safe_access(data, ['parts', 0, 'name']), 'Lamp')
        self.assertEqual(safe_access(data, 'parts.0.name'), 'Lamp')
        self.assertEqual(safe_access(data, 'parts.5.name'), '-')
        self.assertEqual(safe_access(data, 'empty.value', 'x'), 'x')
        self.assertEqual(safe_access(None, 'anything'), '-')

    def test_first_present(self):
        data = {'engineerName': '', 'technician': {'name': 'Asha'}}
        self.assertEqual(first_present(data, ['engineer.name', 'engineerName', 'technician.name']), 'Asha')
        self.assertEqual(first_present({}, ['a', 'b'], 'none'), 'none')


class CSVExportTests(SimpleTestCase):
    """convert_to_csv"""

    def test_empty_input(self):
        self.assertEqual(convert_to_csv([]), '')
        self.assertEqual(convert_to_csv(None), '')

    def test_header_row_and_quoted_cells(self):
        records = [
            {'Name': 'Lamp', 'Qty': 2},
            {'Name': 'Filter', 'Qty': 0},
        ]
        self.assertEqual(convert_to_csv(records), 'Name,Qty\n"Lamp","2"\n"Filter","0"')

    def test_missing_values_are_empty_quotes(self):
        records = [{'a': None, 'b': ''}]
        self.assertEqual(convert_to_csv(records), 'a,b\n"",""')

    def test_explicit_headers_select_and_order_columns(self):
        records = [{'b': 'two', 'a': 'one', 'c': 'skip'}]
        self.assertEqual(convert_to_csv(records, headers=['a', 'b', 'z']), 'a,b,z\n"one","two",""')

    def test_embedded_comma_is_not_escaped(self):
        csv_text = convert_to_csv([{'Site': 'PVR, Saket'}])
        lines = csv_text.split('\n')
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[1], '"PVR, Saket"')
        self.assertFalse(csv_text.endswith('\n'))


class TextExportTests(SimpleTestCase):
    """Plain-text service report rendition"""

    def test_empty_report_uses_defaults(self):
        text = build_report_text({})
        self.assertIn('Report Number: -', text)
        self.assertIn('Work Performed: Standard maintenance performed', text)
        self.assertIn('- No issues found', text)
        self.assertIn('- No parts used', text)
        self.assertIn('Recommendations: No specific recommendations', text)
        self.assertIn('No voltage measurements recorded', text)
        self.assertIn('No lamp power measurements recorded', text)
        self.assertIn('Engineer Signature: Not signed', text)
        self.assertIn('Service Start Time: Not recorded', text)
        self.assertIn('Photos Taken: 0 photos', text)

    def test_non_mapping_report_does_not_raise(self):
        self.assertIn('Report Number: -', build_report_text(None))

    @override_settings(TIME_ZONE='Asia/Kolkata')
    def test_populated_report(self):
        report = {
            'reportNumber': 'RPT-001',
            'date': '2024-03-05',
            'engineer': {'name': 'Ravi Kumar'},
            'projectorSerial': 'SN123',
            'replacementRequired': True,
            'issuesFound': [{'description': 'Dust on lens'}, 'Fan noise'],
            'partsUsed': [{'partName': 'Air filter'}],
            'voltageParameters': {'pVsN': 230},
            'signatures': {'customer': {'name': 'Site Manager'}},
            'photos': [{}, {}, {}],
        }
        text = build_report_text(report)
        self.assertIn('Report Number: RPT-001', text)
        self.assertIn('Date: 05/03/2024', text)
        self.assertIn('Engineer: Ravi Kumar', text)
        self.assertIn('Replacement Required: Yes', text)
        self.assertIn('- Dust on lens', text)
        self.assertIn('- Fan noise', text)
        self.assertIn('- Air filter', text)
        self.assertIn('pVsN: 230V', text)
        self.assertIn('Customer Signature: Signed by Site Manager', text)
        self.assertIn('Photos Taken: 3 photos', text)


class ReportExportTests(SimpleTestCase):
    """export_report PDF rendition and text fallback"""

    def test_export_filename(self):
        self.assertEqual(
            export_filename({'reportNumber': 'RPT-7'}, 'pdf', today=date(2024, 3, 5)),
            'ASCOMP_Report_RPT-7_2024-03-05.pdf'
        )
        self.assertEqual(export_filename({}, 'txt', today=date(2024, 3, 5)), 'ASCOMP_Report_-_2024-03-05.txt')

    def test_export_filename_replaces_header_breaking_characters(self):
        filename = export_filename({'reportNumber': 'RPT "7"/A;x'}, 'pdf', today=date(2024, 3, 5))
        self.assertEqual(filename, 'ASCOMP_Report_RPT__7__A_x_2024-03-05.pdf')
        self.assertNotIn('"', filename)

    def test_plain_string_issues_and_parts_render_as_one_row(self):
        self.assertEqual(_issue_rows({'issuesFound': 'Lamp flicker'}), [['Lamp flicker', '-', '-']])
        self.assertEqual(_part_rows({'partsUsed': 'Air filter'}, 'partsUsed'), [['Air filter', '-', '-']])
        self.assertEqual(_issue_rows({'issuesFound': ''}), [])
        self.assertEqual(len(_part_rows({'recommendedParts': ['Lamp', {'partName': 'Filter'}]}, 'recommendedParts')), 2)

    def test_pdf_export(self):
        artifact = export_report({
            'reportNumber': 'RPT-1',
            'siteName': 'PVR <Saket> & Co',
            'issuesFound': [{'description': 'Lens dirty', 'severity': 'Low', 'resolved': True}],
            'sections': {'opticals': [{'description': 'Lens', 'status': 'OK', 'result': 'Cleaned'}]},
        })
        self.assertEqual(artifact.format, 'pdf')
        self.assertEqual(artifact.content_type, 'application/pdf')
        self.assertTrue(artifact.content.startswith(b'%PDF'))
        self.assertTrue(artifact.filename.endswith('.pdf'))

    def test_prefer_text(self):
        artifact = export_report({'reportNumber': 'RPT-2'}, prefer_text=True)
        self.assertEqual(artifact.format, 'text')
        self.assertEqual(artifact.content_type, 'text/plain; charset=utf-8')
        self.assertIn(b'Report Number: RPT-2', artifact.content)

    def test_falls_back_to_text_when_pdf_fails(self):
        with patch('backend.reports.pdf_export.render_report_pdf', side_effect=RuntimeError('font missing')):
            with self.assertLogs('backend.reports', level='WARNING') as logs:
                artifact = export_report({'reportNumber': 'RPT-3'})
        self.assertEqual(artifact.format, 'text')
        self.assertTrue(artifact.filename.endswith('.txt'))
        self.assertIn(b'Report Number: RPT-3', artifact.content)
        self.assertIn('falling back to text', logs.output[0])


class CSVExportAPITests(TestCase):
    """CSV download endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(role='rma_manager')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_export_rmas(self):
        TestDataFactory.create_rma(site_name='PVR, Saket')
        TestDataFactory.create_rma(case_status='Completed')
        response = self.client.get('/api/v1/reports/export/rmas/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        self.assertIn('attachment; filename="rma_export_', response['Content-Disposition'])
        lines = response.content.decode('utf-8').split('\n')
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith('RMA Number,Call Log Number'))

    def test_export_rmas_with_filter(self):
        TestDataFactory.create_rma(case_status='Under Review')
        TestDataFactory.create_rma(case_status='Completed')
        response = self.client.get('/api/v1/reports/export/rmas/?case_status=Completed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.content.decode('utf-8').split('\n')), 2)

    def test_export_with_no_rows_is_empty(self):
        response = self.client.get('/api/v1/reports/export/dtrs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.content, b'')

    def test_export_dtrs_and_projectors(self):
        dtr = TestDataFactory.create_dtr()
        response = self.client.get('/api/v1/reports/export/dtrs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(dtr.case_id, response.content.decode('utf-8'))

        response = self.client.get('/api/v1/reports/export/projectors/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(dtr.projector.serial_number, response.content.decode('utf-8'))

    def test_export_service_reports(self):
        TestDataFactory.create_report(report_number='RPT-CSV-1')
        response = self.client.get('/api/v1/reports/export/service-reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('"RPT-CSV-1"', response.content.decode('utf-8'))

    def test_export_service_reports_date_filters(self):
        TestDataFactory.create_report(report_number='RPT-MAR', date=date(2024, 3, 5))
        TestDataFactory.create_report(report_number='RPT-MAY', date=date(2024, 5, 5))
        response = self.client.get('/api/v1/reports/export/service-reports/?date_to=2024-03-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        content = response.content.decode('utf-8')
        self.assertIn('"RPT-MAR"', content)
        self.assertNotIn('"RPT-MAY"', content)

    def test_export_with_malformed_date_is_bad_request(self):
        response = self.client.get('/api/v1/reports/export/service-reports/?date_from=notadate')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date_from', response.data['details'])
        self.assertFalse(AuditLog.objects.filter(action='report_export').exists())

    def test_export_is_audited(self):
        TestDataFactory.create_rma()
        self.client.get('/api/v1/reports/export/rmas/')
        self.assertTrue(AuditLog.objects.filter(action='report_export', model_name='RMA').exists())

    def test_field_roles_cannot_export(self):
        fse = TestDataFactory.create_user(role='fse')
        self.client.authenticate_user(fse)
        for url in ('/api/v1/reports/export/rmas/', '/api/v1/reports/export/dtrs/',
                    '/api/v1/reports/export/projectors/', '/api/v1/reports/export/service-reports/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/reports/export/rmas/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ServiceReportExportAPITests(TestCase):
    """Single report download"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.report = TestDataFactory.create_report(report_number='RPT-100')

    def test_pdf_download(self):
        response = self.client.get(f'/api/v1/service-reports/{self.report.id}/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertEqual(response['X-Export-Format'], 'pdf')
        self.assertIn('ASCOMP_Report_RPT-100_', response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_text_download(self):
        response = self.client.get(f'/api/v1/service-reports/{self.report.id}/export/?format=text')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Export-Format'], 'text')
        self.assertIn('Report Number: RPT-100', response.content.decode('utf-8'))

    def test_pdf_failure_returns_text(self):
        with patch('backend.reports.pdf_export.render_report_pdf', side_effect=ValueError('bad layout')):
            response = self.client.get(f'/api/v1/service-reports/{self.report.id}/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Export-Format'], 'text')
        self.assertIn('.txt', response['Content-Disposition'])

    def test_missing_report(self):
        response = self.client.get('/api/v1/service-reports/999999/export/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DashboardKPITests(TestCase):
    """Dashboard KPI endpoint and cache invalidation"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        cache.clear()

    def test_dashboard_kpis(self):
        projector = TestDataFactory.create_projector()
        TestDataFactory.create_dtr(projector=projector)
        TestDataFactory.create_rma(case_status='Completed')
        TestDataFactory.create_rma(case_status='Under Review')
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['projectors']['total'], 1)
        self.assertEqual(response.data['dtrs']['by_status'], {'Open': 1})
        self.assertEqual(response.data['rmas']['total'], 2)
        self.assertEqual(response.data['rmas']['active'], 1)
        for section in ('sites', 'service_visits', 'service_reports'):
            self.assertIn(section, response.data)

    def test_response_is_cached(self):
        self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertIsNotNone(cache.get(DASHBOARD_KPI_CACHE_KEY))

        cache_dashboard_kpis({'cached': True})
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.data, {'cached': True})

    def test_model_change_invalidates_cache(self):
        cache_dashboard_kpis({'cached': True})
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_site()
        self.assertIsNone(cache.get(DASHBOARD_KPI_CACHE_KEY))
