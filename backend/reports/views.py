import logging
from datetime import timedelta
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.cache_utils import get_cached_dashboard_kpis, cache_dashboard_kpis
from backend.core.utils import create_audit_log, user_has_role
from backend.projectors.filters import ProjectorFilter
from backend.projectors.models import Projector
from backend.rma.filters import DTRFilter, RMAFilter
from backend.rma.models import DTR, RMA
from backend.services.filters import ServiceReportFilter
from backend.services.models import ServiceVisit, ServiceReport
from backend.sites.models import Site
from .csv_export import csv_response
from .formatting import safe_value, format_date
from .pdf_export import export_report

logger = logging.getLogger('backend.reports')

REPORT_ROLES = ('admin', 'rma_manager', 'technical_head')

RMA_EXPORT_HEADERS = [
    'RMA Number', 'Call Log Number', 'RMA Order Number', 'Raised Date', 'Customer Error Date',
    'Site Name', 'Product Name', 'Product Part Number', 'Serial Number',
    'Defective Part Number', 'Defective Part Name', 'Replaced Part Number', 'Replaced Part Name',
    'Symptoms', 'Case Status', 'Approval Status', 'Priority', 'Warranty Status',
    'Outbound Tracking', 'Outbound Carrier', 'Shipped Date', 'Return Tracking', 'Return Carrier',
    'Completed Date',
]
DTR_EXPORT_HEADERS = [
    'Case ID', 'Serial Number', 'Site Name', 'Unit Model', 'Problem Name', 'Complaint Description',
    'Complaint Date', 'Error Date', 'Opened By', 'Priority', 'Status', 'Call Status', 'Case Severity',
    'Assigned To', 'Action Taken', 'Remarks', 'RMA Number',
]
PROJECTOR_EXPORT_HEADERS = [
    'Projector Number', 'Serial Number', 'Brand', 'Model', 'Site', 'Site Code', 'Auditorium',
    'Install Date', 'Warranty End', 'Warranty Status', 'Status', 'Condition', 'Last Service',
    'Next Service', 'Total Services', 'Hours Used',
]
SERVICE_REPORT_EXPORT_HEADERS = [
    'Report Number', 'Report Type', 'Date', 'Site Name', 'Engineer', 'Projector Serial',
    'Projector Model', 'Brand', 'Lamp Model', 'Lamp Running Hours', 'Replacement Required',
    'Work Performed', 'Recommendations',
]


def _export_filename(prefix):
    return f"{prefix}_{timezone.localdate().isoformat()}.csv"


def _forbidden_export(request, what):
    logger.warning(f"User {request.user.username} ({request.user.role}) attempted to export {what}")
    return Response({'error': 'You do not have permission to export reports'}, status=status.HTTP_403_FORBIDDEN)


def rma_export_row(rma):
    return {
        'RMA Number': safe_value(rma.rma_number),
        'Call Log Number': safe_value(rma.call_log_number),
        'RMA Order Number': safe_value(rma.rma_order_number),
        'Raised Date': format_date(rma.ascomp_raised_date),
        'Customer Error Date': format_date(rma.customer_error_date),
        'Site Name': safe_value(rma.site_name),
        'Product Name': safe_value(rma.product_name),
        'Product Part Number': safe_value(rma.product_part_number),
        'Serial Number': safe_value(rma.serial_number),
        'Defective Part Number': safe_value(rma.defective_part_number),
        'Defective Part Name': safe_value(rma.defective_part_name),
        'Replaced Part Number': safe_value(rma.replaced_part_number),
        'Replaced Part Name': safe_value(rma.replaced_part_name),
        'Symptoms': safe_value(rma.symptoms),
        'Case Status': rma.case_status,
        'Approval Status': rma.approval_status,
        'Priority': rma.priority,
        'Warranty Status': rma.warranty_status,
        'Outbound Tracking': safe_value(rma.outbound_tracking_number),
        'Outbound Carrier': safe_value(rma.outbound_carrier),
        'Shipped Date': format_date(rma.outbound_shipped_date),
        'Return Tracking': safe_value(rma.return_tracking_number),
        'Return Carrier': safe_value(rma.return_carrier),
        'Completed Date': format_date(rma.completed_date),
    }


def dtr_export_row(dtr):
    return {
        'Case ID': dtr.case_id,
        'Serial Number': safe_value(dtr.serial_number),
        'Site Name': safe_value(dtr.site_name),
        'Unit Model': safe_value(dtr.unit_model),
        'Problem Name': safe_value(dtr.problem_name),
        'Complaint Description': safe_value(dtr.complaint_description),
        'Complaint Date': format_date(dtr.complaint_date),
        'Error Date': format_date(dtr.error_date),
        'Opened By': safe_value(dtr.opened_by),
        'Priority': dtr.priority,
        'Status': dtr.status,
        'Call Status': safe_value(dtr.call_status),
        'Case Severity': safe_value(dtr.case_severity),
        'Assigned To': safe_value(dtr.assigned_to.username if dtr.assigned_to else None),
        'Action Taken': safe_value(dtr.action_taken),
        'Remarks': safe_value(dtr.remarks),
        'RMA Number': safe_value(dtr.rma.rma_number if dtr.rma else None),
    }


def projector_export_row(projector):
    return {
        'Projector Number': safe_value(projector.projector_number),
        'Serial Number': projector.serial_number,
        'Brand': safe_value(projector.brand),
        'Model': safe_value(projector.model),
        'Site': projector.site.name,
        'Site Code': projector.site.site_code,
        'Auditorium': safe_value(projector.auditorium.name if projector.auditorium else None),
        'Install Date': format_date(projector.install_date),
        'Warranty End': format_date(projector.warranty_end),
        'Warranty Status': projector.warranty_status,
        'Status': projector.status,
        'Condition': projector.condition,
        'Last Service': format_date(projector.last_service),
        'Next Service': format_date(projector.next_service),
        'Total Services': projector.total_services,
        'Hours Used': projector.hours_used,
    }


def service_report_export_row(report):
    return {
        'Report Number': report.report_number,
        'Report Type': report.report_type,
        'Date': format_date(report.date),
        'Site Name': safe_value(report.site_name),
        'Engineer': safe_value(report.engineer_name),
        'Projector Serial': safe_value(report.projector_serial),
        'Projector Model': safe_value(report.projector_model),
        'Brand': safe_value(report.brand),
        'Lamp Model': safe_value(report.lamp_model),
        'Lamp Running Hours': safe_value(report.lamp_running_hours),
        'Replacement Required': 'Yes' if report.replacement_required else 'No',
        'Work Performed': safe_value(report.work_performed),
        'Recommendations': safe_value(report.recommendations),
    }


def _log_export(request, model_name, count):
    create_audit_log(request=request, action='report_export', model_name=model_name,
                     object_id='csv', object_name=f"{count} rows")
    logger.info(f"User {request.user.username} exported {count} {model_name} rows as CSV")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_rmas(request):
    """RMA list as CSV; accepts the RMA list filters"""
    if not user_has_role(request.user, *REPORT_ROLES):
        return _forbidden_export(request, 'RMAs')
    try:
        queryset = RMAFilter(request.query_params, queryset=RMA.objects.all()).qs
        rows = [rma_export_row(rma) for rma in queryset]
        _log_export(request, 'RMA', len(rows))
        return csv_response(rows, _export_filename('rma_export'), headers=RMA_EXPORT_HEADERS)
    except Exception as e:
        logger.error(f"Error exporting RMAs: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_dtrs(request):
    """DTR list as CSV; accepts the DTR list filters"""
    if not user_has_role(request.user, *REPORT_ROLES):
        return _forbidden_export(request, 'DTRs')
    try:
        queryset = DTRFilter(
            request.query_params, queryset=DTR.objects.select_related('assigned_to', 'rma')
        ).qs
        rows = [dtr_export_row(dtr) for dtr in queryset]
        _log_export(request, 'DTR', len(rows))
        return csv_response(rows, _export_filename('dtr_export'), headers=DTR_EXPORT_HEADERS)
    except Exception as e:
        logger.error(f"Error exporting DTRs: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_projectors(request):
    if not user_has_role(request.user, *REPORT_ROLES):
        return _forbidden_export(request, 'projectors')
    try:
        queryset = ProjectorFilter(
            request.query_params, queryset=Projector.objects.select_related('site', 'auditorium')
        ).qs
        rows = [projector_export_row(p) for p in queryset]
        _log_export(request, 'Projector', len(rows))
        return csv_response(rows, _export_filename('projector_export'), headers=PROJECTOR_EXPORT_HEADERS)
    except Exception as e:
        logger.error(f"Error exporting projectors: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_service_reports(request):
    if not user_has_role(request.user, *REPORT_ROLES):
        return _forbidden_export(request, 'service reports')
    try:
        filterset = ServiceReportFilter(request.query_params, queryset=ServiceReport.objects.all())
        if not filterset.is_valid():
            return Response({'error': 'Invalid filter parameters', 'details': filterset.errors},
                            status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs
        rows = [service_report_export_row(r) for r in queryset]
        _log_export(request, 'ServiceReport', len(rows))
        return csv_response(rows, _export_filename('service_report_export'), headers=SERVICE_REPORT_EXPORT_HEADERS)
    except Exception as e:
        logger.error(f"Error exporting service reports: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def service_report_export(request, pk):
    """
    Download a service report.

    Returns a PDF; ?format=text asks for the plain-text rendition. When the
    PDF renderer fails the text rendition is returned instead.
    """
    report = get_object_or_404(ServiceReport.objects.select_related('visit'), pk=pk)
    prefer_text = request.query_params.get('format') == 'text'

    artifact = export_report(report.to_export_dict(), prefer_text=prefer_text)

    create_audit_log(request=request, action='report_export', model_name='ServiceReport',
                     object_id=report.id, object_name=report.report_number,
                     changes={'format': artifact.format})
    logger.info(f"User {request.user.username} exported report {report.report_number} as {artifact.format}")

    response = HttpResponse(artifact.content, content_type=artifact.content_type)
    response['Content-Disposition'] = f'attachment; filename="{artifact.filename}"'
    response['X-Export-Format'] = artifact.format
    return response


def _dashboard_kpis():
    today = timezone.localdate()
    month_start = today.replace(day=1)
    upcoming_until = today + timedelta(days=30)

    projectors_by_status = {
        row['status']: row['count']
        for row in Projector.objects.values('status').annotate(count=Count('id'))
    }
    dtrs_by_status = {
        row['status']: row['count']
        for row in DTR.objects.values('status').annotate(count=Count('id'))
    }
    rmas_by_status = {
        row['case_status']: row['count']
        for row in RMA.objects.values('case_status').annotate(count=Count('id'))
    }
    rma_total = sum(rmas_by_status.values())

    return {
        'generated_at': timezone.now().isoformat(),
        'sites': {
            'total': Site.objects.count(),
            'active': Site.objects.filter(status='Active').count(),
        },
        'projectors': {
            'total': sum(projectors_by_status.values()),
            'by_status': projectors_by_status,
            'in_warranty': Projector.objects.filter(warranty_end__gte=today).count(),
            'warranty_expiring_30d': Projector.objects.filter(
                warranty_end__gte=today, warranty_end__lte=upcoming_until
            ).count(),
            'service_due_30d': Projector.objects.filter(
                next_service__isnull=False, next_service__lte=upcoming_until
            ).count(),
        },
        'service_visits': {
            'scheduled': ServiceVisit.objects.filter(status='Scheduled').count(),
            'in_progress': ServiceVisit.objects.filter(status='In Progress').count(),
            'completed_this_month': ServiceVisit.objects.filter(
                status='Completed', actual_date__gte=month_start
            ).count(),
            'unable_to_complete': ServiceVisit.objects.filter(status='Unable to Complete').count(),
        },
        'service_reports': {
            'total': ServiceReport.objects.count(),
            'this_month': ServiceReport.objects.filter(date__gte=month_start).count(),
        },
        'dtrs': {
            'total': sum(dtrs_by_status.values()),
            'by_status': dtrs_by_status,
        },
        'rmas': {
            'total': rma_total,
            'active': rma_total - sum(rmas_by_status.get(s, 0) for s in RMA.CLOSED_STATUSES),
            'by_status': rmas_by_status,
        },
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Fleet, visit, DTR and RMA counters for the dashboard (cached)"""
    try:
        cached = get_cached_dashboard_kpis()
    except Exception as e:
        logger.warning(f"Cache unavailable, proceeding without cache: {e}")
        cached = None
    if cached is not None:
        return Response(cached)

    try:
        data = _dashboard_kpis()
    except Exception as e:
        logger.error(f"Error computing dashboard KPIs: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    try:
        cache_dashboard_kpis(data)
    except Exception as e:
        logger.warning(f"Unable to cache dashboard KPIs: {e}")
    return Response(data)
