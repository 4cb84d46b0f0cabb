import logging
from datetime import date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.utils import create_audit_log, user_has_role
from backend.projectors.models import Projector
from .filters import DTRFilter, RMAFilter
from .models import DTR, RMA
from .serializers import DTRSerializer, DTRCreateSerializer, RMASerializer, TroubleshootingStepSerializer

logger = logging.getLogger('backend.rma')

User = get_user_model()

FIELD_ROLES = User.FIELD_ROLES


def _paginate(request, queryset, serializer_class, default_limit=10):
    page = int(request.query_params.get('page', 1))
    limit = int(request.query_params.get('limit', default_limit))
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


def _months_back(today, months):
    """First day of the month `months` before today's month"""
    index = today.year * 12 + (today.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def _is_field_user(user):
    return not user.is_superuser and user.role in FIELD_ROLES


# DTR views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def dtr_list_create(request):
    """List DTRs (filtered, paginated) or open a new one (admin / RMA manager)"""
    try:
        if request.method == 'GET':
            queryset = DTR.objects.select_related('assigned_to', 'rma').all()
            queryset = DTRFilter(request.query_params, queryset=queryset).qs
            return _paginate(request, queryset, DTRSerializer)

        if not user_has_role(request.user, 'admin', 'rma_manager'):
            logger.warning(f"User {request.user.username} ({request.user.role}) attempted to create a DTR")
            return Response({'error': 'Insufficient permissions. Only RMA Managers can create DTRs.'},
                            status=status.HTTP_403_FORBIDDEN)

        serializer = DTRCreateSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"DTR creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        projector = Projector.objects.select_related('site').filter(serial_number=data['serial_number']).first()
        if not projector:
            return Response({'error': 'Projector with this serial number not found'},
                            status=status.HTTP_400_BAD_REQUEST)

        dtr = serializer.save(
            projector=projector,
            opened_by=data.get('opened_by') or request.user.username,
            site_name=projector.site.name,
            site_code=projector.site.site_code,
            region=projector.site.region,
            unit_model=data.get('unit_model') or projector.model,
            problem_name=data.get('problem_name') or data['complaint_description'][:255],
            error_date=data.get('error_date') or timezone.localdate(),
            assigned_date=timezone.now() if data.get('assigned_to') else None,
        )
        create_audit_log(request=request, action='create', model_name='DTR',
                         object_id=dtr.id, object_name=dtr.serial_number, object_reference=dtr.case_id)
        logger.info(f"DTR {dtr.case_id} opened for {dtr.serial_number} by {request.user.username}")
        return Response(DTRSerializer(dtr).data, status=status.HTTP_201_CREATED)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in dtr_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def dtr_detail(request, pk):
    """Retrieve, update or delete a DTR"""
    dtr = get_object_or_404(DTR.objects.select_related('assigned_to', 'rma'), pk=pk)

    if request.method == 'GET':
        return Response(DTRSerializer(dtr).data)

    if request.method in ('PUT', 'PATCH'):
        if _is_field_user(request.user) and dtr.assigned_to_id != request.user.id:
            return Response({'error': 'You can only update DTRs assigned to you'}, status=status.HTTP_403_FORBIDDEN)
        old_status = dtr.status
        serializer = DTRSerializer(dtr, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            dtr = serializer.save()
            if old_status != dtr.status:
                if dtr.status == 'Closed' and not dtr.closed_reason:
                    dtr.closed_reason = request.data.get('closed_reason') or 'Resolved'
                dtr.add_history('status_changed', request.user, f"Status changed from {old_status} to {dtr.status}",
                                new_value=dtr.status)
                dtr.save(update_fields=['closed_reason', 'workflow_history', 'updated_at'])
                create_audit_log(request=request, action='status_change', model_name='DTR',
                                 object_id=dtr.id, object_reference=dtr.case_id,
                                 changes={'status': [old_status, dtr.status]})
            return Response(DTRSerializer(dtr).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not user_has_role(request.user, 'admin', 'rma_manager'):
        return Response({'error': 'Only administrators and RMA managers can delete DTRs'},
                        status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='DTR',
                     object_id=dtr.id, object_name=dtr.serial_number, object_reference=dtr.case_id)
    dtr.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dtr_add_troubleshooting(request, pk):
    """Append a numbered troubleshooting step"""
    dtr = get_object_or_404(DTR, pk=pk)

    if _is_field_user(request.user):
        if dtr.assigned_to_id != request.user.id:
            return Response({'error': 'You can only add troubleshooting steps to DTRs assigned to you'},
                            status=status.HTTP_403_FORBIDDEN)
    elif not user_has_role(request.user, 'admin'):
        return Response({'error': 'Insufficient permissions to add troubleshooting steps'},
                        status=status.HTTP_403_FORBIDDEN)

    serializer = TroubleshootingStepSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    steps = list(dtr.troubleshooting_steps or [])
    step = {
        'step': len(steps) + 1,
        'description': serializer.validated_data['description'],
        'outcome': serializer.validated_data['outcome'],
        'performed_by': request.user.username,
        'performed_at': timezone.now().isoformat(),
        'attachments': serializer.validated_data.get('attachments', []),
    }
    steps.append(step)
    dtr.troubleshooting_steps = steps
    if dtr.status == 'Open':
        dtr.status = 'In Progress'
    dtr.add_history('troubleshooting_added', request.user, f"Added troubleshooting step {step['step']}")
    dtr.save()

    create_audit_log(request=request, action='dtr_troubleshoot', model_name='DTR',
                     object_id=dtr.id, object_reference=dtr.case_id, changes={'step': step['step']})
    return Response(DTRSerializer(dtr).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dtr_assign_technician(request, pk):
    """Assign a technician or engineer to a DTR"""
    dtr = get_object_or_404(DTR, pk=pk)

    if not user_has_role(request.user, 'admin', 'rma_manager', 'technical_head'):
        return Response({'error': 'Insufficient permissions to assign DTRs'}, status=status.HTTP_403_FORBIDDEN)

    technician_id = request.data.get('technician_id')
    if not technician_id:
        return Response({'error': 'technician_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    technician = User.objects.filter(pk=technician_id, is_active=True).first()
    if not technician:
        return Response({'error': 'Technician not found'}, status=status.HTTP_400_BAD_REQUEST)
    if technician.role not in FIELD_ROLES + ('technical_head',):
        return Response({'error': f"User {technician.username} is not a technician or engineer"},
                        status=status.HTTP_400_BAD_REQUEST)

    previous = dtr.assigned_to.username if dtr.assigned_to else None
    dtr.assigned_to = technician
    dtr.assigned_date = timezone.now()
    if dtr.status == 'Open':
        dtr.status = 'In Progress'
    dtr.add_history('assigned', request.user, f"Assigned to {technician.username}", new_value=technician.username)
    dtr.save()

    create_audit_log(request=request, action='dtr_assign', model_name='DTR',
                     object_id=dtr.id, object_reference=dtr.case_id,
                     changes={'assigned_to': [previous, technician.username]})
    logger.info(f"DTR {dtr.case_id} assigned to {technician.username} by {request.user.username}")
    return Response(DTRSerializer(dtr).data)


def _troubleshooting_history(dtr):
    steps = dtr.troubleshooting_steps or []
    if not steps:
        return ''
    lines = ['', '', 'Troubleshooting History:']
    for step in steps:
        performed_at = step.get('performed_at') or ''
        lines.append('')
        lines.append(f"Step {step.get('step')}: {step.get('description')}")
        lines.append(f"Outcome: {step.get('outcome')}")
        lines.append(f"Performed by: {step.get('performed_by')} on {performed_at[:10]}")
    return '\n'.join(lines)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dtr_convert_to_rma(request, pk):
    """Shift an unresolved DTR into a new RMA case"""
    dtr = get_object_or_404(DTR.objects.select_related('projector'), pk=pk)

    if dtr.status == 'Shifted to RMA' and dtr.rma_id:
        return Response({'error': 'DTR already converted to RMA', 'rma_number': dtr.rma.rma_number},
                        status=status.HTTP_400_BAD_REQUEST)

    if _is_field_user(request.user):
        if dtr.assigned_to_id != request.user.id:
            return Response({'error': 'You can only convert DTRs assigned to you to RMA'},
                            status=status.HTTP_403_FORBIDDEN)
    elif not user_has_role(request.user, 'admin', 'rma_manager'):
        return Response({'error': 'Insufficient permissions to convert DTR to RMA'},
                        status=status.HTTP_403_FORBIDDEN)

    try:
        projector = dtr.projector
        additional_notes = request.data.get('additional_notes', '')
        today = timezone.localdate()
        with transaction.atomic():
            rma = RMA.objects.create(
                call_log_number=f"DTR-{dtr.case_id}",
                rma_order_number=f"ORDER-{dtr.case_id}",
                ascomp_raised_date=today,
                customer_error_date=min(dtr.error_date or timezone.localdate(dtr.complaint_date), today),
                site_name=dtr.site_name,
                product_name=dtr.unit_model or projector.model or 'Unknown',
                product_part_number=projector.part_number or 'N/A',
                serial_number=dtr.serial_number,
                defective_part_number=projector.part_number or 'N/A',
                defective_part_name=dtr.problem_name or 'Projector Component',
                defective_serial_number=dtr.serial_number,
                symptoms=f"{dtr.complaint_description}{_troubleshooting_history(dtr)}",
                priority='High' if dtr.priority == 'Critical' else dtr.priority,
                warranty_status='In Warranty' if projector.warranty_status == 'In Warranty' else 'Out of Warranty',
                notes=(
                    f"Auto-generated from DTR: {dtr.case_id}\n\n"
                    f"Original Complaint: {dtr.complaint_description}\n\n"
                    f"Action Taken: {dtr.action_taken or 'N/A'}\n\n"
                    f"Remarks: {dtr.remarks or 'N/A'}\n\n"
                    f"{additional_notes}"
                ).rstrip(),
                created_by=request.user,
                originated_from_dtr=dtr,
            )
            dtr.status = 'Shifted to RMA'
            dtr.closed_reason = 'Shifted to RMA'
            dtr.rma = rma
            dtr.add_history('converted_to_rma', request.user, f"Converted to RMA {rma.rma_number}",
                            new_value=rma.rma_number)
            dtr.save()
    except Exception as e:
        logger.error(f"Error converting DTR {dtr.case_id} to RMA: {str(e)}", exc_info=True)
        return Response({'error': 'Error converting DTR to RMA'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='dtr_convert', model_name='DTR',
                     object_id=dtr.id, object_reference=dtr.case_id,
                     changes={'rma_number': rma.rma_number})
    logger.info(f"DTR {dtr.case_id} converted to {rma.rma_number} by {request.user.username}")
    return Response({
        'message': 'DTR successfully converted to RMA',
        'dtr': DTRSerializer(dtr).data,
        'rma': RMASerializer(rma).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dtr_stats(request):
    """Totals by status, priority breakdown and six-month trend"""
    by_status = {row['status']: row['count'] for row in DTR.objects.values('status').annotate(count=Count('id'))}
    priority_breakdown = list(
        DTR.objects.values('priority').annotate(count=Count('id')).order_by('priority')
    )

    since = _months_back(timezone.localdate(), 6)
    trend = (
        DTR.objects.filter(complaint_date__date__gte=since)
        .annotate(month=TruncMonth('complaint_date'))
        .values('month')
        .annotate(count=Count('id'))
        .order_by('month')
    )
    monthly_trend = [
        {'year': row['month'].year, 'month': row['month'].month, 'count': row['count']}
        for row in trend
    ]

    return Response({
        'total': sum(by_status.values()),
        'open': by_status.get('Open', 0),
        'in_progress': by_status.get('In Progress', 0),
        'closed': by_status.get('Closed', 0),
        'shifted_to_rma': by_status.get('Shifted to RMA', 0),
        'priority_breakdown': priority_breakdown,
        'monthly_trend': monthly_trend,
    })


# RMA views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def rma_list_create(request):
    """List RMAs (filtered, paginated) or raise a new one"""
    try:
        if request.method == 'GET':
            queryset = RMA.objects.select_related('created_by', 'originated_from_dtr').all()
            queryset = RMAFilter(request.query_params, queryset=queryset).qs
            return _paginate(request, queryset, RMASerializer)

        if not user_has_role(request.user, 'admin', 'rma_manager', 'technical_head'):
            return Response({'error': 'Insufficient permissions to create RMAs'}, status=status.HTTP_403_FORBIDDEN)

        serializer = RMASerializer(data=request.data)
        if serializer.is_valid():
            rma = serializer.save(created_by=request.user)
            create_audit_log(request=request, action='create', model_name='RMA',
                             object_id=rma.id, object_name=rma.serial_number, object_reference=rma.rma_number)
            logger.info(f"RMA {rma.rma_number} raised for {rma.serial_number} by {request.user.username}")
            return Response(RMASerializer(rma).data, status=status.HTTP_201_CREATED)
        logger.warning(f"RMA creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in rma_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def rma_detail(request, pk):
    """Retrieve, update or delete an RMA"""
    rma = get_object_or_404(RMA.objects.select_related('created_by', 'originated_from_dtr'), pk=pk)

    if request.method == 'GET':
        return Response(RMASerializer(rma).data)

    if not user_has_role(request.user, 'admin', 'rma_manager', 'technical_head'):
        return Response({'error': 'Insufficient permissions to modify RMAs'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        old_status = rma.case_status
        serializer = RMASerializer(rma, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            rma = serializer.save()
            if old_status != rma.case_status:
                create_audit_log(request=request, action='status_change', model_name='RMA',
                                 object_id=rma.id, object_reference=rma.rma_number,
                                 changes={'case_status': [old_status, rma.case_status]})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not user_has_role(request.user, 'admin'):
        return Response({'error': 'Only administrators can delete RMAs'}, status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='RMA',
                     object_id=rma.id, object_name=rma.serial_number, object_reference=rma.rma_number)
    with transaction.atomic():
        DTR.objects.filter(rma=rma).update(rma=None)
        rma.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def rma_by_status(request, case_status):
    valid = dict(RMA.CASE_STATUS_CHOICES)
    if case_status not in valid:
        return Response({'error': f"Invalid case status. Must be one of: {', '.join(valid)}"},
                        status=status.HTTP_400_BAD_REQUEST)
    rmas = RMA.objects.filter(case_status=case_status)
    return Response(RMASerializer(rmas, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def rma_stats(request):
    """Counts by case status and priority plus average turnaround"""
    by_status = {row['case_status']: row['count']
                 for row in RMA.objects.values('case_status').annotate(count=Count('id'))}
    by_priority = {row['priority']: row['count']
                   for row in RMA.objects.values('priority').annotate(count=Count('id'))}

    turnarounds = [
        (completed - raised).days
        for raised, completed in RMA.objects.filter(completed_date__isnull=False)
        .values_list('ascomp_raised_date', 'completed_date')
    ]
    avg_turnaround = round(sum(turnarounds) / len(turnarounds), 1) if turnarounds else None

    total = sum(by_status.values())
    closed = sum(by_status.get(s, 0) for s in RMA.CLOSED_STATUSES)
    return Response({
        'total': total,
        'active': total - closed,
        'completed': by_status.get('Completed', 0),
        'rejected': by_status.get('Rejected', 0),
        'by_status': by_status,
        'by_priority': by_priority,
        'avg_turnaround_days': avg_turnaround,
    })
