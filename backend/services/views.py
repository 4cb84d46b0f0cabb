import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.utils import create_audit_log, is_admin_user
from backend.projectors.models import Projector
from .filters import ServiceVisitFilter, ServiceReportFilter
from .models import ServiceVisit, ServicePhoto, ServiceReport
from .serializers import (
    ServiceVisitSerializer, ServiceVisitDetailSerializer, ServicePhotoSerializer,
    ServiceReportSerializer, ServiceReportListSerializer,
)

logger = logging.getLogger('backend.services')


def _paginate(request, queryset, serializer_class, default_limit=50, context=None):
    page = int(request.query_params.get('page', 1))
    limit = int(request.query_params.get('limit', default_limit))
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


# Service visits
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def visit_list_create(request):
    """List service visits or schedule a new one"""
    try:
        if request.method == 'GET':
            visits = ServiceVisit.objects.select_related('fse', 'site', 'projector').prefetch_related('photos')

            filterset = ServiceVisitFilter(request.query_params, queryset=visits)
            if not filterset.is_valid():
                return Response({'error': 'Invalid filter parameters', 'details': filterset.errors},
                                status=status.HTTP_400_BAD_REQUEST)
            visits = filterset.qs
            if request.query_params.get('mine') == 'true':
                visits = visits.filter(fse=request.user)

            return _paginate(request, visits, ServiceVisitSerializer)

        serializer = ServiceVisitSerializer(data=request.data)
        if serializer.is_valid():
            visit = serializer.save(fse=serializer.validated_data.get('fse') or request.user)
            create_audit_log(request=request, action='create', model_name='ServiceVisit',
                             object_id=visit.id, object_name=visit.visit_id,
                             object_reference=visit.projector.serial_number)
            logger.info(f"Service visit {visit.visit_id} scheduled for {visit.scheduled_date} by {request.user.username}")
            return Response(ServiceVisitSerializer(visit).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Service visit validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in visit_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def visit_detail(request, pk):
    """Retrieve, update or delete a service visit"""
    visit = get_object_or_404(
        ServiceVisit.objects.select_related('fse', 'site', 'projector').prefetch_related('photos'), pk=pk
    )

    if request.method == 'GET':
        return Response(ServiceVisitDetailSerializer(visit, context={'request': request}).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ServiceVisitSerializer(visit, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can delete service visits'}, status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='ServiceVisit',
                     object_id=visit.id, object_name=visit.visit_id)
    visit.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


def _change_visit_status(request, visit, new_status, allowed_from, **fields):
    if visit.status not in allowed_from:
        return Response(
            {'error': f"Cannot move visit from '{visit.status}' to '{new_status}'"},
            status=status.HTTP_400_BAD_REQUEST
        )
    old_status = visit.status
    visit.status = new_status
    for name, value in fields.items():
        setattr(visit, name, value)
    visit.save()
    create_audit_log(request=request, action='status_change', model_name='ServiceVisit',
                     object_id=visit.id, object_name=visit.visit_id,
                     changes={'status': [old_status, new_status]})
    logger.info(f"Visit {visit.visit_id}: {old_status} -> {new_status} by {request.user.username}")
    return Response(ServiceVisitSerializer(visit).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def visit_start(request, pk):
    visit = get_object_or_404(ServiceVisit, pk=pk)
    now = timezone.now()
    return _change_visit_status(
        request, visit, 'In Progress', ('Scheduled', 'Rescheduled'),
        start_time=now, actual_date=timezone.localdate(now),
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def visit_complete(request, pk):
    """Mark an in-progress visit completed"""
    visit = get_object_or_404(ServiceVisit, pk=pk)
    return _change_visit_status(
        request, visit, 'Completed', ('In Progress',),
        end_time=timezone.now(),
        work_performed=request.data.get('work_performed', visit.work_performed),
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def visit_unable_to_complete(request, pk):
    visit = get_object_or_404(ServiceVisit, pk=pk)
    reason = (request.data.get('reason') or '').strip()
    category = request.data.get('category') or 'Other'
    if not reason:
        return Response({'error': 'A reason is required'}, status=status.HTTP_400_BAD_REQUEST)
    valid_categories = dict(ServiceVisit.UNABLE_CATEGORY_CHOICES)
    if category not in valid_categories:
        return Response(
            {'error': f"Invalid category. Must be one of: {', '.join(valid_categories)}"},
            status=status.HTTP_400_BAD_REQUEST
        )
    return _change_visit_status(
        request, visit, 'Unable to Complete', ('Scheduled', 'Rescheduled', 'In Progress'),
        unable_to_complete_reason=reason, unable_to_complete_category=category,
        end_time=timezone.now(),
    )


# Photos
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def visit_photos(request, pk):
    """List a visit's photos or upload one (multipart: image, category, description)"""
    visit = get_object_or_404(ServiceVisit.objects.select_related('projector'), pk=pk)

    if request.method == 'GET':
        photos = visit.photos.all()
        category = request.query_params.get('category')
        if category:
            photos = photos.filter(category=category)
        return Response(ServicePhotoSerializer(photos, many=True, context={'request': request}).data)

    serializer = ServicePhotoSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        logger.warning(f"Photo upload rejected for visit {visit.visit_id}: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        image = serializer.validated_data['image']
        photo = serializer.save(
            visit=visit,
            uploaded_by=request.user,
            original_name=image.name,
            file_size=image.size,
        )
    except Exception as e:
        logger.error(f"Failed to store photo for visit {visit.visit_id}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to store photo'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='photo_upload', model_name='ServicePhoto',
                     object_id=photo.id, object_name=photo.original_name,
                     object_reference=visit.visit_id, changes={'folder': photo.folder})
    logger.info(f"Photo {photo.original_name} stored under {photo.image.name}")
    return Response(ServicePhotoSerializer(photo, context={'request': request}).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def photo_delete(request, pk):
    photo = get_object_or_404(ServicePhoto, pk=pk)
    if not (is_admin_user(request.user) or photo.uploaded_by_id == request.user.id):
        return Response({'error': 'You can only delete photos you uploaded'}, status=status.HTTP_403_FORBIDDEN)
    photo.image.delete(save=False)
    photo.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Service reports
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def report_list_create(request):
    """List service reports or submit a new one"""
    try:
        if request.method == 'GET':
            filterset = ServiceReportFilter(request.query_params, queryset=ServiceReport.objects.all())
            if not filterset.is_valid():
                return Response({'error': 'Invalid filter parameters', 'details': filterset.errors},
                                status=status.HTTP_400_BAD_REQUEST)
            reports = filterset.qs
            return _paginate(request, reports, ServiceReportListSerializer)

        serializer = ServiceReportSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Service report validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            with transaction.atomic():
                report = serializer.save(created_by=request.user)
                projector = Projector.objects.filter(serial_number=report.projector_serial).first()
                if projector:
                    projector.record_service(report.date)
                else:
                    logger.warning(f"Report {report.report_number} references unknown projector {report.projector_serial}")
        except IntegrityError as e:
            logger.error(f"IntegrityError creating service report: {str(e)}", exc_info=True)
            return Response({'error': 'A report with this number already exists'}, status=status.HTTP_400_BAD_REQUEST)

        create_audit_log(request=request, action='create', model_name='ServiceReport',
                         object_id=report.id, object_name=report.report_number,
                         object_reference=report.projector_serial)
        logger.info(f"Service report {report.report_number} submitted by {request.user.username}")
        return Response(ServiceReportSerializer(report).data, status=status.HTTP_201_CREATED)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in report_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def report_detail(request, pk):
    report = get_object_or_404(ServiceReport, pk=pk)

    if request.method == 'GET':
        return Response(ServiceReportSerializer(report).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ServiceReportSerializer(report, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='ServiceReport',
                             object_id=report.id, object_name=report.report_number,
                             changes={'fields': sorted(request.data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can delete service reports'}, status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='ServiceReport',
                     object_id=report.id, object_name=report.report_number)
    report.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
