import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db import IntegrityError
from django.db.models import ProtectedError
from django.db.models import Count
from django.shortcuts import get_object_or_404
from backend.core.utils import is_admin_user, create_audit_log
from .filters import ProjectorFilter
from .models import Projector
from .serializers import ProjectorSerializer

logger = logging.getLogger('backend.projectors')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def projector_list_create(request):
    """List projectors (filtered, paginated) or register a new projector"""
    try:
        if request.method == 'GET':
            queryset = Projector.objects.select_related('site', 'auditorium').all()
            filterset = ProjectorFilter(request.query_params, queryset=queryset)
            queryset = filterset.qs

            page = int(request.query_params.get('page', 1))
            limit = int(request.query_params.get('limit', 50))
            paginator = Paginator(queryset, limit)
            page_obj = paginator.get_page(page)

            serializer = ProjectorSerializer(page_obj, many=True)
            return Response({
                'results': serializer.data,
                'count': paginator.count,
                'next': page_obj.next_page_number() if page_obj.has_next() else None,
                'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
                'page': page_obj.number,
                'page_size': limit,
                'total_pages': paginator.num_pages,
            })

        if not is_admin_user(request.user):
            logger.warning(f"User {request.user.username} attempted to register a projector without admin privileges")
            return Response({'error': 'Only administrators can register projectors'}, status=status.HTTP_403_FORBIDDEN)

        serializer = ProjectorSerializer(data=request.data)
        if serializer.is_valid():
            try:
                projector = serializer.save()
            except IntegrityError as e:
                logger.error(f"IntegrityError creating projector: {str(e)}", exc_info=True)
                return Response({'error': 'A projector with this serial number already exists'}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(request=request, action='create', model_name='Projector',
                             object_id=projector.id, object_name=projector.serial_number,
                             object_reference=projector.projector_number)
            logger.info(f"Projector {projector.serial_number} registered at {projector.site.name}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        logger.warning(f"Projector creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in projector_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def projector_detail(request, pk):
    """Retrieve, update or delete a projector"""
    projector = get_object_or_404(Projector.objects.select_related('site', 'auditorium'), pk=pk)

    if request.method == 'GET':
        return Response(ProjectorSerializer(projector).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can modify projectors'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        old_status = projector.status
        serializer = ProjectorSerializer(projector, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            if old_status != projector.status:
                create_audit_log(request=request, action='status_change', model_name='Projector',
                                 object_id=projector.id, object_name=projector.serial_number,
                                 changes={'status': [old_status, projector.status]})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    logger.info(f"User {request.user.username} deleting projector {projector.serial_number}")
    try:
        projector.delete()
    except ProtectedError:
        return Response(
            {'error': 'Cannot delete a projector with service visits or DTRs on record'},
            status=status.HTTP_400_BAD_REQUEST
        )
    create_audit_log(request=request, action='delete', model_name='Projector',
                     object_id=pk, object_name=projector.serial_number)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def projector_by_serial(request, serial_number):
    """Projector lookup by serial with its service, DTR and RMA history"""
    from backend.rma.models import DTR, RMA
    from backend.rma.serializers import DTRSerializer, RMASerializer
    from backend.services.models import ServiceReport
    from backend.services.serializers import ServiceReportListSerializer

    projector = get_object_or_404(Projector.objects.select_related('site', 'auditorium'),
                                  serial_number=serial_number)

    reports = ServiceReport.objects.filter(projector_serial=projector.serial_number).order_by('-date')[:10]
    dtrs = DTR.objects.filter(projector=projector).order_by('-complaint_date')[:10]
    rmas = RMA.objects.filter(serial_number=projector.serial_number).order_by('-ascomp_raised_date')[:10]

    return Response({
        'projector': ProjectorSerializer(projector).data,
        'service_reports': ServiceReportListSerializer(reports, many=True).data,
        'dtrs': DTRSerializer(dtrs, many=True).data,
        'rmas': RMASerializer(rmas, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def projector_status_summary(request):
    """Projector counts grouped by status and by brand"""
    by_status = Projector.objects.values('status').annotate(count=Count('id')).order_by('status')
    by_brand = Projector.objects.values('brand').annotate(count=Count('id')).order_by('-count')
    return Response({
        'total': Projector.objects.count(),
        'by_status': list(by_status),
        'by_brand': list(by_brand),
    })
