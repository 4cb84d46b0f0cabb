import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError
from django.db.models import Count, Q
from backend.core.utils import is_admin_user, create_audit_log
from .models import Site, Auditorium
from .serializers import SiteSerializer, SiteDetailSerializer, AuditoriumSerializer

logger = logging.getLogger('backend.sites')


# Site views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def site_list_create(request):
    """List all sites or create a new site (create requires admin)"""
    try:
        if request.method == 'GET':
            logger.info(f"User {request.user.username} requested site list")
            sites = Site.objects.prefetch_related('auditoriums')

            region = request.query_params.get('region')
            if region:
                sites = sites.filter(region=region)
            site_status = request.query_params.get('status')
            if site_status:
                sites = sites.filter(status=site_status)
            search = request.query_params.get('search', '').strip()
            if search:
                sites = sites.filter(
                    Q(name__icontains=search) |
                    Q(site_code__icontains=search) |
                    Q(city__icontains=search)
                )

            serializer = SiteSerializer(sites, many=True)
            return Response(serializer.data)

        if not is_admin_user(request.user):
            logger.warning(f"User {request.user.username} attempted to create site without admin privileges")
            return Response({'error': 'Only administrators can create sites'}, status=status.HTTP_403_FORBIDDEN)

        logger.info(f"User {request.user.username} creating site with data: {request.data}")
        serializer = SiteSerializer(data=request.data)
        if serializer.is_valid():
            try:
                site = serializer.save()
                create_audit_log(request=request, action='create', model_name='Site',
                                 object_id=site.id, object_name=site.name, object_reference=site.site_code)
                logger.info(f"Site '{site.name}' created successfully by {request.user.username}")
                return Response(serializer.data, status=status.HTTP_201_CREATED)
            except IntegrityError as e:
                logger.error(f"IntegrityError creating site: {str(e)}", exc_info=True)
                return Response({'error': 'A site with this name or code already exists'}, status=status.HTTP_400_BAD_REQUEST)

        logger.warning(f"Site creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in site_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def site_detail(request, pk):
    """Retrieve, update or delete a site (update/delete requires admin)"""
    site = get_object_or_404(Site, pk=pk)
    try:
        if request.method == 'GET':
            logger.debug(f"User {request.user.username} retrieved site {pk}")
            return Response(SiteDetailSerializer(site).data)

        if not is_admin_user(request.user):
            logger.warning(f"User {request.user.username} attempted to modify site {pk} without admin privileges")
            return Response({'error': 'Only administrators can modify sites'}, status=status.HTTP_403_FORBIDDEN)

        if request.method in ('PUT', 'PATCH'):
            logger.info(f"User {request.user.username} updating site {pk} with data: {request.data}")
            serializer = SiteSerializer(site, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                logger.info(f"Site {pk} updated successfully")
                return Response(serializer.data)
            logger.warning(f"Site update validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        # DELETE
        if site.projectors.exists():
            return Response(
                {'error': 'Cannot delete a site that still has projectors assigned'},
                status=status.HTTP_400_BAD_REQUEST
            )
        logger.info(f"User {request.user.username} deleting site {pk} ({site.name})")
        create_audit_log(request=request, action='delete', model_name='Site',
                         object_id=site.id, object_name=site.name, object_reference=site.site_code)
        site.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        logger.error(f"Unexpected error in site_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


# Auditorium views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def auditorium_list_create(request, site_pk):
    """List or add auditoriums of a site"""
    site = get_object_or_404(Site, pk=site_pk)
    if request.method == 'GET':
        serializer = AuditoriumSerializer(site.auditoriums.all(), many=True)
        return Response(serializer.data)

    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can add auditoriums'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditoriumSerializer(data=request.data)
    if serializer.is_valid():
        try:
            serializer.save(site=site)
        except IntegrityError:
            return Response(
                {'error': f"Auditorium {request.data.get('audi_number')} already exists at {site.name}"},
                status=status.HTTP_400_BAD_REQUEST
            )
        logger.info(f"Auditorium {serializer.data['audi_number']} added to site {site.name}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def auditorium_detail(request, site_pk, pk):
    """Retrieve, update or delete an auditorium"""
    auditorium = get_object_or_404(Auditorium, pk=pk, site_id=site_pk)

    if request.method == 'GET':
        return Response(AuditoriumSerializer(auditorium).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can modify auditoriums'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = AuditoriumSerializer(auditorium, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        auditorium.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def site_stats(request, pk):
    """Projector, DTR and RMA counts for one site"""
    from backend.rma.models import DTR, RMA

    site = get_object_or_404(Site, pk=pk)
    projectors = site.projectors.all()
    serials = list(projectors.values_list('serial_number', flat=True))

    by_status = {
        row['status']: row['count']
        for row in projectors.values('status').annotate(count=Count('id'))
    }

    return Response({
        'site': {'id': site.id, 'name': site.name, 'site_code': site.site_code},
        'auditoriums': site.auditoriums.count(),
        'projectors': {
            'total': len(serials),
            'by_status': by_status,
        },
        'dtrs': {
            'total': DTR.objects.filter(projector__site=site).count(),
            'open': DTR.objects.filter(projector__site=site, status='Open').count(),
        },
        'rmas': {
            'total': RMA.objects.filter(serial_number__in=serials).count(),
            'active': RMA.objects.filter(serial_number__in=serials).exclude(
                case_status__in=['Completed', 'Rejected']
            ).count(),
        },
    })
