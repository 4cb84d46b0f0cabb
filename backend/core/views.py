import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import connection
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import Setting, AuditLog
from .utils import IsAdminRole, is_admin_user
from .serializers import (
    UserSerializer, UserCreateSerializer, RegisterSerializer,
    SettingSerializer, AuditLogSerializer
)

User = get_user_model()

logger = logging.getLogger('backend.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            from rest_framework_simplejwt.exceptions import AuthenticationFailed
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    """Custom token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness probe used by deployment checks and the check_server command"""
    database = 'ok'
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception as e:
        logger.error(f"Health check database probe failed: {str(e)}", exc_info=True)
        database = 'unavailable'
    payload = {
        'status': 'ok' if database == 'ok' else 'degraded',
        'database': database,
        'timestamp': timezone.now().isoformat(),
    }
    code = status.HTTP_200_OK if database == 'ok' else status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(payload, status=code)


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"Registered user {user.username} with role {user.role}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with role-based access flags"""
    user = request.user
    user_data = UserSerializer(user).data

    is_admin = is_admin_user(user)
    is_rma_manager = user.role == 'rma_manager'
    is_technical_head = user.role == 'technical_head'

    user_data['is_admin'] = is_admin
    user_data['can_manage_dtr'] = is_admin or is_rma_manager
    user_data['can_convert_dtr'] = is_admin or is_rma_manager or user.role in ('technician', 'engineer')
    user_data['can_access_reports'] = is_admin or is_rma_manager or is_technical_head
    user_data['can_access_dashboard'] = user_data['can_access_reports']

    return Response(user_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def users_by_role(request, role):
    """List active users holding a role (technicians, rma managers, technical heads)"""
    valid_roles = [choice[0] for choice in User.ROLE_CHOICES]
    if role not in valid_roles:
        return Response({'error': f'Unknown role: {role}'}, status=status.HTTP_400_BAD_REQUEST)
    users = User.objects.filter(role=role, is_active=True).order_by('username')
    return Response(UserSerializer(users, many=True).data)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings = Setting.objects.all()
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)
    else:
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Non-admins only see their own entries
    if not is_admin_user(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not is_admin_user(request.user) and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search sites, projectors, DTRs, RMAs and service reports at once"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return Response({
            'sites': [],
            'projectors': [],
            'dtrs': [],
            'rmas': [],
            'service_reports': [],
        })

    from backend.sites.models import Site
    from backend.projectors.models import Projector
    from backend.rma.models import DTR, RMA
    from backend.services.models import ServiceReport
    from backend.sites.serializers import SiteSerializer
    from backend.projectors.serializers import ProjectorSerializer
    from backend.rma.serializers import DTRSerializer, RMASerializer
    from backend.services.serializers import ServiceReportListSerializer

    results = {}

    sites = Site.objects.filter(
        Q(name__icontains=query) |
        Q(site_code__icontains=query) |
        Q(city__icontains=query)
    )[:20]
    results['sites'] = SiteSerializer(sites, many=True).data

    projectors = Projector.objects.select_related('site').filter(
        Q(serial_number__icontains=query) |
        Q(projector_number__icontains=query) |
        Q(model__icontains=query)
    )[:20]
    results['projectors'] = ProjectorSerializer(projectors, many=True).data

    dtrs = DTR.objects.filter(
        Q(case_id__icontains=query) |
        Q(serial_number__icontains=query) |
        Q(site_name__icontains=query)
    )[:20]
    results['dtrs'] = DTRSerializer(dtrs, many=True).data

    rmas = RMA.objects.filter(
        Q(rma_number__icontains=query) |
        Q(serial_number__icontains=query) |
        Q(call_log_number__icontains=query)
    )[:20]
    results['rmas'] = RMASerializer(rmas, many=True).data

    reports = ServiceReport.objects.filter(
        Q(report_number__icontains=query) |
        Q(projector_serial__icontains=query) |
        Q(site_name__icontains=query)
    )[:20]
    results['service_reports'] = ServiceReportListSerializer(reports, many=True).data

    return Response(results)
