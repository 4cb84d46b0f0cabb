"""Utility functions for audit logging and role checks"""
import logging

from rest_framework.permissions import BasePermission

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def user_has_role(user, *roles):
    """True when the user is authenticated and holds one of the roles (superusers always pass)"""
    if not user or not getattr(user, 'is_authenticated', False):
        return False
    return user.has_role(*roles)


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, dtr_convert, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., report number, serial number)
        object_reference: Reference identifier (e.g., DTR case id, RMA number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def is_admin_user(user):
    """Staff, superusers and users holding the admin role"""
    if not user or not getattr(user, 'is_authenticated', False):
        return False
    return user.is_superuser or user.is_staff or user.role == 'admin'


class IsAdminRole(BasePermission):
    """DRF permission backed by is_admin_user"""
    message = 'Only administrators can perform this action'

    def has_permission(self, request, view):
        return is_admin_user(request.user)
