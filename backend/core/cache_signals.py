"""
Cache invalidation signals
Drop the dashboard KPI cache whenever the counted models change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

DASHBOARD_MODELS = {'Site', 'Projector', 'ServiceVisit', 'ServiceReport', 'DTR', 'RMA'}


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals for bulk operations.
    Invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard KPIs after commit when a counted model changes"""
    if is_suspended():
        return
    if sender.__name__ not in DASHBOARD_MODELS:
        return
    try:
        # runs once the surrounding transaction commits
        transaction.on_commit(invalidate_dashboard_cache)
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_change signal: {e}")
