"""
Value normalisation for exported reports.

Service records arrive with optional, partially filled fields. Every helper
here is total: missing or malformed input degrades to a fallback string
instead of raising.
"""
import logging
from datetime import date, datetime, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

logger = logging.getLogger('backend.reports')

DATE_FORMAT = '%d/%m/%Y'
DATETIME_FORMAT = '%d/%m/%Y %H:%M'

_MISSING = object()


def is_empty(value):
    return value is None or value == ''


def safe_value(value, fallback='-'):
    """String form of value, or fallback for None / empty string (0 and False are kept)"""
    if is_empty(value):
        return fallback
    return str(value)


def _to_datetime(value):
    """Best-effort conversion to date/datetime; None when the value cannot be read"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # epoch milliseconds
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = parse_datetime(text)
        if parsed is None:
            parsed = parse_date(text)
        return parsed
    return None


def _localise(value):
    if isinstance(value, datetime) and timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def format_date(value, fallback='-'):
    """DD/MM/YYYY for anything date-like; echoes unreadable input through safe_value"""
    if is_empty(value):
        return fallback
    try:
        parsed = _to_datetime(value)
    except (ValueError, TypeError, OverflowError, OSError):
        parsed = None
    if parsed is None:
        logger.debug(f"Unparseable date value {value!r}")
        return safe_value(value, fallback)
    return _localise(parsed).strftime(DATE_FORMAT)


def format_datetime(value, fallback='Not recorded'):
    if is_empty(value):
        return fallback
    try:
        parsed = _to_datetime(value)
    except (ValueError, TypeError, OverflowError, OSError):
        parsed = None
    if parsed is None:
        return safe_value(value, fallback)
    if not isinstance(parsed, datetime):
        return parsed.strftime(DATE_FORMAT)
    return _localise(parsed).strftime(DATETIME_FORMAT)


def _step(current, key):
    if isinstance(current, dict):
        return current.get(key, _MISSING)
    if isinstance(current, (list, tuple)):
        try:
            return current[int(key)]
        except (ValueError, IndexError):
            return _MISSING
    return getattr(current, key, _MISSING)


def safe_access(obj, path, fallback='-'):
    """
    Walk a dotted path (or a list of keys) through nested dicts, lists and
    attributes. Returns fallback as soon as a step is missing or None.
    """
    keys = path.split('.') if isinstance(path, str) else list(path)
    current = obj
    for key in keys:
        if current is None:
            return fallback
        current = _step(current, key)
        if current is _MISSING:
            return fallback
    return fallback if current is None else current


def first_present(obj, paths, fallback='-'):
    """First non-empty value among candidate paths"""
    for path in paths:
        value = safe_access(obj, path, None)
        if not is_empty(value):
            return value
    return fallback
