"""
Service photo category handling.

Photo categories arrive from the field app either as full labels
("Before Service") or as short codes ("BEFORE"). Both map onto the same
storage folder key; anything unrecognised lands in "other".
"""
import logging
import uuid

from django.utils import timezone

logger = logging.getLogger('backend.services')

PHOTO_ROOT_FOLDER = 'projectorcare'
DEFAULT_FOLDER = 'other'

CATEGORY_FOLDER_MAP = {
    'Before Service': 'before-service',
    'During Service': 'during-service',
    'After Service': 'after-service',
    'Spare Parts': 'spare-parts',
    'RMA': 'rma',
    'Issue Found': 'issues',
    'Parts Used': 'parts-used',
    'Service Photos': 'service-photos',
    'BEFORE': 'before-service',
    'DURING': 'during-service',
    'AFTER': 'after-service',
    'ISSUE': 'issues',
    'PARTS': 'parts-used',
    'Other': 'other',
}

# Labels offered to clients; short codes stay accepted for older app builds
PHOTO_CATEGORY_LABELS = [
    'Before Service', 'During Service', 'After Service', 'Spare Parts',
    'RMA', 'Issue Found', 'Parts Used', 'Service Photos', 'Other',
]


def get_category_folder(category):
    """Return the storage folder key for a category label, 'other' when unknown"""
    try:
        return CATEGORY_FOLDER_MAP.get(category, DEFAULT_FOLDER)
    except TypeError:
        # unhashable input
        return DEFAULT_FOLDER


def build_photo_folder(serial_number, visit_id, category):
    """projectorcare/<serial>/<visit>/<folder key>"""
    folder = get_category_folder(category)
    if folder == DEFAULT_FOLDER and category != 'Other':
        logger.debug(f"Unknown photo category {category!r}, storing under '{DEFAULT_FOLDER}'")
    return f"{PHOTO_ROOT_FOLDER}/{serial_number}/{visit_id}/{folder}"


def generate_visit_id():
    return f"VISIT-{timezone.now().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"
