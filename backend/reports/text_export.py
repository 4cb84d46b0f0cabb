"""Plain-text rendition of a service report, used when the PDF renderer fails"""
from django.conf import settings
from django.utils import timezone

from .formatting import safe_value, safe_access, first_present, format_date, format_datetime

RULE = '=' * 47


def _section(title):
    return [title, '-' * len(title)]


def _bullets(items, default, name_keys):
    if not items:
        items = [default]
    elif not isinstance(items, (list, tuple)):
        items = [items]
    lines = []
    for item in items:
        if isinstance(item, str):
            lines.append(f"- {item}")
        else:
            lines.append(f"- {first_present(item, name_keys)}")
    return lines


def _measurements(values, unit, empty_message):
    if not isinstance(values, dict) or not values:
        return [empty_message]
    return [f"{key}: {safe_value(value)}{unit}" for key, value in values.items()]


def _field(report, path):
    return safe_value(safe_access(report, path, None))


def _signature(report, who):
    name = safe_access(report, ['signatures', who, 'name'], None)
    return f"Signed by {name}" if name else 'Not signed'


def _photo_count(report):
    photos = safe_access(report, 'photos', None)
    if isinstance(photos, (list, tuple)):
        return len(photos)
    count = safe_access(report, 'photoCount', 0)
    return count if isinstance(count, int) else 0


def company_footer(generated_at=None):
    company = settings.REPORT_COMPANY
    generated_at = generated_at or timezone.now()
    return [
        RULE,
        f"Generated on: {format_datetime(generated_at)}",
        f"{company['name']} - {company['address']}",
        f"Desk: {company['desk']} | Mobile: {company['mobile']} | Email: {company['email']}",
        company['website'],
    ]


def build_report_text(report):
    """Render a report mapping as text; never raises on missing data"""
    report = report if isinstance(report, dict) else {}
    company_name = settings.REPORT_COMPANY['name']

    lines = [
        f"{company_name} - CHRISTIE PROJECTOR SERVICE REPORT",
        RULE,
        '',
        f"Report Number: {safe_value(report.get('reportNumber'))}",
        f"Report Type: {safe_value(report.get('reportType'))}",
        f"Date: {format_date(report.get('date'))}",
        '',
        *_section('SITE INFORMATION'),
        f"Site Name: {safe_value(report.get('siteName'))}",
        f"Engineer: {first_present(report, ['engineer.name', 'engineerName', 'technician.name'])}",
        f"Site Contact: {first_present(report, ['siteIncharge.name', 'siteInchargeName'])}",
        f"Contact Phone: {first_present(report, ['siteIncharge.phone', 'siteInchargePhone'])}",
        '',
        *_section('PROJECTOR INFORMATION'),
        f"Model: {safe_value(report.get('projectorModel'))}",
        f"Serial Number: {safe_value(report.get('projectorSerial'))}",
        f"Software Version: {safe_value(report.get('softwareVersion'))}",
        f"Projector Running Hours: {safe_value(report.get('projectorRunningHours'))}",
        '',
        *_section('LAMP INFORMATION'),
        f"Lamp Model: {safe_value(report.get('lampModel'))}",
        f"Lamp Running Hours: {safe_value(report.get('lampRunningHours'))}",
        f"Current Lamp Hours: {safe_value(report.get('currentLampHours'))}",
        f"Replacement Required: {'Yes' if report.get('replacementRequired') else 'No'}",
        '',
        *_section('SERVICE DETAILS'),
        f"Work Performed: {safe_value(report.get('workPerformed'), 'Standard maintenance performed')}",
        '',
        'Issues Found:',
        *_bullets(report.get('issuesFound'), 'No issues found', ['description', 'issue']),
        '',
        'Parts Used:',
        *_bullets(report.get('partsUsed'), 'No parts used', ['partName', 'part_name', 'name']),
        '',
        f"Recommendations: {safe_value(report.get('recommendations'), 'No specific recommendations')}",
        '',
        *_section('TECHNICAL MEASUREMENTS'),
        'Voltage Parameters:',
        *_measurements(report.get('voltageParameters'), 'V', 'No voltage measurements recorded'),
        '',
        'Lamp Power Measurements:',
        *_measurements(report.get('lampPowerMeasurements'), 'W', 'No lamp power measurements recorded'),
        '',
        *_section('ENVIRONMENTAL CONDITIONS'),
        f"Temperature: {_field(report, 'environmentalConditions.temperature')}°C",
        f"Humidity: {_field(report, 'environmentalConditions.humidity')}%",
        f"Air Pollution Level: {_field(report, 'airPollutionLevel.overall')}",
        '',
        *_section('SYSTEM STATUS'),
        f"LE Status During PM: {_field(report, 'systemStatus.leStatus')}",
        f"AC Status: {_field(report, 'systemStatus.acStatus')}",
        '',
        *_section('SIGNATURES'),
        f"Engineer Signature: {_signature(report, 'engineer')}",
        f"Customer Signature: {_signature(report, 'customer')}",
        '',
        *_section('SERVICE TIMING'),
        f"Service Start Time: {format_datetime(report.get('serviceStartTime'))}",
        f"Service End Time: {format_datetime(report.get('serviceEndTime'))}",
        '',
        *_section('PHOTOS'),
        f"Photos Taken: {_photo_count(report)} photos",
        '',
        *company_footer(),
    ]
    return '\n'.join(lines) + '\n'
