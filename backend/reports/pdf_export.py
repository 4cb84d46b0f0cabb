"""
Service report export.

export_report() renders the report as an A4 PDF with reportlab and falls back
to the plain-text rendition when rendering fails for any reason.
"""
import io
import logging
import re
from dataclasses import dataclass
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from .formatting import safe_value, safe_access, first_present, format_date, format_datetime
from .text_export import build_report_text

logger = logging.getLogger('backend.reports')

HEADER_BG = colors.HexColor('#1f3b73')
LABEL_BG = colors.HexColor('#eef2f8')
# replaced in download filenames so Content-Disposition quoting holds
UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]')


@dataclass
class ExportArtifact:
    content: bytes
    content_type: str
    filename: str
    format: str


def export_filename(report, extension, today=None):
    """ASCOMP_Report_<reportNumber>_<YYYY-MM-DD>.<extension>"""
    today = today or timezone.localdate()
    number = UNSAFE_FILENAME_CHARS.sub('_', str(safe_value(safe_access(report, 'reportNumber', None))))
    return f"ASCOMP_Report_{number}_{today.isoformat()}.{extension}"


def _p(text, style):
    return Paragraph(escape(str(text)), style)


def _kv_table(rows, styles, col_widths=(60 * mm, 110 * mm)):
    data = [[_p(label, styles['label']), _p(value, styles['cell'])] for label, value in rows]
    table = Table(data, colWidths=list(col_widths))
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), LABEL_BG),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))
    return table


def _list_table(header, rows, styles):
    data = [[_p(h, styles['th']) for h in header]]
    data.extend([[_p(c, styles['cell']) for c in row] for row in rows])
    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BG),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    return table


def _build_styles():
    base = getSampleStyleSheet()
    return {
        'title': ParagraphStyle('ReportTitle', parent=base['Title'], fontSize=16, alignment=TA_CENTER,
                                spaceAfter=4),
        'subtitle': ParagraphStyle('ReportSubtitle', parent=base['Normal'], alignment=TA_CENTER,
                                   textColor=colors.grey, spaceAfter=10),
        'heading': ParagraphStyle('SectionHeading', parent=base['Heading2'], fontSize=12,
                                  textColor=HEADER_BG, spaceBefore=10, spaceAfter=4),
        'label': ParagraphStyle('Label', parent=base['Normal'], fontName='Helvetica-Bold', fontSize=9),
        'cell': ParagraphStyle('Cell', parent=base['Normal'], fontSize=9),
        'th': ParagraphStyle('TableHeader', parent=base['Normal'], fontName='Helvetica-Bold', fontSize=9,
                             textColor=colors.white),
        'footer': ParagraphStyle('Footer', parent=base['Normal'], fontSize=8, alignment=TA_CENTER,
                                 textColor=colors.grey),
    }


def _as_list(value):
    if not value:
        return []
    if not isinstance(value, (list, tuple)):
        return [value]
    return value


def _issue_rows(report):
    rows = []
    for issue in _as_list(safe_access(report, 'issuesFound', None)):
        if isinstance(issue, str):
            rows.append([issue, '-', '-'])
        else:
            rows.append([
                first_present(issue, ['description', 'issue']),
                safe_value(safe_access(issue, 'severity', None)),
                'Yes' if safe_access(issue, 'resolved', False) else 'No',
            ])
    return rows


def _part_rows(report, key):
    rows = []
    for part in _as_list(safe_access(report, key, None)):
        if isinstance(part, str):
            rows.append([part, '-', '-'])
        else:
            rows.append([
                first_present(part, ['partName', 'part_name', 'name']),
                first_present(part, ['partNumber', 'part_number']),
                safe_value(safe_access(part, 'quantity', None)),
            ])
    return rows


def _measurement_rows(values, unit):
    if not isinstance(values, dict):
        return []
    return [(key, f"{safe_value(value)}{unit}") for key, value in values.items()]


def _checklist_tables(report, styles):
    """Opticals / electronics / mechanical inspection sections"""
    flowables = []
    sections = safe_access(report, 'sections', None)
    if not isinstance(sections, dict):
        return flowables
    for name, items in sections.items():
        if not isinstance(items, list) or not items:
            continue
        rows = [
            [first_present(item, ['description', 'item']), first_present(item, ['status']),
             first_present(item, ['result'])]
            for item in items
        ]
        flowables.append(_p(str(name).title(), styles['label']))
        flowables.append(_list_table(['Description', 'Status', 'Result'], rows, styles))
        flowables.append(Spacer(1, 4))
    return flowables


def render_report_pdf(report):
    """Render a report mapping to PDF bytes (A4, one table per section)"""
    styles = _build_styles()
    company = settings.REPORT_COMPANY
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Service Report {safe_value(safe_access(report, 'reportNumber', None))}",
        author=company['name'],
    )

    story = [
        _p(f"{company['name']} - {safe_value(safe_access(report, 'reportTitle', None), 'Projector Service Report')}",
           styles['title']),
        _p(company['address'], styles['subtitle']),
        _kv_table([
            ('Report Number', safe_value(safe_access(report, 'reportNumber', None))),
            ('Report Type', safe_value(safe_access(report, 'reportType', None))),
            ('Date', format_date(safe_access(report, 'date', None))),
        ], styles),

        _p('Site Information', styles['heading']),
        _kv_table([
            ('Site Name', safe_value(safe_access(report, 'siteName', None))),
            ('Site Incharge', first_present(report, ['siteIncharge.name', 'siteInchargeName'])),
            ('Contact', first_present(report, ['siteIncharge.phone', 'siteInchargePhone'])),
            ('Engineer', first_present(report, ['engineer.name', 'engineerName', 'technician.name'])),
            ('Engineer Phone', first_present(report, ['engineer.phone', 'engineerPhone'])),
        ], styles),

        _p('Projector Information', styles['heading']),
        _kv_table([
            ('Brand', safe_value(safe_access(report, 'brand', None))),
            ('Model', safe_value(safe_access(report, 'projectorModel', None))),
            ('Serial Number', safe_value(safe_access(report, 'projectorSerial', None))),
            ('Software Version', safe_value(safe_access(report, 'softwareVersion', None))),
            ('Running Hours', safe_value(safe_access(report, 'projectorRunningHours', None))),
        ], styles),

        _p('Lamp Information', styles['heading']),
        _kv_table([
            ('Lamp Model', safe_value(safe_access(report, 'lampModel', None))),
            ('Lamp Running Hours', safe_value(safe_access(report, 'lampRunningHours', None))),
            ('Current Lamp Hours', safe_value(safe_access(report, 'currentLampHours', None))),
            ('Replacement Required', 'Yes' if safe_access(report, 'replacementRequired', False) else 'No'),
        ], styles),
    ]

    checklist = _checklist_tables(report, styles)
    if checklist:
        story.append(_p('Inspection Checklist', styles['heading']))
        story.extend(checklist)

    story.append(_p('Service Details', styles['heading']))
    story.append(_kv_table([
        ('Work Performed', safe_value(safe_access(report, 'workPerformed', None), 'Standard maintenance performed')),
        ('Recommendations', safe_value(safe_access(report, 'recommendations', None), 'No specific recommendations')),
    ], styles))

    issue_rows = _issue_rows(report)
    story.append(_p('Issues Found', styles['heading']))
    if issue_rows:
        story.append(_list_table(['Issue', 'Severity', 'Resolved'], issue_rows, styles))
    else:
        story.append(_p('No issues found', styles['cell']))

    part_rows = _part_rows(report, 'partsUsed')
    story.append(_p('Parts Used', styles['heading']))
    if part_rows:
        story.append(_list_table(['Part', 'Part Number', 'Qty'], part_rows, styles))
    else:
        story.append(_p('No parts used', styles['cell']))

    recommended = _part_rows(report, 'recommendedParts')
    if recommended:
        story.append(_p('Recommended Parts', styles['heading']))
        story.append(_list_table(['Part', 'Part Number', 'Qty'], recommended, styles))

    voltage = _measurement_rows(safe_access(report, 'voltageParameters', None), 'V')
    lamp_power = _measurement_rows(safe_access(report, 'lampPowerMeasurements', None), 'W')
    story.append(_p('Technical Measurements', styles['heading']))
    if voltage or lamp_power:
        story.append(_kv_table(voltage + lamp_power, styles))
    else:
        story.append(_p('No measurements recorded', styles['cell']))

    story.append(_p('Environment and System Status', styles['heading']))
    story.append(_kv_table([
        ('Temperature', f"{safe_value(safe_access(report, 'environmentalConditions.temperature', None))}°C"),
        ('Humidity', f"{safe_value(safe_access(report, 'environmentalConditions.humidity', None))}%"),
        ('Air Pollution Level', safe_value(safe_access(report, 'airPollutionLevel.overall', None))),
        ('LE Status During PM', safe_value(safe_access(report, 'systemStatus.leStatus', None))),
        ('AC Status', safe_value(safe_access(report, 'systemStatus.acStatus', None))),
    ], styles))

    engineer_sign = safe_access(report, 'signatures.engineer.name', None)
    customer_sign = safe_access(report, 'signatures.customer.name', None)
    story.append(_p('Service Timing and Signatures', styles['heading']))
    story.append(_kv_table([
        ('Service Start', format_datetime(safe_access(report, 'serviceStartTime', None))),
        ('Service End', format_datetime(safe_access(report, 'serviceEndTime', None))),
        ('Engineer Signature', f"Signed by {engineer_sign}" if engineer_sign else 'Not signed'),
        ('Customer Signature', f"Signed by {customer_sign}" if customer_sign else 'Not signed'),
    ], styles))

    story.append(Spacer(1, 12))
    story.append(_p(f"Generated on: {format_datetime(timezone.now())}", styles['footer']))
    story.append(_p(
        f"Desk: {company['desk']} | Mobile: {company['mobile']} | Email: {company['email']} | {company['website']}",
        styles['footer'],
    ))

    doc.build(story)
    return buffer.getvalue()


def export_report(report, prefer_text=False):
    """
    Produce a downloadable artifact for a report mapping.

    Tries the PDF renderer first; any failure is logged and the plain-text
    rendition is returned instead.
    """
    if not prefer_text:
        try:
            content = render_report_pdf(report)
            return ExportArtifact(
                content=content,
                content_type='application/pdf',
                filename=export_filename(report, 'pdf'),
                format='pdf',
            )
        except Exception as e:
            logger.warning(
                f"PDF export failed for report {safe_access(report, 'reportNumber')}, "
                f"falling back to text: {str(e)}",
                exc_info=True,
            )

    return ExportArtifact(
        content=build_report_text(report).encode('utf-8'),
        content_type='text/plain; charset=utf-8',
        filename=export_filename(report, 'txt'),
        format='text',
    )
