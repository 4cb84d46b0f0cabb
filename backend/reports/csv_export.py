"""
CSV export of flat record lists.

Every data field is wrapped in double quotes; embedded quotes and commas are
written as-is, which matches what the existing spreadsheet imports expect.
"""
from django.http import HttpResponse


def _cell(record, header):
    value = record.get(header) if isinstance(record, dict) else getattr(record, header, None)
    if value is None or value == '':
        return '""'
    return f'"{value}"'


def convert_to_csv(records, headers=None):
    """
    Serialise records (list of dicts) to CSV text.

    Headers default to the keys of the first record. Returns '' for empty
    input. Rows are joined with '\\n' without a trailing newline.
    """
    if not records:
        return ''
    records = list(records)
    if headers is None:
        headers = list(records[0].keys())
    lines = [','.join(headers)]
    for record in records:
        lines.append(','.join(_cell(record, header) for header in headers))
    return '\n'.join(lines)


def csv_response(records, filename, headers=None):
    """Attachment response carrying convert_to_csv output"""
    response = HttpResponse(convert_to_csv(records, headers), content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
