"""
Export utilities for accounting reports.
Supports Excel (.xlsx), CSV (.csv), and Text (.txt) formats.

Amounts are written without thousands separators. Whole amounts are
written as plain integers ("500000"); fractional amounts keep their
cents ("1250.50").
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter


class ExportFormat:
    EXCEL = 'xlsx'
    CSV = 'csv'
    TXT = 'txt'

    CHOICES = [EXCEL, CSV, TXT]
    CONTENT_TYPES = {
        EXCEL: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        CSV: 'text/csv; charset=utf-8',
        TXT: 'text/plain; charset=utf-8',
    }


def format_amount(value: Decimal) -> str:
    """500000.00 -> '500000', 1250.50 -> '1250.50'."""
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value:f}"


def format_value(value: Any) -> str:
    """Format a value for export."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format_amount(value)
    if isinstance(value, bool):
        return 'Ya' if value else 'Tidak'
    return str(value)


def export_to_excel(
    data: list[dict],
    columns: list[dict],
    title: str = 'Export',
    sheet_name: str = 'Data',
) -> bytes:
    """
    Export rows to an .xlsx workbook.

    Numeric columns are written as numbers so spreadsheet sums work;
    everything else goes through format_value.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color='FFFFFF')
    header_fill = PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid')
    thin = Side(style='thin')
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    # Title and timestamp rows
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal='center')

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(columns))
    stamp = ws.cell(row=2, column=1, value=f"Diekspor: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    stamp.alignment = Alignment(horizontal='center')
    stamp.font = Font(italic=True, size=10, color='666666')

    header_row = 4
    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col['header'])
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', vertical='center')
        cell.border = border
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get('width', 15)

    for row_idx, row_data in enumerate(data, header_row + 1):
        for col_idx, col in enumerate(columns, 1):
            value = row_data.get(col['key'], '')
            if col.get('numeric') and isinstance(value, Decimal):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.number_format = '0' if value == value.to_integral_value() else '0.00'
                cell.alignment = Alignment(horizontal='right')
            else:
                cell = ws.cell(row=row_idx, column=col_idx, value=format_value(value))
            cell.border = border
            if row_data.get('_bold'):
                cell.font = Font(bold=True)

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_to_csv(data: list[dict], columns: list[dict], delimiter: str = ',') -> str:
    """Export rows to CSV text, header row first."""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerow([col['header'] for col in columns])
    for row_data in data:
        writer.writerow([format_value(row_data.get(col['key'], '')) for col in columns])
    return output.getvalue()


def export_to_txt(data: list[dict], columns: list[dict], separator: str = '  ') -> str:
    """
    Export rows as fixed-width text. Numeric columns are right-aligned.
    """
    rendered = [
        [format_value(row_data.get(col['key'], '')) for col in columns]
        for row_data in data
    ]
    widths = [
        min(max([len(col['header'])] + [len(row[idx]) for row in rendered]), 50)
        for idx, col in enumerate(columns)
    ]

    def line(values):
        parts = []
        for idx, col in enumerate(columns):
            value = values[idx]
            if len(value) > widths[idx]:
                value = value[:widths[idx] - 3] + '...'
            parts.append(value.rjust(widths[idx]) if col.get('numeric') else value.ljust(widths[idx]))
        return separator.join(parts).rstrip()

    lines = [line([col['header'] for col in columns])]
    lines.append(separator.join('-' * width for width in widths))
    lines.extend(line(values) for values in rendered)
    return '\n'.join(lines) + '\n'


def create_export_response(
    data: list[dict],
    columns: list[dict],
    format: str,
    filename: str,
    title: str = 'Export',
) -> HttpResponse:
    """
    HTTP attachment response with the exported file.

    CSV is encoded with a UTF-8 BOM so spreadsheet applications pick
    the right encoding for account names.
    """
    if format not in ExportFormat.CHOICES:
        raise ValueError(f"Invalid format: {format}. Must be one of {ExportFormat.CHOICES}")

    if format == ExportFormat.EXCEL:
        content = export_to_excel(data, columns, title=title)
    elif format == ExportFormat.CSV:
        content = export_to_csv(data, columns).encode('utf-8-sig')
    else:
        content = export_to_txt(data, columns).encode('utf-8')

    response = HttpResponse(content, content_type=ExportFormat.CONTENT_TYPES[format])
    response['Content-Disposition'] = f'attachment; filename="{filename}.{format}"'
    return response


# =============================================================================
# Trial Balance Export Configuration
# =============================================================================

TRIAL_BALANCE_EXPORT_COLUMNS = [
    {'key': 'account_code', 'header': 'Kode Akun', 'width': 12},
    {'key': 'account_name', 'header': 'Nama Akun', 'width': 35},
    {'key': 'account_type', 'header': 'Tipe', 'width': 12},
    {'key': 'debit', 'header': 'Debit', 'width': 18, 'numeric': True},
    {'key': 'credit', 'header': 'Kredit', 'width': 18, 'numeric': True},
]

TOTAL_LABEL = 'TOTAL'


def prepare_trial_balance_export_data(report: dict) -> list[dict]:
    """One row per account, then the TOTAL row."""
    data = [
        {
            'account_code': line['account_code'],
            'account_name': line['account_name'],
            'account_type': line['account_type'],
            'debit': line['debit'],
            'credit': line['credit'],
        }
        for line in report['lines']
    ]
    data.append({
        'account_code': TOTAL_LABEL,
        'account_name': '',
        'account_type': '',
        'debit': report['total_debit'],
        'credit': report['total_credit'],
        '_bold': True,
    })
    return data


def trial_balance_csv(report: dict) -> str:
    """Trial balance as CSV text (without BOM)."""
    return export_to_csv(prepare_trial_balance_export_data(report), TRIAL_BALANCE_EXPORT_COLUMNS)


def trial_balance_export_response(report: dict, format: str = ExportFormat.CSV) -> HttpResponse:
    as_of = report['as_of_date']
    return create_export_response(
        prepare_trial_balance_export_data(report),
        TRIAL_BALANCE_EXPORT_COLUMNS,
        format=format,
        filename=f"neraca-saldo-{as_of.isoformat()}",
        title=f"Neraca Saldo per {as_of.isoformat()}",
    )
