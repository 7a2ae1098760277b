"""
XLSX report generator for the Lake Site Review Report.

This module generates an Excel (.xlsx) workbook of the reviewed lake sites.

The generated workbook includes:
    - Reviewed Sites: one row per exported site, with a Neotoma Explorer
      hyperlink on each dataset id
    - Summary: headline counts and the number of sites per edit code
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

logger = logging.getLogger(f'lakereport.{__name__}')

EXPLORER_URL = "https://apps.neotomadb.org/explorer/?datasetid={dsid}"

HEADER_FILL = PatternFill(start_color='366092', end_color='366092', fill_type='solid')
HEADER_FONT = Font(bold=True, color='FFFFFF', size=11)


def _style_header(ws, n_columns: int) -> None:
    for col_num in range(1, n_columns + 1):
        cell = ws.cell(row=1, column=col_num)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal='center', vertical='center')
    ws.freeze_panes = 'A2'


def _cell_value(value):
    if value is None or value is pd.NA:
        return None
    if isinstance(value, float) and value != value:
        return None
    if hasattr(value, 'item'):  # numpy scalars
        return value.item()
    return value


def generate_xlsx_report(
    export: pd.DataFrame,
    summary: Dict,
    xlsx_path: Path,
    version: str
) -> Optional[Path]:
    """
    Generate an Excel workbook of the reviewed sites.

    Args:
        export: Export table from build_export (edit codes as integers)
        summary: Output of summarize_changes
        xlsx_path: Destination file
        version: Report version tag (shown on the summary sheet)

    Returns:
        Path to generated XLSX file, or None if generation fails
    """
    logger.info("Generating XLSX report...")

    try:
        wb = Workbook()
        ws = wb.active
        ws.title = "Reviewed Sites"

        headers = list(export.columns)
        ws.append(headers)
        _style_header(ws, len(headers))

        dsid_col = headers.index('dsid') + 1 if 'dsid' in headers else None

        for row in export.itertuples(index=False):
            ws.append([_cell_value(v) for v in row])

            if dsid_col:
                cell = ws.cell(row=ws.max_row, column=dsid_col)
                if cell.value is not None:
                    cell.hyperlink = EXPLORER_URL.format(dsid=cell.value)
                    cell.font = Font(underline='single', color='0563C1')

        for col_num, header in enumerate(headers, 1):
            width = 30 if header in ('sitename', 'lake_name', 'notes') else 14
            ws.column_dimensions[get_column_letter(col_num)].width = width

        summary_ws = wb.create_sheet("Summary")
        summary_ws.append(['Measure', 'Sites'])
        _style_header(summary_ws, 2)
        summary_ws.append(['Report version', version])
        summary_ws.append(['Reviewed sites', summary['total']])
        summary_ws.append(['Moved', summary['moved']])
        summary_ws.append(['Area changed', summary['area_changed']])
        summary_ws.append(['Area newly assigned', summary['area_assigned']])
        for label, count in summary['by_edit'].items():
            summary_ws.append([f"Edit code: {label}", count])
        summary_ws.column_dimensions['A'].width = 28
        summary_ws.column_dimensions['B'].width = 14

        wb.save(xlsx_path)
        logger.info(f"✓ XLSX report saved: {xlsx_path.name} ({len(export)} sites)")

        return xlsx_path

    except Exception as e:
        logger.error(f"Failed to generate XLSX report: {e}", exc_info=True)
        return None
