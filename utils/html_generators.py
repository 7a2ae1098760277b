"""
HTML generation utilities for the Lake Site Review Report.

This module provides functions to generate HTML fragments for map popups and
the side panel. Used by the map builder.

Functions:
    generate_record_popup: Popup HTML for one reviewed site
    generate_legend_panel: Side panel HTML with the field legends and counts
"""

import html
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
from jinja2 import Environment, FileSystemLoader

from utils.legend import LegendStrategy
from utils.popup_formatters import format_popup_value

TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

POPUP_FIELDS = [
    'stid', 'dsid', 'source', 'edit_label', 'lat_original', 'long_original', 'lat', 'long',
    'displacement', 'area_original', 'area', 'area_delta', 'lake_name', 'lake_area',
    'deptype', 'notes'
]


def generate_record_popup(row: pd.Series, fields: Sequence[str] = POPUP_FIELDS) -> str:
    """
    Generate popup HTML for one site record.

    Shows the site name as a heading followed by every listed field present
    in the row.

    Example Output:
        <div style='font-size: 14px; font-weight: bold;'>Lake Tulane</div>
        <hr style='margin: 5px 0;'>
        <b>stid:</b> 2570<br>
        <b>displacement:</b> 0.0125<br>
    """
    name = row.get('sitename')
    if name is None or (isinstance(name, float) and name != name):
        name = f"Site {row.get('stid')}"

    popup_html = (
        f"<div style='font-size: 14px; font-weight: bold; margin: 5px 0;'>{html.escape(str(name))}</div>"
        "<hr style='margin: 5px 0;'>"
    )
    for col in fields:
        if col in row.index:
            popup_html += f"<b>{col}:</b> {format_popup_value(col, row[col])}<br>"

    return f"<div style='font-size: 12px;'>{popup_html}</div>"


def generate_legend_panel(legends: List[LegendStrategy], summary: Dict, title: str) -> str:
    """
    Render the side panel (legends plus headline counts) from side_panel.html.

    Parameters:
    -----------
    legends : List[LegendStrategy]
        One legend per mapped field
    summary : Dict
        Output of summarize_changes
    title : str
        Panel heading
    """
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=False)
    template = env.get_template('side_panel.html')
    return template.render(
        title=title,
        legends=[legend.legend_html() for legend in legends],
        summary=summary
    )
