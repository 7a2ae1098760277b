"""
Popup formatting utilities for the Lake Site Review Report.

This module provides functions to format attribute values for display in map popups.
Handles edit codes, floating point values and missing values. Reviewer notes
often cite a source page (a Neotoma Explorer or publication URL); a notes value
that is a URL is rendered as a clickable link.

Functions:
    format_popup_value: Format a single value for display in popup HTML
"""

import html
from typing import Any

import pandas as pd

from core.edit_codes import EditCode


def format_popup_value(col: str, value: Any, precision: int = 4) -> str:
    """
    Format popup values, converting URLs to clickable hyperlinks.

    Only free-text fields such as 'notes' carry URLs in practice.

    Parameters:
    -----------
    col : str
        Column name (used to detect URL fields)
    value : Any
        Value to format
    precision : int
        Decimal places for floating point values

    Returns:
    --------
    str
        Formatted HTML string safe for popup display

    Examples:
        >>> format_popup_value('sitename', 'Lake O\\'Hara')
        'Lake O&#x27;Hara'

        >>> format_popup_value('displacement', 0.123456)
        '0.1235'

        >>> format_popup_value('edit', EditCode.MOVED)
        'Moved (1)'

        >>> format_popup_value('area', None)
        'None'
    """
    # Handle None and NaN values
    if value is None or value is pd.NA or (isinstance(value, float) and value != value):  # NaN check
        return 'None'

    if isinstance(value, EditCode):
        return f"{value.label} ({int(value)})"

    if isinstance(value, float):
        return f"{value:.{precision}f}"

    value_str = str(value)

    # Check if this is a URL field (by column name or value content)
    is_url = 'url' in col.lower() or value_str.startswith(('http://', 'https://'))

    if is_url:
        if len(value_str) <= 60:
            display_text = value_str
        else:
            display_text = f"{value_str[:57]}..."

        return (
            f'<a href="{html.escape(value_str)}" target="_blank" '
            f'style="word-break: break-all; color: #0066cc;">{html.escape(display_text)}</a>'
        )

    return html.escape(value_str)
