"""
Edit code vocabulary for manually reviewed lake sites.

Reviewers classify every site they inspect with one of four codes. The integer
values match the ones stored in the edit table.

Classes:
    EditCode: Enumerated review outcome

Functions:
    parse_edit_code: Convert a raw edit-table cell to an EditCode (or None)
"""

import math
from enum import IntEnum
from typing import Any, Optional


class EditCode(IntEnum):
    """Review outcome for a single site."""

    ARTIFACT = 0    # ArcGIS overlay artifact, site discarded
    MOVED = 1       # coordinates corrected onto the lake
    UNCHANGED = 2   # original position confirmed
    NO_MATCH = 3    # no water body found near the site

    @property
    def label(self) -> str:
        return self.name.replace('_', ' ').title()


def parse_edit_code(value: Any, stid: Any = None) -> Optional[EditCode]:
    """
    Convert a raw edit-table value to an EditCode.

    Accepts integers, integral floats and their string forms ("1", "1.0").
    Blank cells and NaN become None.

    Raises:
    -------
    ValueError
        If the value is not one of the known codes
    """
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Unreadable edit code {value!r} for site {stid}") from None

    if not number.is_integer():
        raise ValueError(f"Unreadable edit code {value!r} for site {stid}")

    try:
        return EditCode(int(number))
    except ValueError:
        raise ValueError(f"Unknown edit code {value!r} for site {stid}") from None
