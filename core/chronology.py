"""
Chronology summary module for the Lake Site Review Report.

Reduces the chronological controls fetched for each pollen dataset to a single
status row: how many controls of each type the age model rests on, and how
widely spaced they are.

Functions:
    interval_stats: Mean and maximum gap between consecutive control ages
    summarize_site: Summary statistics for one control sequence
    summarize_chronologies: Build the chronology status table for all records
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from utils.logger import get_logger

logger = get_logger(__name__)

IDENTIFIER_COLUMNS = ['scope', 'stid', 'dsid', 'sitename', 'lat', 'long', 'area', 'deptype']
STAT_COLUMNS = ['n_controls', 'avg_interval', 'max_interval']


def interval_stats(ages: Sequence[Optional[float]]) -> Tuple[Optional[float], Optional[float]]:
    """
    Mean and maximum difference between consecutive control ages.

    Only pairs where both ages are present contribute. Fewer than two ages, or
    no complete pair, yields (None, None).

    Example:
        >>> interval_stats([100, 150, 400])
        (150.0, 250.0)
        >>> interval_stats([100])
        (None, None)
    """
    series = pd.Series(list(ages), dtype='float64')
    if series.count() < 2:
        return None, None

    diffs = series.diff().dropna()
    if diffs.empty:
        return None, None

    return float(diffs.mean()), float(diffs.max())


def summarize_site(controls: List[Dict]) -> Dict:
    """
    Summarize one ordered control sequence.

    Returns an empty dict when there are no controls so that every statistic
    of the record stays null.
    """
    if not controls:
        return {}

    counts = Counter(c.get('controltype') or 'Unknown' for c in controls)
    avg_interval, max_interval = interval_stats([c.get('age') for c in controls])

    summary = dict(counts)
    summary['n_controls'] = len(controls)
    summary['avg_interval'] = avg_interval
    summary['max_interval'] = max_interval
    return summary


def summarize_chronologies(records: Iterable[Dict]) -> pd.DataFrame:
    """
    Build the chronology status table.

    One row per site/dataset record. Control-type count columns are the union
    of all types observed across the records, sorted alphabetically so the
    layout does not depend on processing order. Missing type cells are null.

    Parameters:
    -----------
    records : Iterable[Dict]
        Records from fetch_scope_chronology (identifier fields plus 'controls')

    Returns:
    --------
    pd.DataFrame
        IDENTIFIER_COLUMNS + sorted control types + STAT_COLUMNS
    """
    rows = []
    control_types = set()

    for record in records:
        row = {column: record.get(column) for column in IDENTIFIER_COLUMNS}
        summary = summarize_site(record.get('controls') or [])
        control_types.update(k for k in summary if k not in STAT_COLUMNS)
        row.update(summary)
        rows.append(row)

    type_columns = sorted(control_types)
    columns = IDENTIFIER_COLUMNS + type_columns + STAT_COLUMNS

    table = pd.DataFrame(rows).reindex(columns=columns)
    for column in ['stid', 'dsid', 'n_controls'] + type_columns:
        table[column] = table[column].astype('Int64')
    for column in ['lat', 'long', 'area', 'avg_interval', 'max_interval']:
        table[column] = pd.to_numeric(table[column], errors='coerce').astype('float64')

    table = table.sort_values(['scope', 'stid', 'dsid'], kind='mergesort').reset_index(drop=True)

    without = int(table['n_controls'].isna().sum())
    logger.info(
        f"  ✓ Chronology summary: {len(table)} records, {len(type_columns)} control types, "
        f"{without} without controls"
    )
    return table
