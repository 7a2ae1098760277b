"""
Depositional environment vocabulary for exported sites.

Neotoma and the reviewers spell depositional environments many ways
("Natural Lake", "lake ", "Lacustrine", "Marshes"). Exports use a small set
of canonical codes defined in the configuration's deposition_vocabulary.

Functions:
    build_lookup: Map normalized variant spellings to canonical codes
    normalize_deptype: Canonical code for a single value
    normalize_deptypes: Canonical codes for a Series
"""

import re
from typing import Any, Dict, List, Optional

import pandas as pd


def _clean(value: str) -> str:
    return re.sub(r'\s+', ' ', value.strip().lower())


def build_lookup(vocabulary: Dict[str, List[str]]) -> Dict[str, str]:
    """Invert {code: [variants]} into {normalized variant: code}."""
    lookup = {}
    for code, variants in vocabulary.items():
        lookup[_clean(code)] = code
        for variant in variants:
            lookup[_clean(variant)] = code
    return lookup


def normalize_deptype(value: Any, lookup: Dict[str, str], other_code: str = 'OTHER') -> Optional[str]:
    """Canonical code for one depositional environment, None for blanks."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    cleaned = _clean(str(value))
    if not cleaned:
        return None
    return lookup.get(cleaned, other_code)


def normalize_deptypes(values: pd.Series, vocabulary: Dict[str, List[str]], other_code: str = 'OTHER') -> pd.Series:
    lookup = build_lookup(vocabulary)
    # object dtype keeps blanks as None
    return pd.Series(
        [normalize_deptype(v, lookup, other_code) for v in values],
        index=values.index, dtype=object
    )
