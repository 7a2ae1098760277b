"""
Tests for depositional environment normalization.
"""

import numpy as np
import pandas as pd

from utils.vocabulary import build_lookup, normalize_deptype, normalize_deptypes

VOCABULARY = {
    'LAKE': ['Natural Lake', 'Lacustrine'],
    'MARSH': ['Marshes']
}


class TestNormalizeDeptype:
    """Test normalize_deptype."""

    def test_variants_map_to_code(self):
        lookup = build_lookup(VOCABULARY)

        assert normalize_deptype('Natural Lake', lookup) == 'LAKE'
        assert normalize_deptype('  natural   LAKE ', lookup) == 'LAKE'
        assert normalize_deptype('marsh', lookup) == 'MARSH'

    def test_unknown_becomes_other(self):
        lookup = build_lookup(VOCABULARY)

        assert normalize_deptype('Cave', lookup) == 'OTHER'
        assert normalize_deptype('Cave', lookup, other_code='UNKNOWN') == 'UNKNOWN'

    def test_blank_is_none(self):
        lookup = build_lookup(VOCABULARY)

        assert normalize_deptype(None, lookup) is None
        assert normalize_deptype(np.nan, lookup) is None
        assert normalize_deptype('  ', lookup) is None


class TestNormalizeDeptypes:
    """Test normalize_deptypes on a Series."""

    def test_series(self):
        result = normalize_deptypes(pd.Series(['Lacustrine', 'Marshes', 'Fen', None]), VOCABULARY)

        assert list(result) == ['LAKE', 'MARSH', 'OTHER', None]

    def test_shipped_vocabulary(self, report_config):
        result = normalize_deptypes(
            pd.Series(['Natural Lake']),
            report_config['deposition_vocabulary']
        )

        assert list(result) == ['LAKE']
