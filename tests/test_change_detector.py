"""
Tests for displacement, area delta and the summary counts.
"""

import numpy as np
import pandas as pd
import pytest

from core.change_detector import area_delta, detect_changes, displacement, summarize_changes
from core.edit_codes import EditCode
from core.match_loader import join_edits


def _frame(rows, edited=True):
    columns = ['lat', 'long', 'area', 'lat_corrected', 'long_corrected', 'area_corrected']
    frame = pd.DataFrame(rows, columns=columns, dtype='float64')
    if edited is not None:
        frame['edit'] = pd.Series([EditCode.MOVED if edited else None] * len(frame), dtype=object)
    return frame


class TestDisplacement:
    """Test the scalar displacement function."""

    def test_unchanged_position(self):
        assert displacement(45.0, -90.0, 45.0, -90.0) == 0.0

    def test_moved_position(self):
        assert displacement(45.0, -90.0, 45.1, -90.0) == pytest.approx(0.1)

    def test_incomplete_correction_falls_back(self):
        assert displacement(45.0, -90.0, None, -89.0) == 0.0

    def test_missing_original(self):
        assert displacement(None, -90.0, 45.0, -90.0) is None


class TestAreaDelta:
    """Test the scalar area_delta function."""

    @pytest.mark.parametrize('area, corrected, expected', [
        (50, None, 50),
        (None, 30, -30),
        (50, 50, 0),
        (None, None, 0)
    ])
    def test_edited(self, area, corrected, expected):
        assert area_delta(area, corrected) == expected

    def test_unedited_keeps_original(self):
        assert area_delta(50, None, edited=False) == 0


class TestDetectChanges:
    """Test detect_changes on tables."""

    def test_area_cases(self):
        table = detect_changes(_frame([
            [45, -90, 50, 45, -90, None],
            [45, -90, None, 45, -90, 30],
            [45, -90, 50, 45, -90, 50],
            [45, -90, None, 45, -90, None]
        ]))

        assert list(table['area_delta']) == [50, -30, 0, 0]

    def test_unedited_rows_keep_area(self):
        table = detect_changes(_frame([[45, -90, 50, None, None, None]], edited=False))

        assert table.loc[0, 'area_delta'] == 0

    def test_without_edit_column_every_row_is_edited(self):
        table = detect_changes(_frame([[45, -90, 50, None, None, None]], edited=None))

        assert table.loc[0, 'area_delta'] == 50

    def test_displacement(self):
        table = detect_changes(_frame([
            [45, -90, None, 45, -90, None],
            [45, -90, None, 45.1, -90, None],
            [45, -90, None, None, -91, None],
            [None, -90, None, 45, -90, None]
        ]))

        assert table.loc[0, 'displacement'] == 0
        assert table.loc[1, 'displacement'] == pytest.approx(0.1)
        assert table.loc[2, 'displacement'] == 0
        assert np.isnan(table.loc[3, 'displacement'])

    def test_matches_scalar_functions(self, sample_matches, sample_edits):
        table = detect_changes(join_edits(sample_matches, sample_edits))

        for row in table.itertuples():
            expected = displacement(row.lat, row.long, row.lat_corrected, row.long_corrected)
            assert row.displacement == pytest.approx(expected)

    def test_input_unchanged(self, sample_matches, sample_edits):
        joined = join_edits(sample_matches, sample_edits)
        detect_changes(joined)

        assert 'displacement' not in joined.columns


class TestSummarizeChanges:
    """Test summarize_changes."""

    def test_counts(self, sample_matches, sample_edits):
        summary = summarize_changes(detect_changes(join_edits(sample_matches, sample_edits)))

        assert summary['total'] == 3
        assert summary['moved'] == 1
        # A: 50 -> 30; B unedited; C: 12 -> 12
        assert summary['area_changed'] == 1
        assert summary['area_assigned'] == 0
        assert summary['by_edit'] == {
            'Artifact': 0, 'Moved': 1, 'Unchanged': 1, 'No Match': 0, 'Not reviewed': 1
        }

    def test_area_assigned(self):
        summary = summarize_changes(detect_changes(_frame([[45, -90, None, 45, -90, 30]])))

        assert summary['area_assigned'] == 1
        assert summary['area_changed'] == 1
