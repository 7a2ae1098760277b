"""
Tests for the edit code vocabulary.
"""

import math

import pytest

from core.edit_codes import EditCode, parse_edit_code


class TestEditCode:
    """Test EditCode values and labels."""

    def test_values_match_edit_table(self):
        assert [int(code) for code in EditCode] == [0, 1, 2, 3]

    def test_labels(self):
        assert EditCode.ARTIFACT.label == 'Artifact'
        assert EditCode.NO_MATCH.label == 'No Match'


class TestParseEditCode:
    """Test parse_edit_code."""

    @pytest.mark.parametrize('raw, expected', [
        (0, EditCode.ARTIFACT),
        (1, EditCode.MOVED),
        (2.0, EditCode.UNCHANGED),
        ('3', EditCode.NO_MATCH),
        (' 1.0 ', EditCode.MOVED)
    ])
    def test_known_codes(self, raw, expected):
        assert parse_edit_code(raw) is expected

    @pytest.mark.parametrize('raw', [None, math.nan, '', '   '])
    def test_blank_is_none(self, raw):
        assert parse_edit_code(raw) is None

    @pytest.mark.parametrize('raw', [4, -1, 1.5, 'moved'])
    def test_invalid_code_raises(self, raw):
        with pytest.raises(ValueError, match='site 42'):
            parse_edit_code(raw, stid=42)
