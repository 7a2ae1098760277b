"""
Tests for legend strategies and popup formatting.
"""

import numpy as np
import pandas as pd
import pytest

from core.edit_codes import EditCode
from utils.legend import (
    CategoricalLegend,
    ContinuousLegend,
    legend_for_field,
    palette_colors
)
from utils.popup_formatters import format_popup_value

EDIT_FIELD = {
    'field': 'edit',
    'label': 'Edit code',
    'type': 'categorical',
    'categories': {
        '0': {'label': 'Artifact', 'color': '#7f7f7f'},
        '1': {'label': 'Moved', 'color': '#d62728'}
    },
    'missing_color': '#cccccc',
    'missing_label': 'Not reviewed'
}


class TestCategoricalLegend:
    """Test CategoricalLegend."""

    def test_edit_codes_and_numbers_share_keys(self):
        legend = legend_for_field(EDIT_FIELD)

        assert isinstance(legend, CategoricalLegend)
        assert legend.color_for(EditCode.MOVED) == '#d62728'
        assert legend.color_for(1.0) == '#d62728'
        assert legend.color_for(np.int64(0)) == '#7f7f7f'

    def test_missing_and_unknown(self):
        legend = legend_for_field(EDIT_FIELD)

        assert legend.color_for(None) == '#cccccc'
        assert legend.color_for(pd.NA) == '#cccccc'
        assert legend.color_for(7) == '#cccccc'
        assert legend.label_for(None) == 'Not reviewed'

    def test_legend_html_lists_categories(self):
        html = legend_for_field(EDIT_FIELD).legend_html()

        assert 'Artifact' in html
        assert 'Moved' in html
        assert 'Not reviewed' in html


class TestContinuousLegend:
    """Test ContinuousLegend."""

    def test_range_from_values(self):
        legend = legend_for_field(
            {'field': 'displacement', 'type': 'continuous', 'palette': 'viridis'},
            [0.0, 0.5, None, 2.0]
        )

        assert isinstance(legend, ContinuousLegend)
        assert (legend.vmin, legend.vmax) == (0.0, 2.0)

    def test_clipped_to_end_colors(self):
        legend = legend_for_field(
            {'field': 'displacement', 'type': 'continuous', 'palette': 'viridis'},
            [0.0, 2.0]
        )

        assert legend.color_for(-5) == legend.color_for(0.0)
        assert legend.color_for(10) == legend.color_for(2.0)
        assert legend.color_for(np.nan) == legend.missing_color

    def test_symmetric_range(self):
        legend = legend_for_field(
            {'field': 'area_delta', 'type': 'continuous', 'palette': 'RdBu', 'symmetric': True},
            [-2.0, 5.0]
        )

        assert (legend.vmin, legend.vmax) == (-5.0, 5.0)

    def test_constant_values(self):
        legend = legend_for_field({'field': 'area_delta', 'type': 'continuous'}, [0.0, 0.0])

        assert legend.vmax > legend.vmin
        assert legend.color_for(0.0).startswith('#')


class TestLegendForField:
    """Test legend selection."""

    def test_unknown_type(self):
        with pytest.raises(ValueError, match='hexbin'):
            legend_for_field({'field': 'edit', 'type': 'hexbin'})

    def test_palette_colors(self):
        colors = palette_colors('viridis', 3)

        assert len(colors) == 3
        assert colors[0] == '#440154'

    def test_unknown_palette_falls_back(self):
        assert palette_colors('not-a-palette', 3) == palette_colors('viridis', 3)


class TestFormatPopupValue:
    """Test format_popup_value."""

    def test_missing_values(self):
        assert format_popup_value('area', None) == 'None'
        assert format_popup_value('area', float('nan')) == 'None'
        assert format_popup_value('dsid', pd.NA) == 'None'

    def test_edit_code(self):
        assert format_popup_value('edit', EditCode.MOVED) == 'Moved (1)'

    def test_float_precision(self):
        assert format_popup_value('displacement', 0.123456) == '0.1235'

    def test_text_is_escaped(self):
        assert format_popup_value('notes', '<b>moved</b>') == '&lt;b&gt;moved&lt;/b&gt;'

    def test_url_becomes_link(self):
        result = format_popup_value('notes', 'https://apps.neotomadb.org/explorer/?siteid=1')

        assert result.startswith('<a href="https://apps.neotomadb.org/explorer/?siteid=1"')
