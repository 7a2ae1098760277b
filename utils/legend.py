"""
Legend strategies for colouring report map layers.

Each mapped field declares a type in the configuration's map_fields list. The
type selects how values become colours:

- categorical: fixed colour per category (e.g. edit codes)
- continuous: linear colour ramp sampled from a matplotlib palette

Both strategies expose the same interface so the map builder does not need
to know which one it holds.

Classes:
    LegendStrategy: Common interface
    CategoricalLegend: Colour lookup by category key
    ContinuousLegend: Linear ramp between the data minimum and maximum

Functions:
    palette_colors: Sample hex colours from a matplotlib palette
    legend_for_field: Build the strategy declared for a field
"""

import numbers
from typing import Any, Dict, Iterable, List, Optional

import matplotlib
import matplotlib.colors as mcolors
import pandas as pd
from branca.colormap import LinearColormap

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MISSING_COLOR = '#999999'


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def palette_colors(palette: str, n_colors: int = 5) -> List[str]:
    """
    Sample evenly spaced hex colours from a matplotlib palette.

    Unknown palette names fall back to 'viridis'.
    """
    try:
        cmap = matplotlib.colormaps[palette]
    except KeyError:
        logger.warning(f"Unknown palette '{palette}', using viridis")
        cmap = matplotlib.colormaps['viridis']

    n_colors = max(n_colors, 2)
    return [mcolors.rgb2hex(cmap(i / (n_colors - 1))) for i in range(n_colors)]


class LegendStrategy:
    """Maps field values to colours and renders the matching legend."""

    legend_type = None

    def __init__(self, field: str, label: str, missing_color: str = DEFAULT_MISSING_COLOR,
                 missing_label: str = 'No data'):
        self.field = field
        self.label = label
        self.missing_color = missing_color
        self.missing_label = missing_label

    def color_for(self, value: Any) -> str:
        raise NotImplementedError

    def legend_entries(self) -> List[Dict]:
        """List of {'label', 'color'} swatches shown in the legend."""
        raise NotImplementedError

    def legend_html(self) -> str:
        rows = ''.join(
            f'<div class="legend-row"><span class="legend-swatch" '
            f'style="background:{entry["color"]};"></span>{entry["label"]}</div>'
            for entry in self.legend_entries()
        )
        return f'<div class="legend" data-field="{self.field}"><div class="legend-title">{self.label}</div>{rows}</div>'


class CategoricalLegend(LegendStrategy):
    """
    Fixed colour per category.

    Category keys are strings; integral numbers (including IntEnum members
    such as EditCode) are looked up by their integer string, so 1, 1.0 and
    EditCode.MOVED all resolve to key "1".
    """

    legend_type = 'categorical'

    def __init__(self, field: str, label: str, categories: Dict[str, Dict], **kwargs):
        super().__init__(field, label, **kwargs)
        self.categories = categories

    @staticmethod
    def key_for(value: Any) -> str:
        if isinstance(value, numbers.Real) and float(value).is_integer():
            return str(int(value))
        return str(value)

    def color_for(self, value: Any) -> str:
        if _is_missing(value):
            return self.missing_color
        category = self.categories.get(self.key_for(value))
        return category['color'] if category else self.missing_color

    def label_for(self, value: Any) -> str:
        if _is_missing(value):
            return self.missing_label
        category = self.categories.get(self.key_for(value))
        return category['label'] if category else str(value)

    def legend_entries(self) -> List[Dict]:
        entries = [{'label': c['label'], 'color': c['color']} for c in self.categories.values()]
        entries.append({'label': self.missing_label, 'color': self.missing_color})
        return entries

    @classmethod
    def from_config(cls, field_config: Dict, values: Iterable = ()) -> 'CategoricalLegend':
        return cls(
            field_config['field'],
            field_config.get('label', field_config['field']),
            field_config.get('categories', {}),
            missing_color=field_config.get('missing_color', DEFAULT_MISSING_COLOR),
            missing_label=field_config.get('missing_label', 'No data')
        )


class ContinuousLegend(LegendStrategy):
    """
    Linear colour ramp between vmin and vmax.

    Values outside the range are clipped to the end colours. With
    symmetric=True the range is centred on zero, which keeps a diverging
    palette's midpoint on "no change".
    """

    legend_type = 'continuous'

    def __init__(self, field: str, label: str, colors: List[str], vmin: float, vmax: float, **kwargs):
        super().__init__(field, label, **kwargs)
        if vmin == vmax:
            vmax = vmin + 1.0
        self.vmin = vmin
        self.vmax = vmax
        self.colormap = LinearColormap(colors, vmin=vmin, vmax=vmax, caption=label)

    def color_for(self, value: Any) -> str:
        if _is_missing(value):
            return self.missing_color
        clipped = min(max(float(value), self.vmin), self.vmax)
        return self.colormap.rgb_hex_str(clipped)

    def legend_entries(self) -> List[Dict]:
        steps = max(len(self.colormap.colors), 2)
        span = self.vmax - self.vmin
        entries = []
        for i in range(steps):
            value = self.vmin + span * i / (steps - 1)
            entries.append({'label': f"{value:.3g}", 'color': self.color_for(value)})
        entries.append({'label': self.missing_label, 'color': self.missing_color})
        return entries

    @classmethod
    def from_config(cls, field_config: Dict, values: Iterable = ()) -> 'ContinuousLegend':
        finite = [float(v) for v in values if not _is_missing(v)]
        vmin = min(finite) if finite else 0.0
        vmax = max(finite) if finite else 1.0
        if field_config.get('symmetric'):
            bound = max(abs(vmin), abs(vmax))
            vmin, vmax = -bound, bound

        return cls(
            field_config['field'],
            field_config.get('label', field_config['field']),
            palette_colors(field_config.get('palette', 'viridis'), field_config.get('steps', 5)),
            vmin,
            vmax,
            missing_color=field_config.get('missing_color', DEFAULT_MISSING_COLOR),
            missing_label=field_config.get('missing_label', 'No data')
        )


LEGEND_TYPES = {
    CategoricalLegend.legend_type: CategoricalLegend,
    ContinuousLegend.legend_type: ContinuousLegend
}


def legend_for_field(field_config: Dict, values: Optional[Iterable] = None) -> LegendStrategy:
    """
    Build the legend strategy a map field declares.

    Parameters:
    -----------
    field_config : Dict
        One entry of config['map_fields'] ('field', 'label', 'type', ...)
    values : Optional[Iterable]
        Field values, used by continuous legends to set their range

    Raises:
    -------
    ValueError
        If the declared type is unknown
    """
    legend_type = field_config.get('type')
    if legend_type not in LEGEND_TYPES:
        raise ValueError(
            f"Unknown legend type '{legend_type}' for field '{field_config.get('field')}'"
        )
    return LEGEND_TYPES[legend_type].from_config(field_config, values if values is not None else ())
