"""
Map building module for the Lake Site Review Report.

This module creates the interactive Leaflet map with Folium: one toggleable
layer per configured map field (edit code, displacement, area change), each
coloured by that field's legend strategy, plus the moves made by reviewers.

Functions:
    map_bounds: Bounding box of the plotted sites
    create_report_map: Generate the complete interactive map
"""

from typing import Dict, List, Optional

import folium
import pandas as pd
from folium import Element

from utils.basemap_helpers import add_basemaps, get_basemap_config
from utils.html_generators import generate_legend_panel, generate_record_popup
from utils.legend import LegendStrategy
from utils.logger import get_logger

logger = get_logger(__name__)

# North America, used when no site has coordinates
DEFAULT_BOUNDS = [[24.0, -170.0], [72.0, -50.0]]


def map_bounds(table: pd.DataFrame) -> List[List[float]]:
    """[[south, west], [north, east]] of the plotted site positions."""
    located = table.dropna(subset=['lat', 'long'])
    if located.empty:
        return DEFAULT_BOUNDS
    return [
        [float(located['lat'].min()), float(located['long'].min())],
        [float(located['lat'].max()), float(located['long'].max())]
    ]


def _add_field_layer(m: folium.Map, table: pd.DataFrame, legend: LegendStrategy,
                     field_config: Dict, popups: Dict, radius: int) -> None:
    layer = folium.FeatureGroup(name=legend.label, show=field_config.get('show', True))

    for idx, row in table.iterrows():
        color = legend.color_for(row.get(legend.field))
        folium.CircleMarker(
            location=[row['lat'], row['long']],
            radius=radius,
            color=color,
            weight=1,
            fill=True,
            fill_color=color,
            fill_opacity=0.8,
            popup=folium.Popup(popups[idx], max_width=400),
            tooltip=str(row.get('sitename', row['stid']))
        ).add_to(layer)

    layer.add_to(m)
    logger.info(f"  - Added {legend.label} layer ({len(table)} sites, {legend.legend_type})")


def _add_moves_layer(m: folium.Map, table: pd.DataFrame) -> None:
    moved = table[table['displacement'] > 0].dropna(subset=['lat_original', 'long_original'])
    layer = folium.FeatureGroup(name='Reviewer moves', show=True)

    for _, row in moved.iterrows():
        folium.PolyLine(
            locations=[[row['lat_original'], row['long_original']], [row['lat'], row['long']]],
            color='#444444',
            weight=1.5,
            dash_array='4 4',
            tooltip=f"{row.get('sitename', row['stid'])}: moved {row['displacement']:.4f}°"
        ).add_to(layer)

    layer.add_to(m)
    logger.info(f"  - Added reviewer moves layer ({len(moved)} moves)")


def create_report_map(
    table: pd.DataFrame,
    legends: List[LegendStrategy],
    summary: Dict,
    config: Dict,
    title: Optional[str] = None
) -> folium.Map:
    """
    Create the interactive map of reviewed sites.

    Sites are plotted at their final (best-available) position from the
    'lat'/'long' columns. The original position is read from
    'lat_original'/'long_original' for the moves layer.

    Parameters:
    -----------
    table : pd.DataFrame
        Export table from build_export
    legends : List[LegendStrategy]
        One legend per entry of config['map_fields'], in the same order
    summary : Dict
        Output of summarize_changes (shown in the side panel)
    config : Dict
        Configuration dictionary
    title : Optional[str]
        Page title and side panel heading

    Returns:
    --------
    folium.Map
        Folium map object ready to be saved
    """
    logger.info("=" * 80)
    logger.info("Creating Interactive Web Map")
    logger.info("=" * 80)

    settings = config.get('settings', {})
    title = title or "Lake Site Review"
    bounds = map_bounds(table)

    m = folium.Map(
        location=[(bounds[0][0] + bounds[1][0]) / 2, (bounds[0][1] + bounds[1][1]) / 2],
        zoom_start=settings.get('default_zoom', 3),
        tiles=None
    )
    add_basemaps(m, get_basemap_config(config))

    located = table.dropna(subset=['lat', 'long'])
    if len(located) < len(table):
        logger.warning(f"  ⚠ {len(table) - len(located)} sites without coordinates not mapped")

    # Popups are identical across field layers, build them once
    popups = {idx: generate_record_popup(row) for idx, row in located.iterrows()}

    field_configs = {fc['field']: fc for fc in config['map_fields']}
    for legend in legends:
        _add_field_layer(
            m, located, legend, field_configs.get(legend.field, {}), popups,
            settings.get('marker_radius', 5)
        )

    if 'displacement' in located.columns and 'lat_original' in located.columns:
        _add_moves_layer(m, located)

    folium.LayerControl(collapsed=False, position='topleft').add_to(m)

    m.get_root().html.add_child(Element(generate_legend_panel(legends, summary, title)))
    m.fit_bounds(bounds)
    m.get_root().title = title

    logger.info("  ✓ Map created successfully\n")
    return m
