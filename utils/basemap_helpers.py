"""
Basemap utility functions for the report map.

This module provides functions to:
- Read the basemap list from configuration (with a default set)
- Add the basemaps to a folium map as switchable tile layers
"""

from typing import Dict, List

import folium

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BASEMAPS = [
    {'name': 'Street Map', 'tiles': 'OpenStreetMap'},
    {'name': 'Light Theme', 'tiles': 'CartoDB positron'},
    {'name': 'Satellite Imagery', 'tiles': 'Esri WorldImagery'}
]


def get_basemap_config(config: Dict) -> List[Dict]:
    """
    Basemap definitions, in display order.

    Each entry has 'name' (label in the layer control) and 'tiles' (a folium
    tile provider name or URL template; URL templates also need 'attribution').
    """
    basemaps = config.get('basemaps') or DEFAULT_BASEMAPS
    return [b for b in basemaps if b.get('tiles')]


def add_basemaps(m: folium.Map, basemaps: List[Dict]) -> None:
    """Add the basemaps as tile layers; the first one is shown initially."""
    for i, basemap in enumerate(basemaps):
        folium.TileLayer(
            basemap['tiles'],
            name=basemap.get('name', basemap['tiles']),
            attr=basemap.get('attribution'),
            show=(i == 0),
            overlay=False,
            control=True
        ).add_to(m)
        logger.debug(f"Added basemap: {basemap.get('name')}")
