"""
Hydrography overlay for lake sites.

Matches site points to national water-body polygons (CanVec for Canada, NHD
for the United States) with a point-in-polygon spatial join. The polygon
layers are large, so this runs out-of-band through match_hydrography.py on a
machine with enough memory; the report only reads the CSV it writes.

Functions:
    load_lake_polygons: Read a water-body layer and standardize its fields
    sites_to_points: Build a point GeoDataFrame from site coordinates
    match_sites_to_lakes: Best-fit lake per site
"""

from pathlib import Path
from typing import Dict

import geopandas as gpd
import pandas as pd
from pyproj import CRS

from utils.logger import get_logger

logger = get_logger(__name__)

WGS84 = CRS.from_epsg(4326)
MATCH_OUTPUT_COLUMNS = ['stid', 'sitename', 'lat', 'long', 'area', 'link_id', 'lake_area', 'lake_name']


def load_lake_polygons(file_path: str, lake_fields: Dict[str, str]) -> gpd.GeoDataFrame:
    """
    Read a water-body polygon layer.

    The layer's id, area and name attributes (named by lake_fields 'id',
    'area', 'name') become link_id, lake_area and lake_name. Output is in
    EPSG:4326.

    Raises:
    -------
    FileNotFoundError
        If the layer doesn't exist
    KeyError
        If a configured attribute is missing from the layer
    """
    if not Path(file_path).exists():
        raise FileNotFoundError(f"Hydrography layer not found: {file_path}")

    logger.info(f"Reading hydrography polygons from: {file_path}")
    lakes = gpd.read_file(file_path)
    logger.info(f"  - Original CRS: {lakes.crs}")
    logger.info(f"  - Number of features: {len(lakes)}")

    rename = {
        lake_fields['id']: 'link_id',
        lake_fields['area']: 'lake_area',
        lake_fields['name']: 'lake_name'
    }
    missing = [field for field in rename if field not in lakes.columns]
    if missing:
        raise KeyError(f"Hydrography layer missing fields: {', '.join(missing)}")

    lakes = lakes.rename(columns=rename)[['link_id', 'lake_area', 'lake_name', 'geometry']]

    if lakes.crs is None:
        logger.warning("  ⚠ Layer has no CRS, assuming EPSG:4326")
        lakes = lakes.set_crs(WGS84)
    elif CRS.from_user_input(lakes.crs) != WGS84:
        logger.info("  - Reprojecting to EPSG:4326...")
        lakes = lakes.to_crs(WGS84)

    return lakes


def sites_to_points(sites: pd.DataFrame) -> gpd.GeoDataFrame:
    """One point per site; rows without both coordinates are skipped."""
    located = sites.dropna(subset=['lat', 'long'])
    skipped = len(sites) - len(located)
    if skipped:
        logger.warning(f"  ⚠ {skipped} sites without coordinates skipped")

    return gpd.GeoDataFrame(
        located.reset_index(drop=True),
        geometry=gpd.points_from_xy(located['long'], located['lat']),
        crs=WGS84
    )


def match_sites_to_lakes(sites: pd.DataFrame, lakes: gpd.GeoDataFrame) -> pd.DataFrame:
    """
    Best-fit lake per site.

    Each site point is joined to the polygons that contain it. Where nested or
    overlapping polygons both contain a site the largest lake wins. Sites
    inside no polygon are kept with a null link_id.

    Parameters:
    -----------
    sites : pd.DataFrame
        Sites with stid, lat, long and optionally sitename, area
    lakes : gpd.GeoDataFrame
        Output of load_lake_polygons

    Returns:
    --------
    pd.DataFrame
        MATCH_OUTPUT_COLUMNS, one row per site, sorted by stid
    """
    sites = sites.drop_duplicates(subset=['stid'])
    points = sites_to_points(sites)
    points = points.drop(columns=[c for c in ('link_id', 'lake_area', 'lake_name') if c in points.columns])

    joined = gpd.sjoin(points, lakes, how='left', predicate='within')
    joined = joined.drop(columns=['index_right'], errors='ignore')

    joined = joined.sort_values('lake_area', ascending=False, na_position='last', kind='mergesort')
    best = joined[~joined.index.duplicated(keep='first')].sort_index()

    result = pd.DataFrame(best.drop(columns='geometry')).reindex(columns=MATCH_OUTPUT_COLUMNS)
    result = result.sort_values('stid', kind='mergesort').reset_index(drop=True)

    linked = int(result['link_id'].notna().sum())
    logger.info(f"  ✓ {linked} of {len(result)} sites fall inside a lake polygon")
    return result
