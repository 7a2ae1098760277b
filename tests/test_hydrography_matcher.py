"""
Tests for the site to lake polygon overlay.
"""

from unittest.mock import patch

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

import match_hydrography
from core.hydrography_matcher import (
    MATCH_OUTPUT_COLUMNS,
    load_lake_polygons,
    match_sites_to_lakes,
    sites_to_points
)
from core.match_loader import load_match_table
from utils.logger import setup_logging

LAKE_FIELDS = {'id': 'feature_id', 'area': 'area_ha', 'name': 'name_en'}


@pytest.fixture
def lakes():
    """A large lake with a small bay polygon nested inside it."""
    return gpd.GeoDataFrame({
        'link_id': ['BIG', 'BAY'],
        'lake_area': [100.0, 5.0],
        'lake_name': ['Big Lake', 'Little Bay'],
        'geometry': [box(-91, 44, -89, 46), box(-90.1, 44.9, -89.9, 45.1)]
    }, crs='EPSG:4326')


@pytest.fixture
def sites():
    return pd.DataFrame({
        'stid': [2, 1, 3],
        'sitename': ['Dry Site', 'Bay Site', 'No Coordinates'],
        'lat': [50.0, 45.0, None],
        'long': [-100.0, -90.0, None],
        'area': [None, 3.0, None]
    })


class TestMatchSitesToLakes:
    """Test match_sites_to_lakes."""

    def test_largest_containing_lake_wins(self, sites, lakes):
        result = match_sites_to_lakes(sites, lakes)

        bay_site = result[result['stid'] == 1].iloc[0]
        assert bay_site['link_id'] == 'BIG'
        assert bay_site['lake_area'] == 100.0

    def test_site_outside_every_lake(self, sites, lakes):
        result = match_sites_to_lakes(sites, lakes)

        dry = result[result['stid'] == 2].iloc[0]
        assert pd.isna(dry['link_id'])

    def test_one_row_per_located_site(self, sites, lakes):
        result = match_sites_to_lakes(sites, lakes)

        assert list(result.columns) == MATCH_OUTPUT_COLUMNS
        assert list(result['stid']) == [1, 2]


class TestSitesToPoints:
    """Test sites_to_points."""

    def test_skips_unlocated(self, sites):
        points = sites_to_points(sites)

        assert len(points) == 2
        assert points.crs.to_epsg() == 4326
        assert points.geometry.iloc[1].x == -90.0


class TestLoadLakePolygons:
    """Test load_lake_polygons."""

    def test_renames_and_reprojects(self, tmp_path):
        layer = gpd.GeoDataFrame({
            'feature_id': ['L1'],
            'area_ha': [12.5],
            'name_en': ['Lac Test'],
            'geometry': [box(-80, 45, -79.9, 45.1)]
        }, crs='EPSG:4326').to_crs('EPSG:3857')
        path = tmp_path / 'lakes.gpkg'
        layer.to_file(path, driver='GPKG')

        lakes = load_lake_polygons(str(path), LAKE_FIELDS)

        assert list(lakes.columns) == ['link_id', 'lake_area', 'lake_name', 'geometry']
        assert lakes.crs.to_epsg() == 4326
        assert lakes.geometry.iloc[0].bounds[0] == pytest.approx(-80.0)

    def test_missing_field(self, tmp_path):
        layer = gpd.GeoDataFrame({'feature_id': ['L1'], 'geometry': [box(0, 0, 1, 1)]}, crs='EPSG:4326')
        path = tmp_path / 'lakes.gpkg'
        layer.to_file(path, driver='GPKG')

        with pytest.raises(KeyError, match='area_ha'):
            load_lake_polygons(str(path), LAKE_FIELDS)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_lake_polygons(str(tmp_path / 'absent.gpkg'), LAKE_FIELDS)


class TestMatchHydrographyMain:
    """Test the out-of-band matcher entry point."""

    def test_writes_loadable_match_table(self, tmp_path, lakes):
        sites_file = tmp_path / 'sites.csv'
        pd.DataFrame({
            'scope': ['CA', 'CA', 'US'],
            'stid': [1, 2, 4],
            'sitename': ['Bay Site', 'Dry Site', 'Pond Four'],
            'lat': [45.0, 50.0, 45.0],
            'long': [-90.0, -100.0, -90.0],
            'area': [3.0, None, 20.0]
        }).to_csv(sites_file, index=False)
        lakes_file = tmp_path / 'lakes.gpkg'
        lakes.rename(columns={
            'link_id': 'feature_id', 'lake_area': 'area_ha', 'lake_name': 'name_en'
        }).to_file(lakes_file, driver='GPKG')

        with patch('match_hydrography.setup_logging', lambda tag=None: setup_logging(tmp_path, tag)):
            output = match_hydrography.main(
                str(sites_file), str(lakes_file), 'canvec', str(tmp_path / 'canvec_lakes.csv')
            )

        matches = load_match_table(output, 'canvec')
        assert list(matches['stid']) == [1, 2]
        assert matches.loc[0, 'link_id'] == 'BIG'

    def test_unknown_source_fails(self, tmp_path):
        with patch('match_hydrography.setup_logging', lambda tag=None: setup_logging(tmp_path, tag)):
            assert match_hydrography.main('sites.csv', 'lakes.gpkg', 'osm', 'out.csv') is None
