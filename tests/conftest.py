"""
Pytest configuration and fixtures for lake site review report tests.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from config.config_loader import load_config  # noqa: E402
from core.edit_codes import EditCode  # noqa: E402


@pytest.fixture
def report_config():
    """The shipped report configuration."""
    return load_config()


@pytest.fixture
def api_config():
    """Minimal configuration for the Neotoma query functions."""
    return {
        'api': {
            'base_url': 'https://api.neotomadb.org/v2.0',
            'datasets_endpoint': 'data/datasets',
            'chroncontrols_endpoint': 'data/datasets/{datasetid}/chroncontrols',
            'datasettype': 'pollen',
            'page_size': 500,
            'max_pages': 5,
            'timeout': 5
        },
        'scopes': {'CA': {'name': 'Canada', 'gpid': 756}},
        'settings': {'coordinate_precision': 4}
    }


@pytest.fixture
def sample_matches():
    """Combined match table for three sites (A=1, B=2, C=3)."""
    return pd.DataFrame({
        'source': ['canvec', 'canvec', 'nhd'],
        'stid': [1, 2, 3],
        'sitename': ['Lake A', 'Lake B', 'Lake C'],
        'lat': [45.0, 46.0, 47.0],
        'long': [-90.0, -91.0, -92.0],
        'area': [50.0, np.nan, 12.0],
        'link_id': ['CV-1', None, 'NHD-3'],
        'lake_area': [52.0, np.nan, 11.0],
        'lake_name': ['Lake A', None, 'Lake C'],
        'linked': [True, False, True]
    })


@pytest.fixture
def sample_edits():
    """Edit table covering sites A and C only."""
    return pd.DataFrame({
        'stid': [1, 3],
        'edit': pd.Series([EditCode.MOVED, EditCode.UNCHANGED], dtype=object),
        'notes': ['moved onto the basin', None],
        'lat_corrected': [45.1, 47.0],
        'long_corrected': [-90.0, -92.0],
        'area_corrected': [30.0, 12.0],
        'deptype': ['Natural Lake', 'Bog']
    })


@pytest.fixture
def chronology_records():
    """Fetched records as returned by fetch_scope_chronology."""
    return [
        {
            'scope': 'CA', 'stid': 1, 'dsid': 11, 'sitename': 'Lake A',
            'lat': 45.0, 'long': -90.0, 'area': 50.0, 'deptype': 'Natural Lake',
            'controls': [
                {'controltype': 'Core top', 'age': 100.0, 'depth': 0.0},
                {'controltype': 'Radiocarbon', 'age': 150.0, 'depth': 20.0},
                {'controltype': 'Radiocarbon', 'age': 400.0, 'depth': 50.0}
            ]
        },
        {
            'scope': 'CA', 'stid': 2, 'dsid': 22, 'sitename': 'Lake B',
            'lat': 46.0, 'long': -91.0, 'area': None, 'deptype': 'Marsh',
            'controls': []
        },
        {
            'scope': 'CA', 'stid': 3, 'dsid': 33, 'sitename': 'Lake C',
            'lat': 47.0, 'long': -92.0, 'area': 12.0, 'deptype': 'Bog',
            'controls': [
                {'controltype': 'Biostratigraphic', 'age': 9000.0, 'depth': 300.0}
            ]
        }
    ]
