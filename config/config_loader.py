"""
Configuration loading for the Lake Site Review Report.

This module handles loading and validation of the report configuration JSON file.

Constants:
    PROJECT_ROOT: Root directory of the project
    CONFIG_DIR: Configuration files directory
    DATA_DIR: Input files directory (hydrography matches, edit table)
    OUTPUT_DIR: Versioned output directory root

Functions:
    load_config: Load and validate report configuration from JSON
    load_report_settings: Merge report settings over defaults
    version_dir_name: Directory name for a version tag
"""

import json
from pathlib import Path
from typing import Dict, Optional

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / 'config'
DATA_DIR = PROJECT_ROOT / 'data'
OUTPUT_DIR = PROJECT_ROOT / 'outputs'

REQUIRED_KEYS = ('api', 'scopes', 'hydrography_sources', 'edit_table', 'map_fields', 'settings')


def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load report configuration from JSON file.

    Reads report_config.json and validates basic structure.

    Parameters:
    -----------
    config_path : Optional[Path]
        Alternate configuration file (defaults to CONFIG_DIR/report_config.json)

    Returns:
    --------
    Dict
        Configuration dictionary

    Raises:
    -------
    FileNotFoundError
        If configuration file doesn't exist
    json.JSONDecodeError
        If configuration file contains invalid JSON
    KeyError
        If required configuration keys are missing
    """
    if config_path is None:
        config_path = CONFIG_DIR / 'report_config.json'

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    # Validate required keys
    for key in REQUIRED_KEYS:
        if key not in config:
            raise KeyError(f"Configuration missing required '{key}' key")

    return config


def load_report_settings(config: Dict = None) -> Dict:
    """
    Load report settings from configuration.

    Args:
        config: Configuration dictionary (optional, will load if not provided)

    Returns:
        Dictionary with report settings

    Defaults:
        - default_zoom: 3
        - coordinate_precision: 4
        - float_format: '%.6f'
        - vector_format: 'geojson'
        - deptype_other_code: 'OTHER'
        - marker_radius: 5
    """
    if config is None:
        config = load_config()

    defaults = {
        'default_zoom': 3,
        'coordinate_precision': 4,
        'float_format': '%.6f',
        'vector_format': 'geojson',
        'deptype_other_code': 'OTHER',
        'marker_radius': 5
    }

    return {**defaults, **config.get('settings', {})}


def version_dir_name(version: str) -> str:
    """Directory name holding every artifact of one report version."""
    return f"version_{version}"
