#!/usr/bin/env python
"""
Hydrography Matcher
===================
Out-of-band overlay of lake sites on a national water-body layer.

The polygon layers (CanVec, NHD) are too heavy for the report build, so this
runs separately and writes the CSV that lake_report.py reads as a static
input.

Usage:
    python match_hydrography.py outputs/version_v2/chron_control_status_version_v2.csv \\
        /data/canvec/waterbody_2.shp canvec data/canvec_lakes.csv
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from config.config_loader import load_config
from core.hydrography_matcher import load_lake_polygons, match_sites_to_lakes
from utils.logger import setup_logging, get_logger


def main(sites_file: str, lakes_file: str, source: str, output_file: str) -> Optional[Path]:
    """
    Match the sites of one source's scope to that source's lake polygons.

    Parameters:
    -----------
    sites_file : str
        CSV with stid, lat, long (the chronology status table works)
    lakes_file : str
        Water-body polygon layer readable by geopandas
    source : str
        Key of config['hydrography_sources'] ('canvec' or 'nhd')
    output_file : str
        Destination CSV

    Returns:
    --------
    Optional[Path]
        Path to the written CSV, None if matching failed
    """
    log_file = setup_logging(tag=f"match_{source}")
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info(f"HYDROGRAPHY MATCHER - {source}")
    logger.info("=" * 80)

    try:
        config = load_config()
        source_config = config['hydrography_sources'][source]

        sites = pd.read_csv(sites_file)
        scope = source_config.get('scope')
        if scope and 'scope' in sites.columns:
            sites = sites[sites['scope'] == scope]
        logger.info(f"{len(sites)} site rows for scope {scope}")

        lakes = load_lake_polygons(lakes_file, source_config['lake_fields'])
        matches = match_sites_to_lakes(sites, lakes)

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        matches.to_csv(output_path, index=False, lineterminator='\n')

        logger.info(f"✓ Matches written to: {output_path}")
        return output_path

    except Exception as e:
        logger.error(f"✗ Matching failed: {e}", exc_info=True)
        logger.error(f"See log file for details: {log_file}")
        return None


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Overlay lake sites on a hydrography layer")
    parser.add_argument('sites_file')
    parser.add_argument('lakes_file')
    parser.add_argument('source', help="hydrography source key, e.g. canvec or nhd")
    parser.add_argument('output_file')
    args = parser.parse_args()

    result = main(args.sites_file, args.lakes_file, args.source, args.output_file)
    sys.exit(0 if result else 1)
