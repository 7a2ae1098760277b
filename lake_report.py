#!/usr/bin/env python
"""
Lake Site Review Report
=======================
Builds the versioned lake site review report: Neotoma pollen sites and their
chronological controls, joined against CanVec/NHD hydrography matches and the
manual edit table, rendered as an interactive map, a narrative HTML page and
the reviewed-site exports.

Usage:
    python lake_report.py v2
    python lake_report.py v2 --refresh          # ignore the cached fetch
    python lake_report.py v2 --scopes CA        # Canada only
"""

import argparse
import sys
import time
import warnings
from pathlib import Path
from typing import List, Optional

import pandas as pd

# Import logging first
from utils.logger import setup_logging, get_logger

from config.config_loader import DATA_DIR, OUTPUT_DIR, load_config, load_report_settings, version_dir_name
from core.change_detector import detect_changes, summarize_changes
from core.chronology import summarize_chronologies
from core.map_builder import create_report_map
from core.match_loader import (
    attach_dataset_ids,
    combine_matches,
    join_edits,
    load_edit_table,
    load_match_table,
    reviewed_records
)
from core.neotoma_query import fetch_scope_chronology
from core.output_generator import (
    build_export,
    cached_chronology_path,
    dedupe_by_site,
    generate_output,
    load_cached_chronology,
    staged_version_dir
)
from utils.legend import legend_for_field

# Suppress warnings for cleaner output
warnings.filterwarnings('ignore')


def load_chronology(version: str, config: dict, scopes: List[str], refresh: bool = False,
                    output_root: Path = OUTPUT_DIR):
    """
    Cache-or-recompute the chronology status table for a version.

    Returns:
    --------
    Tuple[pd.DataFrame, dict]
        Chronology table and fetch metadata
    """
    logger = get_logger(__name__)
    cache_path = cached_chronology_path(version, output_root)

    if cache_path.exists() and not refresh:
        return load_cached_chronology(cache_path), {'cached': True, 'scopes': {}}

    logger.info("=" * 80)
    logger.info("Fetching Neotoma Datasets")
    logger.info("=" * 80)

    records = []
    fetch_metadata = {'cached': False, 'scopes': {}}
    for scope in scopes:
        scope_records, scope_metadata = fetch_scope_chronology(scope, config)
        records.extend(scope_records)
        fetch_metadata['scopes'][scope] = scope_metadata

    return summarize_chronologies(records), fetch_metadata


def load_joined_matches(config: dict, chronology: pd.DataFrame, data_dir: Path = DATA_DIR) -> pd.DataFrame:
    """Hydrography matches of every source joined with edits and dataset ids."""
    logger = get_logger(__name__)
    logger.info("=" * 80)
    logger.info("Loading Hydrography Matches and Edits")
    logger.info("=" * 80)

    frames = [
        load_match_table(data_dir / source_config['file'], source, source_config)
        for source, source_config in config['hydrography_sources'].items()
    ]
    matches = combine_matches(frames)

    inputs = config.get('inputs', {})
    edits = load_edit_table(data_dir / inputs.get('edits', 'lake_edits.csv'), config['edit_table'])
    joined = join_edits(matches, edits)

    linkage = None
    linkage_file = inputs.get('dataset_linkage')
    if linkage_file and (data_dir / linkage_file).exists():
        linkage = pd.read_csv(data_dir / linkage_file)
        logger.info(f"  - Prior dataset linkage: {len(linkage)} rows")

    return attach_dataset_ids(joined, chronology, linkage)


def main(
    version: str,
    refresh: bool = False,
    scopes: Optional[List[str]] = None,
    data_dir: Path = DATA_DIR,
    output_root: Path = OUTPUT_DIR
) -> Optional[Path]:
    """
    Render the report for one version.

    Workflow Steps:
    1. Setup logging and load configuration
    2. Reuse the version's chronology cache or fetch from Neotoma
    3. Load hydrography matches and edits, join them
    4. Detect changes, apply review exclusions, build the export
    5. Create the interactive map
    6. Write every artifact into a staged version directory

    Parameters:
    -----------
    version : str
        Version tag; all artifacts go to outputs/version_<version>/
    refresh : bool
        Re-fetch from Neotoma even if the version has a cached chronology
    scopes : Optional[List[str]]
        Scope codes to fetch (defaults to every configured scope)

    Returns:
    --------
    Optional[Path]
        Path to the version directory if successful, None if failed
    """
    workflow_start_time = time.time()

    log_file = setup_logging(tag=version)
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info(f"LAKE SITE REVIEW REPORT - version {version}")
    logger.info("=" * 80)
    logger.info(f"Log file: {log_file}")
    logger.info("")

    try:
        config = load_config()
        config['settings'] = load_report_settings(config)
        scopes = scopes or list(config['scopes'])
        unknown = [s for s in scopes if s not in config['scopes']]
        if unknown:
            raise KeyError(f"Unknown scopes: {', '.join(unknown)}")

        chronology, fetch_metadata = load_chronology(version, config, scopes, refresh, output_root)
        joined = load_joined_matches(config, chronology, data_dir)

        logger.info("=" * 80)
        logger.info("Detecting Changes")
        logger.info("=" * 80)
        decorated = detect_changes(joined)
        reviewed = reviewed_records(decorated)
        sites = dedupe_by_site(reviewed)
        summary = summarize_changes(sites)
        export = build_export(sites, config)

        legends = [legend_for_field(fc, export[fc['field']]) for fc in config['map_fields']]
        title = f"Lake Site Review {version}"
        map_obj = create_report_map(export, legends, summary, config, title)

        metadata = {
            'title': title,
            'scope_names': [config['scopes'][s]['name'] for s in scopes],
            'fetch': fetch_metadata,
            'sources': sorted(config['hydrography_sources']),
            'joined_records': len(joined),
            'reviewed_records': len(reviewed)
        }

        with staged_version_dir(version, output_root) as staging_dir:
            generate_output(
                staging_dir, version, chronology, decorated, export,
                map_obj, summary, metadata, config
            )

        output_path = output_root / version_dir_name(version)
        total_execution_time = time.time() - workflow_start_time

        logger.info("")
        logger.info("✓ REPORT COMPLETE")
        logger.info(f"✓ Total execution time: {total_execution_time:.2f} seconds")
        logger.info(f"✓ Output directory: {output_path}")
        logger.info(f"✓ Log file: {log_file}")
        logger.info("")

        return output_path

    except Exception as e:
        elapsed_time = time.time() - workflow_start_time

        logger.error("")
        logger.error("=" * 80)
        logger.error("✗ REPORT FAILED")
        logger.error("=" * 80)
        logger.error(f"Error: {str(e)}", exc_info=True)
        logger.error(f"Report failed after {elapsed_time:.2f} seconds")
        logger.error("")
        logger.error(f"See log file for details: {log_file}")
        logger.error("=" * 80)
        return None


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Render the lake site review report for a version")
    parser.add_argument('version', help="version tag, e.g. v2")
    parser.add_argument('--refresh', action='store_true', help="re-fetch even if a cached fetch exists")
    parser.add_argument('--scopes', nargs='+', help="scope codes to fetch (default: all configured)")
    args = parser.parse_args()

    output_dir = main(args.version, refresh=args.refresh, scopes=args.scopes)

    if output_dir:
        print(f"\n✓ Success! Open {output_dir / 'index.html'} in your browser.")
    else:
        print("\n✗ Failed to build the report. Check log file for details.")
        sys.exit(1)
