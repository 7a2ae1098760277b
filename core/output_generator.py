"""
Output generation module for the Lake Site Review Report.

This module prepares the final reviewed-site export and writes every artifact
of a report version into its version directory.

All artifacts of a version are written into a staging directory next to the
version directory and swapped into place only once everything is written, so
a failed run never leaves a version directory with mixed old and new files.
CSV outputs are sorted and use a fixed float format; two runs over the same
inputs produce byte-identical CSVs.

Functions:
    artifact_names: File names of every artifact of a version
    cached_chronology_path: Location of a version's chronology cache
    load_cached_chronology: Read a chronology cache CSV back with its dtypes
    staged_version_dir: Context manager staging a version directory
    dedupe_by_site: Keep the most-corrected record per site
    build_export: Final reviewed-site table
    write_table: Write a CSV deterministically
    write_vector: Write point features for a table
    generate_output: Write all artifacts of a report version
"""

import json
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Optional

import folium
import geopandas as gpd
import numpy as np
import pandas as pd
from jinja2 import Environment, FileSystemLoader

from config.config_loader import OUTPUT_DIR, version_dir_name
from core.chronology import IDENTIFIER_COLUMNS, STAT_COLUMNS
from core.edit_codes import EditCode
from utils.logger import get_logger
from utils.vocabulary import normalize_deptypes
from utils.xlsx_generator import generate_xlsx_report

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

VECTOR_FORMATS = {
    'geojson': ('GeoJSON', 'geojson'),
    'shp': ('ESRI Shapefile', 'shp'),
    'gpkg': ('GPKG', 'gpkg')
}

EXPORT_COLUMNS = [
    'stid', 'dsid', 'sitename', 'source', 'edit', 'edit_label', 'lat', 'long', 'area',
    'lat_original', 'long_original', 'area_original', 'displacement', 'area_delta',
    'linked', 'link_id', 'lake_name', 'lake_area', 'deptype', 'notes'
]


def artifact_names(version: str, vector_format: str = 'geojson') -> Dict[str, str]:
    """
    File names of every artifact of a version.

    Raises:
    -------
    ValueError
        If the vector format is not one of VECTOR_FORMATS
    """
    if vector_format not in VECTOR_FORMATS:
        raise ValueError(
            f"Unsupported vector format '{vector_format}' (use one of {', '.join(VECTOR_FORMATS)})"
        )
    ext = VECTOR_FORMATS[vector_format][1]
    return {
        'chronology': f"chron_control_status_version_{version}.csv",
        'area_lakes': f"area_lakes_{version}.csv",
        'datasets': f"dataset_{version}.{ext}",
        'reviewed_csv': f"reviewed_sites_{version}.csv",
        'reviewed_vector': f"reviewed_sites_{version}.{ext}",
        'reviewed_xlsx': f"reviewed_sites_{version}.xlsx",
        'map': 'map.html',
        'index': 'index.html',
        'metadata': 'metadata.json'
    }


def cached_chronology_path(version: str, output_root: Path = OUTPUT_DIR) -> Path:
    return output_root / version_dir_name(version) / artifact_names(version)['chronology']


def load_cached_chronology(path: Path) -> pd.DataFrame:
    """
    Read a chronology cache CSV back with the dtypes it was written with.

    Control-type count columns sit between the identifier and statistics
    columns and are restored as nullable integers.
    """
    table = pd.read_csv(path)
    type_columns = [c for c in table.columns if c not in IDENTIFIER_COLUMNS + STAT_COLUMNS]

    for column in ['stid', 'dsid', 'n_controls'] + type_columns:
        if column in table.columns:
            table[column] = table[column].astype('Int64')
    for column in ['lat', 'long', 'area', 'avg_interval', 'max_interval']:
        if column in table.columns:
            table[column] = table[column].astype('float64')

    logger.info(f"  ✓ Reusing cached chronology: {path.name} ({len(table)} records)")
    return table


@contextmanager
def staged_version_dir(version: str, output_root: Path = OUTPUT_DIR) -> Iterator[Path]:
    """
    Stage a version directory and swap it into place on success.

    Yields an empty staging directory beside the version directory. When the
    block completes the previous version directory (if any) is replaced by the
    staged one; when it raises the staging directory is removed and the
    previous version directory is left untouched.

    Example:
        >>> with staged_version_dir('v2') as staging:
        ...     (staging / 'index.html').write_text('...')
    """
    output_root.mkdir(parents=True, exist_ok=True)
    final_dir = output_root / version_dir_name(version)
    staging = Path(tempfile.mkdtemp(prefix=f".{final_dir.name}.staging-", dir=output_root))
    staging.chmod(0o755)

    try:
        yield staging
    except Exception:
        logger.debug(f"Discarding staging directory {staging}")
        shutil.rmtree(staging, ignore_errors=True)
        raise

    backup = None
    if final_dir.exists():
        backup = output_root / f".{final_dir.name}.old-{uuid.uuid4().hex}"
        final_dir.rename(backup)
    staging.rename(final_dir)
    if backup is not None:
        shutil.rmtree(backup)

    logger.debug(f"Version directory committed: {final_dir}")


def _plain_codes(frame: pd.DataFrame) -> pd.DataFrame:
    """Replace EditCode members with nullable integer codes for writing."""
    frame = frame.copy()
    if 'edit' in frame.columns:
        frame['edit'] = pd.array(
            [None if code is None or pd.isna(code) else int(code) for code in frame['edit']],
            dtype='Int64'
        )
    return frame


def dedupe_by_site(table: pd.DataFrame) -> pd.DataFrame:
    """
    One record per site id, preferring the largest displacement.

    A site can survive the joins more than once (matched in both CanVec and
    NHD, or listed twice in a matcher output). The most-corrected record
    wins; records without a displacement lose to any that have one, and ties
    keep the earliest record.
    """
    if table.empty:
        return table.copy()

    ranked = table.reset_index(drop=True)
    score = pd.to_numeric(ranked['displacement'], errors='coerce').fillna(-np.inf)
    best = score.groupby(ranked['stid']).idxmax()

    dropped = len(ranked) - len(best)
    if dropped:
        logger.info(f"  - Deduplicated {dropped} repeated site records (largest displacement kept)")

    return ranked.loc[best.sort_index().values].reset_index(drop=True)


def build_export(reviewed: pd.DataFrame, config: Dict) -> pd.DataFrame:
    """
    Final reviewed-site table.

    Deduplicates by site, resolves the best-available position and area
    (corrected when present, else original), keeps the originals alongside,
    and normalizes depositional environments to the controlled vocabulary.
    The reviewer's depositional environment wins over the fetched one.

    Returns:
    --------
    pd.DataFrame
        EXPORT_COLUMNS sorted by stid
    """
    settings = config.get('settings', {})
    table = dedupe_by_site(reviewed)

    corrected_complete = table['lat_corrected'].notna() & table['long_corrected'].notna()
    deptype = table['deptype']
    if 'deptype_fetched' in table.columns:
        deptype = deptype.where(deptype.notna(), table['deptype_fetched'])
    edit_labels = pd.Series(
        [None if code is None or pd.isna(code) else EditCode(int(code)).label for code in table['edit']],
        index=table.index, dtype=object
    )

    export = pd.DataFrame({
        'stid': table['stid'].astype('int64'),
        'dsid': table['dsid'].astype('Int64') if 'dsid' in table.columns else pd.NA,
        'sitename': table['sitename'],
        'source': table['source'],
        'edit': table['edit'],
        'edit_label': edit_labels,
        'lat': table['lat_corrected'].where(corrected_complete, table['lat']),
        'long': table['long_corrected'].where(corrected_complete, table['long']),
        'area': table['area_corrected'].where(table['edit'].notna(), table['area']),
        'lat_original': table['lat'],
        'long_original': table['long'],
        'area_original': table['area'],
        'displacement': table['displacement'],
        'area_delta': table['area_delta'],
        'linked': table['linked'],
        'link_id': table['link_id'],
        'lake_name': table['lake_name'],
        'lake_area': table['lake_area'],
        'deptype': normalize_deptypes(
            deptype,
            config.get('deposition_vocabulary', {}),
            settings.get('deptype_other_code', 'OTHER')
        ),
        'notes': table['notes']
    }, columns=EXPORT_COLUMNS)

    export = export.sort_values('stid', kind='mergesort').reset_index(drop=True)
    logger.info(f"  ✓ Export table: {len(export)} reviewed sites")
    return export


def write_table(frame: pd.DataFrame, path: Path, float_format: str = '%.6f') -> Path:
    """Write a CSV with a fixed float format and Unix line endings."""
    _plain_codes(frame).to_csv(path, index=False, float_format=float_format, lineterminator='\n')
    logger.info(f"  - Saved {path.name} ({len(frame)} rows)")
    return path


def write_vector(frame: pd.DataFrame, path: Path, vector_format: str = 'geojson') -> Optional[Path]:
    """
    Write one point feature per row with coordinates.

    Nullable integer columns holding nulls are written as floats since not
    every vector driver stores null integers.
    """
    driver = VECTOR_FORMATS[vector_format][0]
    located = _plain_codes(frame).dropna(subset=['lat', 'long']).copy()

    for column in located.columns:
        if str(located[column].dtype) == 'Int64':
            if located[column].isna().any():
                located[column] = located[column].astype('float64')
            else:
                located[column] = located[column].astype('int64')

    gdf = gpd.GeoDataFrame(
        located,
        geometry=gpd.points_from_xy(located['long'], located['lat']),
        crs='EPSG:4326'
    )
    if gdf.empty:
        logger.warning(f"  ⚠ No located rows, {path.name} not written")
        return None

    gdf.to_file(path, driver=driver)
    logger.info(f"  - Saved {path.name} ({len(gdf)} features)")
    return path


def generate_output(
    staging_dir: Path,
    version: str,
    chronology: pd.DataFrame,
    joined: pd.DataFrame,
    export: pd.DataFrame,
    map_obj: folium.Map,
    summary: Dict,
    metadata: Dict,
    config: Dict
) -> Dict[str, Path]:
    """
    Write every artifact of a report version into the staging directory.

    Creates:
    - chron_control_status_version_<v>.csv: chronology status (fetch cache)
    - dataset_<v>.<ext>: fetched datasets as points
    - area_lakes_<v>.csv: raw joined match table, kept for audit
    - reviewed_sites_<v>.csv / .<ext> / .xlsx: final reviewed sites
    - map.html: interactive map
    - index.html: narrative report
    - metadata.json: run summary

    Parameters:
    -----------
    staging_dir : Path
        Directory yielded by staged_version_dir
    version : str
        Report version tag
    chronology : pd.DataFrame
        Chronology status table
    joined : pd.DataFrame
        Decorated joined table before review exclusions
    export : pd.DataFrame
        Output of build_export
    map_obj : folium.Map
        Report map
    summary : Dict
        Output of summarize_changes
    metadata : Dict
        Run metadata (scopes, fetch counts, sources)
    config : Dict
        Configuration dictionary

    Returns:
    --------
    Dict[str, Path]
        Artifact key -> written path (keys of artifact_names)
    """
    logger.info("=" * 80)
    logger.info("Generating Output Files")
    logger.info("=" * 80)

    settings = config.get('settings', {})
    float_format = settings.get('float_format', '%.6f')
    vector_format = settings.get('vector_format', 'geojson')
    names = artifact_names(version, vector_format)
    paths = {key: staging_dir / name for key, name in names.items()}
    written = {}

    written['chronology'] = write_table(chronology, paths['chronology'], float_format)
    datasets_vector = write_vector(chronology, paths['datasets'], vector_format)
    if datasets_vector:
        written['datasets'] = datasets_vector

    audit = joined.sort_values(['source', 'stid'], kind='mergesort')
    written['area_lakes'] = write_table(audit, paths['area_lakes'], float_format)

    written['reviewed_csv'] = write_table(export, paths['reviewed_csv'], float_format)
    reviewed_vector = write_vector(export, paths['reviewed_vector'], vector_format)
    if reviewed_vector:
        written['reviewed_vector'] = reviewed_vector

    xlsx_path = generate_xlsx_report(_plain_codes(export), summary, paths['reviewed_xlsx'], version)
    if xlsx_path:
        written['reviewed_xlsx'] = xlsx_path

    logger.info("  - Saving interactive map...")
    map_obj.save(str(paths['map']))
    written['map'] = paths['map']

    logger.info("  - Rendering report page...")
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)
    downloads = [
        (f"{label} ({names[key]})", names[key])
        for key, label in [
            ('reviewed_csv', 'Reviewed sites, CSV'),
            ('reviewed_vector', 'Reviewed sites, vector'),
            ('reviewed_xlsx', 'Reviewed sites, workbook'),
            ('area_lakes', 'Joined lake matches (audit)'),
            ('chronology', 'Chronology status'),
            ('datasets', 'Fetched datasets, vector')
        ]
        if key in written
    ]
    report_html = env.get_template('report.html').render(
        title=metadata.get('title', f"Lake Site Review {version}"),
        version=version,
        scopes=metadata.get('scope_names', []),
        chronology={
            'records': len(chronology),
            'without_controls': int(chronology['n_controls'].isna().sum())
        },
        summary=summary,
        map_file=names['map'],
        downloads=downloads
    )
    paths['index'].write_text(report_html, encoding='utf-8')
    written['index'] = paths['index']

    logger.info("  - Saving metadata...")
    run_summary = {
        'generated_at': datetime.now().isoformat(),
        'version': version,
        'summary': summary,
        'artifacts': {key: path.name for key, path in written.items()},
        **metadata
    }
    with open(paths['metadata'], 'w', encoding='utf-8') as f:
        json.dump(run_summary, f, indent=2, default=str)
    written['metadata'] = paths['metadata']

    logger.info("")
    logger.info("=" * 80)
    logger.info("✓ Output Generation Complete")
    logger.info("=" * 80)
    return written
