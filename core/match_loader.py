"""
Hydrography match loader for the Lake Site Review Report.

Reads the per-source overlay tables produced by the hydrography matcher,
combines them, and joins the manually curated edit table onto them.

Functions:
    load_match_table: Read one overlay output and standardize its columns
    combine_matches: Concatenate sources, filter to the Americas, flag links
    load_edit_table: Read the manual edit table
    join_edits: Left-join edits onto matches by site id
    reviewed_records: Records surfaced downstream after review exclusions
    attach_dataset_ids: Fill dataset ids from the fetch and a prior linkage
"""

from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd

from core.edit_codes import EditCode, parse_edit_code
from utils.logger import get_logger

logger = get_logger(__name__)

MATCH_REQUIRED = ['stid', 'lat', 'long', 'link_id']
MATCH_COLUMNS = ['source', 'stid', 'sitename', 'lat', 'long', 'area', 'link_id', 'lake_area', 'lake_name']
EDIT_COLUMNS = ['stid', 'edit', 'notes', 'lat_corrected', 'long_corrected', 'area_corrected', 'deptype']


def _read_table(path: Path, label: str, **kwargs) -> pd.DataFrame:
    if not Path(path).exists():
        raise FileNotFoundError(f"{label} not found: {path}")
    logger.info(f"Reading {label} from: {path}")
    return pd.read_csv(path, **kwargs)


def _require(frame: pd.DataFrame, columns: Iterable[str], label: str) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise KeyError(f"{label} is missing required columns: {', '.join(missing)}")


def load_match_table(path: Path, source: str, source_config: Optional[Dict] = None) -> pd.DataFrame:
    """
    Read one hydrography overlay output.

    Source-specific column names (e.g. CanVec 'feature_id', NHD
    'Permanent_Identifier') are renamed to the standard names using the
    source's 'columns' mapping. Optional columns missing from the file are
    added as nulls.

    Raises:
    -------
    FileNotFoundError
        If the file doesn't exist
    KeyError
        If stid, lat, long or link_id cannot be found
    """
    source_config = source_config or {}
    columns = source_config.get("columns", {})

    # feature ids are identifiers, never numbers
    link_columns = [raw for raw, name in columns.items() if name == "link_id"] + ["link_id"]
    matches = _read_table(path, f"{source} matches", dtype={c: str for c in link_columns})
    matches = matches.rename(columns=columns)
    _require(matches, MATCH_REQUIRED, f"{source} match table ({path})")

    matches['source'] = source
    matches = matches.reindex(columns=MATCH_COLUMNS)

    logger.info(f"  - {len(matches)} {source} rows, {matches['link_id'].notna().sum()} with a lake link")
    return matches


def combine_matches(frames: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """
    Concatenate overlay outputs across sources.

    Only sites with longitude < 0 are kept; positive or missing longitudes are
    projection or entry errors outside the Americas. Adds the boolean 'linked'
    column (a hydrography feature id exists).
    """
    frames = [f for f in frames if f is not None]
    if frames:
        combined = pd.concat(frames, ignore_index=True)
    else:
        combined = pd.DataFrame(columns=MATCH_COLUMNS)

    in_americas = pd.to_numeric(combined['long'], errors='coerce') < 0
    dropped = int((~in_americas).sum())
    if dropped:
        logger.warning(f"  ⚠ Dropped {dropped} rows with longitude >= 0 or missing")

    combined = combined[in_americas].dropna(subset=['stid']).copy()
    combined['linked'] = combined['link_id'].notna()
    combined['stid'] = combined['stid'].astype('int64')

    return combined.reset_index(drop=True)


def load_edit_table(path: Path, edit_config: Optional[Dict] = None) -> pd.DataFrame:
    """
    Read the manually edited lake table.

    Reviewer column names are renamed to EDIT_COLUMNS via the configured
    mapping and the 'edit' column is parsed to EditCode values.

    Raises:
    -------
    ValueError
        If an edit code is not one of the known codes
    """
    edit_config = edit_config or {}
    edits = _read_table(path, "edit table")
    edits = edits.rename(columns=edit_config.get('columns', {}))
    _require(edits, ['stid', 'edit'], f"edit table ({path})")

    edits = edits.reindex(columns=EDIT_COLUMNS)
    edits = edits.dropna(subset=['stid']).copy()
    edits['stid'] = edits['stid'].astype('int64')
    edits["edit"] = pd.Series(
        [parse_edit_code(v, stid) for v, stid in zip(edits["edit"], edits["stid"])],
        index=edits.index, dtype=object
    )

    logger.info(f"  - {len(edits)} edit rows")
    return edits.reset_index(drop=True)


def join_edits(matches: pd.DataFrame, edits: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join the edit table onto the match table by 'stid'.

    Every match row appears exactly once. When the edit table holds several
    rows for one site the last one in file order wins. Sites without an edit
    get null edit fields. The match table's 'deptype' (if any) is replaced by
    the reviewer's value.
    """
    duplicated = edits['stid'].duplicated(keep='last')
    if duplicated.any():
        logger.warning(
            f"  ⚠ {int(duplicated.sum())} duplicate edit rows, keeping the last entry per site: "
            f"{sorted(edits.loc[duplicated, 'stid'].unique().tolist())}"
        )
    edits = edits[~duplicated]

    joined = matches.drop(columns=[c for c in EDIT_COLUMNS if c != 'stid' and c in matches.columns])
    joined = joined.merge(edits, on='stid', how='left', validate='many_to_one')

    # merge turns a column of EditCode/None into object dtype with NaN
    joined["edit"] = pd.Series(
        [None if pd.isna(v) else EditCode(int(v)) for v in joined["edit"]],
        index=joined.index, dtype=object
    )

    logger.info(
        f"  ✓ Joined {len(joined)} match rows with edits "
        f"({joined['edit'].notna().sum()} reviewed)"
    )
    return joined


def reviewed_records(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Records surfaced downstream of the review.

    Excludes ArcGIS artifacts (EditCode.ARTIFACT) and edited rows whose
    corrected latitude or longitude is missing. Rows with no edit are kept.
    The input table is left unchanged for audit.
    """
    edited = joined['edit'].notna()
    artifact = joined['edit'].apply(lambda code: code == EditCode.ARTIFACT).astype(bool)
    missing_coords = joined['lat_corrected'].isna() | joined['long_corrected'].isna()

    keep = ~artifact & ~(edited & missing_coords)
    logger.info(
        f"  - Review exclusions: {int(artifact.sum())} artifacts, "
        f"{int((edited & missing_coords & ~artifact).sum())} edits without coordinates"
    )
    return joined[keep].reset_index(drop=True)


def attach_dataset_ids(
    joined: pd.DataFrame,
    datasets: pd.DataFrame,
    linkage: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Attach a Neotoma dataset id to each joined record.

    Ids come from the freshly fetched datasets first; sites missing there are
    filled from a prior version's stid -> dsid linkage table. A site with more
    than one dataset takes its lowest dsid.

    The depositional environment Neotoma reports for the site is kept as
    'deptype_fetched' so an unreviewed site still has one.
    """
    known = datasets.dropna(subset=['stid', 'dsid'])
    lookup = known.groupby('stid')['dsid'].min()
    result = joined.copy()
    result['dsid'] = result['stid'].map(lookup)

    if 'deptype' in known.columns:
        fetched = known.sort_values('dsid', kind='mergesort').groupby('stid')['deptype'].first()
        result['deptype_fetched'] = result['stid'].map(fetched)
    else:
        result['deptype_fetched'] = None

    if linkage is not None and not linkage.empty:
        _require(linkage, ['stid', 'dsid'], "dataset linkage table")
        prior = linkage.dropna(subset=['stid', 'dsid']).groupby('stid')['dsid'].min()
        missing = result['dsid'].isna()
        result.loc[missing, 'dsid'] = result.loc[missing, 'stid'].map(prior)
        logger.debug(f"Filled {int(missing.sum() - result['dsid'].isna().sum())} dataset ids from linkage")

    result['dsid'] = result['dsid'].astype('Int64')
    return result
