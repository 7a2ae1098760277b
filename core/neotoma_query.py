"""
Neotoma API query module for the Lake Site Review Report.

This module retrieves pollen datasets and their chronological controls for a
geographic scope (country) from the Neotoma Paleoecology Database API and
flattens them into per-dataset records.

Failure handling follows two granularities:
1. Scope fetch: any failure retrieving the dataset list is fatal (FetchError)
2. Per-dataset controls: a failed or empty lookup degrades that one record to
   identifiers only and the batch continues

Functions:
    fetch_scope_datasets: Fetch all pollen site/dataset pairs for a scope
    fetch_chron_controls: Fetch the ordered chronological controls of one dataset
    fetch_scope_chronology: Fetch datasets and controls for a scope
"""

import json
import time
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import requests
from shapely.geometry import shape

from utils.logger import get_logger

logger = get_logger(__name__)

DATASET_COLUMNS = ['scope', 'stid', 'dsid', 'sitename', 'lat', 'long', 'area', 'deptype']


class FetchError(RuntimeError):
    """Raised when the dataset list for a whole scope cannot be retrieved."""


def _as_list(value: Any) -> List:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _endpoint_url(api_config: Dict, key: str, **kwargs) -> str:
    base = api_config['base_url'].rstrip('/')
    endpoint = api_config[key].format(**kwargs).lstrip('/')
    return f"{base}/{endpoint}"


def _site_coordinates(site: Dict, precision: int) -> Tuple[Optional[float], Optional[float]]:
    """
    Derive (lat, long) for a site.

    Neotoma stores site geography as a GeoJSON string (a point, or a polygon
    around the basin). Polygons are reduced to their centroid.
    """
    geography = site.get('geography')
    if geography:
        try:
            if isinstance(geography, str):
                geography = json.loads(geography)
            point = shape(geography).centroid
            return round(point.y, precision), round(point.x, precision)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.debug(f"Unreadable geography for site {site.get('siteid')}: {e}")

    lat = site.get('latitude')
    lon = site.get('longitude')
    if lat is None or lon is None:
        return None, None
    return round(float(lat), precision), round(float(lon), precision)


def _site_records(item: Dict, scope: str, datasettype: str, precision: int) -> List[Dict]:
    """Flatten one API item into one record per matching dataset."""
    site = item.get('site', item)
    lat, lon = _site_coordinates(site, precision)

    units = _as_list(site.get('collectionunits')) + _as_list(site.get('collectionunit'))
    if not units:
        units = [site]

    records = []
    for unit in units:
        deptype = unit.get('depositionalenvironment') or site.get('depositionalenvironment')
        datasets = _as_list(unit.get('datasets')) + _as_list(unit.get('dataset'))
        for dataset in datasets:
            if str(dataset.get('datasettype', datasettype)).lower() != datasettype.lower():
                continue
            records.append({
                'scope': scope,
                'stid': site.get('siteid'),
                'dsid': dataset.get('datasetid'),
                'sitename': site.get('sitename'),
                'lat': lat,
                'long': lon,
                'area': site.get('area'),
                'deptype': deptype
            })
    return records


def fetch_scope_datasets(scope: str, config: Dict) -> pd.DataFrame:
    """
    Fetch every pollen site/dataset pair for a geographic scope.

    Pages through the datasets endpoint with limit/offset until a short page
    comes back or max_pages is reached.

    Parameters:
    -----------
    scope : str
        Scope code defined in config['scopes'] (e.g. 'CA', 'US')
    config : Dict
        Configuration dictionary

    Returns:
    --------
    pd.DataFrame
        One row per dataset with DATASET_COLUMNS

    Raises:
    -------
    FetchError
        If any page request fails or returns an unexpected payload
    KeyError
        If the scope is not configured
    """
    api_config = config['api']
    scope_config = config['scopes'][scope]
    precision = config.get('settings', {}).get('coordinate_precision', 4)
    datasettype = api_config.get('datasettype', 'pollen')
    page_size = api_config.get('page_size', 500)
    max_pages = api_config.get('max_pages', 50)
    timeout = api_config.get('timeout', 60)

    url = _endpoint_url(api_config, 'datasets_endpoint')
    logger.info(f"Fetching {datasettype} datasets for {scope_config['name']} ({scope})...")

    records: List[Dict] = []
    start_time = time.time()

    for page in range(max_pages):
        params = {
            'gpid': scope_config['gpid'],
            'datasettype': datasettype,
            'limit': page_size,
            'offset': page * page_size
        }
        logger.debug(f"Querying: {url} {params}")

        try:
            response = requests.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            raise FetchError(f"Dataset request for {scope} timed out (page {page + 1})") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Dataset request for {scope} failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"Dataset response for {scope} is not JSON") from e

        if not isinstance(payload, dict) or payload.get('status', 'success') != 'success':
            message = payload.get('message', 'unknown error') if isinstance(payload, dict) else 'bad payload'
            raise FetchError(f"Neotoma returned an error for {scope}: {message}")

        items = _as_list(payload.get('data'))
        for item in items:
            records.extend(_site_records(item, scope, datasettype, precision))

        if len(items) < page_size:
            break
    else:
        logger.warning(f"  ⚠ Stopped after {max_pages} pages, results may be incomplete")

    datasets = pd.DataFrame(records, columns=DATASET_COLUMNS)
    datasets = datasets.dropna(subset=['stid', 'dsid']).drop_duplicates(subset=['stid', 'dsid']).copy()
    datasets[['stid', 'dsid']] = datasets[['stid', 'dsid']].astype('int64')

    logger.info(
        f"  ✓ {len(datasets)} datasets at {datasets['stid'].nunique()} sites "
        f"({time.time() - start_time:.1f}s)"
    )
    return datasets.reset_index(drop=True)


def _find_controls(node: Any) -> Optional[List]:
    """Return the first 'chroncontrols' list found in a nested payload."""
    if isinstance(node, dict):
        if isinstance(node.get('chroncontrols'), list):
            return node['chroncontrols']
        for value in node.values():
            found = _find_controls(value)
            if found is not None:
                return found
    elif isinstance(node, list):
        for value in node:
            found = _find_controls(value)
            if found is not None:
                return found
    return None


def _parse_control(raw: Dict) -> Dict:
    age = raw.get('age', raw.get('agevalue'))
    depth = raw.get('depth')
    return {
        'controltype': raw.get('controltype') or raw.get('chroncontroltype') or 'Unknown',
        'age': float(age) if age is not None else None,
        'depth': float(depth) if depth is not None else None
    }


def fetch_chron_controls(dsid: int, config: Dict) -> Tuple[List[Dict], Optional[str]]:
    """
    Fetch the chronological controls of one dataset.

    Controls are returned ordered by depth (controls without depth keep their
    relative position at the end).

    Parameters:
    -----------
    dsid : int
        Neotoma dataset id
    config : Dict
        Configuration dictionary

    Returns:
    --------
    Tuple[List[Dict], Optional[str]]
        - list of {'controltype', 'age', 'depth'} dicts (empty on failure)
        - error message if no controls could be read, None if successful
    """
    api_config = config['api']
    url = _endpoint_url(api_config, 'chroncontrols_endpoint', datasetid=dsid)

    try:
        response = requests.get(url, timeout=api_config.get('timeout', 60))
        response.raise_for_status()
        payload = response.json()
    except requests.exceptions.Timeout:
        return [], "Chron control request timed out"
    except requests.exceptions.RequestException as e:
        return [], f"Chron control request failed: {str(e)}"
    except ValueError:
        return [], "Chron control response is not JSON"

    raw_controls = _find_controls(payload)
    if not raw_controls:
        return [], "No chronological controls"

    try:
        controls = [_parse_control(raw) for raw in raw_controls if isinstance(raw, dict)]
    except (TypeError, ValueError) as e:
        return [], f"Chron control parsing error: {str(e)}"

    controls.sort(key=lambda c: (c['depth'] is None, c['depth'] or 0.0))
    return controls, None


def fetch_scope_chronology(scope: str, config: Dict) -> Tuple[List[Dict], Dict]:
    """
    Fetch datasets for a scope and the chronological controls of each one.

    Parameters:
    -----------
    scope : str
        Scope code (e.g. 'CA')
    config : Dict
        Configuration dictionary

    Returns:
    --------
    Tuple[List[Dict], Dict]
        - one record per dataset: the DATASET_COLUMNS fields plus 'controls'
        - metadata with dataset, site and failure counts

    Raises:
    -------
    FetchError
        If the scope's dataset list cannot be retrieved
    """
    datasets = fetch_scope_datasets(scope, config)

    records = []
    failures = 0
    for i, row in enumerate(datasets.itertuples(index=False), 1):
        controls, error = fetch_chron_controls(row.dsid, config)
        if error:
            failures += 1
            logger.debug(f"    dataset {row.dsid} (site {row.stid}): {error}")

        record = row._asdict()
        record['controls'] = controls
        records.append(record)

        if i % 100 == 0:
            logger.info(f"  - {i}/{len(datasets)} chronologies retrieved")

    if failures:
        logger.warning(f"  ⚠ {failures} datasets without readable controls (kept as identifiers only)")

    metadata = {
        'scope': scope,
        'datasets': len(datasets),
        'sites': int(datasets['stid'].nunique()),
        'controls_failed': failures
    }
    return records, metadata
