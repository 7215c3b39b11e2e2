"""
===========================================================
dataverse.py
Author: Veronica Scerra
Last Updated: 2026-02-10
===========================================================

Description:
    Fetch a named file from a Dataverse dataset and read it as a
    table. Used for the Harvard CGA "US COVID-19 daily cases with
    basemap" dataset (state-level cumulative confirmed cases, one
    column per date).

Example Usage:
    from dataio.dataverse import fetch_dataverse_file, read_case_table
    content = fetch_dataverse_file("doi:10.7910/DVN/HIDLTK",
                                   "us_state_confirmed_case.tab")
    raw = read_case_table(content, "us_state_confirmed_case.tab")

Notes:
    - Two requests: dataset metadata (to resolve the file id from its
      label) and the file download itself.
    - Ingested tabular files download as tab-separated '.tab';
      pass original=True for the uploaded original.
    - No retries; any failure raises FetchFailure.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List
import pandas as pd
import requests

from caserates.errors import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "https://dataverse.harvard.edu"
HEADERS = {"User-Agent": "Mozilla/5.0 (caserates-dataverse)"}
TEXT_COLUMNS = ("fips", "GEOID")


def _get(url: str, timeout_s: int, params: Dict[str, Any] | None = None) -> requests.Response:
    logger.debug("GET %s params=%s", url, params)
    try:
        resp = requests.get(url, params=params, headers=HEADERS, timeout=timeout_s)
    except requests.RequestException as e:
        raise FetchFailure(f"Failed to fetch URL: {url}\n{e}", source=url) from e
    if resp.status_code != 200:
        raise FetchFailure(f"HTTP {resp.status_code} fetching {url}", source=url)
    return resp


def _dataset_files(dataset_id: str, server: str, timeout_s: int) -> List[Dict[str, Any]]:
    url = f"{server.rstrip('/')}/api/datasets/:persistentId/"
    resp = _get(url, timeout_s, params={"persistentId": dataset_id})
    try:
        payload = resp.json()
        return payload["data"]["latestVersion"]["files"]
    except (ValueError, KeyError, TypeError) as e:
        raise FetchFailure(f"Unexpected dataset metadata for {dataset_id}", source=url) from e


def _labels(entry: Dict[str, Any]) -> List[str]:
    data_file = entry.get("dataFile", {})
    names = [entry.get("label"), data_file.get("filename"), data_file.get("originalFileName")]
    return [n for n in names if n]


def list_dataset_files(
    dataset_id: str,
    server: str = DEFAULT_SERVER,
    timeout_s: int = 60,
) -> pd.DataFrame:
    """
    List files in the latest version of a dataset.

    Returns a DataFrame with columns 'label', 'file_id', 'content_type'.
    """
    rows = []
    for entry in _dataset_files(dataset_id, server, timeout_s):
        data_file = entry.get("dataFile", {})
        rows.append(
            {
                "label": entry.get("label") or data_file.get("filename"),
                "file_id": data_file.get("id"),
                "content_type": data_file.get("contentType"),
            }
        )
    return pd.DataFrame(rows, columns=["label", "file_id", "content_type"])


def fetch_dataverse_file(
    dataset_id: str,
    filename: str,
    server: str = DEFAULT_SERVER,
    original: bool = False,
    timeout_s: int = 60,
) -> bytes:
    """
    Download one file of a Dataverse dataset by its label.

    Parameters
    ----------
    dataset_id : str
        Persistent identifier, e.g. "doi:10.7910/DVN/HIDLTK".
    filename : str
        File label as shown in the dataset (ingested or original name).
    server : str
        Base URL of the Dataverse installation.
    original : bool
        Request the originally uploaded format instead of the ingested one.
    timeout_s : int
        Timeout for each request, in seconds.

    Returns
    -------
    bytes
        Raw file content.

    Raises
    ------
    FetchFailure
        Repository unreachable, non-200 response, unknown file label,
        or an empty payload.
    """
    files = _dataset_files(dataset_id, server, timeout_s)
    match = next((f for f in files if filename in _labels(f)), None)
    if match is None:
        available = sorted({lbl for f in files for lbl in _labels(f)})
        raise FetchFailure(
            f"File {filename!r} not found in {dataset_id}. Available: {available}",
            source=dataset_id,
        )

    file_id = match["dataFile"]["id"]
    url = f"{server.rstrip('/')}/api/access/datafile/{file_id}"
    resp = _get(url, timeout_s, params={"format": "original"} if original else None)

    content = resp.content or b""
    if len(content) < 10:
        raise FetchFailure(f"Downloaded 0/very few bytes from {url}", source=url)
    logger.info("Fetched %s from %s (%d bytes)", filename, dataset_id, len(content))
    return content


def read_case_table(
    content: bytes,
    filename: str = "",
    text_columns: Iterable[str] = TEXT_COLUMNS,
) -> pd.DataFrame:
    """
    Parse fetched bytes as a delimited table.

    '.tab'/'.tsv' files are tab-separated, everything else comma-separated.
    Identifier columns named in `text_columns` (matched ignoring case) are
    read as strings so FIPS codes keep their leading zeros.
    """
    sep = "\t" if Path(filename).suffix.lower() in {".tab", ".tsv"} else ","
    try:
        header = pd.read_csv(io.BytesIO(content), sep=sep, nrows=0).columns
        wanted = {c.strip().lower() for c in text_columns}
        dtype = {c: str for c in header if str(c).strip().lower() in wanted}
        df = pd.read_csv(io.BytesIO(content), sep=sep, dtype=dtype)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise FetchFailure(f"Response for {filename or 'dataset'} contained no readable table", source=filename) from e
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def load_case_table(path: str | Path) -> pd.DataFrame:
    """Read a local copy of the case table"""
    p = Path(path)
    if not p.exists():
        raise FetchFailure(f"File not found: {p}", source=str(p))
    return read_case_table(p.read_bytes(), p.name)
