"""
G-Score Engine - Artifact Sources.

============================================================
PURPOSE
============================================================
Reads the artifacts the ETL publishes and turns them into
validated domain objects:

- latest snapshot JSON        -> Snapshot
- factor_history.csv          -> TimeSeries
- history.jsonl               -> TimeSeries

Local files are read synchronously. Remote artifacts are
fetched with aiohttp, raced against an explicit timeout; the
losing request is cancelled.

============================================================
ERROR POLICY
============================================================
- Malformed snapshot          -> SnapshotValidationError
- Malformed history row       -> skipped and logged
- HTTP error / timeout        -> ArtifactFetchError

One bad history row never blocks the rest of the series.

============================================================
"""

import asyncio
import csv
import io
import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import aiohttp
from pydantic import ValidationError

from .clock import parse_iso
from .config import GScoreConfig, get_config
from .history import TimeSeries
from .schemas import HistoryRowSchema, Snapshot, parse_snapshot
from .types import ArtifactFetchError, HistoryRow, MalformedHistoryRowError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0

# history.jsonl uses camelCase factor fields
JSONL_FACTOR_FIELDS: Dict[str, str] = {
    "trendValuation": "trend_valuation",
    "netLiquidity": "net_liquidity",
    "stablecoins": "stablecoins",
    "termLeverage": "term_leverage",
    "onchain": "onchain",
    "etfFlows": "etf_flows",
    "macroOverlay": "macro_overlay",
    "socialInterest": "social_interest",
}

CSV_SCORE_SUFFIX = "_score"
CSV_COMPOSITE_COLUMNS = ("composite", "composite_score")


# ============================================================
# VALUE PARSING
# ============================================================


def parse_score(value: Any) -> Optional[float]:
    """Blank, "null", and NaN all mean "no score"."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text or text.lower() in ("null", "none", "nan"):
            return None
        number = float(text)
    return number if math.isfinite(number) else None


def _validated_row(row_date: Any, composite: Any, scores: Dict[str, Any], line_number: int) -> HistoryRow:
    try:
        schema = HistoryRowSchema(
            date=row_date,
            composite=parse_score(composite),
            scores={key: parse_score(value) for key, value in scores.items()},
        )
    except (ValidationError, ValueError) as e:
        raise MalformedHistoryRowError(f"Line {line_number}: {e}", line_number=line_number) from e
    return schema.to_row()


# ============================================================
# SNAPSHOT
# ============================================================


def load_snapshot(path: PathLike, config: Optional[GScoreConfig] = None) -> Snapshot:
    """
    Load and validate a snapshot JSON file.

    Raises:
        SnapshotValidationError: If the file is not a valid snapshot
        OSError: If the file cannot be read
    """
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    snapshot = parse_snapshot(payload, config)
    logger.debug(f"Loaded snapshot as of {snapshot.as_of_utc.isoformat()} from {path}")
    return snapshot


# ============================================================
# HISTORY: CSV
# ============================================================


def parse_history_csv(text: str, config: Optional[GScoreConfig] = None) -> TimeSeries:
    """
    Parse factor_history.csv content.

    Expects a "date" column plus "<factor>_score" columns and,
    optionally, a composite column. Unknown columns are ignored.
    """
    config = config or get_config()
    reader = csv.DictReader(io.StringIO(text.strip()))
    if not reader.fieldnames or "date" not in reader.fieldnames:
        logger.warning("History CSV has no 'date' column; returning empty series")
        return TimeSeries()

    score_columns = {
        f"{key}{CSV_SCORE_SUFFIX}": key
        for key in config.factor_keys
        if f"{key}{CSV_SCORE_SUFFIX}" in reader.fieldnames
    }
    composite_column = next((c for c in CSV_COMPOSITE_COLUMNS if c in reader.fieldnames), None)

    rows: List[HistoryRow] = []
    skipped = 0
    # Header is line 1
    for line_number, record in enumerate(reader, start=2):
        try:
            rows.append(_validated_row(
                (record.get("date") or "").strip()[:10],
                record.get(composite_column) if composite_column else None,
                {key: record.get(column) for column, key in score_columns.items()},
                line_number,
            ))
        except MalformedHistoryRowError as e:
            skipped += 1
            logger.warning(f"Skipping malformed history row: {e.message}")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed history row(s)")
    return TimeSeries(rows)


def load_history_csv(path: PathLike, config: Optional[GScoreConfig] = None) -> TimeSeries:
    return parse_history_csv(Path(path).read_text(encoding="utf-8"), config)


# ============================================================
# HISTORY: JSONL
# ============================================================


def parse_history_jsonl(lines: Iterable[str]) -> TimeSeries:
    """Parse history.jsonl lines ({"as_of_utc", "composite", camelCase factors})."""
    rows: List[HistoryRow] = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
            if not isinstance(record, dict):
                raise MalformedHistoryRowError(f"Line {line_number}: not an object", line_number=line_number)
            row_date: Optional[date] = parse_iso(str(record["as_of_utc"])).date()
            rows.append(_validated_row(
                row_date,
                record.get("composite"),
                {key: record.get(field) for field, key in JSONL_FACTOR_FIELDS.items() if field in record},
                line_number,
            ))
        except MalformedHistoryRowError as e:
            logger.warning(f"Skipping malformed history row: {e.message}")
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed history row: Line {line_number}: {e}")
    return TimeSeries(rows)


def load_history_jsonl(path: PathLike) -> TimeSeries:
    with Path(path).open(encoding="utf-8") as handle:
        return parse_history_jsonl(handle)


# ============================================================
# REMOTE FETCH
# ============================================================


async def _get_text(session: aiohttp.ClientSession, url: str) -> str:
    async with session.get(url) as response:
        if response.status < 200 or response.status >= 300:
            raise ArtifactFetchError(
                f"GET {url} returned HTTP {response.status}",
                context={"url": url, "status": response.status},
            )
        return await response.text()


async def fetch_text(
    url: str,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    session: Optional[aiohttp.ClientSession] = None,
) -> str:
    """
    GET a URL, racing the request against a timeout.

    Args:
        url: Artifact URL
        timeout_seconds: Overall deadline
        session: Optional shared session (a private one is opened otherwise)

    Raises:
        ArtifactFetchError: On non-2xx, transport failure, or timeout
    """
    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout_seconds))

    try:
        return await asyncio.wait_for(_get_text(session, url), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise ArtifactFetchError(
            f"Timeout after {timeout_seconds}s: GET {url}",
            context={"url": url, "timeout_seconds": timeout_seconds},
        ) from e
    except aiohttp.ClientError as e:
        raise ArtifactFetchError(f"GET {url} failed: {e}", context={"url": url}) from e
    finally:
        if owns_session:
            await session.close()


async def fetch_snapshot(
    url: str,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    session: Optional[aiohttp.ClientSession] = None,
    config: Optional[GScoreConfig] = None,
) -> Snapshot:
    """
    Fetch and validate the latest snapshot.

    Raises:
        ArtifactFetchError: On HTTP failure, timeout, or a non-JSON body
        SnapshotValidationError: If the JSON is not a valid snapshot
    """
    text = await fetch_text(url, timeout_seconds, session)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ArtifactFetchError(f"GET {url} returned invalid JSON: {e}", context={"url": url}) from e
    return parse_snapshot(payload, config)


async def fetch_history_csv(
    url: str,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    session: Optional[aiohttp.ClientSession] = None,
    config: Optional[GScoreConfig] = None,
) -> TimeSeries:
    text = await fetch_text(url, timeout_seconds, session)
    return parse_history_csv(text, config)
