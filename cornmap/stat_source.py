"""
stat_source.py - Per-county statistics from a delimited text export

Loading and numeric coercion are two separate calls:

    stats = load_stat_records("data/wi_corn.csv")
    stats, report = coerce_values(stats)

After loading, ``value`` is still the raw text from the file. After coercion
it is float64 and NaN marks a value that could not be parsed (blank cells,
"N/A", NASS suppression codes such as "(D)", or "1,234" with a thousands
separator). ``report.unparseable`` says how many.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Tuple, Union

import pandas as pd
import requests
from loguru import logger

from .config_loader import is_url
from .data_utils import ColumnSpec, find_column, missing_columns, normalize_region_keys
from .errors import SchemaMismatch, SourceUnavailable

StatSourceLike = Union[str, Path, IO]

STAT_COLUMNS = ["region_key", "value"]


@dataclass
class CoercionReport:
    """Outcome of the numeric coercion pass."""

    total: int
    parsed: int
    unparseable: int
    unparseable_keys: List[str] = field(default_factory=list)


def _read_text(source: StatSourceLike, timeout: float) -> str:
    """Fetch the raw text of a URL, local file or open stream."""
    if hasattr(source, "read"):
        try:
            content = source.read()
        except OSError as e:
            raise SourceUnavailable(f"Could not read statistics stream: {e}") from e
        if isinstance(content, bytes):
            try:
                return content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise SourceUnavailable(f"Statistics stream is not UTF-8 text: {e}") from e
        return content

    if is_url(source):
        logger.info(f"🌐 Fetching statistics: {source}")
        try:
            resp = requests.get(str(source), timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise SourceUnavailable(f"Could not fetch statistics from {source}: {e}") from e
        return resp.text

    path = Path(source)
    logger.info(f"📄 Reading statistics: {path}")
    try:
        # utf-8-sig drops the byte-order mark Quick Stats exports carry
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceUnavailable(f"Could not open statistics file {path}: {e}") from e


def _read_cells(text: str) -> Tuple[List[str], pd.DataFrame]:
    """
    Header names plus every data row as raw cells.

    The cell frame is wide enough for the longest line, so pandas never
    takes a surplus field as an index and never drops a long row.
    """
    try:
        header = pd.read_csv(io.StringIO(text), nrows=0, dtype=str)
    except pd.errors.EmptyDataError as e:
        raise SchemaMismatch("Statistics source is empty (no header row)") from e

    columns = list(header.columns)
    width = max([len(columns)] + [line.count(",") + 1 for line in text.splitlines()])
    try:
        cells = pd.read_csv(
            io.StringIO(text),
            header=0,
            names=list(range(width)),
            index_col=False,
            dtype=str,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        cells = pd.DataFrame(columns=range(width), dtype=str)
    return columns, cells


def _as_text(cells) -> List[str]:
    return ["" if pd.isna(cell) else str(cell) for cell in cells]


def _row_length(cells) -> int:
    """Fields up to the row's last non-empty cell; the rest is padding."""
    present = [i for i, cell in enumerate(_as_text(cells)) if cell != ""]
    return present[-1] + 1 if present else 0


def _fold_surplus_fields(cells, n_columns: int, value_index: int) -> List[str]:
    """
    Fit one row's cells to the header.

    Surplus fields are taken as the value split on its own delimiter
    ("1,234" unquoted) and rejoined into it; short rows are padded with "".
    """
    used = max(n_columns, _row_length(cells))
    fields = _as_text(cells)[:used]

    surplus = used - n_columns
    if surplus > 0:
        end = value_index + surplus + 1
        fields = fields[:value_index] + [",".join(fields[value_index:end])] + fields[end:]
    return fields


def load_stat_records(
    source: StatSourceLike,
    county_column: ColumnSpec = "County",
    value_column: ColumnSpec = "Value",
    timeout: float = 30,
) -> pd.DataFrame:
    """
    Parse a statistics export into a two-column table of StatRecords.

    Args:
        source: http(s) URL, local path, or open text/binary stream
        county_column: Name (case-insensitive) or position of the county column
        value_column: Name (case-insensitive) or position of the value column
        timeout: Seconds to wait on a URL fetch; there is no retry

    Returns:
        DataFrame with ``region_key`` (normalized county name) and ``value`` (raw text)

    Raises:
        SourceUnavailable: the source could not be fetched or opened
        SchemaMismatch: the input is empty or a required column is absent
    """
    text = _read_text(source, timeout)
    columns, cells = _read_cells(text)
    header = pd.DataFrame(columns=columns)

    required = {"County": county_column, "Value": value_column}
    missing = missing_columns(header, required)
    if missing:
        raise SchemaMismatch(
            f"Statistics source lacks required columns {missing}; found {columns}"
        )

    county_col = find_column(header, county_column, "county")
    value_col = find_column(header, value_column, "value")
    value_index = columns.index(value_col)

    rows = [
        _fold_surplus_fields(row, len(columns), value_index)
        for row in cells.itertuples(index=False)
    ]
    raw = pd.DataFrame(rows, columns=columns, dtype=str) if rows else header

    stats = pd.DataFrame(
        {
            "region_key": normalize_region_keys(raw[county_col]),
            "value": raw[value_col].fillna(""),
        },
        columns=STAT_COLUMNS,
    )

    surplus_rows = sum(_row_length(row) > len(columns) for row in cells.itertuples(index=False))
    if surplus_rows:
        logger.warning(
            f"  ⚠️ {surplus_rows} rows had more fields than the header; "
            "surplus fields were kept in the value"
        )
    logger.info(f"  ✓ Loaded {len(stats)} statistic rows ({len(columns)} source columns)")
    return stats


def coerce_values(stats: pd.DataFrame) -> Tuple[pd.DataFrame, CoercionReport]:
    """
    Convert the raw ``value`` text of every record to float, NaN on failure.

    Never raises for a bad record. The input frame is left untouched.

    Returns:
        (coerced copy of ``stats``, CoercionReport)
    """
    coerced = stats.copy()
    text = coerced["value"].astype(str).str.strip()
    coerced["value"] = pd.to_numeric(text, errors="coerce").astype("float64")

    failed = coerced["value"].isna()
    report = CoercionReport(
        total=len(coerced),
        parsed=int((~failed).sum()),
        unparseable=int(failed.sum()),
        unparseable_keys=coerced.loc[failed, "region_key"].tolist(),
    )

    if report.unparseable:
        logger.warning(
            f"  ⚠️ {report.unparseable}/{report.total} values could not be parsed as numbers"
        )
        for key, raw_value in zip(report.unparseable_keys[:5], text[failed].head(5)):
            logger.debug(f"    '{key}': {raw_value!r}")
    else:
        logger.info(f"  🔢 All {report.total} values parsed as numbers")

    return coerced, report
