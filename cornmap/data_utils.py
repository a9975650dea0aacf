"""
data_utils.py - Shared key and column helpers

Region-name normalization lives here so the loader and the joiner match
counties the same way.
"""

from typing import Iterable, Optional, Union

import pandas as pd
from loguru import logger

ColumnSpec = Union[str, int]


def normalize_region_key(key: Optional[str]) -> str:
    """Canonical form of a region name, used only for equality matching.

    Lowercases and strips surrounding whitespace. Nothing else: "St. Croix"
    and "ST CROIX" stay different keys.
    """
    if key is None:
        return ""
    return str(key).strip().lower()


def normalize_region_keys(series: pd.Series) -> pd.Series:
    """Vectorized normalize_region_key; missing entries become ""."""
    return series.fillna("").astype(str).str.strip().str.lower()


def find_column(df: pd.DataFrame, spec: ColumnSpec, description: str = "column") -> Optional[str]:
    """Resolve a column by name (case-insensitive, header whitespace ignored) or by position.

    Args:
        df: DataFrame to search
        spec: Column name, or integer position
        description: Description for logging

    Returns:
        Actual column label, or None if not found
    """
    if isinstance(spec, int):
        if 0 <= spec < len(df.columns):
            column = df.columns[spec]
            logger.debug(f"  📍 {description} column at position {spec}: {column}")
            return column
        logger.warning(f"  ⚠️ No {description} column at position {spec}")
        return None

    wanted = normalize_region_key(spec)
    for column in df.columns:
        if normalize_region_key(column) == wanted:
            logger.debug(f"  📍 Found {description} column: {column}")
            return column

    logger.warning(f"  ⚠️ No {description} column named '{spec}'")
    return None


def missing_columns(df: pd.DataFrame, required: dict) -> list:
    """Return the descriptions of required columns that cannot be resolved.

    Args:
        df: DataFrame to validate
        required: Dict of {description: column spec}
    """
    missing = [desc for desc, spec in required.items() if find_column(df, spec, desc) is None]
    if missing:
        logger.error(f"❌ Missing required columns: {missing}")
        logger.info(f"Available columns: {list(df.columns)}")
    return missing


def describe_keys(keys: Iterable[str], limit: int = 5) -> str:
    """Short, sorted preview of a key set for log lines."""
    keys = sorted(keys)
    preview = ", ".join(keys[:limit])
    if len(keys) > limit:
        preview += f", ... +{len(keys) - limit} more"
    return preview
