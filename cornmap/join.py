"""
join.py - Left join of county statistics onto polygon vertices

The vertex table drives the join: every vertex comes out exactly once, in
the order it went in, with ``value`` attached (NaN when the county has no
statistic). Statistics for counties without polygons are simply unused.
"""

from dataclasses import dataclass, field
from typing import Set

import pandas as pd
from loguru import logger

from .data_utils import describe_keys, normalize_region_keys


@dataclass
class JoinSummary:
    """Which keys met on both sides of the join."""

    matched: Set[str] = field(default_factory=set)
    counties_without_stats: Set[str] = field(default_factory=set)
    stats_without_polygons: Set[str] = field(default_factory=set)


def build_value_lookup(stats: pd.DataFrame) -> pd.Series:
    """Map normalized region_key -> value. Duplicate keys: the last row wins."""
    keys = normalize_region_keys(stats["region_key"])
    duplicated = keys.duplicated(keep="last")
    if duplicated.any():
        logger.debug(
            f"  🔁 {int(duplicated.sum())} duplicate county rows, keeping the last of each: "
            f"{describe_keys(set(keys[duplicated]))}"
        )
    lookup = pd.Series(stats["value"].to_numpy(), index=keys)
    return lookup[~duplicated.to_numpy()]


def join_stats(vertices: pd.DataFrame, stats: pd.DataFrame) -> pd.DataFrame:
    """
    Attach each county's statistic to its polygon vertices.

    Args:
        vertices: Vertex table with a ``subregion`` column (county names)
        stats: Statistics with ``region_key`` and numeric ``value``

    Returns:
        Copy of ``vertices`` plus ``region_key`` and float ``value`` columns
    """
    lookup = build_value_lookup(stats)

    joined = vertices.copy()
    joined["region_key"] = normalize_region_keys(joined["subregion"])
    joined["value"] = joined["region_key"].map(lookup).astype("float64")

    if len(joined) != len(vertices):
        raise RuntimeError(
            f"Join changed the vertex count: {len(vertices)} in, {len(joined)} out"
        )

    filled = joined["value"].notna().sum()
    logger.info(f"  🔗 Joined statistics onto {len(joined):,} vertices ({filled:,} with a value)")
    return joined


def summarize_join(vertices: pd.DataFrame, stats: pd.DataFrame) -> JoinSummary:
    """Report matched and unmatched county keys on both sides of the join."""
    geo_keys = set(normalize_region_keys(vertices["subregion"]))
    stat_keys = set(normalize_region_keys(stats["region_key"]))

    summary = JoinSummary(
        matched=geo_keys & stat_keys,
        counties_without_stats=geo_keys - stat_keys,
        stats_without_polygons=stat_keys - geo_keys,
    )

    logger.info(f"  ✅ {len(summary.matched)} counties matched")
    if summary.counties_without_stats:
        logger.warning(
            f"  ⚠️ {len(summary.counties_without_stats)} counties have no statistic: "
            f"{describe_keys(summary.counties_without_stats)}"
        )
    if summary.stats_without_polygons:
        logger.info(
            f"  📝 {len(summary.stats_without_polygons)} statistic rows match no county polygon: "
            f"{describe_keys(summary.stats_without_polygons)}"
        )
    return summary
