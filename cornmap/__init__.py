"""
cornmap - county choropleth of a crop statistic for one U.S. state

Pipeline: county polygons + statistics CSV → normalize → left join → render.
"""

__version__ = "0.1.0"

from .config_loader import Config
from .data_utils import normalize_region_key, normalize_region_keys
from .errors import ConfigError, CornmapError, SchemaMismatch, SourceUnavailable, UnknownRegion
from .geo_source import Granularity, load_region_polygons, polygons_to_vertices
from .join import JoinSummary, join_stats, summarize_join
from .render import render_choropleth
from .stat_source import CoercionReport, coerce_values, load_stat_records

__all__ = [
    "Config",
    "normalize_region_key",
    "normalize_region_keys",
    "CornmapError",
    "ConfigError",
    "SchemaMismatch",
    "SourceUnavailable",
    "UnknownRegion",
    "Granularity",
    "load_region_polygons",
    "polygons_to_vertices",
    "load_stat_records",
    "coerce_values",
    "CoercionReport",
    "join_stats",
    "summarize_join",
    "JoinSummary",
    "render_choropleth",
]
