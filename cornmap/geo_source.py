"""
geo_source.py - County and state outlines as ordered vertex tables

Boundaries come from the Census Bureau cartographic boundary files (any
format geopandas reads; the defaults are the 1:20m shapefile zips). Each
polygon ring is flattened into rows of a vertex table:

    longitude | latitude | group | order | region | subregion

``group`` identifies one ring, ``order`` is a running index that must stay
increasing for the polygons to draw correctly, ``region`` is the state and
``subregion`` the county (or the state again at STATE granularity).
"""

from enum import Enum
from typing import Dict, List, Tuple

import geopandas as gpd
import pandas as pd
from loguru import logger
from shapely.geometry import MultiPolygon, Polygon

from .config_loader import Config
from .data_utils import normalize_region_key, normalize_region_keys
from .errors import SourceUnavailable, UnknownRegion

VERTEX_COLUMNS = ["longitude", "latitude", "group", "order", "region", "subregion"]


class Granularity(Enum):
    STATE = "state"
    COUNTY = "county"


# input_files key, columns holding the state name, column naming each feature
BOUNDARY_LAYOUT: Dict[Granularity, Tuple[str, List[str], str]] = {
    Granularity.STATE: ("state_boundaries", ["NAME", "STUSPS"], "NAME"),
    Granularity.COUNTY: ("county_boundaries", ["STATE_NAME", "STUSPS"], "NAME"),
}


def load_boundaries(granularity: Granularity, config: Config) -> gpd.GeoDataFrame:
    """Read the boundary file for a granularity and reproject it for plotting."""
    file_key, _, _ = BOUNDARY_LAYOUT[granularity]
    location = config.get_input_path(file_key)
    logger.info(f"🗺️ Loading {granularity.value} boundaries from {location}")

    try:
        gdf = gpd.read_file(str(location))
    except Exception as e:
        raise SourceUnavailable(f"Could not read {granularity.value} boundaries {location}: {e}") from e

    logger.info(f"  ✓ Loaded {len(gdf):,} features")

    output_crs = config.get_system_setting("output_crs")
    if gdf.crs is None:
        logger.warning(f"  ⚠️ No CRS defined, assuming {output_crs}")
        gdf = gdf.set_crs(output_crs)
    elif gdf.crs.to_string() != output_crs:
        logger.info(f"  🔄 Reprojecting from {gdf.crs} to {output_crs}")
        gdf = gdf.to_crs(output_crs)
    return gdf


def select_region(gdf: gpd.GeoDataFrame, region_name: str, granularity: Granularity) -> gpd.GeoDataFrame:
    """Keep the features that belong to one state, matched by name or postal code."""
    _, match_columns, _ = BOUNDARY_LAYOUT[granularity]
    wanted = normalize_region_key(region_name)

    mask = pd.Series(False, index=gdf.index)
    for column in match_columns:
        if column in gdf.columns:
            mask |= normalize_region_keys(gdf[column]) == wanted

    selected = gdf[mask]
    if selected.empty:
        raise UnknownRegion(f"No {granularity.value} polygons for region '{region_name}'")
    return selected


def polygons_to_vertices(gdf: gpd.GeoDataFrame, region: str, name_column: str = "NAME") -> pd.DataFrame:
    """
    Flatten polygon features into an ordered vertex table.

    Features are emitted sorted by name. Multipolygons contribute one group
    per part; only exterior rings are kept.

    Args:
        gdf: Polygon features
        region: Value for the ``region`` column
        name_column: Column naming each feature, copied to ``subregion``

    Returns:
        DataFrame with VERTEX_COLUMNS
    """
    features = sorted(zip(gdf[name_column], gdf.geometry), key=lambda item: str(item[0]).lower())

    rows = []
    group = 0
    order = 0
    for name, geom in features:
        if geom is None or geom.is_empty:
            logger.warning(f"  ⚠️ '{name}' has no geometry, skipping")
            continue
        if isinstance(geom, Polygon):
            parts = [geom]
        elif isinstance(geom, MultiPolygon):
            parts = list(geom.geoms)
        else:
            logger.warning(f"  ⚠️ '{name}' is a {geom.geom_type}, not a polygon, skipping")
            continue

        for part in parts:
            group += 1
            for x, y, *_ in part.exterior.coords:
                order += 1
                rows.append((float(x), float(y), group, order, region, name))

    vertices = pd.DataFrame(rows, columns=VERTEX_COLUMNS)
    return vertices.astype({"group": "int64", "order": "int64"})


def load_region_polygons(region_name: str, granularity: Granularity, config: Config) -> pd.DataFrame:
    """
    Vertex table for one state's outline (STATE) or its counties (COUNTY).

    Raises:
        SourceUnavailable: the boundary file could not be read
        UnknownRegion: no polygons for ``region_name`` at this granularity
    """
    gdf = load_boundaries(granularity, config)
    selected = select_region(gdf, region_name, granularity)

    if granularity is Granularity.COUNTY:
        name_column = config.get_column_name("boundary_county")
    else:
        _, _, name_column = BOUNDARY_LAYOUT[granularity]

    vertices = polygons_to_vertices(selected, normalize_region_key(region_name), name_column)
    logger.success(
        f"  ✅ {region_name}: {len(selected)} {granularity.value} features, "
        f"{vertices['group'].nunique()} polygons, {len(vertices):,} vertices"
    )
    return vertices
