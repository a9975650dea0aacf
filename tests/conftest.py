"""Shared fixtures: small in-memory boundaries, a temp config and a stats CSV."""

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
import yaml
from shapely.geometry import MultiPolygon, Polygon

from cornmap import geo_source
from cornmap.config_loader import Config

# Headless test runs write PNGs only
matplotlib.use("Agg")


def square(x0: float, y0: float, size: float = 0.5) -> Polygon:
    return Polygon([(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)])


@pytest.fixture
def county_gdf() -> gpd.GeoDataFrame:
    """Three Wisconsin counties (Iron in two parts) and one Minnesota county."""
    return gpd.GeoDataFrame(
        {
            "NAME": ["Rock", "Dane", "Iron", "Dakota"],
            "STATE_NAME": ["Wisconsin", "Wisconsin", "Wisconsin", "Minnesota"],
            "STUSPS": ["WI", "WI", "WI", "MN"],
        },
        geometry=[
            square(-89.0, 42.5),
            square(-89.5, 43.0),
            MultiPolygon([square(-90.5, 46.0), square(-90.0, 46.3, 0.2)]),
            square(-93.0, 44.5),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def state_gdf() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"NAME": ["Wisconsin", "Minnesota"], "STUSPS": ["WI", "MN"]},
        geometry=[
            Polygon([(-92.0, 42.4), (-87.0, 42.4), (-87.0, 47.0), (-92.0, 47.0)]),
            square(-97.0, 43.5, 3.0),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def stats_csv(tmp_path):
    """A Quick Stats shaped export with extra columns and one suppressed value."""
    path = tmp_path / "stats.csv"
    path.write_text(
        "Program,Year,State,County,Commodity,Value,CV (%)\n"
        "SURVEY,2022,WISCONSIN,DANE,CORN,500,1.2\n"
        "SURVEY,2022,WISCONSIN,ROCK,CORN,300,2.0\n"
        "SURVEY,2022,WISCONSIN,IRON,CORN,(D),\n"
        "SURVEY,2022,WISCONSIN,MARATHON,CORN,250,1.9\n"
    )
    return path


@pytest.fixture
def config(tmp_path, stats_csv) -> Config:
    settings = {
        "project_name": "Test",
        "region": {"state": "Wisconsin"},
        "input_files": {
            "stats_csv": stats_csv.name,
            "county_boundaries": "bounds/counties.shp",
            "state_boundaries": "bounds/states.shp",
        },
        "output": {"map_png": "output/map.png"},
        "visualization": {"map_dpi": 50, "title": "Test map", "label": "Acres"},
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(settings))
    return Config(str(config_path))


@pytest.fixture
def fake_boundaries(monkeypatch, county_gdf, state_gdf):
    """Serve the fixture GeoDataFrames instead of reading boundary files."""
    requested = []

    def read_file(location, *args, **kwargs):
        requested.append(location)
        if "counties" in location:
            return county_gdf.copy()
        return state_gdf.copy()

    monkeypatch.setattr(geo_source.gpd, "read_file", read_file)
    return requested


@pytest.fixture
def vertices() -> pd.DataFrame:
    """Two vertices of a Dane polygon and one of a Rock polygon."""
    return pd.DataFrame(
        {
            "longitude": [-89.5, -89.0, -89.0],
            "latitude": [43.0, 43.0, 42.5],
            "group": [1, 1, 2],
            "order": [1, 2, 3],
            "region": ["wisconsin"] * 3,
            "subregion": ["dane", "dane", "rock"],
        }
    )
