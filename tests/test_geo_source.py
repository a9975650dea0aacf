import geopandas as gpd
import pytest
from shapely.geometry import LineString, Polygon

from cornmap import geo_source
from cornmap.errors import SourceUnavailable, UnknownRegion
from cornmap.geo_source import (
    VERTEX_COLUMNS,
    Granularity,
    load_region_polygons,
    polygons_to_vertices,
    select_region,
)


def test_polygon_becomes_one_closed_ring(county_gdf):
    dane = county_gdf[county_gdf["NAME"] == "Dane"]

    vertices = polygons_to_vertices(dane, "wisconsin")

    assert list(vertices.columns) == VERTEX_COLUMNS
    assert len(vertices) == 5
    assert vertices["group"].unique().tolist() == [1]
    assert vertices.iloc[0][["longitude", "latitude"]].tolist() == vertices.iloc[-1][["longitude", "latitude"]].tolist()
    assert set(vertices["subregion"]) == {"Dane"}
    assert set(vertices["region"]) == {"wisconsin"}


def test_multipolygon_parts_get_their_own_groups(county_gdf):
    iron = county_gdf[county_gdf["NAME"] == "Iron"]

    vertices = polygons_to_vertices(iron, "wisconsin")

    assert vertices["group"].unique().tolist() == [1, 2]
    assert len(vertices) == 10


def test_features_sorted_by_name_and_order_increasing(county_gdf):
    vertices = polygons_to_vertices(county_gdf, "any")

    assert vertices.drop_duplicates("subregion")["subregion"].tolist() == ["Dakota", "Dane", "Iron", "Rock"]
    assert vertices["order"].tolist() == list(range(1, len(vertices) + 1))
    assert vertices["group"].is_monotonic_increasing


def test_holes_and_non_polygons_are_dropped():
    with_hole = Polygon(
        [(0, 0), (4, 0), (4, 4), (0, 4)],
        holes=[[(1, 1), (2, 1), (2, 2), (1, 2)]],
    )
    gdf = gpd.GeoDataFrame(
        {"NAME": ["Lake", "Road"]}, geometry=[with_hole, LineString([(0, 0), (1, 1)])]
    )

    vertices = polygons_to_vertices(gdf, "x")

    assert set(vertices["subregion"]) == {"Lake"}
    assert len(vertices) == 5


def test_select_region_by_name_or_postal_code(county_gdf):
    by_name = select_region(county_gdf, "wisconsin", Granularity.COUNTY)
    by_code = select_region(county_gdf, " WI ", Granularity.COUNTY)

    assert sorted(by_name["NAME"]) == ["Dane", "Iron", "Rock"]
    assert by_code.index.equals(by_name.index)


def test_unknown_region(county_gdf):
    with pytest.raises(UnknownRegion):
        select_region(county_gdf, "Atlantis", Granularity.COUNTY)


def test_load_county_polygons(config, fake_boundaries):
    vertices = load_region_polygons("Wisconsin", Granularity.COUNTY, config)

    assert fake_boundaries == [str(config.project_root / "bounds/counties.shp")]
    assert sorted(vertices["subregion"].unique()) == ["Dane", "Iron", "Rock"]
    assert vertices["group"].nunique() == 4


def test_load_state_outline(config, fake_boundaries):
    vertices = load_region_polygons("WI", Granularity.STATE, config)

    assert set(vertices["subregion"]) == {"Wisconsin"}
    assert set(vertices["region"]) == {"wi"}


def test_load_reprojects_to_output_crs(config, monkeypatch, county_gdf):
    monkeypatch.setattr(geo_source.gpd, "read_file", lambda location: county_gdf.to_crs("EPSG:3857"))

    vertices = load_region_polygons("Wisconsin", Granularity.COUNTY, config)

    assert vertices["longitude"].between(-91, -88).all()
    assert vertices["latitude"].between(42, 47).all()


def test_unreadable_boundaries_are_source_unavailable(config, monkeypatch):
    def broken(location):
        raise OSError("no such file")

    monkeypatch.setattr(geo_source.gpd, "read_file", broken)
    with pytest.raises(SourceUnavailable):
        load_region_polygons("Wisconsin", Granularity.COUNTY, config)


def test_unknown_region_from_loader(config, fake_boundaries):
    with pytest.raises(UnknownRegion):
        load_region_polygons("Atlantis", Granularity.STATE, config)
