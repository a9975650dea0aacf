"""
render.py - Static choropleth from a joined vertex table

Counties with a value are filled from a sequential colormap; counties
without one are drawn light grey with hatching; the state outline is drawn
unfilled on top. Vertices are plotted in table order within each group, so
the table must arrive in the order produced by the geo source.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from loguru import logger
from matplotlib.collections import PolyCollection
from shapely.geometry import Polygon

from .config_loader import Config


def vertex_rings(vertices: pd.DataFrame) -> Tuple[List[np.ndarray], pd.DataFrame]:
    """
    Split a vertex table into one (n, 2) coordinate array per group.

    Returns:
        (rings, attributes) where attributes has one row per group, in the
        order groups first appear, with the group's first non-null values
    """
    grouped = vertices.groupby("group", sort=False)
    rings = [ring[["longitude", "latitude"]].to_numpy() for _, ring in grouped]
    attributes = grouped.first().reset_index()
    return rings, attributes


def county_label_points(joined: pd.DataFrame) -> pd.DataFrame:
    """Label anchor per county: a point inside the county's largest ring."""
    rings, attributes = vertex_rings(joined)

    records = {}
    for ring, (_, attrs) in zip(rings, attributes.iterrows()):
        if len(ring) < 3:
            continue
        polygon = Polygon(ring)
        name = attrs["subregion"]
        if name not in records or polygon.area > records[name]["area"]:
            point = polygon.representative_point()
            records[name] = {
                "subregion": name,
                "value": attrs.get("value", np.nan),
                "longitude": point.x,
                "latitude": point.y,
                "area": polygon.area,
            }

    points = pd.DataFrame(
        list(records.values()), columns=["subregion", "value", "longitude", "latitude", "area"]
    )
    return points.drop(columns="area")


def _figure_size(bounds: np.ndarray, aspect: float, max_width: float) -> Tuple[float, float]:
    """Figure size matching the data's on-screen aspect ratio."""
    data_width = (bounds[2] - bounds[0]) * aspect
    data_height = bounds[3] - bounds[1]
    aspect_ratio = data_width / data_height if data_height else 1.0

    if aspect_ratio > 1:  # Wider than tall
        fig_width = min(max_width, 10 * aspect_ratio)
        fig_height = fig_width / aspect_ratio
    else:
        fig_height = min(max_width, 10 / aspect_ratio)
        fig_width = fig_height * aspect_ratio
    return fig_width, fig_height


def render_choropleth(
    joined: pd.DataFrame,
    base: pd.DataFrame,
    fname: Union[str, Path],
    config: Config,
    title: str = "",
    label: str = "",
    note: Optional[str] = None,
    annotate_top: Optional[int] = None,
) -> Path:
    """
    Render and save the choropleth.

    Args:
        joined: Joined vertex table (county polygons with ``value``)
        base: Vertex table drawn unfilled underneath as the outline
        fname: Output image path
        config: Configuration instance (visualization settings)
        title: Title of the map
        label: Label for the colorbar
        note: Annotation note at the bottom of the map
        annotate_top: Number of highest-value counties to point out
            (config ``visualization.annotate_top`` if None)

    Returns:
        Path of the written image
    """
    fname = Path(fname)
    fname.parent.mkdir(parents=True, exist_ok=True)

    cmap = mpl.colormaps[config.get_visualization_setting("colormap")]
    map_dpi = config.get_visualization_setting("map_dpi")
    figure_max_width = config.get_visualization_setting("figure_max_width")
    if annotate_top is None:
        annotate_top = config.get_visualization_setting("annotate_top")

    rings, attributes = vertex_rings(joined)
    base_rings, _ = vertex_rings(base)
    has_value = attributes["value"].notna().to_numpy()

    all_points = pd.concat([joined, base])[["longitude", "latitude"]]
    bounds = np.array(
        [
            all_points["longitude"].min(),
            all_points["latitude"].min(),
            all_points["longitude"].max(),
            all_points["latitude"].max(),
        ]
    )
    # Longitude degrees shrink with latitude; scale x so shapes are not stretched
    aspect = float(np.cos(np.deg2rad((bounds[1] + bounds[3]) / 2)))

    fig, ax = plt.subplots(figsize=_figure_size(bounds, aspect, figure_max_width), dpi=map_dpi)

    missing_rings = [ring for ring, ok in zip(rings, has_value) if not ok]
    if missing_rings:
        ax.add_collection(
            PolyCollection(
                missing_rings,
                facecolors=config.get_visualization_setting("missing_color"),
                edgecolors="#cccccc",
                hatch=config.get_visualization_setting("missing_hatch"),
                linewidths=0.25,
            )
        )

    values = attributes.loc[has_value, "value"].to_numpy(dtype=float)
    norm = None
    if len(values):
        norm = mpl.colors.Normalize(vmin=values.min(), vmax=values.max())
        filled = PolyCollection(
            [ring for ring, ok in zip(rings, has_value) if ok],
            array=values,
            cmap=cmap,
            norm=norm,
            edgecolors="#444444",
            linewidths=0.25,
        )
        ax.add_collection(filled)
    else:
        logger.warning("  ⚠️ No county has a value; drawing outlines only")

    ax.add_collection(
        PolyCollection(
            base_rings,
            facecolors="none",
            edgecolors=config.get_visualization_setting("outline_color"),
            linewidths=1.0,
        )
    )

    # Tiny margins to maximize data area
    x_margin = (bounds[2] - bounds[0]) * 0.01
    y_margin = (bounds[3] - bounds[1]) * 0.01
    ax.set_xlim(bounds[0] - x_margin, bounds[2] + x_margin)
    ax.set_ylim(bounds[1] - y_margin, bounds[3] + y_margin)
    ax.set_aspect(1 / aspect)
    ax.set_axis_off()

    if annotate_top:
        _annotate_top_counties(ax, joined, annotate_top)

    if title:
        fig.suptitle(title, fontsize=16, fontweight="bold", x=0.02, y=0.95, ha="left", va="top")

    if norm is not None and norm.vmax > norm.vmin:
        sm = mpl.cm.ScalarMappable(norm=norm, cmap=cmap)
        cbar_ax = fig.add_axes((0.92, 0.15, 0.02, 0.7))
        cbar = fig.colorbar(sm, cax=cbar_ax)
        cbar.ax.tick_params(labelsize=10, colors="#333333")
        cbar.outline.set_edgecolor("#666666")  # type: ignore
        cbar.outline.set_linewidth(0.5)  # type: ignore
        if label:
            cbar.set_label(label, rotation=90, labelpad=12, fontsize=11, color="#333333")

    if note:
        fig.text(0.02, 0.02, note, ha="left", va="bottom", fontsize=9, color="#666666", style="italic", wrap=True)

    fig.savefig(fname, bbox_inches="tight", dpi=map_dpi, facecolor="white", edgecolor="none", pad_inches=0.02)
    plt.close(fig)
    logger.success(f"🗺️ Map saved: {fname}")
    return fname


def _annotate_top_counties(ax: plt.Axes, joined: pd.DataFrame, n: int) -> None:
    """Arrow and label for the n counties with the highest values."""
    points = county_label_points(joined).dropna(subset=["value"])
    top = points.nlargest(n, "value")

    x_min, x_max = ax.get_xlim()
    for rank, (_, row) in enumerate(top.iterrows()):
        # Push labels toward the nearer side edge, staggered vertically
        offset_x = -60 if row["longitude"] > (x_min + x_max) / 2 else 60
        ax.annotate(
            f"{row['subregion']}\n{row['value']:,.0f}",
            xy=(row["longitude"], row["latitude"]),
            xytext=(offset_x, 30 + 18 * rank),
            textcoords="offset points",
            ha="center",
            fontsize=9,
            color="#222222",
            arrowprops={"arrowstyle": "->", "color": "#222222", "linewidth": 0.8},
        )
