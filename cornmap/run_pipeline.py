#!/usr/bin/env python3
"""
run_pipeline.py - County choropleth, start to finish

    county polygons ─┐
                     ├─ join ─ render ─> PNG
    statistics CSV ──┘
      (load, coerce)

Usage:
    python -m cornmap.run_pipeline

Everything (state, input files, output path, styling) comes from
config.yaml; see cornmap/config.yaml for the packaged defaults.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import matplotlib as mpl
import pandas as pd
from loguru import logger

from .config_loader import Config
from .errors import ConfigError, CornmapError
from .geo_source import Granularity, load_region_polygons
from .join import JoinSummary, join_stats, summarize_join
from .render import render_choropleth
from .stat_source import CoercionReport, coerce_values, load_stat_records


@dataclass
class PipelineResult:
    joined: pd.DataFrame
    coercion: CoercionReport
    summary: JoinSummary
    output_path: Path


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with appropriate format and level."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
    )


def run_pipeline(config: Config, output_path: Optional[Path] = None) -> PipelineResult:
    """
    Load, clean, join and render.

    Any CornmapError aborts the run before the image is written.
    """
    state = config.get("region.state")
    if not state:
        raise ConfigError("region.state is not set in config")

    # === 1. Geography ===
    logger.info(f"🗺️ Loading polygons for {state}")
    counties = load_region_polygons(state, Granularity.COUNTY, config)
    outline = load_region_polygons(state, Granularity.STATE, config)

    # === 2. Statistics ===
    logger.info("📊 Loading statistics")
    stats = load_stat_records(
        config.get_input_path("stats_csv"),
        county_column=config.get("columns.stats_county"),
        value_column=config.get("columns.stats_value"),
        timeout=config.get("stats.timeout"),
    )
    stats, coercion = coerce_values(stats)

    # === 3. Join ===
    logger.info("🔗 Joining statistics onto county polygons")
    summary = summarize_join(counties, stats)
    joined = join_stats(counties, stats)

    # === 4. Render ===
    logger.info("🎨 Rendering map")
    output_path = output_path or config.get_output_path("map_png")
    render_choropleth(
        joined,
        outline,
        output_path,
        config,
        title=config.get_visualization_setting("title") or "",
        label=config.get_visualization_setting("label") or "",
        note=config.get_visualization_setting("note"),
    )

    return PipelineResult(joined=joined, coercion=coercion, summary=summary, output_path=output_path)


def main() -> None:
    """Main execution function with error handling."""
    # Render to files only; no display server
    mpl.use("Agg")

    try:
        config = Config()
    except Exception as e:
        logger.critical(f"❌ Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists or set CORNMAP_CONFIG_PATH")
        sys.exit(1)

    configure_logging(config.get("logging.level"))
    logger.info("🌽 County Choropleth")
    logger.info("=" * 60)
    logger.info(f"📋 Project: {config.get('project_name')}")
    logger.info(f"📋 Description: {config.get('description')}")
    config.print_config_summary()

    try:
        result = run_pipeline(config)
    except CornmapError as e:
        logger.critical(f"❌ {type(e).__name__}: {e}")
        sys.exit(1)

    logger.success(
        f"🎉 Done: {len(result.summary.matched)} counties mapped, "
        f"{result.coercion.unparseable} unparseable values → {result.output_path}"
    )


if __name__ == "__main__":
    main()
