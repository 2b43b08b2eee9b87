#!/usr/bin/env python3
"""
Main script for the grammar-of-graphics walkthrough.
"""

# Walkthrough overview (README-style):
# 1) Load the country-year economies dataset (seeded demo data, or
#    ``economies.csv`` from --data-dir).
# 2) Start from one plot specification mapping GDP per capita to life
#    expectancy and extend it step by step: colour by continent, a log10 x
#    scale, fitted trend lines, facets, and themes. Every step builds on the
#    previous specification without changing it.
# 3) Show the other geometries: histograms, densities, boxplots, lines over
#    time, and bar counts.
# 4) Save every plot as PNG/PDF/SVG plus a CSV of its marks.

import argparse
import logging
import os
import sys
import time
import warnings
from dataclasses import replace

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("layerspec_walkthrough.log", mode="w"),
    ],
)

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from layerspec import (
    CsvDatasetProvider,
    PlotAdvisory,
    PlotSpec,
    StatSpec,
    col,
    demo_provider,
)
from layerspec.output import save_plot_outputs
from layerspec.plotting.themes import THEMES, scaled_theme


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render the layerspec walkthrough plots.")
    parser.add_argument("--output-dir", default="output", help="Directory for figures and mark tables")
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding economies.csv; the seeded demo dataset is used when omitted",
    )
    parser.add_argument("--theme", default="grey", choices=sorted(THEMES), help="Theme for every plot")
    parser.add_argument("--base-size", type=float, default=11.0, help="Base font size in points")
    parser.add_argument(
        "--formats",
        nargs="+",
        default=["png"],
        choices=["png", "pdf", "svg"],
        help="Image formats to write",
    )
    return parser.parse_args(argv)


def walkthrough_plots(base: PlotSpec, economies):
    """Return ``(name, spec)`` pairs in walkthrough order."""
    by_continent = base.add_layer("point", mapping={"color": "continent"})
    log_x = by_continent.add_scale("x", "log10")
    latest = economies[economies["year"] == economies["year"].max()]

    plots = [
        ("01_scatter", base.add_layer("point")),
        ("02_colour_by_continent", by_continent),
        ("03_log_gdp", log_x),
        (
            "04_linear_trend",
            base.add_layer("point", alpha=0.3)
            .add_scale("x", "log10")
            .add_layer("smooth", stat=StatSpec(method="lm"), color="black"),
        ),
        (
            "05_trend_per_continent",
            log_x.add_layer("smooth", mapping={"color": "continent"}, stat=StatSpec(method="lm", se=False)),
        ),
        ("06_facet_by_continent", log_x.add_facet(cols=["continent"])),
        (
            "07_facet_by_decade",
            base.add_layer("point", size=2.0).add_scale("x", "log10").add_facet(rows="decade", scales="free_y"),
        ),
        (
            "08_latest_year_sized_by_population",
            replace(base, data=latest)
            .add_layer("point", mapping={"size": "pop", "color": "continent"}, alpha=0.7)
            .add_scale("x", "log10")
            .set_labels(title=f"Countries in {int(economies['year'].max())}", size="population"),
        ),
        (
            "09_life_exp_histogram",
            PlotSpec(economies, {"x": "life_exp"}).add_layer("histogram", binwidth=2.5),
        ),
        (
            "10_life_exp_density",
            PlotSpec(economies, {"x": "life_exp", "fill": "continent"}).add_layer("density", alpha=0.3),
        ),
        (
            "11_life_exp_boxplot",
            PlotSpec(economies, {"x": "continent", "y": "life_exp"}).add_layer("boxplot"),
        ),
        (
            "12_life_exp_over_time",
            PlotSpec(economies, {"x": "year", "y": "life_exp", "group": "country"})
            .add_layer("line", alpha=0.4)
            .add_layer("smooth", mapping={"group": None}, stat="loess", size=3.0)
            .add_facet(cols="continent"),
        ),
        (
            "13_country_counts",
            PlotSpec(latest, {"x": "continent"}).add_layer("bar"),
        ),
        (
            "14_total_gdp",
            PlotSpec(latest, {"x": "continent", "y": col("gdp_per_cap") * col("pop") / 1e9}).add_layer("col"),
        ),
        (
            "15_polynomial_fit",
            base.add_layer("point", color="grey")
            .add_scale("x", "log10")
            .add_layer("smooth", stat=StatSpec(method="lm", formula="y ~ poly(x, 2)")),
        ),
    ]
    return plots


def main(argv=None):
    """Main execution function with pipeline-level logging."""

    args = parse_args(argv)
    start_time = time.time()
    logging.info("Initializing layerspec walkthrough")

    provider = CsvDatasetProvider(args.data_dir) if args.data_dir else demo_provider()
    economies = provider.get("economies")
    logging.info("Loaded economies dataset with shape %s", economies.shape)

    theme = scaled_theme(args.theme, args.base_size)
    base = PlotSpec.from_dataset(provider, "economies", x="gdp_per_cap", y="life_exp").set_labels(
        x="GDP per capita", y="Life expectancy (years)"
    )
    plots = walkthrough_plots(base, economies)
    logging.info("Configured %d plots", len(plots))

    os.makedirs(args.output_dir, exist_ok=True)
    logging.info("Output directory ensured: %s", args.output_dir)

    written = []
    for name, spec in plots:
        step_start = time.time()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", PlotAdvisory)
            image = spec.set_theme(theme).render()
        for advisory in caught:
            logging.warning("%s: %s", name, advisory.message)
        paths = save_plot_outputs(image, name, args.output_dir, formats=args.formats)
        image.figure.clear()
        written.extend(paths.values())
        logging.info("Rendered %s in %.2f seconds", name, time.time() - step_start)

    total_duration = time.time() - start_time
    logging.info("Total execution time: %.2f seconds", total_duration)
    logging.info("Walkthrough completed successfully")
    logging.info("Generated output files:")
    for path in written:
        logging.info("  - %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
