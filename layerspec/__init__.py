"""
A layered, grammar-of-graphics plot-specification builder.

Build a plot from a tabular dataset and a default aesthetic mapping, extend it
with layers, scale transforms, facets, labels and a theme (each extension
returns a new specification), then render it to a static image.

Modules:
    - spec: The immutable ``PlotSpec`` builder, ``Layer`` and ``StatSpec``.
    - aes: Aesthetic mappings, column references and derived expressions.
    - geoms: Registry of geometry kinds.
    - build: Resolution of a specification into panels of marks.
    - stats: Curve fitting and summary statistics.
    - scales: Scale transforms and scale training.
    - facets: Row/column partitioning into panels.
    - plotting: Themes, drawing and figure composition.
    - datasets: Dataset providers and the demo dataset.
    - output: Saving rendered plots.
"""

__version__ = "1.0.0"

from .aes import AestheticMapping, ColumnRef, DerivedExpr, aes, col, expr, factor
from .build import BuiltPlot, build_plot
from .datasets import CsvDatasetProvider, InMemoryDatasetProvider, demo_provider
from .errors import (
    InvalidScaleError,
    MissingAestheticError,
    MissingColumnError,
    PlotAdvisory,
    PlotSpecError,
    UnsupportedGeometryOptionError,
    UnsupportedStatError,
)
from .facets import FacetSpec
from .geoms import GEOM_KINDS
from .output import save_plot_outputs
from .plotting.figure import Image, render_plot
from .plotting.themes import THEMES, Theme
from .scales import TRANSFORMS, ScaleTransform
from .spec import Layer, PlotSpec, StatSpec, plot_spec
from .stats.backend import ModelStatsBackend, StatsBackend

__all__ = [
    # Specification
    "PlotSpec",
    "plot_spec",
    "Layer",
    "StatSpec",
    "FacetSpec",
    "ScaleTransform",
    "Theme",
    "THEMES",
    "TRANSFORMS",
    "GEOM_KINDS",
    # Aesthetics
    "AestheticMapping",
    "ColumnRef",
    "DerivedExpr",
    "aes",
    "col",
    "expr",
    "factor",
    # Rendering
    "BuiltPlot",
    "build_plot",
    "Image",
    "render_plot",
    "save_plot_outputs",
    "StatsBackend",
    "ModelStatsBackend",
    # Data
    "CsvDatasetProvider",
    "InMemoryDatasetProvider",
    "demo_provider",
    # Errors
    "PlotSpecError",
    "MissingColumnError",
    "InvalidScaleError",
    "UnsupportedGeometryOptionError",
    "MissingAestheticError",
    "UnsupportedStatError",
    "PlotAdvisory",
]
