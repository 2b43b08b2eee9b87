"""Write rendered plots and their mark tables to reproducible files.

This module is the boundary between in-memory images and files on disk. It
is the only part of the package that writes anything.
"""

from __future__ import annotations

import os
from typing import Sequence

import pandas as pd

from .plotting.figure import Image
from .plotting.style import FIGURE_DPI, OUTPUT_FORMATS, sanitize_filename


def _marks_table(image: Image) -> pd.DataFrame:
    """Flatten the marks of every panel and layer for export.

    Args:
        image (Image): Rendered plot.

    Returns:
        pandas.DataFrame: One row per mark with ``panel_row``, ``panel_col``,
        ``layer`` and ``geom`` leading; tuple-valued columns (boxplot
        outliers) are written as ``;``-separated text.
    """
    marks = image.marks()
    if "outliers" in marks.columns:
        marks = marks.copy()
        marks["outliers"] = [
            ";".join(f"{v:.6g}" for v in values) if isinstance(values, tuple) else ""
            for values in marks["outliers"]
        ]
    return marks


def save_plot_outputs(
    image: Image,
    name: str,
    output_dir: str = "output",
    formats: Sequence[str] = OUTPUT_FORMATS,
    dpi: int = FIGURE_DPI,
    *,
    marks: bool = True,
) -> dict[str, str]:
    """Save one rendered plot as an image bundle plus its marks table.

    Args:
        image (Image): Output of ``PlotSpec.render``.
        name (str): Base file name; sanitized for the filesystem.
        output_dir (str): Directory to write into (created if missing).
        formats (Sequence[str]): Image formats to write.
        dpi (int): Raster resolution for PNG.
        marks (bool): Whether to also write ``<name>_marks.csv``.

    Returns:
        dict[str, str]: Paths keyed by format (and ``"marks"``).
    """
    os.makedirs(output_dir, exist_ok=True)
    base = os.path.join(output_dir, sanitize_filename(name))
    image.save(base, formats=formats, dpi=dpi)
    paths = {ext: f"{base}.{ext}" for ext in formats}

    if marks:
        marks_path = f"{base}_marks.csv"
        _marks_table(image).to_csv(marks_path, index=False)
        paths["marks"] = marks_path
    return paths
