"""Pytest configuration for repository-relative imports and shared datasets."""

import os
import sys

import matplotlib
import pandas as pd
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

matplotlib.use("Agg")

from layerspec.datasets import demo_economies  # noqa: E402


@pytest.fixture(scope="session")
def economies():
    return demo_economies()


@pytest.fixture
def three_points():
    return pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [2.0, 4.0, 6.0]})
