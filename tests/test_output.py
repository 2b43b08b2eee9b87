import os

import pandas as pd

from layerspec import plot_spec, save_plot_outputs


def test_save_plot_outputs_writes_images_and_marks(economies, tmp_path):
    image = (
        plot_spec(economies, x="continent", y="life_exp")
        .add_layer("boxplot")
        .render()
    )
    paths = save_plot_outputs(image, "life by continent", output_dir=str(tmp_path), formats=("png",))
    assert set(paths) == {"png", "marks"}
    assert paths["png"].endswith("life_by_continent.png")
    assert os.path.getsize(paths["png"]) > 0

    marks = pd.read_csv(paths["marks"], keep_default_na=False)
    assert list(marks.columns[:4]) == ["panel_row", "panel_col", "layer", "geom"]
    assert len(marks) == 5
    assert set(marks["geom"]) == {"boxplot"}
    assert "outliers" in marks.columns


def test_marks_table_can_be_skipped(three_points, tmp_path):
    image = plot_spec(three_points, x="a", y="b").add_layer("line").render()
    paths = save_plot_outputs(image, "line", output_dir=str(tmp_path / "nested"), formats=("svg",), marks=False)
    assert paths == {"svg": os.path.join(str(tmp_path / "nested"), "line.svg")}
    assert not os.path.exists(os.path.join(str(tmp_path / "nested"), "line_marks.csv"))


def test_dotted_names_keep_image_and_marks_together(three_points, tmp_path):
    image = plot_spec(three_points, x="a", y="b").add_layer("point").render()
    paths = save_plot_outputs(image, "gdp v1.5", output_dir=str(tmp_path), formats=("png", "svg"))
    assert sorted(os.listdir(tmp_path)) == ["gdp_v1.5.png", "gdp_v1.5.svg", "gdp_v1.5_marks.csv"]
    for path in paths.values():
        assert os.path.exists(path)
