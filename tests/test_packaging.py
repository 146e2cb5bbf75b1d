from importlib import resources
from pathlib import Path

import pytest

CATALOG = ("achievements", "assets", "difficulty", "news_events", "opportunities")


@pytest.mark.parametrize("name", CATALOG)
def test_catalog_ships_inside_the_game_package(name):
    assert resources.files("game").joinpath(f"{name}.json").is_file()


def test_catalog_is_declared_as_package_data():
    tomllib = pytest.importorskip("tomllib")
    with open(Path(__file__).resolve().parent.parent / "pyproject.toml", "rb") as f:
        setuptools_cfg = tomllib.load(f)["tool"]["setuptools"]

    assert "game" in setuptools_cfg["packages"]
    assert "*.json" in setuptools_cfg["package-data"]["game"]
