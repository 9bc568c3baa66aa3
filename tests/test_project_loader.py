import pytest

from rpyflow.data.errors import ProjectLoadError
from rpyflow.data.positions import load_positions, save_positions
from rpyflow.data.project_loader import load_project_sources
from rpyflow.domain.graph import Position


def test_load_project_sources_reads_scripts_sorted(tmp_path) -> None:
    game = tmp_path / "game"
    (game / "chapters").mkdir(parents=True)
    (game / "script.rpy").write_text("label start:\n    return\n", encoding="utf-8")
    (game / "chapters" / "one.rpy").write_text("label one:\n    return\n", encoding="utf-8")
    (game / "notes.txt").write_text("not a script", encoding="utf-8")

    sources = load_project_sources(tmp_path)
    assert list(sources) == ["game/chapters/one.rpy", "game/script.rpy"]
    assert sources["game/script.rpy"].startswith("label start:")


def test_load_project_sources_requires_a_directory(tmp_path) -> None:
    with pytest.raises(ProjectLoadError):
        load_project_sources(tmp_path / "missing")


def test_positions_round_trip_and_missing_file(tmp_path) -> None:
    path = tmp_path / "state" / "positions.json"
    assert load_positions(path) == {}
    save_positions(path, {"start": Position(10.0, 20.5)})
    assert load_positions(path) == {"start": Position(10.0, 20.5)}


def test_positions_reject_non_numeric_coordinates(tmp_path) -> None:
    path = tmp_path / "positions.json"
    path.write_text('{"start": {"x": "left", "y": 2}}', encoding="utf-8")
    with pytest.raises(ProjectLoadError):
        load_positions(path)
