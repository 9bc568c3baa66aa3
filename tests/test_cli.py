import json

from rpyflow.data.positions import load_positions, save_positions
from rpyflow.domain.graph import Position
from rpyflow.presentation.cli import app
from rpyflow.presentation.cli.render import wrap_bullet


def _write_project(tmp_path):
    game = tmp_path / "game"
    game.mkdir()
    (game / "script.rpy").write_text(
        'define e = Character("Eileen")\n'
        "label start:\n"
        '    e "Hello."\n'
        "    jump missing\n",
        encoding="utf-8",
    )
    return tmp_path


def test_cli_prints_summary_and_diagnostics(tmp_path, capsys) -> None:
    project = _write_project(tmp_path)
    assert app.main([str(project)]) == app.EXIT_OK
    out = capsys.readouterr().out
    assert "=== Project ===" in out
    assert "Labels" in out
    assert "=== Character lines ===" in out
    assert "UNRESOLVED_TARGET" in out


def test_cli_json_output_and_saved_positions(tmp_path, capsys) -> None:
    project = _write_project(tmp_path)
    positions_path = tmp_path / "positions.json"
    code = app.main([str(project), "--json", "--save-positions", str(positions_path)])
    assert code == app.EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert list(payload["labels"]) == ["start"]
    assert set(load_positions(positions_path)) == {"start"}


def test_cli_saves_positions_of_current_labels_only(tmp_path, capsys) -> None:
    project = _write_project(tmp_path)
    prior_path = tmp_path / "prior.json"
    save_positions(prior_path, {"start": Position(10.0, 20.0), "deleted": Position(0.0, 0.0)})
    saved_path = tmp_path / "saved.json"
    code = app.main([str(project), "--positions", str(prior_path), "--save-positions", str(saved_path)])
    assert code == app.EXIT_OK
    assert load_positions(saved_path) == {"start": Position(10.0, 20.0)}


def test_cli_reports_missing_project(tmp_path, capsys) -> None:
    code = app.main([str(tmp_path / "nope")])
    assert code == app.EXIT_LOAD_ERROR
    assert "error:" in capsys.readouterr().err


def test_wrap_bullet_indents_continuation_lines() -> None:
    text = "A long diagnostic message that certainly needs more than one line to fit in the box"
    lines = wrap_bullet(text, width=40)
    assert len(lines) > 1
    assert lines[0].startswith("- ")
    assert all(line.startswith("  ") for line in lines[1:])
    assert all(len(line) <= 40 for line in lines)
