from textwrap import dedent

from rpyflow.data.config import LayoutConfig
from rpyflow.domain import diagnostics as codes
from rpyflow.domain.graph import Position
from rpyflow.services.graph_builder import build_label_graph
from rpyflow.services.layout_engine import layout_label_nodes, node_size, overlapping_pairs
from rpyflow.services.scanner import scan_source
from rpyflow.services.symbol_table import build_symbol_table

_CHAIN = """\
label start:
    "One"
label mid:
    "Two"
label end:
    return
"""


def _make_layout(sources: dict[str, str], prior=None, layout: LayoutConfig | None = None):
    paths = sorted(sources)
    files = [scan_source(path, dedent(sources[path])) for path in paths]
    table = build_symbol_table(files)
    graph = build_label_graph(table, paths)
    return layout_label_nodes(graph, table.labels, prior, layout, ["start"])


def _by_id(result) -> dict:
    return {node.id: node for node in result.nodes}


def test_node_size_grows_with_name_and_targets_within_bounds() -> None:
    layout = LayoutConfig()
    assert node_size("start", 0, layout) == (180.0, 40.0)
    assert node_size("x" * 100, 0, layout)[0] == 360.0
    assert node_size("chapter_one_the_long_way_round", 2, layout) == (280.0, 76.0)
    assert node_size("start", 10, layout)[1] == 40.0 + 4 * 18.0


def test_successors_are_placed_after_predecessors() -> None:
    result = _make_layout({"game/script.rpy": _CHAIN})
    nodes = _by_id(result)
    assert nodes["start"].position == Position(50.0, 50.0)
    assert nodes["mid"].position.x > nodes["start"].position.x
    assert nodes["end"].position.x > nodes["mid"].position.x
    assert result.diagnostics == []


def test_files_are_laid_out_without_overlap() -> None:
    result = _make_layout(
        {
            "game/a.rpy": """\
            label start:
                menu:
                    "Left":
                        jump left
                    "Right":
                        jump right
            label left:
                jump finale
            label right:
                jump finale
            """,
            "game/b.rpy": _CHAIN.replace("start", "finale"),
            "game/c.rpy": "label side:\n    return\n",
        }
    )
    assert len(result.nodes) == 7
    assert overlapping_pairs(result.nodes) == []
    nodes = _by_id(result)
    assert nodes["left"].position.x == nodes["right"].position.x
    assert nodes["left"].position.y != nodes["right"].position.y


def test_known_positions_are_kept_and_anchor_their_group() -> None:
    prior = {"start": Position(400.0, 300.0)}
    result = _make_layout({"game/script.rpy": _CHAIN}, prior)
    nodes = _by_id(result)
    assert nodes["start"].position == Position(400.0, 300.0)
    assert nodes["start"].position is not prior["start"]
    assert nodes["mid"].position == Position(400.0 + 180.0 + 70.0, 300.0)


def test_new_nodes_are_pushed_off_known_nodes() -> None:
    prior = {"start": Position(0.0, 0.0), "end": Position(250.0, 0.0)}
    result = _make_layout({"game/script.rpy": _CHAIN}, prior)
    nodes = _by_id(result)
    assert nodes["end"].position == Position(250.0, 0.0)
    assert nodes["mid"].position == Position(250.0, 100.0)
    assert overlapping_pairs(result.nodes) == []


def test_unresolved_overlap_is_reported_when_passes_run_out() -> None:
    prior = {"start": Position(0.0, 0.0), "end": Position(250.0, 0.0)}
    result = _make_layout({"game/script.rpy": _CHAIN}, prior, LayoutConfig(overlap_passes=0))
    assert [d.code for d in result.diagnostics] == [codes.LAYOUT_OVERLAP_UNRESOLVED]
    assert result.diagnostics[0].context["overlaps"] == "1"
