from textwrap import dedent

from rpyflow.domain import diagnostics as codes
from rpyflow.domain.graph import BlockLink
from rpyflow.services.graph_builder import build_label_graph
from rpyflow.services.scanner import scan_source
from rpyflow.services.symbol_table import build_symbol_table


def _make_graph(sources: dict[str, str]):
    paths = sorted(sources)
    files = [scan_source(path, dedent(sources[path])) for path in paths]
    table = build_symbol_table(files)
    return build_label_graph(table, paths)


def _edges(graph) -> list[tuple[str, str, str, str]]:
    return [(link.source_id, link.target_id, link.type, link.via) for link in graph.links]


def test_existing_targets_link_and_missing_targets_are_reported() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                jump chapter1
                jump missing
            label chapter1:
                return
            """
        }
    )
    assert _edges(graph) == [("start", "chapter1", "explicit", "jump")]
    assert graph.links[0].id == "rlink-0"
    unresolved = [d for d in graph.diagnostics if d.code == codes.UNRESOLVED_TARGET]
    assert len(unresolved) == 1
    assert unresolved[0].context["target"] == "missing"
    assert unresolved[0].line == 3
    assert graph.invalid_jumps == {"game/script.rpy": ["missing"]}


def test_fallthrough_links_to_the_next_label_only() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
            label middle:
                "Text"
            label ending:
                "Last words"
            """
        }
    )
    assert _edges(graph) == [
        ("start", "middle", "implicit", "fallthrough"),
        ("middle", "ending", "implicit", "fallthrough"),
    ]
    assert graph.is_terminal("ending")


def test_call_and_return_end_a_label() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                call helper
            label next_part:
                return
            label helper:
                return
            """
        }
    )
    assert _edges(graph) == [("start", "helper", "explicit", "call")]


def test_trailing_declarations_do_not_hide_a_final_jump() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                jump chapter1
                define flag = True
            label chapter1:
                return
            """
        }
    )
    assert _edges(graph) == [("start", "chapter1", "explicit", "jump")]


def test_jump_to_named_menu_resolves_to_its_label() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                menu choice_point:
                    "Go":
                        jump ending
            label ending:
                jump choice_point
            """
        }
    )
    from_ending = [link.target_id for link in graph.links if link.source_id == "ending"]
    assert from_ending == ["start"]
    assert "choice_point" not in graph.node_ids


def test_dynamic_jump_is_informational_and_unlinked() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                jump expression "chapter1"
            label chapter1:
                jump expression route_name
            """
        }
    )
    assert _edges(graph) == [("start", "chapter1", "explicit", "jump")]
    dynamic = [d for d in graph.diagnostics if d.code == codes.DYNAMIC_JUMP]
    assert len(dynamic) == 1
    assert dynamic[0].severity == "INFO"
    assert not any(d.code == codes.UNRESOLVED_TARGET for d in graph.diagnostics)


def test_block_graph_classifies_files() -> None:
    graph = _make_graph(
        {
            "game/a.rpy": """\
            label start:
                jump chapter1
            """,
            "game/b.rpy": """\
            label chapter1:
                menu:
                    "Finish":
                        return
            """,
        }
    )
    assert graph.block_links == [BlockLink("game/a.rpy", "game/b.rpy", "chapter1")]
    assert graph.root_block_ids == {"game/a.rpy"}
    assert graph.leaf_block_ids == {"game/b.rpy"}
    assert graph.branching_block_ids == {"game/b.rpy"}


def test_repeated_jumps_to_one_target_are_distinct_links() -> None:
    graph = _make_graph(
        {
            "game/script.rpy": """\
            label start:
                jump b
                jump b
            label b:
                return
            """
        }
    )
    assert _edges(graph) == [("start", "b", "explicit", "jump"), ("start", "b", "explicit", "jump")]
    assert [link.id for link in graph.links] == ["rlink-0", "rlink-1"]
    assert len(graph.outgoing["start"]) == 2


def test_fallthrough_skips_a_losing_duplicate_in_another_file() -> None:
    graph = _make_graph(
        {
            "game/a.rpy": """\
            label dup:
                return
            """,
            "game/b.rpy": """\
            label x:
                "Runs off the end."
            label dup:
                return
            """,
        }
    )
    assert not any(link.source_id == "x" for link in graph.links)
    assert graph.is_terminal("x")
