import json

from rpyflow.services.analysis_service import analyze_project
from rpyflow.services.result_serializer import serialize_result


def _make_result():
    return analyze_project(
        {
            "game/script.rpy": (
                'define e = Character("Eileen")\n'
                "label start:\n"
                '    e "Hello."\n'
                "    jump chapter1\n"
                "label chapter1:\n"
                "    jump start\n"
            )
        }
    )


def test_payload_is_json_serializable() -> None:
    payload = serialize_result(_make_result())
    decoded = json.loads(json.dumps(payload))
    assert decoded["version"] == 1
    assert sorted(decoded["labels"]) == ["chapter1", "start"]
    assert decoded["characters"]["e"]["name"] == "Eileen"
    assert decoded["character_usage"] == {"e": 1}


def test_payload_describes_graph_and_routes() -> None:
    payload = serialize_result(_make_result())
    assert [link["id"] for link in payload["route_links"]] == ["rlink-0", "rlink-1"]
    assert payload["route_links"][0]["via"] == "jump"
    (route,) = payload["identified_routes"]
    assert route["label_ids"] == ["start", "chapter1"]
    assert route["truncated"] is True
    node_ids = [node["id"] for node in payload["label_nodes"]]
    assert node_ids == ["start", "chapter1"]
    assert set(payload["label_nodes"][0]["position"]) == {"x", "y"}
    assert payload["stats"]["labels"] == 2
