from textwrap import dedent

import pytest

from rpyflow.core.palette import color_for_key
from rpyflow.data.config import AnalysisConfig
from rpyflow.domain import diagnostics as codes
from rpyflow.domain.symbols import SymbolLocation
from rpyflow.services.errors import DuplicateNameError, InvalidNameError, SymbolError
from rpyflow.services.scanner import scan_source
from rpyflow.services.symbol_table import build_symbol_table, is_valid_variable_name


def _make_table(sources: dict[str, str], config: AnalysisConfig | None = None):
    files = [scan_source(path, dedent(text)) for path, text in sorted(sources.items())]
    return build_symbol_table(files, config)


def test_duplicate_define_keeps_first_and_reports_once() -> None:
    table = _make_table(
        {
            "game/script.rpy": """\
            define score = 1
            define score = 2
            """
        }
    )
    assert list(table.variables) == ["score"]
    assert table.variables["score"].initial_value == "1"
    duplicates = [d for d in table.diagnostics if d.code in codes.DUPLICATE_NAME_CODES]
    assert len(duplicates) == 1
    assert duplicates[0].code == codes.DUPLICATE_VARIABLE
    assert duplicates[0].line == 2


def test_redeclaration_policy_last_replaces_the_label() -> None:
    sources = {
        "game/a.rpy": "label start:\n    return\n",
        "game/b.rpy": "label start:\n    return\n",
    }
    first = _make_table(sources)
    last = _make_table(sources, AnalysisConfig(redeclaration_policy="last"))
    assert first.labels["start"].block_id == "game/a.rpy"
    assert last.labels["start"].block_id == "game/b.rpy"
    assert [d.code for d in first.diagnostics] == [codes.DUPLICATE_LABEL]
    assert [d.code for d in last.diagnostics] == [codes.DUPLICATE_LABEL]


def test_characters_usage_and_dialogue_statistics() -> None:
    table = _make_table(
        {
            "game/script.rpy": """\
            define e = Character("Eileen")
            default e = 0
            label start:
                e "Hi there"
                e happy "Again"
                "Narration line"
                stranger "Unknown speaker"
            """
        }
    )
    eileen = table.characters["e"]
    assert eileen.name == "Eileen"
    assert eileen.color == color_for_key("e")
    assert "e" not in table.variables
    assert table.character_usage == {"e": 2}
    assert [line.line for line in table.dialogue_lines["game/script.rpy"]] == [4, 5]
    stats = table.dialogue_stats
    assert stats.words_by_speaker == {"e": 3, "narrator": 2, "stranger": 2}
    assert stats.total_words == 7
    assert stats.total_lines == 4


def test_add_variable_rejects_invalid_and_duplicate_names() -> None:
    table = _make_table({"game/script.rpy": 'define e = Character("Eileen")\n'})
    with pytest.raises(InvalidNameError):
        table.add_variable("1bad", "default", "0", block_id="game/variables.rpy")
    table.add_variable("ok_name", "default", "0", block_id="game/variables.rpy")
    with pytest.raises(DuplicateNameError):
        table.add_variable("ok_name", "define", "1", block_id="game/variables.rpy")
    with pytest.raises(DuplicateNameError):
        table.add_variable("e", "default", "0", block_id="game/variables.rpy")
    with pytest.raises(SymbolError):
        table.add_variable("other", "persistent", "0", block_id="game/variables.rpy")
    assert list(table.variables) == ["ok_name"]
    assert table.variables["ok_name"].kind == "default"


def test_variable_name_pattern() -> None:
    assert is_valid_variable_name("persistent.seen_intro")
    assert is_valid_variable_name("_hidden2")
    assert not is_valid_variable_name("1bad")
    assert not is_valid_variable_name("bad-name")
    assert not is_valid_variable_name("a..b")


def test_invalid_declared_variable_is_reported_not_registered() -> None:
    table = _make_table({"game/script.rpy": "define 1bad = 3\n"})
    assert table.variables == {}
    assert [d.code for d in table.diagnostics] == [codes.INVALID_NAME]


def test_images_and_audio_are_indexed_with_usage_counts() -> None:
    table = _make_table(
        {
            "game/script.rpy": """\
            image bg room = "bg_room.png"
            label start:
                scene bg room with fade
                show eileen happy at left
                play music "audio/theme.ogg" fadein 1.0
                voice "voice/line1.ogg"
            """
        }
    )
    room = table.images["bg room"]
    assert (room.block_id, room.line, room.usage_count) == ("game/script.rpy", 1, 1)
    shown = table.images["eileen happy"]
    assert shown.block_id is None
    assert shown.usage_count == 1
    assert table.audios["audio/theme.ogg"].channel == "music"
    assert table.audios["voice/line1.ogg"].channel == "voice"


def test_variable_usages_skip_definition_and_string_literals() -> None:
    table = _make_table(
        {
            "game/script.rpy": """\
            default score = 0
            label start:
                $ score += 1
                if score > 1:
                    "High"
                "score is not a usage"
            """
        }
    )
    assert table.variable_usages["score"] == [
        SymbolLocation(block_id="game/script.rpy", line=3),
        SymbolLocation(block_id="game/script.rpy", line=4),
    ]


def test_named_menu_registers_menu_label_owned_by_its_label() -> None:
    table = _make_table(
        {
            "game/script.rpy": """\
            label start:
                menu crossroads:
                    "Go":
                        return
            """
        }
    )
    menu = table.labels["crossroads"]
    assert menu.kind == "menu"
    assert menu.parent == "start"


def test_blocks_are_classified_by_content() -> None:
    table = _make_table(
        {
            "game/script.rpy": "label start:\n    return\n",
            "game/screens.rpy": 'screen main_menu():\n    text "Hi"\n',
            "game/options.rpy": 'define config.name = "Demo"\n',
            "game/variables.rpy": "default points = 0\n",
        }
    )
    assert table.story_block_ids == {"game/script.rpy", "game/variables.rpy"}
    assert table.screen_only_block_ids == {"game/screens.rpy"}
    assert table.config_block_ids == {"game/options.rpy"}
    assert table.first_labels == {"game/script.rpy": "start"}
    assert table.screens["main_menu"].parameters == "()"
    assert table.block_types["game/script.rpy"] == {"label"}
