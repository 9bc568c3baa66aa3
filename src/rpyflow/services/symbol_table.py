"""Global symbol tables built from scanned script files."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Sequence, Set

from rpyflow.core.palette import color_for_key
from rpyflow.core.types import RedeclarationPolicy, VariableKind
from rpyflow.data.config import AnalysisConfig
from rpyflow.domain import diagnostics as codes
from rpyflow.domain.diagnostics import Diagnostic, warn
from rpyflow.domain.statements import (
    CharacterStatement,
    DialogueStatement,
    ImageStatement,
    JumpStatement,
    LabelStatement,
    MediaStatement,
    MenuStatement,
    NarrationStatement,
    OpaqueStatement,
    PythonStatement,
    ScreenStatement,
    Statement,
    VariableStatement,
    walk,
)
from rpyflow.domain.symbols import (
    AudioSymbol,
    Character,
    DialogueLine,
    ImageSymbol,
    JumpLocation,
    Label,
    Screen,
    SymbolLocation,
    Variable,
)
from rpyflow.services.errors import DuplicateNameError, InvalidNameError, SymbolError
from rpyflow.services.scanner import LabelScope, ScannedFile

logger = logging.getLogger(__name__)

VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")
_VARIABLE_KINDS = ("define", "default")
_STRING_LITERAL = re.compile(r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'")
_IDENTIFIER = re.compile(r"[A-Za-z_][\w.]*")
_AUDIO_CHANNELS_DEFAULT = "sound"
NARRATOR = "narrator"


def is_valid_variable_name(name: str) -> bool:
    return bool(VARIABLE_NAME_PATTERN.match(name))


@dataclass(slots=True)
class DialogueStats:
    """Word counts over dialogue and narration."""

    total_words: int = 0
    total_lines: int = 0
    words_by_speaker: Dict[str, int] = field(default_factory=dict)
    words_by_block: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class SymbolTable:
    """Tables keyed by unique name, plus per-block indexes for the UI."""

    policy: RedeclarationPolicy = "first"
    labels: Dict[str, Label] = field(default_factory=dict)
    characters: Dict[str, Character] = field(default_factory=dict)
    variables: Dict[str, Variable] = field(default_factory=dict)
    screens: Dict[str, Screen] = field(default_factory=dict)
    images: Dict[str, ImageSymbol] = field(default_factory=dict)
    audios: Dict[str, AudioSymbol] = field(default_factory=dict)
    character_usage: Dict[str, int] = field(default_factory=dict)
    story_block_ids: Set[str] = field(default_factory=set)
    screen_only_block_ids: Set[str] = field(default_factory=set)
    config_block_ids: Set[str] = field(default_factory=set)
    first_labels: Dict[str, str] = field(default_factory=dict)
    jumps: Dict[str, List[JumpLocation]] = field(default_factory=dict)
    dialogue_lines: Dict[str, List[DialogueLine]] = field(default_factory=dict)
    variable_usages: Dict[str, List[SymbolLocation]] = field(default_factory=dict)
    block_types: Dict[str, Set[str]] = field(default_factory=dict)
    dialogue_stats: DialogueStats = field(default_factory=DialogueStats)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def add_variable(
        self,
        name: str,
        kind: VariableKind,
        initial_value: str,
        *,
        block_id: str,
        line: int = 0,
    ) -> Variable:
        """Add a variable on request; nothing is changed when it is rejected."""
        if not is_valid_variable_name(name):
            raise InvalidNameError(name)
        if kind not in _VARIABLE_KINDS:
            raise SymbolError(name, f"Unknown variable kind '{kind}'.")
        if name in self.variables or name in self.characters:
            raise DuplicateNameError(name)
        variable = Variable(
            name=name, kind=kind, initial_value=initial_value, block_id=block_id, line=line
        )
        self.variables[name] = variable
        return variable


def build_symbol_table(files: Sequence[ScannedFile], config: AnalysisConfig | None = None) -> SymbolTable:
    """Build global tables from every scanned file."""
    config = config or AnalysisConfig()
    table = SymbolTable(policy=config.redeclaration_policy)
    owners = {file.path: _statement_owners(file.scopes) for file in files}

    for file in files:
        _register_labels(table, file)
    for file in files:
        _register_named_menus(table, file, owners[file.path])
    for file in files:
        for statement in walk(file.statements, into_labels=True):
            if isinstance(statement, CharacterStatement):
                _register_character(table, file.path, statement)
            elif isinstance(statement, ScreenStatement):
                screen = Screen(
                    name=statement.name,
                    parameters=statement.parameters,
                    block_id=file.path,
                    line=statement.line,
                )
                _register_unique(table, table.screens, statement.name, screen, codes.DUPLICATE_SCREEN, "screen")
    for file in files:
        for statement in walk(file.statements, into_labels=True):
            if isinstance(statement, VariableStatement):
                _declare_variable(table, file.path, statement)

    table.character_usage = {tag: 0 for tag in table.characters}
    for file in files:
        _index_file(table, file, owners[file.path])
    _collect_variable_usages(table, files)
    _classify_blocks(table, files, config)
    logger.debug(
        "Symbol table: %d labels, %d characters, %d variables, %d screens",
        len(table.labels),
        len(table.characters),
        len(table.variables),
        len(table.screens),
    )
    return table


def _register_unique(table: SymbolTable, target: Dict, key: str, value: object, code: str, kind: str) -> None:
    existing = target.get(key)
    if existing is None:
        target[key] = value
        return
    table.diagnostics.append(
        warn(
            code,
            f"Duplicate {kind} '{key}'; previously defined at {existing.block_id}:{existing.line}.",
            file=getattr(value, "block_id", None),
            line=getattr(value, "line", None),
            name=key,
        )
    )
    if table.policy == "last":
        target[key] = value


def _register_labels(table: SymbolTable, file: ScannedFile) -> None:
    container = PurePosixPath(file.path).name or file.path
    for scope in file.scopes:
        label = Label(
            name=scope.name,
            block_id=file.path,
            line=scope.header.line,
            column=scope.header.column,
            kind="label",
            statements=scope.statements,
            container_name=container,
            parent=scope.parent,
            next_label=scope.next_label,
        )
        _register_unique(table, table.labels, scope.name, label, codes.DUPLICATE_LABEL, "label")


def _register_named_menus(table: SymbolTable, file: ScannedFile, owners: Dict[int, str]) -> None:
    container = PurePosixPath(file.path).name or file.path
    for statement in walk(file.statements, into_labels=True):
        if not isinstance(statement, MenuStatement) or not statement.name:
            continue
        if statement.name in table.labels:
            continue
        table.labels[statement.name] = Label(
            name=statement.name,
            block_id=file.path,
            line=statement.line,
            column=statement.indent + len("menu ") + 1,
            kind="menu",
            container_name=container,
            parent=owners.get(id(statement)),
        )


def _register_character(table: SymbolTable, block_id: str, statement: CharacterStatement) -> None:
    character = Character(
        tag=statement.tag,
        name=statement.name,
        color=statement.color or color_for_key(statement.tag),
        block_id=block_id,
        line=statement.line,
        profile=statement.profile,
        options=dict(statement.options),
    )
    _register_unique(table, table.characters, statement.tag, character, codes.DUPLICATE_CHARACTER, "character")


def _declare_variable(table: SymbolTable, block_id: str, statement: VariableStatement) -> None:
    if statement.name in table.characters:
        return
    if not is_valid_variable_name(statement.name):
        table.diagnostics.append(
            warn(
                codes.INVALID_NAME,
                f"'{statement.name}' is not a valid variable name.",
                file=block_id,
                line=statement.line,
                name=statement.name,
            )
        )
        return
    variable = Variable(
        name=statement.name,
        kind=statement.kind,
        initial_value=statement.value,
        block_id=block_id,
        line=statement.line,
    )
    _register_unique(table, table.variables, statement.name, variable, codes.DUPLICATE_VARIABLE, "variable")


def _statement_owners(scopes: Iterable[LabelScope]) -> Dict[int, str]:
    owners: Dict[int, str] = {}
    for scope in scopes:
        for statement in walk(scope.statements):
            owners[id(statement)] = scope.name
    return owners


def _index_file(table: SymbolTable, file: ScannedFile, owners: Dict[int, str]) -> None:
    block_id = file.path
    jumps = table.jumps.setdefault(block_id, [])
    types: Set[str] = set()
    stats = table.dialogue_stats
    for statement in walk(file.statements, into_labels=True):
        if isinstance(statement, LabelStatement):
            types.add("label")
        elif isinstance(statement, MenuStatement):
            types.add("menu")
        elif isinstance(statement, JumpStatement):
            types.add("jump")
            jumps.append(
                JumpLocation(
                    block_id=block_id,
                    target=statement.target or statement.expression or "",
                    type=statement.verb,
                    is_dynamic=statement.is_dynamic and not statement.target,
                    line=statement.line,
                    column_start=statement.column_start,
                    column_end=statement.column_end,
                    source_label=owners.get(id(statement)),
                )
            )
        elif isinstance(statement, PythonStatement):
            types.add("python")
        elif isinstance(statement, DialogueStatement):
            _count_words(stats, block_id, statement.tag, statement.what)
            if statement.tag in table.characters:
                types.add("dialogue")
                table.dialogue_lines.setdefault(block_id, []).append(
                    DialogueLine(line=statement.line, tag=statement.tag)
                )
                table.character_usage[statement.tag] += 1
        elif isinstance(statement, NarrationStatement):
            types.add("dialogue")
            _count_words(stats, block_id, NARRATOR, statement.what)
        elif isinstance(statement, ImageStatement):
            image = table.images.get(statement.name)
            if image is None:
                table.images[statement.name] = ImageSymbol(
                    name=statement.name, block_id=block_id, line=statement.line
                )
            elif image.block_id is None:
                image.block_id = block_id
                image.line = statement.line
        elif isinstance(statement, MediaStatement):
            _record_media(table, block_id, statement)
    if types:
        table.block_types[block_id] = types


def _count_words(stats: DialogueStats, block_id: str, speaker: str, what: str) -> None:
    words = len(what.split())
    stats.total_lines += 1
    stats.total_words += words
    stats.words_by_speaker[speaker] = stats.words_by_speaker.get(speaker, 0) + words
    stats.words_by_block[block_id] = stats.words_by_block.get(block_id, 0) + words


def _record_media(table: SymbolTable, block_id: str, statement: MediaStatement) -> None:
    if statement.verb in ("scene", "show") and statement.target:
        image = table.images.get(statement.target)
        if image is None:
            image = ImageSymbol(name=statement.target)
            table.images[statement.target] = image
        image.usage_count += 1
        return
    if statement.verb not in ("play", "queue", "voice") or not statement.target:
        return
    for path in _audio_paths(statement.target):
        audio = table.audios.get(path)
        if audio is None:
            audio = AudioSymbol(
                path=path,
                channel=statement.channel or _AUDIO_CHANNELS_DEFAULT,
                block_id=block_id,
                line=statement.line,
            )
            table.audios[path] = audio
        audio.usage_count += 1


def _audio_paths(argument: str) -> List[str]:
    paths = [match.group(0)[1:-1] for match in _STRING_LITERAL.finditer(argument)]
    if paths:
        return paths
    first = argument.split()[0] if argument.split() else ""
    identifier = _IDENTIFIER.match(first)
    return [identifier.group(0)] if identifier else []


def _code_lines(statement: Statement) -> List[str]:
    lines = [statement.text]
    if isinstance(statement, (PythonStatement, OpaqueStatement, ScreenStatement)):
        lines.extend(statement.raw_body)
    return lines


def _collect_variable_usages(table: SymbolTable, files: Sequence[ScannedFile]) -> None:
    if not table.variables:
        return
    names = set(table.variables)
    for file in files:
        for statement in walk(file.statements, into_labels=True):
            for code in _code_lines(statement):
                sanitized = _STRING_LITERAL.sub('""', code)
                for token in _IDENTIFIER.findall(sanitized):
                    for candidate in _token_prefixes(token):
                        if candidate in names:
                            _add_usage(table, candidate, file.path, statement.line)


def _token_prefixes(token: str) -> List[str]:
    parts = token.rstrip(".").split(".")
    return [".".join(parts[: index + 1]) for index in range(len(parts))]


def _add_usage(table: SymbolTable, name: str, block_id: str, line: int) -> None:
    variable = table.variables[name]
    if variable.block_id == block_id and variable.line == line:
        return
    usages = table.variable_usages.setdefault(name, [])
    if any(usage.block_id == block_id and usage.line == line for usage in usages):
        return
    usages.append(SymbolLocation(block_id=block_id, line=line))


def _classify_blocks(table: SymbolTable, files: Sequence[ScannedFile], config: AnalysisConfig) -> None:
    label_blocks = {label.block_id for label in table.labels.values() if label.kind == "label"}
    screen_blocks = {screen.block_id for screen in table.screens.values()}
    for file in files:
        for scope in file.scopes:
            if scope.parent is None:
                table.first_labels[file.path] = scope.name
                break
    story = set(label_blocks)
    story.update(file.path for file in files if file.path in config.story_support_files)
    table.story_block_ids = story
    table.screen_only_block_ids = screen_blocks - story
    table.config_block_ids = {
        file.path for file in files if file.path not in story and file.path not in screen_blocks
    }
