"""Indentation-aware scanner that turns script text into statements."""
from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Sequence

from rpyflow.domain import diagnostics as codes
from rpyflow.domain.diagnostics import Diagnostic, warn
from rpyflow.domain.statements import (
    BlockStatement,
    CharacterStatement,
    ConditionalStatement,
    DialogueStatement,
    ImageStatement,
    JumpStatement,
    LabelStatement,
    MediaStatement,
    MenuChoice,
    MenuStatement,
    NarrationStatement,
    OpaqueStatement,
    PassStatement,
    PythonStatement,
    ReturnStatement,
    ScreenRefStatement,
    ScreenStatement,
    Statement,
    VariableStatement,
)

logger = logging.getLogger(__name__)

_TAB_SIZE = 4
_PROFILE_PREFIX = "# profile:"
_LABEL_NAME = r"\.?[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?"

RE_LABEL = re.compile(rf"^label\s+({_LABEL_NAME})\s*(\([^)]*\))?\s*(?:hide\s*)?:$")
RE_LABEL_ANY = re.compile(r"^label\b")
RE_MENU = re.compile(r"^menu(?:\s+([A-Za-z_]\w*))?\s*(\(.*\))?\s*:$")
RE_SCREEN_REF = re.compile(r"^(call|show|hide)\s+screen\s+([A-Za-z_]\w*)")
RE_JUMP_EXPRESSION = re.compile(r"^(jump|call)\s+expression\s+(.+)$")
RE_JUMP = re.compile(rf"^(jump|call)\s+({_LABEL_NAME})(.*)$")
RE_JUMP_ANY = re.compile(r"^(jump|call)\b")
RE_RETURN = re.compile(r"^return\b(.*)$")
RE_PASS = re.compile(r"^pass$")
RE_CONDITIONAL = re.compile(r"^(if|elif|while)\s+(.+?)\s*:$")
RE_ELSE = re.compile(r"^else\s*:$")
RE_CHARACTER = re.compile(
    r"^(define|default)\s+(?:-?\d+\s+)?([A-Za-z_]\w*)\s*=\s*Character\s*\((.*)\)\s*$"
)
RE_VARIABLE = re.compile(r"^(define|default)\s+(?:-?\d+\s+)?([\w.]+)\s*=\s*(.+)$")
RE_SCREEN = re.compile(r"^screen\s+([A-Za-z_]\w*)\s*(\(.*\))?\s*:$")
RE_IMAGE = re.compile(r"^image\s+([\w ]+?)\s*(?:=\s*(.+)|:)$")
RE_PLAY = re.compile(r"^(play|queue)\s+([A-Za-z_]\w*)\s+(.+)$")
RE_VOICE = re.compile(r"^voice\s+(.+)$")
RE_STOP = re.compile(r"^stop\s+([A-Za-z_]\w*)(.*)$")
RE_VISUAL = re.compile(r"^(scene|show|hide)\b\s*(.*?)\s*(:?)$")
RE_WITH = re.compile(r"^with\s+(.+)$")
RE_PYTHON_BLOCK = re.compile(r"^(?:init\s+(?:-?\d+\s+)?)?python\b[^:]*:$")
RE_PYTHON_LINE = re.compile(r"^\$\s*(.*)$")
RE_RAW_BLOCK = re.compile(r"^(transform|style|translate|layeredimage|testcase)\b.*:$")
RE_NARRATION = re.compile(r"^(?:\"|')")
RE_DIALOGUE = re.compile(r"^([A-Za-z_]\w*)((?:\s+[@\w\-]+)*?)\s+(?=[\"'])")
RE_COMPOUND = re.compile(r":$")
RE_MENU_CHOICE = re.compile(
    r"^(?:\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')\s*(?:\([^)]*\)\s*)?(?:if\s+(.+?))?\s*:$"
)
RE_CALL_SUFFIX = re.compile(r"\s+from\s+\w+\s*$")

_IMAGE_CLAUSE_KEYWORDS = frozenset(
    {"with", "at", "behind", "onlayer", "zorder", "as", "transform", "expression"}
)

# Words that start a statement and never name a speaker.
_NON_SPEAKER_KEYWORDS = frozenset(
    {
        "jump",
        "call",
        "return",
        "scene",
        "show",
        "hide",
        "with",
        "play",
        "stop",
        "queue",
        "voice",
        "define",
        "default",
        "init",
        "python",
        "label",
        "menu",
        "if",
        "elif",
        "else",
        "while",
        "for",
        "pass",
        "image",
        "transform",
        "screen",
        "style",
        "translate",
        "pause",
        "window",
        "camera",
        "at",
        "add",
        "text",
        "textbutton",
        "key",
        "use",
        "set",
    }
)


@dataclass(slots=True)
class LogicalLine:
    """One statement line after comment stripping and continuation joining."""

    number: int
    indent: int
    text: str
    comment_above: str | None = None


@dataclass(slots=True)
class _Node:
    line: LogicalLine
    children: List["_Node"] = field(default_factory=list)

    def raw_lines(self) -> List[str]:
        lines: List[str] = []
        if not self.children:
            return lines
        base = self.children[0].line.indent
        stack: List[Iterator[_Node]] = [iter(self.children)]
        while stack:
            try:
                node = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            lines.append(" " * max(0, node.line.indent - base) + node.line.text)
            if node.children:
                stack.append(iter(node.children))
        return lines


@dataclass(slots=True)
class _LexState:
    quote: str | None = None
    depth: int = 0


@dataclass(slots=True)
class LabelScope:
    """A label together with the statements that execute as part of it."""

    name: str
    header: LabelStatement
    statements: List[Statement]
    next_label: str | None = None
    parent: str | None = None


@dataclass(slots=True)
class ScannedFile:
    path: str
    statements: List[Statement]
    scopes: List[LabelScope]
    diagnostics: List[Diagnostic]
    line_count: int


def scan_source(path: str, source: str) -> ScannedFile:
    """Scan one script file; problems are reported as diagnostics, never raised."""
    diagnostics: List[Diagnostic] = []
    physical = source.splitlines()
    lines = _logical_lines(physical, path, diagnostics)
    tree = _build_tree(lines, path, diagnostics)
    scanner = _StatementScanner(path, diagnostics)
    statements = scanner.scan_block(tree)
    scopes: List[LabelScope] = []
    _collect_scopes(statements, None, scopes, top_level=True)
    scopes.sort(key=lambda scope: scope.header.line)
    logger.debug(
        "Scanned %s: %d logical lines, %d labels, %d diagnostics",
        path,
        len(lines),
        len(scopes),
        len(diagnostics),
    )
    return ScannedFile(
        path=path,
        statements=statements,
        scopes=scopes,
        diagnostics=diagnostics,
        line_count=len(physical),
    )


def read_string_literal(text: str, start: int = 0) -> str | None:
    """Return the contents of the string literal starting at ``start``."""
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote, start):
            break
    else:
        return None
    index = start + len(quote)
    chars: List[str] = []
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text):
            following = text[index + 1]
            if following in ("\\", '"', "'"):
                chars.append(following)
            else:
                chars.append(char + following)
            index += 2
            continue
        if text.startswith(quote, index):
            return "".join(chars)
        chars.append(char)
        index += 1
    return "".join(chars)


def _strip_code(line: str, state: _LexState) -> str:
    """Drop the comment from one physical line while tracking strings and brackets."""
    out: List[str] = []
    index = 0
    while index < len(line):
        char = line[index]
        if state.quote:
            if char == "\\" and index + 1 < len(line):
                out.append(line[index : index + 2])
                index += 2
                continue
            if line.startswith(state.quote, index):
                out.append(state.quote)
                index += len(state.quote)
                state.quote = None
                continue
            out.append(char)
            index += 1
            continue
        if char == "#":
            break
        if char in ('"', "'", "`"):
            triple = line[index : index + 3]
            quote = triple if triple in ('"""', "'''") else char
            state.quote = quote
            out.append(quote)
            index += len(quote)
            continue
        if char in "([{":
            state.depth += 1
        elif char in ")]}":
            state.depth = max(0, state.depth - 1)
        out.append(char)
        index += 1
    return "".join(out)


def _logical_lines(physical: Sequence[str], path: str, diagnostics: List[Diagnostic]) -> List[LogicalLine]:
    lines: List[LogicalLine] = []
    comment: str | None = None
    index = 0
    while index < len(physical):
        raw = physical[index].expandtabs(_TAB_SIZE)
        stripped = raw.strip()
        if not stripped:
            comment = None
            index += 1
            continue
        if stripped.startswith("#"):
            comment = stripped
            index += 1
            continue
        start = index
        state = _LexState()
        parts = [_strip_code(raw, state).strip()]
        unterminated = False
        while state.quote or state.depth:
            # Open strings and brackets run on until end of file or the next top-level label.
            if index + 1 >= len(physical) or physical[index + 1].startswith("label "):
                unterminated = True
                break
            index += 1
            parts.append(_strip_code(physical[index].expandtabs(_TAB_SIZE), state).strip())
        if unterminated:
            diagnostics.append(
                warn(
                    codes.UNTERMINATED_LINE,
                    "Unterminated string or bracket.",
                    file=path,
                    line=start + 1,
                )
            )
        index += 1
        text = " ".join(part for part in parts if part)
        if not text:
            comment = None
            continue
        lines.append(
            LogicalLine(
                number=start + 1,
                indent=len(raw) - len(raw.lstrip()),
                text=text,
                comment_above=comment,
            )
        )
        comment = None
    return lines


def _build_tree(lines: Sequence[LogicalLine], path: str, diagnostics: List[Diagnostic]) -> List[_Node]:
    root = _Node(LogicalLine(number=0, indent=-1, text=""))
    stack: List[_Node] = [root]
    for line in lines:
        while len(stack) > 1 and stack[-1].line.indent >= line.indent:
            stack.pop()
        parent = stack[-1]
        if parent.children and parent.children[0].line.indent != line.indent:
            diagnostics.append(
                warn(
                    codes.INCONSISTENT_INDENT,
                    "Indentation does not match the enclosing block.",
                    file=path,
                    line=line.number,
                    expected=str(parent.children[0].line.indent),
                    found=str(line.indent),
                )
            )
        node = _Node(line)
        parent.children.append(node)
        if line.text.endswith(":"):
            stack.append(node)
    return root.children


_Handler = Callable[["_StatementScanner", "re.Match[str]", _Node], "Statement | None"]


class _StatementScanner:
    """Classifies block-tree nodes with an ordered, first-match-wins rule table."""

    def __init__(self, path: str, diagnostics: List[Diagnostic]) -> None:
        self._path = path
        self._diagnostics = diagnostics
        self._global_label: str | None = None

    def scan_block(self, nodes: Sequence[_Node]) -> List[Statement]:
        return [self.classify(node) for node in nodes]

    def classify(self, node: _Node) -> Statement:
        text = node.line.text
        for pattern, handler in _RULES:
            match = pattern.match(text) if pattern is not RE_COMPOUND else pattern.search(text)
            if match is None:
                continue
            statement = handler(self, match, node)
            if statement is not None:
                return statement
        return self._opaque(node)

    def _base(self, node: _Node) -> dict:
        return {"line": node.line.number, "indent": node.line.indent, "text": node.line.text}

    def _opaque(self, node: _Node) -> Statement:
        return OpaqueStatement(**self._base(node), raw_body=node.raw_lines())

    def _malformed(self, match: "re.Match[str]", node: _Node) -> Statement:
        keyword = node.line.text.split(None, 1)[0].rstrip(":")
        self._diagnostics.append(
            warn(
                codes.UNPARSEABLE_LINE,
                f"Malformed '{keyword}' statement.",
                file=self._path,
                line=node.line.number,
                statement=keyword,
            )
        )
        return self._opaque(node)

    def _qualify(self, name: str, node: _Node) -> str:
        if not name.startswith("."):
            return name
        if self._global_label is None:
            self._diagnostics.append(
                warn(
                    codes.UNPARSEABLE_LINE,
                    "Local label used outside of a global label.",
                    file=self._path,
                    line=node.line.number,
                    name=name,
                )
            )
            return name[1:]
        return f"{self._global_label}{name}"

    def _label(self, match: "re.Match[str]", node: _Node) -> Statement:
        raw_name = match.group(1)
        name = self._qualify(raw_name, node)
        if "." not in raw_name:
            self._global_label = name
        return LabelStatement(
            **self._base(node),
            name=name,
            parameters=(match.group(2) or "").strip(),
            column=node.line.indent + match.start(1) + 1,
            body=self.scan_block(node.children),
        )

    def _menu(self, match: "re.Match[str]", node: _Node) -> Statement:
        menu = MenuStatement(**self._base(node), name=match.group(1))
        for child in node.children:
            choice_match = RE_MENU_CHOICE.match(child.line.text)
            if choice_match is None:
                menu.body.append(self.classify(child))
                continue
            choice = MenuChoice(
                **self._base(child),
                caption=read_string_literal(child.line.text) or "",
                condition=choice_match.group(1),
                body=self.scan_block(child.children),
            )
            menu.choices.append(choice)
            menu.body.append(choice)
        return menu

    def _screen_ref(self, match: "re.Match[str]", node: _Node) -> Statement:
        return ScreenRefStatement(**self._base(node), verb=match.group(1), screen=match.group(2))

    def _jump_expression(self, match: "re.Match[str]", node: _Node) -> Statement:
        expression = RE_CALL_SUFFIX.sub("", match.group(2)).strip()
        literal = None
        if expression[:1] in ('"', "'"):
            literal = read_string_literal(expression)
        start = node.line.indent + match.start(2) + 1
        return JumpStatement(
            **self._base(node),
            target=literal or "",
            is_call=match.group(1) == "call",
            is_dynamic=True,
            expression=expression,
            column_start=start,
            column_end=start + len(expression),
        )

    def _jump(self, match: "re.Match[str]", node: _Node) -> Statement:
        start = node.line.indent + match.start(2) + 1
        return JumpStatement(
            **self._base(node),
            target=self._qualify(match.group(2), node),
            is_call=match.group(1) == "call",
            column_start=start,
            column_end=start + len(match.group(2)),
        )

    def _return(self, match: "re.Match[str]", node: _Node) -> Statement:
        return ReturnStatement(**self._base(node), value=match.group(1).strip())

    def _pass(self, match: "re.Match[str]", node: _Node) -> Statement:
        return PassStatement(**self._base(node))

    def _conditional(self, match: "re.Match[str]", node: _Node) -> Statement:
        return ConditionalStatement(
            **self._base(node),
            keyword=match.group(1),
            condition=match.group(2),
            body=self.scan_block(node.children),
        )

    def _conditional_else(self, match: "re.Match[str]", node: _Node) -> Statement:
        return ConditionalStatement(
            **self._base(node), keyword="else", body=self.scan_block(node.children)
        )

    def _character(self, match: "re.Match[str]", node: _Node) -> Statement:
        tag = match.group(2)
        parsed = _parse_character_args(match.group(3))
        if parsed is None:
            self._diagnostics.append(
                warn(
                    codes.UNPARSEABLE_LINE,
                    "Character arguments could not be parsed.",
                    file=self._path,
                    line=node.line.number,
                    tag=tag,
                )
            )
            name, color, options = None, None, {}
        else:
            name, color, options = parsed
        profile = None
        comment = node.line.comment_above
        if comment and comment.startswith(_PROFILE_PREFIX):
            profile = comment[len(_PROFILE_PREFIX) :].strip()
        return CharacterStatement(
            **self._base(node),
            tag=tag,
            name=name or tag,
            color=color,
            options=options,
            profile=profile,
        )

    def _variable(self, match: "re.Match[str]", node: _Node) -> Statement:
        return VariableStatement(
            **self._base(node),
            kind=match.group(1),
            name=match.group(2),
            value=match.group(3).strip(),
        )

    def _screen(self, match: "re.Match[str]", node: _Node) -> Statement:
        return ScreenStatement(
            **self._base(node),
            name=match.group(1),
            parameters=(match.group(2) or "").strip(),
            raw_body=node.raw_lines(),
        )

    def _image(self, match: "re.Match[str]", node: _Node) -> Statement:
        value = match.group(2)
        return ImageStatement(
            **self._base(node),
            name=" ".join(match.group(1).split()),
            value=value.strip() if value else None,
            raw_body=node.raw_lines(),
        )

    def _play(self, match: "re.Match[str]", node: _Node) -> Statement:
        return MediaStatement(
            **self._base(node), verb=match.group(1), channel=match.group(2), target=match.group(3).strip()
        )

    def _voice(self, match: "re.Match[str]", node: _Node) -> Statement:
        return MediaStatement(**self._base(node), verb="voice", channel="voice", target=match.group(1).strip())

    def _stop(self, match: "re.Match[str]", node: _Node) -> Statement:
        return MediaStatement(**self._base(node), verb="stop", channel=match.group(1))

    def _visual(self, match: "re.Match[str]", node: _Node) -> Statement:
        return MediaStatement(
            **self._base(node),
            verb=match.group(1),
            target=_image_name(match.group(2)),
            raw_body=node.raw_lines(),
        )

    def _with(self, match: "re.Match[str]", node: _Node) -> Statement:
        return MediaStatement(**self._base(node), verb="with", target=match.group(1).strip())

    def _python_block(self, match: "re.Match[str]", node: _Node) -> Statement:
        return PythonStatement(**self._base(node), raw_body=node.raw_lines())

    def _python_line(self, match: "re.Match[str]", node: _Node) -> Statement:
        return PythonStatement(**self._base(node), raw_body=[match.group(1)])

    def _raw_block(self, match: "re.Match[str]", node: _Node) -> Statement:
        return self._opaque(node)

    def _narration(self, match: "re.Match[str]", node: _Node) -> Statement:
        return NarrationStatement(**self._base(node), what=read_string_literal(node.line.text) or "")

    def _dialogue(self, match: "re.Match[str]", node: _Node) -> Statement | None:
        tag = match.group(1)
        if tag in _NON_SPEAKER_KEYWORDS:
            return None
        return DialogueStatement(
            **self._base(node),
            tag=tag,
            attributes=match.group(2).split(),
            what=read_string_literal(node.line.text, match.end()) or "",
        )

    def _block(self, match: "re.Match[str]", node: _Node) -> Statement:
        return BlockStatement(**self._base(node), header=node.line.text, body=self.scan_block(node.children))


_RULES: tuple[tuple["re.Pattern[str]", _Handler], ...] = (
    (RE_LABEL, _StatementScanner._label),
    (RE_LABEL_ANY, _StatementScanner._malformed),
    (RE_MENU, _StatementScanner._menu),
    (RE_SCREEN_REF, _StatementScanner._screen_ref),
    (RE_JUMP_EXPRESSION, _StatementScanner._jump_expression),
    (RE_JUMP, _StatementScanner._jump),
    (RE_JUMP_ANY, _StatementScanner._malformed),
    (RE_RETURN, _StatementScanner._return),
    (RE_PASS, _StatementScanner._pass),
    (RE_CONDITIONAL, _StatementScanner._conditional),
    (RE_ELSE, _StatementScanner._conditional_else),
    (RE_CHARACTER, _StatementScanner._character),
    (RE_VARIABLE, _StatementScanner._variable),
    (RE_SCREEN, _StatementScanner._screen),
    (RE_IMAGE, _StatementScanner._image),
    (RE_PLAY, _StatementScanner._play),
    (RE_VOICE, _StatementScanner._voice),
    (RE_STOP, _StatementScanner._stop),
    (RE_VISUAL, _StatementScanner._visual),
    (RE_WITH, _StatementScanner._with),
    (RE_PYTHON_BLOCK, _StatementScanner._python_block),
    (RE_PYTHON_LINE, _StatementScanner._python_line),
    (RE_RAW_BLOCK, _StatementScanner._raw_block),
    (RE_NARRATION, _StatementScanner._narration),
    (RE_DIALOGUE, _StatementScanner._dialogue),
    (RE_COMPOUND, _StatementScanner._block),
)


def _image_name(argument: str) -> str | None:
    words: List[str] = []
    for word in argument.split():
        if word in _IMAGE_CLAUSE_KEYWORDS:
            break
        words.append(word)
    if not words:
        return None
    return " ".join(words)


def _parse_character_args(args: str) -> tuple[str | None, str | None, dict[str, str]] | None:
    """Read name, color and literal options from ``Character(...)`` arguments."""
    source = f"Character({args})"
    try:
        call = ast.parse(source, mode="eval").body
    except (SyntaxError, ValueError):
        return None
    if not isinstance(call, ast.Call):
        return None

    name_node: ast.expr | None = call.args[0] if call.args else None
    color: str | None = None
    options: dict[str, str] = {}
    for keyword in call.keywords:
        if keyword.arg is None:
            continue
        if keyword.arg == "name":
            name_node = keyword.value
        elif keyword.arg == "color":
            value = _literal_string(keyword.value)
            color = value if value is not None else ast.get_source_segment(source, keyword.value)
        else:
            value = _literal_string(keyword.value)
            if value is None:
                value = ast.get_source_segment(source, keyword.value) or ""
            options[keyword.arg] = value

    name: str | None = None
    if name_node is not None:
        if isinstance(name_node, ast.Constant) and name_node.value is None:
            name = None
        else:
            name = _literal_string(name_node)
            if name is None:
                name = ast.get_source_segment(source, name_node)
    return name, color, options


def _literal_string(node: ast.expr) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    # _("Name") marks a translatable literal.
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in ("_", "__")
        and node.args
        and isinstance(node.args[0], ast.Constant)
        and isinstance(node.args[0].value, str)
    ):
        return node.args[0].value
    if isinstance(node, ast.Constant) and isinstance(node.value, (bool, int, float)):
        return str(node.value)
    return None


def _collect_scopes(
    statements: List[Statement],
    parent: str | None,
    scopes: List[LabelScope],
    *,
    top_level: bool,
) -> None:
    label_positions = [
        (index, statement)
        for index, statement in enumerate(statements)
        if isinstance(statement, LabelStatement)
    ]
    for position, (index, label) in enumerate(label_positions):
        following = label_positions[position + 1] if position + 1 < len(label_positions) else None
        body = list(label.body)
        if top_level:
            end = following[0] if following else len(statements)
            body.extend(statements[index + 1 : end])
        scopes.append(
            LabelScope(
                name=label.name,
                header=label,
                statements=body,
                next_label=following[1].name if following else None,
                parent=parent,
            )
        )
        _collect_scopes(label.body, label.name, scopes, top_level=False)
    for statement in statements:
        if isinstance(statement, LabelStatement):
            continue
        nested = statement.children()
        if nested:
            _collect_scopes(nested, parent, scopes, top_level=False)
