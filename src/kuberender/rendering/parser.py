#!/usr/bin/env python3
"""
KUBERENDER PARSER - Fragment Builder (Phase 1.2)
------------------------------------------------
Turns the lexer's token stream into an immutable TemplateFragment.
Control structures (if/with/range/define/block) are matched with their
`{{ end }}`; `{{ else if }}` chains become nested IfNodes.

Author: KubeRender Team
Date: 2026-01-16
"""

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from kuberender.core.errors import TemplateSyntaxError
from kuberender.rendering.lexer import TemplateLexer, Token, tokenize_expression
from kuberender.rendering.nodes import (
    ActionNode,
    Chain,
    Command,
    Field,
    Identifier,
    IfNode,
    Literal,
    Pipeline,
    RangeNode,
    TemplateCallNode,
    TemplateFragment,
    TextNode,
    Variable,
    WithNode,
)

_KEYWORDS = {"if", "else", "end", "range", "with", "define", "template", "block"}
_BRANCHING = {"if": IfNode, "with": WithNode, "range": RangeNode}
_CONSTANTS = {"true": True, "false": False, "nil": None}

# (keyword, remaining tokens, line) of the action that closed a list
Terminator = Tuple[str, List[Token], int]


class _Cursor:
    def __init__(self, tokens: Sequence[Token]):
        self.tokens = list(tokens)
        self.index = 0

    @property
    def done(self) -> bool:
        return self.index >= len(self.tokens)

    def peek(self) -> Optional[Token]:
        return None if self.done else self.tokens[self.index]

    def next(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token


class TemplateParser:
    """
    Single-use-per-call parser. State is reset on every `parse()` so one
    instance can parse many sources sequentially.
    """

    def __init__(self, name: str = "<inline>"):
        self.name = name
        self._tokens: List[Token] = []
        self._index = 0
        self._definitions: Dict[str, Tuple[Any, ...]] = {}

    def _error(self, message: str, line: int) -> TemplateSyntaxError:
        return TemplateSyntaxError(message, self.name, line)

    def parse(self, source: str) -> TemplateFragment:
        self._tokens = TemplateLexer(self.name).tokenize(source)
        self._index = 0
        self._definitions = {}

        nodes, _ = self._parse_list(stop=())
        return TemplateFragment(
            name=self.name,
            nodes=tuple(nodes),
            definitions=tuple(self._definitions.items()),
        )

    # --- STRUCTURE ---

    def _parse_list(self, stop: Sequence[str]) -> Tuple[List[Any], Optional[Terminator]]:
        nodes: List[Any] = []
        while self._index < len(self._tokens):
            token = self._tokens[self._index]
            self._index += 1

            if token.kind == "text":
                nodes.append(TextNode(token.value))
                continue
            if token.kind == "comment":
                continue

            expression = tokenize_expression(token.value, self.name, token.line)
            head = expression[0]
            keyword = head.value if head.kind == "ident" and head.value in _KEYWORDS else None
            rest = expression[1:]

            if keyword in ("end", "else"):
                if keyword not in stop:
                    raise self._error(f"unexpected {{{{{keyword}}}}}", token.line)
                return nodes, (keyword, rest, token.line)

            if keyword in _BRANCHING:
                nodes.append(self._parse_branching(keyword, rest, token.line))
            elif keyword == "define":
                if stop:
                    raise self._error("define is only allowed at the top level", token.line)
                name = self._parse_template_name(rest, token.line, "define")
                if len(rest) > 1:
                    raise self._error("unexpected tokens after define name", token.line)
                self._definitions[name] = self._parse_body_until_end(token.line)
            elif keyword == "block":
                name = self._parse_template_name(rest, token.line, "block")
                pipeline = self._parse_pipeline(rest[1:], token.line) if len(rest) > 1 else None
                self._definitions[name] = self._parse_body_until_end(token.line)
                nodes.append(TemplateCallNode(name, pipeline, token.line))
            elif keyword == "template":
                name = self._parse_template_name(rest, token.line, "template")
                pipeline = self._parse_pipeline(rest[1:], token.line) if len(rest) > 1 else None
                nodes.append(TemplateCallNode(name, pipeline, token.line))
            else:
                pipeline = self._parse_pipeline(expression, token.line, allow_declare=True)
                nodes.append(ActionNode(pipeline, token.line))

        if stop:
            raise self._error("unexpected end of template, missing {{end}}", self._last_line())
        return nodes, None

    def _last_line(self) -> int:
        return self._tokens[-1].line if self._tokens else 1

    def _parse_body_until_end(self, line: int) -> Tuple[Any, ...]:
        body, terminator = self._parse_list(stop=("end",))
        self._expect_bare_end(terminator)
        return tuple(body)

    def _expect_bare_end(self, terminator: Terminator) -> None:
        keyword, rest, line = terminator
        if rest:
            raise self._error(f"unexpected tokens after {{{{{keyword}}}}}", line)

    def _parse_branching(self, keyword: str, rest: List[Token], line: int) -> Any:
        node_type = _BRANCHING[keyword]
        pipeline = self._parse_pipeline(
            rest, line, allow_declare=True, max_variables=2 if keyword == "range" else 1
        )
        body, (term, term_rest, term_line) = self._parse_list(stop=("else", "end"))

        else_body: Tuple[Any, ...] = ()
        if term == "end":
            self._expect_bare_end((term, term_rest, term_line))
        elif term_rest:
            # `{{ else if ... }}` / `{{ else with ... }}` chains share the final end
            head = term_rest[0]
            if head.kind != "ident" or head.value != keyword or keyword == "range":
                raise self._error(f"unexpected tokens after {{{{else}}}}", term_line)
            else_body = (self._parse_branching(keyword, term_rest[1:], term_line),)
        else:
            else_nodes, terminator = self._parse_list(stop=("end",))
            self._expect_bare_end(terminator)
            else_body = tuple(else_nodes)

        return node_type(pipeline, tuple(body), else_body, line)

    def _parse_template_name(self, rest: List[Token], line: int, keyword: str) -> str:
        if not rest or rest[0].kind != "string":
            raise self._error(f"{keyword} requires a quoted template name", line)
        return self._decode_string(rest[0], line)

    # --- EXPRESSIONS ---

    def _parse_pipeline(self, tokens: List[Token], line: int,
                        allow_declare: bool = False, max_variables: int = 1) -> Pipeline:
        if not tokens:
            raise self._error("missing value for command", line)

        variables: Tuple[str, ...] = ()
        is_assign = False
        kinds = [t.kind for t in tokens[:4]]

        if allow_declare and kinds[:1] == ["variable"]:
            if kinds[1:2] in (["declare"], ["assign"]):
                variables = (tokens[0].value,)
                is_assign = tokens[1].kind == "assign"
                tokens = tokens[2:]
            elif kinds[1:4] == ["comma", "variable", "declare"]:
                variables = (tokens[0].value, tokens[2].value)
                tokens = tokens[4:]

        if len(variables) > max_variables:
            raise self._error("too many declarations in command", line)
        for name in variables:
            if "." in name:
                raise self._error(f"cannot declare field path '{name}'", line)
        if variables and not tokens:
            raise self._error("missing value for declaration", line)

        cursor = _Cursor(tokens)
        pipeline = self._parse_commands(cursor, line)
        if not cursor.done:
            raise self._error(f"unexpected {cursor.peek().value!r} in command", line)
        return Pipeline(pipeline.commands, variables, is_assign)

    def _parse_commands(self, cursor: _Cursor, line: int) -> Pipeline:
        commands: List[Command] = []
        while True:
            args = []
            while not cursor.done and cursor.peek().kind not in ("pipe", "rparen"):
                args.append(self._parse_operand(cursor, line))
            if not args:
                raise self._error("missing command in pipeline", line)
            commands.append(Command(tuple(args)))
            if not cursor.done and cursor.peek().kind == "pipe":
                cursor.next()
                continue
            return Pipeline(tuple(commands))

    def _parse_operand(self, cursor: _Cursor, line: int) -> Any:
        token = cursor.next()
        kind = token.kind

        if kind == "string":
            return Literal(self._decode_string(token, line))
        if kind == "number":
            return Literal(self._decode_number(token.value, line))
        if kind == "field":
            return Field(tuple(token.value.split(".")[1:]) if token.value != "." else ())
        if kind == "variable":
            name, *path = token.value.split(".")
            return Variable(name, tuple(path))
        if kind == "ident":
            if token.value in _CONSTANTS:
                return Literal(_CONSTANTS[token.value])
            return Identifier(token.value)
        if kind == "lparen":
            inner = self._parse_commands(cursor, line)
            if cursor.done or cursor.peek().kind != "rparen":
                raise self._error("unclosed left paren", line)
            closing = cursor.next()
            following = cursor.peek()
            # `(...).field` chains only when the field touches the paren
            if following is not None and following.kind == "field" and following.pos == closing.pos + 1:
                cursor.next()
                return Chain(inner, tuple(following.value.split(".")[1:]))
            return inner

        raise self._error(f"unexpected {token.value!r} in operand", line)

    def _decode_string(self, token: Token, line: int) -> str:
        raw = token.value
        if raw.startswith("`"):
            return raw[1:-1]
        try:
            return json.loads(raw)
        except ValueError:
            raise self._error(f"invalid string literal {raw}", line)

    def _decode_number(self, raw: str, line: int) -> Any:
        try:
            digits = raw.lstrip("+-")
            if digits[:2].lower() == "0x":
                return int(raw, 16)
            if any(c in raw for c in ".eE"):
                return float(raw)
            return int(raw)
        except ValueError:
            raise self._error(f"invalid number {raw}", line)


def parse_template(source: str, name: str = "<inline>") -> TemplateFragment:
    """Parses template source into a TemplateFragment."""
    return TemplateParser(name).parse(source)
