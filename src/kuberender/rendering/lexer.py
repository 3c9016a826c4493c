#!/usr/bin/env python3
"""
KUBERENDER LEXER - Action Splitter (Phase 1.1)
----------------------------------------------
Splits raw template source into literal text and `{{ ... }}` actions,
applying the `{{-` / `-}}` whitespace trim markers, then breaks each
action into expression tokens for the parser.

Author: KubeRender Team
Date: 2026-01-16
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from kuberender.core.errors import TemplateSyntaxError

LEFT_DELIM = "{{"
RIGHT_DELIM = "}}"
_TRIM_CHARS = " \t\r\n"


@dataclass(frozen=True)
class Token:
    kind: str           # 'text' | 'action' | 'comment' for the template lexer
    value: str
    line: int
    pos: int = 0        # Offset inside the action, used for field chaining


class TemplateLexer:
    """
    Walks the source once, left to right. Quote-aware so that a `}}` inside
    a string literal does not close the action.
    """

    def __init__(self, name: str = "<inline>"):
        self.name = name

    def _line_of(self, source: str, offset: int) -> int:
        return source.count("\n", 0, offset) + 1

    def _find_action_end(self, source: str, start: int) -> int:
        """Returns the offset of the closing `}}`, skipping quoted strings and comments."""
        i = start
        # Comments may contain anything, including quotes
        probe = i
        while probe < len(source) and source[probe] in _TRIM_CHARS:
            probe += 1
        if source.startswith("/*", probe):
            close = source.find("*/", probe + 2)
            if close == -1:
                return -1
            i = close + 2

        quote: Optional[str] = None
        escaped = False
        while i < len(source):
            char = source[i]
            if quote:
                if escaped:
                    escaped = False
                elif char == "\\" and quote == '"':
                    escaped = True
                elif char == quote:
                    quote = None
            elif char in ('"', '`'):
                quote = char
            elif source.startswith(RIGHT_DELIM, i):
                return i
            i += 1
        return -1

    def tokenize(self, source: str) -> List[Token]:
        tokens: List[Token] = []
        pos = 0
        trim_next = False

        while True:
            start = source.find(LEFT_DELIM, pos)
            text = source[pos:] if start == -1 else source[pos:start]

            if trim_next:
                text = text.lstrip(_TRIM_CHARS)
                trim_next = False

            if start == -1:
                if text:
                    tokens.append(Token("text", text, self._line_of(source, pos)))
                break

            # `{{- ` trims trailing whitespace of the preceding text
            inner_start = start + len(LEFT_DELIM)
            if source.startswith("-", inner_start) and inner_start + 1 < len(source) \
                    and source[inner_start + 1] in _TRIM_CHARS:
                text = text.rstrip(_TRIM_CHARS)
                inner_start += 1

            if text:
                tokens.append(Token("text", text, self._line_of(source, pos)))

            line = self._line_of(source, start)
            end = self._find_action_end(source, inner_start)
            if end == -1:
                raise TemplateSyntaxError("unclosed action", self.name, line)

            inner = source[inner_start:end]
            # ` -}}` trims leading whitespace of the following text
            if len(inner) >= 2 and inner[-1] == "-" and inner[-2] in _TRIM_CHARS:
                inner = inner[:-1]
                trim_next = True

            content = inner.strip()
            if content.startswith("/*"):
                if not content.endswith("*/"):
                    raise TemplateSyntaxError("unclosed comment", self.name, line)
                tokens.append(Token("comment", content, line))
            elif not content:
                raise TemplateSyntaxError("missing value for command", self.name, line)
            else:
                tokens.append(Token("action", content, line))

            pos = end + len(RIGHT_DELIM)

        return tokens


# --- EXPRESSION TOKENS ---

_EXPRESSION_PATTERN = re.compile(r"""
    (?P<ws>\s+)
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<raw>`[^`]*`)
  | (?P<declare>:=)
  | (?P<assign>=)
  | (?P<pipe>\|)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<comma>,)
  | (?P<variable>\$[A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
  | (?P<number>[-+]?(?:0[xX][0-9a-fA-F]+|\d+\.\d*(?:[eE][-+]?\d+)?|\.\d+|\d+(?:[eE][-+]?\d+)?))
  | (?P<field>(?:\.[A-Za-z_][A-Za-z0-9_]*)+|\.)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
""", re.VERBOSE)


def tokenize_expression(text: str, name: str = "<inline>", line: int = 0) -> List[Token]:
    """Breaks the content of one action into expression tokens."""
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        match = _EXPRESSION_PATTERN.match(text, pos)
        if not match:
            raise TemplateSyntaxError(f"unexpected character {text[pos]!r} in action", name, line)
        kind = match.lastgroup
        if kind != "ws":
            if kind == "raw":
                kind = "string"
            tokens.append(Token(kind, match.group(), line, pos))
        pos = match.end()
    return tokens
