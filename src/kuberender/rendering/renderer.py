#!/usr/bin/env python3
"""
KUBERENDER TEMPLATE RENDERER - The Evaluator (Phase 2)
------------------------------------------------------
Applies a ValueNode to a parsed TemplateFragment and produces manifest
text. The renderer itself holds only immutable collaborators (helper
registry, function table); everything that changes during a render lives
in a per-invocation _RenderState, so one renderer can serve many threads.

Author: KubeRender Team
Date: 2026-01-16
"""

import posixpath
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from kuberender.core.errors import (
    RenderError,
    TemplateExecutionError,
    UndefinedReferenceError,
    UnknownFunctionError,
    UnknownHelperError,
)
from kuberender.core.models import MissingValue, is_truthy, value_kind
from kuberender.rendering.functions import LENIENT_FUNCTIONS, builtin_functions, format_value
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
from kuberender.rendering.parser import parse_template
from kuberender.rendering.registry import HelperRegistry

_NO_VALUE = object()


class _RenderState:
    """Variable scopes and include depth for one render invocation."""

    def __init__(self, template: str, root: Any, depth: int = 0,
                 local_helpers: Optional[Mapping[str, Tuple[Any, ...]]] = None):
        self.template = template
        self.depth = depth
        self.local_helpers = dict(local_helpers or {})
        self.scopes: List[Dict[str, Any]] = [{"$": root}]

    def push(self) -> None:
        self.scopes.append({})

    def pop(self) -> None:
        self.scopes.pop()

    def declare(self, name: str, value: Any) -> None:
        self.scopes[-1][name] = value

    def assign(self, name: str, value: Any) -> None:
        for scope in reversed(self.scopes):
            if name in scope:
                scope[name] = value
                return
        raise TemplateExecutionError(f"undefined variable: {name}")

    def lookup(self, name: str) -> Any:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        raise TemplateExecutionError(f"undefined variable: {name}")


class TemplateRenderer:
    """
    Evaluates TemplateFragments. Helpers are resolved through the registry
    given at construction, falling back to the `define` blocks of the
    fragment being rendered.
    """

    MAX_INCLUDE_DEPTH = 100

    def __init__(self, registry: Optional[HelperRegistry] = None,
                 functions: Optional[Mapping[str, Callable[..., Any]]] = None):
        self.registry = registry if registry is not None else HelperRegistry()
        self.functions: Dict[str, Callable[..., Any]] = builtin_functions()
        if functions:
            self.functions.update(functions)

    def render(self, fragment: TemplateFragment, values: Any,
               context: Optional[Mapping[str, Any]] = None) -> str:
        """
        Renders `fragment` with `values` bound to `.Values`. `context`
        supplies the other top-level objects (Release, Chart, Capabilities).
        """
        root: Dict[str, Any] = dict(context or {})
        root["Values"] = values
        root["Template"] = {
            "Name": fragment.name,
            "BasePath": posixpath.dirname(fragment.name),
        }

        state = _RenderState(fragment.name, root, local_helpers=fragment.helpers)
        out: List[str] = []
        self._render_nodes(fragment.nodes, root, state, out)
        return "".join(out)

    def render_string(self, source: str, values: Any, name: str = "<inline>",
                      context: Optional[Mapping[str, Any]] = None) -> str:
        return self.render(parse_template(source, name), values, context)

    # --- NODE WALK ---

    def _render_nodes(self, nodes: Sequence[Any], dot: Any, state: _RenderState, out: List[str]) -> None:
        for node in nodes:
            if isinstance(node, TextNode):
                out.append(node.text)
                continue
            try:
                self._render_node(node, dot, state, out)
            except RenderError as e:
                raise e.locate(state.template, node.line)

    def _render_node(self, node: Any, dot: Any, state: _RenderState, out: List[str]) -> None:
        if isinstance(node, ActionNode):
            value = self._eval_pipeline(node.pipeline, dot, state)
            if not node.pipeline.variables:
                out.append(format_value(value))

        elif isinstance(node, IfNode):
            state.push()
            try:
                condition = self._eval_pipeline(node.condition, dot, state)
                branch = node.body if is_truthy(condition) else node.else_body
                self._render_nodes(branch, dot, state, out)
            finally:
                state.pop()

        elif isinstance(node, WithNode):
            state.push()
            try:
                value = self._eval_pipeline(node.pipeline, dot, state)
                if is_truthy(value):
                    self._render_nodes(node.body, value, state, out)
                else:
                    self._render_nodes(node.else_body, dot, state, out)
            finally:
                state.pop()

        elif isinstance(node, RangeNode):
            self._render_range(node, dot, state, out)

        elif isinstance(node, TemplateCallNode):
            target = self._eval_pipeline(node.pipeline, dot, state) if node.pipeline else None
            out.append(self._include(node.name, target, state))

        else:
            raise TemplateExecutionError(f"unknown node {type(node).__name__}")

    def _render_range(self, node: RangeNode, dot: Any, state: _RenderState, out: List[str]) -> None:
        state.push()
        try:
            collection = self._eval_commands(node.pipeline.commands, dot, state)
            items = self._range_items(collection)
            if not items:
                self._render_nodes(node.else_body, dot, state, out)
                return

            names = node.pipeline.variables
            for key, element in items:
                state.push()
                try:
                    if len(names) == 1:
                        state.declare(names[0], element)
                    elif len(names) == 2:
                        state.declare(names[0], key)
                        state.declare(names[1], element)
                    self._render_nodes(node.body, element, state, out)
                finally:
                    state.pop()
        finally:
            state.pop()

    def _range_items(self, collection: Any) -> List[Tuple[Any, Any]]:
        if collection is None or isinstance(collection, MissingValue):
            return []
        if isinstance(collection, Mapping):
            return [(k, collection[k]) for k in sorted(collection, key=str)]
        if isinstance(collection, (list, tuple)):
            return list(enumerate(collection))
        if isinstance(collection, int) and not isinstance(collection, bool):
            return [(i, i) for i in range(collection)]
        raise TemplateExecutionError(f"range can't iterate over {value_kind(collection).value}")

    # --- EXPRESSIONS ---

    def _eval_pipeline(self, pipeline: Pipeline, dot: Any, state: _RenderState) -> Any:
        value = self._eval_commands(pipeline.commands, dot, state)
        for name in pipeline.variables:
            if pipeline.is_assign:
                state.assign(name, value)
            else:
                state.declare(name, value)
        return value

    def _eval_commands(self, commands: Sequence[Command], dot: Any, state: _RenderState) -> Any:
        value = _NO_VALUE
        for command in commands:
            value = self._eval_command(command, dot, state, value)
        return value

    def _eval_command(self, command: Command, dot: Any, state: _RenderState, piped: Any) -> Any:
        head, rest = command.args[0], command.args[1:]
        if isinstance(head, Identifier):
            return self._call(head.name, rest, dot, state, piped)
        if rest or piped is not _NO_VALUE:
            raise TemplateExecutionError("can't give argument to non-function")
        return self._eval_operand(head, dot, state)

    def _eval_operand(self, node: Any, dot: Any, state: _RenderState) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Field):
            return self._resolve(dot, node.path, node.reference)
        if isinstance(node, Variable):
            return self._resolve(state.lookup(node.name), node.path, node.reference)
        if isinstance(node, Identifier):
            return self._call(node.name, (), dot, state, _NO_VALUE)
        if isinstance(node, Pipeline):
            return self._eval_commands(node.commands, dot, state)
        if isinstance(node, Chain):
            base = self._eval_operand(node.operand, dot, state)
            return self._resolve(base, node.path, "(...)." + ".".join(node.path))
        raise TemplateExecutionError(f"unknown operand {type(node).__name__}")

    def _resolve(self, base: Any, path: Sequence[str], reference: str) -> Any:
        current = base
        for key in path:
            if current is None or isinstance(current, MissingValue):
                return MissingValue(reference)
            if not isinstance(current, Mapping):
                raise UndefinedReferenceError(
                    reference,
                    f"can't evaluate field {key} in {value_kind(current).value} at '{reference}'",
                )
            if key not in current:
                return MissingValue(reference)
            current = current[key]
        return current

    def _call(self, name: str, arg_nodes: Sequence[Any], dot: Any, state: _RenderState, piped: Any) -> Any:
        if name in ("and", "or"):
            return self._short_circuit(name, arg_nodes, dot, state, piped)

        args = [self._eval_operand(n, dot, state) for n in arg_nodes]
        if piped is not _NO_VALUE:
            args.append(piped)

        if name == "include":
            function = lambda helper, target=None: self._include(helper, target, state)
        elif name == "tpl":
            function = lambda text, target: self._tpl(text, target, state)
        else:
            function = self.functions.get(name)
            if function is None:
                raise UnknownFunctionError(name)

        if name not in LENIENT_FUNCTIONS:
            for arg in args:
                if isinstance(arg, MissingValue):
                    raise UndefinedReferenceError(arg.path)

        try:
            return function(*args)
        except RenderError:
            raise
        except (TypeError, ValueError, ArithmeticError, LookupError, AttributeError) as e:
            raise TemplateExecutionError(f"error calling {name}: {e}")

    def _short_circuit(self, name: str, arg_nodes: Sequence[Any], dot: Any,
                       state: _RenderState, piped: Any) -> Any:
        # and: first falsy operand or the last; or: first truthy operand or the last
        operands = list(arg_nodes)
        if piped is not _NO_VALUE:
            operands.append(Literal(piped))
        if not operands:
            raise TemplateExecutionError(f"{name} requires at least one argument")
        want_truthy = name == "or"
        value = None
        for operand in operands:
            value = self._eval_operand(operand, dot, state)
            if is_truthy(value) == want_truthy:
                return value
        return value

    # --- HELPERS ---

    def _helper_body(self, name: str, state: _RenderState) -> Tuple[str, Tuple[Any, ...]]:
        if name in self.registry:
            return self.registry.origin(name), self.registry.get(name)
        if name in state.local_helpers:
            return state.template, state.local_helpers[name]
        raise UnknownHelperError(name)

    def _include(self, name: Any, target: Any, state: _RenderState) -> str:
        if not isinstance(name, str):
            raise TemplateExecutionError("include requires a helper name string")
        if state.depth >= self.MAX_INCLUDE_DEPTH:
            raise TemplateExecutionError(
                f"include depth exceeded {self.MAX_INCLUDE_DEPTH} while calling '{name}'"
            )
        origin, body = self._helper_body(name, state)
        nested = _RenderState(origin, target, state.depth + 1, state.local_helpers)
        out: List[str] = []
        self._render_nodes(body, target, nested, out)
        return "".join(out)

    def _tpl(self, text: Any, target: Any, state: _RenderState) -> str:
        if state.depth >= self.MAX_INCLUDE_DEPTH:
            raise TemplateExecutionError(f"tpl depth exceeded {self.MAX_INCLUDE_DEPTH}")
        fragment = parse_template(format_value(text), name=f"{state.template}:tpl")
        helpers = dict(state.local_helpers)
        helpers.update(fragment.helpers)
        nested = _RenderState(fragment.name, target, state.depth + 1, helpers)
        out: List[str] = []
        self._render_nodes(fragment.nodes, target, nested, out)
        return "".join(out)
