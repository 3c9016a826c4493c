#!/usr/bin/env python3
"""
KUBERENDER TEMPLATED VALUES
---------------------------
Values files named `*.j2.yaml` are Jinja templates. They are rendered
against a flat context (cluster DNS names, regions, account ids) before
being read as an ordinary values layer.

Author: KubeRender Team
Date: 2026-01-16
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from jinja2.exceptions import TemplateError, TemplateNotFound, UndefinedError

from kuberender.core.errors import UndefinedReferenceError, ValuesFileError
from kuberender.values.store import load_values_file, merge, parse_set_values

logger = logging.getLogger("kuberender.values")

TEMPLATE_SUFFIX = ".j2"

_UNDEFINED_NAME = re.compile(r"'(?P<name>[^']+)' is undefined")


def is_values_template(path: Union[str, Path]) -> bool:
    """True for `nginx-ingress.j2.yaml`, `values.j2` and the like."""
    return TEMPLATE_SUFFIX in Path(path).suffixes


def setup_filters(env: Environment) -> Environment:
    env.filters["quote"] = lambda value: '"' + str(value).replace('"', '\\"') + '"'
    return env


def _environment(directory: Path) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(directory)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    return setup_filters(env)


def render_values_template(path: Union[str, Path], context: Optional[Mapping[str, Any]] = None) -> str:
    """
    Renders one templated values file to YAML text.

    Raises:
        UndefinedReferenceError: the template uses a name the context lacks.
        ValuesFileError: the file is missing or is not a valid template.
    """
    file_path = Path(path)
    try:
        template = _environment(file_path.parent).get_template(file_path.name)
        return template.render(**dict(context or {}))
    except UndefinedError as e:
        match = _UNDEFINED_NAME.search(str(e))
        name = match.group("name") if match else str(e)
        raise UndefinedReferenceError(name, f"undefined context variable '{name}' in {file_path}")
    except TemplateNotFound:
        raise ValuesFileError(f"cannot read values file {file_path}: not found")
    except TemplateError as e:
        raise ValuesFileError(f"invalid template {file_path}: {e}")


def load_values_template(path: Union[str, Path], context: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    logger.debug(f"Rendering values template {path}")
    return load_values_file(path, text=render_values_template(path, context))


def load_context(context_files: Iterable[Union[str, Path]] = (),
                 expressions: Iterable[str] = ()) -> Dict[str, Any]:
    """Builds the template context: context files in order, then `K=V` pairs."""
    layers = [load_values_file(context_file) for context_file in context_files]
    layers.append(parse_set_values(expressions))
    return merge(layers)
