from __future__ import annotations

import ast
import inspect
import logging
import textwrap
from typing import Any, Callable, Optional

from webapp.domain.types import qualified_name
from webapp.entities.mappable import EntityReflector

logger = logging.getLogger(__name__)

RESPONSE_WRAPPER = "HTTPResponse"


def _name_of_expr(node: ast.AST) -> str:
    # best-effort stringify for common cases
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_name_of_expr(node.value)}.{node.attr}"
    if isinstance(node, ast.Call):
        return _name_of_expr(node.func)
    if isinstance(node, ast.Subscript):
        return _name_of_expr(node.value)
    return node.__class__.__name__


def _safe_parse(source: str) -> ast.AST | None:
    try:
        return ast.parse(source)
    except (SyntaxError, ValueError):
        return None


def _parse_handler_source(source: str) -> ast.AST | None:
    source = textwrap.dedent(source)
    tree = _safe_parse(source)
    if tree is not None:
        return tree

    # lambdas: getsource returns whole lines, often mid-expression
    start = source.find("lambda")
    if start < 0:
        return None
    fragment = source[start:].rstrip()
    while fragment:
        tree = _safe_parse(fragment)
        if tree is not None:
            return tree
        fragment = fragment[:-1].rstrip()
    return None


def _body_argument(call: ast.Call) -> ast.AST | None:
    if len(call.args) >= 2:
        return call.args[1]
    for kw in call.keywords or []:
        if kw.arg == "body":
            return kw.value
    return None


def _hint_from_body(body: ast.AST) -> Optional[str]:
    if isinstance(body, ast.Call):
        return _name_of_expr(body.func)
    if isinstance(body, (ast.List, ast.Tuple)) and body.elts and isinstance(body.elts[0], ast.Call):
        return _name_of_expr(body.elts[0].func) + "[]"
    if isinstance(body, ast.ListComp) and isinstance(body.elt, ast.Call):
        return _name_of_expr(body.elt.func) + "[]"
    return None


def extract_return_hint_from_source(source: str) -> Optional[str]:
    """
    Find ``HTTPResponse(code, Body(...))`` / ``HTTPResponse(body=[Body(...)])`` in
    handler source and return "Body" / "Body[]". Textual heuristic only.
    """
    tree = _parse_handler_source(source)
    if tree is None:
        return None

    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        if _name_of_expr(node.func).split(".")[-1] != RESPONSE_WRAPPER:
            continue
        body = _body_argument(node)
        if body is None:
            continue
        hint = _hint_from_body(body)
        if hint:
            return hint
    return None


def _lookup_dotted(namespace: dict[str, Any], dotted: str) -> Any:
    head, *rest = dotted.split(".")
    obj = namespace.get(head)
    for part in rest:
        if obj is None:
            return None
        obj = getattr(obj, part, None)
    return obj


def resolve_hint(hint: str, func: Callable[..., Any], reflector: EntityReflector) -> str:
    """Qualify a scanned short name against the handler's module namespace."""
    is_array = hint.endswith("[]")
    name = hint[:-2] if is_array else hint
    suffix = "[]" if is_array else ""

    if reflector.is_entity(name):
        return name + suffix

    found = _lookup_dotted(getattr(func, "__globals__", {}) or {}, name)
    if isinstance(found, type):
        return qualified_name(found) + suffix

    module = getattr(func, "__module__", None)
    return (f"{module}.{name}" if module else name) + suffix


def scan_handler_return_type(func: Callable[..., Any], reflector: EntityReflector) -> Optional[str]:
    """Best effort: never raises, returns None when nothing useful is found."""
    try:
        source = inspect.getsource(func)
    except (OSError, TypeError) as e:
        logger.debug("source unavailable for %r: %s", func, e)
        return None

    try:
        hint = extract_return_hint_from_source(source)
        if hint is None:
            return None
        return resolve_hint(hint, func, reflector)
    except (ValueError, AttributeError, RecursionError) as e:
        logger.debug("source scan failed for %r: %s", func, e)
        return None
