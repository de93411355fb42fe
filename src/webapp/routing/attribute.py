from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from webapp.domain.models import ContentType

ATTRIBUTE_NAME = "__route_attribute__"

ReturnTypeDecl = Union[str, type, Mapping[Any, Any], Any]

T = TypeVar("T")


@dataclass(frozen=True)
class RouteAttribute:
    """
    Explicit route documentation attached to a handler class or function.

    Fields left as ``None`` are "not set" so that a method-level attribute only
    overrides the class-level values it actually declares.

    return_type may be:
      - a type name ("User", "User[]") or a class / annotation (User, list[User])
      - a status map {200: User, 404: None} (None = generic object)

    responses is a ready-made OpenAPI responses map, used as-is.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    content_type: Optional[ContentType] = None
    tags: tuple[str, ...] = ()
    deprecated: Optional[bool] = None
    operation_id: Optional[str] = None
    return_type: Optional[ReturnTypeDecl] = None
    responses: Optional[Mapping[str, Any]] = None


def route_attribute(
    name: Optional[str] = None,
    description: Optional[str] = None,
    content_type: Optional[ContentType] = None,
    tags: tuple[str, ...] | list[str] = (),
    deprecated: Optional[bool] = None,
    operation_id: Optional[str] = None,
    return_type: Optional[ReturnTypeDecl] = None,
    responses: Optional[Mapping[str, Any]] = None,
) -> Callable[[T], T]:
    """Decorate a handler class or function with a RouteAttribute."""
    attr = RouteAttribute(
        name=name,
        description=description,
        content_type=content_type,
        tags=tuple(tags),
        deprecated=deprecated,
        operation_id=operation_id,
        return_type=return_type,
        responses={str(code): r for code, r in responses.items()} if responses else None,
    )

    def deco(target: T) -> T:
        fn = target.__func__ if isinstance(target, (staticmethod, classmethod)) else target
        setattr(fn, ATTRIBUTE_NAME, attr)
        return target

    return deco


def attribute_of(target: Any) -> RouteAttribute | None:
    """Attribute declared directly on ``target`` (classes do not inherit it)."""
    if target is None:
        return None
    if isinstance(target, type):
        found = target.__dict__.get(ATTRIBUTE_NAME)
    else:
        fn = getattr(target, "__func__", target)
        found = getattr(fn, ATTRIBUTE_NAME, None)
    return found if isinstance(found, RouteAttribute) else None
