from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union

from webapp.http.request import Request
from webapp.http.response import HTTPResponse


class RouteInterface(Protocol):
    """A route controller: instantiated per request, then ``trigger`` is called."""

    def trigger(self, request: Request, matches: list[str]) -> HTTPResponse: ...


@dataclass(frozen=True)
class RouteClassHandler:
    cls: type

    @property
    def name(self) -> str:
        return self.cls.__qualname__

    def invoke(self, request: Request, matches: list[str]) -> HTTPResponse:
        return self.cls().trigger(request, matches)

    def target(self) -> Optional[Callable[..., Any]]:
        return getattr(self.cls, "trigger", None)

    def owner(self) -> Optional[type]:
        return self.cls

    def docstring(self) -> str:
        fn = self.target()
        doc = inspect.getdoc(fn) if fn is not None and fn.__doc__ else None
        return doc or (self.cls.__doc__ and inspect.cleandoc(self.cls.__doc__)) or ""


@dataclass(frozen=True)
class FunctionHandler:
    func: Callable[..., Any]

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))

    def invoke(self, request: Request, matches: list[str]) -> HTTPResponse:
        return self.func(request, matches)

    def target(self) -> Optional[Callable[..., Any]]:
        return self.func

    def owner(self) -> Optional[type]:
        return None

    def docstring(self) -> str:
        doc = getattr(self.func, "__doc__", None)
        return inspect.cleandoc(doc) if doc else ""


@dataclass(frozen=True)
class MethodHandler:
    cls: type
    method_name: str

    @property
    def name(self) -> str:
        return f"{self.cls.__qualname__}.{self.method_name}"

    def invoke(self, request: Request, matches: list[str]) -> HTTPResponse:
        return getattr(self.cls, self.method_name)(request, matches)

    def target(self) -> Optional[Callable[..., Any]]:
        return getattr(self.cls, self.method_name, None)

    def owner(self) -> Optional[type]:
        return self.cls

    def docstring(self) -> str:
        fn = self.target()
        doc = getattr(fn, "__doc__", None) if fn is not None else None
        return inspect.cleandoc(doc) if doc else ""


HandlerRef = Union[RouteClassHandler, FunctionHandler, MethodHandler]


def as_handler(obj: Any) -> HandlerRef:
    """
    Normalize what users register as a route handler:
      - a class with a ``trigger`` method
      - a plain function / lambda / bound callable
      - a ``(cls, "method_name")`` pair (static or class method)
    """
    if isinstance(obj, (RouteClassHandler, FunctionHandler, MethodHandler)):
        return obj
    if isinstance(obj, type):
        if not callable(getattr(obj, "trigger", None)):
            raise TypeError(f"{obj.__qualname__} has no trigger() method")
        return RouteClassHandler(obj)
    if isinstance(obj, tuple) and len(obj) == 2 and isinstance(obj[0], type) and isinstance(obj[1], str):
        cls, method_name = obj
        if not hasattr(cls, method_name):
            raise TypeError(f"{cls.__qualname__} has no method {method_name!r}")
        return MethodHandler(cls, method_name)
    if callable(obj):
        return FunctionHandler(obj)
    raise TypeError(f"unsupported route handler: {obj!r}")
