"""Route markers attached to handler functions.

At runtime the decorators only record metadata; the generator discovers them
statically by reading the source.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

MARKER_NAMES = frozenset({"route", "get", "post", "put", "patch", "delete", "head", "options"})


@dataclass(frozen=True)
class RouteMarker:
    method: str
    path: str
    summary: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    status_code: int = 200
    deprecated: bool = False
    operation_id: str | None = None


def route(
    method: str,
    path: str,
    *,
    summary: str | None = None,
    tags: Iterable[str] = (),
    status_code: int = 200,
    deprecated: bool = False,
    operation_id: str | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare ``method path`` as served by the decorated handler."""
    method = method.upper()
    if method not in HTTP_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")
    marker = RouteMarker(
        method=method,
        path=path,
        summary=summary,
        tags=tuple(tags),
        status_code=status_code,
        deprecated=deprecated,
        operation_id=operation_id,
    )

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn.__route__ = marker
        return fn

    return deco


def get(path: str, **kwargs: Any):
    return route("GET", path, **kwargs)


def post(path: str, **kwargs: Any):
    return route("POST", path, **kwargs)


def put(path: str, **kwargs: Any):
    return route("PUT", path, **kwargs)


def patch(path: str, **kwargs: Any):
    return route("PATCH", path, **kwargs)


def delete(path: str, **kwargs: Any):
    return route("DELETE", path, **kwargs)


def head(path: str, **kwargs: Any):
    return route("HEAD", path, **kwargs)


def options(path: str, **kwargs: Any):
    return route("OPTIONS", path, **kwargs)
