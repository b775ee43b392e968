"""Runtime support imported by handler modules and generated registration code."""

from routes_to_openapi.runtime.markers import (
    RouteMarker,
    delete,
    get,
    head,
    options,
    patch,
    post,
    put,
    route,
)
from routes_to_openapi.runtime.router import RegisteredRoute, RouteHost, Router
from routes_to_openapi.runtime.validation import (
    RequestValidator,
    ValidationError,
    ValidationResult,
    validate,
)

__all__ = [
    "RegisteredRoute",
    "RequestValidator",
    "RouteHost",
    "RouteMarker",
    "Router",
    "ValidationError",
    "ValidationResult",
    "delete",
    "get",
    "head",
    "options",
    "patch",
    "post",
    "put",
    "route",
    "validate",
]
