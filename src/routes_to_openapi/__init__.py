"""Generate an OpenAPI document and validated route registrations from annotated handlers."""

from routes_to_openapi.runtime import (
    RequestValidator,
    Router,
    ValidationError,
    delete,
    get,
    head,
    options,
    patch,
    post,
    put,
    route,
    validate,
)

__version__ = "0.1.0"

__all__ = [
    "RequestValidator",
    "Router",
    "ValidationError",
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
