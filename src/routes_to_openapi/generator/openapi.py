"""Assembles discovered routes and the schema registry into an OpenAPI document."""

import copy
import json
import logging
from collections import Counter
from typing import Any

import yaml

from routes_to_openapi.analyzer.base import QUERY_METHODS, Route
from routes_to_openapi.analyzer.routes import path_parameters
from routes_to_openapi.errors import AssemblyError, PipelineError
from routes_to_openapi.schema.nodes import ObjectNode, PropertyNode, to_json_schema
from routes_to_openapi.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.1.0"
JSON_MEDIA_TYPE = "application/json"

# Top-level keys the assembler owns; all other metadata is copied verbatim.
GENERATED_KEYS = ("openapi", "paths", "components")

VALIDATION_ERROR_SCHEMA = {
    "type": "object",
    "properties": {
        "path": {"type": "string"},
        "expected": {"type": "string"},
        "actual": {"type": "string"},
    },
    "required": ["path", "expected", "actual"],
}


class Document:
    """An assembled contract. Read-only: accessors return copies."""

    def __init__(self, data: dict[str, Any]):
        self._data = copy.deepcopy(data)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    @property
    def paths(self) -> dict[str, Any]:
        return copy.deepcopy(self._data["paths"])

    @property
    def schemas(self) -> dict[str, Any]:
        return copy.deepcopy(self._data["components"].get("schemas", {}))

    def operation(self, method: str, path: str) -> dict[str, Any] | None:
        op = self._data["paths"].get(path, {}).get(method.lower())
        return copy.deepcopy(op) if op is not None else None

    def dumps(self, fmt: str = "json") -> str:
        if fmt == "json":
            return json.dumps(self._data, indent=2, ensure_ascii=False) + "\n"
        if fmt == "yaml":
            return yaml.safe_dump(self._data, sort_keys=False, allow_unicode=True)
        raise ValueError(f"Unsupported document format: {fmt}")


def assemble(routes: list[Route], registry: SchemaRegistry, metadata: dict[str, Any]) -> Document:
    """Build the document. Raises PipelineError listing every AssemblyError."""
    ordered = sorted(routes, key=lambda r: (r.method.value, r.path))
    operation_ids = _operation_ids(ordered)

    errors: list[AssemblyError] = []
    paths: dict[str, dict[str, Any]] = {}
    for route, operation_id in zip(ordered, operation_ids):
        try:
            operation = _operation(route, registry, operation_id)
        except AssemblyError as e:
            errors.append(e)
            continue
        paths.setdefault(route.path, {})[route.method.value.lower()] = operation

    seen: dict[str, Route] = {}
    for route, operation_id in zip(ordered, operation_ids):
        if operation_id in seen:
            errors.append(AssemblyError(
                route.label, f"operationId '{operation_id}' is already used by {seen[operation_id].label}"
            ))
        else:
            seen[operation_id] = route

    if errors:
        raise PipelineError(errors)

    data: dict[str, Any] = {"openapi": OPENAPI_VERSION}
    for key, value in metadata.items():
        if key not in GENERATED_KEYS:
            data[key] = copy.deepcopy(value)
    data["paths"] = paths

    components = copy.deepcopy(metadata.get("components") or {})
    schemas = registry.components()
    if schemas:
        components["schemas"] = schemas
    data["components"] = components

    logger.info("Assembled %d operations and %d component schemas", len(ordered), len(schemas))
    return Document(data)


def _operation_ids(routes: list[Route]) -> list[str]:
    """Handler names, module-qualified where two handlers share a name."""
    handlers = {(r.handler.module, r.handler.name) for r in routes if not r.operation_id}
    counts = Counter(name for _, name in handlers)

    def base(route: Route) -> str:
        if counts[route.handler.name] > 1:
            return f"{route.handler.module}.{route.handler.name}"
        return route.handler.name

    # First mount of each handler keeps its plain id; later mounts get a free suffix.
    used = {r.operation_id for r in routes if r.operation_id} | {base(r) for r in routes if not r.operation_id}
    first: set[tuple[str, str]] = set()
    ids = []
    for route in routes:
        if route.operation_id:
            ids.append(route.operation_id)
            continue
        key = (route.handler.module, route.handler.name)
        if key not in first:
            first.add(key)
            ids.append(base(route))
            continue
        n = 2
        while f"{base(route)}_{n}" in used:
            n += 1
        candidate = f"{base(route)}_{n}"
        used.add(candidate)
        ids.append(candidate)
    return ids


def _operation(route: Route, registry: SchemaRegistry, operation_id: str) -> dict[str, Any]:
    operation: dict[str, Any] = {"operationId": operation_id}
    if route.summary:
        operation["summary"] = route.summary
    if route.description:
        operation["description"] = route.description
    if route.tags:
        operation["tags"] = list(route.tags)
    if route.deprecated:
        operation["deprecated"] = True

    parameters, body = _request(route, registry)
    if parameters:
        operation["parameters"] = parameters
    if body is not None:
        operation["requestBody"] = body

    success: dict[str, Any] = {"description": "Successful response"}
    if route.response_schema is not None:
        success["content"] = {JSON_MEDIA_TYPE: {"schema": to_json_schema(route.response_schema)}}
    responses = {str(route.status_code): success}
    if route.request_schema is not None:
        # A handler that itself answers 400 keeps that slot.
        responses["400" if "400" not in responses else "default"] = {
            "description": "Request validation failed",
            "content": {JSON_MEDIA_TYPE: {"schema": copy.deepcopy(VALIDATION_ERROR_SCHEMA)}},
        }
    operation["responses"] = responses
    return operation


def _request(route: Route, registry: SchemaRegistry) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
    """Split the request schema into path parameters, query parameters and a body."""
    names = path_parameters(route.path)
    schema = route.request_schema
    if schema is None:
        if names:
            raise AssemblyError(route.label, f"path parameter '{names[0]}' has no request type to bind to")
        return [], None

    in_query = route.method in QUERY_METHODS
    if not names and not in_query:
        return [], _body(schema)

    try:
        target = registry.deref(schema)
    except (KeyError, ValueError) as e:
        raise AssemblyError(route.label, f"request schema cannot be resolved: {e}") from None
    if not isinstance(target, ObjectNode):
        raise AssemblyError(
            route.label,
            "request type must be an object to carry path or query parameters",
        )

    missing = [n for n in names if n not in target.properties]
    if missing:
        raise AssemblyError(
            route.label,
            "path parameter(s) " + ", ".join(f"'{n}'" for n in missing) + " not declared on the request type",
        )

    parameters = [_parameter(name, "path", target.properties[name], required=True) for name in names]
    rest = {k: v for k, v in target.properties.items() if k not in names}
    if in_query:
        parameters.extend(_parameter(name, "query", prop, prop.required) for name, prop in rest.items())
        return parameters, None

    if not rest and target.additional is None:
        return parameters, None
    return parameters, _body(ObjectNode(properties=rest, additional=target.additional))


def _parameter(name: str, location: str, prop: PropertyNode, required: bool) -> dict[str, Any]:
    return {
        "name": name,
        "in": location,
        "required": required,
        "schema": to_json_schema(prop.schema_),
    }


def _body(schema) -> dict[str, Any]:
    return {
        "required": True,
        "content": {JSON_MEDIA_TYPE: {"schema": to_json_schema(schema)}},
    }
