"""Schema synthesizer: resolved types to canonical schema nodes.

Named types (classes, enums, aliases) are registered under a component name
before their members are expanded, so a member that refers back to the type
being built gets a reference node instead of recursing forever. Unnamed types
are memoized inline. Either way each distinct handle is expanded once per
registry.
"""

import logging
from typing import Any

from routes_to_openapi.analyzer.base import Route
from routes_to_openapi.analyzer.types import ResolvedType, TypeKind
from routes_to_openapi.errors import SchemaUnsupportedShape
from routes_to_openapi.schema.nodes import (
    AnyNode,
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    PropertyNode,
    ReferenceNode,
    SchemaNode,
    UnionNode,
    UnknownNode,
)
from routes_to_openapi.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class SchemaSynthesizer:
    """Builds schema nodes into a registry. Not thread-safe; one registry per run."""

    def __init__(self) -> None:
        self.warnings: list[SchemaUnsupportedShape] = []

    def synthesize(self, rtype: ResolvedType, registry: SchemaRegistry) -> SchemaNode:
        entry = registry.get(rtype)
        if entry is not None:
            return ReferenceNode(name=entry.name)

        if rtype.named:
            entry = registry.reserve(rtype)
            registry.complete(rtype, self._expand(rtype, registry))
            return ReferenceNode(name=entry.name)

        cached = registry.inline(rtype)
        if cached is not None:
            return cached
        node = self._expand(rtype, registry)
        registry.remember(rtype, node)
        return node

    def _expand(self, rtype: ResolvedType, registry: SchemaRegistry) -> SchemaNode:
        kind = rtype.classify()

        if kind is TypeKind.PRIMITIVE:
            return PrimitiveNode(type=rtype.primitive, format=rtype.format)

        if kind in (TypeKind.LITERAL, TypeKind.ENUM):
            return _enum_node(rtype.values)

        if kind is TypeKind.ARRAY:
            return ArrayNode(
                items=self.synthesize(rtype.elements()[0], registry),
                unique=rtype.unique,
            )

        if kind is TypeKind.TUPLE:
            return ArrayNode(
                prefix_items=tuple(self.synthesize(e, registry) for e in rtype.elements()),
            )

        if kind is TypeKind.MAPPING:
            return ObjectNode(additional=self.synthesize(rtype.value_type(), registry))

        if kind is TypeKind.OBJECT:
            properties = {}
            for prop in rtype.properties():
                properties[prop.name] = PropertyNode(
                    schema=self.synthesize(prop.type, registry),
                    required=not prop.optional,
                )
            return ObjectNode(properties=properties)

        if kind is TypeKind.UNION:
            return _union([self.synthesize(alt, registry) for alt in rtype.alternatives()])

        if kind is TypeKind.ALIAS:
            return self.synthesize(rtype.target(), registry)

        if kind is TypeKind.ANY:
            return AnyNode()

        warning = SchemaUnsupportedShape(rtype.text)
        logger.warning("%s", warning)
        self.warnings.append(warning)
        return UnknownNode(type_text=rtype.text)

    def bind_schemas(self, routes: list[Route], registry: SchemaRegistry) -> list[Route]:
        """Fill in each route's request and response schema, in route order."""
        for route in routes:
            if route.request_type is not None:
                route.request_schema = self.synthesize(route.request_type, registry)
            if route.response_type is not None:
                route.response_schema = self.synthesize(route.response_type, registry)
        logger.info("Synthesized %d component schemas for %d routes", len(registry), len(routes))
        return routes


def _union(alternatives: list[SchemaNode]) -> SchemaNode:
    unique: list[SchemaNode] = []
    for alt in alternatives:
        if alt not in unique:
            unique.append(alt)
    if len(unique) == 1:
        return unique[0]
    return UnionNode(alternatives=tuple(unique))


def _enum_node(values: tuple[Any, ...]) -> SchemaNode:
    """Group enumeration values by JSON type; mixed types become a union."""
    groups: dict[str, list[Any]] = {}
    for value in values:
        groups.setdefault(_json_type(value), []).append(value)
    if not groups:
        return PrimitiveNode(type="string")
    nodes = [PrimitiveNode(type=t, enum=tuple(vs)) for t, vs in groups.items()]
    return nodes[0] if len(nodes) == 1 else UnionNode(alternatives=tuple(nodes))


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    return "string"
