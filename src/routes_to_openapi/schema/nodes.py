"""Canonical schema tree.

Every resolved type is converted into one of these nodes. Nodes never own
named schemas directly: shared or recursive shapes live in the registry and
are pointed at by ``ReferenceNode``, so the tree itself is always acyclic.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

REF_PREFIX = "#/components/schemas/"

PrimitiveType = Literal["string", "number", "integer", "boolean", "null"]


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class PrimitiveNode(_Node):
    """A scalar value, optionally restricted to an enumeration."""

    kind: Literal["primitive"] = "primitive"
    type: PrimitiveType
    format: str | None = None
    enum: tuple[Any, ...] | None = None


class PropertyNode(_Node):
    """A named member of an object schema."""

    schema_: "SchemaNode" = Field(alias="schema")
    required: bool = True

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ObjectNode(_Node):
    """Ordered properties, plus an optional schema for extra keys (mappings)."""

    kind: Literal["object"] = "object"
    properties: dict[str, PropertyNode] = Field(default_factory=dict)
    additional: "SchemaNode | None" = None


class ArrayNode(_Node):
    kind: Literal["array"] = "array"
    items: "SchemaNode | None" = None
    prefix_items: "tuple[SchemaNode, ...] | None" = None
    unique: bool = False


class UnionNode(_Node):
    kind: Literal["union"] = "union"
    alternatives: "tuple[SchemaNode, ...]"


class ReferenceNode(_Node):
    """Points at a named schema in the registry."""

    kind: Literal["reference"] = "reference"
    name: str


class AnyNode(_Node):
    kind: Literal["any"] = "any"


class UnknownNode(_Node):
    """Fallback for shapes outside the supported grammar."""

    kind: Literal["unknown"] = "unknown"
    type_text: str


SchemaNode = Annotated[
    Union[
        PrimitiveNode,
        ObjectNode,
        ArrayNode,
        UnionNode,
        ReferenceNode,
        AnyNode,
        UnknownNode,
    ],
    Field(discriminator="kind"),
]

for _model in (PropertyNode, ObjectNode, ArrayNode, UnionNode):
    _model.model_rebuild()


def required_names(node: ObjectNode) -> list[str]:
    return [name for name, prop in node.properties.items() if prop.required]


def to_json_schema(node: SchemaNode) -> dict[str, Any]:
    """Render a schema node as an OpenAPI 3.1 (JSON Schema 2020-12) schema object."""
    if isinstance(node, PrimitiveNode):
        schema: dict[str, Any] = {"type": node.type}
        if node.format:
            schema["format"] = node.format
        if node.enum is not None:
            schema["enum"] = list(node.enum)
        return schema

    if isinstance(node, ObjectNode):
        schema = {"type": "object"}
        if node.properties or node.additional is None:
            schema["properties"] = {
                name: to_json_schema(prop.schema_) for name, prop in node.properties.items()
            }
        required = required_names(node)
        if required:
            schema["required"] = required
        if node.additional is not None:
            schema["additionalProperties"] = to_json_schema(node.additional)
        return schema

    if isinstance(node, ArrayNode):
        schema = {"type": "array"}
        if node.prefix_items is not None:
            schema["prefixItems"] = [to_json_schema(item) for item in node.prefix_items]
            schema["minItems"] = len(node.prefix_items)
            schema["maxItems"] = len(node.prefix_items)
        elif node.items is not None:
            schema["items"] = to_json_schema(node.items)
        if node.unique:
            schema["uniqueItems"] = True
        return schema

    if isinstance(node, UnionNode):
        return {"anyOf": [to_json_schema(alt) for alt in node.alternatives]}

    if isinstance(node, ReferenceNode):
        return {"$ref": f"{REF_PREFIX}{node.name}"}

    if isinstance(node, UnknownNode):
        return {"x-unsupported-type": node.type_text}

    return {}
