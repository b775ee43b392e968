"""Request-time validation against serialized schemas.

Validation is a pure function of (schema, payload, components): nothing is
cached between calls and the payload is never coerced or modified, so one
validator can serve concurrent requests.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

REF_PREFIX = "#/components/schemas/"


class ValidationError(Exception):
    """A payload does not match its schema."""

    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"{path}: expected {expected}, got {actual}")

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "expected": self.expected, "actual": self.actual}


@dataclass(frozen=True)
class ValidationResult:
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate(
    schema: Mapping[str, Any],
    payload: Any,
    components: Mapping[str, Any] | None = None,
) -> ValidationResult:
    """Check ``payload`` against ``schema``; ``$ref`` targets are looked up in ``components``."""
    error = _check(schema, payload, "$", components or {}, frozenset())
    return ValidationResult(error=error)


class RequestValidator:
    """Validation step attached to a generated route registration."""

    def __init__(self, schema: Mapping[str, Any], components: Mapping[str, Any] | None = None):
        self.schema = schema
        self.components = components or {}

    def check(self, payload: Any) -> ValidationResult:
        return validate(self.schema, payload, self.components)

    def __call__(self, payload: Any) -> None:
        result = self.check(payload)
        if result.error is not None:
            raise result.error


# -- checks -------------------------------------------------------------------


def _check(schema, value, path: str, components, active: frozenset) -> ValidationError | None:
    if "$ref" in schema:
        ref = schema["$ref"]
        if not ref.startswith(REF_PREFIX) or ref[len(REF_PREFIX):] not in components:
            return ValidationError(path, f"resolvable reference {ref}", "missing schema")
        # Same reference and same value: already being checked further up.
        key = (ref, id(value))
        if key in active:
            return None
        return _check(components[ref[len(REF_PREFIX):]], value, path, components, active | {key})

    if "anyOf" in schema:
        for option in schema["anyOf"]:
            if _check(option, value, path, components, active) is None:
                return None
        expected = " | ".join(_describe(option) for option in schema["anyOf"])
        return ValidationError(path, expected, _type_of(value))

    if "enum" in schema:
        if not any(_same_value(value, allowed) for allowed in schema["enum"]):
            allowed = ", ".join(repr(v) for v in schema["enum"])
            return ValidationError(path, f"one of {allowed}", repr(value))

    expected_type = schema.get("type")
    if expected_type is not None and not _is_type(value, expected_type):
        return ValidationError(path, expected_type, _type_of(value))

    if isinstance(value, Mapping) and expected_type in (None, "object"):
        return _check_object(schema, value, path, components, active)
    if isinstance(value, (list, tuple)) and expected_type in (None, "array"):
        return _check_array(schema, value, path, components, active)
    return None


def _check_object(schema, value: Mapping, path: str, components, active) -> ValidationError | None:
    properties = schema.get("properties", {})
    for name in schema.get("required", []):
        if name not in value:
            return ValidationError(f"{path}.{name}", _describe(properties.get(name, {})), "missing")

    extra = schema.get("additionalProperties")
    for key, item in value.items():
        if key in properties:
            error = _check(properties[key], item, f"{path}.{key}", components, active)
        elif isinstance(extra, Mapping):
            error = _check(extra, item, f"{path}.{key}", components, active)
        elif extra is False:
            error = ValidationError(f"{path}.{key}", "no additional properties", _type_of(item))
        else:
            error = None
        if error is not None:
            return error
    return None


def _check_array(schema, value, path: str, components, active) -> ValidationError | None:
    prefix = schema.get("prefixItems")
    if prefix is not None:
        if len(value) != len(prefix):
            return ValidationError(path, f"array of {len(prefix)} items", f"array of {len(value)} items")
        for index, (item_schema, item) in enumerate(zip(prefix, value)):
            error = _check(item_schema, item, f"{path}[{index}]", components, active)
            if error is not None:
                return error
    elif "items" in schema:
        for index, item in enumerate(value):
            error = _check(schema["items"], item, f"{path}[{index}]", components, active)
            if error is not None:
                return error

    if schema.get("uniqueItems"):
        seen: list[Any] = []
        for index, item in enumerate(value):
            if any(_same_value(item, other) for other in seen):
                return ValidationError(f"{path}[{index}]", "unique items", "duplicate item")
            seen.append(item)
    return None


def _is_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "null":
        return value is None
    if expected == "object":
        return isinstance(value, Mapping)
    if expected == "array":
        return isinstance(value, (list, tuple))
    return True


def _same_value(a: Any, b: Any) -> bool:
    # True == 1 in Python but not in JSON.
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def _type_of(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _describe(schema: Mapping[str, Any]) -> str:
    if "$ref" in schema:
        return schema["$ref"][len(REF_PREFIX):]
    if "anyOf" in schema:
        return " | ".join(_describe(option) for option in schema["anyOf"])
    if "enum" in schema:
        return "one of " + ", ".join(repr(v) for v in schema["enum"])
    return schema.get("type", "any")
