"""Resolved type handles.

A ``ResolvedType`` is what the rest of the pipeline sees of the analyser: a
classification, a way to reach child types, and an identity. Handles are
interned by the analyser, so two annotations that resolve to the same type
share one handle and ``is`` comparison is the memoization key.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from routes_to_openapi.errors import TypeResolutionError


class TypeKind(str, Enum):
    PRIMITIVE = "primitive"
    LITERAL = "literal"
    ENUM = "enum"
    ARRAY = "array"
    TUPLE = "tuple"
    MAPPING = "mapping"
    OBJECT = "object"
    UNION = "union"
    ALIAS = "alias"
    ANY = "any"
    UNSUPPORTED = "unsupported"


# Kinds that correspond to a declaration and get a component name.
NAMED_KINDS = frozenset({TypeKind.OBJECT, TypeKind.ENUM, TypeKind.ALIAS})


@dataclass(eq=False)
class Property:
    name: str
    type: "ResolvedType"
    optional: bool = False


@dataclass(eq=False)
class TypeChildren:
    """Child types of a handle. Which fields are used depends on the kind."""

    properties: list[Property] = field(default_factory=list)
    elements: list["ResolvedType"] = field(default_factory=list)
    value_type: "ResolvedType | None" = None
    alternatives: list["ResolvedType"] = field(default_factory=list)
    target: "ResolvedType | None" = None


class ResolvedType:
    """Opaque handle for a type as resolved at a declaration site."""

    def __init__(
        self,
        kind: TypeKind,
        text: str,
        *,
        name: str | None = None,
        qualname: str | None = None,
        primitive: str | None = None,
        fmt: str | None = None,
        values: tuple[Any, ...] = (),
        unique: bool = False,
        children: TypeChildren | None = None,
        loader: Callable[[], TypeChildren] | None = None,
    ):
        self.kind = kind
        self.text = text
        self.name = name
        self.qualname = qualname
        self.primitive = primitive
        self.format = fmt
        self.values = values
        self.unique = unique
        self._children = children
        self._loader = loader
        self._error: TypeResolutionError | None = None

    def __repr__(self) -> str:
        return f"<ResolvedType {self.kind.value} {self.text}>"

    def classify(self) -> TypeKind:
        return self.kind

    @property
    def named(self) -> bool:
        return self.kind in NAMED_KINDS and self.qualname is not None

    def children(self) -> TypeChildren:
        """Resolve child types, loading them on first use.

        A failed load is remembered so every later access raises the same error.
        """
        if self._error is not None:
            raise self._error
        if self._children is None:
            if self._loader is None:
                self._children = TypeChildren()
            else:
                try:
                    self._children = self._loader()
                except TypeResolutionError as exc:
                    self._error = exc
                    raise
        return self._children

    def properties(self) -> list[Property]:
        return self.children().properties

    def elements(self) -> list["ResolvedType"]:
        return self.children().elements

    def value_type(self) -> "ResolvedType | None":
        return self.children().value_type

    def alternatives(self) -> list["ResolvedType"]:
        return self.children().alternatives

    def target(self) -> "ResolvedType | None":
        return self.children().target

    def child_types(self) -> list["ResolvedType"]:
        kids = self.children()
        result = [p.type for p in kids.properties]
        result.extend(kids.elements)
        result.extend(kids.alternatives)
        for extra in (kids.value_type, kids.target):
            if extra is not None:
                result.append(extra)
        return result
