"""Data models shared by the analyser and the route extractor."""

import ast
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from routes_to_openapi.analyzer.types import ResolvedType
from routes_to_openapi.schema.nodes import SchemaNode


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# Methods whose non-path request properties travel in the query string.
QUERY_METHODS = frozenset({HttpMethod.GET, HttpMethod.HEAD, HttpMethod.DELETE, HttpMethod.OPTIONS})


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.line:
            return f"{self.path}:{self.line}:{self.column}"
        return str(self.path)


class Diagnostic(BaseModel):
    """A problem found while loading the program."""

    severity: str  # error / warning
    message: str
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.location}: {self.severity}: {self.message}"


class DeclarationSite(BaseModel):
    """An annotation expression together with the module it is evaluated in."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    module: str
    node: ast.expr
    location: SourceLocation


class HandlerRef(BaseModel):
    """Where a handler is declared and how generated code can import it."""

    model_config = ConfigDict(frozen=True)

    module: str
    name: str
    location: SourceLocation
    exported: bool = True

    def __str__(self) -> str:
        return f"{self.module}.{self.name}"


class Route(BaseModel):
    """A discovered route declaration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: HttpMethod
    path: str
    handler: HandlerRef
    request_type: ResolvedType | None = Field(default=None, exclude=True)
    response_type: ResolvedType | None = Field(default=None, exclude=True)
    request_schema: SchemaNode | None = None
    response_schema: SchemaNode | None = None
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    status_code: int = 200
    deprecated: bool = False
    operation_id: str | None = None

    @property
    def label(self) -> str:
        return f"{self.method.value} {self.path}"
