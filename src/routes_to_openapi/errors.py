"""Exception hierarchy for the generation pipeline.

Per-route problems (``ExtractionError`` subclasses) exclude a single route and
let the run continue. Everything else is fatal and aborts before any output
file is written.
"""


class RoutesToOpenApiError(Exception):
    """Base class for all generation errors."""


class ConfigError(RoutesToOpenApiError):
    """The configuration file is missing or invalid."""


class ProgramLoadError(RoutesToOpenApiError):
    """The program locator does not point at a loadable program."""


class CompileDiagnosticError(RoutesToOpenApiError):
    """The analysed program has error-severity diagnostics."""

    def __init__(self, diagnostics: list):
        self.diagnostics = diagnostics
        lines = "\n".join(f"  {d}" for d in diagnostics)
        super().__init__(f"Program has {len(diagnostics)} error(s):\n{lines}")


class ExtractionError(RoutesToOpenApiError):
    """A single route could not be extracted. Other routes are unaffected."""

    def __init__(self, message: str, location: str | None = None, route: str | None = None):
        self.message = message
        self.location = location
        self.route = route
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.location:
            parts.append(f"{self.location}:")
        if self.route:
            parts.append(f"{self.route}:")
        parts.append(self.message)
        return " ".join(parts)

    def for_route(self, route: str, location: str | None = None) -> "ExtractionError":
        """Return a copy of this error attributed to a route declaration."""
        return type(self)(self.message, location=location or self.location, route=route)


class TypeResolutionError(ExtractionError):
    """A declared type references something that cannot be resolved."""


class RouteDeclarationError(ExtractionError):
    """A route marker is malformed (bad method, non-literal path, ...)."""


class RouteConflictError(RoutesToOpenApiError):
    """Two declarations are bound to the same method and path."""

    def __init__(self, method: str, path: str, first: str, second: str):
        self.method = method
        self.path = path
        self.first = first
        self.second = second
        super().__init__(f"Duplicate route {method} {path}: declared at {first} and at {second}")


class SchemaUnsupportedShape(RoutesToOpenApiError):
    """Warning record for a type that degraded to an ``unknown`` schema. Never raised."""

    def __init__(self, type_text: str):
        self.type_text = type_text
        super().__init__(f"Unsupported type '{type_text}' emitted as an unknown schema")


class AssemblyError(RoutesToOpenApiError):
    """A route cannot be turned into an OpenAPI operation."""

    def __init__(self, route: str, message: str):
        self.route = route
        super().__init__(f"{route}: {message}")


class GenerationError(RoutesToOpenApiError):
    """Registration code cannot be generated for a route or artifact."""

    def __init__(self, subject: str, message: str):
        self.subject = subject
        super().__init__(f"{subject}: {message}")


class PipelineError(RoutesToOpenApiError):
    """One or more fatal problems collected during a run."""

    def __init__(self, errors: list[RoutesToOpenApiError]):
        self.errors = errors
        lines = "\n".join(f"  {e}" for e in errors)
        super().__init__(f"Generation failed with {len(errors)} error(s):\n{lines}")
