"""Route extractor: finds handlers carrying a route marker.

A marker is one of the decorators exported by ``routes_to_openapi``
(``route``, ``get``, ``post``, ...), recognised by what the decorator name
resolves to, so aliased imports work. It can also be applied by assignment:
``show_user = get("/users/{id}")(load_user)``.
"""

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from routes_to_openapi.analyzer.base import DeclarationSite, HandlerRef, HttpMethod, Route
from routes_to_openapi.analyzer.program import (
    ExternalSymbol,
    FunctionSymbol,
    ModuleInfo,
    ProgramAnalyzer,
    top_level_statements,
)
from routes_to_openapi.errors import (
    ExtractionError,
    RouteConflictError,
    RouteDeclarationError,
    TypeResolutionError,
)
from routes_to_openapi.runtime.markers import MARKER_NAMES

logger = logging.getLogger(__name__)

MARKER_PACKAGE = "routes_to_openapi"
PATH_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

_OPTION_TYPES: dict[str, type | tuple[type, ...]] = {
    "summary": str,
    "tags": (list, tuple),
    "status_code": int,
    "deprecated": bool,
    "operation_id": str,
}


def path_parameters(path: str) -> list[str]:
    """Names of the ``{param}`` segments of a path template, in order."""
    return PATH_PARAM.findall(path)


@dataclass
class ExtractionResult:
    routes: list[Route] = field(default_factory=list)
    errors: list[ExtractionError] = field(default_factory=list)
    conflicts: list[RouteConflictError] = field(default_factory=list)


@dataclass
class _Marker:
    method: HttpMethod
    path: str
    options: dict[str, Any]


@dataclass
class _Declaration:
    """A parsed marker. ``route`` is None when building the route failed."""

    method: HttpMethod
    path: str
    site: str
    route: Route | None = None


class RouteExtractor:
    """Collects route declarations from a loaded program, in source order."""

    def extract(self, program: ProgramAnalyzer) -> ExtractionResult:
        result = ExtractionResult()
        found: list[_Declaration] = []

        for info in program.iter_modules():
            for stmt in top_level_statements(info.tree.body):
                if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    for decorator in stmt.decorator_list:
                        kind = self._marker_kind(decorator, info, program)
                        if kind:
                            self._collect(program, info, stmt.name, info, stmt, kind, decorator, stmt, found, result)
                elif isinstance(stmt, ast.Assign):
                    self._collect_assignment(program, info, stmt, found, result)

        result.routes, result.conflicts = _split(found)
        logger.info(
            "Extracted %d routes (%d excluded, %d conflicts)",
            len(result.routes), len(result.errors), len(result.conflicts),
        )
        return result

    def _collect_assignment(self, program, info: ModuleInfo, stmt: ast.Assign, found, result) -> None:
        if len(stmt.targets) != 1 or not isinstance(stmt.targets[0], ast.Name):
            return
        value = stmt.value
        if not isinstance(value, ast.Call):
            return
        kind = self._marker_kind(value.func, info, program)
        if not kind:
            return
        name = stmt.targets[0].id
        if len(value.args) != 1 or value.keywords:
            result.errors.append(RouteDeclarationError(
                "route marker must be applied to exactly one handler",
                location=str(info.location(stmt)),
                route=name,
            ))
            return
        try:
            target = program.lookup(value.args[0], info.name)
        except TypeResolutionError as e:
            result.errors.append(e.for_route(name, str(info.location(stmt))))
            return
        if not isinstance(target, FunctionSymbol):
            result.errors.append(RouteDeclarationError(
                f"'{ast.unparse(value.args[0])}' is not a function defined in the program",
                location=str(info.location(stmt)),
                route=name,
            ))
            return
        fn_module = program.modules[target.module]
        self._collect(program, info, name, fn_module, target.node, kind, value.func, stmt, found, result)

    def _collect(self, program, info, name, fn_module, fn, kind, marker_call, decl, found, result) -> None:
        location = info.location(decl)
        label = name
        try:
            marker = self._parse_marker(kind, marker_call)
            label = f"{marker.method.value} {marker.path}"
        except ExtractionError as e:
            self._exclude(e, label, location, result)
            return
        # Recorded even if the route is excluded so duplicates of it are still reported.
        declaration = _Declaration(marker.method, marker.path, f"{location} ({info.name}.{name})")
        found.append(declaration)
        try:
            declaration.route = self._build_route(program, info, name, fn_module, fn, marker, location)
        except ExtractionError as e:
            self._exclude(e, label, location, result)

    def _exclude(self, error: ExtractionError, label: str, location, result: ExtractionResult) -> None:
        error = error.for_route(label, error.location or str(location))
        logger.warning("Excluding route: %s", error)
        result.errors.append(error)

    # -- markers ---------------------------------------------------------------

    def _marker_kind(self, expr: ast.expr, info: ModuleInfo, program: ProgramAnalyzer) -> str | None:
        """Marker name (``route``, ``get``, ...) a call expression invokes, if any."""
        if not isinstance(expr, ast.Call):
            return None
        try:
            symbol = program.lookup(expr.func, info.name)
        except TypeResolutionError:
            return None
        if isinstance(symbol, ExternalSymbol):
            package, _, name = symbol.qualname.partition(".")
            name = name.rsplit(".", 1)[-1]
        elif isinstance(symbol, FunctionSymbol):
            package, name = symbol.module.split(".")[0], symbol.node.name
        else:
            return None
        if package == MARKER_PACKAGE and name in MARKER_NAMES:
            return name
        return None

    def _parse_marker(self, kind: str, call: ast.Call) -> _Marker:
        args = list(call.args)
        keywords = {k.arg: k.value for k in call.keywords if k.arg}

        if kind == "route":
            method_node = args.pop(0) if args else keywords.pop("method", None)
            if method_node is None:
                raise RouteDeclarationError("route marker is missing the HTTP method")
            method = _literal(method_node, str, "HTTP method")
        else:
            method = kind
        path_node = args.pop(0) if args else keywords.pop("path", None)
        if path_node is None:
            raise RouteDeclarationError("route marker is missing the path")
        path = _literal(path_node, str, "route path")
        if args:
            raise RouteDeclarationError("route marker takes at most a method and a path positionally")

        try:
            http_method = HttpMethod(method.upper())
        except ValueError:
            raise RouteDeclarationError(f"unsupported HTTP method '{method}'") from None
        if not path.startswith("/"):
            raise RouteDeclarationError(f"route path '{path}' must start with '/'")

        options: dict[str, Any] = {}
        for key, node in keywords.items():
            if key not in _OPTION_TYPES:
                raise RouteDeclarationError(f"unknown route option '{key}'")
            options[key] = _literal(node, _OPTION_TYPES[key], key)
        if "tags" in options and not all(isinstance(t, str) for t in options["tags"]):
            raise RouteDeclarationError("tags must be strings")
        return _Marker(method=http_method, path=path, options=options)

    # -- routes ----------------------------------------------------------------

    def _build_route(self, program, info, name, fn_module, fn, marker: _Marker, location) -> Route:
        params = fn.args.posonlyargs + fn.args.args
        request_type = None
        if params:
            first = params[0]
            if first.annotation is None:
                raise TypeResolutionError(
                    f"parameter '{first.arg}' of '{fn.name}' has no type annotation",
                    location=str(fn_module.location(first)),
                )
            request_type = program.resolve(DeclarationSite(
                module=fn_module.name,
                node=first.annotation,
                location=fn_module.location(first.annotation),
            ))

        response_type = None
        if fn.returns is not None:
            response_type = program.resolve(DeclarationSite(
                module=fn_module.name,
                node=fn.returns,
                location=fn_module.location(fn.returns),
            ))

        summary, description = _split_docstring(ast.get_docstring(fn))
        options = marker.options
        return Route(
            method=marker.method,
            path=marker.path,
            handler=HandlerRef(
                module=info.name,
                name=name,
                location=location,
                exported=info.is_exported(name),
            ),
            request_type=request_type,
            response_type=response_type,
            summary=options.get("summary") or summary,
            description=description,
            tags=list(options.get("tags", [])),
            status_code=options.get("status_code", 200),
            deprecated=options.get("deprecated", False),
            operation_id=options.get("operation_id"),
        )


def split_conflicts(routes: list[Route]) -> tuple[list[Route], list[RouteConflictError]]:
    """Keep the first route per (method, path shape); report every later duplicate.

    Paths that differ only in parameter names (``/items/{id}`` and
    ``/items/{item_id}``) match the same requests, so they conflict too.
    """
    return _split([
        _Declaration(r.method, r.path, f"{r.handler.location} ({r.handler})", r) for r in routes
    ])


def _split(declarations: list[_Declaration]) -> tuple[list[Route], list[RouteConflictError]]:
    kept: list[Route] = []
    conflicts: list[RouteConflictError] = []
    seen: dict[tuple[str, str], _Declaration] = {}
    for declaration in declarations:
        key = (declaration.method.value, PATH_PARAM.sub("{}", declaration.path))
        first = seen.get(key)
        if first is None:
            seen[key] = declaration
            if declaration.route is not None:
                kept.append(declaration.route)
            continue
        conflicts.append(RouteConflictError(
            declaration.method.value, declaration.path, first.site, declaration.site,
        ))
    return kept, conflicts


def _literal(node: ast.expr, expected, what: str) -> Any:
    try:
        value = ast.literal_eval(node)
    except (ValueError, TypeError, SyntaxError):
        raise RouteDeclarationError(f"{what} must be a literal, got '{ast.unparse(node)}'") from None
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise RouteDeclarationError(f"{what} has the wrong type: {value!r}")
    return value


def _split_docstring(doc: str | None) -> tuple[str, str]:
    if not doc:
        return "", ""
    lines = doc.strip().splitlines()
    summary = lines[0].strip()
    description = "\n".join(lines[1:]).strip()
    return summary, description
