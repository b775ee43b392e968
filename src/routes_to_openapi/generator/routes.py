"""Generates the route registration module.

The generated module imports every handler by its absolute module path,
builds a ``Router`` and adds the routes in extraction order, each with a
``RequestValidator`` carrying the route's serialized request schema. Schemas
are emitted as Python literals so nothing is re-resolved at runtime.
"""

import keyword
import logging
import os
from pathlib import Path
from pprint import pformat

from routes_to_openapi.analyzer.base import Route
from routes_to_openapi.errors import GenerationError, PipelineError
from routes_to_openapi.schema.nodes import to_json_schema
from routes_to_openapi.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

HEADER = "# Generated by routes-to-openapi. Do not edit: changes are overwritten on the next run.\n"

# Names the generated module defines itself.
RESERVED_NAMES = {"COMPONENTS", "RequestValidator", "Router", "router", "sys", "Path", "_HERE", "_root", "_path"}


def placeholder_source() -> str:
    """Neutral module written over a stale generated file while a run is in progress."""
    return (
        HEADER
        + "# Regeneration in progress.\n\n"
        + "from routes_to_openapi.runtime import Router\n\n"
        + "router = Router()\n"
    )


class RouteCodeGenerator:
    """Renders registration source for a list of routes."""

    def generate(self, routes: list[Route], registry: SchemaRegistry, output_dir: Path) -> str:
        """Return module source. Raises PipelineError listing every GenerationError."""
        output_dir = Path(output_dir).resolve()
        errors: list[GenerationError] = []
        roots: list[str] = []
        aliases: dict[tuple[str, str], str] = {}
        used = set(RESERVED_NAMES)

        for route in routes:
            handler = route.handler
            if not handler.exported:
                errors.append(GenerationError(
                    route.label, f"handler '{handler}' is not exported from module '{handler.module}'"
                ))
                continue
            if not _importable(handler.module):
                errors.append(GenerationError(
                    route.label, f"module '{handler.module}' cannot be imported by its dotted path"
                ))
                continue
            try:
                root = _relative_root(handler.location.path, handler.module, output_dir)
            except ValueError as e:
                errors.append(GenerationError(route.label, str(e)))
                continue
            if root not in roots:
                roots.append(root)

            key = (handler.module, handler.name)
            if key not in aliases:
                alias = handler.name
                if alias in used:
                    alias = f"{handler.module.replace('.', '_')}_{handler.name}"
                n = 2
                base = alias
                while alias in used:
                    alias = f"{base}_{n}"
                    n += 1
                aliases[key] = alias
                used.add(alias)

        if errors:
            raise PipelineError(errors)

        lines = [HEADER.rstrip("\n"), ""]
        lines.append("import sys")
        lines.append("from pathlib import Path")
        lines.append("")
        lines.append("from routes_to_openapi.runtime import RequestValidator, Router")
        lines.append("")
        if roots:
            lines.append("_HERE = Path(__file__).resolve().parent")
            lines.append(f"for _root in {tuple(roots)!r}:")
            lines.append("    _path = str((_HERE / _root).resolve())")
            lines.append("    if _path not in sys.path:")
            lines.append("        sys.path.append(_path)")
            lines.append("")
        for (module, name), alias in aliases.items():
            if alias == name:
                lines.append(f"from {module} import {name}  # noqa: E402")
            else:
                lines.append(f"from {module} import {name} as {alias}  # noqa: E402")
        if aliases:
            lines.append("")

        lines.append(f"COMPONENTS = {pformat(registry.components(), sort_dicts=False, width=100)}")
        lines.append("")
        lines.append("router = Router()")
        for route in routes:
            handler = aliases[(route.handler.module, route.handler.name)]
            if route.request_schema is None:
                validator = "None"
            else:
                schema = pformat(to_json_schema(route.request_schema), sort_dicts=False, width=100)
                validator = f"RequestValidator({schema}, COMPONENTS)"
            lines.append("router.add(")
            lines.append(f"    {route.method.value!r},")
            lines.append(f"    {route.path!r},")
            lines.append(f"    {handler},")
            lines.append(f"    {validator},")
            lines.append(")")

        logger.info("Generated registration code for %d routes", len(routes))
        return "\n".join(lines) + "\n"


def _importable(module: str) -> bool:
    return all(part.isidentifier() and not keyword.iskeyword(part) for part in module.split("."))


def _relative_root(path: Path, module: str, output_dir: Path) -> str:
    """Source root holding ``module``, relative to the generated module's directory."""
    depth = len(module.split("."))
    if path.stem != "__init__":
        depth -= 1
    root = Path(path).resolve().parents[depth]
    try:
        return Path(os.path.relpath(root, output_dir)).as_posix()
    except ValueError:
        raise ValueError(f"source root {root} is not reachable from {output_dir}") from None
