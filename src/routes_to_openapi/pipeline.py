"""Generation pipeline: analyse, extract, synthesize, assemble, generate, write.

Everything is computed in memory first; output files are only written once
the whole run has succeeded, so a failure never leaves a half-written
artifact behind.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from routes_to_openapi.analyzer.base import Diagnostic, Route
from routes_to_openapi.analyzer.program import ProgramAnalyzer
from routes_to_openapi.analyzer.routes import RouteExtractor
from routes_to_openapi.config import GeneratorConfig
from routes_to_openapi.errors import (
    CompileDiagnosticError,
    ExtractionError,
    GenerationError,
    PipelineError,
    RouteConflictError,
    RoutesToOpenApiError,
    SchemaUnsupportedShape,
)
from routes_to_openapi.generator.openapi import Document, assemble
from routes_to_openapi.generator.routes import RouteCodeGenerator, placeholder_source
from routes_to_openapi.generator.validator import validate_files
from routes_to_openapi.schema.registry import SchemaRegistry
from routes_to_openapi.schema.synthesizer import SchemaSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    routes: list[Route] = field(default_factory=list)
    document: Document | None = None
    routes_source: str = ""
    excluded: list[ExtractionError] = field(default_factory=list)
    conflicts: list[RouteConflictError] = field(default_factory=list)
    warnings: list[SchemaUnsupportedShape] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """False when any route was excluded from the output."""
        return not self.excluded


def build(config: GeneratorConfig) -> PipelineResult:
    """Compute the document and registration source without touching the output files."""
    program = ProgramAnalyzer.load(config.program_path)
    result = PipelineResult(diagnostics=program.diagnostics())

    for diagnostic in result.diagnostics:
        if diagnostic.severity == "warning":
            logger.warning("%s", diagnostic)
    if config.check_program_for_errors:
        errors = [d for d in result.diagnostics if d.severity == "error"]
        if errors:
            raise CompileDiagnosticError(errors)

    extraction = RouteExtractor().extract(program)
    result.excluded = extraction.errors
    result.conflicts = extraction.conflicts

    fatal: list[RoutesToOpenApiError] = []
    if extraction.conflicts:
        if config.duplicate_routes == "error":
            fatal.extend(extraction.conflicts)
        else:
            for conflict in extraction.conflicts:
                logger.warning("%s (keeping the first declaration)", conflict)
    if config.require_all_routes:
        fatal.extend(extraction.errors)
    if fatal:
        raise PipelineError(fatal)

    registry = SchemaRegistry()
    synthesizer = SchemaSynthesizer()
    result.routes = synthesizer.bind_schemas(extraction.routes, registry)
    result.warnings = synthesizer.warnings

    # Assemble and generate both before failing, so one run reports every problem.
    fatal = []
    try:
        result.document = assemble(result.routes, registry, config.openapi.to_document())
    except PipelineError as e:
        fatal.extend(e.errors)
    try:
        result.routes_source = RouteCodeGenerator().generate(result.routes, registry, config.routes_output_dir)
    except PipelineError as e:
        fatal.extend(e.errors)
    if fatal:
        raise PipelineError(fatal)

    artifacts = {config.routes_output_file_name: result.routes_source}
    if config.generate_openapi_schema:
        artifacts[config.schema_output_file_name] = result.document.dumps(config.schema_format)
    problems = validate_files(artifacts)
    if problems:
        raise PipelineError([GenerationError(name, message) for name, message in problems.items()])
    return result


def run(config: GeneratorConfig) -> PipelineResult:
    """Build, then write the contract document (if enabled) and the routes module."""
    routes_path = config.routes_output_path
    if routes_path.exists():
        routes_path.write_text(placeholder_source(), encoding="utf-8")
        logger.info("Replaced %s with a placeholder", routes_path)

    result = build(config)

    if config.generate_openapi_schema:
        schema_path = config.schema_output_path
        schema_path.parent.mkdir(parents=True, exist_ok=True)
        schema_path.write_text(result.document.dumps(config.schema_format), encoding="utf-8")
        result.written.append(schema_path)

    routes_path.parent.mkdir(parents=True, exist_ok=True)
    routes_path.write_text(result.routes_source, encoding="utf-8")
    result.written.append(routes_path)

    for path in result.written:
        logger.info("Wrote %s", path)
    if not result.ok:
        logger.warning("%d route(s) excluded from the output", len(result.excluded))
    return result
