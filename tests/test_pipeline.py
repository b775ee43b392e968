import ast
import json
from pathlib import Path

import pytest
import yaml

from routes_to_openapi.config import load_config
from routes_to_openapi.errors import (
    CompileDiagnosticError,
    PipelineError,
    RouteConflictError,
    TypeResolutionError,
)
from routes_to_openapi.generator.routes import HEADER, placeholder_source
from routes_to_openapi.pipeline import build, run

BROKEN = '''
from routes_to_openapi import get


@get("/broken")
def broken(query: Missing) -> str:
    return ""
'''

DUPLICATE = '''
from routes_to_openapi import get

from petstore.models import User, UserQuery


@get("/users/{user_id}")
def show_user_again(query: UserQuery) -> User:
    raise NotImplementedError
'''


def _config(project: Path, **overrides):
    config = load_config(project / "routes-to-openapi.yaml")
    return config.model_copy(update=overrides) if overrides else config


def _add_module(project: Path, name: str, source: str) -> None:
    (project / "src" / "petstore" / name).write_text(source, encoding="utf-8")


class TestRun:
    def test_writes_both_artifacts(self, petstore):
        result = run(_config(petstore))
        petstore = petstore.resolve()
        schema_path = petstore / "openapi.json"
        routes_path = petstore / "generated" / "routes.py"
        assert result.written == [schema_path, routes_path]
        assert result.ok

        document = json.loads(schema_path.read_text(encoding="utf-8"))
        assert document["openapi"] == "3.1.0"
        assert document["servers"] == [{"url": "https://petstore.example.com"}]
        assert len([op for item in document["paths"].values() for op in item]) == 5

        source = routes_path.read_text(encoding="utf-8")
        assert source.startswith(HEADER)
        ast.parse(source)

    def test_repeated_runs_are_identical(self, petstore):
        run(_config(petstore))
        first = (petstore / "openapi.json").read_bytes(), (petstore / "generated" / "routes.py").read_bytes()
        run(_config(petstore))
        second = (petstore / "openapi.json").read_bytes(), (petstore / "generated" / "routes.py").read_bytes()
        assert first == second

    def test_yaml_schema(self, petstore):
        run(_config(petstore, schema_output_file_name="openapi.yaml"))
        document = yaml.safe_load((petstore / "openapi.yaml").read_text(encoding="utf-8"))
        assert document["info"]["title"] == "Petstore"
        assert not (petstore / "openapi.json").exists()

    def test_schema_generation_can_be_disabled(self, petstore):
        result = run(_config(petstore, generate_openapi_schema=False))
        assert result.written == [petstore.resolve() / "generated" / "routes.py"]
        assert not (petstore / "openapi.json").exists()

    def test_zero_routes(self, write_program, tmp_path):
        project = write_program({"app/__init__.py": "", "app/models.py": "X = 1\n"})
        config_path = tmp_path / "routes-to-openapi.yaml"
        config_path.write_text(
            "openapi:\n  info:\n    title: Empty\n    version: '0'\n"
            f"program_path: {project}\n",
            encoding="utf-8",
        )
        result = run(load_config(config_path))
        document = json.loads((tmp_path / "openapi.json").read_text(encoding="utf-8"))
        assert document["paths"] == {}
        assert result.routes == []
        assert "router = Router()" in (tmp_path / "generated" / "routes.py").read_text(encoding="utf-8")


class TestPartialFailure:
    def test_broken_route_is_excluded(self, petstore):
        _add_module(petstore, "broken.py", BROKEN)
        result = run(_config(petstore))

        assert not result.ok
        assert len(result.excluded) == 1
        error = result.excluded[0]
        assert isinstance(error, TypeResolutionError)
        assert error.route == "GET /broken"
        assert "broken.py" in error.location

        document = json.loads((petstore / "openapi.json").read_text(encoding="utf-8"))
        assert "/broken" not in document["paths"]
        assert "/users/{id}" in document["paths"]
        assert "broken" not in (petstore / "generated" / "routes.py").read_text(encoding="utf-8")

    def test_require_all_routes_makes_exclusion_fatal(self, petstore):
        _add_module(petstore, "broken.py", BROKEN)
        with pytest.raises(PipelineError) as exc:
            run(_config(petstore, require_all_routes=True))
        assert isinstance(exc.value.errors[0], TypeResolutionError)
        assert not (petstore / "openapi.json").exists()


class TestFatalErrors:
    def test_duplicate_route_is_fatal_by_default(self, petstore):
        _add_module(petstore, "zz_duplicate.py", DUPLICATE)
        with pytest.raises(PipelineError) as exc:
            run(_config(petstore))
        conflict = exc.value.errors[0]
        assert isinstance(conflict, RouteConflictError)
        assert "users.py" in conflict.first
        assert "zz_duplicate.py" in conflict.second
        assert not (petstore / "openapi.json").exists()

    def test_first_declaration_wins_when_configured(self, petstore):
        _add_module(petstore, "zz_duplicate.py", DUPLICATE)
        result = run(_config(petstore, duplicate_routes="first-wins"))
        assert len(result.conflicts) == 1
        assert result.ok
        show = result.document.operation("GET", "/users/{id}")
        assert show["operationId"] == "show_user"
        assert "/users/{user_id}" not in result.document.paths

    def test_program_errors_stop_the_run(self, petstore):
        _add_module(petstore, "syntax.py", "def oops(:\n")
        with pytest.raises(CompileDiagnosticError) as exc:
            run(_config(petstore))
        assert "syntax.py" in str(exc.value)

    def test_program_error_check_can_be_disabled(self, petstore):
        _add_module(petstore, "syntax.py", "def oops(:\n")
        result = run(_config(petstore, check_program_for_errors=False))
        assert len(result.routes) == 5
        assert any(d.severity == "error" for d in result.diagnostics)

    def test_failed_run_leaves_placeholder(self, petstore):
        routes_path = petstore / "generated" / "routes.py"
        run(_config(petstore))
        _add_module(petstore, "syntax.py", "def oops(:\n")
        with pytest.raises(CompileDiagnosticError):
            run(_config(petstore))
        assert routes_path.read_text(encoding="utf-8") == placeholder_source()


class TestBuild:
    def test_build_writes_nothing(self, petstore):
        result = build(_config(petstore))
        assert len(result.routes) == 5
        assert result.routes_source
        assert result.written == []
        assert not (petstore / "openapi.json").exists()
        assert not (petstore / "generated").exists()
