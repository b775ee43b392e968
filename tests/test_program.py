import ast
from pathlib import Path

import pytest

from routes_to_openapi.analyzer.program import (
    ClassSymbol,
    ExternalSymbol,
    FunctionSymbol,
    ModuleSymbol,
    ProgramAnalyzer,
)
from routes_to_openapi.errors import ProgramLoadError, TypeResolutionError

FIXTURES = Path(__file__).parent / "fixtures"


def _errors(program: ProgramAnalyzer) -> list[str]:
    return [d.message for d in program.diagnostics() if d.severity == "error"]


def _warnings(program: ProgramAnalyzer) -> list[str]:
    return [d.message for d in program.diagnostics() if d.severity == "warning"]


class TestLoading:
    def test_fixture_modules(self):
        program = ProgramAnalyzer.load(FIXTURES / "petstore" / "pyproject.toml")
        names = [m.name for m in program.iter_modules()]
        assert names == ["petstore", "petstore.models", "petstore.pets", "petstore.users"]
        assert program.diagnostics() == []

    def test_package_flag(self):
        program = ProgramAnalyzer.load(FIXTURES / "petstore")
        assert program.modules["petstore"].is_package is True
        assert program.modules["petstore.users"].is_package is False

    def test_skips_cache_and_hidden_dirs(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/__pycache__/junk.py": "x = (",
            "app/.hidden/junk.py": "x = (",
        })
        program = ProgramAnalyzer.load(project)
        assert [m.name for m in program.iter_modules()] == ["app"]
        assert _errors(program) == []

    def test_exclude_patterns(self, write_program):
        project = write_program(
            {"app/__init__.py": "", "app/tests/test_x.py": "x = ("},
            pyproject='[tool.routes-to-openapi]\nexclude = ["app/tests/*"]\n',
        )
        program = ProgramAnalyzer.load(project)
        assert "app.tests.test_x" not in program.modules

    def test_bad_locator(self, tmp_path):
        with pytest.raises(ProgramLoadError):
            ProgramAnalyzer.load(tmp_path / "missing")

    def test_type_checking_block_is_collected(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/models.py": """
                from typing import TYPE_CHECKING

                if TYPE_CHECKING:
                    from app.other import Thing
                """,
            "app/other.py": "class Thing:\n    pass\n",
        })
        program = ProgramAnalyzer.load(project)
        symbol = program.lookup_name("app.models", "Thing")
        assert isinstance(symbol, ClassSymbol)
        assert symbol.qualname == "app.other.Thing"


class TestDiagnostics:
    def test_syntax_error(self, write_program):
        project = write_program({"app/__init__.py": "", "app/broken.py": "def f(:\n    pass\n"})
        program = ProgramAnalyzer.load(project)
        diagnostics = program.diagnostics()
        assert len(diagnostics) == 1
        assert diagnostics[0].severity == "error"
        assert diagnostics[0].message.startswith("SyntaxError")
        assert diagnostics[0].location.line == 1
        assert "app.broken" not in program.modules

    def test_missing_internal_module(self, write_program):
        project = write_program({"app/__init__.py": "", "app/a.py": "from app.nothing import x\n"})
        program = ProgramAnalyzer.load(project)
        assert _errors(program) == ["cannot find module 'app.nothing'"]

    def test_missing_internal_name(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/a.py": "from app.b import missing\n",
            "app/b.py": "present = 1\n",
        })
        program = ProgramAnalyzer.load(project)
        assert _errors(program) == ["cannot import name 'missing' from 'app.b'"]

    def test_import_submodule_from_package(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/a.py": "from app import b\nimport app.b\n",
            "app/b.py": "",
        })
        program = ProgramAnalyzer.load(project)
        assert program.diagnostics() == []

    def test_namespace_package(self, write_program):
        project = write_program({
            "ns/sub/mod.py": "value = 1\n",
            "ns/user.py": "from ns.sub import mod\nfrom ns.sub.mod import value\n",
        })
        program = ProgramAnalyzer.load(project)
        assert program.diagnostics() == []

    def test_relative_import_beyond_top_level(self, write_program):
        project = write_program({"app/__init__.py": "", "app/a.py": "from ... import thing\n"})
        program = ProgramAnalyzer.load(project)
        assert _errors(program) == ["attempted relative import beyond top-level package"]

    def test_relative_import_resolves(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/a.py": "from .b import Thing\n",
            "app/b.py": "class Thing:\n    pass\n",
        })
        program = ProgramAnalyzer.load(project)
        assert program.diagnostics() == []
        assert isinstance(program.lookup_name("app.a", "Thing"), ClassSymbol)

    def test_external_not_installed_is_warning(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/a.py": "import not_a_real_package_for_tests\n",
        })
        program = ProgramAnalyzer.load(project)
        assert _errors(program) == []
        assert _warnings(program) == ["module 'not_a_real_package_for_tests' is not installed"]

    def test_stdlib_is_available(self, write_program):
        project = write_program({"app/__init__.py": "", "app/a.py": "import json\nfrom datetime import date\n"})
        program = ProgramAnalyzer.load(project)
        assert program.diagnostics() == []


class TestLookup:
    @pytest.fixture
    def program(self, write_program):
        project = write_program({
            "app/__init__.py": "",
            "app/a.py": """
                import routes_to_openapi as rto
                from routes_to_openapi import get as GET
                from app import b
                from app.b import *

                def handler():
                    pass
                """,
            "app/b.py": """
                __all__ = ["Public"]

                class Public:
                    class Inner:
                        pass

                class Hidden:
                    pass
                """,
        })
        return ProgramAnalyzer.load(project)

    def _expr(self, text: str) -> ast.expr:
        return ast.parse(text, mode="eval").body

    def test_aliased_import(self, program):
        assert program.lookup(self._expr("GET"), "app.a") == ExternalSymbol("routes_to_openapi.get")

    def test_module_attribute(self, program):
        assert program.lookup(self._expr("rto.post"), "app.a") == ExternalSymbol("routes_to_openapi.post")

    def test_submodule_attribute(self, program):
        symbol = program.lookup(self._expr("b.Public"), "app.a")
        assert isinstance(symbol, ClassSymbol)

    def test_nested_class(self, program):
        symbol = program.lookup(self._expr("b.Public.Inner"), "app.a")
        assert isinstance(symbol, ClassSymbol)
        assert symbol.qualname == "app.b.Public.Inner"

    def test_star_import(self, program):
        assert isinstance(program.lookup_name("app.a", "Hidden"), ClassSymbol)

    def test_function_and_module_symbols(self, program):
        assert isinstance(program.lookup_name("app.a", "handler"), FunctionSymbol)
        assert program.lookup_name("app.a", "rto") == ModuleSymbol("routes_to_openapi")

    def test_builtin_fallback(self, program):
        assert program.lookup_name("app.a", "int") == ExternalSymbol("builtins.int")

    def test_undefined_name(self, program):
        with pytest.raises(TypeResolutionError, match="not defined"):
            program.lookup_name("app.a", "Nope")

    def test_exported_respects_all(self, program):
        module = program.modules["app.b"]
        assert module.is_exported("Public") is True
        assert module.is_exported("Hidden") is False
        assert program.modules["app.a"].is_exported("handler") is True
        assert program.modules["app.a"].is_exported("_private") is False
