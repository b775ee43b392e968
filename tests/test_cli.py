from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from routes_to_openapi.cli import EXIT_EXCLUDED, EXIT_FATAL, main
from routes_to_openapi.errors import PipelineError, RouteDeclarationError

BROKEN = '''
from routes_to_openapi import get


@get("/broken")
def broken(query: Missing) -> str:
    return ""
'''


def _invoke(*args):
    return CliRunner().invoke(main, list(args))


def _config_arg(project: Path) -> list[str]:
    return ["-c", str(project / "routes-to-openapi.yaml")]


class TestCliGenerate:
    def test_generate_success(self, petstore):
        result = _invoke("generate", *_config_arg(petstore))

        assert result.exit_code == 0, result.output
        assert "Found 5 routes." in result.output
        assert "GET     /users/{id}  -> petstore.users.show_user" in result.output
        assert "Done!" in result.output
        assert (petstore / "openapi.json").exists()
        assert (petstore / "generated" / "routes.py").exists()

    def test_excluded_routes_exit_code(self, petstore):
        (petstore / "src" / "petstore" / "broken.py").write_text(BROKEN, encoding="utf-8")
        result = _invoke("generate", *_config_arg(petstore))

        assert result.exit_code == EXIT_EXCLUDED
        assert "Excluded:" in result.output
        assert "GET /broken" in result.output
        # Good routes are still written.
        assert (petstore / "openapi.json").exists()

    def test_strict_makes_exclusion_fatal(self, petstore):
        (petstore / "src" / "petstore" / "broken.py").write_text(BROKEN, encoding="utf-8")
        result = _invoke("generate", *_config_arg(petstore), "--strict")

        assert result.exit_code == EXIT_FATAL
        assert "Error:" in result.output
        assert not (petstore / "openapi.json").exists()

    def test_no_check_skips_program_errors(self, petstore):
        (petstore / "src" / "petstore" / "syntax.py").write_text("def oops(:\n", encoding="utf-8")
        assert _invoke("generate", *_config_arg(petstore)).exit_code == EXIT_FATAL
        assert _invoke("generate", *_config_arg(petstore), "--no-check").exit_code == 0

    def test_missing_config(self, tmp_path):
        result = _invoke("generate", "-c", str(tmp_path / "nope.yaml"))
        assert result.exit_code == EXIT_FATAL
        assert "Config file not found" in result.output

    @patch("routes_to_openapi.cli.run")
    def test_pipeline_error_is_reported(self, mock_run, petstore):
        mock_run.side_effect = PipelineError([RouteDeclarationError("bad path", route="GET x")])
        result = _invoke("generate", *_config_arg(petstore))

        assert result.exit_code == EXIT_FATAL
        assert "bad path" in result.output
        mock_run.assert_called_once()

    @patch("routes_to_openapi.cli.run")
    def test_strict_flag_reaches_config(self, mock_run, petstore):
        mock_run.return_value = MagicMock(routes=[], warnings=[], conflicts=[], excluded=[], written=[], ok=True)
        result = _invoke("generate", *_config_arg(petstore), "--strict", "--no-check")

        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.require_all_routes is True
        assert config.check_program_for_errors is False


class TestCliCheck:
    def test_check_writes_nothing(self, petstore):
        result = _invoke("check", *_config_arg(petstore))

        assert result.exit_code == 0, result.output
        assert "Found 5 routes." in result.output
        assert not (petstore / "openapi.json").exists()
        assert not (petstore / "generated").exists()

    def test_check_reports_exclusions(self, petstore):
        (petstore / "src" / "petstore" / "broken.py").write_text(BROKEN, encoding="utf-8")
        result = _invoke("check", *_config_arg(petstore))
        assert result.exit_code == EXIT_EXCLUDED


def test_version():
    result = _invoke("--version")
    assert result.exit_code == 0
    assert "version" in result.output
