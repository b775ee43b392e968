import shutil
import textwrap
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def write_program(tmp_path):
    """Write a small program under ``tmp_path/program/src`` and return its pyproject.toml."""

    def _write(files: dict[str, str], pyproject: str | None = None) -> Path:
        root = tmp_path / "program"
        (root / "src").mkdir(parents=True, exist_ok=True)
        project = root / "pyproject.toml"
        project.write_text(pyproject or '[project]\nname = "app"\nversion = "0.1.0"\n', encoding="utf-8")
        for name, content in files.items():
            path = root / "src" / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return project

    return _write


@pytest.fixture
def petstore(tmp_path) -> Path:
    """A writable copy of the petstore fixture project."""
    target = tmp_path / "petstore"
    shutil.copytree(FIXTURES / "petstore", target)
    return target
