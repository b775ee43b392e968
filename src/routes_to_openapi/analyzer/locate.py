"""Locate the program to analyse from a pyproject.toml or a directory."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from routes_to_openapi.errors import ProgramLoadError

TOOL_TABLE = "routes-to-openapi"


@dataclass
class ProgramLayout:
    project_dir: Path
    source_roots: list[Path]
    exclude: list[str] = field(default_factory=list)


def locate_program(locator: Path) -> ProgramLayout:
    """Resolve a program locator into source roots.

    The locator is either a pyproject.toml or a directory. A directory that
    contains a pyproject.toml is treated as that file.
    """
    locator = Path(locator)
    if not locator.exists():
        raise ProgramLoadError(f"Program locator does not exist: {locator}")

    if locator.is_dir():
        pyproject = locator / "pyproject.toml"
        if pyproject.is_file():
            return _from_pyproject(pyproject)
        return ProgramLayout(project_dir=locator.resolve(), source_roots=[locator.resolve()])

    if locator.name != "pyproject.toml":
        raise ProgramLoadError(f"Program locator must be a pyproject.toml or a directory: {locator}")
    return _from_pyproject(locator)


def _from_pyproject(path: Path) -> ProgramLayout:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ProgramLoadError(f"Cannot read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ProgramLoadError(f"Invalid pyproject.toml {path}: {e}") from e

    project_dir = path.parent.resolve()
    options = data.get("tool", {}).get(TOOL_TABLE, {})
    if not isinstance(options, dict):
        raise ProgramLoadError(f"[tool.{TOOL_TABLE}] in {path} must be a table")

    roots_option = options.get("source-roots")
    if roots_option is None:
        src = project_dir / "src"
        roots = [src if src.is_dir() else project_dir]
    else:
        if not isinstance(roots_option, list) or not all(isinstance(r, str) for r in roots_option):
            raise ProgramLoadError(f"source-roots in {path} must be a list of strings")
        roots = [(project_dir / r).resolve() for r in roots_option]

    for root in roots:
        if not root.is_dir():
            raise ProgramLoadError(f"Source root does not exist: {root}")

    exclude = options.get("exclude", [])
    if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
        raise ProgramLoadError(f"exclude in {path} must be a list of strings")

    return ProgramLayout(project_dir=project_dir, source_roots=roots, exclude=exclude)
