"""Configuration models and loader.

Config files are YAML or JSON (JSON is read through the YAML loader). Relative
paths are resolved against the directory holding the config file.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from routes_to_openapi.errors import ConfigError

DEFAULT_CONFIG_NAMES = ("routes-to-openapi.yaml", "routes-to-openapi.yml", "routes-to-openapi.json")


class InfoConfig(BaseModel):
    """The OpenAPI ``info`` object. Extra keys (license, contact, ...) pass through."""

    model_config = ConfigDict(extra="allow")

    title: str
    version: str
    description: str | None = None


class OpenApiMetadata(BaseModel):
    """Document metadata merged into the generated contract."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    info: InfoConfig
    servers: list[dict[str, Any]] | None = None
    security: list[dict[str, list[str]]] | None = None
    tags: list[dict[str, Any]] | None = None
    external_docs: dict[str, Any] | None = Field(default=None, alias="externalDocs")
    components: dict[str, Any] | None = None

    @field_validator("components")
    @classmethod
    def _no_schemas(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        if value and "schemas" in value:
            raise ValueError("components.schemas is generated and cannot be set in the config")
        return value

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GeneratorConfig(BaseModel):
    """Validated, defaulted configuration for one pipeline run."""

    model_config = ConfigDict(extra="forbid")

    openapi: OpenApiMetadata
    program_path: Path = Path("pyproject.toml")
    schema_output_dir: Path = Path(".")
    schema_output_file_name: str = "openapi.json"
    routes_output_dir: Path = Path("generated")
    routes_output_file_name: str = "routes.py"
    generate_openapi_schema: bool = True
    check_program_for_errors: bool = True
    duplicate_routes: Literal["error", "first-wins"] = "error"
    require_all_routes: bool = False

    @field_validator("schema_output_file_name")
    @classmethod
    def _schema_suffix(cls, value: str) -> str:
        if not value.endswith((".json", ".yaml", ".yml")):
            raise ValueError("schema_output_file_name must end in .json, .yaml or .yml")
        return value

    @field_validator("routes_output_file_name")
    @classmethod
    def _routes_suffix(cls, value: str) -> str:
        if not value.endswith(".py"):
            raise ValueError("routes_output_file_name must end in .py")
        return value

    @model_validator(mode="after")
    def _plain_file_names(self) -> "GeneratorConfig":
        for name in (self.schema_output_file_name, self.routes_output_file_name):
            if Path(name).name != name:
                raise ValueError(f"output file name '{name}' must not contain a directory")
        return self

    @property
    def schema_output_path(self) -> Path:
        return self.schema_output_dir / self.schema_output_file_name

    @property
    def routes_output_path(self) -> Path:
        return self.routes_output_dir / self.routes_output_file_name

    @property
    def schema_format(self) -> str:
        return "yaml" if self.schema_output_file_name.endswith((".yaml", ".yml")) else "json"

    def resolve_paths(self, base: Path) -> "GeneratorConfig":
        """Return a copy with every relative path anchored at ``base``."""
        return self.model_copy(update={
            "program_path": _anchor(self.program_path, base),
            "schema_output_dir": _anchor(self.schema_output_dir, base),
            "routes_output_dir": _anchor(self.routes_output_dir, base),
        })


def default_config_path(cwd: Path | None = None) -> Path:
    """First existing default config file in ``cwd``; the YAML name when none exists."""
    cwd = cwd or Path.cwd()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = cwd / name
        if candidate.exists():
            return candidate
    return cwd / DEFAULT_CONFIG_NAMES[0]


def load_config(path: Path | None = None) -> GeneratorConfig:
    """Read, validate and path-resolve a config file. Raises ConfigError."""
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    if not path.is_file():
        raise ConfigError(f"Config path is not a file: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML/JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        config = GeneratorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}:\n{e}") from e
    return config.resolve_paths(path.resolve().parent)


def _anchor(value: Path, base: Path) -> Path:
    return value if value.is_absolute() else (base / value).resolve()
