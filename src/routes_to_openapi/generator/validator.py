"""Validates generated artifacts for syntax before they are written."""

import ast
import json

import yaml


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python files for syntax errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".py"):
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


def validate_json(files: dict[str, str]) -> dict[str, str]:
    """Check JSON documents; the top level must be an object."""
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".json"):
            continue
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            errors[filename] = f"JSONDecodeError: {e.msg} (line {e.lineno})"
            continue
        if not isinstance(data, dict):
            errors[filename] = "top-level value is not an object"
    return errors


def validate_yaml(files: dict[str, str]) -> dict[str, str]:
    """Check YAML files for format errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith((".yaml", ".yml")):
            continue
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            errors[filename] = f"YAMLError: {e}"
            continue
        if not isinstance(data, dict):
            errors[filename] = "top-level value is not a mapping"
    return errors


def validate_files(files: dict[str, str]) -> dict[str, str]:
    """Run all validations on generated files.

    Returns dict of {filename: error_message} for all files with errors.
    """
    errors = {}
    errors.update(validate_python(files))
    errors.update(validate_json(files))
    errors.update(validate_yaml(files))
    return errors
