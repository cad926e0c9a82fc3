# File: relcheck/loader.py
"""
RelCheck - Model File Loader
=============================
Reads a model definition from a YAML or JSON file and parses it into a
``ModelDefinition`` plus the ``ValidationConfig`` stored beside it.

Expected layout::

    config:
      dialect: postgresql
    model:
      default_schema: dbo
      entity_types:
        - name: Order
          table: Orders
          properties: [...]
      functions: [...]

A bare top-level ``entity_types`` list (without the ``model`` wrapper) is
accepted too.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from relcheck.models import ModelDefinition, ValidationConfig

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.loader")


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_model_file(path: Path) -> Dict[str, Any]:
    """
    Load a model definition file (JSON or YAML).

    Dispatches based on file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Model path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    elif suffix == ".json":
        return _load_json_file(path)
    else:
        logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
        try:
            return _load_json_file(path)
        except ValueError:
            return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_raw_model(raw: Dict[str, Any]) -> Tuple[ModelDefinition, ValidationConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated Pydantic models.

    Raises:
        ValueError: If the model section is missing or does not validate.
    """
    model_data: Optional[Dict[str, Any]] = None
    if isinstance(raw.get("model"), dict):
        model_data = raw["model"]
    elif "entity_types" in raw:
        model_data = {k: v for k, v in raw.items() if k != "config"}

    if model_data is None:
        raise ValueError(
            "Cannot find a model definition in input. "
            "Expected a top-level 'model' mapping or an 'entity_types' list."
        )

    config_data: Any = raw.get("config")
    if config_data is None:
        logger.info("No validation config found in input — using defaults.")
        config_data = {}

    try:
        definition: ModelDefinition = ModelDefinition.model_validate(model_data)
    except ValidationError as exc:
        raise ValueError(f"Model definition is invalid: {exc}") from exc

    try:
        config: ValidationConfig = ValidationConfig.model_validate(config_data)
    except ValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    logger.debug("Parsed %r with %r", definition, config)
    return definition, config


def load_model(path: Path) -> Tuple[ModelDefinition, ValidationConfig]:
    """Load and parse a model file in one step."""
    return parse_raw_model(load_model_file(path))


__all__: List[str] = [
    "load_model_file",
    "parse_raw_model",
    "load_model",
]
