# File: relcheck/__init__.py
"""
RelCheck — Relational Model Validator
======================================

Checks that an object-relational mapping model is internally consistent
before it is used to generate a schema or queries, with a focus on tables
shared by several entity types (single-table inheritance and table
splitting).

Architecture overview::

    ┌──────────────┐     ┌──────────────┐     ┌───────────────────────┐
    │  CLI / Entry │────▶│    loader    │────▶│  models (definitions) │
    │   (cli.py)   │     │  (YAML/JSON) │     └───────────┬───────────┘
    └──────┬───────┘     └──────────────┘                 ▼
           │                                  ┌───────────────────────┐
           └─────────────────────────────────▶│ metadata (accessor)   │
                                              └───────────┬───────────┘
                                                          ▼
             ┌─────────────┐   ┌───────────────┐   ┌─────────────┐
             │ typemapping │◀──│  validators   │──▶│compatibility│
             └─────────────┘   └───────┬───────┘   └─────────────┘
                                       ▼
                                  ┌─────────┐
                                  │ errors  │
                                  └─────────┘

Usage::

    # As a library
    from relcheck import ModelDefinition, validate_model
    report = validate_model(ModelDefinition.model_validate(data))

    # From the command line
    python -m relcheck --model model.yaml --verbose

Public API:
    - RelationalModelValidator — Stateless validation service
    - validate_model           — Validation entry point for a definition
    - ModelDefinition          — Declarative model input
    - RelationalModel          — Read-only model accessor
    - ModelValidationError     — Base class of every violation
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from relcheck.models import (
    DatabaseDialect,
    DbFunctionDefinition,
    EntityTypeDefinition,
    ForeignKeyDefinition,
    IndexDefinition,
    KeyDefinition,
    ModelDefinition,
    OnDeleteAction,
    ParameterDefinition,
    PropertyDefinition,
    ValidationConfig,
    ValueGenerated,
)
from relcheck.metadata import (
    EntityType,
    RelationalModel,
    TableIdentifier,
    is_in_ownership_path,
)
from relcheck.errors import AggregateModelValidationError, ModelValidationError
from relcheck.typemapping import TypeMappingSource
from relcheck.compatibility import foreign_keys_compatible, indexes_compatible
from relcheck.validators import (
    DiagnosticsReport,
    RelationalModelValidator,
    group_entity_types_by_table,
    validate_model,
)
from relcheck.loader import load_model, parse_raw_model

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Validation
    "RelationalModelValidator",
    "DiagnosticsReport",
    "validate_model",
    "group_entity_types_by_table",
    "foreign_keys_compatible",
    "indexes_compatible",
    "TypeMappingSource",
    # Errors
    "ModelValidationError",
    "AggregateModelValidationError",
    # Definitions
    "DatabaseDialect",
    "DbFunctionDefinition",
    "EntityTypeDefinition",
    "ForeignKeyDefinition",
    "IndexDefinition",
    "KeyDefinition",
    "ModelDefinition",
    "OnDeleteAction",
    "ParameterDefinition",
    "PropertyDefinition",
    "ValidationConfig",
    "ValueGenerated",
    # Accessor
    "EntityType",
    "RelationalModel",
    "TableIdentifier",
    "is_in_ownership_path",
    # Loading
    "load_model",
    "parse_raw_model",
]
