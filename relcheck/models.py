# File: relcheck/models.py
"""
RelCheck - Model Definition Models
===================================
Pydantic V2 models describing an object-relational mapping model: entity
types, their properties, keys, foreign keys and indexes, inheritance and
ownership, the table each entity type maps onto, and the scalar database
functions exposed to queries.

These models are the declarative input of the pipeline:
Model File → Definition (this module) → Accessor (``metadata``) → Validation.

The structural validators here only reject inputs the accessor could not be
built from (unknown references, inheritance cycles).  Relational consistency
is the job of ``relcheck.validators``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ValueGenerated(str, Enum):
    """When the store generates a value for a property."""

    NEVER = "never"
    ON_ADD = "on_add"
    ON_UPDATE = "on_update"
    ON_ADD_OR_UPDATE = "on_add_or_update"


class OnDeleteAction(str, Enum):
    """Foreign-key ON DELETE behaviour."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


class DatabaseDialect(str, Enum):
    """Target database dialects."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MSSQL = "mssql"
    ORACLE = "oracle"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    validate_default=True,
    frozen=False,
    extra="forbid",
)


def _no_duplicates(values: List[str], what: str) -> List[str]:
    if len(values) != len(set(values)):
        dupes: List[str] = sorted({v for v in values if values.count(v) > 1})
        raise ValueError(f"Duplicate {what}: {dupes}")
    return values


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class PropertyDefinition(BaseModel):
    """
    A scalar property of an entity type and the column it maps onto.

    ``value_type`` is a semantic type name (``int``, ``str``, ``decimal``,
    ...).  A trailing ``?`` marks a nullable value type, e.g. ``int?``.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Property name.")
    value_type: str = Field(..., min_length=1, description="Semantic value type.")
    column_name: Optional[str] = Field(
        default=None, description="Column name (defaults to the property name)."
    )
    column_type: Optional[str] = Field(
        default=None, description="Explicit store type, e.g. 'decimal(18,2)'."
    )
    nullable: Optional[bool] = Field(
        default=None, description="Explicit nullability override."
    )
    concurrency_token: bool = Field(
        default=False, description="Used for optimistic concurrency checks?"
    )
    value_generated: ValueGenerated = Field(
        default=ValueGenerated.NEVER, description="Store value generation mode."
    )
    computed_sql: Optional[str] = Field(
        default=None, description="Computed column SQL expression."
    )
    default_value: Any = Field(default=None, description="Default literal value.")
    default_value_sql: Optional[str] = Field(
        default=None, description="Default value SQL expression."
    )

    @computed_field  # type: ignore[misc]
    @property
    def generates_on_update(self) -> bool:
        # use_enum_values stores the plain string; compare by equality
        return self.value_generated in (
            ValueGenerated.ON_UPDATE,
            ValueGenerated.ON_ADD_OR_UPDATE,
        )

    def __repr__(self) -> str:
        return f"<Property {self.name}: {self.value_type}>"


# ---------------------------------------------------------------------------
# Keys, foreign keys & indexes
# ---------------------------------------------------------------------------


class KeyDefinition(BaseModel):
    """Primary or alternate key."""

    model_config = _SHARED_CONFIG

    properties: List[str] = Field(
        ..., min_length=1, description="Ordered property names."
    )
    name: Optional[str] = Field(default=None, description="Constraint name.")
    primary: bool = Field(default=False, description="Is this the primary key?")

    @field_validator("properties")
    @classmethod
    def _unique_properties(cls, v: List[str]) -> List[str]:
        return _no_duplicates(v, "key properties")


class ForeignKeyDefinition(BaseModel):
    """A foreign key from the declaring entity type onto a principal key."""

    model_config = _SHARED_CONFIG

    properties: List[str] = Field(
        ..., min_length=1, description="Ordered dependent property names."
    )
    principal_entity: str = Field(
        ..., min_length=1, description="Principal entity type name."
    )
    principal_key: Optional[List[str]] = Field(
        default=None,
        description="Principal key property names (defaults to its primary key).",
    )
    name: Optional[str] = Field(default=None, description="Constraint name.")
    on_delete: OnDeleteAction = Field(
        default=OnDeleteAction.NO_ACTION,
        description="ON DELETE referential action.",
    )

    @model_validator(mode="after")
    def _validate_principal_key_arity(self) -> "ForeignKeyDefinition":
        if self.principal_key is not None and len(self.principal_key) != len(
            self.properties
        ):
            raise ValueError(
                f"Foreign key {self.properties} has {len(self.properties)} "
                f"properties but principal key {self.principal_key} has "
                f"{len(self.principal_key)}."
            )
        return self

    def __repr__(self) -> str:
        return f"<FK {self.properties} → {self.principal_entity}>"


class IndexDefinition(BaseModel):
    """Composite or single-property index."""

    model_config = _SHARED_CONFIG

    properties: List[str] = Field(
        ..., min_length=1, description="Ordered property names."
    )
    name: Optional[str] = Field(default=None, description="Index name.")
    unique: bool = Field(default=False, description="UNIQUE index?")

    @field_validator("properties")
    @classmethod
    def _unique_properties(cls, v: List[str]) -> List[str]:
        return _no_duplicates(v, "index properties")


# ---------------------------------------------------------------------------
# Entity type
# ---------------------------------------------------------------------------


class EntityTypeDefinition(BaseModel):
    """
    One entity type and its table mapping.

    ``table`` is only set when the user configured it explicitly.  Without
    it, derived types share their base type's table, owned types share their
    owner's table and everything else maps onto a table named after the
    entity type.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Entity type display name.")
    base_type: Optional[str] = Field(default=None, description="Base entity type.")
    owner: Optional[str] = Field(
        default=None, description="Owning entity type (owned types only)."
    )
    table: Optional[str] = Field(
        default=None, description="Explicitly configured table name."
    )
    schema_name: Optional[str] = Field(
        default=None, alias="schema", description="Database schema."
    )
    properties: List[PropertyDefinition] = Field(default_factory=list)
    keys: List[KeyDefinition] = Field(default_factory=list)
    foreign_keys: List[ForeignKeyDefinition] = Field(default_factory=list)
    indexes: List[IndexDefinition] = Field(default_factory=list)
    discriminator_property: Optional[str] = Field(
        default=None, description="Discriminator property name."
    )
    discriminator_value: Optional[Union[StrictBool, int, float, str]] = Field(
        default=None, description="Scalar discriminator value for this type."
    )
    abstract: bool = Field(
        default=False, description="Abstract types cannot be instantiated."
    )

    @field_validator("properties")
    @classmethod
    def _unique_property_names(
        cls, v: List[PropertyDefinition]
    ) -> List[PropertyDefinition]:
        _no_duplicates([p.name for p in v], "property names")
        return v

    @model_validator(mode="after")
    def _validate_single_primary_key(self) -> "EntityTypeDefinition":
        primary: List[KeyDefinition] = [k for k in self.keys if k.primary]
        if len(primary) > 1:
            raise ValueError(
                f"Entity type '{self.name}' declares {len(primary)} primary keys."
            )
        return self

    def __repr__(self) -> str:
        return f"<EntityType {self.name} ({len(self.properties)} props)>"


# ---------------------------------------------------------------------------
# Database functions
# ---------------------------------------------------------------------------


class ParameterDefinition(BaseModel):
    """A parameter of a database function."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    value_type: str = Field(..., min_length=1)


class DbFunctionDefinition(BaseModel):
    """A scalar database function callable from queries."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Method display name.")
    function_name: Optional[str] = Field(
        default=None, description="Store function name (defaults to name)."
    )
    schema_name: Optional[str] = Field(default=None, alias="schema")
    return_type: str = Field(..., min_length=1)
    parameters: List[ParameterDefinition] = Field(default_factory=list)
    translated: bool = Field(
        default=False,
        description="A custom translation is supplied; store types are not needed.",
    )


# ---------------------------------------------------------------------------
# Root model
# ---------------------------------------------------------------------------


class ModelDefinition(BaseModel):
    """
    The root model: every entity type and database function.

    Invariant: entity names are unique and every base type, owner and
    foreign-key principal refers to a defined entity type.
    """

    model_config = _SHARED_CONFIG

    entity_types: List[EntityTypeDefinition] = Field(default_factory=list)
    functions: List[DbFunctionDefinition] = Field(default_factory=list)
    default_schema: Optional[str] = Field(
        default=None, description="Schema used when an entity type sets none."
    )

    @model_validator(mode="after")
    def _validate_unique_entity_names(self) -> "ModelDefinition":
        _no_duplicates([e.name for e in self.entity_types], "entity type names")
        return self

    @model_validator(mode="after")
    def _validate_references_exist(self) -> "ModelDefinition":
        names: Set[str] = {e.name for e in self.entity_types}
        for entity in self.entity_types:
            if entity.base_type is not None and entity.base_type not in names:
                raise ValueError(
                    f"Entity type '{entity.name}' derives from unknown "
                    f"type '{entity.base_type}'."
                )
            if entity.owner is not None and entity.owner not in names:
                raise ValueError(
                    f"Entity type '{entity.name}' is owned by unknown "
                    f"type '{entity.owner}'."
                )
            for fk in entity.foreign_keys:
                if fk.principal_entity not in names:
                    raise ValueError(
                        f"Entity type '{entity.name}' has a foreign key to "
                        f"'{fk.principal_entity}' which is not defined in the model."
                    )
        return self

    @model_validator(mode="after")
    def _validate_acyclic_hierarchies(self) -> "ModelDefinition":
        parents: Dict[str, Optional[str]] = {
            e.name: e.base_type for e in self.entity_types
        }
        owners: Dict[str, Optional[str]] = {e.name: e.owner for e in self.entity_types}
        # Table resolution follows the base type first, then the owner
        mapped_from: Dict[str, Optional[str]] = {
            e.name: e.base_type or e.owner for e in self.entity_types
        }
        for relation, links in (
            ("inheritance", parents),
            ("ownership", owners),
            ("inheritance/ownership", mapped_from),
        ):
            for start in links:
                seen: Set[str] = {start}
                current: Optional[str] = links[start]
                while current is not None:
                    if current in seen:
                        raise ValueError(
                            f"Circular {relation} chain involving '{start}'."
                        )
                    seen.add(current)
                    current = links.get(current)
        return self

    @computed_field  # type: ignore[misc]
    @property
    def entity_count(self) -> int:
        return len(self.entity_types)

    def get_entity_type(self, name: str) -> Optional[EntityTypeDefinition]:
        for entity in self.entity_types:
            if entity.name == name:
                return entity
        return None

    def __repr__(self) -> str:
        return (
            f"<ModelDefinition {self.entity_count} entity types, "
            f"{len(self.functions)} functions>"
        )


# ---------------------------------------------------------------------------
# Validation configuration
# ---------------------------------------------------------------------------


class ValidationConfig(BaseModel):
    """Settings for one validation run."""

    model_config = _SHARED_CONFIG

    dialect: DatabaseDialect = Field(
        default=DatabaseDialect.POSTGRESQL,
        description="Dialect used to resolve default store types.",
    )
    warnings_as_errors: bool = Field(
        default=False, description="Treat diagnostics warnings as failures (CLI)."
    )
    validate_functions: bool = Field(
        default=True, description="Check database function store types."
    )


__all__: List[str] = [
    "ValueGenerated",
    "OnDeleteAction",
    "DatabaseDialect",
    "PropertyDefinition",
    "KeyDefinition",
    "ForeignKeyDefinition",
    "IndexDefinition",
    "EntityTypeDefinition",
    "ParameterDefinition",
    "DbFunctionDefinition",
    "ModelDefinition",
    "ValidationConfig",
]
