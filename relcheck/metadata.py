# File: relcheck/metadata.py
"""
RelCheck - Relational Model Accessor
=====================================
A read-only navigation layer built once from a ``ModelDefinition``.

Definitions refer to each other by name; the accessor resolves those names
into object references (property → declaring entity type, foreign key →
principal key, entity type → base type / owner / derived types) and computes
everything the validators ask about the physical mapping: table identity,
column names, default key / foreign-key / index names and column
nullability.

Nothing here is mutated after ``RelationalModel.from_definition`` returns, so
one accessor can be validated from several threads at once.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from relcheck.models import (
    DbFunctionDefinition,
    EntityTypeDefinition,
    ForeignKeyDefinition,
    KeyDefinition,
    ModelDefinition,
    PropertyDefinition,
    ValueGenerated,
)
from relcheck.utils import join_identifier

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.metadata")

# Value types whose columns are nullable unless configured otherwise
_REFERENCE_VALUE_TYPES: Tuple[str, ...] = ("str", "string", "bytes", "json", "object")


# ---------------------------------------------------------------------------
# Table identity
# ---------------------------------------------------------------------------


class TableIdentifier(NamedTuple):
    """Physical table identity; ``schema`` is ``None`` when there is none."""

    name: str
    schema: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


def _normalize_schema(schema: Optional[str]) -> Optional[str]:
    return schema or None


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------


class Property:
    """A scalar property bound to its declaring entity type."""

    __slots__ = (
        "declaring_entity_type",
        "name",
        "value_type",
        "column_name",
        "column_type",
        "is_concurrency_token",
        "value_generated",
        "computed_sql",
        "default_value",
        "default_value_sql",
        "_nullable",
    )

    def __init__(
        self, declaring_entity_type: "EntityType", definition: PropertyDefinition
    ) -> None:
        self.declaring_entity_type: EntityType = declaring_entity_type
        self.name: str = definition.name
        self.value_type: str = definition.value_type
        self.column_name: str = definition.column_name or definition.name
        self.column_type: Optional[str] = definition.column_type
        self.is_concurrency_token: bool = definition.concurrency_token
        self.value_generated: str = definition.value_generated
        self.computed_sql: Optional[str] = definition.computed_sql
        self.default_value: Any = definition.default_value
        self.default_value_sql: Optional[str] = definition.default_value_sql
        self._nullable: Optional[bool] = definition.nullable

    @property
    def clr_value_type(self) -> str:
        """The value type without its nullable marker (``int?`` → ``int``)."""
        return self.value_type.rstrip("?")

    @property
    def generates_on_update(self) -> bool:
        return self.value_generated in (
            ValueGenerated.ON_UPDATE,
            ValueGenerated.ON_ADD_OR_UPDATE,
        )

    @property
    def is_column_nullable(self) -> bool:
        """
        Explicit override first; primary-key columns are never nullable;
        otherwise nullable value types (``int?``) and reference types are.
        """
        if self._nullable is not None:
            return self._nullable
        primary_key: Optional[Key] = self.declaring_entity_type.find_primary_key()
        if primary_key is not None and self in primary_key.properties:
            return False
        return (
            self.value_type.endswith("?")
            or self.clr_value_type.lower() in _REFERENCE_VALUE_TYPES
        )

    def __repr__(self) -> str:
        return f"<Property {self.declaring_entity_type.name}.{self.name}>"


class Key:
    """Primary or alternate key."""

    __slots__ = ("declaring_entity_type", "properties", "is_primary", "_name")

    def __init__(
        self,
        declaring_entity_type: "EntityType",
        properties: Sequence[Property],
        is_primary: bool,
        name: Optional[str] = None,
    ) -> None:
        self.declaring_entity_type: EntityType = declaring_entity_type
        self.properties: Tuple[Property, ...] = tuple(properties)
        self.is_primary: bool = is_primary
        self._name: Optional[str] = name

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        table: str = self.declaring_entity_type.table.name
        if self.is_primary:
            return join_identifier("PK", table)
        return join_identifier("AK", table, *(p.column_name for p in self.properties))

    def __repr__(self) -> str:
        return f"<Key {self.name}>"


class ForeignKey:
    """A foreign key from the declaring entity type onto a principal key."""

    __slots__ = (
        "declaring_entity_type",
        "properties",
        "principal_entity_type",
        "principal_key",
        "on_delete",
        "_name",
    )

    def __init__(
        self,
        declaring_entity_type: "EntityType",
        properties: Sequence[Property],
        principal_entity_type: "EntityType",
        principal_key: Key,
        on_delete: str,
        name: Optional[str] = None,
    ) -> None:
        self.declaring_entity_type: EntityType = declaring_entity_type
        self.properties: Tuple[Property, ...] = tuple(properties)
        self.principal_entity_type: EntityType = principal_entity_type
        self.principal_key: Key = principal_key
        self.on_delete: str = on_delete
        self._name: Optional[str] = name

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        return join_identifier(
            "FK",
            self.declaring_entity_type.table.name,
            self.principal_entity_type.table.name,
            *(p.column_name for p in self.properties),
        )

    @property
    def is_identifying(self) -> bool:
        """True when the principal key is the principal's primary key."""
        return self.principal_key.is_primary

    def __repr__(self) -> str:
        return f"<FK {self.name}>"


class Index:
    """An index over properties of the declaring entity type."""

    __slots__ = ("declaring_entity_type", "properties", "is_unique", "_name")

    def __init__(
        self,
        declaring_entity_type: "EntityType",
        properties: Sequence[Property],
        is_unique: bool,
        name: Optional[str] = None,
    ) -> None:
        self.declaring_entity_type: EntityType = declaring_entity_type
        self.properties: Tuple[Property, ...] = tuple(properties)
        self.is_unique: bool = is_unique
        self._name: Optional[str] = name

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        return join_identifier(
            "IX",
            self.declaring_entity_type.table.name,
            *(p.column_name for p in self.properties),
        )

    def __repr__(self) -> str:
        return f"<Index {self.name}>"


# ---------------------------------------------------------------------------
# Entity type
# ---------------------------------------------------------------------------


class EntityType:
    """
    An entity type with its declared members and resolved table mapping.

    ``properties``, ``keys``, ``foreign_keys`` and ``indexes`` hold only
    what this type declares; the ``get_*`` methods include inherited ones.
    """

    __slots__ = (
        "name",
        "base_type",
        "owner",
        "derived_types",
        "properties",
        "keys",
        "foreign_keys",
        "indexes",
        "table",
        "has_explicit_table",
        "discriminator_value",
        "is_instantiable",
        "_discriminator_property",
    )

    def __init__(self, definition: EntityTypeDefinition) -> None:
        self.name: str = definition.name
        self.base_type: Optional[EntityType] = None
        self.owner: Optional[EntityType] = None
        self.derived_types: List[EntityType] = []
        self.properties: Tuple[Property, ...] = tuple(
            Property(self, p) for p in definition.properties
        )
        self.keys: Tuple[Key, ...] = ()
        self.foreign_keys: Tuple[ForeignKey, ...] = ()
        self.indexes: Tuple[Index, ...] = ()
        self.table: TableIdentifier = TableIdentifier(definition.name)
        self.has_explicit_table: bool = definition.table is not None
        self.discriminator_value: Any = definition.discriminator_value
        self.is_instantiable: bool = not definition.abstract
        self._discriminator_property: Optional[Property] = None

    # -- Hierarchy ----------------------------------------------------------

    def base_types(self) -> Iterator["EntityType"]:
        """Ancestors, nearest first."""
        current: Optional[EntityType] = self.base_type
        while current is not None:
            yield current
            current = current.base_type

    def root_type(self) -> "EntityType":
        root: EntityType = self
        for ancestor in self.base_types():
            root = ancestor
        return root

    def is_assignable_from(self, other: "EntityType") -> bool:
        """True when ``other`` is this type or derives from it."""
        return other is self or any(t is self for t in other.base_types())

    def get_derived_types_inclusive(self) -> List["EntityType"]:
        """This type followed by every derived type, breadth-first."""
        result: List[EntityType] = [self]
        position: int = 0
        while position < len(result):
            result.extend(result[position].derived_types)
            position += 1
        return result

    # -- Members ------------------------------------------------------------

    def find_property(self, name: str) -> Optional[Property]:
        for entity_type in (self, *self.base_types()):
            for prop in entity_type.properties:
                if prop.name == name:
                    return prop
        return None

    def find_primary_key(self) -> Optional[Key]:
        for entity_type in (self, *self.base_types()):
            for key in entity_type.keys:
                if key.is_primary:
                    return key
        return None

    def get_keys(self) -> List[Key]:
        return [k for t in (self, *self.base_types()) for k in t.keys]

    def get_foreign_keys(self) -> List[ForeignKey]:
        return [fk for t in (self, *self.base_types()) for fk in t.foreign_keys]

    def find_foreign_keys(self, properties: Sequence[Property]) -> List[ForeignKey]:
        """Foreign keys (declared or inherited) over exactly ``properties``."""
        wanted: Tuple[Property, ...] = tuple(properties)
        return [fk for fk in self.get_foreign_keys() if fk.properties == wanted]

    @property
    def discriminator_property(self) -> Optional[Property]:
        for entity_type in (self, *self.base_types()):
            if entity_type._discriminator_property is not None:
                return entity_type._discriminator_property
        return None

    def __repr__(self) -> str:
        return f"<EntityType {self.name} → {self.table}>"


def is_in_ownership_path(entity_type: EntityType, target: EntityType) -> bool:
    """
    True when walking ``entity_type``'s owners reaches a type ``target`` is
    assignable to.
    """
    owner: Optional[EntityType] = entity_type.owner
    while owner is not None:
        if owner.is_assignable_from(target):
            return True
        owner = owner.owner
    return False


# ---------------------------------------------------------------------------
# Database functions
# ---------------------------------------------------------------------------


class FunctionParameter(NamedTuple):
    name: str
    value_type: str


class DbFunction:
    """A scalar database function exposed to queries."""

    __slots__ = ("name", "function_name", "schema", "return_type", "parameters", "is_translated")

    def __init__(self, definition: DbFunctionDefinition) -> None:
        self.name: str = definition.name
        self.function_name: str = (
            definition.name
            if definition.function_name is None
            else definition.function_name
        )
        self.schema: Optional[str] = _normalize_schema(definition.schema_name)
        self.return_type: str = definition.return_type
        self.parameters: Tuple[FunctionParameter, ...] = tuple(
            FunctionParameter(p.name, p.value_type) for p in definition.parameters
        )
        self.is_translated: bool = definition.translated

    def __repr__(self) -> str:
        return f"<DbFunction {self.name}>"


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class RelationalModel:
    """
    Read-only accessor over a whole model.

    Build it with ``RelationalModel.from_definition``; entity types keep the
    declaration order of the definition.
    """

    __slots__ = ("entity_types", "functions", "default_schema", "_entity_map")

    def __init__(
        self,
        entity_types: Sequence[EntityType],
        functions: Sequence[DbFunction] = (),
        default_schema: Optional[str] = None,
    ) -> None:
        self.entity_types: Tuple[EntityType, ...] = tuple(entity_types)
        self.functions: Tuple[DbFunction, ...] = tuple(functions)
        self.default_schema: Optional[str] = _normalize_schema(default_schema)
        self._entity_map: Dict[str, EntityType] = {e.name: e for e in self.entity_types}

    def get_entity_type(self, name: str) -> Optional[EntityType]:
        """O(1) entity type lookup."""
        return self._entity_map.get(name)

    def get_root_entity_types(self) -> List[EntityType]:
        return [e for e in self.entity_types if e.base_type is None]

    def __iter__(self) -> Iterator[EntityType]:
        return iter(self.entity_types)

    def __len__(self) -> int:
        return len(self.entity_types)

    def __repr__(self) -> str:
        return f"<RelationalModel {len(self.entity_types)} entity types>"

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_definition(cls, definition: ModelDefinition) -> "RelationalModel":
        """
        Resolve every name reference of ``definition``.

        Raises:
            ValueError: if a key, foreign key, index or discriminator refers
                to a property or principal key that does not exist.
        """
        default_schema: Optional[str] = _normalize_schema(definition.default_schema)
        entity_types: List[EntityType] = [EntityType(d) for d in definition.entity_types]
        by_name: Dict[str, EntityType] = {e.name: e for e in entity_types}
        pairs: List[Tuple[EntityType, EntityTypeDefinition]] = list(
            zip(entity_types, definition.entity_types)
        )

        for entity_type, entity_def in pairs:
            if entity_def.base_type is not None:
                entity_type.base_type = by_name[entity_def.base_type]
                entity_type.base_type.derived_types.append(entity_type)
            if entity_def.owner is not None:
                entity_type.owner = by_name[entity_def.owner]

        definitions: Dict[str, EntityTypeDefinition] = {
            d.name: d for d in definition.entity_types
        }
        tables: Dict[str, TableIdentifier] = {}
        for entity_type, entity_def in pairs:
            entity_type.table = _resolve_table(
                entity_def, definitions, default_schema, tables
            )

        for entity_type, entity_def in pairs:
            entity_type.keys = tuple(
                _build_key(entity_type, k) for k in entity_def.keys
            )
            if entity_def.discriminator_property is not None:
                entity_type._discriminator_property = _require_properties(
                    entity_type, [entity_def.discriminator_property], "discriminator"
                )[0]

        for entity_type, entity_def in pairs:
            entity_type.foreign_keys = tuple(
                _build_foreign_key(entity_type, fk, by_name[fk.principal_entity])
                for fk in entity_def.foreign_keys
            )
            entity_type.indexes = tuple(
                Index(
                    entity_type,
                    _require_properties(entity_type, i.properties, "index"),
                    i.unique,
                    i.name,
                )
                for i in entity_def.indexes
            )

        functions: List[DbFunction] = [DbFunction(f) for f in definition.functions]
        logger.debug(
            "Built relational model: %d entity types, %d functions.",
            len(entity_types),
            len(functions),
        )
        return cls(entity_types, functions, default_schema)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def _resolve_table(
    entity_def: EntityTypeDefinition,
    definitions: Dict[str, EntityTypeDefinition],
    default_schema: Optional[str],
    resolved: Dict[str, TableIdentifier],
) -> TableIdentifier:
    if entity_def.name in resolved:
        return resolved[entity_def.name]

    if entity_def.table is not None:
        schema: Optional[str] = _normalize_schema(entity_def.schema_name) or default_schema
        table: TableIdentifier = TableIdentifier(entity_def.table, schema)
    else:
        inherited_from: Optional[str] = entity_def.base_type or entity_def.owner
        if inherited_from is not None:
            table = _resolve_table(
                definitions[inherited_from], definitions, default_schema, resolved
            )
        else:
            schema = _normalize_schema(entity_def.schema_name) or default_schema
            table = TableIdentifier(entity_def.name, schema)

    resolved[entity_def.name] = table
    return table


def _require_properties(
    entity_type: EntityType, names: Sequence[str], what: str
) -> List[Property]:
    found: List[Property] = []
    for name in names:
        prop: Optional[Property] = entity_type.find_property(name)
        if prop is None:
            raise ValueError(
                f"The {what} on entity type '{entity_type.name}' references "
                f"unknown property '{name}'."
            )
        found.append(prop)
    return found


def _build_key(entity_type: EntityType, key_def: KeyDefinition) -> Key:
    return Key(
        entity_type,
        _require_properties(entity_type, key_def.properties, "key"),
        key_def.primary,
        key_def.name,
    )


def _build_foreign_key(
    entity_type: EntityType,
    fk_def: ForeignKeyDefinition,
    principal: EntityType,
) -> ForeignKey:
    properties: List[Property] = _require_properties(
        entity_type, fk_def.properties, "foreign key"
    )

    principal_key: Optional[Key]
    if fk_def.principal_key is None:
        principal_key = principal.find_primary_key()
    else:
        wanted: List[Property] = _require_properties(
            principal, fk_def.principal_key, "principal key"
        )
        principal_key = next(
            (k for k in principal.get_keys() if list(k.properties) == wanted),
            None,
        )

    if principal_key is None:
        raise ValueError(
            f"Foreign key {fk_def.properties} on entity type '{entity_type.name}' "
            f"does not target a key of '{principal.name}'."
        )
    if len(principal_key.properties) != len(properties):
        raise ValueError(
            f"Foreign key {fk_def.properties} on entity type '{entity_type.name}' "
            f"has {len(properties)} properties but the principal key has "
            f"{len(principal_key.properties)}."
        )

    return ForeignKey(
        entity_type,
        properties,
        principal,
        principal_key,
        fk_def.on_delete,
        fk_def.name,
    )


__all__: List[str] = [
    "TableIdentifier",
    "Property",
    "Key",
    "ForeignKey",
    "Index",
    "EntityType",
    "FunctionParameter",
    "DbFunction",
    "RelationalModel",
    "is_in_ownership_path",
]
