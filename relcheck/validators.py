# File: relcheck/validators.py
"""
RelCheck - Relational Model Validators
=======================================
Cross-entity validation of a ``RelationalModel`` before it is used to build
a schema or queries.

The hard part is table sharing: several entity types mapped onto one
physical table, through inheritance or through identifying foreign keys
(table splitting).  For every table the pipeline checks that:

- exactly one entity type is the structural root of the table
- every other entity type is reachable from it through inheritance or an
  identifying foreign key, with the same primary key name
- properties, keys, foreign keys and indexes landing on the same column or
  constraint agree with each other
- store-generated concurrency tokens are mapped by every participant

After that, inheritance hierarchies are checked for discriminators, and
database functions for mappable store types.

Every violation raises a ``relcheck.errors.ModelValidationError`` and ends
the pass.  Conditions that are suspicious but legal are reported as
warnings on a ``DiagnosticsReport`` instead.

Usage::

    from relcheck.validators import validate_model
    report = validate_model(definition, config)
    for warning in report.warnings:
        print(warning)
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, NoReturn, Optional, Sequence, Set, Tuple

from relcheck.compatibility import (
    column_names,
    foreign_keys_compatible,
    indexes_compatible,
    property_names,
)
from relcheck.errors import (
    AggregateModelValidationError,
    DerivedTypeTableError,
    DuplicateColumnNameComputedSqlMismatchError,
    DuplicateColumnNameDataTypeMismatchError,
    DuplicateColumnNameDefaultMismatchError,
    DuplicateColumnNameDefaultSqlMismatchError,
    DuplicateColumnNameNullabilityMismatchError,
    DuplicateDiscriminatorValueError,
    DuplicateKeyColumnMismatchError,
    FunctionNameEmptyError,
    IncompatibleTableKeyNameMismatchError,
    IncompatibleTableNoRelationshipError,
    InvalidParameterTypeError,
    InvalidReturnTypeError,
    MissingConcurrencyColumnError,
    ModelValidationError,
    NoDiscriminatorPropertyError,
    NoDiscriminatorValueError,
)
from relcheck.metadata import (
    EntityType,
    ForeignKey,
    Index,
    Key,
    Property,
    RelationalModel,
    TableIdentifier,
    is_in_ownership_path,
)
from relcheck.models import ModelDefinition, ValidationConfig, ValueGenerated
from relcheck.typemapping import TypeMappingSource

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.validators")

# ---------------------------------------------------------------------------
# Diagnostics container
# ---------------------------------------------------------------------------


class Diagnostic:
    """Lightweight non-fatal finding (no Pydantic overhead)."""

    __slots__ = ("code", "message", "context")

    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"[WARNING] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class DiagnosticsReport:
    """
    Collects the warnings of validation.

    Hand the same report to several ``validate`` calls to gather their
    warnings in one place.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.warning("%s: %s", code, message)
        self._items.append(Diagnostic(code, message, context))

    @property
    def warnings(self) -> List[Diagnostic]:
        return list(self._items)

    @property
    def has_warnings(self) -> bool:
        return bool(self._items)

    @property
    def warning_count(self) -> int:
        return len(self._items)

    def codes(self) -> List[str]:
        return [d.code for d in self._items]

    def summary(self) -> str:
        return f"Diagnostics: {self.warning_count} warning(s)."

    def __repr__(self) -> str:
        return f"<DiagnosticsReport {self.summary()}>"

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            lines.append(f"  ⚠️ [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Table grouping
# ---------------------------------------------------------------------------


def group_entity_types_by_table(
    model: RelationalModel,
) -> Dict[TableIdentifier, List[EntityType]]:
    """
    Group entity types by the table they map onto, in declaration order.

    Entity types without a primary key never share a table and are left out.
    """
    keyed: List[EntityType] = [
        e for e in model.entity_types if e.find_primary_key() is not None
    ]
    tables: Dict[TableIdentifier, List[EntityType]] = {}
    for entity_type in keyed:
        tables.setdefault(entity_type.table, []).append(entity_type)

    logger.debug(
        "Grouped %d keyed entity types into %d table(s).", len(keyed), len(tables)
    )
    return tables


# ---------------------------------------------------------------------------
# Shared table structure
# ---------------------------------------------------------------------------


def _identifying_foreign_keys(entity_type: EntityType) -> List[ForeignKey]:
    """Foreign keys over the primary key that target a primary key."""
    primary_key: Optional[Key] = entity_type.find_primary_key()
    if primary_key is None:
        return []
    return [
        fk
        for fk in entity_type.find_foreign_keys(primary_key.properties)
        if fk.is_identifying
    ]


def _is_identifying_principal(dependent: EntityType, principal: EntityType) -> bool:
    return any(
        fk.principal_entity_type is principal
        for fk in _identifying_foreign_keys(dependent)
    )


def _depends_on_table_member(entity_type: EntityType, members: Set[EntityType]) -> bool:
    return any(
        fk.principal_entity_type.root_type() is not entity_type
        and fk.principal_entity_type in members
        for fk in _identifying_foreign_keys(entity_type)
    )


def _raise_unrelated(
    table: TableIdentifier, entity_types: Sequence[EntityType], root: Optional[EntityType]
) -> NoReturn:
    errors: List[ModelValidationError] = [
        IncompatibleTableNoRelationshipError(
            str(table), e.name, root.name if root is not None else None
        )
        for e in entity_types
    ]
    if len(errors) == 1:
        raise errors[0]
    raise AggregateModelValidationError(errors)


def validate_shared_table_structure(
    mapped_types: Sequence[EntityType], table: TableIdentifier
) -> None:
    """
    Check that the entity types sharing ``table`` form one tree.

    The root is the only member without a base type and without an
    identifying foreign key to another member.  Every other member must be
    reached from it breadth-first, following "derives from" and
    "identifying foreign key to" edges, and must use the same primary key
    name as the member it was reached from.  Members left unreached are
    reported together.
    """
    if len(mapped_types) < 2:
        return

    members: List[EntityType] = list(mapped_types)
    member_set: Set[EntityType] = set(members)

    root: Optional[EntityType] = None
    for mapped_type in members:
        if mapped_type.base_type is not None or _depends_on_table_member(
            mapped_type, member_set
        ):
            continue

        if root is not None:
            raise IncompatibleTableNoRelationshipError(
                str(table), mapped_type.name, root.name
            )
        root = mapped_type

    if root is None:
        _raise_unrelated(table, members, None)

    # edges computed once: i → j when j derives from i or identifies i
    adjacency: List[List[int]] = [
        [
            j
            for j, candidate in enumerate(members)
            if candidate is not node
            and (
                node.is_assignable_from(candidate)
                or _is_identifying_principal(candidate, node)
            )
        ]
        for node in members
    ]

    root_index: int = members.index(root)
    resolved: List[bool] = [False] * len(members)
    resolved[root_index] = True
    queue: Deque[int] = deque([root_index])

    while queue:
        current: int = queue.popleft()
        entity_type: EntityType = members[current]
        key: Key = entity_type.find_primary_key()  # type: ignore[assignment]
        for nxt in adjacency[current]:
            if resolved[nxt]:
                continue
            next_type: EntityType = members[nxt]
            other_key: Key = next_type.find_primary_key()  # type: ignore[assignment]
            if key.name != other_key.name:
                raise IncompatibleTableKeyNameMismatchError(
                    str(table),
                    entity_type.name,
                    next_type.name,
                    key.name,
                    property_names(key.properties),
                    other_key.name,
                    property_names(other_key.properties),
                )
            resolved[nxt] = True
            queue.append(nxt)

    unresolved: List[EntityType] = [
        e for e, done in zip(members, resolved) if not done
    ]
    if unresolved:
        _raise_unrelated(table, unresolved, root)


# ---------------------------------------------------------------------------
# Shared columns
# ---------------------------------------------------------------------------


def _equals_ignore_case(left: Optional[str], right: Optional[str]) -> bool:
    if left is None or right is None:
        return left is right
    return left.lower() == right.lower()


def _values_equal(left: Any, right: Any) -> bool:
    # 1, 1.0 and True are different defaults
    return type(left) is type(right) and left == right


def _shares_concurrency_token(declaring_type: EntityType, entity_type: EntityType) -> bool:
    return (
        declaring_type.is_assignable_from(entity_type)
        or is_in_ownership_path(declaring_type, entity_type)
        or is_in_ownership_path(entity_type, declaring_type)
    )


def _store_type(prop: Property, type_mapping: TypeMappingSource) -> Optional[str]:
    if prop.column_type is not None:
        return prop.column_type
    return type_mapping.find_store_type(prop.value_type)


def _validate_compatible_columns(
    prop: Property,
    duplicate: Property,
    table: TableIdentifier,
    type_mapping: TypeMappingSource,
) -> None:
    names: Dict[str, str] = dict(
        entity_type=prop.declaring_entity_type.name,
        property_name=prop.name,
        duplicate_entity_type=duplicate.declaring_entity_type.name,
        duplicate_property_name=duplicate.name,
        column=prop.column_name,
        table=str(table),
    )

    current_type: Optional[str] = _store_type(prop, type_mapping)
    previous_type: Optional[str] = _store_type(duplicate, type_mapping)
    if not _equals_ignore_case(current_type, previous_type):
        raise DuplicateColumnNameDataTypeMismatchError(
            value=current_type, duplicate_value=previous_type, **names
        )

    if prop.is_column_nullable != duplicate.is_column_nullable:
        raise DuplicateColumnNameNullabilityMismatchError(
            value=prop.is_column_nullable,
            duplicate_value=duplicate.is_column_nullable,
            **names,
        )

    current_computed: str = prop.computed_sql or ""
    previous_computed: str = duplicate.computed_sql or ""
    if not _equals_ignore_case(current_computed, previous_computed):
        raise DuplicateColumnNameComputedSqlMismatchError(
            value=current_computed, duplicate_value=previous_computed, **names
        )

    if not _values_equal(prop.default_value, duplicate.default_value):
        raise DuplicateColumnNameDefaultMismatchError(
            value=prop.default_value, duplicate_value=duplicate.default_value, **names
        )

    current_default_sql: str = prop.default_value_sql or ""
    previous_default_sql: str = duplicate.default_value_sql or ""
    if not _equals_ignore_case(current_default_sql, previous_default_sql):
        raise DuplicateColumnNameDefaultSqlMismatchError(
            value=current_default_sql, duplicate_value=previous_default_sql, **names
        )


def validate_shared_columns_compatibility(
    mapped_types: Sequence[EntityType],
    table: TableIdentifier,
    type_mapping: TypeMappingSource,
) -> None:
    """
    Check properties sharing a column, and store-generated concurrency tokens.

    The first property mapped to a column is the reference every later one
    is compared against.  A concurrency token refreshed on update must be
    mapped by every member unless the member derives from, or is in an
    ownership relation with, the declaring type.
    """
    concurrency_tokens: Dict[str, Property] = {}
    if len(mapped_types) > 1:
        for prop in (p for e in mapped_types for p in e.properties):
            if prop.is_concurrency_token and prop.generates_on_update:
                concurrency_tokens[prop.column_name] = prop

    property_mappings: Dict[str, Property] = {}
    for entity_type in mapped_types:
        missing_tokens: List[str] = [
            column
            for column, token in concurrency_tokens.items()
            if not _shares_concurrency_token(token.declaring_entity_type, entity_type)
        ]

        for prop in entity_type.properties:
            column: str = prop.column_name
            if column in missing_tokens:
                missing_tokens.remove(column)

            duplicate: Optional[Property] = property_mappings.get(column)
            if duplicate is None:
                property_mappings[column] = prop
                continue

            _validate_compatible_columns(prop, duplicate, table, type_mapping)

        for missing_column in missing_tokens:
            inherited: bool = any(
                p.column_name == missing_column
                for base in entity_type.base_types()
                for p in base.properties
            )
            if not inherited:
                raise MissingConcurrencyColumnError(
                    entity_type.name, missing_column, str(table)
                )


# ---------------------------------------------------------------------------
# Shared keys, foreign keys & indexes
# ---------------------------------------------------------------------------


def validate_shared_keys_compatibility(
    mapped_types: Sequence[EntityType], table: TableIdentifier
) -> None:
    """Keys with the same name must use the same ordered columns."""
    key_mappings: Dict[str, Key] = {}
    for key in (k for e in mapped_types for k in e.keys):
        key_name: str = key.name
        duplicate: Optional[Key] = key_mappings.get(key_name)
        if duplicate is None:
            key_mappings[key_name] = key
            continue

        columns: List[str] = column_names(key.properties)
        duplicate_columns: List[str] = column_names(duplicate.properties)
        if columns != duplicate_columns:
            raise DuplicateKeyColumnMismatchError(
                property_names(key.properties),
                key.declaring_entity_type.name,
                property_names(duplicate.properties),
                duplicate.declaring_entity_type.name,
                str(table),
                key_name,
                columns,
                duplicate_columns,
            )


def validate_shared_foreign_keys_compatibility(
    mapped_types: Sequence[EntityType], table: TableIdentifier
) -> None:
    foreign_key_mappings: Dict[str, ForeignKey] = {}
    for foreign_key in (fk for e in mapped_types for fk in e.foreign_keys):
        duplicate: Optional[ForeignKey] = foreign_key_mappings.get(foreign_key.name)
        if duplicate is None:
            foreign_key_mappings[foreign_key.name] = foreign_key
            continue

        foreign_keys_compatible(foreign_key, duplicate, table, should_throw=True)


def validate_shared_indexes_compatibility(
    mapped_types: Sequence[EntityType], table: TableIdentifier
) -> None:
    index_mappings: Dict[str, Index] = {}
    for index in (i for e in mapped_types for i in e.indexes):
        duplicate: Optional[Index] = index_mappings.get(index.name)
        if duplicate is None:
            index_mappings[index.name] = index
            continue

        indexes_compatible(index, duplicate, table, should_throw=True)


def validate_shared_table_compatibility(
    model: RelationalModel, type_mapping: TypeMappingSource
) -> None:
    """Run every shared-table check for every table of the model."""
    for table, mapped_types in group_entity_types_by_table(model).items():
        logger.debug(
            "Validating table '%s' (%d entity type(s)).", table, len(mapped_types)
        )
        validate_shared_table_structure(mapped_types, table)
        validate_shared_columns_compatibility(mapped_types, table, type_mapping)
        validate_shared_keys_compatibility(mapped_types, table)
        validate_shared_foreign_keys_compatibility(mapped_types, table)
        validate_shared_indexes_compatibility(mapped_types, table)


# ---------------------------------------------------------------------------
# Inheritance
# ---------------------------------------------------------------------------


def _validate_discriminator(entity_type: EntityType) -> None:
    if entity_type.discriminator_property is None:
        raise NoDiscriminatorPropertyError(entity_type.name)
    if entity_type.discriminator_value is None:
        raise NoDiscriminatorValueError(entity_type.name)


def validate_discriminator_values(root: EntityType) -> None:
    """
    Every concrete type of a hierarchy needs a discriminator property and a
    value no other concrete type in the hierarchy uses.
    """
    hierarchy: List[EntityType] = root.get_derived_types_inclusive()
    if len(hierarchy) == 1:
        return

    discriminator_values: Dict[Any, EntityType] = {}
    for entity_type in hierarchy:
        if not entity_type.is_instantiable:
            continue

        _validate_discriminator(entity_type)

        value: Any = entity_type.discriminator_value
        duplicate: Optional[EntityType] = discriminator_values.get(value)
        if duplicate is not None:
            raise DuplicateDiscriminatorValueError(entity_type.name, value, duplicate.name)
        discriminator_values[value] = entity_type


def validate_inheritance_mapping(model: RelationalModel) -> None:
    for entity_type in model.entity_types:
        if entity_type.base_type is not None and entity_type.has_explicit_table:
            raise DerivedTypeTableError(entity_type.name, entity_type.base_type.name)

    for root in model.get_root_entity_types():
        validate_discriminator_values(root)


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


def validate_default_values_on_keys(
    model: RelationalModel, diagnostics: DiagnosticsReport
) -> None:
    """Warn about key properties that have a default value configured."""
    for entity_type in model.entity_types:
        for key in entity_type.keys:
            for prop in key.properties:
                if prop.default_value is None:
                    continue
                diagnostics.add_warning(
                    "KEY_DEFAULT_VALUE",
                    f"The property '{prop.name}' on entity type "
                    f"'{prop.declaring_entity_type.name}' is part of a key and "
                    f"has a default value. The default is only used when no "
                    f"key value is set, so inserts may collide.",
                    {
                        "entity_type": prop.declaring_entity_type.name,
                        "property": prop.name,
                        "key": key.name,
                    },
                )


def _is_not_null_and_false(value: Any) -> bool:
    return value is not None and (not isinstance(value, bool) or value)


def validate_bools_with_defaults(
    model: RelationalModel, diagnostics: DiagnosticsReport
) -> None:
    """
    Warn about store-generated ``bool`` columns whose default is not
    ``False``: the store default would replace an explicit ``False``.
    """
    for entity_type in model.entity_types:
        for prop in entity_type.properties:
            if (
                prop.value_type.lower() in ("bool", "boolean")
                and prop.value_generated != ValueGenerated.NEVER
                and (
                    _is_not_null_and_false(prop.default_value)
                    or prop.default_value_sql is not None
                )
            ):
                diagnostics.add_warning(
                    "BOOL_WITH_DEFAULT",
                    f"The 'bool' property '{prop.name}' on entity type "
                    f"'{entity_type.name}' is configured with a database-generated "
                    f"default. This default will always be used for inserts when "
                    f"the property has the value 'false'. Make the property "
                    f"nullable to distinguish unset from 'false'.",
                    {"entity_type": entity_type.name, "property": prop.name},
                )


# ---------------------------------------------------------------------------
# Database functions
# ---------------------------------------------------------------------------


def validate_db_functions(model: RelationalModel, type_mapping: TypeMappingSource) -> None:
    """Functions need a store name, and untranslated ones mappable types."""
    for function in model.functions:
        if not function.function_name:
            raise FunctionNameEmptyError(function.name)

        if function.is_translated:
            continue

        if type_mapping.find_store_type(function.return_type) is None:
            raise InvalidReturnTypeError(function.name, function.return_type)

        for parameter in function.parameters:
            if type_mapping.find_store_type(parameter.value_type) is None:
                raise InvalidParameterTypeError(
                    parameter.name, function.name, parameter.value_type
                )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

# A base-model check supplied by the caller; raises to fail the pass
BaseValidatorFn = Callable[[RelationalModel], None]


class RelationalModelValidator:
    """
    **Master validation service.**

    Holds only its configuration; every working set lives inside a single
    ``validate`` call, so one instance can serve any number of threads.
    """

    __slots__ = ("type_mapping", "base_validators", "validate_functions")

    def __init__(
        self,
        type_mapping: TypeMappingSource,
        base_validators: Sequence[BaseValidatorFn] = (),
        validate_functions: bool = True,
    ) -> None:
        self.type_mapping: TypeMappingSource = type_mapping
        self.base_validators: Tuple[BaseValidatorFn, ...] = tuple(base_validators)
        self.validate_functions: bool = validate_functions

    def validate(
        self,
        model: RelationalModel,
        diagnostics: Optional[DiagnosticsReport] = None,
    ) -> DiagnosticsReport:
        """
        Validate ``model``; raise the first violation found.

        Returns the diagnostics report holding the warnings of this pass.
        """
        report: DiagnosticsReport = (
            diagnostics if diagnostics is not None else DiagnosticsReport()
        )
        logger.info(
            "Starting relational validation — %d entity types, dialect=%s",
            len(model),
            self.type_mapping.dialect_name,
        )

        try:
            for validator_fn in self.base_validators:
                logger.debug(
                    "Running base validator: %s",
                    getattr(validator_fn, "__name__", repr(validator_fn)),
                )
                validator_fn(model)

            validate_shared_table_compatibility(model, self.type_mapping)
            validate_inheritance_mapping(model)
            validate_default_values_on_keys(model, report)
            validate_bools_with_defaults(model, report)
            if self.validate_functions:
                validate_db_functions(model, self.type_mapping)
        except ModelValidationError as exc:
            logger.error("Validation FAILED [%s]: %s", exc.code, exc.message)
            raise

        logger.info("Validation PASSED. %s", report.summary())
        return report

    def __repr__(self) -> str:
        return f"<RelationalModelValidator {self.type_mapping.dialect_name}>"


def validate_model(
    definition: ModelDefinition,
    config: Optional[ValidationConfig] = None,
    diagnostics: Optional[DiagnosticsReport] = None,
) -> DiagnosticsReport:
    """
    Build the accessor for ``definition`` and validate it.

    This is the single function ``cli.py`` calls.
    """
    config = config or ValidationConfig()
    model: RelationalModel = RelationalModel.from_definition(definition)
    validator: RelationalModelValidator = RelationalModelValidator(
        TypeMappingSource(config.dialect),
        validate_functions=config.validate_functions,
    )
    return validator.validate(model, diagnostics)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Diagnostic",
    "DiagnosticsReport",
    "group_entity_types_by_table",
    "validate_shared_table_structure",
    "validate_shared_columns_compatibility",
    "validate_shared_keys_compatibility",
    "validate_shared_foreign_keys_compatibility",
    "validate_shared_indexes_compatibility",
    "validate_shared_table_compatibility",
    "validate_discriminator_values",
    "validate_inheritance_mapping",
    "validate_default_values_on_keys",
    "validate_bools_with_defaults",
    "validate_db_functions",
    "BaseValidatorFn",
    "RelationalModelValidator",
    "validate_model",
]

logger.debug("relcheck.validators loaded — %d public symbols.", len(__all__))
