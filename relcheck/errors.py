# File: relcheck/errors.py
"""
RelCheck - Model Validation Errors
===================================
Every inconsistency the validators can detect is a distinct exception class.
Each one carries:

- ``code``     — stable upper-snake-case identifier of the violation kind
- ``message``  — human-readable description
- ``context``  — the offending entity types, properties, tables and names as
  a dict; every context entry is also available as an attribute

All violations derive from ``ModelValidationError`` and end the validation
pass.  Groups of related kinds share an intermediate base class
(``ForeignKeyConflictError``, ``IndexConflictError``,
``DuplicateColumnNameError``, ``IncompatibleTableError``) so callers can
catch a whole family.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from relcheck.utils import format_names, format_value


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class ModelValidationError(Exception):
    """Base class of every model violation."""

    code: str = "MODEL_VALIDATION_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = context
        for key, value in context.items():
            setattr(self, key, value)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}

    def __str__(self) -> str:
        return self.message


class AggregateModelValidationError(ModelValidationError):
    """Several independent violations found in one step, reported together."""

    code = "MULTIPLE_VIOLATIONS"

    def __init__(self, errors: Sequence[ModelValidationError]) -> None:
        self.errors: List[ModelValidationError] = list(errors)
        lines: List[str] = [f"{len(self.errors)} model violations were found:"]
        lines.extend(f"  - {e.message}" for e in self.errors)
        super().__init__("\n".join(lines), codes=[e.code for e in self.errors])


# ---------------------------------------------------------------------------
# Shared tables
# ---------------------------------------------------------------------------


class IncompatibleTableError(ModelValidationError):
    """An entity type cannot share its table with the other entity types."""

    code = "INCOMPATIBLE_TABLE"


class IncompatibleTableNoRelationshipError(IncompatibleTableError):
    code = "INCOMPATIBLE_TABLE_NO_RELATIONSHIP"

    def __init__(self, table: str, entity_type: str, other_entity_type: Optional[str]) -> None:
        if other_entity_type is None:
            message: str = (
                f"Cannot use table '{table}' for entity type '{entity_type}' since "
                f"no entity type mapped to it can act as the root of the table; "
                f"every candidate depends on another one through its primary key."
            )
        else:
            message = (
                f"Cannot use table '{table}' for entity type '{entity_type}' since "
                f"it is being used for entity type '{other_entity_type}' and there "
                f"is no relationship between their primary keys."
            )
        super().__init__(
            message,
            table=table,
            entity_type=entity_type,
            other_entity_type=other_entity_type,
        )


class IncompatibleTableKeyNameMismatchError(IncompatibleTableError):
    code = "INCOMPATIBLE_TABLE_KEY_NAME_MISMATCH"

    def __init__(
        self,
        table: str,
        entity_type: str,
        other_entity_type: str,
        key_name: str,
        key_properties: Sequence[str],
        other_key_name: str,
        other_key_properties: Sequence[str],
    ) -> None:
        super().__init__(
            f"Cannot use table '{table}' for entity type '{other_entity_type}' "
            f"since it is being used for entity type '{entity_type}' and the name "
            f"'{key_name}' of the primary key {format_names(key_properties)} does "
            f"not match the name '{other_key_name}' of the primary key "
            f"{format_names(other_key_properties)}.",
            table=table,
            entity_type=entity_type,
            other_entity_type=other_entity_type,
            key_name=key_name,
            key_properties=list(key_properties),
            other_key_name=other_key_name,
            other_key_properties=list(other_key_properties),
        )


class MissingConcurrencyColumnError(ModelValidationError):
    code = "MISSING_CONCURRENCY_COLUMN"

    def __init__(self, entity_type: str, column: str, table: str) -> None:
        super().__init__(
            f"Entity type '{entity_type}' doesn't contain a property mapped to "
            f"the store-generated concurrency token column '{column}' which is "
            f"used by another entity type sharing the table '{table}'. Add a "
            f"store-generated property to '{entity_type}' mapped to the same column.",
            entity_type=entity_type,
            column=column,
            table=table,
        )


# ---------------------------------------------------------------------------
# Shared columns
# ---------------------------------------------------------------------------


class DuplicateColumnNameError(ModelValidationError):
    """Two properties mapped to the same column disagree on the column."""

    code = "DUPLICATE_COLUMN_NAME"
    _difference: str = "configuration"

    def __init__(
        self,
        entity_type: str,
        property_name: str,
        duplicate_entity_type: str,
        duplicate_property_name: str,
        column: str,
        table: str,
        value: Any = None,
        duplicate_value: Any = None,
    ) -> None:
        super().__init__(
            f"'{entity_type}.{property_name}' and "
            f"'{duplicate_entity_type}.{duplicate_property_name}' are both mapped "
            f"to column '{column}' in '{table}' but are configured with different "
            f"{self._difference}{self._describe(value, duplicate_value)}.",
            entity_type=entity_type,
            property_name=property_name,
            duplicate_entity_type=duplicate_entity_type,
            duplicate_property_name=duplicate_property_name,
            column=column,
            table=table,
            value=value,
            duplicate_value=duplicate_value,
        )

    @staticmethod
    def _describe(value: Any, duplicate_value: Any) -> str:
        return f" ('{value}' and '{duplicate_value}')"


class DuplicateColumnNameDataTypeMismatchError(DuplicateColumnNameError):
    code = "DUPLICATE_COLUMN_NAME_DATA_TYPE_MISMATCH"
    _difference = "data types"


class DuplicateColumnNameNullabilityMismatchError(DuplicateColumnNameError):
    code = "DUPLICATE_COLUMN_NAME_NULLABILITY_MISMATCH"
    _difference = "column nullability settings"

    @staticmethod
    def _describe(value: Any, duplicate_value: Any) -> str:
        return ""


class DuplicateColumnNameComputedSqlMismatchError(DuplicateColumnNameError):
    code = "DUPLICATE_COLUMN_NAME_COMPUTED_SQL_MISMATCH"
    _difference = "computed values"


class DuplicateColumnNameDefaultMismatchError(DuplicateColumnNameError):
    code = "DUPLICATE_COLUMN_NAME_DEFAULT_MISMATCH"
    _difference = "default values"

    @staticmethod
    def _describe(value: Any, duplicate_value: Any) -> str:
        return f" ({format_value(value)} and {format_value(duplicate_value)})"


class DuplicateColumnNameDefaultSqlMismatchError(DuplicateColumnNameError):
    code = "DUPLICATE_COLUMN_NAME_DEFAULT_SQL_MISMATCH"
    _difference = "default value SQL"


# ---------------------------------------------------------------------------
# Shared keys, foreign keys & indexes
# ---------------------------------------------------------------------------


class DuplicateKeyColumnMismatchError(ModelValidationError):
    code = "DUPLICATE_KEY_COLUMN_MISMATCH"

    def __init__(
        self,
        key_properties: Sequence[str],
        entity_type: str,
        duplicate_properties: Sequence[str],
        duplicate_entity_type: str,
        table: str,
        key_name: str,
        columns: Sequence[str],
        duplicate_columns: Sequence[str],
    ) -> None:
        super().__init__(
            f"The keys {format_names(key_properties)} on '{entity_type}' and "
            f"{format_names(duplicate_properties)} on '{duplicate_entity_type}' "
            f"are both mapped to '{table}.{key_name}' but with different columns "
            f"({format_names(columns)} and {format_names(duplicate_columns)}).",
            key_properties=list(key_properties),
            entity_type=entity_type,
            duplicate_properties=list(duplicate_properties),
            duplicate_entity_type=duplicate_entity_type,
            table=table,
            key_name=key_name,
            columns=list(columns),
            duplicate_columns=list(duplicate_columns),
        )


class ForeignKeyConflictError(ModelValidationError):
    """Two foreign keys share a constraint name but are not compatible."""

    code = "FOREIGN_KEY_CONFLICT"
    _difference: str = "configurations"

    def __init__(
        self,
        foreign_key_properties: Sequence[str],
        entity_type: str,
        duplicate_properties: Sequence[str],
        duplicate_entity_type: str,
        table: str,
        foreign_key_name: str,
        value: Any = None,
        duplicate_value: Any = None,
    ) -> None:
        super().__init__(
            f"The foreign keys {format_names(foreign_key_properties)} on "
            f"'{entity_type}' and {format_names(duplicate_properties)} on "
            f"'{duplicate_entity_type}' are both mapped to "
            f"'{table}.{foreign_key_name}' but use different "
            f"{self._difference} ({_render(value)} and {_render(duplicate_value)}).",
            foreign_key_properties=list(foreign_key_properties),
            entity_type=entity_type,
            duplicate_properties=list(duplicate_properties),
            duplicate_entity_type=duplicate_entity_type,
            table=table,
            foreign_key_name=foreign_key_name,
            value=value,
            duplicate_value=duplicate_value,
        )


class DuplicateForeignKeyColumnMismatchError(ForeignKeyConflictError):
    code = "DUPLICATE_FOREIGN_KEY_COLUMN_MISMATCH"
    _difference = "columns"


class DuplicateForeignKeyPrincipalTableMismatchError(ForeignKeyConflictError):
    code = "DUPLICATE_FOREIGN_KEY_PRINCIPAL_TABLE_MISMATCH"
    _difference = "principal tables"


class DuplicateForeignKeyPrincipalColumnsMismatchError(ForeignKeyConflictError):
    code = "DUPLICATE_FOREIGN_KEY_PRINCIPAL_COLUMNS_MISMATCH"
    _difference = "principal columns"


class DuplicateForeignKeyDeleteBehaviorMismatchError(ForeignKeyConflictError):
    code = "DUPLICATE_FOREIGN_KEY_DELETE_BEHAVIOR_MISMATCH"
    _difference = "delete behaviors"


class IndexConflictError(ModelValidationError):
    """Two indexes share a name but are not compatible."""

    code = "INDEX_CONFLICT"


class DuplicateIndexColumnMismatchError(IndexConflictError):
    code = "DUPLICATE_INDEX_COLUMN_MISMATCH"

    def __init__(
        self,
        index_properties: Sequence[str],
        entity_type: str,
        duplicate_properties: Sequence[str],
        duplicate_entity_type: str,
        table: str,
        index_name: str,
        columns: Sequence[str],
        duplicate_columns: Sequence[str],
    ) -> None:
        super().__init__(
            f"The indexes {format_names(index_properties)} on '{entity_type}' and "
            f"{format_names(duplicate_properties)} on '{duplicate_entity_type}' "
            f"are both mapped to '{table}.{index_name}' but with different columns "
            f"({format_names(columns)} and {format_names(duplicate_columns)}).",
            index_properties=list(index_properties),
            entity_type=entity_type,
            duplicate_properties=list(duplicate_properties),
            duplicate_entity_type=duplicate_entity_type,
            table=table,
            index_name=index_name,
            columns=list(columns),
            duplicate_columns=list(duplicate_columns),
        )


class DuplicateIndexUniquenessMismatchError(IndexConflictError):
    code = "DUPLICATE_INDEX_UNIQUENESS_MISMATCH"

    def __init__(
        self,
        index_properties: Sequence[str],
        entity_type: str,
        duplicate_properties: Sequence[str],
        duplicate_entity_type: str,
        table: str,
        index_name: str,
    ) -> None:
        super().__init__(
            f"The indexes {format_names(index_properties)} on '{entity_type}' and "
            f"{format_names(duplicate_properties)} on '{duplicate_entity_type}' "
            f"are both mapped to '{table}.{index_name}' but with different "
            f"uniqueness configurations.",
            index_properties=list(index_properties),
            entity_type=entity_type,
            duplicate_properties=list(duplicate_properties),
            duplicate_entity_type=duplicate_entity_type,
            table=table,
            index_name=index_name,
        )


# ---------------------------------------------------------------------------
# Inheritance
# ---------------------------------------------------------------------------


class DerivedTypeTableError(ModelValidationError):
    code = "DERIVED_TYPE_TABLE"

    def __init__(self, entity_type: str, base_type: str) -> None:
        super().__init__(
            f"Cannot configure a table for '{entity_type}' since it is a derived "
            f"type of '{base_type}'. Only the root of a hierarchy maps the table.",
            entity_type=entity_type,
            base_type=base_type,
        )


class NoDiscriminatorPropertyError(ModelValidationError):
    code = "NO_DISCRIMINATOR_PROPERTY"

    def __init__(self, entity_type: str) -> None:
        super().__init__(
            f"The entity type '{entity_type}' is part of a hierarchy, but does "
            f"not have a discriminator property configured.",
            entity_type=entity_type,
        )


class NoDiscriminatorValueError(ModelValidationError):
    code = "NO_DISCRIMINATOR_VALUE"

    def __init__(self, entity_type: str) -> None:
        super().__init__(
            f"The entity type '{entity_type}' is part of a hierarchy, but does "
            f"not have a discriminator value configured.",
            entity_type=entity_type,
        )


class DuplicateDiscriminatorValueError(ModelValidationError):
    code = "DUPLICATE_DISCRIMINATOR_VALUE"

    def __init__(self, entity_type: str, value: Any, duplicate_entity_type: str) -> None:
        super().__init__(
            f"The discriminator value for '{entity_type}' is {format_value(value)} "
            f"which is the same as the discriminator value for "
            f"'{duplicate_entity_type}'. Every concrete entity type in a "
            f"hierarchy needs a unique discriminator value.",
            entity_type=entity_type,
            value=value,
            duplicate_entity_type=duplicate_entity_type,
        )


# ---------------------------------------------------------------------------
# Database functions
# ---------------------------------------------------------------------------


class FunctionNameEmptyError(ModelValidationError):
    code = "FUNCTION_NAME_EMPTY"

    def __init__(self, function: str) -> None:
        super().__init__(
            f"The database function '{function}' has no name set.",
            function=function,
        )


class InvalidReturnTypeError(ModelValidationError):
    code = "INVALID_RETURN_TYPE"

    def __init__(self, function: str, return_type: str) -> None:
        super().__init__(
            f"The database function '{function}' has an invalid return type "
            f"'{return_type}'. Ensure the return type can be mapped by the "
            f"current provider.",
            function=function,
            return_type=return_type,
        )


class InvalidParameterTypeError(ModelValidationError):
    code = "INVALID_PARAMETER_TYPE"

    def __init__(self, parameter: str, function: str, parameter_type: str) -> None:
        super().__init__(
            f"The parameter '{parameter}' of database function '{function}' has "
            f"an invalid type '{parameter_type}'. Ensure the parameter type can "
            f"be mapped by the current provider.",
            parameter=parameter,
            function=function,
            parameter_type=parameter_type,
        )


def _render(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return format_names(value)
    return format_value(value)


__all__: List[str] = [
    "ModelValidationError",
    "AggregateModelValidationError",
    "IncompatibleTableError",
    "IncompatibleTableNoRelationshipError",
    "IncompatibleTableKeyNameMismatchError",
    "MissingConcurrencyColumnError",
    "DuplicateColumnNameError",
    "DuplicateColumnNameDataTypeMismatchError",
    "DuplicateColumnNameNullabilityMismatchError",
    "DuplicateColumnNameComputedSqlMismatchError",
    "DuplicateColumnNameDefaultMismatchError",
    "DuplicateColumnNameDefaultSqlMismatchError",
    "DuplicateKeyColumnMismatchError",
    "ForeignKeyConflictError",
    "DuplicateForeignKeyColumnMismatchError",
    "DuplicateForeignKeyPrincipalTableMismatchError",
    "DuplicateForeignKeyPrincipalColumnsMismatchError",
    "DuplicateForeignKeyDeleteBehaviorMismatchError",
    "IndexConflictError",
    "DuplicateIndexColumnMismatchError",
    "DuplicateIndexUniquenessMismatchError",
    "DerivedTypeTableError",
    "NoDiscriminatorPropertyError",
    "NoDiscriminatorValueError",
    "DuplicateDiscriminatorValueError",
    "FunctionNameEmptyError",
    "InvalidReturnTypeError",
    "InvalidParameterTypeError",
]
