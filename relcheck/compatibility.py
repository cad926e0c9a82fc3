# File: relcheck/compatibility.py
"""
RelCheck - Compatibility Predicates
====================================
Pairwise checks for two foreign keys or two indexes that end up with the
same name in one table.

Both predicates run in one of two modes:

- ``should_throw=False``: return ``True`` or ``False`` only
- ``should_throw=True``: raise the specific violation for the first
  difference found instead of returning ``False``

The verdict does not depend on argument order; only the order of names in
the violation message does (the first argument is the element being checked,
``duplicate`` the one seen earlier).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from relcheck.errors import (
    DuplicateForeignKeyColumnMismatchError,
    DuplicateForeignKeyDeleteBehaviorMismatchError,
    DuplicateForeignKeyPrincipalColumnsMismatchError,
    DuplicateForeignKeyPrincipalTableMismatchError,
    DuplicateIndexColumnMismatchError,
    DuplicateIndexUniquenessMismatchError,
)
from relcheck.metadata import ForeignKey, Index, Property, TableIdentifier

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.compatibility")


def property_names(properties: Sequence[Property]) -> List[str]:
    return [p.name for p in properties]


def column_names(properties: Sequence[Property]) -> List[str]:
    """Ordered column projection of ``properties``."""
    return [p.column_name for p in properties]


# ---------------------------------------------------------------------------
# Foreign keys
# ---------------------------------------------------------------------------


def foreign_keys_compatible(
    foreign_key: ForeignKey,
    duplicate: ForeignKey,
    table: TableIdentifier,
    should_throw: bool = False,
) -> bool:
    """
    Two foreign keys sharing a constraint name are compatible when they use
    the same columns, reference the same principal table and columns and
    have the same delete behaviour.
    """
    common: Dict[str, Any] = dict(
        foreign_key_properties=property_names(foreign_key.properties),
        entity_type=foreign_key.declaring_entity_type.name,
        duplicate_properties=property_names(duplicate.properties),
        duplicate_entity_type=duplicate.declaring_entity_type.name,
        table=str(table),
        foreign_key_name=foreign_key.name,
    )

    columns: List[str] = column_names(foreign_key.properties)
    duplicate_columns: List[str] = column_names(duplicate.properties)
    if columns != duplicate_columns:
        logger.debug(
            "Foreign key %s on %s: columns %s differ from %s.",
            foreign_key.name,
            table,
            columns,
            duplicate_columns,
        )
        if should_throw:
            raise DuplicateForeignKeyColumnMismatchError(
                value=columns, duplicate_value=duplicate_columns, **common
            )
        return False

    principal_table: TableIdentifier = foreign_key.principal_entity_type.table
    duplicate_principal_table: TableIdentifier = duplicate.principal_entity_type.table
    if principal_table != duplicate_principal_table:
        logger.debug(
            "Foreign key %s on %s: principal table %s differs from %s.",
            foreign_key.name,
            table,
            principal_table,
            duplicate_principal_table,
        )
        if should_throw:
            raise DuplicateForeignKeyPrincipalTableMismatchError(
                value=str(principal_table),
                duplicate_value=str(duplicate_principal_table),
                **common,
            )
        return False

    principal_columns: List[str] = column_names(foreign_key.principal_key.properties)
    duplicate_principal_columns: List[str] = column_names(
        duplicate.principal_key.properties
    )
    if principal_columns != duplicate_principal_columns:
        logger.debug(
            "Foreign key %s on %s: principal columns %s differ from %s.",
            foreign_key.name,
            table,
            principal_columns,
            duplicate_principal_columns,
        )
        if should_throw:
            raise DuplicateForeignKeyPrincipalColumnsMismatchError(
                value=principal_columns,
                duplicate_value=duplicate_principal_columns,
                **common,
            )
        return False

    if foreign_key.on_delete != duplicate.on_delete:
        logger.debug(
            "Foreign key %s on %s: delete behavior %s differs from %s.",
            foreign_key.name,
            table,
            foreign_key.on_delete,
            duplicate.on_delete,
        )
        if should_throw:
            raise DuplicateForeignKeyDeleteBehaviorMismatchError(
                value=foreign_key.on_delete,
                duplicate_value=duplicate.on_delete,
                **common,
            )
        return False

    return True


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------


def indexes_compatible(
    index: Index,
    duplicate: Index,
    table: TableIdentifier,
    should_throw: bool = False,
) -> bool:
    """Same ordered columns and same uniqueness."""
    columns: List[str] = column_names(index.properties)
    duplicate_columns: List[str] = column_names(duplicate.properties)
    if columns != duplicate_columns:
        logger.debug(
            "Index %s on %s: columns %s differ from %s.",
            index.name,
            table,
            columns,
            duplicate_columns,
        )
        if should_throw:
            raise DuplicateIndexColumnMismatchError(
                property_names(index.properties),
                index.declaring_entity_type.name,
                property_names(duplicate.properties),
                duplicate.declaring_entity_type.name,
                str(table),
                index.name,
                columns,
                duplicate_columns,
            )
        return False

    if index.is_unique != duplicate.is_unique:
        logger.debug(
            "Index %s on %s: uniqueness differs.", index.name, table
        )
        if should_throw:
            raise DuplicateIndexUniquenessMismatchError(
                property_names(index.properties),
                index.declaring_entity_type.name,
                property_names(duplicate.properties),
                duplicate.declaring_entity_type.name,
                str(table),
                index.name,
            )
        return False

    return True


__all__: List[str] = [
    "column_names",
    "property_names",
    "foreign_keys_compatible",
    "indexes_compatible",
]
