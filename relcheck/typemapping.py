# File: relcheck/typemapping.py
"""
RelCheck - Store Type Mapping
==============================
Resolves a semantic value type (``int``, ``decimal``, ``datetime``, ...) to
the store type string a dialect would use for it by default.

The mapping goes through SQLAlchemy: the value type selects a generic
SQLAlchemy type, which is then compiled with the target dialect.  A value
type with no generic counterpart, or one the dialect cannot compile, has no
mapping and ``find_store_type`` returns ``None``.  Strings are the exception:
a dialect that refuses a VARCHAR without a length (MySQL) maps them to its
TEXT type.

A ``TypeMappingSource`` only holds its dialect, so a single instance can be
shared by concurrent validation passes.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy import types as sqltypes
from sqlalchemy.engine import Dialect
from sqlalchemy.exc import CompileError
from sqlalchemy.dialects import mssql, mysql, oracle, postgresql, sqlite

from relcheck.models import DatabaseDialect

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.typemapping")

# ---------------------------------------------------------------------------
# Value type → generic SQLAlchemy type
# ---------------------------------------------------------------------------

_GENERIC_TYPES: Dict[str, Callable[[], sqltypes.TypeEngine]] = {
    "bool": sqltypes.Boolean,
    "boolean": sqltypes.Boolean,
    "byte": sqltypes.SmallInteger,
    "short": sqltypes.SmallInteger,
    "int16": sqltypes.SmallInteger,
    "int": sqltypes.Integer,
    "int32": sqltypes.Integer,
    "integer": sqltypes.Integer,
    "long": sqltypes.BigInteger,
    "int64": sqltypes.BigInteger,
    "float": sqltypes.Float,
    "double": sqltypes.Double,
    "decimal": lambda: sqltypes.Numeric(18, 2),
    "str": sqltypes.String,
    "string": sqltypes.String,
    "text": sqltypes.Text,
    "bytes": sqltypes.LargeBinary,
    "date": sqltypes.Date,
    "time": sqltypes.Time,
    "datetime": sqltypes.DateTime,
    "timedelta": sqltypes.Interval,
    "uuid": sqltypes.Uuid,
    "guid": sqltypes.Uuid,
    "json": sqltypes.JSON,
}

_DIALECTS: Dict[str, Callable[[], Dialect]] = {
    DatabaseDialect.POSTGRESQL.value: postgresql.dialect,
    DatabaseDialect.MYSQL.value: mysql.dialect,
    DatabaseDialect.SQLITE.value: sqlite.dialect,
    DatabaseDialect.MSSQL.value: mssql.dialect,
    DatabaseDialect.ORACLE.value: oracle.dialect,
}


class TypeMappingSource:
    """Default store types for one dialect."""

    __slots__ = ("dialect_name", "_dialect")

    def __init__(self, dialect: str = DatabaseDialect.POSTGRESQL.value) -> None:
        name: str = DatabaseDialect(dialect).value
        self.dialect_name: str = name
        self._dialect: Dialect = _DIALECTS[name]()

    def find_store_type(self, value_type: str) -> Optional[str]:
        """
        Return the default store type for ``value_type`` or ``None``.

        A trailing ``?`` (nullable marker) is ignored and the lookup is
        case-insensitive.
        """
        factory: Optional[Callable[[], sqltypes.TypeEngine]] = _GENERIC_TYPES.get(
            value_type.rstrip("?").lower()
        )
        if factory is None:
            return None
        generic: sqltypes.TypeEngine = factory()
        try:
            return generic.compile(dialect=self._dialect)
        except CompileError as exc:
            if isinstance(generic, sqltypes.String) and not isinstance(
                generic, sqltypes.Text
            ):
                # Dialects whose VARCHAR needs a length store strings as TEXT
                logger.debug(
                    "Dialect %s cannot compile %s, using TEXT: %s",
                    self.dialect_name,
                    value_type,
                    exc,
                )
                return sqltypes.Text().compile(dialect=self._dialect)
            logger.debug(
                "Dialect %s cannot compile %s: %s", self.dialect_name, value_type, exc
            )
            return None

    def __repr__(self) -> str:
        return f"<TypeMappingSource {self.dialect_name}>"


__all__: List[str] = ["TypeMappingSource"]
