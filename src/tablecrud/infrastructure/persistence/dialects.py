"""SQL dialects for statement generation.

A dialect decides how identifiers are delimited, how an INSERT reads back
the generated identity in the same round trip, and how values are adapted
for drivers that cannot bind them natively.
"""

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.config import get_settings
from tablecrud.core.logging import get_logger

logger = get_logger(__name__)


class SqlDialect:
    """ANSI behaviour: double-quoted identifiers and ``RETURNING``."""

    name = "ansi"
    start_delimiter = '"'
    end_delimiter = '"'

    def delimit(self, name: str) -> str:
        """Delimit an identifier, one dot-separated segment at a time.

        ``dbo.Employee`` becomes ``"dbo"."Employee"``. Empty segments are
        dropped and closing delimiters inside a segment are doubled.
        """
        escaped = self.end_delimiter * 2
        return ".".join(
            f"{self.start_delimiter}{part.replace(self.end_delimiter, escaped)}{self.end_delimiter}"
            for part in name.split(".")
            if part
        )

    def output_clause(self, identity_column: str) -> str:
        """Fragment placed between the INSERT column list and VALUES."""
        return ""

    def returning_clause(self, identity_column: str) -> str:
        """Fragment appended after the INSERT VALUES list."""
        return f" RETURNING {self.delimit(identity_column)}"

    def adapt_value(self, value: Any) -> Any:
        return value

    def adapt_params(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {key: self.adapt_value(value) for key, value in params.items()}


class SqliteDialect(SqlDialect):
    """SQLite 3.35+ (``RETURNING`` support).

    The sqlite3 driver has no adapters for Decimal or UUID, and its
    date/time adapters are deprecated, so those are bound as text.
    """

    name = "sqlite"

    def adapt_value(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, (Decimal, uuid.UUID)):
            return str(value)
        return value


class PostgresDialect(SqlDialect):
    name = "postgresql"


class SqlServerDialect(SqlDialect):
    """SQL Server: bracket delimiters and ``OUTPUT INSERTED``."""

    name = "mssql"
    start_delimiter = "["
    end_delimiter = "]"

    def output_clause(self, identity_column: str) -> str:
        return f" OUTPUT INSERTED.{self.delimit(identity_column)}"

    def returning_clause(self, identity_column: str) -> str:
        return ""


DIALECTS: dict[str, type[SqlDialect]] = {
    "ansi": SqlDialect,
    "sqlite": SqliteDialect,
    "postgresql": PostgresDialect,
    "mssql": SqlServerDialect,
}


def get_dialect(name: str) -> SqlDialect:
    """Get a dialect by SQLAlchemy dialect name.

    Unknown names fall back to ANSI behaviour.
    """
    dialect_class = DIALECTS.get(name)
    if dialect_class is None:
        logger.warning("Unknown SQL dialect, using ANSI", dialect=name)
        dialect_class = SqlDialect
    return dialect_class()


def dialect_for_session(session: AsyncSession) -> SqlDialect:
    """Pick the dialect from settings, or from the engine the session is bound to."""
    configured = get_settings().sql_dialect
    if configured != "auto":
        return get_dialect(configured)
    return get_dialect(session.get_bind().dialect.name)
