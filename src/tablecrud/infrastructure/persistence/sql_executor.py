"""Execution helpers for generated statements.

Every generated statement goes through these helpers so that driver
failures are wrapped in a CrudError carrying the statement and parameters.
"""

from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.exceptions import CrudError
from tablecrud.core.logging import get_logger
from tablecrud.infrastructure.persistence.dialects import SqlDialect

logger = get_logger(__name__)


def _bind(dialect: Optional[SqlDialect], params: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if not params:
        return {}
    return dialect.adapt_params(params) if dialect else dict(params)


async def execute(
    session: AsyncSession,
    sql: str,
    params: Optional[Mapping[str, Any]] = None,
    dialect: Optional[SqlDialect] = None,
) -> int:
    """Execute a statement that returns no rows.

    Returns:
        Number of rows affected.
    """
    bound = _bind(dialect, params)
    logger.debug("Executing statement", sql=sql)
    try:
        result = await session.execute(text(sql), bound)
        return result.rowcount
    except SQLAlchemyError as e:
        logger.error("Statement failed", sql=sql, error=str(e))
        raise CrudError(sql, bound, e) from e


async def fetch_scalar(
    session: AsyncSession,
    sql: str,
    params: Optional[Mapping[str, Any]] = None,
    dialect: Optional[SqlDialect] = None,
) -> Any:
    """Execute a statement and return the first column of the first row."""
    bound = _bind(dialect, params)
    logger.debug("Executing scalar statement", sql=sql)
    try:
        result = await session.execute(text(sql), bound)
        return result.scalar()
    except SQLAlchemyError as e:
        logger.error("Statement failed", sql=sql, error=str(e))
        raise CrudError(sql, bound, e) from e


async def fetch_one(
    session: AsyncSession,
    sql: str,
    params: Optional[Mapping[str, Any]] = None,
    dialect: Optional[SqlDialect] = None,
) -> Optional[RowMapping]:
    """Execute a query expected to match at most one row.

    Returns:
        The row mapping, or None when nothing matched.

    Raises:
        CrudError: If execution fails or more than one row matched.
    """
    bound = _bind(dialect, params)
    logger.debug("Executing single-row query", sql=sql)
    try:
        result = await session.execute(text(sql), bound)
        return result.mappings().one_or_none()
    except SQLAlchemyError as e:
        logger.error("Statement failed", sql=sql, error=str(e))
        raise CrudError(sql, bound, e) from e


async def row_exists(
    session: AsyncSession,
    fragment: str,
    params: Optional[Mapping[str, Any]] = None,
) -> bool:
    """Check whether any row matches a FROM/WHERE fragment.

    Example:
        await row_exists(session, '"Employee" WHERE "LastName"=:name', {"name": "Wainright"})

    Args:
        session: Database session.
        fragment: Table and optional WHERE clause. Never build this from
            untrusted input.
        params: Bind parameters referenced by the fragment.
    """
    sql = f"SELECT CASE WHEN EXISTS (SELECT 1 FROM {fragment}) THEN 1 ELSE 0 END"
    return bool(await fetch_scalar(session, sql, params))
