"""Unit tests for SQL dialects."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

from tablecrud.infrastructure.persistence.dialects import (
    SqlDialect,
    SqliteDialect,
    SqlServerDialect,
    dialect_for_session,
    get_dialect,
)


def test_delimit_dotted_names():
    assert SqlServerDialect().delimit("dbo.Employee") == "[dbo].[Employee]"
    assert SqlDialect().delimit("public.employee") == '"public"."employee"'


def test_delimit_drops_empty_segments():
    assert SqlServerDialect().delimit("db..Employee") == "[db].[Employee]"


def test_delimit_escapes_closing_delimiter():
    assert SqlServerDialect().delimit("odd]name") == "[odd]]name]"
    assert SqlDialect().delimit('odd"name') == '"odd""name"'


def test_identity_clauses():
    assert SqlServerDialect().output_clause("Id") == " OUTPUT INSERTED.[Id]"
    assert SqlServerDialect().returning_clause("Id") == ""
    assert SqlDialect().output_clause("Id") == ""
    assert SqlDialect().returning_clause("Id") == ' RETURNING "Id"'


def test_sqlite_adapts_values_it_cannot_bind():
    key = uuid.uuid4()
    params = SqliteDialect().adapt_params(
        {
            "When": datetime(2024, 5, 1, 9, 30),
            "Day": date(2024, 5, 1),
            "Amount": Decimal("10.25"),
            "Key": key,
            "Count": 3,
        }
    )
    assert params == {
        "When": "2024-05-01 09:30:00",
        "Day": "2024-05-01",
        "Amount": "10.25",
        "Key": str(key),
        "Count": 3,
    }


def test_unknown_dialect_falls_back_to_ansi():
    dialect = get_dialect("oracle")
    assert type(dialect) is SqlDialect


def test_dialect_detected_from_session_bind():
    session = MagicMock()
    session.get_bind.return_value.dialect.name = "mssql"
    assert isinstance(dialect_for_session(session), SqlServerDialect)


def test_configured_dialect_wins():
    session = MagicMock()
    session.get_bind.return_value.dialect.name = "mssql"
    with patch(
        "tablecrud.infrastructure.persistence.dialects.get_settings"
    ) as mock_settings:
        mock_settings.return_value.sql_dialect = "sqlite"
        assert isinstance(dialect_for_session(session), SqliteDialect)
