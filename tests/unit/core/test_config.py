import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tablecrud.core.config import Settings, get_settings


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.app_name == "TableCrud"
    assert settings.environment == "development"
    assert settings.debug is False
    assert settings.database_url == "sqlite+aiosqlite:///./data/tablecrud.db"
    assert settings.sql_dialect == "auto"
    assert settings.change_tracking_enabled is True
    assert settings.history_null_text == "<null>"
    assert settings.history_version_empty_saves is False
    assert settings.is_development is True
    assert settings.is_sqlite is True


def test_settings_env_override():
    """Test that environment variables override defaults."""
    with patch.dict(os.environ, {
        "TABLECRUD_ENVIRONMENT": "production",
        "TABLECRUD_DATABASE_URL": "postgresql+asyncpg://u:p@db/app",
        "TABLECRUD_SQL_DIALECT": "mssql",
        "TABLECRUD_CHANGE_TRACKING_ENABLED": "false",
    }):
        settings = Settings(_env_file=None)

    assert settings.is_production is True
    assert settings.is_sqlite is False
    assert settings.sql_dialect == "mssql"
    assert settings.change_tracking_enabled is False


def test_log_level_is_case_insensitive():
    with patch.dict(os.environ, {"TABLECRUD_LOG_LEVEL": "debug"}):
        assert Settings(_env_file=None).log_level == "DEBUG"


def test_empty_null_text_is_rejected():
    with patch.dict(os.environ, {"TABLECRUD_HISTORY_NULL_TEXT": ""}):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


def test_invalid_dialect_is_rejected():
    with patch.dict(os.environ, {"TABLECRUD_SQL_DIALECT": "oracle"}):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
