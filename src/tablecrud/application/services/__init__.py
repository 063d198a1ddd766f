"""Application services."""

from tablecrud.application.services.crud_service import CrudService

__all__ = ["CrudService"]
