"""Optional capabilities a record class can opt into.

Each capability is an abstract mix-in. The repository checks for it with
``isinstance``/``issubclass`` and calls it at the documented point of the
save or load cycle.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from tablecrud.domain.entities.validation import ValidationResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class Validatable(ABC):
    """Record that validates itself before insert and update.

    Both checks run, synchronous first. The first failing result aborts the
    save with a ValidationError before any statement is sent.
    """

    @abstractmethod
    def validate(self) -> ValidationResult:
        ...

    async def validate_async(self, session: "AsyncSession") -> ValidationResult:
        """Database-backed validation, e.g. uniqueness checks."""
        return ValidationResult.ok()


class PostLoad(ABC):
    """Record that loads auxiliary data after it has been fetched."""

    @abstractmethod
    async def on_get(self, session: "AsyncSession") -> None:
        ...


class CustomSelect:
    """Record class that supplies its own FROM and WHERE-by-id fragments.

    Example:
        class EmployeeView(CustomSelect):
            select_from = 'SELECT e.*, d."Name" AS "DeptName" FROM "Employee" e JOIN ...'
            where_id = 'e."Id"=:id'
    """

    select_from: ClassVar[str]
    where_id: ClassVar[str]


class TextLookup(ABC):
    """Record whose key fields should be logged as readable text.

    Used by the logged change tracker to turn stored foreign keys into the
    text a person recognises, using the tracker's own session.
    """

    @abstractmethod
    def lookup_fields(self) -> set[str]:
        """Field names whose values are lookup keys."""
        ...

    @abstractmethod
    async def get_text_from_key(
        self, session: "AsyncSession", field_name: str, key: Any
    ) -> str | None:
        """Resolve a key of the named field to display text, or None."""
        ...
