"""Current acting user, stored in a ContextVar.

Lets the host application bind the user once per request or task so that
change trackers deep inside the persistence layer can stamp history
entries without explicit parameter passing.
"""

from contextvars import ContextVar
from typing import Optional

from tablecrud.domain.entities.user_context import UserContext

_current_user: ContextVar[Optional[UserContext]] = ContextVar(
    "current_user_context", default=None
)


def get_current_user() -> Optional[UserContext]:
    """Get the user bound to the current context, or None."""
    return _current_user.get()


def set_current_user(user: UserContext) -> None:
    """Bind the acting user to the current context."""
    _current_user.set(user)


def clear_current_user() -> None:
    """Clear the acting user."""
    _current_user.set(None)
