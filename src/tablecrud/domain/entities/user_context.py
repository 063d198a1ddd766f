"""Acting user for change history entries."""

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class UserContext:
    """The user on whose behalf rows are saved.

    Attributes:
        name: Display name written to each history entry.
        time_zone: IANA zone name used to compute the user's local time.
    """

    name: str
    time_zone: str = "UTC"

    @property
    def local_time(self) -> datetime:
        """Current wall-clock time in the user's zone, without tzinfo."""
        now = datetime.now(timezone.utc)
        if self.time_zone.upper() != "UTC":
            now = now.astimezone(ZoneInfo(self.time_zone))
        return now.replace(tzinfo=None)
