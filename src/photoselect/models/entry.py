"""
Storage listing entry model.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StorageEntry:
    """One item returned by a folder listing."""

    name: str
    path: str
    is_file: bool = True
    modified_at: datetime | None = None
    size: int = 0

    def age_days(self, now: datetime) -> float:
        """
        Age of the entry in fractional days.

        Entries without a modification time are treated as brand new.
        """
        if self.modified_at is None:
            return 0.0
        return (now - self.modified_at).total_seconds() / 86400
