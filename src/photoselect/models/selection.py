"""
Selection submission model.

A submission is written once to the Selections folder and never read back.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class SelectionSubmission:
    """
    A client's final choice of images.

    The file name combines the user name with the submission timestamp, so
    two submissions never share a name in normal operation.
    """

    user_name: str
    image_names: list[str]
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def count(self) -> int:
        return len(self.image_names)

    @property
    def timestamp(self) -> str:
        """Submission time as a filename-safe ISO-8601 string."""
        iso = self.submitted_at.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return iso.replace(":", "-").replace(".", "-")

    @property
    def file_name(self) -> str:
        return f"{self.user_name}_{self.timestamp}.json"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON document."""
        return {
            "userName": self.user_name,
            "selectionDate": self.submitted_at.astimezone().strftime("%Y/%m/%d %H:%M:%S"),
            "count": self.count,
            "images": list(self.image_names),
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2).encode("utf-8")
