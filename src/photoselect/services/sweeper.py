"""
Retention sweep.

Files older than the retention threshold are moved to the archive folder
(source folder) or deleted outright (derived and delivery folders). Age is
measured from the storage last-modified time and compared strictly, so a
file exactly at the threshold is kept.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..clock import Clock, utc_now
from ..config import Settings
from ..errors import PhotoSelectError
from ..logging_config import StatusLog, get_logger
from ..models import ManagedFolder

logger = get_logger(__name__)


class RetentionAction(Enum):
    ARCHIVE = "archive"
    DELETE = "delete"


@dataclass(frozen=True)
class RetentionRule:
    """What happens to expired files of one managed folder."""

    folder: ManagedFolder
    action: RetentionAction
    target: ManagedFolder | None = None


DEFAULT_RETENTION_RULES: tuple[RetentionRule, ...] = (
    RetentionRule(ManagedFolder.SOURCE, RetentionAction.ARCHIVE, target=ManagedFolder.ARCHIVE),
    RetentionRule(ManagedFolder.FINAL, RetentionAction.DELETE),
    RetentionRule(ManagedFolder.FINAL_WEB, RetentionAction.DELETE),
    RetentionRule(ManagedFolder.WEB, RetentionAction.DELETE),
)


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    archived: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    kept: int = 0
    failed: list[str] = field(default_factory=list)
    failed_folders: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "archived": len(self.archived),
            "deleted": len(self.deleted),
            "kept": self.kept,
            "failed": len(self.failed),
            "failed_folders": list(self.failed_folders),
        }


class RetentionSweeper:
    """Archives or deletes files older than the retention threshold."""

    def __init__(
        self,
        storage: Any,
        settings: Settings,
        status_log: StatusLog,
        clock: Clock = utc_now,
        rules: tuple[RetentionRule, ...] = DEFAULT_RETENTION_RULES,
    ) -> None:
        self.storage = storage
        self.settings = settings
        self.status_log = status_log
        self.clock = clock
        self.rules = rules

    def is_expired(self, age_days: float) -> bool:
        return age_days > self.settings.retention_days

    async def sweep(self) -> SweepResult:
        """Apply every retention rule; failures are logged and skipped."""
        now = self.clock()
        result = SweepResult()
        self.status_log.add("Running cleanup check...")

        for rule in self.rules:
            await self._apply_rule(rule, now, result)

        self.status_log.add(
            f"Cleanup finished: {len(result.archived)} archived, {len(result.deleted)} deleted, "
            f"{len(result.failed)} failed."
        )
        logger.info("sweep_finished", **result.to_dict())
        return result

    async def _apply_rule(self, rule: RetentionRule, now: datetime, result: SweepResult) -> None:
        folders = self.settings.folders
        folder_path = folders.path(rule.folder)

        try:
            files = await self.storage.list_files(folder_path)
        except PhotoSelectError as e:
            self.status_log.add(f"Cleanup error in {folder_path}: {e}", level="error")
            result.failed_folders.append(folder_path)
            return

        for entry in files:
            if not self.is_expired(entry.age_days(now)):
                result.kept += 1
                continue

            try:
                if rule.action is RetentionAction.ARCHIVE and rule.target is not None:
                    await self.storage.move(entry.path, folders.child(rule.target, entry.name))
                    result.archived.append(entry.path)
                    self.status_log.add(f"Archived expired file: {entry.name}")
                else:
                    await self.storage.delete(entry.path)
                    result.deleted.append(entry.path)
                    self.status_log.add(f"Deleted expired file: {entry.name}")
            except PhotoSelectError as e:
                result.failed.append(entry.path)
                self.status_log.add(f"Cleanup failed for {entry.path}: {e}", level="warning")
