"""
Derived-copy generation.

The optimizer mirrors a source folder into a derived folder of resized JPEG
copies. A file is processed only when no derived file with the same name
exists; the source content and modification time are never compared, so a
re-run after a completed pass uploads nothing.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..config import Settings
from ..errors import PhotoSelectError, StorageError, StorageNotFoundError
from ..logging_config import StatusLog, get_logger
from ..models import ManagedFolder, ResizeSpec
from .image_processor import ImageProcessor

logger = get_logger(__name__)


@dataclass
class OptimizationResult:
    """Outcome of one optimizer pass."""

    source: str
    derived: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "derived": self.derived,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": list(self.failures),
            "aborted": self.aborted,
        }


class Optimizer:
    """Creates missing derived copies, one file at a time."""

    def __init__(self, storage: Any, processor: ImageProcessor, settings: Settings, status_log: StatusLog) -> None:
        self.storage = storage
        self.processor = processor
        self.settings = settings
        self.status_log = status_log

    async def optimize(self, source: str, derived: str, spec: ResizeSpec, label: str = "") -> OptimizationResult:
        """
        Create a resized copy in ``derived`` for every file of ``source`` that lacks one.

        Per-file failures are logged and counted; they never stop the pass.
        A failure to list ``source`` ends the pass with ``aborted=True``.

        Args:
            source: Source folder path
            derived: Derived folder path
            spec: Target width and JPEG quality
            label: Prefix for status lines (e.g. ``"Final"``)
        """
        tag = f" {label}" if label else ""
        result = OptimizationResult(source=source, derived=derived)
        self.status_log.add(f"Starting{tag.lower()} optimization...", source=source, derived=derived)

        try:
            files = await self.storage.list_files(source)
        except PhotoSelectError as e:
            self.status_log.add(f"Optimization Error{tag}: {e}", level="error")
            result.aborted = True
            return result

        self.status_log.add(f"Found {len(files)} images in {source}.")

        for entry in files:
            derived_path = f"{derived}/{entry.name}"
            try:
                await self.storage.get_metadata(derived_path)
                result.skipped += 1
                continue
            except StorageNotFoundError:
                pass
            except StorageError as e:
                self.status_log.add(f"Failed{tag} {entry.name}: {e}", level="warning")
                result.failed += 1
                result.failures.append(entry.name)
                continue

            self.status_log.add(f"Optimizing{tag}: {entry.name}")
            try:
                data = await self.storage.download(entry.path)
                output = await asyncio.to_thread(self.processor.resize_to_jpeg, data, spec)
                await self.storage.upload(derived_path, output, content_type="image/jpeg", overwrite=True)
                result.processed += 1
                self.status_log.add(f"Success{tag}: {entry.name}")
            except PhotoSelectError as e:
                result.failed += 1
                result.failures.append(entry.name)
                self.status_log.add(f"Failed{tag} {entry.name}: {e}", level="warning")

        self.status_log.add(f"{label} optimization cycle finished." if label else "Optimization cycle finished.")
        logger.info("optimization_finished", **result.to_dict())
        return result

    async def optimize_previews(self) -> OptimizationResult:
        """Mirror the source folder into the web-preview folder."""
        folders = self.settings.folders
        return await self.optimize(
            folders.path(ManagedFolder.SOURCE),
            folders.path(ManagedFolder.WEB),
            self.settings.preview_resize,
        )

    async def optimize_final(self) -> OptimizationResult | None:
        """
        Mirror the final folder into the final-preview folder.

        Returns:
            OptimizationResult, or None when the final folder does not exist yet
        """
        folders = self.settings.folders
        final_path = folders.path(ManagedFolder.FINAL)
        final_web_path = folders.path(ManagedFolder.FINAL_WEB)

        try:
            if not await self.storage.folder_exists(final_path):
                self.status_log.add("Final folder not found, skipping optimization.")
                return None
            if await self.storage.ensure_folder(final_web_path):
                self.status_log.add(f"Created folder: {final_web_path}")
        except PhotoSelectError as e:
            self.status_log.add(f"Final Optimization Error: {e}", level="error")
            return None

        return await self.optimize(final_path, final_web_path, self.settings.final_resize, label="Final")
