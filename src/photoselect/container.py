"""
Service wiring.

``build_container`` constructs every service from one ``Settings`` object.
Tests and the CLI pass their own storage gateway, clock, task runner or
scheduler; the HTTP app keeps the container on ``app.state``.
"""

from dataclasses import dataclass
from typing import Any

from .clock import Clock, utc_now
from .config import Settings, get_settings
from .errors import PhotoSelectError
from .logging_config import StatusLog, get_logger
from .services.background import AsyncioTaskRunner, CleanupScheduler, TaskRunner
from .services.image_processor import ImageProcessor, get_image_processor
from .services.link_cache import LinkCache
from .services.optimizer import Optimizer
from .services.selection import SelectionRecorder
from .services.storage import StorageService
from .services.sweeper import RetentionSweeper

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    storage: Any
    clock: Clock
    status_log: StatusLog
    processor: ImageProcessor
    optimizer: Optimizer
    link_cache: LinkCache
    sweeper: RetentionSweeper
    selections: SelectionRecorder
    tasks: TaskRunner
    scheduler: CleanupScheduler

    async def init_folders(self) -> list[str]:
        """
        Create any managed folder that does not exist yet.

        Returns:
            list[str]: Paths created by this call
        """
        created = []
        for path in self.settings.folders.all_paths():
            try:
                if await self.storage.ensure_folder(path):
                    created.append(path)
                    self.status_log.add(f"Created folder: {path}")
            except PhotoSelectError as e:
                self.status_log.add(f"Could not ensure folder {path}: {e}", level="warning")
        return created

    async def startup(self, start_scheduler: bool = True) -> None:
        """Ensure folders, start both optimizer passes in the background, schedule the sweep."""
        await self.init_folders()
        self.tasks.spawn(self.optimizer.optimize_previews(), name="optimize_previews")
        self.tasks.spawn(self.optimizer.optimize_final(), name="optimize_final")
        if start_scheduler:
            self.scheduler.start()

    async def shutdown(self) -> None:
        self.scheduler.shutdown()
        cancel_all = getattr(self.tasks, "cancel_all", None)
        if cancel_all is not None:
            await cancel_all()


def build_container(
    settings: Settings | None = None,
    storage: Any = None,
    clock: Clock = utc_now,
    tasks: TaskRunner | None = None,
    scheduler: Any = None,
    processor: ImageProcessor | None = None,
) -> ServiceContainer:
    """
    Build all services.

    Raises:
        ConfigurationError: If settings are incomplete (only when storage is built here)
    """
    settings = settings or get_settings()
    if storage is None:
        storage = StorageService(settings)

    status_log = StatusLog(clock=clock)
    processor = processor or get_image_processor()
    sweeper = RetentionSweeper(storage, settings, status_log, clock=clock)

    return ServiceContainer(
        settings=settings,
        storage=storage,
        clock=clock,
        status_log=status_log,
        processor=processor,
        optimizer=Optimizer(storage, processor, settings, status_log),
        link_cache=LinkCache(storage, settings, status_log, clock=clock),
        sweeper=sweeper,
        selections=SelectionRecorder(storage, settings, status_log, clock=clock),
        tasks=tasks if tasks is not None else AsyncioTaskRunner(),
        scheduler=CleanupScheduler(sweeper, settings, scheduler=scheduler),
    )
