"""
Maintenance tasks for running one pass on demand.

    photoselect-tasks init-folders
    photoselect-tasks optimize [--final]
    photoselect-tasks sweep
"""

import asyncio

from invoke import Collection, Context, Program, task

from .. import __version__
from ..config import Config, Settings
from ..container import ServiceContainer, build_container
from ..logging_config import configure_structured_logging, get_logger

logger = get_logger(__name__)


def _build(env_file: str) -> ServiceContainer:
    configure_structured_logging()
    settings = Settings.from_env(Config(env_file))
    return build_container(settings)


@task(help={"env_file": "Path to the environment file. Default is '.env'."})
def init_folders(c: Context, env_file: str = ".env"):
    """Create any managed folder that does not exist yet."""
    container = _build(env_file)
    created = asyncio.run(container.init_folders())
    logger.info("folders_initialized", created=created)
    print(f"Created {len(created)} folder(s).")


@task(
    help={
        "final": "Mirror the final folder into the final-preview folder instead of source into web.",
        "env_file": "Path to the environment file. Default is '.env'.",
    }
)
def optimize(c: Context, final: bool = False, env_file: str = ".env"):
    """Run one optimizer pass and wait for it to finish."""
    container = _build(env_file)
    if final:
        result = asyncio.run(container.optimizer.optimize_final())
    else:
        result = asyncio.run(container.optimizer.optimize_previews())

    if result is None:
        print("Final folder not found, nothing to do.")
        return
    print(f"Optimization complete. Processed: {result.processed}, Skipped: {result.skipped}, Failed: {result.failed}")


@task(help={"env_file": "Path to the environment file. Default is '.env'."})
def sweep(c: Context, env_file: str = ".env"):
    """Run one retention sweep now."""
    container = _build(env_file)
    result = asyncio.run(container.sweeper.sweep())
    print(
        f"Cleanup complete. Archived: {len(result.archived)}, Deleted: {len(result.deleted)}, "
        f"Failed: {len(result.failed)}"
    )


namespace = Collection(init_folders, optimize, sweep)
program = Program(namespace=namespace, version=__version__, name="photoselect-tasks", binary="photoselect-tasks")


def main() -> None:
    program.run()
