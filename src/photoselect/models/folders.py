"""
Managed folder roles and their storage paths.
"""

from dataclasses import dataclass, field
from enum import Enum


class ManagedFolder(Enum):
    """Logical storage locations used by the service."""

    SOURCE = "source"
    WEB = "web"
    ARCHIVE = "archive"
    FINAL = "final"
    FINAL_WEB = "final_web"
    SELECTIONS = "selections"


DEFAULT_FOLDER_PATHS: dict[ManagedFolder, str] = {
    ManagedFolder.SOURCE: "PhotoSelection/Source",
    ManagedFolder.WEB: "PhotoSelection/Web",
    ManagedFolder.ARCHIVE: "PhotoSelection/Archive",
    ManagedFolder.FINAL: "PhotoSelection/Final",
    ManagedFolder.FINAL_WEB: "PhotoSelection/Final_Web",
    ManagedFolder.SELECTIONS: "PhotoSelection/Selections",
}


@dataclass(frozen=True)
class FolderTable:
    """
    Maps every ManagedFolder to exactly one storage path.

    Paths are stored without leading or trailing slashes.
    """

    paths: dict[ManagedFolder, str] = field(default_factory=lambda: dict(DEFAULT_FOLDER_PATHS))

    def __post_init__(self) -> None:
        missing = [folder.value for folder in ManagedFolder if folder not in self.paths]
        if missing:
            raise ValueError(f"Folder table is missing paths for: {', '.join(missing)}")
        normalized = {folder: path.strip("/") for folder, path in self.paths.items()}
        object.__setattr__(self, "paths", normalized)

    def path(self, folder: ManagedFolder) -> str:
        """Get the storage path of a managed folder."""
        return self.paths[folder]

    def child(self, folder: ManagedFolder, name: str) -> str:
        """Get the storage path of a file directly inside a managed folder."""
        return f"{self.paths[folder]}/{name}"

    def all_paths(self) -> list[str]:
        """Get every managed path in declaration order."""
        return [self.paths[folder] for folder in ManagedFolder]
