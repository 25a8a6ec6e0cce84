"""
Models module for photoselect.

This module contains the data models shared by services and the API:
- ManagedFolder / FolderTable: logical folders and their storage paths
- StorageEntry: one item of a folder listing
- ImageRecord / FinalImageRecord: gallery listing records
- ResizeSpec: width and JPEG quality of a derived copy
- SelectionSubmission: a client's recorded selection
"""

from .entry import StorageEntry
from .folders import DEFAULT_FOLDER_PATHS, FolderTable, ManagedFolder
from .image import FinalImageRecord, ImageRecord, ResizeSpec
from .selection import SelectionSubmission

__all__ = [
    "DEFAULT_FOLDER_PATHS",
    "FinalImageRecord",
    "FolderTable",
    "ImageRecord",
    "ManagedFolder",
    "ResizeSpec",
    "SelectionSubmission",
    "StorageEntry",
]
