"""
Services module for photoselect.

This module contains all service classes that handle business logic:
- StorageService: Google Cloud Storage gateway
- ImageProcessor: resize and JPEG re-encoding
- Optimizer: derived-copy generation
- LinkCache: cached temporary-link listings
- RetentionSweeper: archival and deletion of expired files
- SelectionRecorder: persistence of client selections
"""

from .image_processor import ImageProcessor, get_image_processor
from .link_cache import LinkCache, LinkCacheEntry, ListingKey
from .optimizer import OptimizationResult, Optimizer
from .selection import SelectionRecorder
from .storage import StorageService, build_credentials
from .sweeper import RetentionAction, RetentionRule, RetentionSweeper, SweepResult

__all__ = [
    "ImageProcessor",
    "get_image_processor",
    "LinkCache",
    "LinkCacheEntry",
    "ListingKey",
    "OptimizationResult",
    "Optimizer",
    "SelectionRecorder",
    "StorageService",
    "build_credentials",
    "RetentionAction",
    "RetentionRule",
    "RetentionSweeper",
    "SweepResult",
]
