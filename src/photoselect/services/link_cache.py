"""
Time-boxed cache of temporary links for gallery listings.

Each listing key owns a single slot holding the last payload and its expiry.
A read inside the TTL returns the stored payload without touching storage; a
read after expiry lists the backing folder again and issues fresh temporary
links, a fixed-size batch at a time. There is no lock: concurrent misses may
each refresh, and the last one to finish wins the slot.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from ..clock import Clock, utc_now
from ..config import Settings
from ..errors import PhotoSelectError
from ..logging_config import StatusLog, get_logger
from ..models import FinalImageRecord, ImageRecord, ManagedFolder, StorageEntry

logger = get_logger(__name__)

R = TypeVar("R")


class ListingKey(Enum):
    """Cached listings."""

    ALL_IMAGES = "all_images"
    FINAL_IMAGES = "final_images"


@dataclass(frozen=True)
class LinkCacheEntry:
    """One cache slot."""

    payload: list[Any]
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at


class LinkCache:
    """Serves listings of temporary links, refreshing lazily on expiry."""

    def __init__(self, storage: Any, settings: Settings, status_log: StatusLog, clock: Clock = utc_now) -> None:
        self.storage = storage
        self.settings = settings
        self.status_log = status_log
        self.clock = clock
        self._entries: dict[ListingKey, LinkCacheEntry] = {}

    async def get_images(self, listing_key: ListingKey = ListingKey.ALL_IMAGES) -> list[Any]:
        """
        Get the listing for ``listing_key``, from cache when fresh.

        Returns:
            list[ImageRecord] for ALL_IMAGES, list[FinalImageRecord] for FINAL_IMAGES

        Raises:
            StorageError: If the backing preview folder cannot be listed
        """
        now = self.clock()
        entry = self._entries.get(listing_key)
        if entry is not None and entry.is_fresh(now):
            self.status_log.add(f"Returning {listing_key.value} from cache", level="debug")
            return entry.payload

        if listing_key is ListingKey.FINAL_IMAGES:
            payload: list[Any] = await self._refresh_final_images()
        else:
            payload = await self._refresh_all_images()

        self._entries[listing_key] = LinkCacheEntry(payload=payload, expires_at=now + self.settings.cache_ttl)
        return payload

    async def get_final_images(self) -> list[FinalImageRecord]:
        """Get the final delivery listing."""
        return await self.get_images(ListingKey.FINAL_IMAGES)

    def entry(self, listing_key: ListingKey) -> LinkCacheEntry | None:
        """Current slot content for ``listing_key`` (may be stale)."""
        return self._entries.get(listing_key)

    async def _refresh_all_images(self) -> list[ImageRecord]:
        self.status_log.add("Fetching fresh image links from storage...")
        files = await self.storage.list_files(self.settings.folders.path(ManagedFolder.WEB))

        async def fetch(entry: StorageEntry) -> ImageRecord:
            url = await self.storage.get_temporary_link(entry.path)
            return ImageRecord(name=entry.name, url=url, date=entry.modified_at)

        return await self.fetch_in_batches(files, fetch)

    async def _refresh_final_images(self) -> list[FinalImageRecord]:
        self.status_log.add("Fetching Final image links...")
        folders = self.settings.folders
        final_files, web_files = await asyncio.gather(
            self._list_or_empty(folders.path(ManagedFolder.FINAL)),
            self._list_or_empty(folders.path(ManagedFolder.FINAL_WEB)),
        )
        previews = {entry.name: entry for entry in web_files}

        async def fetch(entry: StorageEntry) -> FinalImageRecord:
            original_url = await self.storage.get_temporary_link(entry.path)
            mobile_url = original_url
            preview = previews.get(entry.name)
            if preview is not None:
                mobile_url = await self.storage.get_temporary_link(preview.path)
            return FinalImageRecord(
                name=entry.name,
                original_url=original_url,
                mobile_url=mobile_url,
                date=entry.modified_at,
            )

        return await self.fetch_in_batches(final_files, fetch)

    async def _list_or_empty(self, folder_path: str) -> list[StorageEntry]:
        try:
            files: list[StorageEntry] = await self.storage.list_files(folder_path)
            return files
        except PhotoSelectError as e:
            logger.warning("listing_unavailable", folder=folder_path, error=str(e))
            return []

    async def fetch_in_batches(
        self, entries: Sequence[StorageEntry], fetch: Callable[[StorageEntry], Awaitable[R]]
    ) -> list[R]:
        """
        Run ``fetch`` for every entry, concurrently within a batch and batch after batch.

        A failing entry is logged and dropped; its batch siblings are kept.
        """
        batch_size = self.settings.link_batch_size
        total_batches = math.ceil(len(entries) / batch_size)
        results: list[R] = []

        for index, start in enumerate(range(0, len(entries), batch_size), start=1):
            batch = entries[start : start + batch_size]
            batch_results = await asyncio.gather(*(self._fetch_one(entry, fetch) for entry in batch))
            results.extend(result for result in batch_results if result is not None)
            self.status_log.add(f"Fetched batch {index}/{total_batches}", level="debug")

        return results

    async def _fetch_one(self, entry: StorageEntry, fetch: Callable[[StorageEntry], Awaitable[R]]) -> R | None:
        try:
            return await fetch(entry)
        except PhotoSelectError as e:
            self.status_log.add(f"Error fetching link for {entry.name}: {e}", level="warning")
            return None
