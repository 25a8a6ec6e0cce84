"""Storage service for Google Cloud Storage operations.

Folders are ``/``-delimited prefixes inside a single bucket. A folder exists
when its placeholder object (``<folder>/``) or at least one object under the
prefix exists. The client library is blocking, so every public method is a
coroutine that runs the call in a worker thread.
"""

import asyncio
import io
import posixpath
import zipfile
from collections.abc import Callable
from typing import Any, TypeVar

import google.auth
import google.auth.transport.requests
import google.oauth2.credentials
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound
from google.oauth2 import service_account

from ..config import Settings
from ..errors import StorageError, StorageNotFoundError
from ..logging_config import get_logger
from ..models import StorageEntry

logger = get_logger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105
STORAGE_SCOPES = ["https://www.googleapis.com/auth/devstorage.read_write"]
FOLDER_PLACEHOLDER_CONTENT_TYPE = "application/x-directory"

T = TypeVar("T")


def build_credentials(settings: Settings) -> Any:
    """
    Build Google credentials from the configured credential material.

    A refresh token (with client id/secret) wins over a static access token;
    with neither, Application Default Credentials are used.
    """
    if settings.refresh_token:
        return google.oauth2.credentials.Credentials(
            token=None,
            refresh_token=settings.refresh_token,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            token_uri=TOKEN_URI,
            scopes=STORAGE_SCOPES,
        )
    if settings.access_token:
        return google.oauth2.credentials.Credentials(token=settings.access_token)

    credentials, _ = google.auth.default(scopes=STORAGE_SCOPES)
    return credentials


class StorageService:
    """Async gateway over one GCS bucket addressed by path strings."""

    def __init__(self, settings: Settings, client: Any = None, credentials: Any = None) -> None:
        """
        Initialize the storage service.

        Args:
            settings: Validated application settings
            client: Preconfigured ``storage.Client`` (built from settings when omitted)
            credentials: Credentials used for signing temporary links

        Raises:
            ConfigurationError: If settings are incomplete
            StorageError: If the client cannot be created
        """
        settings.validate()
        self.settings = settings
        self.bucket_name = settings.bucket

        try:
            if client is None:
                credentials = credentials or build_credentials(settings)
                client = storage.Client(project=settings.project_id, credentials=credentials)
            self.client = client
            self.credentials = credentials if credentials is not None else getattr(client, "_credentials", None)
            self.bucket = self.client.bucket(self.bucket_name)
            logger.info(
                "storage_service_initialized",
                bucket=self.bucket_name,
                project_id=settings.project_id,
                credential_mode=settings.credential_mode,
            )
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    @staticmethod
    def _prefix(folder_path: str) -> str:
        return f"{folder_path.strip('/')}/"

    @staticmethod
    def _entry_from_blob(blob: Any, prefix: str) -> StorageEntry:
        return StorageEntry(
            name=blob.name[len(prefix) :],
            path=blob.name,
            is_file=True,
            modified_at=blob.updated,
            size=blob.size or 0,
        )

    # Listing and metadata

    def _list_folder(self, folder_path: str) -> list[StorageEntry]:
        prefix = self._prefix(folder_path)
        try:
            iterator = self.client.list_blobs(self.bucket, prefix=prefix, delimiter="/")
            entries = [self._entry_from_blob(blob, prefix) for blob in iterator if blob.name != prefix]
            # Prefixes are only populated once the pages have been consumed.
            for sub_prefix in sorted(iterator.prefixes):
                entries.append(
                    StorageEntry(name=sub_prefix[len(prefix) :].rstrip("/"), path=sub_prefix.rstrip("/"), is_file=False)
                )
            return entries
        except GoogleCloudError as e:
            raise StorageError(f"Failed to list folder '{folder_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error listing '{folder_path}': {e}", original_exception=e) from e

    async def list_folder(self, folder_path: str) -> list[StorageEntry]:
        """
        List the direct children of a folder.

        Returns:
            list[StorageEntry]: files first, then sub-folders (``is_file=False``)

        Raises:
            StorageError: If the listing fails
        """
        return await self._run(self._list_folder, folder_path)

    async def list_files(self, folder_path: str) -> list[StorageEntry]:
        """List only the file entries of a folder."""
        return [entry for entry in await self.list_folder(folder_path) if entry.is_file]

    def _get_metadata(self, path: str) -> StorageEntry:
        try:
            blob = self.bucket.get_blob(path)
        except NotFound as e:
            raise StorageNotFoundError(path, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to get metadata for '{path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error getting metadata for '{path}': {e}", original_exception=e) from e

        if blob is None:
            raise StorageNotFoundError(path)
        parent = posixpath.dirname(path)
        return self._entry_from_blob(blob, f"{parent}/" if parent else "")

    async def get_metadata(self, path: str) -> StorageEntry:
        """
        Get metadata of a single file.

        Raises:
            StorageNotFoundError: If nothing exists at ``path``
            StorageError: If the lookup fails for another reason
        """
        return await self._run(self._get_metadata, path)

    def _folder_exists(self, folder_path: str) -> bool:
        prefix = self._prefix(folder_path)
        try:
            if self.bucket.blob(prefix).exists():
                return True
            return any(True for _ in self.client.list_blobs(self.bucket, prefix=prefix, max_results=1))
        except GoogleCloudError as e:
            raise StorageError(f"Failed to check folder '{folder_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error checking folder '{folder_path}': {e}", original_exception=e) from e

    async def folder_exists(self, folder_path: str) -> bool:
        """Check whether a folder placeholder or any object under it exists."""
        return await self._run(self._folder_exists, folder_path)

    def _create_folder(self, folder_path: str) -> None:
        try:
            self.bucket.blob(self._prefix(folder_path)).upload_from_string(
                b"", content_type=FOLDER_PLACEHOLDER_CONTENT_TYPE
            )
            logger.info("folder_created", folder=folder_path)
        except GoogleCloudError as e:
            raise StorageError(f"Failed to create folder '{folder_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error creating folder '{folder_path}': {e}", original_exception=e) from e

    async def create_folder(self, folder_path: str) -> None:
        """Create the placeholder object of a folder."""
        await self._run(self._create_folder, folder_path)

    async def ensure_folder(self, folder_path: str) -> bool:
        """
        Create a folder if it does not exist yet.

        Returns:
            bool: True if the folder was created by this call
        """
        if await self.folder_exists(folder_path):
            return False
        await self.create_folder(folder_path)
        return True

    # Content

    def _download(self, path: str) -> bytes:
        try:
            data: bytes = self.bucket.blob(path).download_as_bytes()
            logger.debug("file_downloaded", path=path, size=len(data))
            return data
        except NotFound as e:
            raise StorageNotFoundError(path, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to download file '{path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error downloading '{path}': {e}", original_exception=e) from e

    async def download(self, path: str) -> bytes:
        """Download the full content of a file."""
        return await self._run(self._download, path)

    def _upload(self, path: str, data: bytes, content_type: str, overwrite: bool) -> None:
        try:
            blob = self.bucket.blob(path)
            if overwrite:
                blob.upload_from_string(data, content_type=content_type)
            else:
                blob.upload_from_string(data, content_type=content_type, if_generation_match=0)
            logger.info("file_uploaded", path=path, size=len(data), content_type=content_type)
        except GoogleCloudError as e:
            raise StorageError(f"Failed to upload file '{path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error uploading '{path}': {e}", original_exception=e) from e

    async def upload(
        self, path: str, data: bytes, content_type: str = "application/octet-stream", overwrite: bool = True
    ) -> None:
        """
        Upload content to ``path``.

        Args:
            path: Destination path
            data: File content
            content_type: MIME type stored with the object
            overwrite: Replace an existing object; when False the upload fails if one exists
        """
        await self._run(self._upload, path, data, content_type, overwrite)

    # Temporary links

    def _signing_kwargs(self) -> dict[str, Any]:
        """Use IAM signing when the credentials cannot sign locally."""
        if isinstance(self.credentials, service_account.Credentials):
            return {}
        email = self.settings.signer_email or getattr(self.credentials, "service_account_email", None)
        if not email or self.credentials is None:
            return {}
        if not self.credentials.valid:
            self.credentials.refresh(google.auth.transport.requests.Request())
        return {"service_account_email": email, "access_token": self.credentials.token}

    def _get_temporary_link(self, path: str) -> str:
        try:
            url: str = self.bucket.blob(path).generate_signed_url(
                version="v4",
                expiration=self.settings.temporary_link_ttl,
                method="GET",
                **self._signing_kwargs(),
            )
            logger.debug("temporary_link_generated", path=path)
            return url
        except GoogleCloudError as e:
            raise StorageError(f"Failed to generate temporary link for '{path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error generating temporary link: {e}", original_exception=e) from e

    async def get_temporary_link(self, path: str) -> str:
        """Issue a short-lived URL granting read access to one file."""
        return await self._run(self._get_temporary_link, path)

    # Move / delete

    def _move(self, from_path: str, to_path: str) -> None:
        try:
            self.bucket.rename_blob(self.bucket.blob(from_path), to_path)
            logger.info("file_moved", from_path=from_path, to_path=to_path)
        except NotFound as e:
            raise StorageNotFoundError(from_path, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to move '{from_path}' to '{to_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error moving '{from_path}': {e}", original_exception=e) from e

    async def move(self, from_path: str, to_path: str) -> None:
        """Move a file to a new path."""
        await self._run(self._move, from_path, to_path)

    def _delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
            logger.info("file_deleted", path=path)
        except NotFound as e:
            raise StorageNotFoundError(path, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete file '{path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error deleting '{path}': {e}", original_exception=e) from e

    async def delete(self, path: str) -> None:
        """Delete a file."""
        await self._run(self._delete, path)

    # Zip bundling

    def _download_zip(self, folder_path: str) -> bytes:
        if not self._folder_exists(folder_path):
            raise StorageNotFoundError(folder_path)

        root = posixpath.basename(folder_path.strip("/"))
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entry in self._list_folder(folder_path):
                if entry.is_file:
                    archive.writestr(f"{root}/{entry.name}", self._download(entry.path))
        data = buffer.getvalue()
        logger.info("folder_zipped", folder=folder_path, size=len(data))
        return data

    async def download_zip(self, folder_path: str) -> bytes:
        """
        Bundle the files of a folder into a zip archive.

        Entries are stored under the folder's own name, e.g. ``Final/a.jpg``.

        Raises:
            StorageNotFoundError: If the folder does not exist
            StorageError: If listing or downloading fails
        """
        return await self._run(self._download_zip, folder_path)
