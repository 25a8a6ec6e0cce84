"""
Unit tests for storage service.
"""

import io
import zipfile
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import google.oauth2.credentials
import pytest
from google.api_core.exceptions import RetryError
from google.auth.exceptions import TransportError
from google.cloud.exceptions import GoogleCloudError, NotFound
from google.oauth2 import service_account

from photoselect.config import Settings
from photoselect.errors import ConfigurationError, StorageError, StorageNotFoundError
from photoselect.services.storage import FOLDER_PLACEHOLDER_CONTENT_TYPE, StorageService, build_credentials

MODIFIED = datetime(2026, 2, 1, 9, 30, tzinfo=UTC)


class BlobPage(list):
    """Iterable stand-in for the list_blobs iterator."""

    def __init__(self, blobs=(), prefixes=()):
        super().__init__(blobs)
        self.prefixes = set(prefixes)


def make_blob(name: str, size: int = 10, updated: datetime = MODIFIED) -> MagicMock:
    blob = MagicMock()
    blob.name = name
    blob.size = size
    blob.updated = updated
    return blob


class StorageTestCase:
    """Shared setup: a service bound to a mocked client and bucket."""

    def setup_method(self):
        """Set up test fixtures."""
        self.settings = Settings(bucket="test-photoselect-bucket", project_id="test-project")
        self.client = MagicMock()
        self.bucket = MagicMock()
        self.blobs: dict[str, MagicMock] = {}
        self.bucket.blob.side_effect = lambda path: self.blobs.setdefault(path, make_blob(path))
        self.client.bucket.return_value = self.bucket
        self.credentials = MagicMock(spec=service_account.Credentials)
        self.service = StorageService(self.settings, client=self.client, credentials=self.credentials)


class TestStorageServiceInit(StorageTestCase):
    """Test cases for StorageService construction."""

    def test_init_success(self):
        """Test successful initialization."""
        assert self.service.bucket_name == "test-photoselect-bucket"
        assert self.service.client is self.client
        assert self.service.bucket is self.bucket
        self.client.bucket.assert_called_once_with("test-photoselect-bucket")

    def test_init_missing_bucket_name(self):
        """Test initialization with missing bucket name."""
        with pytest.raises(ConfigurationError, match="GCS_BUCKET environment variable is required"):
            StorageService(Settings(bucket=None), client=MagicMock())

    def test_init_client_error(self):
        """Test initialization with client error."""
        client = MagicMock()
        client.bucket.side_effect = Exception("Client initialization failed")

        with pytest.raises(StorageError, match="Failed to initialize GCS client"):
            StorageService(self.settings, client=client)

    @patch("photoselect.services.storage.storage.Client")
    def test_init_builds_client_from_credentials(self, mock_client_class):
        """Test the client is built from the configured credentials."""
        credentials = MagicMock()

        StorageService(self.settings, credentials=credentials)

        mock_client_class.assert_called_once_with(project="test-project", credentials=credentials)


class TestListing(StorageTestCase):
    """Test cases for folder listing and metadata."""

    async def test_list_folder_skips_placeholder_and_reports_subfolders(self):
        """Test listing returns files and sub-folders but not the folder placeholder."""
        self.client.list_blobs.return_value = BlobPage(
            [make_blob("PhotoSelection/Web/"), make_blob("PhotoSelection/Web/a.jpg", size=42)],
            prefixes=["PhotoSelection/Web/nested/"],
        )

        entries = await self.service.list_folder("PhotoSelection/Web")

        self.client.list_blobs.assert_called_once_with(self.bucket, prefix="PhotoSelection/Web/", delimiter="/")
        assert [(e.name, e.path, e.is_file) for e in entries] == [
            ("a.jpg", "PhotoSelection/Web/a.jpg", True),
            ("nested", "PhotoSelection/Web/nested", False),
        ]
        assert entries[0].size == 42
        assert entries[0].modified_at == MODIFIED

    async def test_list_files_drops_subfolders(self):
        """Test list_files only returns file entries."""
        self.client.list_blobs.return_value = BlobPage(
            [make_blob("PhotoSelection/Web/a.jpg")], prefixes=["PhotoSelection/Web/nested/"]
        )

        entries = await self.service.list_files("PhotoSelection/Web")

        assert [e.name for e in entries] == ["a.jpg"]

    async def test_list_folder_error(self):
        """Test listing failures are wrapped."""
        self.client.list_blobs.side_effect = GoogleCloudError("Listing failed")

        with pytest.raises(StorageError, match="Failed to list folder"):
            await self.service.list_folder("PhotoSelection/Web")

    async def test_get_metadata_success(self):
        """Test metadata lookup of an existing file."""
        self.bucket.get_blob.return_value = make_blob("PhotoSelection/Web/a.jpg", size=7)

        entry = await self.service.get_metadata("PhotoSelection/Web/a.jpg")

        assert entry.name == "a.jpg"
        assert entry.size == 7
        assert entry.age_days(MODIFIED + timedelta(days=2)) == pytest.approx(2)

    async def test_get_metadata_missing_blob(self):
        """Test a missing file raises the not-found error."""
        self.bucket.get_blob.return_value = None

        with pytest.raises(StorageNotFoundError) as exc_info:
            await self.service.get_metadata("PhotoSelection/Web/missing.jpg")

        assert exc_info.value.path == "PhotoSelection/Web/missing.jpg"

    async def test_get_metadata_not_found_exception(self):
        """Test NotFound from the client maps to the not-found error."""
        self.bucket.get_blob.side_effect = NotFound("missing")

        with pytest.raises(StorageNotFoundError):
            await self.service.get_metadata("PhotoSelection/Web/missing.jpg")

    async def test_get_metadata_other_error_is_not_not_found(self):
        """Test other lookup failures are plain storage errors."""
        self.bucket.get_blob.side_effect = GoogleCloudError("Rate limited")

        with pytest.raises(StorageError) as exc_info:
            await self.service.get_metadata("PhotoSelection/Web/a.jpg")

        assert not isinstance(exc_info.value, StorageNotFoundError)


class TestFolders(StorageTestCase):
    """Test cases for folder placeholders."""

    async def test_ensure_folder_creates_placeholder(self):
        """Test a missing folder gets an empty placeholder object."""
        self.bucket.blob("PhotoSelection/Final_Web/").exists.return_value = False
        self.client.list_blobs.return_value = BlobPage()

        created = await self.service.ensure_folder("PhotoSelection/Final_Web")

        assert created is True
        self.blobs["PhotoSelection/Final_Web/"].upload_from_string.assert_called_once_with(
            b"", content_type=FOLDER_PLACEHOLDER_CONTENT_TYPE
        )

    async def test_ensure_folder_existing(self):
        """Test an existing folder is left alone."""
        self.bucket.blob("PhotoSelection/Final/").exists.return_value = True

        created = await self.service.ensure_folder("PhotoSelection/Final")

        assert created is False
        self.blobs["PhotoSelection/Final/"].upload_from_string.assert_not_called()

    async def test_folder_exists_without_placeholder(self):
        """Test a folder with objects but no placeholder exists."""
        self.bucket.blob("PhotoSelection/Final/").exists.return_value = False
        self.client.list_blobs.return_value = BlobPage([make_blob("PhotoSelection/Final/a.jpg")])

        assert await self.service.folder_exists("PhotoSelection/Final") is True


class TestContent(StorageTestCase):
    """Test cases for download, upload, move and delete."""

    async def test_download_success(self):
        """Test downloading file content."""
        self.bucket.blob("PhotoSelection/Source/a.jpg").download_as_bytes.return_value = b"image"

        assert await self.service.download("PhotoSelection/Source/a.jpg") == b"image"

    async def test_download_not_found(self):
        """Test downloading a missing file."""
        self.bucket.blob("PhotoSelection/Source/a.jpg").download_as_bytes.side_effect = NotFound("missing")

        with pytest.raises(StorageNotFoundError):
            await self.service.download("PhotoSelection/Source/a.jpg")

    async def test_upload_overwrite(self):
        """Test overwriting upload."""
        await self.service.upload("PhotoSelection/Web/a.jpg", b"jpeg", content_type="image/jpeg")

        self.blobs["PhotoSelection/Web/a.jpg"].upload_from_string.assert_called_once_with(
            b"jpeg", content_type="image/jpeg"
        )

    async def test_upload_without_overwrite_uses_generation_precondition(self):
        """Test non-overwriting upload only succeeds when no object exists."""
        await self.service.upload("PhotoSelection/Web/a.jpg", b"jpeg", content_type="image/jpeg", overwrite=False)

        self.blobs["PhotoSelection/Web/a.jpg"].upload_from_string.assert_called_once_with(
            b"jpeg", content_type="image/jpeg", if_generation_match=0
        )

    async def test_upload_error(self):
        """Test upload failures are wrapped."""
        self.bucket.blob("PhotoSelection/Web/a.jpg").upload_from_string.side_effect = GoogleCloudError("Denied")

        with pytest.raises(StorageError, match="Failed to upload file"):
            await self.service.upload("PhotoSelection/Web/a.jpg", b"jpeg")

    async def test_move_renames_blob(self):
        """Test moving a file renames the blob."""
        await self.service.move("PhotoSelection/Source/a.jpg", "PhotoSelection/Archive/a.jpg")

        self.bucket.rename_blob.assert_called_once_with(
            self.blobs["PhotoSelection/Source/a.jpg"], "PhotoSelection/Archive/a.jpg"
        )

    async def test_delete_not_found(self):
        """Test deleting a missing file."""
        self.bucket.blob("PhotoSelection/Web/a.jpg").delete.side_effect = NotFound("missing")

        with pytest.raises(StorageNotFoundError):
            await self.service.delete("PhotoSelection/Web/a.jpg")


class TestTemporaryLinks(StorageTestCase):
    """Test cases for signed URL generation."""

    async def test_signed_url_with_service_account(self):
        """Test service-account credentials sign locally."""
        blob = self.bucket.blob("PhotoSelection/Web/a.jpg")
        blob.generate_signed_url.return_value = "https://signed.example/a.jpg"

        url = await self.service.get_temporary_link("PhotoSelection/Web/a.jpg")

        assert url == "https://signed.example/a.jpg"
        blob.generate_signed_url.assert_called_once_with(
            version="v4", expiration=timedelta(hours=4), method="GET"
        )

    async def test_signed_url_with_user_credentials_uses_iam_signing(self):
        """Test credentials without a private key sign through IAM."""
        credentials = MagicMock()
        credentials.valid = False
        credentials.token = "access-token"
        settings = Settings(bucket="test-photoselect-bucket", signer_email="signer@test-project.iam.gserviceaccount.com")
        service = StorageService(settings, client=self.client, credentials=credentials)
        blob = self.bucket.blob("PhotoSelection/Web/a.jpg")

        await service.get_temporary_link("PhotoSelection/Web/a.jpg")

        credentials.refresh.assert_called_once()
        blob.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=timedelta(hours=4),
            method="GET",
            service_account_email="signer@test-project.iam.gserviceaccount.com",
            access_token="access-token",
        )

    async def test_signed_url_error(self):
        """Test signing failures are wrapped."""
        self.bucket.blob("PhotoSelection/Web/a.jpg").generate_signed_url.side_effect = Exception("No key")

        with pytest.raises(StorageError, match="Unexpected error generating temporary link"):
            await self.service.get_temporary_link("PhotoSelection/Web/a.jpg")


class TestDownloadZip(StorageTestCase):
    """Test cases for folder archives."""

    async def test_zip_contains_folder_files(self):
        """Test archive entries are stored under the folder name."""
        self.bucket.blob("PhotoSelection/Final/").exists.return_value = True
        self.client.list_blobs.return_value = BlobPage(
            [make_blob("PhotoSelection/Final/a.jpg"), make_blob("PhotoSelection/Final/b.jpg")]
        )
        self.bucket.blob("PhotoSelection/Final/a.jpg").download_as_bytes.return_value = b"aaa"
        self.bucket.blob("PhotoSelection/Final/b.jpg").download_as_bytes.return_value = b"bbb"

        data = await self.service.download_zip("PhotoSelection/Final")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert sorted(archive.namelist()) == ["Final/a.jpg", "Final/b.jpg"]
            assert archive.read("Final/a.jpg") == b"aaa"

    async def test_zip_missing_folder(self):
        """Test zipping a folder that does not exist."""
        self.bucket.blob("PhotoSelection/Final_Web/").exists.return_value = False
        self.client.list_blobs.return_value = BlobPage()

        with pytest.raises(StorageNotFoundError):
            await self.service.download_zip("PhotoSelection/Final_Web")


class TestBuildCredentials:
    """Test cases for credential selection."""

    def test_refresh_token_credentials(self):
        """Test refresh token with client id/secret builds user credentials."""
        settings = Settings(
            bucket="b", refresh_token="refresh", client_id="client-id", client_secret="client-secret"
        )

        credentials = build_credentials(settings)

        assert isinstance(credentials, google.oauth2.credentials.Credentials)
        assert credentials.refresh_token == "refresh"
        assert credentials.client_id == "client-id"
        assert credentials.token is None

    def test_access_token_credentials(self):
        """Test a static access token is used as-is."""
        credentials = build_credentials(Settings(bucket="b", access_token="static-token"))

        assert isinstance(credentials, google.oauth2.credentials.Credentials)
        assert credentials.token == "static-token"

    @patch("google.auth.default")
    def test_default_credentials(self, mock_default):
        """Test Application Default Credentials are the fallback."""
        default_credentials = MagicMock()
        mock_default.return_value = (default_credentials, "test-project")

        assert build_credentials(Settings(bucket="b")) is default_credentials


class TestTransportErrors(StorageTestCase):
    """Test cases for failures raised outside the GCS exception hierarchy."""

    async def test_delete_retry_error_is_wrapped(self):
        """Test an exhausted retry deadline on delete surfaces as StorageError."""
        self.bucket.blob("PhotoSelection/Web/a.jpg").delete.side_effect = RetryError(
            "deadline", TransportError("reset")
        )

        with pytest.raises(StorageError, match="Unexpected error deleting"):
            await self.service.delete("PhotoSelection/Web/a.jpg")

    async def test_move_transport_error_is_wrapped(self):
        """Test a transport failure on move surfaces as StorageError."""
        self.bucket.rename_blob.side_effect = TransportError("reset")

        with pytest.raises(StorageError, match="Unexpected error moving"):
            await self.service.move("PhotoSelection/Source/a.jpg", "PhotoSelection/Archive/a.jpg")

    async def test_folder_exists_transport_error_is_wrapped(self):
        """Test a transport failure on the placeholder check surfaces as StorageError."""
        self.bucket.blob("PhotoSelection/Final/").exists.side_effect = TransportError("reset")

        with pytest.raises(StorageError, match="Unexpected error checking folder"):
            await self.service.folder_exists("PhotoSelection/Final")

    async def test_create_folder_transport_error_is_wrapped(self):
        """Test a transport failure while writing the placeholder surfaces as StorageError."""
        self.bucket.blob("PhotoSelection/Final/").upload_from_string.side_effect = TransportError("reset")

        with pytest.raises(StorageError, match="Unexpected error creating folder"):
            await self.service.create_folder("PhotoSelection/Final")
