"""Selection recording service."""

from typing import Any

from ..clock import Clock, utc_now
from ..config import Settings
from ..errors import ValidationError
from ..logging_config import StatusLog, get_logger
from ..models import ManagedFolder, SelectionSubmission

logger = get_logger(__name__)


class SelectionRecorder:
    """Persists each client selection as one JSON file in the Selections folder."""

    def __init__(self, storage: Any, settings: Settings, status_log: StatusLog, clock: Clock = utc_now) -> None:
        self.storage = storage
        self.settings = settings
        self.status_log = status_log
        self.clock = clock

    def build_submission(self, user_name: Any, selected_images: Any) -> SelectionSubmission:
        """
        Validate raw request fields and build a submission.

        Raises:
            ValidationError: If the user name or the selection list is missing
        """
        if not user_name or not isinstance(user_name, str) or selected_images is None:
            raise ValidationError(
                "User name and selections are required",
                code="selection_incomplete",
                user_message="お名前と選択した写真が必要です。",
            )
        if not isinstance(selected_images, list) or not all(isinstance(name, str) for name in selected_images):
            raise ValidationError(
                "Selections must be a list of image names",
                code="selection_invalid",
                user_message="選択した写真の形式が正しくありません。",
            )
        return SelectionSubmission(user_name=user_name, image_names=selected_images, submitted_at=self.clock())

    async def submit(self, user_name: Any, selected_images: Any) -> SelectionSubmission:
        """
        Record a selection.

        Validation happens before anything is written.

        Returns:
            SelectionSubmission: The persisted submission

        Raises:
            ValidationError: If the input is incomplete
            StorageError: If the upload fails
        """
        submission = self.build_submission(user_name, selected_images)
        path = self.settings.folders.child(ManagedFolder.SELECTIONS, submission.file_name)

        await self.storage.upload(path, submission.to_json(), content_type="application/json", overwrite=True)

        self.status_log.add(f"Selection saved: {submission.file_name} ({submission.count} images)")
        return submission
