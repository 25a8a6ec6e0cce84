"""
Error classification for photoselect.

All domain failures derive from PhotoSelectError, which carries a category,
a severity, a stable code and a short user-facing message. Errors log
themselves when constructed so per-item failures that are caught and skipped
still leave a structured trace.
"""

from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    STORAGE = "storage"
    IMAGE_PROCESSING = "image_processing"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_LOG_LEVEL_BY_SEVERITY = {
    ErrorSeverity.LOW: "debug",
    ErrorSeverity.MEDIUM: "error",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.CRITICAL: "error",
}


class PhotoSelectError(Exception):
    """Base exception class for photoselect."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self._generate_user_message()
        self.details = details or {}
        self.original_exception = original_exception

        self._log_error()

    def _generate_user_message(self) -> str:
        """Generate user-friendly error message."""
        user_messages = {
            ErrorCategory.STORAGE: "ストレージエラーが発生しました。",
            ErrorCategory.IMAGE_PROCESSING: "画像の処理中にエラーが発生しました。",
            ErrorCategory.VALIDATION: "入力データに問題があります。",
            ErrorCategory.CONFIGURATION: "設定に問題があります。",
            ErrorCategory.UNKNOWN: "予期しないエラーが発生しました。",
        }
        return user_messages.get(self.category, "エラーが発生しました。")

    def _log_error(self) -> None:
        """Log the error at a level matching its severity."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        log_error(self, error_context, level=_LOG_LEVEL_BY_SEVERITY[self.severity])


class StorageError(PhotoSelectError):
    """Storage gateway errors (network, permission, rate limit)."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=severity,
            code=code or "storage_error",
            user_message=user_message or "ストレージエラーが発生しました。しばらく待ってから再度お試しください。",
            details=details,
            original_exception=original_exception,
        )


class StorageNotFoundError(StorageError):
    """The requested path does not exist.

    Raised by metadata lookups; callers use it as the existence signal, so it
    is logged at debug level only.
    """

    def __init__(self, path: str, original_exception: Exception | None = None):
        super().__init__(
            f"Not found: {path}",
            code="not_found",
            user_message="ファイルが見つかりません。",
            details={"path": path},
            severity=ErrorSeverity.LOW,
            original_exception=original_exception,
        )
        self.path = path


class ImageProcessingError(PhotoSelectError):
    """Image decode/resize/encode errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.IMAGE_PROCESSING,
            severity=ErrorSeverity.MEDIUM,
            code=code or "image_processing_failed",
            user_message=user_message or "画像の処理中にエラーが発生しました。ファイル形式を確認してください。",
            details=details,
            original_exception=original_exception,
        )


class ValidationError(PhotoSelectError):
    """Rejected client input."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message or "入力データに問題があります。",
            details=details,
        )


class ConfigurationError(PhotoSelectError):
    """Missing or inconsistent configuration; fatal at startup."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            code="configuration_invalid",
            details=details,
        )
