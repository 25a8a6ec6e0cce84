"""Image processing service for photoselect."""

import io
from datetime import datetime

from PIL import Image, ImageOps
from pillow_heif import register_heif_opener  # type: ignore[import-untyped]

from ..errors import ImageProcessingError
from ..logging_config import get_logger, log_performance
from ..models import ResizeSpec

register_heif_opener()

logger = get_logger(__name__)


class ImageProcessor:
    """Decodes a source image and re-encodes a resized JPEG copy."""

    def resize_to_jpeg(self, image_data: bytes, spec: ResizeSpec) -> bytes:
        """
        Resize an image to the target width and encode it as JPEG.

        The height follows the aspect ratio. Images narrower than the target
        are scaled up, so every derived copy has the same width.

        Args:
            image_data: Raw source image bytes (JPEG, PNG, HEIC, ...)
            spec: Target width and JPEG quality

        Returns:
            bytes: JPEG image data

        Raises:
            ImageProcessingError: If decoding, resizing or encoding fails
        """
        start_time = datetime.now()

        try:
            with Image.open(io.BytesIO(image_data)) as image:
                # Apply EXIF orientation to correct rotation
                image = ImageOps.exif_transpose(image)
                original_size = image.size

                if image.mode not in ("RGB", "L"):
                    image = image.convert("RGB")

                target_size = self.calculate_target_size(original_size, spec.width)
                resized_image = image.resize(target_size, Image.Resampling.LANCZOS)

                buffer = io.BytesIO()
                resized_image.save(buffer, format="JPEG", quality=spec.quality, optimize=True)
                output = buffer.getvalue()

            duration = (datetime.now() - start_time).total_seconds()
            log_performance(
                "resize_to_jpeg",
                duration,
                original_size=original_size,
                target_size=target_size,
                original_file_size=len(image_data),
                output_file_size=len(output),
                quality=spec.quality,
            )
            return output

        except Exception as e:
            raise ImageProcessingError(
                f"Failed to resize image: {e}",
                code="resize_failed",
                user_message="画像のリサイズに失敗しました。",
                details={
                    "original_file_size": len(image_data),
                    "width": spec.width,
                    "quality": spec.quality,
                },
                original_exception=e,
            ) from e

    @staticmethod
    def calculate_target_size(original_size: tuple[int, int], width: int) -> tuple[int, int]:
        """
        Calculate the output size for a target width, preserving aspect ratio.

        Args:
            original_size: Source (width, height)
            width: Target width in pixels

        Returns:
            tuple[int, int]: (width, height), height at least 1 pixel
        """
        original_width, original_height = original_size
        if original_width <= 0 or original_height <= 0:
            raise ValueError(f"Invalid image size: {original_size}")

        height = max(1, round(original_height * width / original_width))
        return width, height


_image_processor: ImageProcessor | None = None


def get_image_processor() -> ImageProcessor:
    """Get the global image processor instance."""
    global _image_processor
    if _image_processor is None:
        _image_processor = ImageProcessor()
    return _image_processor
