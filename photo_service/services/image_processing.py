"""
Image Processing

Pillow adapter for the few image operations the service performs itself:
reading dimensions, scoring upload quality and producing blurred variants.
"""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageFilter, UnidentifiedImageError

from photo_service.exceptions import UploadValidationError

logger = logging.getLogger(__name__)


@dataclass
class ImageInfo:
    """Basic facts about a decoded image."""
    width: int
    height: int
    format: str  # Pillow format name, e.g. "JPEG"


class ImageProcessor:
    """
    Image processing adapter.

    Quality score deductions (start at 100, floor 1):
    - Resolution: < 200x200 -20, < 400x400 -10, < 800x800 -5
    - Aspect ratio: outside 0.4-2.5 -15, 0.5-2.0 -10, 0.55-1.8 -5
    - File size: < 50 KB -10, > 5 MB -5
    - GIF -5
    """

    JPEG_QUALITY = 92

    def inspect(self, data: bytes) -> ImageInfo:
        """
        Decode an upload and return its dimensions.

        Raises:
            UploadValidationError: if the bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
            # verify() leaves the image unusable, reopen for the size
            with Image.open(io.BytesIO(data)) as image:
                return ImageInfo(width=image.width, height=image.height, format=image.format or "")
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning(f"Rejected unreadable image: {type(e).__name__}")
            raise UploadValidationError("File is not a valid image") from e

    def quality_score(
        self,
        width: int,
        height: int,
        file_size_bytes: int | None = None,
        image_format: str | None = None,
    ) -> int:
        """Score an image 1-100 for moderation and ranking."""
        score = 100

        total_pixels = width * height
        if total_pixels < 40_000:
            score -= 20
        elif total_pixels < 160_000:
            score -= 10
        elif total_pixels < 640_000:
            score -= 5

        aspect_ratio = width / height if height else 0.0
        if aspect_ratio > 2.5 or aspect_ratio < 0.4:
            score -= 15
        elif aspect_ratio > 2.0 or aspect_ratio < 0.5:
            score -= 10
        elif aspect_ratio > 1.8 or aspect_ratio < 0.55:
            score -= 5

        if file_size_bytes is not None:
            size_kb = file_size_bytes // 1024
            if size_kb < 50:
                score -= 10
            elif size_kb > 5000:
                score -= 5

        if image_format and image_format.upper() == "GIF":
            score -= 5

        return max(1, min(100, score))

    def blur(self, data: bytes, intensity: float = 0.8) -> bytes:
        """
        Produce a blurred JPEG variant.

        The radius scales with the longer side (base max(8, side/100)) and
        with intensity, from 0.5x base at 0.0 to 2x base at 1.0.
        """
        if not 0.0 <= intensity <= 1.0:
            raise UploadValidationError("Blur intensity must be between 0.0 and 1.0")

        try:
            with Image.open(io.BytesIO(data)) as image:
                base_radius = max(8, max(image.width, image.height) // 100)
                radius = base_radius * (0.5 + intensity * 1.5)

                blurred = image.convert("RGB").filter(ImageFilter.GaussianBlur(radius))
                output = io.BytesIO()
                blurred.save(output, format="JPEG", quality=self.JPEG_QUALITY)
        except (UnidentifiedImageError, OSError) as e:
            raise UploadValidationError("File is not a valid image") from e

        logger.debug(f"Generated blurred variant (radius={radius:.1f})")
        return output.getvalue()
