"""
Face Comparison Client

Thin client for a DeepFace REST server (`POST /verify`).
"""

import base64
import logging
import math
from dataclasses import dataclass

import httpx

from photo_service.config import get_settings
from photo_service.exceptions import CollaboratorError
from photo_service.metrics import record_collaborator_failure

logger = logging.getLogger(__name__)
settings = get_settings()

SERVICE_NAME = "deepface"


@dataclass
class FaceComparison:
    """Raw comparison result."""
    distance: float               # cosine distance, lower is more similar
    facial_area_detected: bool    # a face survived anti-spoofing


def to_data_uri(data: bytes, content_type: str = "image/jpeg") -> str:
    """Encode image bytes the way the DeepFace API accepts them."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


class FaceComparisonClient:
    """Compares two face images through DeepFace."""

    def __init__(
        self,
        base_url: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.deepface_url
        self.model_name = model_name or settings.deepface_model
        self.timeout = timeout if timeout is not None else settings.deepface_timeout
        self._transport = transport

    async def verify(self, img1: bytes, img2: bytes) -> FaceComparison:
        """
        Compare a selfie (img1) against a reference photo (img2).

        Raises:
            CollaboratorError: on transport failure, timeout, non-2xx
                or a response without a finite numeric distance
        """
        request = {
            "img1": to_data_uri(img1),
            "img2": to_data_uri(img2),
            "model_name": self.model_name,
            "anti_spoofing": True,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post("/verify", json=request)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_failure(SERVICE_NAME)
            logger.error(f"DeepFace verify failed: {type(e).__name__}")
            raise CollaboratorError(SERVICE_NAME, str(e)) from e

        distance = payload.get("distance") if isinstance(payload, dict) else None
        if (
            isinstance(distance, bool)
            or not isinstance(distance, (int, float))
            or not math.isfinite(distance)
        ):
            record_collaborator_failure(SERVICE_NAME)
            raise CollaboratorError(SERVICE_NAME, "response has no finite numeric distance")

        return FaceComparison(
            distance=float(distance),
            facial_area_detected=bool(payload.get("facial_areas")),
        )
