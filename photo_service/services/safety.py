"""
Safety Service Client

Block lookups against the safety service.
"""

import logging

import httpx

from photo_service.config import get_settings
from photo_service.exceptions import CollaboratorError
from photo_service.metrics import record_collaborator_failure

logger = logging.getLogger(__name__)
settings = get_settings()

SERVICE_NAME = "safety"


class SafetyServiceClient:
    """Asks the safety service whether one user has blocked another."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.safety_service_url
        self.timeout = timeout if timeout is not None else settings.collaborator_timeout
        self._transport = transport

    async def is_blocked(self, user_id: int, target_user_id: int) -> bool:
        """
        Whether user_id has blocked target_user_id (one direction only).

        Raises:
            CollaboratorError: on transport failure, non-2xx or a malformed body
        """
        path = f"/api/safety/blocks/{user_id}/{target_user_id}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(path)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_failure(SERVICE_NAME)
            logger.warning(f"Block check {user_id}->{target_user_id} failed: {type(e).__name__}")
            raise CollaboratorError(SERVICE_NAME, str(e)) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), bool):
            record_collaborator_failure(SERVICE_NAME)
            raise CollaboratorError(SERVICE_NAME, "malformed block response")
        if not payload.get("success", False):
            record_collaborator_failure(SERVICE_NAME)
            raise CollaboratorError(SERVICE_NAME, payload.get("error") or "block check unsuccessful")

        return payload["data"]
