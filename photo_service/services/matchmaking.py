"""
Matchmaking Service Client

Match lookups against the matchmaking service.
"""

import logging

import httpx

from photo_service.config import get_settings
from photo_service.exceptions import CollaboratorError
from photo_service.metrics import record_collaborator_failure

logger = logging.getLogger(__name__)
settings = get_settings()

SERVICE_NAME = "matchmaking"


class MatchmakingServiceClient:
    """Asks the matchmaking service whether two users are matched."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.matchmaking_service_url
        self.timeout = timeout if timeout is not None else settings.collaborator_timeout
        self._transport = transport

    async def are_matched(self, user_id: int, other_user_id: int) -> bool:
        """
        Whether other_user_id appears in user_id's match list.

        Raises:
            CollaboratorError: on transport failure, non-2xx or a malformed body
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(f"/api/matchmaking/matches/{user_id}")
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_failure(SERVICE_NAME)
            logger.warning(f"Match lookup for user {user_id} failed: {type(e).__name__}")
            raise CollaboratorError(SERVICE_NAME, str(e)) from e

        matches = payload.get("matches") if isinstance(payload, dict) else None
        if matches is None:
            return False
        if not isinstance(matches, list):
            record_collaborator_failure(SERVICE_NAME)
            raise CollaboratorError(SERVICE_NAME, "malformed match list")

        matched = any(
            isinstance(m, dict) and str(m.get("matchedUserId")) == str(other_user_id)
            for m in matches
        )
        logger.debug(f"Match check {user_id}<->{other_user_id}: {matched}")
        return matched
