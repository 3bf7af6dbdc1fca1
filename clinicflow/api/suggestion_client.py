"""AI suggestion client."""

import logging
from typing import Optional

from .base import ApiClient
from ..errors import ApiError, SuggestionFailed
from ..models.transcription import SuggestionSet

logger = logging.getLogger(__name__)


class SuggestionClient(ApiClient):
    """Submits transcript text to the AI suggestion engine. Results are advisory."""

    service_name = "Suggestions"
    path = "/api/transcription/suggestions"

    async def submit(self, transcript_text: str, auth_token: str) -> Optional[SuggestionSet]:
        """Get AI suggestions based on conversation transcript.

        Returns:
            Suggestions, or None if the engine had nothing to suggest

        Raises:
            SuggestionFailed: On any network, service or payload error
        """
        try:
            payload = await self._post(self.path, auth_token, json={"transcript": transcript_text})
        except ApiError as e:
            logger.error(f"AI suggestions error: {e.reason}")
            raise SuggestionFailed(e.reason or "Failed to get AI suggestions", status=e.status) from e

        data = payload.get("suggestions")
        if data is None:
            logger.info("No AI suggestions returned")
            return None

        try:
            suggestions = SuggestionSet.from_dict(data)
        except ValueError as e:
            raise SuggestionFailed(f"Malformed suggestions response: {e}") from e

        logger.info(f"Received {len(suggestions.diagnosis)} diagnosis and "
                    f"{len(suggestions.medicines)} medicine suggestions")
        return suggestions
