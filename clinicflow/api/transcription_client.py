"""Remote transcription client."""

import logging
from typing import Optional

import aiohttp

from .base import ApiClient
from ..errors import ApiError, TranscriptionFailed
from ..models.transcription import SuggestionSet, Transcript

logger = logging.getLogger(__name__)


class TranscriptionClient(ApiClient):
    """Submits a finished audio artifact to the transcription engine."""

    service_name = "Transcription"
    path = "/api/transcription/transcribe"

    async def submit(self, audio_blob: bytes, auth_token: str) -> Transcript:
        """Transcribe one recording.

        Args:
            audio_blob: WAV-encoded audio handed off by the recording controller
            auth_token: Bearer token from the session collaborator

        Returns:
            Transcript of the recording

        Raises:
            TranscriptionFailed: On any network or service error
        """
        form = aiohttp.FormData()
        form.add_field("audio", audio_blob, filename="recording.wav", content_type="audio/wav")

        logger.info(f"Submitting {len(audio_blob)} bytes for transcription")
        try:
            payload = await self._post(self.path, auth_token, data=form)
        except ApiError as e:
            logger.error(f"Transcription error: {e.reason}")
            raise TranscriptionFailed(e.reason or "Failed to transcribe audio", status=e.status) from e

        text = payload.get("transcript")
        if not isinstance(text, str):
            raise TranscriptionFailed("Transcription response did not contain a transcript")

        inline = self._inline_suggestions(payload.get("suggestions"))
        logger.info(f"Transcription received: {len(text)} characters")
        return Transcript(text=text.strip(), suggestions=inline)

    @staticmethod
    def _inline_suggestions(data) -> Optional[SuggestionSet]:
        if not data:
            return None
        try:
            return SuggestionSet.from_dict(data)
        except ValueError as e:
            logger.warning(f"Ignoring malformed inline suggestions: {e}")
            return None
