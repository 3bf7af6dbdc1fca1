"""Shared aiohttp plumbing for single-attempt REST calls."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import ApiError

logger = logging.getLogger(__name__)


class ApiClient:
    """Base class for clients that POST to the clinic backend with a bearer token.

    No retries are attempted; the caller decides how to degrade.
    """

    service_name = "API"

    def __init__(self,
                 base_url: str = "http://localhost:4000",
                 timeout_seconds: float = 60.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize API client.

        Args:
            base_url: Backend base URL, without the /api suffix
            timeout_seconds: Total timeout for one request
            session: Optional shared session. A short-lived one is opened per call otherwise.
        """
        self.base_url = base_url.rstrip('/')
        self.timeout_seconds = timeout_seconds
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _post(self, path: str, auth_token: str, **kwargs: Any) -> Dict[str, Any]:
        """POST once and return the decoded JSON body.

        Raises:
            ApiError: On network failure, timeout, a closed session or a non-2xx response
        """
        headers = {"Authorization": f"Bearer {auth_token}"}
        url = self._url(path)
        logger.debug(f"{self.service_name}: POST {url}")

        try:
            if self.session is not None:
                return await self._send(self.session, url, headers, **kwargs)
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                return await self._send(session, url, headers, **kwargs)
        except asyncio.TimeoutError as e:
            raise ApiError(f"{self.service_name} request timed out") from e
        except aiohttp.ClientError as e:
            raise ApiError(f"{self.service_name} request failed: {e}") from e
        except RuntimeError as e:
            # aiohttp raises RuntimeError for a closed or detached session
            raise ApiError(f"{self.service_name} session unavailable: {e}") from e

    async def _send(self, session: aiohttp.ClientSession, url: str,
                    headers: Dict[str, str], **kwargs: Any) -> Dict[str, Any]:
        async with session.post(url, headers=headers, timeout=self.timeout, **kwargs) as response:
            payload = await self._read_json(response)
            if response.status in (401, 403):
                raise ApiError("Authentication failed", status=response.status)
            if not 200 <= response.status < 300:
                reason = (payload.get("message") or payload.get("error")
                          or f"{self.service_name} error: {response.status}")
                raise ApiError(str(reason), status=response.status)
            return payload

    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return {}
        return payload if isinstance(payload, dict) else {}
