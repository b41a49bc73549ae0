"""
Shared aiohttp plumbing for the outbound service clients.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class ServiceRequestError(Exception):
    """Raised when a downstream call fails at the network or decode level."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ServiceClient:
    """
    Base class for JSON-over-HTTP clients.

    Owns one aiohttp session per client and applies a bounded total timeout to
    every request so that a hung downstream cannot stall the pipeline.
    """

    def __init__(self, base_url: str, timeout: float = 10.0,
                 headers: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = headers or {}
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.headers
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the underlying session if this client created it."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _request(self, method: str, path: str,
                       payload: Optional[Dict[str, Any]] = None,
                       accept_error_body: bool = False) -> Dict[str, Any]:
        """
        Perform a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to base_url
            payload: JSON body
            accept_error_body: Return the decoded body for non-2xx responses
                instead of raising (the transport reports failures that way)

        Returns:
            Decoded JSON object

        Raises:
            ServiceRequestError: On timeout, connection error, bad status or bad JSON
        """
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, json=payload) as response:
                if response.status >= 400 and not accept_error_body:
                    text = await response.text()
                    raise ServiceRequestError(
                        f"{method} {url} returned {response.status}: {text[:200]}",
                        status=response.status
                    )
                if response.content_length == 0:
                    return {}
                body = await response.json(content_type=None)
                if body is None:
                    return {}
                if not isinstance(body, dict):
                    raise ServiceRequestError(f"{method} {url} returned non-object JSON")
                return body
        except asyncio.TimeoutError:
            raise ServiceRequestError(f"{method} {url} timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise ServiceRequestError(f"{method} {url} failed: {e}")
        except ValueError as e:
            raise ServiceRequestError(f"{method} {url} returned invalid JSON: {e}")
