# dispatcher.py
import logging
from typing import Any, Callable, Dict, Optional

import httpx

from .errors import normalize_error
from .settings import settings

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def unwrap(body: Any) -> Any:
    """Strip the ``{"data": ...}`` envelope some endpoints wrap results in."""
    if isinstance(body, dict) and "data" in body and set(body) <= {"data", "message", "meta"}:
        return body["data"]
    return body


class Dispatcher:
    """Authorized HTTP calls against the backend.

    The bearer token is read from ``token_provider`` on every call; the
    dispatcher never stores or writes it. Non-success responses and transport
    failures are raised as ``ApiError`` subclasses via ``normalize_error``.
    """

    def __init__(self, base_url: str | None = None,
                 token_provider: TokenProvider | None = None,
                 timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url or settings.API_BASE_URL
        self.token_provider: TokenProvider = token_provider or (lambda: None)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    def auth_headers(self) -> Dict[str, str]:
        token = self.token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(self, path: str, method: str = "GET", *,
                      json: Any = None,
                      data: Optional[Dict[str, Any]] = None,
                      files: Optional[Dict[str, Any]] = None) -> Any:
        """Send one request and return the decoded JSON body (None if empty).

        Pass ``json`` for a JSON body, or ``data``/``files`` for multipart;
        httpx sets the multipart content-type and boundary itself.
        """
        try:
            response = await self.client.request(
                method, path,
                json=json, data=data, files=files,
                headers=self.auth_headers(),
            )
        except httpx.HTTPError as e:
            logger.error("%s %s: transport failure: %s", method, path, e)
            raise normalize_error(e) from e

        if not response.is_success:
            err = normalize_error(response)
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, err.message)
            raise err

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get(self, path: str) -> Any:
        return await self.request(path, "GET")

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request(path, "POST", **kwargs)
