"""Small aiohttp helper shared by the HTTP adapters.

Every call opens a short-lived ``ClientSession`` and converts transport
failures and non-2xx answers into ``GatewayError`` so adapters only have to
deal with the happy path.
"""

import asyncio
from typing import Any

import aiohttp
import structlog

from shared.errors import GatewayError

logger = structlog.get_logger(__name__)


class HttpClient:
    def __init__(self, base_url: str, *, timeout: float = 10.0, headers: dict[str, str] | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = headers or {}

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        cookies: dict[str, str] | None = None,
    ) -> dict:
        url = self.url(path)
        merged_headers = {**self.headers, **(headers or {})}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout, cookies=cookies) as session:
                async with session.request(
                    method,
                    url,
                    json=json,
                    data=data,
                    params=params,
                    headers=merged_headers,
                ) as response:
                    body = await self._read_body(response)
                    if response.status >= 400:
                        message = _error_message(body) or f"{method} {path} failed with status {response.status}"
                        logger.warning("http_request_failed", method=method, url=url, status=response.status)
                        raise GatewayError(message, status=response.status)
                    return body
        except aiohttp.ClientError as exc:
            logger.warning("http_transport_error", method=method, url=url, error=str(exc))
            raise GatewayError(f"{method} {path} failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            logger.warning("http_timeout", method=method, url=url)
            raise GatewayError(f"{method} {path} timed out") from exc

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> dict:
        if response.content_type != "application/json":
            text = await response.text()
            return {"message": text} if text else {}
        body = await response.json()
        return body if isinstance(body, dict) else {"data": body}

    async def get(self, path: str, **kwargs) -> dict:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> dict:
        return await self.request("POST", path, **kwargs)


def _error_message(body: dict) -> str | None:
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return body.get("message") or error


def auth_cookies(user) -> dict[str, str] | None:
    """The storefront backend authenticates with a ``token`` cookie."""
    if user is None or not user.token:
        return None
    return {"token": user.token}
