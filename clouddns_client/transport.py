import asyncio
import json
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import aiohttp
from loguru import logger
from pydantic import BaseModel, Field

from clouddns_client.exceptions import TransportError
from clouddns_client.models import TransportResponse


class Endpoint(str, Enum):
    cloud_dns = "cloudDNS"


class TransportConfig(BaseModel):
    endpoints: Dict[Endpoint, str] = Field(default_factory=dict)
    auth_token: Optional[str] = None
    request_timeout: float = 30.0


class AuthorizedTransport(Protocol):
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        endpoint: Endpoint = Endpoint.cloud_dns,
    ) -> TransportResponse:
        ...


class AiohttpTransport:
    def __init__(self, config: TransportConfig):
        self.config = config
        self.logger = logger
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self.config.auth_token:
                headers["X-Auth-Token"] = self.config.auth_token
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._session

    def _url(self, endpoint: Endpoint, path: str) -> str:
        try:
            base_url = self.config.endpoints[endpoint]
        except KeyError:
            raise TransportError(f"No base URL configured for endpoint {endpoint.value}")
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        endpoint: Endpoint = Endpoint.cloud_dns,
    ) -> TransportResponse:
        """Sends one authenticated request and parses the JSON body"""
        url = self._url(endpoint, path)
        session = self._get_session()

        try:
            async with session.request(method, url, params=params, json=json) as response:
                text = await response.text()
                return TransportResponse(
                    status_code=response.status,
                    body=_parse_body(text, response.status),
                    headers=dict(response.headers),
                )
        except aiohttp.ClientError as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise TransportError(str(e)) from e
        except asyncio.TimeoutError as e:
            self.logger.error(f"{method} {url} timed out after {self.config.request_timeout}s")
            raise TransportError(f"Request timed out: {method} {url}") from e


def _parse_body(text: str, status_code: int) -> Any:
    """Decodes a JSON body; non-2xx bodies that are not JSON are kept as text"""
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except ValueError as e:
        if 200 <= status_code < 300:
            raise TransportError(f"Invalid JSON in response body: {e}") from e
        return text
