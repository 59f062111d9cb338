"""
Request transports for the Treehole web API.

A transport performs one GET against the API base and returns the decoded
JSON body. Two interchangeable implementations are provided:

- ``HttpxTransport``: the default, built on ``httpx.AsyncClient``
- ``AiohttpTransport``: the same contract on ``aiohttp.ClientSession``,
  for callers already running an aiohttp stack

Both attach the same headers, built from the ambient credential sources
on every request, and map failures onto the exporter's exceptions:

- transport could not complete: ``NetworkError``
- non-2xx status: ``HttpStatusError`` (the body is never parsed)
- body is not JSON: ``MalformedResponse``

Nothing is retried here.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union
from urllib.parse import urlencode, urljoin

import aiohttp
import httpx
import orjson

from .credentials import (
    CookieSource,
    CookieStringSource,
    CredentialSource,
    MappingSource,
    TOKEN_COOKIE,
    UUID_STORAGE_KEY,
    XSRF_COOKIE,
)
from .exceptions import HttpStatusError, MalformedResponse, NetworkError

logger = logging.getLogger(__name__)

# Trailing slash matters: paths are joined relative to /api/
API_BASE = "https://treehole.pku.edu.cn/api/"

# Request headers
ACCEPT_HEADER = "application/json"
AJAX_HEADER = "X-Requested-With"
AJAX_VALUE = "XMLHttpRequest"
XSRF_HEADER = "X-XSRF-TOKEN"
UUID_HEADER = "Uuid"

QueryParams = Mapping[str, Union[str, int]]


class Transport(Protocol):
    """Single-method request strategy used by ``TreeholeClient``."""

    async def get(self, path: str, params: Optional[QueryParams] = None) -> Any:
        """GET ``path`` relative to the API base and return the decoded JSON body."""
        ...


class BaseTransport:
    """
    URL and header construction shared by the concrete transports.

    Args:
        cookies: Cookie store; supplies the bearer and XSRF tokens and the
            ``Cookie`` header for the credentialed request
        storage: Persistent storage; supplies the device identifier
        base_url: API base, must end with ``/``
        timeout: Request timeout in seconds, None for no timeout
    """

    def __init__(
        self,
        cookies: Optional[CredentialSource] = None,
        storage: Optional[CredentialSource] = None,
        base_url: str = API_BASE,
        timeout: Optional[float] = None,
    ):
        self.cookies = cookies if cookies is not None else CookieStringSource.from_env()
        self.storage = storage if storage is not None else MappingSource()
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout

    def build_url(self, path: str, params: Optional[QueryParams] = None) -> str:
        """
        Join ``path`` onto the API base and append the query string.

        Raises:
            ValueError: ``path`` starts with ``/``, which would replace the
                base's ``/api/`` prefix instead of extending it
        """
        if path.startswith("/"):
            raise ValueError(f"path must be relative to the API base, got {path!r}")
        url = urljoin(self.base_url, path)
        if params:
            url = f"{url}?{urlencode({key: str(value) for key, value in params.items()})}"
        return url

    def build_headers(self) -> Dict[str, str]:
        """
        Build request headers from the current credentials.

        Credentials are read fresh on every call. A header is only added
        when its credential is present and non-empty.
        """
        headers = {
            "Accept": ACCEPT_HEADER,
            AJAX_HEADER: AJAX_VALUE,
        }

        token = self.cookies.read(TOKEN_COOKIE)
        xsrf = self.cookies.read(XSRF_COOKIE)
        uuid = self.storage.read(UUID_STORAGE_KEY)

        if token:
            headers["Authorization"] = f"Bearer {token}"
        if xsrf:
            headers[XSRF_HEADER] = xsrf
        if uuid:
            headers[UUID_HEADER] = uuid

        if isinstance(self.cookies, CookieSource):
            cookie_header = self.cookies.header()
            if cookie_header:
                headers["Cookie"] = cookie_header

        return headers

    @staticmethod
    def decode(body: bytes) -> Any:
        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise MalformedResponse(f"Response body is not valid JSON: {e}") from e


class HttpxTransport(BaseTransport):
    """
    Default transport on ``httpx.AsyncClient``.

    The client is created on first use unless one is passed in; an injected
    client is left open for its owner to close.

    Usage:
        async with HttpxTransport(cookies=CookieStringSource.from_file("cookies.txt")) as transport:
            body = await transport.get("pku/12345")
    """

    def __init__(self, *args, client: Optional[httpx.AsyncClient] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self._own_client = client is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                http2=True,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self.client

    async def get(self, path: str, params: Optional[QueryParams] = None) -> Any:
        url = self.build_url(path, params)
        logger.debug("GET %s", url)

        try:
            response = await self._get_client().get(
                url,
                headers=self.build_headers(),
            )
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {url} failed: {e!r}") from e

        if not response.is_success:
            raise HttpStatusError(response.status_code, response.reason_phrase)

        return self.decode(response.content)

    async def aclose(self):
        if self._own_client and self.client is not None:
            await self.client.aclose()
            self.client = None


class AiohttpTransport(BaseTransport):
    """
    Alternate transport on ``aiohttp.ClientSession``.

    Same contract as ``HttpxTransport``; swap it in without touching the
    client code.
    """

    def __init__(self, *args, session: Optional[aiohttp.ClientSession] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = session
        self._own_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    async def get(self, path: str, params: Optional[QueryParams] = None) -> Any:
        url = self.build_url(path, params)
        logger.debug("GET %s", url)

        try:
            async with self._get_session().get(url, headers=self.build_headers()) as response:
                if not 200 <= response.status < 300:
                    raise HttpStatusError(response.status, response.reason or "")
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Request to {url} failed: {e!r}") from e

        return self.decode(body)

    async def aclose(self):
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None
