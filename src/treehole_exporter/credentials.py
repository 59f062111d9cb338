"""
Ambient credential providers.

The Treehole API authenticates with material the browser keeps around:

- ``pku_token`` cookie: session token, sent as ``Authorization: Bearer``
- ``XSRF-TOKEN`` cookie: anti-forgery token, sent as ``X-XSRF-TOKEN``
- ``pku-uuid`` localStorage key: device identifier, sent as ``Uuid``

Providers are read-only key-value lookups. They never cache: login state
can change between two requests, so every ``read`` goes back to the
underlying store.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, Mapping, Optional, Protocol, Union, runtime_checkable
from urllib.parse import quote, unquote

import orjson

logger = logging.getLogger(__name__)

# Credential names used by the Treehole web app
TOKEN_COOKIE = "pku_token"
XSRF_COOKIE = "XSRF-TOKEN"
UUID_STORAGE_KEY = "pku-uuid"


@runtime_checkable
class CredentialSource(Protocol):
    """Read-only key-value provider for ambient credentials."""

    def read(self, name: str) -> Optional[str]:
        """Return the value stored under ``name``, or None when absent."""
        ...


@runtime_checkable
class CookieSource(CredentialSource, Protocol):
    """A credential source that can also be replayed as a ``Cookie`` header."""

    def header(self) -> Optional[str]:
        """Return the cookie string to send with a credentialed request."""
        ...


def parse_cookie(cookie_string: str, name: str) -> Optional[str]:
    """
    Look up one cookie in a ``document.cookie`` style string.

    Args:
        cookie_string: e.g. ``"pku_token=abc; XSRF-TOKEN=x%3Dy"``
        name: Cookie name to look up

    Returns:
        The percent-decoded value, or None if the cookie is not set.
        A cookie set to an empty value returns ``""``.
    """
    match = re.search(r"(?:^|;\s*)" + re.escape(name) + r"=([^;]*)", cookie_string)
    return unquote(match.group(1)) if match else None


class CookieStringSource:
    """
    Cookies from a ``document.cookie`` style string.

    The string comes from a loader callable, called on every read, so a
    cookie file exported from the browser can be refreshed while the
    exporter runs.

    Usage:
        source = CookieStringSource.from_file("cookies.txt")
        source.read("pku_token")
    """

    def __init__(self, loader: Callable[[], str]):
        self._loader = loader

    @classmethod
    def from_string(cls, cookie_string: str) -> "CookieStringSource":
        return cls(lambda: cookie_string)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CookieStringSource":
        """Read cookies from a text file; a missing file means no cookies."""
        path = Path(path)

        def load() -> str:
            if not path.exists():
                logger.debug("Cookie file %s not found", path)
                return ""
            return path.read_text(encoding="utf-8").strip()

        return cls(load)

    @classmethod
    def from_env(cls, var: str = "TREEHOLE_COOKIES") -> "CookieStringSource":
        return cls(lambda: os.environ.get(var, ""))

    def read(self, name: str) -> Optional[str]:
        return parse_cookie(self._loader(), name)

    def header(self) -> Optional[str]:
        return self._loader() or None


class StorageFileSource:
    """
    Persistent browser storage dumped to a JSON object file.

    Export it from the devtools console with
    ``copy(JSON.stringify(localStorage))``. The file is parsed on every read.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self, name: str) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as e:
            logger.warning("Storage file %s is not valid JSON (%s), ignoring it", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Storage file %s is not a JSON object, ignoring it", self.path)
            return None
        value = data.get(name)
        return None if value is None else str(value)


class MappingSource:
    """In-memory provider, used for explicit overrides and in tests."""

    def __init__(self, values: Optional[Mapping[str, Optional[str]]] = None):
        self.values = dict(values or {})

    def read(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def header(self) -> Optional[str]:
        pairs = [
            f"{key}={quote(value, safe='')}"
            for key, value in self.values.items()
            if value is not None
        ]
        return "; ".join(pairs) or None


class ChainSource:
    """
    Layered providers: the first one holding a value wins.

    The cookie header joins every layer's cookies, earlier layers first.
    A cookie name is sent once: an override shadows the same cookie from
    a later layer.
    """

    def __init__(self, *sources: CredentialSource):
        self.sources = sources

    def read(self, name: str) -> Optional[str]:
        for source in self.sources:
            value = source.read(name)
            if value is not None:
                return value
        return None

    def header(self) -> Optional[str]:
        seen = set()
        pairs = []
        for source in self.sources:
            if not isinstance(source, CookieSource):
                continue
            for pair in (source.header() or "").split(";"):
                pair = pair.strip()
                name = pair.split("=", 1)[0]
                if pair and name not in seen:
                    seen.add(name)
                    pairs.append(pair)
        return "; ".join(pairs) or None
