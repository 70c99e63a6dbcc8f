"""Content providers: where copied content comes from.

A provider resolves one format tag at a time and raises
ContentResolutionFailure (kind "network" or "parse") when it cannot.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Protocol

import httpx

from clipharness.clipboard.types import Content, FormatTag
from clipharness.config.schema import ContentConfig
from clipharness.core.errors import ContentResolutionFailure

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class ContentProvider(Protocol):
    """Resolves the content for a format tag."""

    async def resolve(self, tag: str) -> Content:
        """Return the content for ``tag``.

        Raises:
            ContentResolutionFailure: On network or parse errors.
        """
        ...


def _validate(tag: str, content: Content) -> Content:
    """Check resolved content is well-formed for its tag."""
    if tag == FormatTag.IMAGE.value:
        if not isinstance(content, bytes) or not content.startswith(PNG_SIGNATURE):
            raise ContentResolutionFailure(tag, "parse", "not a PNG image")
    elif tag == FormatTag.CUSTOM.value:
        try:
            json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ContentResolutionFailure(tag, "parse", f"invalid JSON: {e}") from e
    return content


class StaticContentProvider:
    """Serves content from the configured literal sources."""

    def __init__(self, config: ContentConfig | None = None) -> None:
        self._config = config or ContentConfig()

    async def resolve(self, tag: str) -> Content:
        source = self._config.source_for(tag)
        if source is None:
            raise ContentResolutionFailure(tag, "parse", "unknown format")
        return _validate(tag, self._literal(tag, source))

    @staticmethod
    def _literal(tag: str, source: str) -> Content:
        if tag != FormatTag.IMAGE.value:
            return source
        try:
            return base64.b64decode(source, validate=True)
        except binascii.Error as e:
            raise ContentResolutionFailure(tag, "parse", f"image is not base64: {e}") from e


class HttpContentProvider(StaticContentProvider):
    """Fetches http(s) sources with httpx; literal sources are served as-is.

    Args:
        config: Content sources.
        client: Shared AsyncClient. When omitted one is created per request.
    """

    def __init__(
        self,
        config: ContentConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        self._client = client

    async def resolve(self, tag: str) -> Content:
        source = self._config.source_for(tag)
        if source is None:
            raise ContentResolutionFailure(tag, "parse", "unknown format")
        if not source.startswith(("http://", "https://")):
            return _validate(tag, self._literal(tag, source))

        logger.debug("Fetching %s from %s", tag, source)
        body = await self._fetch(tag, source)
        if tag == FormatTag.IMAGE.value:
            return _validate(tag, body)
        try:
            return _validate(tag, body.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise ContentResolutionFailure(tag, "parse", f"response is not UTF-8: {e}") from e

    async def _fetch(self, tag: str, url: str) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._config.request_timeout)
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ContentResolutionFailure(
                tag, "network", f"HTTP {e.response.status_code} from {url}"
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ContentResolutionFailure(tag, "network", f"{type(e).__name__}: {e}") from e
        return response.content


def create_content_provider(
    config: ContentConfig, client: httpx.AsyncClient | None = None
) -> ContentProvider:
    """HttpContentProvider when any source is a URL, else StaticContentProvider."""
    sources = (config.text, config.html, config.custom, config.image)
    if any(s.startswith(("http://", "https://")) for s in sources):
        return HttpContentProvider(config, client)
    return StaticContentProvider(config)
