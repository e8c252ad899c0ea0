"""httpx-based web page fetching for URL catalog sources.

Validates the URL before any network access, then retrieves the page
either directly or through a configured fetch proxy that wraps the body in
JSON (``{"contents": "<html>..."}``). There is no retry at this layer: a
failed fetch abandons the pipeline run.

The fetched markup is reduced to visible text with BeautifulSoup when
``strip_markup`` is enabled, which keeps model payloads small.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from carcatalog.config.settings import SourceSettings
from carcatalog.errors import InvalidUrlError, NetworkFetchError

logger = logging.getLogger(__name__)

_BLANK_LINES_RE = re.compile(r"\n\s*\n+")

# Tags whose content is never visible page text
_INVISIBLE_TAGS = ("script", "style", "noscript", "template")


def validate_url(url: str) -> str:
    """Check that *url* is an absolute http(s) URL.

    Args:
        url: User-supplied URL string.

    Returns:
        The URL's host, used as the catalog label.

    Raises:
        InvalidUrlError: If the string is not an absolute http(s) URL.
    """
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidUrlError(detail=str(e)) from e

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidUrlError(detail=f"not an absolute http(s) URL: {url!r}")
    if any(ch.isspace() for ch in candidate):
        raise InvalidUrlError(detail=f"URL contains whitespace: {url!r}")

    return parsed.hostname


def html_to_text(markup: str) -> str:
    """Reduce HTML markup to its visible text.

    Drops script/style blocks, joins text nodes with newlines, and
    collapses runs of blank lines.
    """
    soup = BeautifulSoup(markup, "lxml")
    for tag in soup(_INVISIBLE_TAGS):
        tag.decompose()

    text = soup.get_text("\n", strip=True)
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


class WebFetcher:
    """Fetch catalog web pages as text.

    Args:
        settings: Source configuration (timeout, proxy, user agent).
        transport: Optional httpx transport, used by tests to stub the network.
    """

    def __init__(
        self,
        settings: SourceSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    async def fetch(self, url: str) -> str:
        """Return the textual content of the page at *url*.

        Raises:
            InvalidUrlError: If *url* is not valid (no request is made).
            NetworkFetchError: On non-success status or any request failure.
        """
        validate_url(url)
        url = url.strip()

        async with httpx.AsyncClient(
            timeout=self.settings.fetch_timeout_seconds,
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            if self.settings.fetch_proxy_url:
                content = await self._fetch_via_proxy(client, url)
            else:
                content = await self._fetch_direct(client, url)

        logger.info("Fetched %d chars from %s", len(content), url)

        if self.settings.strip_markup:
            content = html_to_text(content)
            logger.debug("Stripped markup, %d chars of text remain", len(content))
        return content

    async def _fetch_direct(self, client: httpx.AsyncClient, url: str) -> str:
        response = await self._get(client, url)
        return response.text

    async def _fetch_via_proxy(self, client: httpx.AsyncClient, url: str) -> str:
        response = await self._get(
            client, self.settings.fetch_proxy_url, params={"url": url}
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise NetworkFetchError(
                "The fetch proxy returned an unreadable response.", detail=str(e)
            ) from e

        contents = payload.get("contents") if isinstance(payload, dict) else None
        if not isinstance(contents, str):
            raise NetworkFetchError("The fetch proxy returned no page contents.")
        return contents

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("Fetch of %s failed with HTTP %d", url, status)
            raise NetworkFetchError(
                f"Failed to retrieve the web page (HTTP {status}).",
                detail=str(e),
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # Transport failures, redirect loops, undecodable bodies
            logger.warning("Fetch of %s failed: %r", url, e)
            raise NetworkFetchError(
                f"Failed to retrieve the web page: {e}", detail=repr(e)
            ) from e
        return response
