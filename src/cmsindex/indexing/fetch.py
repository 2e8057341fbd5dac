"""Frontend fetching of rendered item pages with SSRF controls."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urljoin

import requests

from cmsindex.config.models import FrontendFetchSettings
from cmsindex.errors import AcquisitionError, UnsafeUrlError
from cmsindex.hooks import ContentExtractionContext, HookEvent, HookRegistry, safe_call

from .models import ContentAcquisitionDiagnostic
from .safety import UrlSafetyPolicy
from .text import (
    TRUNCATION_MARKER,
    html_to_text,
    looks_like_html,
    strip_control_characters,
    truncate_bytes,
)

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 8192
_DEBUG_HEADERS = ("content-type", "content-length", "server", "location", "cache-control")


@dataclass(slots=True)
class FetchResult:
    """Text obtained from a page together with its diagnostic.

    Attributes:
        content: Extracted text, empty when the fetch failed.
        diagnostic: Attempt diagnostic; ``attempted`` is always True.
        truncated: Whether the body exceeded the size cap.
    """

    content: str
    diagnostic: ContentAcquisitionDiagnostic
    truncated: bool = False


class FrontendFetcher:
    """Fetch an item's public page and reduce it to searchable text."""

    def __init__(
        self,
        settings: FrontendFetchSettings,
        *,
        hooks: HookRegistry | None = None,
        session: requests.Session | None = None,
        safety: UrlSafetyPolicy | None = None,
        content_callback: Optional[Callable[[Any], Any]] = None,
        extractor_callback: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            settings: Frontend fetch settings (timeouts, caps, blocked hosts).
            hooks: Registry consulted for content extraction hooks.
            session: HTTP session shared by every caller; when omitted each thread
                gets its own ``requests.Session``.
            safety: URL policy; derived from ``settings`` when omitted.
            content_callback: Optional ``(item) -> str`` override consulted first.
            extractor_callback: Optional ``(html) -> str`` replacing HTML extraction.
        """

        self.settings = settings
        self.hooks = hooks or HookRegistry()
        self._shared_session = session
        self._local = threading.local()
        self.safety = safety or UrlSafetyPolicy(
            blocked_hosts=settings.blocked_hosts,
            resolve_hostnames=settings.resolve_hostnames,
        )
        self.content_callback = content_callback
        self.extractor_callback = extractor_callback

    @property
    def session(self) -> requests.Session:
        """Return the HTTP session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def fetch(self, url: str, item: Any = None) -> FetchResult:
        """Return the text behind ``url``; never raises.

        Args:
            url: Public URL of the item.
            item: Item the page belongs to, passed to callbacks and hooks.

        Returns:
            FetchResult: Extracted text and the attempt diagnostic.
        """

        diagnostic = ContentAcquisitionDiagnostic(attempted=True, url=url)

        override = safe_call(self.content_callback, item, context="content callback", default=None)
        if isinstance(override, str) and override.strip():
            LOGGER.info("Using content callback output for %s", url)
            cleaned = strip_control_characters(override)
            text = html_to_text(cleaned) if looks_like_html(cleaned) else cleaned.strip()
            diagnostic.succeeded = bool(text)
            return FetchResult(text, diagnostic)

        try:
            body, content_type, truncated = self._download(url, diagnostic)
        except AcquisitionError as exc:
            diagnostic.error = exc.code
            LOGGER.warning("Frontend fetch of %s failed (%s): %s", url, exc.code, exc)
            return FetchResult("", diagnostic)

        text = self.extract(body, content_type, item)
        if not text:
            diagnostic.error = "empty_content"
            LOGGER.warning("Frontend fetch of %s produced no content", url)
            return FetchResult("", diagnostic, truncated)
        if truncated:
            text += TRUNCATION_MARKER
        diagnostic.succeeded = True
        return FetchResult(text, diagnostic, truncated)

    def extract(self, raw: str, content_type: str, item: Any = None) -> str:
        """Reduce a response body to text.

        HTML (or an unknown content type) goes through the extractor callback
        or BeautifulSoup; other ``text/*`` types pass through trimmed. Hooks
        run around the extraction and may replace the result.
        """

        content_type = content_type.lower()
        is_html = not content_type or "html" in content_type or not content_type.startswith("text/")
        context = self.hooks.run(
            HookEvent.BEFORE_EXTRACT_CONTENT,
            ContentExtractionContext(item=item, raw_content=raw),
        )
        if context.skip_default or context.extracted_content:
            extracted = context.extracted_content
        elif is_html:
            extracted = self._extract_html(context.raw_content)
        else:
            extracted = context.raw_content.strip()
        context.extracted_content = extracted
        context.skip_default = False
        self.hooks.run(HookEvent.AFTER_EXTRACT_CONTENT, context)
        return (context.extracted_content or "").strip()

    def _extract_html(self, html: str) -> str:
        custom = safe_call(
            self.extractor_callback, html, context="extractor callback", default=None
        )
        if isinstance(custom, str):
            return custom
        return html_to_text(html)

    def _download(
        self, url: str, diagnostic: ContentAcquisitionDiagnostic
    ) -> tuple[str, str, bool]:
        response = self._follow(url)
        try:
            diagnostic.status_code = response.status_code
            diagnostic.headers = {
                name: value
                for name, value in response.headers.items()
                if name.lower() in _DEBUG_HEADERS
            }
            if response.status_code >= 400:
                raise AcquisitionError(
                    f"HTTP error {response.status_code} for {url}",
                    code=f"HTTP {response.status_code} error",
                )
            body, truncated = self._read_capped(response)
            content_type = response.headers.get("Content-Type", "")
            encoding = response.encoding or "utf-8"
        finally:
            response.close()

        try:
            text = body.decode(encoding, errors="ignore")
        except LookupError:
            text = body.decode("utf-8", errors="ignore")
        return strip_control_characters(text), content_type, truncated

    def _follow(self, url: str) -> requests.Response:
        """Issue the GET, following redirects manually and validating every hop."""
        current = url
        hops = 0
        while True:
            try:
                self.safety.check(current)
            except UnsafeUrlError as exc:
                if hops:
                    raise UnsafeUrlError(str(exc), code="unsafe_redirect") from exc
                raise
            response = self._request(current)
            if not response.is_redirect:
                return response
            location = response.headers.get("Location", "")
            response.close()
            if hops >= self.settings.max_redirects:
                raise AcquisitionError(
                    f"More than {self.settings.max_redirects} redirects from {url}",
                    code="too_many_redirects",
                )
            current = urljoin(current, location)
            hops += 1

    def _request(self, url: str) -> requests.Response:
        try:
            return self.session.get(
                url,
                timeout=self.settings.timeout_seconds,
                verify=self.settings.verify_certificates,
                headers={"User-Agent": self.settings.user_agent},
                allow_redirects=False,
                stream=True,
            )
        except requests.exceptions.RequestException as exc:
            raise _classify(exc) from exc

    def _read_capped(self, response: requests.Response) -> tuple[bytes, bool]:
        limit = self.settings.max_content_bytes
        buffer = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if not chunk:
                    continue
                buffer.extend(chunk)
                if len(buffer) > limit:
                    break
        except requests.exceptions.RequestException as exc:
            raise _classify(exc) from exc
        return truncate_bytes(bytes(buffer), limit)


def _classify(exc: requests.exceptions.RequestException) -> AcquisitionError:
    if isinstance(exc, requests.exceptions.Timeout):
        return AcquisitionError(str(exc), code="timeout")
    if isinstance(exc, requests.exceptions.SSLError):
        return AcquisitionError(str(exc), code="tls_error")
    if isinstance(exc, requests.exceptions.TooManyRedirects):
        return AcquisitionError(str(exc), code="too_many_redirects")
    if isinstance(exc, requests.exceptions.ConnectionError):
        return AcquisitionError(str(exc), code="connection_error")
    return AcquisitionError(str(exc), code="request_error")


__all__ = ["FrontendFetcher", "FetchResult"]
