"""Page fetcher — download a URL and reduce it to clean body text."""

from __future__ import annotations

import logging
import re
import time

import requests
from bs4 import BeautifulSoup

from kb_assistant.config import settings
from kb_assistant.exceptions import FetchError
from kb_assistant.ingestion.models import PageContent, PageSpec

logger = logging.getLogger(__name__)

DEFAULT_PAGES: list[PageSpec] = [
    PageSpec(
        url="https://www.shermanstravel.com/cruise-destinations/alaska-itineraries",
        label="Alaska",
    ),
    PageSpec(
        url="https://www.shermanstravel.com/cruise-destinations/caribbean-and-bahamas",
        label="Caribbean & Bahamas",
    ),
    PageSpec(
        url="https://www.shermanstravel.com/cruise-destinations/hawaiian-islands",
        label="Hawaiian Islands",
    ),
    PageSpec(
        url="https://www.shermanstravel.com/cruise-destinations/northern-europe",
        label="Northern Europe",
    ),
]

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_BOILERPLATE = "script, style, nav, footer, header, .advertisement, .ad, .popup, .modal"

_CONTENT_SELECTORS = (
    "main",
    ".content",
    ".main-content",
    "article",
    ".article-content",
    ".post-content",
    ".entry-content",
    "body",
)


def extract_text(html: str) -> str:
    """Strip boiler-plate and return the collapsed text of the main content."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.select(_BOILERPLATE):
        tag.decompose()

    text = ""
    for selector in _CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            text = node.get_text(" ")
            break
    if not text:
        text = soup.get_text(" ")

    return re.sub(r"\s+", " ", text).strip()


class PageFetcher:
    """Fetch pages over HTTP with a fixed timeout and bounded retries.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Extra attempts after the first failure.  Waits ``2 ** attempt``
        seconds between attempts.
    """

    def __init__(
        self,
        *,
        timeout: float = settings.fetch_timeout,
        max_retries: int = settings.fetch_max_retries,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def fetch(self, page: PageSpec) -> PageContent:
        """Download *page* and return its cleaned content."""
        logger.info("Scraping: %s", page.url)
        response = self._get(page.url)
        text = extract_text(response.text)
        content = PageContent.from_text(page.url, page.label, text)
        logger.info("Scraped %s (%d chars)", page.url, len(text))
        return content

    def _get(self, url: str) -> requests.Response:
        attempts = self.max_retries + 1
        last_exc: requests.RequestException | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response
            except requests.RequestException as exc:
                last_exc = exc
                if attempt < attempts:
                    wait = 2**attempt
                    logger.warning("Retry %d/%d for %s (wait %ds): %s", attempt, self.max_retries, url, wait, exc)
                    time.sleep(wait)
        raise FetchError(f"Failed to scrape {url}: {last_exc}", item=url) from last_exc
