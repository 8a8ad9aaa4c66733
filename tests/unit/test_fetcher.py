"""Unit tests for HTML extraction and the retrying page fetcher."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from kb_assistant.exceptions import FetchError
from kb_assistant.ingestion.fetcher import DEFAULT_PAGES, PageFetcher, extract_text
from kb_assistant.ingestion.models import PageSpec

PAGE = PageSpec(url="https://example.com/alaska", label="Alaska")

HTML = """
<html>
  <head><style>.x { color: red; }</style></head>
  <body>
    <header>Site header</header>
    <nav>Home | Deals</nav>
    <main>
      <h1>Alaska   cruises</h1>
      <p>Glacier Bay
         is stunning.</p>
      <div class="advertisement">Buy now!</div>
      <script>track();</script>
    </main>
    <footer>Copyright</footer>
  </body>
</html>
"""


class TestExtractText:
    def test_keeps_main_content_only(self) -> None:
        assert extract_text(HTML) == "Alaska cruises Glacier Bay is stunning."

    def test_falls_back_to_body(self) -> None:
        assert extract_text("<html><body><p>plain  text</p></body></html>") == "plain text"

    def test_prefers_article_over_body(self) -> None:
        html = "<body><div>noise</div><article>story</article></body>"
        assert extract_text(html) == "story"


def _response(text: str = HTML, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.text = text
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Client Error")
    return response


class TestPageFetcher:
    def test_fetch_returns_cleaned_page(self) -> None:
        session = MagicMock()
        session.headers = {}
        session.get.return_value = _response()
        page = PageFetcher(timeout=5, max_retries=0, session=session).fetch(PAGE)
        assert page.origin_id == PAGE.url
        assert page.label == "Alaska"
        assert page.cleaned_text == "Alaska cruises Glacier Bay is stunning."
        assert len(page.content_hash) == 32
        session.get.assert_called_once_with(PAGE.url, timeout=5)
        assert "Mozilla" in session.headers["User-Agent"]

    def test_retries_then_succeeds(self) -> None:
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = [requests.ConnectionError("reset"), _response()]
        with patch("kb_assistant.ingestion.fetcher.time.sleep") as sleep:
            page = PageFetcher(max_retries=2, session=session).fetch(PAGE)
        assert page.cleaned_text.startswith("Alaska")
        sleep.assert_called_once_with(2)

    def test_exhausted_retries_raise_fetch_error(self) -> None:
        session = MagicMock()
        session.headers = {}
        session.get.return_value = _response(status=404)
        with patch("kb_assistant.ingestion.fetcher.time.sleep") as sleep:
            with pytest.raises(FetchError, match="404") as info:
                PageFetcher(max_retries=2, session=session).fetch(PAGE)
        assert info.value.item == PAGE.url
        assert info.value.stage == "fetch"
        assert session.get.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2, 4]


def test_default_pages() -> None:
    assert [p.label for p in DEFAULT_PAGES] == [
        "Alaska",
        "Caribbean & Bahamas",
        "Hawaiian Islands",
        "Northern Europe",
    ]
