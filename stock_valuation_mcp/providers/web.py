"""
Keyless web sources: DuckDuckGo's HTML search page, Google News RSS and
plain page fetches.

HTTP lives in `WebClient`; the `parse_*` functions are pure and work on the
response text, so they can be exercised without a network.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

import httpx
from bs4 import BeautifulSoup

from ..config import Settings
from ..logging_config import get_logger
from . import DataProviderError

logger = get_logger(__name__)

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"
GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search"

TIME_RANGE_CODES = {"all": "", "day": "d", "week": "w", "month": "m", "year": "y"}

# language -> (gl, ceid)
NEWS_REGIONS = {
    "th": ("TH", "TH:th"),
    "zh": ("CN", "CN:zh"),
    "ja": ("JP", "JP:ja"),
    "ko": ("KR", "KR:ko"),
}
DEFAULT_NEWS_REGION = ("US", "US:en")


def clean_result_url(href: str) -> str:
    """Unwrap DuckDuckGo's /l/?uddg=<target> redirect links."""
    if not href:
        return ""
    absolute = "https:" + href if href.startswith("//") else href
    parsed = urlparse(absolute)
    if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return unquote(target[0])
    return href


def parse_search_results(html: str, max_results: int) -> List[Dict[str, str]]:
    soup = BeautifulSoup(html, "html.parser")
    results: List[Dict[str, str]] = []
    for node in soup.select(".result"):
        if len(results) >= max_results:
            break
        anchor = node.select_one(".result__a")
        if anchor is None:
            continue
        title = anchor.get_text(strip=True)
        url = clean_result_url(anchor.get("href", ""))
        snippet_node = node.select_one(".result__snippet")
        snippet = snippet_node.get_text(" ", strip=True) if snippet_node else ""
        if title and url.startswith("http"):
            results.append({"title": title, "url": url, "snippet": snippet})
    return results


def strip_tags(html: str) -> str:
    return " ".join(BeautifulSoup(html, "html.parser").get_text(" ").split())


def domain_of(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else (host or "Unknown")


def _rss_date(text: str) -> Optional[str]:
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_news_feed(xml_text: str, max_results: int) -> List[Dict[str, Any]]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise DataProviderError(f"Invalid RSS feed: {e}") from e

    articles: List[Dict[str, Any]] = []
    for item in root.iter("item"):
        if len(articles) >= max_results:
            break
        title = (item.findtext("title") or "").strip()
        link = (item.findtext("link") or "").strip()
        if not title or not link:
            continue
        description = item.findtext("description") or ""
        source = (item.findtext("source") or "").strip() or domain_of(link)
        articles.append(
            {
                "title": title,
                "url": link,
                "source": source,
                "publishedDate": _rss_date(item.findtext("pubDate") or ""),
                "snippet": strip_tags(description),
                "rawText": f"{title} {description}",
            }
        )
    return articles


class WebClient:
    """Async HTTP access for the web tools; a new httpx client per call."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._timeout = settings.http_timeout
        self._user_agent = settings.user_agent
        self._transport = transport

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        headers = {"User-Agent": self._user_agent, **kwargs.pop("headers", {})}
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
            **kwargs,
        )

    async def search(self, query: str, max_results: int, time_range: str, safe_search: bool) -> List[Dict[str, str]]:
        form = {
            "q": query,
            "kl": "us-en",
            "df": TIME_RANGE_CODES.get(time_range, ""),
            "p": "1" if safe_search else "-1",
        }
        try:
            async with self._client() as client:
                response = await client.post(DUCKDUCKGO_HTML_URL, data=form)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DataProviderError(f'Web search failed for "{query}": {e}') from e
        return parse_search_results(response.text, max_results)

    async def news(
        self,
        query: str,
        max_results: int,
        language: str,
        source: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        gl, ceid = NEWS_REGIONS.get(language, DEFAULT_NEWS_REGION)
        params = {
            "q": f"{query} site:{source}" if source else query,
            "hl": language,
            "gl": gl,
            "ceid": ceid,
        }
        try:
            async with self._client() as client:
                response = await client.get(GOOGLE_NEWS_RSS_URL, params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DataProviderError(f'News search failed for "{query}": {e}') from e
        return parse_news_feed(response.text, max_results)

    async def fetch_page(self, url: str) -> Tuple[str, str]:
        """GET a page, following redirects; returns (final_url, html)."""
        headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        try:
            async with self._client(headers=headers, follow_redirects=True, max_redirects=5) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DataProviderError(f'Failed to fetch URL "{url}": {e}') from e
        logger.debug("Fetched %s (%d bytes)", response.url, len(response.content))
        return str(response.url), response.text
