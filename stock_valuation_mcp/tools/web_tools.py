"""
Web search, page fetch and news search tools.

Page content is reduced to its main text block after stripping scripts,
navigation and ad containers. News articles carry a rough keyword-based
sentiment label; it is a hint for the caller, not an analysis.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, NavigableString, Tag

from ..providers.web import WebClient
from . import RegisteredTool, define_tool
from .helpers import object_schema, string

CLUTTER_SELECTORS = "script, style, nav, header, footer, aside, .advertisement, .ads, .sidebar, .comments"
CONTENT_SELECTORS = [
    "article",
    "[role='main']",
    "main",
    ".content",
    ".post-content",
    ".article-content",
    ".entry-content",
    "#content",
    ".post-body",
    "body",
]
MIN_CONTENT_CHARS = 100

POSITIVE_WORDS = [
    "gain", "profit", "growth", "rise", "surge", "bullish", "rally", "breakthrough",
    "success", "beat", "exceed", "upgrade", "outperform", "strong", "recovery", "jump",
]
NEGATIVE_WORDS = [
    "loss", "fall", "drop", "decline", "bearish", "crash", "concern", "risk",
    "miss", "disappoint", "downgrade", "underperform", "weak", "recession", "plunge", "cut",
]

NEWS_LANGUAGES = ["en", "th", "zh", "ja", "ko", "de", "fr", "es"]


def analyze_sentiment(text: str) -> str:
    lowered = text.lower()
    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def normalize_url(url: str) -> str:
    url = url.strip()
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = "https://" + url
    return url


def _meta(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    node = soup.find("meta", attrs=attrs)
    if node is None:
        return None
    content = node.get("content")
    return content.strip() if content else None


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _inline_markdown(node: Any) -> str:
    if isinstance(node, NavigableString):
        return str(node)
    if not isinstance(node, Tag):
        return ""

    inner = "".join(_inline_markdown(child) for child in node.children)
    name = node.name
    if name in ("strong", "b"):
        return f"**{inner.strip()}**"
    if name in ("em", "i"):
        return f"*{inner.strip()}*"
    if name == "code":
        return f"`{inner}`"
    if name == "a":
        href = node.get("href")
        return f"[{inner.strip()}]({href})" if href else inner
    if name == "br":
        return "\n"
    return inner


def html_to_markdown(root: Tag) -> str:
    """Render the common block and inline elements of `root` as Markdown."""
    blocks: List[str] = []

    def walk(node: Tag) -> None:
        for child in node.children:
            if isinstance(child, NavigableString):
                text = _collapse(str(child))
                if text:
                    blocks.append(text)
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name
            if name in ("h1", "h2", "h3", "h4", "h5", "h6"):
                blocks.append("#" * int(name[1]) + " " + _collapse(child.get_text(" ")))
            elif name == "p":
                text = _inline_markdown(child).strip()
                if text:
                    blocks.append(text)
            elif name in ("ul", "ol"):
                items = child.find_all("li", recursive=False)
                lines = []
                for index, item in enumerate(items, start=1):
                    marker = f"{index}." if name == "ol" else "-"
                    lines.append(f"{marker} {_collapse(_inline_markdown(item))}")
                if lines:
                    blocks.append("\n".join(lines))
            elif name == "blockquote":
                text = _collapse(child.get_text(" "))
                if text:
                    blocks.append("> " + text)
            elif name == "pre":
                blocks.append("```\n" + child.get_text().strip("\n") + "\n```")
            elif name in ("strong", "b", "em", "i", "a", "code", "br", "span"):
                text = _inline_markdown(child).strip()
                if text:
                    blocks.append(text)
            else:
                walk(child)

    walk(root)
    return "\n\n".join(blocks).strip()


def extract_metadata(soup: BeautifulSoup, content_text: str, fetched_at: str) -> Dict[str, Any]:
    published = (
        _meta(soup, property="article:published_time")
        or _meta(soup, name="date")
    )
    if published is None:
        time_tag = soup.find("time", attrs={"datetime": True})
        published = time_tag["datetime"] if time_tag else None

    metadata: Dict[str, Any] = {
        "description": _meta(soup, name="description") or _meta(soup, property="og:description"),
        "keywords": _meta(soup, name="keywords"),
        "author": _meta(soup, name="author"),
        "publishedDate": published,
        "ogImage": _meta(soup, property="og:image"),
        "ogTitle": _meta(soup, property="og:title"),
        "ogDescription": _meta(soup, property="og:description"),
        "wordCount": len(content_text.split()),
        "fetchedAt": fetched_at,
    }
    return {key: value for key, value in metadata.items() if value is not None}


def main_content(soup: BeautifulSoup) -> Optional[Tag]:
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None and len(node.get_text(strip=True)) > MIN_CONTENT_CHARS:
            return node
    return soup.body or soup


def page_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(strip=True)
    heading = soup.find("h1")
    if heading and heading.get_text(strip=True):
        return heading.get_text(strip=True)
    return _meta(soup, property="og:title") or "Untitled"


def collect_links(soup: BeautifulSoup, base_url: str) -> Dict[str, List[Dict[str, str]]]:
    base_host = urlparse(base_url).hostname
    internal: List[Dict[str, str]] = []
    external: List[Dict[str, str]] = []
    seen: Set[str] = set()

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        absolute = urljoin(base_url, href)
        if not absolute.startswith("http") or absolute in seen:
            continue
        seen.add(absolute)
        entry = {"text": _collapse(anchor.get_text(" ")) or absolute, "url": absolute}
        (internal if urlparse(absolute).hostname == base_host else external).append(entry)

    return {"internal": internal, "external": external}


def collect_images(soup: BeautifulSoup, base_url: str) -> List[Dict[str, str]]:
    images: List[Dict[str, str]] = []
    seen: Set[str] = set()
    for img in soup.find_all("img", src=True):
        absolute = urljoin(base_url, img["src"].strip())
        if absolute in seen or absolute.startswith("data:"):
            continue
        seen.add(absolute)
        images.append({"src": absolute, "alt": img.get("alt", "")})
    return images


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class WebTools:
    def __init__(self, client: WebClient) -> None:
        self._client = client

    async def search(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        query = arguments["query"].strip()
        if not query:
            raise ValueError("Search query cannot be empty")

        started = time.monotonic()
        results = await self._client.search(
            query,
            arguments["maxResults"],
            arguments["timeRange"],
            arguments["safeSearch"],
        )
        return {
            "query": query,
            "totalResults": len(results),
            "results": results,
            "searchTime": _elapsed_ms(started),
        }

    async def fetch(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        url = normalize_url(arguments["url"])
        output = arguments["format"]
        final_url, html = await self._client.fetch_page(url)
        fetched_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        soup = BeautifulSoup(html, "html.parser")
        title = page_title(soup)
        links = collect_links(soup, final_url) if arguments["includeLinks"] else None
        images = collect_images(soup, final_url) if arguments["includeImages"] else None

        for node in soup.select(CLUTTER_SELECTORS):
            node.decompose()

        content_node = main_content(soup)
        text = _collapse(content_node.get_text(" "))
        if output == "html":
            content = str(content_node)
        elif output == "markdown":
            content = html_to_markdown(content_node)
        else:
            content = text

        result: Dict[str, Any] = {
            "url": final_url,
            "title": title,
            "content": content,
            "format": output,
            "metadata": extract_metadata(soup, text, fetched_at),
        }
        if links is not None:
            result["links"] = links
        if images is not None:
            result["images"] = images
        return result

    async def news(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        query = arguments["query"].strip()
        if not query:
            raise ValueError("Search query cannot be empty")

        started = time.monotonic()
        raw = await self._client.news(
            query,
            arguments["maxResults"],
            arguments["language"],
            arguments.get("source"),
        )

        articles = []
        for item in raw:
            article = {key: value for key, value in item.items() if key != "rawText"}
            article["sentiment"] = analyze_sentiment(item["rawText"])
            articles.append(article)

        if arguments["sortBy"] == "date":
            articles.sort(key=lambda a: a.get("publishedDate") or "", reverse=True)

        return {
            "query": query,
            "totalResults": len(articles),
            "articles": articles,
            "searchTime": _elapsed_ms(started),
            "sources": sorted({a["source"] for a in articles}),
        }


def build_tools(client: WebClient) -> List[RegisteredTool]:
    tools = WebTools(client)

    return [
        define_tool(
            "web_search",
            "Search the web with DuckDuckGo and return titles, URLs and snippets",
            object_schema(
                {
                    "query": string("Search query"),
                    "maxResults": {
                        "type": "integer",
                        "minimum": 1,
                        "maximum": 50,
                        "default": 10,
                        "description": "Maximum number of results (1-50)",
                    },
                    "timeRange": string(
                        "Restrict results to a recent time range",
                        enum=["all", "day", "week", "month", "year"],
                        default="all",
                    ),
                    "safeSearch": {"type": "boolean", "default": True, "description": "Enable safe search"},
                },
                required=["query"],
            ),
            tools.search,
        ),
        define_tool(
            "web_fetch",
            "Fetch a web page and extract its main content, metadata, links and images",
            object_schema(
                {
                    "url": string("URL to fetch (https:// is assumed when no scheme is given)"),
                    "includeLinks": {"type": "boolean", "default": False, "description": "Include page links"},
                    "includeImages": {"type": "boolean", "default": False, "description": "Include page images"},
                    "format": string(
                        "Content output format",
                        enum=["text", "markdown", "html"],
                        default="text",
                    ),
                },
                required=["url"],
            ),
            tools.fetch,
        ),
        define_tool(
            "news_search",
            "Search recent news via Google News RSS with a keyword-based sentiment label per article",
            object_schema(
                {
                    "query": string("News search query"),
                    "maxResults": {
                        "type": "integer",
                        "minimum": 1,
                        "maximum": 30,
                        "default": 10,
                        "description": "Maximum number of articles (1-30)",
                    },
                    "source": string('Restrict to a news site domain (e.g., "reuters.com")'),
                    "language": string("News language", enum=NEWS_LANGUAGES, default="en"),
                    "sortBy": string(
                        "Order articles by relevance or publication date",
                        enum=["relevance", "date"],
                        default="relevance",
                    ),
                },
                required=["query"],
            ),
            tools.news,
        ),
    ]
