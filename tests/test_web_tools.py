"""Web search, page fetch and news search against mocked HTTP responses."""

from urllib.parse import parse_qs

import httpx
import pytest

from stock_valuation_mcp.config import Settings
from stock_valuation_mcp.dispatcher import ToolDispatcher
from stock_valuation_mcp.providers.web import WebClient, clean_result_url, parse_news_feed
from stock_valuation_mcp.tools import ToolRegistry, web_tools
from stock_valuation_mcp.tools.web_tools import analyze_sentiment, normalize_url

pytestmark = pytest.mark.anyio

SEARCH_HTML = """
<html><body>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpe-band&rut=abc">PE band guide</a>
    <a class="result__snippet">How to read a <b>PE band</b> chart.</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://example.org/ddm">Dividend discount model</a>
    <a class="result__snippet">Gordon growth explained.</a>
  </div>
  <div class="result">
    <a class="result__a" href="/relative/only">Not a web result</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://example.net/third">Third</a>
  </div>
</body></html>
"""

ARTICLE = "Valuation matters. " * 20

PAGE_HTML = f"""
<html>
<head>
  <title>Stock Valuation Basics</title>
  <meta name="description" content="An introduction to valuation">
  <meta name="author" content="Research Desk">
  <meta property="og:image" content="https://cdn.example.com/cover.png">
</head>
<body>
  <nav><a href="/home">Home</a></nav>
  <article>
    <h2>Intrinsic value</h2>
    <p>{ARTICLE}<strong>Margin of safety</strong> is key.</p>
    <ul><li>PE band</li><li>DDM</li></ul>
    <a href="https://other.example.org/ref">Reference</a>
    <img src="/img/chart.png" alt="chart">
  </article>
  <script>var tracking = 1;</script>
  <footer>Copyright</footer>
</body>
</html>
"""

NEWS_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel>
  <item>
    <title>Bank shares rally on strong profit growth</title>
    <link>https://www.reuters.com/markets/a</link>
    <description>&lt;b&gt;Banks&lt;/b&gt; beat estimates</description>
    <pubDate>Mon, 15 Jan 2024 08:00:00 GMT</pubDate>
    <source url="https://www.reuters.com">Reuters</source>
  </item>
  <item>
    <title>Exporters face recession risk as orders drop</title>
    <link>https://www.bangkokpost.com/business/b</link>
    <description>Orders fall sharply</description>
    <pubDate>Tue, 16 Jan 2024 09:30:00 GMT</pubDate>
  </item>
  <item>
    <title>Central bank holds rate</title>
    <link>https://example.com/c</link>
    <description>No change</description>
    <pubDate>Sun, 14 Jan 2024 10:00:00 GMT</pubDate>
  </item>
</channel></rss>
"""


def _dispatcher(handler):
    client = WebClient(Settings(), transport=httpx.MockTransport(handler))
    return ToolDispatcher(ToolRegistry([web_tools.build_tools(client)]))


def test_clean_result_url():
    assert clean_result_url("//duckduckgo.com/l/?uddg=https%3A%2F%2Fa.com%2Fx&rut=1") == "https://a.com/x"
    assert clean_result_url("https://b.com/y") == "https://b.com/y"
    assert clean_result_url("") == ""


def test_normalize_url():
    assert normalize_url("example.com/page") == "https://example.com/page"
    assert normalize_url("http://example.com") == "http://example.com"


def test_sentiment_keywords():
    assert analyze_sentiment("Shares surge after strong results") == "positive"
    assert analyze_sentiment("Profit warning as sales drop and risk grows") == "negative"
    assert analyze_sentiment("Board meeting scheduled") == "neutral"


def test_parse_news_feed_falls_back_to_domain():
    articles = parse_news_feed(NEWS_RSS, 10)
    assert articles[0]["source"] == "Reuters"
    assert articles[0]["snippet"] == "Banks beat estimates"
    assert articles[0]["publishedDate"] == "2024-01-15T08:00:00Z"
    assert articles[1]["source"] == "bangkokpost.com"


async def test_web_search():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, text=SEARCH_HTML)

    result = await _dispatcher(handler).dispatch(
        "web_search", {"query": "pe band", "maxResults": 2, "timeRange": "week"}
    )
    value = result.value

    assert seen["method"] == "POST"
    assert seen["form"]["q"] == ["pe band"]
    assert seen["form"]["df"] == ["w"]
    assert seen["form"]["p"] == ["1"]
    assert value["totalResults"] == 2
    assert value["results"][0] == {
        "title": "PE band guide",
        "url": "https://example.com/pe-band",
        "snippet": "How to read a PE band chart.",
    }


async def test_web_search_limits_and_validation():
    dispatcher = _dispatcher(lambda request: httpx.Response(200, text=SEARCH_HTML))

    too_many = await dispatcher.dispatch("web_search", {"query": "x", "maxResults": 51})
    assert too_many.error.code == -32602

    blank = await dispatcher.dispatch("web_search", {"query": "   "})
    assert "Search query cannot be empty" in blank.error.message


async def test_web_search_upstream_failure():
    dispatcher = _dispatcher(lambda request: httpx.Response(503))
    result = await dispatcher.dispatch("web_search", {"query": "pe band"})
    assert result.error.code == -32603
    assert 'Web search failed for "pe band"' in result.error.message


async def test_web_fetch_markdown_with_links_and_images():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, text=PAGE_HTML, headers={"content-type": "text/html"})

    result = await _dispatcher(handler).dispatch(
        "web_fetch",
        {"url": "example.com/guide", "includeLinks": True, "includeImages": True, "format": "markdown"},
    )
    value = result.value

    assert seen["url"] == "https://example.com/guide"
    assert value["title"] == "Stock Valuation Basics"
    assert value["format"] == "markdown"
    assert "## Intrinsic value" in value["content"]
    assert "**Margin of safety**" in value["content"]
    assert "- PE band" in value["content"]
    assert "tracking" not in value["content"]
    assert "Copyright" not in value["content"]

    assert value["metadata"]["description"] == "An introduction to valuation"
    assert value["metadata"]["author"] == "Research Desk"
    assert value["metadata"]["wordCount"] > 40

    assert {"text": "Home", "url": "https://example.com/home"} in value["links"]["internal"]
    assert value["links"]["external"] == [{"text": "Reference", "url": "https://other.example.org/ref"}]
    assert value["images"] == [{"src": "https://example.com/img/chart.png", "alt": "chart"}]


async def test_web_fetch_text_format():
    dispatcher = _dispatcher(lambda request: httpx.Response(200, text=PAGE_HTML))
    value = (await dispatcher.dispatch("web_fetch", {"url": "https://example.com"})).value

    assert value["format"] == "text"
    assert value["content"].startswith("Intrinsic value Valuation matters.")
    assert "\n" not in value["content"]
    assert "links" not in value


async def test_web_fetch_failure():
    dispatcher = _dispatcher(lambda request: httpx.Response(404))
    result = await dispatcher.dispatch("web_fetch", {"url": "https://example.com/missing"})
    assert 'Failed to fetch URL "https://example.com/missing"' in result.error.message


async def test_news_search_sorted_by_date():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, text=NEWS_RSS)

    result = await _dispatcher(handler).dispatch(
        "news_search", {"query": "thai banks", "language": "th", "source": "reuters.com", "sortBy": "date"}
    )
    value = result.value

    assert seen["params"] == {"q": "thai banks site:reuters.com", "hl": "th", "gl": "TH", "ceid": "TH:th"}
    assert value["totalResults"] == 3
    assert [a["url"] for a in value["articles"]] == [
        "https://www.bangkokpost.com/business/b",
        "https://www.reuters.com/markets/a",
        "https://example.com/c",
    ]
    sentiments = {a["url"]: a["sentiment"] for a in value["articles"]}
    assert sentiments["https://www.reuters.com/markets/a"] == "positive"
    assert sentiments["https://www.bangkokpost.com/business/b"] == "negative"
    assert sentiments["https://example.com/c"] == "neutral"
    assert value["sources"] == ["Reuters", "bangkokpost.com", "example.com"]
    assert all("rawText" not in a for a in value["articles"])


async def test_news_search_defaults_to_us_english():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, text=NEWS_RSS)

    value = (await _dispatcher(handler).dispatch("news_search", {"query": "set index", "maxResults": 1})).value

    assert seen["params"]["gl"] == "US" and seen["params"]["ceid"] == "US:en"
    assert value["totalResults"] == 1
