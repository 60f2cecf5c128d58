# tests/sitemap/test_sitemap_parse.py
import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from sitemap.services.sitemap_fetcher_service import SitemapFetcherService, SitemapFetchError
from sitemap.services.sitemap_parse_service import SitemapParseService
from sitemap.utils.url_utils import UrlUtils

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"
        xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">
  <url>
    <loc>https://example.com/artists/drake</loc>
    <lastmod>2024-01-01</lastmod>
    <priority>0.8</priority>
    <image:image><image:loc>https://cdn.example.com/drake.jpg</image:loc></image:image>
  </url>
  <url>
    <loc> https://example.com/about </loc>
    <changefreq>monthly</changefreq>
  </url>
  <url>
    <lastmod>2024-01-02</lastmod>
  </url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/sitemap-artists.xml</loc></sitemap>
  <sitemap><loc>https://example.com/sitemap-broken.xml</loc></sitemap>
  <sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>
</sitemapindex>
"""


@pytest.fixture
def parser() -> SitemapParseService:
    return SitemapParseService()


def test_parse_urlset(parser):
    urls = parser.parse(URLSET)

    assert [u.loc for u in urls] == ["https://example.com/artists/drake", "https://example.com/about"]
    assert urls[0].lastmod == "2024-01-01"
    assert urls[0].priority == "0.8"
    assert urls[1].changefreq == "monthly"
    assert urls[1].lastmod is None


def test_parse_index(parser):
    assert parser.is_index(INDEX)
    assert not parser.is_index(URLSET)
    assert parser.parse_index(INDEX) == [
        "https://example.com/sitemap-artists.xml",
        "https://example.com/sitemap-broken.xml",
        "https://example.com/sitemap-pages.xml",
    ]


def test_parse_non_sitemap_returns_nothing(parser):
    assert parser.parse("<html><body>hi</body></html>") == []
    assert parser.parse_index(URLSET) == []


def _urlset(*locs: str) -> str:
    body = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{body}</urlset>'


def test_fetch_urls_follows_index_one_level(monkeypatch):
    """Kind-sitemaps worden in indexvolgorde samengevoegd; kapotte worden overgeslagen."""
    documents = {
        "https://example.com/sitemap.xml": INDEX,
        "https://example.com/sitemap-artists.xml": _urlset("https://example.com/artists/a"),
        "https://example.com/sitemap-pages.xml": _urlset("https://example.com/about", "https://example.com/faq"),
    }
    fetcher = SitemapFetcherService()

    async def fake_fetch_xml(url: str) -> str:
        if url not in documents:
            raise SitemapFetchError(f"Failed to fetch sitemap from {url}: 404 Not Found")
        return documents[url]

    monkeypatch.setattr(fetcher, "fetch_xml", fake_fetch_xml)

    urls = asyncio.run(fetcher.fetch_urls("https://example.com/sitemap.xml"))

    assert [u.loc for u in urls] == [
        "https://example.com/artists/a",
        "https://example.com/about",
        "https://example.com/faq",
    ]


def test_fetch_xml_requires_session():
    with pytest.raises(RuntimeError):
        asyncio.run(SitemapFetcherService().fetch_xml("https://example.com/sitemap.xml"))


def test_fetcher_reads_session_timeout():
    assert SitemapFetcherService({"session": {"time_out": 5}}).timeout == 5
    assert SitemapFetcherService().timeout == 30


@pytest.mark.parametrize("site,expected", [
    ("https://example.com", "https://example.com/sitemap.xml"),
    ("example.com", "https://example.com/sitemap.xml"),
    ("http://example.com/some/page?q=1", "http://example.com/sitemap.xml"),
])
def test_get_sitemap_url(site, expected):
    assert UrlUtils.get_sitemap_url(site) == expected


# --- Fetching against a local server ---

def _serve_and_fetch(routes, scenario, time_out=5):
    """Starts a local aiohttp app with `routes` and awaits scenario(fetcher, server)."""

    async def run():
        app = web.Application()
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        async with TestServer(app) as server:
            fetcher = SitemapFetcherService({"session": {"time_out": time_out}})
            async with fetcher:
                return await scenario(fetcher, server)

    return asyncio.run(run())


def _xml(body: str):
    async def handler(request):
        return web.Response(text=body, content_type="application/xml")
    return handler


async def _slow(request):
    await asyncio.sleep(1)
    return web.Response(text=_urlset("https://example.com/late"), content_type="application/xml")


async def _not_found(request):
    return web.Response(status=404, text="nope")


def test_fetch_xml_returns_sitemap_body():
    body = _urlset("https://example.com/a")

    async def scenario(fetcher, server):
        return await fetcher.fetch_xml(str(server.make_url("/sitemap.xml")))

    assert _serve_and_fetch({"/sitemap.xml": _xml(body)}, scenario) == body


def test_fetch_xml_non_200_raises():
    async def scenario(fetcher, server):
        await fetcher.fetch_xml(str(server.make_url("/sitemap.xml")))

    with pytest.raises(SitemapFetchError, match="404 Not Found"):
        _serve_and_fetch({"/sitemap.xml": _not_found}, scenario)


def test_fetch_xml_rejects_non_sitemap_body():
    async def scenario(fetcher, server):
        await fetcher.fetch_xml(str(server.make_url("/sitemap.xml")))

    with pytest.raises(SitemapFetchError, match="Invalid sitemap format"):
        _serve_and_fetch({"/sitemap.xml": _xml("<html><body>Welcome</body></html>")}, scenario)


def test_fetch_xml_timeout_raises_fetch_error():
    async def scenario(fetcher, server):
        await fetcher.fetch_xml(str(server.make_url("/sitemap.xml")))

    with pytest.raises(SitemapFetchError, match="TimeoutError"):
        _serve_and_fetch({"/sitemap.xml": _slow}, scenario, time_out=0.2)


def test_fetch_urls_skips_slow_and_invalid_child_sitemaps():
    """Een trage of ongeldige kind-sitemap mag de rest van de index niet blokkeren."""
    async def index(request):
        children = [
            str(request.url.with_path("/slow.xml")),
            "/relative.xml",
            str(request.url.with_path("/ok.xml")),
        ]
        body = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in children)
        return web.Response(
            text=f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{body}</sitemapindex>',
            content_type="application/xml",
        )

    routes = {
        "/sitemap.xml": index,
        "/slow.xml": _slow,
        "/ok.xml": _xml(_urlset("https://example.com/ok")),
    }

    async def scenario(fetcher, server):
        return await fetcher.fetch_urls(str(server.make_url("/sitemap.xml")))

    urls = _serve_and_fetch(routes, scenario, time_out=0.3)

    assert [u.loc for u in urls] == ["https://example.com/ok"]
