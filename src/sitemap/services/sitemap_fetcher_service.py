# src/sitemap/services/sitemap_fetcher_service.py
import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from sitemap.model import SitemapUrl
from sitemap.services.sitemap_parse_service import SitemapParseService
from sitemap.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


class SitemapFetchError(Exception):
    """Raised when a sitemap cannot be downloaded or is not a sitemap."""


class SitemapFetcherService:
    """
    Downloads sitemap XML over a shared aiohttp session and resolves it into
    the site's ordered URL list. A sitemap index is followed one level deep.
    """

    def __init__(self, config: Optional[Dict] = None, user_agent: Optional[str] = None):
        self.config = config or {}
        session_config = self.config.get('session', {})
        self.timeout = float(session_config.get('time_out', 30))
        self.user_agent = user_agent
        self.parser = SitemapParseService()
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            headers = {'Accept-Encoding': 'gzip, deflate'}
            if self.user_agent:
                headers['User-Agent'] = self.user_agent
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            )
            logger.debug("Sitemap fetch session initialized (timeout=%ss).", self.timeout)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()

    async def fetch_xml(self, url: str) -> str:
        if not self.session:
            raise RuntimeError("Session not initialized. Call initialize() first.")
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise SitemapFetchError(
                        f"Failed to fetch sitemap from {url}: {response.status} {response.reason}"
                    )
                xml = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SitemapFetchError(f"Failed to fetch sitemap from {url}: {e!r}") from e

        if '<urlset' not in xml and '<sitemapindex' not in xml:
            raise SitemapFetchError(f"Failed to fetch sitemap from {url}: Invalid sitemap format")
        return xml

    async def fetch_urls(self, url: str) -> List[SitemapUrl]:
        """Returns every <url> entry, child sitemaps concatenated in index order."""
        xml = await self.fetch_xml(url)
        if not self.parser.is_index(xml):
            return self.parser.parse(xml)

        urls: List[SitemapUrl] = []
        for child_url in self.parser.parse_index(xml):
            if not UrlUtils.is_absolute_http_url(child_url):
                logger.warning("Skipping child sitemap with invalid location '%s'.", child_url)
                continue
            try:
                child_xml = await self.fetch_xml(child_url)
            except SitemapFetchError as e:
                logger.warning("Skipping child sitemap: %s", e)
                continue
            urls.extend(self.parser.parse(child_xml))
        logger.info("Sitemap index %s resolved to %d URLs.", url, len(urls))
        return urls
