# src/sitemap/services/sitemap_parse_service.py
import logging
import warnings
from typing import List, Optional

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning
from pydantic import ValidationError

from sitemap.model import SitemapUrl

logger = logging.getLogger(__name__)

# html.parser reads sitemap XML; silence bs4's hint to install lxml.
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)


class SitemapParseService:
    """Extracts URL entries from <urlset> and child sitemaps from <sitemapindex>."""

    @staticmethod
    def _child_text(parent: Tag, name: str) -> Optional[str]:
        # recursive=False so that <image:loc> and friends inside <url> are ignored
        child = parent.find(name, recursive=False)
        if child is None:
            return None
        text = child.get_text(strip=True)
        return text or None

    @staticmethod
    def is_index(xml: str) -> bool:
        return "<sitemapindex" in xml

    def parse(self, xml: str) -> List[SitemapUrl]:
        """Returns the <url> entries of a urlset in document order."""
        soup = BeautifulSoup(xml, "html.parser")
        urlset = soup.find("urlset")
        if urlset is None:
            return []

        urls: List[SitemapUrl] = []
        for url_tag in urlset.find_all("url", recursive=False):
            try:
                urls.append(SitemapUrl(
                    loc=self._child_text(url_tag, "loc"),
                    lastmod=self._child_text(url_tag, "lastmod"),
                    priority=self._child_text(url_tag, "priority"),
                    changefreq=self._child_text(url_tag, "changefreq"),
                ))
            except ValidationError:
                logger.debug("Skipping <url> entry without <loc>.")
        logger.debug("Parsed %d sitemap URLs.", len(urls))
        return urls

    def parse_index(self, xml: str) -> List[str]:
        """Returns the child sitemap locations of a sitemap index."""
        soup = BeautifulSoup(xml, "html.parser")
        index = soup.find("sitemapindex")
        if index is None:
            return []
        locations = []
        for sitemap_tag in index.find_all("sitemap", recursive=False):
            loc = self._child_text(sitemap_tag, "loc")
            if loc:
                locations.append(loc)
        return locations
