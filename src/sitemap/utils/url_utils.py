# src/sitemap/utils/url_utils.py
import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)


class UrlUtils:
    """A collection of static methods for URL parsing and manipulation."""

    @staticmethod
    def get_base_url(url: str) -> str | None:
        """
        Extracts and returns the base URL (scheme + netloc) from a given URL.
        Bare hostnames get an 'https://' scheme.
        """
        if not url.startswith(('http://', 'https://')):
            url = 'https://' + url

        try:
            parsed_url = urlparse(url)
            if not parsed_url.scheme or not parsed_url.netloc:
                logger.debug(f"Invalid URL format: {url}")
                return None
            return f"{parsed_url.scheme}://{parsed_url.netloc}"
        except ValueError:
            logger.debug(f"Could not parse invalid URL: {url}")
            return None

    @staticmethod
    def get_sitemap_url(site_url: str) -> str | None:
        """'https://example.com/any/page' -> 'https://example.com/sitemap.xml'."""
        base_url = UrlUtils.get_base_url(site_url)
        if base_url is None:
            return None
        return urljoin(base_url, "/sitemap.xml")

    @staticmethod
    def is_absolute_http_url(url: str) -> bool:
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in ('http', 'https') and bool(parsed.netloc)
