"""
Sitemap Discovery

Reads candidate page URLs from the site's sitemap.xml. Only <loc>
entries are used; fetch or parse failures yield an empty list.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)

LOC_PATTERN = re.compile(r"<loc>([^<]+)</loc>")


def parse_locations(xml_content: str) -> List[str]:
    """All <loc> values in document order."""
    try:
        # Remove XML namespace for easier parsing
        root = ET.fromstring(re.sub(r'\sxmlns="[^"]+"', '', xml_content, count=1))
    except ET.ParseError as e:
        logger.warning(f"XML parse error, falling back to pattern match: {e}")
        return [loc.strip() for loc in LOC_PATTERN.findall(xml_content)]

    return [
        loc.text.strip()
        for loc in root.iter("loc")
        if loc.text and loc.text.strip()
    ]


class SitemapReader:
    """
    Usage:
        reader = SitemapReader(timeout=5.0)
        urls = reader.discover("https://example.com/sitemap.xml", max_urls=10)
    """

    def __init__(self, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={
                "User-Agent": "Mozilla/5.0 (compatible; KSEOBot/1.0)",
                "Accept": "application/xml,text/xml,*/*",
            },
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def discover(self, sitemap_url: str, max_urls: int) -> List[str]:
        """First max_urls page URLs from the sitemap."""
        try:
            response = self.client.get(sitemap_url, timeout=self.timeout)
        except httpx.RequestError as e:
            logger.warning(f"Failed to fetch sitemap {sitemap_url}: {e}")
            return []
        except (httpx.InvalidURL, ValueError) as e:
            logger.warning(f"Invalid sitemap URL {sitemap_url!r}: {e}")
            return []

        if response.status_code != 200:
            logger.warning(f"Sitemap {sitemap_url} returned HTTP {response.status_code}")
            return []

        urls = parse_locations(response.text)[:max(0, max_urls)]
        logger.info(f"Sitemap {sitemap_url}: {len(urls)} candidate URLs")
        return urls
