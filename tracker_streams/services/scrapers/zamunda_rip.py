# tracker_streams/services/scrapers/zamunda_rip.py

import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from ...config import DEFAULT_ZAMUNDA_RIP_LIMIT, TORZNAB_TIMEOUT_SECONDS, logger
from ...utils import format_size_gb, normalize_title, safe_int
from ..torrent_data import RawListing
from .base_scraper import ListingParser, TrackerClient, apply_title_flags

_ITEM_REGEX = re.compile(r"<item\b[^>]*>(.*?)</item>", re.IGNORECASE | re.DOTALL)
_ITEM_TITLE_REGEX = re.compile(
    r"<title>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</title>", re.IGNORECASE | re.DOTALL
)
_ITEM_LINK_REGEX = re.compile(r"<link>(.*?)</link>", re.IGNORECASE | re.DOTALL)
_ENCLOSURE_REGEX = re.compile(r"<enclosure\b([^>]*)>", re.IGNORECASE)
_ATTR_VALUE_REGEX = r"""\b{name}=["']([^"']*)["']"""


def _xml_attr(fragment: str, name: str) -> str | None:
    match = re.search(_ATTR_VALUE_REGEX.format(name=name), fragment)
    return match.group(1).replace("&amp;", "&") if match else None


class ZamundaRipParser(ListingParser):
    """Reads a Torznab RSS response; magnet enclosures are kept alongside the link."""

    site_name = "Zamunda.rip"

    def _parse_structured(self, body: str) -> list[RawListing]:
        soup = BeautifulSoup(body, "xml")
        listings: list[RawListing] = []
        for item in soup.find_all("item"):
            try:
                listing = self._parse_item(item)
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"[SCRAPER] {self.site_name}: Skipping unparsable item: {exc}")
                continue
            if listing is not None:
                listings.append(listing)
        return listings

    def _parse_item(self, item: Tag) -> RawListing | None:
        title_tag = item.find("title")
        title = normalize_title(title_tag.get_text() if title_tag else "")
        if not title:
            return None

        link_tag = item.find("link")
        link = link_tag.get_text(strip=True) if link_tag else ""
        enclosure = item.find("enclosure")
        enclosure_url = str(enclosure.get("url") or "") if enclosure else ""
        length = safe_int(enclosure.get("length")) if enclosure else 0

        attrs: dict[str, str] = {}
        for attr in item.find_all("attr"):
            name = attr.get("name")
            if name:
                attrs[str(name)] = str(attr.get("value") or "")

        magnet = next(
            (url for url in (enclosure_url, link, attrs.get("magneturl", "")) if url.startswith("magnet:")),
            None,
        )
        # Torznab magnets are used as is; the link is only kept when there is none.
        download = None
        if magnet is None:
            download = next(
                (url for url in (link, enclosure_url) if url.startswith("http")), None
            )
        guid = item.find("guid")

        listing = RawListing(
            title=title,
            download_url=download,
            magnet_uri=magnet,
            seeders=attrs.get("seeders", 0),
            leechers=attrs.get("peers", attrs.get("leechers", 0)),
            size_label=format_size_gb(length) if length else "Unknown",
            listing_id=guid.get_text(strip=True) if guid else None,
        )
        apply_title_flags(listing.flags, title)
        return listing

    def _parse_fallback(self, body: str) -> list[RawListing]:
        listings: list[RawListing] = []
        for match in _ITEM_REGEX.finditer(body):
            fragment = match.group(1)
            title_match = _ITEM_TITLE_REGEX.search(fragment)
            title = normalize_title(title_match.group(1) if title_match else "")
            if not title:
                continue
            link_match = _ITEM_LINK_REGEX.search(fragment)
            link = link_match.group(1).strip().replace("&amp;", "&") if link_match else ""
            enclosure_match = _ENCLOSURE_REGEX.search(fragment)
            enclosure_url = ""
            length = 0
            if enclosure_match:
                enclosure_url = _xml_attr(enclosure_match.group(1), "url") or ""
                length = safe_int(_xml_attr(enclosure_match.group(1), "length"))

            listing = RawListing(
                title=title,
                download_url=(
                    link
                    if link.startswith("http") and not enclosure_url.startswith("magnet:")
                    else None
                ),
                magnet_uri=enclosure_url if enclosure_url.startswith("magnet:") else None,
                size_label=format_size_gb(length) if length else "Unknown",
            )
            if not (listing.download_url or listing.magnet_uri):
                continue
            apply_title_flags(listing.flags, title)
            listings.append(listing)
        return listings


class ZamundaRipClient(TrackerClient):
    """zamunda.rip Torznab API; needs no session."""

    config_name = "zamunda_rip"
    parser_class = ZamundaRipParser

    def __init__(self, *args: Any, limit: int | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.limit = limit or int(self.config.get("default_limit", DEFAULT_ZAMUNDA_RIP_LIMIT))

    async def search(self, query: str, category: str = "movie") -> list[RawListing]:
        try:
            xml = await self._fetch_page(
                self.absolute_url(self.config["search_path"]),
                params={"t": "search", "q": query, "limit": self.limit},
                timeout=TORZNAB_TIMEOUT_SECONDS,
            )
            if xml is None:
                return []
            return self.parser.parse_listings(xml, query)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[SCRAPER] {self.site_name}: Torznab search for '{query}' failed: {exc}")
            return []
