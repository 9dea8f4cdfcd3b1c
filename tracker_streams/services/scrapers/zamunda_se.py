# tracker_streams/services/scrapers/zamunda_se.py

import re

from bs4 import Tag

from ...config import PAGE_TIMEOUT_SECONDS, logger
from ...utils import normalize_title
from ..torrent_data import NormalizedTorrent, RawListing
from .base_scraper import TrackerClient, apply_title_flags
from .zamunda import ZamundaParser

_MAGNET_LINK_PATTERN = re.compile(r"""href=["'](magnet:\?xt=urn:btih:[^"']+)["']""", re.IGNORECASE)
_MAGNET_HASH_PATTERN = re.compile(r"magnet:\?xt=urn:btih:([a-fA-F0-9]{40})")


class ZamundaSeParser(ZamundaParser):
    """zamunda.se catalogue: ``details.php?id=`` titles, ``/download.php/<id>/`` files."""

    site_name = "Zamunda.se"
    title_link_selector = 'a[href*="details.php?id="]'
    download_link_selector = 'a[href*="/download.php/"]'

    _title_regex = re.compile(
        r'<a[^>]*href="([^"]*details\.php\?id=(\d+))[^"]*"[^>]*>([^<]+)</a>', re.IGNORECASE
    )
    _download_regex = re.compile(r'href="([^"]*/download\.php/(\d+)/[^"]*)"', re.IGNORECASE)

    def _parse_row(self, cell: Tag, link: Tag) -> RawListing | None:
        listing = super()._parse_row(cell, link)
        if listing is None:
            return None
        # A row can carry other torrents' links; keep only the one for this id.
        row = self._find_row(cell)
        download = row.select_one(f'a[href*="/download.php/{listing.listing_id}/"]')
        listing.download_url = self.absolute_url(str(download["href"])) if download else None
        listing.detail_url = self.absolute_url(f"/details.php?id={listing.listing_id}")
        return listing

    def _parse_fallback(self, body: str) -> list[RawListing]:
        downloads = {
            match.group(2): self.absolute_url(match.group(1))
            for match in self._download_regex.finditer(body)
        }
        listings: list[RawListing] = []
        for match in self._title_regex.finditer(body):
            listing_id = match.group(2)
            title = normalize_title(match.group(3))
            if not title:
                continue
            listing = RawListing(
                title=title,
                detail_url=self.absolute_url(f"/details.php?id={listing_id}"),
                download_url=downloads.get(listing_id),
                listing_id=listing_id,
            )
            apply_title_flags(listing.flags, title)
            listings.append(listing)
        return listings


def extract_magnet_from_detail(html: str) -> str | None:
    """Returns the magnet URI on a details page, rebuilding it from the bare hash if needed."""
    match = _MAGNET_LINK_PATTERN.search(html)
    if match:
        return match.group(1).replace("&amp;", "&")
    match = _MAGNET_HASH_PATTERN.search(html)
    if match:
        return f"magnet:?xt=urn:btih:{match.group(1).lower()}"
    return None


class ZamundaSeClient(TrackerClient):
    """zamunda.se: rows without a download link are resolved through their details page."""

    config_name = "zamunda_se"
    parser_class = ZamundaSeParser

    async def resolve_download_reference(self, torrent: NormalizedTorrent) -> str | None:
        if not torrent.detail_url:
            return None
        if not await self.ensure_logged_in():
            logger.error(
                f"[SCRAPER] {self.site_name}: Cannot open details page without a session"
            )
            return None

        html = await self._fetch_page(torrent.detail_url, timeout=PAGE_TIMEOUT_SECONDS)
        if html is None:
            return None
        magnet = extract_magnet_from_detail(html)
        if magnet is None:
            logger.warning(f"[SCRAPER] {self.site_name}: No magnet link for '{torrent.title}'")
        return magnet
