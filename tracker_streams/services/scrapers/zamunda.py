# tracker_streams/services/scrapers/zamunda.py

import re

from bs4 import BeautifulSoup, Tag

from ...config import logger
from ...utils import normalize_title, safe_int
from ..torrent_data import ListingFlags, RawListing
from .base_scraper import ListingParser, TrackerClient, apply_title_flags

_SIZE_PATTERN = re.compile(r"([\d.]+\s*(?:TB|GB|MB))", re.IGNORECASE)
_BOLD_PAIR_PATTERN = re.compile(r"<b[^>]*>(\d+)</b>.*?<b[^>]*>(\d+)</b>", re.DOTALL)
_FLAG_PATTERN = re.compile(r"flag_([a-z0-9]+)", re.IGNORECASE)


class ZamundaParser(ListingParser):
    """
    Parses the ``/catalogs`` results table shared by zamunda.net and
    zamunda.ch. Each title cell is resolved to its enclosing table row so
    the download link, peer counts, size and flag icons stay paired with it.
    """

    site_name = "Zamunda"
    title_link_selector = 'a[href*="/banan?id="]'
    download_link_selector = 'a[href*="/download.php/"], a[href*=".torrent"]'

    _title_regex = re.compile(
        r'<a[^>]*href="([^"]*/banan\?id=(\d+))"[^>]*>([^<]+)</a>', re.IGNORECASE
    )
    _download_regex = re.compile(
        r'<a[^>]*href="([^"]*(?:download\.php|\.torrent)[^"]*)"[^>]*>', re.IGNORECASE
    )
    _id_regex = re.compile(r"id=(\d+)")

    def _parse_structured(self, body: str) -> list[RawListing]:
        soup = BeautifulSoup(body, "lxml")
        listings: list[RawListing] = []
        for cell in soup.select("td.colheadd"):
            link = cell.select_one(self.title_link_selector)
            if link is None:
                continue
            try:
                listing = self._parse_row(cell, link)
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"[SCRAPER] {self.site_name}: Skipping unparsable row: {exc}")
                continue
            if listing is not None:
                listings.append(listing)
        return listings

    def _find_row(self, cell: Tag) -> Tag:
        """The closest ``<tr>`` around ``cell`` that also holds a download link."""
        for parent in cell.parents:
            if parent.name == "tr" and parent.select_one(self.download_link_selector):
                return parent
        return cell.find_parent("tr") or cell

    def _parse_row(self, cell: Tag, link: Tag) -> RawListing | None:
        title = normalize_title(link.get_text())
        href = str(link.get("href") or "")
        id_match = self._id_regex.search(href)
        if not title or not id_match:
            return None

        row = self._find_row(cell)
        download = row.select_one(self.download_link_selector)
        seeders, leechers = self._peer_counts(row)
        flags = apply_title_flags(self._icon_flags(row), title)

        return RawListing(
            title=title,
            detail_url=self.absolute_url(href),
            download_url=self.absolute_url(str(download["href"])) if download else None,
            seeders=seeders,
            leechers=leechers,
            size_label=self._size_label(row),
            flags=flags,
            listing_id=id_match.group(1),
        )

    def _peer_counts(self, row: Tag) -> tuple[int, int]:
        counts = [b.get_text(strip=True) for b in row.select("td.tddownloaded b")]
        if counts:
            return safe_int(counts[0]), safe_int(counts[1] if len(counts) > 1 else 0)
        match = _BOLD_PAIR_PATTERN.search(str(row))
        if match:
            return safe_int(match.group(1)), safe_int(match.group(2))
        return 0, 0

    def _size_label(self, row: Tag) -> str:
        for font in row.select('font[color="red"]'):
            match = _SIZE_PATTERN.search(font.get_text(" ", strip=True))
            if match:
                return match.group(1)
        return "Unknown"

    def _icon_flags(self, row: Tag) -> ListingFlags:
        flags = ListingFlags()
        for img in row.select('img[src*="flag_"]'):
            match = _FLAG_PATTERN.search(str(img.get("src") or ""))
            if not match:
                continue
            flag = match.group(1).lower()
            flags.bg_audio = flags.bg_audio or "bgaudio" in flag
            flags.bg_subtitles = flags.bg_subtitles or "bgsub" in flag
            flags.is_3d = flags.is_3d or "3d" in flag
        return flags

    def _parse_fallback(self, body: str) -> list[RawListing]:
        listings = [
            RawListing(
                title=normalize_title(match.group(3)),
                detail_url=self.absolute_url(match.group(1)),
                listing_id=match.group(2),
            )
            for match in self._title_regex.finditer(body)
        ]
        # Download links appear in the same order as the titles they belong to.
        for listing, match in zip(listings, self._download_regex.finditer(body)):
            listing.download_url = self.absolute_url(match.group(1))
        for listing in listings:
            apply_title_flags(listing.flags, listing.title)
        return [listing for listing in listings if listing.title]


class ZamundaClient(TrackerClient):
    """zamunda.net: form login, movie and series catalogs."""

    config_name = "zamunda"
    parser_class = ZamundaParser


class ZamundaChClient(TrackerClient):
    """zamunda.ch: identical catalogs, login through a GET query string."""

    config_name = "zamunda_ch"
    parser_class = ZamundaParser
