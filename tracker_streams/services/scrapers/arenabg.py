# tracker_streams/services/scrapers/arenabg.py

import re
import urllib.parse

import httpx
from bs4 import BeautifulSoup, Tag

from ...config import PAGE_TIMEOUT_SECONDS, logger
from ...utils import normalize_title, safe_int
from ..torrent_data import ListingFlags, NormalizedTorrent, RawListing
from .base_scraper import ListingParser, TrackerClient, apply_title_flags

_ID_PATTERN = re.compile(r"/bg/torrents/([^/?#]+)")
_SIZE_PATTERN = re.compile(r"\d+(?:\.\d+)?\s*(?:GB|MB|TB)", re.IGNORECASE)
_AUDIO_ICON_TITLES = ("българско озвучение", "bulgarian audio")
_TITLE_REGEX = re.compile(
    r"""<a[^>]*href=["'](?:https?://[^/"']+)?/bg/torrents/([^/'"]+)/?["'][^>]*class=["'][^"']*\btitle\b[^"']*["'][^>]*>([^<]+)</a>""",
    re.IGNORECASE,
)
_SEEDERS_REGEX = re.compile(
    r"""<td[^>]*class=["'][^"']*seeders[^"']*["'][^>]*>\s*(\d+)\s*</td>""", re.IGNORECASE
)
_DOWNLOAD_KEY_PATTERNS = (
    re.compile(r"/bg/torrents/download/\?key=([^\"'&]+)"),
    re.compile(r"torrents/download/\?key=([^\"'&\s]+)"),
)


class ArenaBGParser(ListingParser):
    """
    Parses ``table.table-torrents``. Rows link to a detail page; the download
    key only appears there, so every listing keeps its detail URL.
    """

    site_name = "ArenaBG"

    def _parse_structured(self, body: str) -> list[RawListing]:
        soup = BeautifulSoup(body, "lxml")
        listings: list[RawListing] = []
        for row in soup.select("table.table-torrents tbody tr"):
            try:
                listing = self._parse_row(row)
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"[SCRAPER] {self.site_name}: Skipping unparsable row: {exc}")
                continue
            if listing is not None:
                listings.append(listing)
        return listings

    def _detail_url(self, href: str) -> str:
        path = urllib.parse.urlsplit(href).path if href.startswith("http") else href
        return f"{self.base_url}{path.rstrip('/')}"

    def _parse_row(self, row: Tag) -> RawListing | None:
        filename_cell = row.select_one("td.filename")
        if filename_cell is None:
            return None
        link = filename_cell.select_one('a.title, a[href*="/bg/torrents/"]')
        if link is None:
            return None

        title = normalize_title(link.get_text())
        href = str(link.get("href") or "")
        id_match = _ID_PATTERN.search(href)
        if not title or not id_match:
            return None

        seeders_cell = row.select_one("td.seeders")
        leechers_cell = row.select_one("td.leechers")
        magnet = row.select_one('a[href^="magnet:"]')

        return RawListing(
            title=title,
            detail_url=self._detail_url(href),
            magnet_uri=str(magnet["href"]) if magnet else None,
            seeders=safe_int(seeders_cell.get_text(strip=True)) if seeders_cell else 0,
            leechers=safe_int(leechers_cell.get_text(strip=True)) if leechers_cell else 0,
            size_label=self._size_label(row),
            flags=apply_title_flags(self._icon_flags(filename_cell), title),
            listing_id=id_match.group(1),
        )

    @staticmethod
    def _size_label(row: Tag) -> str:
        # Size sits just before the seeders and leechers columns.
        cells = row.find_all("td", recursive=False) or row.find_all("td")
        if len(cells) >= 3:
            text = cells[-3].get_text(" ", strip=True)
            if _SIZE_PATTERN.search(text):
                return text
        return "Unknown"

    @staticmethod
    def _icon_flags(cell: Tag) -> ListingFlags:
        flags = ListingFlags()
        icon = cell.select_one(".fa-volume-up")
        if icon is not None:
            label = str(
                icon.get("data-original-title") or icon.get("title") or icon.get("alt") or ""
            ).lower()
            flags.bg_audio = any(marker in label for marker in _AUDIO_ICON_TITLES)
        flags.bg_subtitles = cell.select_one(".flag-icon-bg") is not None
        return flags

    def _parse_fallback(self, body: str) -> list[RawListing]:
        listings: list[RawListing] = []
        for match in _TITLE_REGEX.finditer(body):
            title = normalize_title(match.group(2))
            if not title:
                continue
            seeders = _SEEDERS_REGEX.search(body, match.end())
            listing = RawListing(
                title=title,
                detail_url=f"{self.base_url}/bg/torrents/{match.group(1)}",
                seeders=safe_int(seeders.group(1)) if seeders else 0,
                listing_id=match.group(1),
            )
            apply_title_flags(listing.flags, title)
            listings.append(listing)
        return listings


def extract_download_key(html: str) -> str | None:
    for pattern in _DOWNLOAD_KEY_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


class ArenaBGClient(TrackerClient):
    """arenabg.com: optimistic login, download keys read from detail pages."""

    config_name = "arenabg"
    parser_class = ArenaBGParser

    def _login_succeeded(self, response: httpx.Response) -> bool:
        if not len(self.http.cookies) and response.status_code != 200:
            # The sign-in form gives no reliable signal; searches will tell.
            logger.warning(
                f"[SCRAPER] {self.site_name}: No session cookie after login "
                f"(HTTP {response.status_code}), continuing optimistically"
            )
        return True

    async def resolve_download_reference(self, torrent: NormalizedTorrent) -> str | None:
        if not torrent.detail_url:
            return None
        await self.ensure_logged_in()

        html = await self._fetch_page(torrent.detail_url, timeout=PAGE_TIMEOUT_SECONDS)
        if html is None:
            return None
        key = extract_download_key(html)
        if key is None:
            logger.error(
                f"[SCRAPER] {self.site_name}: No download key on {torrent.detail_url}"
            )
            return None
        download_path = self.config.get("download_path", "/bg/torrents/download/?key={key}")
        return self.absolute_url(download_path.format(key=key))
