# tracker_streams/services/scrapers/base_scraper.py

import asyncio
import dataclasses
import urllib.parse
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import httpx
import yaml  # type: ignore[import-untyped]

from ...config import (
    FORMATTER_CONCURRENCY,
    LOGIN_TIMEOUT_SECONDS,
    PAGE_TIMEOUT_SECONDS,
    SEARCH_TIMEOUT_SECONDS,
    USER_AGENT,
    logger,
)
from ...utils import (
    episode_matches,
    extract_season_episode,
    filter_listings_by_title_and_year,
    normalize_title,
)
from ..metadata_cache import TorrentFileCache
from ..stream_formatter import StreamFormatter
from ..torrent_data import (
    ListingFlags,
    NormalizedTorrent,
    RawListing,
    StreamDescriptor,
    TorrentMetadata,
    to_normalized_torrent,
)
from ..torrent_service import MetadataDecodeError, decode_torrent

CONFIG_DIR = Path(__file__).resolve().parent / "configs"

# Cache for site configurations to avoid repeated disk reads.
_config_cache: dict[Path, dict[str, Any]] = {}

_AUDIO_KEYWORDS = (
    "bg audio",
    "bgaudio",
    "bg+enaudio",
    "bulgarian audio",
    "българско озвучение",
    "дубляж",
)
_SUBTITLE_KEYWORDS = ("bg sub", "bgsub", "bulgarian sub", "субтитри")
_SESSION_COOKIE_MARKERS = ("session", "uid", "pass")


def load_site_config(config_path: Path) -> dict[str, Any]:
    """Load and minimally validate a YAML site configuration.

    Configuration files are cached in-memory after the first load, so every
    client built for the same site shares one parsed copy.
    """

    resolved_path = config_path.resolve()
    cached = _config_cache.get(resolved_path)
    if cached is not None:
        return cached

    if not resolved_path.exists():
        raise FileNotFoundError(f"Scraper config not found: {resolved_path}")

    with resolved_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    required = {"site_name", "base_url", "search_path"}
    missing = required - data.keys()
    if missing:
        raise ValueError(f"Config missing keys: {', '.join(sorted(missing))}")

    _config_cache[resolved_path] = data
    return data


def apply_title_flags(flags: ListingFlags, title: str) -> ListingFlags:
    """Fills in flags the markup did not set, using keywords in the title."""
    lowered = title.lower()
    if not flags.bg_audio:
        flags.bg_audio = any(keyword in lowered for keyword in _AUDIO_KEYWORDS)
    if not flags.bg_subtitles:
        flags.bg_subtitles = any(keyword in lowered for keyword in _SUBTITLE_KEYWORDS)
    if not flags.is_3d:
        flags.is_3d = "3d" in lowered
    return flags


class ListingParser(ABC):
    """
    Turns a catalog results page into ``RawListing`` rows.

    Subclasses provide a selector-based pass and a regex-based pass; the
    regex pass runs whenever the selector pass raises or finds nothing.
    """

    site_name = "Unknown"

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def parse_listings(self, body: str, query: str = "") -> list[RawListing]:
        if not body:
            return []

        listings: list[RawListing] = []
        try:
            listings = self._parse_structured(body)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                f"[SCRAPER] {self.site_name}: Structured parsing failed for '{query}': {exc}"
            )

        if not listings:
            logger.debug(
                f"[SCRAPER] {self.site_name}: No rows from selectors, using regex fallback"
            )
            try:
                listings = self._parse_fallback(body)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    f"[SCRAPER] {self.site_name}: Fallback parsing failed for '{query}': {exc}"
                )
                return []

        logger.info(
            f"[SCRAPER] {self.site_name}: Parsed {len(listings)} listings for '{query}'"
        )
        return listings

    def absolute_url(self, href: str) -> str:
        return urllib.parse.urljoin(f"{self.base_url}/", href)

    @abstractmethod
    def _parse_structured(self, body: str) -> list[RawListing]:
        """Selector-based extraction."""

    @abstractmethod
    def _parse_fallback(self, body: str) -> list[RawListing]:
        """Regex-based extraction used when the markup does not match."""


class TrackerClient(ABC):
    """
    Session-holding client for one torrent catalog.

    Static site data (base URL, paths, encoding, login form) comes from a YAML
    file under ``configs/``. Every public operation degrades to an empty
    result instead of raising; only building the HTTP client can fail.
    """

    config_name: str = ""
    parser_class: type[ListingParser]

    def __init__(
        self,
        credentials: dict[str, str] | None = None,
        *,
        site_config: dict[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
        cache: TorrentFileCache | None = None,
        concurrency: int = FORMATTER_CONCURRENCY,
    ) -> None:
        self.config = (
            site_config
            if site_config is not None
            else load_site_config(CONFIG_DIR / f"{self.config_name}.yaml")
        )
        self.site_name: str = self.config["site_name"]
        self.source_label: str = self.config.get("label", self.site_name)
        self.base_url: str = self.config["base_url"].rstrip("/")
        self.encoding: str = self.config.get("encoding", "utf-8")
        self.login_config: dict[str, Any] = self.config.get("login") or {}
        self.requires_login = bool(self.login_config)

        credentials = credentials or {}
        self.username = credentials.get("username", "")
        self.password = credentials.get("password", "")

        self.http = client if client is not None else httpx.AsyncClient(
            headers={
                "User-Agent": USER_AGENT,
                "Accept-Language": "bg-BG,bg;q=0.9,en-US;q=0.8,en;q=0.7",
                "Accept": (
                    "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
                ),
            },
            follow_redirects=True,
            timeout=PAGE_TIMEOUT_SECONDS,
        )
        self.cache = cache if cache is not None else TorrentFileCache()
        self.parser = self.parser_class(self.base_url)
        self.parser.site_name = self.site_name
        self.formatter = StreamFormatter(
            self.source_label, self.fetch_torrent_metadata, concurrency
        )

        self.is_logged_in = not self.requires_login
        self._login_task: asyncio.Task[bool] | None = None

    async def __aenter__(self) -> "TrackerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    # --- Session ---

    async def login(self) -> bool:
        """Logs in once; concurrent callers share the in-flight attempt."""
        if not self.requires_login:
            return True
        if not self.username or not self.password:
            logger.warning(f"[SCRAPER] {self.site_name}: No credentials configured")
            return False

        task = self._login_task
        if task is None:
            task = asyncio.create_task(self._run_login())
            self._login_task = task
        return await asyncio.shield(task)

    async def ensure_logged_in(self) -> bool:
        if self.is_logged_in:
            return True
        return await self.login()

    async def _run_login(self) -> bool:
        logger.info(f"[SCRAPER] {self.site_name}: Logging in as '{self.username}'")
        try:
            response = await self._submit_login()
            self.is_logged_in = self._login_succeeded(response)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[SCRAPER] {self.site_name}: Login request failed: {exc}")
            self.is_logged_in = False
        finally:
            self._login_task = None

        if self.is_logged_in:
            logger.info(f"[SCRAPER] {self.site_name}: Session established")
        else:
            logger.warning(f"[SCRAPER] {self.site_name}: Login did not yield a session")
        return self.is_logged_in

    async def _submit_login(self) -> httpx.Response:
        """Sends the login form described by the ``login`` config block."""
        login_url = self.absolute_url(self.login_config.get("path", "/takelogin.php"))
        fields = {
            self.login_config.get("username_field", "username"): self.username,
            self.login_config.get("password_field", "password"): self.password,
            **(self.login_config.get("extra_fields") or {}),
        }

        if self.login_config.get("warmup"):
            # Picks up the pre-login cookies some trackers insist on.
            await self.http.get(login_url, timeout=LOGIN_TIMEOUT_SECONDS)

        if str(self.login_config.get("method", "post")).lower() == "get":
            return await self.http.get(
                login_url, params=fields, timeout=LOGIN_TIMEOUT_SECONDS
            )
        return await self.http.post(
            login_url,
            data=fields,
            headers={"Referer": f"{self.base_url}/"},
            timeout=LOGIN_TIMEOUT_SECONDS,
        )

    def _login_succeeded(self, response: httpx.Response) -> bool:
        return any(
            marker in name.lower()
            for name in self.http.cookies
            for marker in _SESSION_COOKIE_MARKERS
        )

    # --- Fetching ---

    def absolute_url(self, href: str) -> str:
        return urllib.parse.urljoin(f"{self.base_url}/", href)

    def build_search_url(self, query: str, category: str = "movie") -> str:
        path_key = "series_search_path" if category == "series" else "search_path"
        search_path = self.config.get(path_key) or self.config["search_path"]
        return self.absolute_url(
            search_path.format(query=urllib.parse.quote_plus(query))
        )

    async def _fetch_page(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: float = PAGE_TIMEOUT_SECONDS,
    ) -> str | None:
        """Fetch ``url`` and return the decoded body, handling errors."""
        logger.debug(f"[SCRAPER] {self.site_name}: GET {url}")
        try:
            response = await self.http.get(url, params=params, timeout=timeout)
            logger.debug(
                f"[SCRAPER] {self.site_name}: GET {url} -> {response.status_code}"
            )
            response.raise_for_status()
            return response.content.decode(self.encoding, errors="replace")
        except httpx.HTTPStatusError as exc:  # noqa: BLE001
            logger.error(
                f"[SCRAPER] {self.site_name}: HTTP {exc.response.status_code} fetching {url}"
            )
        except httpx.HTTPError as exc:  # noqa: BLE001
            logger.error(f"[SCRAPER] {self.site_name}: Request error fetching {url}: {exc}")
        return None

    # --- Searching ---

    async def search(self, query: str, category: str = "movie") -> list[RawListing]:
        """Runs one catalog search and returns every parsed row."""
        try:
            await self.ensure_logged_in()
            html = await self._fetch_page(
                self.build_search_url(query, category), timeout=SEARCH_TIMEOUT_SECONDS
            )
            if html is None:
                return []
            return self.parser.parse_listings(html, query)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[SCRAPER] {self.site_name}: Search for '{query}' failed: {exc}")
            return []

    async def search_by_title(
        self, title: str, year: int | str | None = None
    ) -> list[NormalizedTorrent]:
        title = normalize_title(title)
        query = title
        if year and self.config.get("append_year_to_query"):
            query = f"{title} {year}"
        listings = await self.search(query)
        matching = filter_listings_by_title_and_year(listings, title, year)
        torrents = [
            to_normalized_torrent(listing)
            for listing in matching
            if listing.download_url or listing.magnet_uri or listing.detail_url
        ]
        logger.info(
            f"[SCRAPER] {self.site_name}: {len(torrents)} of {len(listings)} listings "
            f"match '{title}'{f' ({year})' if year else ''}"
        )
        return torrents

    async def search_series_by_title(
        self, title: str, season: int, episode: int | None = None
    ) -> list[NormalizedTorrent]:
        """Finds single episodes and season packs covering ``season``/``episode``."""
        title = normalize_title(title)
        query = title
        if self.config.get("append_season_to_series_query"):
            query = f"{title} S{season:02d}"
        listings = await self.search(query, category="series")
        torrents: list[NormalizedTorrent] = []
        for listing in filter_listings_by_title_and_year(listings, title):
            info = extract_season_episode(listing.title)
            if not info or not episode_matches(info, season, episode):
                continue
            if not (listing.download_url or listing.magnet_uri or listing.detail_url):
                continue
            torrents.append(
                to_normalized_torrent(
                    listing,
                    season=info["season"],
                    episode=info["episode"],
                    is_pack=info["is_pack"],
                    episode_range=info["episode_range"],
                )
            )
        logger.info(
            f"[SCRAPER] {self.site_name}: {len(torrents)} series torrents for "
            f"'{title}' S{season:02d}{f'E{episode:02d}' if episode else ''}"
        )
        return torrents

    async def _resolve_detail_references(
        self, torrents: list[NormalizedTorrent]
    ) -> list[NormalizedTorrent]:
        pending = [t for t in torrents if t.detail_url]
        if not pending:
            return torrents

        async def _resolve(torrent: NormalizedTorrent) -> str | None:
            try:
                return await self.resolve_download_reference(torrent)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    f"[SCRAPER] {self.site_name}: Could not resolve '{torrent.title}': {exc}"
                )
                return None

        resolved_refs = await asyncio.gather(*(_resolve(t) for t in pending))
        replacements: dict[int, NormalizedTorrent] = {}
        for torrent, ref in zip(pending, resolved_refs):
            if not ref:
                continue
            field_name = "magnet_uri" if ref.startswith("magnet:") else "download_url"
            replacements[id(torrent)] = dataclasses.replace(
                torrent, detail_url=None, **{field_name: ref}
            )
        return [replacements.get(id(t), t) for t in torrents]

    async def resolve_download_reference(self, torrent: NormalizedTorrent) -> str | None:
        """Turns a detail-page reference into a download URL or magnet URI.

        Sources that list direct links have nothing to resolve.
        """
        return None

    # --- Metadata ---

    async def fetch_torrent_metadata(self, url: str) -> TorrentMetadata | None:
        """Returns decoded metadata for ``url``, from the cache when possible."""
        payload = self.cache.get(url)
        if payload is not None:
            memoized = self.cache.get_metadata(url)
            if memoized is not None:
                return memoized
            try:
                metadata = decode_torrent(payload)
            except MetadataDecodeError as exc:
                logger.warning(f"[SCRAPER] {self.site_name}: Cached payload unusable: {exc}")
                return None
            self.cache.put_metadata(url, metadata)
            return metadata

        try:
            response = await self.http.get(url, timeout=PAGE_TIMEOUT_SECONDS)
            response.raise_for_status()
        except httpx.HTTPError as exc:  # noqa: BLE001
            logger.warning(
                f"[SCRAPER] {self.site_name}: Torrent download failed for {url}: {exc}"
            )
            return None

        try:
            metadata = decode_torrent(response.content)
        except MetadataDecodeError as exc:
            logger.warning(f"[SCRAPER] {self.site_name}: {exc} ({url})")
            return None

        self.cache.put(url, response.content)
        self.cache.put_metadata(url, metadata)
        return metadata

    # --- Formatting ---

    async def format_torrents_as_streams(
        self,
        torrents: Sequence[NormalizedTorrent],
        media_type: str = "movie",
        season: int | None = None,
        episode: int | None = None,
    ) -> list[StreamDescriptor]:
        """Resolves detail-page references, then formats with bounded concurrency."""
        try:
            resolved = await self._resolve_detail_references(list(torrents))
            return await self.formatter.format(
                resolved, media_type=media_type, season=season, episode=episode
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[SCRAPER] {self.site_name}: Formatting streams failed: {exc}")
            return []
