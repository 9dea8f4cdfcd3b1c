# tracker_streams/services/search_logic.py

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..config import FORMATTER_CONCURRENCY, LOG_SCRAPER_STATS, logger
from .scrapers.arenabg import ArenaBGClient
from .scrapers.base_scraper import TrackerClient
from .scrapers.zamunda import ZamundaChClient, ZamundaClient
from .scrapers.zamunda_rip import ZamundaRipClient
from .scrapers.zamunda_se import ZamundaSeClient
from .metadata_cache import TorrentFileCache
from .torrent_data import NormalizedTorrent, StreamDescriptor

CLIENT_REGISTRY: dict[str, type[TrackerClient]] = {
    "zamunda": ZamundaClient,
    "zamunda.net": ZamundaClient,
    "zamunda_ch": ZamundaChClient,
    "zamunda.ch": ZamundaChClient,
    "zamunda_se": ZamundaSeClient,
    "zamunda.se": ZamundaSeClient,
    "arenabg": ArenaBGClient,
    "arenabg.com": ArenaBGClient,
    "zamunda_rip": ZamundaRipClient,
    "zamunda.rip": ZamundaRipClient,
}


@dataclass
class SearchQuery:
    title: str
    year: int | None = None
    media_type: str = "movie"
    season: int | None = None
    episode: int | None = None


def build_clients(
    credentials: dict[str, dict[str, str]], search_config: dict[str, Any]
) -> list[TrackerClient]:
    """Instantiates one client per enabled source, in configuration order."""
    concurrency = int(search_config.get("formatter_concurrency", FORMATTER_CONCURRENCY))
    cache_size = search_config.get("metadata_cache_size")

    clients: list[TrackerClient] = []
    for source in search_config.get("enabled_sources", []):
        client_cls = CLIENT_REGISTRY.get(source.strip().lower())
        if client_cls is None:
            logger.warning(f"[SEARCH] Unknown source '{source}' in config.ini, skipping.")
            continue

        kwargs: dict[str, Any] = {"concurrency": concurrency}
        if cache_size:
            kwargs["cache"] = TorrentFileCache(int(cache_size))
        if client_cls is ZamundaRipClient:
            kwargs["limit"] = search_config.get("zamunda_rip_limit")
        clients.append(client_cls(credentials.get(source, {}), **kwargs))

    logger.info(f"[SEARCH] Built {len(clients)} source clients")
    return clients


class StreamAggregator:
    """
    Fans a query out to every client at once and concatenates their streams
    in client order. A failing source contributes nothing and never affects
    the others.
    """

    def __init__(self, clients: Sequence[TrackerClient]) -> None:
        self.clients = list(clients)

    async def get_streams(self, query: SearchQuery) -> list[StreamDescriptor]:
        if not self.clients:
            logger.warning("[SEARCH] No enabled sources to search.")
            return []

        logger.info(
            f"[SEARCH] Searching {len(self.clients)} sources for '{query.title}' "
            f"({query.media_type})"
        )
        per_source = await asyncio.gather(
            *(self._streams_from(client, query) for client in self.clients)
        )

        for client, streams in zip(self.clients, per_source):
            _log_stream_results(client.site_name, streams)
        all_streams = [stream for streams in per_source for stream in streams]
        logger.info(f"[SEARCH] Aggregation complete. Returning {len(all_streams)} streams.")
        return all_streams

    async def _streams_from(
        self, client: TrackerClient, query: SearchQuery
    ) -> list[StreamDescriptor]:
        try:
            if query.media_type == "series":
                if query.season is None:
                    logger.warning(
                        f"[SEARCH] {client.site_name}: Series query without a season, skipping."
                    )
                    return []
                torrents = await client.search_series_by_title(
                    query.title, query.season, query.episode
                )
            else:
                torrents = await client.search_by_title(query.title, query.year)
            if not torrents:
                return []
            return await client.format_torrents_as_streams(
                torrents,
                media_type=query.media_type,
                season=query.season,
                episode=query.episode,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[SEARCH] {client.site_name}: Source failed: {exc}")
            return []

    async def search_all_by_title(
        self, title: str, year: int | None = None
    ) -> dict[str, list[NormalizedTorrent]]:
        """Raw per-source search results, without formatting."""

        async def _search(client: TrackerClient) -> list[NormalizedTorrent]:
            try:
                return await client.search_by_title(title, year)
            except Exception as exc:  # noqa: BLE001
                logger.error(f"[SEARCH] {client.site_name}: Search failed: {exc}")
                return []

        results = await asyncio.gather(*(_search(client) for client in self.clients))
        return {client.site_name: torrents for client, torrents in zip(self.clients, results)}

    async def aclose(self) -> None:
        await asyncio.gather(
            *(client.close() for client in self.clients), return_exceptions=True
        )


def _log_stream_results(site_label: str, streams: list[StreamDescriptor]) -> None:
    """
    Emits a structured log entry enumerating each stream a source produced so
    operators can see exactly what every source contributed.
    """
    if not LOG_SCRAPER_STATS:
        return
    lines = [f"--- {site_label} Stream Results ---"]
    if not streams:
        lines.append("No streams returned.")
        lines.append("--------------------")
        logger.info("\n".join(lines))
        return

    for idx, stream in enumerate(streams, start=1):
        lines.append(f"Stream {idx}:")
        lines.append(f"  title: {stream.display_title.replace(chr(10), ' | ')}")
        lines.append(f"  resolution: {stream.resolution}")
        lines.append(f"  seeders: {stream.seeders}")
        lines.append(f"  info_hash: {stream.info_hash}")
        lines.append(f"  url: {stream.external_url}")
        lines.append("--------------------")
    logger.info("\n".join(lines))
