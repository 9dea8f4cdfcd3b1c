# tracker_streams/services/stream_formatter.py

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from ..config import FORMATTER_CONCURRENCY, logger
from .scrapers.scoring import extract_resolution, sort_streams_by_quality
from .torrent_data import NormalizedTorrent, StreamDescriptor, TorrentMetadata
from .torrent_service import find_episode_file_index

MetadataFetcher = Callable[[str], Awaitable[TorrentMetadata | None]]

BG_FLAG = " 🇧🇬"


def _series_prefix(torrent: NormalizedTorrent) -> str:
    if torrent.season is None:
        return ""
    if torrent.episode_range:
        start, end = torrent.episode_range
        return f"S{torrent.season:02d}E{start:02d}-E{end:02d} (Pack)\n"
    if torrent.is_pack:
        return f"Season {torrent.season} (Complete Pack)\n"
    prefix = f"S{torrent.season:02d}"
    if torrent.episode is not None:
        prefix += f"E{torrent.episode:02d}"
    return prefix + "\n"


class StreamFormatter:
    """Turns normalized torrents into stream descriptors for one source.

    At most ``concurrency`` metadata lookups run at once per call. Each item
    degrades from an info hash (download + decode) to its magnet URI and
    finally to its raw URL, so a failing lookup never drops the item.
    """

    def __init__(
        self,
        source_label: str,
        fetch_metadata: MetadataFetcher,
        concurrency: int = FORMATTER_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.source_label = source_label
        self.fetch_metadata = fetch_metadata
        self.concurrency = concurrency

    async def format(
        self,
        torrents: Sequence[NormalizedTorrent],
        media_type: str = "movie",
        season: int | None = None,
        episode: int | None = None,
    ) -> list[StreamDescriptor]:
        if not torrents:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(torrent: NormalizedTorrent) -> StreamDescriptor | None:
            async with semaphore:
                return await self._format_one(torrent, season, episode)

        results = await asyncio.gather(*(_bounded(t) for t in torrents))
        streams = [stream for stream in results if stream is not None]

        if media_type == "series":
            streams = sort_streams_by_quality(streams)
        logger.info(
            f"[FORMAT] {self.source_label}: {len(streams)} streams from {len(torrents)} torrents"
        )
        return streams

    def _is_wanted_episode(
        self, torrent: NormalizedTorrent, season: int | None, episode: int | None
    ) -> bool:
        if season is not None and torrent.season is not None and torrent.season != season:
            return False
        if episode is None or torrent.is_pack:
            return True
        return torrent.episode is None or torrent.episode == episode

    async def _format_one(
        self,
        torrent: NormalizedTorrent,
        season: int | None,
        episode: int | None,
    ) -> StreamDescriptor | None:
        if not self._is_wanted_episode(torrent, season, episode):
            return None

        resolution = extract_resolution(torrent.title)
        if resolution == "Unknown":
            resolution = extract_resolution(torrent.primary_ref)
        display_name = f"{self.source_label}\n{resolution}"
        base_title = _series_prefix(torrent) + torrent.title
        if torrent.flags.bg_audio:
            base_title += BG_FLAG

        metadata: TorrentMetadata | None = None
        if torrent.download_url:
            try:
                metadata = await self.fetch_metadata(torrent.download_url)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    f"[FORMAT] {self.source_label}: Metadata lookup failed for "
                    f"'{torrent.title}': {exc}"
                )

        if metadata is not None:
            file_index = None
            if torrent.is_pack and episode is not None and metadata.files:
                file_index = find_episode_file_index(metadata.files, season, episode)
            return StreamDescriptor(
                display_name=display_name,
                display_title=f"{base_title} 👤{torrent.seeders} 💾 {metadata.size_label}",
                info_hash=metadata.info_hash,
                file_index=file_index,
                seeders=torrent.seeders,
                resolution=resolution,
            )

        size_suffix = (
            f" 💾 {torrent.size_label}" if torrent.size_label != "Unknown" else ""
        )
        return StreamDescriptor(
            display_name=display_name,
            display_title=f"{base_title} 👤{torrent.seeders}{size_suffix}",
            external_url=torrent.magnet_uri or torrent.primary_ref,
            seeders=torrent.seeders,
            resolution=resolution,
        )
