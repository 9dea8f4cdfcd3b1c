from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..utils import format_size_gb, normalize_title, safe_int


@dataclass
class ListingFlags:
    """Language/format markers detected on a catalog row."""

    bg_audio: bool = False
    bg_subtitles: bool = False
    is_3d: bool = False


@dataclass
class RawListing:
    """One row as parsed from a catalog results page.

    Attributes:
        title: Normalized release title.
        detail_url: Absolute URL of the row's detail page, if any.
        download_url: Absolute URL of the ``.torrent`` file, if any.
        magnet_uri: Magnet link shown on the row, if any.
        seeders: Seeder count, 0 when missing.
        leechers: Leecher count, 0 when missing.
        size_label: Size exactly as the catalog prints it.
        flags: Bulgarian audio/subtitle and 3D markers.
        listing_id: Catalog-side identifier, when the markup exposes one.
    """

    title: str
    detail_url: Optional[str] = None
    download_url: Optional[str] = None
    magnet_uri: Optional[str] = None
    seeders: int = 0
    leechers: int = 0
    size_label: str = "Unknown"
    flags: ListingFlags = field(default_factory=ListingFlags)
    listing_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.seeders = safe_int(self.seeders)
        self.leechers = safe_int(self.leechers)


@dataclass(frozen=True)
class NormalizedTorrent:
    """A listing reduced to a single actionable reference.

    Exactly one of ``download_url``, ``magnet_uri`` and ``detail_url`` is set.
    The season fields are only filled in by series searches.
    """

    title: str
    size_label: str = "Unknown"
    seeders: int = 0
    leechers: int = 0
    flags: ListingFlags = field(default_factory=ListingFlags)
    download_url: Optional[str] = None
    magnet_uri: Optional[str] = None
    detail_url: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    is_pack: bool = False
    episode_range: Optional[tuple[int, int]] = None

    def __post_init__(self) -> None:
        populated = [
            ref
            for ref in (self.download_url, self.magnet_uri, self.detail_url)
            if ref
        ]
        if len(populated) != 1:
            raise ValueError(
                f"NormalizedTorrent '{self.title}' needs exactly one reference, "
                f"got {len(populated)}"
            )
        object.__setattr__(self, "seeders", safe_int(self.seeders))
        object.__setattr__(self, "leechers", safe_int(self.leechers))

    @property
    def primary_ref(self) -> str:
        return self.download_url or self.magnet_uri or self.detail_url or ""


def to_normalized_torrent(listing: RawListing, **series_fields: Any) -> NormalizedTorrent:
    """Converts a parsed row, keeping the most useful reference it carries.

    A download URL wins because it can be decoded into an info hash; a magnet
    is next; a detail page is the last resort and must be resolved later.
    """
    refs: dict[str, str] = {}
    if listing.download_url:
        refs["download_url"] = listing.download_url
    elif listing.magnet_uri:
        refs["magnet_uri"] = listing.magnet_uri
    elif listing.detail_url:
        refs["detail_url"] = listing.detail_url
    return NormalizedTorrent(
        title=normalize_title(listing.title),
        size_label=listing.size_label or "Unknown",
        seeders=listing.seeders,
        leechers=listing.leechers,
        flags=listing.flags,
        **refs,
        **series_fields,
    )


@dataclass(frozen=True)
class TorrentFile:
    path: str
    length: int


@dataclass(frozen=True)
class TorrentMetadata:
    """Identity and file layout decoded from a ``.torrent`` file."""

    info_hash: str
    total_length: int
    files: tuple[TorrentFile, ...] = ()

    @property
    def size_label(self) -> str:
        return format_size_gb(self.total_length)


@dataclass
class StreamDescriptor:
    """A playable entry for the player integration.

    ``info_hash`` and ``external_url`` are mutually exclusive; ``seeders`` and
    ``resolution`` are kept for ordering and are not part of ``to_dict()``.
    """

    display_name: str
    display_title: str
    info_hash: Optional[str] = None
    external_url: Optional[str] = None
    file_index: Optional[int] = None
    seeders: int = 0
    resolution: str = "Unknown"

    def __post_init__(self) -> None:
        if bool(self.info_hash) == bool(self.external_url):
            raise ValueError("StreamDescriptor needs either info_hash or external_url")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.display_name,
            "title": self.display_title,
        }
        if self.info_hash:
            payload["infoHash"] = self.info_hash
        else:
            payload["url"] = self.external_url
        if self.file_index is not None:
            payload["fileIdx"] = self.file_index
        return payload
