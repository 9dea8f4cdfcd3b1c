import sys
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from torf import Torrent

# Ensure root path is available for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from tracker_streams.services.torrent_data import (  # noqa: E402
    ListingFlags,
    NormalizedTorrent,
)


@pytest.fixture
def make_torrent_bytes(tmp_path: Path) -> Callable[..., bytes]:
    """Builds a real .torrent payload for the given ``{relative_path: size}`` layout."""

    counter = {"n": 0}

    def _make(files: dict[str, int], name: str = "Release") -> bytes:
        counter["n"] += 1
        root = tmp_path / f"content{counter['n']}" / name
        for rel_path, size in files.items():
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"\x00" * size)
        if len(files) == 1:
            root = root / next(iter(files))
        torrent = Torrent(path=root, trackers=["http://tracker.example/announce"])
        torrent.generate()
        return torrent.dump()

    return _make


@pytest.fixture
def make_torrent() -> Callable[..., NormalizedTorrent]:
    def _make(
        title: str = "The Matrix 1999 1080p BluRay",
        *,
        download_url: str | None = None,
        magnet_uri: str | None = None,
        detail_url: str | None = None,
        seeders: int = 10,
        bg_audio: bool = False,
        **series_fields,
    ) -> NormalizedTorrent:
        if not (download_url or magnet_uri or detail_url):
            download_url = "https://tracker.example/download.php/1/file.torrent"
        return NormalizedTorrent(
            title=title,
            seeders=seeders,
            flags=ListingFlags(bg_audio=bg_audio),
            download_url=download_url,
            magnet_uri=magnet_uri,
            detail_url=detail_url,
            **series_fields,
        )

    return _make


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """An AsyncClient whose requests are answered by ``handler``."""

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        )

    return _build
