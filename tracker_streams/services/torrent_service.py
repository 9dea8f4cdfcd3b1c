# tracker_streams/services/torrent_service.py

import io
import re
from collections.abc import Sequence
from pathlib import PurePosixPath

import torf

from ..config import VIDEO_EXTENSIONS, logger
from .torrent_data import TorrentFile, TorrentMetadata


class MetadataDecodeError(ValueError):
    """Raised when a payload is not a usable ``.torrent`` file."""


def decode_torrent(payload: bytes) -> TorrentMetadata:
    """
    Decodes a bencoded ``.torrent`` payload into its info hash, total size
    and file list (in metainfo order, which is what file indices refer to).
    """
    if not payload:
        raise MetadataDecodeError("Empty torrent payload")
    try:
        torrent = torf.Torrent.read_stream(io.BytesIO(payload))
        files = tuple(
            TorrentFile(path=str(file), length=int(file.size))
            for file in torrent.files
        )
        return TorrentMetadata(
            info_hash=str(torrent.infohash).lower(),
            total_length=int(torrent.size),
            files=files,
        )
    except torf.TorfError as exc:
        raise MetadataDecodeError(f"Could not decode torrent: {exc}") from exc


def _episode_patterns(season: int, episode: int) -> list[re.Pattern[str]]:
    return [
        re.compile(rf"s0*{season}e0*{episode}(?:[^0-9]|$)", re.IGNORECASE),
        re.compile(rf"{season}x0*{episode}(?:[^0-9]|$)", re.IGNORECASE),
        re.compile(rf"episode[\s._-]*0*{episode}(?:[^0-9]|$)", re.IGNORECASE),
        re.compile(rf"[^s]e0*{episode}(?:[^0-9]|$)", re.IGNORECASE),
        re.compile(rf"[\s._-]0*{episode}[\s._-]", re.IGNORECASE),
    ]


def find_episode_file_index(
    files: Sequence[TorrentFile], season: int | None, episode: int | None
) -> int | None:
    """Returns the index (into ``files``) of the video file for an episode.

    Patterns are tried from most to least specific across all video files. A
    torrent holding a single video file is assumed to be that episode.
    """
    if not files or episode is None:
        return None

    video_files = [
        (index, PurePosixPath(file.path).name)
        for index, file in enumerate(files)
        if file.path.lower().endswith(VIDEO_EXTENSIONS)
    ]
    if not video_files:
        return None

    for pattern in _episode_patterns(season or 0, episode):
        for index, name in video_files:
            if pattern.search(name):
                logger.debug(f"[TORRENT] Episode {episode} matched file '{name}'")
                return index

    if len(video_files) == 1:
        logger.debug(
            f"[TORRENT] Single video file, assuming it is episode {episode}"
        )
        return video_files[0][0]

    logger.info(
        f"[TORRENT] Could not find episode {episode} among {len(video_files)} video files"
    )
    return None
