# tracker_streams/services/scrapers/scoring.py

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..torrent_data import StreamDescriptor

_3D_MARKERS = ("3d", "halfou", "hsbs")
_NUMERIC_PATTERN = re.compile(
    r"\b(8k|2160p|4k|1440p|2k|1080p|720p|576p|480p)\b", re.IGNORECASE
)
_WEBRIP_PATTERN = re.compile(r"\bwebrip\b|\bweb-rip\b|\bweb\.rip\b", re.IGNORECASE)
_QUALITATIVE_PATTERN = re.compile(
    r"\b(UHD|8K|BRRip|BDRip|Bluray|Blu-?Ray|HDRip|HDR|FHD|FullHD|HD|SD|DVD|PAL|NTSC|XVID|DIVX|BR|BD)\b",
    re.IGNORECASE,
)

_NUMERIC_LABELS = {
    "8k": "8K",
    "2160p": "4K",
    "4k": "4K",
    "1440p": "1440p",
    "2k": "1440p",
    "1080p": "1080p",
    "720p": "720p",
    "576p": "576p",
    "480p": "480p",
}

# HDR describes dynamic range, not resolution, so it has no entry.
_QUALITATIVE_LABELS = {
    "uhd": "4K",
    "8k": "4K",
    "bluray": "1080p",
    "blu-ray": "1080p",
    "br": "1080p",
    "bd": "1080p",
    "fhd": "1080p",
    "fullhd": "1080p",
    "brrip": "720p",
    "bdrip": "720p",
    "hdrip": "720p",
    "hd": "720p",
    "dvd": "480p",
    "pal": "480p",
    "ntsc": "480p",
    "xvid": "480p",
    "divx": "480p",
    "sd": "480p",
}

_RESOLUTION_PRIORITY = {
    "8k": 1000,
    "4k": 900,
    "1440p": 700,
    "1080p": 600,
    "720p": 400,
    "576p": 300,
    "480p": 200,
}


def extract_resolution(text: str | None) -> str:
    """Maps a release title (or URL) to a standard resolution label.

    Numeric tokens such as ``1080p`` win over qualitative ones such as
    ``BluRay``; ``WEBRip`` is reported literally. 3D releases get a ``(3D)``
    suffix, or just ``3D`` when nothing else is recognised.
    """
    if not text:
        return "Unknown"

    lowered = text.lower()
    is_3d = any(marker in lowered for marker in _3D_MARKERS)
    suffix = "(3D)" if is_3d else ""

    match = _NUMERIC_PATTERN.search(text)
    if match:
        return _NUMERIC_LABELS[match.group(1).lower()] + suffix

    if _WEBRIP_PATTERN.search(text):
        return "WEBRip" + suffix

    for match in _QUALITATIVE_PATTERN.finditer(text):
        label = _QUALITATIVE_LABELS.get(match.group(1).lower())
        if label:
            return label + suffix

    return "3D" if is_3d else "Unknown"


def resolution_priority(resolution: str) -> int:
    """Ranking weight for a label produced by :func:`extract_resolution`."""
    base = resolution.lower().replace("(3d)", "").strip()
    return _RESOLUTION_PRIORITY.get(base, 0)


def sort_streams_by_quality(
    streams: Iterable["StreamDescriptor"],
) -> list["StreamDescriptor"]:
    """Highest resolution first, then most seeders."""
    return sorted(
        streams,
        key=lambda s: (resolution_priority(s.resolution), s.seeders),
        reverse=True,
    )
