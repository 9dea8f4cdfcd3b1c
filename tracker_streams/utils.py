# tracker_streams/utils.py

import re
from collections.abc import Iterable
from typing import Any, Protocol, TypeVar

_TITLE_SEPARATORS = re.compile(r"[-.:]")
_WHITESPACE = re.compile(r"\s+")
_YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

_EPISODE_RANGE_PATTERN = re.compile(
    r"s(\d+)e(\d+)[\s\-]*(?:e|to|-)[\s\-]*e?(\d+)", re.IGNORECASE
)
_SEASON_PACK_PATTERN = re.compile(
    r"\b(?:season|сезон|s)[\s\-]?(\d{1,2})(?:\s|$|complete|full|pack)", re.IGNORECASE
)
_HAS_EPISODE_TOKEN = re.compile(
    r"e\d+|episode|епизод|\b\d{1,2}x\d{2,3}\b", re.IGNORECASE
)
_SXXEYY_PATTERN = re.compile(r"s(\d+)e(\d+)", re.IGNORECASE)
_NXNN_PATTERN = re.compile(r"\b(\d{1,2})x(\d{2,3})\b", re.IGNORECASE)
_VERBOSE_EPISODE_PATTERN = re.compile(
    r"season\s*(\d+)\s*episode\s*(\d+)", re.IGNORECASE
)


class _Titled(Protocol):
    title: str


TitledT = TypeVar("TitledT", bound=_Titled)


def normalize_title(text: str | None) -> str:
    """Replaces '-', '.' and ':' with spaces and collapses whitespace runs."""
    if not text:
        return ""
    text = _TITLE_SEPARATORS.sub(" ", str(text))
    return _WHITESPACE.sub(" ", text).strip()


def extract_year(text: str | None) -> str | None:
    """Returns the first 19xx/20xx token of ``text``."""
    if not text:
        return None
    match = _YEAR_PATTERN.search(text)
    return match.group(0) if match else None


def matches_title(candidate: str, search_title: str) -> bool:
    """Case-insensitive containment of the normalized search title."""
    needle = normalize_title(search_title).lower()
    if not needle:
        return False
    return needle in normalize_title(candidate).lower()


def filter_listings_by_title_and_year(
    listings: Iterable[TitledT], search_title: str, year: int | str | None = None
) -> list[TitledT]:
    """
    Keeps listings whose title contains ``search_title`` and, when ``year`` is
    given, whose first year token equals it.
    """
    wanted_year = str(year) if year else None
    kept: list[TitledT] = []
    for listing in listings:
        if not matches_title(listing.title, search_title):
            continue
        if wanted_year and extract_year(listing.title) != wanted_year:
            continue
        kept.append(listing)
    return kept


def extract_season_episode(title: str | None) -> dict[str, Any] | None:
    """
    Parses season/episode information out of a release title.

    Returns a dict with ``season``, ``episode`` (None for season packs),
    ``is_pack`` and ``episode_range`` (a ``(start, end)`` tuple for
    multi-episode packs), or None when nothing recognisable is present.
    """
    if not title:
        return None

    match = _EPISODE_RANGE_PATTERN.search(title)
    if match:
        start, end = int(match.group(2)), int(match.group(3))
        return {
            "season": int(match.group(1)),
            "episode": start,
            "is_pack": True,
            "episode_range": (start, end),
        }

    if not _HAS_EPISODE_TOKEN.search(title):
        match = _SEASON_PACK_PATTERN.search(title)
        if match:
            return {
                "season": int(match.group(1)),
                "episode": None,
                "is_pack": True,
                "episode_range": None,
            }

    for pattern in (_SXXEYY_PATTERN, _NXNN_PATTERN, _VERBOSE_EPISODE_PATTERN):
        match = pattern.search(title)
        if match:
            return {
                "season": int(match.group(1)),
                "episode": int(match.group(2)),
                "is_pack": False,
                "episode_range": None,
            }
    return None


def episode_matches(info: dict[str, Any], season: int, episode: int | None) -> bool:
    """True when parsed ``info`` covers the requested season/episode."""
    if info.get("season") != season:
        return False
    if episode is None:
        return True
    episode_range = info.get("episode_range")
    if episode_range:
        return episode_range[0] <= episode <= episode_range[1]
    if info.get("is_pack"):
        return True
    return info.get("episode") == episode


def format_size_gb(size_bytes: int) -> str:
    """Renders a byte count the way stream titles show it: ``'1.50 GB'``."""
    return f"{max(size_bytes, 0) / 1024**3:.2f} GB"


def safe_int(value: Any) -> int:
    try:
        parsed = int(str(value).strip().replace(",", ""))
        return parsed if parsed >= 0 else 0
    except (TypeError, ValueError):
        return 0
