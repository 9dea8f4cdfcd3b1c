from dataclasses import dataclass

import pytest

from tracker_streams.utils import (
    episode_matches,
    extract_season_episode,
    extract_year,
    filter_listings_by_title_and_year,
    format_size_gb,
    normalize_title,
    safe_int,
)


@dataclass
class _Listing:
    title: str


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  The.Matrix-Reloaded:2003  ", "The Matrix Reloaded 2003"),
        ("Spider-Man: No Way Home", "Spider Man No Way Home"),
        ("a\t\tb\n c", "a b c"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_title(raw, expected):
    assert normalize_title(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["The.Matrix.1999.1080p", "  Mad  Max: Fury-Road ", "already clean", "...---:::"],
)
def test_normalize_title_is_idempotent(raw):
    once = normalize_title(raw)
    assert normalize_title(once) == once


def test_extract_year_returns_first_year_token():
    assert extract_year("Blade Runner 2049 2017 1080p") == "2049"
    assert extract_year("Alien 1979 Directors Cut") == "1979"
    assert extract_year("No year 1080p") is None
    assert extract_year("") is None


def test_filter_by_title_is_case_insensitive_containment():
    listings = [
        _Listing("The Matrix 1999 1080p"),
        _Listing("THE MATRIX RELOADED 2003"),
        _Listing("Matrixx 1999"),
        _Listing("Inception 2010"),
    ]
    kept = filter_listings_by_title_and_year(listings, "the matrix")
    assert [listing.title for listing in kept] == [
        "The Matrix 1999 1080p",
        "THE MATRIX RELOADED 2003",
    ]


def test_filter_by_year_uses_first_year_token():
    listings = [
        _Listing("The Matrix 1999 1080p"),
        _Listing("The Matrix Resurrections 2021"),
        _Listing("The Matrix no year"),
    ]
    kept = filter_listings_by_title_and_year(listings, "The Matrix", 1999)
    assert [listing.title for listing in kept] == ["The Matrix 1999 1080p"]


def test_filter_normalizes_the_search_title():
    listings = [_Listing("Spider Man No Way Home 2021")]
    assert filter_listings_by_title_and_year(listings, "Spider-Man: No Way Home", "2021")


@pytest.mark.parametrize(
    "title, expected",
    [
        (
            "Show S01E01-E05 1080p",
            {"season": 1, "episode": 1, "is_pack": True, "episode_range": (1, 5)},
        ),
        (
            "Show Season 2 Complete",
            {"season": 2, "episode": None, "is_pack": True, "episode_range": None},
        ),
        (
            "Шоу Сезон 3 1080p",
            {"season": 3, "episode": None, "is_pack": True, "episode_range": None},
        ),
        (
            "Show S01E05 720p",
            {"season": 1, "episode": 5, "is_pack": False, "episode_range": None},
        ),
        (
            "Show 2x07 HDTV",
            {"season": 2, "episode": 7, "is_pack": False, "episode_range": None},
        ),
        (
            "Show Season 4 Episode 9",
            {"season": 4, "episode": 9, "is_pack": False, "episode_range": None},
        ),
    ],
)
def test_extract_season_episode(title, expected):
    assert extract_season_episode(title) == expected


def test_extract_season_episode_ignores_plain_titles():
    assert extract_season_episode("The Matrix 1999 1080p") is None
    assert extract_season_episode("") is None


def test_episode_matches_handles_packs_and_ranges():
    single = extract_season_episode("Show S01E05")
    pack = extract_season_episode("Show Season 1 Complete")
    ranged = extract_season_episode("Show S01E01-E04")

    assert episode_matches(single, 1, 5)
    assert not episode_matches(single, 1, 6)
    assert not episode_matches(single, 2, 5)
    assert episode_matches(pack, 1, 9)
    assert episode_matches(ranged, 1, 3)
    assert not episode_matches(ranged, 1, 7)
    assert episode_matches(single, 1, None)


def test_size_helpers():
    assert format_size_gb(1024**3 * 3 // 2) == "1.50 GB"
    assert format_size_gb(0) == "0.00 GB"


@pytest.mark.parametrize(
    "value, expected", [("12", 12), (" 7 ", 7), ("-3", 0), ("n/a", 0), (None, 0), (5, 5)]
)
def test_safe_int_clamps_and_defaults(value, expected):
    assert safe_int(value) == expected
