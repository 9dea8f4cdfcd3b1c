import pytest

from tracker_streams.services.scrapers.scoring import (
    extract_resolution,
    resolution_priority,
    sort_streams_by_quality,
)
from tracker_streams.services.torrent_data import StreamDescriptor


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Sing 2 2021 1080p BluRay x265 AAC BG+ENAUDiO SiSO", "1080p"),
        ("Sing 2 2021 720p WEBRip x264", "720p"),
        ("Sing 2 2021 2160p UHD BluRay x265 10bit HDR", "4K"),
        ("Movie 4K HDR", "4K"),
        ("Movie 8K Demo", "8K"),
        ("Movie 2K Remaster", "1440p"),
        ("Movie 576p PAL", "576p"),
        ("Movie WEBRip x264", "WEBRip"),
        ("Movie web-rip", "WEBRip"),
        ("Movie BluRay Remux", "1080p"),
        ("Movie Blu-Ray", "1080p"),
        ("Movie BDRip", "720p"),
        ("Movie HDRip", "720p"),
        ("Movie FullHD", "1080p"),
        ("Movie UHD", "4K"),
        ("Movie DVD", "480p"),
        ("Movie XviD", "480p"),
        ("Avatar 2009 1080p 3D HSBS", "1080p(3D)"),
        ("Avatar HalfOU BluRay", "1080p(3D)"),
        ("Avatar 3D", "3D"),
        ("Just a movie title", "Unknown"),
        ("", "Unknown"),
        (None, "Unknown"),
    ],
)
def test_extract_resolution(title, expected):
    assert extract_resolution(title) == expected


def test_numeric_token_beats_qualitative_token():
    assert extract_resolution("Movie BluRay 720p") == "720p"
    assert extract_resolution("Movie HD 2160p") == "4K"


def test_hdr_is_not_a_resolution():
    assert extract_resolution("Movie HDR") == "Unknown"
    assert extract_resolution("Movie HDR HD") == "720p"


def test_resolution_priority_ignores_3d_suffix():
    assert resolution_priority("1080p(3D)") == resolution_priority("1080p")
    assert resolution_priority("8K") > resolution_priority("4K") > resolution_priority("1080p")
    assert resolution_priority("WEBRip") == 0
    assert resolution_priority("Unknown") == 0


def _stream(resolution: str, seeders: int) -> StreamDescriptor:
    return StreamDescriptor(
        display_name=f"src\n{resolution}",
        display_title="t",
        info_hash="a" * 40,
        seeders=seeders,
        resolution=resolution,
    )


def test_sort_streams_by_quality_then_seeders():
    streams = [
        _stream("720p", 100),
        _stream("1080p", 5),
        _stream("4K", 1),
        _stream("1080p", 50),
        _stream("Unknown", 999),
    ]
    ordered = sort_streams_by_quality(streams)
    assert [(s.resolution, s.seeders) for s in ordered] == [
        ("4K", 1),
        ("1080p", 50),
        ("1080p", 5),
        ("720p", 100),
        ("Unknown", 999),
    ]
