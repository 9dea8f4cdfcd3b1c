import pytest

from tracker_streams.services.metadata_cache import TorrentFileCache, cache_key
from tracker_streams.services.torrent_data import TorrentMetadata


def _url(n: int) -> str:
    return f"https://tracker.example/download.php/{n}/file.torrent"


def test_get_and_put_track_hits_and_misses():
    cache = TorrentFileCache(max_entries=5)

    assert cache.get(_url(1)) is None
    cache.put(_url(1), b"payload-1")
    assert cache.get(_url(1)) == b"payload-1"
    assert _url(1) in cache

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["max_size"] == 5
    assert stats["hit_rate"] == pytest.approx(0.5)


def test_keys_are_md5_of_url():
    assert cache_key("abc") == "900150983cd24fb0d6963f7d28e17f72"


def test_batch_eviction_removes_oldest_quarter():
    cache = TorrentFileCache(max_entries=4)
    for n in range(4):
        cache.put(_url(n), f"p{n}".encode())

    cache.put(_url(4), b"p4")

    # floor(4 * 0.25) == 1 entry dropped, the oldest one.
    assert len(cache) == 4
    assert cache.evictions == 1
    assert cache.get(_url(0)) is None
    assert cache.get(_url(1)) == b"p1"
    assert cache.get(_url(4)) == b"p4"


def test_eviction_with_default_capacity_drops_twelve():
    cache = TorrentFileCache()
    for n in range(50):
        cache.put(_url(n), b"x")

    cache.put(_url(50), b"x")

    assert cache.evictions == 12
    assert len(cache) == 39
    assert cache.get(_url(11)) is None
    assert cache.get(_url(12)) == b"x"


def test_cache_never_exceeds_capacity():
    cache = TorrentFileCache(max_entries=3)
    for n in range(20):
        cache.put(_url(n), b"x")
        assert len(cache) <= 3


def test_small_capacity_still_evicts_at_least_one():
    cache = TorrentFileCache(max_entries=1)
    cache.put(_url(1), b"a")
    cache.put(_url(2), b"b")
    assert len(cache) == 1
    assert cache.get(_url(2)) == b"b"


def test_replacing_a_key_does_not_evict():
    cache = TorrentFileCache(max_entries=2)
    cache.put(_url(1), b"a")
    cache.put(_url(2), b"b")
    cache.put(_url(1), b"a2")

    assert cache.evictions == 0
    assert cache.get(_url(1)) == b"a2"
    assert cache.get(_url(2)) == b"b"


def test_metadata_is_memoized_next_to_payload():
    cache = TorrentFileCache()
    metadata = TorrentMetadata(info_hash="a" * 40, total_length=10)

    cache.put_metadata(_url(1), metadata)
    assert cache.get_metadata(_url(1)) is None

    cache.put(_url(1), b"payload")
    cache.put_metadata(_url(1), metadata)
    assert cache.get_metadata(_url(1)) is metadata
    assert cache.stats()["hits"] == 0


def test_list_entries_newest_first_and_clear():
    cache = TorrentFileCache()
    cache.put(_url(1), b"a")
    cache.put(_url(2), b"bb")
    cache.get(_url(1))

    entries = cache.list_entries()
    assert [entry["url"] for entry in entries] == [_url(2), _url(1)]
    assert entries[0]["size"] == 2
    assert entries[0]["filename"] == f"{cache_key(_url(2))}.torrent"

    cache.clear()
    assert len(cache) == 0
    assert cache.stats() == {
        "hits": 0,
        "misses": 0,
        "evictions": 0,
        "size": 0,
        "max_size": 50,
        "hit_rate": 0.0,
    }


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        TorrentFileCache(max_entries=0)
