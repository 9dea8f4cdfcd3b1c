from tracker_streams.services.scrapers.zamunda_se import (
    ZamundaSeParser,
    extract_magnet_from_detail,
)

BASE_URL = "http://zamunda.se"
HASH = "0123456789abcdef0123456789abcdef01234567"

CATALOGUE_HTML = """
<table>
  <tr>
    <td class="colheadd"><a href="details.php?id=900&hit=1">Inception 2010 1080p</a></td>
    <td><a href="/download.php/900/Inception.torrent">dl</a></td>
    <td class="tddownloaded"><b>33</b><b>1</b></td>
  </tr>
  <tr>
    <td class="colheadd"><a href="details.php?id=901">Inception 2010 720p</a></td>
    <td><a href="/download.php/999/Other.torrent">dl</a></td>
  </tr>
</table>
"""


def test_rows_keep_their_own_download_link():
    listings = ZamundaSeParser(BASE_URL).parse_listings(CATALOGUE_HTML, "Inception")

    assert len(listings) == 2
    first, second = listings
    assert first.download_url == "http://zamunda.se/download.php/900/Inception.torrent"
    assert first.detail_url == "http://zamunda.se/details.php?id=900"
    assert first.seeders == 33
    assert second.download_url is None
    assert second.detail_url == "http://zamunda.se/details.php?id=901"


def test_regex_fallback_matches_downloads_by_id():
    html = """
    <a href="details.php?id=11">Up.2009.720p</a>
    <a href="details.php?id=12">Up 2009 1080p</a>
    <a href="/download.php/12/Up.torrent">dl</a>
    """
    listings = ZamundaSeParser(BASE_URL).parse_listings(html, "Up")

    assert [listing.listing_id for listing in listings] == ["11", "12"]
    assert listings[0].download_url is None
    assert listings[1].download_url == "http://zamunda.se/download.php/12/Up.torrent"


def test_extract_magnet_from_full_link():
    html = f'<a href="magnet:?xt=urn:btih:{HASH}&amp;dn=Inception">Magnet</a>'
    assert extract_magnet_from_detail(html) == f"magnet:?xt=urn:btih:{HASH}&dn=Inception"


def test_extract_magnet_rebuilds_from_bare_hash():
    html = f"<script>var m = 'magnet:?xt=urn:btih:{HASH.upper()}';</script>"
    assert extract_magnet_from_detail(html) == f"magnet:?xt=urn:btih:{HASH}"


def test_extract_magnet_missing():
    assert extract_magnet_from_detail("<p>no magnet here</p>") is None
