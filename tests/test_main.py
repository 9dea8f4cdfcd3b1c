import json

import pytest

from tracker_streams import __main__ as cli
from tracker_streams.services.torrent_data import StreamDescriptor


class _StubAggregator:
    def __init__(self, clients):
        self.clients = clients
        self.queries = []
        self.closed = False

    async def get_streams(self, query):
        self.queries.append(query)
        return [
            StreamDescriptor(
                display_name="zamunda\n1080p",
                display_title="The Matrix 1999 1080p 👤5",
                info_hash="a" * 40,
            )
        ]

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_main_prints_streams_as_json(mocker, capsys):
    mocker.patch.object(
        cli, "get_configuration", return_value=({}, {"enabled_sources": []})
    )
    mocker.patch.object(cli, "build_clients", return_value=[])
    created = []

    def _make(clients):
        created.append(_StubAggregator(clients))
        return created[-1]

    mocker.patch.object(cli, "StreamAggregator", side_effect=_make)

    exit_code = await cli.main(["The Matrix", "--year", "1999"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "streams": [
            {
                "name": "zamunda\n1080p",
                "title": "The Matrix 1999 1080p 👤5",
                "infoHash": "a" * 40,
            }
        ]
    }
    [aggregator] = created
    assert aggregator.closed
    assert aggregator.queries[0].year == 1999
    assert aggregator.queries[0].media_type == "movie"


@pytest.mark.asyncio
async def test_series_search_requires_season(mocker):
    get_configuration = mocker.patch.object(cli, "get_configuration")

    assert await cli.main(["The Office", "--type", "series"]) == 2
    get_configuration.assert_not_called()
