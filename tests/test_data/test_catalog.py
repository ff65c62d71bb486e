"""Tests for InstrumentCatalog pagination, parsing and perpetual filtering.

All tests use a mocked MarketDataClient to avoid real API calls.
"""

from unittest.mock import AsyncMock, call

import pytest

from bybit_funding.data.catalog import InstrumentCatalog, parse_instruments_page
from bybit_funding.exceptions import DecodeError, NetworkError
from bybit_funding.exchange.client import MarketDataClient
from bybit_funding.exchange.types import Category, Instrument


# ---------------------------------------------------------------------------
# Sample listing data (mimics v5 instruments-info records)
# ---------------------------------------------------------------------------

BTCUSDT = {"symbol": "BTCUSDT", "contractType": "LinearPerpetual", "launchTime": "1584230400000"}
ETHUSDT = {"symbol": "ETHUSDT", "contractType": "LinearPerpetual", "launchTime": "1615766400000"}
BTCPERP = {"symbol": "BTCPERP", "contractType": "LinearPerpetual", "launchTime": "1672502400000"}
BTC_FUTURE = {"symbol": "BTC-29MAR24", "contractType": "LinearFutures", "launchTime": "1703232000000"}
BTCUSD = {"symbol": "BTCUSD", "contractType": "InversePerpetual", "launchTime": "1542211200000"}
BTCUSDH24 = {"symbol": "BTCUSDH24", "contractType": "InverseFutures", "launchTime": "1695974400000"}


def page(records: list[dict], category: str, cursor: str = "") -> dict:
    return {
        "retCode": 0,
        "retMsg": "OK",
        "result": {"category": category, "list": records, "nextPageCursor": cursor},
        "retExtInfo": {},
        "time": 1704067200000,
    }


def make_client(pages: dict[str, list]) -> AsyncMock:
    """Mock client serving successive pages per category."""
    client = AsyncMock(spec=MarketDataClient)
    remaining = {category: list(bodies) for category, bodies in pages.items()}

    async def fetch_page(category: Category, cursor: str | None = None):
        return remaining[category.value].pop(0)

    client.fetch_instruments_page.side_effect = fetch_page
    return client


# ---------------------------------------------------------------------------
# parse_instruments_page
# ---------------------------------------------------------------------------


class TestParseInstrumentsPage:
    def test_parses_records_and_cursor(self) -> None:
        instruments, cursor = parse_instruments_page(
            page([BTCUSDT], "linear", cursor="next"), Category.LINEAR
        )
        assert instruments == [
            Instrument(
                symbol="BTCUSDT",
                contract_type="LinearPerpetual",
                category=Category.LINEAR,
                launch_timestamp=1584230400000,
            )
        ]
        assert cursor == "next"

    def test_category_comes_from_response(self) -> None:
        instruments, _ = parse_instruments_page(page([BTCUSD], "inverse"), Category.LINEAR)
        assert instruments[0].category is Category.INVERSE

    def test_missing_category_falls_back_to_requested(self) -> None:
        body = page([BTCUSD], "inverse")
        del body["result"]["category"]
        instruments, _ = parse_instruments_page(body, Category.INVERSE)
        assert instruments[0].category is Category.INVERSE

    def test_missing_cursor_is_empty(self) -> None:
        body = page([BTCUSDT], "linear")
        del body["result"]["nextPageCursor"]
        _, cursor = parse_instruments_page(body, Category.LINEAR)
        assert cursor == ""

    def test_non_json_body_raises(self) -> None:
        with pytest.raises(DecodeError) as excinfo:
            parse_instruments_page("<html>502 Bad Gateway</html>", Category.LINEAR)
        assert excinfo.value.body == "<html>502 Bad Gateway</html>"

    def test_missing_result_raises(self) -> None:
        with pytest.raises(DecodeError):
            parse_instruments_page({"retCode": 0, "retMsg": "OK"}, Category.LINEAR)

    def test_bad_launch_time_raises(self) -> None:
        record = dict(BTCUSDT, launchTime="soon")
        with pytest.raises(DecodeError):
            parse_instruments_page(page([record], "linear"), Category.LINEAR)

    def test_unknown_category_raises(self) -> None:
        with pytest.raises(DecodeError):
            parse_instruments_page(page([BTCUSDT], "option"), Category.LINEAR)


# ---------------------------------------------------------------------------
# InstrumentCatalog.load_instruments
# ---------------------------------------------------------------------------


class TestLoadInstruments:
    @pytest.mark.asyncio
    async def test_loads_both_categories(self) -> None:
        client = make_client(
            {
                "linear": [page([BTCUSDT, ETHUSDT], "linear")],
                "inverse": [page([BTCUSD], "inverse")],
            }
        )

        instruments = await InstrumentCatalog(client).load_instruments()

        assert [i.symbol for i in instruments] == ["BTCUSDT", "ETHUSDT", "BTCUSD"]
        assert instruments[2].category is Category.INVERSE
        assert client.fetch_instruments_page.await_args_list == [
            call(Category.LINEAR, None),
            call(Category.INVERSE, None),
        ]

    @pytest.mark.asyncio
    async def test_inverse_launch_time_is_parsed(self) -> None:
        client = make_client(
            {"linear": [page([], "linear")], "inverse": [page([BTCUSD], "inverse")]}
        )
        instruments = await InstrumentCatalog(client).load_instruments()
        assert instruments[0].launch_timestamp == 1542211200000

    @pytest.mark.asyncio
    async def test_non_perpetuals_are_dropped(self) -> None:
        client = make_client(
            {
                "linear": [page([BTCUSDT, BTC_FUTURE, BTCPERP], "linear")],
                "inverse": [page([BTCUSD, BTCUSDH24], "inverse")],
            }
        )

        instruments = await InstrumentCatalog(client).load_instruments()

        symbols = {i.symbol for i in instruments}
        assert symbols == {"BTCUSDT", "BTCPERP", "BTCUSD"}
        assert all(i.is_perpetual for i in instruments)

    @pytest.mark.asyncio
    async def test_follows_cursor_until_empty(self) -> None:
        client = make_client(
            {
                "linear": [
                    page([BTCUSDT], "linear", cursor="c1"),
                    page([ETHUSDT], "linear", cursor="c2"),
                    page([BTCPERP], "linear", cursor=""),
                ],
                "inverse": [page([], "inverse")],
            }
        )

        instruments = await InstrumentCatalog(client).load_instruments()

        assert [i.symbol for i in instruments] == ["BTCUSDT", "ETHUSDT", "BTCPERP"]
        assert client.fetch_instruments_page.await_args_list == [
            call(Category.LINEAR, None),
            call(Category.LINEAR, "c1"),
            call(Category.LINEAR, "c2"),
            call(Category.INVERSE, None),
        ]

    @pytest.mark.asyncio
    async def test_repeated_cursor_terminates(self) -> None:
        client = make_client(
            {
                "linear": [
                    page([BTCUSDT], "linear", cursor="same"),
                    page([ETHUSDT], "linear", cursor="same"),
                    # Would loop forever if the echoed cursor were followed
                    page([BTCPERP], "linear", cursor="same"),
                ],
                "inverse": [page([], "inverse")],
            }
        )

        instruments = await InstrumentCatalog(client).load_instruments()

        assert [i.symbol for i in instruments] == ["BTCUSDT", "ETHUSDT"]
        assert client.fetch_instruments_page.await_count == 3

    @pytest.mark.asyncio
    async def test_decode_failure_aborts_catalog(self) -> None:
        client = make_client(
            {
                "linear": [page([BTCUSDT], "linear")],
                "inverse": [{"retCode": 0, "result": None}],
            }
        )
        with pytest.raises(DecodeError):
            await InstrumentCatalog(client).load_instruments()

    @pytest.mark.asyncio
    async def test_network_error_propagates(self) -> None:
        client = AsyncMock(spec=MarketDataClient)
        client.fetch_instruments_page.side_effect = NetworkError("connection reset")
        with pytest.raises(NetworkError):
            await InstrumentCatalog(client).load_instruments()
