"""Listings search/detail/similar/autocomplete over a mocked provider."""

from __future__ import annotations

import httpx
import pytest

from cma_builder.data.base import ListingsQuery
from cma_builder.data.listings_client import ListingsAggregationClient, format_address, parse_sqft_range
from cma_builder.errors import InvalidRequestError, NotFoundError, UpstreamUnavailableError

from conftest import IMAGE_CDN, Upstream, reply, unreachable


@pytest.mark.parametrize("text, expected", [
    ("1500-1999", (1500, 1999, 1749.5)),
    ("1,500 - 2,000 sqft", (1500, 2000, 1750)),
    ("2000-1500", (1500, 2000, 1750)),
    ("800", (800, 800, 800)),
    ("< 700", (700, 700, 700)),
    ("unknown", (0, 0, 0)),
    ("", (0, 0, 0)),
    (None, (0, 0, 0)),
])
def test_parse_sqft_range(text, expected):
    r = parse_sqft_range(text)
    assert (r.min, r.max, r.avg) == expected


def test_format_address():
    address = {
        "unitNumber": "5", "streetNumber": "12", "streetName": "Main",
        "streetSuffix": "St", "streetDirection": "N",
        "city": "Springfield", "state": "ON", "zip": "K1A 0B1",
    }
    assert format_address(address) == "5-12 Main St N, Springfield, ON K1A 0B1"
    assert format_address({"streetNumber": "9", "streetName": "Elm", "city": "Ottawa"}) == "9 Elm, Ottawa"
    assert format_address(None) == ""


def test_query_params_mapping():
    params = ListingsAggregationClient.query_params(ListingsQuery(
        cities=("Springfield", "Shelbyville"),
        property_types=("Detached",),
        statuses=("U",),
        last_statuses=("Sld",),
        date_range=("2023-03-31", "2024-03-31"),
        statistics=frozenset({"soldPrice", "daysOnMarket"}),
        include_listings=False,
        results_per_page=1,
    ))
    assert params["city"] == "Springfield,Shelbyville"
    assert params["propertyType"] == "Detached"
    assert params["status"] == "U"
    assert params["lastStatus"] == "Sld"
    assert params["statistics"] == "daysOnMarket,soldPrice"
    assert params["minSoldDate"] == "2023-03-31"
    assert params["maxSoldDate"] == "2024-03-31"
    assert params["listings"] is False
    assert params["area"] is None


@pytest.mark.asyncio
async def test_statistics_only_search(listings_for):
    upstream = Upstream(reply(200, {
        "count": 214,
        "page": 1,
        "numPages": 214,
        "statistics": {
            "soldPrice": {"min": 310000, "max": 1250000, "avg": 612345.5, "med": 589000},
            "daysOnMarket": {"avg": 18, "med": 12},
        },
        "listings": [{"mlsNumber": "ignored"}],
    }))
    result = await listings_for(upstream).search_listings(ListingsQuery(
        cities=("Springfield",), statistics=frozenset({"soldPrice", "daysOnMarket"}),
        include_listings=False, results_per_page=1,
    ))

    assert result.count == 214
    assert result.listings is None
    assert result.statistics["soldPrice"].median == 589000
    assert result.statistics["soldPrice"].avg == 612345.5
    assert result.statistics["daysOnMarket"].min is None
    sent = upstream.last
    assert sent.headers["REPLIERS-API-KEY"] == "listings-key"
    assert sent.url.params["listings"] == "false"
    assert sent.url.params["city"] == "Springfield"
    assert "area" not in sent.url.params


@pytest.mark.asyncio
async def test_search_resolves_relative_images(listings_for):
    upstream = Upstream(reply(200, {"count": 1, "listings": [
        {"mlsNumber": "X1", "images": ["area/IMG-X1_1.jpg", "https://elsewhere.test/2.jpg"]},
    ]}))
    result = await listings_for(upstream).search_listings(ListingsQuery(statuses=("A",)))
    assert result.listings[0]["images"] == [
        f"{IMAGE_CDN}area/IMG-X1_1.jpg", "https://elsewhere.test/2.jpg",
    ]


@pytest.mark.asyncio
async def test_get_listing_and_board_id(listings_for):
    upstream = Upstream(reply(200, {"mlsNumber": "X1", "listPrice": "799000"}))
    listing = await listings_for(upstream).get_listing("X1", board_id=91)
    assert listing["mlsNumber"] == "X1"
    assert upstream.last.url.path == "/listings/X1"
    assert upstream.last.url.params["boardId"] == "91"


@pytest.mark.asyncio
async def test_get_listing_not_found(listings_for):
    with pytest.raises(NotFoundError):
        await listings_for(Upstream(reply(404, {}))).get_listing("nope")


@pytest.mark.asyncio
async def test_similar_listings(listings_for):
    upstream = Upstream(reply(200, {"listings": [{"mlsNumber": "S1"}, {"mlsNumber": "S2"}]}))
    rows = await listings_for(upstream).get_similar_listings("X1", radius=2.5, sort_by="updatedOnDesc")
    assert [r["mlsNumber"] for r in rows] == ["S1", "S2"]
    assert upstream.last.url.path == "/listings/X1/similar"
    assert upstream.last.url.params["radius"] == "2.5"


@pytest.mark.asyncio
async def test_similar_listings_requires_id(listings_for):
    upstream = Upstream(reply(200, {}))
    with pytest.raises(InvalidRequestError):
        await listings_for(upstream).get_similar_listings("")
    assert upstream.calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["", "S", " S ", "   "])
async def test_autocomplete_short_prefix_makes_no_call(listings_for, prefix):
    upstream = Upstream(reply(200, {"locations": []}))
    assert await listings_for(upstream).autocomplete_locations(prefix) == []
    assert upstream.calls == 0


@pytest.mark.asyncio
async def test_autocomplete_two_chars_makes_one_call(listings_for):
    upstream = Upstream(reply(200, {"locations": [
        {"name": "Springfield", "type": "city", "state": "ON"},
        {"name": "Spring Garden", "type": "neighborhood", "city": "Halifax"},
        {"type": "area"},
    ]}))
    suggestions = await listings_for(upstream).autocomplete_locations("Sp")

    assert upstream.calls == 1
    assert upstream.last.url.params["search"] == "Sp"
    assert [s.name for s in suggestions] == ["Springfield", "Spring Garden"]
    assert suggestions[1].city == "Halifax"


@pytest.mark.asyncio
async def test_featured_listings_cards(listings_for):
    upstream = Upstream(reply(200, {"count": 1, "listings": [{
        "mlsNumber": "F1",
        "listPrice": 950000,
        "address": {"streetNumber": "10", "streetName": "Oak", "streetSuffix": "Ave",
                    "city": "Springfield", "state": "ON"},
        "details": {"numBedrooms": 4, "numBathrooms": 3, "sqft": "2000-2500", "propertyType": "Detached"},
        "images": ["IMG-F1.jpg"],
    }]}))
    cards = await listings_for(upstream).featured_listings(limit=3)

    assert cards[0]["streetAddress"] == "10 Oak Ave"
    assert cards[0]["sqftRange"] == {"min": 2000, "max": 2500, "avg": 2250}
    assert cards[0]["image"] == f"{IMAGE_CDN}IMG-F1.jpg"
    params = upstream.last.url.params
    assert params["status"] == "A"
    assert params["hasImages"] == "true"
    assert params["resultsPerPage"] == "3"


@pytest.mark.asyncio
@pytest.mark.parametrize("handler", [reply(500, {}), reply(429, {}), reply(401, {}), unreachable])
async def test_provider_failures_are_upstream_errors(listings_for, handler):
    with pytest.raises(UpstreamUnavailableError):
        await listings_for(Upstream(handler)).search_listings(ListingsQuery(statuses=("A",)))


@pytest.mark.asyncio
async def test_rejected_query_is_invalid_request(listings_for):
    with pytest.raises(InvalidRequestError):
        await listings_for(Upstream(reply(400, {"message": "bad city"}))).search_listings(ListingsQuery())


@pytest.mark.asyncio
async def test_sold_date_window_is_forwarded_verbatim(listings_for):
    upstream = Upstream(reply(200, {"count": 3, "statistics": {}}))
    result = await listings_for(upstream).search_listings(ListingsQuery(
        cities=("Springfield",), date_range=("2024-01-01", "2024-12-31"), include_listings=False,
    ))
    assert result.count == 3
    assert upstream.last.url.params["minSoldDate"] == "2024-01-01"
    assert upstream.last.url.params["maxSoldDate"] == "2024-12-31"


def _raw_json(text: str):
    def handler(request):
        return httpx.Response(200, content=text.encode(), headers={"content-type": "application/json"})
    return handler


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["[1, 2]", "null", '"text"'])
async def test_non_object_bodies_are_upstream_errors(listings_for, body):
    client = listings_for(Upstream(_raw_json(body)))
    with pytest.raises(UpstreamUnavailableError):
        await client.search_listings(ListingsQuery(statuses=("A",)))
    with pytest.raises(UpstreamUnavailableError):
        await client.get_listing("X1")


@pytest.mark.asyncio
async def test_similar_listings_accepts_bare_list_and_skips_junk(listings_for):
    upstream = Upstream(reply(200, [{"mlsNumber": "S1"}, "junk", None]))
    rows = await listings_for(upstream).get_similar_listings("X1")
    assert rows == [{"mlsNumber": "S1"}]
    with pytest.raises(UpstreamUnavailableError):
        await listings_for(Upstream(_raw_json("null"))).autocomplete_locations("Spr")
