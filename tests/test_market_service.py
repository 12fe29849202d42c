"""Rolling-window market statistics."""

from __future__ import annotations

from datetime import date

import pytest

from cma_builder.core.utils import subtract_months
from cma_builder.data.base import ListingsSearchResult, MetricAggregate
from cma_builder.errors import InvalidRequestError, UpstreamUnavailableError
from cma_builder.services.market_service import MarketStatsService, rolling_window

from conftest import Upstream, reply


class FakeListings:
    """Answers sold queries and active queries from canned results."""

    def __init__(self, sold: ListingsSearchResult, active: ListingsSearchResult):
        self.sold = sold
        self.active = active
        self.queries = []

    async def search_listings(self, query):
        self.queries.append(query)
        return self.sold if "U" in query.statuses else self.active


SOLD = ListingsSearchResult(count=214, statistics={
    "soldPrice": MetricAggregate(min=310000, max=1250000, avg=612345.5, median=589000),
    "daysOnMarket": MetricAggregate(avg=18, median=12),
})
ACTIVE = ListingsSearchResult(count=57, statistics={"listPrice": MetricAggregate(avg=699000, median=675000)})


@pytest.mark.parametrize("d, months, expected", [
    (date(2024, 6, 15), 12, date(2023, 6, 15)),
    (date(2024, 3, 31), 1, date(2024, 2, 29)),
    (date(2023, 3, 31), 1, date(2023, 2, 28)),
    (date(2024, 1, 31), 2, date(2023, 11, 30)),
    (date(2024, 5, 31), 120, date(2014, 5, 31)),
])
def test_subtract_months_clamps_to_month_end(d, months, expected):
    assert subtract_months(d, months) == expected


def test_rolling_window_ends_today():
    assert rolling_window(6, today=date(2024, 8, 31)) == (date(2024, 2, 29), date(2024, 8, 31))


@pytest.mark.asyncio
async def test_market_stats_for_twelve_months():
    fake = FakeListings(SOLD, ACTIVE)
    stats = await MarketStatsService(fake).market_stats(
        city="Springfield", months=12, today=date(2024, 6, 15),
    )

    assert stats.sold_count == 214
    assert stats.active_count == 57
    assert stats.per_metric_aggregates["soldPrice"].median == 589000
    assert stats.active_aggregates["listPrice"].avg == 699000
    assert stats.date_range == (date(2023, 6, 15), date(2024, 6, 15))

    sold_q, active_q = fake.queries
    assert sold_q.cities == ("Springfield",)
    assert sold_q.last_statuses == ("Sld",)
    assert sold_q.date_range == ("2023-06-15", "2024-06-15")
    assert sold_q.include_listings is False
    assert {"soldPrice", "listPrice", "daysOnMarket"} <= sold_q.statistics
    assert active_q.statuses == ("A",)
    assert active_q.date_range is None
    assert active_q.include_listings is False


@pytest.mark.asyncio
async def test_empty_market_returns_zero_counts():
    empty = ListingsSearchResult(count=0, statistics={})
    stats = await MarketStatsService(FakeListings(empty, empty)).market_stats(
        area="Nowhere", today=date(2024, 6, 15),
    )
    assert stats.sold_count == 0
    assert stats.per_metric_aggregates == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("months", [0, -1, 121])
async def test_months_out_of_range(months):
    fake = FakeListings(SOLD, ACTIVE)
    with pytest.raises(InvalidRequestError):
        await MarketStatsService(fake).market_stats(city="Springfield", months=months)
    assert fake.queries == []


@pytest.mark.asyncio
async def test_market_stats_over_http(listings_for):
    upstream = Upstream(reply(200, {"count": 3, "statistics": {"listPrice": {"avg": 500000, "med": 480000}}}))
    stats = await MarketStatsService(listings_for(upstream)).market_stats(
        city="Springfield", property_type="Detached", months=3, today=date(2024, 5, 31),
    )

    assert upstream.calls == 2
    sold_params = upstream.requests[0].url.params
    assert sold_params["minSoldDate"] == "2024-02-29"
    assert sold_params["maxSoldDate"] == "2024-05-31"
    assert sold_params["listings"] == "false"
    assert sold_params["propertyType"] == "Detached"
    assert upstream.requests[1].url.params["status"] == "A"
    assert stats.active_count == 3


@pytest.mark.asyncio
async def test_provider_outage_propagates(listings_for):
    with pytest.raises(UpstreamUnavailableError):
        await MarketStatsService(listings_for(Upstream(reply(503, {})))).market_stats(city="Springfield")
