from datetime import date
from typing import Optional

from ..core.utils import iso_day, subtract_months, utc_today
from ..data.base import ListingsClient, ListingsQuery, MarketStatistics
from ..data.listings_client import listings_client
from ..errors import InvalidRequestError

MAX_WINDOW_MONTHS = 120

SOLD_METRICS = frozenset({"soldPrice", "listPrice", "daysOnMarket"})
ACTIVE_METRICS = frozenset({"listPrice"})

def rolling_window(months: int, today: Optional[date] = None) -> tuple[date, date]:
    """Inclusive [start, end] where end is today and start is `months` calendar months back."""
    end = today or utc_today()
    return subtract_months(end, months), end

class MarketStatsService:
    """
    Orchestrates:
      relative window → concrete dates → sold aggregate + active aggregate
    Nothing is cached; every call reflects the provider at call time.
    """
    def __init__(self, listings: Optional[ListingsClient] = None):
        self.listings = listings or listings_client()

    async def market_stats(self, city: Optional[str] = None, area: Optional[str] = None,
                           property_type: Optional[str] = None, months: int = 12,
                           today: Optional[date] = None) -> MarketStatistics:
        if not 1 <= months <= MAX_WINDOW_MONTHS:
            raise InvalidRequestError(f"months must be between 1 and {MAX_WINDOW_MONTHS}")

        window = rolling_window(months, today)
        cities = (city,) if city else ()
        areas = (area,) if area else ()
        types = (property_type,) if property_type else ()

        sold = await self.listings.search_listings(ListingsQuery(
            cities=cities, areas=areas, property_types=types,
            statuses=("U",), last_statuses=("Sld",),
            date_range=(iso_day(window[0]), iso_day(window[1])),
            statistics=SOLD_METRICS,
            include_listings=False,
            results_per_page=1,
        ))
        active = await self.listings.search_listings(ListingsQuery(
            cities=cities, areas=areas, property_types=types,
            statuses=("A",),
            statistics=ACTIVE_METRICS,
            include_listings=False,
            results_per_page=1,
        ))
        return MarketStatistics(
            sold_count=sold.count,
            active_count=active.count,
            per_metric_aggregates=sold.statistics,
            active_aggregates=active.statistics,
            date_range=window,
        )
