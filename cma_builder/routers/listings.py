import logging
from fastapi import APIRouter, Depends, Query
from ..core.security import rate_limit, require_api_key
from ..core.utils import iso_day
from ..data.listings_client import ListingsAggregationClient, listings_client
from ..errors import UpstreamUnavailableError
from ..schemas import (
    DateRange,
    FeaturedListingsResponse,
    MarketStatsResponse,
    SimilarListingsResponse,
    StatsBlock,
    Suggestion,
    metrics_out,
)
from ..services.market_service import MarketStatsService

logger = logging.getLogger(__name__)

# Every route here spends listings-provider quota
router = APIRouter(dependencies=[Depends(require_api_key), Depends(rate_limit)])

def listings_dep() -> ListingsAggregationClient:
    return listings_client()

def market_dep(client: ListingsAggregationClient = Depends(listings_dep)) -> MarketStatsService:
    return MarketStatsService(client)

@router.get("/listings/stats", response_model=MarketStatsResponse)
async def market_stats(
    city: str | None = Query(default=None),
    area: str | None = Query(default=None),
    propertyType: str | None = Query(default=None),
    months: int = Query(default=12),
    svc: MarketStatsService = Depends(market_dep),
):
    stats = await svc.market_stats(city=city, area=area, property_type=propertyType, months=months)
    start, end = stats.date_range
    return MarketStatsResponse(
        sold=StatsBlock(count=stats.sold_count, statistics=metrics_out(stats.per_metric_aggregates)),
        active=StatsBlock(count=stats.active_count, statistics=metrics_out(stats.active_aggregates)),
        dateRange=DateRange(start=iso_day(start), end=iso_day(end)),
    )

@router.get("/listings/featured", response_model=FeaturedListingsResponse)
async def featured(
    limit: int = Query(default=6, ge=1, le=24),
    client: ListingsAggregationClient = Depends(listings_dep),
):
    try:
        cards = await client.featured_listings(limit)
    except UpstreamUnavailableError as exc:
        # Landing-page widget: render empty rather than fail the page
        logger.warning("Featured listings unavailable: %s", exc.message)
        cards = []
    return FeaturedListingsResponse(listings=cards)

@router.get("/listings/autocomplete", response_model=list[Suggestion])
async def autocomplete(
    search: str = Query(default=""),
    client: ListingsAggregationClient = Depends(listings_dep),
):
    try:
        suggestions = await client.autocomplete_locations(search)
    except UpstreamUnavailableError as exc:
        logger.warning("Location autocomplete unavailable: %s", exc.message)
        return []
    return [
        Suggestion(name=s.name, type=s.type, area=s.area, city=s.city,
                   neighborhood=s.neighborhood, state=s.state)
        for s in suggestions
    ]

@router.get("/listings/{mls_id}")
async def get_listing(
    mls_id: str,
    boardId: int | None = Query(default=None),
    client: ListingsAggregationClient = Depends(listings_dep),
):
    return await client.get_listing(mls_id, board_id=boardId)

@router.get("/listings/{mls_id}/similar", response_model=SimilarListingsResponse)
async def similar_listings(
    mls_id: str,
    radius: float | None = Query(default=None, gt=0),
    sortBy: str | None = Query(default=None),
    fields: str | None = Query(default=None),
    boardId: int | None = Query(default=None),
    client: ListingsAggregationClient = Depends(listings_dep),
):
    rows = await client.get_similar_listings(mls_id, radius=radius, sort_by=sortBy,
                                             fields=fields, board_id=boardId)
    return SimilarListingsResponse(count=len(rows), listings=rows)
