import logging
from dataclasses import asdict
import re
from typing import Any, Dict, List, Optional
import httpx
from .base import (
    Listing,
    ListingsClient,
    ListingsQuery,
    ListingsSearchResult,
    LocationSuggestion,
    MetricAggregate,
    SqftRange,
)
from ..core.config import settings
from ..core.metrics import record_upstream
from ..errors import InvalidRequestError, NotFoundError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

PROVIDER = "repliers"
MIN_AUTOCOMPLETE_CHARS = 2

_NUMBER = re.compile(r"\d+(?:\.\d+)?")

def parse_sqft_range(text: Optional[str]) -> SqftRange:
    """
    Interpret the provider's free-text sqft bucket.

    "1500-1999" -> 1500/1999/1749.5, "800" -> 800/800/800, no number -> zeros.
    The average of a range is the plain midpoint of its bounds.
    """
    if not text:
        return SqftRange(min=0, max=0, avg=0)
    numbers = [float(n) for n in _NUMBER.findall(str(text).replace(",", ""))]
    if not numbers:
        return SqftRange(min=0, max=0, avg=0)
    if len(numbers) == 1:
        return SqftRange(min=numbers[0], max=numbers[0], avg=numbers[0])
    low, high = sorted(numbers[:2])
    return SqftRange(min=low, max=high, avg=(low + high) / 2)

def format_address(address: Optional[Dict[str, Any]]) -> str:
    """One-line address: "5-12 Main St N, Springfield, ON K1A 0B1"."""
    if not address:
        return ""
    unit = f"{address['unitNumber']}-" if address.get("unitNumber") else ""
    street = " ".join(
        str(p) for p in (
            address.get("streetNumber"), address.get("streetName"),
            address.get("streetSuffix"), address.get("streetDirection"),
        ) if p
    )
    locality = " ".join(str(p) for p in (address.get("state"), address.get("zip")) if p)
    head = f"{unit}{street}".strip()
    return ", ".join(p for p in (head, address.get("city"), locality) if p)

def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

def _parse_statistics(raw: Any) -> Dict[str, MetricAggregate]:
    out: Dict[str, MetricAggregate] = {}
    if not isinstance(raw, dict):
        return out
    for metric, values in raw.items():
        if not isinstance(values, dict):
            continue
        out[metric] = MetricAggregate(
            min=_to_number(values.get("min")),
            max=_to_number(values.get("max")),
            avg=_to_number(values.get("avg")),
            median=_to_number(values.get("med", values.get("median"))),
        )
    return out

def _expect_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise UpstreamUnavailableError("Listings API returned an unexpected response shape")
    return data

def _join(values) -> Optional[str]:
    values = [str(v) for v in values if v]
    return ",".join(values) if values else None

class ListingsAggregationClient(ListingsClient):
    """
    Normalized access to the listings search API.
    Every method issues at most one outbound call; nothing is cached or
    retried here, so a failure reaches the caller as UpstreamUnavailableError
    and the route decides whether to degrade.
    """
    def __init__(self, base_url: str, api_key: str, image_cdn: str = "",
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.image_cdn = image_cdn
        self.timeout = timeout
        self._transport = transport

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        clean = {}
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            clean[key] = value
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self._transport) as client:
                r = await client.get(path, params=clean, headers={"REPLIERS-API-KEY": self.api_key})
        except httpx.HTTPError as exc:
            record_upstream(PROVIDER, None)
            logger.warning("Listings GET %s failed: %s", path, exc.__class__.__name__)
            raise UpstreamUnavailableError("Listings API is unreachable") from exc

        record_upstream(PROVIDER, r.status_code)
        if r.status_code == 404:
            raise NotFoundError(f"Listing resource not found: {path}")
        if r.status_code in (401, 403):
            logger.error("Listings API rejected our credentials (%s)", r.status_code)
            raise UpstreamUnavailableError("Listings API credentials were rejected")
        if r.status_code == 429 or r.status_code >= 500:
            logger.warning("Listings GET %s returned %s", path, r.status_code)
            raise UpstreamUnavailableError(f"Listings API error {r.status_code}")
        if r.status_code >= 400:
            raise InvalidRequestError(f"Listings API rejected the query ({r.status_code})",
                                      details={"body": r.text[:500]})
        try:
            return r.json()
        except ValueError as exc:
            raise UpstreamUnavailableError("Listings API returned a non-JSON response") from exc

    def _resolve_images(self, listing: Listing) -> Listing:
        images = listing.get("images")
        if not isinstance(images, list):
            return listing
        resolved = [img if str(img).startswith("http") else f"{self.image_cdn}{img}" for img in images]
        return {**listing, "images": resolved}

    @staticmethod
    def query_params(query: ListingsQuery) -> dict:
        """Map a ListingsQuery onto the provider's query-string filters."""
        params: dict[str, Any] = {
            "city": _join(query.cities),
            "area": _join(query.areas),
            "propertyType": _join(query.property_types),
            "status": _join(query.statuses),
            "lastStatus": _join(query.last_statuses),
            "class": query.listing_class,
            "statistics": _join(sorted(query.statistics)),
            "resultsPerPage": query.results_per_page,
            "pageNum": query.page,
            "sortBy": query.sort_by,
            "hasImages": query.has_images,
            "minPrice": query.min_price,
        }
        if query.date_range is not None:
            start, end = query.date_range
            params["minSoldDate"] = start
            params["maxSoldDate"] = end
        if not query.include_listings:
            params["listings"] = False
        return params

    async def search_listings(self, query: ListingsQuery) -> ListingsSearchResult:
        data = _expect_object(await self._get("/listings", self.query_params(query)))
        listings = None
        if query.include_listings:
            listings = [self._resolve_images(item) for item in data.get("listings") or [] if isinstance(item, dict)]
        return ListingsSearchResult(
            count=int(data.get("count") or 0),
            statistics=_parse_statistics(data.get("statistics")),
            listings=listings,
            page=data.get("page"),
            num_pages=data.get("numPages"),
        )

    async def get_listing(self, mls_id: str, board_id: Optional[int] = None) -> Listing:
        if not mls_id:
            raise InvalidRequestError("mlsNumber is required")
        data = await self._get(f"/listings/{mls_id}", {"boardId": board_id})
        return self._resolve_images(_expect_object(data))

    async def get_similar_listings(self, mls_id: str, radius: Optional[float] = None,
                                   sort_by: Optional[str] = None, fields: Optional[str] = None,
                                   board_id: Optional[int] = None) -> List[Listing]:
        if not mls_id:
            raise InvalidRequestError("mlsNumber is required")
        data = await self._get(
            f"/listings/{mls_id}/similar",
            {"radius": radius, "sortBy": sort_by, "fields": fields, "boardId": board_id},
        )
        rows = data if isinstance(data, list) else (_expect_object(data).get("listings") or [])
        return [self._resolve_images(item) for item in rows if isinstance(item, dict)]

    async def autocomplete_locations(self, prefix: str) -> List[LocationSuggestion]:
        search = (prefix or "").strip()
        if len(search) < MIN_AUTOCOMPLETE_CHARS:
            return []
        data = await self._get("/locations/autocomplete", {"search": search})
        rows = data if isinstance(data, list) else (_expect_object(data).get("locations") or [])
        return [
            LocationSuggestion(
                name=row.get("name") or "",
                type=row.get("type") or "",
                area=row.get("area"),
                city=row.get("city"),
                neighborhood=row.get("neighborhood"),
                state=row.get("state"),
            )
            for row in rows if isinstance(row, dict) and row.get("name")
        ]

    async def featured_listings(self, limit: int = 6) -> List[dict]:
        """Recently updated active residential listings with photos, as cards."""
        result = await self.search_listings(ListingsQuery(
            statuses=("A",),
            listing_class="residential",
            results_per_page=limit,
            sort_by="updatedOnDesc",
            has_images=True,
            min_price=300_000,
        ))
        cards = []
        for listing in (result.listings or [])[:limit]:
            address = listing.get("address") or {}
            details = listing.get("details") or {}
            street = " ".join(
                str(p) for p in (address.get("streetNumber"), address.get("streetName"),
                                 address.get("streetSuffix")) if p
            )
            sqft = details.get("sqft") or ""
            cards.append({
                "mlsNumber": listing.get("mlsNumber") or "",
                "streetAddress": street or "Unknown Address",
                "address": format_address(address),
                "city": address.get("city") or "",
                "state": address.get("state") or "",
                "listPrice": listing.get("listPrice"),
                "bedrooms": details.get("numBedrooms") or 0,
                "bathrooms": details.get("numBathrooms") or 0,
                "sqft": sqft,
                "sqftRange": asdict(parse_sqft_range(sqft)),
                "propertyType": details.get("propertyType") or "Residential",
                "image": (listing.get("images") or [None])[0],
            })
        return cards

def listings_client() -> ListingsAggregationClient:
    return ListingsAggregationClient(
        settings.LISTINGS_API_BASE,
        settings.LISTINGS_API_KEY,
        image_cdn=settings.LISTINGS_IMAGE_CDN,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
