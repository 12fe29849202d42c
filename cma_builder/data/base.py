from typing import Protocol, List, Optional, Dict, Any, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

# ----- Design provider shapes -----

@dataclass
class TokenPair:
    access_token: str
    expires_at: datetime
    refresh_token: Optional[str] = None
    scope: str = ""

class ExportFormat(str, Enum):
    PDF = "pdf"
    PNG = "png"
    JPG = "jpg"
    PPTX = "pptx"

    @classmethod
    def parse(cls, value: Any) -> Optional["ExportFormat"]:
        """Accepts "PDF", "pdf" or {"type": "pdf"}; None when unsupported."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            value = value.get("type")
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

class JobStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not JobStatus.IN_PROGRESS

@dataclass
class ExportJob:
    job_id: str
    status: JobStatus = JobStatus.IN_PROGRESS
    result_urls: List[str] = field(default_factory=list)
    design_id: Optional[str] = None   # only known to the submitting caller
    format: Optional[ExportFormat] = None
    error: Optional[str] = None    # provider message on FAILED

@dataclass
class TemplateSummary:
    id: str
    title: str
    thumbnail_url: Optional[str] = None
    create_url: Optional[str] = None

@dataclass
class TemplateSearchResult:
    items: List[TemplateSummary]
    # Opaque cursor; None means this was the last page
    continuation: Optional[str] = None

@dataclass
class DatasetField:
    type: str                     # text | image | chart
    required: bool = False

@dataclass
class TemplateDataset:
    fields: Dict[str, DatasetField]

@dataclass
class ConnectionStatus:
    connected: bool
    display_name: Optional[str] = None
    reason: Optional[str] = None  # token_missing | token_expired | api_error

# ----- Listings provider shapes -----

Listing = Dict[str, Any]  # provider listing JSON, passed through untouched apart from image URLs

@dataclass
class ListingsQuery:
    cities: Sequence[str] = ()
    areas: Sequence[str] = ()
    property_types: Sequence[str] = ()
    statuses: Sequence[str] = ()            # A (active) | U (unavailable)
    last_statuses: Sequence[str] = ()       # Sld | Lsd | Exp ...
    date_range: Optional[tuple[str, str]] = None     # inclusive sold-date window, YYYY-MM-DD
    statistics: frozenset[str] = frozenset()          # soldPrice, listPrice, daysOnMarket ...
    include_listings: bool = True
    results_per_page: Optional[int] = None
    page: Optional[int] = None
    sort_by: Optional[str] = None
    has_images: Optional[bool] = None
    min_price: Optional[int] = None
    listing_class: Optional[str] = None      # residential | condo | commercial

@dataclass
class MetricAggregate:
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    median: Optional[float] = None

@dataclass
class ListingsSearchResult:
    count: int
    statistics: Dict[str, MetricAggregate]
    listings: Optional[List[Listing]] = None   # None when the row payload was suppressed
    page: Optional[int] = None
    num_pages: Optional[int] = None

@dataclass
class SqftRange:
    min: float
    max: float
    avg: float

@dataclass
class LocationSuggestion:
    name: str
    type: str
    area: Optional[str] = None
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    state: Optional[str] = None

@dataclass
class MarketStatistics:
    sold_count: int
    active_count: int
    per_metric_aggregates: Dict[str, MetricAggregate]   # sold window
    active_aggregates: Dict[str, MetricAggregate]
    date_range: tuple[date, date]

# ----- Report store shapes -----

@dataclass
class ReportRecord:
    id: int
    is_published: bool
    public_token: Optional[str] = None
    published_at: Optional[datetime] = None
    title: Optional[str] = None

# ----- Protocols (interfaces) -----

class ExportClient(Protocol):
    async def submit_export(
        self, access_token: Optional[str], design_id: Optional[str], format: Any,
        quality: Optional[str] = None, pages: Optional[List[int]] = None,
    ) -> ExportJob: ...
    async def poll_export(
        self, access_token: Optional[str], job_id: str,
        design_id: Optional[str] = None, format: Any = None,
    ) -> ExportJob: ...

class TemplateClient(Protocol):
    async def search_templates(
        self, access_token: Optional[str], query: Optional[str] = None,
        dataset: Optional[str] = None, continuation: Optional[str] = None,
    ) -> TemplateSearchResult: ...
    async def get_template_dataset(self, access_token: Optional[str], template_id: str) -> TemplateDataset: ...

class ListingsClient(Protocol):
    async def search_listings(self, query: ListingsQuery) -> ListingsSearchResult: ...
    async def get_listing(self, mls_id: str, board_id: Optional[int] = None) -> Listing: ...
    async def get_similar_listings(
        self, mls_id: str, radius: Optional[float] = None, sort_by: Optional[str] = None,
        fields: Optional[str] = None, board_id: Optional[int] = None,
    ) -> List[Listing]: ...
    async def autocomplete_locations(self, prefix: str) -> List[LocationSuggestion]: ...

class ReportStore(Protocol):
    async def get(self, report_id: int) -> Optional[ReportRecord]: ...
    async def update(
        self, report_id: int, *, is_published: Optional[bool] = None,
        public_token: Optional[str] = None, published_at: Optional[datetime] = None,
    ) -> Optional[ReportRecord]: ...
