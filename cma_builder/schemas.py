from typing import Any
from pydantic import BaseModel

from .data.base import ExportJob, MetricAggregate, TemplateSearchResult

class ExportRequest(BaseModel):
    # Optional here so a missing field is reported as {"error": ...} by the client
    designId: str | None = None
    format: Any = None                  # "pdf" or {"type": "pdf", "quality": ..., "pages": [...]}
    quality: str | None = None
    pages: list[int] | None = None

    def export_options(self) -> tuple[str | None, list[int] | None]:
        """Quality/pages may be given at the top level or inside the format object."""
        quality, pages = self.quality, self.pages
        if isinstance(self.format, dict):
            quality = quality or self.format.get("quality")
            nested_pages = self.format.get("pages")
            pages = pages or (nested_pages if isinstance(nested_pages, list) else None)
        return quality, pages

class ExportJobResponse(BaseModel):
    jobId: str
    status: str
    resultUrls: list[str]
    designId: str | None = None
    format: str | None = None
    error: str | None = None

    @classmethod
    def from_job(cls, job: ExportJob) -> "ExportJobResponse":
        return cls(
            jobId=job.job_id,
            status=job.status.value.upper(),
            resultUrls=job.result_urls,
            designId=job.design_id,
            format=job.format.value if job.format else None,
            error=job.error,
        )

class TemplateItem(BaseModel):
    id: str
    title: str
    thumbnailUrl: str | None = None
    createUrl: str | None = None

class TemplateSearchResponse(BaseModel):
    items: list[TemplateItem]
    continuation: str | None = None

    @classmethod
    def from_result(cls, result: TemplateSearchResult) -> "TemplateSearchResponse":
        return cls(
            items=[TemplateItem(id=t.id, title=t.title, thumbnailUrl=t.thumbnail_url,
                                createUrl=t.create_url) for t in result.items],
            continuation=result.continuation,
        )

class DatasetFieldOut(BaseModel):
    type: str
    required: bool = False

class TemplateDatasetResponse(BaseModel):
    fields: dict[str, DatasetFieldOut]

class ConnectionUser(BaseModel):
    displayName: str

class ConnectionStatusResponse(BaseModel):
    connected: bool
    user: ConnectionUser | None = None
    reason: str | None = None

class Metric(BaseModel):
    min: float | None = None
    max: float | None = None
    avg: float | None = None
    median: float | None = None

def metrics_out(stats: dict[str, MetricAggregate]) -> dict[str, Metric]:
    return {name: Metric(min=m.min, max=m.max, avg=m.avg, median=m.median) for name, m in stats.items()}

class StatsBlock(BaseModel):
    count: int
    statistics: dict[str, Metric]

class DateRange(BaseModel):
    start: str
    end: str

class MarketStatsResponse(BaseModel):
    sold: StatsBlock
    active: StatsBlock
    dateRange: DateRange

class Suggestion(BaseModel):
    name: str
    type: str
    area: str | None = None
    city: str | None = None
    neighborhood: str | None = None
    state: str | None = None

class SimilarListingsResponse(BaseModel):
    count: int
    listings: list[dict[str, Any]]

class FeaturedListingsResponse(BaseModel):
    listings: list[dict[str, Any]]

class PublishResponse(BaseModel):
    success: bool = True
    token: str
    siteUrl: str
    publishedAt: str

class SuccessResponse(BaseModel):
    success: bool = True
