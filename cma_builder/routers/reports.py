from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ..core.security import require_api_key
from ..data.report_store import SqlReportStore
from ..database import get_db
from ..schemas import PublishResponse, SuccessResponse
from ..services.publisher import ReportPublisher

router = APIRouter(dependencies=[Depends(require_api_key)])

def publisher_dep(db: AsyncSession = Depends(get_db)) -> ReportPublisher:
    return ReportPublisher(SqlReportStore(db))

@router.post("/reports/{report_id}/publish", response_model=PublishResponse)
async def publish_report(report_id: int, publisher: ReportPublisher = Depends(publisher_dep)):
    result = await publisher.publish(report_id)
    return PublishResponse(
        token=result.token,
        siteUrl=result.site_url,
        publishedAt=result.published_at.isoformat(),
    )

@router.delete("/reports/{report_id}/publish", response_model=SuccessResponse)
async def unpublish_report(report_id: int, publisher: ReportPublisher = Depends(publisher_dep)):
    await publisher.unpublish(report_id)
    return SuccessResponse()
