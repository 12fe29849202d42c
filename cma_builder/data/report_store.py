from datetime import datetime
from typing import Optional
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .base import ReportRecord, ReportStore
from ..models.report import CmaReport

def _record(row: CmaReport) -> ReportRecord:
    return ReportRecord(
        id=row.id,
        is_published=bool(row.is_published),
        public_token=row.public_token,
        published_at=row.published_at,
        title=row.title,
    )

class SqlReportStore(ReportStore):
    """
    Read/update-by-id over the cma_reports table; no other table is touched.
    A public token is written with COALESCE so an existing token always wins.
    """
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, report_id: int) -> Optional[ReportRecord]:
        row = await self.session.scalar(select(CmaReport).where(CmaReport.id == report_id))
        return _record(row) if row is not None else None

    async def update(self, report_id: int, *, is_published: Optional[bool] = None,
                     public_token: Optional[str] = None,
                     published_at: Optional[datetime] = None) -> Optional[ReportRecord]:
        values = {}
        if is_published is not None:
            values["is_published"] = is_published
        if public_token is not None:
            values["public_token"] = func.coalesce(CmaReport.public_token, public_token)
        if published_at is not None:
            values["published_at"] = published_at

        if values:
            result = await self.session.execute(
                update(CmaReport)
                .where(CmaReport.id == report_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
            if result.rowcount == 0:
                return None
        # Fresh read so the caller sees the token that actually persisted
        self.session.expire_all()
        return await self.get(report_id)
