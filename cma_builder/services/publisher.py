import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..core.config import settings
from ..core.metrics import REPORTS_PUBLISHED
from ..data.base import ReportStore
from ..errors import CmaError, NotFoundError

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits, 64 hex chars

def new_public_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)

@dataclass
class PublishResult:
    token: str
    site_url: str
    published_at: datetime

class ReportPublisher:
    """
    DRAFT <-> PUBLISHED over CmaReport.is_published.

    The public token is issued on the first publish and then reused forever:
    unpublish only flips is_published, so a republished report keeps its URL.
    Tokens are never rotated or revoked here.
    """
    def __init__(self, store: ReportStore, base_url: Optional[str] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
                 token_factory: Callable[[], str] = new_public_token):
        self.store = store
        self.base_url = (base_url or settings.APP_BASE_URL).rstrip("/")
        self.clock = clock
        self.token_factory = token_factory

    def site_url(self, token: str) -> str:
        return f"{self.base_url}/site/{token}"

    async def publish(self, report_id: int) -> PublishResult:
        report = await self.store.get(report_id)
        if report is None:
            raise NotFoundError("Report not found")

        first_publish = not report.public_token
        token = report.public_token or self.token_factory()
        published_at = self.clock()
        updated = await self.store.update(
            report_id, is_published=True, public_token=token, published_at=published_at,
        )
        if updated is None:
            # deleted between the read and the write
            raise NotFoundError("Report not found")
        if not updated.public_token:
            raise CmaError("Report store did not persist the public token")
        if updated.public_token != token:
            logger.info("Report %s already had a token from a concurrent publish", report_id)
            first_publish = False

        REPORTS_PUBLISHED.labels(first_publish=str(first_publish).lower()).inc()
        logger.info("Report %s published (first_publish=%s)", report_id, first_publish)
        return PublishResult(
            token=updated.public_token,
            site_url=self.site_url(updated.public_token),
            published_at=published_at,
        )

    async def unpublish(self, report_id: int) -> None:
        updated = await self.store.update(report_id, is_published=False)
        if updated is None:
            raise NotFoundError("Report not found")
        logger.info("Report %s unpublished; public token retained", report_id)
