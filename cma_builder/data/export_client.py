import logging
from typing import Any, List, Optional
from .base import ExportClient, ExportFormat, ExportJob, JobStatus
from .design_api import DesignApi, design_api
from ..errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

QUALITIES = ("standard", "high")

def _parse_job(payload: dict, design_id: Optional[str], fmt: Optional[ExportFormat]) -> ExportJob:
    job = payload.get("job")
    job_id = job.get("id") if isinstance(job, dict) else None
    if not job_id:
        raise UpstreamUnavailableError("Canva export response did not include a job id")

    raw_status = (job.get("status") or "").lower()
    urls = [u for u in (job.get("urls") or []) if u]
    if raw_status == JobStatus.FAILED.value:
        detail = job.get("error")
        # the error is usually {"code", "message"} but can be a bare code string
        err = (detail.get("message") if isinstance(detail, dict) else detail) or "Unknown export error"
        err = str(err)
        return ExportJob(job_id=job_id, status=JobStatus.FAILED, result_urls=[],
                         design_id=design_id, format=fmt, error=err)
    if raw_status == JobStatus.SUCCESS.value and urls:
        return ExportJob(job_id=job_id, status=JobStatus.SUCCESS, result_urls=urls,
                         design_id=design_id, format=fmt)
    if raw_status not in (JobStatus.IN_PROGRESS.value, JobStatus.SUCCESS.value):
        logger.warning("Unrecognised export status %r for job %s", raw_status, job_id)
    # success without download URLs yet is still in flight
    return ExportJob(job_id=job_id, status=JobStatus.IN_PROGRESS, design_id=design_id, format=fmt)

class ExportJobClient(ExportClient):
    """
    Submits design exports and observes them one poll at a time.
    Cadence, timeout and giving up are the caller's business; a job that is
    abandoned keeps running on the provider side untouched.
    """
    def __init__(self, api: DesignApi):
        self.api = api

    async def submit_export(self, access_token: Optional[str], design_id: Optional[str], format: Any,
                            quality: Optional[str] = None, pages: Optional[List[int]] = None) -> ExportJob:
        if not access_token:
            raise UnauthenticatedError("Not connected to Canva")
        if not design_id or not str(design_id).strip():
            raise InvalidRequestError("designId and format are required")
        fmt = ExportFormat.parse(format)
        if fmt is None:
            if not format:
                raise InvalidRequestError("designId and format are required")
            raise InvalidRequestError(
                f"Unsupported export format; expected one of {', '.join(f.value for f in ExportFormat)}"
            )
        body_format: dict[str, Any] = {"type": fmt.value}
        if quality is not None:
            if quality not in QUALITIES:
                raise InvalidRequestError("quality must be 'standard' or 'high'")
            body_format["quality"] = quality
        if pages is not None:
            if not pages or any(not isinstance(p, int) or p < 1 for p in pages):
                raise InvalidRequestError("pages must be a list of 1-based page numbers")
            body_format["pages"] = list(pages)

        try:
            payload = await self.api.request(
                "POST", "/exports", access_token,
                json={"design_id": design_id, "format": body_format},
            )
        except NotFoundError as exc:
            raise InvalidRequestError(f"Design {design_id} was not found") from exc

        job = _parse_job(payload, design_id, fmt)
        logger.info("Export job %s submitted for design %s (%s)", job.job_id, design_id, fmt.value)
        return job

    async def poll_export(self, access_token: Optional[str], job_id: str,
                          design_id: Optional[str] = None, format: Any = None) -> ExportJob:
        if not job_id:
            raise InvalidRequestError("jobId is required")
        payload = await self.api.request("GET", f"/exports/{job_id}", access_token)
        job = _parse_job(payload, design_id, ExportFormat.parse(format))
        if job.status is JobStatus.FAILED:
            logger.warning("Export job %s failed: %s", job_id, job.error)
        return job

def export_client() -> ExportJobClient:
    return ExportJobClient(design_api())
