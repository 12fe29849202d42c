from fastapi import APIRouter, Depends, Query
from ..auth.token_store import require_access_token
from ..data.export_client import ExportJobClient, export_client
from ..data.template_client import TemplateCatalogClient, template_client
from ..schemas import (
    DatasetFieldOut,
    ExportJobResponse,
    ExportRequest,
    TemplateDatasetResponse,
    TemplateSearchResponse,
)

router = APIRouter()

def export_dep() -> ExportJobClient:
    return export_client()

def template_dep() -> TemplateCatalogClient:
    return template_client()

@router.post("/export", response_model=ExportJobResponse, status_code=202)
async def submit_export(
    body: ExportRequest,
    token: str = Depends(require_access_token),
    client: ExportJobClient = Depends(export_dep),
):
    quality, pages = body.export_options()
    job = await client.submit_export(token, body.designId, body.format, quality=quality, pages=pages)
    return ExportJobResponse.from_job(job)

@router.get("/export/{job_id}", response_model=ExportJobResponse)
async def poll_export(
    job_id: str,
    designId: str | None = Query(default=None),
    format: str | None = Query(default=None),
    token: str = Depends(require_access_token),
    client: ExportJobClient = Depends(export_dep),
):
    # One provider round-trip per request; the browser owns the polling cadence
    job = await client.poll_export(token, job_id, design_id=designId, format=format)
    return ExportJobResponse.from_job(job)

@router.get("/templates", response_model=TemplateSearchResponse)
async def search_templates(
    query: str | None = Query(default=None),
    dataset: str | None = Query(default=None),
    continuation: str | None = Query(default=None),
    token: str = Depends(require_access_token),
    client: TemplateCatalogClient = Depends(template_dep),
):
    result = await client.search_templates(token, query=query, dataset=dataset, continuation=continuation)
    return TemplateSearchResponse.from_result(result)

@router.get("/templates/{template_id}/dataset", response_model=TemplateDatasetResponse)
async def template_dataset(
    template_id: str,
    token: str = Depends(require_access_token),
    client: TemplateCatalogClient = Depends(template_dep),
):
    dataset = await client.get_template_dataset(token, template_id)
    return TemplateDatasetResponse(
        fields={name: DatasetFieldOut(type=f.type, required=f.required) for name, f in dataset.fields.items()}
    )
