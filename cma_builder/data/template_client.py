import logging
from typing import Any, Optional
from .base import DatasetField, TemplateClient, TemplateDataset, TemplateSearchResult, TemplateSummary
from .design_api import DesignApi, design_api
from ..errors import InvalidRequestError, UnauthenticatedError

logger = logging.getLogger(__name__)

FIELD_TYPES = ("text", "image", "chart")

def _is_field_map(candidate: Any) -> bool:
    """A dataset field map looks like {"name": {"type": "text"}, ...}."""
    if not isinstance(candidate, dict) or not candidate:
        return False
    return all(isinstance(v, dict) and v.get("type") in FIELD_TYPES for v in candidate.values())

def normalize_dataset(raw: dict) -> TemplateDataset:
    """
    The provider has returned the dataset as {"dataset": {...}},
    {"dataset": {"fields": {...}}}, {"fields": {...}} or a bare field map.
    Anything else becomes an empty dataset rather than an error.
    """
    fields = None
    dataset = raw.get("dataset")
    if isinstance(dataset, dict):
        fields = dataset.get("fields") if isinstance(dataset.get("fields"), dict) else dataset
    elif isinstance(raw.get("fields"), dict):
        fields = raw["fields"]
    elif _is_field_map(raw):
        fields = raw

    if not _is_field_map(fields):
        if raw:
            logger.warning("Unexpected template dataset structure; keys=%s", list(raw)[:10])
        return TemplateDataset(fields={})
    return TemplateDataset(fields={
        name: DatasetField(type=field["type"], required=bool(field.get("required", False)))
        for name, field in fields.items()
    })

class TemplateCatalogClient(TemplateClient):
    """
    Brand-template search with opaque continuation paging.
    An expired token surfaces as UnauthenticatedError; the caller restarts the
    authorization flow since a refresh token is not guaranteed.
    """
    def __init__(self, api: DesignApi):
        self.api = api

    async def search_templates(self, access_token: Optional[str], query: Optional[str] = None,
                               dataset: Optional[str] = None,
                               continuation: Optional[str] = None) -> TemplateSearchResult:
        payload = await self.api.request(
            "GET", "/brand-templates", access_token,
            params={"query": query, "dataset": dataset, "continuation": continuation},
        )
        items = []
        for t in payload.get("items") or []:
            if not isinstance(t, dict) or not t.get("id"):
                continue
            thumb = t.get("thumbnail")
            thumb = thumb if isinstance(thumb, dict) else {}
            items.append(TemplateSummary(
                id=t["id"],
                title=t.get("title") or "",
                thumbnail_url=thumb.get("url"),
                create_url=t.get("create_url") or t.get("createUrl"),
            ))
        # forwarded as-is; an empty string is treated like absence
        next_page = payload.get("continuation") or None
        logger.info("Template search returned %d item(s), more=%s", len(items), next_page is not None)
        return TemplateSearchResult(items=items, continuation=next_page)

    async def get_template_dataset(self, access_token: Optional[str], template_id: str) -> TemplateDataset:
        if not access_token:
            raise UnauthenticatedError("Not connected to Canva")
        if not template_id:
            raise InvalidRequestError("templateId is required")
        raw = await self.api.request("GET", f"/brand-templates/{template_id}/dataset", access_token)
        return normalize_dataset(raw)

def template_client() -> TemplateCatalogClient:
    return TemplateCatalogClient(design_api())
