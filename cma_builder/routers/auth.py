import logging
from typing import Callable
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from ..auth.flow import AuthFlow
from ..auth.token_store import token_store
from ..core.config import settings
from ..core.utils import append_query
from ..data.design_api import DesignApi, design_api
from ..errors import CmaError
from ..schemas import ConnectionStatusResponse, ConnectionUser, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_PARAM = "canva_error"

def flow_factory_dep() -> Callable[[], AuthFlow]:
    # Built lazily so a missing client id becomes a redirect, not a 500
    return AuthFlow.from_settings

def design_api_dep() -> DesignApi:
    return design_api()

def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.APP_BASE_URL.rstrip('/')}{path}", status_code=302)

def _error_redirect(code: str) -> RedirectResponse:
    return _redirect(append_query(settings.DEFAULT_RETURN_PATH, ERROR_PARAM, code))

@router.get("/auth/start")
def start_authorization(
    returnTo: str | None = Query(default=None),
    make_flow: Callable[[], AuthFlow] = Depends(flow_factory_dep),
):
    try:
        session = make_flow().begin_authorization(returnTo)
    except CmaError as exc:
        logger.error("Canva auth init failed: %s", exc.message)
        return _error_redirect("auth_init_failed")
    return RedirectResponse(url=session.authorization_url, status_code=302)

@router.get("/auth/callback")
async def authorization_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    make_flow: Callable[[], AuthFlow] = Depends(flow_factory_dep),
):
    if error:
        logger.warning("Canva OAuth error: %s", error)
        return _error_redirect(error)
    if not code:
        return _error_redirect("no_code")
    if not state:
        logger.warning("Canva callback: missing state parameter")
        return _error_redirect("missing_state")

    try:
        tokens, return_to = await make_flow().complete_authorization(code, state)
    except CmaError as exc:
        logger.warning("Canva callback failed: %s (%s)", exc.error_code, exc.message)
        if exc.error_code == "upstream_unavailable":
            return _error_redirect("exchange_failed")
        return _error_redirect(exc.error_code)
    except Exception:
        logger.exception("Unexpected Canva callback failure")
        return _error_redirect("exchange_failed")

    response = _redirect(append_query(return_to, "canva_connected", "true"))
    token_store.save(response, tokens)
    return response

@router.get("/auth/status", response_model=ConnectionStatusResponse)
async def connection_status(request: Request, api: DesignApi = Depends(design_api_dep)):
    status = await api.connection_status(token_store.access_token(request))
    return ConnectionStatusResponse(
        connected=status.connected,
        user=ConnectionUser(displayName=status.display_name) if status.display_name else None,
        reason=status.reason,
    )

@router.post("/auth/logout", response_model=SuccessResponse)
def disconnect():
    response = JSONResponse({"success": True})
    token_store.clear(response)
    return response
