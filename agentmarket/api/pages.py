"""
Guarded page routes.

Every path of the front-end goes through the route guard: redirects become
HTTP redirects, allowed decisions render a view descriptor whose status
reflects the view (403 access denied, 404 not found).
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, RedirectResponse

from agentmarket.api.deps import CurrentSession
from agentmarket.kernel.permissions.route_guard import RenderView, guard
from agentmarket.logging_config import get_logger, identity_id_var
from agentmarket.schemas.common import PageResponse

logger = get_logger(__name__)

router = APIRouter()

_VIEW_STATUS = {
    RenderView.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    RenderView.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


@router.get("/{path:path}", response_model=PageResponse)
async def render_page(path: str, context: CurrentSession):
    """Render (or redirect away from) any front-end path."""
    identity = context.identity
    identity_id_var.set(identity.id if identity else None)

    requested = "/" + path
    decision = guard(requested, context.tier_state)
    resolution = context.resolve()

    if decision.is_redirect:
        logger.info("Redirecting %s -> %s", requested, decision.redirect_to)
        return RedirectResponse(decision.redirect_to, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    if decision.view is RenderView.ACCESS_DENIED:
        logger.warning("Access denied to %s for tier %s", requested, resolution.tier.value)

    page = PageResponse(
        path=requested,
        view=decision.view.value,
        tier=resolution.tier.value,
        landing_route=resolution.landing_route,
        actions=list(decision.actions),
    )
    return JSONResponse(
        status_code=_VIEW_STATUS.get(decision.view, status.HTTP_200_OK),
        content=page.model_dump(),
    )
