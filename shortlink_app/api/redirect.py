from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from shortlink_app.services.redirect_service import RedirectService, extract_click_context
from shortlink_app.dependencies import get_redirect_service

router = APIRouter(tags=["redirect"])


@router.get("/{slug}")
async def redirect_to_original_url(
    slug: str,
    request: Request,
    redirect_service: RedirectService = Depends(get_redirect_service)
):
    """
    Redirect to the original URL and record the click.

    In blocking mode the click is committed before the redirect is sent.
    In background mode it is queued and written by the click worker.
    """
    context = extract_click_context(
        request.headers,
        request.client.host if request.client else None
    )
    destination = await redirect_service.resolve_and_track(slug, context)
    return RedirectResponse(url=destination, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
