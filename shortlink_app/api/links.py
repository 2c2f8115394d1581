from typing import List

from fastapi import APIRouter, Depends, status
from shortlink_app.schemas.link import ShortenRequest, ShortenResponse, LinkSummary, DeleteResponse
from shortlink_app.services.link_service import LinkService
from shortlink_app.dependencies import get_link_service

router = APIRouter(tags=["links"])


@router.post("/shorten", response_model=ShortenResponse, status_code=status.HTTP_201_CREATED)
async def shorten_url(
    payload: ShortenRequest,
    link_service: LinkService = Depends(get_link_service)
):
    """Create a short link, optionally with a custom slug"""
    return await link_service.create_short_link(payload.original_url, payload.custom_slug)


@router.get("/urls", response_model=List[LinkSummary])
async def list_urls(link_service: LinkService = Depends(get_link_service)):
    """All non-deleted links, newest first"""
    return await link_service.list_links()


@router.delete("/delete/{slug}", response_model=DeleteResponse)
async def delete_url(
    slug: str,
    link_service: LinkService = Depends(get_link_service)
):
    """Soft delete a link (its clicks are kept)"""
    await link_service.delete_link(slug)
    return DeleteResponse(message="URL deleted successfully")
