from fastapi import APIRouter, Depends, Response
from shortlink_app.config import settings
from shortlink_app.qr_utils import generate_qr_png
from shortlink_app.services.link_service import LinkService
from shortlink_app.dependencies import get_link_service

router = APIRouter(tags=["qr"])


@router.get("/qr/{slug}", response_class=Response)
async def get_qr_code(
    slug: str,
    link_service: LinkService = Depends(get_link_service)
):
    """PNG QR code that encodes the short URL of a link"""
    link = await link_service.get_link(slug)
    png = generate_qr_png(f"{settings.base_url}/{link.slug}")
    return Response(
        content=png,
        media_type="image/png",
        headers={
            "Cache-Control": "public, max-age=86400",
            "Content-Disposition": f'inline; filename="qr-{link.slug}.png"',
        },
    )
