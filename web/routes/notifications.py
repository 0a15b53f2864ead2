from fastapi import APIRouter, Request

from web.deps import get_notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/config")
async def notification_config(request: Request) -> dict:
    """Which providers are configured and the base URLs links are built from."""
    return get_notification_service(request).config_summary()
