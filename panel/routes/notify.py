"""
Route handlers for webhook notification settings.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from finder.store import NotifyConfig

from ..coordinator import RunCoordinator
from ..deps import get_coordinator
from ..models import MessageResponse, NotifySettings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["notify"])


@router.get("/notify", response_model=NotifySettings)
async def get_notify(coordinator: RunCoordinator = Depends(get_coordinator)):
    return NotifySettings(**coordinator.store.notify_config.to_dict())


@router.post("/notify", response_model=MessageResponse)
async def set_notify(request: Request, coordinator: RunCoordinator = Depends(get_coordinator)):
    """Replace the notification settings; the body is the full settings object."""
    try:
        body = await request.json()
        settings = NotifySettings(**body)
    except (ValueError, TypeError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    coordinator.store.save_notify_config(NotifyConfig.from_dict(settings.model_dump()))
    logger.info(f"Notification settings updated (enabled={settings.enabled})")
    return MessageResponse(success=True, message="Saved")
