from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Path

from ..dependencies import get_actor, get_services
from ..identity import Actor
from ..services import Services

router = APIRouter(tags=["Notifications"])


@router.get("/notifications", summary="Caller's notifications, newest first")
def list_notifications(
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return [n.to_record() for n in services.notifications.feed(actor)]


@router.put("/notifications/{notification_id}/read", summary="Mark a notification as read")
def mark_notification_read(
    notification_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    services.notifications.mark_read(actor, notification_id)
    return {"success": True}
