from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from ..dependencies import get_identity, get_services, read_json
from ..identity import Identity
from ..models import ProfileCreate
from ..services import Services

router = APIRouter(tags=["Users"])


@router.post("/users", status_code=status.HTTP_201_CREATED, summary="Register the caller's profile")
async def register_profile(
    request: Request,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    payload = await read_json(request, ProfileCreate)
    user = await run_in_threadpool(services.users.register, identity, payload)
    return user.to_record()


@router.get("/auth/profile", summary="Get the caller's profile")
def get_profile(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return services.users.profile(identity)
