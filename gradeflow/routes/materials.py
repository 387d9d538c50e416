from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import form_text, form_upload, get_actor, get_services
from ..identity import Actor
from ..policy import Operation, authorize
from ..services import Services

router = APIRouter(tags=["Materials"])


@router.post("/materials/upload", summary="Upload a learning material (instructor/admin)")
async def upload_material(
    request: Request,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    authorize(actor, Operation.CREATE_MATERIAL)
    form = await request.form()
    upload = await form_upload(form)
    material = await run_in_threadpool(
        services.catalog.upload_material,
        actor,
        title=form_text(form, "title"),
        upload=upload,
        description=form_text(form, "description"),
        course_id=form_text(form, "courseId"),
    )
    return material.to_record()


@router.get("/materials", summary="List materials")
def list_materials(
    course_id: Optional[str] = Query(None, alias="courseId"),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return [m.to_record() for m in services.catalog.list_materials(course_id)]


@router.get("/materials/{material_id}/download", summary="Get a signed download URL")
def download_material(
    material_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    return services.catalog.material_download(material_id)
