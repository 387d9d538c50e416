from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import get_actor, get_services, read_json
from ..identity import Actor
from ..models import CourseCreate
from ..policy import Operation, authorize
from ..services import Services

router = APIRouter(tags=["Courses"])


@router.post("/courses", summary="Create a course (instructor/admin)")
async def create_course(
    request: Request,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    authorize(actor, Operation.CREATE_COURSE)
    payload = await read_json(request, CourseCreate)
    course = await run_in_threadpool(services.catalog.create_course, actor, payload)
    return course.to_record()


@router.get("/courses", summary="List courses")
def list_courses(services: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return [c.to_record() for c in services.catalog.list_courses()]
