from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import get_actor, get_services, read_json
from ..identity import Actor
from ..models import AssessmentCreate
from ..policy import Operation, authorize
from ..services import Services

router = APIRouter(tags=["Assessments"])


@router.post("/assessments", summary="Create an assessment (instructor/admin)")
async def create_assessment(
    request: Request,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    authorize(actor, Operation.CREATE_ASSESSMENT)
    payload = await read_json(request, AssessmentCreate)
    assessment = await run_in_threadpool(services.catalog.create_assessment, actor, payload)
    return assessment.to_record()


@router.get("/assessments", summary="List assessments")
def list_assessments(
    course_id: Optional[str] = Query(None, alias="courseId"),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return [a.to_record() for a in services.catalog.list_assessments(course_id)]
