from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Path

from ..dependencies import get_actor, get_services
from ..identity import Actor
from ..services import Services

router = APIRouter(tags=["Reports"])


@router.get("/reports/student/{student_id}", summary="Performance report for one student")
def student_report(
    student_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return services.reports.student_report(actor, student_id).to_record()


@router.get("/reports/course/{course_id}", summary="Statistics for one course (instructor/admin)")
def course_report(
    course_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return services.reports.course_report(actor, course_id).to_record()
