from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import get_actor, get_services, read_json
from ..errors import NotFound
from ..identity import Actor
from ..models import GradeCreate, VerifyRequest
from ..policy import Operation, authorize, authorize_student_records, scope_student_filter
from ..services import Services

router = APIRouter(tags=["Grades"])


@router.post("/grades", summary="Grade a submission (instructor/admin)")
async def post_grade(
    request: Request,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    authorize(actor, Operation.POST_GRADE)
    payload = await read_json(request, GradeCreate)
    grade = await run_in_threadpool(services.workflow.grade, actor, payload)
    return grade.to_record()


@router.put("/grades/{grade_id}/verify", summary="Verify or revoke a grade (admin)")
async def verify_grade(
    request: Request,
    grade_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    authorize(actor, Operation.VERIFY_GRADE)
    payload = await read_json(request, VerifyRequest)
    grade = await run_in_threadpool(services.workflow.verify, actor, grade_id, payload.verified)
    return grade.to_record()


@router.get("/grades", summary="List grades")
def list_grades(
    student_id: Optional[str] = Query(None, alias="studentId"),
    assessment_id: Optional[str] = Query(None, alias="assessmentId"),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    student_id = scope_student_filter(actor, student_id)
    grades = services.repos.grades.search(assessment_id=assessment_id, student_id=student_id)
    grades.sort(key=lambda g: g.graded_at, reverse=True)
    return [g.to_record() for g in grades]


@router.get("/grades/submission/{submission_id}", summary="Get the grade of one submission")
def grade_for_submission(
    submission_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    grade = services.repos.grades.for_submission(submission_id)
    if grade is None:
        raise NotFound("Grade not found")
    authorize_student_records(actor, grade.student_id)
    return grade.to_record()
