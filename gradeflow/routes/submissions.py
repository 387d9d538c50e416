from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import form_text, form_upload, get_actor, get_services
from ..identity import Actor
from ..policy import scope_student_filter
from ..services import Services

router = APIRouter(tags=["Submissions"])


@router.post("/submissions", summary="Submit a file for an assessment")
async def create_submission(
    request: Request,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    form = await request.form()
    upload = await form_upload(form)
    submission = await run_in_threadpool(
        services.workflow.submit,
        actor,
        assessment_id=form_text(form, "assessmentId"),
        upload=upload,
    )
    return submission.to_record()


@router.get("/submissions", summary="List submissions")
def list_submissions(
    assessment_id: Optional[str] = Query(None, alias="assessmentId"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    student_id = scope_student_filter(actor, student_id)
    submissions = services.repos.submissions.search(
        assessment_id=assessment_id, student_id=student_id
    )
    submissions.sort(key=lambda s: s.submitted_at, reverse=True)
    return [s.to_record() for s in submissions]


@router.get("/submissions/{submission_id}/download", summary="Get a signed download URL")
def download_submission(
    submission_id: str = Path(...),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    return services.workflow.submission_download(actor, submission_id)
