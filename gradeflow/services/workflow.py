"""
Submission -> grade -> verification workflow.

    [none] --submit--> SUBMITTED --grade--> GRADED(unverified) <--verify--> GRADED(verified)

Writes are not atomic across keys. Each step persists its records in order of
importance (grade, then submission status, then notification) so an aborted
request leaves the more foundational fact durable. Re-running a step is safe:
grading overwrites the single grade record of a submission and verification
only sets flags.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Union

from ..blob_store import BlobStore, FileUpload, submission_object_key
from ..errors import InvalidInput, NotFound
from ..identity import Actor
from ..models import (
    Grade,
    GradeCreate,
    NotificationType,
    Submission,
    SubmissionStatus,
    utcnow,
)
from ..policy import Operation, authorize, authorize_student_records
from ..repositories import Repositories
from .notifications import NotificationService

logger = logging.getLogger(__name__)

Number = Union[int, float]


def compute_percentage(score: Number, total_marks: Number) -> int:
    """``round(100 * score / total_marks)`` with halves rounded up."""
    if total_marks <= 0:
        raise InvalidInput("totalMarks must be positive")
    ratio = Decimal(str(score)) * 100 / Decimal(str(total_marks))
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class GradingWorkflow:
    def __init__(
        self,
        repos: Repositories,
        blob_store: BlobStore,
        notifications: NotificationService,
        submissions_bucket: str,
        signed_url_ttl: int,
    ) -> None:
        self._repos = repos
        self._blobs = blob_store
        self._notifications = notifications
        self._bucket = submissions_bucket
        self._ttl = signed_url_ttl

    def submit(
        self, actor: Actor, assessment_id: Optional[str], upload: Optional[FileUpload]
    ) -> Submission:
        authorize(actor, Operation.CREATE_SUBMISSION)
        if not assessment_id or upload is None or not upload.filename:
            raise InvalidInput("Missing required fields")
        if self._repos.assessments.get(assessment_id) is None:
            raise NotFound("Assessment not found")

        path = self._blobs.put_object(
            self._bucket,
            submission_object_key(actor.user_id, upload.filename),
            upload.content,
            upload.content_type,
        )
        submission = Submission(
            id=self._repos.submissions.new_id(),
            assessment_id=assessment_id,
            student_id=actor.user_id,
            student_name=actor.name or actor.email,
            file_name=upload.filename,
            file_size=upload.size,
            file_type=upload.content_type,
            file_path=path,
            status=SubmissionStatus.SUBMITTED,
        )
        self._repos.submissions.save(submission)
        logger.info(
            f"Submission {submission.id} for {assessment_id} received from {actor.user_id}"
        )
        self._notifications.notify_user(
            actor.user_id, NotificationType.SUBMISSION_CONFIRMED, target_id=submission.id
        )
        return submission

    def grade(self, actor: Actor, payload: GradeCreate) -> Grade:
        authorize(actor, Operation.POST_GRADE)
        submission = self._repos.submissions.get(payload.submission_id)
        if submission is None:
            raise NotFound("Submission not found")

        total_marks = payload.total_marks
        if total_marks is None:
            assessment = self._repos.assessments.get(submission.assessment_id)
            if assessment is None:
                raise InvalidInput("totalMarks is required")
            total_marks = assessment.total_marks
        if payload.grade > total_marks:
            raise InvalidInput("grade cannot exceed totalMarks")

        grade = Grade(
            id=self._repos.grades.id_for_submission(submission.id),
            submission_id=submission.id,
            assessment_id=submission.assessment_id,
            student_id=submission.student_id,
            grade=payload.grade,
            total_marks=total_marks,
            percentage=compute_percentage(payload.grade, total_marks),
            feedback=payload.feedback,
            graded_by=actor.user_id,
            graded_by_name=actor.name,
            verified=False,
        )
        self._repos.grades.save(grade)

        if submission.status != SubmissionStatus.GRADED:
            self._repos.submissions.save(
                submission.model_copy(update={"status": SubmissionStatus.GRADED})
            )
        logger.info(
            f"Submission {submission.id} graded {payload.grade}/{total_marks} by {actor.user_id}"
        )

        self._notifications.notify_user(
            submission.student_id, NotificationType.GRADE_POSTED, target_id=grade.id
        )
        return grade

    def verify(self, actor: Actor, grade_id: str, verified: bool) -> Grade:
        authorize(actor, Operation.VERIFY_GRADE)
        grade = self._repos.grades.get(grade_id)
        if grade is None:
            raise NotFound("Grade not found")

        updated = grade.model_copy(
            update={
                "verified": verified,
                "verified_at": utcnow(),
                "verified_by": actor.user_id,
                "verified_by_name": actor.name,
            }
        )
        self._repos.grades.save(updated)
        logger.info(
            f"Grade {grade_id} verified={verified} (was {grade.verified}) by {actor.user_id}"
        )

        # Revocation is silent: only a release notifies the student.
        if verified:
            self._notifications.notify_user(
                grade.student_id, NotificationType.GRADE_RELEASED, target_id=grade.id
            )
        return updated

    def submission_download(self, actor: Actor, submission_id: str) -> Dict[str, str]:
        submission = self._repos.submissions.get(submission_id)
        if submission is None:
            raise NotFound("Submission not found")
        authorize_student_records(actor, submission.student_id)
        url = self._blobs.sign_download_url(self._bucket, submission.file_path, self._ttl)
        return {"url": url, "fileName": submission.file_name}
