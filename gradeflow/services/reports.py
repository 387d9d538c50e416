from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..identity import Actor
from ..models import CourseReport, Grade, StudentReport
from ..policy import Operation, authorize, authorize_student_records
from ..repositories import Repositories


def average_percentage(grades: Iterable[Grade]) -> int:
    """Rounded mean percentage; zero when there are no grades."""
    percentages = [g.percentage for g in grades]
    if not percentages:
        return 0
    mean = Decimal(sum(percentages)) / len(percentages)
    return int(mean.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ReportService:
    """Statistics computed from current entity state; nothing is cached."""

    def __init__(self, repos: Repositories) -> None:
        self._repos = repos

    def student_report(self, actor: Actor, student_id: str) -> StudentReport:
        authorize_student_records(actor, student_id)
        submissions = self._repos.submissions.search(student_id=student_id)
        grades = self._repos.grades.search(student_id=student_id)
        return StudentReport(
            student_id=student_id,
            total_assessments=len(submissions),
            graded_assessments=len(grades),
            pending_assessments=len(submissions) - len(grades),
            average_grade=average_percentage(grades),
            grades=sorted(grades, key=lambda g: g.graded_at, reverse=True),
            submissions=sorted(submissions, key=lambda s: s.submitted_at, reverse=True),
        )

    def course_report(self, actor: Actor, course_id: str) -> CourseReport:
        authorize(actor, Operation.READ_COURSE_REPORT)
        assessment_ids = {a.id for a in self._repos.assessments.for_course(course_id)}
        submissions = self._repos.submissions.list(lambda s: s.assessment_id in assessment_ids)
        grades = self._repos.grades.list(lambda g: g.assessment_id in assessment_ids)
        return CourseReport(
            course_id=course_id,
            total_assessments=len(assessment_ids),
            total_submissions=len(submissions),
            total_graded=len(grades),
            average_grade=average_percentage(grades),
        )
