"""
Role-based authorization.

``is_allowed`` is a pure function of (role, operation). ``authorize`` raises
``Forbidden`` on denial; callers never filter silently.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .errors import Forbidden
from .identity import Actor
from .models import Role

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE_COURSE = "create_course"
    CREATE_MATERIAL = "create_material"
    CREATE_ASSESSMENT = "create_assessment"
    POST_GRADE = "post_grade"
    VERIFY_GRADE = "verify_grade"
    CREATE_SUBMISSION = "create_submission"
    READ_ANY_STUDENT_RECORDS = "read_any_student_records"
    READ_COURSE_REPORT = "read_course_report"


_ALL_ROLES: FrozenSet[Role] = frozenset(Role)
_STAFF: FrozenSet[Role] = frozenset({Role.INSTRUCTOR, Role.ADMIN})

REQUIRED_ROLES: Dict[Operation, FrozenSet[Role]] = {
    Operation.CREATE_COURSE: _STAFF,
    Operation.CREATE_MATERIAL: _STAFF,
    Operation.CREATE_ASSESSMENT: _STAFF,
    Operation.POST_GRADE: _STAFF,
    Operation.VERIFY_GRADE: frozenset({Role.ADMIN}),
    # Any authenticated user may submit; the role is not checked here.
    Operation.CREATE_SUBMISSION: _ALL_ROLES,
    Operation.READ_ANY_STUDENT_RECORDS: _STAFF,
    Operation.READ_COURSE_REPORT: _STAFF,
}

DENIAL_MESSAGES: Dict[Operation, str] = {
    Operation.VERIFY_GRADE: "Insufficient permissions - Admin only",
}


def is_allowed(role: Role, operation: Operation) -> bool:
    return role in REQUIRED_ROLES[operation]


def authorize(actor: Actor, operation: Operation) -> None:
    if not is_allowed(actor.role, operation):
        logger.warning(
            f"Denied {operation.value} for user {actor.user_id} with role {actor.role.value}"
        )
        raise Forbidden(DENIAL_MESSAGES.get(operation, "Insufficient permissions"))


def can_read_student_records(actor: Actor, student_id: Optional[str]) -> bool:
    """Owners read their own submissions, grades and reports; staff read anyone's."""
    if is_allowed(actor.role, Operation.READ_ANY_STUDENT_RECORDS):
        return True
    return student_id is not None and student_id == actor.user_id


def authorize_student_records(actor: Actor, student_id: Optional[str]) -> None:
    if not can_read_student_records(actor, student_id):
        logger.warning(f"Denied read of student {student_id} records for user {actor.user_id}")
        raise Forbidden("Insufficient permissions")


def scope_student_filter(actor: Actor, student_id: Optional[str]) -> Optional[str]:
    """
    Narrow a listing's ``studentId`` filter to what the actor may see.

    Staff keep whatever filter they asked for; everyone else is pinned to
    their own records and asking for another student's is ``Forbidden``.
    """
    if is_allowed(actor.role, Operation.READ_ANY_STUDENT_RECORDS):
        return student_id
    authorize_student_records(actor, student_id or actor.user_id)
    return actor.user_id
