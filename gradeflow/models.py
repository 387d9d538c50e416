"""
Entity records and request payloads.

Records are stored and served in camelCase (``instructorId``); Python code uses
snake_case attributes. ``to_record`` produces the stored/wire form.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"


class NotificationType(str, Enum):
    SUBMISSION_CONFIRMED = "submission_confirmed"
    GRADE_POSTED = "grade_posted"
    GRADE_RELEASED = "grade_released"
    NEW_ASSESSMENT = "new_assessment"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class User(CamelModel):
    id: str
    email: str
    name: str
    role: Role
    created_at: datetime = Field(default_factory=utcnow)


class Course(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    instructor_id: str
    instructor_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Material(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    course_id: Optional[str] = None
    file_name: str
    file_size: int
    file_type: str
    file_path: str
    uploaded_by: str
    uploaded_by_name: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utcnow)


class Assessment(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    course_id: str
    due_date: Optional[datetime] = None
    total_marks: int = Field(gt=0)
    instructor_id: str
    instructor_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Submission(CamelModel):
    id: str
    assessment_id: str
    student_id: str
    student_name: Optional[str] = None
    file_name: str
    file_size: int
    file_type: str
    file_path: str
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    submitted_at: datetime = Field(default_factory=utcnow)


class Grade(CamelModel):
    id: str
    submission_id: str
    assessment_id: str
    student_id: str
    grade: float
    total_marks: int
    percentage: int
    feedback: Optional[str] = None
    graded_by: str
    graded_by_name: Optional[str] = None
    graded_at: datetime = Field(default_factory=utcnow)
    verified: bool = False
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verified_by_name: Optional[str] = None


class Notification(CamelModel):
    id: str
    user_id: Optional[str] = None
    type: NotificationType
    message: str
    target_id: Optional[str] = None
    read: bool = False
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def is_global(self) -> bool:
        return self.user_id is None


class StudentReport(CamelModel):
    student_id: str
    total_assessments: int
    graded_assessments: int
    pending_assessments: int
    average_grade: int
    grades: List[Grade]
    submissions: List[Submission]


class CourseReport(CamelModel):
    course_id: str
    total_assessments: int
    total_submissions: int
    total_graded: int
    average_grade: int


# Request payloads, validated at the HTTP boundary before reaching services.


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class ProfileCreate(CamelModel):
    name: str
    role: Role

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _required_text(value)


class CourseCreate(CamelModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _required_text(value)


class AssessmentCreate(CamelModel):
    title: str
    description: Optional[str] = None
    course_id: str
    due_date: Optional[datetime] = None
    total_marks: int = Field(gt=0)

    @field_validator("title", "course_id")
    @classmethod
    def check_text(cls, value: str) -> str:
        return _required_text(value)


class GradeCreate(CamelModel):
    submission_id: str
    grade: float = Field(ge=0)
    total_marks: Optional[int] = Field(default=None, gt=0)
    feedback: Optional[str] = None

    @field_validator("submission_id")
    @classmethod
    def check_submission_id(cls, value: str) -> str:
        return _required_text(value)


class VerifyRequest(CamelModel):
    verified: StrictBool
