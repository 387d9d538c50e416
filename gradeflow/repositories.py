"""
Typed accessors over the record store, one per entity type.

Entity ids are their store keys (``course:...``, ``grade:submission:...``),
except users whose key is ``user:{provider id}``.
"""
from __future__ import annotations

from typing import Callable, Generic, List, Optional, Type, TypeVar

from .models import (
    Assessment,
    CamelModel,
    Course,
    Grade,
    Material,
    Notification,
    Submission,
    User,
)
from .store import RecordStore, new_record_id

T = TypeVar("T", bound=CamelModel)


class Repository(Generic[T]):
    prefix: str = ""
    model: Type[T]

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def key_for(self, entity_id: str) -> Optional[str]:
        # ids must carry this repository's prefix; anything else cannot be ours
        return entity_id if entity_id.startswith(f"{self.prefix}:") else None

    def new_id(self) -> str:
        return new_record_id(self.prefix)

    def get(self, entity_id: str) -> Optional[T]:
        key = self.key_for(entity_id)
        if key is None:
            return None
        record = self._store.get(key)
        return self.model.model_validate(record) if record is not None else None

    def save(self, entity: T) -> T:
        self._store.put(self.key_for(entity.id), entity.to_record())
        return entity

    def list(self, predicate: Optional[Callable[[T], bool]] = None) -> List[T]:
        items = [self.model.model_validate(r) for r in self._store.scan_prefix(f"{self.prefix}:")]
        if predicate is not None:
            items = [item for item in items if predicate(item)]
        return items


class UserRepository(Repository[User]):
    prefix = "user"
    model = User

    def key_for(self, entity_id: str) -> Optional[str]:
        return f"{self.prefix}:{entity_id}" if entity_id else None


class CourseRepository(Repository[Course]):
    prefix = "course"
    model = Course


class MaterialRepository(Repository[Material]):
    prefix = "material"
    model = Material

    def for_course(self, course_id: Optional[str]) -> List[Material]:
        if not course_id:
            return self.list()
        return self.list(lambda m: m.course_id == course_id)


class AssessmentRepository(Repository[Assessment]):
    prefix = "assessment"
    model = Assessment

    def for_course(self, course_id: Optional[str]) -> List[Assessment]:
        if not course_id:
            return self.list()
        return self.list(lambda a: a.course_id == course_id)


class SubmissionRepository(Repository[Submission]):
    prefix = "submission"
    model = Submission

    def search(
        self, assessment_id: Optional[str] = None, student_id: Optional[str] = None
    ) -> List[Submission]:
        return self.list(
            lambda s: (not assessment_id or s.assessment_id == assessment_id)
            and (not student_id or s.student_id == student_id)
        )


class GradeRepository(Repository[Grade]):
    """At most one grade per submission: the key is derived from the submission id."""

    prefix = "grade"
    model = Grade

    @staticmethod
    def id_for_submission(submission_id: str) -> str:
        return f"grade:{submission_id}"

    def for_submission(self, submission_id: str) -> Optional[Grade]:
        return self.get(self.id_for_submission(submission_id))

    def search(
        self, assessment_id: Optional[str] = None, student_id: Optional[str] = None
    ) -> List[Grade]:
        return self.list(
            lambda g: (not assessment_id or g.assessment_id == assessment_id)
            and (not student_id or g.student_id == student_id)
        )


class NotificationRepository(Repository[Notification]):
    """
    User-scoped notifications live under ``notification:student:{userId}:``;
    everything else under ``notification:`` without a ``userId`` is a broadcast.
    """

    prefix = "notification"
    model = Notification

    def new_id_for_user(self, user_id: str) -> str:
        return new_record_id(f"{self.prefix}:student:{user_id}")

    def for_user(self, user_id: str) -> List[Notification]:
        scoped = [
            self.model.model_validate(r)
            for r in self._store.scan_prefix(f"{self.prefix}:student:{user_id}:")
        ]
        broadcast = self.list(lambda n: n.is_global)
        return sorted(scoped + broadcast, key=lambda n: n.timestamp, reverse=True)


class Repositories:
    """All entity repositories over one record store."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.users = UserRepository(store)
        self.courses = CourseRepository(store)
        self.materials = MaterialRepository(store)
        self.assessments = AssessmentRepository(store)
        self.submissions = SubmissionRepository(store)
        self.grades = GradeRepository(store)
        self.notifications = NotificationRepository(store)
