from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..blob_store import BlobStore, FileUpload, material_object_key
from ..errors import InvalidInput, NotFound
from ..identity import Actor
from ..models import (
    Assessment,
    AssessmentCreate,
    Course,
    CourseCreate,
    Material,
    NotificationType,
)
from ..policy import Operation, authorize
from ..repositories import Repositories
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class CatalogService:
    """Courses, learning materials and assessments."""

    def __init__(
        self,
        repos: Repositories,
        blob_store: BlobStore,
        notifications: NotificationService,
        materials_bucket: str,
        signed_url_ttl: int,
    ) -> None:
        self._repos = repos
        self._blobs = blob_store
        self._notifications = notifications
        self._bucket = materials_bucket
        self._ttl = signed_url_ttl

    def create_course(self, actor: Actor, payload: CourseCreate) -> Course:
        authorize(actor, Operation.CREATE_COURSE)
        course = Course(
            id=self._repos.courses.new_id(),
            name=payload.name,
            description=payload.description,
            instructor_id=actor.user_id,
            instructor_name=actor.name,
        )
        self._repos.courses.save(course)
        logger.info(f"Course {course.id} created by {actor.user_id}")
        return course

    def list_courses(self) -> List[Course]:
        return self._repos.courses.list()

    def _require_course(self, course_id: str) -> Course:
        course = self._repos.courses.get(course_id)
        if course is None:
            raise NotFound("Course not found")
        return course

    def upload_material(
        self,
        actor: Actor,
        title: Optional[str],
        upload: Optional[FileUpload],
        description: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> Material:
        authorize(actor, Operation.CREATE_MATERIAL)
        title = (title or "").strip()
        if upload is None or not upload.filename or not title:
            raise InvalidInput("Missing required fields")
        if course_id:
            self._require_course(course_id)

        path = self._blobs.put_object(
            self._bucket, material_object_key(upload.filename), upload.content, upload.content_type
        )
        material = Material(
            id=self._repos.materials.new_id(),
            title=title,
            description=description,
            course_id=course_id or None,
            file_name=upload.filename,
            file_size=upload.size,
            file_type=upload.content_type,
            file_path=path,
            uploaded_by=actor.user_id,
            uploaded_by_name=actor.name,
        )
        self._repos.materials.save(material)
        logger.info(f"Material {material.id} uploaded by {actor.user_id} ({upload.size} bytes)")
        return material

    def list_materials(self, course_id: Optional[str] = None) -> List[Material]:
        return self._repos.materials.for_course(course_id)

    def material_download(self, material_id: str) -> Dict[str, str]:
        material = self._repos.materials.get(material_id)
        if material is None:
            raise NotFound("Material not found")
        url = self._blobs.sign_download_url(self._bucket, material.file_path, self._ttl)
        return {"url": url, "fileName": material.file_name}

    def create_assessment(self, actor: Actor, payload: AssessmentCreate) -> Assessment:
        authorize(actor, Operation.CREATE_ASSESSMENT)
        self._require_course(payload.course_id)
        assessment = Assessment(
            id=self._repos.assessments.new_id(),
            title=payload.title,
            description=payload.description,
            course_id=payload.course_id,
            due_date=payload.due_date,
            total_marks=payload.total_marks,
            instructor_id=actor.user_id,
            instructor_name=actor.name,
        )
        self._repos.assessments.save(assessment)
        logger.info(f"Assessment {assessment.id} created by {actor.user_id}")
        self._notifications.broadcast(
            NotificationType.NEW_ASSESSMENT,
            f'New assessment "{assessment.title}" has been posted',
            target_id=assessment.id,
        )
        return assessment

    def list_assessments(self, course_id: Optional[str] = None) -> List[Assessment]:
        return self._repos.assessments.for_course(course_id)
