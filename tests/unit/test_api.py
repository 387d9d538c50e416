"""
End-to-end tests for the HTTP surface
"""
import asyncio
import time
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from gradeflow.identity import JWTIdentityResolver
from gradeflow.index import create_app
from gradeflow.models import User
from gradeflow.services import build_services
from gradeflow.store import InMemoryRecordStore
from tests.conftest import (
    ADMIN_ID,
    INSTRUCTOR_ID,
    OTHER_STUDENT_ID,
    PROFILES,
    STUDENT_ID,
    TEST_AUDIENCE,
    TEST_SECRET,
    auth_headers,
    make_token,
)

PDF = ("hw1.pdf", b"%PDF-1.4 answers", "application/pdf")


@pytest.fixture
def as_student():
    return auth_headers(STUDENT_ID)


@pytest.fixture
def as_instructor():
    return auth_headers(INSTRUCTOR_ID)


@pytest.fixture
def as_admin():
    return auth_headers(ADMIN_ID)


@pytest.fixture
def api_course(client, profiles, as_instructor):
    response = client.post("/courses", json={"name": "Algorithms"}, headers=as_instructor)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def api_assessment(client, api_course, as_instructor):
    response = client.post(
        "/assessments",
        json={"title": "Homework 1", "courseId": api_course["id"], "totalMarks": 100},
        headers=as_instructor,
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def api_submission(client, api_assessment, as_student):
    response = client.post(
        "/submissions",
        data={"assessmentId": api_assessment["id"]},
        files={"file": PDF},
        headers=as_student,
    )
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_unknown_route(self, client):
        response = client.get("/nonexistent-endpoint")
        assert response.status_code == 404
        assert "error" in response.json()


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/notifications")
        assert response.status_code == 401
        assert response.json() == {"error": "No authorization token"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_scheme(self, client):
        response = client.get("/notifications", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        headers = {"Authorization": f"Bearer {make_token(STUDENT_ID, expires_in=-60)}"}
        response = client.get("/notifications", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Token expired"}

    def test_bad_signature(self, client):
        headers = {"Authorization": f"Bearer {make_token(STUDENT_ID, secret='another-secret-0123456789abcdef')}"}
        assert client.get("/notifications", headers=headers).status_code == 401

    def test_public_reads_need_no_token(self, client, api_course):
        assert client.get("/courses").json() == [api_course]
        assert client.get("/assessments").status_code == 200
        assert client.get("/materials").json() == []


class TestUsers:
    def test_register_then_profile(self, client):
        headers = auth_headers("newcomer")
        response = client.post("/users", json={"name": "Nia", "role": "instructor"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["role"] == "instructor"

        profile = client.get("/auth/profile", headers=headers).json()
        assert profile["profileFound"] is True
        assert profile["email"] == "newcomer@example.edu"

    def test_register_twice(self, client):
        headers = auth_headers("newcomer")
        client.post("/users", json={"name": "Nia", "role": "student"}, headers=headers)
        response = client.post("/users", json={"name": "Nia", "role": "admin"}, headers=headers)
        assert response.status_code == 400

    def test_first_registration_may_claim_admin(self, client):
        headers = auth_headers("self-made-admin")
        response = client.post("/users", json={"name": "Sal", "role": "admin"}, headers=headers)
        assert response.status_code == 201
        assert client.get("/auth/profile", headers=headers).json()["role"] == "admin"

    def test_invalid_role(self, client):
        response = client.post("/users", json={"name": "Nia", "role": "root"}, headers=auth_headers("x"))
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")

    def test_profile_fallback(self, client):
        headers = auth_headers("ghost", user_metadata={"role": "admin", "name": "Gus"})
        profile = client.get("/auth/profile", headers=headers).json()
        assert profile["profileFound"] is False
        assert profile["role"] == "admin"

    def test_metadata_role_does_not_authorize(self, client):
        headers = auth_headers("ghost", user_metadata={"role": "admin"})
        response = client.post("/courses", json={"name": "X"}, headers=headers)
        assert response.status_code == 403


class TestAuthorizationBeforeValidation:
    @pytest.mark.parametrize(
        "path,body",
        [
            ("/courses", {"name": "X"}),
            ("/courses", {}),
            ("/courses", "not json"),
            ("/assessments", {"title": "T", "courseId": "course:missing", "totalMarks": 10}),
            ("/assessments", {"totalMarks": -1}),
            ("/grades", {"submissionId": "submission:x", "grade": 1, "totalMarks": 1}),
            ("/grades", {}),
        ],
    )
    def test_students_get_403(self, client, profiles, as_student, path, body):
        if isinstance(body, str):
            response = client.post(path, content=body, headers=as_student)
        else:
            response = client.post(path, json=body, headers=as_student)
        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}

    def test_instructor_verify_is_admin_only(self, client, profiles, as_instructor):
        response = client.put("/grades/grade:submission:x/verify", json={}, headers=as_instructor)
        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions - Admin only"}

    def test_students_cannot_upload_materials(self, client, profiles, as_student):
        response = client.post("/materials/upload", data={"title": "T"}, files={"file": PDF}, headers=as_student)
        assert response.status_code == 403


class TestValidation:
    def test_course_without_name(self, client, profiles, as_instructor):
        response = client.post("/courses", json={"description": "no name"}, headers=as_instructor)
        assert response.status_code == 400

    def test_malformed_json(self, client, profiles, as_instructor):
        response = client.post(
            "/courses",
            content="{not json",
            headers={**as_instructor, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be valid JSON"}

    def test_assessment_for_unknown_course(self, client, profiles, as_instructor):
        response = client.post(
            "/assessments",
            json={"title": "T", "courseId": "course:missing", "totalMarks": 10},
            headers=as_instructor,
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Course not found"}

    def test_verify_requires_boolean(self, client, profiles, as_admin):
        response = client.put("/grades/grade:submission:x/verify", json={"verified": "yes"}, headers=as_admin)
        assert response.status_code == 400

    def test_submission_without_file(self, client, api_assessment, as_student):
        response = client.post("/submissions", data={"assessmentId": api_assessment["id"]}, headers=as_student)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_submission_for_unknown_assessment(self, client, profiles, as_student):
        response = client.post(
            "/submissions", data={"assessmentId": "assessment:missing"}, files={"file": PDF}, headers=as_student
        )
        assert response.status_code == 404


class TestMaterials:
    def test_upload_list_download(self, client, api_course, as_instructor, as_student):
        response = client.post(
            "/materials/upload",
            data={"title": "Week 1", "description": "Slides", "courseId": api_course["id"]},
            files={"file": ("slides.pdf", b"slides", "application/pdf")},
            headers=as_instructor,
        )
        assert response.status_code == 200
        material = response.json()
        assert material["fileName"] == "slides.pdf"
        assert material["fileSize"] == 6

        listed = client.get(f"/materials?courseId={api_course['id']}").json()
        assert [m["id"] for m in listed] == [material["id"]]

        download = client.get(f"/materials/{material['id']}/download", headers=as_student)
        assert download.status_code == 200
        assert download.json()["fileName"] == "slides.pdf"

    def test_download_requires_token(self, client):
        assert client.get("/materials/material:x/download").status_code == 401


class TestGradingFlow:
    def test_full_flow(self, client, api_submission, as_student, as_instructor, as_admin):
        assert api_submission["status"] == "submitted"
        assert api_submission["studentId"] == STUDENT_ID

        graded = client.post(
            "/grades",
            json={"submissionId": api_submission["id"], "grade": 85, "totalMarks": 100, "feedback": "Good"},
            headers=as_instructor,
        )
        assert graded.status_code == 200
        grade = graded.json()
        assert grade["percentage"] == 85
        assert grade["verified"] is False

        mine = client.get("/submissions", headers=as_student).json()
        assert [s["status"] for s in mine] == ["graded"]

        by_submission = client.get(f"/grades/submission/{api_submission['id']}", headers=as_student)
        assert by_submission.json()["id"] == grade["id"]

        verified = client.put(f"/grades/{grade['id']}/verify", json={"verified": True}, headers=as_admin)
        assert verified.status_code == 200
        assert verified.json()["verified"] is True
        assert verified.json()["verifiedBy"] == ADMIN_ID

        feed = client.get("/notifications", headers=as_student).json()
        types = [n["type"] for n in feed]
        assert "submission_confirmed" in types
        assert "grade_posted" in types
        assert "grade_released" in types
        assert "new_assessment" in types

        count = len(feed)
        revoked = client.put(f"/grades/{grade['id']}/verify", json={"verified": False}, headers=as_admin)
        assert revoked.json()["verified"] is False
        assert revoked.json()["percentage"] == 85
        assert len(client.get("/notifications", headers=as_student).json()) == count

        report = client.get(f"/reports/student/{STUDENT_ID}", headers=as_student).json()
        assert report["gradedAssessments"] == 1
        assert report["averageGrade"] == 85

    def test_grade_unknown_submission(self, client, profiles, as_instructor):
        response = client.post(
            "/grades", json={"submissionId": "submission:missing", "grade": 1, "totalMarks": 2}, headers=as_instructor
        )
        assert response.status_code == 404

    def test_grade_above_total(self, client, api_submission, as_instructor):
        response = client.post(
            "/grades", json={"submissionId": api_submission["id"], "grade": 11, "totalMarks": 10}, headers=as_instructor
        )
        assert response.status_code == 400

    def test_verify_unknown_grade(self, client, profiles, as_admin):
        response = client.put("/grades/grade:submission:missing/verify", json={"verified": True}, headers=as_admin)
        assert response.status_code == 404
        assert response.json() == {"error": "Grade not found"}


class TestStudentScoping:
    def test_student_cannot_list_another_students_submissions(self, client, api_submission):
        response = client.get(f"/submissions?studentId={STUDENT_ID}", headers=auth_headers(OTHER_STUDENT_ID))
        assert response.status_code == 403

    def test_student_listing_is_pinned_to_self(self, client, api_submission):
        assert client.get("/submissions", headers=auth_headers(OTHER_STUDENT_ID)).json() == []

    def test_instructor_sees_all(self, client, api_submission, as_instructor):
        assert len(client.get("/submissions", headers=as_instructor).json()) == 1

    def test_other_student_cannot_download(self, client, api_submission):
        response = client.get(
            f"/submissions/{api_submission['id']}/download", headers=auth_headers(OTHER_STUDENT_ID)
        )
        assert response.status_code == 403

    def test_owner_can_download(self, client, api_submission, as_student):
        response = client.get(f"/submissions/{api_submission['id']}/download", headers=as_student)
        assert response.status_code == 200
        assert response.json()["fileName"] == "hw1.pdf"

    def test_other_students_report_forbidden(self, client, profiles):
        response = client.get(f"/reports/student/{STUDENT_ID}", headers=auth_headers(OTHER_STUDENT_ID))
        assert response.status_code == 403

    def test_course_report_staff_only(self, client, api_course, as_student, as_instructor):
        assert client.get(f"/reports/course/{api_course['id']}", headers=as_student).status_code == 403
        assert client.get(f"/reports/course/{api_course['id']}", headers=as_instructor).status_code == 200


class TestNotifications:
    def test_mark_read(self, client, api_submission, as_student):
        feed = client.get("/notifications", headers=as_student).json()
        target = next(n for n in feed if n["type"] == "submission_confirmed")
        response = client.put(f"/notifications/{target['id']}/read", headers=as_student)
        assert response.json() == {"success": True}
        refreshed = client.get("/notifications", headers=as_student).json()
        assert next(n for n in refreshed if n["id"] == target["id"])["read"] is True

    def test_mark_other_users_notification(self, client, api_submission, as_student):
        feed = client.get("/notifications", headers=as_student).json()
        target = next(n for n in feed if n["type"] == "submission_confirmed")
        response = client.put(f"/notifications/{target['id']}/read", headers=auth_headers(OTHER_STUDENT_ID))
        assert response.status_code == 403


class TestErrorMapping:
    def test_upstream_failure_is_500(self, client, services, api_assessment, as_student):
        from gradeflow.errors import UpstreamFailure

        with patch.object(services.blob_store, "put_object", side_effect=UpstreamFailure("Failed to upload file")):
            response = client.post(
                "/submissions", data={"assessmentId": api_assessment["id"]}, files={"file": PDF}, headers=as_student
            )
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload file"}

    def test_unexpected_error_is_generic_500(self, app, services, profiles, as_instructor):
        client = TestClient(app, raise_server_exceptions=False)
        with patch.object(services.catalog, "list_courses", side_effect=RuntimeError("boom")):
            response = client.get("/courses")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestCors:
    def test_preflight_skips_auth(self, client):
        response = client.options(
            "/grades",
            headers={
                "Origin": "https://app.example.edu",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Authorization, Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "https://app.example.edu")


class SlowStore(InMemoryRecordStore):
    """Record store whose course writes take a while, like a remote table."""

    delay = 0.5

    def put(self, key, record):
        if key.startswith("course:"):
            time.sleep(self.delay)
        super().put(key, record)


@pytest.fixture
def slow_app(settings, blob_store):
    services = build_services(
        settings,
        store=SlowStore(),
        blob_store=blob_store,
        identity=JWTIdentityResolver(TEST_SECRET, audience=TEST_AUDIENCE),
    )
    for user_id, (name, role) in PROFILES.items():
        services.repos.users.save(User(id=user_id, email=f"{user_id}@example.edu", name=name, role=role))
    return create_app(services)


class TestConcurrentRequests:
    """Blocking store calls must not hold up other requests"""

    @pytest.mark.asyncio
    async def test_writes_run_in_parallel(self, slow_app):
        transport = httpx.ASGITransport(app=slow_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            started = time.perf_counter()
            responses = await asyncio.gather(
                *[
                    client.post("/courses", json={"name": f"Course {i}"}, headers=auth_headers(INSTRUCTOR_ID))
                    for i in range(4)
                ]
            )
            elapsed = time.perf_counter() - started

        assert [r.status_code for r in responses] == [200, 200, 200, 200]
        assert elapsed < 4 * SlowStore.delay * 0.75

    @pytest.mark.asyncio
    async def test_public_read_not_blocked_by_write(self, slow_app):
        transport = httpx.ASGITransport(app=slow_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            write = asyncio.create_task(
                client.post("/courses", json={"name": "Slow"}, headers=auth_headers(INSTRUCTOR_ID))
            )
            await asyncio.sleep(0.05)
            started = time.perf_counter()
            health = await client.get("/health")
            read_elapsed = time.perf_counter() - started
            assert (await write).status_code == 200

        assert health.status_code == 200
        assert read_elapsed < SlowStore.delay / 2


class TestMethodNotAllowed:
    def test_reported_as_not_found(self, client):
        response = client.delete("/courses")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
