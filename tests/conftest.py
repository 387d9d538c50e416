"""
Pytest configuration and fixtures
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from gradeflow.blob_store import FileUpload, InMemoryBlobStore  # noqa: E402
from gradeflow.config import Settings  # noqa: E402
from gradeflow.identity import Actor, JWTIdentityResolver  # noqa: E402
from gradeflow.index import create_app  # noqa: E402
from gradeflow.models import Role, User  # noqa: E402
from gradeflow.services import build_services  # noqa: E402
from gradeflow.store import InMemoryRecordStore  # noqa: E402

TEST_SECRET = "gradeflow-test-secret-0123456789abcdef"
TEST_AUDIENCE = "authenticated"

STUDENT_ID = "student-1"
OTHER_STUDENT_ID = "student-2"
INSTRUCTOR_ID = "instructor-1"
ADMIN_ID = "admin-1"

PROFILES = {
    STUDENT_ID: ("Sam Student", Role.STUDENT),
    OTHER_STUDENT_ID: ("Olu Other", Role.STUDENT),
    INSTRUCTOR_ID: ("Ida Instructor", Role.INSTRUCTOR),
    ADMIN_ID: ("Ada Admin", Role.ADMIN),
}


def make_token(user_id, secret=TEST_SECRET, expires_in=300, **overrides):
    """Mint a provider-style JWT with default claims, allowing overrides."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": f"{user_id}@example.edu",
        "aud": TEST_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        "user_metadata": {},
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id, **overrides):
    return {"Authorization": f"Bearer {make_token(user_id, **overrides)}"}


@pytest.fixture
def settings():
    return Settings(jwt_secret=TEST_SECRET, signed_url_ttl_seconds=600)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def services(settings, store, blob_store):
    return build_services(
        settings,
        store=store,
        blob_store=blob_store,
        identity=JWTIdentityResolver(TEST_SECRET, audience=TEST_AUDIENCE),
    )


@pytest.fixture
def profiles(services):
    """Store a profile for every test user."""
    users = {}
    for user_id, (name, role) in PROFILES.items():
        user = User(id=user_id, email=f"{user_id}@example.edu", name=name, role=role)
        services.repos.users.save(user)
        users[user_id] = user
    return users


@pytest.fixture
def actors(profiles):
    return {
        user_id: Actor(
            user_id=user.id, email=user.email, name=user.name, role=user.role, profile_found=True
        )
        for user_id, user in profiles.items()
    }


@pytest.fixture
def student(actors):
    return actors[STUDENT_ID]


@pytest.fixture
def instructor(actors):
    return actors[INSTRUCTOR_ID]


@pytest.fixture
def admin(actors):
    return actors[ADMIN_ID]


@pytest.fixture
def course(services, instructor):
    from gradeflow.models import CourseCreate

    return services.catalog.create_course(instructor, CourseCreate(name="Algorithms"))


@pytest.fixture
def assessment(services, instructor, course):
    from gradeflow.models import AssessmentCreate

    return services.catalog.create_assessment(
        instructor,
        AssessmentCreate(title="Homework 1", course_id=course.id, total_marks=100),
    )


@pytest.fixture
def upload():
    return FileUpload(filename="hw1.pdf", content=b"%PDF-1.4 answers", content_type="application/pdf")


@pytest.fixture
def app(services):
    return create_app(services)


@pytest.fixture
def client(app):
    return TestClient(app)
