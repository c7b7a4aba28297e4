"""
Shared fixtures for the LMS test suite.

Settings are read from the environment when ``lms.config`` is first
imported, so the test environment is configured before any lms import.
"""

import os
import tempfile
import uuid

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_DB_INIT"] = "true"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="lms-uploads-")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from lms import create_app

API = "/api/v1"
ADMIN_PASSWORD = "Admin#Passw0rd!"
USER_PASSWORD = "secret123"


@pytest.fixture
def client():
    """A TestClient over a fresh in-memory database."""
    with TestClient(create_app()) as test_client:
        yield test_client


class Users:
    """Registers users through the API and keeps their auth headers."""

    def __init__(self, client: TestClient):
        self.client = client

    def register(self, role: str = "STUDENT", name: str = None):
        suffix = uuid.uuid4().hex[:8]
        password = ADMIN_PASSWORD if role == "ADMIN" else USER_PASSWORD
        response = self.client.post(f"{API}/auth/register", json={
            "name": name or f"{role.title()} {suffix}",
            "email": f"{role.lower()}-{suffix}@example.com",
            "password": password,
            "role": role,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['accessToken']}"}


@pytest.fixture
def users(client):
    return Users(client)


@pytest.fixture
def admin(users):
    return users.register("ADMIN", name="Ada Admin")


@pytest.fixture
def instructor(users):
    return users.register("INSTRUCTOR", name="Ian Instructor")


@pytest.fixture
def student(users):
    return users.register("STUDENT", name="Sara Student")


@pytest.fixture
def course(client, admin, student):
    """A course with one class session and the student actively enrolled."""
    _, admin_headers = admin
    student_user, _ = student

    response = client.post(f"{API}/courses", headers=admin_headers, json={
        "title": "Full-Stack Bootcamp",
        "description": "Twelve weeks of web development",
        "startDate": "2026-01-01T00:00:00Z",
        "endDate": "2026-12-31T00:00:00Z",
    })
    assert response.status_code == 201, response.text
    course_data = response.json()["course"]

    response = client.post(
        f"{API}/courses/{course_data['id']}/enrollments",
        headers=admin_headers,
        json={"studentIds": [student_user["id"]]},
    )
    assert response.status_code == 200, response.text

    response = client.post(f"{API}/sessions", headers=admin_headers, json={
        "courseId": course_data["id"],
        "date": "2026-02-01T10:00:00Z",
        "startTime": "10:00",
        "endTime": "12:00",
        "topic": "HTTP basics",
    })
    assert response.status_code == 201, response.text
    course_data["session"] = response.json()["session"]
    return course_data
