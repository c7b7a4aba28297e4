"""
API tests for assignments, resources, submissions and reviews.
"""

import json
import os

import pytest

from conftest import API
from lms.config import settings


@pytest.fixture
def assignment(client, course, admin):
    _, headers = admin
    response = client.post(f"{API}/assignments", headers=headers, json={
        "courseId": course["id"],
        "title": "Build a REST API",
        "dueDate": "2026-03-01T23:59:00Z",
        "maxScore": 50,
        "isPublished": True,
    })
    assert response.status_code == 201, response.text
    return response.json()["assignment"]


@pytest.fixture
def submission(client, assignment, student):
    _, headers = student
    response = client.post(
        f"{API}/submissions",
        headers=headers,
        data={
            "assignmentId": assignment["id"],
            "note": "First try",
            "assets": json.dumps([{"type": "LINK", "url": "https://github.com/sara/api"}]),
        },
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )
    assert response.status_code == 201, response.text
    return response.json()["submission"]


def test_create_assignment_validation(client, course, admin):
    _, headers = admin
    response = client.post(f"{API}/assignments", headers=headers, json={"title": "No course"})
    assert response.status_code == 400
    assert response.json()["message"] == "Course ID is required"

    response = client.post(f"{API}/assignments", headers=headers, json={
        "courseId": course["id"], "title": "Bad date", "dueDate": "tomorrow"
    })
    assert response.json()["message"] == "Valid due date is required"

    response = client.post(f"{API}/assignments", headers=headers, json={
        "courseId": course["id"], "title": "Negative", "dueDate": "2026-03-01", "maxScore": -5
    })
    assert response.json()["message"] == "Max score must be a positive integer"


def test_max_score_defaults_to_100(client, course, admin):
    _, headers = admin
    response = client.post(f"{API}/assignments", headers=headers, json={
        "courseId": course["id"], "title": "Defaults", "dueDate": "2026-03-01"
    })
    assignment = response.json()["assignment"]
    assert assignment["maxScore"] == 100
    assert assignment["isPublished"] is False
    assert assignment["course"]["title"] == "Full-Stack Bootcamp"


def test_students_only_see_published_assignments(client, course, admin, student, assignment):
    _, admin_headers = admin
    _, student_headers = student

    response = client.post(f"{API}/assignments", headers=admin_headers, json={
        "courseId": course["id"], "title": "Draft", "dueDate": "2026-04-01"
    })
    draft = response.json()["assignment"]

    response = client.get(f"{API}/assignments/course/{course['id']}", headers=student_headers)
    listed = response.json()["assignments"]
    assert [a["title"] for a in listed] == ["Build a REST API"]
    assert listed[0]["mySubmission"] is None

    response = client.get(f"{API}/assignments/course/{course['id']}", headers=admin_headers)
    assert len(response.json()["assignments"]) == 2

    response = client.get(f"{API}/assignments/{draft['id']}", headers=student_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Assignment not published yet"

    response = client.patch(f"{API}/assignments/{draft['id']}/publish", headers=admin_headers, json={"isPublished": True})
    assert response.json()["assignment"]["isPublished"] is True

    response = client.get(f"{API}/assignments/{draft['id']}", headers=student_headers)
    assert response.status_code == 200


def test_link_resource_and_file_download(client, assignment, admin, student):
    _, admin_headers = admin
    _, student_headers = student

    response = client.post(f"{API}/assignment-resources", headers=admin_headers, data={
        "assignmentId": assignment["id"], "type": "LINK", "url": "https://docs.example.com"
    })
    assert response.status_code == 201
    link = response.json()["resource"]
    assert link["name"] == "https://docs.example.com"

    response = client.post(f"{API}/assignment-resources", headers=admin_headers, data={
        "assignmentId": assignment["id"], "type": "LINK"
    })
    assert response.status_code == 400
    assert response.json()["message"] == "URL is required for LINK type"

    response = client.post(
        f"{API}/assignment-resources",
        headers=admin_headers,
        data={"assignmentId": assignment["id"], "type": "FILE", "name": "Brief"},
        files={"file": ("brief.pdf", b"%PDF-1.4 test", "application/pdf")},
    )
    assert response.status_code == 201
    resource = response.json()["resource"]
    assert resource["url"].startswith(f"{API}/uploads/")

    response = client.get(f"{API}/assignment-resources/{resource['id']}/download", headers=student_headers)
    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 test"
    assert "Brief.pdf" in response.headers["content-disposition"]

    response = client.get(f"{API}/assignment-resources/{link['id']}/download", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "This resource is not a file"

    response = client.get(f"{API}/assignment-resources/assignment/{assignment['id']}", headers=student_headers)
    assert len(response.json()["resources"]) == 2


def test_submission_with_link_and_file(client, submission):
    assert submission["status"] == "SUBMITTED"
    assert submission["note"] == "First try"
    types = sorted(asset["type"] for asset in submission["assets"])
    assert types == ["FILE", "LINK"]
    file_asset = next(a for a in submission["assets"] if a["type"] == "FILE")
    assert file_asset["name"] == "notes.txt"

    response = client.get(file_asset["url"])
    assert response.status_code == 200
    assert response.content == b"hello"


def test_submission_validation(client, assignment, student, instructor):
    _, headers = student
    response = client.post(f"{API}/submissions", headers=headers, data={"note": "x"})
    assert response.status_code == 400
    assert response.json()["message"] == "Assignment ID is required"

    response = client.post(f"{API}/submissions", headers=headers, data={
        "assignmentId": assignment["id"], "assets": "not json"
    })
    assert response.json()["message"] == "Invalid assets"

    _, instructor_headers = instructor
    response = client.post(f"{API}/submissions", headers=instructor_headers, data={"assignmentId": assignment["id"]})
    assert response.status_code == 403


def test_latest_submission_is_mine(client, course, assignment, submission, student):
    _, headers = student
    response = client.post(f"{API}/submissions", headers=headers, data={
        "assignmentId": assignment["id"], "note": "Second try"
    })
    second = response.json()["submission"]

    response = client.get(f"{API}/assignments/{assignment['id']}", headers=headers)
    assert response.json()["assignment"]["mySubmission"]["id"] == second["id"]


def test_other_students_cannot_read_submission(client, submission, users):
    _, other_headers = users.register("STUDENT")
    response = client.get(f"{API}/submissions/{submission['id']}", headers=other_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to view this submission"


def test_review_upsert_per_reviewer(client, submission, instructor, student):
    _, headers = instructor
    for score in (30, 45):
        response = client.post(f"{API}/reviews", headers=headers, json={
            "submissionId": submission["id"], "score": score, "feedback": "Nice endpoints"
        })
        assert response.status_code == 201

    review = response.json()["review"]
    assert review["score"] == 45
    assert review["submission"]["assignment"]["maxScore"] == 50

    _, student_headers = student
    response = client.get(f"{API}/reviews/submission/{submission['id']}", headers=student_headers)
    reviews = response.json()["reviews"]
    assert len(reviews) == 1
    assert reviews[0]["reviewer"]["name"] == "Ian Instructor"


def test_review_score_bounds(client, submission, instructor, student):
    _, headers = instructor
    response = client.post(f"{API}/reviews", headers=headers, json={"submissionId": submission["id"], "score": 101})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"

    _, student_headers = student
    response = client.post(f"{API}/reviews", headers=student_headers, json={"submissionId": submission["id"], "score": 50})
    assert response.status_code == 403


def test_submission_status_update(client, submission, admin):
    _, headers = admin
    response = client.patch(f"{API}/submissions/{submission['id']}/status", headers=headers, json={
        "status": "NEEDS_CHANGES", "note": "Add tests"
    })
    assert response.status_code == 200
    assert response.json()["submission"]["status"] == "NEEDS_CHANGES"

    response = client.patch(f"{API}/submissions/{submission['id']}/status", headers=headers, json={"status": "DONE"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid status"


def test_oversized_upload_is_rejected(client, assignment, student, monkeypatch):
    _, headers = student
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 4)
    before = set(os.listdir(settings.UPLOAD_DIR))

    response = client.post(
        f"{API}/submissions",
        headers=headers,
        data={"assignmentId": assignment["id"]},
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )
    assert response.status_code == 400
    assert response.json()["message"] == "File too large (maximum 4 bytes)"
    assert set(os.listdir(settings.UPLOAD_DIR)) == before


def test_too_many_files_are_rejected(client, assignment, student, monkeypatch):
    _, headers = student
    monkeypatch.setattr(settings, "MAX_UPLOAD_FILES", 2)

    response = client.post(
        f"{API}/submissions",
        headers=headers,
        data={"assignmentId": assignment["id"]},
        files=[("files", (f"part{i}.txt", b"x", "text/plain")) for i in range(3)],
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Too many files (maximum 2)"
