"""
API tests for courses, class sessions and attendance.
"""

from conftest import API


def test_create_course_requires_title_and_dates(client, admin):
    _, headers = admin
    response = client.post(f"{API}/courses", headers=headers, json={"startDate": "2026-01-01", "endDate": "2026-02-01"})
    assert response.status_code == 400
    assert response.json()["message"] == "Title is required"

    response = client.post(f"{API}/courses", headers=headers, json={"title": "Course", "startDate": "soon"})
    assert response.json()["message"] == "Valid start date is required"


def test_students_cannot_create_courses(client, student):
    _, headers = student
    response = client.post(f"{API}/courses", headers=headers, json={"title": "Mine"})
    assert response.status_code == 403


def test_course_listing_by_role(client, course, student, users):
    _, student_headers = student
    _, other_headers = users.register("STUDENT")

    response = client.get(f"{API}/courses", headers=student_headers)
    assert response.status_code == 200
    courses = response.json()["courses"]
    assert [c["id"] for c in courses] == [course["id"]]
    assert courses[0]["_count"] == {"enrollments": 1, "sessions": 1, "assignments": 0}
    assert courses[0]["creator"]["name"] == "Ada Admin"

    response = client.get(f"{API}/courses", headers=other_headers)
    assert response.json()["courses"] == []


def test_course_detail_requires_enrollment(client, course, student, users):
    _, student_headers = student
    _, other_headers = users.register("STUDENT")

    response = client.get(f"{API}/courses/{course['id']}", headers=student_headers)
    assert response.status_code == 200
    detail = response.json()["course"]
    assert len(detail["enrollments"]) == 1
    assert detail["sessions"][0]["topic"] == "HTTP basics"

    response = client.get(f"{API}/courses/{course['id']}", headers=other_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Not enrolled in this course"


def test_only_owner_or_admin_updates_course(client, course, instructor):
    instructor_user, instructor_headers = instructor

    response = client.put(f"{API}/courses/{course['id']}", headers=instructor_headers, json={"title": "Hijack"})
    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to update this course"


def test_admin_assigns_instructors(client, course, admin, instructor, student):
    _, admin_headers = admin
    instructor_user, _ = instructor
    student_user, _ = student

    response = client.put(f"{API}/courses/{course['id']}", headers=admin_headers, json={
        "title": "Renamed",
        "instructorIds": [instructor_user["id"], student_user["id"]],
    })
    assert response.status_code == 200
    data = response.json()["course"]
    assert data["title"] == "Renamed"
    assert [entry["instructor"]["id"] for entry in data["instructors"]] == [instructor_user["id"]]


def test_enrollment_validation(client, course, admin):
    _, headers = admin
    response = client.post(f"{API}/courses/{course['id']}/enrollments", headers=headers, json={"studentIds": []})
    assert response.status_code == 400
    assert response.json()["message"] == "Student IDs array is required"

    response = client.post(f"{API}/courses/missing/enrollments", headers=headers, json={"studentIds": ["x"]})
    assert response.status_code == 404
    assert response.json()["message"] == "Course not found"


def test_delete_course_removes_sessions(client, course, admin):
    _, headers = admin
    response = client.delete(f"{API}/courses/{course['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Course deleted successfully"

    response = client.get(f"{API}/sessions/{course['session']['id']}", headers=headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Session not found"


def test_sessions_for_course(client, course, admin, student):
    _, admin_headers = admin
    _, student_headers = student

    response = client.post(f"{API}/sessions/bulk", headers=admin_headers, json={
        "courseId": course["id"],
        "sessions": [
            {"date": "2026-02-08T10:00:00Z", "topic": "CSS"},
            {"date": "2026-02-15T10:00:00Z", "topic": "JavaScript"},
        ],
    })
    assert response.status_code == 201
    assert len(response.json()["sessions"]) == 2

    response = client.get(f"{API}/sessions/course/{course['id']}", headers=student_headers)
    topics = [s["topic"] for s in response.json()["sessions"]]
    assert topics == ["HTTP basics", "CSS", "JavaScript"]

    response = client.get(f"{API}/sessions/all", headers=student_headers)
    assert response.status_code == 403


def test_session_validation(client, course, admin):
    _, headers = admin
    response = client.post(f"{API}/sessions", headers=headers, json={"courseId": course["id"], "date": "nope"})
    assert response.status_code == 400
    assert response.json()["message"] == "Valid date is required"

    response = client.post(f"{API}/sessions", headers=headers, json={"date": "2026-02-01T10:00:00Z"})
    assert response.json()["message"] == "Course ID is required"

    response = client.post(f"{API}/sessions/bulk", headers=headers, json={"courseId": course["id"], "sessions": []})
    assert response.json()["message"] == "Sessions array is required"


def test_attendance_upsert_and_summary(client, course, admin, student):
    _, admin_headers = admin
    student_user, student_headers = student
    session_id = course["session"]["id"]

    for status in ("ABSENT", "PRESENT"):
        response = client.post(f"{API}/attendance/bulk", headers=admin_headers, json={
            "sessionId": session_id,
            "attendances": [{"studentId": student_user["id"], "status": status}],
        })
        assert response.status_code == 200

    response = client.get(f"{API}/attendance/session/{session_id}", headers=admin_headers)
    records = response.json()["attendances"]
    assert len(records) == 1
    assert records[0]["status"] == "PRESENT"

    response = client.get(
        f"{API}/attendance/student/{student_user['id']}/course/{course['id']}", headers=student_headers
    )
    summary = response.json()["summary"]
    assert summary["totalSessions"] == 1
    assert summary["presentCount"] == 1
    assert summary["attendanceRate"] == 100

    response = client.get(f"{API}/attendance/course/{course['id']}/summary", headers=admin_headers)
    assert response.json()["summaries"][0]["presentCount"] == 1

    response = client.get(f"{API}/attendance/students/summary", headers=admin_headers)
    summaries = response.json()["summaries"]
    assert summaries[0]["courses"] == ["Full-Stack Bootcamp"]
    assert summaries[0]["summary"]["attendanceRate"] == 100


def test_attendance_rejects_unknown_status(client, course, admin, student):
    _, headers = admin
    student_user, _ = student
    response = client.post(f"{API}/attendance/bulk", headers=headers, json={
        "sessionId": course["session"]["id"],
        "attendances": [{"studentId": student_user["id"], "status": "SICK"}],
    })
    assert response.status_code == 400


def test_unrecorded_sessions_count_as_absent(client, course, student):
    student_user, headers = student
    response = client.get(f"{API}/attendance/student/{student_user['id']}/course/{course['id']}", headers=headers)
    body = response.json()
    assert body["summary"]["attendanceRate"] == 0
    assert body["sessions"][0]["status"] == "ABSENT"
