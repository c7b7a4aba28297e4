"""
API tests for the administrator students directory, student report and
subscribers list.
"""

from conftest import API


def mark_present(client, headers, course, student_user):
    response = client.post(f"{API}/attendance/bulk", headers=headers, json={
        "sessionId": course["session"]["id"],
        "attendances": [{"studentId": student_user["id"], "status": "PRESENT"}],
    })
    assert response.status_code == 200


def test_admin_endpoints_are_admin_only(client, instructor, student):
    for _, headers in (instructor, student):
        for path in ("/admin/students", "/admin/subscribers"):
            response = client.get(f"{API}{path}", headers=headers)
            assert response.status_code == 403
            assert response.json()["message"] == "Insufficient permissions"


def test_directory_lists_students_with_metrics(client, course, admin, student, users):
    _, headers = admin
    student_user, _ = student
    users.register("STUDENT", name="Omar Other")

    response = client.get(f"{API}/admin/students", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 50, "total": 2, "totalPages": 1}

    entry = next(s for s in body["data"] if s["id"] == student_user["id"])
    assert entry["courses"] == [{"id": course["id"], "title": "Full-Stack Bootcamp"}]
    assert entry["courseMetrics"][0]["courseId"] == course["id"]
    assert "HIGH_ABSENCE" in entry["alerts"]
    assert "NO_ACTIVITY_14_DAYS" in entry["alerts"]
    assert entry["alertsCount"] == len(entry["alerts"])


def test_directory_filters(client, course, admin, student, users):
    _, headers = admin
    student_user, _ = student
    users.register("STUDENT", name="Omar Other")

    response = client.get(f"{API}/admin/students", headers=headers, params={"search": "sara"})
    assert [s["id"] for s in response.json()["data"]] == [student_user["id"]]

    response = client.get(f"{API}/admin/students", headers=headers, params={"courseId": course["id"]})
    assert [s["id"] for s in response.json()["data"]] == [student_user["id"]]

    response = client.get(f"{API}/admin/students", headers=headers, params={"alertType": "HIGH_ABSENCE"})
    assert [s["id"] for s in response.json()["data"]] == [student_user["id"]]

    mark_present(client, headers, course, student_user)
    response = client.get(f"{API}/admin/students", headers=headers, params={"alertType": "HIGH_ABSENCE"})
    assert response.json()["data"] == []
    assert response.json()["pagination"]["total"] == 0


def test_directory_profile_filter(client, admin, student):
    _, headers = admin
    student_user, student_headers = student
    client.put(f"{API}/profile", headers=student_headers, json={"country": "Egypt", "city": "Cairo"})

    response = client.get(f"{API}/admin/students", headers=headers, params={"city": "Cairo"})
    assert [s["id"] for s in response.json()["data"]] == [student_user["id"]]
    assert response.json()["data"][0]["profile"]["country"] == "Egypt"

    response = client.get(f"{API}/admin/students", headers=headers, params={"isStudent": "true"})
    assert response.json()["data"] == []


def test_directory_pagination(client, admin, users):
    _, headers = admin
    for index in range(3):
        users.register("STUDENT", name=f"Student {index}")

    response = client.get(f"{API}/admin/students", headers=headers, params={"page": 2, "limit": 2})
    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}

    response = client.get(f"{API}/admin/students", headers=headers, params={"page": 0})
    assert response.status_code == 400
    assert response.json()["message"] == "Page must be a positive integer"


def test_student_report(client, course, admin, student):
    _, headers = admin
    student_user, _ = student
    mark_present(client, headers, course, student_user)

    response = client.get(f"{API}/admin/students/{student_user['id']}/report", headers=headers)
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["email"] == student_user["email"]

    enrollment = report["enrollments"][0]
    assert enrollment["course"]["id"] == course["id"]
    assert enrollment["attendanceSummary"]["total"] == 1
    assert enrollment["attendanceSummary"]["present"] == 1
    assert enrollment["assignmentSummary"]["total"] == 0
    assert enrollment["examsSummary"] == {"quizAttempts": 0, "examAttempts": 0, "avgScore": 0}

    assert report["timeline"][0]["type"] == "attendance"
    assert report["timeline"][0]["data"]["status"] == "PRESENT"


def test_report_for_unknown_student(client, admin):
    _, headers = admin
    response = client.get(f"{API}/admin/students/missing/report", headers=headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Student not found"


def test_subscribers_include_every_role(client, admin, instructor, student):
    _, headers = admin
    response = client.get(f"{API}/admin/subscribers", headers=headers)
    body = response.json()
    assert body["pagination"]["total"] == 3
    assert {u["role"] for u in body["data"]} == {"ADMIN", "INSTRUCTOR", "STUDENT"}
    assert all("passwordHash" not in u for u in body["data"])

    response = client.get(f"{API}/admin/subscribers", headers=headers, params={"search": "ian"})
    assert [u["name"] for u in response.json()["data"]] == ["Ian Instructor"]


def test_low_performance_filter(client, course, admin, student, users):
    _, headers = admin
    student_user, _ = student
    other, _ = users.register("STUDENT", name="Omar Other")
    mark_present(client, headers, course, student_user)

    response = client.get(f"{API}/admin/students", headers=headers)
    scores = {s["id"]: s["overallScore"] for s in response.json()["data"]}
    assert scores[student_user["id"]] == 100

    response = client.get(f"{API}/admin/students", headers=headers, params={"lowPerformance": "true"})
    assert [s["id"] for s in response.json()["data"]] == [other["id"]]


def test_student_report_pdf(client, course, admin, student):
    _, headers = admin
    student_user, _ = student
    mark_present(client, headers, course, student_user)

    response = client.get(f"{API}/admin/students/{student_user['id']}/report.pdf", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        f'attachment; filename="student-report-{student_user["id"]}.pdf"'
    )
    assert response.content.startswith(b"%PDF")

    response = client.get(f"{API}/admin/students/missing/report.pdf", headers=headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Student not found"


def test_subscribers_pdf(client, admin, student):
    _, headers = admin
    _, student_headers = student
    client.put(f"{API}/profile", headers=student_headers, json={"country": "Egypt", "city": "Cairo"})

    for params in ({}, {"city": "Nowhere"}):
        response = client.get(f"{API}/admin/subscribers/pdf", headers=headers, params=params)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    response = client.get(f"{API}/admin/subscribers/pdf", headers=student_headers)
    assert response.status_code == 403
