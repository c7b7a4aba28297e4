"""
API tests for per-session evaluations comparing PRE and POST quiz results,
and for their CSV exports.
"""

import pytest

from conftest import API
from lms.evaluations.service import CSV_HEADERS, render_csv


def make_quiz(client, headers, course, quiz_type):
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=headers,
        json={"type": quiz_type, "title": f"{quiz_type} quiz"},
    )
    quiz = response.json()["quiz"]
    quiz["questions"] = []
    for question in (
        {"type": "MCQ", "prompt": "Selector?", "choices": [".a", "#a"], "correctAnswer": 0, "points": 2, "tags": ["css"]},
        {"type": "TRUE_FALSE", "prompt": "<div> is block", "correctAnswer": True, "points": 2, "tags": ["html"]},
    ):
        response = client.post(f"{API}/quizzes/{quiz['id']}/questions", headers=headers, json=question)
        quiz["questions"].append(response.json()["question"])
    client.put(f"{API}/quizzes/{quiz['id']}/status", headers=headers, json={"status": "PUBLISHED"})
    return quiz


def take_quiz(client, headers, quiz, answers):
    attempt = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers).json()["attempt"]
    for question, answer in zip(quiz["questions"], answers):
        client.post(f"{API}/quizzes/attempts/{attempt['id']}/answer", headers=headers, json={
            "questionId": question["id"], "answer": answer
        })
    response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["attempt"]


@pytest.fixture
def evaluated(client, course, admin, student):
    """The student scored 2/4 before the session and 4/4 after it."""
    _, admin_headers = admin
    _, student_headers = student
    pre = make_quiz(client, admin_headers, course, "PRE")
    post = make_quiz(client, admin_headers, course, "POST")
    take_quiz(client, student_headers, pre, [1, True])
    take_quiz(client, student_headers, post, [0, True])
    return pre, post


def test_render_csv_quotes_every_cell():
    assert render_csv([["a", 'say "hi"'], ["1", ""]]) == '"a","say ""hi"""\n"1",""'


def test_submitting_quizzes_computes_evaluation(client, evaluated, student):
    _, headers = student
    response = client.get(f"{API}/evaluations/my", headers=headers)
    assert response.status_code == 200
    evaluations = response.json()["evaluations"]
    assert len(evaluations) == 1

    evaluation = evaluations[0]
    assert evaluation["preScore"] == 2
    assert evaluation["postScore"] == 4
    assert evaluation["prePercent"] == pytest.approx(50)
    assert evaluation["postPercent"] == pytest.approx(100)
    assert evaluation["improvementScore"] == 2
    assert evaluation["improvementPercent"] == pytest.approx(50)
    assert evaluation["strengths"] == ["html", "css"]
    assert evaluation["weaknesses"] == ["css", "html"]
    assert evaluation["session"]["topic"] == "HTTP basics"
    assert "student" not in evaluation


def test_only_pre_quiz_counts_missing_post_as_zero(client, course, admin, student):
    _, admin_headers = admin
    _, student_headers = student
    pre = make_quiz(client, admin_headers, course, "PRE")
    take_quiz(client, student_headers, pre, [0, True])

    evaluation = client.get(f"{API}/evaluations/my", headers=student_headers).json()["evaluations"][0]
    assert evaluation["preScore"] == 4
    assert evaluation["postScore"] == 0
    assert evaluation["improvementPercent"] == pytest.approx(-100)
    assert evaluation["postAttemptId"] is None


def test_question_edit_keeps_stored_grading(client, evaluated, admin, student):
    pre, _ = evaluated
    _, admin_headers = admin
    _, student_headers = student

    # the student answered choice 1 on the PRE MCQ; make that the correct one
    response = client.put(f"{API}/quizzes/questions/{pre['questions'][0]['id']}", headers=admin_headers, json={
        "correctAnswer": 1
    })
    assert response.status_code == 200

    evaluation = client.get(f"{API}/evaluations/my", headers=student_headers).json()["evaluations"][0]
    # stored answers keep their grading; only the derived evaluation is recomputed
    assert evaluation["preScore"] == 2


def test_admin_listings(client, course, evaluated, admin, student):
    _, headers = admin
    student_user, _ = student

    response = client.get(f"{API}/evaluations/sessions/{course['session']['id']}", headers=headers)
    evaluations = response.json()["evaluations"]
    assert evaluations[0]["student"]["id"] == student_user["id"]

    response = client.get(f"{API}/evaluations/courses/{course['id']}", headers=headers)
    assert len(response.json()["evaluations"]) == 1

    response = client.get(f"{API}/evaluations/students/{student_user['id']}", headers=headers)
    assert response.json()["evaluations"][0]["course"]["title"] == "Full-Stack Bootcamp"


def test_listings_are_admin_only(client, course, instructor, student):
    _, instructor_headers = instructor
    response = client.get(f"{API}/evaluations/sessions/{course['session']['id']}", headers=instructor_headers)
    assert response.status_code == 403

    _, student_headers = student
    response = client.get(f"{API}/evaluations/courses/{course['id']}", headers=student_headers)
    assert response.status_code == 403


def test_session_csv_export(client, course, evaluated, admin, student):
    _, headers = admin
    student_user, _ = student
    session_id = course["session"]["id"]

    response = client.get(f"{API}/evaluations/sessions/{session_id}/export", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f'filename="evaluations-{session_id}.csv"' in response.headers["content-disposition"]

    header, row = response.text.split("\n")
    assert header == ",".join(f'"{cell}"' for cell in CSV_HEADERS)
    assert row == (
        f'"Sara Student","{student_user["email"]}","2.00","50.00","4.00","100.00",'
        '"2.00","50.00","html, css","css, html"'
    )


def test_course_csv_export(client, course, evaluated, admin):
    _, headers = admin
    response = client.get(f"{API}/evaluations/courses/{course['id']}/export", headers=headers)
    assert response.status_code == 200

    lines = response.text.split("\n")
    assert lines[0].startswith('"Session Topic","Session Date","Student Name"')
    assert lines[1].startswith('"HTTP basics","2026-02-01","Sara Student"')
