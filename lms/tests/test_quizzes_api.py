"""
API tests for pre/post session quizzes:
1. Authoring quizzes and questions
2. Student visibility and attempts with auto-grading
3. Staff result views
"""

import datetime

import pytest

from conftest import API
from lms.assessments.quizzes import service as quiz_service
from lms.common.utils import utcnow


@pytest.fixture
def quiz(client, course, admin):
    """A published PRE quiz with one MCQ and one TRUE_FALSE question."""
    _, headers = admin
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=headers,
        json={"type": "PRE", "title": "HTTP warm-up", "attemptsAllowed": 2},
    )
    assert response.status_code == 201, response.text
    quiz_data = response.json()["quiz"]

    questions = [
        {"type": "MCQ", "prompt": "Which verb is idempotent?", "choices": ["POST", "PUT"],
         "correctAnswer": 1, "points": 2, "tags": ["http"]},
        {"type": "TRUE_FALSE", "prompt": "HTTP is stateless", "correctAnswer": True, "tags": ["http", "basics"]},
    ]
    quiz_data["questions"] = []
    for question in questions:
        response = client.post(f"{API}/quizzes/{quiz_data['id']}/questions", headers=headers, json=question)
        assert response.status_code == 201, response.text
        quiz_data["questions"].append(response.json()["question"])

    response = client.put(f"{API}/quizzes/{quiz_data['id']}/status", headers=headers, json={"status": "PUBLISHED"})
    assert response.status_code == 200
    return quiz_data


def test_create_quiz_validation(client, course, admin):
    _, headers = admin
    url = f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}"

    response = client.post(url, headers=headers, json={"type": "MID", "title": "Quiz"})
    assert response.status_code == 400
    assert response.json()["message"] == "Type must be PRE or POST"

    response = client.post(url, headers=headers, json={"type": "PRE"})
    assert response.json()["message"] == "Title is required"

    response = client.post(url, headers=headers, json={"type": "PRE", "title": "Q", "timeLimitMinutes": 0.5})
    assert response.json()["message"] == "Time limit must be a positive integer"

    response = client.post(f"{API}/quizzes/courses/{course['id']}/sessions/missing", headers=headers, json={
        "type": "PRE", "title": "Q"
    })
    assert response.status_code == 404
    assert response.json()["message"] == "Session not found in this course"


def test_one_quiz_per_type_and_session(client, course, admin, quiz):
    _, headers = admin
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=headers,
        json={"type": "PRE", "title": "Again"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "A PRE quiz already exists for this session"


def test_instructors_cannot_author_quizzes(client, course, instructor):
    _, headers = instructor
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=headers,
        json={"type": "POST", "title": "Nope"},
    )
    assert response.status_code == 403


def test_question_validation_and_defaults(client, quiz, admin):
    _, headers = admin
    url = f"{API}/quizzes/{quiz['id']}/questions"

    response = client.post(url, headers=headers, json={"type": "ESSAY"})
    assert response.json()["message"] == "Type must be MCQ, TRUE_FALSE, or SHORT_TEXT"

    response = client.post(url, headers=headers, json={"type": "MCQ", "choices": ["only"]})
    assert response.json()["message"] == "MCQ questions must have at least 2 choices"

    response = client.post(url, headers=headers, json={"type": "MCQ", "choices": ["a", "b"], "correctAnswer": 5})
    assert response.json()["message"] == "Correct answer must be a valid choice index"

    response = client.post(url, headers=headers, json={"type": "TRUE_FALSE", "correctAnswer": "maybe"})
    assert response.json()["message"] == "TRUE_FALSE correct answer must be a boolean"

    response = client.post(url, headers=headers, json={"type": "SHORT_TEXT"})
    assert response.status_code == 201
    question = response.json()["question"]
    assert question["prompt"] == "Untitled Question"
    assert question["points"] == 1
    assert question["orderIndex"] == 2


def test_reorder_questions(client, quiz, admin):
    _, headers = admin
    first, second = quiz["questions"]
    response = client.put(f"{API}/quizzes/{quiz['id']}/questions/reorder", headers=headers, json={
        "questionIds": [second["id"], first["id"]]
    })
    assert response.status_code == 200
    assert response.json()["message"] == "Questions reordered successfully"

    response = client.get(f"{API}/quizzes/{quiz['id']}/questions", headers=headers)
    assert [q["id"] for q in response.json()["questions"]] == [second["id"], first["id"]]


def test_students_see_published_quizzes_without_answers(client, course, quiz, student):
    _, headers = student
    response = client.get(f"{API}/quizzes/sessions/{course['session']['id']}", headers=headers)
    listed = response.json()["quizzes"]
    assert len(listed) == 1
    assert listed[0]["_count"] == {"questions": 2, "attempts": 0}

    response = client.get(f"{API}/quizzes/{quiz['id']}", headers=headers)
    detail = response.json()["quiz"]
    assert all("correctAnswer" not in q for q in detail["questions"])
    assert detail["myAttempts"] == []


def test_draft_quiz_is_hidden_from_students(client, course, admin, student):
    _, admin_headers = admin
    _, student_headers = student
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=admin_headers,
        json={"type": "POST", "title": "Later"},
    )
    draft = response.json()["quiz"]
    assert draft["status"] == "DRAFT"

    response = client.get(f"{API}/quizzes/{draft['id']}", headers=student_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Quiz not published yet"

    response = client.post(f"{API}/quizzes/{draft['id']}/attempts/start", headers=student_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Quiz not available"


def test_full_attempt_flow(client, quiz, student):
    _, headers = student
    mcq, true_false = quiz["questions"]

    response = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers)
    assert response.status_code == 201
    attempt = response.json()["attempt"]
    assert attempt["status"] == "IN_PROGRESS"
    assert attempt["maxScore"] == 3
    assert all("correctAnswer" not in q for q in attempt["quiz"]["questions"])

    response = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers)
    assert response.status_code == 200
    assert response.json()["attempt"]["id"] == attempt["id"]

    for question_id, answer in ((mcq["id"], "1"), (true_false["id"], "false")):
        response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/answer", headers=headers, json={
            "questionId": question_id, "answer": answer
        })
        assert response.status_code == 200
        assert response.json()["message"] == "Answer saved"

    response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 200
    submitted = response.json()["attempt"]
    assert submitted["status"] == "SUBMITTED"
    assert submitted["totalScore"] == 2
    assert submitted["percentage"] == pytest.approx(200 / 3)
    assert len(submitted["answers"]) == 2

    response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Attempt already submitted"


def test_attempt_limit(client, quiz, student):
    _, headers = student
    for _ in range(2):
        attempt = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers).json()["attempt"]
        client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)

    response = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Maximum attempts reached"

    response = client.get(f"{API}/quizzes/my", headers=headers)
    mine = response.json()["quizzes"]
    assert mine[0]["canTake"] is False
    assert mine[0]["_count"]["attempts"] == 2
    assert mine[0]["lastAttempt"]["status"] == "SUBMITTED"


def test_unenrolled_student_cannot_start(client, quiz, users):
    _, headers = users.register("STUDENT")
    response = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Not enrolled in this course"


def test_answer_to_foreign_question(client, quiz, student):
    _, headers = student
    attempt = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers).json()["attempt"]
    response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/answer", headers=headers, json={
        "questionId": "unknown", "answer": 1
    })
    assert response.status_code == 404
    assert response.json()["message"] == "Question not found"


def test_staff_results(client, quiz, admin, student):
    _, admin_headers = admin
    student_user, headers = student

    attempt = client.post(f"{API}/quizzes/{quiz['id']}/attempts/start", headers=headers).json()["attempt"]
    client.post(f"{API}/quizzes/attempts/{attempt['id']}/answer", headers=headers, json={
        "questionId": quiz["questions"][0]["id"], "answer": 1
    })
    client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)

    response = client.get(f"{API}/quizzes/{quiz['id']}/attempts", headers=admin_headers)
    attempts = response.json()["attempts"]
    assert attempts[0]["student"]["id"] == student_user["id"]
    assert attempts[0]["answers"][0]["isCorrect"] is True

    response = client.get(f"{API}/quizzes/results/all", headers=admin_headers)
    body = response.json()
    assert [q["id"] for q in body["quizzes"]] == [quiz["id"]]
    mine = next(r for r in body["students"] if r["student"]["id"] == student_user["id"])
    assert mine["totalQuizzes"] == 1
    assert mine["quizResults"][0]["bestScore"] == 2


def test_delete_question(client, quiz, admin):
    _, headers = admin
    response = client.delete(f"{API}/quizzes/questions/{quiz['questions'][0]['id']}", headers=headers)
    assert response.status_code == 200

    response = client.put(f"{API}/quizzes/questions/{quiz['questions'][0]['id']}", headers=headers, json={
        "prompt": "Gone"
    })
    assert response.status_code == 404
    assert response.json()["message"] == "Question not found"


def test_reorder_rejects_questions_of_other_quizzes(client, course, quiz, admin):
    _, headers = admin
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=headers,
        json={"type": "POST", "title": "Wrap-up"},
    )
    other = response.json()["quiz"]
    foreign = client.post(f"{API}/quizzes/{other['id']}/questions", headers=headers, json={
        "type": "SHORT_TEXT", "prompt": "Name one header"
    }).json()["question"]

    response = client.put(f"{API}/quizzes/{quiz['id']}/questions/reorder", headers=headers, json={
        "questionIds": [foreign["id"], quiz["questions"][0]["id"]]
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Some questions do not belong to this quiz"

    response = client.get(f"{API}/quizzes/{other['id']}/questions", headers=headers)
    assert response.json()["questions"][0]["orderIndex"] == 0


def test_session_quizzes_list_pre_before_post(client, course, admin):
    _, headers = admin
    url = f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}"
    for quiz_type in ("POST", "PRE"):
        response = client.post(url, headers=headers, json={"type": quiz_type, "title": f"{quiz_type} check"})
        assert response.status_code == 201

    response = client.get(f"{API}/quizzes/sessions/{course['session']['id']}", headers=headers)
    assert [q["type"] for q in response.json()["quizzes"]] == ["PRE", "POST"]


def test_empty_prompt_rejected_on_update(client, quiz, admin):
    _, headers = admin
    response = client.put(f"{API}/quizzes/questions/{quiz['questions'][0]['id']}", headers=headers, json={
        "prompt": "   "
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Prompt cannot be empty"


@pytest.mark.parametrize("window, message", [
    ({"availableFrom": "2099-01-01T00:00:00Z"}, "Quiz not available yet"),
    ({"availableTo": "2020-01-01T00:00:00Z"}, "Quiz expired"),
])
def test_attempts_respect_availability_window(client, course, admin, student, window, message):
    _, admin_headers = admin
    _, headers = student
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=admin_headers,
        json={"type": "POST", "title": "Windowed", **window},
    )
    quiz_id = response.json()["quiz"]["id"]
    client.put(f"{API}/quizzes/{quiz_id}/status", headers=admin_headers, json={"status": "PUBLISHED"})

    response = client.post(f"{API}/quizzes/{quiz_id}/attempts/start", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == message


def test_submit_after_time_limit(client, course, admin, student, monkeypatch):
    _, admin_headers = admin
    _, headers = student
    response = client.post(
        f"{API}/quizzes/courses/{course['id']}/sessions/{course['session']['id']}",
        headers=admin_headers,
        json={"type": "POST", "title": "Timed", "timeLimitMinutes": 10},
    )
    quiz_id = response.json()["quiz"]["id"]
    client.put(f"{API}/quizzes/{quiz_id}/status", headers=admin_headers, json={"status": "PUBLISHED"})
    attempt = client.post(f"{API}/quizzes/{quiz_id}/attempts/start", headers=headers).json()["attempt"]

    later = utcnow() + datetime.timedelta(minutes=11)
    monkeypatch.setattr(quiz_service, "utcnow", lambda: later)
    response = client.post(f"{API}/quizzes/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Time limit exceeded"
