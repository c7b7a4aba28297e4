"""
API tests for session exams: question banks, randomized attempts,
scores out of ten and pre/post analytics.
"""

import datetime

import pytest

from conftest import API
from lms.assessments.exams import service as exam_service
from lms.common.utils import utcnow

QUESTIONS = [
    {"questionType": "MCQ", "prompt": "Status code for Created?", "choices": ["200", "201", "204"], "correctAnswer": 1},
    {"questionType": "TRUE_FALSE", "prompt": "GET requests have side effects", "correctAnswer": False},
    {"questionType": "MCQ", "prompt": "Header for auth?", "choices": ["Authorization", "Accept"], "correctAnswer": "0",
     "points": 3, "explanation": "Bearer tokens travel in Authorization"},
]


def make_exam(client, headers, session_id, exam_type="PRE", **fields):
    body = {"type": exam_type, "title": f"{exam_type} exam", "examQuestionCount": 2, **fields}
    response = client.post(f"{API}/exams/sessions/{session_id}", headers=headers, json=body)
    assert response.status_code == 201, response.text
    exam = response.json()["exam"]

    exam["questions"] = []
    for question in QUESTIONS:
        response = client.post(f"{API}/exams/{exam['id']}/questions", headers=headers, json=question)
        assert response.status_code == 201, response.text
        exam["questions"].append(response.json()["question"])

    response = client.put(f"{API}/exams/{exam['id']}/status", headers=headers, json={"status": "PUBLISHED"})
    assert response.status_code == 200
    return exam


def answer_all(client, headers, attempt, exam, correct=True):
    """Answer every served question, right or wrong."""
    by_id = {q["id"]: q for q in exam["questions"]}
    for served in attempt["exam"]["questions"]:
        question = by_id[served["id"]]
        answer = question["correctAnswer"]
        if not correct:
            answer = (not answer) if question["questionType"] == "TRUE_FALSE" else answer + 1
        response = client.post(f"{API}/exams/attempts/{attempt['id']}/answer", headers=headers, json={
            "questionId": served["id"], "answer": answer
        })
        assert response.status_code == 200, response.text


@pytest.fixture
def exam(client, course, admin):
    _, headers = admin
    return make_exam(client, headers, course["session"]["id"], showSolutionsAfterSubmit=True)


def test_create_exam_validation(client, course, admin):
    _, headers = admin
    url = f"{API}/exams/sessions/{course['session']['id']}"

    response = client.post(url, headers=headers, json={"type": "FINAL", "title": "E", "examQuestionCount": 1})
    assert response.status_code == 400
    assert response.json()["message"] == "Type must be PRE or POST"

    response = client.post(url, headers=headers, json={"type": "PRE", "title": "E", "examQuestionCount": 0})
    assert response.json()["message"] == "Exam question count must be at least 1"

    response = client.post(url, headers=headers, json={
        "type": "PRE", "title": "E", "examQuestionCount": 1, "showSolutionsAfterSubmit": "yes"
    })
    assert response.json()["message"] == "showSolutionsAfterSubmit must be a boolean"

    response = client.post(f"{API}/exams/sessions/missing", headers=headers, json={
        "type": "PRE", "title": "E", "examQuestionCount": 1
    })
    assert response.status_code == 404
    assert response.json()["message"] == "Session not found"


def test_duplicate_exam_type(client, course, admin, exam):
    _, headers = admin
    response = client.post(f"{API}/exams/sessions/{course['session']['id']}", headers=headers, json={
        "type": "PRE", "title": "Again", "examQuestionCount": 1
    })
    assert response.status_code == 400
    assert response.json()["message"] == "A PRE exam already exists for this session"


def test_question_validation(client, exam, admin):
    _, headers = admin
    url = f"{API}/exams/{exam['id']}/questions"

    response = client.post(url, headers=headers, json={"questionType": "SHORT_TEXT", "prompt": "x", "correctAnswer": "y"})
    assert response.json()["message"] == "Question type must be MCQ or TRUE_FALSE"

    response = client.post(url, headers=headers, json={"questionType": "MCQ", "correctAnswer": 0})
    assert response.json()["message"] == "Prompt is required"

    response = client.post(url, headers=headers, json={"questionType": "MCQ", "prompt": "x", "choices": ["a", "b"]})
    assert response.json()["message"] == "Correct answer is required"

    response = client.post(url, headers=headers, json={
        "questionType": "MCQ", "prompt": "x", "choices": ["a", "b"], "correctAnswer": 2
    })
    assert response.json()["message"] == "Correct answer must be a valid choice index"

    response = client.post(url, headers=headers, json={"questionType": "TRUE_FALSE", "prompt": "x", "correctAnswer": "yes"})
    assert response.json()["message"] == "TRUE_FALSE correct answer must be a boolean"


def test_question_defaults(exam):
    mcq, true_false, weighted = exam["questions"]
    assert [q["orderIndex"] for q in exam["questions"]] == [0, 1, 2]
    assert mcq["points"] == 1
    assert true_false["choices"] is None
    assert true_false["correctAnswer"] is False
    assert weighted["correctAnswer"] == 0
    assert weighted["exam"]["id"] == exam["id"]


def test_question_count_cannot_exceed_bank(client, exam, admin):
    _, headers = admin
    response = client.put(f"{API}/exams/{exam['id']}", headers=headers, json={"examQuestionCount": 4})
    assert response.status_code == 400
    assert response.json()["message"] == "examQuestionCount (4) cannot exceed number of questions (3)"

    response = client.put(f"{API}/exams/{exam['id']}", headers=headers, json={"examQuestionCount": 3})
    assert response.json()["exam"]["examQuestionCount"] == 3


def test_invalid_status(client, exam, admin):
    _, headers = admin
    response = client.put(f"{API}/exams/{exam['id']}/status", headers=headers, json={"status": "ARCHIVED"})
    assert response.status_code == 400
    assert response.json()["message"] == "Status must be DRAFT, PUBLISHED, or LOCKED"


def test_duplicate_delete_and_reorder(client, exam, admin):
    _, headers = admin
    first, second, third = exam["questions"]

    response = client.post(f"{API}/exams/questions/{first['id']}/duplicate", headers=headers)
    assert response.status_code == 201
    copy = response.json()["question"]
    assert copy["prompt"] == "Status code for Created? (Copy)"
    assert copy["orderIndex"] == 1

    response = client.get(f"{API}/exams/{exam['id']}/questions", headers=headers)
    assert [q["id"] for q in response.json()["questions"]] == [first["id"], copy["id"], second["id"], third["id"]]

    response = client.delete(f"{API}/exams/questions/{first['id']}", headers=headers)
    assert response.json()["message"] == "Question deleted successfully"
    response = client.get(f"{API}/exams/{exam['id']}/questions", headers=headers)
    questions = response.json()["questions"]
    assert [q["orderIndex"] for q in questions] == [0, 1, 2]

    response = client.put(f"{API}/exams/{exam['id']}/questions/reorder", headers=headers, json={
        "orderedIds": [third["id"], second["id"], copy["id"]]
    })
    assert response.status_code == 200
    response = client.get(f"{API}/exams/{exam['id']}/questions", headers=headers)
    assert [q["id"] for q in response.json()["questions"]] == [third["id"], second["id"], copy["id"]]

    response = client.put(f"{API}/exams/{exam['id']}/questions/reorder", headers=headers, json={
        "orderedIds": [third["id"], "elsewhere"]
    })
    assert response.json()["message"] == "Some questions do not belong to this exam"


def test_bulk_update_is_all_or_nothing(client, exam, admin):
    _, headers = admin
    first, second, _ = exam["questions"]

    response = client.put(f"{API}/exams/{exam['id']}/questions/bulk", headers=headers, json={"questions": [
        {"id": first["id"], "prompt": "Changed"},
        {"id": second["id"], "points": 0},
    ]})
    assert response.status_code == 400
    assert response.json()["message"] == "Points must be a positive integer"

    response = client.get(f"{API}/exams/{exam['id']}/questions", headers=headers)
    assert response.json()["questions"][0]["prompt"] == "Status code for Created?"

    response = client.put(f"{API}/exams/{exam['id']}/questions/bulk", headers=headers, json={"questions": [
        {"id": first["id"], "prompt": "Changed", "correctAnswer": 2},
        {"id": second["id"], "correctAnswer": "true"},
    ]})
    assert response.status_code == 200
    updated = response.json()["questions"]
    assert updated[0]["correctAnswer"] == 2
    assert updated[1]["correctAnswer"] is True


def test_student_access(client, course, admin, student, users, exam):
    _, student_headers = student
    _, outsider_headers = users.register("STUDENT")

    response = client.get(f"{API}/exams/{exam['id']}", headers=student_headers)
    assert response.status_code == 200
    assert all("correctAnswer" not in q for q in response.json()["exam"]["questions"])

    response = client.get(f"{API}/exams/{exam['id']}", headers=outsider_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied"

    response = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=outsider_headers)
    assert response.json()["message"] == "You are not enrolled in this course"


def test_attempt_serves_random_sample(client, exam, student):
    _, headers = student
    response = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers)
    assert response.status_code == 200
    attempt = response.json()["attempt"]

    served = attempt["servedQuestionIds"]
    assert len(served) == 2
    assert set(served) <= {q["id"] for q in exam["questions"]}
    points = {q["id"]: q["points"] for q in exam["questions"]}
    assert attempt["maxRawScore"] == sum(points[i] for i in served)
    assert all("correctAnswer" not in q for q in attempt["exam"]["questions"])


def test_answer_validation(client, exam, student):
    _, headers = student
    attempt = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]
    url = f"{API}/exams/attempts/{attempt['id']}/answer"

    response = client.post(url, headers=headers, json={"answer": 1})
    assert response.json()["message"] == "Question ID is required"

    response = client.post(url, headers=headers, json={"questionId": attempt["servedQuestionIds"][0]})
    assert response.json()["message"] == "Answer is required"

    unserved = next(q["id"] for q in exam["questions"] if q["id"] not in attempt["servedQuestionIds"])
    response = client.post(url, headers=headers, json={"questionId": unserved, "answer": 0})
    assert response.status_code == 400
    assert response.json()["message"] == "Question not part of this attempt"


def test_submit_scores_out_of_ten_with_solutions(client, exam, student):
    _, headers = student
    attempt = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]
    answer_all(client, headers, attempt, exam)

    response = client.post(f"{API}/exams/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 200
    submitted = response.json()["attempt"]
    assert submitted["status"] == "SUBMITTED"
    assert submitted["rawScore"] == submitted["maxRawScore"]
    assert submitted["finalScore10"] == 10
    assert submitted["percentage"] == 100
    assert all("correctAnswer" in a["question"] for a in submitted["answers"])

    response = client.get(f"{API}/exams/my/{exam['id']}/result", headers=headers)
    assert response.json()["attempt"]["id"] == attempt["id"]
    assert response.json()["attempt"]["exam"]["session"]["topic"] == "HTTP basics"

    response = client.post(f"{API}/exams/attempts/{attempt['id']}/submit", headers=headers)
    assert response.json()["message"] == "Attempt already submitted"


def test_solutions_hidden_unless_enabled(client, course, admin, student):
    _, admin_headers = admin
    _, headers = student
    exam = make_exam(client, admin_headers, course["session"]["id"], exam_type="POST")

    attempt = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]
    answer_all(client, headers, attempt, exam, correct=False)
    submitted = client.post(f"{API}/exams/attempts/{attempt['id']}/submit", headers=headers).json()["attempt"]

    assert submitted["rawScore"] == 0
    assert submitted["finalScore10"] == 0
    assert all("correctAnswer" not in a["question"] for a in submitted["answers"])


def test_attempt_limit_and_resume(client, exam, student):
    _, headers = student
    first = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]

    resumed = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]
    assert resumed["id"] == first["id"]

    client.post(f"{API}/exams/attempts/{first['id']}/submit", headers=headers)
    response = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Maximum attempts reached"

    mine = client.get(f"{API}/exams/my", headers=headers).json()["exams"]
    assert mine[0]["canTake"] is False
    assert mine[0]["lastAttempt"]["id"] == first["id"]


def test_no_result_before_submitting(client, exam, student):
    _, headers = student
    response = client.get(f"{API}/exams/my/{exam['id']}/result", headers=headers)
    assert response.status_code == 404
    assert response.json()["message"] == "No submitted attempt found"


def test_session_analytics(client, course, admin, student, exam):
    _, admin_headers = admin
    student_user, headers = student
    post_exam = make_exam(client, admin_headers, course["session"]["id"], exam_type="POST")

    pre_attempt = client.post(f"{API}/exams/{exam['id']}/attempts/start", headers=headers).json()["attempt"]
    answer_all(client, headers, pre_attempt, exam, correct=False)
    client.post(f"{API}/exams/attempts/{pre_attempt['id']}/submit", headers=headers)

    post_attempt = client.post(f"{API}/exams/{post_exam['id']}/attempts/start", headers=headers).json()["attempt"]
    answer_all(client, headers, post_attempt, post_exam)
    client.post(f"{API}/exams/attempts/{post_attempt['id']}/submit", headers=headers)

    response = client.get(f"{API}/exams/sessions/{course['session']['id']}/analytics", headers=admin_headers)
    assert response.status_code == 200
    [entry] = response.json()["analytics"]
    assert entry["student"]["id"] == student_user["id"]
    assert entry["preScore"] == 0
    assert entry["postScore"] == 10
    assert entry["improvement"] == 10
    assert entry["postAttemptId"] == post_attempt["id"]

    response = client.get(f"{API}/exams/courses/{course['id']}/analytics", headers=admin_headers)
    exams = response.json()["exams"]
    assert {e["type"] for e in exams} == {"PRE", "POST"}
    assert all(len(e["attempts"]) == 1 for e in exams)


def test_empty_prompt_rejected_on_update(client, exam, admin):
    _, headers = admin
    response = client.put(f"{API}/exams/questions/{exam['questions'][0]['id']}", headers=headers, json={
        "prompt": "  "
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Prompt cannot be empty"


@pytest.mark.parametrize("window, message", [
    ({"availableFrom": "2099-01-01T00:00:00Z"}, "Exam is not yet available"),
    ({"availableTo": "2020-01-01T00:00:00Z"}, "Exam is no longer available"),
])
def test_attempts_respect_availability_window(client, course, admin, student, window, message):
    _, admin_headers = admin
    _, headers = student
    windowed = make_exam(client, admin_headers, course["session"]["id"], **window)

    response = client.post(f"{API}/exams/{windowed['id']}/attempts/start", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == message


def test_submit_after_time_limit(client, course, admin, student, monkeypatch):
    _, admin_headers = admin
    _, headers = student
    timed = make_exam(client, admin_headers, course["session"]["id"], timeLimitMinutes=30)
    attempt = client.post(f"{API}/exams/{timed['id']}/attempts/start", headers=headers).json()["attempt"]
    answer_all(client, headers, attempt, timed)

    later = utcnow() + datetime.timedelta(minutes=31)
    monkeypatch.setattr(exam_service, "utcnow", lambda: later)
    response = client.post(f"{API}/exams/attempts/{attempt['id']}/submit", headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Time limit exceeded"
