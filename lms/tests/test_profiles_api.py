"""
API tests for the signed-in user's profile and field autocomplete.
"""

import pytest

from conftest import API

STUDENT_PROFILE = {
    "isStudent": True,
    "fullName4": "Sara Omar Khaled Student",
    "country": "Jordan",
    "city": "Irbid",
    "skills": ["React", "Redux"],
    "interests": ["Frontend"],
    "portfolioLinks": {"githubUrl": "https://github.com/sara"},
    "university": "Yarmouk University",
    "major": "Computer Science",
    "graduationYear": "2027",
}


def test_options_are_public(client):
    response = client.get(f"{API}/profile/options")
    assert response.status_code == 200
    options = response.json()["data"]
    assert "Jordan" in options["countries"]
    assert "Irbid" in options["citiesByCountry"]["Jordan"]


def test_profile_is_created_with_defaults(client, student):
    _, headers = student
    response = client.get(f"{API}/profile", headers=headers)
    assert response.status_code == 200
    profile = response.json()["data"]
    assert profile["country"] == "Jordan"
    assert profile["city"] == "Amman"
    assert profile["isStudent"] is False
    assert profile["skills"] == []


def test_profile_requires_auth(client):
    response = client.get(f"{API}/profile")
    assert response.status_code == 401


@pytest.mark.parametrize("changes, message", [
    ({"fullName4": "Sara Student"}, "Full name must contain at least 4 words"),
    ({"portfolioLinks": {"githubUrl": "github.com/sara"}}, "Invalid GitHub URL"),
    ({"university": ""}, "University is required for students"),
    ({"major": None}, "Major is required for students"),
])
def test_update_validation(client, student, changes, message):
    _, headers = student
    response = client.put(f"{API}/profile", headers=headers, json={**STUDENT_PROFILE, **changes})
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_update_student_profile(client, student):
    _, headers = student
    response = client.put(f"{API}/profile", headers=headers, json=STUDENT_PROFILE)
    assert response.status_code == 200, response.text
    profile = response.json()["data"]
    assert profile["isStudent"] is True
    assert profile["city"] == "Irbid"
    assert profile["graduationYear"] == 2027
    assert profile["portfolioLinks"]["githubUrl"] == "https://github.com/sara"

    response = client.get(f"{API}/profile", headers=headers)
    assert response.json()["data"]["university"] == "Yarmouk University"


def test_student_fields_cleared_for_non_students(client, student):
    _, headers = student
    client.put(f"{API}/profile", headers=headers, json=STUDENT_PROFILE)

    response = client.put(f"{API}/profile", headers=headers, json={**STUDENT_PROFILE, "isStudent": False})
    profile = response.json()["data"]
    assert profile["isStudent"] is False
    assert profile["university"] is None
    assert profile["major"] is None
    assert profile["graduationYear"] is None


def test_missing_country_falls_back_to_default(client, student):
    _, headers = student
    response = client.put(f"{API}/profile", headers=headers, json={"bio": "Hi"})
    profile = response.json()["data"]
    assert profile["country"] == "Jordan"
    assert profile["city"] == "Amman"


def test_suggestions_require_key(client):
    response = client.get(f"{API}/suggestions", params={"q": "jo"})
    assert response.status_code == 400
    assert response.json()["message"] == "Key parameter is required"


def test_empty_query_returns_nothing(client):
    response = client.get(f"{API}/suggestions", params={"key": "country", "q": "  "})
    assert response.json()["data"] == []


def test_seeded_suggestions(client):
    response = client.get(f"{API}/suggestions", params={"key": "country", "q": "jo"})
    assert response.json()["data"] == [{"value": "Jordan", "count": 1}]

    response = client.get(f"{API}/suggestions", params={"key": "city", "country": "Jordan", "q": "ir"})
    assert [s["value"] for s in response.json()["data"]] == ["Irbid"]


def test_saved_profile_values_rank_first(client, student):
    _, headers = student
    client.put(f"{API}/profile", headers=headers, json=STUDENT_PROFILE)

    response = client.get(f"{API}/suggestions", params={"key": "skills", "q": "re"})
    suggestions = response.json()["data"]
    assert suggestions[0] == {"value": "React", "count": 2}
    assert {s["value"] for s in suggestions} == {"React", "Redux", "REST APIs"}

    response = client.get(f"{API}/suggestions", params={"key": "university", "country": "Jordan", "q": "yar"})
    assert response.json()["data"] == [{"value": "Yarmouk University", "count": 1}]

    response = client.get(f"{API}/suggestions", params={"key": "university", "country": "Egypt", "q": "yar"})
    assert response.json()["data"] == []
