import pytest
from fastapi.testclient import TestClient

from studymind.api.v1.dependencies import get_ai_gateway, get_session_factory
from studymind.main import app
from studymind.models.user.user_model import User
from studymind.services.review_workspace import ReviewWorkspaceRegistry
from tests.utils import create_note_with_questions

API = "/api/v1"


@pytest.fixture()
def client(session_factory, gateway):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ai_gateway] = lambda: gateway
    app.state.review_workspaces = ReviewWorkspaceRegistry(gateway, demo_mode=False)
    try:
        yield TestClient(app)
    finally:
        app.state.review_workspaces.clear()
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(client):
    response = client.post(
        f"{API}/auth/register",
        json={"email": "student@example.com", "username": "student", "password": "secret123"},
    )
    assert response.status_code == 201
    token = client.post(
        f"{API}/auth/token", data={"username": "student", "password": "secret123"}
    ).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def student_note(db_session, auth_headers):
    student = db_session.query(User).filter_by(username="student").one()
    return create_note_with_questions(db_session, student.id, title="Cells")


def test_review_requires_authentication(client):
    response = client.get(f"{API}/review/")
    assert response.status_code == 401


def test_wrong_password_is_rejected(client, auth_headers):
    response = client.post(f"{API}/auth/token", data={"username": "student", "password": "nope"})
    assert response.status_code == 401


def test_review_round_trip(client, auth_headers, student_note):
    view = client.post(f"{API}/review/open", headers=auth_headers).json()
    assert view["phase"] == "selecting"

    options = client.get(f"{API}/review/setup/options", headers=auth_headers).json()
    assert [note["title"] for note in options["notes"]] == ["Cells"]

    view = client.patch(
        f"{API}/review/setup",
        json={"selected_notes": [student_note.id], "difficulty": "hard", "question_count": "all"},
        headers=auth_headers,
    ).json()
    assert view["setup"]["available_question_count"] == 2

    view = client.post(f"{API}/review/start", headers=auth_headers).json()
    assert view["phase"] == "active"
    assert view["active"]["total_questions"] == 2

    client.put(f"{API}/review/answer", json={"text": "Mitosis"}, headers=auth_headers)
    view = client.post(f"{API}/review/answer/save", headers=auth_headers).json()
    assert view["active"]["is_answer_saved"] is True

    view = client.post(f"{API}/review/rate", json={"level": "easy"}, headers=auth_headers).json()
    assert view["session_stats"]["easy"] == 1

    view = client.post(f"{API}/review/ai-feedback", headers=auth_headers).json()
    assert view["active"]["ai_feedback"] == "Feedback on 'Mitosis'"

    view = client.post(f"{API}/review/navigate", json={"direction": "next"}, headers=auth_headers).json()
    assert view["active"]["current_question_index"] == 1

    view = client.post(f"{API}/review/finish", headers=auth_headers).json()
    assert view["phase"] == "completed"
    assert view["completion_persisted"] is True

    history = client.get(f"{API}/history/", headers=auth_headers).json()
    assert history["total"] == 1
    assert history["page_size"] == 20
    session = history["items"][0]
    assert session["session_status"] == "completed"
    assert session["questions_answered"] == 1

    detail = client.get(f"{API}/history/{session['id']}", headers=auth_headers).json()
    assert [answer["answer_text"] for answer in detail["answers"]] == ["Mitosis", ""]

    client.post(f"{API}/review/reset", headers=auth_headers)
    view = client.post(f"{API}/history/{session['id']}/retry", headers=auth_headers).json()
    assert view["phase"] == "active"
    assert view["session"]["session_name"].startswith("Re: ")


def test_invalid_navigation_payload_is_rejected(client, auth_headers, student_note):
    response = client.post(f"{API}/review/navigate", json={"direction": "sideways"}, headers=auth_headers)
    assert response.status_code == 422


def test_rejected_operation_returns_notice(client, auth_headers, student_note):
    client.post(f"{API}/review/open", headers=auth_headers)

    view = client.post(f"{API}/review/start", headers=auth_headers).json()

    assert view["phase"] == "selecting"
    assert view["notices"][-1]["code"] == "no_notes_selected"
    assert view["notices"][-1]["level"] == "warning"


def test_unknown_history_session_is_404(client, auth_headers):
    response = client.get(f"{API}/history/999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "session_not_found"


def test_logout_discards_workspace(client, auth_headers):
    client.get(f"{API}/review/", headers=auth_headers)
    assert len(app.state.review_workspaces) == 1

    response = client.post(f"{API}/auth/logout", headers=auth_headers)

    assert response.status_code == 200
    assert len(app.state.review_workspaces) == 0


def test_note_creation_and_listing(client, auth_headers):
    response = client.post(
        f"{API}/notes/",
        json={"title": "Photosynthesis", "content": "Light to chemical energy.", "generate_default_questions": True},
        headers=auth_headers,
    )
    assert response.status_code == 201
    created = response.json()
    assert created["question_count"] == 5
    assert created["has_embedding"] is True

    listed = client.get(f"{API}/notes/", headers=auth_headers).json()
    assert listed[0]["title"] == "Photosynthesis"
    assert listed[0]["question_count"] == 5

    response = client.post(
        f"{API}/notes/{created['id']}/questions",
        json={"difficulty": "hard", "question_type": "open"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json() == {"note_id": created["id"], "created": 5}
