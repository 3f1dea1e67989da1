"""Integration tests for professor-side routes.

These tests run the FastAPI app against an in-memory database with the
mail transport mocked.
"""

import pytest
from fastapi.testclient import TestClient

from app.integrations.mail_transport import MailTransportError
from app.models.letter_request import RequestStatus
from app.models.submission_destination import SubmissionMethod, SubmissionStatus


@pytest.mark.integration
def test_create_list_and_get_request(client: TestClient):
    """Test creating a request and reading it back."""
    response = client.post("/api/requests", json={"professor_notes": "CS 101, fall"})

    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "PENDING"
    assert len(created["access_code"]) == 8

    listing = client.get("/api/requests", params={"status": "PENDING"}).json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == created["id"]

    detail = client.get(f"/api/requests/{created['id']}").json()
    assert detail["request"]["professor_notes"] == "CS 101, fall"
    assert detail["destinations"] == []


@pytest.mark.integration
def test_patch_request_tri_state(client: TestClient):
    """Test absent, null and valued fields in a patch."""
    created = client.post(
        "/api/requests", json={"professor_notes": "keep", "deadline": "2030-01-15T00:00:00Z"}
    ).json()

    response = client.patch(f"/api/requests/{created['id']}", json={"deadline": None})

    assert response.status_code == 200
    assert response.json()["deadline"] is None
    assert response.json()["professor_notes"] == "keep"


@pytest.mark.integration
def test_unknown_request_returns_error_body(client: TestClient):
    """Test the error handler renders code and context."""
    response = client.get("/api/requests/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "request_not_found"
    assert body["entity"] == "request"


@pytest.mark.integration
def test_regenerate_code(client: TestClient):
    """Test issuing a fresh access code."""
    created = client.post("/api/requests", json={}).json()

    response = client.post(f"/api/requests/{created['id']}/regenerate-code")

    assert response.status_code == 200
    assert response.json()["access_code"] != created["access_code"]


@pytest.mark.integration
def test_stats(client: TestClient, make_request):
    """Test dashboard counts."""
    make_request(RequestStatus.PENDING)
    make_request(RequestStatus.SUBMITTED)

    stats = client.get("/api/requests/stats").json()

    assert stats["total"] == 2
    assert stats["pending"] == 1
    assert stats["submitted"] == 1


@pytest.mark.integration
def test_mark_sent_and_confirm_completes_request(client: TestClient, session, make_request):
    """Test manual destination updates drive request completion."""
    request = make_request(
        RequestStatus.IN_PROGRESS,
        destinations=[(SubmissionMethod.PORTAL, SubmissionStatus.PENDING)],
    )
    destination_id = str(request.destinations[0].id)

    sent = client.post(f"/api/destinations/{destination_id}/mark-sent")
    assert sent.status_code == 200
    assert sent.json()["status"] == "SENT"

    confirmed = client.post(f"/api/destinations/{destination_id}/confirm")
    assert confirmed.json()["status"] == "CONFIRMED"

    detail = client.get(f"/api/requests/{request.id}").json()
    assert detail["request"]["status"] == "COMPLETED"

    again = client.post(f"/api/destinations/{destination_id}/mark-sent")
    assert again.status_code == 400
    assert again.json()["error_code"] == "invalid_status_transition"


@pytest.mark.integration
def test_generate_finalize_and_send(client: TestClient, mock_transport, make_request, template, professor):
    """Test the letter lifecycle up to e-mail dispatch."""
    request = make_request(
        RequestStatus.SUBMITTED,
        destinations=[(SubmissionMethod.EMAIL, SubmissionStatus.PENDING)],
        student_name="Ada Lovelace",
        student_email="ada@example.test",
        program_applying="PhD in Mathematics",
    )
    destination_id = str(request.destinations[0].id)

    generated = client.post(
        "/api/letters/generate",
        json={"request_id": str(request.id), "template_id": str(template.id)},
    )
    assert generated.status_code == 201
    letter = generated.json()
    assert "Ada Lovelace" in letter["content"]

    finalized = client.post(f"/api/letters/{letter['id']}/finalize")
    assert finalized.json()["is_finalized"] is True

    locked = client.put(f"/api/letters/{letter['id']}", json={"content": "edit"})
    assert locked.status_code == 400
    assert locked.json()["error_code"] == "letter_finalized"

    sent = client.post(f"/api/destinations/{destination_id}/send", json={"letter_id": letter["id"]})
    assert sent.status_code == 200
    assert sent.json()["status"] == "SENT"
    mock_transport.send.assert_awaited_once()

    detail = client.get(f"/api/requests/{request.id}").json()
    assert detail["request"]["status"] == "COMPLETED"


@pytest.mark.integration
def test_send_failure_returns_502_and_records_reason(client: TestClient, mock_transport, make_request, make_letter):
    """Test transport errors are stored on the destination."""
    request = make_request(
        RequestStatus.IN_PROGRESS,
        destinations=[(SubmissionMethod.EMAIL, SubmissionStatus.PENDING)],
    )
    letter = make_letter(request, content="Letter text", is_finalized=True)
    destination_id = str(request.destinations[0].id)
    mock_transport.send.side_effect = MailTransportError("421 Service not available")

    response = client.post(f"/api/destinations/{destination_id}/send", json={"letter_id": str(letter.id)})

    assert response.status_code == 502
    assert response.json()["failure_reason"] == "421 Service not available"

    detail = client.get(f"/api/requests/{request.id}").json()
    assert detail["destinations"][0]["status"] == "FAILED"
    assert detail["destinations"][0]["failure_reason"] == "421 Service not available"


@pytest.mark.integration
def test_master_and_destination_letter_routes(client: TestClient, make_request, template, professor):
    """Test generate-all, sync and the per-destination lookups."""
    request = make_request(
        RequestStatus.SUBMITTED,
        destinations=[(SubmissionMethod.EMAIL, SubmissionStatus.PENDING)],
        student_name="Ada Lovelace",
    )
    destination_id = str(request.destinations[0].id)

    missing = client.get(f"/api/letters/request/{request.id}/master")
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "master_letter_not_found"

    generated = client.post(
        "/api/letters/generate-all",
        json={"request_id": str(request.id), "template_id": str(template.id)},
    )
    assert generated.status_code == 201
    body = generated.json()
    assert "[PROGRAM]" in body["master"]["content"]
    assert body["destination_letters"][0]["destination_id"] == destination_id

    master = client.get(f"/api/letters/request/{request.id}/master").json()
    assert master["id"] == body["master"]["id"]

    synced = client.post(f"/api/letters/request/{request.id}/sync").json()
    assert "PhD in Computer Science" in synced[0]["content"]

    tailored = client.get(f"/api/letters/request/{request.id}/destination/{destination_id}").json()
    assert tailored["id"] == synced[0]["id"]

    overview = client.get(f"/api/letters/request/{request.id}/with-destinations").json()
    assert overview["master"]["id"] == master["id"]
    assert overview["by_destination"][0]["destination"]["id"] == destination_id
    assert overview["by_destination"][0]["letter"]["id"] == tailored["id"]


@pytest.mark.integration
def test_letter_pdf_download(client: TestClient, make_request, make_letter, professor):
    """Test the PDF endpoint renders on demand."""
    request = make_request(RequestStatus.IN_PROGRESS, student_name="Ada Lovelace")
    letter = make_letter(request, content="Dear Committee,\n\nI recommend Ada.")

    response = client.get(f"/api/letters/{letter.id}/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


@pytest.mark.integration
def test_template_routes(client: TestClient):
    """Test template create, duplicate and preview."""
    created = client.post(
        "/api/templates",
        json={
            "name": "General",
            "content": "Dear {{ recipient }}, I recommend {{ student_name }}.",
            "variables": [{"name": "student_name"}, {"name": "recipient"}],
            "is_default": True,
        },
    )
    assert created.status_code == 201
    template_id = created.json()["id"]

    copy = client.post(f"/api/templates/{template_id}/duplicate").json()
    assert copy["name"] == "General (Copy)"
    assert copy["is_default"] is False

    preview = client.post(f"/api/templates/{template_id}/preview").json()
    assert "Jane Smith" in preview["content"]
    assert preview["missing_variables"] == ["recipient"]

    adhoc = client.post("/api/templates/preview", json={"content": "{{ student_name }} for {{ lab }}"}).json()
    assert adhoc["content"] == "Jane Smith for {{ lab }}"
    assert adhoc["missing_variables"] == ["lab"]

    variables = client.get("/api/templates/variables").json()
    assert any(variable["name"] == "student_name" for variable in variables)


@pytest.mark.integration
def test_professor_profile(client: TestClient):
    """Test creating and patching the profile."""
    assert client.get("/api/professor").status_code == 404

    incomplete = client.put("/api/professor", json={"title": "Professor"})
    assert incomplete.status_code == 400
    assert incomplete.json()["error_code"] == "incomplete_profile"

    created = client.put("/api/professor", json={"name": "Dr. Quinn", "email": "quinn@state.test"})
    assert created.status_code == 200

    updated = client.put("/api/professor", json={"department": "Mathematics"}).json()
    assert updated["name"] == "Dr. Quinn"
    assert updated["department"] == "Mathematics"
