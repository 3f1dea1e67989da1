"""Unit tests for letter generation and versioning."""

import logging
import uuid
from datetime import date

import pytest

from app.core.errors import LetterFinalizedError, NotFoundError, RequestNotReadyError
from app.fulfillment.letters import (
    PLACEHOLDER_INSTITUTION,
    PLACEHOLDER_PROGRAM,
    build_letter_variables,
    delete_all_letters_for_request,
    delete_letter,
    finalize_letter,
    generate_all_letters,
    generate_letter,
    get_letter_for_destination,
    get_letters_with_destinations,
    get_master_letter,
    list_letters_for_request,
    sync_master_to_destinations,
    unfinalize_letter,
    update_letter,
)
from app.fulfillment.schemas import LetterGenerate, LetterUpdate
from app.models.letter_request import RequestStatus
from app.models.submission_destination import SubmissionMethod, SubmissionStatus

EMAIL = SubmissionMethod.EMAIL
PORTAL = SubmissionMethod.PORTAL


def _submitted(make_request, **fields):
    defaults = {
        "student_name": "Ada Lovelace",
        "student_email": "ada@example.test",
        "program_applying": "PhD in Mathematics",
    }
    defaults.update(fields)
    return make_request(RequestStatus.SUBMITTED, **defaults)


class TestBuildVariables:
    """Test variable values drawn from request and profile."""

    def test_values(self, make_request, professor):
        request = _submitted(make_request)

        variables = build_letter_variables(request, professor, today=date(2025, 1, 9))

        assert variables["student_name"] == "Ada Lovelace"
        assert variables["student_first_name"] == "Ada"
        assert variables["program"] == "PhD in Mathematics"
        assert variables["professor_name"] == "Dr. Avery Quinn"
        assert variables["professor_institution"] == "State University"
        assert variables["date"] == "January 9, 2025"

    def test_missing_profile_and_name(self, make_request):
        request = make_request(RequestStatus.SUBMITTED)

        variables = build_letter_variables(request, None)

        assert variables["student_name"] == ""
        assert variables["student_first_name"] == ""
        assert variables["professor_name"] == ""


class TestGenerateLetter:
    """Test generation, regeneration and status effects."""

    def test_generate_interpolates_and_starts_work(self, session, make_request, professor, template):
        request = _submitted(make_request)

        letter = generate_letter(session, LetterGenerate(request_id=request.id, template_id=template.id))

        assert letter.version == 1
        assert "Ada Lovelace" in letter.content
        assert "PhD in Mathematics" in letter.content
        assert "Dr. Avery Quinn" in letter.content
        session.refresh(request)
        assert request.status == RequestStatus.IN_PROGRESS

    def test_regenerating_draft_updates_in_place(self, session, make_request, template):
        request = _submitted(make_request)
        data = LetterGenerate(request_id=request.id, template_id=template.id)

        first = generate_letter(session, data)
        second = generate_letter(session, data)

        assert second.id == first.id
        assert second.version == 2
        assert len(list_letters_for_request(session, request.id)) == 1

    def test_regenerating_after_finalize_creates_new_version(self, session, make_request, template):
        request = _submitted(make_request)
        data = LetterGenerate(request_id=request.id, template_id=template.id)

        first = generate_letter(session, data)
        finalize_letter(session, first.id)
        second = generate_letter(session, data)

        assert second.id != first.id
        assert second.version == 2
        versions = [letter.version for letter in list_letters_for_request(session, request.id)]
        assert versions == [2, 1]

    def test_pending_request_is_not_ready(self, session, make_request, template):
        request = make_request(RequestStatus.PENDING)

        with pytest.raises(RequestNotReadyError):
            generate_letter(session, LetterGenerate(request_id=request.id, template_id=template.id))

    def test_missing_variables_are_logged(self, session, make_request, template, caplog):
        request = _submitted(make_request, program_applying=None)

        with caplog.at_level(logging.WARNING, logger="app.fulfillment.letters"):
            letter = generate_letter(session, LetterGenerate(request_id=request.id, template_id=template.id))

        assert "unfilled template variables" in caplog.text
        assert "{{" not in letter.content

    def test_unknown_template(self, session, make_request):
        request = _submitted(make_request)

        with pytest.raises(NotFoundError) as exc_info:
            generate_letter(session, LetterGenerate(request_id=request.id, template_id=uuid.uuid4()))

        assert exc_info.value.error_code == "template_not_found"


class TestEditing:
    """Test finalize lock and deletion."""

    def test_finalized_letter_cannot_be_edited(self, session, make_request, make_letter):
        letter = make_letter(make_request(RequestStatus.IN_PROGRESS), is_finalized=True)

        with pytest.raises(LetterFinalizedError):
            update_letter(session, letter.id, LetterUpdate(content="changed"))

    def test_unfinalize_allows_editing(self, session, make_request, make_letter):
        letter = make_letter(make_request(RequestStatus.IN_PROGRESS), is_finalized=True)

        unfinalize_letter(session, letter.id)
        updated = update_letter(session, letter.id, LetterUpdate(content="changed"))

        assert updated.content == "changed"

    def test_unfinalize_draft_fails(self, session, make_request, make_letter):
        letter = make_letter(make_request(RequestStatus.IN_PROGRESS))

        with pytest.raises(LetterFinalizedError) as exc_info:
            unfinalize_letter(session, letter.id)

        assert exc_info.value.error_code == "letter_not_finalized"

    def test_delete_letter_removes_pdf(self, session, make_request, make_letter, tmp_path):
        pdf = tmp_path / "letter.pdf"
        pdf.write_bytes(b"%PDF-1.4")
        letter = make_letter(make_request(RequestStatus.IN_PROGRESS), pdf_path=str(pdf))

        delete_letter(session, letter.id)

        assert not pdf.exists()

    def test_delete_all_returns_request_to_submitted(self, session, make_request, make_letter):
        request = make_request(RequestStatus.COMPLETED)
        make_letter(request, version=1, is_finalized=True)
        make_letter(request, version=2)

        deleted = delete_all_letters_for_request(session, request.id)

        assert deleted == 2
        session.refresh(request)
        assert request.status == RequestStatus.SUBMITTED
        assert list_letters_for_request(session, request.id) == []


class TestMasterAndDestinationLetters:
    """Test the master line and the per-destination lines."""

    def test_generate_all_writes_master_and_tailored_letters(self, session, make_request, template):
        request = _submitted(
            make_request, destinations=[(EMAIL, SubmissionStatus.PENDING), (PORTAL, SubmissionStatus.PENDING)]
        )

        result = generate_all_letters(session, LetterGenerate(request_id=request.id, template_id=template.id))

        master = result["master"]
        assert master.is_master is True
        assert master.destination_id is None
        assert PLACEHOLDER_PROGRAM in master.content
        tailored = result["destination_letters"]
        assert {letter.destination_id for letter in tailored} == {d.id for d in request.destinations}
        for letter in tailored:
            assert letter.is_master is False
            assert letter.version == 1
            assert "PhD in Computer Science" in letter.content
            assert PLACEHOLDER_PROGRAM not in letter.content
        session.refresh(request)
        assert request.status == RequestStatus.IN_PROGRESS

    def test_generate_all_versions_each_line(self, session, make_request, template):
        request = _submitted(make_request, destinations=[(EMAIL, SubmissionStatus.PENDING)])
        data = LetterGenerate(request_id=request.id, template_id=template.id)

        first = generate_all_letters(session, data)
        finalize_letter(session, first["destination_letters"][0].id)
        second = generate_all_letters(session, data)

        assert second["master"].id == first["master"].id
        assert second["master"].version == 2
        assert second["destination_letters"][0].id != first["destination_letters"][0].id
        assert second["destination_letters"][0].version == 2
        assert len(list_letters_for_request(session, request.id)) == 3

    def test_generate_all_requires_submitted_request(self, session, make_request, template):
        request = make_request(RequestStatus.PENDING, destinations=[(EMAIL, SubmissionStatus.PENDING)])

        with pytest.raises(RequestNotReadyError):
            generate_all_letters(session, LetterGenerate(request_id=request.id, template_id=template.id))

    def test_master_line_ignores_destination_letters(self, session, make_request, make_letter):
        request = make_request(RequestStatus.IN_PROGRESS, destinations=[(EMAIL, SubmissionStatus.PENDING)])
        master = make_letter(request, content="Master", version=1)
        make_letter(request, content="Tailored", version=5, is_master=False, destination_id=request.destinations[0].id)

        assert get_master_letter(session, request.id).id == master.id
        assert get_letter_for_destination(session, request.id, request.destinations[0].id).content == "Tailored"

    def test_lookups_return_none_when_nothing_generated(self, session, make_request):
        request = make_request(RequestStatus.SUBMITTED, destinations=[(EMAIL, SubmissionStatus.PENDING)])

        assert get_master_letter(session, request.id) is None
        assert get_letter_for_destination(session, request.id, request.destinations[0].id) is None

    def test_destination_of_other_request_is_not_found(self, session, make_request):
        request = make_request(RequestStatus.SUBMITTED)
        other = make_request(RequestStatus.SUBMITTED, destinations=[(EMAIL, SubmissionStatus.PENDING)])

        with pytest.raises(NotFoundError) as exc_info:
            get_letter_for_destination(session, request.id, other.destinations[0].id)

        assert exc_info.value.error_code == "destination_not_found"

    def test_sync_fills_placeholders_with_fallback(self, session, make_request, make_letter, template):
        request = make_request(
            RequestStatus.IN_PROGRESS,
            destinations=[(EMAIL, SubmissionStatus.PENDING)],
            program_applying="MSc in Statistics",
        )
        destination = request.destinations[0]
        destination.program_name = None
        session.add(destination)
        session.commit()
        make_letter(
            request,
            content=f"For {PLACEHOLDER_PROGRAM} at {PLACEHOLDER_INSTITUTION}.",
            template_id=template.id,
        )

        synced = sync_master_to_destinations(session, request.id)

        assert len(synced) == 1
        assert synced[0].content == "For MSc in Statistics at University 1."
        assert synced[0].destination_id == destination.id
        assert synced[0].template_id == template.id
        assert synced[0].is_master is False

    def test_sync_rewrites_draft_in_place(self, session, make_request, make_letter):
        request = make_request(RequestStatus.IN_PROGRESS, destinations=[(EMAIL, SubmissionStatus.PENDING)])
        make_letter(request, content=f"Dear {PLACEHOLDER_INSTITUTION}")

        first = sync_master_to_destinations(session, request.id)[0]
        second = sync_master_to_destinations(session, request.id)[0]

        assert second.id == first.id
        assert second.version == 2

    def test_sync_without_master(self, session, make_request):
        request = make_request(RequestStatus.IN_PROGRESS, destinations=[(EMAIL, SubmissionStatus.PENDING)])

        with pytest.raises(NotFoundError) as exc_info:
            sync_master_to_destinations(session, request.id)

        assert exc_info.value.error_code == "master_letter_not_found"

    def test_letters_with_destinations(self, session, make_request, make_letter):
        request = make_request(
            RequestStatus.IN_PROGRESS,
            destinations=[(EMAIL, SubmissionStatus.PENDING), (PORTAL, SubmissionStatus.PENDING)],
        )
        first, second = request.destinations
        tailored = make_letter(request, content="Tailored", is_master=False, destination_id=first.id)

        result = get_letters_with_destinations(session, request.id)

        assert result["master"] is None
        letters = {entry["destination"].id: entry["letter"] for entry in result["by_destination"]}
        assert letters[first.id].id == tailored.id
        assert letters[second.id] is None

    def test_deleting_destination_drops_its_letters(self, session, make_request, make_letter):
        request = make_request(RequestStatus.IN_PROGRESS, destinations=[(EMAIL, SubmissionStatus.PENDING)])
        make_letter(request, content="Master")
        make_letter(request, content="Tailored", is_master=False, destination_id=request.destinations[0].id)

        session.delete(request.destinations[0])
        session.commit()

        assert [letter.content for letter in list_letters_for_request(session, request.id)] == ["Master"]
