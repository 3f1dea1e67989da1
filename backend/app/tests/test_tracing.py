"""Tests for span attribute masking."""

from app.core.tracing import mask_access_code, mask_email, mask_token, safe_span_attributes, sanitize_letter_text


def test_mask_access_code():
    assert mask_access_code("ABCD2345") == "AB******"
    assert mask_access_code(None) == "<none>"


def test_mask_email():
    assert mask_email("admissions@university.test") == "a*****@university.test"
    assert mask_email("not-an-address") == "***@***"


def test_mask_token():
    assert mask_token("ya29.a0AfH6SMBxyz1234") == "ya29.a0A...1234"
    assert mask_token("short") == "***"


def test_sanitize_letter_text_truncates():
    text = "I recommend Ada without reservation. " * 10

    result = sanitize_letter_text(text, max_length=20)

    assert result == text[:20] + "..."


def test_safe_span_attributes_routes_by_key():
    attributes = safe_span_attributes(
        access_code="ABCD2345",
        recipient_email="grad@mit.test",
        access_token="ya29.a0AfH6SMBxyz1234",
        subject="Letter of Recommendation for Ada Lovelace",
        attachment_count=1,
        letter_id=None,
    )

    assert attributes == {
        "access_code": "AB******",
        "recipient_email": "g***@mit.test",
        "access_token": "ya29.a0A...1234",
        "subject": "Letter of Recommendation for Ada Lovelace",
        "attachment_count": 1,
    }
