"""Tests for the pure submission validator."""

from uuid import uuid4

import pytest

from takedown_api.services.validation import (
    ROOT_FIELD,
    TARGET_REQUIRED_MESSAGE,
    InvalidSubmission,
    ValidSubmission,
    validate_submission,
)


def test_valid_submission_keeps_contact_spelling(valid_payload):
    valid_payload["requester_contact"] = "Claims@Example.COM"
    result = validate_submission(valid_payload)
    assert isinstance(result, ValidSubmission)
    assert result.data.requester_contact == "Claims@Example.COM"
    assert result.data.target_url == "https://Example.com/ch/1/"


def test_link_id_alone_is_enough(valid_payload):
    del valid_payload["target_url"]
    link_id = uuid4()
    valid_payload["target_link_id"] = str(link_id)
    result = validate_submission(valid_payload)
    assert isinstance(result, ValidSubmission)
    assert result.data.target_link_id == link_id


def test_missing_both_targets_is_reported_on_target_url(valid_payload):
    del valid_payload["target_url"]
    result = validate_submission(valid_payload)
    assert isinstance(result, InvalidSubmission)
    assert result.field_errors["target_url"] == [TARGET_REQUIRED_MESSAGE]


@pytest.mark.parametrize("statement", ["good_faith_statement", "accuracy_statement"])
@pytest.mark.parametrize("value", [False, None, "true", 1])
def test_statements_must_be_literally_true(valid_payload, statement, value):
    valid_payload[statement] = value
    result = validate_submission(valid_payload)
    assert isinstance(result, InvalidSubmission)
    assert statement in result.field_errors


@pytest.mark.parametrize("statement", ["good_faith_statement", "accuracy_statement"])
def test_absent_statement_is_rejected(valid_payload, statement):
    del valid_payload[statement]
    result = validate_submission(valid_payload)
    assert isinstance(result, InvalidSubmission)
    assert statement in result.field_errors


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("requester_contact", "not-an-email"),
        ("requester_name", ""),
        ("requester_name", "n" * 201),
        ("requester_company", "c" * 201),
        ("target_url", "not a url"),
        ("target_link_id", "1234"),
        ("work_title", ""),
        ("work_title", "t" * 501),
        ("claim_details", "too short"),
        ("claim_details", "d" * 5001),
    ],
)
def test_field_bounds(valid_payload, field, value):
    valid_payload[field] = value
    result = validate_submission(valid_payload)
    assert isinstance(result, InvalidSubmission)
    assert field in result.field_errors


def test_boundary_lengths_are_accepted(valid_payload):
    valid_payload["work_title"] = "t" * 500
    valid_payload["claim_details"] = "d" * 20
    assert isinstance(validate_submission(valid_payload), ValidSubmission)
    valid_payload["claim_details"] = "d" * 5000
    assert isinstance(validate_submission(valid_payload), ValidSubmission)


def test_every_problem_is_reported_at_once():
    result = validate_submission({"requester_contact": "nope"})
    assert isinstance(result, InvalidSubmission)
    assert {
        "requester_contact",
        "work_title",
        "claim_details",
        "good_faith_statement",
        "accuracy_statement",
        "target_url",
    } <= set(result.field_errors)


@pytest.mark.parametrize("raw", [None, [], "payload", 42])
def test_non_object_body_is_invalid(raw):
    result = validate_submission(raw)
    assert isinstance(result, InvalidSubmission)
    assert ROOT_FIELD in result.field_errors
