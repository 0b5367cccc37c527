"""Tests for remote error normalization."""

from payout_bot.core.errors import ErrorKind, GENERIC_ERROR_MESSAGE
from payout_bot.core.error_normalizer import normalize_error


def test_plain_message_is_used_as_is():
    error = normalize_error(400, {"message": "Insufficient balance"})
    assert error.message == "Insufficient balance"
    assert error.kind == ErrorKind.REMOTE
    assert error.status_code == 400


def test_string_list_is_joined_with_commas():
    error = normalize_error(400, {"message": ["amount must be positive", "email must be an email"]})
    assert error.message == "amount must be positive, email must be an email"


def test_validation_objects_are_joined_with_semicolons():
    body = {
        "message": [
            {"property": "otp", "constraints": {"isNotEmpty": "otp should not be empty", "length": "otp must be 6 digits"}},
            {"property": "email", "constraints": {"isEmail": "email must be an email"}},
        ]
    }
    error = normalize_error(422, body)
    assert error.message == "otp: otp should not be empty, otp must be 6 digits; email: email must be an email"


def test_validation_children_are_flattened_one_level():
    body = {
        "message": [
            {
                "property": "bank",
                "children": [{"property": "iban", "constraints": {"isIban": "invalid iban"}}],
            }
        ]
    }
    assert normalize_error(422, body).message == "bank.iban: invalid iban"


def test_validation_object_without_details_falls_back_to_property():
    assert normalize_error(422, {"message": [{"property": "amount"}]}).message == "Invalid amount"


def test_unknown_objects_are_never_serialized():
    error = normalize_error(422, {"message": [{"foo": {"bar": 1}}]})
    assert "{" not in error.message
    assert error.message == "Request failed with status 422"


def test_field_object_message():
    body = {"message": {"amount": "must be positive", "bank": {"iban": "required"}}}
    assert normalize_error(400, body).message == "amount: must be positive; bank.iban: required"


def test_errors_object_is_appended():
    body = {"message": "Validation failed", "errors": {"amount": ["too small", "not a number"]}}
    assert normalize_error(400, body).message == "Validation failed: amount: too small, not a number"


def test_error_field_is_a_fallback():
    assert normalize_error(403, {"error": "Forbidden resource"}).message == "Forbidden resource"


def test_status_defaults():
    assert normalize_error(404, None).message.startswith("Not found")
    assert normalize_error(503, {}).message.startswith("Service unavailable")
    assert normalize_error(418, {}).message == "Request failed with status 418"


def test_html_bodies_are_ignored():
    error = normalize_error(502, "<html><body>Bad Gateway</body></html>")
    assert error.message.startswith("Bad gateway")


def test_kinds():
    assert normalize_error(401, {"message": "Unauthorized"}).kind == ErrorKind.AUTHENTICATION
    assert normalize_error(500, {}).kind == ErrorKind.REMOTE

    transport = normalize_error(None, None)
    assert transport.kind == ErrorKind.TRANSPORT
    assert transport.message == GENERIC_ERROR_MESSAGE
