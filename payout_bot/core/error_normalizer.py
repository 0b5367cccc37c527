"""
Normalization of remote error payloads.

The payments API reports failures in several shapes: a plain ``message``
string, an array of strings, an array of class-validator objects
(``{property, constraints, children}``), a ``{field: constraint}`` object,
or nothing at all. ``normalize_error`` folds all of them into one readable
``ApiError``.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from payout_bot.core.errors import ApiError, ErrorKind, GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)

STATUS_MESSAGES: Dict[int, str] = {
    400: "Bad request - please check your input",
    401: "Unauthorized - your session is invalid or has expired",
    403: "Forbidden - you don't have permission to perform this action",
    404: "Not found - the requested resource does not exist",
    500: "Server error - the payments service is experiencing issues",
    502: "Bad gateway - the payments service is currently unavailable",
    503: "Service unavailable - the payments service is temporarily down",
    504: "Gateway timeout - the payments service timed out",
}


def normalize_error(status_code: Optional[int], body: Any) -> ApiError:
    """
    Build an ``ApiError`` from an HTTP status and a decoded response body.

    Args:
        status_code: HTTP status of the failed response (None if unknown)
        body: Decoded JSON body, raw text, or None

    Returns:
        ApiError tagged with its kind; the message never contains a raw
        object serialization.
    """
    message = extract_message(body)

    if not message:
        message = default_message(status_code)

    return ApiError(kind=error_kind(status_code), message=message, status_code=status_code)


def error_kind(status_code: Optional[int]) -> ErrorKind:
    if status_code is None:
        return ErrorKind.TRANSPORT
    if status_code == 401:
        return ErrorKind.AUTHENTICATION
    return ErrorKind.REMOTE


def default_message(status_code: Optional[int]) -> str:
    if status_code is None:
        return GENERIC_ERROR_MESSAGE
    return STATUS_MESSAGES.get(status_code, f"Request failed with status {status_code}")


def extract_message(body: Any) -> str:
    """
    Pull a readable message out of an error body.

    Returns an empty string when nothing usable is present.
    """
    if body is None:
        return ""

    if isinstance(body, str):
        text = body.strip()
        # HTML error pages and similar are not worth showing
        if text.startswith("<"):
            return ""
        return text

    if not isinstance(body, dict):
        return ""

    message = _format_value(body.get("message"))

    if not message:
        error = body.get("error")
        if isinstance(error, str):
            message = error.strip()

    errors = body.get("errors")
    if isinstance(errors, dict) and errors:
        details = "; ".join(_flatten_field_errors(errors))
        if details:
            message = f"{message}: {details}" if message else details

    return message


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return _format_list(value)
    if isinstance(value, dict):
        return "; ".join(_flatten_field_errors(value))
    return ""


def _format_list(items: List[Any]) -> str:
    if not items:
        return ""

    if any(isinstance(item, dict) for item in items):
        fragments = []
        for item in items:
            if isinstance(item, dict):
                fragment = _format_validation_object(item)
            else:
                fragment = _format_value(item)
            if fragment:
                fragments.append(fragment)
        return "; ".join(fragments)

    return ", ".join(text for text in (_format_value(item) for item in items) if text)


def _format_validation_object(error: Dict[str, Any]) -> str:
    """
    Format one class-validator style error object.

    ``{"property": "otp", "constraints": {"isNotEmpty": "otp should not be empty"}}``
    becomes ``"otp: otp should not be empty"``; children are flattened one
    level deep as ``"parent.child: constraint"``.
    """
    prop = error.get("property")
    constraints = error.get("constraints")
    children = error.get("children")

    if prop and isinstance(constraints, dict) and constraints:
        return f"{prop}: {_join_constraints(constraints.values())}"

    if prop and isinstance(children, list) and children:
        nested = []
        for child in children:
            if not isinstance(child, dict):
                continue
            child_prop = child.get("property")
            child_constraints = child.get("constraints")
            if child_prop and isinstance(child_constraints, dict) and child_constraints:
                nested.append(f"{prop}.{child_prop}: {_join_constraints(child_constraints.values())}")
        return "; ".join(nested) or f"Invalid {prop}"

    if isinstance(error.get("message"), str):
        return error["message"].strip()

    if prop:
        return f"Invalid {prop}"

    # Unknown shape: keep it out of the user-facing text
    logger.debug(f"Dropping unrecognized error entry: {error!r}")
    return ""


def _flatten_field_errors(fields: Dict[str, Any]) -> List[str]:
    """Turn ``{field: constraint}`` (one nested level allowed) into fragments."""
    fragments = []
    for field, value in fields.items():
        if isinstance(value, dict):
            for child, child_value in value.items():
                text = _constraint_text(child_value)
                if text:
                    fragments.append(f"{field}.{child}: {text}")
        else:
            text = _constraint_text(value)
            if text:
                fragments.append(f"{field}: {text}")
    return fragments


def _constraint_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return _join_constraints(value)
    return ""


def _join_constraints(values: Iterable[Any]) -> str:
    return ", ".join(str(value).strip() for value in values if isinstance(value, (str, int, float)))
