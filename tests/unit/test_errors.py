"""Tests for failure classification."""

import httpx
from google.api_core import exceptions as api_exceptions
from google.auth.exceptions import DefaultCredentialsError

from hcpops.errors import (
    CallbackRequestFailed,
    CancelledOrTimedOut,
    ErrorKind,
    RemoteCallFailed,
    UnexpectedCallbackState,
    classify_exception,
    classify_message,
)


def test_missing_credentials_has_login_instruction():
    error = classify_message(
        "executing workflow 'get'",
        "google: could not find default credentials. See https://cloud.google.com/docs/authentication",
    )
    assert error.kind is ErrorKind.MISSING_CREDENTIALS
    assert "gcloud auth application-default login" in error.remediation
    assert "GOOGLE_APPLICATION_CREDENTIALS" in error.remediation


def test_unknown_message_is_passed_through_verbatim():
    message = "rpc error: connection reset by peer (retry later)"
    error = classify_message("listing workflows", message)
    assert error.kind is ErrorKind.UNCLASSIFIED
    assert error.message == message
    assert error.remediation == ""
    assert str(error) == f"listing workflows: {message}"


def test_substring_kinds():
    cases = {
        "oauth2: token expired and refresh token is not set": ErrorKind.EXPIRED_CREDENTIALS,
        "rpc error: code = PermissionDenied desc = denied": ErrorKind.PERMISSION_DENIED,
        "googleapi: Error 403: forbidden": ErrorKind.PERMISSION_DENIED,
        "rpc error: code = NotFound desc = workflow missing": ErrorKind.RESOURCE_NOT_FOUND,
        "rpc error: code = Unauthenticated desc = bad token": ErrorKind.UNAUTHENTICATED,
        "HTTP 401: unauthorized": ErrorKind.UNAUTHENTICATED,
    }
    for message, kind in cases.items():
        assert classify_message("action", message).kind is kind, message


def test_first_match_wins_in_priority_order():
    error = classify_message("action", "permission denied: resource not found")
    assert error.kind is ErrorKind.PERMISSION_DENIED


def test_status_code_takes_precedence_over_text():
    error = classify_message("triggering callback", "HTTP 403: callback not found", 403)
    assert error.kind is ErrorKind.PERMISSION_DENIED

    error = classify_message("getting execution status", "no such thing", 404)
    assert error.kind is ErrorKind.RESOURCE_NOT_FOUND


def test_credential_text_beats_status_code():
    error = classify_message("action", "could not find default credentials", 401)
    assert error.kind is ErrorKind.MISSING_CREDENTIALS


def test_rendered_message_contains_summary_and_hint():
    error = classify_message("listing workflows", "rpc error: code = NotFound")
    rendered = str(error)
    assert rendered.startswith("listing workflows: resource not found")
    assert "  Verify the workflow exists" in rendered


def test_classify_typed_google_exceptions():
    error = classify_exception("listing workflows", api_exceptions.PermissionDenied("caller lacks access"))
    assert error.kind is ErrorKind.PERMISSION_DENIED

    error = classify_exception("getting execution status", api_exceptions.NotFound("gone"))
    assert error.kind is ErrorKind.RESOURCE_NOT_FOUND

    error = classify_exception("listing workflows", api_exceptions.Unauthenticated("bad token"))
    assert error.kind is ErrorKind.UNAUTHENTICATED


def test_classify_default_credentials_error():
    exc = DefaultCredentialsError("Your default credentials were not found.")
    error = classify_exception("creating workflows client", exc)
    assert error.kind is ErrorKind.MISSING_CREDENTIALS


def test_classify_http_status_error():
    request = httpx.Request("GET", "https://example.test/callbacks")
    response = httpx.Response(404, request=request)
    exc = httpx.HTTPStatusError("boom", request=request, response=response)
    assert classify_exception("listing callbacks", exc).kind is ErrorKind.RESOURCE_NOT_FOUND


def test_classify_plain_exception_is_unclassified():
    error = classify_exception("listing callbacks", ValueError("boom"))
    assert error.kind is ErrorKind.UNCLASSIFIED
    assert error.message == "boom"


def test_exception_types_carry_context():
    error = classify_message("triggering callback", "HTTP 500: oops", 500)
    exc = CallbackRequestFailed(error, 500, "oops")
    assert isinstance(exc, RemoteCallFailed)
    assert exc.kind is ErrorKind.UNCLASSIFIED
    assert exc.body == "oops"
    assert exc.status_code == 500

    assert isinstance(CancelledOrTimedOut("late"), TimeoutError)
    assert "SUCCEEDED" in str(UnexpectedCallbackState("SUCCEEDED"))
