"""Error taxonomy and failure classification for workflow calls."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from google.auth.exceptions import DefaultCredentialsError
from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Cause of a classified remote failure, in matching priority order."""

    MISSING_CREDENTIALS = "MissingCredentials"
    EXPIRED_CREDENTIALS = "ExpiredCredentials"
    PERMISSION_DENIED = "PermissionDenied"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    UNAUTHENTICATED = "Unauthenticated"
    UNCLASSIFIED = "Unclassified"


_SUMMARIES = {
    ErrorKind.MISSING_CREDENTIALS: "no GCP credentials found",
    ErrorKind.EXPIRED_CREDENTIALS: "GCP credentials have expired",
    ErrorKind.PERMISSION_DENIED: "permission denied",
    ErrorKind.RESOURCE_NOT_FOUND: "resource not found",
    ErrorKind.UNAUTHENTICATED: "authentication failed",
}

_REMEDIATIONS = {
    ErrorKind.MISSING_CREDENTIALS: (
        "Run: gcloud auth application-default login\n"
        "Or set GOOGLE_APPLICATION_CREDENTIALS to a service account key file"
    ),
    ErrorKind.EXPIRED_CREDENTIALS: "Run: gcloud auth application-default login",
    ErrorKind.PERMISSION_DENIED: (
        "Ensure your account has the required roles:\n"
        "  - roles/workflows.invoker (to execute workflows)\n"
        "  - roles/workflows.viewer (to list workflows)\n"
        "Check: gcloud projects get-iam-policy <project> "
        "--flatten='bindings[].members' --filter='bindings.members:<your-email>'"
    ),
    ErrorKind.RESOURCE_NOT_FOUND: (
        "Verify the workflow exists: hcpops wf list --project <project> --region <region>\n"
        "Check --project and --region flags are correct"
    ),
    ErrorKind.UNAUTHENTICATED: (
        "Run: gcloud auth application-default login\nOr: gcloud auth login"
    ),
}

_SUBSTRINGS = (
    (
        ErrorKind.MISSING_CREDENTIALS,
        ("could not find default credentials", "default credentials were not found"),
    ),
    (ErrorKind.EXPIRED_CREDENTIALS, ("token expired", "oauth2: token expired")),
    (ErrorKind.PERMISSION_DENIED, ("PermissionDenied", "permission denied", "403")),
    (ErrorKind.RESOURCE_NOT_FOUND, ("NotFound", "not found")),
    (ErrorKind.UNAUTHENTICATED, ("Unauthenticated", "401")),
)

_STATUS_CODES = {
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.RESOURCE_NOT_FOUND,
    401: ErrorKind.UNAUTHENTICATED,
}


class ClassifiedError(BaseModel, frozen=True):
    """A failure mapped to its cause with remediation guidance."""

    kind: ErrorKind
    action: str
    message: str
    remediation: str = ""

    @property
    def summary(self) -> str:
        return _SUMMARIES.get(self.kind, self.message)

    def __str__(self) -> str:
        if self.kind is ErrorKind.UNCLASSIFIED:
            return f"{self.action}: {self.message}"
        hint = "\n".join(f"  {line}" for line in self.remediation.splitlines())
        return f"{self.action}: {self.summary}\n\n{hint}"


def _build(action: str, message: str, kind: ErrorKind) -> ClassifiedError:
    return ClassifiedError(
        kind=kind,
        action=action,
        message=message,
        remediation=_REMEDIATIONS.get(kind, ""),
    )


def classify_message(
    action: str, message: str, status_code: Optional[int] = None
) -> ClassifiedError:
    """Map a raw failure message to a :class:`ClassifiedError`.

    Credential problems are looked up by substring first since they never
    carry a status code. A known ``status_code`` then decides the kind before
    falling back to substring matching on the remaining text. The first match
    wins; unknown failures are returned as ``Unclassified`` with ``message``
    preserved verbatim.
    """
    for kind, needles in _SUBSTRINGS[:2]:
        if any(needle in message for needle in needles):
            return _build(action, message, kind)

    if status_code in _STATUS_CODES:
        return _build(action, message, _STATUS_CODES[status_code])

    for kind, needles in _SUBSTRINGS[2:]:
        if any(needle in message for needle in needles):
            return _build(action, message, kind)

    return ClassifiedError(kind=ErrorKind.UNCLASSIFIED, action=action, message=message)


def _status_code_of(exc: BaseException) -> Optional[int]:
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    # google.api_core exceptions expose the HTTP equivalent of the gRPC code
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return int(code)
    return None


def classify_exception(action: str, exc: BaseException) -> ClassifiedError:
    """Classify an exception raised by a transport client."""
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, DefaultCredentialsError):
        return _build(action, message, ErrorKind.MISSING_CREDENTIALS)
    return classify_message(action, message, _status_code_of(exc))


class WorkflowsError(Exception):
    """Base class for every error surfaced by hcpops."""


class RemoteCallFailed(WorkflowsError):
    """A call to a remote surface failed; carries the classification."""

    def __init__(self, error: ClassifiedError) -> None:
        super().__init__(str(error))
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def remediation(self) -> str:
        return self.error.remediation


class CallbackRequestFailed(RemoteCallFailed):
    """A callback endpoint answered with a non-success status."""

    def __init__(self, error: ClassifiedError, status_code: int, body: str) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.body = body


class CancelledOrTimedOut(WorkflowsError, TimeoutError):
    """The caller's deadline expired before the operation finished."""


class ArgumentEncodingFailed(WorkflowsError):
    """A workflow argument or callback payload could not be serialized."""


class NoCompatibleCallback(WorkflowsError):
    """The execution is ACTIVE but has no pending callbacks."""


class UnexpectedCallbackState(WorkflowsError):
    """A resume was requested for an execution that is not ACTIVE."""

    def __init__(self, state: str) -> None:
        super().__init__(f"execution is {state}, not waiting on a callback")
        self.state = state


class ConfigError(WorkflowsError):
    """Configuration is missing, unreadable or invalid."""
