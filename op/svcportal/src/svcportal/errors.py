# errors.py
"""Error taxonomy and the normalizer that maps transport failures onto it.

Every failure leaving the Dispatcher is one of the ApiError subclasses below,
so workflows branch on the exception type (or ``status``) and show
``message`` without caring what shape the backend used.
"""
from typing import Any, Dict, List, Optional

import httpx

FALLBACK_MESSAGE = "An unknown error occurred."

AUTH_STATUSES = (401, 403, 419)


class ApiError(Exception):
    """Base for every failure surfaced by the client."""

    def __init__(self, message: str, status: Optional[int] = None,
                 errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = errors or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status={self.status!r})"


class ValidationError(ApiError):
    """Field-level rejection, surfaced verbatim from the backend."""

class AuthorizationError(ApiError):
    """Expired or invalid token, or the caller lacks the right."""

class InvalidCredentials(AuthorizationError):
    """The server rejected an email/password pair."""

class NotFoundError(ApiError):
    pass

class TransportError(ApiError):
    """The backend could not be reached or the connection broke."""

class MalformedResponseError(ApiError):
    """A success status whose body lacks a required field."""

class ServerError(ApiError):
    pass


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None

def _field_errors(body: Any) -> Dict[str, List[str]]:
    if not isinstance(body, dict) or not isinstance(body.get("errors"), dict):
        return {}
    fields: Dict[str, List[str]] = {}
    for field, messages in body["errors"].items():
        if isinstance(messages, (list, tuple)):
            fields[str(field)] = [str(m) for m in messages]
        elif messages:
            fields[str(field)] = [str(messages)]
    return fields

def _first_field_message(fields: Dict[str, List[str]]) -> Optional[str]:
    for messages in fields.values():
        if messages:
            return messages[0]
    return None

def _server_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def error_message(fields: Dict[str, List[str]], body: Any,
                  transport_message: Optional[str]) -> str:
    """Pick one human-readable message: field > server > transport > fallback."""
    return (
        _first_field_message(fields)
        or _server_message(body)
        or transport_message
        or FALLBACK_MESSAGE
    )


def normalize_error(failure: Any) -> ApiError:
    """Map a failed response or a raised exception onto the error taxonomy.

    Accepts an ``httpx.Response`` with a non-success status, an
    ``httpx.HTTPStatusError`` (its response is used), an ``httpx`` transport
    exception, an already-normalized ``ApiError`` (returned unchanged) or any
    other exception. Pure: nothing is logged or raised here.
    """
    if isinstance(failure, ApiError):
        return failure

    response: Optional[httpx.Response] = None
    if isinstance(failure, httpx.Response):
        response = failure
    elif isinstance(failure, httpx.HTTPStatusError):
        response = failure.response

    if response is None:
        text = str(failure) if failure is not None else ""
        return TransportError(text or FALLBACK_MESSAGE)

    status = response.status_code
    body = _json_body(response)
    fields = _field_errors(body)
    message = error_message(fields, body, f"Request failed with status code {status}")

    if fields or status == 422:
        cls = ValidationError
    elif status in AUTH_STATUSES:
        cls = AuthorizationError
    elif status == 404:
        cls = NotFoundError
    else:
        cls = ServerError
    return cls(message, status=status, errors=fields)
