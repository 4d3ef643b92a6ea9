"""Remote failure shape and its mapping to user-facing messages."""

from __future__ import annotations

from typing import Mapping

_ERROR_CODES_HINT = "See https://platform.openai.com/docs/guides/error-codes for more details."

BAD_REQUEST_MESSAGE = (
    "Your model and your parameters may be incompatible or one of your parameters is unknown. "
    "Reset your settings to default. (HTTP 400 Bad Request)"
)
UNAUTHORIZED_MESSAGE = (
    "Make sure your API key is set and accurate. (HTTP 401 Unauthorized) Potential reasons:\r\n"
    "- 1. Invalid Authentication\r\n"
    "- 2. Incorrect API key provided.\r\n"
    "- 3. Incorrect Organization provided.\r\n"
    f"{_ERROR_CODES_HINT}"
)
FORBIDDEN_MESSAGE = "Your token has expired. Please try authenticating again. (HTTP 403 Forbidden)"
NOT_FOUND_MESSAGE = (
    "Your model may be unavailable for your account or you may have exhausted your allowance. "
    "(HTTP 404 Not Found)"
)
RATE_LIMIT_MESSAGE = (
    "Too many requests, try again later. (HTTP 429 Too Many Requests) Potential reasons:\r\n"
    "1. You exceeded your current quota, please check your plan and billing details\r\n"
    "2. You are sending requests too quickly\r\n"
    "3. The engine is currently overloaded, please try again later.\r\n"
    f"{_ERROR_CODES_HINT}"
)
SERVER_ERROR_MESSAGE = (
    "The server had an error while processing your request, please try again. "
    f"(HTTP 500 Internal Server Error)\r\n{_ERROR_CODES_HINT}"
)

STATUS_MESSAGES: Mapping[int, str] = {
    400: BAD_REQUEST_MESSAGE,
    401: UNAUTHORIZED_MESSAGE,
    403: FORBIDDEN_MESSAGE,
    404: NOT_FOUND_MESSAGE,
    429: RATE_LIMIT_MESSAGE,
    500: SERVER_ERROR_MESSAGE,
}


class RemoteError(Exception):
    """Normalized failure raised by the completion collaborator.

    ``http_status_text`` is only set when a raw transport status line should be
    shown to the user verbatim; ``message`` is the provider's own explanation.
    """

    def __init__(
        self,
        description: str = "The request failed.",
        *,
        http_status: int | None = None,
        http_status_text: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(description)
        self.description = description
        self.http_status = http_status
        self.http_status_text = http_status_text
        self.message = message

    def __repr__(self) -> str:
        return (
            f"RemoteError(description={self.description!r}, http_status={self.http_status!r}, "
            f"http_status_text={self.http_status_text!r}, message={self.message!r})"
        )


class InvalidCredential(ValueError):
    """Raised when an API key is missing or rejected by the provider."""


def classify_error(error: RemoteError) -> str:
    """Return the message shown in the chat panel for ``error``."""

    classified: str | None = None
    if error.http_status_text:
        classified = f"{error.http_status if error.http_status is not None else ''} {error.http_status_text}".strip()
    elif error.http_status is not None:
        classified = STATUS_MESSAGES.get(error.http_status)

    detail = (error.message or "").strip()
    if classified and detail:
        return f"{classified}\n\n{detail}"
    if classified:
        return classified
    if detail:
        return detail
    return error.description


__all__ = [
    "BAD_REQUEST_MESSAGE",
    "FORBIDDEN_MESSAGE",
    "InvalidCredential",
    "NOT_FOUND_MESSAGE",
    "RATE_LIMIT_MESSAGE",
    "RemoteError",
    "SERVER_ERROR_MESSAGE",
    "STATUS_MESSAGES",
    "UNAUTHORIZED_MESSAGE",
    "classify_error",
]
