"""
Exception classes for the mistralex Python SDK.

Every error the SDK can report belongs to one ``ErrorKind``. Callers branch on
``error.kind`` (or on the exception class) rather than on message text.
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class ErrorKind(str, Enum):
    """Closed set of error kinds."""

    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    API = "api"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    STREAM = "stream"
    CANCELLED = "cancelled"


class MistralError(Exception):
    """Base exception for mistralex SDK errors."""

    kind: ErrorKind = ErrorKind.API
    default_message = "Mistral API error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class MistralAPIError(MistralError):
    """Error response from the API that has no more specific kind."""

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[Union[str, bytes]] = None,
        request_id: Optional[str] = None,
    ) -> None:
        if message is None and status_code is not None:
            message = f"API request failed with status {status_code}"
        super().__init__(message, status_code=status_code, request_id=request_id)
        self.response_body = response_body


class MistralAuthenticationError(MistralAPIError):
    """Authentication error."""

    kind = ErrorKind.AUTHENTICATION
    default_message = "Authentication failed. Please check your API key."

    def __init__(self, message: Optional[str] = None, request_id: Optional[str] = None) -> None:
        super().__init__(message or self.default_message, status_code=401, request_id=request_id)


class MistralPermissionError(MistralAPIError):
    """Permission denied error."""

    kind = ErrorKind.PERMISSION
    default_message = "Permission denied. You don't have access to this resource."

    def __init__(self, message: Optional[str] = None, request_id: Optional[str] = None) -> None:
        super().__init__(message or self.default_message, status_code=403, request_id=request_id)


class MistralNotFoundError(MistralAPIError):
    """Resource not found error."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        if message is None:
            if resource_type and resource_id:
                message = f"{resource_type.capitalize()} '{resource_id}' not found"
            elif resource_type:
                message = f"{resource_type.capitalize()} not found"
            else:
                message = "Resource not found"
        super().__init__(message, status_code=404, request_id=request_id)
        self.resource_type = resource_type
        self.resource_id = resource_id


class MistralRateLimitError(MistralAPIError):
    """Rate limit exceeded error."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
        limit_type: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        if message is None:
            prefix = f"{limit_type.capitalize()} rate limit" if limit_type else "Rate limit"
            message = f"{prefix} exceeded."
            if retry_after is not None:
                message += f" Retry after {retry_after} seconds."
        super().__init__(message, status_code=429, request_id=request_id)
        self.retry_after = retry_after
        self.limit_type = limit_type


class MistralServerError(MistralAPIError):
    """Server error."""

    kind = ErrorKind.SERVER

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: int = 500,
        request_id: Optional[str] = None,
    ) -> None:
        if message is None:
            message = f"Server error ({status_code}). Please try again later."
        super().__init__(message, status_code=status_code, request_id=request_id)


class MistralValidationError(MistralError):
    """Validation error for a request, a response body or a stream chunk."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        constraint: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        if message is None:
            if field and constraint:
                message = f"Validation failed for field '{field}': {constraint}"
            elif field:
                message = f"Validation failed for field '{field}'"
            else:
                message = "Validation failed"
        super().__init__(message, status_code=status_code, request_id=request_id)
        self.field = field
        self.value = value
        self.constraint = constraint


class MistralNetworkError(MistralError):
    """Transport-level failure: timeout, refused connection, DNS failure."""

    kind = ErrorKind.NETWORK

    _REASON_MESSAGES = {
        "timeout": "Network request timed out",
        "econnrefused": "Connection refused",
        "nxdomain": "Domain name resolution failed",
    }

    def __init__(self, message: Optional[str] = None, reason: str = "other") -> None:
        if message is None:
            message = self._REASON_MESSAGES.get(reason, f"Network error: {reason}")
        super().__init__(message)
        self.reason = reason


class MistralConfigurationError(MistralError):
    """Invalid client configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: Optional[str] = None, setting: Optional[str] = None) -> None:
        if message is None:
            message = (
                f"Configuration error for setting '{setting}'"
                if setting
                else "Configuration error"
            )
        super().__init__(message)
        self.setting = setting


class MistralStreamError(MistralError):
    """Streaming error raised while handing a chunk to the caller."""

    kind = ErrorKind.STREAM
    default_message = "Stream processing failed"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        if message is None and cause is not None:
            message = f"Stream callback error: {cause}"
        super().__init__(message)
        self.cause = cause


class MistralCancelledError(MistralError):
    """The call was cancelled or its deadline passed."""

    kind = ErrorKind.CANCELLED
    default_message = "Request cancelled"


def extract_error_message(body: Any) -> Optional[str]:
    """Pull a human readable message out of an error response body."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return None
    if not isinstance(body, dict):
        return None

    error = body.get("error")
    if isinstance(error, dict) and "message" in error:
        return error["message"]
    if "message" in body:
        return body["message"]
    if "detail" in body:
        detail = body["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail)
    return None


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a ``retry-after`` header given in whole seconds."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def from_response(
    status_code: int,
    body: Optional[Union[str, bytes]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> MistralError:
    """Map a non-2xx HTTP response to the matching error."""
    headers_map: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
    request_id = headers_map.get("x-request-id")
    message = extract_error_message(body)

    if status_code == 401:
        return MistralAuthenticationError(message, request_id=request_id)
    elif status_code == 403:
        return MistralPermissionError(message, request_id=request_id)
    elif status_code == 404:
        return MistralNotFoundError(message, request_id=request_id)
    elif status_code == 422:
        return MistralValidationError(message, status_code=422, request_id=request_id)
    elif status_code == 429:
        return MistralRateLimitError(
            message,
            retry_after=parse_retry_after(headers_map.get("retry-after")),
            request_id=request_id,
        )
    elif status_code >= 500:
        return MistralServerError(message, status_code=status_code, request_id=request_id)
    else:
        return MistralAPIError(
            message,
            status_code=status_code,
            response_body=body,
            request_id=request_id,
        )
