"""Application error taxonomy.

Every failure the API reports is an AppError carrying a stable,
machine-readable code. The HTTP status and the default human-readable
message are derived from the code, so raising code only needs:

    raise AppError(ErrorCode.ROOM_FULL)

Categories:
- AUTH_*        token / credential / permission problems
- USER_*, ROOM_*  resource lookups, duplicates, membership rules
- VALIDATION_*  malformed input (field-level details)
- RATE_LIMIT_*  declared for the edge rate limiter
- DATABASE_ERROR, REDIS_ERROR, INTERNAL_SERVER_ERROR  server failures,
  always surfaced with a generic message
"""

import enum
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


class ErrorCode(str, enum.Enum):
    # Auth
    MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    ACCOUNT_LOCKED = "AUTH_ACCOUNT_LOCKED"
    INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"
    UNAUTHORIZED = "AUTH_UNAUTHORIZED"

    # Users
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EMAIL_EXISTS = "USER_EMAIL_EXISTS"
    USERNAME_EXISTS = "USER_USERNAME_EXISTS"
    INVALID_EMAIL = "USER_INVALID_EMAIL"
    WEAK_PASSWORD = "USER_WEAK_PASSWORD"

    # Rooms
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ALREADY_JOINED = "ROOM_ALREADY_JOINED"
    NOT_MEMBER = "ROOM_NOT_MEMBER"
    ROOM_FULL = "ROOM_FULL"
    ROOM_NAME_EXISTS = "ROOM_NAME_EXISTS"
    PRIVATE_NO_ACCESS = "ROOM_PRIVATE_NO_ACCESS"
    OWNER_REQUIRED = "ROOM_OWNER_REQUIRED"

    # Generic resource / permission
    NOT_FOUND = "RESOURCE_NOT_FOUND"
    ALREADY_EXISTS = "RESOURCE_EXISTS"
    FORBIDDEN = "PERMISSION_FORBIDDEN"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "VALIDATION_MISSING_FIELD"
    INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
    INVALID_UUID = "VALIDATION_INVALID_UUID"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    LOGIN_ATTEMPTS = "RATE_LIMIT_LOGIN_ATTEMPTS"

    # Server
    DATABASE_ERROR = "DATABASE_ERROR"
    REDIS_ERROR = "REDIS_ERROR"
    INTERNAL_ERROR = "INTERNAL_SERVER_ERROR"


_STATUS: dict[ErrorCode, int] = {}


def _status(status: int, *codes: ErrorCode) -> None:
    for code in codes:
        _STATUS[code] = status


_status(
    401,
    ErrorCode.MISSING_TOKEN,
    ErrorCode.INVALID_TOKEN,
    ErrorCode.INVALID_CREDENTIALS,
    ErrorCode.TOKEN_EXPIRED,
    ErrorCode.UNAUTHORIZED,
)
_status(
    403,
    ErrorCode.ACCOUNT_LOCKED,
    ErrorCode.INSUFFICIENT_PERMISSIONS,
    ErrorCode.FORBIDDEN,
    ErrorCode.NOT_MEMBER,
    ErrorCode.PRIVATE_NO_ACCESS,
    ErrorCode.OWNER_REQUIRED,
)
_status(404, ErrorCode.USER_NOT_FOUND, ErrorCode.ROOM_NOT_FOUND, ErrorCode.NOT_FOUND)
_status(405, ErrorCode.METHOD_NOT_ALLOWED)
_status(
    409,
    ErrorCode.EMAIL_EXISTS,
    ErrorCode.USERNAME_EXISTS,
    ErrorCode.ALREADY_JOINED,
    ErrorCode.ROOM_FULL,
    ErrorCode.ROOM_NAME_EXISTS,
    ErrorCode.ALREADY_EXISTS,
)
_status(
    422,
    ErrorCode.VALIDATION_ERROR,
    ErrorCode.MISSING_FIELD,
    ErrorCode.INVALID_FORMAT,
    ErrorCode.INVALID_UUID,
    ErrorCode.INVALID_EMAIL,
    ErrorCode.WEAK_PASSWORD,
)
_status(429, ErrorCode.RATE_LIMIT_EXCEEDED, ErrorCode.LOGIN_ATTEMPTS)
_status(
    500,
    ErrorCode.DATABASE_ERROR,
    ErrorCode.REDIS_ERROR,
    ErrorCode.INTERNAL_ERROR,
)

_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MISSING_TOKEN: "Authentication token is required",
    ErrorCode.INVALID_TOKEN: "Invalid or expired authentication token",
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorCode.TOKEN_EXPIRED: "Authentication token has expired",
    ErrorCode.ACCOUNT_LOCKED: "Your account has been locked",
    ErrorCode.INSUFFICIENT_PERMISSIONS: "You don't have permission to perform this action",
    ErrorCode.UNAUTHORIZED: "User not authenticated",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.EMAIL_EXISTS: "Email address is already registered",
    ErrorCode.USERNAME_EXISTS: "Username is already taken",
    ErrorCode.INVALID_EMAIL: "Invalid email format",
    ErrorCode.WEAK_PASSWORD: "Password does not meet requirements",
    ErrorCode.ROOM_NOT_FOUND: "Room not found",
    ErrorCode.ALREADY_JOINED: "You have already joined this room",
    ErrorCode.NOT_MEMBER: "You are not a member of this room",
    ErrorCode.ROOM_FULL: "Room has reached maximum capacity",
    ErrorCode.ROOM_NAME_EXISTS: "Room name is already taken",
    ErrorCode.PRIVATE_NO_ACCESS: "This is a private room",
    ErrorCode.OWNER_REQUIRED: "Only room owner can perform this action",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.ALREADY_EXISTS: "Resource already exists",
    ErrorCode.FORBIDDEN: "Access to this resource is forbidden",
    ErrorCode.METHOD_NOT_ALLOWED: "Method not allowed",
    ErrorCode.VALIDATION_ERROR: "Input validation failed",
    ErrorCode.MISSING_FIELD: "A required field is missing",
    ErrorCode.INVALID_FORMAT: "A field has an invalid format",
    ErrorCode.INVALID_UUID: "Invalid UUID format",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests. Please try again later",
    ErrorCode.LOGIN_ATTEMPTS: "Too many login attempts. Please try again later",
    ErrorCode.DATABASE_ERROR: "Database operation failed",
    ErrorCode.REDIS_ERROR: "Cache service error",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later",
}


class AppError(Exception):
    """A failure with a stable code, surfaced to clients as the error envelope.

    `internal` is logged but never returned to the client.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        internal: Optional[str] = None,
    ):
        self.code = code
        self.message = message or _MESSAGES[code]
        self.details = details
        self.internal = internal
        super().__init__(f"{code.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return _STATUS[self.code]

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    def to_body(self) -> dict:
        return error_body(self.code, self.message, self.details)


def error_body(
    code: ErrorCode, message: Optional[str] = None, details: Optional[Any] = None
) -> dict:
    """Build the canonical `{"error": {...}}` envelope."""
    error: dict[str, Any] = {
        "code": code.value,
        "message": message or _MESSAGES[code],
    }
    if details is not None:
        error["details"] = details
    error["timestamp"] = datetime.now(timezone.utc).isoformat()
    return {"error": error}


def field_errors(errors: Iterable[dict], skip: tuple[str, ...] = ()) -> dict[str, list[str]]:
    """Flatten pydantic error dicts into {field: [messages]}.

    Leading location parts listed in `skip` (e.g. "body") are dropped.
    """
    fields: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        while loc and loc[0] in skip:
            loc.pop(0)
        field = ".".join(loc) or "input"
        fields.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return fields


def validation_error(errors: Iterable[dict]) -> AppError:
    return AppError(ErrorCode.VALIDATION_ERROR, details=field_errors(errors))
