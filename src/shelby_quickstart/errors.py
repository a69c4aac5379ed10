"""Exceptions raised by the Shelby clients and helpers for reading error messages."""
import re
from enum import Enum
from typing import Optional, Tuple, Type, Union


class ShelbyError(Exception):
    """Base class for errors returned by the Shelby RPC endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class BadRequest(ShelbyError):
    """HTTP 400."""


class Unauthorized(ShelbyError):
    """HTTP 401, usually an invalid API key."""


class Forbidden(ShelbyError):
    """HTTP 403."""


class NotFound(ShelbyError):
    """HTTP 404, the blob does not exist or has expired."""


class Conflict(ShelbyError):
    """HTTP 409, a blob with this name was already written."""


class PayloadTooLarge(ShelbyError):
    """HTTP 413."""


class TooManyRequests(ShelbyError):
    """HTTP 429, the API key is being rate limited."""


class ServerError(ShelbyError):
    """HTTP 5xx."""


_STATUS_ERRORS = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    413: PayloadTooLarge,
    429: TooManyRequests,
}


def get_error_from_status(status_code: int, reason: Optional[str] = None) -> ShelbyError:
    """Build the exception matching an HTTP status code.

    :param status_code: HTTP status returned by the server.
    :param reason: Body text or X-Reason header, kept verbatim so error codes stay searchable.
    :return: ShelbyError subclass instance (not raised).
    """
    if status_code >= 500:
        cls: Type[ShelbyError] = ServerError
    else:
        cls = _STATUS_ERRORS.get(status_code, ShelbyError)
    reason = (reason or '').strip()
    message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
    return cls(message, status_code=status_code, reason=reason)


class ConfigError(Exception):
    """Missing or invalid local configuration (.env values, Shelby CLI config)."""


class AccountsFileError(Exception):
    """The account list file is missing or contains an unusable line."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


# ----------------------- Upload failure classification -----------------------

class UploadErrorKind(Enum):
    ALREADY_EXISTS = "already_exists"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    UNKNOWN = "unknown"


# Checked in order, first match wins.
UPLOAD_ERROR_PATTERNS: Tuple[Tuple[str, UploadErrorKind], ...] = (
    ("EBLOB_WRITE_CHUNKSET_ALREADY_EXISTS", UploadErrorKind.ALREADY_EXISTS),
    ("INSUFFICIENT_BALANCE", UploadErrorKind.INSUFFICIENT_BALANCE),
    ("EBLOB_WRITE_INSUFFICIENT_FUNDS", UploadErrorKind.INSUFFICIENT_BALANCE),
    ("E_INSUFFICIENT_FUNDS", UploadErrorKind.INSUFFICIENT_BALANCE),
)

# Which token is missing when an upload is refused for lack of funds.
# None means the storage token, whose ticker is configured in config.py.
FUNDING_PATTERNS: Tuple[Tuple[str, Optional[str]], ...] = (
    ("INSUFFICIENT_BALANCE_FOR_TRANSACTION_FEE", "APT"),
    ("EBLOB_WRITE_INSUFFICIENT_FUNDS", None),
    ("E_INSUFFICIENT_FUNDS", None),
)

_SERVER_ERROR_RE = re.compile(r"500|internal server error", re.IGNORECASE)
_NOT_FOUND_RE = re.compile(r"not\s*found|404", re.IGNORECASE)


def _message_of(error: Union[BaseException, str]) -> str:
    if isinstance(error, BaseException):
        return str(error)
    return error


def classify_upload_error(error: Union[BaseException, str]) -> UploadErrorKind:
    """Map an upload failure onto the kinds the CLI reports differently."""
    message = _message_of(error)
    for needle, kind in UPLOAD_ERROR_PATTERNS:
        if needle in message:
            return kind
    return UploadErrorKind.UNKNOWN


def funding_token_for(error: Union[BaseException, str], storage_ticker: str) -> Optional[str]:
    """Return the token an account is short of, or None if the error is not about funds."""
    message = _message_of(error)
    for needle, token in FUNDING_PATTERNS:
        if needle in message:
            return token or storage_ticker
    return None


def is_server_error(error: Union[BaseException, str]) -> bool:
    if isinstance(error, ServerError):
        return True
    return bool(_SERVER_ERROR_RE.search(_message_of(error)))


def is_not_found(error: Union[BaseException, str]) -> bool:
    if isinstance(error, NotFound):
        return True
    return bool(_NOT_FOUND_RE.search(_message_of(error)))


def is_rate_limited(error: Union[BaseException, str]) -> bool:
    if isinstance(error, TooManyRequests):
        return True
    return "429" in _message_of(error)
