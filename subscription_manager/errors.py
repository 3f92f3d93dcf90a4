"""
Subscription Manager - Error Translation.

============================================================
PURPOSE
============================================================
Translates raw failures into one stable error taxonomy:
- Program error codes (6000-6008) map to named kinds
- Everything else (unknown codes, transport failures,
  timeouts, plain exceptions) maps to UNKNOWN with the
  original message preserved

translate_error() never raises.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple

from .exceptions import AccountAlreadyInUseError


logger = logging.getLogger(__name__)


# ============================================================
# ERROR TAXONOMY
# ============================================================

class SubscriptionErrorCode(IntEnum):
    """Numeric error codes returned by the subscription program."""

    PERIOD_TOO_SHORT = 6000
    ALREADY_SUBSCRIBED = 6001
    INSUFFICIENT_PAYMENT = 6002
    INVALID_NFT_HOLDER = 6003
    SUBSCRIPTION_NOT_FOUND = 6004
    QUALITY_OUT_OF_RANGE = 6005
    SUBSCRIPTION_ALREADY_ENDED = 6006
    ACTIVE_SUBSCRIPTION = 6007
    NOT_OWNER = 6008


class ErrorKind(Enum):
    """Application-level error kinds."""

    PERIOD_TOO_SHORT = "PeriodTooShort"
    ALREADY_SUBSCRIBED = "AlreadySubscribed"
    INSUFFICIENT_PAYMENT = "InsufficientPayment"
    INVALID_NFT_HOLDER = "InvalidNFTHolder"
    SUBSCRIPTION_NOT_FOUND = "SubscriptionNotFound"
    QUALITY_OUT_OF_RANGE = "QualityOutOfRange"
    SUBSCRIPTION_ALREADY_ENDED = "SubscriptionAlreadyEnded"
    ACTIVE_SUBSCRIPTION = "ActiveSubscription"
    NOT_OWNER = "NotOwner"
    UNKNOWN = "Unknown"


# Program code -> (kind, human-readable message)
PROGRAM_ERROR_MAP: Dict[int, Tuple[ErrorKind, str]] = {
    SubscriptionErrorCode.PERIOD_TOO_SHORT: (
        ErrorKind.PERIOD_TOO_SHORT, "Subscription period is too short"
    ),
    SubscriptionErrorCode.ALREADY_SUBSCRIBED: (
        ErrorKind.ALREADY_SUBSCRIBED, "Already subscribed"
    ),
    SubscriptionErrorCode.INSUFFICIENT_PAYMENT: (
        ErrorKind.INSUFFICIENT_PAYMENT, "Insufficient payment"
    ),
    SubscriptionErrorCode.INVALID_NFT_HOLDER: (
        ErrorKind.INVALID_NFT_HOLDER, "Invalid NFT holder"
    ),
    SubscriptionErrorCode.SUBSCRIPTION_NOT_FOUND: (
        ErrorKind.SUBSCRIPTION_NOT_FOUND, "Subscription not found"
    ),
    SubscriptionErrorCode.QUALITY_OUT_OF_RANGE: (
        ErrorKind.QUALITY_OUT_OF_RANGE, "Quality score must be between 0 and 100"
    ),
    SubscriptionErrorCode.SUBSCRIPTION_ALREADY_ENDED: (
        ErrorKind.SUBSCRIPTION_ALREADY_ENDED, "Subscription has already ended"
    ),
    SubscriptionErrorCode.ACTIVE_SUBSCRIPTION: (
        ErrorKind.ACTIVE_SUBSCRIPTION, "Subscription is still active"
    ),
    SubscriptionErrorCode.NOT_OWNER: (
        ErrorKind.NOT_OWNER, "Not the contract owner"
    ),
}


# ============================================================
# SUBSCRIPTION ERROR
# ============================================================

@dataclass
class SubscriptionError:
    """
    Standardized subscription error.

    Returned by translate_error() and carried by SubscriptionException.
    """

    kind: ErrorKind
    message: str

    program_code: Optional[int] = None
    """Original program code, None for non-program failures."""

    original_message: Optional[str] = None
    """Message of the raw error."""

    operation: Optional[str] = None
    """Orchestrator operation that failed."""

    @property
    def code(self) -> str:
        """Stable string code, e.g. AlreadySubscribed."""
        return self.kind.value

    def is_program_error(self) -> bool:
        """Whether the program itself rejected the request."""
        return self.kind is not ErrorKind.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "program_code": self.program_code,
            "original_message": self.original_message,
            "operation": self.operation,
        }

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class SubscriptionException(Exception):
    """Exception wrapper for SubscriptionError."""

    def __init__(self, error: SubscriptionError):
        self.error = error
        super().__init__(str(error))

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


# ============================================================
# TRANSLATION
# ============================================================

def _extract_code(raw: Any) -> Optional[int]:
    code = getattr(raw, "code", None)
    if code is None or isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, str) and code.strip().lstrip("-").isdigit():
        return int(code.strip())
    return None


def _extract_message(raw: Any) -> str:
    if raw is None:
        return "Unknown error"
    message = getattr(raw, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(raw)
    if text:
        return text
    return type(raw).__name__


def error_for_code(
    code: int,
    operation: Optional[str] = None,
    original_message: Optional[str] = None,
) -> SubscriptionError:
    """
    Build the error for a program code.

    Unknown codes give UNKNOWN with "Unknown error: <message>".
    """
    if code in PROGRAM_ERROR_MAP:
        kind, message = PROGRAM_ERROR_MAP[code]
        return SubscriptionError(
            kind=kind,
            message=message,
            program_code=code,
            original_message=original_message,
            operation=operation,
        )
    return SubscriptionError(
        kind=ErrorKind.UNKNOWN,
        message=f"Unknown error: {original_message or code}",
        program_code=code,
        original_message=original_message,
        operation=operation,
    )


def translate_error(raw: Any, operation: Optional[str] = None) -> SubscriptionError:
    """
    Translate a raw error into a SubscriptionError.

    Args:
        raw: Exception, error object with a `code` attribute, or any value
        operation: Operation name to attach for context

    Returns:
        SubscriptionError; UNKNOWN when no known code is present
    """
    if isinstance(raw, SubscriptionException):
        error = raw.error
        if operation and error.operation is None:
            error.operation = operation
        return error

    if isinstance(raw, SubscriptionError):
        return raw

    try:
        original = _extract_message(raw)
    except Exception:  # str() of a foreign object can fail
        original = type(raw).__name__

    code = _extract_code(raw)
    if code is not None:
        return error_for_code(code, operation, original)

    if isinstance(raw, asyncio.TimeoutError):
        return create_timeout_error(operation=operation)

    return create_transport_error(original, operation)


def is_already_initialized(raw: Any) -> bool:
    """Whether a failure says the target account already exists."""
    if isinstance(raw, AccountAlreadyInUseError):
        return True
    try:
        return "already in use" in str(raw).lower()
    except Exception:
        return False


# ============================================================
# TRANSPORT ERROR HELPERS
# ============================================================

def create_transport_error(message: str, operation: Optional[str] = None) -> SubscriptionError:
    """Create a non-coded error. The original message is kept as-is."""
    return SubscriptionError(
        kind=ErrorKind.UNKNOWN,
        message=message,
        original_message=message,
        operation=operation,
    )


def create_timeout_error(
    timeout_seconds: Optional[float] = None,
    operation: Optional[str] = None,
) -> SubscriptionError:
    """Create a timeout error. Timeouts are ordinary transport failures."""
    if timeout_seconds is not None:
        detail = f"Request timed out after {timeout_seconds}s"
    else:
        detail = "Request timed out"
    return create_transport_error(detail, operation)
