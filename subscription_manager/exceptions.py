"""
Subscription Manager - Exception Hierarchy.

Two families live here:
- Adapter exceptions raised by this package before or around a call
  (configuration, malformed keys, missing wallet).
- Client exceptions raised by ProgramClient / SolanaRpcConnection
  implementations. These carry the raw program code, if any, and are
  translated into SubscriptionError by errors.translate_error().
"""

from typing import Any, Optional


class SubscriptionManagerError(Exception):
    """Base exception for all subscription manager errors."""


class ConfigurationError(SubscriptionManagerError):
    """Missing or invalid configuration at construction time."""

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.config_key = config_key


class InvalidIdentifierError(SubscriptionManagerError, ValueError):
    """Value is not a 32-byte public key."""

    def __init__(self, value: Any, field_name: str = "identifier") -> None:
        self.value = value
        self.field_name = field_name
        super().__init__(f"Invalid {field_name}: {value!r}")


class WalletNotConnectedError(SubscriptionManagerError):
    """No signing identity is connected."""

    def __init__(self, message: str = "Wallet not connected") -> None:
        super().__init__(message)


# ============================================================
# CLIENT-SIDE ERRORS
# ============================================================

class ProgramClientError(Exception):
    """
    Error raised by a program client.

    `code` is the program's numeric error code when the program rejected
    the transition, None for anything else.
    """

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} (code={self.code})"
        return self.message


class AccountNotFoundError(ProgramClientError):
    """Account does not exist at the given address."""

    def __init__(self, address: Any, kind: Optional[str] = None) -> None:
        self.address = address
        self.kind = kind
        label = f"{kind} account" if kind else "Account"
        super().__init__(f"{label} does not exist: {address}")


class AccountAlreadyInUseError(ProgramClientError):
    """Account at the given address has already been initialized."""

    def __init__(self, address: Any) -> None:
        self.address = address
        super().__init__(f"Allocate: account Address {{ address: {address} }} already in use")


class TransportError(ProgramClientError):
    """Network or RPC failure with no program code."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rpc_url: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.rpc_url = rpc_url
        self.details = details or {}
