from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

if TYPE_CHECKING:
    from .template import SignatureTemplate


class SignatureMethod:
    STARKNET = "starknetjs"
    CONTROLLER = "controller"

    ALL = (STARKNET, CONTROLLER)


class VerifyError:
    INVALID_TYPED_DATA = "Invalid typed data"
    INVALID_TIMESTAMP = "Invalid timestamp format"
    EXPIRED = "Signature has expired"
    INVALID_SIGNATURE = "Invalid signature"
    ACCOUNT_NOT_DEPLOYED = "Account not deployed"
    INVALID_NONCE_FORMAT = "Invalid nonce format"
    USER_NOT_FOUND = "User not found"
    INVALID_NONCE = "Invalid nonce"
    NONCE_UPDATE_FAILED = "Failed to update nonce"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.is_valid and self.error is not None:
            raise ValueError("a valid result cannot carry an error")
        if not self.is_valid and not self.error:
            raise ValueError("an invalid result requires an error message")

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class VerifyOptions:
    max_age: Optional[int] = None
    template: Optional["SignatureTemplate"] = None
    method: str = SignatureMethod.STARKNET


@dataclass(frozen=True)
class VerifyWithNonceOptions(VerifyOptions):
    nonce_field: str = "nonce"


@dataclass
class SignedMessage:
    typed_data: Dict[str, Any]
    signature: Sequence[Any]
    address: str
    method: str = SignatureMethod.STARKNET
