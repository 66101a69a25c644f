from .config import DEFAULT_CARTRIDGE_VALIDATOR_URL, SigningConfig
from .errors import AccountNotDeployedError, CartridgeHashError, RpcError, TypedDataError
from .hash import get_message_hash
from .nonce import MemoryNonceAdapter, NonceAdapter, SqliteNonceAdapter, verify_with_nonce
from .provider import ChainProvider, RpcProvider
from .schema import check_type, parse_type, validate_type
from .signing import sign, sign_message
from .template import SignatureTemplate, create_template
from .types import (
    SignatureMethod,
    SignedMessage,
    ValidationResult,
    VerifyError,
    VerifyOptions,
    VerifyWithNonceOptions,
)
from .utils import address_equals, normalize_address, pad_address
from .verification import check_timestamp, is_account_deployed, verify, verify_signature

__all__ = [
    "DEFAULT_CARTRIDGE_VALIDATOR_URL",
    "SigningConfig",
    "AccountNotDeployedError",
    "CartridgeHashError",
    "RpcError",
    "TypedDataError",
    "get_message_hash",
    "MemoryNonceAdapter",
    "NonceAdapter",
    "SqliteNonceAdapter",
    "verify_with_nonce",
    "ChainProvider",
    "RpcProvider",
    "check_type",
    "parse_type",
    "validate_type",
    "sign",
    "sign_message",
    "SignatureTemplate",
    "create_template",
    "SignatureMethod",
    "SignedMessage",
    "ValidationResult",
    "VerifyError",
    "VerifyOptions",
    "VerifyWithNonceOptions",
    "address_equals",
    "normalize_address",
    "pad_address",
    "check_timestamp",
    "is_account_deployed",
    "verify",
    "verify_signature",
]
