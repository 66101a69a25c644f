from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .config import SigningConfig
from .errors import AccountNotDeployedError, TypedDataError
from .hash import get_message_hash
from .provider import ChainProvider, Signature, as_provider
from .types import SignatureMethod, ValidationResult, VerifyError, VerifyOptions
from .utils import parse_number

logger = logging.getLogger(__name__)

MILLISECONDS_THRESHOLD = 10**12

MessageHasher = Callable[[Mapping[str, Any], str, str], Awaitable[str]]


def check_timestamp(typed_data: Mapping[str, Any], max_age: int, now: Optional[int] = None) -> ValidationResult:
    message = typed_data.get("message") if isinstance(typed_data, Mapping) else None
    if not isinstance(message, Mapping) or "timestamp" not in message:
        return ValidationResult.valid()

    timestamp = parse_number(message["timestamp"])
    if timestamp is None:
        return ValidationResult.invalid(VerifyError.INVALID_TIMESTAMP)

    if now is None:
        now = int(time.time())
    if timestamp > MILLISECONDS_THRESHOLD:
        timestamp = timestamp // 1000

    if now - timestamp > max_age:
        return ValidationResult.invalid(VerifyError.EXPIRED)
    return ValidationResult.valid()


async def _deployment_result(provider: ChainProvider, address: str) -> ValidationResult:
    try:
        deployed = await provider.is_deployed(address)
    except Exception as exc:
        logger.warning("deployment query for %s failed, treating as not deployed: %s", address, exc)
        deployed = False
    if deployed:
        return ValidationResult.invalid(VerifyError.INVALID_SIGNATURE)
    return ValidationResult.invalid(VerifyError.ACCOUNT_NOT_DEPLOYED)


async def is_account_deployed(provider: Union[ChainProvider, str], address: str) -> bool:
    try:
        return bool(await as_provider(provider).is_deployed(address))
    except Exception as exc:
        logger.warning("deployment query for %s failed: %s", address, exc)
        return False


async def verify_signature(
    provider: Union[ChainProvider, str],
    typed_data: Mapping[str, Any],
    signature: Signature,
    address: str,
    options: Optional[VerifyOptions] = None,
    *,
    config: Optional[SigningConfig] = None,
    hasher: Optional[MessageHasher] = None,
) -> ValidationResult:
    """Run the structural, temporal and cryptographic checks in order.

    Expected failures are returned as an invalid ``ValidationResult`` carrying
    one of the ``VerifyError`` strings; nothing is raised for them.
    """
    chain = as_provider(provider)
    opts = options or VerifyOptions()
    if config is None and opts.template is not None:
        config = opts.template.config

    if opts.template is not None:
        try:
            opts.template.validate_structure(typed_data)
        except TypedDataError as exc:
            logger.debug("typed data rejected for %s: %s", address, exc)
            return ValidationResult.invalid(f"{VerifyError.INVALID_TYPED_DATA}: {exc}")

    if opts.max_age is not None:
        timestamp_result = check_timestamp(typed_data, opts.max_age)
        if not timestamp_result.is_valid:
            logger.debug("timestamp rejected for %s: %s", address, timestamp_result.error)
            return timestamp_result

    try:
        if hasher is not None:
            message_hash = await hasher(typed_data, address, opts.method)
        else:
            message_hash = await get_message_hash(typed_data, address, opts.method, config)
        if await chain.verify_message(message_hash, signature, address):
            return ValidationResult.valid()
        logger.debug("signature check returned false for %s", address)
    except Exception as exc:
        logger.debug("signature check failed for %s: %s", address, exc)

    return await _deployment_result(chain, address)


async def verify(
    provider: Union[ChainProvider, str],
    typed_data: Mapping[str, Any],
    signature: Signature,
    address: str,
    method: str = SignatureMethod.STARKNET,
    *,
    config: Optional[SigningConfig] = None,
    hasher: Optional[MessageHasher] = None,
) -> bool:
    result = await verify_signature(
        provider,
        typed_data,
        signature,
        address,
        VerifyOptions(method=method),
        config=config,
        hasher=hasher,
    )
    if result.error == VerifyError.ACCOUNT_NOT_DEPLOYED:
        raise AccountNotDeployedError(address)
    return result.is_valid
