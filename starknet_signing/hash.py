from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx
from starknet_py.utils.typed_data import TypedData

from .config import SigningConfig, resolve_config
from .errors import CartridgeHashError
from .types import SignatureMethod

logger = logging.getLogger(__name__)

USER_AGENT = "starknet-signing-python/0.1.0"


async def get_message_hash(
    typed_data: Mapping[str, Any],
    address: str,
    method: str = SignatureMethod.STARKNET,
    config: Optional[SigningConfig] = None,
    http: Optional[httpx.AsyncClient] = None,
    timeout_seconds: float = 10.0,
) -> str:
    if method == SignatureMethod.STARKNET:
        return starknet_message_hash(typed_data, address)
    if method == SignatureMethod.CONTROLLER:
        return await cartridge_message_hash(typed_data, address, resolve_config(config), http, timeout_seconds)
    raise ValueError(f"unsupported signature method: {method}")


def starknet_message_hash(typed_data: Mapping[str, Any], address: str) -> str:
    return hex(TypedData.from_dict(dict(typed_data)).message_hash(int(address, 16)))


async def cartridge_message_hash(
    typed_data: Mapping[str, Any],
    address: str,
    config: SigningConfig,
    http: Optional[httpx.AsyncClient] = None,
    timeout_seconds: float = 10.0,
) -> str:
    url = config.cartridge_validator_url or SigningConfig().cartridge_validator_url
    body = {"typed_data": dict(typed_data), "account": address}
    headers = {"Accept": "text/plain", "User-Agent": USER_AGENT}
    logger.debug("requesting controller hash from %s for %s", url, address)
    if http is not None:
        resp = await http.post(url, json=body, headers=headers)
    else:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            resp = await client.post(url, json=body, headers=headers)
    if not 200 <= resp.status_code < 300:
        raise CartridgeHashError(resp.status_code, resp.reason_phrase or f"HTTP {resp.status_code}")
    return resp.text.strip()
