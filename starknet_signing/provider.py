from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.client_errors import ClientError
from starknet_py.net.client_models import Call
from starknet_py.net.full_node_client import FullNodeClient

from .errors import RpcError
from .utils import to_hex

logger = logging.getLogger(__name__)

SIGNATURE_ENTRY_POINTS = ("is_valid_signature", "isValidSignature")

# "VALID" as a short string, and the legacy boolean true
VALID_SIGNATURE_VALUES = frozenset({0x56414C4944, 1})

Signature = Union[Sequence[Union[int, str]], Mapping[str, Union[int, str]]]


@runtime_checkable
class ChainProvider(Protocol):
    async def verify_message(self, message_hash: str, signature: Signature, address: str) -> bool:
        ...

    async def is_deployed(self, address: str) -> bool:
        ...


def format_signature(signature: Any) -> List[str]:
    if isinstance(signature, Mapping):
        if "r" not in signature or "s" not in signature:
            raise ValueError("signature mapping requires r and s")
        parts = [signature["r"], signature["s"]]
    elif hasattr(signature, "r") and hasattr(signature, "s"):
        parts = [signature.r, signature.s]
    elif isinstance(signature, (str, bytes)):
        raise ValueError("signature must be a sequence of felts")
    else:
        parts = list(signature)
    return [to_hex(p) for p in parts]


class RpcProvider:
    """``ChainProvider`` backed by starknet-py's ``FullNodeClient``.

    Signatures are checked by calling the account's ``is_valid_signature``
    entry point, falling back to the legacy ``isValidSignature`` name.
    """

    def __init__(
        self,
        node_url: Optional[str] = None,
        client: Optional[FullNodeClient] = None,
        block_number: Union[int, str] = "latest",
    ):
        if client is None:
            if not node_url:
                raise ValueError("node_url is required")
            client = FullNodeClient(node_url=node_url)
        self.node_url = node_url or getattr(client, "url", None)
        self.client = client
        self.block_number = block_number

    async def get_class_at(self, address: str) -> Any:
        return await self.client.get_class_at(contract_address=_felt(address), block_number=self.block_number)

    async def call(self, address: str, entry_point: str, calldata: Sequence[Union[int, str]]) -> List[int]:
        call = Call(
            to_addr=_felt(address),
            selector=get_selector_from_name(entry_point),
            calldata=[_felt(v) for v in calldata],
        )
        return list(await self.client.call_contract(call, block_number=self.block_number))

    async def verify_message(self, message_hash: str, signature: Signature, address: str) -> bool:
        sig = format_signature(signature)
        calldata = [message_hash, len(sig), *sig]
        last_error: Optional[ClientError] = None
        for entry_point in SIGNATURE_ENTRY_POINTS:
            try:
                result = await self.call(address, entry_point, calldata)
            except ClientError as exc:
                logger.debug("%s on %s failed: %s", entry_point, address, exc.message)
                last_error = exc
                continue
            return bool(result) and result[0] in VALID_SIGNATURE_VALUES
        raise RpcError(
            f"signature verification failed for {address}: {last_error.message if last_error else 'no entry point'}",
            code=last_error.code if last_error else None,
            data=last_error.data if last_error else None,
        ) from last_error

    async def is_deployed(self, address: str) -> bool:
        try:
            await self.get_class_at(address)
            return True
        except ClientError as exc:
            logger.debug("class lookup for %s failed: %s", address, exc.message)
            return False

    def __repr__(self) -> str:
        return f"RpcProvider({self.node_url!r})"


def _felt(value: Union[int, str]) -> int:
    return int(to_hex(value), 16)


def as_provider(provider: Union[ChainProvider, str]) -> ChainProvider:
    if isinstance(provider, str):
        return RpcProvider(provider)
    return provider
