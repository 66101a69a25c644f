from __future__ import annotations

import inspect
from typing import Any, Dict, List, Mapping, Protocol

from .types import SignatureMethod, SignedMessage


class SigningAccount(Protocol):
    address: Any

    def sign_message(self, typed_data: Any) -> Any:
        ...


async def _account_signature(account: SigningAccount, typed_data: Mapping[str, Any]) -> List[Any]:
    signature = account.sign_message(dict(typed_data))
    if inspect.isawaitable(signature):
        signature = await signature
    return list(signature)


def _account_address(account: SigningAccount) -> str:
    address = account.address
    return hex(address) if isinstance(address, int) else str(address)


async def sign_message(
    account: SigningAccount,
    typed_data: Dict[str, Any],
    method: str = SignatureMethod.STARKNET,
) -> SignedMessage:
    signature = await _account_signature(account, typed_data)
    return SignedMessage(
        typed_data=typed_data,
        signature=signature,
        address=_account_address(account),
        method=method,
    )


async def sign(account: SigningAccount, typed_data: Dict[str, Any]) -> List[Any]:
    return await _account_signature(account, typed_data)
