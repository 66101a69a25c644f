from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union


class TypedDataError(Exception):
    def __init__(self, message: str, field_info: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.message = message
        self.field_info: List[str] = list(field_info or [])

    def with_field(self, field: Union[str, Sequence[str]]) -> "TypedDataError":
        prefix = [field] if isinstance(field, str) else list(field)
        return TypedDataError(self.message, prefix + self.field_info)

    @property
    def path(self) -> str:
        return "->".join(self.field_info)

    def __str__(self) -> str:
        if not self.field_info:
            return self.message
        return f"{self.path}: {self.message}"

    def __repr__(self) -> str:
        return f"TypedDataError({self.message!r}, field_info={self.field_info!r})"


class AccountNotDeployedError(Exception):
    def __init__(self, address: Optional[str] = None):
        super().__init__("Account not deployed")
        self.address = address


class RpcError(Exception):
    def __init__(self, message: str, code: Optional[Any] = None, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data


class CartridgeHashError(Exception):
    def __init__(self, status_code: int, reason: str):
        super().__init__(f"Failed to compute Cartridge hash: {reason}")
        self.status_code = status_code
        self.reason = reason
