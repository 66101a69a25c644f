from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from .config import SigningConfig
from .provider import ChainProvider, Signature
from .types import ValidationResult, VerifyError, VerifyWithNonceOptions
from .utils import normalize_address, parse_integer
from .verification import MessageHasher, verify_signature

logger = logging.getLogger(__name__)

COUNTER_HEX_DIGITS = 64


@runtime_checkable
class NonceAdapter(Protocol):
    """Storage contract for per-address nonce counters.

    ``update_nonce`` must be a single atomic compare-and-set: store ``new_nonce``
    only if it is strictly greater than the stored counter at commit time, and
    report whether it did. An adapter that reads and then writes in two steps
    cannot prevent concurrent replays. With a SQL store this is one statement::

        UPDATE users SET counter = :new WHERE address = :address AND counter < :new
    """

    async def get_current_nonce(self, address: str) -> Optional[int]:
        ...

    async def update_nonce(self, address: str, new_nonce: int) -> bool:
        ...


class MemoryNonceAdapter:
    """In-memory adapter for tests and development.

    Nonces are lost on restart, and ``update_nonce`` is a read followed by a
    write, so it is not safe to share across threads or processes.
    """

    def __init__(self, initial: Optional[Mapping[str, int]] = None):
        self._nonces: Dict[str, int] = {}
        for address, nonce in (initial or {}).items():
            self.set_nonce(address, nonce)

    async def get_current_nonce(self, address: str) -> Optional[int]:
        return self._nonces.get(normalize_address(address))

    async def update_nonce(self, address: str, new_nonce: int) -> bool:
        key = normalize_address(address)
        current = self._nonces.get(key)
        if current is None or new_nonce <= current:
            return False
        self._nonces[key] = new_nonce
        return True

    def set_nonce(self, address: str, nonce: int) -> None:
        self._nonces[normalize_address(address)] = nonce

    def clear(self) -> None:
        self._nonces.clear()


class SqliteNonceAdapter:
    """SQLite-backed adapter whose commit is a single conditional UPDATE.

    Statements run in a worker thread via ``asyncio.to_thread`` so the event
    loop is never blocked. Counters are stored as fixed-width hex text, which
    orders the same way as the numbers and holds any felt; nonces outside
    ``[0, 2**256)`` are refused.
    """

    def __init__(self, path: str = ":memory:", table: str = "nonces"):
        if not table.isidentifier():
            raise ValueError(f"invalid table name: {table}")
        self.table = table
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (address TEXT PRIMARY KEY, counter TEXT NOT NULL)")

    async def register(self, address: str, nonce: int = 0) -> None:
        await asyncio.to_thread(
            self._execute,
            f"INSERT INTO {self.table} (address, counter) VALUES (?, ?) ON CONFLICT(address) DO UPDATE SET counter = excluded.counter",
            (normalize_address(address), _encode_counter(nonce)),
        )

    async def get_current_nonce(self, address: str) -> Optional[int]:
        row = await asyncio.to_thread(self._fetchone, f"SELECT counter FROM {self.table} WHERE address = ?", (normalize_address(address),))
        return None if row is None else int(row[0], 16)

    async def update_nonce(self, address: str, new_nonce: int) -> bool:
        try:
            counter = _encode_counter(new_nonce)
            updated = await asyncio.to_thread(
                self._execute,
                f"UPDATE {self.table} SET counter = ? WHERE address = ? AND counter < ?",
                (counter, normalize_address(address), counter),
            )
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("nonce update for %s failed: %s", address, exc)
            return False
        return updated == 1

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: Tuple[Any, ...]) -> int:
        with self._lock:
            return self._conn.execute(sql, params).rowcount

    def _fetchone(self, sql: str, params: Tuple[Any, ...]) -> Optional[Tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()


def _encode_counter(nonce: int) -> str:
    if nonce < 0 or nonce >= 1 << (4 * COUNTER_HEX_DIGITS):
        raise ValueError(f"nonce {nonce} cannot be stored as a counter")
    return format(nonce, f"0{COUNTER_HEX_DIGITS}x")


async def verify_with_nonce(
    provider: Union[ChainProvider, str],
    typed_data: Mapping[str, Any],
    signature: Signature,
    address: str,
    nonce_adapter: NonceAdapter,
    options: Optional[VerifyWithNonceOptions] = None,
    *,
    config: Optional[SigningConfig] = None,
    hasher: Optional[MessageHasher] = None,
) -> ValidationResult:
    opts = options or VerifyWithNonceOptions()

    signature_result = await verify_signature(provider, typed_data, signature, address, opts, config=config, hasher=hasher)
    if not signature_result.is_valid:
        return signature_result

    nonce_field = opts.nonce_field or "nonce"
    message = typed_data.get("message") if isinstance(typed_data, Mapping) else None
    if not isinstance(message, Mapping) or nonce_field not in message:
        return ValidationResult.invalid(f"Missing {nonce_field} in message")

    nonce = parse_integer(message[nonce_field])
    if nonce is None:
        return ValidationResult.invalid(VerifyError.INVALID_NONCE_FORMAT)

    current = await nonce_adapter.get_current_nonce(address)
    if current is None:
        return ValidationResult.invalid(VerifyError.USER_NOT_FOUND)

    if nonce <= current:
        logger.debug("rejected nonce %s for %s, current is %s", nonce, address, current)
        return ValidationResult.invalid(VerifyError.INVALID_NONCE)

    if not await nonce_adapter.update_nonce(address, nonce):
        logger.warning("nonce commit %s for %s was refused", nonce, address)
        return ValidationResult.invalid(VerifyError.NONCE_UPDATE_FAILED)

    logger.info("consumed nonce %s for %s", nonce, address)
    return ValidationResult.valid()
