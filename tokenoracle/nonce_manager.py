"""Bounded pool of index slots handed out to concurrent workers."""

from __future__ import annotations

import asyncio
import secrets
from collections import deque
from types import TracebackType

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class SlotError(RuntimeError):
    """Raised when a slot cannot be acquired or released."""


def _base58(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_BASE58_ALPHABET[rem])
    leading = len(data) - len(data.lstrip(b"\0"))
    return "1" * leading + "".join(reversed(digits))


def _dummy_pubkey() -> str:
    return _base58(secrets.token_bytes(32))


class IndexLease:
    """A held slot; releases it when the async context exits or on release()."""

    def __init__(self, index: int, manager: IndexSlotManager) -> None:
        self.index = index
        self._manager = manager
        self._released = False

    async def release(self) -> None:
        """Return the slot; errors such as an earlier manual release are ignored."""
        if self._released:
            return
        self._released = True
        try:
            await self._manager.release_index(self.index)
        except SlotError:
            pass

    async def __aenter__(self) -> IndexLease:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()


class IndexSlotManager:
    """Hands out at most ``capacity`` index slots at a time, lowest free index first."""

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._permits = capacity
        self._free: deque[int] = deque(range(capacity))
        self._allocated: set[int] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available_permits(self) -> int:
        """Number of slots that can be acquired without waiting."""
        return self._permits

    def _add_permit(self) -> None:
        self._permits += 1
        self._semaphore.release()

    async def _claim(self, label: str) -> int:
        await self._semaphore.acquire()
        self._permits -= 1
        try:
            if not self._free:
                raise SlotError(f"no free {label}index despite semaphore permit")
            index = self._free.popleft()
            if index >= self._capacity:
                raise SlotError(f"invalid {label}index {index} >= {self._capacity}")
        except SlotError:
            self._add_permit()
            raise
        self._allocated.add(index)
        return index

    async def acquire_index(self) -> IndexLease:
        """Wait for a free slot and lease it."""
        return IndexLease(await self._claim(""), self)

    async def release_index(self, index: int) -> None:
        """Return a leased slot to the pool."""
        if index not in self._allocated:
            raise SlotError(f"index {index} was not allocated")
        self._allocated.remove(index)
        self._free.append(index)
        self._add_permit()

    async def acquire_nonce(self) -> tuple[str, int]:
        """Wait for a free slot; returns a placeholder public key and the index."""
        index = await self._claim("nonce ")
        return _dummy_pubkey(), index

    def release_nonce(self, index: int) -> None:
        """Put an index back in the pool without checking it was handed out."""
        self._free.append(index)
        self._add_permit()

    def pubkey_for_index(self, index: int) -> str:
        """A fresh placeholder public key; the index is not used."""
        return _dummy_pubkey()


NonceManager = IndexSlotManager