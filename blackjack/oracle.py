"""Decryption oracle - serves plaintexts according to the disclosure policy."""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Sequence

from .disclosure import DisclosureManager
from .errors import DisclosureError, HandleNotReady
from .fhe import DecryptionResult, EncryptedValue, FheBackend
from .logging_utils import get_logger

logger = get_logger(__name__)


class DecryptionOracle:
    """Asynchronous decryption gateway sitting outside the engine.

    The engine never decrypts. Collaborators ask the oracle, which checks the
    disclosure manager before touching the backend. ``latency`` is the number of
    polls a request is refused with :class:`HandleNotReady` before the oracle
    has caught up with its handles; callers are expected to retry. Poll counts
    are forgotten once a request is served.
    """

    def __init__(self, backend: FheBackend, disclosure: DisclosureManager, latency: int = 0) -> None:
        if latency < 0:
            raise ValueError("Oracle latency cannot be negative.")
        self.backend = backend
        self.disclosure = disclosure
        self.latency = latency
        self._polls: Dict[int, int] = {}

    async def public_decrypt(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        """Decrypt values that are publicly decryptable; no authentication needed."""
        return await self._decrypt(values, account=None)

    async def user_decrypt(self, values: Sequence[EncryptedValue], account: str) -> DecryptionResult:
        """Decrypt values for an authenticated ``account``.

        Authentication itself is the platform's job; by the time a request
        reaches here ``account`` is trusted.
        """
        return await self._decrypt(values, account=account)

    async def _decrypt(self, values: Sequence[EncryptedValue], account: Optional[str]) -> DecryptionResult:
        if not values:
            raise ValueError("Nothing to decrypt.")
        for value in values:
            if not self.disclosure.can_decrypt(value, account):
                who = account or "the public"
                raise DisclosureError(f"Handle {value.hex} is not decryptable by {who}.")
        self._check_ready(values)
        # Yield once so callers always observe an asynchronous round trip.
        await asyncio.sleep(0)
        result = self.backend.decrypt(values)
        logger.debug("Decrypted %d handle(s) for %s", len(values), account or "public")
        return result

    def _check_ready(self, values: Sequence[EncryptedValue]) -> None:
        pending = []
        for value in values:
            polls = self._polls.get(value.handle, 0)
            if polls < self.latency:
                self._polls[value.handle] = polls + 1
                pending.append(value)
        if pending:
            raise HandleNotReady(f"{len(pending)} handle(s) not yet available for decryption.")
        for value in values:
            self._polls.pop(value.handle, None)

    def pending_count(self) -> int:
        """Handles polled at least once and not yet served."""
        return len(self._polls)
