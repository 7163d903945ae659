"""Per-ciphertext disclosure policy (who may decrypt what, and when)."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, FrozenSet, Optional, Set

from .errors import VisibilityDowngrade
from .fhe import EncryptedValue


class Visibility(IntEnum):
    """Disclosure levels, ordered. A value only ever moves up this scale."""

    ENGINE_ONLY = 0
    OWNER = 1
    PUBLIC = 2

    def __str__(self) -> str:
        return self.name.lower()


@dataclass
class DisclosureRecord:
    level: Visibility = Visibility.ENGINE_ONLY
    accounts: Set[str] = field(default_factory=set)


class DisclosureManager:
    """Track the visibility of every ciphertext handle the engine produces.

    Handles without a record are engine-only: the engine may compute with them
    but the decryption oracle serves them to nobody.
    """

    def __init__(self) -> None:
        self._records: Dict[int, DisclosureRecord] = {}
        self._lock = threading.Lock()

    def level_of(self, value: EncryptedValue) -> Visibility:
        record = self._records.get(value.handle)
        return record.level if record is not None else Visibility.ENGINE_ONLY

    def accounts_for(self, value: EncryptedValue) -> FrozenSet[str]:
        record = self._records.get(value.handle)
        return frozenset(record.accounts) if record is not None else frozenset()

    def raise_visibility(
        self,
        value: EncryptedValue,
        level: Visibility,
        account: Optional[str] = None,
    ) -> Visibility:
        """Move ``value`` to ``level`` (and grant ``account`` when given).

        Re-granting the current level is allowed; it only adds the account.
        """
        if level is Visibility.OWNER and account is None:
            raise ValueError("Owner-level disclosure needs the account being granted.")
        with self._lock:
            record = self._records.get(value.handle)
            current = record.level if record is not None else Visibility.ENGINE_ONLY
            if level < current:
                raise VisibilityDowngrade(
                    f"Handle {value.hex} is already {current}; cannot lower it to {level}."
                )
            if record is None:
                record = DisclosureRecord()
                self._records[value.handle] = record
            record.level = level
            if account is not None:
                record.accounts.add(account)
            return record.level

    def grant_owner(self, account: str, *values: EncryptedValue) -> None:
        """Let ``account`` decrypt ``values``; values already public stay public."""
        for value in values:
            if self.level_of(value) is Visibility.PUBLIC:
                continue
            self.raise_visibility(value, Visibility.OWNER, account)

    def make_public(self, *values: EncryptedValue) -> None:
        for value in values:
            self.raise_visibility(value, Visibility.PUBLIC)

    def can_decrypt(self, value: EncryptedValue, account: Optional[str] = None) -> bool:
        record = self._records.get(value.handle)
        if record is None:
            return False
        if record.level is Visibility.PUBLIC:
            return True
        return record.level is Visibility.OWNER and account is not None and account in record.accounts
