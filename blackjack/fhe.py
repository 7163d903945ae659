"""Encrypted value handles and the homomorphic primitive the engine consumes.

The engine only ever talks to :class:`FheBackend`. :class:`MockFheBackend` is the
in-process reference backend: plaintexts live in a private table keyed by
opaque handles, and only the decryption oracle reads them back.
"""

from __future__ import annotations

import hashlib
import hmac
import itertools
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from .errors import InvalidInputProof

BOOL_BITS = 1
CARD_BITS = 8
WORD_BITS = 32
SUPPORTED_BITS = (BOOL_BITS, CARD_BITS, WORD_BITS)

HANDLE_BYTES = 32
TAG_BYTES = 32


@dataclass(frozen=True)
class EncryptedValue:
    """Opaque reference to an encrypted scalar of a declared width."""

    handle: int
    bits: int

    def __bool__(self) -> bool:
        raise TypeError("Encrypted values cannot be branched on; use FheBackend.select().")

    @property
    def hex(self) -> str:
        return "0x" + self.handle.to_bytes(HANDLE_BYTES, "big").hex()


Operand = Union[EncryptedValue, int]


@dataclass(frozen=True)
class EncryptedInput:
    """Batch of client-encrypted values plus the proof binding them to an account."""

    values: Tuple[EncryptedValue, ...]
    proof: bytes

    @property
    def proof_hex(self) -> str:
        return "0x" + self.proof.hex()


@dataclass(frozen=True)
class DecryptionResult:
    """Plaintexts returned by the oracle with the backend's signature over them."""

    values: Tuple[EncryptedValue, ...]
    plaintexts: Tuple[int, ...]
    signature: bytes

    def __getitem__(self, index: int) -> int:
        return self.plaintexts[index]

    def __len__(self) -> int:
        return len(self.plaintexts)


def _handle_bytes(handle: int) -> bytes:
    return handle.to_bytes(HANDLE_BYTES, "big")


def parse_hex(value: str) -> bytes:
    """Decode a ``0x``-prefixed (or bare) hex string."""
    text = value[2:] if value.startswith("0x") else value
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise ValueError(f"Malformed hex string: {value!r}") from exc


class FheBackend(ABC):
    """Homomorphic operations over encrypted integers.

    Every operation returns a fresh handle; operands are never mutated. Integer
    operands stand for plaintext scalars of the other operand's width.
    """

    # Encryption ----------------------------------------------------------

    @abstractmethod
    def trivial_encrypt(self, plain: int, bits: int = WORD_BITS) -> EncryptedValue:
        """Encrypt a public constant so it can take part in encrypted arithmetic."""

    @abstractmethod
    def encrypt_inputs(self, plains: Sequence[int], bits: int, account: str) -> EncryptedInput:
        """Client-side encryption of ``plains`` bound to ``account``."""

    @abstractmethod
    def verify_input(self, value: EncryptedValue, proof: bytes, account: str) -> EncryptedValue:
        """Accept ``value`` as an input from ``account`` or raise InvalidInputProof."""

    @abstractmethod
    def resolve(self, handle_hex: str) -> EncryptedValue:
        """Return the value addressed by a hex handle."""

    # Arithmetic ----------------------------------------------------------

    @abstractmethod
    def add(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue: ...

    @abstractmethod
    def lt(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue: ...

    @abstractmethod
    def le(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue: ...

    @abstractmethod
    def gt(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue: ...

    @abstractmethod
    def eq(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue: ...

    @abstractmethod
    def and_(self, lhs: EncryptedValue, rhs: EncryptedValue) -> EncryptedValue: ...

    @abstractmethod
    def or_(self, lhs: EncryptedValue, rhs: EncryptedValue) -> EncryptedValue: ...

    @abstractmethod
    def select(self, condition: EncryptedValue, if_true: Operand, if_false: Operand) -> EncryptedValue:
        """Return ``if_true`` when ``condition`` holds, else ``if_false``, without revealing which."""

    @abstractmethod
    def cast(self, value: EncryptedValue, bits: int) -> EncryptedValue: ...

    # Decryption (oracle side) -----------------------------------------------

    @abstractmethod
    def decrypt(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        """Decrypt and sign. Only the decryption oracle may call this."""

    @abstractmethod
    def verify_decryption(self, values: Sequence[EncryptedValue], plaintexts: Sequence[int], signature: bytes) -> bool:
        """Check that ``plaintexts`` are the signed decryption of ``values``."""

    # Convenience -----------------------------------------------------------

    def as_flag(self, condition: EncryptedValue) -> EncryptedValue:
        """Turn an encrypted boolean into a 32-bit 0/1 flag."""
        return self.select(condition, 1, 0) if condition.bits == BOOL_BITS else condition

    def discard(self, *values: EncryptedValue) -> None:
        """Release intermediate ciphertexts nothing refers to any more."""
        return None


class MockFheBackend(FheBackend):
    """Reference backend keeping plaintexts behind opaque handles.

    Suitable for local play and tests. ``debug_decrypt`` bypasses every
    disclosure rule and exists for test assertions only.
    """

    def __init__(self, secret_key: bytes | None = None) -> None:
        self._key = secret_key or secrets.token_bytes(32)
        self._plaintexts: Dict[int, Tuple[int, int]] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    # Storage ----------------------------------------------------------------

    def _store(self, plain: int, bits: int) -> EncryptedValue:
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported ciphertext width: {bits}")
        with self._lock:
            seq = next(self._counter)
            digest = hmac.new(self._key, b"handle|" + seq.to_bytes(8, "big"), hashlib.sha256).digest()
            handle = int.from_bytes(digest, "big")
            self._plaintexts[handle] = (plain % (1 << bits), bits)
        return EncryptedValue(handle=handle, bits=bits)

    def _plain(self, operand: Operand) -> int:
        if isinstance(operand, EncryptedValue):
            try:
                return self._plaintexts[operand.handle][0]
            except KeyError:
                raise ValueError(f"Unknown ciphertext handle {operand.hex}") from None
        return int(operand)

    @staticmethod
    def _width(*operands: Operand) -> int:
        widths = [op.bits for op in operands if isinstance(op, EncryptedValue)]
        if not widths:
            raise TypeError("At least one operand must be encrypted.")
        return max(widths)

    @staticmethod
    def _require_bool(*operands: EncryptedValue) -> None:
        for operand in operands:
            if operand.bits != BOOL_BITS:
                raise TypeError("Logical operations require encrypted booleans.")

    # Encryption -------------------------------------------------------------

    def trivial_encrypt(self, plain: int, bits: int = WORD_BITS) -> EncryptedValue:
        return self._store(plain, bits)

    def _input_tag(self, account: str, handles: Iterable[int]) -> bytes:
        message = b"input|" + account.encode() + b"|" + b"".join(_handle_bytes(h) for h in handles)
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def encrypt_inputs(self, plains: Sequence[int], bits: int, account: str) -> EncryptedInput:
        values = tuple(self._store(plain, bits) for plain in plains)
        handles = [value.handle for value in values]
        proof = self._input_tag(account, handles) + b"".join(_handle_bytes(h) for h in handles)
        return EncryptedInput(values=values, proof=proof)

    def verify_input(self, value: EncryptedValue, proof: bytes, account: str) -> EncryptedValue:
        tag, body = proof[:TAG_BYTES], proof[TAG_BYTES:]
        if len(tag) != TAG_BYTES or len(body) % HANDLE_BYTES != 0:
            raise InvalidInputProof("Input proof is malformed.")
        handles = [
            int.from_bytes(body[offset : offset + HANDLE_BYTES], "big")
            for offset in range(0, len(body), HANDLE_BYTES)
        ]
        if not hmac.compare_digest(tag, self._input_tag(account, handles)):
            raise InvalidInputProof("Input proof was not issued to this account.")
        if value.handle not in handles:
            raise InvalidInputProof(f"Handle {value.hex} is not covered by the input proof.")
        stored = self._plaintexts.get(value.handle)
        if stored is None or stored[1] != value.bits:
            raise InvalidInputProof(f"Handle {value.hex} does not have width {value.bits}.")
        return value

    def resolve(self, handle_hex: str) -> EncryptedValue:
        handle = int.from_bytes(parse_hex(handle_hex), "big")
        stored = self._plaintexts.get(handle)
        if stored is None:
            raise ValueError(f"Unknown ciphertext handle {handle_hex}")
        return EncryptedValue(handle=handle, bits=stored[1])

    # Arithmetic -------------------------------------------------------------

    def add(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue:
        return self._store(self._plain(lhs) + self._plain(rhs), self._width(lhs, rhs))

    def lt(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue:
        return self._store(int(self._plain(lhs) < self._plain(rhs)), BOOL_BITS)

    def le(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue:
        return self._store(int(self._plain(lhs) <= self._plain(rhs)), BOOL_BITS)

    def gt(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue:
        return self._store(int(self._plain(lhs) > self._plain(rhs)), BOOL_BITS)

    def eq(self, lhs: EncryptedValue, rhs: Operand) -> EncryptedValue:
        return self._store(int(self._plain(lhs) == self._plain(rhs)), BOOL_BITS)

    def and_(self, lhs: EncryptedValue, rhs: EncryptedValue) -> EncryptedValue:
        self._require_bool(lhs, rhs)
        return self._store(self._plain(lhs) & self._plain(rhs), BOOL_BITS)

    def or_(self, lhs: EncryptedValue, rhs: EncryptedValue) -> EncryptedValue:
        self._require_bool(lhs, rhs)
        return self._store(self._plain(lhs) | self._plain(rhs), BOOL_BITS)

    def select(self, condition: EncryptedValue, if_true: Operand, if_false: Operand) -> EncryptedValue:
        self._require_bool(condition)
        chosen = if_true if self._plain(condition) else if_false
        encrypted = [op for op in (if_true, if_false) if isinstance(op, EncryptedValue)]
        bits = max(op.bits for op in encrypted) if encrypted else WORD_BITS
        return self._store(self._plain(chosen), bits)

    def cast(self, value: EncryptedValue, bits: int) -> EncryptedValue:
        return self._store(self._plain(value), bits)

    # Decryption -------------------------------------------------------------

    def _signature(self, values: Sequence[EncryptedValue], plaintexts: Sequence[int]) -> bytes:
        message = b"decrypt|" + b"".join(
            _handle_bytes(value.handle) + int(plain).to_bytes(8, "big")
            for value, plain in zip(values, plaintexts)
        )
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def decrypt(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        plaintexts = tuple(self._plain(value) for value in values)
        return DecryptionResult(
            values=tuple(values),
            plaintexts=plaintexts,
            signature=self._signature(values, plaintexts),
        )

    def verify_decryption(self, values: Sequence[EncryptedValue], plaintexts: Sequence[int], signature: bytes) -> bool:
        if len(values) != len(plaintexts):
            return False
        return hmac.compare_digest(signature, self._signature(values, plaintexts))

    def discard(self, *values: EncryptedValue) -> None:
        with self._lock:
            for value in values:
                self._plaintexts.pop(value.handle, None)

    def stored_count(self) -> int:
        return len(self._plaintexts)

    def debug_decrypt(self, value: EncryptedValue) -> int:
        return self._plain(value)

    def debug_decrypt_many(self, values: Sequence[EncryptedValue]) -> List[int]:
        return [self._plain(value) for value in values]
