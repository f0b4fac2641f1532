from __future__ import annotations

import hashlib
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
for candidate in (
    ROOT / "libs" / "core" / "src",
    ROOT / "libs" / "adapters" / "liboqs" / "src",
    ROOT / "apps" / "cli" / "src",
):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from pqcharness import AlgorithmDescriptor, AlgorithmRegistry, AlgorithmUnavailable, Kind, OperationFailed  # noqa: E402
from pqcharness.families import family_of  # noqa: E402


def _h(*parts: bytes) -> bytes:
    return hashlib.sha256(b"".join(parts)).digest()


class FakeSignature:
    """Keyed-hash "signature": verifiable from the public key, deterministic."""

    def __init__(self, name: str, faults: Iterable[str], supports_context: bool, max_sig: int) -> None:
        self.name = name
        self.faults = set(faults)
        self.supports_context = supports_context
        self.max_sig = max_sig
        self._counter = 0

    def _fail(self, op: str) -> None:
        if op in self.faults:
            raise OperationFailed(f"{self.name} {op}: injected failure")

    def keygen(self) -> tuple[bytes, bytes]:
        self._fail("keygen")
        seed = _h(self.name.encode(), self._counter.to_bytes(4, "big"))
        self._counter += 1
        pk = _h(b"pk", seed)
        if "short_pk" in self.faults:
            pk = pk[:-1]
        return pk, seed + pk

    def _tag(self, pk: bytes, message: bytes, context: Optional[bytes]) -> bytes:
        return _h(pk, b"|", context or b"", b"|", message)

    def sign(self, secret_key: bytes, message: bytes, context: Optional[bytes] = None) -> bytes:
        self._fail("sign")
        if context and not self.supports_context:
            raise OperationFailed(f"{self.name} does not accept a context string")
        sig = self._tag(secret_key[32:], message, context)
        if "long_sig" in self.faults:
            sig = sig + bytes(self.max_sig)
        return sig

    def verify(self, public_key: bytes, message: bytes, signature: bytes, context: Optional[bytes] = None) -> bool:
        self._fail("verify")
        if "accept_all" in self.faults:
            return True
        if "reject_all" in self.faults:
            return False
        return signature == self._tag(public_key, message, context)


class FakeKEM:
    """ct = r XOR H(pk); ss = H(r || pk). Decapsulation recovers r from sk's embedded pk."""

    def __init__(self, name: str, faults: Iterable[str]) -> None:
        self.name = name
        self.faults = set(faults)
        self._counter = 0

    def _fail(self, op: str) -> None:
        if op in self.faults:
            raise OperationFailed(f"{self.name} {op}: injected failure")

    def keygen(self) -> tuple[bytes, bytes]:
        self._fail("keygen")
        seed = _h(self.name.encode(), self._counter.to_bytes(4, "big"))
        self._counter += 1
        pk = _h(b"pk", seed)
        return pk, seed + pk

    def encapsulate(self, public_key: bytes) -> tuple[bytes, bytes]:
        self._fail("encapsulate")
        r = _h(b"r", self._counter.to_bytes(4, "big"))
        self._counter += 1
        ct = bytes(a ^ b for a, b in zip(r, _h(public_key)))
        return ct, _h(r, public_key)

    def decapsulate(self, secret_key: bytes, ciphertext: bytes) -> bytes:
        self._fail("decapsulate")
        pk = secret_key[32:]
        r = bytes(a ^ b for a, b in zip(ciphertext, _h(pk)))
        ss = _h(r, pk)
        if "mismatch" in self.faults:
            ss = bytes([ss[0] ^ 0xFF]) + ss[1:]
        return ss


# name -> (kind, public key, secret key, max signature or ciphertext, shared secret, context)
FAKE_MECHANISMS: Dict[str, tuple] = {
    "ML-DSA-44": (Kind.SIGNATURE, 32, 64, 40, 0, True),
    "ML-DSA-65": (Kind.SIGNATURE, 32, 64, 40, 0, True),
    "ML-DSA-87": (Kind.SIGNATURE, 32, 64, 40, 0, True),
    "SLH-DSA-SHA2-128f": (Kind.SIGNATURE, 32, 64, 40, 0, False),
    "ML-KEM-768": (Kind.KEM, 32, 64, 32, 32, False),
    "ML-KEM-1024": (Kind.KEM, 32, 64, 32, 32, False),
}


class FakeProvider:
    def __init__(
        self,
        faults: Iterable[str] = (),
        disabled: Iterable[str] = ("ML-DSA-87", "ML-KEM-1024"),
        name: str = "fake",
        broken: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.faults = tuple(faults)
        self.disabled = set(disabled)
        # names whose parameter query fails, as a misbuilt native library would
        self.broken = set(broken)

    def mechanisms(self):
        for mech, spec in FAKE_MECHANISMS.items():
            yield mech, spec[0]

    def is_enabled(self, name: str) -> bool:
        return name in FAKE_MECHANISMS and name not in self.disabled

    def describe(self, name: str) -> AlgorithmDescriptor:
        if name not in FAKE_MECHANISMS:
            raise AlgorithmUnavailable(name)
        if name in self.broken:
            raise OperationFailed(f"{name}: unable to query parameters")
        kind, pk, sk, op_len, ss, ctx = FAKE_MECHANISMS[name]
        if not self.is_enabled(name):
            return AlgorithmDescriptor(name=name, kind=kind, enabled=False, provider=self.name)
        return AlgorithmDescriptor(
            name=name,
            kind=kind,
            public_key_len=pk,
            secret_key_len=sk,
            signature_len=op_len if kind is Kind.SIGNATURE else 0,
            ciphertext_len=op_len if kind is Kind.KEM else 0,
            shared_secret_len=ss,
            family=family_of(name),
            nist_level=1,
            supports_context=ctx,
            provider=self.name,
        )

    def signature(self, name: str) -> FakeSignature:
        _, _, _, max_sig, _, ctx = FAKE_MECHANISMS[name]
        return FakeSignature(name, self.faults, ctx, max_sig)

    def kem(self, name: str) -> FakeKEM:
        return FakeKEM(name, self.faults)


@pytest.fixture
def make_registry():
    def _make(*faults: str, **kwargs) -> AlgorithmRegistry:
        return AlgorithmRegistry([FakeProvider(faults, **kwargs)])
    return _make


@pytest.fixture
def registry(make_registry) -> AlgorithmRegistry:
    return make_registry()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in list(os.environ):
        if var.startswith("PQCHARNESS_"):
            monkeypatch.delenv(var, raising=False)
