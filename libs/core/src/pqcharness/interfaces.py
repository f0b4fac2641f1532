from __future__ import annotations
from typing import Iterable, Optional, Protocol, Tuple

from .models import AlgorithmDescriptor, Kind

"""Provider interfaces consumed by the harness.

Adapters implement these Protocols and register a provider factory into the
global provider registry. Harnesses interact only with these interfaces,
never with vendor libraries directly. Any operation may raise
``OperationFailed``; ``Signature.verify`` returns False for a signature that
does not match instead of raising.
"""


class KEM(Protocol):
    """Key Encapsulation Mechanism contract."""
    name: str
    def keygen(self) -> Tuple[bytes, bytes]: ...
    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]: ...
    def decapsulate(self, secret_key: bytes, ciphertext: bytes) -> bytes: ...


class Signature(Protocol):
    """Digital Signature contract."""
    name: str
    def keygen(self) -> Tuple[bytes, bytes]: ...
    def sign(self, secret_key: bytes, message: bytes, context: Optional[bytes] = None) -> bytes: ...
    def verify(
        self, public_key: bytes, message: bytes, signature: bytes, context: Optional[bytes] = None
    ) -> bool: ...


class Provider(Protocol):
    """Source of algorithm metadata and scheme handles."""
    name: str
    def mechanisms(self) -> Iterable[Tuple[str, Kind]]: ...
    def is_enabled(self, name: str) -> bool: ...
    def describe(self, name: str) -> AlgorithmDescriptor: ...
    def signature(self, name: str) -> Signature: ...
    def kem(self, name: str) -> KEM: ...
