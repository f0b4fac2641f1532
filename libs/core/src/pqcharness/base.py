"""Key-generation and cleanup shared by the signature and KEM harnesses."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Optional

from .buffers import check_length, secret_from
from .errors import InvalidStage, KeygenFailure, OperationFailed
from .models import AlgorithmDescriptor, KeyPair

log = logging.getLogger(__name__)


class BaseHarness:
    """Owns one key pair for one algorithm; wipes secrets on ``close()``.

    Subclasses define ``State`` (an IntEnum whose first two members are
    IDLE and KEYS_GENERATED) and the operation stages.
    """

    State: type[IntEnum]

    def __init__(self, descriptor: AlgorithmDescriptor, scheme: Any) -> None:
        self.descriptor = descriptor.validate()
        self.scheme = scheme
        self.state = self.State(0)
        self._keys: Optional[KeyPair] = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def public_key(self) -> bytes:
        return self._require_keys().public_key

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def generate_keys(self) -> KeyPair:
        self._forget()
        try:
            pk, sk = self.scheme.keygen()
        except OperationFailed as exc:
            raise KeygenFailure(f"{self.name}: key generation failed: {exc}") from exc
        check_length(pk, self.descriptor.public_key_len, f"{self.name} public key")
        secret = secret_from(sk, self.descriptor.secret_key_len, f"{self.name} secret key")
        self._keys = KeyPair(public_key=bytes(pk), secret_key=secret)
        self.state = self.State(1)
        log.debug("%s: key pair generated (pk=%d, sk=%d bytes)", self.name, len(pk), len(secret))
        return self._keys

    def close(self) -> None:
        self._forget()
        self.state = self.State(0)

    def _forget(self) -> None:
        if self._keys is not None:
            self._keys.wipe()
            self._keys = None

    def _require_keys(self) -> KeyPair:
        if self._keys is None or self.state < 1:
            raise InvalidStage(f"{self.name}: generate_keys() must run first")
        return self._keys
