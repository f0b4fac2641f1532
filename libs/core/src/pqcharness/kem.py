"""Encapsulate/decapsulate/agreement workflow for one KEM algorithm."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Optional

from .base import BaseHarness
from .buffers import SecretBuffer, check_length, secret_from
from .errors import DecapsulationFailure, EncapsulationFailure, InvalidStage, OperationFailed
from .models import Verdict

log = logging.getLogger(__name__)


class KemHarness(BaseHarness):

    class State(IntEnum):
        IDLE = 0
        KEYS_GENERATED = 1
        ENCAPSULATED = 2
        DECAPSULATED = 3
        VERIFIED = 4

    def __init__(self, descriptor, scheme) -> None:
        super().__init__(descriptor, scheme)
        self.ciphertext: Optional[bytes] = None
        self._ss_encap: Optional[SecretBuffer] = None
        self._ss_decap: Optional[SecretBuffer] = None

    def encapsulate(self) -> bytes:
        """Encapsulate to the stored public key; returns the ciphertext."""
        keys = self._require_keys()
        self._drop_secrets()
        try:
            ct, ss = self.scheme.encapsulate(keys.public_key)
        except OperationFailed as exc:
            raise EncapsulationFailure(f"{self.name}: encapsulation failed: {exc}") from exc
        check_length(ct, self.descriptor.ciphertext_len, f"{self.name} ciphertext")
        self._ss_encap = secret_from(ss, self.descriptor.shared_secret_len, f"{self.name} shared secret")
        self.ciphertext = bytes(ct)
        self.state = self.State.ENCAPSULATED
        log.debug("%s: encapsulated (ct=%d bytes)", self.name, len(ct))
        return self.ciphertext

    def decapsulate(self, ciphertext: Optional[bytes] = None) -> int:
        """Recover the shared secret from ``ciphertext`` (default: the stored one).

        Returns the recovered secret's length; the secret itself stays inside
        the harness.
        """
        keys = self._require_keys()
        if ciphertext is None:
            if self.ciphertext is None:
                raise InvalidStage(f"{self.name}: encapsulate() must run before decapsulate()")
            ciphertext = self.ciphertext
        try:
            ss = self.scheme.decapsulate(keys.secret_key.bytes(), bytes(ciphertext))
        except OperationFailed as exc:
            raise DecapsulationFailure(f"{self.name}: decapsulation failed: {exc}") from exc
        if self._ss_decap is not None:
            self._ss_decap.wipe()
        self._ss_decap = secret_from(ss, self.descriptor.shared_secret_len, f"{self.name} shared secret")
        self.state = self.State.DECAPSULATED
        return len(self._ss_decap)

    def verify_agreement(self) -> Verdict:
        if self._ss_encap is None or self._ss_decap is None:
            raise InvalidStage(f"{self.name}: encapsulate() and decapsulate() must both run first")
        if self._ss_encap.equals(self._ss_decap):
            self.state = self.State.VERIFIED
            return Verdict.AGREED
        log.error("%s: shared secrets differ between encapsulation and decapsulation", self.name)
        return Verdict.MISMATCH

    def _drop_secrets(self) -> None:
        for buf in (self._ss_encap, self._ss_decap):
            if buf is not None:
                buf.wipe()
        self._ss_encap = self._ss_decap = None
        self.ciphertext = None

    def _forget(self) -> None:
        super()._forget()
        self._drop_secrets()
