"""Sign/verify/tamper-detection workflow for one signature algorithm."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Dict, Optional

from .base import BaseHarness
from .errors import InvalidStage, InvariantViolation, OperationFailed, SignFailure, VerifyFailure
from .models import Verdict

log = logging.getLogger(__name__)


class SignatureHarness(BaseHarness):
    """Drives ``keygen -> sign -> verify`` plus tamper checks.

    One key pair may sign any number of distinct messages; each
    sign/verify pair is independent. ``verify`` uses the last-produced
    signature unless one is passed explicitly.
    """

    class State(IntEnum):
        IDLE = 0
        KEYS_GENERATED = 1
        SIGNED = 2
        VERIFIED = 3

    def __init__(self, descriptor, scheme) -> None:
        super().__init__(descriptor, scheme)
        self._last: Optional[tuple[bytes, bytes]] = None
        self._signed: Dict[bytes, bytes] = {}

    @property
    def last_signature(self) -> Optional[bytes]:
        return self._last[1] if self._last else None

    def signature_for(self, message: bytes) -> Optional[bytes]:
        return self._signed.get(bytes(message))

    def sign(self, message: bytes, context: Optional[bytes] = None) -> bytes:
        keys = self._require_keys()
        message = bytes(message)
        try:
            signature = self.scheme.sign(keys.secret_key.bytes(), message, context)
        except OperationFailed as exc:
            raise SignFailure(f"{self.name}: signing failed: {exc}") from exc
        limit = self.descriptor.signature_len
        size = len(signature) if signature is not None else 0
        if not 0 < size <= limit:
            raise InvariantViolation(f"{self.name}: signature length {size} outside 1..{limit}")
        signature = bytes(signature)
        self._last = (message, signature)
        self._signed[message] = signature
        self.state = self.State.SIGNED
        log.debug("%s: signed %d-byte message (%d-byte signature)", self.name, len(message), len(signature))
        return signature

    def verify(
        self,
        message: bytes,
        signature: Optional[bytes] = None,
        context: Optional[bytes] = None,
    ) -> Verdict:
        accepted = self._verify(message, signature, context)
        if accepted:
            self.state = self.State.VERIFIED
            return Verdict.ACCEPTED
        log.warning("%s: signature rejected for untampered message", self.name)
        return Verdict.REJECTED

    def verify_tamper_rejected(
        self,
        tampered_message: bytes,
        signature: Optional[bytes] = None,
        context: Optional[bytes] = None,
    ) -> Verdict:
        tampered_message = bytes(tampered_message)
        signed_message = self._signed_message(signature)
        if signed_message is not None and signed_message == tampered_message:
            raise ValueError(f"{self.name}: tampered message must differ from the signed message")
        if self._verify(tampered_message, signature, context):
            log.error("%s: tampered message was ACCEPTED", self.name)
            return Verdict.TAMPER_ACCEPTED
        return Verdict.TAMPER_REJECTED

    def _signed_message(self, signature: Optional[bytes]) -> Optional[bytes]:
        if signature is None:
            return self._last[0] if self._last else None
        for msg, sig in self._signed.items():
            if sig == signature:
                return msg
        return None

    def _verify(self, message: bytes, signature: Optional[bytes], context: Optional[bytes]) -> bool:
        keys = self._require_keys()
        if signature is None:
            if self._last is None or self.state < self.State.SIGNED:
                raise InvalidStage(f"{self.name}: sign() must run before verify()")
            signature = self._last[1]
        try:
            return bool(self.scheme.verify(keys.public_key, bytes(message), bytes(signature), context))
        except OperationFailed as exc:
            raise VerifyFailure(f"{self.name}: verification errored: {exc}") from exc

    def _forget(self) -> None:
        super()._forget()
        self._last = None
        self._signed = {}
