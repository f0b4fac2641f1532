"""CryptoProvider backed by liboqs-python.

Availability is checked at runtime: a mechanism listed by liboqs may still be
compiled out of the loaded shared library, so ``is_enabled`` consults the
enabled list and ``describe`` reports disabled mechanisms with zero sizes.
Native objects are always used inside ``with`` blocks so liboqs cleanses its
copy of the secret key when the block exits.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple

from pqcharness import providers
from pqcharness.errors import AlgorithmUnavailable, OperationFailed
from pqcharness.families import family_of
from pqcharness.models import AlgorithmDescriptor, Kind

from ._util import detail, enabled_kems, enabled_sigs, supported_kems, supported_sigs, try_import_oqs

log = logging.getLogger(__name__)

_oqs = try_import_oqs()


class OqsKEM:
    def __init__(self, mech: str):
        self.name = mech
        self.mech = mech

    def keygen(self) -> Tuple[bytes, bytes]:
        try:
            with _oqs.KeyEncapsulation(self.mech) as kem:
                pk = kem.generate_keypair()
                sk = kem.export_secret_key()
        except Exception as exc:
            raise OperationFailed(f"{self.mech} keypair: {exc}") from exc
        return pk, sk

    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]:
        try:
            with _oqs.KeyEncapsulation(self.mech) as kem:
                ct, ss = kem.encap_secret(public_key)
        except Exception as exc:
            raise OperationFailed(f"{self.mech} encapsulate: {exc}") from exc
        return ct, ss

    def decapsulate(self, secret_key: bytes, ciphertext: bytes) -> bytes:
        try:
            # init with a secret key for decapsulation
            with _oqs.KeyEncapsulation(self.mech, secret_key=secret_key) as kem:
                ss = kem.decap_secret(ciphertext)
        except Exception as exc:
            raise OperationFailed(f"{self.mech} decapsulate: {exc}") from exc
        return ss


class OqsSignature:
    def __init__(self, mech: str, supports_context: bool = False):
        self.name = mech
        self.mech = mech
        self.supports_context = supports_context

    def _check_context(self, context: Optional[bytes]) -> None:
        if context and not self.supports_context:
            raise OperationFailed(f"{self.mech} does not accept a context string")

    def keygen(self) -> Tuple[bytes, bytes]:
        try:
            with _oqs.Signature(self.mech) as s:
                pk = s.generate_keypair()
                sk = s.export_secret_key()
        except Exception as exc:
            raise OperationFailed(f"{self.mech} keypair: {exc}") from exc
        return pk, sk

    def sign(self, secret_key: bytes, message: bytes, context: Optional[bytes] = None) -> bytes:
        self._check_context(context)
        try:
            with _oqs.Signature(self.mech, secret_key=secret_key) as s:
                if context:
                    return s.sign_with_ctx_str(message, context)
                return s.sign(message)
        except Exception as exc:
            raise OperationFailed(f"{self.mech} sign: {exc}") from exc

    def verify(
        self, public_key: bytes, message: bytes, signature: bytes, context: Optional[bytes] = None
    ) -> bool:
        self._check_context(context)
        try:
            with _oqs.Signature(self.mech) as v:
                if context:
                    return bool(v.verify_with_ctx_str(message, signature, context, public_key))
                return bool(v.verify(message, signature, public_key))
        except Exception as exc:
            raise OperationFailed(f"{self.mech} verify: {exc}") from exc


class LiboqsProvider:
    name = "liboqs"

    def __init__(self) -> None:
        if _oqs is None:
            raise RuntimeError("Failed to import 'oqs'. Did you 'pip install liboqs-python' in this venv?")
        self._kems: List[str] = supported_kems(_oqs)
        self._sigs: List[str] = supported_sigs(_oqs)
        self._enabled: Set[str] = set(enabled_kems(_oqs)) | set(enabled_sigs(_oqs))
        # Older bindings only expose the enabled lists.
        for name in self._enabled:
            if name not in self._kems and name not in self._sigs:
                if name in enabled_kems(_oqs):
                    self._kems.append(name)
                else:
                    self._sigs.append(name)
        log.debug("liboqs: %d KEMs, %d signatures known; %d enabled",
                  len(self._kems), len(self._sigs), len(self._enabled))

    def mechanisms(self) -> Iterable[Tuple[str, Kind]]:
        for name in self._sigs:
            yield name, Kind.SIGNATURE
        for name in self._kems:
            yield name, Kind.KEM

    def is_enabled(self, name: str) -> bool:
        return name in self._enabled

    def describe(self, name: str) -> AlgorithmDescriptor:
        if name in self._sigs:
            kind = Kind.SIGNATURE
        elif name in self._kems:
            kind = Kind.KEM
        else:
            raise AlgorithmUnavailable(name, reason="unknown to liboqs")
        if not self.is_enabled(name):
            return AlgorithmDescriptor(
                name=name, kind=kind, family=family_of(name), enabled=False, provider=self.name
            )
        try:
            if kind is Kind.SIGNATURE:
                with _oqs.Signature(name) as s:
                    details = dict(s.details)
            else:
                with _oqs.KeyEncapsulation(name) as k:
                    details = dict(k.details)
        except Exception as exc:
            raise OperationFailed(f"{name}: unable to query parameters: {exc}") from exc
        return AlgorithmDescriptor(
            name=name,
            kind=kind,
            public_key_len=int(detail(details, "public_key", 0)),
            secret_key_len=int(detail(details, "secret_key", 0)),
            signature_len=int(detail(details, "signature", 0)) if kind is Kind.SIGNATURE else 0,
            ciphertext_len=int(detail(details, "ciphertext", 0)) if kind is Kind.KEM else 0,
            shared_secret_len=int(detail(details, "shared_secret", 0)) if kind is Kind.KEM else 0,
            family=family_of(name),
            nist_level=detail(details, "claimed_nist_level"),
            version=detail(details, "version"),
            enabled=True,
            supports_context=bool(detail(details, "sig_with_ctx_support", False)),
            provider=self.name,
        )

    def signature(self, name: str) -> OqsSignature:
        return OqsSignature(name, supports_context=self.describe(name).supports_context)

    def kem(self, name: str) -> OqsKEM:
        return OqsKEM(name)


if _oqs is not None:
    providers.register("liboqs")(LiboqsProvider)
else:
    log.warning("liboqs provider not registered: oqs module unavailable")
