"""Family labels for mechanism identifiers.

Providers name mechanisms with both FIPS and legacy identifiers; the harness
groups them by family for filtering and for preferred-order selection.
"""

from __future__ import annotations

from typing import Optional, Tuple

# (lower-case prefix, family); first match wins, so longer prefixes come first.
_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("ml-dsa", "ML-DSA"),
    ("dilithium", "ML-DSA"),
    ("slh-dsa", "SLH-DSA"),
    ("slh_dsa", "SLH-DSA"),
    ("sphincs+", "SLH-DSA"),
    ("falcon", "Falcon"),
    ("fn-dsa", "Falcon"),
    ("mayo", "MAYO"),
    ("cross-", "CROSS"),
    ("ov-", "UOV"),
    ("snova", "SNOVA"),
    ("ml-kem", "ML-KEM"),
    ("kyber", "ML-KEM"),
    ("hqc", "HQC"),
    ("bike", "BIKE"),
    ("frodokem", "FrodoKEM"),
    ("classic-mceliece", "Classic-McEliece"),
    ("ntru-", "NTRU"),
    ("sntrup", "NTRU-Prime"),
    ("ntrulpr", "NTRU-Prime"),
)


def family_of(name: str) -> Optional[str]:
    key = (name or "").strip().lower()
    for prefix, family in _PREFIXES:
        if key.startswith(prefix):
            return family
    return None


def same_family(a: str, b: str) -> bool:
    fa = family_of(a)
    return fa is not None and fa == family_of(b)
