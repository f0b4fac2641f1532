from __future__ import annotations

import pytest

from pqcharness import (
    DecapsulationFailure,
    EncapsulationFailure,
    InvalidStage,
    KemHarness,
    KeygenFailure,
    Verdict,
)


def test_encapsulate_decapsulate_agree(registry) -> None:
    with registry.open("ML-KEM-768") as h:
        h.generate_keys()
        ct = h.encapsulate()
        assert len(ct) == h.descriptor.ciphertext_len
        assert h.state is KemHarness.State.ENCAPSULATED
        assert h.decapsulate() == h.descriptor.shared_secret_len
        assert h.state is KemHarness.State.DECAPSULATED
        assert h.verify_agreement() is Verdict.AGREED
        assert h.state is KemHarness.State.VERIFIED


def test_mismatch_is_reported_not_raised(make_registry) -> None:
    with make_registry("mismatch").open("ML-KEM-768") as h:
        h.generate_keys()
        h.encapsulate()
        h.decapsulate()
        assert h.verify_agreement() is Verdict.MISMATCH


def test_foreign_ciphertext_gives_different_secret(registry) -> None:
    with registry.open("ML-KEM-768") as h:
        h.generate_keys()
        ct = h.encapsulate()
        h.decapsulate(bytes(b ^ 0x01 for b in ct))
        assert h.verify_agreement() is Verdict.MISMATCH


def test_stage_order_enforced(registry) -> None:
    with registry.open("ML-KEM-768") as h:
        with pytest.raises(InvalidStage):
            h.encapsulate()
        h.generate_keys()
        with pytest.raises(InvalidStage):
            h.decapsulate()
        with pytest.raises(InvalidStage):
            h.verify_agreement()


@pytest.mark.parametrize(
    "fault, exc",
    [
        ("keygen", KeygenFailure),
        ("encapsulate", EncapsulationFailure),
        ("decapsulate", DecapsulationFailure),
    ],
)
def test_provider_failures_map_to_typed_errors(make_registry, fault, exc) -> None:
    with make_registry(fault).open("ML-KEM-768") as h:
        with pytest.raises(exc):
            h.generate_keys()
            h.encapsulate()
            h.decapsulate()


def test_close_wipes_keys_and_secrets(registry) -> None:
    h = registry.open("ML-KEM-768")
    keys = h.generate_keys()
    h.encapsulate()
    h.decapsulate()
    encap, decap = h._ss_encap, h._ss_decap
    h.close()
    assert keys.secret_key.wiped
    assert encap.wiped and decap.wiped
    assert h.ciphertext is None
    with pytest.raises(InvalidStage):
        h.verify_agreement()
