from __future__ import annotations

import pytest

from pqcharness import AlgorithmRegistry, Verdict, providers, run_workflow
from pqcharness_liboqs import _util
from pqcharness_liboqs.provider import LiboqsProvider, _oqs

requires_oqs = pytest.mark.skipif(_oqs is None, reason="liboqs-python cannot be loaded")


def test_detail_reads_plain_and_length_prefixed_keys() -> None:
    details = {"length_public_key": 1184, "claimed_nist_level": 3}
    assert _util.detail(details, "public_key") == 1184
    assert _util.detail(details, "claimed_nist_level") == 3
    assert _util.detail(details, "signature", 0) == 0
    assert _util.detail(None, "public_key", 7) == 7


def test_mechanism_helpers_fall_back_to_legacy_names() -> None:
    class Legacy:
        @staticmethod
        def get_enabled_kems():
            return ["Kyber768"]

    assert _util.enabled_kems(Legacy) == ["Kyber768"]
    assert _util.supported_sigs(Legacy) == []


@pytest.fixture(scope="module")
def oqs_registry() -> AlgorithmRegistry:
    return AlgorithmRegistry([LiboqsProvider()])


def _require(registry: AlgorithmRegistry, name: str) -> None:
    if not registry.is_enabled(name):
        pytest.skip(f"{name} not enabled in this liboqs build")


@requires_oqs
def test_provider_registered() -> None:
    assert "liboqs" in providers.list()


@requires_oqs
def test_ml_dsa_44_tamper_scenario(oqs_registry) -> None:
    _require(oqs_registry, "ML-DSA-44")
    report = run_workflow(oqs_registry, "ML-DSA-44")
    assert not report.failed, report.to_dict()
    verdicts = {s.step: s.verdict for s in report.steps}
    assert verdicts["verify[1]"] is Verdict.ACCEPTED
    assert verdicts["tamper_check"] is Verdict.TAMPER_REJECTED
    sign = next(s for s in report.steps if s.step == "sign[1]")
    assert 0 < sign.detail["signature_len"] <= report.descriptor.signature_len


@requires_oqs
def test_ml_kem_768_sizes_and_agreement(oqs_registry) -> None:
    _require(oqs_registry, "ML-KEM-768")
    desc = oqs_registry.describe("ML-KEM-768")
    assert desc.public_key_len == 1184
    assert desc.secret_key_len == 2400
    assert desc.ciphertext_len == 1088
    assert desc.shared_secret_len == 32
    assert desc.family == "ML-KEM"
    report = run_workflow(oqs_registry, "ML-KEM-768")
    assert report.steps[-1].verdict is Verdict.AGREED


@requires_oqs
def test_unknown_mechanism_rejected(oqs_registry) -> None:
    report = run_workflow(oqs_registry, "ML-DSA-1")
    assert report.error_kind == "algorithm_unavailable"
