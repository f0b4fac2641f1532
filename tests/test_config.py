from __future__ import annotations

import pytest

from pqcharness.config import DEFAULT_KEMS, HarnessConfig, RunMatrix, load_matrix
from pqcharness.workflow import DEFAULT_MESSAGE, DEFAULT_TAMPERED_MESSAGE


def test_defaults() -> None:
    cfg = HarnessConfig.from_env({})
    assert cfg.message == DEFAULT_MESSAGE
    assert cfg.tampered_message == DEFAULT_TAMPERED_MESSAGE
    assert cfg.preview_bytes == 16
    assert cfg.bench_runs == 1
    assert cfg.preferred_signatures[0] == "ML-DSA-44"
    assert cfg.preferred_kems == list(DEFAULT_KEMS)


def test_env_overrides() -> None:
    cfg = HarnessConfig.from_env(
        {
            "PQCHARNESS_MESSAGE": "hello",
            "PQCHARNESS_SECOND_MESSAGE": "world",
            "PQCHARNESS_CONTEXT": "ctx",
            "PQCHARNESS_PREVIEW_BYTES": "32",
            "PQCHARNESS_BENCH_RUNS": "5",
            "PQCHARNESS_SIG_ALG": "Falcon-512",
            "PQCHARNESS_LOG_LEVEL": "debug",
        }
    )
    assert cfg.message == b"hello"
    assert cfg.context == b"ctx"
    assert cfg.preview_bytes == 32
    assert cfg.bench_runs == 5
    assert cfg.preferred_signatures[:2] == ["Falcon-512", "ML-DSA-44"]
    assert cfg.log_level == "DEBUG"
    options = cfg.workflow_options()
    assert options.messages == [b"hello", b"world"]
    assert options.context == b"ctx"
    assert options.preview_bytes == 32


@pytest.mark.parametrize(
    "var, value",
    [("PQCHARNESS_BENCH_RUNS", "zero"), ("PQCHARNESS_BENCH_RUNS", "0"), ("PQCHARNESS_PREVIEW_BYTES", "-1")],
)
def test_bad_integers_name_the_variable(var, value) -> None:
    with pytest.raises(ValueError, match=var):
        HarnessConfig.from_env({var: value})


def test_workflow_options_explicit_values_win() -> None:
    options = HarnessConfig().workflow_options(b"m", b"t", b"c")
    assert options.messages == [b"m"]
    assert options.tampered_message == b"t"
    assert options.context == b"c"


def test_load_matrix(tmp_path) -> None:
    path = tmp_path / "matrix.yaml"
    path.write_text(
        "algorithms: [ML-DSA-44, ML-KEM-768]\nruns: 3\nmessage: hi\n", encoding="utf-8"
    )
    matrix = load_matrix(path)
    assert matrix == RunMatrix(algorithms=["ML-DSA-44", "ML-KEM-768"], runs=3, message=b"hi")
    cfg = matrix.apply(HarnessConfig())
    assert cfg.bench_runs == 3
    assert cfg.message == b"hi"
    assert cfg.bench_message == b"hi"
    assert cfg.tampered_message == DEFAULT_TAMPERED_MESSAGE


@pytest.mark.parametrize(
    "text",
    [
        "- just a list\n",
        "runs: 2\n",
        "algorithms: []\n",
        "algorithms: [ML-DSA-44]\nruns: 0\n",
        "algorithms: [ML-DSA-44]\nmessage: 5\n",
    ],
)
def test_load_matrix_rejects_bad_files(tmp_path, text) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_matrix(path)
