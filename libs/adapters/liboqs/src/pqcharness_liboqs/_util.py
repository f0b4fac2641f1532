from __future__ import annotations
import logging
from typing import Any, List

log = logging.getLogger(__name__)


def try_import_oqs():
    # liboqs-python calls sys.exit() when its shared library cannot be loaded.
    try:
        import oqs  # type: ignore
        return oqs
    except (Exception, SystemExit) as exc:
        log.warning("liboqs-python unavailable: %s", exc)
        return None


def _first_call(oqs_mod: Any, *names: str) -> List[str]:
    """Call the first helper that exists (names changed across liboqs-python releases)."""
    for name in names:
        fn = getattr(oqs_mod, name, None)
        if fn is not None:
            return list(fn())
    return []


def supported_kems(oqs_mod) -> List[str]:
    return _first_call(oqs_mod, "get_supported_kem_mechanisms", "get_supported_KEM_mechanisms")


def enabled_kems(oqs_mod) -> List[str]:
    return _first_call(oqs_mod, "get_enabled_kem_mechanisms", "get_enabled_kems", "get_enabled_KEM_mechanisms")


def supported_sigs(oqs_mod) -> List[str]:
    return _first_call(oqs_mod, "get_supported_sig_mechanisms")


def enabled_sigs(oqs_mod) -> List[str]:
    return _first_call(oqs_mod, "get_enabled_sig_mechanisms", "get_enabled_sigs")


def detail(details: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` (or ``length_<key>``) from a liboqs ``details`` mapping."""
    if not details:
        return default
    for candidate in (key, f"length_{key}"):
        if isinstance(details, dict) and candidate in details:
            return details[candidate]
        if hasattr(details, candidate):
            return getattr(details, candidate)
    return default
