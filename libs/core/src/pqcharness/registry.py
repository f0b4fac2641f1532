"""Algorithm discovery across registered providers.

Adapter packages register a provider factory into ``providers`` when they are
imported. ``AlgorithmRegistry`` instantiates those providers and keys every
algorithm name to the provider that exposes it, so harness selection is a
table lookup on the descriptor kind rather than per-family branching.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .errors import AlgorithmUnavailable, HarnessError
from .families import family_of, same_family
from .interfaces import Provider
from .kem import KemHarness
from .models import AlgorithmDescriptor, Kind
from .signature import SignatureHarness

log = logging.getLogger(__name__)

ADAPTER_MODULES = ("pqcharness_liboqs",)

HARNESSES: Dict[Kind, Callable[..., Any]] = {
    Kind.SIGNATURE: SignatureHarness,
    Kind.KEM: KemHarness,
}


class _ProviderRegistry:
    """Provider factories keyed by backend name; filled in by adapter imports."""

    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], Provider]] = {}

    def register(self, name: str) -> Callable[[Callable[[], Provider]], Callable[[], Provider]]:
        def _add(factory: Callable[[], Provider]) -> Callable[[], Provider]:
            previous = self._factories.get(name)
            if previous is not None and previous is not factory:
                log.warning("provider %s registered twice; %r replaces %r", name, factory, previous)
            self._factories[name] = factory
            return factory
        return _add

    def get(self, name: str) -> Callable[[], Provider]:
        try:
            return self._factories[name]
        except KeyError:
            raise KeyError(f"no provider registered as {name!r}; known: {sorted(self._factories)}") from None

    def list(self) -> Dict[str, Callable[[], Provider]]:
        return dict(self._factories)

    def instantiate(self) -> List[Provider]:
        """Build one provider per factory, skipping (and logging) those that fail."""
        built: List[Provider] = []
        for pname, factory in self._factories.items():
            try:
                built.append(factory())
            except Exception:
                log.exception("provider %s failed to initialise", pname)
        return built


providers = _ProviderRegistry()


def load_providers(modules: Sequence[str] = ADAPTER_MODULES) -> List[str]:
    """Import adapter packages so they can register; returns those loaded."""
    loaded: List[str] = []
    for mod in modules:
        if importlib.util.find_spec(mod) is None:
            log.warning("provider package %s is not installed", mod)
            continue
        try:
            importlib.import_module(mod)
        except Exception:
            log.exception("provider package %s failed to import", mod)
            continue
        loaded.append(mod)
    return loaded


class AlgorithmRegistry:

    def __init__(self, backends: Iterable[Provider] = ()) -> None:
        self._providers: List[Provider] = []
        self._owner: Dict[str, Provider] = {}
        self._kinds: Dict[str, Kind] = {}
        self._cache: Dict[str, AlgorithmDescriptor] = {}
        for backend in backends:
            self.add(backend)

    def add(self, backend: Provider) -> None:
        self._providers.append(backend)
        for name, kind in backend.mechanisms():
            if name in self._owner:
                log.debug("%s already provided by %s; ignoring %s", name, self._owner[name].name, backend.name)
                continue
            self._owner[name] = backend
            self._kinds[name] = kind

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self._providers]

    def __contains__(self, name: str) -> bool:
        return name in self._owner

    def list(
        self,
        kind: Optional[Kind] = None,
        family: Optional[str] = None,
        enabled_only: bool = False,
    ) -> List[AlgorithmDescriptor]:
        out: List[AlgorithmDescriptor] = []
        for name in self.names(kind, family, enabled_only=False):
            try:
                desc = self._descriptor(name)
            except HarnessError as exc:
                # metadata query failed; keep listing the others
                log.warning("%s: skipped in listing (%s): %s", name, exc.kind, exc)
                continue
            if enabled_only and not desc.enabled:
                continue
            out.append(desc)
        return out

    def names(
        self,
        kind: Optional[Kind] = None,
        family: Optional[str] = None,
        enabled_only: bool = True,
    ) -> List[str]:
        """Names only; never queries provider metadata."""
        return [
            name for name in self._owner
            if (kind is None or self._kinds[name] is kind)
            and (family is None or (family_of(name) or "").lower() == family.lower())
            and (not enabled_only or self.is_enabled(name))
        ]

    def is_enabled(self, name: str) -> bool:
        backend = self._owner.get(name)
        if backend is None:
            return False
        return bool(backend.is_enabled(name))

    def describe(self, name: str) -> AlgorithmDescriptor:
        if name not in self._owner:
            raise AlgorithmUnavailable(name, self._alternatives(name), reason="unknown")
        if not self.is_enabled(name):
            raise AlgorithmUnavailable(name, self._alternatives(name), reason="not enabled")
        return self._descriptor(name).validate()

    def scheme(self, name: str) -> Any:
        desc = self.describe(name)
        backend = self._owner[name]
        if desc.kind is Kind.SIGNATURE:
            return backend.signature(name)
        return backend.kem(name)

    def open(self, name: str):
        """Return a fresh harness for ``name``."""
        desc = self.describe(name)
        return HARNESSES[desc.kind](desc, self.scheme(name))

    def pick(self, candidates: Sequence[str], kind: Optional[Kind] = None) -> Optional[str]:
        for name in candidates:
            if name and self.is_enabled(name) and (kind is None or self._kinds[name] is kind):
                return name
        return None

    def _descriptor(self, name: str) -> AlgorithmDescriptor:
        desc = self._cache.get(name)
        if desc is None:
            desc = self._owner[name].describe(name)
            self._cache[name] = desc
        return desc

    def _alternatives(self, name: str) -> List[str]:
        kind = self._kinds.get(name)
        if kind is None and family_of(name) is not None:
            kind = next((self._kinds[n] for n in self._owner if same_family(n, name)), None)
        enabled = self.names(kind=kind, enabled_only=True)
        related = [n for n in enabled if same_family(n, name)]
        return related or enabled


def default_registry(modules: Sequence[str] = ADAPTER_MODULES) -> AlgorithmRegistry:
    load_providers(modules)
    return AlgorithmRegistry(providers.instantiate())
