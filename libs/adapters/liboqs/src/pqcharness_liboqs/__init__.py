"""Provider package for liboqs-backed algorithms.

Importing the package registers ``LiboqsProvider`` into
``pqcharness.providers`` when liboqs-python can be loaded; otherwise nothing
is registered and a warning is logged.
"""

# Trigger registration side-effects
from . import provider as _provider  # noqa: F401

__all__: list[str] = []
