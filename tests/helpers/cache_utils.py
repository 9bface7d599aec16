"""Cache utilities for test isolation."""
from __future__ import annotations


def reset_gitabra_caches() -> None:
    """Reset module-level caches that might persist state between tests."""
    from gitabra.core.config.cache import clear_all_caches

    clear_all_caches()
