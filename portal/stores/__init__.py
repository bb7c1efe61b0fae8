"""
Domain stores - view-facing state plus the action coordinator they share.
"""

from portal.stores.base import DomainStore, StoreState, create_store
from portal.stores.coordinator import (
    StoreOptions,
    run_action,
    run_cached_action,
    store_cache_key,
)

__all__ = [
    "DomainStore",
    "StoreState",
    "create_store",
    "StoreOptions",
    "run_action",
    "run_cached_action",
    "store_cache_key",
]
