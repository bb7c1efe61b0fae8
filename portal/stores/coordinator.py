"""
Store action coordinator - the loading/error/cache lifecycle every store
action goes through, whatever domain or operation it wraps.

This is the boundary where errors stop: both wrappers catch everything,
record a display message on the store, and return normally.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from loguru import logger
from pydantic import BaseModel

from portal.services.policy import serialize_params

T = TypeVar("T")

DEFAULT_STORE_CACHE_TTL = timedelta(seconds=30)


@dataclass
class StoreOptions:
    """Per-call options for cached store actions."""

    use_cache: bool = True
    cache_ttl: timedelta = DEFAULT_STORE_CACHE_TTL


class ActionStore(Protocol):
    """What the coordinator needs from a store."""

    loading: bool
    error: str | None

    def set_cache_data(self, key: str) -> None: ...

    def is_cache_valid(self, key: str, ttl: timedelta) -> bool: ...


def store_cache_key(params: BaseModel | dict[str, Any] | None) -> str:
    return serialize_params(params)


def _error_message(exc: Exception, fallback: str) -> str:
    return str(exc) or fallback


async def run_action(
    store: ActionStore,
    api_call: Callable[[], Awaitable[T]],
    fallback_error: str,
    is_current: Callable[[], bool] | None = None,
) -> T | None:
    """
    Run one API call with the store's loading/error flags managed.

    Returns the result, or None after recording the failure on the store.
    ``store.loading`` is False again on every exit path.

    ``is_current`` lets a caller mark the call as superseded: once it
    returns False, the outcome no longer touches ``loading`` or ``error``,
    which now belong to the newer call.
    """
    store.loading = True
    store.error = None
    try:
        return await api_call()
    except Exception as e:
        message = _error_message(e, fallback_error)
        if is_current is None or is_current():
            store.error = message
            logger.warning(f"Store action failed: {message}")
        else:
            logger.debug(f"Superseded store action failed: {message}")
        return None
    finally:
        if is_current is None or is_current():
            store.loading = False


async def run_cached_action(
    store: ActionStore,
    params: BaseModel | dict[str, Any] | None,
    options: StoreOptions | None,
    api_call: Callable[[], Awaitable[T]],
    on_success: Callable[[T], None],
    on_error: Callable[[list[Any], int], None],
    fallback_error: str,
) -> None:
    """
    Like run_action, but skipped entirely when the same params were fetched
    within the options' TTL.

    On success ``on_success`` fills the store and the cache window is
    recorded; on failure ``on_error([], 0)`` resets list-shaped state.
    """
    options = options or StoreOptions()
    key = store_cache_key(params)

    if options.use_cache and store.is_cache_valid(key, options.cache_ttl):
        return

    store.loading = True
    store.error = None
    try:
        result = await api_call()
        on_success(result)
        store.set_cache_data(key)
    except Exception as e:
        store.error = _error_message(e, fallback_error)
        logger.warning(f"Store action failed: {store.error}")
        on_error([], 0)
    finally:
        store.loading = False
