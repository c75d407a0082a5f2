"""
Batched Existence Resolver

A small DataLoader-style primitive for asyncio. Every ``load()`` issued before
the event loop runs the loader's scheduled dispatch callback joins one batch,
and each batch is resolved with a single call to the batch function.

How batching works
------------------
1. The first ``load()`` of a batch schedules ``_dispatch`` with
   ``loop.call_soon``; later loads only append to the pending queue.
2. Coroutines started together (``asyncio.gather``) run their first steps
   before that callback, so all their keys land in the same batch.
3. ``_dispatch`` hands the queued keys to the batch function in one task and
   resolves the per-key futures in input order.

Loaded keys are cached per loader instance; repeated and concurrent loads of a
key share one future. Create one loader per request and throw it away
afterwards; ``clear()`` / ``clear_all()`` drop cached entries after writes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from ..db.category_store import CategoryStore
from ..db.models import Category
from .models import CategoryType, normalize_title

logger = logging.getLogger("edu.cms.loader")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BatchLoadFn = Callable[[List[K]], Awaitable[Sequence[V]]]


class BatchLoader(Generic[K, V]):
    """
    Coalesces concurrent ``load()`` calls into batched calls of ``batch_load_fn``.

    Parameters
    ----------
    batch_load_fn : BatchLoadFn
        Async callable receiving a list of distinct keys and returning one value
        per key, in the same order.
    max_batch_size : Optional[int]
        Split a dispatch into several calls when more keys are pending.
    """

    def __init__(
        self,
        batch_load_fn: BatchLoadFn,
        max_batch_size: Optional[int] = None,
    ) -> None:
        self._batch_load_fn = batch_load_fn
        self._max_batch_size = max_batch_size
        self._cache: Dict[K, asyncio.Future] = {}
        self._queue: List[Tuple[K, asyncio.Future]] = []
        self._dispatch_scheduled = False
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, key: K) -> Awaitable[V]:
        """
        Request the value for ``key``. Must be called from a running event loop.
        """
        cached = self._cache.get(key)
        if cached is not None and not cached.cancelled():
            return asyncio.shield(cached)

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._cache[key] = future
        self._queue.append((key, future))

        if not self._dispatch_scheduled:
            self._dispatch_scheduled = True
            loop.call_soon(self._dispatch)

        return asyncio.shield(future)

    async def load_many(self, keys: Iterable[K]) -> List[V]:
        """
        Load several keys at once. Output order and length match ``keys``,
        duplicates included.
        """
        return list(await asyncio.gather(*[self.load(key) for key in keys]))

    def clear(self, key: K) -> None:
        self._cache.pop(key, None)

    def clear_all(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self) -> None:
        self._dispatch_scheduled = False
        queue, self._queue = self._queue, []
        if not queue:
            return

        size = self._max_batch_size or len(queue)
        for start in range(0, len(queue), size):
            task = asyncio.ensure_future(self._dispatch_batch(queue[start:start + size]))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _dispatch_batch(self, batch: List[Tuple[K, asyncio.Future]]) -> None:
        keys = [key for key, _ in batch]
        logger.debug("Dispatching batch of %d keys", len(keys))

        try:
            values = await self._batch_load_fn(keys)
            if len(values) != len(keys):
                raise ValueError(
                    f"Batch function returned {len(values)} values for {len(keys)} keys"
                )
        except Exception as exc:
            self._fail_batch(batch, exc)
            return
        except BaseException:
            self._cancel_batch(batch)
            raise

        for (_, future), value in zip(batch, values):
            if not future.done():
                future.set_result(value)

    def _fail_batch(self, batch: List[Tuple[K, asyncio.Future]], exc: Exception) -> None:
        logger.warning("Batch of %d keys failed: %s", len(batch), exc)
        for key, future in batch:
            # Evict so a later load retries instead of replaying the failure
            if self._cache.get(key) is future:
                del self._cache[key]
            if not future.done():
                future.set_exception(exc)

    def _cancel_batch(self, batch: List[Tuple[K, asyncio.Future]]) -> None:
        logger.warning("Batch of %d keys was interrupted", len(batch))
        for key, future in batch:
            if self._cache.get(key) is future:
                del self._cache[key]
            future.cancel()


# ---------------------------------------------------------------------
# Category Loader
# ---------------------------------------------------------------------

class CategoryKey(NamedTuple):
    """Normalized ``(title, type)`` lookup key."""
    title: str
    type: CategoryType

    @classmethod
    def of(cls, title: str, category_type: str) -> "CategoryKey":
        return cls(normalize_title(title), CategoryType(category_type))


CategoryLoader = BatchLoader[CategoryKey, Optional[Category]]


def create_category_loader(store: CategoryStore) -> CategoryLoader:
    """
    Build a loader resolving ``CategoryKey`` to the stored Category or None.
    """

    async def batch_load(keys: List[CategoryKey]) -> List[Optional[Category]]:
        categories = await store.find_by_keys(keys)
        found = {(c.title, CategoryType(c.type)): c for c in categories}
        return [found.get((key.title, key.type)) for key in keys]

    return BatchLoader(batch_load)
