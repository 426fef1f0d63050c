"""Asynchronous batched deletion of short URLs.

Request handlers hand codes to ``URLDeleter.delete()``, which checks that the
requesting user owns each code and pushes owned codes onto a bounded queue.
A single background task drains the queue into batches and marks each batch
deleted in storage, either when the batch is full or on the next timer tick.

Deletion is fire-and-forget: ``delete()`` returns once its codes are queued,
and storage failures inside the worker are only logged.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import DeleterStoppedError, OwnershipLookupError, StorageMutationError
from .storage.base import URLStorageBase
from .storage.cache import RedisCache

DEFAULT_STOPPING_TIMEOUT = 1.0
DEFAULT_MAX_BATCH_SIZE = 10
DEFAULT_BATCH_WAITING_TIME = 0.1

# Queue sentinel telling the worker that no more codes will be admitted.
_CLOSE = object()


@dataclass
class DeleterConfig:
    """URL deleter settings. Durations are in seconds.

    Non-positive values are replaced with defaults. ``queue_size`` bounds
    the hand-off queue and defaults to ``max_batch_size``.
    """

    stopping_timeout: float = DEFAULT_STOPPING_TIMEOUT
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    batch_waiting_time: float = DEFAULT_BATCH_WAITING_TIME
    queue_size: int = 0

    def __post_init__(self):
        if self.stopping_timeout <= 0:
            self.stopping_timeout = DEFAULT_STOPPING_TIMEOUT
        if self.max_batch_size <= 0:
            self.max_batch_size = DEFAULT_MAX_BATCH_SIZE
        if self.batch_waiting_time <= 0:
            self.batch_waiting_time = DEFAULT_BATCH_WAITING_TIME
        if self.queue_size <= 0:
            self.queue_size = self.max_batch_size


class DeleterState(enum.Enum):
    NEW = "new"
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    STOPPED = "stopped"


class BatchAccumulator:
    """Pending codes waiting to be flushed. Owned by the worker task only."""

    def __init__(self, max_batch_size: int):
        self.max_batch_size = max_batch_size
        self._codes: List[str] = []

    def append(self, code: str) -> bool:
        """Add a code. Returns True when the batch just became full."""
        self._codes.append(code)
        return len(self._codes) == self.max_batch_size

    def is_empty(self) -> bool:
        return not self._codes

    def drain(self) -> List[str]:
        """Return pending codes and start a fresh batch."""
        codes, self._codes = self._codes, []
        return codes

    def __len__(self) -> int:
        return len(self._codes)


class URLDeleter:
    """Accepts delete requests and applies them to storage in batches."""

    def __init__(
        self,
        storage: URLStorageBase,
        config: Optional[DeleterConfig] = None,
        cache: Optional[RedisCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize URL deleter.

        Args:
            storage: Storage whose codes are marked deleted
            config: Batching and shutdown settings
            cache: Optional redirect cache; flushed codes are marked deleted in it
            logger: Optional logger
        """
        self.storage = storage
        self.config = config or DeleterConfig()
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.queue_size)
        self._batch = BatchAccumulator(self.config.max_batch_size)
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        self._sealed = False
        self._flushing = False
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> DeleterState:
        if self._task is None:
            return DeleterState.STOPPED if self._closing else DeleterState.NEW
        if self._task.done():
            return DeleterState.STOPPED
        if self._flushing:
            return DeleterState.FLUSHING
        if self._batch.is_empty():
            return DeleterState.IDLE
        return DeleterState.ACCUMULATING

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._closing

    def start(self) -> None:
        """Spawn the worker task. Must be called from a running event loop."""
        if self._task is not None or self._closing:
            raise RuntimeError("URL deleter can only be started once")

        self._task = asyncio.create_task(self._run(), name="url-deleter")
        self.logger.info(
            f"URL deleter started (batch={self.config.max_batch_size}, "
            f"wait={self.config.batch_waiting_time}s)"
        )

    async def stop(self) -> None:
        """Stop admitting codes, drain what was admitted, and wait for the worker.

        In-flight ``delete()`` calls get up to ``stopping_timeout`` to hand off
        their codes before the queue is closed, and one more ``stopping_timeout``
        while the worker drains. Calls still running after that are abandoned:
        they raise ``DeleterStoppedError`` when they next try to queue a code.
        """
        if self._closing:
            if self._task is not None:
                await self._task
            return

        self._closing = True
        if self._task is None:
            return

        self.logger.info("Stopping URL deleter...")
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self.config.stopping_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"{self._in_flight} delete calls still in flight after "
                f"{self.config.stopping_timeout}s, draining them before exit"
            )

        await self._queue.put(_CLOSE)
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.config.stopping_timeout)
        except asyncio.TimeoutError:
            self.logger.error(f"Abandoning {self._in_flight} delete calls still in flight")
            self._sealed = True
            await self._queue.put(_CLOSE)
            await self._task
        self.logger.info("URL deleter stopped")

    async def delete(self, user_id: str, codes: Iterable[str]) -> None:
        """Queue codes owned by user_id for deletion.

        Codes the user does not own are skipped silently. Returns once every
        owned code is queued; blocks while the queue is full.

        Raises:
            DeleterStoppedError: If stop() was already called
            OwnershipLookupError: If the user's codes could not be loaded
        """
        if self._closing:
            raise DeleterStoppedError()
        if self._task is None:
            raise RuntimeError("URL deleter is not started")

        self._in_flight += 1
        self._idle.clear()
        try:
            try:
                owned = set(await self.storage.user_url_codes(user_id))
            except Exception as e:
                raise OwnershipLookupError(user_id) from e

            queued = 0
            for code in codes:
                if code in owned:
                    if self._sealed:
                        raise DeleterStoppedError()
                    await self._queue.put(code)
                    queued += 1
            self.logger.debug(f"Queued {queued} codes for deletion (user_id={user_id})")
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def _run(self) -> None:
        """Worker loop: batch codes from the queue and flush them."""
        loop = asyncio.get_running_loop()
        period = self.config.batch_waiting_time
        next_tick = loop.time() + period
        draining = False

        while True:
            if draining and self._queue.empty() and (self._in_flight == 0 or self._sealed):
                if self._sealed:
                    # Senders woken by our last get() land their code on the next loop iteration
                    await asyncio.sleep(0)
                    if not self._queue.empty():
                        continue
                await self._flush()
                break

            try:
                item = await asyncio.wait_for(
                    self._queue.get(), timeout=max(0.0, next_tick - loop.time())
                )
            except asyncio.TimeoutError:
                now = loop.time()
                next_tick += period
                if next_tick <= now:
                    next_tick = now + period
                if not self._batch.is_empty():
                    await self._flush()
                continue

            if item is _CLOSE:
                draining = True
                continue

            if self._batch.append(item):
                await self._flush()

    async def _flush(self) -> None:
        batch = self._batch.drain()
        if not batch:
            return

        self._flushing = True
        try:
            await self._mark_deleted(batch)
        except StorageMutationError as e:
            self.logger.error(f"{e}: {e.__cause__!r}")
        else:
            self.logger.debug(f"Deleted batch of {len(batch)} urls")
            if self.cache:
                await self._invalidate_cache(batch)
        finally:
            self._flushing = False

    async def _invalidate_cache(self, batch: List[str]) -> None:
        try:
            await self.cache.mark_deleted(batch)
        except Exception as e:
            self.logger.error(f"Failed to invalidate cache for {len(batch)} urls: {e!r}")

    async def _mark_deleted(self, batch: List[str]) -> None:
        try:
            await self.storage.delete_urls(batch)
        except Exception as e:
            raise StorageMutationError(batch) from e
