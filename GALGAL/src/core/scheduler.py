"""Concurrent lens x source scan.

One producer task per lens runs on a thread pool and pushes qualifying
pairs into a bounded channel; a single consumer thread drains the channel
into the result sink. The channel is closed only after every producer has
returned, and the consumer stops only on the close marker, so no result is
dropped. Any failure sets a shared abort flag that unblocks all waiting
threads and is re-raised from ``PairScanner.scan``.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, Iterator, Optional, Sequence

import numpy as np

from GALGAL.config import Config
from GALGAL.src.core.transform import separation_mask, transform_pair
from GALGAL.src.core.types import (
    ChannelClosedError,
    Lens,
    PairResult,
    ScanError,
    SchedulerError,
    Source,
)
from GALGAL.src.drivers.streams import ResultSink

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05

Transform = Callable[[Lens, Source, Config], Optional[PairResult]]


class ScanAborted(SchedulerError):
    """Raised inside a blocked producer or ``close`` once the scan has failed."""


class ResultChannel:
    """Bounded multi-producer, single-consumer queue of pair results."""

    _CLOSED = object()

    def __init__(self, maxsize: int, abort: threading.Event):
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._abort = abort
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: object) -> None:
        while True:
            if self._abort.is_set():
                raise ScanAborted("scan aborted")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL_S)
                return
            except queue.Full:
                continue

    def put(self, result: PairResult) -> None:
        if self._closed:
            raise ChannelClosedError(
                f"result for lens {result.lens.id} / source {result.source.id} sent after channel close"
            )
        self._put(result)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError("channel closed twice")
            self._closed = True
        self._put(self._CLOSED)

    def drain(self) -> Iterator[PairResult]:
        """Yield results until the channel is closed, or until the scan aborts."""
        while True:
            try:
                item = self._queue.get(timeout=POLL_INTERVAL_S)
            except queue.Empty:
                if self._abort.is_set():
                    return
                continue
            if item is self._CLOSED:
                return
            yield item


class ResultConsumer(threading.Thread):
    def __init__(self, channel: ResultChannel, sink: ResultSink, abort: threading.Event):
        super().__init__(name="galgal-consumer", daemon=True)
        self.channel = channel
        self.sink = sink
        self.abort = abort
        self.delivered = 0
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            for result in self.channel.drain():
                self.sink.write(result)
                self.delivered += 1
        except Exception as exc:
            self.error = exc
            self.abort.set()
            logger.exception("Result consumer crashed")


class PairScanner:
    """Runs ``transform`` over every lens-source pair and streams the results."""

    def __init__(self, config: Config, transform: Transform = transform_pair):
        self.config = config
        self.transform = transform

    def _produce(
        self,
        lens: Lens,
        sources: Sequence[Source],
        xs: np.ndarray,
        ys: np.ndarray,
        channel: ResultChannel,
        abort: threading.Event,
    ) -> int:
        produced = 0
        for index in separation_mask(lens, xs, ys, self.config):
            if abort.is_set():
                raise ScanAborted("scan aborted")
            result = self.transform(lens, sources[index], self.config)
            if result is None:
                continue
            channel.put(result)
            produced += 1
        return produced

    @staticmethod
    def _first_failure(futures: dict[Future, Lens]) -> tuple[Optional[BaseException], Optional[Lens]]:
        for future, lens in futures.items():
            if future.cancelled() or not future.done():
                continue
            exc = future.exception()
            if exc is not None and not isinstance(exc, ScanAborted):
                return exc, lens
        return None, None

    def scan(self, lenses: Sequence[Lens], sources: Sequence[Source], sink: ResultSink) -> int:
        """Scan all pairs into ``sink`` and return the number of results delivered.

        Blocks until every producer has finished and the consumer has drained
        the channel. Raises ``ScanError`` if a producer or the sink failed.
        """
        abort = threading.Event()
        channel = ResultChannel(self.config.QUEUE_SIZE, abort)
        consumer = ResultConsumer(channel, sink, abort)
        consumer.start()

        xs = np.fromiter((s.x for s in sources), dtype=np.float64, count=len(sources))
        ys = np.fromiter((s.y for s in sources), dtype=np.float64, count=len(sources))
        logger.info("Scanning %d lenses against %d sources", len(lenses), len(sources))

        with ThreadPoolExecutor(
            max_workers=self.config.MAX_WORKERS, thread_name_prefix="galgal-lens"
        ) as pool:
            futures = {
                pool.submit(self._produce, lens, sources, xs, ys, channel, abort): lens
                for lens in lenses
            }
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            if any(f.exception() is not None for f in done):
                abort.set()
                for future in futures:
                    future.cancel()

        if not abort.is_set():
            try:
                channel.close()
            except ScanAborted:
                pass
        consumer.join()

        failure, failed_lens = self._first_failure(futures)
        if consumer.error is not None:
            raise ScanError("result sink failed") from consumer.error
        if failure is not None:
            logger.error("Producer for lens %s failed", failed_lens.id, exc_info=failure)
            raise ScanError(f"producer for lens {failed_lens.id} failed", lens=failed_lens) from failure
        if abort.is_set():
            raise ScanError("scan aborted")

        produced = sum(f.result() for f in futures)
        if produced != consumer.delivered:
            raise ScanError(f"produced {produced} results but delivered {consumer.delivered}")
        logger.info("Delivered %d pair results", consumer.delivered)
        return consumer.delivered
