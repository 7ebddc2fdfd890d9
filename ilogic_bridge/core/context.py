"""
Owner Context
=============

The store is only safe to call from one thread. Work reaches that thread by
posting callbacks, which run strictly in posting order.

Classes:
    OwnerContext: Protocol for posting work to the owner thread
    QueueContext: Queue drained by the host thread calling ``run_pending``
    LoopContext: asyncio event loop running on a dedicated thread
"""

import asyncio
import queue
import threading
from collections.abc import Callable
from typing import Protocol

from loguru import logger


class OwnerContext(Protocol):
    def post(self, callback: Callable[[], None]) -> None:
        ...

    def is_owner_thread(self) -> bool:
        ...


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.exception(f"Unhandled error in posted work {getattr(callback, '__name__', callback)!r}")


class QueueContext:
    """
    FIFO work queue pumped by the host thread.

    ``post`` may be called from any thread. ``run_pending`` executes queued
    callbacks on the calling thread, including callbacks posted while it runs.
    """

    def __init__(self):
        self._queue: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()
        self._owner: threading.Thread | None = None

    def post(self, callback: Callable[[], None]) -> None:
        self._queue.put(callback)

    def is_owner_thread(self) -> bool:
        return self._owner is threading.current_thread()

    def pending(self) -> int:
        return self._queue.qsize()

    def run_pending(self) -> int:
        """Run queued callbacks until the queue is empty.

        Returns:
            int: Number of callbacks executed
        """
        self._owner = threading.current_thread()
        executed = 0
        while True:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                return executed
            _run_callback(callback)
            executed += 1


class LoopContext:
    """asyncio event loop on a dedicated thread."""

    def __init__(self, name: str = "ilogic-bridge-owner"):
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Owner loop is already running")
            return
        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        self._ready.wait()
        logger.debug(f"Started owner loop on thread {self.name}")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop after the work already posted has run."""
        if not self.is_running or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        self._thread = None
        logger.debug(f"Stopped owner loop on thread {self.name}")

    def post(self, callback: Callable[[], None]) -> None:
        if self._loop is None or not self.is_running:
            raise RuntimeError("Owner loop is not running")
        self._loop.call_soon_threadsafe(_run_callback, callback)

    def is_owner_thread(self) -> bool:
        return self._thread is threading.current_thread()

    def __enter__(self) -> "LoopContext":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
