# -*- coding: utf-8 -*-
"""
ThreadExecutorPool - Thread pool for background catalog operations.

Provides a managed thread pool for running catalog refreshes and update
checks in the background, and the RefreshTimer that drives periodic
catalog refresh while a hub session is open.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-16

Modified
--------
2026-10-18
"""

# Standard library
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class ThreadExecutorPool:
    """Manages a pool of worker threads for background catalog operations.

    Parameters
    ----------
    max_workers : int
        Maximum number of concurrent threads. Default 4.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="agenthub"
        )

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def submit_refresh(self, engine, config) -> Future:
        """Submit a single catalog refresh.

        Parameters
        ----------
        engine : CatalogSyncEngine
        config : RepoConfig

        Returns
        -------
        Future
            Future resolving to the refreshed Catalog.
        """
        return self._executor.submit(engine.refresh, config)

    def submit_update_check(self, engine, configs: List) -> Future:
        """Submit an update check job to run in the background.

        Parameters
        ----------
        engine : UpdateEngine
            The update engine to run.
        configs : List[RepoConfig]
            Repository configs, for changelog auth.

        Returns
        -------
        Future
            Future resolving to List[UpdateInfo].
        """
        return self._executor.submit(engine.check_for_updates, configs)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the thread pool.

        Parameters
        ----------
        wait : bool
            If True, wait for running tasks to complete.
        """
        self._executor.shutdown(wait=wait)


class RefreshTimer:
    """Periodic callback on a daemon thread.

    ``start`` and ``stop`` are idempotent; a callback that raises is
    logged and the schedule continues. ``stop`` waits for a tick that is
    already running, so the callback never outlives the timer.

    Parameters
    ----------
    interval : float
        Seconds between callback runs. Must be positive.
    callback : Callable[[], Any]
        Work to run on each tick.
    """

    def __init__(self, interval: float, callback: Callable[[], Any]) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self._interval = interval
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._idle = threading.Event()
        self._idle.set()
        self._tick_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    def _schedule(self) -> None:
        self._timer = threading.Timer(self._interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._idle.clear()
            self._tick_thread = threading.current_thread()
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled refresh failed")
        finally:
            with self._lock:
                self._tick_thread = None
                self._idle.set()
                if self._running:
                    self._schedule()

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule()
        logger.info("Refresh timer started (every %.0fs)", self._interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the schedule and wait for a running tick to finish.

        Parameters
        ----------
        timeout : Optional[float]
            Seconds to wait for the running tick. Waits indefinitely when
            None. Called from inside the callback it does not wait.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            in_tick = self._tick_thread is threading.current_thread()
        if not in_tick and not self._idle.wait(timeout):
            logger.warning("Scheduled refresh still running after %.1fs", timeout)
        logger.info("Refresh timer stopped")
