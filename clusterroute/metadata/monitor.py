"""Periodic topology refresh with atomic snapshot publication.

`TopologyMonitor` polls `TopologyResolver.resolve` every ``ttl`` seconds on
an asyncio task. The blocking session work runs in a worker thread. Each
successful poll replaces the published snapshot with a single assignment,
so readers see either the previous snapshot or the new one, never a mix.
A failed poll is logged and the previous snapshot stays published.

Usage
-----
>>> async with TopologyMonitor(TopologyResolver(session), ttl=5.0) as monitor:
...     snapshot = monitor.snapshot
...     rw = [m.address for m in snapshot.primaries]
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Self

from ..core.exceptions import ClusterRouteError
from ..logger import get_logger
from .models import TopologySnapshot
from .topology import TopologyResolver

if TYPE_CHECKING:
    import types

logger = get_logger(__name__)


class TopologyMonitor:
    __slots__ = ("_lock", "_resolver", "_snapshot", "_task", "_ttl")

    def __init__(self, resolver: TopologyResolver, ttl: float = 5.0) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._resolver = resolver
        self._ttl = ttl
        self._snapshot: TopologySnapshot | None = None
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self.ainitialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def snapshot(self) -> TopologySnapshot | None:
        """Most recent complete snapshot, ``None`` before the first successful poll."""
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def arefresh(self) -> TopologySnapshot | None:
        """Poll once and publish the result.

        Returns
        -------
        TopologySnapshot | None
            The snapshot published after this poll. On failure this is the
            previous snapshot.
        """
        async with self._lock:
            try:
                snapshot = await asyncio.to_thread(self._resolver.resolve)
            except ClusterRouteError as exc:
                logger.warning("topology_refresh_failed", error=str(exc), error_type=type(exc).__name__)
                return self._snapshot
            self._snapshot = snapshot
            return snapshot

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._ttl)
            await self.arefresh()

    async def ainitialize(self) -> None:
        """Run a first poll, then start the background refresh task."""
        if self.running:
            return
        await self.arefresh()
        self._task = asyncio.create_task(self._run(), name="topology-monitor")
        logger.info("topology_monitor_started", ttl=self._ttl, has_snapshot=self._snapshot is not None)

    async def aclose(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("topology_monitor_stopped")
