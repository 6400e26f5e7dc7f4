"""
Per-universe send scheduling.

Each universe owns one UniverseScheduler, which enforces the throttle
(at most one send per ``send_gap_s`` window, extra requests are dropped
as BUSY rather than queued) and keeps a slot on a shared RefreshTimer that
re-sends the full universe whenever it has been idle for ``refresh_s``.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from concurrent.futures import Future
from typing import Callable, Hashable, Optional

import structlog

from artnet_client.core.config import ArtNetConfig
from artnet_client.core.exceptions import (
    ArtNetError,
    BusyError,
    ClientClosedError,
    TransmissionError,
)
from artnet_client.core.outcome import SendOutcome, SendStatus
from artnet_client.dmx.artnet import build_artdmx_packet
from artnet_client.dmx.transport import Transport
from artnet_client.dmx.universe import ChannelBuffer

logger = structlog.get_logger()

Destination = Callable[[], tuple[str, int]]
OutcomeCallback = Callable[[SendOutcome], None]


def resolved(outcome: SendOutcome) -> Future[SendOutcome]:
    """Wrap an outcome that is known immediately in a completed future."""
    future: Future[SendOutcome] = Future()
    future.set_result(outcome)
    return future


class RefreshTimer:
    """
    Cancellable periodic tasks sharing one daemon thread.

    Each key fires its callback every ``interval`` seconds. ``rearm(key)``
    pushes that key's next firing a full interval into the future and
    ``cancel(key)`` stops it; ``close()`` stops the thread for good.
    Pending deadlines live in a heap, so any number of universes costs a
    single thread. Superseded heap entries are skipped when they surface.
    """

    def __init__(self, interval: float, name: str = "ArtNet-Refresh"):
        self.interval = interval
        self._name = name
        self._cond = threading.Condition()
        self._heap: list[tuple[float, int, Hashable]] = []
        self._deadlines: dict[Hashable, float] = {}
        self._callbacks: dict[Hashable, Callable[[], None]] = {}
        self._counter = itertools.count()
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def armed(self, key: Hashable) -> bool:
        with self._cond:
            return key in self._deadlines

    def rearm(self, key: Hashable, callback: Callable[[], None]) -> None:
        with self._cond:
            if self._closed:
                return
            self._schedule(key, time.monotonic() + self.interval)
            self._callbacks[key] = callback
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
            self._cond.notify_all()

    def cancel(self, key: Hashable) -> None:
        with self._cond:
            self._deadlines.pop(key, None)
            self._callbacks.pop(key, None)
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._deadlines.clear()
            self._callbacks.clear()
            self._heap.clear()
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _schedule(self, key: Hashable, deadline: float) -> None:
        self._deadlines[key] = deadline
        heapq.heappush(self._heap, (deadline, next(self._counter), key))

    def _next_due(self) -> Optional[tuple[Hashable, Callable[[], None]]]:
        """Wait for the earliest live deadline; None once closed."""
        while not self._closed:
            if not self._heap:
                self._cond.wait()
                continue
            deadline, _, key = self._heap[0]
            if self._deadlines.get(key) != deadline:
                heapq.heappop(self._heap)
                continue
            remaining = deadline - time.monotonic()
            if remaining > 0:
                self._cond.wait(remaining)
                continue
            heapq.heappop(self._heap)
            self._schedule(key, time.monotonic() + self.interval)
            return key, self._callbacks[key]
        return None

    def _run(self) -> None:
        while True:
            with self._cond:
                due = self._next_due()
            if due is None:
                return

            key, callback = due
            try:
                callback()
            except Exception as e:
                logger.error("Refresh callback failed", timer=self._name, key=key, error=str(e))


class UniverseScheduler:
    """
    Throttled sender for a single universe.

    Throttle state is a cooldown deadline: a send initiated at ``t`` blocks
    further sends until ``t + send_gap_s``, whether or not the transport
    has finished with the datagram.

    Keep-alives run on ``refresh_timer``, keyed by universe. Pass the
    client's shared timer; without one the scheduler owns a private timer
    and closes it with itself.
    """

    def __init__(
        self,
        universe: int,
        buffer: ChannelBuffer,
        transport: Transport,
        destination: Destination,
        config: ArtNetConfig,
        clock: Callable[[], float] = time.monotonic,
        on_outcome: Optional[OutcomeCallback] = None,
        refresh_timer: Optional[RefreshTimer] = None,
    ):
        self.universe = universe
        self.buffer = buffer
        self.config = config
        self._transport = transport
        self._destination = destination
        self._clock = clock
        self._on_outcome = on_outcome

        self._lock = threading.Lock()
        self._throttled_until: Optional[float] = None
        self._closed = False
        self._owns_refresh = refresh_timer is None
        self._refresh = refresh_timer or RefreshTimer(
            config.refresh_s, name=f"ArtNet-Refresh-{universe}"
        )

    @property
    def throttled(self) -> bool:
        with self._lock:
            return self._is_throttled()

    @property
    def refresh_armed(self) -> bool:
        return self._refresh.armed(self.universe)

    def _is_throttled(self) -> bool:
        return self._throttled_until is not None and self._clock() < self._throttled_until

    def request_send(self, force_full: bool = False) -> Future[SendOutcome]:
        """
        Send the pending prefix of the universe, or all 512 channels when
        ``force_full`` (or ``send_all``) is set.

        Returns a future resolving to the SendOutcome. A BUSY outcome is
        returned already resolved; the buffer keeps its pending changes for
        the next send.
        """
        return self._send(force_full, refresh=False)

    def close(self) -> None:
        with self._lock:
            self._closed = True
        if self._owns_refresh:
            self._refresh.close()
        else:
            self._refresh.cancel(self.universe)

    def _send(self, force_full: bool, refresh: bool) -> Future[SendOutcome]:
        with self._lock:
            if self._closed:
                raise ClientClosedError()

            if self._is_throttled():
                busy = SendOutcome(
                    SendStatus.BUSY, self.universe, error=BusyError(self.universe), refresh=refresh
                )
            else:
                busy = None
                self._throttled_until = self._clock() + self.config.send_gap_s
                payload = self.buffer.take_frame(force_full or self.config.send_all)
                packet = build_artdmx_packet(self.universe, payload)
                host, port = self._destination()
                sent = self._transport.send(packet, host, port)
                self._refresh.rearm(self.universe, self._refresh_tick)

        if busy is not None:
            logger.warning("Art-Net send dropped, universe busy", universe=self.universe, refresh=refresh)
            self._deliver(busy)
            return resolved(busy)

        logger.debug(
            "Art-Net frame queued",
            universe=self.universe,
            length=len(payload),
            full=force_full,
            refresh=refresh,
            host=host,
            port=port,
        )
        result: Future[SendOutcome] = Future()
        sent.add_done_callback(lambda f: self._complete(f, len(payload), refresh, result))
        return result

    def _refresh_tick(self) -> None:
        try:
            self._send(force_full=True, refresh=True)
        except ClientClosedError:
            logger.debug("Refresh skipped, universe closed", universe=self.universe)

    def _complete(
        self,
        sent: Future[None],
        length: int,
        refresh: bool,
        result: Future[SendOutcome],
    ) -> None:
        error: Optional[BaseException]
        if sent.cancelled():
            error = TransmissionError("send cancelled")
        else:
            error = sent.exception()

        if error is None:
            outcome = SendOutcome(SendStatus.SENT, self.universe, length=length, refresh=refresh)
        else:
            if not isinstance(error, ArtNetError):
                error = TransmissionError(str(error))
            logger.error("Art-Net transmission failed", universe=self.universe, error=str(error))
            outcome = SendOutcome(SendStatus.FAILED, self.universe, error=error, refresh=refresh)

        self._deliver(outcome)
        result.set_result(outcome)

    def _deliver(self, outcome: SendOutcome) -> None:
        if self._on_outcome is not None:
            self._on_outcome(outcome)
