"""
Art-Net client: per-universe DMX state with change-driven and keep-alive sends.

Usage::

    with ArtNetClient(ArtNetConfig(host="10.0.0.50")) as client:
        client.set([255, 128], channel=1, universe=0).result()
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from typing import Callable, Optional

import structlog

from artnet_client.core.config import ArtNetConfig, BROADCAST_HOST
from artnet_client.core.exceptions import (
    ArtNetError,
    ClientClosedError,
    ConfigurationError,
    TransmissionError,
)
from artnet_client.core.outcome import SendOutcome, SendStatus
from artnet_client.dmx.artnet import ARTNET_OEM_BROADCAST, ARTTRIGGER_PAYLOAD_SIZE, build_arttrigger_packet
from artnet_client.dmx.scheduler import RefreshTimer, UniverseScheduler, resolved
from artnet_client.dmx.transport import Transport, UdpTransport
from artnet_client.dmx.universe import (
    DMX_CHANNEL_COUNT,
    ChannelBuffer,
    ChannelValues,
    validate_universe,
)

logger = structlog.get_logger()

ErrorCallback = Callable[[SendOutcome], None]


class ArtNetClient:
    """
    Sends DMX512 universes to Art-Net nodes over UDP.

    Universes are created on first use. Each one is throttled and
    refreshed independently; see UniverseScheduler.

    Every send returns a future resolving to a SendOutcome. ``on_error``
    (if given) also receives every FAILED outcome and the BUSY outcomes
    of keep-alive sends, which have no caller. BUSY from ``set`` or
    ``send`` is normal backpressure and only reaches the returned future.
    """

    def __init__(
        self,
        config: Optional[ArtNetConfig] = None,
        transport: Optional[Transport] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ArtNetConfig()
        self._host = self.config.host
        self._port = self.config.port
        self._on_error = on_error
        self._clock = clock

        if transport is None:
            udp = UdpTransport(self._host, self._port, iface=self.config.iface)
            udp.open()
            transport = udp
        self._transport = transport

        self._universes: dict[int, UniverseScheduler] = {}
        self._refresh = RefreshTimer(self.config.refresh_s)
        self._lock = threading.Lock()
        self._closed = False

        # Stats
        self._frames_sent = 0
        self._busy_drops = 0
        self._errors = 0
        self._triggers_sent = 0

    def __enter__(self) -> "ArtNetClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def closed(self) -> bool:
        return self._closed

    def _destination(self) -> tuple[str, int]:
        return self._host, self._port

    def _universe(self, universe: int) -> UniverseScheduler:
        validate_universe(universe)
        with self._lock:
            if self._closed:
                raise ClientClosedError()
            scheduler = self._universes.get(universe)
            if scheduler is None:
                scheduler = UniverseScheduler(
                    universe,
                    ChannelBuffer(),
                    self._transport,
                    self._destination,
                    self.config,
                    clock=self._clock,
                    on_outcome=self._record,
                    refresh_timer=self._refresh,
                )
                self._universes[universe] = scheduler
                logger.debug("Universe created", universe=universe)
            return scheduler

    def set(self, value: ChannelValues, channel: int = 1, universe: int = 0) -> Future[SendOutcome]:
        """
        Set one channel, or consecutive channels starting at ``channel``.

        Sends the changed prefix of the universe when anything is pending.
        A write that changes nothing resolves to UNCHANGED without sending.
        If the universe is throttled the values are still stored and the
        outcome is BUSY; the next send carries them.
        """
        scheduler = self._universe(universe)
        scheduler.buffer.set_channels(channel, value)

        if scheduler.buffer.high_watermark == 0:
            return resolved(SendOutcome(SendStatus.UNCHANGED, universe))
        return scheduler.request_send(force_full=False)

    def send(self, universe: int = 0, force_full: bool = True) -> Future[SendOutcome]:
        """Send a universe now, all 512 channels unless ``force_full`` is False."""
        return self._universe(universe).request_send(force_full=force_full)

    def trigger(
        self,
        oem: int = ARTNET_OEM_BROADCAST,
        key: int = 0xFF,
        subkey: int = 0,
    ) -> Future[SendOutcome]:
        """Send an ArtTrigger packet. Triggers are never throttled."""
        with self._lock:
            if self._closed:
                raise ClientClosedError()

        packet = build_arttrigger_packet(oem, key, subkey)
        sent = self._transport.send(packet, self._host, self._port)
        logger.debug("Art-Net trigger queued", oem=oem, key=key, subkey=subkey)

        result: Future[SendOutcome] = Future()

        def _done(f: Future[None]) -> None:
            error = None if f.cancelled() else f.exception()
            if error is None:
                with self._lock:
                    self._triggers_sent += 1
                result.set_result(SendOutcome(SendStatus.SENT, length=ARTTRIGGER_PAYLOAD_SIZE))
                return
            if not isinstance(error, ArtNetError):
                error = TransmissionError(str(error))
            logger.error("Art-Net trigger failed", error=str(error))
            outcome = SendOutcome(SendStatus.FAILED, error=error)
            self._record(outcome)
            result.set_result(outcome)

        sent.add_done_callback(_done)
        return result

    def set_host(self, host: str) -> None:
        """Change the destination host for subsequent sends."""
        self._host = host
        logger.info("Art-Net destination host changed", host=host)

    def set_port(self, port: int) -> None:
        """Change the destination port; not allowed while broadcasting."""
        if self._host == BROADCAST_HOST:
            raise ConfigurationError(
                f"Can't change port when using broadcast address {BROADCAST_HOST}"
            )
        if not 1 <= port <= 65535:
            raise ConfigurationError(f"Port out of range: {port}")
        self._port = port
        logger.info("Art-Net destination port changed", port=port)

    def get_channels(self, universe: int = 0) -> bytes:
        """Current 512 channel values of a universe (zeros if never set)."""
        validate_universe(universe)
        with self._lock:
            scheduler = self._universes.get(universe)
        if scheduler is None:
            return bytes(DMX_CHANNEL_COUNT)
        return scheduler.buffer.channels

    def close(self) -> None:
        """Cancel all refresh timers and release the transport."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            schedulers = list(self._universes.values())

        for scheduler in schedulers:
            scheduler.close()
        self._refresh.close()
        self._transport.close()

        logger.info(
            "Art-Net client closed",
            universes=len(schedulers),
            frames_sent=self._frames_sent,
            busy_drops=self._busy_drops,
            errors=self._errors,
        )

    def get_stats(self) -> dict:
        """Get transmission statistics."""
        with self._lock:
            return {
                "closed": self._closed,
                "universes": sorted(self._universes),
                "frames_sent": self._frames_sent,
                "triggers_sent": self._triggers_sent,
                "busy_drops": self._busy_drops,
                "errors": self._errors,
            }

    def _record(self, outcome: SendOutcome) -> None:
        with self._lock:
            if outcome.status is SendStatus.SENT:
                self._frames_sent += 1
            elif outcome.status is SendStatus.BUSY:
                self._busy_drops += 1
            elif outcome.status is SendStatus.FAILED:
                self._errors += 1

        if self._on_error is None:
            return
        # A caller-triggered BUSY is reported on that caller's future only.
        if outcome.status is SendStatus.FAILED or (
            outcome.status is SendStatus.BUSY and outcome.refresh
        ):
            self._on_error(outcome)
