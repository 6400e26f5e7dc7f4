"""UDP transport for Art-Net frames."""

from __future__ import annotations

import socket
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Protocol

import structlog

from artnet_client.core.config import ARTNET_PORT, BROADCAST_HOST
from artnet_client.core.exceptions import TransmissionError

logger = structlog.get_logger()


class Transport(Protocol):
    """Sends one datagram and reports completion through a future."""

    def send(self, data: bytes, host: str, port: int) -> Future[None]:
        ...

    def close(self) -> None:
        ...


def is_broadcast_host(host: str) -> bool:
    """True for the limited broadcast address or a /24 subnet broadcast."""
    return host == BROADCAST_HOST or host.endswith(".255")


class UdpTransport:
    """
    Non-blocking UDP sender.

    Datagrams are written from a single worker thread so callers never
    wait on the network. Failures surface as TransmissionError on the
    returned future.
    """

    def __init__(
        self,
        host: str = BROADCAST_HOST,
        port: int = ARTNET_PORT,
        iface: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.iface = iface
        self._socket: socket.socket | None = None
        self._executor: ThreadPoolExecutor | None = None

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def open(self) -> None:
        if self._socket is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            if self.iface and self.host == BROADCAST_HOST:
                sock.bind((self.iface, self.port))
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            elif is_broadcast_host(self.host):
                sock.bind(("", self.port))
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as e:
            sock.close()
            raise TransmissionError(f"cannot bind {self.iface or '*'}:{self.port}: {e}") from e

        self._socket = sock
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ArtNet-Send")
        logger.info("Art-Net transport opened", host=self.host, port=self.port, iface=self.iface)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.info("Art-Net transport closed")

    def send(self, data: bytes, host: str, port: int) -> Future[None]:
        if self._socket is None or self._executor is None:
            future: Future[None] = Future()
            future.set_exception(TransmissionError("transport is not open"))
            return future
        return self._executor.submit(self._sendto, self._socket, data, host, port)

    @staticmethod
    def _sendto(sock: socket.socket, data: bytes, host: str, port: int) -> None:
        try:
            sock.sendto(data, (host, port))
        except OSError as e:
            raise TransmissionError(f"sendto {host}:{port} failed: {e}") from e
