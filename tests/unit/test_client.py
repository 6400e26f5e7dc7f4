from __future__ import annotations

import threading
import time
from concurrent.futures import Future

import pytest

from artnet_client import ArtNetClient, ArtNetConfig, SendStatus
from artnet_client.core.exceptions import (
    BusyError,
    ChannelValueError,
    ClientClosedError,
    ConfigurationError,
    TransmissionError,
    UniverseError,
)
from artnet_client.dmx.universe import DMX_CHANNEL_COUNT


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _RecordingTransport:
    """Completes every send immediately and records the datagrams."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[bytes, str, int]] = []
        self.closed = False

    def send(self, data: bytes, host: str, port: int) -> Future:
        self.sent.append((data, host, port))
        future: Future = Future()
        if self.fail:
            future.set_exception(TransmissionError("network unreachable"))
        else:
            future.set_result(None)
        return future

    def close(self) -> None:
        self.closed = True

    def payloads(self) -> list[bytes]:
        return [data[18:] for data, _, _ in self.sent]


@pytest.fixture
def transport() -> _RecordingTransport:
    return _RecordingTransport()


@pytest.fixture
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture
def client(transport, clock):
    client = ArtNetClient(ArtNetConfig(refresh_s=60.0), transport=transport, clock=clock)
    yield client
    client.close()


def test_first_set_sends_two_channel_frame(client, transport) -> None:
    outcome = client.set(255, 1, 0).result(timeout=1)

    assert outcome.status is SendStatus.SENT
    assert outcome.length == 2
    packet, host, port = transport.sent[0]
    assert (host, port) == ("255.255.255.255", 6454)
    assert packet[16:18] == b"\x00\x02"
    assert packet[18:] == b"\xff\x00"


def test_identical_value_does_not_send(client, transport) -> None:
    client.set(255, 1, 0).result(timeout=1)
    outcome = client.set(255, 1, 0).result(timeout=1)

    assert outcome.status is SendStatus.UNCHANGED
    assert outcome.ok
    assert len(transport.sent) == 1


def test_zero_write_on_fresh_universe_does_not_send(client, transport) -> None:
    outcome = client.set(0, 7, 4).result(timeout=1)

    assert outcome.status is SendStatus.UNCHANGED
    assert transport.sent == []


def test_second_set_within_gap_is_busy_but_stored(client, transport, clock) -> None:
    client.set(255, 1, 0)
    outcome = client.set(10, 2, 0).result(timeout=1)

    assert outcome.status is SendStatus.BUSY
    assert isinstance(outcome.error, BusyError)
    assert len(transport.sent) == 1
    assert client.get_channels(0)[:3] == bytes([255, 10, 0])

    with pytest.raises(BusyError):
        outcome.raise_for_status()

    # The dropped change is still pending and goes out with the next send.
    clock.advance(0.025)
    assert client.set(10, 2, 0).result(timeout=1).status is SendStatus.SENT
    assert transport.payloads()[-1] == bytes([255, 10])


def test_universes_are_throttled_independently(client, transport) -> None:
    first = client.set(255, 1, 0).result(timeout=1)
    second = client.set(255, 1, 1).result(timeout=1)

    assert first.status is SendStatus.SENT
    assert second.status is SendStatus.SENT
    assert [data[14:16] for data, _, _ in transport.sent] == [b"\x00\x00", b"\x01\x00"]


def test_watermark_is_reset_after_send(client, clock) -> None:
    client.set([1, 2, 3], 1, 0)
    client.set(5, 9, 0)  # busy, pending
    scheduler = client._universe(0)
    assert scheduler.buffer.high_watermark == 9

    clock.advance(0.025)
    client.send(0)
    assert scheduler.buffer.high_watermark == 0


def test_length_field_always_even_and_bounded(client, transport, clock) -> None:
    for channel in (1, 2, 3, 99, 511, 512):
        client.set(channel % 250 + 1, channel, 0)
        clock.advance(0.025)

    for data, _, _ in transport.sent:
        length = int.from_bytes(data[16:18], "big")
        assert length % 2 == 0
        assert 2 <= length <= 512
        assert len(data) - 18 == length


def test_send_all_sends_full_universe(transport, clock) -> None:
    config = ArtNetConfig(refresh_s=60.0, send_all=True)
    with ArtNetClient(config, transport=transport, clock=clock) as client:
        client.set(1, 1, 0).result(timeout=1)

    assert len(transport.payloads()[0]) == DMX_CHANNEL_COUNT


def test_manual_send_defaults_to_full_frame(client, transport) -> None:
    outcome = client.send(2).result(timeout=1)

    assert outcome.length == DMX_CHANNEL_COUNT
    assert transport.payloads()[0] == bytes(DMX_CHANNEL_COUNT)


def test_transmission_error_is_reported_and_state_kept(clock) -> None:
    transport = _RecordingTransport(fail=True)
    errors = []
    client = ArtNetClient(
        ArtNetConfig(refresh_s=60.0), transport=transport, on_error=errors.append, clock=clock
    )
    try:
        outcome = client.set(42, 3, 0).result(timeout=1)

        assert outcome.status is SendStatus.FAILED
        assert isinstance(outcome.error, TransmissionError)
        assert errors == [outcome]
        assert client.get_channels(0)[2] == 42
        assert client.get_stats()["errors"] == 1
    finally:
        client.close()


def test_caller_busy_stays_off_error_callback(transport, clock) -> None:
    errors = []
    client = ArtNetClient(
        ArtNetConfig(refresh_s=60.0), transport=transport, on_error=errors.append, clock=clock
    )
    try:
        client.set(1, 1, 0)
        busy = client.set(2, 1, 0).result(timeout=1)
        assert busy.status is SendStatus.BUSY
        assert not busy.refresh
        assert errors == []
        assert client.get_stats()["busy_drops"] == 1
    finally:
        client.close()


def test_keepalive_busy_reaches_error_callback(transport, clock) -> None:
    errors = []
    # The frozen fake clock keeps universe 0 throttled, so the keep-alive is dropped.
    client = ArtNetClient(
        ArtNetConfig(refresh_s=0.05), transport=transport, on_error=errors.append, clock=clock
    )
    try:
        client.set(1, 1, 0)
        deadline = time.monotonic() + 1.0
        while not errors and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        client.close()

    assert errors
    assert all(o.status is SendStatus.BUSY and o.refresh for o in errors)
    assert len(transport.sent) == 1


def test_invalid_input_is_rejected(client, transport) -> None:
    with pytest.raises(ChannelValueError):
        client.set(256, 1, 0)
    with pytest.raises(ChannelValueError):
        client.set([1, 2], 512, 0)
    with pytest.raises(UniverseError):
        client.set(1, 1, 32768)

    assert transport.sent == []
    assert client.get_channels(0) == bytes(DMX_CHANNEL_COUNT)


def test_set_accepts_any_value_sequence(client, transport) -> None:
    client.set(range(1, 4), 1, 0).result(timeout=1)

    assert client.get_channels(0)[:4] == bytes([1, 2, 3, 0])
    assert transport.payloads()[0] == bytes([1, 2, 3, 0])


def test_set_port_rejected_while_broadcasting(client) -> None:
    with pytest.raises(ConfigurationError):
        client.set_port(7000)
    assert client.port == 6454


def test_set_host_and_port_redirect_sends(client, transport) -> None:
    client.set_host("10.0.0.20")
    client.set_port(7000)
    client.set(1, 1, 0).result(timeout=1)

    _, host, port = transport.sent[-1]
    assert (host, port) == ("10.0.0.20", 7000)

    with pytest.raises(ConfigurationError):
        client.set_port(70000)


def test_trigger_is_never_throttled(client, transport) -> None:
    first = client.trigger(oem=0xFFFF, key=1, subkey=5).result(timeout=1)
    second = client.trigger().result(timeout=1)

    assert first.status is SendStatus.SENT
    assert second.status is SendStatus.SENT
    assert [len(data) for data, _, _ in transport.sent] == [530, 530]
    assert transport.sent[0][0][16:18] == bytes([1, 5])
    assert client.get_stats()["triggers_sent"] == 2


def test_trigger_failure_is_reported(clock) -> None:
    errors = []
    client = ArtNetClient(
        ArtNetConfig(refresh_s=60.0),
        transport=_RecordingTransport(fail=True),
        on_error=errors.append,
        clock=clock,
    )
    try:
        outcome = client.trigger().result(timeout=1)
        assert outcome.status is SendStatus.FAILED
        assert errors == [outcome]
    finally:
        client.close()


def test_close_releases_transport_and_rejects_calls(transport, clock) -> None:
    client = ArtNetClient(ArtNetConfig(refresh_s=60.0), transport=transport, clock=clock)
    client.set(1, 1, 0)
    client.close()
    client.close()

    assert transport.closed
    assert client.closed
    with pytest.raises(ClientClosedError):
        client.set(2, 1, 0)
    with pytest.raises(ClientClosedError):
        client.trigger()


def test_stats_count_sends_and_drops(client) -> None:
    client.set(1, 1, 0)
    client.set(2, 1, 0)
    client.set(1, 1, 1)

    stats = client.get_stats()
    assert stats["frames_sent"] == 2
    assert stats["busy_drops"] == 1
    assert stats["universes"] == [0, 1]


def test_universes_share_one_refresh_thread(client) -> None:
    for universe in range(40):
        client.set(1, 1, universe)

    names = [t.name for t in threading.enumerate()]
    assert names.count("ArtNet-Refresh") == 1


def test_get_channels_of_unknown_universe_is_zeroed(client) -> None:
    assert client.get_channels(9) == bytes(DMX_CHANNEL_COUNT)
    assert client.get_stats()["universes"] == []


# ---------------------------------------------------------------------------
# Keep-alive refresh (real clock)
# ---------------------------------------------------------------------------


def test_idle_universe_gets_one_full_refresh_per_period(transport) -> None:
    client = ArtNetClient(ArtNetConfig(refresh_s=0.2), transport=transport)
    try:
        client.set(9, 1, 0).result(timeout=1)
        time.sleep(0.3)
    finally:
        client.close()

    payloads = transport.payloads()
    assert len(payloads) == 2
    assert len(payloads[0]) == 2
    assert len(payloads[1]) == DMX_CHANNEL_COUNT
    assert payloads[1][0] == 9


def test_updates_postpone_keepalive(transport) -> None:
    client = ArtNetClient(ArtNetConfig(refresh_s=0.2), transport=transport)
    try:
        for value in range(1, 5):
            client.set(value, 1, 0).result(timeout=1)
            time.sleep(0.08)
    finally:
        client.close()

    assert all(len(payload) == 2 for payload in transport.payloads())


def test_no_frames_after_close(transport) -> None:
    client = ArtNetClient(ArtNetConfig(refresh_s=0.05), transport=transport)
    client.set(1, 1, 0).result(timeout=1)
    client.close()
    time.sleep(0.15)

    assert len(transport.sent) == 1
