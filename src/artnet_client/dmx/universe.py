"""Canonical DMX universe sizing, validation and the per-universe channel buffer."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Sequence, Union

from artnet_client.core.exceptions import ChannelValueError, UniverseError

DMX_CHANNEL_COUNT = 512
DMX_CHANNEL_MIN = 1
DMX_CHANNEL_MAX = DMX_CHANNEL_COUNT
DMX_VALUE_MIN = 0
DMX_VALUE_MAX = 255
DMX_MIN_FRAME_LENGTH = 2

# 15-bit Port-Address: Net (7 bits) + Sub-Net/Universe (8 bits)
UNIVERSE_MIN = 0
UNIVERSE_MAX = 0x7FFF

ChannelValues = Union[int, Sequence[int]]


def is_valid_dmx_channel(channel: int) -> bool:
    """Return True when a channel index is a valid 1-based DMX slot."""
    return DMX_CHANNEL_MIN <= channel <= DMX_CHANNEL_MAX


def validate_universe(universe: int) -> int:
    """Return ``universe`` unchanged, or raise UniverseError."""
    if isinstance(universe, bool) or not isinstance(universe, int):
        raise UniverseError(universe, "must be an integer")
    if not UNIVERSE_MIN <= universe <= UNIVERSE_MAX:
        raise UniverseError(universe, f"must be between {UNIVERSE_MIN} and {UNIVERSE_MAX}")
    return universe


def frame_length(length: int) -> int:
    """Round a payload length up to even, clamped to 2..512."""
    if length % 2:
        length += 1
    return max(DMX_MIN_FRAME_LENGTH, min(DMX_CHANNEL_COUNT, length))


def _normalize_values(start_channel: int, values: ChannelValues) -> list[int]:
    if isinstance(start_channel, bool) or not isinstance(start_channel, int):
        raise ChannelValueError(start_channel, values, "channel must be an integer")
    if not is_valid_dmx_channel(start_channel):
        raise ChannelValueError(
            start_channel, values, f"channel must be between {DMX_CHANNEL_MIN} and {DMX_CHANNEL_MAX}"
        )

    normalized = list(values) if isinstance(values, Iterable) else [values]
    last_channel = start_channel + len(normalized) - 1
    if last_channel > DMX_CHANNEL_MAX:
        raise ChannelValueError(last_channel, values, "write runs past the end of the universe")

    for offset, value in enumerate(normalized):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ChannelValueError(start_channel + offset, value, "value must be an integer")
        if not DMX_VALUE_MIN <= value <= DMX_VALUE_MAX:
            raise ChannelValueError(
                start_channel + offset, value, f"value must be between {DMX_VALUE_MIN} and {DMX_VALUE_MAX}"
            )
    return normalized


class ChannelBuffer:
    """
    512 DMX channel values for one universe plus change tracking.

    ``high_watermark`` is the highest 1-based channel changed since the
    last send was initiated, or 0 when nothing is pending. Only the prefix
    up to the watermark needs to go on the wire.
    """

    def __init__(self) -> None:
        self._channels = bytearray(DMX_CHANNEL_COUNT)
        self._high_watermark = 0
        self._lock = threading.RLock()

    @property
    def high_watermark(self) -> int:
        return self._high_watermark

    @property
    def channels(self) -> bytes:
        with self._lock:
            return bytes(self._channels)

    def set_channels(self, start_channel: int, values: ChannelValues) -> bool:
        """
        Write one value or a run of values starting at ``start_channel``.

        Returns True when at least one stored value changed. Writes of the
        current value are ignored and never advance the watermark. Input is
        validated in full before anything is stored.
        """
        normalized = _normalize_values(start_channel, values)
        changed = False

        with self._lock:
            for offset, value in enumerate(normalized):
                index = start_channel - 1 + offset
                if self._channels[index] == value:
                    continue
                self._channels[index] = value
                self._high_watermark = max(self._high_watermark, index + 1)
                changed = True

        return changed

    def read_frame(self, length: int) -> bytes:
        """Return the first ``length`` channels, length rounded up to even."""
        with self._lock:
            return bytes(self._channels[: frame_length(length)])

    def take_watermark(self) -> int:
        """Return the pending watermark and reset it to 0."""
        with self._lock:
            watermark = self._high_watermark
            self._high_watermark = 0
            return watermark

    def take_frame(self, full: bool) -> bytes:
        """
        Read the payload for the next send and clear the watermark.

        ``full`` sends all 512 channels, otherwise the prefix up to the
        watermark (minimum 2) is returned.
        """
        with self._lock:
            watermark = self.take_watermark()
            return self.read_frame(DMX_CHANNEL_COUNT if full else watermark)
