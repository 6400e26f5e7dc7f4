"""DMX buffers, Art-Net packets, transport and scheduling."""

from artnet_client.dmx.artnet import build_artdmx_packet, build_arttrigger_packet
from artnet_client.dmx.scheduler import RefreshTimer, UniverseScheduler
from artnet_client.dmx.transport import Transport, UdpTransport
from artnet_client.dmx.universe import (
    DMX_CHANNEL_COUNT,
    DMX_CHANNEL_MAX,
    DMX_CHANNEL_MIN,
    ChannelBuffer,
    frame_length,
    is_valid_dmx_channel,
    validate_universe,
)

__all__ = [
    "build_artdmx_packet",
    "build_arttrigger_packet",
    "RefreshTimer",
    "UniverseScheduler",
    "Transport",
    "UdpTransport",
    "DMX_CHANNEL_COUNT",
    "DMX_CHANNEL_MIN",
    "DMX_CHANNEL_MAX",
    "ChannelBuffer",
    "frame_length",
    "is_valid_dmx_channel",
    "validate_universe",
]
