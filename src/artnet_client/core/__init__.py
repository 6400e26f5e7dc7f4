"""Configuration, errors and result types for the Art-Net client."""

from artnet_client.core.config import ArtNetConfig, Settings
from artnet_client.core.exceptions import (
    ArtNetError,
    BusyError,
    ChannelValueError,
    ClientClosedError,
    ConfigurationError,
    TransmissionError,
    UniverseError,
)
from artnet_client.core.logging_config import configure_logging
from artnet_client.core.outcome import SendOutcome, SendStatus

__all__ = [
    "ArtNetConfig",
    "Settings",
    "ArtNetError",
    "BusyError",
    "ChannelValueError",
    "ClientClosedError",
    "ConfigurationError",
    "TransmissionError",
    "UniverseError",
    "configure_logging",
    "SendOutcome",
    "SendStatus",
]
