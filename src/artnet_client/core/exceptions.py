"""
Custom Exceptions for the Art-Net client.

Provides a hierarchy of exceptions for the send path, runtime
reconfiguration and input validation.
"""

from __future__ import annotations


class ArtNetError(Exception):
    """Base exception for all Art-Net client errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# Send Errors
# =============================================================================


class SendError(ArtNetError):
    """Base exception for errors on the frame send path."""
    pass


class BusyError(SendError):
    """A send for this universe is still throttled; the frame was dropped."""

    def __init__(self, universe: int):
        super().__init__(f"Send already pending for universe {universe}", recoverable=True)
        self.universe = universe


class TransmissionError(SendError):
    """The transport failed to put a frame on the wire."""

    def __init__(self, reason: str):
        super().__init__(f"Art-Net transmission error: {reason}", recoverable=True)
        self.reason = reason


class ClientClosedError(SendError):
    """Operation attempted after the client was closed."""

    def __init__(self) -> None:
        super().__init__("Art-Net client is closed", recoverable=False)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ArtNetError):
    """Invalid runtime reconfiguration."""

    def __init__(self, reason: str):
        super().__init__(f"Configuration error: {reason}", recoverable=False)
        self.reason = reason


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ArtNetError):
    """Base exception for rejected caller input."""
    pass


class UniverseError(ValidationError):
    """Universe number outside the 15-bit Art-Net address space."""

    def __init__(self, universe: object, reason: str):
        super().__init__(f"Invalid universe {universe!r}: {reason}")
        self.universe = universe


class ChannelValueError(ValidationError):
    """Invalid DMX channel position or value."""

    def __init__(self, channel: object, value: object, reason: str):
        super().__init__(f"Invalid value {value!r} for channel {channel!r}: {reason}")
        self.channel = channel
        self.value = value
