"""
artnet-client: Art-Net DMX512 sender

Keeps per-universe DMX channel state and transmits it to Art-Net nodes
over UDP, on every change (throttled per universe) and as a periodic
keep-alive refresh.
"""

__version__ = "0.1.0"

from artnet_client.client import ArtNetClient
from artnet_client.core.config import ArtNetConfig, Settings
from artnet_client.core.outcome import SendOutcome, SendStatus

__all__ = [
    "ArtNetClient",
    "ArtNetConfig",
    "Settings",
    "SendOutcome",
    "SendStatus",
    "__version__",
]
