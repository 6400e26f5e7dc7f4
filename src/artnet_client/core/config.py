"""
Configuration Management for the Art-Net client.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

BROADCAST_HOST = "255.255.255.255"
ARTNET_PORT = 6454


class ArtNetConfig(BaseModel):
    """Destination and pacing for Art-Net output."""
    host: str = BROADCAST_HOST
    port: int = Field(default=ARTNET_PORT, ge=1, le=65535)
    refresh_s: float = Field(default=4.0, gt=0)  # Keep-alive period per universe
    send_gap_s: float = Field(default=0.025, ge=0)  # Minimum gap between sends per universe
    send_all: bool = False  # Always send all 512 channels
    iface: Optional[str] = None  # Local address to bind when broadcasting


class Settings(BaseSettings):
    """
    Main application settings.

    Can be configured via:
    - Environment variables (prefixed with ARTNET_)
    - YAML config file
    - Direct instantiation
    """

    artnet: ArtNetConfig = Field(default_factory=ArtNetConfig)

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_prefix = "ARTNET_"
        env_nested_delimiter = "__"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
