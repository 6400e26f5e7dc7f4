"""Art-Net packet builders (ArtDmx and ArtTrigger)."""

from __future__ import annotations

import struct

from artnet_client.dmx.universe import DMX_CHANNEL_COUNT, DMX_MIN_FRAME_LENGTH

ARTNET_HEADER = b"Art-Net\x00"
ARTNET_OPCODE_DMX = 0x5000
ARTNET_OPCODE_TRIGGER = 0x9900
ARTNET_PROTOCOL_VERSION = 14
ARTNET_HEADER_SIZE = 18

# ArtTrigger OEM code addressing every manufacturer
ARTNET_OEM_BROADCAST = 0xFFFF
ARTTRIGGER_PAYLOAD_SIZE = 512
ARTTRIGGER_PACKET_SIZE = ARTNET_HEADER_SIZE + ARTTRIGGER_PAYLOAD_SIZE


def _packet_prefix(opcode: int) -> bytearray:
    packet = bytearray()
    packet.extend(ARTNET_HEADER)
    # OpCode is little-endian, ProtVer big-endian per Art-Net spec.
    packet.extend(struct.pack("<H", opcode))
    packet.extend(struct.pack(">H", ARTNET_PROTOCOL_VERSION))
    return packet


def build_artdmx_packet(
    universe: int,
    dmx_data: bytes,
    sequence: int = 0,
    physical: int = 0,
) -> bytes:
    """
    Build an ArtDMX packet.

    ``dmx_data`` is sent as-is (no start code, no padding); its length must
    be even and between 2 and 512.
    """
    length = len(dmx_data)
    if length > DMX_CHANNEL_COUNT:
        raise ValueError(f"ArtDMX payload too large: {length} bytes")
    if length < DMX_MIN_FRAME_LENGTH or length % 2:
        raise ValueError(f"ArtDMX payload length must be even and >= 2: {length} bytes")

    packet = _packet_prefix(ARTNET_OPCODE_DMX)
    packet.extend(bytes([sequence & 0xFF, physical & 0xFF]))
    # SubUni then Net, i.e. the 15-bit universe little-endian.
    packet.extend(struct.pack("<H", universe & 0x7FFF))
    packet.extend(struct.pack(">H", length))
    packet.extend(dmx_data)
    return bytes(packet)


def build_arttrigger_packet(
    oem: int = ARTNET_OEM_BROADCAST,
    key: int = 0xFF,
    subkey: int = 0,
) -> bytes:
    """
    Build an ArtTrigger packet.

    With the broadcast OEM code ``key`` selects the action (0 KeyAscii,
    1 KeyMacro, 2 KeySoft, 3 KeyShow) and ``subkey`` carries its data.
    The 512-byte payload is manufacturer specific and left zeroed.
    """
    packet = _packet_prefix(ARTNET_OPCODE_TRIGGER)
    packet.extend(b"\x00\x00")  # Filler1, Filler2
    packet.extend(struct.pack(">H", oem & 0xFFFF))
    packet.extend(bytes([key & 0xFF, subkey & 0xFF]))
    packet.extend(bytes(ARTTRIGGER_PAYLOAD_SIZE))
    return bytes(packet)
