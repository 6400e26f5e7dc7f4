"""Result type delivered for every send request."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from artnet_client.core.exceptions import ArtNetError


class SendStatus(Enum):
    """What happened to a requested frame."""

    SENT = "sent"
    UNCHANGED = "unchanged"  # set() produced no change, nothing sent
    BUSY = "busy"  # dropped, universe throttled
    FAILED = "failed"  # transport reported an error


@dataclass(frozen=True)
class SendOutcome:
    """Outcome of a single send request."""

    status: SendStatus
    universe: Optional[int] = None
    length: int = 0  # payload bytes, 0 when nothing went out
    error: Optional[ArtNetError] = None
    refresh: bool = False  # keep-alive send, no caller waiting on it

    @property
    def ok(self) -> bool:
        return self.status in (SendStatus.SENT, SendStatus.UNCHANGED)

    def raise_for_status(self) -> None:
        """Re-raise the carried error for BUSY and FAILED outcomes."""
        if self.error is not None:
            raise self.error
