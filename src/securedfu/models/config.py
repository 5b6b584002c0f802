"""Transfer configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TransferConfig:
    """Tunables for one DFU session.

    Attributes:
        prn: Packet receipt notification interval, 0 disables receipts
        packet_size: Bytes per data point write (None uses the adapter's max write size)
        response_timeout: Seconds to wait for a control point response
        receipt_timeout: Seconds to wait for a packet receipt notification
    """

    prn: int = 0
    packet_size: int | None = None
    response_timeout: float = 20.0
    receipt_timeout: float = 20.0

    def __post_init__(self) -> None:
        if not 0 <= self.prn <= 0xFFFF:
            raise ValueError(f"prn out of range: {self.prn} (must be 0-65535)")
        if self.packet_size is not None and self.packet_size <= 0:
            raise ValueError(f"packet_size must be positive, got {self.packet_size}")
        if self.response_timeout <= 0:
            raise ValueError(f"response_timeout must be positive, got {self.response_timeout}")
        if self.receipt_timeout <= 0:
            raise ValueError(f"receipt_timeout must be positive, got {self.receipt_timeout}")
