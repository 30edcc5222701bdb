"""
NFC tag data structures
"""

import time
from dataclasses import dataclass, field
from typing import Optional


def format_uid(uid: bytes) -> str:
    """Render a UID as uppercase hex without separators."""
    return bytes(uid).hex().upper()


@dataclass(frozen=True)
class FirmwareVersion:
    """
    Firmware version reported by the transceiver handshake

    Attributes:
        ic: IC identification code (0x32 for a PN532)
        major: Firmware version
        minor: Firmware revision
        build: Supported-protocol field; zero means no device answered
    """
    ic: int = 0
    major: int = 0
    minor: int = 0
    build: int = 0

    @property
    def is_present(self) -> bool:
        return self.build != 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.build} (IC 0x{self.ic:02X})"


@dataclass(frozen=True)
class NfcTag:
    """
    Represents a passive target found by an InListPassiveTarget scan

    Attributes:
        uid: NFCID1 bytes
        target_number: Logical target number assigned by the PN532
        sens_res: SENS_RES (ATQA) bytes, empty when the source does not expose it
        sel_res: SEL_RES (SAK) byte, None when the source does not expose it
        device_name: Name of the bus the tag was read on
    """
    uid: bytes
    target_number: int = 1
    sens_res: bytes = b""
    sel_res: Optional[int] = None
    device_name: str = ""

    @property
    def uid_hex(self) -> str:
        return format_uid(self.uid)

    def __str__(self) -> str:
        result = f"NfcTag(UID={self.uid_hex}"
        if self.sens_res:
            result += f", ATQA={self.sens_res.hex().upper()}"
        if self.sel_res is not None:
            result += f", SAK=0x{self.sel_res:02X}"
        return result + ")"

    def __repr__(self) -> str:
        return self.__str__()


@dataclass(frozen=True)
class TagReport:
    """A newly seen tag, emitted once per debounce window"""
    uid: bytes
    detected_at: float  # monotonic, for debouncing
    tag: Optional[NfcTag] = field(default=None, compare=False)
    received_at: float = field(default_factory=time.time, compare=False)

    @property
    def uid_hex(self) -> str:
        return format_uid(self.uid)

    def to_dict(self) -> dict:
        return {
            'uid': self.uid_hex,
            'length': len(self.uid),
            'sens_res': self.tag.sens_res.hex().upper() if self.tag and self.tag.sens_res else None,
            'sel_res': self.tag.sel_res if self.tag else None,
            'device_name': self.tag.device_name if self.tag else "",
            'received_at': self.received_at,
        }
