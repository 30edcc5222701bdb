"""
InListPassiveTarget response parsing

The response data (after the D5 4B header) for one 106 kbps Type A target is
positional:

    offset 0   NbTg           number of targets found
    offset 1   Tg             logical target number
    offset 2-3 SENS_RES       ATQA
    offset 4   SEL_RES        SAK
    offset 5   NFCIDLength    UID length
    offset 6.. NFCID1         UID
"""

import logging
from typing import Optional

from .nfc_tag import NfcTag

logger = logging.getLogger(__name__)

HEADER_SIZE = 6
UID_LENGTH_OFFSET = 5


def parse_uid(frame: bytes) -> Optional[bytes]:
    """Extract the target UID from a scan response.

    Parameters:
        frame (bytes): Scan response data, possibly empty.

    Returns:
        Optional[bytes]: The UID, or None for empty, short or inconsistent frames.
    """
    if len(frame) <= HEADER_SIZE:
        return None

    uid_length = frame[UID_LENGTH_OFFSET]
    if uid_length == 0:
        logger.debug("Ignoring target with an empty UID")
        return None
    if HEADER_SIZE + uid_length > len(frame):
        logger.debug(f"UID length {uid_length} exceeds frame of {len(frame)} bytes")
        return None

    return bytes(frame[HEADER_SIZE:HEADER_SIZE + uid_length])


def parse_target(frame: bytes, device_name: str = "") -> Optional[NfcTag]:
    """Parse a scan response into an NfcTag, or None when no valid target is present"""
    uid = parse_uid(frame)
    if uid is None:
        return None
    return NfcTag(
        uid=uid,
        target_number=frame[1],
        sens_res=bytes(frame[2:4]),
        sel_res=frame[4],
        device_name=device_name
    )
