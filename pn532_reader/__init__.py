"""
PN532 Tag Reader

Polls a PN532 contactless-card transceiver, detects ISO/IEC 14443 Type A
tags and reports each newly arrived UID once per debounce window.

This package supports:
- SPI (spidev) and HSU/UART (pyserial) links with raw frame decoding
- The structured adafruit_pn532 driver as an alternative tag source
- A steppable polling state machine with injectable clock and sleep
- Console output and a Flask-SocketIO live web monitor
"""

from .debounce import DebounceState, should_report
from .exceptions import (
    Pn532Error, TransportFault, BusPermissionError, CommunicationError,
    MalformedFrame, ReaderNotConnectedError
)
from .frame_parser import parse_target, parse_uid
from .nfc_tag import FirmwareVersion, NfcTag, TagReport
from .poller import PollerState, TagPoller
from .tag_source import AdafruitTagSource, RawFrameTagSource, TagSource, create_tag_source

__version__ = "1.0.0"

__all__ = [
    'DebounceState',
    'should_report',
    'Pn532Error',
    'TransportFault',
    'BusPermissionError',
    'CommunicationError',
    'MalformedFrame',
    'ReaderNotConnectedError',
    'parse_target',
    'parse_uid',
    'FirmwareVersion',
    'NfcTag',
    'TagReport',
    'PollerState',
    'TagPoller',
    'AdafruitTagSource',
    'RawFrameTagSource',
    'TagSource',
    'create_tag_source'
]
