"""
Tag sources: interchangeable ways of getting a tag UID out of a PN532.

RawFrameTagSource drives the PN532 command layer in this package and decodes
the InListPassiveTarget response bytes itself. AdafruitTagSource wraps the
structured adafruit_pn532 driver, which hands back the UID directly.
"""

import logging
from typing import Any, Callable, Optional, Tuple

from .exceptions import CommunicationError, MalformedFrame
from .frame_parser import parse_target
from .nfc_tag import FirmwareVersion, NfcTag
from .pn532 import (
    BAUD_106KBPS_TYPE_A, MAX_TARGETS_ONE, Pn532, Pn532Spi, Pn532Uart, hex_spaced
)
from .transport import SpiBus, UartBus, bus_error

logger = logging.getLogger(__name__)


def check_firmware(version: FirmwareVersion) -> FirmwareVersion:
    """Raise CommunicationError when the handshake says no device is present"""
    if not version.is_present:
        raise CommunicationError(
            "Failed to communicate with PN532. Check wiring, bus settings, and permissions."
        )
    return version


class TagSource:
    """Interface shared by all tag sources"""

    device_name = ""

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def probe(self) -> FirmwareVersion:
        """Run the firmware handshake; raises CommunicationError if nothing answers"""
        raise NotImplementedError

    def read_tag(self, timeout_ms: int) -> Optional[NfcTag]:
        """Look for one Type A target; None when nothing valid was seen"""
        raise NotImplementedError

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class RawFrameTagSource(TagSource):
    """Tag source that parses raw InListPassiveTarget response frames"""

    def __init__(self, pn532: Pn532):
        self.pn532 = pn532

    @property
    def device_name(self) -> str:
        return self.pn532.device_name

    def open(self) -> None:
        self.pn532.open()

    def close(self) -> None:
        self.pn532.close()

    def probe(self) -> FirmwareVersion:
        version = check_firmware(self.pn532.get_firmware_version())
        if not self.pn532.sam_configuration():
            raise CommunicationError("PN532 did not acknowledge SAMConfiguration")
        return version

    def scan(self, timeout_ms: int = 200) -> bytes:
        """
        List one passive 106 kbps Type A target

        Returns:
            The raw response frame, or b"" when no target answered or the
            response was corrupted
        """
        try:
            return self.pn532.list_passive_target(MAX_TARGETS_ONE, BAUD_106KBPS_TYPE_A, timeout_ms)
        except MalformedFrame as e:
            logger.debug(f"Ignoring malformed scan response: {e}")
            return b""

    def read_tag(self, timeout_ms: int = 200) -> Optional[NfcTag]:
        frame = self.scan(timeout_ms)
        if not frame:
            return None
        tag = parse_target(frame, self.device_name)
        if tag is None:
            logger.debug(f"Discarding scan frame without a valid UID: {hex_spaced(frame)}")
        return tag


def _connect_board_spi(cs_pin: str) -> Tuple[Any, Any]:
    """Create an adafruit_pn532 SPI driver on the board's default SPI pins"""
    import board
    import busio
    from digitalio import DigitalInOut
    from adafruit_pn532.spi import PN532_SPI

    spi = busio.SPI(board.SCK, board.MOSI, board.MISO)
    cs = DigitalInOut(getattr(board, cs_pin))
    return PN532_SPI(spi, cs, debug=False), spi


class AdafruitTagSource(TagSource):
    """Tag source backed by the structured adafruit_pn532 driver"""

    CARD_BAUD_106KBPS_TYPE_A = 0x00

    def __init__(self, connect: Callable[[], Tuple[Any, Any]], device_name: str = "adafruit-pn532"):
        """
        Args:
            connect: Returns (pn532 driver, bus handle); the bus handle is
                deinitialized on close when it supports it
            device_name: Name used in tag records and log lines
        """
        self._connect = connect
        self._device_name = device_name
        self._device = None
        self._bus = None

    @classmethod
    def from_board(cls, cs_pin: str = 'CE0') -> 'AdafruitTagSource':
        return cls(lambda: _connect_board_spi(cs_pin), device_name=f"board SPI ({cs_pin})")

    @property
    def device_name(self) -> str:
        return self._device_name

    def open(self) -> None:
        if self._device is not None:
            return
        try:
            self._device, self._bus = self._connect()
        except OSError as e:
            raise bus_error(e, self.device_name) from e

    def close(self) -> None:
        bus, self._bus, self._device = self._bus, None, None
        if bus is not None and hasattr(bus, 'deinit'):
            bus.deinit()

    def probe(self) -> FirmwareVersion:
        try:
            ic, ver, rev, support = self._device.firmware_version
        except RuntimeError as e:
            logger.warning(f"No firmware version response: {e}")
            ic, ver, rev, support = 0, 0, 0, 0
        version = check_firmware(FirmwareVersion(ic=ic, major=ver, minor=rev, build=support))
        try:
            self._device.SAM_configuration()
        except RuntimeError as e:
            raise CommunicationError(f"SAMConfiguration failed on {self.device_name}: {e}") from e
        return version

    def read_tag(self, timeout_ms: int = 200) -> Optional[NfcTag]:
        try:
            uid = self._device.read_passive_target(
                card_baud=self.CARD_BAUD_106KBPS_TYPE_A, timeout=timeout_ms / 1000.0
            )
        except RuntimeError as e:
            # adafruit_pn532 raises RuntimeError for bad preambles and checksums
            logger.debug(f"Ignoring malformed scan response: {e}")
            return None
        except OSError as e:
            raise bus_error(e, self.device_name) from e

        if not uid:
            return None
        return NfcTag(uid=bytes(uid), device_name=self.device_name)


def create_tag_source(config) -> TagSource:
    """Build the tag source selected by `config.TRANSPORT`"""
    transport = config.TRANSPORT.lower()
    if transport == 'spi':
        bus = SpiBus(
            bus=config.SPI_BUS,
            chip_select=config.SPI_CHIP_SELECT,
            clock_hz=config.SPI_CLOCK_HZ,
            mode=config.SPI_MODE
        )
        return RawFrameTagSource(Pn532Spi(bus))
    if transport == 'uart':
        return RawFrameTagSource(Pn532Uart(UartBus(config.SERIAL_PORT, config.SERIAL_BAUDRATE)))
    if transport == 'adafruit':
        return AdafruitTagSource.from_board(config.ADAFRUIT_CS_PIN)
    raise ValueError(f"Unknown transport: {config.TRANSPORT!r} (expected spi, uart or adafruit)")
