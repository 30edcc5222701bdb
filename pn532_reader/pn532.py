"""
PN532 command layer: frame encoding/decoding, ACK handling and the SPI and
HSU (UART) links that carry frames to the transceiver.

Frame format (normal information frame):
    [0x00][0x00 0xFF][LEN][LCS][TFI][PD0..PDn][DCS][0x00]
    LCS: LEN + LCS == 0x00 (mod 256)
    DCS: TFI + PD0 + ... + PDn + DCS == 0x00 (mod 256)
"""

import logging
import time
from typing import Callable, Optional

from .exceptions import MalformedFrame
from .nfc_tag import FirmwareVersion
from .transport import SpiBus, UartBus

logger = logging.getLogger(__name__)

# Frame constants
PREAMBLE = 0x00
STARTCODE1 = 0x00
STARTCODE2 = 0xFF
POSTAMBLE = 0x00
TFI_HOST_TO_PN532 = 0xD4
TFI_PN532_TO_HOST = 0xD5

ACK_FRAME = bytes([0x00, 0x00, 0xFF, 0x00, 0xFF, 0x00])

# Commands
COMMAND_GET_FIRMWARE_VERSION = 0x02
COMMAND_SAM_CONFIGURATION = 0x14
COMMAND_IN_LIST_PASSIVE_TARGET = 0x4A

# InListPassiveTarget parameters
MAX_TARGETS_ONE = 0x01
BAUD_106KBPS_TYPE_A = 0x00

# SPI operation prefixes
SPI_DATA_WRITE = 0x01
SPI_STATUS_READ = 0x02
SPI_DATA_READ = 0x03
SPI_READY = 0x01


def hex_spaced(data: bytes) -> str:
    """Convert bytes to hex string with spaces"""
    return ' '.join(f'{b:02X}' for b in data)


def build_frame(command: int, params: bytes = b"") -> bytes:
    """Build a host-to-PN532 normal information frame.

    Parameters:
        command (int): PN532 command code.
        params (bytes): Command arguments.

    Returns:
        bytes: Complete frame including preamble, checksums and postamble.
    """
    data = bytes([TFI_HOST_TO_PN532, command]) + bytes(params)
    length = len(data)
    if length > 255:
        raise ValueError(f"Frame payload too long: {length} bytes")
    lcs = (0x100 - length) & 0xFF
    dcs = (0x100 - sum(data)) & 0xFF
    return bytes([PREAMBLE, STARTCODE1, STARTCODE2, length, lcs]) + data + bytes([dcs, POSTAMBLE])


def parse_frame(raw: bytes) -> bytes:
    """Validate a PN532 normal information frame and return its data section.

    Parameters:
        raw (bytes): Bytes read from the bus, starting with the preamble.

    Returns:
        bytes: TFI and packet data (LEN bytes).

    Raises:
        MalformedFrame: Missing start code, bad length or data checksum,
            or a frame shorter than its declared length.
    """
    offset = 0
    while offset < len(raw) and raw[offset] == 0x00:
        offset += 1
    if offset == 0 or offset >= len(raw) or raw[offset] != STARTCODE2:
        raise MalformedFrame(f"Response frame preamble does not contain 0x00FF: {hex_spaced(raw)}")
    offset += 1

    if offset + 2 > len(raw):
        raise MalformedFrame("Response frame truncated before length checksum")
    frame_len = raw[offset]
    if (frame_len + raw[offset + 1]) & 0xFF != 0:
        raise MalformedFrame(f"Response length checksum mismatch: {hex_spaced(raw)}")

    start = offset + 2
    end = start + frame_len
    if end + 1 > len(raw):
        raise MalformedFrame(f"Response frame shorter than declared length {frame_len}")
    if sum(raw[start:end + 1]) & 0xFF != 0:
        raise MalformedFrame(f"Response data checksum mismatch: {hex_spaced(raw)}")
    return bytes(raw[start:end])


def parse_response(raw: bytes, command: int) -> bytes:
    """Decode a response frame to `command` and return the packet data after the response code"""
    data = parse_frame(raw)
    if len(data) < 2 or data[0] != TFI_PN532_TO_HOST or data[1] != (command + 1) & 0xFF:
        raise MalformedFrame(
            f"Unexpected response to command 0x{command:02X}: {hex_spaced(data)}"
        )
    return data[2:]


class Pn532:
    """
    Low-level PN532 command layer.

    Subclasses provide the link: how to wake the chip, how to wait for a
    response, and how to move raw bytes across the bus.
    """

    device_name = ""

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def _wait_ready(self, timeout: float) -> bool:
        raise NotImplementedError

    def _read_data(self, count: int) -> bytes:
        raise NotImplementedError

    def _write_data(self, frame: bytes) -> None:
        raise NotImplementedError

    def _read_response(self, max_length: int) -> bytes:
        return self._read_data(max_length)

    def send_command(self, command: int, params: bytes = b"", timeout: float = 1.0) -> bool:
        """
        Send a command frame and wait for the ACK

        Returns:
            True when the ACK arrived, False when the PN532 never became ready
        """
        frame = build_frame(command, params)
        logger.debug(f"📤 TX {hex_spaced(frame)}")
        self._write_data(frame)

        if not self._wait_ready(timeout):
            logger.debug(f"No ACK for command 0x{command:02X} within {timeout:.3f}s")
            return False

        ack = self._read_data(len(ACK_FRAME))
        if ack != ACK_FRAME:
            raise MalformedFrame(f"Did not receive expected ACK: {hex_spaced(ack)}")
        return True

    def process_response(self, command: int, response_length: int = 0,
                         timeout: float = 1.0) -> Optional[bytes]:
        """Wait for and decode the response to `command`; None on timeout"""
        if not self._wait_ready(timeout):
            return None
        # preamble, start code, LEN, LCS, TFI, response code, DCS, postamble
        raw = self._read_response(response_length + 8)
        logger.debug(f"📥 RX {hex_spaced(raw)}")
        return parse_response(raw, command)

    def call_function(self, command: int, params: bytes = b"", response_length: int = 0,
                      timeout: float = 1.0) -> Optional[bytes]:
        """Send a command and return its response data, or None on timeout"""
        if not self.send_command(command, params, timeout):
            return None
        return self.process_response(command, response_length, timeout)

    def abort(self) -> None:
        """Cancel the command in progress; the PN532 aborts on a host ACK"""
        logger.debug("Aborting pending command")
        self._write_data(ACK_FRAME)

    def get_firmware_version(self, timeout: float = 0.5) -> FirmwareVersion:
        """
        Query the firmware version

        A transceiver that does not answer, or answers with a garbled frame,
        is reported as an all-zero version.
        """
        try:
            response = self.call_function(COMMAND_GET_FIRMWARE_VERSION, response_length=4,
                                          timeout=timeout)
        except MalformedFrame as e:
            logger.warning(f"Garbled firmware version response: {e}")
            response = None

        if response is None or len(response) < 4:
            return FirmwareVersion()
        ic, ver, rev, support = response[:4]
        return FirmwareVersion(ic=ic, major=ver, minor=rev, build=support)

    def sam_configuration(self, timeout: float = 1.0) -> bool:
        """Put the PN532 in normal mode with a 1s virtual card timeout and IRQ enabled"""
        response = self.call_function(COMMAND_SAM_CONFIGURATION, bytes([0x01, 0x14, 0x01]),
                                      timeout=timeout)
        return response is not None

    def list_passive_target(self, max_targets: int = MAX_TARGETS_ONE,
                            baud: int = BAUD_106KBPS_TYPE_A, timeout_ms: int = 200) -> bytes:
        """
        Issue InListPassiveTarget and return the response data after `D5 4B`

        Returns:
            [NbTg, Tg, SENS_RES(2), SEL_RES, NFCIDLength, NFCID1...] or b"" when no
            target answered within `timeout_ms`
        """
        timeout = timeout_ms / 1000.0
        if not self.send_command(COMMAND_IN_LIST_PASSIVE_TARGET, bytes([max_targets, baud]), timeout):
            self.abort()
            return b""

        response = self.process_response(COMMAND_IN_LIST_PASSIVE_TARGET, response_length=30,
                                         timeout=timeout)
        if response is None:
            self.abort()
            return b""
        return bytes(response)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def reverse_bits(byte: int) -> int:
    result = 0
    for _ in range(8):
        result = (result << 1) | (byte & 1)
        byte >>= 1
    return result


_REVERSED = bytes(reverse_bits(i) for i in range(256))


class Pn532Spi(Pn532):
    """
    PN532 over SPI.

    The PN532 SPI port is LSB first. When the bus is configured MSB first
    (the only order most SPI masters support) every byte is bit-reversed here.
    """

    def __init__(self, bus: SpiBus, ready_poll_interval: float = 0.01,
                 wakeup_delay: float = 0.05,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.bus = bus
        self.ready_poll_interval = ready_poll_interval
        self.wakeup_delay = wakeup_delay
        self._clock = clock
        self._sleep = sleep

    @property
    def device_name(self) -> str:
        return self.bus.device_name

    def open(self) -> None:
        self.bus.open()
        self._wakeup()

    def close(self) -> None:
        self.bus.close()

    def _wakeup(self) -> None:
        # Toggling chip select with a dummy byte wakes the PN532 from power down
        self._transfer(bytes([0x00]))
        self._sleep(self.wakeup_delay)

    def _transfer(self, data: bytes) -> bytes:
        if self.bus.lsb_first:
            return self.bus.exchange(data)
        return self.bus.exchange(data.translate(_REVERSED)).translate(_REVERSED)

    def _wait_ready(self, timeout: float) -> bool:
        deadline = self._clock() + timeout
        while True:
            status = self._transfer(bytes([SPI_STATUS_READ, 0x00]))
            if status[1] == SPI_READY:
                return True
            if self._clock() >= deadline:
                return False
            self._sleep(self.ready_poll_interval)

    def _read_data(self, count: int) -> bytes:
        return self._transfer(bytes([SPI_DATA_READ]) + bytes(count))[1:]

    def _write_data(self, frame: bytes) -> None:
        self._transfer(bytes([SPI_DATA_WRITE]) + bytes(frame))


class Pn532Uart(Pn532):
    """PN532 over HSU (high speed UART)"""

    WAKEUP_SEQUENCE = b"\x55\x55\x00\x00\x00"

    def __init__(self, bus: UartBus, read_timeout: float = 0.1,
                 ready_poll_interval: float = 0.01,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.bus = bus
        self.read_timeout = read_timeout
        self.ready_poll_interval = ready_poll_interval
        self._clock = clock
        self._sleep = sleep

    @property
    def device_name(self) -> str:
        return self.bus.device_name

    def open(self) -> None:
        self.bus.open()
        self._wakeup()

    def close(self) -> None:
        self.bus.close()

    def _wakeup(self) -> None:
        self.bus.write(self.WAKEUP_SEQUENCE)
        self._sleep(0.1)
        self.bus.reset_input_buffer()

    def _wait_ready(self, timeout: float) -> bool:
        deadline = self._clock() + timeout
        while True:
            if self.bus.in_waiting > 0:
                return True
            if self._clock() >= deadline:
                return False
            self._sleep(self.ready_poll_interval)

    def _read_data(self, count: int) -> bytes:
        return self.bus.read(count, self.read_timeout)

    def _write_data(self, frame: bytes) -> None:
        self.bus.write(frame)

    def _read_response(self, max_length: int) -> bytes:
        # UART reads block for the full count, so read the header first and
        # then exactly the declared body
        header = b""
        while not header.endswith(bytes([STARTCODE1, STARTCODE2])):
            chunk = self.bus.read(1, self.read_timeout)
            if not chunk or len(header) >= max_length:
                return header
            header += chunk

        lengths = self.bus.read(2, self.read_timeout)
        if len(lengths) < 2:
            return header + lengths
        body = self.bus.read(lengths[0] + 2, self.read_timeout)
        return header + lengths + body
