"""
Bus transports for talking to a PN532 over SPI (spidev) or HSU/UART (pyserial)
"""

import errno
import logging
from typing import Optional

import serial

from .exceptions import BusPermissionError, TransportFault, ReaderNotConnectedError

logger = logging.getLogger(__name__)


def bus_error(exc: OSError, device_name: str) -> TransportFault:
    """Map an OS-level bus error onto the reader's error taxonomy"""
    if isinstance(exc, PermissionError) or getattr(exc, 'errno', None) in (errno.EACCES, errno.EPERM):
        return BusPermissionError(f"Permission denied to access {device_name}: {exc}")
    return TransportFault(f"Bus error on {device_name}: {exc}")


class SpiBus:
    """
    SPI bus transport backed by the Linux spidev driver.

    The bus is configured once on open: clock frequency, mode and bit order
    are fixed for the lifetime of the connection.
    """

    DEFAULT_BUS = 0
    DEFAULT_CHIP_SELECT = 0
    DEFAULT_CLOCK_HZ = 1_000_000  # PN532 supports up to 5MHz, 1MHz is safe
    DEFAULT_MODE = 0

    def __init__(self, bus: int = DEFAULT_BUS, chip_select: int = DEFAULT_CHIP_SELECT,
                 clock_hz: int = DEFAULT_CLOCK_HZ, mode: int = DEFAULT_MODE,
                 lsb_first: bool = False):
        self.bus = bus
        self.chip_select = chip_select
        self.clock_hz = clock_hz
        self.mode = mode
        self.lsb_first = lsb_first
        self._spi = None

    @property
    def device_name(self) -> str:
        return f"/dev/spidev{self.bus}.{self.chip_select}"

    @property
    def is_open(self) -> bool:
        return self._spi is not None

    def open(self) -> None:
        """Open the spidev device and apply the bus configuration"""
        if self._spi is not None:
            return

        import spidev

        spi = spidev.SpiDev()
        try:
            spi.open(self.bus, self.chip_select)
            spi.max_speed_hz = self.clock_hz
            spi.mode = self.mode
            if self.lsb_first:
                spi.lsbfirst = True
        except OSError as e:
            spi.close()
            raise bus_error(e, self.device_name) from e

        self._spi = spi
        logger.info(f"🔌 Opened {self.device_name} @ {self.clock_hz} Hz, mode {self.mode}")

    def close(self) -> None:
        if self._spi is None:
            return
        try:
            self._spi.close()
        finally:
            self._spi = None
            logger.info(f"🔌 Closed {self.device_name}")

    def exchange(self, data: bytes) -> bytes:
        """
        Full-duplex transfer: clock out `data` and return the bytes clocked in

        Args:
            data: Bytes to send, chip select held for the whole transfer

        Returns:
            The same number of bytes read back from the device
        """
        if self._spi is None:
            raise ReaderNotConnectedError(f"{self.device_name} is not open")
        try:
            return bytes(self._spi.xfer2(list(data)))
        except OSError as e:
            raise bus_error(e, self.device_name) from e

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class UartBus:
    """HSU (high speed UART) transport backed by pyserial"""

    DEFAULT_PORT = '/dev/ttyS0'
    DEFAULT_BAUDRATE = 115200

    def __init__(self, port: str = DEFAULT_PORT, baudrate: int = DEFAULT_BAUDRATE,
                 timeout: float = 0.1):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None

    @property
    def device_name(self) -> str:
        return self.port

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        if self.is_open:
            return
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE
            )
        except serial.SerialException as e:
            raise bus_error(e, self.device_name) from e
        logger.info(f"🔌 Opened {self.port} @ {self.baudrate} baud")

    def close(self) -> None:
        if self._serial is None:
            return
        try:
            self._serial.close()
        finally:
            self._serial = None
            logger.info(f"🔌 Closed {self.port}")

    def _port(self) -> serial.Serial:
        if not self.is_open:
            raise ReaderNotConnectedError(f"{self.port} is not open")
        return self._serial

    def write(self, data: bytes) -> None:
        port = self._port()
        try:
            port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise bus_error(e, self.device_name) from e

    def read(self, count: int, timeout: float) -> bytes:
        """Read up to `count` bytes, waiting at most `timeout` seconds"""
        port = self._port()
        try:
            port.timeout = max(0.01, timeout)
            return port.read(count)
        except serial.SerialException as e:
            raise bus_error(e, self.device_name) from e

    @property
    def in_waiting(self) -> int:
        port = self._port()
        try:
            return port.in_waiting
        except serial.SerialException as e:
            raise bus_error(e, self.device_name) from e

    def reset_input_buffer(self) -> None:
        port = self._port()
        try:
            port.reset_input_buffer()
        except serial.SerialException as e:
            raise bus_error(e, self.device_name) from e

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
