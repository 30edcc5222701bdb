"""
Test doubles standing in for PN532 hardware
"""

import sys
from pathlib import Path

# Add the project root to the path so we can import the package
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pn532_reader.nfc_tag import FirmwareVersion, NfcTag
from pn532_reader.pn532 import Pn532, reverse_bits
from pn532_reader.tag_source import TagSource, check_firmware

PN532_FIRMWARE = FirmwareVersion(ic=0x32, major=1, minor=6, build=7)


def uid_frame(uid: bytes, sens_res: bytes = b"\x00\x04", sel_res: int = 0x08) -> bytes:
    """InListPassiveTarget response data for one target"""
    return bytes([0x01, 0x01]) + sens_res + bytes([sel_res, len(uid)]) + uid


def response_frame(command: int, payload: bytes) -> bytes:
    """PN532-to-host information frame answering `command`"""
    data = bytes([0xD5, command + 1]) + payload
    return (bytes([0x00, 0x00, 0xFF, len(data), (0x100 - len(data)) & 0xFF])
            + data + bytes([(0x100 - sum(data)) & 0xFF, 0x00]))


def unreverse(data: bytes) -> bytes:
    return bytes(reverse_bits(b) for b in data)


class SyntheticClock:
    """Manually advanced clock; sleep() advances it too"""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedSource(TagSource):
    """Replays a script of NfcTag / None / exception entries, then reports nothing"""

    def __init__(self, script=(), firmware: FirmwareVersion = PN532_FIRMWARE,
                 open_error: Exception = None, device_name: str = "fake0",
                 probe_error: BaseException = None):
        self.script = list(script)
        self.firmware = firmware
        self.open_error = open_error
        self.probe_error = probe_error
        self.device_name = device_name
        self.is_open = False
        self.open_count = 0
        self.close_count = 0
        self.scan_timeouts = []

    def open(self):
        self.open_count += 1
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True

    def close(self):
        self.close_count += 1
        self.is_open = False

    def probe(self):
        if self.probe_error is not None:
            raise self.probe_error
        return check_firmware(self.firmware)

    def read_tag(self, timeout_ms):
        self.scan_timeouts.append(timeout_ms)
        if not self.script:
            return None
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def tag(uid_hex: str) -> NfcTag:
    return NfcTag(uid=bytes.fromhex(uid_hex), device_name="fake0")


class FakePn532(Pn532):
    """Command layer replaying scripted InListPassiveTarget results"""

    device_name = "fake-pn532"

    def __init__(self, frames=(), firmware: FirmwareVersion = PN532_FIRMWARE, sam_ok: bool = True):
        self.frames = list(frames)
        self.firmware = firmware
        self.sam_ok = sam_ok
        self.is_open = False
        self.calls = []

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def get_firmware_version(self, timeout=0.5):
        return self.firmware

    def sam_configuration(self, timeout=1.0):
        return self.sam_ok

    def list_passive_target(self, max_targets=1, baud=0, timeout_ms=200):
        self.calls.append((max_targets, baud, timeout_ms))
        if not self.frames:
            return b""
        item = self.frames.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class MemoryPn532(Pn532):
    """Command layer over an in-memory link"""

    device_name = "memory"

    def __init__(self, reads=(), ready=True):
        self.reads = list(reads)
        self.ready = ready
        self.written = []

    def open(self):
        pass

    def close(self):
        pass

    def _wait_ready(self, timeout):
        if isinstance(self.ready, list):
            return self.ready.pop(0)
        return self.ready

    def _read_data(self, count):
        return self.reads.pop(0)

    def _write_data(self, frame):
        self.written.append(bytes(frame))


class FakeSpiBus:
    """SPI bus answering each exchange with the next scripted reply (logical, LSB-first bytes)"""

    device_name = "/dev/spidev0.0"

    def __init__(self, replies=(), lsb_first=False):
        self.replies = list(replies)
        self.lsb_first = lsb_first
        self.sent = []
        self.is_open = False

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def exchange(self, data):
        self.sent.append(bytes(data))
        reply = self.replies.pop(0) if self.replies else b""
        reply = (bytes(reply) + bytes(len(data)))[:len(data)]
        return reply if self.lsb_first else unreverse(reply)


class FakeUartBus:
    """UART bus backed by a byte buffer"""

    device_name = "/dev/ttyFAKE"

    def __init__(self):
        self.buffer = bytearray()
        self.written = []
        self.is_open = False

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def write(self, data):
        self.written.append(bytes(data))

    def read(self, count, timeout):
        data = bytes(self.buffer[:count])
        del self.buffer[:count]
        return data

    @property
    def in_waiting(self):
        return len(self.buffer)

    def reset_input_buffer(self):
        self.buffer.clear()
