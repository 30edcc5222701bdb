"""
Tests for the PN532 command layer and its SPI / UART links
"""

import sys
import unittest
from pathlib import Path

# Add the project root to the path so we can import the package
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fakes import FakeSpiBus, FakeUartBus, MemoryPn532, response_frame, uid_frame, unreverse
from pn532_reader.exceptions import MalformedFrame
from pn532_reader.nfc_tag import FirmwareVersion
from pn532_reader.pn532 import (
    ACK_FRAME, COMMAND_GET_FIRMWARE_VERSION, COMMAND_IN_LIST_PASSIVE_TARGET,
    COMMAND_SAM_CONFIGURATION, Pn532Spi, Pn532Uart, build_frame, parse_frame,
    parse_response, reverse_bits
)

FIRMWARE_PAYLOAD = bytes([0x32, 0x01, 0x06, 0x07])


class TestFrames(unittest.TestCase):
    """Test cases for frame encoding and decoding"""

    def test_build_get_firmware_version(self):
        self.assertEqual(build_frame(COMMAND_GET_FIRMWARE_VERSION),
                         bytes.fromhex("0000FF02FED4022A00"))

    def test_build_list_passive_target(self):
        self.assertEqual(build_frame(COMMAND_IN_LIST_PASSIVE_TARGET, b"\x01\x00"),
                         bytes.fromhex("0000FF04FCD44A0100E100"))

    def test_build_rejects_oversized_payload(self):
        with self.assertRaises(ValueError):
            build_frame(0x40, bytes(300))

    def test_parse_response_payload(self):
        raw = response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD)
        self.assertEqual(parse_response(raw, COMMAND_GET_FIRMWARE_VERSION), FIRMWARE_PAYLOAD)

    def test_parse_skips_extra_preamble_zeros(self):
        raw = b"\x00\x00" + response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD)
        self.assertEqual(parse_response(raw, COMMAND_GET_FIRMWARE_VERSION), FIRMWARE_PAYLOAD)

    def test_parse_rejects_missing_start_code(self):
        for raw in (b"", bytes(10), b"\xFF" * 10, b"\xFF\x00\xFF\x02"):
            with self.assertRaises(MalformedFrame):
                parse_frame(raw)

    def test_parse_rejects_bad_length_checksum(self):
        raw = bytearray(response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD))
        raw[4] ^= 0x01
        with self.assertRaises(MalformedFrame):
            parse_frame(bytes(raw))

    def test_parse_rejects_bad_data_checksum(self):
        raw = bytearray(response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD))
        raw[-2] ^= 0x01
        with self.assertRaises(MalformedFrame):
            parse_frame(bytes(raw))

    def test_parse_rejects_truncated_frame(self):
        raw = response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD)
        with self.assertRaises(MalformedFrame):
            parse_frame(raw[:8])

    def test_parse_rejects_wrong_response_code(self):
        raw = response_frame(COMMAND_SAM_CONFIGURATION, b"")
        with self.assertRaises(MalformedFrame):
            parse_response(raw, COMMAND_GET_FIRMWARE_VERSION)

    def test_reverse_bits(self):
        self.assertEqual(reverse_bits(0x01), 0x80)
        self.assertEqual(reverse_bits(0xD4), 0x2B)
        self.assertEqual(reverse_bits(0xFF), 0xFF)


class TestCommandLayer(unittest.TestCase):
    """Test cases for the link-independent command flow"""

    def test_get_firmware_version(self):
        pn532 = MemoryPn532(reads=[
            ACK_FRAME, response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD)
        ])
        version = pn532.get_firmware_version()

        self.assertEqual(version, FirmwareVersion(ic=0x32, major=1, minor=6, build=7))
        self.assertTrue(version.is_present)
        self.assertEqual(pn532.written, [build_frame(COMMAND_GET_FIRMWARE_VERSION)])

    def test_silent_device_reports_zero_version(self):
        version = MemoryPn532(ready=False).get_firmware_version()
        self.assertEqual(version, FirmwareVersion())
        self.assertFalse(version.is_present)

    def test_garbled_handshake_reports_zero_version(self):
        pn532 = MemoryPn532(reads=[b"\xFF" * 6])
        self.assertEqual(pn532.get_firmware_version().build, 0)

    def test_sam_configuration(self):
        pn532 = MemoryPn532(reads=[ACK_FRAME, response_frame(COMMAND_SAM_CONFIGURATION, b"")])
        self.assertTrue(pn532.sam_configuration())
        self.assertEqual(pn532.written, [build_frame(COMMAND_SAM_CONFIGURATION, b"\x01\x14\x01")])

    def test_list_passive_target_returns_response_data(self):
        data = uid_frame(bytes.fromhex("DEADBEEF"))
        pn532 = MemoryPn532(reads=[ACK_FRAME, response_frame(COMMAND_IN_LIST_PASSIVE_TARGET, data)])

        self.assertEqual(pn532.list_passive_target(timeout_ms=200), data)
        self.assertEqual(pn532.written, [build_frame(COMMAND_IN_LIST_PASSIVE_TARGET, b"\x01\x00")])

    def test_list_passive_target_timeout_returns_empty_and_aborts(self):
        pn532 = MemoryPn532(reads=[ACK_FRAME], ready=[True, False])

        self.assertEqual(pn532.list_passive_target(timeout_ms=200), b"")
        self.assertEqual(pn532.written[-1], ACK_FRAME)

    def test_list_passive_target_without_ack_returns_empty(self):
        pn532 = MemoryPn532(ready=False)
        self.assertEqual(pn532.list_passive_target(), b"")
        self.assertEqual(pn532.written[-1], ACK_FRAME)

    def test_unexpected_ack_raises(self):
        pn532 = MemoryPn532(reads=[b"\x00\x00\xFF\x01\xFF\x7F"])
        with self.assertRaises(MalformedFrame):
            pn532.list_passive_target()


class TestSpiLink(unittest.TestCase):
    """Test cases for Pn532Spi"""

    def firmware_exchanges(self):
        return [
            b"\x00",                                   # wakeup
            b"",                                       # command write
            b"\x00\x01",                               # status: ready
            b"\x00" + ACK_FRAME,                       # ACK read
            b"\x00\x01",                               # status: ready
            b"\x00" + response_frame(COMMAND_GET_FIRMWARE_VERSION, FIRMWARE_PAYLOAD),
        ]

    def test_firmware_version_over_msb_first_bus(self):
        bus = FakeSpiBus(self.firmware_exchanges())
        pn532 = Pn532Spi(bus, sleep=lambda seconds: None)
        pn532.open()

        self.assertEqual(pn532.get_firmware_version().build, 7)
        self.assertTrue(bus.is_open)
        # Everything on the wire is bit-reversed for the LSB-first PN532
        self.assertEqual(unreverse(bus.sent[1]),
                         b"\x01" + build_frame(COMMAND_GET_FIRMWARE_VERSION))
        self.assertEqual(unreverse(bus.sent[2]), b"\x02\x00")
        self.assertEqual(unreverse(bus.sent[3])[0], 0x03)

        pn532.close()
        self.assertFalse(bus.is_open)

    def test_lsb_first_bus_is_not_reversed(self):
        bus = FakeSpiBus(self.firmware_exchanges(), lsb_first=True)
        pn532 = Pn532Spi(bus, sleep=lambda seconds: None)
        pn532.open()

        self.assertEqual(pn532.get_firmware_version().major, 1)
        self.assertEqual(bus.sent[1], b"\x01" + build_frame(COMMAND_GET_FIRMWARE_VERSION))

    def test_not_ready_until_timeout(self):
        now = [0.0]

        def sleep(seconds):
            now[0] += seconds

        bus = FakeSpiBus()
        pn532 = Pn532Spi(bus, ready_poll_interval=0.05, clock=lambda: now[0], sleep=sleep)

        self.assertFalse(pn532._wait_ready(0.2))
        self.assertGreaterEqual(now[0], 0.2)


class TestUartLink(unittest.TestCase):
    """Test cases for Pn532Uart"""

    def test_wakeup_on_open(self):
        bus = FakeUartBus()
        pn532 = Pn532Uart(bus, sleep=lambda seconds: None)
        pn532.open()

        self.assertTrue(bus.is_open)
        self.assertEqual(bus.written[0], Pn532Uart.WAKEUP_SEQUENCE)

    def test_list_passive_target(self):
        bus = FakeUartBus()
        pn532 = Pn532Uart(bus, sleep=lambda seconds: None)
        pn532.open()

        data = uid_frame(bytes.fromhex("04112233445566"))
        bus.buffer += ACK_FRAME + response_frame(COMMAND_IN_LIST_PASSIVE_TARGET, data)

        self.assertEqual(pn532.list_passive_target(timeout_ms=200), data)
        self.assertEqual(bus.written[-1], build_frame(COMMAND_IN_LIST_PASSIVE_TARGET, b"\x01\x00"))
        self.assertEqual(bus.in_waiting, 0)

    def test_silent_bus_times_out(self):
        now = [0.0]

        def sleep(seconds):
            now[0] += seconds

        bus = FakeUartBus()
        pn532 = Pn532Uart(bus, clock=lambda: now[0], sleep=sleep)

        self.assertEqual(pn532.list_passive_target(timeout_ms=100), b"")
        self.assertEqual(bus.written[-1], ACK_FRAME)


if __name__ == "__main__":
    unittest.main()
